from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from core.errors import ProgressConflictError, ProgressNotFoundError
from core.models import Program, User, UserProgress, Workout, WorkoutCompletion, utcnow
from core.stores import (
    Assignment,
    AssignmentDirectory,
    Catalog,
    CompletionRecord,
    CompletionStore,
    ProgramRecord,
    ProgressRecord,
    ProgressStore,
    UnitOfWork,
    WorkoutRecord,
    check_progress_fields,
)

logger = logging.getLogger(__name__)


def _program_record(row: Program) -> ProgramRecord:
    return ProgramRecord(
        id=row.id,
        name=row.name,
        duration_weeks=row.duration_weeks,
        sessions_per_week=row.sessions_per_week,
        category=row.category,
        difficulty=row.difficulty,
        target_event_weeks=row.target_event_weeks,
    )


def _workout_record(row: Workout) -> WorkoutRecord:
    return WorkoutRecord(
        id=row.id,
        program_id=row.program_id,
        week=row.week,
        day=row.day,
        name=row.name,
        description=row.description,
        estimated_duration_minutes=row.estimated_duration_minutes,
        exercises=row.exercises if row.exercises is not None else [],
    )


def _progress_record(row: UserProgress) -> ProgressRecord:
    return ProgressRecord(
        user_id=row.user_id,
        program_id=row.program_id,
        current_week=row.current_week,
        current_day=row.current_day,
        start_date=row.start_date,
        phase=row.phase,
        event_date=row.event_date,
        last_workout_date=row.last_workout_date,
        completed_workouts_count=row.completed_workouts_count or 0,
        total_workouts_count=row.total_workouts_count or 0,
        is_active=bool(row.is_active),
        version=row.version,
    )


def _completion_record(row: WorkoutCompletion) -> CompletionRecord:
    return CompletionRecord(
        id=row.id,
        user_id=row.user_id,
        workout_id=row.workout_id,
        completed_at=row.completed_at,
        skipped=bool(row.skipped),
        notes=row.notes,
        duration_minutes=row.duration_minutes,
        rating=row.rating,
        exercise_data=row.exercise_data,
    )


class SqlCatalog(Catalog):
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_program(self, program_id: int) -> Optional[ProgramRecord]:
        row = self.session.get(Program, program_id)
        return _program_record(row) if row is not None else None

    def list_workouts(self, program_id: int) -> list[WorkoutRecord]:
        rows = self.session.execute(
            select(Workout).where(Workout.program_id == program_id).order_by(Workout.week, Workout.day)
        ).scalars()
        return [_workout_record(r) for r in rows]


class SqlProgressStore(ProgressStore):
    def __init__(self, session: Session) -> None:
        self.session = session

    def _active(self, user_id: str):
        return select(UserProgress).where(UserProgress.user_id == user_id, UserProgress.is_active.is_(True))

    def get(self, user_id: str, *, for_update: bool = False) -> Optional[ProgressRecord]:
        q = self._active(user_id).execution_options(populate_existing=True)
        if for_update:
            # Ignored by SQLite; row lock on PostgreSQL.
            q = q.with_for_update()
        row = self.session.execute(q).scalar_one_or_none()
        return _progress_record(row) if row is not None else None

    def create(
        self,
        user_id: str,
        program_id: int,
        week: int,
        day: int,
        start_date: date,
        *,
        phase: str = "MAIN",
        event_date: Optional[date] = None,
        total_workouts_count: int = 0,
    ) -> ProgressRecord:
        check_progress_fields({"current_week": week, "current_day": day})
        row = UserProgress(
            user_id=user_id,
            program_id=program_id,
            current_week=week,
            current_day=day,
            phase=phase,
            start_date=start_date,
            event_date=event_date,
            completed_workouts_count=0,
            total_workouts_count=total_workouts_count,
            is_active=True,
            version=1,
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            # Another request created the active record first.
            raise ProgressConflictError(user_id) from exc
        return _progress_record(row)

    def update(
        self,
        user_id: str,
        fields: Mapping[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> ProgressRecord:
        check_progress_fields(fields)
        row_id = self.session.scalar(
            select(UserProgress.id).where(UserProgress.user_id == user_id, UserProgress.is_active.is_(True))
        )
        if row_id is None:
            raise ProgressNotFoundError(user_id)
        stmt = (
            update(UserProgress)
            .where(UserProgress.id == row_id)
            .values(**dict(fields), version=UserProgress.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(UserProgress.version == expected_version)
        if self.session.execute(stmt).rowcount == 0:
            raise ProgressConflictError(user_id)
        row = self.session.get(UserProgress, row_id, populate_existing=True)
        return _progress_record(row)


class SqlCompletionStore(CompletionStore):
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        user_id: str,
        workout_id: int,
        completed_at: datetime,
        skipped: bool = False,
        notes: Optional[str] = None,
        *,
        duration_minutes: Optional[int] = None,
        rating: Optional[int] = None,
        exercise_data: Optional[dict[str, Any]] = None,
    ) -> int:
        row = WorkoutCompletion(
            user_id=user_id,
            workout_id=workout_id,
            completed_at=completed_at,
            skipped=skipped,
            notes=notes,
            duration_minutes=duration_minutes,
            rating=rating,
            exercise_data=exercise_data,
        )
        self.session.add(row)
        self.session.flush()
        return row.id

    def list(
        self,
        user_id: str,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[CompletionRecord]:
        q = select(WorkoutCompletion).where(WorkoutCompletion.user_id == user_id)
        if range_start is not None:
            q = q.where(WorkoutCompletion.completed_at >= range_start)
        if range_end is not None:
            q = q.where(WorkoutCompletion.completed_at <= range_end)
        rows = self.session.execute(
            q.order_by(desc(WorkoutCompletion.completed_at), desc(WorkoutCompletion.id)).offset(offset).limit(limit)
        ).scalars()
        return [_completion_record(r) for r in rows]


class SqlAssignmentDirectory(AssignmentDirectory):
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_assignment(self, user_id: str) -> Optional[Assignment]:
        user = self.session.get(User, user_id)
        if user is None:
            return None
        return Assignment(user_id=user.id, program_id=user.current_program_id, event_date=user.event_date)

    def set_assignment(self, user_id: str, program_id: int, event_date: Optional[date] = None) -> Assignment:
        user = self.session.get(User, user_id)
        if user is None:
            user = User(id=user_id)
            self.session.add(user)
        user.current_program_id = program_id
        user.event_date = event_date
        self.session.flush()
        return Assignment(user_id=user.id, program_id=program_id, event_date=event_date)


class SqlUnitOfWork(UnitOfWork):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self.session: Session | None = None

    def __enter__(self) -> "SqlUnitOfWork":
        self.session = self.session_factory()
        self.catalog = SqlCatalog(self.session)
        self.progress = SqlProgressStore(self.session)
        self.completions = SqlCompletionStore(self.session)
        self.assignments = SqlAssignmentDirectory(self.session)
        return self

    def commit(self) -> None:
        if self.session is None:
            raise RuntimeError("unit of work is not active; use it as a context manager")
        try:
            self.session.commit()
        except IntegrityError as exc:
            logger.warning("unit_of_work_commit_conflict", extra={"error": str(exc.orig)})
            raise

    def rollback(self) -> None:
        if self.session is not None:
            self.session.rollback()

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None


def sql_unit_of_work(session_factory: sessionmaker[Session]):
    """Factory-of-factories handed to the services by the composition root."""

    def factory() -> SqlUnitOfWork:
        return SqlUnitOfWork(session_factory)

    return factory
