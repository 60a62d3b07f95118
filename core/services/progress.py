"""Today's-workout resolution and the progress record it maintains.

Every public call runs as one unit of work: the user's active progress row
is read with a lock, the catalog is consulted, and at most one position
write is issued once the outcome (exact match, catch-up or cycle) is known.
A write that loses a race with another writer for the same user raises
ProgressConflictError inside the store; the whole unit of work is rolled
back and replayed once before TransientProgressConflict reaches the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, TypeVar

from core.errors import ProgramNotFoundError, ProgressConflictError, ProgressNotFoundError, TransientProgressConflict
from core.services.schedule import Phase, ScheduleResult, compute_schedule
from core.stores import ProgressRecord, UnitOfWork, WorkoutRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TodayStatus(str, Enum):
    WORKOUT = "workout"
    NO_WORKOUT = "no_workout"
    NO_PROGRAM = "no_program"


class ResolveAction(str, Enum):
    EXACT = "exact"
    CATCH_UP = "catch_up"
    CYCLE = "cycle"


class StartOption(str, Enum):
    CONTINUE = "continue"
    BEGINNING = "beginning"
    EVENT_DATE = "eventDate"


@dataclass(frozen=True)
class TodayResult:
    status: TodayStatus
    workout: Optional[WorkoutRecord] = None
    progress: Optional[ProgressRecord] = None
    action: Optional[ResolveAction] = None


def order_workouts(workouts: Iterable[WorkoutRecord]) -> list[WorkoutRecord]:
    return sorted(workouts, key=lambda w: w.slot)


def next_after(workouts: Sequence[WorkoutRecord], position: tuple[int, int]) -> Optional[WorkoutRecord]:
    """First workout strictly after `position` in (week, day) order."""
    for workout in workouts:
        if workout.slot > position:
            return workout
    return None


def locate_slot(workouts: Sequence[WorkoutRecord], position: tuple[int, int]) -> tuple[WorkoutRecord, ResolveAction]:
    """Pick the workout for `position` from an ordered, non-empty sequence."""
    if not workouts:
        raise ValueError("locate_slot needs at least one workout")
    for workout in workouts:
        if workout.slot == position:
            return workout, ResolveAction.EXACT
    upcoming = next_after(workouts, position)
    if upcoming is not None:
        return upcoming, ResolveAction.CATCH_UP
    return workouts[0], ResolveAction.CYCLE


class ProgressService:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        *,
        conflict_retries: int = 1,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._uow_factory = uow_factory
        self._conflict_retries = conflict_retries
        self._clock = clock

    # -- public operations --

    def resolve_today(self, user_id: str, today: Optional[date] = None) -> TodayResult:
        day = today or self._clock()
        return self._run(user_id, lambda uow: self._resolve(uow, user_id, day))

    def assign_program(
        self,
        user_id: str,
        program_id: int,
        target_event_date: Optional[date] = None,
        today: Optional[date] = None,
        start_option: StartOption = StartOption.EVENT_DATE,
    ) -> ProgressRecord:
        """Point the user at `program_id` and place their progress.

        EVENT_DATE seeds the position from the event schedule, BEGINNING
        restarts at week 1 day 1, and CONTINUE keeps the existing position
        and completed count (falling back to week 1 day 1 when there is no
        progress yet).
        """
        day = today or self._clock()
        option = StartOption(start_option)
        return self._run(user_id, lambda uow: self._assign(uow, user_id, program_id, target_event_date, option, day))

    def advance_after_completion(self, user_id: str, skipped: bool = False, today: Optional[date] = None) -> ProgressRecord:
        day = today or self._clock()
        return self._run(user_id, lambda uow: self._advance(uow, user_id, skipped, day))

    def check_phase_transition(self, user_id: str, today: Optional[date] = None) -> ProgressRecord:
        """Move a MAIN-phase user into MAINTENANCE once their event has passed."""
        day = today or self._clock()
        return self._run(user_id, lambda uow: self._check_phase(uow, user_id, day))

    def get_progress(self, user_id: str) -> Optional[ProgressRecord]:
        with self._uow_factory() as uow:
            return uow.progress.get(user_id)

    def program_schedule(
        self,
        program_id: int,
        target_event_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> ScheduleResult:
        with self._uow_factory() as uow:
            program = uow.catalog.get_program(program_id)
        if program is None:
            raise ProgramNotFoundError(program_id)
        return compute_schedule(today or self._clock(), program, target_event_date)

    # -- unit-of-work bodies --

    def _run(self, user_id: str, body: Callable[[UnitOfWork], T]) -> T:
        attempts = 0
        while True:
            attempts += 1
            try:
                with self._uow_factory() as uow:
                    return body(uow)
            except ProgressConflictError as exc:
                if attempts > self._conflict_retries:
                    logger.warning("progress_conflict_exhausted", extra={"user_id": user_id, "attempts": attempts})
                    raise TransientProgressConflict(user_id, attempts) from exc
                logger.info("progress_conflict_retry", extra={"user_id": user_id, "attempt": attempts})

    def _resolve(self, uow: UnitOfWork, user_id: str, today: date) -> TodayResult:
        progress = uow.progress.get(user_id, for_update=True)
        assignment = uow.assignments.get_assignment(user_id)
        if assignment is None or assignment.program_id is None:
            return TodayResult(TodayStatus.NO_PROGRAM, progress=progress)

        program_id = assignment.program_id
        workouts = order_workouts(uow.catalog.list_workouts(program_id))

        if progress is None:
            program = uow.catalog.get_program(program_id)
            if program is None:
                raise ProgramNotFoundError(program_id)
            schedule = compute_schedule(today, program, assignment.event_date)
            progress = uow.progress.create(
                user_id,
                program_id,
                schedule.current_week,
                schedule.current_day,
                schedule.start_date,
                phase=schedule.phase.value,
                event_date=assignment.event_date,
                total_workouts_count=len(workouts),
            )
            logger.info(
                "progress_created",
                extra={"user_id": user_id, "program_id": program_id, "phase": schedule.phase.value, "week": progress.current_week, "day": progress.current_day},
            )
        elif progress.program_id != program_id:
            previous_program = progress.program_id
            progress = uow.progress.update(
                user_id,
                {
                    "program_id": program_id,
                    "current_week": 1,
                    "current_day": 1,
                    "completed_workouts_count": 0,
                    "total_workouts_count": len(workouts),
                    "start_date": today,
                    "phase": Phase.MAIN.value,
                    "event_date": assignment.event_date,
                    "last_workout_date": None,
                },
                expected_version=progress.version,
            )
            logger.info("progress_reset", extra={"user_id": user_id, "from_program_id": previous_program, "program_id": program_id})

        if not workouts:
            return TodayResult(TodayStatus.NO_WORKOUT, progress=progress)

        workout, action = locate_slot(workouts, progress.position)
        if action is not ResolveAction.EXACT:
            moved_from = progress.position
            progress = uow.progress.update(
                user_id,
                {"current_week": workout.week, "current_day": workout.day},
                expected_version=progress.version,
            )
            logger.info(
                "progress_catch_up" if action is ResolveAction.CATCH_UP else "progress_cycled",
                extra={"user_id": user_id, "from": moved_from, "to": workout.slot, "workout_id": workout.id},
            )
        return TodayResult(TodayStatus.WORKOUT, workout=workout, progress=progress, action=action)

    def _assign(
        self,
        uow: UnitOfWork,
        user_id: str,
        program_id: int,
        target_event_date: Optional[date],
        start_option: StartOption,
        today: date,
    ) -> ProgressRecord:
        program = uow.catalog.get_program(program_id)
        if program is None:
            raise ProgramNotFoundError(program_id)
        schedule = compute_schedule(today, program, target_event_date)
        total = len(uow.catalog.list_workouts(program_id))

        existing = uow.progress.get(user_id, for_update=True)
        uow.assignments.set_assignment(user_id, program_id, target_event_date)

        week, day, start_date = schedule.current_week, schedule.current_day, schedule.start_date
        completed, last_workout = 0, None
        if start_option is StartOption.BEGINNING:
            week, day, start_date = 1, 1, today
        elif start_option is StartOption.CONTINUE:
            start_date = today
            if existing is None:
                week, day = 1, 1
            else:
                week, day = existing.position
                completed, last_workout = existing.completed_workouts_count, existing.last_workout_date

        if existing is None:
            progress = uow.progress.create(
                user_id,
                program_id,
                week,
                day,
                start_date,
                phase=schedule.phase.value,
                event_date=target_event_date,
                total_workouts_count=total,
            )
        else:
            progress = uow.progress.update(
                user_id,
                {
                    "program_id": program_id,
                    "current_week": week,
                    "current_day": day,
                    "start_date": start_date,
                    "phase": schedule.phase.value,
                    "event_date": target_event_date,
                    "completed_workouts_count": completed,
                    "total_workouts_count": total,
                    "last_workout_date": last_workout,
                },
                expected_version=existing.version,
            )
        logger.info(
            "program_assigned",
            extra={
                "user_id": user_id,
                "program_id": program_id,
                "start_option": start_option.value,
                "phase": schedule.phase.value,
                "week": week,
                "day": day,
            },
        )
        return progress

    def _check_phase(self, uow: UnitOfWork, user_id: str, today: date) -> ProgressRecord:
        progress = uow.progress.get(user_id, for_update=True)
        if progress is None:
            raise ProgressNotFoundError(user_id)
        if progress.phase != Phase.MAIN.value or progress.event_date is None:
            return progress

        program = uow.catalog.get_program(progress.program_id)
        if program is None:
            raise ProgramNotFoundError(progress.program_id)
        schedule = compute_schedule(today, program, progress.event_date)
        if schedule.phase is not Phase.MAINTENANCE:
            return progress

        updated = uow.progress.update(
            user_id,
            {
                "phase": schedule.phase.value,
                "current_week": schedule.current_week,
                "current_day": schedule.current_day,
                "start_date": schedule.start_date,
            },
            expected_version=progress.version,
        )
        logger.info(
            "progress_phase_transition",
            extra={"user_id": user_id, "from": progress.phase, "to": updated.phase, "event_date": progress.event_date},
        )
        return updated

    def _advance(self, uow: UnitOfWork, user_id: str, skipped: bool, today: date) -> ProgressRecord:
        progress = uow.progress.get(user_id, for_update=True)
        if progress is None:
            raise ProgressNotFoundError(user_id)

        workouts = order_workouts(uow.catalog.list_workouts(progress.program_id))
        if not workouts:
            return progress

        upcoming = next_after(workouts, progress.position) or workouts[0]
        fields: dict = {"current_week": upcoming.week, "current_day": upcoming.day}
        if not skipped:
            fields["completed_workouts_count"] = progress.completed_workouts_count + 1
            fields["last_workout_date"] = today

        updated = uow.progress.update(user_id, fields, expected_version=progress.version)
        logger.info(
            "progress_advanced",
            extra={"user_id": user_id, "from": progress.position, "to": updated.position, "skipped": skipped},
        )
        return updated
