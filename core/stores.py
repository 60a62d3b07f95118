"""Store contracts consumed by the progress services.

The services never touch a database session directly: they receive a
unit-of-work factory and talk to these interfaces. `core.repositories`
provides the SQLAlchemy implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

# Fields a caller may change through ProgressStore.update.
PROGRESS_UPDATE_FIELDS = frozenset(
    {
        "program_id",
        "current_week",
        "current_day",
        "phase",
        "start_date",
        "event_date",
        "last_workout_date",
        "completed_workouts_count",
        "total_workouts_count",
        "is_active",
    }
)


@dataclass(frozen=True)
class ProgramRecord:
    id: int
    name: str
    duration_weeks: int
    sessions_per_week: int
    category: str = "hyrox"
    difficulty: Optional[str] = None
    target_event_weeks: Optional[int] = None


@dataclass(frozen=True)
class WorkoutRecord:
    id: int
    program_id: int
    week: int
    day: int
    name: str
    description: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    exercises: Any = field(default_factory=list)

    @property
    def slot(self) -> tuple[int, int]:
        return (self.week, self.day)


@dataclass(frozen=True)
class ProgressRecord:
    user_id: str
    program_id: int
    current_week: int
    current_day: int
    start_date: date
    phase: str = "MAIN"
    event_date: Optional[date] = None
    last_workout_date: Optional[date] = None
    completed_workouts_count: int = 0
    total_workouts_count: int = 0
    is_active: bool = True
    version: int = 1

    @property
    def position(self) -> tuple[int, int]:
        return (self.current_week, self.current_day)


@dataclass(frozen=True)
class CompletionRecord:
    id: int
    user_id: str
    workout_id: int
    completed_at: datetime
    skipped: bool = False
    notes: Optional[str] = None
    duration_minutes: Optional[int] = None
    rating: Optional[int] = None
    exercise_data: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class Assignment:
    user_id: str
    program_id: Optional[int]
    event_date: Optional[date] = None


class Catalog(ABC):
    """Read-only view of programs and their authored workouts."""

    @abstractmethod
    def get_program(self, program_id: int) -> Optional[ProgramRecord]:
        ...

    @abstractmethod
    def list_workouts(self, program_id: int) -> list[WorkoutRecord]:
        """Workouts of a program ordered by (week, day)."""


class ProgressStore(ABC):
    @abstractmethod
    def get(self, user_id: str, *, for_update: bool = False) -> Optional[ProgressRecord]:
        """Active progress for the user; `for_update` locks it until the unit of work ends."""

    @abstractmethod
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
        """Raises ProgressConflictError if another active record appeared meanwhile."""

    @abstractmethod
    def update(
        self,
        user_id: str,
        fields: Mapping[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> ProgressRecord:
        """Raises ProgressConflictError when `expected_version` is stale."""


class CompletionStore(ABC):
    @abstractmethod
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
        ...

    @abstractmethod
    def list(
        self,
        user_id: str,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[CompletionRecord]:
        """Most recent first; both bounds inclusive. `offset`/`limit` page the ordered result."""


class AssignmentDirectory(ABC):
    """Which program a user currently follows, owned by program management."""

    @abstractmethod
    def get_assignment(self, user_id: str) -> Optional[Assignment]:
        ...

    @abstractmethod
    def set_assignment(self, user_id: str, program_id: int, event_date: Optional[date] = None) -> Assignment:
        ...


class UnitOfWork(ABC):
    """One transaction spanning all stores. Commits on clean exit, rolls back on error."""

    catalog: Catalog
    progress: ProgressStore
    completions: CompletionStore
    assignments: AssignmentDirectory

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.close()

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...

    def close(self) -> None:
        pass


def check_progress_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - PROGRESS_UPDATE_FIELDS
    if unknown:
        raise ValueError(f"Unknown progress fields: {sorted(unknown)}")
    for key in ("current_week", "current_day"):
        if key in fields and int(fields[key]) < 1:
            raise ValueError(f"{key} must be >= 1")
