from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any, Optional

from pydantic import ValidationError

from core.errors import CompletionValidationError
from core.models import utcnow
from core.stores import CompletionRecord, UnitOfWork
from core.validators import CompletionEntryInput

logger = logging.getLogger(__name__)

SUNDAY = 6


@dataclass(frozen=True)
class WeeklySummary:
    window_start: datetime
    window_end: datetime
    completed: int
    skipped: int
    total_minutes: int


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def current_week_window(now: datetime, week_start_index: int = SUNDAY) -> tuple[datetime, datetime]:
    """Inclusive bounds of the week containing `now`.

    `week_start_index` uses Python weekday numbering (Monday=0, Sunday=6).
    """
    offset = (now.weekday() - week_start_index) % 7
    start = datetime.combine(now.date() - timedelta(days=offset), time.min)
    end = start + timedelta(days=7) - timedelta(microseconds=1)
    return start, end


class CompletionLedger:
    """Append-only log of workout completions and skips.

    Recording a completion never moves the user's program position;
    advancing progress is a separate call on ProgressService.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        *,
        week_start_index: int = SUNDAY,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._week_start_index = week_start_index
        self._clock = clock

    def record_completion(
        self,
        user_id: str,
        workout_id: int,
        completed_at: Optional[datetime] = None,
        skipped: bool = False,
        notes: Optional[str] = None,
        *,
        duration_minutes: Optional[int] = None,
        rating: Optional[int] = None,
        exercise_data: Optional[dict[str, Any]] = None,
    ) -> int:
        try:
            entry = CompletionEntryInput(
                user_id=user_id,
                workout_id=workout_id,
                completed_at=completed_at,
                skipped=skipped,
                notes=notes,
                duration_minutes=duration_minutes,
                rating=rating,
                exercise_data=exercise_data,
            )
        except ValidationError as exc:
            raise CompletionValidationError(str(exc)) from exc

        stamp = to_naive_utc(entry.completed_at) if entry.completed_at is not None else self._clock()
        with self._uow_factory() as uow:
            completion_id = uow.completions.create(
                entry.user_id,
                entry.workout_id,
                stamp,
                entry.skipped,
                entry.notes,
                duration_minutes=entry.duration_minutes,
                rating=entry.rating,
                exercise_data=entry.exercise_data,
            )
        logger.info(
            "completion_recorded",
            extra={"user_id": user_id, "workout_id": workout_id, "completion_id": completion_id, "skipped": skipped},
        )
        return completion_id

    def list_completions(
        self,
        user_id: str,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[CompletionRecord]:
        with self._uow_factory() as uow:
            return uow.completions.list(
                user_id,
                to_naive_utc(range_start) if range_start is not None else None,
                to_naive_utc(range_end) if range_end is not None else None,
                offset=offset,
                limit=limit,
            )

    def list_weekly_completions(self, user_id: str, window_start: datetime, window_end: datetime) -> list[CompletionRecord]:
        return [c for c in self.list_completions(user_id, window_start, window_end) if not c.skipped]

    def current_window(self, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
        return current_week_window(to_naive_utc(now) if now is not None else self._clock(), self._week_start_index)

    def weekly_summary(self, user_id: str, now: Optional[datetime] = None) -> WeeklySummary:
        start, end = self.current_window(now)
        entries = self.list_completions(user_id, start, end)
        done = [c for c in entries if not c.skipped]
        return WeeklySummary(
            window_start=start,
            window_end=end,
            completed=len(done),
            skipped=len(entries) - len(done),
            total_minutes=sum(c.duration_minutes or 0 for c in done),
        )
