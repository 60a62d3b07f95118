from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Protocol, Union

DAYS_PER_WEEK = 7


class Phase(str, Enum):
    PREP = "PREP"
    MAIN = "MAIN"
    MAINTENANCE = "MAINTENANCE"


class HasDuration(Protocol):
    duration_weeks: int


@dataclass(frozen=True)
class ProgramLength:
    duration_weeks: int


@dataclass(frozen=True)
class ScheduleResult:
    phase: Phase
    start_date: date
    current_week: int
    current_day: int
    days_until_event: Optional[int] = None
    main_start_date: Optional[date] = None


def _as_date(value: Union[date, datetime]) -> date:
    # Calendar arithmetic works on midnight-normalised days.
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until_event(event_date: Union[date, datetime], today: Union[date, datetime]) -> int:
    return (_as_date(event_date) - _as_date(today)).days


def compute_schedule(
    today: Union[date, datetime],
    program: HasDuration,
    target_event_date: Optional[Union[date, datetime]] = None,
) -> ScheduleResult:
    """Derive phase and starting (week, day) for a program.

    With an event inside the program window the start date is back-dated so
    that the final program day lands on the event date.
    """
    if program.duration_weeks < 1:
        raise ValueError(f"duration_weeks must be >= 1, got {program.duration_weeks}")

    today = _as_date(today)
    program_days = program.duration_weeks * DAYS_PER_WEEK

    if target_event_date is None:
        return ScheduleResult(phase=Phase.MAIN, start_date=today, current_week=1, current_day=1)

    event = _as_date(target_event_date)
    remaining = days_until_event(event, today)
    main_start = event - timedelta(days=program_days)

    if remaining < 0:
        return ScheduleResult(
            phase=Phase.MAINTENANCE,
            start_date=today,
            current_week=1,
            current_day=1,
            days_until_event=remaining,
            main_start_date=main_start,
        )

    if remaining < program_days:
        into = program_days - remaining
        return ScheduleResult(
            phase=Phase.MAIN,
            start_date=today - timedelta(days=into),
            current_week=into // DAYS_PER_WEEK + 1,
            current_day=into % DAYS_PER_WEEK + 1,
            days_until_event=remaining,
            main_start_date=main_start,
        )

    return ScheduleResult(
        phase=Phase.PREP,
        start_date=today,
        current_week=1,
        current_day=1,
        days_until_event=remaining,
        main_start_date=main_start,
    )
