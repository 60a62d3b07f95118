from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from api.deps import get_container, get_ledger, get_progress_service
from api.schemas import (
    AdvanceInput,
    AssignProgramInput,
    CompletionCreated,
    CompletionInput,
    CompletionOut,
    ProgressOut,
    ScheduleInput,
    ScheduleOut,
    TodayWorkoutOut,
    WeeklySummaryOut,
    WorkoutOut,
)
from core.services.ledger import CompletionLedger, to_naive_utc
from core.services.progress import ProgressService
from core.services.schedule import ProgramLength, ScheduleResult, compute_schedule

router = APIRouter(prefix="/api/v1")

Progress = Annotated[ProgressService, Depends(get_progress_service)]
Ledger = Annotated[CompletionLedger, Depends(get_ledger)]


def _schedule_out(result: ScheduleResult) -> ScheduleOut:
    return ScheduleOut(
        phase=result.phase.value,
        start_date=result.start_date,
        current_week=result.current_week,
        current_day=result.current_day,
        days_until_event=result.days_until_event,
        main_start_date=result.main_start_date,
    )


@router.get("/health", tags=["health"])
def health(request: Request):
    stats = get_container(request).query_timer.stats()
    return {"status": "ok", "queries": {"total": stats.total, "slow": stats.slow, "p95_ms": stats.p95_ms}}


@router.get("/users/{user_id}/today-workout", response_model=TodayWorkoutOut, tags=["progress"])
def today_workout(user_id: str, progress: Progress):
    result = progress.resolve_today(user_id)
    return TodayWorkoutOut(
        status=result.status.value,
        action=result.action.value if result.action else None,
        workout=WorkoutOut.from_record(result.workout) if result.workout else None,
        progress=ProgressOut.model_validate(result.progress) if result.progress else None,
    )


@router.get("/users/{user_id}/progress", response_model=ProgressOut, tags=["progress"])
def get_progress(user_id: str, progress: Progress):
    record = progress.get_progress(user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Progress not found")
    return ProgressOut.model_validate(record)


@router.post("/users/{user_id}/program", response_model=ProgressOut, tags=["progress"])
def assign_program(user_id: str, body: AssignProgramInput, progress: Progress):
    record = progress.assign_program(user_id, body.program_id, body.event_date, start_option=body.start_option)
    return ProgressOut.model_validate(record)


@router.post("/users/{user_id}/progress/advance", response_model=ProgressOut, tags=["progress"])
def advance_progress(user_id: str, body: AdvanceInput, progress: Progress):
    record = progress.advance_after_completion(user_id, skipped=body.skipped)
    return ProgressOut.model_validate(record)


@router.post("/users/{user_id}/progress/phase-check", response_model=ProgressOut, tags=["progress"])
def check_phase(user_id: str, progress: Progress):
    record = progress.check_phase_transition(user_id)
    return ProgressOut.model_validate(record)


@router.post("/schedule", response_model=ScheduleOut, tags=["schedule"])
def schedule(body: ScheduleInput, progress: Progress):
    if body.program_id is not None:
        result = progress.program_schedule(body.program_id, body.target_event_date, body.today)
    else:
        result = compute_schedule(body.today, ProgramLength(body.duration_weeks), body.target_event_date)
    return _schedule_out(result)


@router.post(
    "/users/{user_id}/completions",
    response_model=CompletionCreated,
    status_code=status.HTTP_201_CREATED,
    tags=["completions"],
)
def record_completion(user_id: str, body: CompletionInput, ledger: Ledger):
    completion_id = ledger.record_completion(
        user_id,
        body.workout_id,
        body.completed_at,
        body.skipped,
        body.notes,
        duration_minutes=body.duration_minutes,
        rating=body.rating,
        exercise_data=body.exercise_data,
    )
    return CompletionCreated(id=completion_id)


@router.get("/users/{user_id}/completions", response_model=list[CompletionOut], tags=["completions"])
def list_completions(
    request: Request,
    user_id: str,
    ledger: Ledger,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    offset: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
):
    settings = get_container(request).settings
    page_size = min(limit or settings.default_page_size, settings.max_page_size)
    rows = ledger.list_completions(user_id, start, end, offset=offset, limit=page_size)
    return [CompletionOut.model_validate(r) for r in rows]


@router.get("/users/{user_id}/completions/weekly", response_model=list[CompletionOut], tags=["completions"])
def weekly_completions(user_id: str, ledger: Ledger, start: datetime, end: datetime):
    if to_naive_utc(end) < to_naive_utc(start):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="end must not precede start")
    return [CompletionOut.model_validate(r) for r in ledger.list_weekly_completions(user_id, start, end)]


@router.get("/users/{user_id}/completions/summary", response_model=WeeklySummaryOut, tags=["completions"])
def weekly_summary(user_id: str, ledger: Ledger, now: Optional[datetime] = None):
    return WeeklySummaryOut.model_validate(ledger.weekly_summary(user_id, now))
