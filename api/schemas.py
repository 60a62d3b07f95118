from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime as dt_datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.services.exercises import exercise_to_dict, parse_exercises
from core.services.progress import StartOption
from core.stores import WorkoutRecord


class WorkoutOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    program_id: int
    week: int
    day: int
    name: str
    description: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    exercises: Any = None
    exercise_items: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_record(cls, workout: WorkoutRecord) -> "WorkoutOut":
        out = cls.model_validate(workout)
        out.exercise_items = [exercise_to_dict(e) for e in parse_exercises(workout.exercises)]
        return out


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    program_id: int
    current_week: int
    current_day: int
    phase: str
    start_date: dt_date
    event_date: Optional[dt_date] = None
    last_workout_date: Optional[dt_date] = None
    completed_workouts_count: int
    total_workouts_count: int
    is_active: bool


class TodayWorkoutOut(BaseModel):
    status: str
    action: Optional[str] = None
    workout: Optional[WorkoutOut] = None
    progress: Optional[ProgressOut] = None


class AssignProgramInput(BaseModel):
    program_id: int = Field(gt=0)
    event_date: Optional[dt_date] = None
    start_option: StartOption = StartOption.EVENT_DATE


class AdvanceInput(BaseModel):
    skipped: bool = False


class ScheduleInput(BaseModel):
    today: dt_date = Field(default_factory=dt_date.today)
    program_id: Optional[int] = Field(default=None, gt=0)
    duration_weeks: Optional[int] = Field(default=None, ge=1, le=104)
    target_event_date: Optional[dt_date] = None

    @model_validator(mode="after")
    def _one_program_source(self):
        if (self.program_id is None) == (self.duration_weeks is None):
            raise ValueError("Provide exactly one of program_id or duration_weeks")
        return self


class ScheduleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    phase: str
    start_date: dt_date
    current_week: int
    current_day: int
    days_until_event: Optional[int] = None
    main_start_date: Optional[dt_date] = None


class CompletionInput(BaseModel):
    workout_id: int = Field(gt=0)
    completed_at: Optional[dt_datetime] = None
    skipped: bool = False
    notes: Optional[str] = Field(default=None, max_length=2000)
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    exercise_data: Optional[dict[str, Any]] = None


class CompletionCreated(BaseModel):
    id: int


class CompletionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    workout_id: int
    completed_at: dt_datetime
    skipped: bool
    notes: Optional[str] = None
    duration_minutes: Optional[int] = None
    rating: Optional[int] = None
    exercise_data: Optional[dict[str, Any]] = None


class WeeklySummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    window_start: dt_datetime
    window_end: dt_datetime
    completed: int
    skipped: int
    total_minutes: int
