"""Pydantic validation models for ledger entry points."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class CompletionEntryInput(BaseModel):
    user_id: str = Field(min_length=1, max_length=120)
    workout_id: int = Field(gt=0)
    completed_at: Optional[datetime] = None
    skipped: bool = False
    notes: Optional[str] = Field(default=None, max_length=2000)
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    exercise_data: Optional[dict[str, Any]] = None

    @field_validator("user_id")
    @classmethod
    def user_id_not_blank(cls, v):
        if not v.strip():
            raise ValueError("user_id must not be blank")
        return v
