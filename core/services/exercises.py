"""Typed view over a workout's free-form exercise list.

Authored workouts store exercises as JSON in two shapes:

- set/rep prescriptions: ``{"name": "Wall Balls", "sets": 4, "reps": "15", "weight": "9kg"}``
- race-station blocks: ``{"name": "Ski Erg", "distance": 1000, "type": "For Time", "notes": "..."}``

Imported programs write counts as text (``"sets": "1"``); those are
coerced. Anything that validates as neither shape is kept as an opaque
entry. Parsing never raises; a payload that cannot be read at all yields a
single opaque entry wrapping it.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator, model_validator


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("boolean is not a count")
    return value


Count = Annotated[int, BeforeValidator(_reject_bool)]


class SetsRepsExercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["sets_reps"] = "sets_reps"
    name: str
    sets: Count = Field(ge=0)
    reps: str
    weight: Optional[str] = None

    @field_validator("reps", "weight", mode="before")
    @classmethod
    def numbers_as_text(cls, v):
        if isinstance(v, bool):
            raise ValueError("expected text or a number")
        if isinstance(v, (int, float)):
            return str(v)
        return v


class StationExercise(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["station"] = "station"
    name: str
    format: Literal["Standard", "For Time", "AMRAP", "EMOM"] = Field(alias="type")
    distance_m: Optional[Count] = Field(default=None, alias="distance")
    reps: Optional[Count] = None
    notes: Optional[str] = None

    @field_validator("notes", mode="before")
    @classmethod
    def drop_non_text_notes(cls, v):
        return v if isinstance(v, str) else None

    @model_validator(mode="after")
    def needs_a_target(self):
        if self.distance_m is None and self.reps is None:
            raise ValueError("station needs a distance or reps")
        return self


class OpaqueExercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["opaque"] = "opaque"
    raw: Any = None


Exercise = Union[SetsRepsExercise, StationExercise, OpaqueExercise]

# Station blocks are tried first: they may also carry reps.
_SHAPES: tuple[type[BaseModel], ...] = (StationExercise, SetsRepsExercise)


def parse_exercise(entry: Any) -> Exercise:
    if isinstance(entry, dict):
        for shape in _SHAPES:
            try:
                return shape.model_validate(entry)
            except ValidationError:
                continue
    return OpaqueExercise(raw=entry)


def parse_exercises(payload: Any) -> list[Exercise]:
    # Older catalog rows hold the list JSON-encoded as a string.
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            return [OpaqueExercise(raw=payload)]
    if payload is None:
        return []
    if not isinstance(payload, list):
        return [OpaqueExercise(raw=payload)]
    return [parse_exercise(e) for e in payload]


def exercise_to_dict(exercise: Exercise) -> dict[str, Any]:
    return exercise.model_dump()
