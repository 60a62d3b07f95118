from __future__ import annotations

from datetime import date
from typing import Optional

import pytest

from core.config import get_settings
from core.db import build_engine, build_session_factory, session_scope
from core.models import Base, Program, User, Workout
from core.repositories import sql_unit_of_work
from fakes import InMemoryDatabase


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def memdb() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture()
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'progress.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def uow_factory(session_factory):
    return sql_unit_of_work(session_factory)


@pytest.fixture()
def seed_program(session_factory):
    """Insert a program with a dense weeks x days grid of workouts; returns its id."""

    def _seed(name: str = "Beginner", weeks: int = 14, days: int = 6, duration_weeks: Optional[int] = None) -> int:
        with session_scope(session_factory) as s:
            program = Program(
                name=name,
                duration_weeks=duration_weeks or weeks,
                sessions_per_week=days,
                difficulty="beginner",
            )
            s.add(program)
            s.flush()
            for week in range(1, weeks + 1):
                for day in range(1, days + 1):
                    s.add(
                        Workout(
                            program_id=program.id,
                            week=week,
                            day=day,
                            name=f"W{week}D{day}",
                            estimated_duration_minutes=45,
                            exercises=[{"name": "Wall Balls", "sets": 4, "reps": "15", "weight": "9kg"}],
                        )
                    )
            return program.id

    return _seed


@pytest.fixture()
def assign_user(session_factory):
    def _assign(user_id: str, program_id: Optional[int], event_date: Optional[date] = None) -> None:
        with session_scope(session_factory) as s:
            user = s.get(User, user_id)
            if user is None:
                user = User(id=user_id)
                s.add(user)
            user.current_program_id = program_id
            user.event_date = event_date

    return _assign
