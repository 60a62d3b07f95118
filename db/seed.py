"""Demo catalog seeder.

Loads a small set of programs with authored workouts so the progress API can
be exercised end to end. Day 7 of each week is left unauthored (rest day),
which the resolver skips over.
"""
from __future__ import annotations

from typing import Any

from alembic import command
from alembic.config import Config
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from core.db import session_scope
from core.models import Program, User, Workout

DEMO_USER_ID = "demo-user"

# (name, description, minutes, exercises); cycled through each program week.
SESSION_TEMPLATES: list[tuple[str, str, int, list[dict[str, Any]]]] = [
    (
        "Base Building Run + Sled Push",
        "Steady run plus sled push. Focus on pacing and technique.",
        45,
        [
            {"name": "Warm-up", "sets": 1, "reps": "10min", "weight": None},
            {"name": "Steady Run", "sets": 1, "reps": "30min", "weight": None},
            {"name": "Sled Push", "sets": 8, "reps": "50m", "weight": "bodyweight"},
            {"name": "Cool-down", "sets": 1, "reps": "5min", "weight": None},
        ],
    ),
    (
        "Functional Strength Circuit",
        "Full body strength circuit built on race movement patterns.",
        50,
        [
            {"name": "Warm-up", "sets": 1, "reps": "10min", "weight": None},
            {"name": "Burpee Broad Jumps", "sets": 4, "reps": "8", "weight": None},
            {"name": "KB Farmers Carry", "sets": 4, "reps": "40m", "weight": "20kg each"},
            {"name": "Wall Balls", "sets": 4, "reps": "15", "weight": "9kg"},
            {"name": "Sandbag Lunges", "sets": 4, "reps": "20", "weight": "20kg"},
            {"name": "Rowing", "sets": 4, "reps": "250m", "weight": None},
        ],
    ),
    (
        "Running Intervals + SkiErg",
        "Speed endurance work with race stations.",
        40,
        [
            {"name": "Warm-up", "sets": 1, "reps": "10min", "weight": None},
            {"name": "Run Intervals", "sets": 6, "reps": "400m", "weight": "90sec rest"},
            {"name": "SkiErg", "sets": 1, "reps": "1000m", "weight": None},
            {"name": "Cool-down", "sets": 1, "reps": "10min", "weight": None},
        ],
    ),
    (
        "Easy Aerobic Run",
        "Conversational pace. Keep heart rate low.",
        35,
        [{"name": "Easy Run", "sets": 1, "reps": "35min", "weight": None}],
    ),
    (
        "AMRAP Conditioning",
        "Rounds of station work with a run between each round.",
        30,
        [
            {"name": "Wall Balls", "reps": 12, "type": "AMRAP"},
            {"name": "Burpees", "reps": 15, "type": "AMRAP"},
            {"name": "KB Swings", "reps": 18, "type": "AMRAP"},
            {"name": "400m Run", "distance": 400, "type": "AMRAP", "notes": "Between each round"},
        ],
    ),
    (
        "Race Simulation (Half Distance)",
        "Practice race format with half distances.",
        60,
        [
            {"name": "1km Run", "distance": 500, "type": "Standard", "notes": "Steady pace"},
            {"name": "Ski Erg", "distance": 500, "type": "For Time", "notes": "Full power"},
            {"name": "Sled Push", "distance": 25, "type": "For Time", "notes": "Heavy load"},
            {"name": "Burpee Broad Jumps", "reps": 40, "type": "For Time", "notes": "Consistent rhythm"},
        ],
    ),
]

DEMO_PROGRAMS: list[dict[str, Any]] = [
    {
        "name": "Beginner Program",
        "description": "14 weeks for first-time racers: base fitness, movement patterns and race skills.",
        "duration_weeks": 14,
        "sessions_per_week": 6,
        "difficulty": "beginner",
        "target_event_weeks": 14,
    },
    {
        "name": "Intermediate Program",
        "description": "14 weeks building strength and conditioning for competitive racing.",
        "duration_weeks": 14,
        "sessions_per_week": 5,
        "difficulty": "intermediate",
        "target_event_weeks": 14,
    },
    {
        "name": "Maintenance Program",
        "description": "Repeating 4-week block to hold fitness between events.",
        "duration_weeks": 4,
        "sessions_per_week": 4,
        "difficulty": "beginner",
        "target_event_weeks": None,
    },
]


def run_migrations() -> None:
    cfg = Config("alembic.ini")
    command.upgrade(cfg, "head")


def build_program_workouts(program: Program) -> list[Workout]:
    rows: list[Workout] = []
    for week in range(1, program.duration_weeks + 1):
        for day in range(1, program.sessions_per_week + 1):
            name, description, minutes, exercises = SESSION_TEMPLATES[(day - 1) % len(SESSION_TEMPLATES)]
            rows.append(
                Workout(
                    program_id=program.id,
                    week=week,
                    day=day,
                    name=name,
                    description=description,
                    estimated_duration_minutes=minutes,
                    exercises=exercises,
                )
            )
    return rows


def seed_programs(session: Session) -> list[Program]:
    programs: list[Program] = []
    for definition in DEMO_PROGRAMS:
        existing = session.execute(select(Program).where(Program.name == definition["name"])).scalar_one_or_none()
        if existing is not None:
            programs.append(existing)
            continue
        program = Program(category="hyrox", **definition)
        session.add(program)
        session.flush()
        session.add_all(build_program_workouts(program))
        programs.append(program)
    return programs


def seed_demo_user(session: Session, program: Program) -> None:
    user = session.get(User, DEMO_USER_ID)
    if user is None:
        session.add(User(id=DEMO_USER_ID, email="demo@example.com", current_program_id=program.id))


def seed_all(session_factory: sessionmaker[Session]) -> None:
    with session_scope(session_factory) as s:
        programs = seed_programs(s)
        seed_demo_user(s, programs[0])


def main() -> None:
    from core.config import get_settings
    from core.db import build_engine, build_session_factory

    run_migrations()
    engine = build_engine(get_settings().database_url)
    try:
        seed_all(build_session_factory(engine))
    finally:
        engine.dispose()
    print("Seed complete")


if __name__ == "__main__":
    main()
