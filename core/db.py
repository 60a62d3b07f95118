from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


@dataclass
class QueryStats:
    total: int = 0
    slow: int = 0
    p50_ms: float = 0.0
    p95_ms: float = 0.0


class QueryTimer:
    """Keeps a rolling window of statement durations for one engine."""

    def __init__(self, window: int = 1000, slow_ms: float = 250.0) -> None:
        self.window = window
        self.slow_ms = slow_ms
        self._samples: list[float] = []

    def record(self, elapsed_ms: float) -> None:
        self._samples.append(elapsed_ms)
        if len(self._samples) > self.window:
            self._samples.pop(0)

    def stats(self) -> QueryStats:
        if not self._samples:
            return QueryStats()
        ordered = sorted(self._samples)
        p50 = ordered[int(len(ordered) * 0.5)]
        p95 = ordered[min(len(ordered) - 1, int(len(ordered) * 0.95))]
        return QueryStats(
            total=len(self._samples),
            slow=sum(1 for s in self._samples if s > self.slow_ms),
            p50_ms=round(p50, 2),
            p95_ms=round(p95, 2),
        )


def build_engine(database_url: str, timer: QueryTimer | None = None) -> Engine:
    kwargs: dict = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_engine(database_url, **kwargs)

    if timer is not None:

        @event.listens_for(engine, "before_cursor_execute")
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            context._query_start_time = time.perf_counter()

        @event.listens_for(engine, "after_cursor_execute")
        def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            timer.record((time.perf_counter() - context._query_start_time) * 1000)

    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
