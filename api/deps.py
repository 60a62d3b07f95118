"""Composition root: builds the engine, session factory and services once per app."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from core.config import Settings
from core.db import QueryTimer, build_engine, build_session_factory
from core.repositories import sql_unit_of_work
from core.services.ledger import CompletionLedger
from core.services.progress import ProgressService
from core.stores import UnitOfWork


@dataclass
class Container:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    uow_factory: Callable[[], UnitOfWork]
    progress: ProgressService
    ledger: CompletionLedger
    query_timer: QueryTimer

    def close(self) -> None:
        self.engine.dispose()


def build_container(settings: Settings) -> Container:
    timer = QueryTimer()
    engine = build_engine(settings.database_url, timer)
    factory = build_session_factory(engine)
    uow_factory = sql_unit_of_work(factory)
    return Container(
        settings=settings,
        engine=engine,
        session_factory=factory,
        uow_factory=uow_factory,
        progress=ProgressService(uow_factory, conflict_retries=settings.resolve_conflict_retries),
        ledger=CompletionLedger(uow_factory, week_start_index=settings.week_start_index),
        query_timer=timer,
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_progress_service(request: Request) -> ProgressService:
    return get_container(request).progress


def get_ledger(request: Request) -> CompletionLedger:
    return get_container(request).ledger
