from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session, sessionmaker

from core.db import session_scope
from core.models import Program

logger = logging.getLogger(__name__)


def catalog_present(session_factory: sessionmaker[Session]) -> bool:
    try:
        with session_scope(session_factory) as s:
            return s.execute(select(Program.id)).first() is not None
    except (OperationalError, ProgrammingError):
        # Tables may not exist yet; the caller migrates first.
        return False


def ensure_demo_seeded(session_factory: sessionmaker[Session]) -> bool:
    """
    Ensure the demo catalog and user exist for local deployments where
    db/seed.py has not been run manually.
    """
    if catalog_present(session_factory):
        return False

    from db.seed import run_migrations, seed_all

    run_migrations()
    seed_all(session_factory)
    logger.info("demo_catalog_seeded")
    return True
