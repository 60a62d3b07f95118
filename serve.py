"""Run the progress API with uvicorn.

Run with:  python3 serve.py [--seed]
"""

from __future__ import annotations

import argparse
import os

import uvicorn

from core.bootstrap import ensure_demo_seeded
from core.config import get_settings
from core.db import build_engine, build_session_factory


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--seed", action="store_true", help="Migrate and load the demo catalog before serving")
    args = parser.parse_args()

    settings = get_settings()
    if args.seed:
        engine = build_engine(settings.database_url)
        try:
            ensure_demo_seeded(build_session_factory(engine))
        finally:
            engine.dispose()

    uvicorn.run("api.main:create_app", factory=True, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
