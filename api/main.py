from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from api.deps import Container, build_container
from api.errors import progress_error_handler
from api.observability import (
    configure_logging,
    monotonic_ms,
    new_request_id,
    request_log_fields,
    reset_request_id,
    set_request_id,
)
from api.routes import router
from core.config import Settings, get_settings
from core.errors import ProgressError

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    """Build the API around one container; tests pass their own."""
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings.log_level)
    container = container or build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app_started", extra={"app_env": settings.app_env, "week_starts_on": settings.week_starts_on})
        try:
            yield
        finally:
            app.state.container.close()
            logger.info("app_stopped")

    app = FastAPI(title="Training Progress API", version="1.0.0", lifespan=lifespan)
    app.state.container = container
    app.add_exception_handler(ProgressError, progress_error_handler)
    app.include_router(router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_and_logging(request: Request, call_next: Callable) -> Response:
        header_name = settings.request_id_header_name or "X-Request-ID"
        request_id = (request.headers.get(header_name) or "").strip() or new_request_id()
        token = set_request_id(request_id)
        started_ms = monotonic_ms()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[header_name] = request_id
            return response
        finally:
            fields = request_log_fields(
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=monotonic_ms() - started_ms,
                client_ip=getattr(request.client, "host", None),
            )
            if status_code >= 500:
                logger.error("http_request_error", extra=fields)
            else:
                logger.info("http_request", extra=fields)
            reset_request_id(token)

    return app
