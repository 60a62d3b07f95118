from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.errors import (
    CompletionValidationError,
    ProgramNotFoundError,
    ProgressError,
    ProgressNotFoundError,
    TransientProgressConflict,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[ProgressError], int]] = [
    (ProgramNotFoundError, status.HTTP_404_NOT_FOUND),
    (ProgressNotFoundError, status.HTTP_404_NOT_FOUND),
    (TransientProgressConflict, status.HTTP_409_CONFLICT),
    (CompletionValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
]


def status_for(exc: ProgressError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def progress_error_handler(request: Request, exc: ProgressError) -> JSONResponse:
    code = status_for(exc)
    headers = {"Retry-After": "1"} if code == status.HTTP_409_CONFLICT else None
    logger.info(
        "progress_error_response",
        extra={"path": request.url.path, "error": type(exc).__name__, "status_code": code},
    )
    return JSONResponse(status_code=code, content={"detail": str(exc)}, headers=headers)
