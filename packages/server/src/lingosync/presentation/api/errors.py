# packages/server/src/lingosync/presentation/api/errors.py
"""领域异常到 HTTP 状态码的映射。"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lingosync_core.exceptions import (
    AuthError,
    ConfigurationError,
    DuplicateRecordError,
    LingoSyncError,
    NotFoundError,
    ProviderError,
    SyncError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

# 按顺序匹配，子类需排在父类之前
STATUS_BY_ERROR: tuple[tuple[type[LingoSyncError], int], ...] = (
    (AuthError, 401),
    (NotFoundError, 404),
    (DuplicateRecordError, 409),
    (ValidationError, 422),
    (ProviderError, 502),
    (SyncError, 502),
    (ConfigurationError, 500),
)


def status_for(exc: LingoSyncError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


async def lingosync_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, LingoSyncError)
    status = status_for(exc)
    log = logger.bind(path=request.url.path, error_type=type(exc).__name__, status=status)
    if status >= 500:
        log.error("请求处理失败", error=str(exc))
    else:
        log.info("请求被拒绝", error=str(exc))
    return JSONResponse(
        status_code=status,
        content={
            "error": type(exc).__name__,
            "message": str(exc),
            "retryable": exc.retryable,
        },
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LingoSyncError, lingosync_error_handler)
