from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from typing import Any, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)  # type: ignore[arg-type]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application-wide structured logging."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    # Drop handlers installed by libraries before ours.
    root.handlers.clear()
    root.addHandler(handler)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a correlation id to every request and log its outcome."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        response.headers["X-Request-ID"] = correlation_id

        logging.getLogger("portfolio_consultant.request").info(
            "HTTP request",
            extra={
                "extra": {
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": int(duration * 1000),
                }
            },
        )

        return response


def log_with_correlation(
    logger: logging.Logger,
    request: Request,
    level: int,
    message: str,
    **fields: Any,
) -> None:
    """Emit a log line carrying the request's correlation id."""

    correlation_id = getattr(request.state, "correlation_id", None)
    extra = {"correlation_id": correlation_id}
    extra.update(fields)
    logger.log(level, message, extra={"extra": extra})


__all__ = [
    "JsonFormatter",
    "configure_logging",
    "RequestContextMiddleware",
    "log_with_correlation",
]
