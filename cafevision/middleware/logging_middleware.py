"""
Request logging middleware with correlation IDs, plus a logger that stamps
workflow log lines with the request and design session they belong to.
"""
import logging
import re
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
session_id_var: ContextVar[str] = ContextVar("session_id", default="")

_SESSION_PATH_RE = re.compile(r"/sessions/(?P<session_id>[0-9a-fA-F]+)")

logger = logging.getLogger(__name__)


def get_request_id() -> str:
    return request_id_var.get()


def get_session_id() -> str:
    return session_id_var.get()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Assigns a short request ID, picks the design session ID out of
    /api/sessions/{id}/... paths, and logs each request with its timing.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex[:8]
        request_id_var.set(request_id)

        path = request.url.path
        match = _SESSION_PATH_RE.search(path)
        session_id = match.group("session_id") if match else ""
        session_id_var.set(session_id)

        context = {"request_id": request_id, "session_id": session_id}
        start_time = time.time()
        logger.info(
            f"[{request_id}] → {request.method} {path}",
            extra={**context, "method": request.method, "path": path, "event": "request_start"},
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] ✗ Error: {str(e)[:100]} ({duration_ms:.0f}ms)",
                extra={**context, "error": str(e), "duration_ms": duration_ms, "event": "request_error"},
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        log_level = logging.INFO if response.status_code < 400 else logging.WARNING
        logger.log(
            log_level,
            f"[{request_id}] ← {response.status_code} ({duration_ms:.0f}ms)",
            extra={**context, "status_code": response.status_code, "duration_ms": duration_ms, "event": "request_end"},
        )
        response.headers["X-Request-ID"] = request_id
        return response


class ContextualLogger:
    """Logger wrapper that prefixes messages with [request_id][sess:xxxxxxxx]."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _format_msg(self, msg: str) -> str:
        prefix = ""
        request_id = get_request_id()
        session_id = get_session_id()
        if request_id:
            prefix = f"[{request_id}]"
        if session_id:
            prefix += f"[sess:{session_id[:8]}]"
        return f"{prefix} {msg}" if prefix else msg

    def debug(self, msg: str, *args, **kwargs):
        self.logger.debug(self._format_msg(msg), *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self.logger.info(self._format_msg(msg), *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self.logger.warning(self._format_msg(msg), *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self.logger.error(self._format_msg(msg), *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        self.logger.exception(self._format_msg(msg), *args, **kwargs)


def get_logger(name: str) -> ContextualLogger:
    """Get a contextual logger that includes request/session IDs."""
    return ContextualLogger(name)
