"""
FastAPI middleware for request logging.

Tags each request with a short id (or the caller's X-Request-ID) and logs
method, path, member, status and elapsed time.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for request ID (available across async calls)
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger(__name__)

# Query parameters never written to the log
REDACTED_PARAMS = {"secret"}


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_ctx.get()


def _loggable_query(request: Request) -> str:
    return "&".join(
        f"{key}={'***' if key in REDACTED_PARAMS else value}"
        for key, value in request.query_params.multi_items()
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log request start and completion, and echo X-Request-ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request_id_ctx.set(req_id)
        member_id = request.headers.get("X-User-ID", "-")

        logger.info(
            f"[{req_id}] {request.method} {request.url.path} member={member_id}",
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "query": _loggable_query(request),
                "member_id": member_id,
            },
        )

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.time() - start_time
            logger.error(
                f"[{req_id}] Request failed after {elapsed:.2f}s: {e}",
                extra={"request_id": req_id, "elapsed_ms": elapsed * 1000},
                exc_info=True,
            )
            raise

        elapsed = time.time() - start_time
        logger.info(
            f"[{req_id}] {response.status_code} in {elapsed:.2f}s",
            extra={
                "request_id": req_id,
                "status_code": response.status_code,
                "elapsed_ms": elapsed * 1000,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
