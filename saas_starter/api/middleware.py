"""
Name: HTTP Middleware

Responsibilities:
  - Generate (or accept) a request_id and propagate it
  - Set request context for logging
  - Add X-Request-Id response header
  - Log request completion with latency

Collaborators:
  - crosscutting.context: ContextVars for request-scoped data
  - crosscutting.logger: Structured logging

Constraints:
  - Must be the outermost middleware
  - Must clear context after response
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..crosscutting.context import (
    clear_context,
    http_method_var,
    http_path_var,
    request_id_var,
)
from ..crosscutting.logger import logger


def _request_id(request: Request) -> str:
    incoming = request.headers.get("X-Request-Id", "").strip()
    try:
        return str(uuid.UUID(incoming))
    except ValueError:
        return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """R: Middleware that establishes request context and logs completion."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _request_id(request)

        request_id_var.set(request_id)
        http_method_var.set(request.method)
        http_path_var.set(request.url.path)
        request.state.request_id = request_id

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            latency_seconds = time.perf_counter() - start_time
            response.headers["X-Request-Id"] = request_id
            logger.info(
                "request completed",
                extra={
                    "status_code": response.status_code,
                    "latency_ms": round(latency_seconds * 1000, 2),
                },
            )
            return response
        except Exception as exc:
            latency_seconds = time.perf_counter() - start_time
            logger.exception(
                "request failed",
                extra={
                    "latency_ms": round(latency_seconds * 1000, 2),
                    "error": str(exc),
                },
            )
            raise
        finally:
            clear_context()
