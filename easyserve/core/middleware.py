"""
core/middleware.py

Defines custom middleware to log all HTTP requests and responses.
Records request method, path, response status and latency.
Request bodies are not logged since they may carry credentials.
"""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("easyserve.http")


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        logger.debug(f"Request: {request.method} {request.url.path}")

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        log_fn = logger.warning if response.status_code >= 400 else logger.info
        log_fn(
            f"Response: {request.method} {request.url.path} - "
            f"Status {response.status_code} - {elapsed_ms:.1f}ms"
        )
        return response
