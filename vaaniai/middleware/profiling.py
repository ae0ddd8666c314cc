"""
Request timing middleware.

Adds an X-Process-Time header to every response and logs slow requests.
Message sends wait for the completion API, so they get a higher threshold.
"""

import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Thresholds in seconds
SLOW_REQUEST_THRESHOLD = 1.0
VERY_SLOW_REQUEST_THRESHOLD = 3.0
SLOW_COMPLETION_THRESHOLD = 15.0

SKIP_PATHS = {"/health", "/"}


def is_completion_request(method: str, path: str) -> bool:
    return method == "POST" and path.startswith("/sessions/") and path.endswith("/messages")


class ProfilingMiddleware(BaseHTTPMiddleware):
    """Measure each request and log the slow ones."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        path = request.url.path
        method = request.method
        if path in SKIP_PATHS:
            return response

        if is_completion_request(method, path):
            if process_time > SLOW_COMPLETION_THRESHOLD:
                logger.warning(f"Slow completion: {method} {path} - {process_time:.3f}s - Status: {response.status_code}")
            return response

        if process_time > VERY_SLOW_REQUEST_THRESHOLD:
            logger.warning(f"VERY SLOW REQUEST: {method} {path} - {process_time:.3f}s - Status: {response.status_code}")
        elif process_time > SLOW_REQUEST_THRESHOLD:
            logger.info(f"Slow request: {method} {path} - {process_time:.3f}s - Status: {response.status_code}")

        return response
