# api/middleware.py
"""
Custom middleware for observability and request tracking.
"""
import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("create-user-api.middleware")

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Adds a request id and timing to every request:
    - reuses an incoming X-Request-ID or generates one
    - X-Request-ID / X-Response-Time response headers
    - start/completion log lines
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        logger.info("Request started: request_id=%s method=%s path=%s", request_id, request.method, request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Request failed: request_id=%s error=%s duration=%.2fms",
                request_id, e, duration_ms,
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        logger.info(
            "Request completed: request_id=%s status=%s duration=%.2fms",
            request_id, response.status_code, duration_ms,
        )
        return response
