"""API middleware.

Provides:
- Correlation ID enforcement and propagation
- Request completion logging
"""

import re
import time
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from catalog_service.api.errors import error_response

logger = structlog.get_logger()

# Paths served without a correlation id
EXEMPT_PATHS = {
    "/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
}

CORRELATION_ID_PATTERN = re.compile(r"^[\x21-\x7e]{1,100}$")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Require an ``X-Correlation-ID`` header and carry it through the request.

    The id is:
    - Stored in request state for handlers
    - Bound to the log context
    - Echoed in the response headers
    """

    HEADER_NAME = "X-Correlation-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Validate the correlation id, then process and log the request.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response with the correlation id header, or a 400 error.
        """
        path = request.url.path.rstrip("/") or "/"
        if path in EXEMPT_PATHS or path.startswith("/docs") or path.startswith("/redoc"):
            return await call_next(request)

        correlation_id = request.headers.get(self.HEADER_NAME)
        if not correlation_id:
            logger.warning("Missing correlation id", path=path, method=request.method)
            return error_response(
                status.HTTP_400_BAD_REQUEST,
                f"{self.HEADER_NAME} header is required",
                "CORRELATION_ID_REQUIRED",
            )
        if not CORRELATION_ID_PATTERN.match(correlation_id):
            logger.warning("Invalid correlation id", path=path, method=request.method)
            return error_response(
                status.HTTP_400_BAD_REQUEST,
                f"{self.HEADER_NAME} must be 1-100 visible characters",
                "INVALID_CORRELATION_ID",
            )

        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        start_time = time.perf_counter()
        response = None

        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", 500),
                duration_ms=round(duration_ms, 2),
            )
            structlog.contextvars.unbind_contextvars("correlation_id")

        response.headers[self.HEADER_NAME] = correlation_id
        return response


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
    """
    app.add_middleware(CorrelationIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CorrelationIdMiddleware.HEADER_NAME],
    )
