"""
API middleware for MedSimplify.

Provides:
- Rate limiting
- Request body size limits
- Request logging
- Error handling and error payloads
"""

import time
from contextvars import ContextVar
from typing import Callable, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from medsimplify.config import Settings, get_settings
from medsimplify.core.errors import MedSimplifyError
from medsimplify.utils.logger import get_logger

logger = get_logger("middleware")


# Rate limiter using client IP
limiter = Limiter(key_func=get_remote_address, strategy="fixed-window")

RATE_LIMIT_MESSAGE = "Too many requests, slow down."

# Settings of the application serving the current request
_request_settings: ContextVar[Optional[Settings]] = ContextVar("request_settings", default=None)


def api_rate_limit() -> str:
    """
    Limit applied to every /api route.

    slowapi calls this on each request without the request itself, so the
    serving application's settings are read from a context variable that
    RateLimitSettingsMiddleware sets. Outside a request the environment
    settings apply.
    """
    settings = _request_settings.get() or get_settings()
    return settings.rate_limit


def error_response(status_code: int, message: str, error_code: str) -> JSONResponse:
    """Build the standard {error, error_code} payload."""
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "error_code": error_code}
    )


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects POST bodies larger than a per-path limit.

    A declared Content-Length is checked up front. Bodies without one
    (chunked transfer) are read here and counted, stopping as soon as the
    limit is passed; an accepted body is handed on to the route.
    """

    def __init__(self, app, limits: Dict[str, int]):
        super().__init__(app)
        self.limits = limits

    def _too_large(self, request: Request, limit: int, received: int) -> Response:
        logger.warning(
            "Request body too large",
            path=request.url.path,
            received_bytes=received,
            limit=limit
        )
        return error_response(
            413,
            f"Request body exceeds {limit} bytes",
            "PAYLOAD_TOO_LARGE"
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        limit = self.limits.get(request.url.path)
        if limit is None or request.method != "POST":
            return await call_next(request)

        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit():
            if int(declared) > limit:
                return self._too_large(request, limit, int(declared))
            return await call_next(request)

        chunks = []
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > limit:
                return self._too_large(request, limit, received)
            chunks.append(chunk)

        # Same cache Request.body() fills; BaseHTTPMiddleware replays it downstream
        request._body = b"".join(chunks)
        return await call_next(request)


class RateLimitSettingsMiddleware(BaseHTTPMiddleware):
    """
    Makes the application's settings visible to the rate-limit provider.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        token = _request_settings.set(request.app.state.settings)
        try:
            return await call_next(request)
        finally:
            _request_settings.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging.

    Logs:
    - Request method, path, client address
    - Response status code
    - Processing time
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        start_time = time.time()

        method = request.method
        path = request.url.path
        client_ip = get_remote_address(request)

        logger.info(
            "Request received",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                method=method,
                path=path,
                error=str(e),
                process_time_ms=int((time.time() - start_time) * 1000)
            )
            raise

        process_time = time.time() - start_time

        logger.info(
            "Request completed",
            method=method,
            path=path,
            status_code=response.status_code,
            process_time_ms=int(process_time * 1000)
        )

        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns safe error responses.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                "Unhandled exception",
                path=request.url.path,
                error=str(e),
                exc_info=True
            )
            return error_response(
                500,
                "An unexpected error occurred. Check server logs.",
                "INTERNAL_ERROR"
            )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers that render every error as {error, error_code}."""

    @app.exception_handler(MedSimplifyError)
    async def service_error_handler(request: Request, exc: MedSimplifyError):
        if exc.status_code >= 500:
            logger.error("Request error", path=request.url.path, error_code=exc.error_code, error=exc.message)
        else:
            logger.warning("Request rejected", path=request.url.path, error_code=exc.error_code, error=exc.message)
        return error_response(exc.status_code, exc.message, exc.error_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Invalid request body", path=request.url.path, errors=len(exc.errors()))
        return error_response(400, "Invalid request body", "VALIDATION_ERROR")

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit exceeded", path=request.url.path, client_ip=get_remote_address(request))
        return error_response(429, RATE_LIMIT_MESSAGE, "RATE_LIMIT_EXCEEDED")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")


def setup_rate_limiting(app: FastAPI) -> None:
    """
    Attach the shared limiter to the application.

    The limiter's counters are process-wide, but the limit itself comes
    from the settings the application was created with.
    """
    app.state.limiter = limiter
    app.add_middleware(RateLimitSettingsMiddleware)
