# shared/middleware.py
"""
Request guards and error shaping shared by cuisine services.

Every error leaving a service has the body `{"error": "<message>"}`, whether
it comes from a route, a validation failure, a size limit or a crash.
"""

import logging
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"
UNGUARDED_PATHS = ("/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Refuses bodies whose declared length exceeds the route's limit, and logs
    one line per request with status and latency.
    """

    def __init__(
        self,
        app: ASGIApp,
        default_limit: int = 1024 * 1024,
        route_limits: Optional[dict[str, int]] = None,
        log_requests: bool = True,
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.route_limits = route_limits or {}
        self.log_requests = log_requests

    def limit_for(self, path: str) -> int:
        for prefix, limit in self.route_limits.items():
            if path.startswith(prefix):
                return limit
        return self.default_limit

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path.startswith(UNGUARDED_PATHS):
            return await call_next(request)

        declared = request.headers.get("content-length")
        if declared:
            if not declared.isdigit():
                return error_response(400, "Invalid Content-Length header")
            limit = self.limit_for(path)
            if int(declared) > limit:
                logger.warning(f"🚫 REQUEST: {path} body of {declared} bytes over {limit}")
                return error_response(413, f"Request too large. Maximum size: {limit} bytes")

        started = time.time()
        response = await call_next(request)

        if self.log_requests:
            client = request.client.host if request.client else "unknown"
            logger.info(
                f"{request.method} {path} - {response.status_code} - "
                f"{time.time() - started:.3f}s - {client}"
            )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, service_name: str = "cuisine"):
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Service-Name"] = self.service_name

        # Generated recipes and balances are per-user
        if "json" in response.headers.get("content-type", ""):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response


async def _on_validation_error(request: Request, exc: RequestValidationError):
    logger.info(f"Validation error on {request.url.path}: {exc.errors()}")
    return error_response(400, "Invalid request body")


async def _on_http_error(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


async def _on_unhandled_error(request: Request, exc: Exception):
    logger.error(f"❌ UNHANDLED: {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(500, GENERIC_ERROR_MESSAGE)


def add_middleware_to_app(
    app: FastAPI,
    service_name: str,
    max_request_size: int = 1024 * 1024,
    endpoint_limits: Optional[dict[str, int]] = None,
    log_requests: bool = True,
):
    """
    Install the body-size guard, security headers and `{"error": ...}`
    exception handlers.

    Args:
        service_name: reported in the X-Service-Name header
        max_request_size: body limit in bytes for routes without their own
        endpoint_limits: path prefix -> body limit in bytes
    """
    # Middleware added last runs first
    app.add_middleware(SecurityHeadersMiddleware, service_name=service_name)
    app.add_middleware(
        BodySizeLimitMiddleware,
        default_limit=max_request_size,
        route_limits=endpoint_limits,
        log_requests=log_requests,
    )

    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(StarletteHTTPException, _on_http_error)
    app.add_exception_handler(Exception, _on_unhandled_error)
