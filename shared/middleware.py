# shared/middleware.py
"""
Request validation, security headers and standardized error responses.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: Any,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create standardized error response"""
    content = {
        "success": False,
        "error": True,
        "message": message,
        "status_code": status_code,
        "timestamp": time.time(),
    }

    if details:
        content["details"] = details

    return JSONResponse(status_code=status_code, content=content, headers=headers)


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """
    Rejects oversized or wrongly typed request bodies and logs each request.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 1024 * 1024,
        allowed_content_types: Optional[list] = None,
        log_requests: bool = True,
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.allowed_content_types = allowed_content_types or [
            "application/json",
            "text/plain",
        ]
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        if self._should_skip_validation(request.url.path):
            return await call_next(request)

        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_request_size:
            return error_response(
                status_code=413,
                message=f"Request too large. Maximum size: {self.max_request_size} bytes",
                details={"max_size": self.max_request_size, "received_size": int(content_length)},
            )

        if request.method in ["POST", "PUT", "PATCH"]:
            content_type = request.headers.get("content-type", "").split(";")[0].strip()
            if content_type and content_type not in self.allowed_content_types:
                return error_response(
                    status_code=415,
                    message=f"Unsupported content type: {content_type}",
                    details={"allowed_types": self.allowed_content_types},
                )

        response = await call_next(request)

        if self.log_requests:
            process_time = time.time() - start_time
            client = request.client.host if request.client else "unknown"
            logger.info(
                f"{request.method} {request.url.path} - {response.status_code} - "
                f"{process_time:.3f}s - Client: {client}"
            )

        return response

    def _should_skip_validation(self, path: str) -> bool:
        skip_paths = ["/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"]
        return any(path.startswith(skip_path) for skip_path in skip_paths)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses
    """

    def __init__(self, app: ASGIApp, service_name: str = "chefia"):
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Service-Name"] = self.service_name

        # API responses are per-user
        if request.url.path.startswith("/api"):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return error_response(status_code=422, message="Validation error", details=details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions"""
    return error_response(
        status_code=exc.status_code,
        message=exc.detail,
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(status_code=500, message="Internal server error")


def add_middleware_to_app(
    app,
    service_name: str,
    max_request_size: int = 1024 * 1024,
    log_requests: bool = True,
):
    """
    Add all standard middleware and exception handlers to a FastAPI app

    Args:
        app: FastAPI application instance
        service_name: Name of the service (for headers and logging)
        max_request_size: Maximum request size in bytes
        log_requests: Whether to log requests
    """

    # Last added is executed first
    app.add_middleware(SecurityHeadersMiddleware, service_name=service_name)
    app.add_middleware(
        RequestValidationMiddleware,
        max_request_size=max_request_size,
        log_requests=log_requests,
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
