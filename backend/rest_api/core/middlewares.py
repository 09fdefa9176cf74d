"""
Security middlewares and exception handlers for the FastAPI application.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    HSTS is only sent in production.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response


class ContentTypeValidationMiddleware(BaseHTTPMiddleware):
    """
    Validate Content-Type for requests with body.

    Returns 415 Unsupported Media Type unless the body is JSON.
    """

    METHODS_WITH_BODY = {"POST", "PUT", "PATCH"}

    async def dispatch(self, request: Request, call_next):
        if request.method in self.METHODS_WITH_BODY:
            content_type = request.headers.get("content-type", "")
            if content_type and not content_type.startswith("application/json"):
                return JSONResponse(
                    status_code=415,
                    content={"detail": "Unsupported Media Type. Use application/json"},
                )
        return await call_next(request)


# Unique index name -> message shown to the client
_CONSTRAINT_MESSAGES = {
    "uq_table_sessions_one_open_per_table": "Table already has an open session",
    "users.email": "Email already registered",
    "users_email_key": "Email already registered",
    "ix_users_email": "Email already registered",
    "tables.token": "Table token already in use",
    "tables_token_key": "Table token already in use",
}


def integrity_error_message(error: IntegrityError) -> str:
    """Client-facing message for a unique or foreign key violation."""
    text = str(error.orig)
    for constraint, message in _CONSTRAINT_MESSAGES.items():
        if constraint in text:
            return message
    if "FOREIGN KEY" in text.upper():
        return "Referenced record does not exist or is still in use"
    return "Conflicting data"


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Translate database constraint violations that escape services into 409s."""
    message = integrity_error_message(exc)
    logger.warning("Integrity error", path=request.url.path, detail=message)
    return JSONResponse(status_code=409, content={"detail": message})


def register_middlewares(app: FastAPI) -> None:
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(ContentTypeValidationMiddleware)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IntegrityError, integrity_error_handler)
