"""
Error Handling Middleware for Mente Merecedora

Centralized error handling:
- Structured error responses with a ``success: false`` envelope
- Logging of errors
- Exception translation (request validation, HTTP errors, integrity errors)
"""

import traceback
from datetime import datetime
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


class MenteMerecedoraException(Exception):
    """Base exception for portal errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Any = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class NotFoundError(MenteMerecedoraException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str = None):
        super().__init__(
            message=f"{resource} não encontrado(a)",
            code="NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {resource} with identifier '{identifier}' exists" if identifier else None,
        )


class ValidationError(MenteMerecedoraException):
    """Input validation failed."""

    def __init__(self, message: str, detail: Any = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class DuplicateError(MenteMerecedoraException):
    """Unique value already in use."""

    def __init__(self, message: str = "Valor duplicado inserido", detail: Any = None):
        super().__init__(
            message=message,
            code="DUPLICATE",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class UnauthorizedError(MenteMerecedoraException):
    """Missing or invalid credentials, or access to someone else's record."""

    def __init__(self, message: str = "Não autorizado a acessar esta rota", detail: Any = None):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class ForbiddenError(MenteMerecedoraException):
    """Authenticated but not allowed."""

    def __init__(self, message: str = "Acesso negado", detail: Any = None):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class PayloadTooLargeError(MenteMerecedoraException):
    """Upload exceeds the configured size."""

    def __init__(self, max_mb: int):
        super().__init__(
            message="Arquivo muito grande",
            code="PAYLOAD_TOO_LARGE",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Maximum size: {max_mb}MB",
        )


class RateLimitError(MenteMerecedoraException):
    """Rate limit exceeded."""

    def __init__(self, retry_after: int):
        super().__init__(
            message="Muitas requisições. Tente novamente em instantes.",
            code="RATE_LIMIT_EXCEEDED",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"retry_after": retry_after},
        )


class ProcessingError(MenteMerecedoraException):
    """Error during processing."""

    def __init__(self, message: str, detail: Any = None):
        super().__init__(
            message=message,
            code="PROCESSING_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
        )


_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "RATE_LIMIT_EXCEEDED",
}


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail: Any = None,
    headers: dict = None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "code": code,
            "detail": detail,
            "timestamp": datetime.utcnow().isoformat(),
        },
        headers=headers,
    )


def _field_errors(errors: list[dict]) -> list[dict]:
    return [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in errors
    ]


def setup_exception_handlers(app):
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(MenteMerecedoraException)
    async def portal_exception_handler(request: Request, exc: MenteMerecedoraException):
        logger.warning(f"{request.method} {request.url.path}: {exc.code} - {exc.message}")
        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        detail = _field_errors(exc.errors())
        logger.warning(f"Validation error on {request.url.path}: {detail}")
        message = "; ".join(f"{d['field']}: {d['message']}" if d["field"] else d["message"] for d in detail)
        return create_error_response(
            error=message or "Validation Error",
            code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @app.exception_handler(PydanticValidationError)
    async def validation_exception_handler(request: Request, exc: PydanticValidationError):
        logger.warning(f"Validation error: {str(exc)}")
        return create_error_response(
            error="Validation Error",
            code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_field_errors(exc.errors()),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
        return create_error_response(
            error="Valor duplicado inserido",
            code="DUPLICATE",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
        return create_error_response(
            error=str(exc.detail),
            code=_HTTP_CODES.get(exc.status_code, "HTTP_ERROR"),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}\n{traceback.format_exc()}"
        )
        return create_error_response(
            error="Erro no servidor",
            code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred",
        )
