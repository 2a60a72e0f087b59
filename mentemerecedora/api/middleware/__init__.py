"""
API middleware components.

Cross-cutting concerns for the API:
- Error handling
- CORS configuration
- Rate limiting
- Request/response logging
"""

from .error_handler import (
    MenteMerecedoraException,
    NotFoundError,
    ValidationError,
    DuplicateError,
    UnauthorizedError,
    ForbiddenError,
    PayloadTooLargeError,
    RateLimitError,
    ProcessingError,
    setup_exception_handlers,
    create_error_response,
)

from .cors import (
    CORSConfig,
    get_cors_config,
    setup_cors,
)

from .rate_limit import (
    RateLimitConfig,
    RateLimitStrategy,
    RateLimitState,
    InMemoryRateLimiter,
    RateLimitMiddleware,
    setup_rate_limiting,
)

from .logging import (
    LoggingConfig,
    RequestLoggingMiddleware,
    setup_logging,
    redact_sensitive_data,
)


__all__ = [
    # Error handling
    "MenteMerecedoraException",
    "NotFoundError",
    "ValidationError",
    "DuplicateError",
    "UnauthorizedError",
    "ForbiddenError",
    "PayloadTooLargeError",
    "RateLimitError",
    "ProcessingError",
    "setup_exception_handlers",
    "create_error_response",
    # CORS
    "CORSConfig",
    "get_cors_config",
    "setup_cors",
    # Rate limiting
    "RateLimitConfig",
    "RateLimitStrategy",
    "RateLimitState",
    "InMemoryRateLimiter",
    "RateLimitMiddleware",
    "setup_rate_limiting",
    # Logging
    "LoggingConfig",
    "RequestLoggingMiddleware",
    "setup_logging",
    "redact_sensitive_data",
]
