"""
Request logging middleware.

Writes one loguru line per request with method, path, status and
duration. The ``X-Request-ID`` of the request (or a generated one) is
echoed on the response and bound as ``request_id`` to every record
logged while the request is handled.
"""

import json
import sys
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_SECONDS = 2.0
MAX_LOGGED_BODY_BYTES = 10_000

# Health checks and browser noise
QUIET_PATHS = frozenset({"/health", "/api/health", "/favicon.ico"})

# Login, password reset and LUZ IA settings payloads
SENSITIVE_FIELDS = frozenset({
    "password",
    "current_password",
    "new_password",
    "token",
    "access_token",
    "api_key",
})


@dataclass
class LoggingConfig:
    enabled: bool = True
    # JSON bodies are only logged in debug deployments
    log_request_body: bool = False


def redact_sensitive_data(data: Any, fields: frozenset = SENSITIVE_FIELDS) -> Any:
    """Copy of ``data`` with values under sensitive keys (any case) masked."""
    if isinstance(data, dict):
        return {
            key: "[REDACTED]" if key.lower() in fields else redact_sensitive_data(value, fields)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_sensitive_data(item, fields) for item in data]
    return data


async def _json_body(request: Request) -> Optional[str]:
    if not request.headers.get("content-type", "").startswith("application/json"):
        return None
    body = await request.body()
    if not body:
        return None
    if len(body) > MAX_LOGGED_BODY_BYTES:
        return f"<{len(body)} bytes>"
    try:
        return json.dumps(redact_sensitive_data(json.loads(body)), ensure_ascii=False)
    except json.JSONDecodeError:
        return "<invalid json>"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs its outcome."""

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]

        with logger.contextualize(request_id=request_id):
            if not self.config.enabled or request.url.path in QUIET_PATHS:
                response = await call_next(request)
                response.headers[REQUEST_ID_HEADER] = request_id
                return response

            body = await _json_body(request) if self.config.log_request_body else None
            started = time.perf_counter()
            response = await call_next(request)
            elapsed = time.perf_counter() - started
            response.headers[REQUEST_ID_HEADER] = request_id

            if response.status_code >= 500:
                level = "ERROR"
            elif response.status_code >= 400 or elapsed > SLOW_REQUEST_SECONDS:
                level = "WARNING"
            else:
                level = "INFO"

            client_ip = request.client.host if request.client else "-"
            message = (
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({elapsed * 1000:.1f}ms) from {client_ip}"
            )
            if elapsed > SLOW_REQUEST_SECONDS:
                message = f"[SLOW] {message}"
            if body:
                message = f"{message} body={body}"
            logger.log(level, message)

        return response


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
) -> None:
    """
    Install the request logging middleware.

    Args:
        app: FastAPI application instance
        config: Logging configuration
        structured: Replace loguru's sinks with a JSON-lines stderr sink
    """
    if structured:
        logger.remove()
        logger.add(sys.stderr, level="INFO", serialize=True)

    app.add_middleware(RequestLoggingMiddleware, config=config or LoggingConfig())
