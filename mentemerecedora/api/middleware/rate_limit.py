"""
Rate limiting middleware for API protection.

Strategies:
- Token bucket for burst handling
- Sliding window for smooth rate limiting
- Per-endpoint limits for login, registration and LUZ IA chat

In-memory only; suited to a single-process deployment.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from fastapi import FastAPI, Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from mentemerecedora.security import decode_access_token

from .error_handler import RateLimitError, create_error_response


class RateLimitStrategy(Enum):
    """Rate limiting algorithm strategies."""
    TOKEN_BUCKET = "token_bucket"
    SLIDING_WINDOW = "sliding_window"


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    # Default requests per minute
    requests_per_minute: int = 120

    # Burst allowance (token bucket)
    burst_size: int = 30

    strategy: RateLimitStrategy = RateLimitStrategy.TOKEN_BUCKET

    enabled: bool = True

    excluded_paths: list = field(default_factory=lambda: [
        "/health",
        "/api/health",
        "/docs",
        "/openapi.json",
        "/redoc",
        "/api/proxy/media",
    ])

    # Path prefix -> requests per minute
    endpoint_limits: Dict[str, int] = field(default_factory=lambda: {
        "/api/auth/login": 10,
        "/api/auth/token": 10,
        "/api/auth/register": 5,
        "/api/auth/forgotpassword": 5,
        "/api/luz-ia/chat": 20,
    })

    # Bearer tokens are only used as the bucket key when they verify
    token_secret: Optional[str] = None
    token_algorithm: str = "HS256"

    # Proxy headers trusted for the real client IP
    trusted_proxy_headers: list = field(default_factory=lambda: [
        "X-Forwarded-For",
        "X-Real-IP",
    ])


@dataclass
class RateLimitState:
    """State for a single rate limit bucket."""
    tokens: float
    last_update: float
    request_count: int = 0
    window_start: float = 0.0


class InMemoryRateLimiter:
    """In-memory rate limiter shared by all requests of the process."""

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self._buckets: Dict[str, RateLimitState] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = 300
        self._last_cleanup = time.time()

    def _limit_for(self, path: Optional[str]) -> Tuple[str, int]:
        """(bucket suffix, limit) for a path; unlisted paths share one bucket."""
        if path:
            for prefix, limit in self.config.endpoint_limits.items():
                if path.startswith(prefix):
                    return prefix, limit
        return "*", self.config.requests_per_minute

    async def _cleanup_old_buckets(self) -> None:
        now = time.time()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        async with self._lock:
            expired_keys = [
                key for key, state in self._buckets.items()
                if now - state.last_update > 3600
            ]
            for key in expired_keys:
                del self._buckets[key]

            self._last_cleanup = now
            if expired_keys:
                logger.debug(f"Cleaned up {len(expired_keys)} expired rate limit buckets")

    async def check_token_bucket(
        self,
        identifier: str,
        endpoint: Optional[str] = None,
    ) -> Tuple[bool, int, float]:
        """
        Token bucket check.

        Returns:
            (allowed, remaining_tokens, seconds_until_next_token)
        """
        await self._cleanup_old_buckets()

        suffix, limit = self._limit_for(endpoint)
        bucket_key = f"{identifier}:{suffix}"
        refill_rate = limit / 60.0
        max_tokens = min(self.config.burst_size, limit)

        async with self._lock:
            now = time.time()
            state = self._buckets.setdefault(
                bucket_key, RateLimitState(tokens=max_tokens, last_update=now)
            )

            elapsed = now - state.last_update
            state.tokens = min(max_tokens, state.tokens + elapsed * refill_rate)
            state.last_update = now

            if state.tokens >= 1:
                state.tokens -= 1
                reset_time = (1 - (state.tokens % 1)) / refill_rate if state.tokens < max_tokens else 0
                return True, int(state.tokens), reset_time

            return False, 0, (1 - state.tokens) / refill_rate

    async def check_sliding_window(
        self,
        identifier: str,
        endpoint: Optional[str] = None,
    ) -> Tuple[bool, int, float]:
        """
        Sliding window check (weighted previous-window approximation).

        Returns:
            (allowed, remaining_requests, seconds_until_window_reset)
        """
        await self._cleanup_old_buckets()

        suffix, limit = self._limit_for(endpoint)
        bucket_key = f"{identifier}:{suffix}"
        window_size = 60.0

        async with self._lock:
            now = time.time()
            state = self._buckets.setdefault(
                bucket_key,
                RateLimitState(tokens=0, last_update=now, window_start=now),
            )

            elapsed = now - state.window_start
            if elapsed >= window_size:
                state.window_start += int(elapsed / window_size) * window_size
                state.request_count = 0

            window_progress = (now - state.window_start) / window_size
            effective_count = state.request_count * (1 - window_progress)
            reset_time = window_size - (now - state.window_start)

            if effective_count < limit:
                state.request_count += 1
                state.last_update = now
                return True, max(0, int(limit - effective_count - 1)), reset_time

            return False, 0, reset_time

    async def check_rate_limit(
        self,
        identifier: str,
        endpoint: Optional[str] = None,
    ) -> Tuple[bool, int, float]:
        if self.config.strategy == RateLimitStrategy.SLIDING_WINDOW:
            return await self.check_sliding_window(identifier, endpoint)
        return await self.check_token_bucket(identifier, endpoint)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests over the limit with a 429 error envelope."""

    def __init__(
        self,
        app: FastAPI,
        config: Optional[RateLimitConfig] = None,
        limiter: Optional[InMemoryRateLimiter] = None,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.limiter = limiter or InMemoryRateLimiter(self.config)

    def _get_client_identifier(self, request: Request) -> str:
        """User id for a verified bearer token, else client IP."""
        authorization = request.headers.get("Authorization", "")
        if authorization.lower().startswith("bearer ") and self.config.token_secret:
            payload = decode_access_token(
                authorization[7:].strip(), self.config.token_secret, self.config.token_algorithm
            )
            if payload and payload.get("sub"):
                return f"user:{payload['sub']}"

        for header in self.config.trusted_proxy_headers:
            forwarded = request.headers.get(header)
            if forwarded:
                return f"ip:{forwarded.split(',')[0].strip()}"

        if request.client:
            return f"ip:{request.client.host}"
        return "unknown"

    def _is_excluded(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.config.excluded_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.config.enabled or self._is_excluded(request.url.path):
            return await call_next(request)

        identifier = self._get_client_identifier(request)
        endpoint = request.url.path

        allowed, remaining, reset_time = await self.limiter.check_rate_limit(identifier, endpoint)

        if not allowed:
            retry_after = int(reset_time) + 1
            logger.warning(f"Rate limit exceeded for {identifier} on {endpoint}")
            error = RateLimitError(retry_after)
            return create_error_response(
                error=error.message,
                code=error.code,
                status_code=error.status_code,
                detail=error.detail,
                headers={
                    "Retry-After": str(retry_after),
                    "X-Rate-Limit-Remaining": "0",
                    "X-Rate-Limit-Reset": str(int(time.time() + reset_time)),
                },
            )

        response = await call_next(request)
        response.headers["X-Rate-Limit-Remaining"] = str(remaining)
        response.headers["X-Rate-Limit-Reset"] = str(int(time.time() + reset_time))
        return response


def setup_rate_limiting(
    app: FastAPI,
    config: Optional[RateLimitConfig] = None,
) -> InMemoryRateLimiter:
    """
    Configure rate limiting middleware.

    Returns:
        The rate limiter instance
    """
    config = config or RateLimitConfig()
    limiter = InMemoryRateLimiter(config)
    app.add_middleware(RateLimitMiddleware, config=config, limiter=limiter)
    return limiter
