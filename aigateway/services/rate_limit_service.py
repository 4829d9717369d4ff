"""Fixed-window rate limiting using in-memory storage."""

import asyncio
import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from aigateway.models.response import ErrorCode

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class RateLimitConfig(BaseModel):
    window_seconds: int
    max_requests: int


class RateLimitResult(BaseModel):
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds
    total_hits: int

    @property
    def reset_time(self) -> str:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()


class RateLimitStore:
    """Counters keyed by caller, each with its own window end."""

    def __init__(self, clock: Clock = time.time):
        # key -> {"count": int, "reset_at": float}
        self._entries: Dict[str, Dict[str, float]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._sweep_task: Optional[asyncio.Task] = None

    def now(self) -> float:
        return self._clock()

    async def increment(self, key: str, window_seconds: int) -> Tuple[int, float]:
        """Count one hit for ``key``.

        Args:
            key: Caller key
            window_seconds: Window length used when a new window opens

        Returns:
            Tuple of (count, reset_at)
        """
        async with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or now > entry["reset_at"]:
                entry = {"count": 1, "reset_at": now + window_seconds}
                self._entries[key] = entry
            else:
                entry["count"] += 1
            return int(entry["count"]), entry["reset_at"]

    async def get(self, key: str) -> Optional[Dict[str, float]]:
        async with self._lock:
            entry = self._entries.get(key)
            return dict(entry) if entry else None

    async def reset(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def cleanup(self) -> int:
        """Drop every entry whose window has ended. Returns how many went."""
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now > entry["reset_at"]]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired rate limit entries")
        return len(expired)

    def start_sweep(self, interval_seconds: int = 60):
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop(interval_seconds))

    async def _sweep_loop(self, interval_seconds: int):
        while True:
            await asyncio.sleep(interval_seconds)
            await self.cleanup()

    async def destroy(self):
        """Stop the sweep and forget every counter."""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def get_client_ip(request: Request) -> str:
    """Best guess at the caller's address behind CDNs and proxies."""
    headers = request.headers
    cf_ip = headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def default_key(request: Request) -> str:
    user_agent = request.headers.get("user-agent", "unknown")
    return f"rate_limit:{get_client_ip(request)}:{user_agent[:50]}"


class RateLimiter:
    """One limiter profile: a window, a ceiling and a store."""

    def __init__(
        self,
        name: str,
        config: RateLimitConfig,
        store: Optional[RateLimitStore] = None,
        key_generator: Callable[[Request], str] = default_key,
    ):
        self.name = name
        self.config = config
        self.store = store if store is not None else RateLimitStore()
        self.key_generator = key_generator

    async def check(
        self, request: Optional[Request] = None, key: Optional[str] = None
    ) -> RateLimitResult:
        """Count a hit and decide whether it is allowed.

        Args:
            request: Inbound request, used to derive the key
            key: Explicit key, takes precedence over the request

        Returns:
            RateLimitResult
        """
        if key is None:
            if request is None:
                raise ValueError("RateLimiter.check needs a request or a key")
            key = self.key_generator(request)

        count, reset_at = await self.store.increment(key, self.config.window_seconds)
        allowed = count <= self.config.max_requests

        if not allowed:
            logger.error(
                f"Rate limit exceeded: limiter={self.name} key={key[:20]}... "
                f"count={count} limit={self.config.max_requests} "
                f"window={self.config.window_seconds}s "
                f"ip={get_client_ip(request) if request else 'n/a'} "
                f"user_agent={request.headers.get('user-agent', 'unknown') if request else 'n/a'}"
            )

        return RateLimitResult(
            allowed=allowed,
            limit=self.config.max_requests,
            remaining=max(0, self.config.max_requests - count),
            reset_at=reset_at,
            total_hits=count,
        )


async def apply_rate_limit(
    request: Request, limiter: RateLimiter
) -> Tuple[Optional[RateLimitResult], Optional[JSONResponse]]:
    """Run ``limiter`` for ``request``.

    Returns:
        Tuple of (result, rejection). ``rejection`` is a ready 429 response
        when the caller is over the limit. Internal failures let the request
        through with ``(None, None)``.
    """
    try:
        result = await limiter.check(request)
    except Exception as e:
        logger.error(f"Rate limiter {limiter.name} failed, allowing request: {e}")
        return None, None

    if result.allowed:
        return result, None

    retry_after = max(0, math.ceil(result.reset_at - limiter.store.now()))
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "success": False,
            "error": "Rate limit exceeded",
            "code": ErrorCode.RATE_LIMITED.value,
            "retry_after": retry_after,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_time": result.reset_time,
        },
    )
    add_rate_limit_headers(response, result)
    response.headers["Retry-After"] = str(retry_after)
    return result, response


def add_rate_limit_headers(response, result: RateLimitResult):
    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(int(result.reset_at * 1000))


class RateLimitService:
    """The gateway's limiter profiles and their background sweeps."""

    ADMIN_PREFIX = "/api/v1/admin"
    BLOG_GENERATION_PATHS = ("/api/v1/blog-writer/generate",)
    HEALTH_PATHS = ("/health", "/healthz", "/ready", "/api/v1/blog-writer/health")
    AUTH_PREFIX = "/api/v1/auth"

    def __init__(
        self,
        profiles: Dict[str, Dict[str, int]],
        cleanup_interval: int = 60,
        clock: Clock = time.time,
    ):
        """Initialize rate limit service.

        Args:
            profiles: Profile name -> ``{window_seconds, max_requests}``
            cleanup_interval: Seconds between sweeps of expired counters
            clock: Time source, in epoch seconds
        """
        self.cleanup_interval = cleanup_interval
        # One store per profile, so a caller's admin hits never count against its api window
        self.limiters: Dict[str, RateLimiter] = {
            name: RateLimiter(name, RateLimitConfig(**profile), RateLimitStore(clock))
            for name, profile in profiles.items()
        }

    def get_limiter(self, name: str) -> RateLimiter:
        limiter = self.limiters.get(name)
        if limiter is None:
            raise KeyError(f"Unknown rate limit profile: {name}")
        return limiter

    @classmethod
    def profile_for_path(cls, path: str) -> str:
        """Pick the limiter profile for a request path."""
        if path.startswith(cls.ADMIN_PREFIX):
            return "admin"
        if path in cls.BLOG_GENERATION_PATHS:
            return "blog_generation"
        if path in cls.HEALTH_PATHS:
            return "health_check"
        if path.startswith(cls.AUTH_PREFIX):
            return "auth"
        return "api"

    def limiter_for_path(self, path: str) -> RateLimiter:
        return self.get_limiter(self.profile_for_path(path))

    async def get_rate_limit_status(self, key: str, profile: str = "api") -> Optional[Dict]:
        """Get current rate limit status for a key.

        Args:
            key: Rate limit key
            profile: Limiter profile name

        Returns:
            Dict with status or None
        """
        limiter = self.get_limiter(profile)
        entry = await limiter.store.get(key)
        if entry is None:
            return None

        return {
            "key": key,
            "profile": profile,
            "current_usage": int(entry["count"]),
            "limit": limiter.config.max_requests,
            "remaining": max(0, limiter.config.max_requests - int(entry["count"])),
            "reset_at": datetime.fromtimestamp(entry["reset_at"], tz=timezone.utc).isoformat(),
        }

    async def reset_rate_limit(self, key: str, profile: Optional[str] = None) -> bool:
        """Reset a key in one profile, or in every profile when none is given."""
        names = [profile] if profile else list(self.limiters)
        removed = False
        for name in names:
            if await self.get_limiter(name).store.reset(key):
                removed = True
        if removed:
            logger.info(f"Reset rate limit for key: {key}")
        return removed

    def start(self):
        for limiter in self.limiters.values():
            limiter.store.start_sweep(self.cleanup_interval)
        logger.info("Started rate limit sweeps")

    async def stop(self):
        for limiter in self.limiters.values():
            await limiter.store.destroy()
        logger.info("Stopped rate limit sweeps")
