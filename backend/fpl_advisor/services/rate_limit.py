"""In-memory fixed-window rate limiter for inbound API requests.

Independent of the outbound FPL throttle. State lives on one RateLimiter per
process, so limits are per instance rather than shared across workers.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from starlette.requests import Request

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 300  # 5 minutes

KeyGenerator = Callable[[Request], str]


# =============================================================================
# Key generators
# =============================================================================


def client_ip(request: Request) -> str:
    """Best guess at the caller's IP behind common proxies and CDNs."""
    headers = request.headers

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = headers.get(header)
        if value:
            return value

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def by_ip(request: Request) -> str:
    return f"ip:{client_ip(request)}"


def by_user_id(request: Request) -> str:
    """Key on the Authorization header; unauthenticated callers share a bucket."""
    return f"user:{request.headers.get('authorization') or 'anonymous'}"


def by_endpoint(path: str) -> KeyGenerator:
    def key(request: Request) -> str:
        return f"endpoint:{path}:{client_ip(request)}"

    return key


# =============================================================================
# Configs and results
# =============================================================================


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    name: str
    max_requests: int
    window_seconds: float
    key_generator: KeyGenerator = by_ip


@dataclass(slots=True)
class RateLimitEntry:
    count: int
    reset_time: float  # Epoch seconds


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_time: float  # Epoch seconds

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets (never negative)."""
        return max(0, math.ceil(self.reset_time - now))

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": datetime.fromtimestamp(
                self.reset_time, tz=timezone.utc
            ).isoformat(),
        }


RATE_LIMITS: dict[str, RateLimitConfig] = {
    # Brute-force protection for credential endpoints
    "auth": RateLimitConfig("auth", 5, 15 * 60, by_ip),
    "signup": RateLimitConfig("signup", 3, 60 * 60, by_ip),
    "api": RateLimitConfig("api", 100, 60, by_ip),
    "read_only": RateLimitConfig("read_only", 200, 60, by_ip),
    # AI chat - every call costs model tokens
    "expensive": RateLimitConfig("expensive", 10, 60 * 60, by_user_id),
    # Each import fans out to several FPL requests
    "fpl_import": RateLimitConfig("fpl_import", 20, 60 * 60, by_ip),
}


# =============================================================================
# Limiter
# =============================================================================


class RateLimiter:
    """Fixed-window counter per (config, key).

    A window starts at the first request for a key and lasts
    config.window_seconds. Requests over the limit are still counted, so a
    caller hammering a closed window stays blocked until it resets.
    """

    def __init__(
        self,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def now(self) -> float:
        return self._clock()

    def check(self, config: RateLimitConfig, key: str) -> RateLimitResult:
        """Count one request against `key` and report whether it is allowed."""
        now = self._clock()
        store_key = f"{config.name}:{key}"

        entry = self._entries.get(store_key)
        if entry is None or now > entry.reset_time:
            entry = RateLimitEntry(count=0, reset_time=now + config.window_seconds)
            self._entries[store_key] = entry

        entry.count += 1

        result = RateLimitResult(
            allowed=entry.count <= config.max_requests,
            limit=config.max_requests,
            remaining=max(0, config.max_requests - entry.count),
            reset_time=entry.reset_time,
        )
        if not result.allowed:
            logger.warning(f"Rate limit '{config.name}' exceeded for {key}")
        return result

    def check_request(self, config: RateLimitConfig, request: Request) -> RateLimitResult:
        return self.check(config, config.key_generator(request))

    def sweep(self) -> int:
        """Drop expired windows. Returns the number removed."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if now > entry.reset_time]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(
                f"Rate limiter swept {len(expired)} expired entries, {len(self)} active"
            )
        return len(expired)

    def start(self) -> None:
        """Start the periodic sweep (requires a running event loop)."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Rate limiter sweep started (every {self.sweep_interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Rate limiter sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()
