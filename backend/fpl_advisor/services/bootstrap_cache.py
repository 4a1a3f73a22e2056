"""Time-bounded cache for FPL bootstrap-static data.

One ReferenceDataCache is built at startup and shared by every service so
that:
1. The ~1.8MB bootstrap response is downloaded at most once per TTL
2. Concurrent requests during an expired window coalesce into one fetch
   (asyncio.Lock + double-checked read), keeping within the outbound quota
3. Tests get an isolated cache per instance instead of module globals

The cached value is a parsed, immutable ReferenceSnapshot. It is replaced
wholesale on refresh and never mutated in place.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from cachetools import TTLCache

from fpl_advisor.services.errors import UpstreamUnavailableError
from fpl_advisor.services.fpl_client import FplApiClient, ReferenceSnapshot

logger = logging.getLogger(__name__)

BOOTSTRAP_CACHE_TTL = 600  # 10 minutes - reference data changes slowly
BOOTSTRAP_CACHE_SIZE = 1  # Only cache one version (current)

_CACHE_KEY = "bootstrap"


class ReferenceDataCache:
    """Single-slot TTL cache in front of the bootstrap-static endpoint."""

    def __init__(
        self,
        fetcher: Callable[[], Awaitable[dict[str, Any]]],
        ttl: float = BOOTSTRAP_CACHE_TTL,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            fetcher: Async callable returning the raw bootstrap-static dict
                     (normally FplApiClient.get_bootstrap_static)
            ttl: Seconds a snapshot stays fresh
            timer: Clock used for expiry, injectable for tests
        """
        self._fetcher = fetcher
        self.ttl = ttl
        self._cache: TTLCache[str, ReferenceSnapshot] = TTLCache(
            maxsize=BOOTSTRAP_CACHE_SIZE, ttl=ttl, timer=timer
        )
        self._lock = asyncio.Lock()
        self._last_fetch_time: float = 0.0
        self._fetch_count = 0

    @classmethod
    def for_client(
        cls, client: FplApiClient, ttl: float = BOOTSTRAP_CACHE_TTL
    ) -> "ReferenceDataCache":
        return cls(client.get_bootstrap_static, ttl=ttl)

    async def get_snapshot(self) -> ReferenceSnapshot:
        """Return the cached snapshot, fetching a new one if expired/missing.

        Raises:
            UpstreamError: If the fetch fails (nothing is cached, next call retries)
        """
        # Fast path: TTLCache.get() returns None for expired items and does
        # not await, so it cannot interleave with a refresh
        cached = self._cache.get(_CACHE_KEY)
        if cached is not None:
            logger.debug("Bootstrap cache hit")
            return cached

        async with self._lock:
            # Another request may have refreshed while we waited
            cached = self._cache.get(_CACHE_KEY)
            if cached is not None:
                logger.debug("Bootstrap cache hit (after lock)")
                return cached

            logger.info("Fetching bootstrap-static from FPL API (cache miss)")
            start = time.monotonic()

            try:
                data = await self._fetcher()
            except Exception as e:
                logger.error(
                    f"Failed to fetch bootstrap-static: {type(e).__name__}: {e}. "
                    "Next request will retry."
                )
                raise

            elapsed = time.monotonic() - start
            self._fetch_count += 1
            self._last_fetch_time = time.time()

            if data is None:
                data = {}
            if not isinstance(data, dict):
                logger.error(
                    f"Bootstrap response is a {type(data).__name__}, expected an object"
                )
                raise UpstreamUnavailableError(
                    "FPL API returned an unexpected bootstrap-static body"
                )

            snapshot = ReferenceSnapshot.from_api(
                data, fetched_at=datetime.now(timezone.utc)
            )

            if not data.get("elements"):
                logger.error(
                    "Bootstrap response missing 'elements' key. "
                    f"Response keys: {list(data.keys())}. "
                    "API may be under maintenance or rate-limiting."
                )
                return snapshot  # Return but don't cache invalid response

            self._cache[_CACHE_KEY] = snapshot
            logger.info(
                f"Cached bootstrap-static: {len(snapshot.players)} players, "
                f"fetched in {elapsed:.2f}s"
            )
            return snapshot

    def current_gameweek(self) -> int | None:
        """Current gameweek from the cached snapshot, without fetching."""
        cached = self._cache.get(_CACHE_KEY)
        if cached is None:
            return None
        return cached.current_gameweek()

    def clear(self) -> None:
        """Drop the cached snapshot."""
        self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Cache statistics for monitoring."""
        return {
            "cached": _CACHE_KEY in self._cache,
            "last_fetch": self._last_fetch_time,
            "fetch_count": self._fetch_count,
            "ttl_seconds": self.ttl,
        }
