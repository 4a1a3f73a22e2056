"""Best-effort sub-fetch results.

Some fetches are allowed to fail without failing the operation around them
(a manager's picks early in a gameweek, one gameweek's fixtures while
building the AI context). Instead of catching and discarding the exception,
the outcome is recorded as a SubFetch so callers and API responses can see
what was degraded and why.
"""

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from fpl_advisor.services.errors import UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SubFetchStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"  # Attempted and failed
    SKIPPED = "skipped"  # Not attempted (nothing to fetch)


@dataclass(frozen=True, slots=True)
class SubFetch(Generic[T]):
    """Outcome of one best-effort fetch: a value or a degraded marker."""

    status: SubFetchStatus
    value: T
    reason: str | None = None

    @property
    def degraded(self) -> bool:
        return self.status is SubFetchStatus.DEGRADED

    @classmethod
    def ok(cls, value: T) -> "SubFetch[T]":
        return cls(status=SubFetchStatus.OK, value=value)

    @classmethod
    def failed(cls, fallback: T, reason: str) -> "SubFetch[T]":
        return cls(status=SubFetchStatus.DEGRADED, value=fallback, reason=reason)

    @classmethod
    def skipped(cls, fallback: T, reason: str) -> "SubFetch[T]":
        return cls(status=SubFetchStatus.SKIPPED, value=fallback, reason=reason)


async def best_effort(
    awaitable: Awaitable[T], fallback: T, description: str
) -> SubFetch[T]:
    """Await an upstream fetch, turning UpstreamError into a degraded result.

    Only FPL upstream failures are absorbed; programming errors propagate.
    """
    try:
        return SubFetch.ok(await awaitable)
    except UpstreamError as e:
        logger.warning(f"Failed to fetch {description}: {type(e).__name__}: {e}")
        return SubFetch.failed(fallback, reason=e.message)
