"""FPL API client with outbound throttling and typed failures."""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

import httpx

from fpl_advisor.services.errors import (
    UpstreamError,
    UpstreamNetworkError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

FPL_BASE_URL = "https://fantasy.premierleague.com/api"
USER_AGENT = "FplAdvisor/1.0 (Fantasy Premier League Advisor)"

# Position constants (FPL element_type)
POSITION_GKP = 1
POSITION_DEF = 2
POSITION_MID = 3
POSITION_FWD = 4

STATUS_AVAILABLE = "a"


def _safe_int(val: Any, default: int = 0) -> int:
    """Safely convert API value to int, handling None and empty strings."""
    if val is None or val == "":
        return default
    try:
        return int(val)
    except (ValueError, TypeError):
        return default


def _safe_float(val: Any, default: float = 0.0) -> float:
    """Safely convert API value to float, handling None and empty strings."""
    if val is None or val == "":
        return default
    try:
        return float(val)
    except (ValueError, TypeError):
        return default


def _optional_int(val: Any) -> int | None:
    """Convert to int but keep None (FPL uses null for 'no concerns')."""
    if val is None or val == "":
        return None
    try:
        return int(val)
    except (ValueError, TypeError):
        return None


@dataclass(frozen=True, slots=True)
class Player:
    """A player (element) from bootstrap-static."""

    id: int
    web_name: str
    team: int
    element_type: int  # 1=GKP, 2=DEF, 3=MID, 4=FWD
    now_cost: int  # Price * 10
    total_points: int
    minutes: int
    goals_scored: int
    assists: int
    clean_sheets: int
    saves: int
    form: float
    points_per_game: float
    selected_by_percent: float
    status: str  # 'a', 'd', 'i', 's', 'u', 'n'
    news: str
    chance_of_playing_this_round: int | None
    chance_of_playing_next_round: int | None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Player":
        return cls(
            id=_safe_int(data.get("id")),
            web_name=data.get("web_name") or "",
            team=_safe_int(data.get("team")),
            element_type=_safe_int(data.get("element_type")),
            now_cost=_safe_int(data.get("now_cost")),
            total_points=_safe_int(data.get("total_points")),
            minutes=_safe_int(data.get("minutes")),
            goals_scored=_safe_int(data.get("goals_scored")),
            assists=_safe_int(data.get("assists")),
            clean_sheets=_safe_int(data.get("clean_sheets")),
            saves=_safe_int(data.get("saves")),
            form=_safe_float(data.get("form")),
            points_per_game=_safe_float(data.get("points_per_game")),
            selected_by_percent=_safe_float(data.get("selected_by_percent")),
            status=data.get("status") or STATUS_AVAILABLE,
            news=data.get("news") or "",
            chance_of_playing_this_round=_optional_int(
                data.get("chance_of_playing_this_round")
            ),
            chance_of_playing_next_round=_optional_int(
                data.get("chance_of_playing_next_round")
            ),
        )

    @property
    def goal_involvements(self) -> int:
        return self.goals_scored + self.assists

    @property
    def price(self) -> float:
        return self.now_cost / 10


@dataclass(frozen=True, slots=True)
class Team:
    """A Premier League team from bootstrap-static."""

    id: int
    name: str
    short_name: str
    strength: int
    goals_conceded: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Team":
        return cls(
            id=_safe_int(data.get("id")),
            name=data.get("name") or "Unknown",
            short_name=data.get("short_name") or "UNK",
            strength=_safe_int(data.get("strength")),
            # FPL spells this field "goal_conceded"
            goals_conceded=_safe_int(data.get("goal_conceded")),
        )


@dataclass(frozen=True, slots=True)
class Gameweek:
    """A gameweek (event) from bootstrap-static."""

    id: int
    name: str
    is_current: bool
    is_next: bool
    finished: bool

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Gameweek":
        event_id = _safe_int(data.get("id"))
        return cls(
            id=event_id,
            name=data.get("name") or f"Gameweek {event_id}",
            is_current=bool(data.get("is_current")),
            is_next=bool(data.get("is_next")),
            finished=bool(data.get("finished")),
        )


@dataclass(frozen=True, slots=True)
class Fixture:
    """A fixture from the fixtures endpoint."""

    id: int
    event: int
    team_h: int
    team_a: int
    team_h_difficulty: int  # 1=easiest, 5=hardest
    team_a_difficulty: int
    kickoff_time: str | None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Fixture":
        return cls(
            id=_safe_int(data.get("id")),
            event=_safe_int(data.get("event")),
            team_h=_safe_int(data.get("team_h")),
            team_a=_safe_int(data.get("team_a")),
            team_h_difficulty=_safe_int(data.get("team_h_difficulty"), default=3),
            team_a_difficulty=_safe_int(data.get("team_a_difficulty"), default=3),
            kickoff_time=data.get("kickoff_time"),
        )


@dataclass(frozen=True, slots=True)
class ReferenceSnapshot:
    """Players, teams and gameweeks from one bootstrap-static download."""

    players: tuple[Player, ...]
    teams: tuple[Team, ...]
    gameweeks: tuple[Gameweek, ...]
    fetched_at: datetime

    @classmethod
    def from_api(
        cls, data: dict[str, Any], fetched_at: datetime | None = None
    ) -> "ReferenceSnapshot":
        return cls(
            players=tuple(Player.from_api(p) for p in data.get("elements", [])),
            teams=tuple(Team.from_api(t) for t in data.get("teams", [])),
            gameweeks=tuple(
                sorted(
                    (Gameweek.from_api(e) for e in data.get("events", [])),
                    key=lambda gw: gw.id,
                )
            ),
            fetched_at=fetched_at or datetime.now(timezone.utc),
        )

    def current_gameweek(self) -> int | None:
        """Id of the gameweek flagged is_current, or None off-season."""
        for gw in self.gameweeks:
            if gw.is_current and gw.id > 0:
                return gw.id
        return None

    def next_gameweek(self) -> int | None:
        """Id of the gameweek flagged is_next, or None."""
        for gw in self.gameweeks:
            if gw.is_next and gw.id > 0:
                return gw.id
        return None

    def teams_by_id(self) -> dict[int, Team]:
        return {team.id: team for team in self.teams}


def _short_path(url: str) -> str:
    return urlsplit(url).path or url


def _status_error(url: str, response: httpx.Response) -> UpstreamError:
    """Convert a non-2xx response into the matching typed failure."""
    status = response.status_code
    message = f"FPL API error: {status} {response.reason_phrase} ({_short_path(url)})"
    if status == 404:
        return UpstreamNotFoundError(message, url=url, status_code=status)
    if status == 429:
        return UpstreamRateLimitedError(message, url=url, status_code=status)
    return UpstreamUnavailableError(message, url=url, status_code=status)


class FplApiClient:
    """
    FPL API client with outbound throttling.

    Every request made through one instance is spaced at least
    ``1 / requests_per_second`` seconds after the previous one, whichever
    caller issued it. Late callers wait; nothing is dropped.

    The FPL API doesn't officially document rate limits, but empirically:
    - ~60 requests/minute is safe
    - 503s happen if you go too fast

    There are no retries here. Failures surface as UpstreamError subclasses
    and retry policy is left to callers.
    """

    def __init__(
        self,
        base_url: str = FPL_BASE_URL,
        requests_per_second: float = 1.0,
        timeout: float = 30.0,
    ):
        """
        Initialize the client.

        Args:
            base_url: FPL API root, without trailing slash
            requests_per_second: Target rate (1.0 = 1 request/sec)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.delay = 1.0 / requests_per_second if requests_per_second > 0 else 0.0
        self.timeout = timeout
        self._last_request_time: float | None = None
        self._lock = asyncio.Lock()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization, coroutine-safe)."""
        if self._client is None:
            async with self._lock:
                if self._client is None:  # Double-check after acquiring lock
                    self._client = httpx.AsyncClient(
                        timeout=self.timeout,
                        headers={"User-Agent": USER_AGENT},
                    )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources (coroutine-safe)."""
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self) -> "FplApiClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context manager and close client."""
        await self.close()

    async def _rate_limit(self) -> None:
        """Wait until the minimum interval since the previous request has passed."""
        async with self._lock:
            if self._last_request_time is not None:
                elapsed = time.monotonic() - self._last_request_time
                if elapsed < self.delay:
                    await asyncio.sleep(self.delay - elapsed)
            self._last_request_time = time.monotonic()

    async def fetch(self, url: str) -> Any:
        """Make a throttled GET request and return the parsed JSON body.

        Raises:
            UpstreamNotFoundError: 404
            UpstreamRateLimitedError: 429
            UpstreamUnavailableError: other non-2xx or an unparseable body
            UpstreamNetworkError: timeout or connection failure
        """
        await self._rate_limit()
        client = await self._get_client()

        try:
            response = await client.get(url)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout fetching {_short_path(url)}: {e}")
            raise UpstreamNetworkError(
                f"FPL API timeout ({_short_path(url)})", url=url
            ) from e
        except httpx.TransportError as e:
            logger.error(f"Network error fetching {_short_path(url)}: {type(e).__name__}: {e}")
            raise UpstreamNetworkError(
                f"FPL API network error ({_short_path(url)})", url=url
            ) from e

        if not response.is_success:
            error = _status_error(url, response)
            logger.warning(error.message)
            raise error

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                f"FPL API returned invalid JSON ({_short_path(url)})",
                url=url,
                status_code=response.status_code,
            ) from e

    def bootstrap_url(self) -> str:
        return f"{self.base_url}/bootstrap-static/"

    async def get_bootstrap_static(self) -> dict[str, Any]:
        """Fetch raw bootstrap-static data (elements, teams, events)."""
        return await self.fetch(self.bootstrap_url())

    async def get_entry(self, team_id: int) -> dict[str, Any]:
        """Fetch a manager's team (entry) summary."""
        return await self.fetch(f"{self.base_url}/entry/{team_id}/")

    async def get_entry_picks(self, team_id: int, gameweek: int) -> dict[str, Any]:
        """Fetch a manager's picks for a gameweek."""
        return await self.fetch(
            f"{self.base_url}/entry/{team_id}/event/{gameweek}/picks/"
        )

    async def get_league_standings_page(
        self, league_id: int, page: int = 1
    ) -> dict[str, Any]:
        """Fetch one page of classic league standings."""
        return await self.fetch(
            f"{self.base_url}/leagues-classic/{league_id}/standings/"
            f"?page_new_entries=1&page_standings={page}"
        )

    async def get_fixtures(self, event: int | None = None) -> list[Fixture]:
        """Fetch fixtures, optionally for a single gameweek."""
        if event is not None:
            url = f"{self.base_url}/fixtures/?event={event}"
        else:
            url = f"{self.base_url}/fixtures/"
        data = await self.fetch(url)
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamUnavailableError(
                f"FPL API returned an unexpected fixtures body ({_short_path(url)})",
                url=url,
            )
        return [Fixture.from_api(f) for f in data]
