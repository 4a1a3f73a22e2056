"""Team import - converts an FPL entry and its current picks to a stored record."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from fpl_advisor.services.bootstrap_cache import ReferenceDataCache
from fpl_advisor.services.errors import (
    InvalidInputError,
    TeamNotFoundError,
    UpstreamNotFoundError,
)
from fpl_advisor.services.fpl_client import _safe_float, _safe_int
from fpl_advisor.services.subfetch import SubFetch, SubFetchStatus, best_effort

logger = logging.getLogger(__name__)

# Not derived from transfer history yet; every import reports one free transfer
DEFAULT_FREE_TRANSFERS = 1

MAX_TEAM_ID = 10_000_000
GUEST_TEAM_ID = 999999  # Placeholder id handed to guest accounts


class TeamClientProtocol(Protocol):
    """Protocol for the FPL client dependency."""

    async def get_entry(self, team_id: int) -> dict[str, Any]: ...
    async def get_entry_picks(self, team_id: int, gameweek: int) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class TransformedTeamRecord:
    """Internal shape of an imported team, as written by the storage layer."""

    fpl_team_id: int
    team_name: str
    current_squad: str  # JSON list of player ids
    bank_value: float  # Millions
    team_value: float  # Millions
    total_points: int
    overall_rank: int
    free_transfers: int
    squad_status: SubFetchStatus = SubFetchStatus.OK

    @property
    def squad_ids(self) -> list[int]:
        return json.loads(self.current_squad)


def is_valid_team_id(team_id: int) -> bool:
    """FPL team IDs are positive integers below a sane upper bound."""
    if isinstance(team_id, bool) or not isinstance(team_id, int):
        return False
    return 0 < team_id <= MAX_TEAM_ID


def is_guest_team_id(team_id: int) -> bool:
    return team_id == GUEST_TEAM_ID


def validate_team_id(team_id: int) -> None:
    """Reject malformed or placeholder ids before touching the network.

    Raises:
        InvalidInputError: If the id can never belong to a real FPL team
    """
    if not is_valid_team_id(team_id):
        raise InvalidInputError(
            f"FPL Team ID must be a positive integer up to {MAX_TEAM_ID}"
        )
    if is_guest_team_id(team_id):
        raise InvalidInputError("Guest accounts have no FPL team to import")


def tenths_to_millions(value: Any) -> float:
    """FPL reports money in tenths of a million (1023 -> 102.3)."""
    return _safe_float(value) / 10


class TeamTransformer:
    """Builds a TransformedTeamRecord from the FPL entry and picks endpoints."""

    def __init__(
        self, fpl_client: TeamClientProtocol, reference_cache: ReferenceDataCache
    ) -> None:
        self.fpl_client = fpl_client
        self.reference_cache = reference_cache

    async def transform(self, team_id: int) -> TransformedTeamRecord:
        """Fetch and transform a team.

        The picks fetch is best-effort: picks may legitimately be missing
        early in a gameweek, so a failure leaves an empty squad and marks
        the record's squad_status as degraded.

        Raises:
            InvalidInputError: Malformed or guest team id
            TeamNotFoundError: FPL has no team with this id
            UpstreamError: Any other failure fetching the entry or bootstrap data
        """
        validate_team_id(team_id)

        try:
            entry = await self.fpl_client.get_entry(team_id)
        except UpstreamNotFoundError as e:
            raise TeamNotFoundError(team_id, url=e.url) from e

        snapshot = await self.reference_cache.get_snapshot()
        current_gw = snapshot.current_gameweek()

        squad = await self._fetch_squad(team_id, current_gw)

        return TransformedTeamRecord(
            fpl_team_id=_safe_int(entry.get("id"), default=team_id),
            team_name=entry.get("name") or "",
            current_squad=json.dumps(squad.value),
            bank_value=tenths_to_millions(entry.get("last_deadline_bank")),
            team_value=tenths_to_millions(entry.get("last_deadline_value")),
            total_points=_safe_int(entry.get("summary_overall_points")),
            overall_rank=_safe_int(entry.get("summary_overall_rank")),
            free_transfers=DEFAULT_FREE_TRANSFERS,
            squad_status=squad.status,
        )

    async def _fetch_squad(
        self, team_id: int, gameweek: int | None
    ) -> SubFetch[list[int]]:
        if gameweek is None:
            return SubFetch.skipped([], reason="No current gameweek")

        picks = await best_effort(
            self.fpl_client.get_entry_picks(team_id, gameweek),
            fallback={},
            description=f"picks for team {team_id} GW{gameweek}",
        )
        if picks.degraded:
            return SubFetch.failed([], reason=picks.reason or "picks unavailable")

        elements = [
            _safe_int(pick.get("element"))
            for pick in (picks.value or {}).get("picks", [])
        ]
        return SubFetch.ok([e for e in elements if e > 0])
