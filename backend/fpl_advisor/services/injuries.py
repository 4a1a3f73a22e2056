"""Injury detection over the bootstrap snapshot.

Severity is derived from FPL's chance-of-playing percentages:
- low: 75-100%
- medium: 50-74%
- high: 25-49%
- out: below 25%
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from fpl_advisor.services.fpl_client import STATUS_AVAILABLE, ReferenceSnapshot

FULL_CHANCE = 100  # FPL sends null when there are no concerns


class InjurySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    OUT = "out"


SIGNIFICANT_SEVERITIES = {InjurySeverity.MEDIUM, InjurySeverity.HIGH, InjurySeverity.OUT}


@dataclass(frozen=True, slots=True)
class InjuryInfo:
    player_id: int
    player_name: str
    team: str  # Short name
    status: str
    news: str
    chance_next: int
    chance_this: int
    severity: InjurySeverity


def _chance(value: int | None) -> int:
    return FULL_CHANCE if value is None else value


def severity_from_chance(chance_next: int | None, chance_this: int | None) -> InjurySeverity:
    """Severity from the lower of the two chances (None counts as 100%)."""
    lower = min(_chance(chance_next), _chance(chance_this))
    if lower >= 75:
        return InjurySeverity.LOW
    if lower >= 50:
        return InjurySeverity.MEDIUM
    if lower >= 25:
        return InjurySeverity.HIGH
    return InjurySeverity.OUT


def detect_injuries(snapshot: ReferenceSnapshot) -> list[InjuryInfo]:
    """Every player with a non-available status, news, or a reduced chance."""
    teams = snapshot.teams_by_id()
    injuries = []
    for p in snapshot.players:
        chance_next = _chance(p.chance_of_playing_next_round)
        chance_this = _chance(p.chance_of_playing_this_round)
        concerned = (
            p.status != STATUS_AVAILABLE
            or bool(p.news)
            or min(chance_next, chance_this) < FULL_CHANCE
        )
        if not concerned:
            continue

        team = teams.get(p.team)
        injuries.append(
            InjuryInfo(
                player_id=p.id,
                player_name=p.web_name,
                team=team.short_name if team else "UNK",
                status=p.status,
                news=p.news,
                chance_next=chance_next,
                chance_this=chance_this,
                severity=severity_from_chance(chance_next, chance_this),
            )
        )
    return injuries


def significant_injuries(injuries: Iterable[InjuryInfo]) -> list[InjuryInfo]:
    """Medium severity or worse."""
    return [i for i in injuries if i.severity in SIGNIFICANT_SEVERITIES]


def has_changed(new: InjuryInfo, previous: InjuryInfo | None) -> bool:
    """Whether an injury record differs enough from the last one to report."""
    if previous is None:
        return True
    return (
        new.status != previous.status
        or new.news != previous.news
        or new.chance_next != previous.chance_next
        or new.chance_this != previous.chance_this
        or new.severity != previous.severity
    )
