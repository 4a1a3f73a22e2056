"""API response schemas."""

from fpl_advisor.schemas.advisor import (
    AIContextResponse,
    EnrichedPlayerResponse,
    InjuriesResponse,
    InjuryResponse,
)

__all__ = [
    "AIContextResponse",
    "EnrichedPlayerResponse",
    "InjuriesResponse",
    "InjuryResponse",
]
