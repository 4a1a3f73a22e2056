"""AI advisor and injury routes."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from fpl_advisor.db import get_connection
from fpl_advisor.dependencies import (
    db_available,
    get_advisor,
    get_context_synthesizer,
    get_reference_cache,
    rate_limit,
)
from fpl_advisor.schemas.advisor import AIContextResponse, InjuriesResponse
from fpl_advisor.services.advisor import MAX_MESSAGE_LENGTH, AdvisorService
from fpl_advisor.services.ai_context import ContextSynthesizer
from fpl_advisor.services.bootstrap_cache import ReferenceDataCache
from fpl_advisor.services.completion_client import ChatMessage
from fpl_advisor.services.injuries import detect_injuries, significant_injuries
from fpl_advisor.services.prompt import TeamInfo
from fpl_advisor.services.team_store import load_latest_team

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["advisor"])


# =============================================================================
# Pydantic Models
# =============================================================================


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(min_length=1)


class TeamSummary(BaseModel):
    """The user's team as shown to the advisor."""

    team_name: str
    team_value: float = 0.0
    bank_value: float = 0.0
    free_transfers: int = 0
    total_points: int = 0
    overall_rank: int | None = None


class ChatRequest(BaseModel):
    """Body for POST /api/advisor/chat."""

    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    history: list[HistoryMessage] = Field(default_factory=list)
    team: TeamSummary | None = None
    user_id: str | None = Field(
        default=None, description="Load the user's last imported team when no team is sent"
    )


class ChatResponse(BaseModel):
    response: str
    tokens_used: int
    used_live_data: bool


# =============================================================================
# Routes
# =============================================================================


@router.get(
    "/advisor/context",
    response_model=AIContextResponse,
    dependencies=[Depends(rate_limit("api"))],
)
async def get_advisor_context(
    synthesizer: ContextSynthesizer = Depends(get_context_synthesizer),
) -> AIContextResponse:
    """The ranked, fixture-enriched data the advisor is allowed to use."""
    context = await synthesizer.synthesize()
    return AIContextResponse.model_validate(context, from_attributes=True)


@router.post(
    "/advisor/chat",
    response_model=ChatResponse,
    dependencies=[Depends(rate_limit("expensive"))],
)
async def advisor_chat(
    body: ChatRequest,
    advisor: AdvisorService = Depends(get_advisor),
    has_db: bool = Depends(db_available),
) -> ChatResponse:
    """Ask the FPL advisor a question."""
    team = TeamInfo(**body.team.model_dump()) if body.team else None
    if team is None and body.user_id and has_db:
        async with get_connection() as conn:
            team = await load_latest_team(conn, body.user_id)

    reply = await advisor.chat(
        body.message,
        history=[ChatMessage(role=m.role, content=m.content) for m in body.history],
        team=team,
    )
    return ChatResponse(
        response=reply.content,
        tokens_used=reply.tokens_used,
        used_live_data=reply.used_live_data,
    )


@router.get(
    "/injuries",
    response_model=InjuriesResponse,
    dependencies=[Depends(rate_limit("read_only"))],
)
async def get_injuries(
    significant_only: bool = Query(
        default=False, description="Only medium severity or worse"
    ),
    reference_cache: ReferenceDataCache = Depends(get_reference_cache),
) -> InjuriesResponse:
    """Players with injury news or a reduced chance of playing."""
    snapshot = await reference_cache.get_snapshot()
    injuries = detect_injuries(snapshot)
    if significant_only:
        injuries = significant_injuries(injuries)
    return InjuriesResponse.model_validate(
        {
            "current_gameweek": snapshot.current_gameweek(),
            "total": len(injuries),
            "injuries": injuries,
        },
        from_attributes=True,
    )
