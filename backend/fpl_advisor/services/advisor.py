"""Advisor chat: AI context -> system prompt -> completion."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from fpl_advisor.services.ai_context import ContextSynthesizer
from fpl_advisor.services.completion_client import ChatMessage, CompletionClient
from fpl_advisor.services.errors import InvalidInputError, UpstreamError
from fpl_advisor.services.prompt import (
    TeamInfo,
    build_advisor_prompt,
    build_fallback_prompt,
)

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000
HISTORY_ROLES = {"user", "assistant"}


@dataclass(frozen=True, slots=True)
class AdvisorReply:
    content: str
    tokens_used: int
    used_live_data: bool  # False when the fallback prompt was used


def validate_message(message: str) -> str:
    """Strip and bound-check a user chat message.

    Raises:
        InvalidInputError: Empty or longer than MAX_MESSAGE_LENGTH
    """
    stripped = message.strip()
    if not stripped:
        raise InvalidInputError("Message cannot be empty")
    if len(stripped) > MAX_MESSAGE_LENGTH:
        raise InvalidInputError(
            f"Message too long (max {MAX_MESSAGE_LENGTH} characters)"
        )
    return stripped


class AdvisorService:
    """Answers FPL questions grounded in the live AI context."""

    def __init__(
        self, synthesizer: ContextSynthesizer, completion_client: CompletionClient
    ) -> None:
        self.synthesizer = synthesizer
        self.completion_client = completion_client

    async def build_system_prompt(self, team: TeamInfo | None = None) -> tuple[str, bool]:
        """System prompt plus whether it carries live FPL data."""
        try:
            context = await self.synthesizer.synthesize()
        except UpstreamError as e:
            logger.warning(f"FPL data unavailable, using fallback prompt: {e.message}")
            return build_fallback_prompt(team), False
        return build_advisor_prompt(context, team), True

    async def chat(
        self,
        message: str,
        history: Sequence[ChatMessage] = (),
        team: TeamInfo | None = None,
    ) -> AdvisorReply:
        """Answer one user message.

        Raises:
            InvalidInputError: Bad message, or a history turn with a bad role or no content
            CompletionError: The model call failed
        """
        text = validate_message(message)
        for turn in history:
            if turn.role not in HISTORY_ROLES:
                raise InvalidInputError(f"Invalid history role '{turn.role}'")
            if not turn.content.strip():
                raise InvalidInputError("History messages cannot be empty")

        system_prompt, live = await self.build_system_prompt(team)
        messages = [
            ChatMessage(role="system", content=system_prompt),
            *history,
            ChatMessage(role="user", content=text),
        ]

        result = await self.completion_client.complete(messages)
        return AdvisorReply(
            content=result.content,
            tokens_used=result.tokens_used,
            used_live_data=live,
        )
