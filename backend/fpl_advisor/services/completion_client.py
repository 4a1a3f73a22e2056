"""Chat-completion client for the advisor's language model, with backoff.

Talks to an OpenAI-compatible endpoint (GLM by default). Each failure is
tagged where it happens: terminal problems (no API key, malformed messages,
400/401/403/422) are raised after one attempt, everything else is retried
with exponential backoff of 1s, 2s, 4s... capped at 5s.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from fpl_advisor.services.errors import (
    CompletionError,
    CompletionErrorKind,
    CompletionFailedError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://open.bigmodel.cn/api/paas/v4/chat/completions"
DEFAULT_MODEL = "glm-4-plus"
DEFAULT_MAX_ATTEMPTS = 3

# Statuses where repeating the same request cannot help
NON_RETRYABLE_STATUS_CODES = {400, 401, 403, 422}

VALID_ROLES = {"system", "user", "assistant"}

# Backoff: min(1 * 2^(attempt-1), 5) seconds
BACKOFF_MIN_SECONDS = 1
BACKOFF_MAX_SECONDS = 5


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: str  # system | user | assistant
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class CompletionResult:
    content: str
    tokens_used: int


def _is_retryable(exception: BaseException) -> bool:
    return isinstance(exception, CompletionError) and exception.retryable


def validate_messages(messages: Sequence[ChatMessage]) -> None:
    """Reject message lists the model endpoint would refuse anyway.

    Raises:
        CompletionError: NON_RETRYABLE, on empty lists, unknown roles or
            empty content
    """
    if not messages:
        raise CompletionError(
            "Invalid input: no messages", kind=CompletionErrorKind.NON_RETRYABLE
        )
    for message in messages:
        if message.role not in VALID_ROLES:
            raise CompletionError(
                f"Invalid input: unknown role '{message.role}'",
                kind=CompletionErrorKind.NON_RETRYABLE,
            )
        if not message.content or not message.content.strip():
            raise CompletionError(
                "Invalid input: empty message content",
                kind=CompletionErrorKind.NON_RETRYABLE,
            )


def parse_completion(data: Any) -> CompletionResult:
    """Extract content and token usage from a chat-completion response body.

    Raises:
        CompletionError: TRANSIENT, when the body reports an error or has no content
    """
    if not isinstance(data, dict):
        raise CompletionError("Model API returned an unexpected response body")

    error = data.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else None
        raise CompletionError(f"Model API error: {message or 'Unknown error'}")

    choices = data.get("choices") or []
    content = None
    if choices and isinstance(choices[0], dict):
        content = (choices[0].get("message") or {}).get("content")
    if not content:
        raise CompletionError("No content received from model API")

    usage = data.get("usage") or {}
    return CompletionResult(content=content, tokens_used=usage.get("total_tokens") or 0)


class CompletionClient:
    """Retrying chat-completion client.

    The HTTP client is created lazily and reused across calls; call close()
    (or use as an async context manager) at shutdown.
    """

    def __init__(
        self,
        api_key: str | None,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 30.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            api_key: Bearer token; None makes every call fail fast
            api_url: Chat-completions endpoint
            model: Model name sent in the request body
            temperature: Sampling temperature
            max_tokens: Completion length cap
            timeout: Per-attempt timeout in seconds
            max_attempts: Default attempts per complete() call
            sleep: Backoff sleep, injectable for tests
        """
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def complete(
        self, messages: Sequence[ChatMessage], max_attempts: int | None = None
    ) -> CompletionResult:
        """Run a chat completion, retrying transient failures.

        Args:
            messages: Conversation, normally [system, *history, user]
            max_attempts: Overrides the client default for this call

        Returns:
            CompletionResult with the reply text and total tokens used

        Raises:
            CompletionError: NON_RETRYABLE failure, raised after one attempt
            CompletionFailedError: Every attempt failed transiently
        """
        attempts = max_attempts or self.max_attempts
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=1, min=BACKOFF_MIN_SECONDS, max=BACKOFF_MAX_SECONDS
            ),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._call(messages)
        except RetryError as e:
            # Only CompletionErrors are retried, so the last failure is one
            last_error = e.last_attempt.exception()
            logger.error(f"Completion failed after {attempts} attempts: {last_error.message}")
            raise CompletionFailedError(attempts, last_error) from last_error
        except CompletionError as e:
            logger.error(f"Non-retryable completion error: {e.message}")
            raise

        return result

    async def _call(self, messages: Sequence[ChatMessage]) -> CompletionResult:
        """One attempt: validate, POST, parse."""
        if not self.api_key:
            raise CompletionError(
                "API key not configured", kind=CompletionErrorKind.NON_RETRYABLE
            )
        validate_messages(messages)

        payload = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            response = await self._get_client().post(
                self.api_url, json=payload, headers=headers
            )
        except httpx.TimeoutException as e:
            raise CompletionError(
                "Request timeout - model API took too long to respond"
            ) from e
        except httpx.TransportError as e:
            raise CompletionError("Network error - unable to connect to model API") from e

        if not response.is_success:
            status = response.status_code
            kind = (
                CompletionErrorKind.NON_RETRYABLE
                if status in NON_RETRYABLE_STATUS_CODES
                else CompletionErrorKind.TRANSIENT
            )
            raise CompletionError(
                f"Model API error: {status} {response.reason_phrase}",
                kind=kind,
                status_code=status,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionError("Model API returned invalid JSON") from e

        result = parse_completion(data)
        logger.info(f"Completion succeeded ({result.tokens_used} tokens)")
        return result
