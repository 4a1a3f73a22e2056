"""Error taxonomy shared by the FPL client, aggregation services and LLM client.

Callers map these to distinct user-facing responses:
- UpstreamNotFoundError: the FPL id does not exist (404) - "check your id"
- UpstreamRateLimitedError: FPL answered 429 - "try again later"
- UpstreamUnavailableError: any other non-2xx, timeout or connection failure
- CompletionError: language-model failure, tagged retryable or terminal
- InvalidInputError: malformed caller input, rejected before any network call

Messages are kept short; vendor bodies are never embedded.
"""

from enum import Enum


class InvalidInputError(ValueError):
    """Caller input failed validation before any request was made."""


class UpstreamError(Exception):
    """Base class for failures talking to the FPL API."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.url = url
        self.status_code = status_code


class UpstreamNotFoundError(UpstreamError):
    """FPL returned 404 for the requested resource."""


class TeamNotFoundError(UpstreamNotFoundError):
    """FPL has no team (entry) with the requested id."""

    def __init__(self, team_id: int, url: str | None = None):
        super().__init__(f"FPL team {team_id} not found", url=url, status_code=404)
        self.team_id = team_id


class UpstreamRateLimitedError(UpstreamError):
    """FPL returned 429 Too Many Requests."""


class UpstreamUnavailableError(UpstreamError):
    """FPL returned a non-2xx status other than 404/429."""


class UpstreamNetworkError(UpstreamUnavailableError):
    """Timeout, DNS or connection failure before any HTTP status was received."""


class CompletionErrorKind(str, Enum):
    """Whether a completion failure may succeed if attempted again."""

    NON_RETRYABLE = "non_retryable"
    TRANSIENT = "transient"


class CompletionError(Exception):
    """A single failed language-model call, tagged at the point of failure."""

    def __init__(
        self,
        message: str,
        kind: CompletionErrorKind = CompletionErrorKind.TRANSIENT,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind is CompletionErrorKind.TRANSIENT


class CompletionFailedError(CompletionError):
    """All completion attempts were used up."""

    def __init__(self, attempts: int, last_error: CompletionError):
        super().__init__(
            f"Failed after {attempts} attempts. Last error: {last_error.message}",
            kind=CompletionErrorKind.TRANSIENT,
            status_code=last_error.status_code,
        )
        self.attempts = attempts
        self.last_error = last_error
