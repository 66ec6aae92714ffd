"""Exception taxonomy for swarmverse.

Oracle failures are contained per drone by the scheduler: the drone falls back
to Idle and the failure lands in the event log. Only ``UnknownBackendError``
is treated as fatal.
"""

from __future__ import annotations

from typing import Optional


class SwarmverseError(Exception):
    """Base class for every error raised by this package."""


class OracleError(SwarmverseError):
    """Raised when a decision oracle cannot produce a stratagem."""


class RateLimitError(OracleError):
    """Backend refused the call because of rate limiting (HTTP 429).

    ``retry_delay_ms`` holds the server-suggested delay when the error payload
    carried one.
    """

    def __init__(self, message: str, *, retry_delay_ms: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_delay_ms = retry_delay_ms


class RetryExhaustedError(OracleError):
    """Rate limiting persisted through every allowed attempt."""

    def __init__(self, *, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Exceeded max retries ({attempts}) for the cloud backend: {last_error}"
        )


class NetworkError(OracleError):
    """Transport-level failure talking to a backend. Never retried."""


class LocalBackendError(OracleError):
    """Local backend answered with a non-2xx status or a malformed body."""


class BackendUnavailableError(OracleError):
    """Backend cannot be used at all, e.g. the cloud credential is missing."""


class ParseError(OracleError):
    """Oracle response could not be turned into a Stratagem."""

    def __init__(self, message: str, *, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class InvalidTargetError(SwarmverseError):
    """A stratagem named an enemy that is unknown or already disabled."""

    def __init__(self, target_id: Optional[str]) -> None:
        self.target_id = target_id
        super().__init__(f"Invalid or defeated target: {target_id}")


class UnknownBackendError(SwarmverseError):
    """Model definition references a provider with no backend binding."""

    def __init__(self, provider: object) -> None:
        self.provider = provider
        super().__init__(
            f"Unknown model provider: {provider}\n\n"
            "Remediation tips:\n"
            "  - Pick a model from SUPPORTED_MODELS (see --list-models)\n"
            "  - Supported providers are GoogleAI and Ollama"
        )


__all__ = [
    "SwarmverseError",
    "OracleError",
    "RateLimitError",
    "RetryExhaustedError",
    "NetworkError",
    "LocalBackendError",
    "BackendUnavailableError",
    "ParseError",
    "InvalidTargetError",
    "UnknownBackendError",
]
