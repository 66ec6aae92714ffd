"""Rate-limit aware retries for the cloud decision backend.

Policy:
- Only rate-limit errors (HTTP 429 / RESOURCE_EXHAUSTED) are retried
- At most MAX_ATTEMPTS calls in total
- First wait honours the server's suggested retryDelay, else 2s
- Later waits back off exponentially (2^attempt seconds)
- Every wait gets +/-0.5s of jitter and never drops below 0.5s

The jitter keeps a whole swarm that hit the quota together from retrying in
lockstep.
"""

from __future__ import annotations

import asyncio
import json
import random
import re
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception_type, stop_after_attempt

from swarmverse.errors import RateLimitError, RetryExhaustedError


T = TypeVar("T")

MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 2000.0
JITTER_MS = 500.0
MIN_WAIT_MS = 500.0

_RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"
_DELAY_VALUE = re.compile(r"^(\d+(?:\.\d+)?)s$")
# Fallback for payloads that were rendered as a Python repr instead of JSON
_DELAY_IN_TEXT = re.compile(r"""['"]retryDelay['"]\s*:\s*['"](\d+(?:\.\d+)?)s['"]""")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True for HTTP 429 / RESOURCE_EXHAUSTED failures."""

    if isinstance(exc, RateLimitError):
        return True
    for attr in ("code", "status_code"):
        if getattr(exc, attr, None) == 429:
            return True
    text = str(exc)
    return "429" in text or "RESOURCE_EXHAUSTED" in text


def _find_retry_delay(node: Any) -> Optional[float]:
    """Depth-first search for a RetryInfo ``retryDelay`` inside a decoded payload."""

    if isinstance(node, dict):
        if node.get("@type") == _RETRY_INFO_TYPE and isinstance(node.get("retryDelay"), str):
            match = _DELAY_VALUE.match(node["retryDelay"].strip())
            if match:
                return float(match.group(1)) * 1000
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None

    for child in children:
        found = _find_retry_delay(child)
        if found is not None:
            return found
    return None


def parse_retry_delay_ms(exc: BaseException) -> Optional[float]:
    """Extract the server-suggested retry delay in milliseconds, if any.

    Looks at structured ``details`` on the exception first, then at JSON
    embedded in the message after the first ``{``.
    """

    details = getattr(exc, "details", None)
    if isinstance(details, (dict, list)):
        found = _find_retry_delay(details)
        if found is not None:
            return found

    message = str(exc)
    start = message.find("{")
    if start == -1:
        return None
    try:
        found = _find_retry_delay(json.loads(message[start:]))
    except json.JSONDecodeError:
        found = None
    if found is None:
        match = _DELAY_IN_TEXT.search(message)
        if match:
            found = float(match.group(1)) * 1000
    return found


def as_rate_limit_error(exc: BaseException) -> Optional[RateLimitError]:
    """Wrap ``exc`` as a RateLimitError when it belongs to the rate-limit class."""

    if isinstance(exc, RateLimitError):
        return exc
    if not is_rate_limit_error(exc):
        return None
    return RateLimitError(str(exc), retry_delay_ms=parse_retry_delay_ms(exc))


def compute_backoff_ms(
    attempt: int,
    suggested_delay_ms: Optional[float],
    rng: random.Random,
) -> float:
    """Wait before the call following failed ``attempt`` (1-based)."""

    if attempt == 1:
        base = suggested_delay_ms if suggested_delay_ms is not None else DEFAULT_RETRY_DELAY_MS
    else:
        base = (2 ** attempt) * 1000.0
    jitter = rng.uniform(-JITTER_MS, JITTER_MS)
    return max(MIN_WAIT_MS, base + jitter)


async def call_with_rate_limit_retries(
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[str], None]] = None,
) -> T:
    """Await ``func`` under the rate-limit retry policy.

    ``func`` must raise RateLimitError for retriable failures; anything else
    propagates on the first occurrence.

    Raises:
        RetryExhaustedError: every attempt was rate limited
    """

    rng = rng or random.Random()

    def _wait(retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        suggested = getattr(exc, "retry_delay_ms", None)
        return compute_backoff_ms(retry_state.attempt_number, suggested, rng) / 1000.0

    def _before_sleep(retry_state: RetryCallState) -> None:
        if on_retry is None:
            return
        wait_seconds = retry_state.next_action.sleep if retry_state.next_action else 0.0
        on_retry(
            f"Rate limit hit. Retrying in {wait_seconds:.1f}s... "
            f"(Attempt {retry_state.attempt_number}/{max_attempts})"
        )

    # reraise=False so exhaustion surfaces as RetryError and can be told apart
    # from a non-retriable error, which tenacity re-raises untouched.
    retrying = AsyncRetrying(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(max_attempts),
        wait=_wait,
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=False,
    )
    try:
        async for attempt in retrying:
            with attempt:
                return await func()
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        raise RetryExhaustedError(attempts=max_attempts, last_error=last_error) from last_error

    # AsyncRetrying always exits via return or raise
    raise RuntimeError("Rate limit retry loop exited unexpectedly")


__all__ = [
    "MAX_ATTEMPTS",
    "is_rate_limit_error",
    "parse_retry_delay_ms",
    "as_rate_limit_error",
    "compute_backoff_ms",
    "call_with_rate_limit_retries",
]
