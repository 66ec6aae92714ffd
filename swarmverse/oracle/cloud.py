"""Cloud decision backend (Google AI via Mirascope).

The call goes through Mirascope's provider-agnostic ``llm.call`` decorator with
provider ``google``. The backend receives one concatenated prompt; the JSON
response mime type is requested for every model that supports it.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional

from google import genai
from mirascope import llm

from swarmverse.errors import BackendUnavailableError, NetworkError

from .registry import supports_json_mode
from .retry import MAX_ATTEMPTS, as_rate_limit_error, call_with_rate_limit_retries


CLOUD_PROVIDER = "google"
CLOUD_TEMPERATURE = 0.9
LLM_TIMEOUT_SECONDS = 120.0


def _build_client(api_key: str) -> Any:
    """Create the Google GenAI client Mirascope will call through."""
    return genai.Client(api_key=api_key)


async def _invoke_once(
    prompt: str,
    *,
    llm_model: str,
    client: Any,
    timeout: float,
) -> str:
    @llm.call(
        provider=CLOUD_PROVIDER,
        model=llm_model,
        json_mode=supports_json_mode(llm_model),
        client=client,
        call_params={"temperature": CLOUD_TEMPERATURE},
    )
    async def _invoke(prompt: str) -> str:
        return prompt

    try:
        response = await asyncio.wait_for(_invoke(prompt), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise NetworkError(
            f"Cloud backend timed out after {int(timeout)}s for model {llm_model}. "
            "The backend may be unreachable."
        ) from exc
    except Exception as exc:
        rate_limited = as_rate_limit_error(exc)
        if rate_limited is not None:
            raise rate_limited from exc
        raise

    return response.content


async def call_cloud_model(
    *,
    prompt: str,
    llm_model: str,
    api_key: Optional[str],
    timeout: float = LLM_TIMEOUT_SECONDS,
    max_attempts: int = MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[str], None]] = None,
) -> str:
    """Return the raw text the cloud model produced for ``prompt``.

    Raises:
        BackendUnavailableError: no credential configured; nothing is attempted
        RetryExhaustedError: rate limited on every attempt
    """

    if not api_key:
        raise BackendUnavailableError(
            "Cloud backend unavailable: API key is missing. "
            "Set GOOGLE_API_KEY (or API_KEY), or select an Ollama model."
        )

    client = _build_client(api_key)
    return await call_with_rate_limit_retries(
        lambda: _invoke_once(prompt, llm_model=llm_model, client=client, timeout=timeout),
        max_attempts=max_attempts,
        rng=rng,
        sleep=sleep,
        on_retry=on_retry,
    )


__all__ = ["call_cloud_model", "LLM_TIMEOUT_SECONDS"]
