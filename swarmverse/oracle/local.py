"""Utilities for calling a locally hosted model (Ollama's OpenAI-compatible API)."""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any
from urllib import error, request

from swarmverse.errors import LocalBackendError, NetworkError


DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
_CHAT_ENDPOINT = "/v1/chat/completions"
LOCAL_TEMPERATURE = 0.9


def _perform_chat_request(
    payload: dict[str, Any],
    base_url: str,
    timeout: float,
) -> str:
    """Execute the blocking HTTP request against the chat-completions endpoint."""

    url = f"{base_url.rstrip('/')}{_CHAT_ENDPOINT}"
    data = json.dumps(payload).encode("utf-8")
    req = request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )

    try:
        with request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
        raise LocalBackendError(
            f"Ollama API request failed with status {exc.code}: {body}"
        ) from exc
    except error.URLError as exc:
        raise NetworkError(
            f"Network error talking to Ollama at {url}. Is it running? Details: {exc.reason}"
        ) from exc
    except (TimeoutError, ConnectionError) as exc:
        raise NetworkError(
            f"Network error talking to Ollama at {url}. Is it running? Details: {exc}"
        ) from exc

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LocalBackendError("Ollama returned non-JSON response.") from exc

    try:
        content = parsed["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LocalBackendError("Ollama response did not include assistant content.") from exc

    return content or ""


async def call_local_model(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_model: str,
    base_url: str | None = None,
    timeout: float = 120.0,
) -> str:
    """Invoke a local model and return the assistant text."""

    resolved_base = (
        base_url or os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL
    ).rstrip("/")

    payload = {
        "model": llm_model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "format": "json",
        "stream": False,
        "temperature": LOCAL_TEMPERATURE,
    }

    return await asyncio.to_thread(
        _perform_chat_request,
        payload,
        resolved_base,
        timeout,
    )


__all__ = ["call_local_model", "DEFAULT_OLLAMA_BASE_URL"]
