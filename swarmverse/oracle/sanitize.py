"""Turn raw model text into a validated Stratagem.

Models wrap JSON in all sorts of packaging: reasoning blocks from thinking
models, markdown fences, a sentence of preamble, trailing commas. Each of
those is peeled off in turn before strict parsing. Any failure surfaces as a
ParseError, which callers treat as "no stratagem" rather than retrying.
"""

from __future__ import annotations

import json
import re
from typing import Any, List

from pydantic import ValidationError

from swarmverse.errors import ParseError
from swarmverse.schemas import Stratagem


_THINK_BLOCK = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def _truncate_preview(value: Any, *, limit: int = 80) -> str:
    """Return a compact preview of the offending input value."""

    if value is None:
        return "null"
    text = repr(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def describe_validation_error(error: ValidationError) -> List[str]:
    """Flatten a pydantic error into ``loc: msg [type=..] | received=..`` lines."""

    issues: List[str] = []
    for err in error.errors(include_url=False):
        loc = ".".join(str(part) for part in err.get("loc", [])) or "root"
        details = f"{loc}: {err.get('msg', 'validation error')}"
        if err.get("type"):
            details += f" [type={err['type']}]"
        if "input" in err:
            details += f" | received={_truncate_preview(err.get('input'))}"
        issues.append(details)
    if not issues:
        issues.append("root: response did not match the expected schema")
    return issues


def clean_json_text(raw: str) -> str:
    """Strip reasoning blocks, fences, preamble and trailing commas."""

    text = _THINK_BLOCK.sub("", raw.strip()).strip()

    fence = _FENCE.search(text)
    if fence and fence.group(1):
        text = fence.group(1).strip()
    elif not (text.startswith("{") and text.endswith("}")):
        first = text.find("{")
        last = text.rfind("}")
        if first > -1 and last > first:
            text = text[first : last + 1]

    return _TRAILING_COMMA.sub(r"\1", text)


def _normalise_action_type(payload: Any) -> Any:
    # Models often answer "move" or "Attack"; the schema tags are upper case
    if isinstance(payload, dict):
        action = payload.get("action")
        if isinstance(action, dict) and isinstance(action.get("type"), str):
            action["type"] = action["type"].strip().upper()
    return payload


def parse_stratagem(raw: str) -> Stratagem:
    """Sanitize ``raw`` and validate it against the Stratagem schema.

    Raises:
        ParseError: empty text, invalid JSON after cleaning, or schema mismatch
    """

    if raw is None or not raw.strip():
        raise ParseError("Oracle returned an empty response.", raw=raw or "")

    cleaned = clean_json_text(raw)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError(
            f"Invalid JSON format after cleaning. Details: {exc}", raw=raw
        ) from exc

    try:
        return Stratagem.model_validate(_normalise_action_type(payload))
    except ValidationError as exc:
        issues = "; ".join(describe_validation_error(exc))
        raise ParseError(f"Response did not match the stratagem schema: {issues}", raw=raw) from exc


__all__ = ["clean_json_text", "parse_stratagem", "describe_validation_error"]
