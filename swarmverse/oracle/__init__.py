"""Decision oracle: prompting, backends, retries and response sanitization."""

from .client import DecisionOracle
from .prompts import PromptTemplate, RenderedPrompt, STRATAGEM_PROMPT, render_stratagem_prompt
from .registry import SUPPORTED_MODELS, default_model, find_model, supports_json_mode
from .retry import (
    MAX_ATTEMPTS,
    call_with_rate_limit_retries,
    compute_backoff_ms,
    is_rate_limit_error,
    parse_retry_delay_ms,
)
from .sanitize import clean_json_text, parse_stratagem

__all__ = [
    "DecisionOracle",
    "PromptTemplate",
    "RenderedPrompt",
    "STRATAGEM_PROMPT",
    "render_stratagem_prompt",
    "SUPPORTED_MODELS",
    "default_model",
    "find_model",
    "supports_json_mode",
    "MAX_ATTEMPTS",
    "call_with_rate_limit_retries",
    "compute_backoff_ms",
    "is_rate_limit_error",
    "parse_retry_delay_ms",
    "clean_json_text",
    "parse_stratagem",
]
