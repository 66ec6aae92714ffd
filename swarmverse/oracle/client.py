"""
Decision oracle client.

Turns one drone's view of the battle into a Stratagem:
1. Render the role-separated prompt (identity/principle/schema vs situation)
2. Dispatch to the backend bound to the swarm's model (cloud or local)
3. Sanitize and validate the raw text

Only the cloud backend retries, and only on rate limiting. The local backend
has no shared quota, so its failures surface immediately.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional, Sequence

from swarmverse.errors import OracleError, UnknownBackendError
from swarmverse.event_log import EventLog
from swarmverse.logging_utils import debug_llm_enabled
from swarmverse.schemas import Drone, LogCategory, LogEntry, ModelDefinition, ModelProvider, Stratagem

from .cloud import LLM_TIMEOUT_SECONDS, call_cloud_model
from .local import call_local_model
from .prompts import RenderedPrompt, render_stratagem_prompt
from .sanitize import parse_stratagem


class DecisionOracle:
    """Pluggable LLM backend pair shared by both swarms.

    Dependencies are injected: the cloud credential, the local base URL, the
    event log used for retry notices, and (for tests) the RNG and sleep used
    by the backoff policy.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        local_base_url: Optional[str] = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
        event_log: Optional[EventLog] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.api_key = api_key
        self.local_base_url = local_base_url
        self.timeout = timeout
        self.event_log = event_log
        self.rng = rng or random.Random()
        self.sleep = sleep

    @property
    def cloud_available(self) -> bool:
        return bool(self.api_key)

    def is_available(self, model: ModelDefinition) -> bool:
        """False only for cloud models when no credential is configured."""

        if model.provider is ModelProvider.GOOGLE_AI:
            return self.cloud_available
        return True

    async def get_action(
        self,
        drone: Drone,
        friendly: Sequence[Drone],
        enemies: Sequence[Drone],
        principle: str,
        recent_log: Sequence[LogEntry],
        model: ModelDefinition,
    ) -> Stratagem:
        """Ask ``model`` for ``drone``'s next stratagem.

        Raises:
            ParseError: the response could not be sanitized into a Stratagem
            OracleError: any other backend failure (rate limit exhaustion,
                network, missing credential, bad status)
            UnknownBackendError: the model's provider has no backend
        """

        rendered = render_stratagem_prompt(drone, friendly, enemies, principle, recent_log)
        if debug_llm_enabled():
            self._dump("PROMPT", drone, model, f"{rendered.system}\n\n{rendered.user}")

        try:
            raw = await self._dispatch(rendered, drone, model)
        except (OracleError, UnknownBackendError):
            raise
        except Exception as exc:
            raise OracleError(
                f"Failed to get stratagem from {model.name}. Details: {exc}"
            ) from exc

        if debug_llm_enabled():
            self._dump("RESPONSE", drone, model, raw)

        return parse_stratagem(raw)

    async def _dispatch(self, rendered: RenderedPrompt, drone: Drone, model: ModelDefinition) -> str:
        if model.provider is ModelProvider.GOOGLE_AI:
            return await call_cloud_model(
                prompt=rendered.combined(),
                llm_model=model.id,
                api_key=self.api_key,
                timeout=self.timeout,
                rng=self.rng,
                sleep=self.sleep,
                on_retry=lambda message: self._log_retry(message, drone),
            )
        if model.provider is ModelProvider.OLLAMA:
            return await call_local_model(
                system_prompt=rendered.system,
                user_prompt=rendered.user,
                llm_model=model.id,
                base_url=self.local_base_url,
                timeout=self.timeout,
            )
        raise UnknownBackendError(model.provider)

    def _log_retry(self, message: str, drone: Drone) -> None:
        if self.event_log is not None:
            self.event_log.append(message, LogCategory.INFO, drone.id)

    @staticmethod
    def _dump(label: str, drone: Drone, model: ModelDefinition, text: str) -> None:
        print(f"\n{'='*80}")
        print(f"[LLM {label}] Drone: {drone.id} Model: {model.id}")
        print(f"{'-'*80}")
        print(text)
        print(f"{'='*80}\n")


__all__ = ["DecisionOracle"]
