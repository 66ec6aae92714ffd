"""
Simulation controller.

Owns one battle and everything that runs against it:
- WorldStore   (drones, principle, run state)
- EventLog     (bounded journal)
- TickEngine   (100ms movement/combat clock)
- PrincipleClock (25s doctrine rotation)
- DecisionScheduler (one think loop per drone)

All dependencies are injected; ``from_config()`` wires the defaults from
environment configuration. Start, pause and reset map onto explicit
cancellation of both clock tasks and every pending think timer, plus an epoch
bump so any decision still in flight discards itself when it lands.
"""

from __future__ import annotations

import asyncio
import random
from typing import Dict, List, Optional, Sequence, Type

from .config import Config
from .engine import TICK_SECONDS, TickEngine
from .errors import BackendUnavailableError
from .event_log import EventLog
from .oracle import DecisionOracle, default_model, find_model
from .principles import ART_OF_WAR_PRINCIPLES, PRINCIPLE_ROTATION_SECONDS, PrincipleClock
from .scheduler import THINK_DELAY_MAX_SECONDS, THINK_DELAY_MIN_SECONDS, DecisionScheduler
from .schemas import Drone, LogCategory, ModelDefinition, Outcome, SimulationState, SwarmId
from .state import DRONES_PER_SWARM, WorldStore, create_initial_swarm


SYSTEM_AUTHOR = "System"


class Simulation:
    """Start/pause/reset controls and per-swarm model selection for one battle."""

    def __init__(
        self,
        oracle: DecisionOracle,
        *,
        blue_model: Optional[ModelDefinition] = None,
        red_model: Optional[ModelDefinition] = None,
        drones_per_swarm: int = DRONES_PER_SWARM,
        tick_seconds: float = TICK_SECONDS,
        principle_rotation_seconds: float = PRINCIPLE_ROTATION_SECONDS,
        think_delay_min: float = THINK_DELAY_MIN_SECONDS,
        think_delay_max: float = THINK_DELAY_MAX_SECONDS,
        principles: Sequence[str] = ART_OF_WAR_PRINCIPLES,
        event_log: Optional[EventLog] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.oracle = oracle
        self.drones_per_swarm = drones_per_swarm
        self.rng = rng or random.Random()
        self.log = event_log or EventLog()
        if oracle.event_log is None:
            oracle.event_log = self.log

        self.models: Dict[SwarmId, ModelDefinition] = {
            SwarmId.BLUE: blue_model or default_model(),
            SwarmId.RED: red_model or default_model(),
        }

        self.store = WorldStore(self._spawn(), principles[0])
        self.clock = PrincipleClock(
            self.store, self.log, principles=principles, period=principle_rotation_seconds
        )
        self.engine = TickEngine(
            self.store, self.log, period=tick_seconds, rng=self.rng, on_finish=self._on_finish
        )
        self.scheduler = DecisionScheduler(
            self.store,
            self.log,
            oracle,
            self.model_for,
            min_delay=think_delay_min,
            max_delay=think_delay_max,
            rng=self.rng,
            on_fatal=self._on_fatal,
        )

        self.outcome: Optional[Outcome] = None
        self.fatal_error: Optional[BaseException] = None
        self._tasks: List[asyncio.Task] = []
        self._finished: Optional[asyncio.Event] = None

    @classmethod
    def from_config(cls, config: Type[Config] = Config, **overrides) -> "Simulation":
        """Build a simulation from environment configuration.

        Keyword overrides are passed straight to ``__init__``.
        """

        config.validate()
        oracle = overrides.pop(
            "oracle",
            DecisionOracle(
                api_key=config.GOOGLE_API_KEY,
                local_base_url=config.OLLAMA_BASE_URL,
                timeout=config.LLM_TIMEOUT_SECONDS,
            ),
        )
        settings = {
            "blue_model": find_model(config.BLUE_MODEL),
            "red_model": find_model(config.RED_MODEL),
            "drones_per_swarm": config.DRONES_PER_SWARM,
            "tick_seconds": config.TICK_SECONDS,
            "principle_rotation_seconds": config.PRINCIPLE_ROTATION_SECONDS,
            "think_delay_min": config.THINK_DELAY_MIN_SECONDS,
            "think_delay_max": config.THINK_DELAY_MAX_SECONDS,
        }
        settings.update(overrides)
        return cls(oracle, **settings)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> SimulationState:
        return self.store.state

    def model_for(self, swarm_id: SwarmId) -> ModelDefinition:
        return self.models[swarm_id]

    def snapshot(self) -> List[Drone]:
        return self.store.snapshot()

    def missing_credentials(self) -> List[SwarmId]:
        """Swarms whose selected model needs a credential that is not configured."""

        return [
            swarm for swarm, model in self.models.items() if not self.oracle.is_available(model)
        ]

    def can_start(self) -> bool:
        return not self.missing_credentials()

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def set_model(self, swarm_id: SwarmId, model_id: str) -> ModelDefinition:
        """Switch a swarm's decision model. Takes effect on its next think cycle."""

        model = find_model(model_id)
        self.models[swarm_id] = model
        self.log.append(
            f"AI Model for {swarm_id.display_name} switched to {model.name}.",
            LogCategory.INFO,
            SYSTEM_AUTHOR,
        )
        return model

    def start(self) -> None:
        """Start (or resume) the battle. Must be called from a running event loop.

        Does nothing once the battle has been decided; call ``reset()`` first.

        Raises:
            BackendUnavailableError: a swarm uses the cloud backend without a credential
        """

        if self.store.state is SimulationState.RUNNING:
            return
        if self.outcome is not None:
            return

        missing = self.missing_credentials()
        if missing:
            names = " and ".join(swarm.display_name for swarm in missing)
            verb = "require" if len(missing) > 1 else "requires"
            raise BackendUnavailableError(
                f"API key not found. {names} {verb} it. "
                "Select Ollama models to run without an API key."
            )

        loop = asyncio.get_running_loop()
        self.fatal_error = None
        # Waiters from before a pause keep waiting on the same event
        if self._finished is None or self._finished.is_set():
            self._finished = asyncio.Event()
        self.store.state = SimulationState.RUNNING
        self._tasks = [
            loop.create_task(self.engine.run(), name="tick-engine"),
            loop.create_task(self.clock.run(), name="principle-clock"),
        ]
        self.scheduler.start()

    def pause(self) -> None:
        if self.store.state is not SimulationState.RUNNING:
            return
        self.store.state = SimulationState.PAUSED
        self._halt()

    def toggle(self) -> SimulationState:
        """Start when stopped or paused, pause when running."""

        if self.store.state is SimulationState.RUNNING:
            self.pause()
        else:
            self.start()
        return self.store.state

    def reset(self) -> None:
        """Stop everything and redeploy both swarms at full health."""

        self.store.state = SimulationState.STOPPED
        self._halt()
        self.log.clear()
        principle = self.clock.reset()
        self.store.reset(self._spawn(), principle)
        self.outcome = None
        self.fatal_error = None
        self._signal_finished()
        self.log.append("Simulation reset. Awaiting new orders.", LogCategory.INFO, SYSTEM_AUTHOR)

    async def run_until_finished(self, timeout: Optional[float] = None) -> Optional[Outcome]:
        """Wait for victory/draw (or a fatal error). Returns None on timeout."""

        if self._finished is None:
            return self.outcome
        try:
            await asyncio.wait_for(self._finished.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        return self.outcome

    async def shutdown(self) -> None:
        """Stop the battle and wait for every task, including in-flight decisions."""

        if self.store.state is SimulationState.RUNNING:
            self.store.state = SimulationState.STOPPED
        tasks = list(self._tasks)
        self._halt()
        await self.scheduler.shutdown()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _spawn(self) -> List[Drone]:
        return create_initial_swarm(SwarmId.BLUE, self.drones_per_swarm) + create_initial_swarm(
            SwarmId.RED, self.drones_per_swarm
        )

    def _halt(self) -> None:
        """Invalidate the epoch and cancel both clocks and every think timer."""

        self.store.invalidate()
        self.scheduler.stop()
        try:
            current = asyncio.current_task()
        except RuntimeError:
            # No running loop: called from synchronous setup code
            current = None
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
        self._tasks = []

    def _signal_finished(self) -> None:
        if self._finished is not None:
            self._finished.set()

    def _on_finish(self, outcome: Outcome) -> None:
        # TickEngine has already stopped the run and logged the result
        self.outcome = outcome
        self._halt()
        self._signal_finished()

    def _on_fatal(self, exc: BaseException) -> None:
        # Several think cycles can hit the same broken binding at once
        if self.fatal_error is not None:
            return
        self.fatal_error = exc
        self.log.append(f"Simulation halted: {exc}", LogCategory.ERROR, SYSTEM_AUTHOR)
        self.store.state = SimulationState.STOPPED
        self._halt()
        self._signal_finished()


__all__ = ["Simulation"]
