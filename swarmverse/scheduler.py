"""
Per-drone decision scheduler.

Every active drone runs its own think loop: wait a jittered 5-10 seconds, ask
the decision oracle for a stratagem, fold the answer into the drone's intent
fields, repeat. Loops never wait on each other and never block the tick
engine; they only suspend on the oracle call.

Guarantees:
- At most one in-flight decision per drone (the ``thinking`` set)
- A result is applied only if the run is still Running, still in the same
  epoch it started in, and the drone has not been disabled meanwhile
- ``stop()`` cancels every pending timer handle explicitly; calls already in
  flight run to completion and then discard their result
"""

from __future__ import annotations

import asyncio
import random
from typing import Callable, Dict, FrozenSet, Optional, Set

from .errors import InvalidTargetError, ParseError, UnknownBackendError
from .event_log import EventLog
from .oracle import DecisionOracle
from .schemas import (
    AttackAction,
    DroneStatus,
    LogCategory,
    ModelDefinition,
    MoveAction,
    Stratagem,
    SwarmId,
)
from .state import WorldStore


THINK_DELAY_MIN_SECONDS = 5.0
THINK_DELAY_MAX_SECONDS = 10.0


class DecisionScheduler:
    """Drives independent think cycles for every drone in a WorldStore."""

    def __init__(
        self,
        store: WorldStore,
        log: EventLog,
        oracle: DecisionOracle,
        model_for: Callable[[SwarmId], ModelDefinition],
        *,
        min_delay: float = THINK_DELAY_MIN_SECONDS,
        max_delay: float = THINK_DELAY_MAX_SECONDS,
        rng: Optional[random.Random] = None,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        if max_delay < min_delay:
            raise ValueError("max_delay must be >= min_delay")
        self.store = store
        self.log = log
        self.oracle = oracle
        self.model_for = model_for
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.rng = rng or random.Random()
        self.on_fatal = on_fatal

        self._thinking: Set[str] = set()
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._inflight: Set[asyncio.Task] = set()
        self._active = False

    @property
    def thinking(self) -> FrozenSet[str]:
        return frozenset(self._thinking)

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def next_delay(self) -> float:
        """Uniform delay in [min_delay, max_delay)."""
        return self.min_delay + self.rng.random() * (self.max_delay - self.min_delay)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Schedule a first think cycle for every active drone."""

        self._active = True
        epoch = self.store.epoch
        for drone in self.store.drones():
            self._schedule(drone.id, epoch)

    def stop(self) -> None:
        """Cancel all pending timers. In-flight calls are left to finish."""

        self._active = False
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    async def shutdown(self) -> None:
        """Stop and also cancel in-flight cycles (used on process exit)."""

        self.stop()
        tasks = list(self._inflight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
        self._thinking.clear()

    def _schedule(self, drone_id: str, epoch: int) -> None:
        if not self._active or epoch != self.store.epoch or drone_id in self._timers:
            return
        drone = self.store.get(drone_id)
        if drone is None or not drone.is_active:
            return
        loop = asyncio.get_running_loop()
        self._timers[drone_id] = loop.call_later(self.next_delay(), self._launch, drone_id, epoch)

    def _launch(self, drone_id: str, epoch: int) -> None:
        self._timers.pop(drone_id, None)
        if not self._active or epoch != self.store.epoch:
            return
        task = asyncio.get_running_loop().create_task(
            self._cycle(drone_id, epoch), name=f"think-{drone_id}"
        )
        self._inflight.add(task)
        task.add_done_callback(self._on_cycle_done)

    async def _cycle(self, drone_id: str, epoch: int) -> None:
        await self.trigger(drone_id)
        self._schedule(drone_id, epoch)

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self.on_fatal is not None:
            self.on_fatal(exc)

    # ------------------------------------------------------------------
    # Think cycle
    # ------------------------------------------------------------------

    def _is_current(self, drone_id: str, epoch: int) -> bool:
        drone = self.store.get(drone_id)
        return (
            self.store.is_running
            and self.store.epoch == epoch
            and drone is not None
            and drone.is_active
        )

    def _hold(self, drone_id: str) -> None:
        self.store.update_agent(drone_id, status=DroneStatus.IDLE, target_id=None)

    async def trigger(self, drone_id: str) -> bool:
        """Run one think cycle for ``drone_id``.

        Returns False without doing anything when the run is not Running, the
        drone is disabled or unknown, or it already has a decision in flight.

        Raises:
            UnknownBackendError: the swarm's model has no backend binding
        """

        drone = self.store.get(drone_id)
        if (
            not self.store.is_running
            or drone is None
            or not drone.is_active
            or drone_id in self._thinking
        ):
            return False

        # No await between the membership check above and this add
        self._thinking.add(drone_id)
        epoch = self.store.epoch
        try:
            drone = self.store.update_agent(drone_id, status=DroneStatus.ASSESSING)
            swarm = drone.swarm_id
            try:
                stratagem = await self.oracle.get_action(
                    drone,
                    self.store.roster(swarm),
                    self.store.active_enemies(swarm),
                    self.store.principle,
                    self.log.recent(),
                    self.model_for(swarm),
                )
            except UnknownBackendError:
                raise
            except ParseError as exc:
                if self._is_current(drone_id, epoch):
                    self.log.append(
                        f"Failed to produce a valid stratagem. Holding position. ({exc})",
                        LogCategory.ERROR,
                        drone_id,
                    )
                    self._hold(drone_id)
                return True
            except Exception as exc:
                if self._is_current(drone_id, epoch):
                    self.log.append(
                        f"An error occurred during decision making: {exc}",
                        LogCategory.ERROR,
                        drone_id,
                    )
                    self._hold(drone_id)
                return True

            # Stale: stopped, paused, reset or shot down while we were waiting.
            # A drone still alive stays Assessing until its next cycle lands.
            if not self._is_current(drone_id, epoch):
                return True

            self._apply(drone_id, swarm, stratagem)
            return True
        finally:
            self._thinking.discard(drone_id)

    def _apply(self, drone_id: str, swarm: SwarmId, stratagem: Stratagem) -> None:
        self.log.append(
            f'"{stratagem.stratagem_name}": {stratagem.justification}',
            LogCategory.STRATAGEM,
            drone_id,
        )
        action = stratagem.action

        if isinstance(action, MoveAction):
            current = self.store.get(drone_id)
            destination = action.position or current.position
            self.store.update_agent(
                drone_id,
                status=DroneStatus.MOVING,
                target_position=destination.model_copy(),
                target_id=None,
            )
        elif isinstance(action, AttackAction):
            try:
                target = self.store.require_active_enemy(swarm, action.target_id)
            except InvalidTargetError as exc:
                self.log.append(f"{exc}. Holding position.", LogCategory.ERROR, drone_id)
                self._hold(drone_id)
                return
            self.store.update_agent(drone_id, status=DroneStatus.ATTACKING, target_id=target.id)
        else:
            self._hold(drone_id)


__all__ = ["DecisionScheduler", "THINK_DELAY_MIN_SECONDS", "THINK_DELAY_MAX_SECONDS"]
