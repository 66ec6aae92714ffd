"""
Deterministic tick engine for movement and combat.

Design principle: if it can be calculated, calculate it (don't ask the LLM).
Drones decide *what* they want through their decision oracle; this module
decides what actually happens, once every TICK_SECONDS, using only the intents
already committed to the WorldStore.

Each tick:
1. Deep-copy the roster so shared state is never edited mid-computation
2. Resolve Attacking and Moving drones against that copy
3. Commit the copy back as the new roster in one replace
4. Stop the run and log the result once a swarm has been wiped out

``step()`` has no suspension points, so on the event loop it is atomic with
respect to decisions landing from think cycles. A decision that arrives
between two ticks is simply picked up by the next one.
"""

from __future__ import annotations

import asyncio
import random
from typing import Callable, Dict, Iterable, List, Optional

from .event_log import EventLog
from .schemas import Drone, DroneStatus, LogCategory, Outcome, SimulationState, SwarmId
from .state import WorldStore


TICK_SECONDS = 0.1
DRONE_SPEED = 1.0
ATTACK_RANGE = 75.0
ATTACK_DAMAGE = 5
# Fraction of hits that get a combat log line; keeps the journal readable
ATTACK_LOG_PROBABILITY = 0.1

COMBAT_AUTHOR = "Combat"
SYSTEM_AUTHOR = "System"


def _resolve_attack(
    drone: Drone,
    by_id: Dict[str, Drone],
    log: EventLog,
    rng: random.Random,
) -> None:
    target = by_id.get(drone.target_id) if drone.target_id else None
    if target is None or not target.is_active:
        drone.status = DroneStatus.IDLE
        drone.target_id = None
        return

    distance = drone.position.distance_to(target.position)
    if distance > ATTACK_RANGE:
        # Close the gap; no damage while out of range
        drone.position = drone.position.step_towards(target.position, DRONE_SPEED)
        return

    target.health = max(0, target.health - ATTACK_DAMAGE)
    if rng.random() < ATTACK_LOG_PROBABILITY:
        log.append(f"{drone.id} attacks {target.id}!", LogCategory.ATTACK, COMBAT_AUTHOR)

    if target.health == 0:
        log.append(f"{target.id} has been disabled!", LogCategory.SUCCESS, COMBAT_AUTHOR)
        target.status = DroneStatus.DISABLED
        target.target_id = None
        drone.status = DroneStatus.IDLE
        drone.target_id = None


def _resolve_move(drone: Drone) -> None:
    distance = drone.position.distance_to(drone.target_position)
    if distance < DRONE_SPEED:
        drone.position = drone.target_position.model_copy()
        drone.status = DroneStatus.IDLE
    else:
        drone.position = drone.position.step_towards(drone.target_position, DRONE_SPEED)


def resolve_tick(drones: List[Drone], log: EventLog, rng: random.Random) -> List[Drone]:
    """Apply one tick of movement and combat to ``drones`` in place.

    ``drones`` must be a private copy of the roster. Damage is applied to the
    copy immediately, so a target disabled early in the tick is already
    Disabled when later drones are resolved.
    """

    by_id = {drone.id: drone for drone in drones}
    for drone in drones:
        if not drone.is_active:
            continue
        if drone.status is DroneStatus.ATTACKING:
            _resolve_attack(drone, by_id, log, rng)
        elif drone.status is DroneStatus.MOVING:
            _resolve_move(drone)

    # Attackers resolved before their target fell this tick
    for drone in drones:
        if drone.status is not DroneStatus.ATTACKING:
            continue
        target = by_id.get(drone.target_id) if drone.target_id else None
        if target is None or not target.is_active:
            drone.status = DroneStatus.IDLE
            drone.target_id = None
    return drones


def evaluate_outcome(drones: Iterable[Drone]) -> Optional[Outcome]:
    """Return an Outcome once a swarm has no active drones, else None."""

    alive = {SwarmId.BLUE: False, SwarmId.RED: False}
    for drone in drones:
        if drone.is_active:
            alive[drone.swarm_id] = True

    if alive[SwarmId.BLUE] and alive[SwarmId.RED]:
        return None
    if not alive[SwarmId.BLUE] and not alive[SwarmId.RED]:
        return Outcome(draw=True)
    winner = SwarmId.BLUE if alive[SwarmId.BLUE] else SwarmId.RED
    return Outcome(winner=winner)


def describe_outcome(outcome: Outcome) -> str:
    if outcome.draw or outcome.winner is None:
        return "Mutual destruction. The battle is a draw."
    return f"Victory for {outcome.winner.display_name}! The battle is over."


class TickEngine:
    """Fixed-period clock driving ``resolve_tick`` against a WorldStore.

    When a swarm is eliminated the engine stops the run, writes the single
    victory (or draw) entry and then calls ``on_finish`` so the owner can
    cancel its timers.
    """

    def __init__(
        self,
        store: WorldStore,
        log: EventLog,
        *,
        period: float = TICK_SECONDS,
        rng: Optional[random.Random] = None,
        on_finish: Optional[Callable[[Outcome], None]] = None,
    ) -> None:
        self.store = store
        self.log = log
        self.period = period
        self.rng = rng or random.Random()
        self.on_finish = on_finish
        self.ticks = 0

    def step(self) -> Optional[Outcome]:
        """Resolve a single tick. Does nothing unless the simulation is Running."""

        if not self.store.is_running:
            return None

        snapshot = self.store.snapshot()
        resolve_tick(snapshot, self.log, self.rng)
        self.store.commit(snapshot)
        self.ticks += 1

        outcome = evaluate_outcome(snapshot)
        if outcome is None:
            return None

        self.store.state = SimulationState.STOPPED
        self.store.invalidate()
        self.log.append(describe_outcome(outcome), LogCategory.SUCCESS, SYSTEM_AUTHOR)
        if self.on_finish is not None:
            self.on_finish(outcome)
        return outcome

    async def run(self) -> None:
        """Tick every ``period`` seconds until cancelled or the battle ends."""

        while True:
            await asyncio.sleep(self.period)
            if self.step() is not None:
                return


__all__ = [
    "TickEngine",
    "resolve_tick",
    "evaluate_outcome",
    "describe_outcome",
    "TICK_SECONDS",
    "DRONE_SPEED",
    "ATTACK_RANGE",
    "ATTACK_DAMAGE",
    "ATTACK_LOG_PROBABILITY",
]
