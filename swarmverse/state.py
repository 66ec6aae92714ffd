"""
Process-wide world state holder.

The WorldStore is the single place the battle lives between ticks. It has three
write paths and nothing else mutates it:

1. ``commit()``        - tick engine replaces the whole roster once per tick
2. ``update_agent()``  - scheduler point-updates one drone's intent fields
3. ``set_principle()`` - rotation clock replaces the guiding principle

Async think cycles read through the store on demand instead of capturing a
copy, so every continuation sees the latest committed roster. Every write
swaps in a new record rather than editing one in place.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .errors import InvalidTargetError
from .schemas import Drone, DroneStatus, SimulationState, SwarmId, Vector


# Battlefield layout
FIELD_WIDTH = 800
FIELD_HEIGHT = 600
DRONES_PER_SWARM = 5
DRONE_SPACING = 60
MAX_HEALTH = 100


def create_initial_swarm(swarm_id: SwarmId, count: int = DRONES_PER_SWARM) -> List[Drone]:
    """Spawn ``count`` drones in a line on their side of the field.

    Blue deploys near the bottom edge, red near the top. Ids are
    ``<first letter>-drone-<index>`` so the owning swarm is readable from the id.
    """

    y_base = FIELD_HEIGHT - 100 if swarm_id is SwarmId.BLUE else 100
    x_start = FIELD_WIDTH / 2 - (count / 2 * DRONE_SPACING)
    drones: List[Drone] = []
    for index in range(count):
        spawn = Vector(x=x_start + index * DRONE_SPACING, y=y_base)
        drones.append(
            Drone(
                id=f"{swarm_id.value[0]}-drone-{index}",
                swarm_id=swarm_id,
                position=spawn,
                status=DroneStatus.IDLE,
                target_position=spawn.model_copy(),
                health=MAX_HEALTH,
                target_id=None,
            )
        )
    return drones


class WorldStore:
    """Single-writer snapshot store for drones, principle and run state."""

    def __init__(self, drones: Iterable[Drone], principle: str) -> None:
        self._drones: Dict[str, Drone] = {}
        self.principle = principle
        self.state = SimulationState.STOPPED
        # Bumped whenever the run is stopped, paused or reset. Async
        # continuations compare it to the value they started with.
        self.epoch = 0
        self.reset(drones, principle)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.state is SimulationState.RUNNING

    def get(self, drone_id: str) -> Optional[Drone]:
        return self._drones.get(drone_id)

    def drones(self) -> List[Drone]:
        """All drones in roster order (the committed records, not copies)."""
        return list(self._drones.values())

    def snapshot(self) -> List[Drone]:
        """Deep copy of the roster, safe to mutate."""
        return [drone.model_copy(deep=True) for drone in self._drones.values()]

    def roster(self, swarm_id: SwarmId) -> List[Drone]:
        return [drone for drone in self._drones.values() if drone.swarm_id is swarm_id]

    def active_enemies(self, swarm_id: SwarmId) -> List[Drone]:
        return [
            drone
            for drone in self._drones.values()
            if drone.swarm_id is swarm_id.opponent and drone.is_active
        ]

    def require_active_enemy(self, swarm_id: SwarmId, target_id: Optional[str]) -> Drone:
        """Resolve ``target_id`` against the current enemy roster of ``swarm_id``.

        Raises:
            InvalidTargetError: unknown id, a friendly drone, or already disabled
        """

        for enemy in self.active_enemies(swarm_id):
            if enemy.id == target_id:
                return enemy
        raise InvalidTargetError(target_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def commit(self, drones: Iterable[Drone]) -> None:
        """Replace the whole roster with a resolved tick snapshot."""
        self._drones = {drone.id: drone for drone in drones}

    def update_agent(self, drone_id: str, **changes) -> Optional[Drone]:
        """Swap one drone for a copy with ``changes`` applied.

        Returns the new record, or None when the id is not on the roster.
        """

        current = self._drones.get(drone_id)
        if current is None:
            return None
        updated = current.model_copy(update=changes)
        self._drones[drone_id] = updated
        return updated

    def set_principle(self, principle: str) -> None:
        self.principle = principle

    def invalidate(self) -> int:
        """Start a new epoch so in-flight continuations discard their results."""
        self.epoch += 1
        return self.epoch

    def reset(self, drones: Iterable[Drone], principle: str) -> None:
        self.commit(drones)
        self.principle = principle
        self.state = SimulationState.STOPPED
        self.invalidate()


__all__ = [
    "WorldStore",
    "create_initial_swarm",
    "FIELD_WIDTH",
    "FIELD_HEIGHT",
    "DRONES_PER_SWARM",
    "MAX_HEALTH",
]
