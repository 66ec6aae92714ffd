"""Rotating guiding principle shared by every drone's prompt."""

from __future__ import annotations

import asyncio
from typing import Sequence

from .event_log import EventLog
from .schemas import LogCategory
from .state import WorldStore


PRINCIPLE_ROTATION_SECONDS = 25.0

# The thirteen chapters of Sun Tzu's "The Art of War", in order.
ART_OF_WAR_PRINCIPLES: tuple[str, ...] = (
    "Laying Plans: All warfare is based on deception.",
    "Waging War: Let your great object be victory, not lengthy campaigns.",
    "Attack by Stratagem: Supreme excellence consists in breaking the enemy's resistance without fighting.",
    "Tactical Dispositions: First make yourself invincible, then wait for the enemy's moment of vulnerability.",
    "Energy: Use the combined energy of the whole; strike like a released crossbow.",
    "Weak Points and Strong: Avoid what is strong and strike at what is weak.",
    "Maneuvering: Let your plans be dark as night, and when you move, fall like a thunderbolt.",
    "Variation in Tactics: There are positions which must not be contested.",
    "The Army on the March: Concentrate your forces when the enemy is scattered.",
    "Terrain: Ground that gives advantage decides the battle before it begins.",
    "The Nine Situations: Rapidity is the essence of war; take advantage of the enemy's unreadiness.",
    "The Attack by Fire: Move only when you see an advantage; fight only when a position is critical.",
    "The Use of Spies: Foreknowledge cannot be elicited from spirits; it is obtained from others.",
)


class PrincipleClock:
    """Advances the shared principle through a fixed ordered list."""

    def __init__(
        self,
        store: WorldStore,
        log: EventLog,
        *,
        principles: Sequence[str] = ART_OF_WAR_PRINCIPLES,
        period: float = PRINCIPLE_ROTATION_SECONDS,
    ) -> None:
        if not principles:
            raise ValueError("principles must not be empty")
        self.store = store
        self.log = log
        self.principles = tuple(principles)
        self.period = period
        self.index = 0

    @property
    def current(self) -> str:
        return self.principles[self.index]

    def reset(self) -> str:
        self.index = 0
        self.store.set_principle(self.current)
        return self.current

    def advance(self) -> str:
        """Move one step forward, wrapping after the last principle."""

        self.index = (self.index + 1) % len(self.principles)
        principle = self.current
        self.store.set_principle(principle)
        self.log.append(
            f'Guiding principle updated to: "{principle}"', LogCategory.INFO, "System"
        )
        return principle

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.period)
            self.advance()


__all__ = ["PrincipleClock", "ART_OF_WAR_PRINCIPLES", "PRINCIPLE_ROTATION_SECONDS"]
