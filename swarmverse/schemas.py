"""
Pydantic schemas for the swarmverse battle simulation.

All data structures shared between the scheduler, the decision oracle and the
tick engine are defined here.

Design Philosophy:
- Drones are plain value records; every write replaces a whole record
- Stratagem actions are a tagged union keyed on ``type`` (MOVE / ATTACK / HOLD)
- Log entries are frozen once created
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enumerations
# ============================================================================


class SwarmId(str, Enum):
    """One of the two opposing sides."""

    BLUE = "blue"
    RED = "red"

    @property
    def opponent(self) -> "SwarmId":
        return SwarmId.RED if self is SwarmId.BLUE else SwarmId.BLUE

    @property
    def display_name(self) -> str:
        return f"{self.value.title()} Swarm"


class DroneStatus(str, Enum):
    IDLE = "Idle"
    MOVING = "Moving"
    # Set while the drone waits on its decision oracle
    ASSESSING = "Assessing"
    ATTACKING = "Attacking"
    DISABLED = "Disabled"


class SimulationState(str, Enum):
    STOPPED = "Stopped"
    RUNNING = "Running"
    PAUSED = "Paused"


class LogCategory(str, Enum):
    INFO = "Info"
    # Individual decision-making chatter
    COUNCIL = "Council"
    STRATAGEM = "Stratagem"
    ERROR = "Error"
    SUCCESS = "Success"
    ATTACK = "Attack"


class ModelProvider(str, Enum):
    GOOGLE_AI = "GoogleAI"
    OLLAMA = "Ollama"


# ============================================================================
# World Schemas
# ============================================================================


class Vector(BaseModel):
    """2D position on the battlefield."""

    x: float = Field(..., description="Horizontal coordinate")
    y: float = Field(..., description="Vertical coordinate")

    def distance_to(self, other: "Vector") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def step_towards(self, other: "Vector", step: float) -> "Vector":
        """Return the point ``step`` units from here along the line to ``other``."""

        distance = self.distance_to(other)
        if distance == 0:
            return Vector(x=self.x, y=self.y)
        return Vector(
            x=self.x + (other.x - self.x) / distance * step,
            y=self.y + (other.y - self.y) / distance * step,
        )


class Drone(BaseModel):
    """A single autonomous unit in one of the swarms.

    The scheduler writes the intent fields (status, target_position, target_id)
    when a decision lands; the tick engine writes position, health and status.
    Disabled drones stay on the roster so lookups by id keep working.
    """

    id: str = Field(..., description="Unique drone identifier, e.g. 'b-drone-0'")
    swarm_id: SwarmId = Field(..., description="Side this drone fights for")
    position: Vector
    health: int = Field(100, ge=0, le=100, description="Hit points, 0 means disabled")
    status: DroneStatus = DroneStatus.IDLE
    target_position: Vector = Field(..., description="Destination while Moving")
    # Lookup key into the enemy roster, never an owned reference
    target_id: Optional[str] = Field(None, description="Enemy drone being attacked")

    @property
    def is_active(self) -> bool:
        return self.status is not DroneStatus.DISABLED

    def describe(self) -> str:
        """One-line roster entry used in prompts and CLI summaries."""

        return (
            f"Drone {self.id} [HP:{self.health}]: "
            f"pos({self.position.x:.0f}, {self.position.y:.0f}), status: {self.status.value}"
        )


# ============================================================================
# Decision Schemas
# ============================================================================


class MoveAction(BaseModel):
    type: Literal["MOVE"] = "MOVE"
    # Missing position means "stay where I am"
    position: Optional[Vector] = None


class AttackAction(BaseModel):
    type: Literal["ATTACK"] = "ATTACK"
    target_id: Optional[str] = None


class HoldAction(BaseModel):
    type: Literal["HOLD"] = "HOLD"


StratagemAction = Annotated[
    Union[MoveAction, AttackAction, HoldAction], Field(discriminator="type")
]


class Stratagem(BaseModel):
    """A named, justified tactical decision produced for one drone."""

    stratagem_name: str = Field(..., description="Brief personal tactical name")
    justification: str = Field(..., description="How the action follows the guiding principle")
    action: StratagemAction


# ============================================================================
# Event Log Schemas
# ============================================================================


class LogEntry(BaseModel):
    """Single journal line. Frozen so readers can share entries freely."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"log-{uuid4().hex}")
    timestamp: datetime = Field(default_factory=datetime.now)
    category: LogCategory
    message: str
    author: Optional[str] = None


# ============================================================================
# Backend Schemas
# ============================================================================


class ModelDefinition(BaseModel):
    """A selectable decision-oracle model."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    provider: ModelProvider


class Outcome(BaseModel):
    """Termination result reported by the tick engine."""

    winner: Optional[SwarmId] = None
    draw: bool = False


DroneRoster = List[Drone]
