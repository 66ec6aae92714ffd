"""
Swarmverse - two LLM-driven drone swarms fighting under Sun Tzu's principles.

Each drone asks its own decision oracle (cloud or local LLM) for a stratagem
on its own clock; a deterministic tick engine resolves movement and combat.

No file I/O required. No database. No global state beyond one Simulation.
All dependencies injected by the caller.
"""

__version__ = "0.1.0"

# Main simulation components
from .simulation import Simulation
from .engine import TickEngine, resolve_tick, evaluate_outcome
from .scheduler import DecisionScheduler
from .principles import PrincipleClock, ART_OF_WAR_PRINCIPLES
from .event_log import EventLog
from .state import WorldStore, create_initial_swarm

# Decision oracle
from .oracle import DecisionOracle, SUPPORTED_MODELS, find_model, parse_stratagem

# Core schemas
from .schemas import (
    Drone,
    DroneStatus,
    SwarmId,
    SimulationState,
    Vector,
    Stratagem,
    MoveAction,
    AttackAction,
    HoldAction,
    LogEntry,
    LogCategory,
    ModelDefinition,
    ModelProvider,
    Outcome,
)

# Errors
from .errors import (
    SwarmverseError,
    OracleError,
    RateLimitError,
    RetryExhaustedError,
    NetworkError,
    LocalBackendError,
    BackendUnavailableError,
    ParseError,
    InvalidTargetError,
    UnknownBackendError,
)

__all__ = [
    # Main classes
    "Simulation",
    "TickEngine",
    "DecisionScheduler",
    "PrincipleClock",
    "EventLog",
    "WorldStore",
    "DecisionOracle",
    # Helpers
    "resolve_tick",
    "evaluate_outcome",
    "create_initial_swarm",
    "find_model",
    "parse_stratagem",
    "ART_OF_WAR_PRINCIPLES",
    "SUPPORTED_MODELS",
    # Schemas
    "Drone",
    "DroneStatus",
    "SwarmId",
    "SimulationState",
    "Vector",
    "Stratagem",
    "MoveAction",
    "AttackAction",
    "HoldAction",
    "LogEntry",
    "LogCategory",
    "ModelDefinition",
    "ModelProvider",
    "Outcome",
    # Errors
    "SwarmverseError",
    "OracleError",
    "RateLimitError",
    "RetryExhaustedError",
    "NetworkError",
    "LocalBackendError",
    "BackendUnavailableError",
    "ParseError",
    "InvalidTargetError",
    "UnknownBackendError",
]
