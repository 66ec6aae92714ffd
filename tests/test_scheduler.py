"""Tests for per-drone think cycles and how decisions land on the roster."""

import asyncio
import random
from collections import defaultdict

import pytest

from swarmverse.errors import OracleError, ParseError, UnknownBackendError
from swarmverse.event_log import EventLog
from swarmverse.oracle import find_model
from swarmverse.scheduler import DecisionScheduler
from swarmverse.schemas import (
    AttackAction,
    DroneStatus,
    HoldAction,
    LogCategory,
    MoveAction,
    SimulationState,
    Stratagem,
    SwarmId,
    Vector,
)
from swarmverse.state import WorldStore, create_initial_swarm


def stratagem(action, name="Test Stratagem"):
    return Stratagem(stratagem_name=name, justification="Because.", action=action)


class FakeOracle:
    """Returns a queued result (or raises it) and records every call."""

    def __init__(self, result=None, gate: asyncio.Event | None = None):
        self.result = result if result is not None else stratagem(HoldAction())
        self.gate = gate
        self.calls = []
        self.concurrent = defaultdict(int)
        self.max_concurrent = defaultdict(int)

    async def get_action(self, drone, friendly, enemies, principle, recent_log, model):
        self.calls.append((drone.id, model.id, principle, len(enemies)))
        self.concurrent[drone.id] += 1
        self.max_concurrent[drone.id] = max(self.max_concurrent[drone.id], self.concurrent[drone.id])
        try:
            if self.gate is not None:
                await self.gate.wait()
            if isinstance(self.result, BaseException):
                raise self.result
            return self.result
        finally:
            self.concurrent[drone.id] -= 1


def build(oracle, drones_per_swarm=2, **kwargs):
    drones = create_initial_swarm(SwarmId.BLUE, drones_per_swarm) + create_initial_swarm(
        SwarmId.RED, drones_per_swarm
    )
    store = WorldStore(drones, "Laying Plans")
    store.state = SimulationState.RUNNING
    log = EventLog()
    model = find_model("qwen3:8b")
    scheduler = DecisionScheduler(store, log, oracle, lambda swarm: model, **kwargs)
    return store, log, scheduler


@pytest.mark.asyncio
async def test_move_decision_sets_destination():
    oracle = FakeOracle(stratagem(MoveAction(position=Vector(x=300, y=250)), name="Flank"))
    store, log, scheduler = build(oracle)
    store.update_agent("b-drone-0", target_id="r-drone-0")

    assert await scheduler.trigger("b-drone-0") is True

    drone = store.get("b-drone-0")
    assert drone.status is DroneStatus.MOVING
    assert drone.target_position == Vector(x=300, y=250)
    assert drone.target_id is None
    [entry] = log.entries()
    assert entry.category is LogCategory.STRATAGEM
    assert entry.author == "b-drone-0"
    assert entry.message == '"Flank": Because.'
    assert oracle.calls == [("b-drone-0", "qwen3:8b", "Laying Plans", 2)]


@pytest.mark.asyncio
async def test_move_without_position_stays_put():
    oracle = FakeOracle(stratagem(MoveAction(position=None)))
    store, _, scheduler = build(oracle)
    home = store.get("b-drone-0").position

    await scheduler.trigger("b-drone-0")

    drone = store.get("b-drone-0")
    assert drone.status is DroneStatus.MOVING
    assert drone.target_position == home


@pytest.mark.asyncio
async def test_attack_on_live_enemy_sets_target():
    oracle = FakeOracle(stratagem(AttackAction(target_id="r-drone-1")))
    store, _, scheduler = build(oracle)

    await scheduler.trigger("b-drone-0")

    drone = store.get("b-drone-0")
    assert drone.status is DroneStatus.ATTACKING
    assert drone.target_id == "r-drone-1"


@pytest.mark.asyncio
@pytest.mark.parametrize("target_id", ["r-drone-1", "b-drone-1", "r-drone-9", None])
async def test_attack_on_invalid_target_holds(target_id):
    oracle = FakeOracle(stratagem(AttackAction(target_id=target_id)))
    store, log, scheduler = build(oracle)
    store.update_agent("r-drone-1", status=DroneStatus.DISABLED, health=0)

    await scheduler.trigger("b-drone-0")

    drone = store.get("b-drone-0")
    assert drone.status is DroneStatus.IDLE
    assert drone.target_id is None
    errors = [e for e in log.entries() if e.category is LogCategory.ERROR]
    assert [e.message for e in errors] == [f"Invalid or defeated target: {target_id}. Holding position."]


@pytest.mark.asyncio
async def test_hold_clears_target():
    oracle = FakeOracle(stratagem(HoldAction()))
    store, _, scheduler = build(oracle)
    store.update_agent("b-drone-0", status=DroneStatus.ATTACKING, target_id="r-drone-0")

    await scheduler.trigger("b-drone-0")

    drone = store.get("b-drone-0")
    assert drone.status is DroneStatus.IDLE
    assert drone.target_id is None


@pytest.mark.asyncio
async def test_parse_failure_holds_and_logs():
    oracle = FakeOracle(ParseError("Invalid JSON format after cleaning."))
    store, log, scheduler = build(oracle)

    assert await scheduler.trigger("r-drone-0") is True

    assert store.get("r-drone-0").status is DroneStatus.IDLE
    [entry] = log.entries()
    assert entry.category is LogCategory.ERROR
    assert entry.author == "r-drone-0"
    assert entry.message.startswith("Failed to produce a valid stratagem. Holding position.")


@pytest.mark.asyncio
async def test_backend_failure_holds_and_logs():
    oracle = FakeOracle(OracleError("Exceeded max retries (3) for the cloud backend"))
    store, log, scheduler = build(oracle)

    await scheduler.trigger("r-drone-0")

    assert store.get("r-drone-0").status is DroneStatus.IDLE
    [entry] = log.entries()
    assert entry.message == (
        "An error occurred during decision making: Exceeded max retries (3) for the cloud backend"
    )


@pytest.mark.asyncio
async def test_unknown_backend_propagates():
    oracle = FakeOracle(UnknownBackendError("Carrier Pigeon"))
    _, _, scheduler = build(oracle)

    with pytest.raises(UnknownBackendError):
        await scheduler.trigger("b-drone-0")

    assert scheduler.thinking == frozenset()


@pytest.mark.asyncio
async def test_trigger_is_noop_unless_running_and_active():
    oracle = FakeOracle()
    store, _, scheduler = build(oracle)
    store.update_agent("b-drone-1", status=DroneStatus.DISABLED, health=0)

    assert await scheduler.trigger("b-drone-1") is False
    assert await scheduler.trigger("x-drone-7") is False

    store.state = SimulationState.PAUSED
    assert await scheduler.trigger("b-drone-0") is False
    assert oracle.calls == []


@pytest.mark.asyncio
async def test_second_trigger_while_thinking_is_ignored():
    gate = asyncio.Event()
    oracle = FakeOracle(stratagem(AttackAction(target_id="r-drone-0")), gate=gate)
    store, _, scheduler = build(oracle)

    first = asyncio.create_task(scheduler.trigger("b-drone-0"))
    await asyncio.sleep(0)

    assert store.get("b-drone-0").status is DroneStatus.ASSESSING
    assert scheduler.thinking == frozenset({"b-drone-0"})
    assert await scheduler.trigger("b-drone-0") is False

    gate.set()
    assert await first is True
    assert len(oracle.calls) == 1
    assert scheduler.thinking == frozenset()
    assert store.get("b-drone-0").status is DroneStatus.ATTACKING


@pytest.mark.asyncio
async def test_result_discarded_when_drone_disabled_mid_flight():
    gate = asyncio.Event()
    oracle = FakeOracle(stratagem(AttackAction(target_id="r-drone-0")), gate=gate)
    store, log, scheduler = build(oracle)

    pending = asyncio.create_task(scheduler.trigger("b-drone-0"))
    await asyncio.sleep(0)
    store.update_agent("b-drone-0", status=DroneStatus.DISABLED, health=0)
    gate.set()
    await pending

    drone = store.get("b-drone-0")
    assert drone.status is DroneStatus.DISABLED
    assert drone.target_id is None
    assert log.entries() == []


@pytest.mark.asyncio
async def test_result_discarded_after_pause_and_resume():
    gate = asyncio.Event()
    oracle = FakeOracle(stratagem(AttackAction(target_id="r-drone-0")), gate=gate)
    store, log, scheduler = build(oracle)

    pending = asyncio.create_task(scheduler.trigger("b-drone-0"))
    await asyncio.sleep(0)
    # Pause then resume before the answer lands: new epoch, same Running state
    store.state = SimulationState.PAUSED
    store.invalidate()
    store.state = SimulationState.RUNNING
    gate.set()
    await pending

    drone = store.get("b-drone-0")
    assert drone.status is DroneStatus.ASSESSING
    assert drone.target_id is None
    assert log.entries() == []


@pytest.mark.asyncio
async def test_errors_after_stop_are_not_logged():
    gate = asyncio.Event()
    oracle = FakeOracle(OracleError("boom"), gate=gate)
    store, log, scheduler = build(oracle)

    pending = asyncio.create_task(scheduler.trigger("b-drone-0"))
    await asyncio.sleep(0)
    store.state = SimulationState.STOPPED
    store.invalidate()
    gate.set()
    await pending

    assert log.entries() == []


@pytest.mark.asyncio
async def test_start_arms_one_timer_per_active_drone_and_stop_cancels():
    oracle = FakeOracle()
    store, _, scheduler = build(oracle)
    store.update_agent("r-drone-1", status=DroneStatus.DISABLED, health=0)

    scheduler.start()
    assert scheduler.pending_timers == 3

    scheduler.stop()
    assert scheduler.pending_timers == 0
    await asyncio.sleep(0)
    assert oracle.calls == []


@pytest.mark.asyncio
async def test_think_loops_keep_running_and_never_overlap_per_drone():
    oracle = FakeOracle(stratagem(HoldAction()))
    _, _, scheduler = build(oracle, min_delay=0.001, max_delay=0.005, rng=random.Random(5))

    scheduler.start()
    await asyncio.sleep(0.2)
    await scheduler.shutdown()

    per_drone = defaultdict(int)
    for drone_id, *_ in oracle.calls:
        per_drone[drone_id] += 1
    assert set(per_drone) == {"b-drone-0", "b-drone-1", "r-drone-0", "r-drone-1"}
    assert all(count >= 2 for count in per_drone.values())
    assert max(oracle.max_concurrent.values()) == 1
    assert scheduler.pending_timers == 0


@pytest.mark.asyncio
async def test_fatal_cycle_error_reaches_owner():
    fatal = []
    oracle = FakeOracle(UnknownBackendError("Carrier Pigeon"))
    _, _, scheduler = build(oracle, min_delay=0.001, max_delay=0.002, on_fatal=fatal.append)

    scheduler.start()
    await asyncio.sleep(0.05)
    scheduler.stop()

    assert fatal
    assert isinstance(fatal[0], UnknownBackendError)


def test_next_delay_stays_in_window():
    scheduler = DecisionScheduler(
        WorldStore([], "p"), EventLog(), FakeOracle(), lambda swarm: None, rng=random.Random(11)
    )
    for _ in range(100):
        assert 5.0 <= scheduler.next_delay() < 10.0
