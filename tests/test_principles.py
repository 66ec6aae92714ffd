import asyncio

import pytest

from swarmverse.event_log import EventLog
from swarmverse.principles import ART_OF_WAR_PRINCIPLES, PrincipleClock
from swarmverse.schemas import LogCategory
from swarmverse.state import WorldStore


def _clock(principles=ART_OF_WAR_PRINCIPLES, period=25.0):
    store = WorldStore([], principles[0])
    log = EventLog()
    return store, log, PrincipleClock(store, log, principles=principles, period=period)


def test_thirteen_chapters_in_order():
    assert len(ART_OF_WAR_PRINCIPLES) == 13
    assert ART_OF_WAR_PRINCIPLES[0].startswith("Laying Plans")
    assert ART_OF_WAR_PRINCIPLES[-1].startswith("The Use of Spies")


def test_advance_updates_store_and_logs():
    store, log, clock = _clock()

    principle = clock.advance()

    assert principle == ART_OF_WAR_PRINCIPLES[1]
    assert store.principle == ART_OF_WAR_PRINCIPLES[1]
    [entry] = log.entries()
    assert entry.category is LogCategory.INFO
    assert entry.author == "System"
    assert entry.message == f'Guiding principle updated to: "{ART_OF_WAR_PRINCIPLES[1]}"'


def test_advance_wraps_after_last_principle():
    store, _, clock = _clock(principles=("A", "B", "C"))

    seen = [clock.advance() for _ in range(4)]

    assert seen == ["B", "C", "A", "B"]
    assert store.principle == "B"


def test_reset_returns_to_first_principle_without_logging():
    store, log, clock = _clock(principles=("A", "B"))
    clock.advance()
    log.clear()

    assert clock.reset() == "A"
    assert store.principle == "A"
    assert log.entries() == []


def test_empty_principle_list_rejected():
    with pytest.raises(ValueError):
        PrincipleClock(WorldStore([], "x"), EventLog(), principles=())


@pytest.mark.asyncio
async def test_run_rotates_on_its_period_until_cancelled():
    _, _, clock = _clock(principles=("A", "B", "C"), period=0.01)

    task = asyncio.create_task(clock.run())
    await asyncio.sleep(0.055)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    rotations = len(clock.log)
    assert 1 <= rotations <= 6
    assert clock.current == ("A", "B", "C")[rotations % 3]
