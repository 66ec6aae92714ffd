"""Skirmish: blue swarm vs red swarm until one side is disabled.

By default both swarms use a local Ollama model (no API key needed):

    uv run python examples/skirmish/run.py --duration 300

Cloud models need GOOGLE_API_KEY (or API_KEY) in the environment or .env:

    uv run python examples/skirmish/run.py --blue-model gemini-2.5-flash --red-model qwen3:8b

Set SWARMVERSE_VERBOSE=true to stream the battle journal while it runs, and
DEBUG_LLM=true to print every prompt and raw response.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import random
import sys

from swarmverse import BackendUnavailableError, Simulation, SwarmId
from swarmverse.config import Config
from swarmverse.event_log import EventLog
from swarmverse.logging_utils import Color, colored, format_entry, log_banner, swarm_color
from swarmverse.oracle import SUPPORTED_MODELS


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Decentralized Sun Tzu drone swarm battle")
    parser.add_argument("--blue-model", default=Config.BLUE_MODEL, help="Model id for the blue swarm")
    parser.add_argument("--red-model", default=Config.RED_MODEL, help="Model id for the red swarm")
    parser.add_argument(
        "--duration",
        type=float,
        default=600.0,
        help="Give up after this many seconds if nobody has won",
    )
    parser.add_argument(
        "--drones",
        type=int,
        default=Config.DRONES_PER_SWARM,
        help="Drones per swarm",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for jitter and combat sampling")
    parser.add_argument("--list-models", action="store_true", help="Print supported models and exit")
    return parser.parse_args()


def print_models() -> None:
    print("Supported models:")
    for model in SUPPORTED_MODELS:
        print(f"  {model.id:<24} {model.name} [{model.provider.value}]")


def print_summary(simulation: Simulation) -> None:
    log_banner("Final Roster")
    for swarm in (SwarmId.BLUE, SwarmId.RED):
        label = f"{swarm.display_name} ({simulation.model_for(swarm).name})"
        print(colored(label, swarm_color(swarm), bold=True))
        for drone in simulation.store.roster(swarm):
            print(f"  {drone.describe()}")

    log_banner("Last Journal Entries")
    for entry in simulation.log.recent(10):
        print(f"  {format_entry(entry)}")


async def main(args: argparse.Namespace) -> int:
    verbose = os.getenv("SWARMVERSE_VERBOSE", "").lower() in ("1", "true", "yes")
    simulation = Simulation.from_config(
        drones_per_swarm=args.drones,
        event_log=EventLog(echo=verbose),
        rng=random.Random(args.seed),
    )
    try:
        simulation.set_model(SwarmId.BLUE, args.blue_model)
        simulation.set_model(SwarmId.RED, args.red_model)
    except KeyError as exc:
        print(colored(str(exc.args[0]), Color.RED))
        return 2

    print(Config.display())
    print()

    try:
        simulation.start()
    except BackendUnavailableError as exc:
        print(colored(str(exc), Color.RED))
        return 2

    try:
        outcome = await simulation.run_until_finished(timeout=args.duration)
    finally:
        await simulation.shutdown()

    print_summary(simulation)
    if simulation.fatal_error is not None:
        print(colored(f"\nSimulation halted: {simulation.fatal_error}", Color.RED))
        return 1
    if outcome is None:
        print(colored(f"\nNo decision after {args.duration:.0f}s.", Color.YELLOW))
    return 0


if __name__ == "__main__":
    args = parse_args()
    if args.list_models:
        print_models()
        sys.exit(0)
    sys.exit(asyncio.run(main(args)))
