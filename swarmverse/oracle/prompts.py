"""Prompt templates for the drone decision oracle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

from swarmverse.schemas import Drone, LogEntry


@dataclass
class PromptTemplate:
    """Represents a templated prompt with {{placeholder}} slots."""

    name: str
    system: str
    user: str
    description: str = ""


@dataclass
class RenderedPrompt:
    system: str
    user: str

    def combined(self) -> str:
        """Single-prompt form for backends without role separation."""
        return f"{self.system}\n\n{self.user}"


STRATAGEM_PROMPT = PromptTemplate(
    name="stratagem",
    system=(
        "You are an autonomous agent in a decentralized drone swarm, operating under the principles "
        "of Sun Tzu's \"The Art of War\".\n"
        "Your designation: {{drone_id}} (Swarm: {{swarm_id}})\n"
        "Your current health: {{health}}\n"
        "Your current position: ({{position}})\n\n"
        "The current guiding principle for all swarms is: \"{{principle}}\".\n\n"
        "Your task is to analyze the situation and decide YOUR OWN next action. Your response must be "
        "a single, valid JSON object, without any markdown formatting or explanations.\n\n"
        "JSON Structure:\n"
        "{\n"
        "  \"stratagem_name\": \"A brief, personal tactical name. e.g., 'Flanking Maneuver', "
        "'Calculated Retreat', 'Focused Fire'.\",\n"
        "  \"justification\": \"How my action follows the guiding principle. e.g., 'I will move to high "
        "ground to gain a better vantage point, following the Terrain principle.'\",\n"
        "  \"action\": {\n"
        "    \"type\": \"MOVE\" | \"ATTACK\" | \"HOLD\",\n"
        "    \"target_id\": \"enemy-drone-id\" | null,\n"
        "    \"position\": { \"x\": number, \"y\": number } | null\n"
        "  }\n"
        "}"
    ),
    user=(
        "SITUATION OVERVIEW:\n"
        "Your swarm must defeat the enemy swarm.\n\n"
        "FRIENDLY SWARM ({{swarm_id}}) STATUS:\n"
        "{{friendly_status}}\n\n"
        "ENEMY SWARM STATUS:\n"
        "{{enemy_status}}\n\n"
        "RECENT EVENTS:\n"
        "{{recent_events}}\n\n"
        "Now, provide YOUR OWN action as a valid JSON object."
    ),
    description="Asks one drone for its next MOVE / ATTACK / HOLD stratagem.",
)


def format_roster(drones: Sequence[Drone]) -> str:
    return "\n".join(drone.describe() for drone in drones)


def format_events(entries: Sequence[LogEntry]) -> str:
    return "\n".join(f"{entry.author or 'System'}: {entry.message}" for entry in entries)


def render_stratagem_prompt(
    drone: Drone,
    friendly: Sequence[Drone],
    enemies: Sequence[Drone],
    principle: str,
    recent_log: Sequence[LogEntry],
    *,
    template: PromptTemplate = STRATAGEM_PROMPT,
) -> RenderedPrompt:
    """Fill ``template`` with one drone's view of the battle."""

    enemy_status = format_roster(enemies)
    replacements: Dict[str, str] = {
        "{{drone_id}}": drone.id,
        "{{swarm_id}}": drone.swarm_id.value,
        "{{health}}": str(drone.health),
        "{{position}}": f"{drone.position.x:.0f}, {drone.position.y:.0f}",
        "{{principle}}": principle,
        "{{friendly_status}}": format_roster(friendly),
        "{{enemy_status}}": enemy_status or "No enemies detected.",
        "{{recent_events}}": format_events(recent_log),
    }

    # Placeholders don't nest, so one pass is enough
    system = template.system
    user = template.user
    for placeholder, value in replacements.items():
        system = system.replace(placeholder, value)
        user = user.replace(placeholder, value)

    return RenderedPrompt(system=system, user=user)


__all__ = ["PromptTemplate", "RenderedPrompt", "STRATAGEM_PROMPT", "render_stratagem_prompt"]
