"""Console output for swarmverse battles.

Journal lines are colour coded by what produced them so a terminal run reads
like the battle log: combat in blue, stratagems in yellow, errors and retry
notices in red, kills and victory in green, system notices in cyan. Every line
also carries a short tag so the output stays readable without colour.
"""

import os
from enum import Enum
from typing import Dict, Tuple

from .schemas import LogCategory, LogEntry, SwarmId


class Color(Enum):
    """ANSI color codes for terminal output."""

    BLUE = "\033[94m"      # Combat, blue swarm
    RED = "\033[91m"       # Errors, red swarm
    YELLOW = "\033[93m"    # Stratagems
    GREEN = "\033[92m"     # Disabled drones, victory
    CYAN = "\033[96m"      # System notices

    BOLD = "\033[1m"
    RESET = "\033[0m"


# Markers per category (color-blind accessible)
LOG_TAG_COMBAT = "[•]"
LOG_TAG_DECISION = "[AI]"
LOG_TAG_ERROR = "[!]"
LOG_TAG_SUCCESS = "[✓]"
LOG_TAG_INFO = "[i]"

_CATEGORY_STYLE: Dict[LogCategory, Tuple[str, Color]] = {
    LogCategory.ATTACK: (LOG_TAG_COMBAT, Color.BLUE),
    LogCategory.COUNCIL: (LOG_TAG_DECISION, Color.YELLOW),
    LogCategory.STRATAGEM: (LOG_TAG_DECISION, Color.YELLOW),
    LogCategory.ERROR: (LOG_TAG_ERROR, Color.RED),
    LogCategory.SUCCESS: (LOG_TAG_SUCCESS, Color.GREEN),
    LogCategory.INFO: (LOG_TAG_INFO, Color.CYAN),
}


def colors_enabled() -> bool:
    return not os.getenv("SWARMVERSE_NO_COLOR")


def debug_llm_enabled() -> bool:
    """Return True when DEBUG_LLM asks for prompt/response dumps."""
    return os.getenv("DEBUG_LLM", "").lower() in ("1", "true", "yes")


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI codes unless SWARMVERSE_NO_COLOR is set."""

    if not colors_enabled():
        return text
    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix
    return f"{prefix}{text}{Color.RESET.value}"


def swarm_color(swarm_id: SwarmId) -> Color:
    return Color.BLUE if swarm_id is SwarmId.BLUE else Color.RED


def format_entry(entry: LogEntry) -> str:
    """``HH:MM:SS author: message`` without tag or colour."""

    prefix = f"{entry.timestamp:%H:%M:%S}"
    if entry.author:
        prefix += f" {entry.author}"
    return f"{prefix}: {entry.message}"


def echo_entry(entry: LogEntry) -> None:
    """Print one journal entry with its category tag and colour."""

    tag, color = _CATEGORY_STYLE[entry.category]
    bold = entry.category is LogCategory.SUCCESS and entry.author == "System"
    print(colored(f"{tag} {format_entry(entry)}", color, bold=bold))


def log_banner(text: str) -> None:
    print(colored(f"\n=== {text} ===", Color.CYAN, bold=True))
