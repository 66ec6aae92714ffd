"""
Swarmverse Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from typing import List

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Cloud backend credential. API_KEY is accepted for older setups.
    GOOGLE_API_KEY: str | None = os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY")

    # Local backend (Ollama or any OpenAI-compatible chat-completions server)
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

    # Per-swarm model selection (ids from SUPPORTED_MODELS)
    BLUE_MODEL: str = os.getenv("BLUE_MODEL", "qwen3:8b")
    RED_MODEL: str = os.getenv("RED_MODEL", "qwen3:8b")

    # Battle setup
    DRONES_PER_SWARM: int = int(os.getenv("DRONES_PER_SWARM", "5"))

    # Clocks (seconds)
    TICK_SECONDS: float = float(os.getenv("TICK_SECONDS", "0.1"))
    PRINCIPLE_ROTATION_SECONDS: float = float(os.getenv("PRINCIPLE_ROTATION_SECONDS", "25"))
    THINK_DELAY_MIN_SECONDS: float = float(os.getenv("THINK_DELAY_MIN_SECONDS", "5"))
    THINK_DELAY_MAX_SECONDS: float = float(os.getenv("THINK_DELAY_MAX_SECONDS", "10"))
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "120"))

    @classmethod
    def has_cloud_credential(cls) -> bool:
        return bool(cls.GOOGLE_API_KEY)

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors for inconsistent values."""
        problems: List[str] = []
        if cls.DRONES_PER_SWARM < 1:
            problems.append("DRONES_PER_SWARM must be at least 1")
        if cls.TICK_SECONDS <= 0:
            problems.append("TICK_SECONDS must be positive")
        if cls.PRINCIPLE_ROTATION_SECONDS <= 0:
            problems.append("PRINCIPLE_ROTATION_SECONDS must be positive")
        if cls.THINK_DELAY_MIN_SECONDS < 0 or cls.THINK_DELAY_MAX_SECONDS < cls.THINK_DELAY_MIN_SECONDS:
            problems.append(
                "THINK_DELAY_MIN_SECONDS must be >= 0 and <= THINK_DELAY_MAX_SECONDS"
            )
        if cls.LLM_TIMEOUT_SECONDS <= 0:
            problems.append("LLM_TIMEOUT_SECONDS must be positive")
        if problems:
            raise ValueError("Invalid swarmverse configuration:\n  - " + "\n  - ".join(problems))

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Swarmverse Configuration:",
            f"  Blue Model: {cls.BLUE_MODEL}",
            f"  Red Model: {cls.RED_MODEL}",
            f"  Cloud Credential: {'set' if cls.has_cloud_credential() else 'missing'}",
            f"  Ollama: {cls.OLLAMA_BASE_URL}",
            f"  Drones per Swarm: {cls.DRONES_PER_SWARM}",
            f"  Tick: {cls.TICK_SECONDS}s, Principle Rotation: {cls.PRINCIPLE_ROTATION_SECONDS}s",
            f"  Think Delay: {cls.THINK_DELAY_MIN_SECONDS}-{cls.THINK_DELAY_MAX_SECONDS}s",
        ]
        return "\n".join(lines)
