"""Environment-level configuration for the First 48 app.

This module isolates things that depend on the deployment environment
(API keys, relay URL, model choices) from the pacing knobs of the game
itself. Both are plain dataclasses so tests can build them directly.
"""

import os
from dataclasses import dataclass, field
from typing import Tuple


@dataclass
class EnvironmentSettings:
    """Environment / deployment settings."""

    openai_api_key: str | None = None
    dialogue_mode: str = "relay"
    dialogue_relay_url: str = "http://localhost:3001/chat"
    dialogue_model: str = "gpt-4o-mini"
    dialogue_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "EnvironmentSettings":
        """Build settings from environment variables."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            dialogue_mode=os.getenv("DIALOGUE_MODE", "relay").lower(),
            dialogue_relay_url=os.getenv(
                "DIALOGUE_RELAY_URL", "http://localhost:3001/chat"
            ),
            dialogue_model=os.getenv("DIALOGUE_MODEL", "gpt-4o-mini"),
            dialogue_timeout=float(os.getenv("DIALOGUE_TIMEOUT", "30")),
        )


@dataclass
class GameSettings:
    """Pacing and heuristic tunables for a game session.

    The fatigue window and the lock timeout have no documented rationale in
    the case design, so they live here instead of being hard-coded.
    """

    # Conversation heuristics
    fatigue_minutes: int = 15
    history_limit: int = 20
    mention_threshold: int = 5
    continuation_bonus: int = 8

    # Real-time delays (seconds) between staged narration steps
    transition_delay: float = 1.5
    trial_step_delay: float = 2.0

    # How long a caller waits for the state lock before giving up
    lock_timeout_seconds: float = 10.0

    # In-game minutes offered by the time-skip buttons
    time_skip_presets: Tuple[int, ...] = field(default=(30, 60, 120, 240))

    @classmethod
    def from_env(cls) -> "GameSettings":
        """Build game settings, letting env vars override the defaults."""
        return cls(
            fatigue_minutes=int(os.getenv("FATIGUE_MINUTES", "15")),
            transition_delay=float(os.getenv("TRANSITION_DELAY", "1.5")),
            trial_step_delay=float(os.getenv("TRIAL_STEP_DELAY", "2.0")),
            lock_timeout_seconds=float(os.getenv("STATE_LOCK_TIMEOUT", "10")),
        )

    @classmethod
    def instant(cls) -> "GameSettings":
        """Settings with zero narration delays (used by tests and replays)."""
        return cls(transition_delay=0.0, trial_step_delay=0.0)


def get_env_settings() -> EnvironmentSettings:
    """Convenience accessor for environment settings."""
    return EnvironmentSettings.from_env()


def get_game_settings() -> GameSettings:
    """Convenience accessor for game settings."""
    return GameSettings.from_env()
