"""
Centralized configuration for the Judgment game server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.delays.trick_display)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get float environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class PhaseDelays:
    """
    Pauses (in seconds) between scheduled phase transitions.

    These give clients time to render a hand or a finished trick before
    the engine moves on.
    """
    prediction_prompt: float = 1.5   # deal -> requestPrediction
    turn_notify: float = 1.0         # playPhaseStart -> first yourTurnToPlay
    trick_display: float = 4.0       # trickWon -> nextTrick / roundEnd
    next_round: float = 5.0          # roundEnd -> next roundStart
    game_restart: float = 3.0        # gameOver -> new game
    disconnect_restart: float = 0.5  # disconnect -> restarted round


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Room settings
    MAX_ROOM_CODE_LENGTH: int = 32
    MAX_NAME_LENGTH: int = 32
    MAX_DECKS: int = 8

    delays: PhaseDelays = field(default_factory=PhaseDelays)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 3000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            MAX_ROOM_CODE_LENGTH=get_env_int("MAX_ROOM_CODE_LENGTH", 32),
            MAX_NAME_LENGTH=get_env_int("MAX_NAME_LENGTH", 32),
            MAX_DECKS=get_env_int("MAX_DECKS", 8),
            delays=PhaseDelays(
                prediction_prompt=get_env_float("DELAY_PREDICTION_PROMPT", 1.5),
                turn_notify=get_env_float("DELAY_TURN_NOTIFY", 1.0),
                trick_display=get_env_float("DELAY_TRICK_DISPLAY", 4.0),
                next_round=get_env_float("DELAY_NEXT_ROUND", 5.0),
                game_restart=get_env_float("DELAY_GAME_RESTART", 3.0),
                disconnect_restart=get_env_float("DELAY_DISCONNECT_RESTART", 0.5),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()
