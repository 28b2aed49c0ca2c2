"""
Configuration for The Hot Seat.

Game rules live in GameConfig; process-level settings (bind address, model,
CORS) live in RuntimeConfig. Both are loaded from environment variables,
with a `.env` file next to the python/ directory picked up automatically.

Last Grunted: 10/14/2026
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from dotenv import load_dotenv


_env_path = Path(__file__).parent.parent / ".env"
load_dotenv(_env_path)


# =============================================================================
# Game Rules
# =============================================================================

STARTING_STOCK_PRICE: Final[float] = 100.0
FAIL_STOCK_PRICE: Final[float] = 95.0
TOTAL_QUESTIONS: Final[int] = 5

# Timing (seconds)
INTRO_DELAY_SECONDS: Final[float] = 3.0
SILENCE_SECONDS: Final[float] = 10.0

SHOW_NAME: Final[str] = "THE HOT SEAT"
HOST_NAME: Final[str] = "Alex Sterling"

SILENCE_LINES: Final[tuple[str, ...]] = (
    "That's not an answer.",
    "You're avoiding the question.",
    "Are you going to respond?",
    "Silence isn't reassuring.",
    "The market's noticing.",
)

# Service defaults
DEFAULT_HOST: Final[str] = "0.0.0.0"
DEFAULT_PORT: Final[int] = 8080
DEFAULT_MODEL: Final[str] = "gpt-5-mini"
DEFAULT_REASONING_EFFORT: Final[str] = "low"
DEFAULT_CORS_ORIGINS: Final[tuple[str, ...]] = (
    "http://localhost:3000",
    "http://localhost:5173",
)


@dataclass(frozen=True)
class GameConfig:
    """
    Rules for one interview run.

    Attributes:
        start_score: Stock price at the start of the interview.
        fail_score: The run fails as soon as the price drops below this.
        max_turns: Number of questions in the interview (at least 1).
        intro_delay_seconds: Pause on the intro screen before going live.
        silence_seconds: Delay before the host calls out a silent player.
            Zero or negative disables the callout.
        next_question_delay: (min, max) seconds before the next turn is armed.
            (0, 0) arms immediately.
    """

    start_score: float = STARTING_STOCK_PRICE
    fail_score: float = FAIL_STOCK_PRICE
    max_turns: int = TOTAL_QUESTIONS
    intro_delay_seconds: float = INTRO_DELAY_SECONDS
    silence_seconds: float = SILENCE_SECONDS
    next_question_delay: tuple[float, float] = (0.0, 0.0)
    silence_lines: tuple[str, ...] = field(default=SILENCE_LINES)

    def __post_init__(self) -> None:
        if self.max_turns < 1:
            raise ValueError(f"max_turns must be at least 1. Got: {self.max_turns}")
        if self.start_score < 0:
            raise ValueError(f"start_score must be non-negative. Got: {self.start_score}")
        low, high = self.next_question_delay
        if low < 0 or high < low:
            raise ValueError(
                f"next_question_delay must be a (min, max) range with 0 <= min <= max. "
                f"Got: {self.next_question_delay}"
            )


@dataclass(frozen=True)
class RuntimeConfig:
    """Process-level settings for the HTTP service and the host agent."""

    host: str
    port: int
    model: str
    reasoning_effort: str
    cors_origins: tuple[str, ...]
    game: GameConfig


def _read_number(name: str, default: float, cast: type) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a {cast.__name__}. Got: {raw}") from exc


def load_game_config() -> GameConfig:
    """
    Load game rules from environment with strict validation.

    Environment Variables:
        HOTSEAT_START_SCORE: Starting stock price (default 100.0)
        HOTSEAT_FAIL_SCORE: Failure threshold (default 95.0)
        HOTSEAT_MAX_TURNS: Number of questions (default 5)
        HOTSEAT_INTRO_DELAY: Intro screen delay in seconds (default 3.0)
        HOTSEAT_SILENCE_SECONDS: Silence callout delay in seconds (default 10.0)

    Raises:
        RuntimeError: If a value cannot be parsed or breaks a game invariant.
    """
    try:
        return GameConfig(
            start_score=_read_number("HOTSEAT_START_SCORE", STARTING_STOCK_PRICE, float),
            fail_score=_read_number("HOTSEAT_FAIL_SCORE", FAIL_STOCK_PRICE, float),
            max_turns=int(_read_number("HOTSEAT_MAX_TURNS", TOTAL_QUESTIONS, int)),
            intro_delay_seconds=_read_number("HOTSEAT_INTRO_DELAY", INTRO_DELAY_SECONDS, float),
            silence_seconds=_read_number("HOTSEAT_SILENCE_SECONDS", SILENCE_SECONDS, float),
        )
    except ValueError as exc:
        raise RuntimeError(f"Invalid game configuration: {exc}") from exc


def load_runtime_config() -> RuntimeConfig:
    """Load runtime config from environment with strict validation."""
    host = (os.environ.get("HOTSEAT_HOST", DEFAULT_HOST) or "").strip()
    if not host:
        raise RuntimeError("HOTSEAT_HOST resolved to empty value.")

    port = int(_read_number("HOTSEAT_PORT", DEFAULT_PORT, int))
    if port < 1 or port > 65535:
        raise RuntimeError(f"HOTSEAT_PORT must be in range 1-65535. Got: {port}.")

    model = (os.environ.get("OPENAI_MODEL", DEFAULT_MODEL) or "").strip()
    if not model:
        raise RuntimeError("OPENAI_MODEL resolved to empty value.")

    reasoning_effort = (
        os.environ.get("OPENAI_REASONING_EFFORT", DEFAULT_REASONING_EFFORT) or ""
    ).strip().lower()
    if reasoning_effort not in {"low", "medium", "high"}:
        raise RuntimeError(
            f"OPENAI_REASONING_EFFORT must be low, medium or high. Got: {reasoning_effort!r}"
        )

    origins_raw = os.environ.get("HOTSEAT_CORS_ORIGINS")
    if origins_raw:
        cors_origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip())
    else:
        cors_origins = DEFAULT_CORS_ORIGINS

    return RuntimeConfig(
        host=host,
        port=port,
        model=model,
        reasoning_effort=reasoning_effort,
        cors_origins=cors_origins,
        game=load_game_config(),
    )
