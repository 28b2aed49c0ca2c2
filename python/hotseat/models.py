"""
Pydantic models for The Hot Seat interview engine.

Defines the answer buckets, the validated host payload, scoring inputs and
outputs, and the interview state owned by the orchestrator.

Last Grunted: 10/14/2026
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# =============================================================================
# Enums
# =============================================================================

class Bucket(str, Enum):
    """
    Answer-quality classification used to select a scoring rule.

    The backend may echo "neutral" for the middle bucket; the normalizer
    maps that onto OK.
    """
    GOOD = "good"
    OK = "ok"
    EVASIVE = "evasive"
    BAD = "bad"


class Sentiment(str, Enum):
    """Tone of the host's spoken line (debug only)."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class GamePhase(str, Enum):
    """Phases of one interview run."""
    SETUP = "setup"
    INTRO = "intro"
    INTERVIEW = "interview"
    SUMMARY = "summary"


class Outcome(str, Enum):
    """Terminal result of an interview."""
    SUCCESS = "success"
    FAILURE = "failure"


class PayloadShape(str, Enum):
    """
    Envelope variants the normalizer recognises.

    Attributes:
        CURRENT: Explicit bucket classification plus contradiction flag.
        LEGACY: Numeric stock impact and free-text tone, no bucket.
        UNKNOWN: Not a mapping at all; every field is synthesized.
    """
    CURRENT = "current"
    LEGACY = "legacy"
    UNKNOWN = "unknown"


# Every offered option label maps to exactly one scoring bucket.
OPTION_BUCKETS: dict[str, Bucket] = {
    "good": Bucket.GOOD,
    "ok": Bucket.OK,
    "evasive": Bucket.EVASIVE,
    "bad": Bucket.BAD,
}

DEFAULT_OPTION_LABELS: tuple[str, ...] = ("good", "ok", "evasive")


# =============================================================================
# Profile and Host Payload
# =============================================================================

class CompanyProfile(BaseModel):
    """
    The player's company, submitted on the setup screen.

    Example:
        >>> profile = CompanyProfile(
        ...     name="OmniCorp",
        ...     industry="Biotechnology",
        ...     mission="We make the world better by curing boredom."
        ... )
    """
    name: str = Field(..., description="Company name")
    industry: str = Field(default="", description="Industry (optional)")
    mission: str = Field(..., description="Mission statement, the pitch")

    def is_complete(self) -> bool:
        """Required fields (name and mission) are non-blank."""
        return bool(self.name.strip()) and bool(self.mission.strip())


class HostTurnPayload(BaseModel):
    """
    A validated host turn, safe to use without further checks.

    Produced only by ResponseNormalizer. `sentiment` and `reason` are debug
    information and are never shown to the player.
    """
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Spoken line on-air")
    bucket: Bucket = Field(..., description="Backend's classification echo (advisory)")
    is_contradiction: bool = Field(default=False, description="Player contradicted an earlier claim")
    sentiment: Optional[Sentiment] = Field(default=None, description="Tone of the spoken line")
    reason: Optional[str] = Field(default=None, description="Backend's short explanation")
    options: dict[str, str] = Field(..., description="Answer options for the next turn, by label")
    is_over: bool = Field(default=False, description="Backend's over/continue flag (advisory)")
    shape: PayloadShape = Field(default=PayloadShape.CURRENT, description="Envelope variant recognised")
    repairs: tuple[str, ...] = Field(default=(), description="Fields substituted by the normalizer")


# =============================================================================
# Scoring
# =============================================================================

class ScoreContext(BaseModel):
    """
    Inputs for scoring one answer. Built per answer, never persisted.

    The bucket always comes from the player's own selection.
    """
    model_config = ConfigDict(frozen=True)

    bucket: Bucket
    is_contradiction: bool = False
    evasive_streak_before: int = Field(default=0, ge=0)
    turns_remaining: Optional[int] = Field(default=None, ge=0)
    time_left_seconds: Optional[float] = None
    answer_text: Optional[str] = None


class ScoreResult(BaseModel):
    """Delta plus presentation metadata for one scored answer."""
    model_config = ConfigDict(frozen=True)

    delta: float
    tone: str
    tick: Literal["up", "down"]
    flash: Optional[Literal["red"]] = None
    next_evasive_streak: int = Field(default=0, ge=0)


# =============================================================================
# Interview State
# =============================================================================

class WorstAnswer(BaseModel):
    """The most damaging answer of the run, shown on the summary screen."""
    player_text: str
    question_text: Optional[str] = None
    bucket: Bucket
    delta: float
    reason: Optional[str] = None
    turn_index: int


class InterviewState(BaseModel):
    """
    Cumulative state of one interview.

    Owned by InterviewOrchestrator; callers receive copies.

    Invariants:
        - score >= 0, two-decimal precision
        - lowest_score never increases
        - 0 <= turn_index <= max_turns
        - outcome is terminal once set
    """
    score: float
    lowest_score: float
    awaiting_answer: bool = False
    evasive_streak: int = Field(default=0, ge=0)
    turn_index: int = Field(default=0, ge=0)
    max_turns: int = Field(..., ge=1)
    outcome: Optional[Outcome] = None
    worst_answer: Optional[WorstAnswer] = None
    audience_sentiment: int = Field(default=50, ge=0, le=100)


class Message(BaseModel):
    """One line of the on-air transcript."""
    id: str = Field(default_factory=lambda: f"msg_{uuid.uuid4().hex[:8]}")
    sender: Literal["host", "player"]
    text: str
    timestamp_utc: str = Field(default_factory=_utc_now)
    delta: Optional[float] = None
    tone: Optional[str] = None
    tick: Optional[Literal["up", "down"]] = None
    flash: Optional[Literal["red"]] = None
    bucket: Optional[Bucket] = None
