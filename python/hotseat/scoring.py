"""
Scoring Engine.

Maps the player's own answer selection to a stock-price delta plus
presentation metadata. The host backend never contributes a number here:
it only narrates and flags contradictions.

Randomness is limited to a single uniform draw per answer from an injected
random.Random, so a seeded generator pins exact outputs. Every delta is
clamped into its bucket's documented band and rounded to two decimals.

Example:
    >>> engine = ScoringEngine(rng=random.Random(7))
    >>> result = engine.score(ScoreContext(bucket=Bucket.GOOD))
    >>> 1.5 <= result.delta <= 2.8
    True

Last Grunted: 10/15/2026
"""

from __future__ import annotations

import logging
import math
import random
import re
from typing import Final

from .models import Bucket, ScoreContext, ScoreResult


__all__ = [
    "ScoringEngine",
    "BUCKET_BANDS",
    "CONTRADICTION_BAND",
    "has_metrics",
    "streak_bonus",
]


logger = logging.getLogger(__name__)


# =============================================================================
# Bands and Pressure Rules
# =============================================================================

GOOD_RANGE: Final[tuple[float, float]] = (1.50, 2.80)
OK_RANGE: Final[tuple[float, float]] = (0.20, 0.90)
EVASIVE_RANGE: Final[tuple[float, float]] = (-1.50, -0.50)
BAD_RANGE: Final[tuple[float, float]] = (-3.50, -2.00)

# Metrics in an answer nudge OK up and soften EVASIVE, which stays negative.
METRICS_OK_BONUS: Final[float] = 0.30
METRICS_EVASIVE_RELIEF: Final[float] = 0.60
EVASIVE_CEILING: Final[float] = -0.10

CONTRADICTION_DELTA: Final[float] = -1.25

# Streak bonus: once the evasive streak before an answer reaches the
# threshold, each further step adds STREAK_STEP, up to STREAK_CAP.
STREAK_THRESHOLD: Final[int] = 1
STREAK_STEP: Final[float] = 0.10
STREAK_CAP: Final[float] = 0.30

# Closing stretch: last turn(s) or final seconds scale penalties up.
CLOSING_TURNS: Final[int] = 1
CLOSING_SECONDS: Final[float] = 15.0
CLOSING_MULTIPLIER: Final[float] = 1.10

# Documented min/max of the delta each rule can produce.
BUCKET_BANDS: Final[dict[Bucket, tuple[float, float]]] = {
    Bucket.GOOD: GOOD_RANGE,
    Bucket.OK: (OK_RANGE[0], OK_RANGE[1] + METRICS_OK_BONUS),
    Bucket.EVASIVE: (
        round((EVASIVE_RANGE[0] - STREAK_CAP) * CLOSING_MULTIPLIER, 2),
        EVASIVE_CEILING,
    ),
    Bucket.BAD: (
        round((BAD_RANGE[0] - STREAK_CAP) * CLOSING_MULTIPLIER, 2),
        BAD_RANGE[1],
    ),
}
CONTRADICTION_BAND: Final[tuple[float, float]] = (-1.40, -1.10)

_TONES: Final[dict[Bucket, str]] = {
    Bucket.GOOD: "Market reassured",
    Bucket.OK: "Investors cautiously optimistic",
    Bucket.EVASIVE: "Investors unconvinced",
    Bucket.BAD: "Confidence shaken",
}

_METRIC_TERMS = re.compile(
    r"\b(arr|mrr|cac|ltv|churn|margin|runway|growth|gmv|ebitda)\b",
    re.IGNORECASE,
)


def has_metrics(text: str | None) -> bool:
    """
    Heuristic: does the answer cite numbers or unit economics?

    Any digit, percent sign, currency symbol, or a common SaaS metric term
    counts.
    """
    if not text:
        return False
    return (
        any(ch.isdigit() for ch in text)
        or "%" in text
        or any(symbol in text for symbol in "$€£")
        or _METRIC_TERMS.search(text) is not None
    )


def streak_bonus(evasive_streak_before: int) -> float:
    """Extra penalty for an answer given after `evasive_streak_before` evasive ones."""
    if evasive_streak_before < STREAK_THRESHOLD:
        return 0.0
    steps = evasive_streak_before - STREAK_THRESHOLD + 1
    return min(steps * STREAK_STEP, STREAK_CAP)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _in_closing_stretch(context: ScoreContext) -> bool:
    if context.turns_remaining is not None and context.turns_remaining <= CLOSING_TURNS:
        return True
    if context.time_left_seconds is not None and context.time_left_seconds <= CLOSING_SECONDS:
        return True
    return False


# =============================================================================
# Scoring Engine
# =============================================================================

class ScoringEngine:
    """
    Deterministic-for-a-seed scoring of answers.

    Args:
        rng: Random source for the per-answer draw. Defaults to a fresh,
             unseeded random.Random.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def score(self, context: ScoreContext) -> ScoreResult:
        """
        Score one answer.

        Args:
            context: The chosen bucket, contradiction flag, streak before this
                     answer and optional pressure inputs.

        Returns:
            ScoreResult with a finite, two-decimal delta inside the band for
            the rule that fired.
        """
        closing = _in_closing_stretch(context)
        multiplier = CLOSING_MULTIPLIER if closing else 1.0

        if context.is_contradiction:
            delta = self._finish(CONTRADICTION_DELTA * multiplier, CONTRADICTION_BAND)
            return ScoreResult(
                delta=delta,
                tone="Contradiction detected",
                tick="down",
                flash="red",
                next_evasive_streak=0,
            )

        bucket = context.bucket
        bonus = streak_bonus(context.evasive_streak_before)
        metrics = has_metrics(context.answer_text)

        if bucket == Bucket.GOOD:
            raw = self._draw(GOOD_RANGE)
            next_streak = 0
        elif bucket == Bucket.OK:
            raw = self._draw(OK_RANGE)
            if metrics:
                raw += METRICS_OK_BONUS
            next_streak = 0
        elif bucket == Bucket.EVASIVE:
            raw = (self._draw(EVASIVE_RANGE) - bonus) * multiplier
            if metrics:
                raw += METRICS_EVASIVE_RELIEF
            raw = min(raw, EVASIVE_CEILING)
            next_streak = context.evasive_streak_before + 1
        else:
            raw = (self._draw(BAD_RANGE) - bonus) * multiplier
            next_streak = 0

        delta = self._finish(raw, BUCKET_BANDS[bucket])
        return ScoreResult(
            delta=delta,
            tone=_TONES[bucket],
            tick="up" if delta > 0 else "down",
            flash="red" if bucket == Bucket.BAD else None,
            next_evasive_streak=next_streak,
        )

    def _draw(self, bounds: tuple[float, float]) -> float:
        return self._rng.uniform(*bounds)

    def _finish(self, raw: float, band: tuple[float, float]) -> float:
        if not math.isfinite(raw):
            logger.warning("Non-finite delta %r replaced with band floor %.2f", raw, band[0])
            raw = band[0]
        return round(_clamp(raw, *band), 2)
