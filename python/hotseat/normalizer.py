"""
Response Normalizer.

Contract enforcement between the interview engine and the generative host.
Whatever the backend returns (a dict, a JSON string, half a JSON string,
an older envelope, or nothing useful at all) comes out as a complete
HostTurnPayload. Malformed output is repaired, never raised.

Two envelope shapes are understood:

    current: {"text", "category", "isContradiction", "options", ...}
    legacy:  {"text", "stockChange", "sentiment", "isInterviewOver"}

Anything that is not a mapping is the unknown shape and gets a full
fallback payload.

Last Grunted: 10/15/2026
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Mapping
from typing import Any, Final, Iterable

from .models import (
    Bucket,
    DEFAULT_OPTION_LABELS,
    HostTurnPayload,
    OPTION_BUCKETS,
    PayloadShape,
    Sentiment,
)


__all__ = [
    "ResponseNormalizer",
    "classify_payload",
    "decode_envelope",
    "shape_option_text",
    "LEGACY_GOOD_THRESHOLD",
    "LEGACY_BAD_THRESHOLD",
    "MAX_OPTION_WORDS",
]


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Legacy numeric impact thresholds (inclusive).
LEGACY_GOOD_THRESHOLD: Final[float] = 0.5
LEGACY_BAD_THRESHOLD: Final[float] = -2.5
LEGACY_REASON: Final[str] = "Normalized from legacy host response"

MAX_OPTION_WORDS: Final[int] = 18

FALLBACK_TEXT: Final[str] = (
    "Let's keep going. What is the single biggest risk to your business this year?"
)
OPENING_FALLBACK_TEXT: Final[str] = (
    "Welcome to the show. What's the clearest way to describe what your company does?"
)
RETRY_TEXT: Final[str] = (
    "We seem to be having technical difficulties. Let's keep going. "
    "What's your next concrete step?"
)

FALLBACK_OPTIONS: Final[dict[str, str]] = {
    "good": "We can be specific: our core metric is retention and we report it monthly.",
    "ok": "We track a few metrics and review performance regularly across the team.",
    "evasive": "It's early days, but we're seeing strong interest and momentum.",
    "bad": "Honestly, we haven't really thought about that yet.",
}

OPENING_FALLBACK_OPTIONS: Final[dict[str, str]] = {
    "good": "We solve one specific problem for a defined customer group and measure retention.",
    "ok": "We help customers improve outcomes, and we track progress across a few metrics.",
    "evasive": "We're building something big and the market response has been very encouraging.",
    "bad": "It's hard to explain, you'd have to see it to understand it.",
}

RETRY_OPTIONS: Final[dict[str, str]] = {
    "good": "Our next step is clear: ship the next release, measure adoption, then adjust.",
    "ok": "We'll keep improving the product and listening to customers as we go.",
    "evasive": "We're exploring a few exciting avenues and will share more soon.",
    "bad": "I'd rather not get into our plans right now.",
}

_BUCKET_ALIASES: Final[dict[str, Bucket]] = {
    **OPTION_BUCKETS,
    "neutral": Bucket.OK,
}

_LEGACY_IMPACT_KEYS: Final[tuple[str, ...]] = ("stockChange", "stock_change", "stockImpact")
_CONTRADICTION_KEYS: Final[tuple[str, ...]] = ("isContradiction", "is_contradiction")
_OVER_KEYS: Final[tuple[str, ...]] = ("isInterviewOver", "is_interview_over", "is_over")

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_ABBREVIATIONS: Final[frozenset[str]] = frozenset({
    "e.g.", "i.e.", "etc.", "vs.", "approx.", "inc.", "ltd.", "co.", "corp.",
    "mr.", "mrs.", "ms.", "dr.", "st.",
})
_INITIALISM = re.compile(r"^(?:[A-Za-z]\.){2,}$")
_TERMINAL = (".", "!", "?")


# =============================================================================
# Pure Helpers
# =============================================================================

def decode_envelope(raw: Any) -> Any:
    """
    Turn a raw backend reply into a Python value.

    Bytes and strings are parsed as JSON, falling back to the outermost
    `{...}` substring when the model wrapped its JSON in prose. A nested
    `response` mapping is unwrapped. Values that cannot be decoded are
    returned unchanged.
    """
    value = raw
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        value = _parse_json_text(value)
    if isinstance(value, Mapping) and isinstance(value.get("response"), Mapping):
        value = value["response"]
    return value


def _parse_json_text(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        pass
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(text[start:end + 1])
        except (json.JSONDecodeError, RecursionError):
            pass
    return text


def classify_payload(value: Any) -> PayloadShape:
    """
    Decide which envelope a decoded payload is.

    A mapping carrying a bucket field, or neither bucket nor legacy fields,
    is CURRENT (missing fields get repaired). A mapping with only a numeric
    impact and/or free-text tone is LEGACY. Anything else is UNKNOWN.
    """
    if not isinstance(value, Mapping):
        return PayloadShape.UNKNOWN
    if "category" in value or "bucket" in value:
        return PayloadShape.CURRENT
    if any(key in value for key in _LEGACY_IMPACT_KEYS) or "sentiment" in value:
        return PayloadShape.LEGACY
    return PayloadShape.CURRENT


def shape_option_text(text: str, max_words: int = MAX_OPTION_WORDS) -> str:
    """
    Trim an answer option to one short sentence.

    Cuts at the first sentence boundary, hard-caps the word count and makes
    sure the result ends with sentence punctuation. Abbreviations such as
    "e.g." and initialisms such as "U.S." do not end a sentence. Returns ""
    for blank or punctuation-only input.

    Example:
        >>> shape_option_text("We grew fast. Then we grew faster")
        'We grew fast.'
    """
    collapsed = " ".join(text.split())
    if not any(ch.isalnum() for ch in collapsed):
        return ""
    sentence = _first_sentence(collapsed)
    words = sentence.split(" ")
    if len(words) > max_words:
        sentence = " ".join(words[:max_words]).rstrip(",;:-")
    if not sentence.endswith(_TERMINAL):
        sentence += "."
    return sentence


def _first_sentence(text: str) -> str:
    """Text up to the first sentence boundary not preceded by an abbreviation."""
    for match in _SENTENCE_END.finditer(text):
        head = text[:match.start()]
        last_word = head.rsplit(" ", 1)[-1]
        if last_word.lower() in _ABBREVIATIONS or _INITIALISM.match(last_word):
            continue
        return head
    return text


def _first_present(value: Mapping, keys: Iterable[str]) -> Any:
    for key in keys:
        if key in value:
            return value[key]
    return None


def _coerce_flag(raw: Any) -> bool | None:
    """Bool, 0/1 or "true"/"false"; None when the value is not a flag."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0", ""):
            return False
    return None


def _coerce_sentiment(raw: Any) -> Sentiment | None:
    if isinstance(raw, str):
        try:
            return Sentiment(raw.strip().lower())
        except ValueError:
            return None
    return None


def _coerce_impact(raw: Any) -> float | None:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, (int, float)):
        number = float(raw)
    elif isinstance(raw, str):
        try:
            number = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def legacy_bucket(impact: float | None, sentiment: Sentiment | None) -> Bucket:
    """Map a legacy numeric impact (or, lacking one, its tone) onto a bucket."""
    if impact is not None:
        if impact >= LEGACY_GOOD_THRESHOLD:
            return Bucket.GOOD
        if impact <= LEGACY_BAD_THRESHOLD:
            return Bucket.BAD
        return Bucket.OK
    if sentiment == Sentiment.POSITIVE:
        return Bucket.GOOD
    if sentiment == Sentiment.NEGATIVE:
        return Bucket.BAD
    return Bucket.OK


# =============================================================================
# Response Normalizer
# =============================================================================

class ResponseNormalizer:
    """
    Validates and repairs host payloads for a fixed set of option labels.

    Args:
        labels: Option labels offered each turn (two or three of
                good/ok/evasive/bad).

    Raises:
        ValueError: If the label set is not two or three known labels.
    """

    def __init__(self, labels: Iterable[str] = DEFAULT_OPTION_LABELS) -> None:
        self.labels: tuple[str, ...] = tuple(labels)
        if not 2 <= len(self.labels) <= 3:
            raise ValueError(f"Expected two or three option labels. Got: {self.labels}")
        unknown = [label for label in self.labels if label not in OPTION_BUCKETS]
        if unknown:
            raise ValueError(f"Unknown option labels: {unknown}")
        if len(set(self.labels)) != len(self.labels):
            raise ValueError(f"Duplicate option labels: {self.labels}")

    def retry_options(self) -> dict[str, str]:
        """Fixed option set offered after a transport failure."""
        return {label: RETRY_OPTIONS[label] for label in self.labels}

    def normalize(self, raw: Any, *, opening: bool = False) -> HostTurnPayload:
        """
        Normalize one backend reply.

        Args:
            raw: Whatever the backend returned.
            opening: Use the opening-turn fallback lines for missing fields.

        Returns:
            A complete HostTurnPayload. Never raises; the input is not mutated.
        """
        value = decode_envelope(raw)
        shape = classify_payload(value)

        if shape == PayloadShape.CURRENT:
            payload = self._normalize_current(value, opening)
        elif shape == PayloadShape.LEGACY:
            payload = self._normalize_legacy(value, opening)
        else:
            payload = self._fallback(opening)

        if payload.repairs:
            logger.debug(
                "Repaired %s host payload fields: %s",
                payload.shape.value, ", ".join(payload.repairs),
            )
        return payload

    # -------------------------------------------------------------------------
    # Per-shape paths
    # -------------------------------------------------------------------------

    def _normalize_current(self, value: Mapping, opening: bool) -> HostTurnPayload:
        repairs: list[str] = []
        text = self._text(value, opening, repairs)

        raw_bucket = value.get("category", value.get("bucket"))
        bucket = None
        if isinstance(raw_bucket, str):
            bucket = _BUCKET_ALIASES.get(raw_bucket.strip().lower())
        if bucket is None:
            repairs.append("bucket")
            bucket = Bucket.OK

        contradiction = _coerce_flag(_first_present(value, _CONTRADICTION_KEYS))
        if contradiction is None:
            if any(key in value for key in _CONTRADICTION_KEYS):
                repairs.append("is_contradiction")
            contradiction = False

        reason = value.get("reason")
        return HostTurnPayload(
            text=text,
            bucket=bucket,
            is_contradiction=contradiction,
            sentiment=_coerce_sentiment(value.get("sentiment")),
            reason=reason if isinstance(reason, str) and reason.strip() else None,
            options=self._options(value.get("options"), opening, repairs),
            is_over=bool(_coerce_flag(_first_present(value, _OVER_KEYS))),
            shape=PayloadShape.CURRENT,
            repairs=tuple(repairs),
        )

    def _normalize_legacy(self, value: Mapping, opening: bool) -> HostTurnPayload:
        repairs: list[str] = []
        text = self._text(value, opening, repairs)
        sentiment = _coerce_sentiment(value.get("sentiment"))
        impact = _coerce_impact(_first_present(value, _LEGACY_IMPACT_KEYS))

        return HostTurnPayload(
            text=text,
            bucket=legacy_bucket(impact, sentiment),
            is_contradiction=False,
            sentiment=sentiment,
            reason=LEGACY_REASON,
            options=self._options(value.get("options"), opening, repairs),
            is_over=bool(_coerce_flag(_first_present(value, _OVER_KEYS))),
            shape=PayloadShape.LEGACY,
            repairs=tuple(repairs),
        )

    def _fallback(self, opening: bool) -> HostTurnPayload:
        pool = OPENING_FALLBACK_OPTIONS if opening else FALLBACK_OPTIONS
        return HostTurnPayload(
            text=OPENING_FALLBACK_TEXT if opening else FALLBACK_TEXT,
            bucket=Bucket.OK,
            options={label: pool[label] for label in self.labels},
            shape=PayloadShape.UNKNOWN,
            repairs=("text", "bucket", "options"),
        )

    # -------------------------------------------------------------------------
    # Field repair
    # -------------------------------------------------------------------------

    def _text(self, value: Mapping, opening: bool, repairs: list[str]) -> str:
        text = value.get("text")
        if isinstance(text, str) and text.strip():
            return text.strip()
        repairs.append("text")
        return OPENING_FALLBACK_TEXT if opening else FALLBACK_TEXT

    def _options(self, raw: Any, opening: bool, repairs: list[str]) -> dict[str, str]:
        pool = OPENING_FALLBACK_OPTIONS if opening else FALLBACK_OPTIONS
        source = raw if isinstance(raw, Mapping) else {}
        options: dict[str, str] = {}
        for label in self.labels:
            candidate = source.get(label)
            shaped = shape_option_text(candidate) if isinstance(candidate, str) else ""
            if not shaped:
                repairs.append(f"options.{label}")
                shaped = pool[label]
            options[label] = shaped
        return options
