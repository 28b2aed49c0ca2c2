"""
Unit tests for host payload normalization.

Last Grunted: 10/16/2026
"""

from __future__ import annotations

import copy
import json

import pytest

from hotseat.models import Bucket, PayloadShape, Sentiment
from hotseat.normalizer import (
    FALLBACK_OPTIONS,
    FALLBACK_TEXT,
    LEGACY_REASON,
    OPENING_FALLBACK_TEXT,
    RETRY_OPTIONS,
    ResponseNormalizer,
    classify_payload,
    decode_envelope,
    shape_option_text,
)
from tests.mock_data import generate_host_payload, generate_legacy_payload


@pytest.fixture
def normalizer() -> ResponseNormalizer:
    return ResponseNormalizer()


class TestEmptyAndUnknown:
    """Payloads with nothing usable."""

    def test_empty_mapping_gets_full_fallback(self, normalizer: ResponseNormalizer) -> None:
        """{} yields fallback text, the OK bucket and fallback options."""
        payload = normalizer.normalize({})

        assert payload.text == FALLBACK_TEXT
        assert payload.bucket == Bucket.OK
        assert payload.is_contradiction is False
        assert payload.options == {label: FALLBACK_OPTIONS[label] for label in ("good", "ok", "evasive")}
        assert payload.shape == PayloadShape.CURRENT
        assert "text" in payload.repairs
        assert "bucket" in payload.repairs
        assert "options.good" in payload.repairs

    @pytest.mark.parametrize("raw", [None, 42, ["text"], "not json at all"])
    def test_non_mapping_is_unknown(self, normalizer: ResponseNormalizer, raw: object) -> None:
        """Anything that is not a mapping becomes a fallback payload."""
        payload = normalizer.normalize(raw)

        assert payload.shape == PayloadShape.UNKNOWN
        assert payload.text == FALLBACK_TEXT
        assert payload.bucket == Bucket.OK
        assert set(payload.options) == {"good", "ok", "evasive"}

    def test_opening_fallback_text(self, normalizer: ResponseNormalizer) -> None:
        """The opening turn uses its own fallback line."""
        assert normalizer.normalize({}, opening=True).text == OPENING_FALLBACK_TEXT


class TestCurrentShape:
    """Explicit bucket payloads."""

    def test_well_formed_payload_passes_through(self, normalizer: ResponseNormalizer) -> None:
        raw = generate_host_payload(
            text="How long is your runway?",
            category="good",
            sentiment="positive",
            reason="mirrors selection",
        )
        payload = normalizer.normalize(raw)

        assert payload.text == "How long is your runway?"
        assert payload.bucket == Bucket.GOOD
        assert payload.sentiment == Sentiment.POSITIVE
        assert payload.reason == "mirrors selection"
        assert payload.repairs == ()

    def test_neutral_is_ok(self, normalizer: ResponseNormalizer) -> None:
        assert normalizer.normalize(generate_host_payload(category="neutral")).bucket == Bucket.OK

    def test_unknown_category_is_most_conservative(self, normalizer: ResponseNormalizer) -> None:
        """An unknown classification falls back to OK and is recorded."""
        payload = normalizer.normalize(generate_host_payload(category="brilliant"))
        assert payload.bucket == Bucket.OK
        assert "bucket" in payload.repairs

    @pytest.mark.parametrize(
        ("raw_flag", "expected"),
        [(True, True), (False, False), ("true", True), ("False", False), (1, True), ("maybe", False)],
    )
    def test_contradiction_coercion(self, normalizer: ResponseNormalizer, raw_flag: object, expected: bool) -> None:
        raw = generate_host_payload()
        raw["isContradiction"] = raw_flag
        assert normalizer.normalize(raw).is_contradiction is expected

    def test_snake_case_keys(self, normalizer: ResponseNormalizer) -> None:
        """Agent output uses snake_case field names."""
        raw = {
            "text": "Next question.",
            "category": "evasive",
            "is_contradiction": True,
            "options": {"good": "A.", "ok": "B.", "evasive": "C.", "bad": ""},
            "is_interview_over": True,
        }
        payload = normalizer.normalize(raw)

        assert payload.bucket == Bucket.EVASIVE
        assert payload.is_contradiction is True
        assert payload.is_over is True
        assert set(payload.options) == {"good", "ok", "evasive"}

    def test_missing_option_gets_per_key_fallback(self, normalizer: ResponseNormalizer) -> None:
        raw = generate_host_payload(options={"good": "We report retention monthly.", "ok": "  "})
        payload = normalizer.normalize(raw)

        assert payload.options["good"] == "We report retention monthly."
        assert payload.options["ok"] == FALLBACK_OPTIONS["ok"]
        assert payload.options["evasive"] == FALLBACK_OPTIONS["evasive"]
        assert payload.repairs == ("options.ok", "options.evasive")

    def test_input_is_not_mutated(self, normalizer: ResponseNormalizer) -> None:
        raw = generate_host_payload(options={"good": "One. Two. Three."})
        snapshot = copy.deepcopy(raw)
        normalizer.normalize(raw)
        assert raw == snapshot


class TestEnvelope:
    """Strings, bytes and wrapped replies."""

    def test_json_string(self, normalizer: ResponseNormalizer) -> None:
        raw = json.dumps(generate_host_payload(category="good"))
        assert normalizer.normalize(raw).bucket == Bucket.GOOD

    def test_json_inside_prose(self, normalizer: ResponseNormalizer) -> None:
        body = json.dumps(generate_host_payload(text="Straight answer please.", category="evasive"))
        payload = normalizer.normalize(f"Sure! Here you go:\n```json\n{body}\n```")
        assert payload.text == "Straight answer please."
        assert payload.bucket == Bucket.EVASIVE

    def test_bytes(self, normalizer: ResponseNormalizer) -> None:
        raw = json.dumps(generate_host_payload(category="good")).encode("utf-8")
        assert normalizer.normalize(raw).bucket == Bucket.GOOD

    def test_nested_response_is_unwrapped(self) -> None:
        inner = generate_host_payload(category="good")
        assert decode_envelope({"session_id": "abc", "response": inner}) == inner

    def test_deeply_nested_json_is_unknown(self, normalizer: ResponseNormalizer) -> None:
        """Nesting too deep for the JSON parser falls back instead of raising."""
        payload = normalizer.normalize("[" * 200000 + "]" * 200000)

        assert payload.shape == PayloadShape.UNKNOWN
        assert payload.text == FALLBACK_TEXT

    def test_deeply_nested_json_inside_braces_is_unknown(self, normalizer: ResponseNormalizer) -> None:
        raw = b'{"text": ' + b"[" * 200000 + b"]" * 200000 + b"}"
        payload = normalizer.normalize(raw)

        assert payload.shape == PayloadShape.UNKNOWN
        assert payload.text == FALLBACK_TEXT


class TestOptionShaping:
    """Options are one short sentence."""

    def test_long_option_is_capped(self, normalizer: ResponseNormalizer) -> None:
        """A 40-word run-on option collapses to at most 18 words."""
        long_option = " ".join(f"word{i}" for i in range(40))
        payload = normalizer.normalize(generate_host_payload(options={"good": long_option}))

        shaped = payload.options["good"]
        assert len(shaped.split()) <= 18
        assert shaped.endswith(".")
        assert shaped.startswith("word0 word1")

    def test_cut_at_first_sentence(self) -> None:
        assert shape_option_text("We grew fast. Then we grew faster.") == "We grew fast."

    def test_terminal_punctuation_added(self) -> None:
        assert shape_option_text("We are profitable") == "We are profitable."
        assert shape_option_text("Are we profitable?") == "Are we profitable?"

    def test_whitespace_collapsed(self) -> None:
        assert shape_option_text("  We   ship\nweekly  ") == "We ship weekly."

    def test_blank_is_empty(self) -> None:
        assert shape_option_text("   ") == ""

    def test_punctuation_only_is_empty(self) -> None:
        assert shape_option_text("...") == ""
        assert shape_option_text(" - ! ? ") == ""

    def test_punctuation_only_option_gets_fallback(self, normalizer: ResponseNormalizer) -> None:
        """An option with no words is repaired like a missing one."""
        payload = normalizer.normalize(generate_host_payload(options={"good": "..."}))

        assert payload.options["good"] == FALLBACK_OPTIONS["good"]
        assert "options.good" in payload.repairs

    def test_initialism_does_not_end_sentence(self) -> None:
        text = "We lead the U.S. market in sales. More later."
        assert shape_option_text(text) == "We lead the U.S. market in sales."

    def test_abbreviation_does_not_end_sentence(self) -> None:
        text = "We cut costs, e.g. travel and rent. More later."
        assert shape_option_text(text) == "We cut costs, e.g. travel and rent."

    def test_trailing_comma_dropped_on_cap(self) -> None:
        text = "one two three four, five six"
        assert shape_option_text(text, max_words=4) == "one two three four."


class TestLegacyShape:
    """Numeric impact and tone without a bucket."""

    @pytest.mark.parametrize(
        ("stock_change", "expected"),
        [
            (0.5, Bucket.GOOD),
            (0.49, Bucket.OK),
            (0.0, Bucket.OK),
            (-2.49, Bucket.OK),
            (-2.5, Bucket.BAD),
            (-4.0, Bucket.BAD),
        ],
    )
    def test_impact_thresholds(self, normalizer: ResponseNormalizer, stock_change: float, expected: Bucket) -> None:
        payload = normalizer.normalize(generate_legacy_payload(stock_change=stock_change))

        assert payload.shape == PayloadShape.LEGACY
        assert payload.bucket == expected
        assert payload.reason == LEGACY_REASON

    def test_impact_beats_tone(self, normalizer: ResponseNormalizer) -> None:
        payload = normalizer.normalize(generate_legacy_payload(stock_change=-3.0, sentiment="positive"))
        assert payload.bucket == Bucket.BAD

    @pytest.mark.parametrize(
        ("sentiment", "expected"),
        [("positive", Bucket.GOOD), ("negative", Bucket.BAD), ("neutral", Bucket.OK)],
    )
    def test_tone_without_impact(self, normalizer: ResponseNormalizer, sentiment: str, expected: Bucket) -> None:
        payload = normalizer.normalize(generate_legacy_payload(sentiment=sentiment))
        assert payload.bucket == expected

    def test_legacy_never_contradiction(self, normalizer: ResponseNormalizer) -> None:
        payload = normalizer.normalize(generate_legacy_payload(stock_change=1.0))
        assert payload.is_contradiction is False
        assert set(payload.options) == {"good", "ok", "evasive"}


class TestClassifier:
    """Pure shape classification."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ({}, PayloadShape.CURRENT),
            ({"category": "good"}, PayloadShape.CURRENT),
            ({"bucket": "ok", "sentiment": "neutral"}, PayloadShape.CURRENT),
            ({"stockChange": 1.2}, PayloadShape.LEGACY),
            ({"text": "x", "sentiment": "negative"}, PayloadShape.LEGACY),
            (None, PayloadShape.UNKNOWN),
            ("text", PayloadShape.UNKNOWN),
        ],
    )
    def test_classify(self, value: object, expected: PayloadShape) -> None:
        assert classify_payload(value) == expected


class TestLabels:
    """Label set validation."""

    def test_two_labels(self) -> None:
        normalizer = ResponseNormalizer(("good", "bad"))
        payload = normalizer.normalize({})
        assert set(payload.options) == {"good", "bad"}

    @pytest.mark.parametrize(
        "labels",
        [("good",), ("good", "ok", "evasive", "bad"), ("good", "great"), ("ok", "ok")],
    )
    def test_invalid_labels(self, labels: tuple[str, ...]) -> None:
        with pytest.raises(ValueError):
            ResponseNormalizer(labels)

    def test_retry_options_follow_labels(self, normalizer: ResponseNormalizer) -> None:
        assert normalizer.retry_options() == {label: RETRY_OPTIONS[label] for label in ("good", "ok", "evasive")}
