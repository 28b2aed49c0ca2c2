"""
Mock data generators for Hot Seat testing.

Fake host backends with scripted replies, host payload generators in the
current and legacy envelope shapes, and a random source with a pinned draw.

Last Grunted: 10/16/2026
"""

import asyncio
import random
from typing import Any, Optional

from hotseat.models import CompanyProfile, DEFAULT_OPTION_LABELS


# =============================================================================
# Host Content
# =============================================================================

HOST_QUESTIONS = [
    "Welcome to the show. What exactly does your company sell, and to whom?",
    "Your burn rate has doubled. How long is your runway?",
    "Critics say your product is a feature, not a company. Respond.",
    "Who is your biggest competitor, and why do customers pick you?",
    "What happens to your margins if your main supplier raises prices?",
    "Your last funding round was flat. What went wrong?",
]

ANSWER_OPTIONS = {
    "good": "Our ARR grew 42% last year with net retention at 118%.",
    "ok": "We are growing steadily and our customers like the product.",
    "evasive": "It's a dynamic market and we're excited about what's ahead.",
    "bad": "Honestly, nobody on the team has looked at those numbers.",
}


def sample_profile(**overrides: Any) -> CompanyProfile:
    """Complete company profile."""
    fields = {
        "name": "OmniCorp",
        "industry": "Biotechnology",
        "mission": "We make the world better by curing boredom.",
    }
    fields.update(overrides)
    return CompanyProfile(**fields)


def generate_host_payload(
    text: Optional[str] = None,
    category: str = "neutral",
    is_contradiction: bool = False,
    options: Optional[dict[str, str]] = None,
    sentiment: str = "neutral",
    reason: Optional[str] = None,
) -> dict[str, Any]:
    """Current-shape host payload with camelCase keys, as older hosts sent it."""
    return {
        "text": text or random.choice(HOST_QUESTIONS),
        "category": category,
        "isContradiction": is_contradiction,
        "sentiment": sentiment,
        "reason": reason,
        "options": dict(options) if options is not None else {
            label: ANSWER_OPTIONS[label] for label in DEFAULT_OPTION_LABELS
        },
        "isInterviewOver": False,
    }


def generate_legacy_payload(
    stock_change: Optional[float] = None,
    sentiment: Optional[str] = None,
    text: str = "Interesting. Tell me more about your customers.",
) -> dict[str, Any]:
    """Legacy-shape payload: numeric impact and tone, no bucket."""
    payload: dict[str, Any] = {"text": text, "isInterviewOver": False}
    if stock_change is not None:
        payload["stockChange"] = stock_change
    if sentiment is not None:
        payload["sentiment"] = sentiment
    return payload


# =============================================================================
# Fake Host Backend
# =============================================================================

class FakeConversation:
    """Conversation that replays its backend's script and records what it was sent."""

    def __init__(self, backend: "FakeBackend", profile: CompanyProfile) -> None:
        self._backend = backend
        self.profile = profile
        self.sent: list[str] = []

    async def send(self, message: str) -> Any:
        self.sent.append(message)
        if self._backend.gate is not None:
            await self._backend.gate.wait()
        reply = self._backend.next_reply()
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeBackend:
    """
    Scripted host backend.

    Replies are consumed in order across all conversations; an Exception in
    the script is raised instead of returned. Once the script runs out,
    fresh current-shape payloads are generated.
    """

    def __init__(self, replies: Optional[list[Any]] = None, configured: bool = True) -> None:
        self.replies: list[Any] = list(replies or [])
        self.configured = configured
        self.conversations: list[FakeConversation] = []
        self.gate: Optional[asyncio.Event] = None

    def is_configured(self) -> bool:
        return self.configured

    def start(self, profile: CompanyProfile, labels: tuple[str, ...] = DEFAULT_OPTION_LABELS) -> FakeConversation:
        conversation = FakeConversation(self, profile)
        self.conversations.append(conversation)
        return conversation

    def next_reply(self) -> Any:
        if self.replies:
            return self.replies.pop(0)
        return generate_host_payload()


# =============================================================================
# Random Source
# =============================================================================

class FixedRandom(random.Random):
    """Random whose uniform() always lands at the same fraction of the range."""

    def __init__(self, fraction: float = 0.5) -> None:
        super().__init__(0)
        self.fraction = fraction

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.fraction
