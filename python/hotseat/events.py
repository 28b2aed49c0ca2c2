"""
Real-time Pub/Sub for Interview Events.

In-memory pub/sub through which the orchestrator streams state changes to
whatever is presenting the show (terminal, web socket, tests). Each
orchestrator owns its publisher; there is no process-wide instance.

Example usage:
    publisher = InterviewEventPublisher()
    queue = await publisher.subscribe()
    await publisher.emit(GameEventType.HOST_LINE, text="Welcome to the show.")
    event = await queue.get()
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class GameEventType(str, Enum):
    """
    Types of events published by the orchestrator.

    Attributes:
        PHASE_CHANGED: Moved between setup, intro, interview and summary.
        HOST_LINE: The host said something on-air.
        PLAYER_LINE: The CEO's selected answer was posted.
        SCORE_CHANGED: A delta was applied to the stock price.
        TURN_ARMED: New options are live and input is accepted.
        TECHNICAL_DIFFICULTY: The backend failed; the turn can be retried.
        SESSION_LOST: The session is gone; the interview must restart.
        SILENCE: The host called out a silent player.
    """

    PHASE_CHANGED = "phase_changed"
    HOST_LINE = "host_line"
    PLAYER_LINE = "player_line"
    SCORE_CHANGED = "score_changed"
    TURN_ARMED = "turn_armed"
    TECHNICAL_DIFFICULTY = "technical_difficulty"
    SESSION_LOST = "session_lost"
    SILENCE = "silence"


def _get_utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class GameEvent:
    """
    A single event from the orchestrator.

    Attributes:
        event_type: What happened.
        data: Event-specific fields (JSON-serializable).
        timestamp: UTC timestamp when the event was created.
    """

    event_type: GameEventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_get_utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            **self.data,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class InterviewEventPublisher:
    """
    Publisher for interview events.

    Manages subscriber queues and broadcasts every event to all of them.
    New subscribers receive the retained history first.

    Attributes:
        max_history: Maximum number of events to retain in history.
    """

    def __init__(self, max_history: int = 200) -> None:
        self._subscribers: list[asyncio.Queue[GameEvent]] = []
        self._history: list[GameEvent] = []
        self._max_history = max_history
        self._lock = asyncio.Lock()

    async def subscribe(self) -> asyncio.Queue[GameEvent]:
        """
        Subscribe to events.

        Caller is responsible for calling unsubscribe when done.
        """
        queue: asyncio.Queue[GameEvent] = asyncio.Queue()
        async with self._lock:
            self._subscribers.append(queue)
            for event in self._history:
                queue.put_nowait(event)
        logger.debug("New subscriber added. Total: %d", len(self._subscribers))
        return queue

    async def unsubscribe(self, queue: asyncio.Queue[GameEvent]) -> None:
        async with self._lock:
            if queue in self._subscribers:
                self._subscribers.remove(queue)
        logger.debug("Subscriber removed. Total: %d", len(self._subscribers))

    async def publish(self, event: GameEvent) -> None:
        """
        Publish an event to all subscribers and store it in history.

        Args:
            event: The event to publish.
        """
        async with self._lock:
            self._history.append(event)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history :]

            for queue in self._subscribers:
                queue.put_nowait(event)

        logger.debug("Published event: %s", event.event_type.value)

    async def emit(self, event_type: GameEventType, **data: Any) -> GameEvent:
        """Build and publish an event in one call."""
        event = GameEvent(event_type=event_type, data=data)
        await self.publish(event)
        return event

    async def get_history(self) -> list[GameEvent]:
        """Copy of the retained history."""
        async with self._lock:
            return list(self._history)

    async def clear_history(self) -> None:
        async with self._lock:
            self._history.clear()
        logger.debug("History cleared")

    @property
    def subscriber_count(self) -> int:
        """Approximate number of active subscribers (not lock-protected)."""
        return len(self._subscribers)
