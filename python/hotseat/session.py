"""
Interview Session Store.

Maps opaque session ids to ongoing host conversations. One store is
created per process (or per orchestrator in tests) and passed around
explicitly; nothing is persisted, so sessions are lost on restart.

Thread Safety:
    Not thread-safe. Intended for a single asyncio event loop.

Last Grunted: 10/15/2026
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

from .backend import HostBackend, HostConversation, OPENING_MESSAGE
from .errors import BackendError, UnknownSessionError
from .models import Bucket, CompanyProfile, DEFAULT_OPTION_LABELS


__all__ = ["SessionStore", "InterviewSessionStore", "tag_selection"]


logger = logging.getLogger(__name__)


def tag_selection(text: str, bucket: Bucket) -> str:
    """Wrap the selected answer with the bucket the CEO actually picked."""
    return f'The CEO selected the "{bucket.value}" option. The selected answer was:\n{text}'


class SessionStore(Protocol):
    """Contract shared by the in-process and remote session stores."""

    async def create(self, profile: CompanyProfile) -> tuple[str, Any]: ...

    async def send(self, session_id: str, text: str, bucket: Bucket) -> Any: ...

    async def discard(self, session_id: str) -> bool: ...

    async def close(self) -> None: ...


class InterviewSessionStore:
    """
    In-process session store backed by a HostBackend.

    Responsibilities:
        - Open one host conversation per interview and hand out its id
        - Tag every outgoing answer with the selected bucket
        - Separate lost sessions (UnknownSessionError) from transport
          failures (BackendError)

    Example:
        >>> store = InterviewSessionStore(AgentHostBackend())
        >>> session_id, raw = await store.create(profile)
        >>> raw = await store.send(session_id, "We grew 40% last year.", Bucket.GOOD)
    """

    def __init__(
        self,
        backend: HostBackend,
        labels: tuple[str, ...] = DEFAULT_OPTION_LABELS,
    ) -> None:
        self._backend = backend
        self._labels = tuple(labels)
        self._sessions: dict[str, HostConversation] = {}

    @property
    def backend(self) -> HostBackend:
        return self._backend

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(self, profile: CompanyProfile) -> tuple[str, Any]:
        """
        Open a conversation and fetch the opening turn.

        Returns:
            (session_id, raw opening payload). The raw payload still needs
            normalizing.

        Raises:
            BackendError: If the backend fails before the opening turn is
                received. No session is kept in that case.
        """
        conversation = self._backend.start(profile, self._labels)
        try:
            raw = await conversation.send(OPENING_MESSAGE)
        except Exception as e:
            logger.error("Opening turn failed for '%s': %s", profile.name, e, exc_info=True)
            raise BackendError(f"Host backend failed to open the interview: {e}", cause=e) from e

        session_id = str(uuid.uuid4())
        self._sessions[session_id] = conversation
        logger.info("Created session %s for company '%s'", session_id, profile.name)
        return session_id, raw

    async def send(self, session_id: str, text: str, bucket: Bucket) -> Any:
        """
        Send the CEO's selected answer and return the raw host reply.

        Raises:
            UnknownSessionError: If the id is not held by this store.
            BackendError: If the backend call fails.
        """
        conversation = self._sessions.get(session_id)
        if conversation is None:
            raise UnknownSessionError(session_id)

        logger.debug("Session %s: sending %s answer", session_id, bucket.value)
        try:
            return await conversation.send(tag_selection(text, bucket))
        except Exception as e:
            logger.error("Host turn failed for session %s: %s", session_id, e, exc_info=True)
            raise BackendError(f"Host backend failed: {e}", cause=e) from e

    async def discard(self, session_id: str) -> bool:
        """Forget a session. Returns False when it was not held."""
        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("Discarded session %s", session_id)
        return removed

    async def close(self) -> None:
        """Drop every session (process shutdown)."""
        if self._sessions:
            logger.info("Closing session store with %d active sessions", len(self._sessions))
        self._sessions.clear()
