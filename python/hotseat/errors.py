"""
Exception types for The Hot Seat.

Malformed host payloads are never errors (the normalizer repairs them);
only transport failures and lost sessions surface as exceptions.
"""

from __future__ import annotations


__all__ = ["HotSeatError", "BackendError", "UnknownSessionError"]


class HotSeatError(Exception):
    """Base exception for interview engine errors."""


class BackendError(HotSeatError):
    """Raised when the generative backend cannot be reached or fails to answer."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class UnknownSessionError(HotSeatError):
    """
    Raised when a session id is not held by the store.

    Unlike BackendError this cannot be retried with the same id; the
    interview has to be restarted with a fresh session.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Unknown session id '{session_id}' (server restarted?)")
