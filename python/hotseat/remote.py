"""
Remote Session Store.

Implements the session store contract against a running Hot Seat HTTP
service, so an orchestrator can drive a remote host exactly as it drives
an in-process one.

Example:
    >>> async with RemoteSessionStore("http://localhost:8080") as store:
    ...     session_id, raw = await store.create(profile)

Last Grunted: 10/15/2026
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .errors import BackendError, UnknownSessionError
from .models import Bucket, CompanyProfile


__all__ = ["RemoteSessionStore"]


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT_SECONDS = 30.0


class RemoteSessionStore:
    """
    Session store backed by the HTTP service.

    Args:
        base_url: Service root, e.g. "http://localhost:8080".
        client: Optional preconfigured httpx.AsyncClient (tests pass one with
                a MockTransport). When omitted the store owns its client.
    """

    def __init__(
        self,
        base_url: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._sessions: set[str] = set()

    async def __aenter__(self) -> "RemoteSessionStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def _post(self, path: str, body: dict[str, Any], session_id: Optional[str] = None) -> dict:
        try:
            resp = await self._client.post(path, json=body)
        except httpx.RequestError as exc:
            logger.error("Request to %s failed: %s", path, exc)
            raise BackendError(f"Could not reach host service: {exc}", cause=exc) from exc

        if resp.status_code == 404 and session_id is not None:
            self._sessions.discard(session_id)
            raise UnknownSessionError(session_id)
        if resp.status_code != 200:
            logger.error("%s returned %d: %s", path, resp.status_code, resp.text[:200])
            raise BackendError(f"Host service returned {resp.status_code} for {path}")

        try:
            data = resp.json()
        except (ValueError, RecursionError) as exc:
            raise BackendError(f"Host service returned non-JSON for {path}", cause=exc) from exc
        if not isinstance(data, dict):
            raise BackendError(f"Host service returned unexpected body for {path}")
        return data

    async def create(self, profile: CompanyProfile) -> tuple[str, Any]:
        """
        Start a remote interview.

        Raises:
            BackendError: On transport failure or any non-200 response.
        """
        data = await self._post("/api/init", {"company": profile.model_dump()})
        session_id = data.get("session_id")
        if not isinstance(session_id, str) or not session_id:
            raise BackendError("Host service response is missing session_id")
        self._sessions.add(session_id)
        logger.info("Remote session %s created", session_id)
        return session_id, data.get("payload")

    async def send(self, session_id: str, text: str, bucket: Bucket) -> Any:
        """
        Send the selected answer to the remote session.

        Raises:
            UnknownSessionError: If the service answers 404.
            BackendError: On any other failure.
        """
        data = await self._post(
            "/api/chat",
            {"session_id": session_id, "message": text, "selected_bucket": bucket.value},
            session_id=session_id,
        )
        return data.get("payload")

    async def discard(self, session_id: str) -> bool:
        self._sessions.discard(session_id)
        try:
            resp = await self._client.delete(f"/api/session/{session_id}")
        except httpx.RequestError as exc:
            logger.warning("Could not discard remote session %s: %s", session_id, exc)
            return False
        if resp.status_code != 200:
            return False
        try:
            data = resp.json()
        except (ValueError, RecursionError) as exc:
            logger.warning("Discard of remote session %s returned non-JSON: %s", session_id, exc)
            return False
        return isinstance(data, dict) and bool(data.get("discarded"))

    async def close(self) -> None:
        self._sessions.clear()
        if self._owns_client:
            await self._client.aclose()
