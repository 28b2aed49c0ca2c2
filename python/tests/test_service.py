"""
FastAPI endpoint tests for The Hot Seat service.

Drives the app through httpx AsyncClient with lifespan management via
asgi-lifespan. The host backend is scripted, so no credentials are needed.

Last Grunted: 10/17/2026
"""

from __future__ import annotations

from typing import AsyncIterator

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from hotseat.config import GameConfig, RuntimeConfig
from hotseat.models import GamePhase, Outcome
from hotseat.orchestrator import InterviewOrchestrator, TurnStatus
from hotseat.remote import RemoteSessionStore
from hotseat_service import create_app
from tests.mock_data import FakeBackend, FixedRandom, generate_host_payload, sample_profile


TEST_CONFIG = RuntimeConfig(
    host="127.0.0.1",
    port=8080,
    model="test-model",
    reasoning_effort="low",
    cors_origins=(),
    game=GameConfig(),
)

COMPANY = {
    "name": "OmniCorp",
    "industry": "Biotechnology",
    "mission": "We make the world better by curing boredom.",
}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def app(backend: FakeBackend) -> FastAPI:
    return create_app(backend=backend, config=TEST_CONFIG)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """
    Create async test client with proper lifespan management.

    LifespanManager runs the app's lifespan so the session store exists
    before the first request.
    """
    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


async def _init(client: AsyncClient) -> str:
    response = await client.post("/api/init", json={"company": COMPANY})
    assert response.status_code == 200
    return response.json()["session_id"]


# =============================================================================
# Health
# =============================================================================


class TestHealth:
    """GET /api/health."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        """Reports key presence and zero sessions on a fresh app."""
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["has_key"] is True
        assert data["active_sessions"] == 0

    @pytest.mark.asyncio
    async def test_active_sessions_counted(self, client: AsyncClient) -> None:
        await _init(client)
        await _init(client)

        response = await client.get("/api/health")

        assert response.json()["active_sessions"] == 2

    @pytest.mark.asyncio
    async def test_missing_key_reported(self) -> None:
        app = create_app(backend=FakeBackend(configured=False), config=TEST_CONFIG)
        async with LifespanManager(app) as manager:
            transport = ASGITransport(app=manager.app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.get("/api/health")

        assert response.json()["has_key"] is False


# =============================================================================
# Init
# =============================================================================


class TestInit:
    """POST /api/init."""

    @pytest.mark.asyncio
    async def test_init_returns_session_and_normalized_opening(
        self, client: AsyncClient, backend: FakeBackend
    ) -> None:
        backend.replies.append(generate_host_payload(text="Welcome to the show."))

        response = await client.post("/api/init", json={"company": COMPANY})

        assert response.status_code == 200
        data = response.json()
        assert data["session_id"]
        payload = data["payload"]
        assert payload["text"] == "Welcome to the show."
        assert set(payload["options"]) == {"good", "ok", "evasive"}
        assert backend.conversations[0].profile.name == "OmniCorp"

    @pytest.mark.asyncio
    async def test_blank_mission_is_rejected(self, client: AsyncClient, backend: FakeBackend) -> None:
        response = await client.post(
            "/api/init", json={"company": {"name": "OmniCorp", "mission": "   "}}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["ok"] is False
        assert data["error_code"] == "MISSING_FIELDS"
        assert backend.conversations == []

    @pytest.mark.asyncio
    async def test_missing_company_is_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/init", json={})

        assert response.status_code == 400
        assert response.json()["error_code"] == "MISSING_FIELDS"

    @pytest.mark.asyncio
    async def test_backend_failure_is_502(self, client: AsyncClient, backend: FakeBackend) -> None:
        backend.replies.append(RuntimeError("model unavailable"))

        response = await client.post("/api/init", json={"company": COMPANY})

        assert response.status_code == 502
        assert response.json()["error_code"] == "BACKEND_FAILURE"
        health = await client.get("/api/health")
        assert health.json()["active_sessions"] == 0

    @pytest.mark.asyncio
    async def test_non_json_reply_is_normalized(self, client: AsyncClient, backend: FakeBackend) -> None:
        """A prose reply still yields a playable opening turn."""
        backend.replies.append("I'm sorry, I can't format that.")

        response = await client.post("/api/init", json={"company": COMPANY})

        assert response.status_code == 200
        payload = response.json()["payload"]
        assert payload["text"]
        assert payload["shape"] == "unknown"


# =============================================================================
# Chat
# =============================================================================


class TestChat:
    """POST /api/chat."""

    @pytest.mark.asyncio
    async def test_selected_bucket_overrides_echo(self, client: AsyncClient, backend: FakeBackend) -> None:
        session_id = await _init(client)
        backend.replies.append(generate_host_payload(category="evasive"))

        response = await client.post(
            "/api/chat",
            json={"session_id": session_id, "message": "Revenue is up 40%.", "selected_bucket": "good"},
        )

        assert response.status_code == 200
        assert response.json()["payload"]["bucket"] == "good"
        sent = backend.conversations[0].sent[-1]
        assert 'selected the "good" option' in sent

    @pytest.mark.asyncio
    async def test_contradiction_flag_passes_through(
        self, client: AsyncClient, backend: FakeBackend
    ) -> None:
        session_id = await _init(client)
        backend.replies.append(generate_host_payload(is_contradiction=True))

        response = await client.post(
            "/api/chat",
            json={"session_id": session_id, "message": "We never raised.", "selected_bucket": "ok"},
        )

        assert response.json()["payload"]["is_contradiction"] is True

    @pytest.mark.asyncio
    async def test_missing_message(self, client: AsyncClient) -> None:
        session_id = await _init(client)

        response = await client.post("/api/chat", json={"session_id": session_id, "message": " "})

        assert response.status_code == 400
        assert response.json()["error_code"] == "MISSING_FIELDS"

    @pytest.mark.asyncio
    async def test_unknown_session(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/chat", json={"session_id": "gone", "message": "Hello.", "selected_bucket": "ok"}
        )

        assert response.status_code == 404
        data = response.json()
        assert data["ok"] is False
        assert data["error_code"] == "SESSION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_backend_failure_keeps_session(self, client: AsyncClient, backend: FakeBackend) -> None:
        session_id = await _init(client)
        backend.replies.append(TimeoutError("model timed out"))

        response = await client.post(
            "/api/chat", json={"session_id": session_id, "message": "Hello.", "selected_bucket": "ok"}
        )

        assert response.status_code == 502
        retry = await client.post(
            "/api/chat", json={"session_id": session_id, "message": "Hello.", "selected_bucket": "ok"}
        )
        assert retry.status_code == 200


# =============================================================================
# Discard
# =============================================================================


class TestDiscard:
    """DELETE /api/session/{id}."""

    @pytest.mark.asyncio
    async def test_discard(self, client: AsyncClient) -> None:
        session_id = await _init(client)

        first = await client.delete(f"/api/session/{session_id}")
        second = await client.delete(f"/api/session/{session_id}")

        assert first.json() == {"ok": True, "discarded": True}
        assert second.json() == {"ok": True, "discarded": False}
        chat = await client.post(
            "/api/chat", json={"session_id": session_id, "message": "Hello.", "selected_bucket": "ok"}
        )
        assert chat.status_code == 404


# =============================================================================
# End to End
# =============================================================================


class TestRemoteGame:
    """A full game played through the remote store against the service."""

    @pytest.mark.asyncio
    async def test_orchestrator_over_http(self, app: FastAPI) -> None:
        async with LifespanManager(app) as manager:
            http = AsyncClient(transport=ASGITransport(app=manager.app), base_url="http://test")
            async with RemoteSessionStore(client=http) as store:
                orchestrator = InterviewOrchestrator(
                    store,
                    config=GameConfig(max_turns=3, intro_delay_seconds=60.0, silence_seconds=0.0),
                    rng=FixedRandom(0.5),
                )
                await orchestrator.submit_profile(sample_profile())
                assert await orchestrator.begin_interview()

                statuses = [await orchestrator.resolve_answer("good") for _ in range(3)]

                assert statuses == [TurnStatus.SCORED] * 3
                assert orchestrator.phase == GamePhase.SUMMARY
                assert orchestrator.state.outcome == Outcome.SUCCESS
                await orchestrator.reset()
            await http.aclose()

    @pytest.mark.asyncio
    async def test_lost_session_over_http(self, app: FastAPI) -> None:
        """A session discarded server-side surfaces as SESSION_LOST."""
        async with LifespanManager(app) as manager:
            http = AsyncClient(transport=ASGITransport(app=manager.app), base_url="http://test")
            async with RemoteSessionStore(client=http) as store:
                orchestrator = InterviewOrchestrator(
                    store,
                    config=GameConfig(max_turns=3, intro_delay_seconds=60.0, silence_seconds=0.0),
                )
                await orchestrator.submit_profile(sample_profile())
                await orchestrator.begin_interview()
                await http.delete(f"/api/session/{orchestrator.session_id}")

                assert await orchestrator.resolve_answer("ok") == TurnStatus.SESSION_LOST
            await http.aclose()
