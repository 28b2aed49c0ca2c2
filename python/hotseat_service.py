"""
The Hot Seat Service

Holds one host conversation per interview and turns the CEO's selected
answers into normalized host payloads. Scoring stays with the client-side
orchestrator; this service only narrates.

Endpoints:
    GET    /api/health              - Health check
    POST   /api/init                - Start an interview, returns session id + opening turn
    POST   /api/chat                - Send the selected answer, returns the next turn
    DELETE /api/session/{id}        - Discard a session

Internal binding: configured by HOTSEAT_HOST/HOTSEAT_PORT (default 0.0.0.0:8080)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator, Optional, TypedDict

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from hotseat import __version__
from hotseat.backend import AgentHostBackend, HostBackend
from hotseat.config import RuntimeConfig, SHOW_NAME, load_runtime_config
from hotseat.errors import BackendError, UnknownSessionError
from hotseat.models import Bucket, CompanyProfile, OPTION_BUCKETS
from hotseat.normalizer import ResponseNormalizer
from hotseat.session import InterviewSessionStore

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Request Models
# =============================================================================


class CompanyRequest(BaseModel):
    """Company fields as typed on the setup screen. Blank values are rejected by the endpoint."""

    name: str = Field(default="", description="Company name")
    industry: str = Field(default="", description="Industry (optional)")
    mission: str = Field(default="", description="Mission statement")


class InitRequest(BaseModel):
    """Request to start an interview."""

    company: Optional[CompanyRequest] = None


class ChatRequest(BaseModel):
    """Request carrying the CEO's selected answer."""

    session_id: str = Field(default="", description="Session identifier from /api/init")
    message: str = Field(default="", description="Text of the selected answer option")
    selected_bucket: str = Field(default="ok", description="Label of the selected option")


# =============================================================================
# Response Models
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = Field(default=False)
    error: str = Field(..., description="Error description")
    error_code: str | None = Field(default=None, description="Machine-readable error code")


class HealthResponse(BaseModel):
    """Health check response."""

    ok: bool = Field(..., description="Service is up")
    has_key: bool = Field(..., description="Whether generative backend credentials are present")
    active_sessions: int = Field(..., description="Sessions held in memory")
    service: str = Field(default=SHOW_NAME, description="Service name")
    version: str = Field(default=__version__, description="Service version")


class InitResponse(BaseModel):
    """Opening turn of a new interview."""

    session_id: str
    payload: dict[str, Any]


class ChatResponse(BaseModel):
    """Next host turn."""

    payload: dict[str, Any]


class DiscardResponse(BaseModel):
    ok: bool = True
    discarded: bool


# =============================================================================
# Application State (Type-safe Lifespan State)
# =============================================================================


class AppState(TypedDict):
    """Type-safe application state managed by lifespan."""

    backend: HostBackend
    store: InterviewSessionStore
    normalizer: ResponseNormalizer


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class MissingFieldsError(ServiceError):
    """Raised when a request lacks a required field."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="MISSING_FIELDS",
        )


class SessionNotFoundError(ServiceError):
    """Raised when a session id is not held (e.g. after a restart)."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            message=f"Unknown session id '{session_id}' (server restarted?)",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="SESSION_NOT_FOUND",
        )


class UpstreamError(ServiceError):
    """Raised when the generative backend fails."""

    def __init__(self, message: str = "Host backend failed") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="BACKEND_FAILURE",
        )


# =============================================================================
# Dependencies
# =============================================================================


def get_app_state(request: Request) -> AppState:
    """
    Dependency to retrieve application state from request.

    Raises:
        RuntimeError: If state is not properly initialized.
    """
    state = getattr(request, "state", None)
    if state is None:
        raise RuntimeError("Application state not initialized")
    return AppState(
        backend=state.backend,
        store=state.store,
        normalizer=state.normalizer,
    )


AppStateDep = Annotated[AppState, Depends(get_app_state)]


# =============================================================================
# Exception Handlers
# =============================================================================


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            ok=False,
            error=exc.message,
            error_code=exc.error_code,
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            ok=False,
            error="Internal server error",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


# =============================================================================
# Endpoints
# =============================================================================


async def health(state: AppStateDep) -> HealthResponse:
    return HealthResponse(
        ok=True,
        has_key=state["backend"].is_configured(),
        active_sessions=len(state["store"]),
    )


async def init_interview(body: InitRequest, state: AppStateDep) -> InitResponse:
    """
    Start an interview for a company.

    Raises:
        MissingFieldsError: If name or mission is blank.
        UpstreamError: If the backend fails to produce the opening turn.
    """
    company = body.company
    if company is None:
        raise MissingFieldsError("Missing company fields")
    profile = CompanyProfile(
        name=company.name.strip(),
        industry=company.industry.strip(),
        mission=company.mission.strip(),
    )
    if not profile.is_complete():
        raise MissingFieldsError("Missing company fields")

    try:
        session_id, raw = await state["store"].create(profile)
    except BackendError as exc:
        raise UpstreamError(str(exc)) from exc

    payload = state["normalizer"].normalize(raw, opening=True)
    logger.info("[init] session %s for '%s'", session_id, profile.name)
    return InitResponse(session_id=session_id, payload=payload.model_dump(mode="json"))


async def chat(body: ChatRequest, state: AppStateDep) -> ChatResponse:
    """
    Send the selected answer and return the next host turn.

    The payload's bucket is overwritten with the selected bucket.

    Raises:
        MissingFieldsError: If session_id or message is blank.
        SessionNotFoundError: If the session is not held.
        UpstreamError: If the backend call fails.
    """
    if not body.session_id:
        raise MissingFieldsError("Missing session_id")
    if not body.message.strip():
        raise MissingFieldsError("Missing message")

    bucket = OPTION_BUCKETS.get(body.selected_bucket.strip().lower(), Bucket.OK)
    try:
        raw = await state["store"].send(body.session_id, body.message, bucket)
    except UnknownSessionError as exc:
        raise SessionNotFoundError(exc.session_id) from exc
    except BackendError as exc:
        raise UpstreamError(str(exc)) from exc

    payload = state["normalizer"].normalize(raw)
    if payload.bucket != bucket:
        logger.info(
            "[chat] %s host echoed %s for a %s answer",
            body.session_id, payload.bucket.value, bucket.value,
        )
        payload = payload.model_copy(update={"bucket": bucket})
    return ChatResponse(payload=payload.model_dump(mode="json"))


async def discard_session(session_id: str, state: AppStateDep) -> DiscardResponse:
    discarded = await state["store"].discard(session_id)
    return DiscardResponse(ok=True, discarded=discarded)


# =============================================================================
# FastAPI Application
# =============================================================================


def create_app(
    backend: Optional[HostBackend] = None,
    config: Optional[RuntimeConfig] = None,
) -> FastAPI:
    """
    Build the service.

    Args:
        backend: Host backend. Defaults to an AgentHostBackend built from
                 the runtime config when the app starts.
        config: Runtime config. Loaded from the environment when omitted.
    """
    runtime = config or load_runtime_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[dict[str, Any]]:
        logger.info("Starting %s service v%s", SHOW_NAME, __version__)
        host_backend = backend or AgentHostBackend(
            model=runtime.model,
            reasoning_effort=runtime.reasoning_effort,
        )
        normalizer = ResponseNormalizer()
        store = InterviewSessionStore(host_backend, labels=normalizer.labels)

        yield {
            "backend": host_backend,
            "store": store,
            "normalizer": normalizer,
        }

        logger.info("Shutting down...")
        await store.close()

    app = FastAPI(
        title=f"{SHOW_NAME} Service",
        version=__version__,
        description="Generative host sessions for The Hot Seat interview game",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(runtime.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=3600,
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.add_api_route("/api/health", health, methods=["GET"], response_model=HealthResponse)
    app.add_api_route("/api/init", init_interview, methods=["POST"], response_model=InitResponse)
    app.add_api_route("/api/chat", chat, methods=["POST"], response_model=ChatResponse)
    app.add_api_route(
        "/api/session/{session_id}",
        discard_session,
        methods=["DELETE"],
        response_model=DiscardResponse,
    )
    return app


app = create_app()
