"""
The Hot Seat Package.

A short, scored, turn-based TV interview: the CEO of a company answers a
generative host's questions by picking prepared answers, and a synthetic
stock price moves with the quality of each pick.

Components:
    - InterviewOrchestrator: Turn state machine (phases, input lock, outcome)
    - ScoringEngine: Deterministic-for-a-seed answer scoring
    - ResponseNormalizer: Repairs untrusted host payloads
    - InterviewSessionStore / RemoteSessionStore: Session id -> conversation
    - AgentHostBackend: Generative host on the OpenAI Agents SDK
    - InterviewEventPublisher: Real-time pub/sub for presentation adapters

Example:
    >>> from hotseat import AgentHostBackend, InterviewOrchestrator, InterviewSessionStore
    >>>
    >>> store = InterviewSessionStore(AgentHostBackend())
    >>> orchestrator = InterviewOrchestrator(store)
    >>> await orchestrator.submit_profile(CompanyProfile(name="OmniCorp", mission="..."))
    >>> await orchestrator.begin_interview()
    >>> await orchestrator.resolve_answer("good")

Last Grunted: 10/16/2026
"""

from .models import (
    Bucket,
    Sentiment,
    GamePhase,
    Outcome,
    PayloadShape,
    OPTION_BUCKETS,
    DEFAULT_OPTION_LABELS,
    CompanyProfile,
    HostTurnPayload,
    ScoreContext,
    ScoreResult,
    WorstAnswer,
    InterviewState,
    Message,
)

from .errors import BackendError, HotSeatError, UnknownSessionError

from .config import GameConfig, RuntimeConfig, load_game_config, load_runtime_config

from .scoring import BUCKET_BANDS, CONTRADICTION_BAND, ScoringEngine, has_metrics

from .normalizer import ResponseNormalizer, classify_payload, shape_option_text

from .backend import AgentHostBackend, HostBackend, HostConversation, HostTurnOutput

from .session import InterviewSessionStore, SessionStore

from .remote import RemoteSessionStore

from .events import GameEvent, GameEventType, InterviewEventPublisher

from .timers import TurnTimers

from .orchestrator import InterviewOrchestrator, Recovery, TurnStatus


__all__ = [
    # Models
    "Bucket",
    "Sentiment",
    "GamePhase",
    "Outcome",
    "PayloadShape",
    "OPTION_BUCKETS",
    "DEFAULT_OPTION_LABELS",
    "CompanyProfile",
    "HostTurnPayload",
    "ScoreContext",
    "ScoreResult",
    "WorstAnswer",
    "InterviewState",
    "Message",
    # Errors
    "HotSeatError",
    "BackendError",
    "UnknownSessionError",
    # Config
    "GameConfig",
    "RuntimeConfig",
    "load_game_config",
    "load_runtime_config",
    # Scoring
    "ScoringEngine",
    "BUCKET_BANDS",
    "CONTRADICTION_BAND",
    "has_metrics",
    # Normalizer
    "ResponseNormalizer",
    "classify_payload",
    "shape_option_text",
    # Backend
    "AgentHostBackend",
    "HostBackend",
    "HostConversation",
    "HostTurnOutput",
    # Sessions
    "SessionStore",
    "InterviewSessionStore",
    "RemoteSessionStore",
    # Pub/Sub
    "GameEvent",
    "GameEventType",
    "InterviewEventPublisher",
    # Orchestration
    "TurnTimers",
    "InterviewOrchestrator",
    "TurnStatus",
    "Recovery",
]

__version__ = "0.1.0"
