"""
Interview Orchestrator.

The turn state machine for one run of The Hot Seat:

    SETUP --submit_profile--> INTRO --begin_interview--> INTERVIEW --> SUMMARY

It gates input, sends the CEO's selection to the session store, repairs the
host reply, scores the answer locally and advances the turn. Scoring always
uses the bucket of the option the CEO actually picked; the host's echo is
advisory.

Concurrency:
    Single asyncio loop. resolve_answer() flips `awaiting_answer` off before
    its first await, so a second selection made while a turn is in flight
    is rejected even under asyncio.gather().

Last Grunted: 10/16/2026
"""

from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Any, Final, Optional

from .config import GameConfig
from .errors import BackendError, UnknownSessionError
from .events import GameEventType, InterviewEventPublisher
from .models import (
    Bucket,
    CompanyProfile,
    GamePhase,
    HostTurnPayload,
    InterviewState,
    Message,
    OPTION_BUCKETS,
    Outcome,
    ScoreContext,
    WorstAnswer,
)
from .normalizer import ResponseNormalizer, RETRY_TEXT
from .scoring import ScoringEngine
from .session import SessionStore
from .timers import TurnTimers


__all__ = ["InterviewOrchestrator", "TurnStatus", "Recovery", "guard_delta"]


logger = logging.getLogger(__name__)


# Guard applied on top of the scoring engine's own bands.
MAX_ABS_DELTA: Final[float] = 5.0
MIN_GUARD_MAGNITUDE: Final[float] = 0.01
OK_GUARD_BAND: Final[tuple[float, float]] = (-1.0, 1.5)
CONTRADICTION_MIN_PENALTY: Final[float] = 1.1

# Cosmetic audience meter.
AUDIENCE_UP: Final[int] = 6
AUDIENCE_DOWN: Final[int] = 8

SESSION_LOST_TEXT: Final[str] = (
    "It looks like we've lost the feed from the studio. We'll have to start this segment again."
)

INTRO_TIMER: Final[str] = "intro"
SILENCE_TIMER: Final[str] = "silence"
NEXT_QUESTION_TIMER: Final[str] = "next_question"


class TurnStatus(str, Enum):
    """Result of one resolve_answer() call."""
    REJECTED = "rejected"
    SCORED = "scored"
    RETRY = "retry"
    SESSION_LOST = "session_lost"


class Recovery(str, Enum):
    """What the caller can do after a failure."""
    RETRY_TURN = "retry_turn"
    RETRY_START = "retry_start"
    RESTART = "restart"


def guard_delta(delta: float, bucket: Bucket, is_contradiction: bool) -> float:
    """
    Final consistency clamp on a scored delta.

    GOOD never moves the price down, EVASIVE and BAD never move it up, OK
    stays in a narrow band, and nothing exceeds the global cap. A flagged
    contradiction always costs at least CONTRADICTION_MIN_PENALTY.
    """
    guarded = max(-MAX_ABS_DELTA, min(MAX_ABS_DELTA, delta))
    if is_contradiction:
        return round(min(guarded, -CONTRADICTION_MIN_PENALTY), 2)
    if bucket == Bucket.GOOD:
        guarded = max(guarded, MIN_GUARD_MAGNITUDE)
    elif bucket == Bucket.OK:
        guarded = max(OK_GUARD_BAND[0], min(OK_GUARD_BAND[1], guarded))
    else:
        guarded = min(guarded, -MIN_GUARD_MAGNITUDE)
    return round(guarded, 2)


class InterviewOrchestrator:
    """
    Drives one interview at a time.

    Args:
        store: Session store (in-process or remote). Owned by the caller.
        config: Game rules. Defaults to GameConfig().
        scoring: Scoring engine. Defaults to one seeded from `rng`.
        normalizer: Response normalizer. Defaults to good/ok/evasive labels.
        publisher: Event publisher. A private one is created when omitted.
        rng: Random source for scoring and next-question delays.

    Raises:
        ValueError: If config.max_turns < 1.

    Example:
        >>> orchestrator = InterviewOrchestrator(InterviewSessionStore(AgentHostBackend()))
        >>> await orchestrator.submit_profile(profile)
        >>> await orchestrator.begin_interview()
        >>> status = await orchestrator.resolve_answer("good")
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        config: Optional[GameConfig] = None,
        scoring: Optional[ScoringEngine] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        publisher: Optional[InterviewEventPublisher] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._config = config or GameConfig()
        if self._config.max_turns < 1:
            raise ValueError(f"max_turns must be at least 1. Got: {self._config.max_turns}")

        self._store = store
        self._rng = rng or random.Random()
        self._scoring = scoring or ScoringEngine(self._rng)
        self._normalizer = normalizer or ResponseNormalizer()
        self.events = publisher or InterviewEventPublisher()
        self.timers = TurnTimers()

        self._phase = GamePhase.SETUP
        self._state = self._fresh_state()
        self._profile: Optional[CompanyProfile] = None
        self._session_id: Optional[str] = None
        self._options: dict[str, str] = {}
        self._pending_options: dict[str, str] = {}
        self._messages: list[Message] = []
        self._last_question: Optional[str] = None
        self._loading = False
        self._recovery: Optional[Recovery] = None
        self._silence_count = 0
        # Bumped on reset so in-flight awaits can tell their run is gone.
        self._epoch = 0

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def state(self) -> InterviewState:
        """Copy of the interview state."""
        return self._state.model_copy(deep=True)

    @property
    def options(self) -> dict[str, str]:
        return dict(self._options)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def recovery(self) -> Optional[Recovery]:
        return self._recovery

    @property
    def profile(self) -> Optional[CompanyProfile]:
        return self._profile

    # =========================================================================
    # Transitions
    # =========================================================================

    async def submit_profile(self, profile: CompanyProfile) -> bool:
        """
        SETUP -> INTRO.

        Returns False without changing anything when the phase is wrong or
        a required field is blank. Schedules begin_interview() after the
        intro delay.
        """
        if self._phase != GamePhase.SETUP:
            logger.warning("submit_profile ignored in phase %s", self._phase.value)
            return False
        if not profile.is_complete():
            logger.warning("submit_profile rejected: name and mission are required")
            return False

        self._profile = profile
        await self._set_phase(GamePhase.INTRO)
        self.timers.schedule(INTRO_TIMER, self._config.intro_delay_seconds, self._intro_elapsed)
        logger.info("Profile accepted for '%s'", profile.name)
        return True

    async def _intro_elapsed(self) -> None:
        await self.begin_interview()

    async def begin_interview(self) -> bool:
        """
        INTRO -> INTERVIEW: open the session and arm the first turn.

        Also retries a failed opening (recovery RETRY_START).

        Returns:
            True once the first turn is armed.
        """
        retrying = self._phase == GamePhase.INTERVIEW and self._recovery == Recovery.RETRY_START
        if not (self._phase == GamePhase.INTRO or retrying) or self._loading:
            logger.warning("begin_interview ignored in phase %s", self._phase.value)
            return False
        profile = self._profile
        if profile is None:
            logger.warning("begin_interview ignored: no profile submitted")
            return False

        self.timers.cancel(INTRO_TIMER)
        self._state = self._fresh_state()
        self._recovery = None
        self._loading = True
        epoch = self._epoch
        if not retrying:
            await self._set_phase(GamePhase.INTERVIEW)

        try:
            session_id, raw = await self._store.create(profile)
        except BackendError as e:
            if epoch != self._epoch:
                return False
            logger.warning("Opening turn failed, waiting for retry: %s", e)
            await self._opening_failed()
            return False
        except Exception as e:
            if epoch != self._epoch:
                return False
            logger.error("Unexpected error opening the interview: %s", e, exc_info=True)
            await self._opening_failed()
            return False

        if epoch != self._epoch:
            await self._store.discard(session_id)
            return False

        try:
            payload = self._normalizer.normalize(raw, opening=True)
        except Exception as e:
            logger.error("Opening turn for session %s unusable: %s", session_id, e, exc_info=True)
            await self._store.discard(session_id)
            await self._opening_failed()
            return False

        self._session_id = session_id
        self._loading = False
        await self._post_host(payload.text)
        self._state.turn_index = 1
        await self._arm_turn(payload.options)
        logger.info("Interview live for session %s", session_id)
        return True

    async def resolve_answer(self, label: str) -> TurnStatus:
        """
        Resolve the CEO's selection of one offered option.

        Args:
            label: Option label, e.g. "good".

        Returns:
            SCORED when the answer was scored, RETRY after a transport
            failure (options replaced, input re-armed), SESSION_LOST when the
            session is gone, REJECTED when input was not accepted.
        """
        reason = self._rejection_reason(label)
        if reason is not None:
            logger.warning("Answer '%s' rejected: %s", label, reason)
            return TurnStatus.REJECTED
        session_id = self._session_id
        if session_id is None:
            logger.warning("Answer '%s' rejected: no session is open", label)
            return TurnStatus.REJECTED

        # Lock input before the first await.
        self._state.awaiting_answer = False
        self._loading = True
        self.timers.cancel(SILENCE_TIMER)
        epoch = self._epoch

        answer_text = self._options[label]
        bucket = OPTION_BUCKETS[label]
        await self._post_player(answer_text, bucket)

        try:
            raw = await self._store.send(session_id, answer_text, bucket)
        except UnknownSessionError:
            if epoch != self._epoch:
                return TurnStatus.REJECTED
            return await self._session_lost(session_id)
        except BackendError as e:
            if epoch != self._epoch:
                return TurnStatus.REJECTED
            return await self._transport_failed(e)
        except Exception as e:
            if epoch != self._epoch:
                return TurnStatus.REJECTED
            logger.error("Unexpected error sending turn %d: %s", self._state.turn_index, e, exc_info=True)
            return await self._transport_failed(BackendError(str(e), cause=e))

        if epoch != self._epoch:
            return TurnStatus.REJECTED

        try:
            payload = self._normalizer.normalize(raw)
            self._recovery = None
            await self._score_turn(payload, answer_text, bucket)
        except Exception as e:
            logger.error("Turn %d could not be resolved: %s", self._state.turn_index, e, exc_info=True)
            if self._state.outcome is not None:
                self._loading = False
                return TurnStatus.SCORED
            return await self._transport_failed(BackendError(str(e), cause=e))
        self._loading = False
        return TurnStatus.SCORED

    async def reset(self) -> None:
        """Back to SETUP with fresh state. Cancels timers and discards the session."""
        self._epoch += 1
        self.timers.cancel_all()
        session_id = self._session_id

        self._state = self._fresh_state()
        self._profile = None
        self._session_id = None
        self._options = {}
        self._pending_options = {}
        self._messages = []
        self._last_question = None
        self._loading = False
        self._recovery = None
        self._silence_count = 0

        if session_id is not None:
            await self._store.discard(session_id)
        await self._set_phase(GamePhase.SETUP)
        logger.info("Orchestrator reset")

    # =========================================================================
    # Turn internals
    # =========================================================================

    def _rejection_reason(self, label: str) -> Optional[str]:
        if self._phase != GamePhase.INTERVIEW:
            return f"phase is {self._phase.value}"
        if self._state.outcome is not None:
            return "interview is over"
        if self._loading:
            return "a turn is in flight"
        if not self._state.awaiting_answer:
            return "input is locked"
        if not self._options:
            return "no options armed"
        if label not in self._options:
            return "label was not offered"
        return None

    async def _score_turn(self, payload: HostTurnPayload, answer_text: str, bucket: Bucket) -> None:
        if payload.bucket != bucket:
            logger.info(
                "Host echoed bucket %s for a %s answer, using the selection",
                payload.bucket.value, bucket.value,
            )

        context = ScoreContext(
            bucket=bucket,
            is_contradiction=payload.is_contradiction,
            evasive_streak_before=self._state.evasive_streak,
            turns_remaining=self._state.max_turns - self._state.turn_index,
            answer_text=answer_text,
        )
        result = self._scoring.score(context)
        delta = guard_delta(result.delta, bucket, payload.is_contradiction)

        self._state.evasive_streak = result.next_evasive_streak
        await self._post_host(
            payload.text,
            delta=delta,
            tone=result.tone,
            tick="up" if delta > 0 else "down",
            flash=result.flash,
            bucket=bucket,
        )
        await self._apply_delta(delta, answer_text, bucket, payload)
        logger.info(
            "Turn %d/%d scored %+.2f (%s) -> %.2f",
            self._state.turn_index, self._state.max_turns, delta, bucket.value, self._state.score,
        )

        if self._state.score < self._config.fail_score:
            await self._finish(Outcome.FAILURE)
            return
        if self._state.turn_index >= self._state.max_turns:
            await self._finish(Outcome.SUCCESS)
            return

        self._state.turn_index += 1
        self._last_question = payload.text
        low, high = self._config.next_question_delay
        if high > 0:
            self._pending_options = dict(payload.options)
            self._options = {}
            self.timers.schedule(
                NEXT_QUESTION_TIMER, self._rng.uniform(low, high), self._arm_pending,
            )
        else:
            await self._arm_turn(payload.options)

    async def _apply_delta(
        self, delta: float, answer_text: str, bucket: Bucket, payload: HostTurnPayload,
    ) -> None:
        state = self._state
        state.score = max(0.0, round(state.score + delta, 2))
        state.lowest_score = min(state.lowest_score, state.score)

        if delta < 0 and (state.worst_answer is None or delta < state.worst_answer.delta):
            state.worst_answer = WorstAnswer(
                player_text=answer_text,
                question_text=self._last_question,
                bucket=Bucket.BAD if payload.is_contradiction else bucket,
                delta=delta,
                reason=payload.reason,
                turn_index=state.turn_index,
            )

        if delta > 0:
            state.audience_sentiment = min(100, state.audience_sentiment + AUDIENCE_UP)
        elif delta < 0:
            state.audience_sentiment = max(0, state.audience_sentiment - AUDIENCE_DOWN)

        await self.events.emit(
            GameEventType.SCORE_CHANGED,
            score=state.score,
            delta=delta,
            lowest_score=state.lowest_score,
            audience_sentiment=state.audience_sentiment,
        )

    async def _finish(self, outcome: Outcome) -> None:
        self.timers.cancel_all()
        self._state.outcome = outcome
        self._state.awaiting_answer = False
        self._options = {}
        self._pending_options = {}
        self._loading = False
        logger.info(
            "Interview over: %s at %.2f after %d turn(s)",
            outcome.value, self._state.score, self._state.turn_index,
        )
        await self._set_phase(GamePhase.SUMMARY, outcome=outcome.value)

    async def _arm_turn(self, options: dict[str, str]) -> None:
        self._options = dict(options)
        self._pending_options = {}
        self._state.awaiting_answer = True
        await self.events.emit(
            GameEventType.TURN_ARMED,
            turn_index=self._state.turn_index,
            max_turns=self._state.max_turns,
            options=self.options,
        )
        if self._config.silence_seconds > 0:
            self.timers.schedule(SILENCE_TIMER, self._config.silence_seconds, self._on_silence)

    async def _arm_pending(self) -> None:
        if self._phase == GamePhase.INTERVIEW and self._state.outcome is None and self._pending_options:
            await self._arm_turn(self._pending_options)

    async def _on_silence(self) -> None:
        if self._phase != GamePhase.INTERVIEW or not self._state.awaiting_answer:
            return
        lines = self._config.silence_lines
        if not lines:
            return
        line = lines[self._silence_count % len(lines)]
        self._silence_count += 1
        await self._post_host(line, record_question=False)
        await self.events.emit(GameEventType.SILENCE, text=line)

    async def _opening_failed(self) -> None:
        self._loading = False
        self._recovery = Recovery.RETRY_START
        await self._post_host(RETRY_TEXT, record_question=False)
        await self.events.emit(
            GameEventType.TECHNICAL_DIFFICULTY, recovery=Recovery.RETRY_START.value,
        )

    async def _transport_failed(self, error: BackendError) -> TurnStatus:
        logger.warning("Turn %d not scored, offering retry: %s", self._state.turn_index, error)
        self._loading = False
        self._recovery = Recovery.RETRY_TURN
        await self._post_host(RETRY_TEXT, record_question=False)
        await self.events.emit(
            GameEventType.TECHNICAL_DIFFICULTY, recovery=Recovery.RETRY_TURN.value,
        )
        await self._arm_turn(self._normalizer.retry_options())
        return TurnStatus.RETRY

    async def _session_lost(self, session_id: str) -> TurnStatus:
        logger.warning("Session %s lost, interview must restart", session_id)
        self._loading = False
        self._options = {}
        self._state.awaiting_answer = False
        self._recovery = Recovery.RESTART
        await self._post_host(SESSION_LOST_TEXT, record_question=False)
        await self.events.emit(GameEventType.SESSION_LOST, session_id=session_id)
        return TurnStatus.SESSION_LOST

    # =========================================================================
    # Helpers
    # =========================================================================

    def _fresh_state(self) -> InterviewState:
        return InterviewState(
            score=self._config.start_score,
            lowest_score=self._config.start_score,
            max_turns=self._config.max_turns,
        )

    async def _set_phase(self, phase: GamePhase, **extra: Any) -> None:
        previous = self._phase
        self._phase = phase
        if phase != GamePhase.INTERVIEW:
            self.timers.cancel(SILENCE_TIMER)
        logger.info("Phase %s -> %s", previous.value, phase.value)
        await self.events.emit(
            GameEventType.PHASE_CHANGED, phase=phase.value, previous=previous.value, **extra,
        )

    async def _post_host(self, text: str, *, record_question: bool = True, **fields: Any) -> Message:
        message = Message(sender="host", text=text, **fields)
        self._messages.append(message)
        if record_question and message.delta is None:
            self._last_question = text
        await self.events.emit(GameEventType.HOST_LINE, message=message.model_dump(mode="json"))
        return message

    async def _post_player(self, text: str, bucket: Bucket) -> Message:
        message = Message(sender="player", text=text, bucket=bucket)
        self._messages.append(message)
        await self.events.emit(GameEventType.PLAYER_LINE, message=message.model_dump(mode="json"))
        return message
