#!/usr/bin/env python3
"""
Terminal presentation for The Hot Seat.

Plays one interview in the terminal, either against an in-process host
(OpenAI credentials required) or against a running service.

Usage:
    # In-process host:
    uv run python play_interview.py --name OmniCorp --mission "We cure boredom."

    # Against a running service, picking answers automatically:
    uv run python run_service.py
    uv run python play_interview.py --service-url http://localhost:8080 --auto --seed 7
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from typing import Final, Optional

from hotseat.backend import AgentHostBackend
from hotseat.config import GameConfig, HOST_NAME, SHOW_NAME, load_game_config
from hotseat.events import GameEvent, GameEventType
from hotseat.models import CompanyProfile, GamePhase, Outcome
from hotseat.orchestrator import InterviewOrchestrator, Recovery
from hotseat.remote import RemoteSessionStore
from hotseat.session import InterviewSessionStore, SessionStore

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS: Final[int] = 0
EXIT_BACKEND_ERROR: Final[int] = 1
EXIT_SESSION_LOST: Final[int] = 3
EXIT_INTERRUPTED: Final[int] = 130

POLL_SECONDS: Final[float] = 0.05
AUTO_PAUSE_SECONDS: Final[float] = 0.5


# =============================================================================
# Rendering
# =============================================================================

def render(event: GameEvent) -> None:
    data = event.data
    if event.event_type == GameEventType.PHASE_CHANGED:
        phase = data["phase"]
        if phase == GamePhase.INTRO.value:
            print(f"\n*** {SHOW_NAME} ***  On air shortly...\n")
        elif phase == GamePhase.SUMMARY.value:
            print(f"\n=== {data.get('outcome', '').upper()} ===")
    elif event.event_type in (GameEventType.HOST_LINE, GameEventType.PLAYER_LINE):
        message = data["message"]
        speaker = HOST_NAME if message["sender"] == "host" else "CEO"
        print(f"\n{speaker}: {message['text']}")
        if message.get("delta") is not None:
            print(f"    [{message['delta']:+.2f}] {message.get('tone') or ''}")
    elif event.event_type == GameEventType.SCORE_CHANGED:
        print(f"    STOCK {data['score']:.2f}  (low {data['lowest_score']:.2f})")
    elif event.event_type == GameEventType.TURN_ARMED:
        print(f"\n--- Question {data['turn_index']}/{data['max_turns']} ---")
        for index, (label, text) in enumerate(data["options"].items(), 1):
            print(f"  {index}) [{label}] {text}")


async def render_loop(queue: asyncio.Queue[GameEvent]) -> None:
    while True:
        render(await queue.get())


async def choose_label(options: dict[str, str], auto: bool, rng: random.Random) -> str:
    labels = list(options)
    if auto:
        await asyncio.sleep(AUTO_PAUSE_SECONDS)
        label = rng.choice(labels)
        print(f"  > {label}")
        return label
    while True:
        raw = (await asyncio.to_thread(input, "  Your answer (number or label): ")).strip().lower()
        if raw.isdigit() and 1 <= int(raw) <= len(labels):
            return labels[int(raw) - 1]
        if raw in options:
            return raw
        print("  Pick one of the offered answers.")


# =============================================================================
# Game Loop
# =============================================================================

async def play(
    store: SessionStore,
    profile: CompanyProfile,
    config: GameConfig,
    auto: bool,
    seed: Optional[int],
) -> int:
    rng = random.Random(seed)
    orchestrator = InterviewOrchestrator(store, config=config, rng=rng)
    queue = await orchestrator.events.subscribe()
    renderer = asyncio.create_task(render_loop(queue))

    try:
        if not await orchestrator.submit_profile(profile):
            logger.error("Company name and mission are required")
            return EXIT_BACKEND_ERROR

        while orchestrator.phase != GamePhase.SUMMARY:
            if orchestrator.recovery == Recovery.RESTART:
                return EXIT_SESSION_LOST
            if orchestrator.recovery == Recovery.RETRY_START and not orchestrator.is_loading:
                if not await orchestrator.begin_interview():
                    return EXIT_BACKEND_ERROR
                continue
            state = orchestrator.state
            if state.awaiting_answer and orchestrator.options:
                label = await choose_label(orchestrator.options, auto, rng)
                await orchestrator.resolve_answer(label)
                continue
            await asyncio.sleep(POLL_SECONDS)

        await asyncio.sleep(POLL_SECONDS)
        final = orchestrator.state
        print(f"\nFinal stock price: {final.score:.2f} (lowest {final.lowest_score:.2f})")
        if final.worst_answer is not None:
            worst = final.worst_answer
            print(f"Worst answer ({worst.bucket.value.upper()} {worst.delta:.2f}):")
            if worst.question_text:
                print(f"  Q: {worst.question_text}")
            print(f"  A: {worst.player_text}")
        return EXIT_SUCCESS if final.outcome in (Outcome.SUCCESS, Outcome.FAILURE) else EXIT_BACKEND_ERROR
    finally:
        await orchestrator.reset()
        renderer.cancel()
        await asyncio.gather(renderer, return_exceptions=True)
        await store.close()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=f"Play {SHOW_NAME} in the terminal.")
    parser.add_argument("--service-url", default=None, help="Use a running service instead of an in-process host.")
    parser.add_argument("--name", default=None, help="Company name.")
    parser.add_argument("--industry", default="", help="Industry (optional).")
    parser.add_argument("--mission", default=None, help="Mission statement.")
    parser.add_argument("--turns", type=int, default=None, help="Number of questions.")
    parser.add_argument("--auto", action="store_true", help="Pick answers at random.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for scoring and auto picks.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    name = args.name or input("Company name: ").strip()
    mission = args.mission or input("Mission statement: ").strip()
    profile = CompanyProfile(name=name, industry=args.industry, mission=mission)

    base = load_game_config()
    config = GameConfig(
        start_score=base.start_score,
        fail_score=base.fail_score,
        max_turns=args.turns or base.max_turns,
        intro_delay_seconds=base.intro_delay_seconds,
        silence_seconds=0.0 if args.auto else base.silence_seconds,
    )

    store: SessionStore
    if args.service_url:
        store = RemoteSessionStore(args.service_url)
    else:
        store = InterviewSessionStore(AgentHostBackend())

    try:
        return asyncio.run(play(store, profile, config, args.auto, args.seed))
    except KeyboardInterrupt:
        print("\nInterview interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
