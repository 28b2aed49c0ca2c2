#!/usr/bin/env python3
"""
Launch The Hot Seat service.
"""

from __future__ import annotations

import argparse
import os

import uvicorn

from hotseat.config import DEFAULT_HOST, DEFAULT_PORT


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run The Hot Seat host service.",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="Bind host.")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Bind port.")
    parser.add_argument("--model", default=None, help="Override OPENAI_MODEL.")
    parser.add_argument(
        "--reasoning-effort",
        choices=["low", "medium", "high"],
        default=None,
        help="Override OPENAI_REASONING_EFFORT.",
    )
    parser.add_argument("--log-level", default="info", help="Uvicorn log level.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    os.environ["HOTSEAT_HOST"] = args.host
    os.environ["HOTSEAT_PORT"] = str(args.port)
    if args.model:
        os.environ["OPENAI_MODEL"] = args.model
    if args.reasoning_effort:
        os.environ["OPENAI_REASONING_EFFORT"] = args.reasoning_effort

    from hotseat_service import app  # Import after env config

    print(f"Starting The Hot Seat service bind=http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
