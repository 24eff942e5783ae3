"""Local demo agent that follows the status-file protocol.

Stands in for a real CLI agent in integration tests: prints to its terminal,
appends progress lines to the status file and finishes with the sentinel.
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from parallel_agents.fleet.status_channel import COMPLETION_SENTINEL, StatusChannel


def main(argv: list[str] | None = None) -> int:
    """Run deterministic demo progress reporting."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--status-file", required=True)
    parser.add_argument("--worker-id", type=int, required=True)
    parser.add_argument("--steps", type=int, default=2)
    parser.add_argument("--step-seconds", type=float, default=0.0)
    parser.add_argument("--exit-code", type=int, default=0)
    parser.add_argument("--skip-completion", action="store_true")
    parser.add_argument("--sentinel", default=COMPLETION_SENTINEL)
    parser.add_argument("prompt", nargs="?", default="")
    args = parser.parse_args(argv)

    channel = StatusChannel(Path(args.status_file), args.worker_id, sentinel=args.sentinel)
    tty_note = "tty" if sys.stdout.isatty() else "no tty"
    print(f"status_agent worker={args.worker_id} ({tty_note})", flush=True)

    for step in range(1, args.steps + 1):
        channel.append(f"Status: step {step}/{args.steps}")
        print(f"step {step}", flush=True)
        if args.step_seconds > 0:
            time.sleep(args.step_seconds)

    if not args.skip_completion:
        channel.append(f"{args.sentinel} demo task finished")
    return args.exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
