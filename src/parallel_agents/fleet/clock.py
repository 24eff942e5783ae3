"""Time helpers shared by launcher and monitor loops."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


def sleep_with_stop(seconds: float, stop_requested: Callable[[], bool] | None = None) -> bool:
    """Sleep up to ``seconds``; return False if a stop was requested meanwhile."""

    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        if stop_requested is not None and stop_requested():
            return False
        time.sleep(min(0.1, max(0.0, deadline - time.monotonic())))
    return not (stop_requested is not None and stop_requested())
