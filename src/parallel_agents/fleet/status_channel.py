"""Append-only per-worker status file protocol.

Line format: ``[YYYY-MM-DD HH:MM:SS] [Worker<id>] <message>`` (UTC).

The file is written by two parties: the agent itself (through its wrapper
shell, using the same line format) and the orchestrator (the initial
"Initializing" line and, on abnormal exit, one synthetic terminal line).
Readers only trust newline-terminated lines, so a half-written sentinel is
not reported as completion. This is best-effort, not linearizable.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from parallel_agents.fleet.clock import utc_now

COMPLETION_SENTINEL = "COMPLETED:"
NO_STATUS_PLACEHOLDER = "No status yet"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_status_line(worker_id: int, message: str, now: datetime) -> str:
    """Render one protocol line including the trailing newline."""

    single_line = " ".join(message.splitlines()).strip()
    return f"[{now.strftime(TIMESTAMP_FORMAT)}] [Worker{worker_id}] {single_line}\n"


class StatusChannel:
    """Status file of one worker."""

    def __init__(
        self,
        path: Path,
        worker_id: int,
        *,
        sentinel: str = COMPLETION_SENTINEL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.path = path
        self.worker_id = worker_id
        self.sentinel = sentinel
        self._clock = clock

    def exists(self) -> bool:
        return self.path.is_file()

    def append(self, message: str) -> str:
        """Append one timestamped line, creating the file on first write.

        A fragment left without a newline by the agent is terminated first so
        the appended line keeps its own format.
        """

        line = format_status_line(self.worker_id, message, self._clock())
        self.path.parent.mkdir(parents=True, exist_ok=True)
        prefix = "" if self._ends_with_newline() else "\n"
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(prefix + line)
        return line

    def read_lines(self, *, include_partial: bool = False) -> list[str]:
        """Return complete lines; a trailing fragment is ignored unless ``include_partial``.

        The fragment is only worth trusting once the writer has exited.
        """

        try:
            content = self.path.read_text("utf-8", errors="replace")
        except FileNotFoundError:
            return []
        lines = content.split("\n")
        if include_partial:
            return lines if lines[-1] else lines[:-1]
        return lines[:-1]

    def last_status(self) -> str | None:
        for line in reversed(self.read_lines()):
            stripped = line.strip()
            if stripped:
                return stripped
        return None

    def is_complete(self, *, include_partial: bool = False) -> bool:
        """Sentinel present on any line, not only the last one."""

        return any(
            self.sentinel in line for line in self.read_lines(include_partial=include_partial)
        )

    def _ends_with_newline(self) -> bool:
        try:
            with self.path.open("rb") as handle:
                handle.seek(0, os.SEEK_END)
                if handle.tell() == 0:
                    return True
                handle.seek(-1, os.SEEK_END)
                return handle.read(1) == b"\n"
        except FileNotFoundError:
            return True
