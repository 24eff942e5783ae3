"""Filesystem layout of a run: ``logs/`` for raw output, ``comm/`` for the protocol."""

from __future__ import annotations

import logging
from pathlib import Path

from parallel_agents.fleet.status_channel import COMPLETION_SENTINEL, StatusChannel

logger = logging.getLogger(__name__)


class FleetLayout:
    """Deterministic per-worker paths under one working directory."""

    def __init__(self, work_dir: Path, *, sentinel: str = COMPLETION_SENTINEL) -> None:
        self.work_dir = work_dir
        self.logs_dir = work_dir / "logs"
        self.comm_dir = work_dir / "comm"
        self.sentinel = sentinel

    def ensure_directories(self) -> None:
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self.comm_dir.mkdir(parents=True, exist_ok=True)

    def log_path(self, worker_id: int) -> Path:
        return self.logs_dir / f"worker{worker_id}.log"

    def status_path(self, worker_id: int) -> Path:
        return self.comm_dir / f"worker{worker_id}_status.txt"

    def pid_path(self, worker_id: int) -> Path:
        return self.comm_dir / f"worker{worker_id}.pid"

    def status_channel(self, worker_id: int) -> StatusChannel:
        return StatusChannel(self.status_path(worker_id), worker_id, sentinel=self.sentinel)

    def reset_stale_records(self, max_workers: int) -> list[Path]:
        """Remove status files and pid records left by a previous run.

        Must only be called before the first launch of a run.
        """

        removed: list[Path] = []
        for worker_id in range(1, max_workers + 1):
            for path in (self.status_path(worker_id), self.pid_path(worker_id)):
                if path.is_file():
                    path.unlink()
                    removed.append(path)
        if removed:
            logger.info("Removed %d stale status/pid files from %s", len(removed), self.comm_dir)
        return removed
