"""Domain models for supervised workers, snapshots and lifecycle events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from parallel_agents.fleet.backend.base import InteractiveProcess, ProcessExit
from parallel_agents.fleet.status_channel import StatusChannel


class MonitorState(str, Enum):
    """Monitor loop states. STOPPED is terminal within a run."""

    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(slots=True, eq=False)
class Worker:
    """One supervised agent process and the resources it owns."""

    worker_id: int
    instruction_file: Path
    process: InteractiveProcess
    log_sink: BinaryIO
    log_path: Path
    pid_path: Path
    status_channel: StatusChannel
    started_at: datetime
    running: bool = True

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_alive(self) -> bool:
        return self.process.poll() is None


@dataclass(slots=True, frozen=True)
class WorkerSnapshot:
    """Point-in-time view of one registered worker."""

    worker_id: int
    pid: int
    alive: bool
    started_at: datetime
    elapsed_seconds: int
    last_status: str


@dataclass(slots=True, frozen=True)
class CompletionStatus:
    """Completion accounting over status channels present on disk."""

    completed: int
    total: int

    @property
    def all_completed(self) -> bool:
        return self.total > 0 and self.completed == self.total


@dataclass(slots=True, frozen=True)
class MonitorReport:
    """Everything one monitor tick hands to the render sink."""

    generated_at: datetime
    workers: tuple[WorkerSnapshot, ...]
    completion: CompletionStatus
    state: MonitorState = MonitorState.RUNNING

    @property
    def active(self) -> int:
        return len(self.workers)


@dataclass(slots=True, frozen=True)
class WorkerOutput:
    """Raw output chunk produced by a worker's terminal."""

    worker: Worker
    data: bytes


@dataclass(slots=True, frozen=True)
class WorkerExited:
    """Terminal event of a worker; delivered exactly once per launch."""

    worker: Worker
    exit: ProcessExit


WorkerEvent = WorkerOutput | WorkerExited
