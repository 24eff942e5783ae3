"""Capability interface for launching interactive (terminal-bound) processes."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


class WorkerLaunchError(RuntimeError):
    """The backend could not create the worker subprocess."""

    def __init__(self, message: str, *, worker_id: int | None = None) -> None:
        super().__init__(message)
        self.worker_id = worker_id


@dataclass(slots=True)
class ProcessSpawnRequest:
    """Everything a backend needs to start one agent process."""

    argv: list[str]
    cwd: Path
    env: dict[str, str] = field(default_factory=dict)
    columns: int = 80
    rows: int = 30


@dataclass(slots=True)
class ProcessExit:
    """How a process ended. Exactly one of the fields is set for real exits."""

    exit_code: int | None
    signal_name: str | None = None

    def describe(self) -> str:
        if self.signal_name is not None:
            return f"signal {self.signal_name}"
        return f"code {self.exit_code}"


class InteractiveProcess(Protocol):
    """Handle to a running process attached to a terminal-like session."""

    @property
    def pid(self) -> int:
        """OS process identifier."""

    def read(self) -> bytes:
        """Block for the next output chunk; ``b""`` once output is exhausted."""

    def poll(self) -> int | None:
        """Return the raw return code once exited, otherwise None."""

    def wait(self) -> ProcessExit:
        """Block until exit and release backend resources."""

    def terminate(self) -> None:
        """Send a graceful termination request."""


class InteractiveProcessLauncher(Protocol):
    """Protocol implemented by terminal-emulation backends."""

    def spawn(self, request: ProcessSpawnRequest) -> InteractiveProcess:
        """Start a process or raise :class:`WorkerLaunchError`."""
