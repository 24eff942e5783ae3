"""Interactive process backends."""

from parallel_agents.fleet.backend.base import (
    InteractiveProcess,
    InteractiveProcessLauncher,
    ProcessExit,
    ProcessSpawnRequest,
    WorkerLaunchError,
)
from parallel_agents.fleet.backend.pty_backend import PtyProcess, PtyProcessLauncher

__all__ = [
    "InteractiveProcess",
    "InteractiveProcessLauncher",
    "ProcessExit",
    "ProcessSpawnRequest",
    "PtyProcess",
    "PtyProcessLauncher",
    "WorkerLaunchError",
]
