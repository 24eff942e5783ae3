"""Runtime configuration for launching and monitoring agent workers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from parallel_agents.fleet.command import DEFAULT_AGENT_COMMAND_TEMPLATE
from parallel_agents.fleet.status_channel import COMPLETION_SENTINEL


@dataclass(slots=True)
class LaunchSettings:
    """How agent processes are started."""

    agent_command_template: str = DEFAULT_AGENT_COMMAND_TEMPLATE
    shell: str = "bash"
    terminal_columns: int = 80
    terminal_rows: int = 30
    stagger_seconds: float = 2.0


@dataclass(slots=True)
class MonitorSettings:
    """Polling monitor settings."""

    interval_seconds: float = 10.0
    completion_sentinel: str = COMPLETION_SENTINEL
    clear_screen: bool = True


@dataclass(slots=True)
class ShutdownSettings:
    """Shutdown settings."""

    exit_wait_seconds: float = 5.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    work_dir: Path = field(default_factory=Path.cwd)
    launch: LaunchSettings = field(default_factory=LaunchSettings)
    monitor: MonitorSettings = field(default_factory=MonitorSettings)
    shutdown: ShutdownSettings = field(default_factory=ShutdownSettings)

    @classmethod
    def from_env(cls, work_dir: Path | None = None) -> Settings:
        """Load settings from environment with defaults matching the original runner."""

        env_work_dir = os.getenv("PARALLEL_AGENTS_WORK_DIR", "").strip()
        return cls(
            work_dir=work_dir or (Path(env_work_dir) if env_work_dir else Path.cwd()),
            launch=LaunchSettings(
                agent_command_template=os.getenv(
                    "PARALLEL_AGENTS_AGENT_COMMAND",
                    DEFAULT_AGENT_COMMAND_TEMPLATE,
                ),
                shell=os.getenv("PARALLEL_AGENTS_SHELL", "bash"),
                terminal_columns=_env_int("PARALLEL_AGENTS_TERMINAL_COLUMNS", 80),
                terminal_rows=_env_int("PARALLEL_AGENTS_TERMINAL_ROWS", 30),
                stagger_seconds=_env_float("PARALLEL_AGENTS_STAGGER_SECONDS", 2.0),
            ),
            monitor=MonitorSettings(
                interval_seconds=_env_float("PARALLEL_AGENTS_MONITOR_INTERVAL_SECONDS", 10.0),
                completion_sentinel=os.getenv(
                    "PARALLEL_AGENTS_COMPLETION_SENTINEL",
                    COMPLETION_SENTINEL,
                ),
                clear_screen=_env_bool("PARALLEL_AGENTS_CLEAR_SCREEN", default=True),
            ),
            shutdown=ShutdownSettings(
                exit_wait_seconds=_env_float("PARALLEL_AGENTS_EXIT_WAIT_SECONDS", 5.0),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for unusable values."""

        template = self.launch.agent_command_template.strip()
        if not template:
            raise ValueError("PARALLEL_AGENTS_AGENT_COMMAND must not be empty.")
        if "{prompt}" not in template:
            raise ValueError("PARALLEL_AGENTS_AGENT_COMMAND must include {prompt}.")
        if not self.launch.shell.strip():
            raise ValueError("PARALLEL_AGENTS_SHELL must not be empty.")
        if self.launch.terminal_columns <= 0 or self.launch.terminal_rows <= 0:
            raise ValueError(
                "PARALLEL_AGENTS_TERMINAL_COLUMNS and PARALLEL_AGENTS_TERMINAL_ROWS must be > 0.",
            )
        if self.launch.stagger_seconds < 0:
            raise ValueError("PARALLEL_AGENTS_STAGGER_SECONDS must be >= 0.")
        if self.monitor.interval_seconds <= 0:
            raise ValueError("PARALLEL_AGENTS_MONITOR_INTERVAL_SECONDS must be > 0.")
        if not self.monitor.completion_sentinel.strip():
            raise ValueError("PARALLEL_AGENTS_COMPLETION_SENTINEL must not be empty.")
        if self.shutdown.exit_wait_seconds < 0:
            raise ValueError("PARALLEL_AGENTS_EXIT_WAIT_SECONDS must be >= 0.")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
