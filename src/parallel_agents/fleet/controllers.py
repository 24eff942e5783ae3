"""Controller for the fleet run command: startup, monitoring, shutdown."""

from __future__ import annotations

import logging
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path

from parallel_agents.config import Settings
from parallel_agents.fleet.backend import InteractiveProcessLauncher, PtyProcessLauncher
from parallel_agents.fleet.dispatcher import EventDispatcher
from parallel_agents.fleet.launcher import LaunchBatch, WorkerLauncher
from parallel_agents.fleet.layout import FleetLayout
from parallel_agents.fleet.models import CompletionStatus
from parallel_agents.fleet.monitor import RenderCallback, WorkerMonitor
from parallel_agents.fleet.registry import WorkerRegistry
from parallel_agents.fleet.render import ConsoleRenderer
from parallel_agents.fleet.terminator import Terminator

logger = logging.getLogger(__name__)


class FleetConfigurationError(ValueError):
    """Invalid invocation or settings; nothing was launched."""


class FleetStartupError(RuntimeError):
    """Launch batch failed; already-started workers were terminated."""


@dataclass(slots=True)
class FleetRunCommand:
    """CLI input for one fleet run."""

    instruction_files: tuple[Path, ...]
    work_dir: Path | None = None
    stagger_seconds: float | None = None
    interval_seconds: float | None = None
    agent_command: str | None = None


@dataclass(slots=True)
class FleetRunResult:
    """Outcome reported back to the CLI."""

    exit_code: int
    launched: tuple[int, ...] = ()
    missing: tuple[Path, ...] = ()
    completion: CompletionStatus = field(
        default_factory=lambda: CompletionStatus(completed=0, total=0),
    )
    stop_signal: str | None = None

    @property
    def all_completed(self) -> bool:
        return self.completion.all_completed


class FleetCliController:
    """Wires registry, launcher, monitor and terminator for one run."""

    def __init__(
        self,
        *,
        process_launcher: InteractiveProcessLauncher | None = None,
        render: RenderCallback | None = None,
        emit: Callable[[str], None] | None = None,
    ) -> None:
        self._process_launcher = process_launcher or PtyProcessLauncher()
        self._render = render
        self._emit = emit or (lambda _line: None)
        self._stop_requested = False
        self._stop_signal_name: str | None = None

    def run(self, command: FleetRunCommand) -> FleetRunResult:  # noqa: C901
        """Launch all workers, monitor until completion or a stop signal, terminate."""

        if not command.instruction_files:
            raise FleetConfigurationError("At least one instruction file is required.")
        settings = _resolve_settings(command)
        max_workers = len(command.instruction_files)

        layout = FleetLayout(settings.work_dir, sentinel=settings.monitor.completion_sentinel)
        layout.ensure_directories()
        layout.reset_stale_records(max_workers)

        registry = WorkerRegistry()
        dispatcher = EventDispatcher(registry=registry)
        launcher = WorkerLauncher(
            layout=layout,
            registry=registry,
            dispatcher=dispatcher,
            process_launcher=self._process_launcher,
            max_workers=max_workers,
            command_template=settings.launch.agent_command_template,
            shell=settings.launch.shell,
            terminal_columns=settings.launch.terminal_columns,
            terminal_rows=settings.launch.terminal_rows,
            stagger_seconds=settings.launch.stagger_seconds,
        )
        terminator = Terminator(registry)
        monitor = WorkerMonitor(
            registry=registry,
            layout=layout,
            terminator=terminator,
            max_workers=max_workers,
            render=self._render
            or ConsoleRenderer(clear_screen=settings.monitor.clear_screen, echo=self._emit),
            interval_seconds=settings.monitor.interval_seconds,
        )

        self._stop_requested = False
        self._stop_signal_name = None
        self._emit("Starting parallel agent execution")
        self._emit(f"Working Directory: {settings.work_dir}")
        self._emit(
            "Instruction Files: " + ", ".join(str(path) for path in command.instruction_files),
        )

        dispatcher.start()
        try:
            with self._signal_handlers():
                try:
                    batch = launcher.start_all_workers(
                        command.instruction_files,
                        stop_requested=self._is_stop_requested,
                    )
                except Exception as error:  # noqa: BLE001
                    logger.error("Worker startup failed: %s", error)
                    self._emit(f"Error starting workers: {error}")
                    terminator.terminate()
                    raise FleetStartupError(str(error)) from error

                self._emit_batch(batch)
                if not batch.launched and not self._stop_requested:
                    self._emit("No workers were launched.")
                    return self._result(batch, monitor)

                if not self._stop_requested:
                    monitor.run(stop_requested=self._is_stop_requested)

                if self._stop_requested:
                    self._emit(f"Received {self._stop_signal_name}, shutting down...")
                    monitor.stop()
                else:
                    self._emit("All workers completed.")
                self._emit("Terminating all workers...")
                for worker_id in [*monitor.terminated, *terminator.terminate()]:
                    self._emit(f"Terminated Worker {worker_id}")
                self._emit("All workers terminated.")
                return self._result(batch, monitor)
        finally:
            if not launcher.wait_for_exits(settings.shutdown.exit_wait_seconds):
                logger.warning(
                    "Some workers did not exit within %.1fs",
                    settings.shutdown.exit_wait_seconds,
                )
            dispatcher.stop(timeout=settings.shutdown.exit_wait_seconds)

    def _result(self, batch: LaunchBatch, monitor: WorkerMonitor) -> FleetRunResult:
        return FleetRunResult(
            exit_code=0,
            launched=tuple(worker.worker_id for worker in batch.launched),
            missing=tuple(batch.missing),
            completion=monitor.check_completion(),
            stop_signal=self._stop_signal_name,
        )

    def _emit_batch(self, batch: LaunchBatch) -> None:
        for path in batch.missing:
            self._emit(f"Warning: instruction file not found: {path}")
        for worker in batch.launched:
            self._emit(f"Started Worker {worker.worker_id} (PID {worker.pid})")

    def _is_stop_requested(self) -> bool:
        return self._stop_requested

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            self._request_stop(signal_name=name)

        installed = False
        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
            installed = True
        except ValueError:
            # Signal handlers can only be installed in main thread.
            logger.debug("Signal handlers not installed outside the main thread")
        try:
            yield
        finally:
            if installed:
                signal.signal(signal.SIGINT, original_sigint)
                signal.signal(signal.SIGTERM, original_sigterm)

    def _request_stop(self, *, signal_name: str) -> None:
        if self._stop_requested:
            return
        self._stop_requested = True
        self._stop_signal_name = signal_name
        logger.info("Received %s, stopping monitor", signal_name)


def _resolve_settings(command: FleetRunCommand) -> Settings:
    try:
        settings = Settings.from_env(work_dir=command.work_dir)
        if command.stagger_seconds is not None:
            settings.launch = replace(settings.launch, stagger_seconds=command.stagger_seconds)
        if command.interval_seconds is not None:
            settings.monitor = replace(settings.monitor, interval_seconds=command.interval_seconds)
        if command.agent_command is not None:
            settings.launch = replace(
                settings.launch,
                agent_command_template=command.agent_command,
            )
        settings.validate()
    except ValueError as error:
        raise FleetConfigurationError(str(error)) from error
    return settings
