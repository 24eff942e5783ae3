"""Worker launch with staggered start and per-worker output pumps."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from parallel_agents.fleet.backend.base import (
    InteractiveProcessLauncher,
    ProcessSpawnRequest,
    WorkerLaunchError,
)
from parallel_agents.fleet.clock import sleep_with_stop, utc_now
from parallel_agents.fleet.command import (
    DEFAULT_AGENT_COMMAND_TEMPLATE,
    build_agent_environment,
    build_agent_prompt,
    build_run_args,
)
from parallel_agents.fleet.dispatcher import EventDispatcher
from parallel_agents.fleet.layout import FleetLayout
from parallel_agents.fleet.models import Worker, WorkerExited, WorkerOutput
from parallel_agents.fleet.registry import WorkerRegistry

logger = logging.getLogger(__name__)

INITIAL_STATUS_MESSAGE = "Initializing worker process"


@dataclass(slots=True)
class LaunchBatch:
    """Outcome of one staggered launch pass."""

    launched: list[Worker] = field(default_factory=list)
    missing: list[Path] = field(default_factory=list)
    ignored: list[Path] = field(default_factory=list)
    interrupted: bool = False


class WorkerLauncher:
    """Starts agents inside a terminal backend and registers them."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        layout: FleetLayout,
        registry: WorkerRegistry,
        dispatcher: EventDispatcher,
        process_launcher: InteractiveProcessLauncher,
        max_workers: int,
        command_template: str = DEFAULT_AGENT_COMMAND_TEMPLATE,
        shell: str = "bash",
        terminal_columns: int = 80,
        terminal_rows: int = 30,
        stagger_seconds: float = 2.0,
        environment: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.layout = layout
        self.registry = registry
        self.dispatcher = dispatcher
        self.process_launcher = process_launcher
        self.max_workers = max_workers
        self.command_template = command_template
        self.shell = shell
        self.terminal_columns = terminal_columns
        self.terminal_rows = terminal_rows
        self.stagger_seconds = stagger_seconds
        self.environment = build_agent_environment(environment)
        self._clock = clock
        self._issued_ids: set[int] = set()
        self._pumps: list[threading.Thread] = []

    def start_all_workers(
        self,
        instruction_files: Sequence[Path],
        *,
        stop_requested: Callable[[], bool] | None = None,
    ) -> LaunchBatch:
        """Launch one worker per existing file, ids following input positions.

        Files beyond ``max_workers`` are ignored. Missing files are skipped
        with a warning and keep their id unused. Returns once every launch is
        issued; workers keep running.
        """

        batch = LaunchBatch(ignored=list(instruction_files[self.max_workers :]))
        for index, instruction_file in enumerate(instruction_files[: self.max_workers]):
            worker_id = index + 1
            if not instruction_file.exists():
                logger.warning("Instruction file not found: %s", instruction_file)
                batch.missing.append(instruction_file)
                continue
            if stop_requested is not None and stop_requested():
                batch.interrupted = True
                break
            if batch.launched and not sleep_with_stop(self.stagger_seconds, stop_requested):
                batch.interrupted = True
                break
            batch.launched.append(self.start_worker(worker_id, instruction_file))
        if batch.ignored:
            logger.warning(
                "Ignoring %d instruction file(s) beyond max workers %d",
                len(batch.ignored),
                self.max_workers,
            )
        return batch

    def start_worker(self, worker_id: int, instruction_file: Path) -> Worker:
        if not 1 <= worker_id <= self.max_workers:
            raise ValueError(f"Worker id must be within 1..{self.max_workers}, got {worker_id}.")
        if worker_id in self._issued_ids:
            raise ValueError(f"Worker id {worker_id} was already used in this run.")
        self._issued_ids.add(worker_id)

        channel = self.layout.status_channel(worker_id)
        log_path = self.layout.log_path(worker_id)
        pid_path = self.layout.pid_path(worker_id)
        prompt = build_agent_prompt(
            worker_id=worker_id,
            instruction_file=instruction_file,
            status_file=channel.path,
            sentinel=channel.sentinel,
        )
        argv = build_run_args(
            command_template=self.command_template,
            shell=self.shell,
            prompt=prompt,
            instruction_file=instruction_file,
            status_file=channel.path,
            worker_id=worker_id,
        )

        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_sink = log_path.open("ab")
        try:
            process = self.process_launcher.spawn(
                ProcessSpawnRequest(
                    argv=argv,
                    cwd=self.layout.work_dir,
                    env=dict(self.environment),
                    columns=self.terminal_columns,
                    rows=self.terminal_rows,
                ),
            )
        except WorkerLaunchError as error:
            log_sink.close()
            if error.worker_id is None:
                error.worker_id = worker_id
            raise

        worker = Worker(
            worker_id=worker_id,
            instruction_file=instruction_file,
            process=process,
            log_sink=log_sink,
            log_path=log_path,
            pid_path=pid_path,
            status_channel=channel,
            started_at=self._clock(),
        )
        try:
            self._register(worker)
        except Exception:
            logger.error(
                "Bookkeeping for worker %d (pid %d) failed after spawn, terminating it",
                worker_id,
                process.pid,
            )
            self._abandon(worker)
            raise
        logger.info(
            "Started worker %d (pid %d) for %s",
            worker_id,
            process.pid,
            instruction_file,
        )
        return worker

    def wait_for_exits(self, timeout: float) -> bool:
        """Wait until every pump delivered its exit event; False on timeout."""

        deadline = time.monotonic() + timeout
        for pump in list(self._pumps):
            pump.join(timeout=max(0.0, deadline - time.monotonic()))
        return not any(pump.is_alive() for pump in self._pumps)

    def _register(self, worker: Worker) -> None:
        worker.pid_path.parent.mkdir(parents=True, exist_ok=True)
        worker.pid_path.write_text(f"{worker.pid}\n", "utf-8")
        self.registry.add(worker)
        worker.status_channel.append(INITIAL_STATUS_MESSAGE)

        pump = threading.Thread(
            target=self._pump_output,
            args=(worker,),
            daemon=True,
            name=f"worker{worker.worker_id}-pump",
        )
        pump.start()
        self._pumps.append(pump)

    def _abandon(self, worker: Worker) -> None:
        """Undo a partial registration; the spawned process gets SIGTERM."""

        if self.registry.get(worker.worker_id) is worker:
            self.registry.remove(worker.worker_id)
        try:
            worker.process.terminate()
        except OSError as error:
            logger.warning(
                "Failed to terminate worker %d (pid %d): %s",
                worker.worker_id,
                worker.pid,
                error,
            )
        worker.running = False
        worker.log_sink.close()
        if worker.pid_path.is_file():
            worker.pid_path.unlink()

    def _pump_output(self, worker: Worker) -> None:
        try:
            while True:
                chunk = worker.process.read()
                if not chunk:
                    break
                self.dispatcher.submit(WorkerOutput(worker=worker, data=chunk))
        except OSError:
            logger.exception("Reading output of worker %d failed", worker.worker_id)
        exit_info = worker.process.wait()
        self.dispatcher.submit(WorkerExited(worker=worker, exit=exit_info))
