"""Polling monitor: snapshots, completion detection and auto-termination."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from parallel_agents.fleet.clock import sleep_with_stop, utc_now
from parallel_agents.fleet.layout import FleetLayout
from parallel_agents.fleet.models import (
    CompletionStatus,
    MonitorReport,
    MonitorState,
    WorkerSnapshot,
)
from parallel_agents.fleet.registry import WorkerRegistry
from parallel_agents.fleet.status_channel import NO_STATUS_PLACEHOLDER
from parallel_agents.fleet.terminator import Terminator

logger = logging.getLogger(__name__)

RenderCallback = Callable[[MonitorReport], None]


class WorkerMonitor:
    """Ticks on a fixed interval until every status channel reports completion."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        registry: WorkerRegistry,
        layout: FleetLayout,
        terminator: Terminator,
        max_workers: int,
        render: RenderCallback | None = None,
        interval_seconds: float = 10.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.registry = registry
        self.layout = layout
        self.terminator = terminator
        self.max_workers = max_workers
        self.interval_seconds = interval_seconds
        self._render = render or (lambda _report: None)
        self._clock = clock
        self.state = MonitorState.RUNNING
        self.terminated: list[int] = []

    def snapshot(self) -> list[WorkerSnapshot]:
        now = self._clock()
        snapshots: list[WorkerSnapshot] = []
        for worker in self.registry.snapshot():
            snapshots.append(
                WorkerSnapshot(
                    worker_id=worker.worker_id,
                    pid=worker.pid,
                    alive=worker.is_alive(),
                    started_at=worker.started_at,
                    elapsed_seconds=max(0, int((now - worker.started_at).total_seconds())),
                    last_status=worker.status_channel.last_status() or NO_STATUS_PLACEHOLDER,
                ),
            )
        return snapshots

    def check_completion(self) -> CompletionStatus:
        """Count channels on disk for ids 1..max_workers, registered or not."""

        completed = 0
        total = 0
        for worker_id in range(1, self.max_workers + 1):
            channel = self.layout.status_channel(worker_id)
            if not channel.exists():
                continue
            total += 1
            if channel.is_complete():
                completed += 1
        return CompletionStatus(completed=completed, total=total)

    def tick(self) -> MonitorReport | None:
        """Run one monitoring step; None once the monitor has stopped."""

        if self.state is MonitorState.STOPPED:
            return None

        workers = tuple(self.snapshot())
        completion = self.check_completion()
        report = MonitorReport(
            generated_at=self._clock(),
            workers=workers,
            completion=completion,
            state=MonitorState.STOPPED if completion.all_completed else MonitorState.RUNNING,
        )
        self._render(report)

        if completion.all_completed:
            logger.info("All %d workers completed", completion.total)
            self.stop()
            self.terminated.extend(self.terminator.terminate())
        return report

    def run(self, *, stop_requested: Callable[[], bool] | None = None) -> MonitorState:
        """Tick every ``interval_seconds`` until stopped or a stop is requested."""

        logger.info("Starting worker monitoring every %.1fs", self.interval_seconds)
        while self.state is MonitorState.RUNNING:
            if not sleep_with_stop(self.interval_seconds, stop_requested):
                break
            self.tick()
        return self.state

    def stop(self) -> None:
        self.state = MonitorState.STOPPED
