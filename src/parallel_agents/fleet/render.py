"""Console rendering of monitor reports."""

from __future__ import annotations

from collections.abc import Callable

import click

from parallel_agents.fleet.models import MonitorReport

MONITOR_TITLE = "=== PARALLEL AGENT WORKER MONITOR ==="


def render_report_lines(report: MonitorReport, *, styled: bool = False) -> list[str]:
    """Plain-text report; ``styled`` adds terminal colors to worker states."""

    lines = [
        MONITOR_TITLE,
        f"Time: {report.generated_at.astimezone().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        f"Active Workers: {report.active}",
        "",
    ]
    for worker in report.workers:
        state = "running" if worker.alive else "exited"
        if styled:
            state = click.style(state, fg="green" if worker.alive else "red")
        lines.append(
            f"[{state}] Worker {worker.worker_id} "
            f"(PID: {worker.pid}, Runtime: {worker.elapsed_seconds}s)",
        )
        lines.append(f"   Status: {worker.last_status}")
        lines.append("")

    completion = report.completion
    lines.append(f"Progress: {completion.completed}/{completion.total} workers completed")
    if completion.all_completed:
        lines.append("All workers completed!")
    return lines


class ConsoleRenderer:
    """Render sink that redraws the report on the terminal."""

    def __init__(
        self,
        *,
        clear_screen: bool = True,
        echo: Callable[[str], None] = click.echo,
    ) -> None:
        self.clear_screen = clear_screen
        self._echo = echo

    def __call__(self, report: MonitorReport) -> None:
        if self.clear_screen:
            click.clear()
        for line in render_report_lines(report, styled=True):
            self._echo(line)
