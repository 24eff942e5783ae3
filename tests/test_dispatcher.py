from __future__ import annotations

import logging

import allure

from parallel_agents.fleet.backend.base import ProcessExit
from parallel_agents.fleet.models import WorkerExited
from parallel_agents.fleet.status_channel import COMPLETION_SENTINEL

pytestmark = [
    allure.epic("Worker Lifecycle"),
    allure.feature("Output And Exit Reactions"),
]


def test_output_chunks_are_appended_verbatim_to_log(
    fleet_factory,
    instruction_files,
    wait_until,
) -> None:
    fleet = fleet_factory()
    (task,) = instruction_files("a.md")
    worker = fleet.launcher.start_worker(1, task)
    process = fleet.backend.processes[0]

    process.emit(b"\x1b[32mhello\x1b[0m\r\n")
    process.emit(b"partial")
    process.finish(exit_code=0)
    wait_until(lambda: worker.log_sink.closed, message="log sink was not closed")

    assert fleet.layout.log_path(1).read_bytes() == b"\x1b[32mhello\x1b[0m\r\npartial"


def test_abnormal_exit_appends_exactly_one_terminal_message(
    fleet_factory,
    instruction_files,
    wait_until,
) -> None:
    fleet = fleet_factory()
    (task,) = instruction_files("a.md")
    worker = fleet.launcher.start_worker(1, task)

    fleet.backend.processes[0].finish(exit_code=3)
    wait_until(lambda: 1 not in fleet.registry)
    fleet.launcher.wait_for_exits(5)
    fleet.dispatcher.stop(timeout=5)

    lines = worker.status_channel.read_lines()
    terminal = [line for line in lines if "TERMINATED:" in line]
    assert terminal == [lines[-1]]
    assert lines[-1].endswith("[Worker1] TERMINATED: Process exited with code 3")
    assert not fleet.layout.pid_path(1).exists()
    assert worker.running is False


def test_signal_exit_message_names_signal(fleet_factory, instruction_files, wait_until) -> None:
    fleet = fleet_factory()
    (task,) = instruction_files("a.md")
    worker = fleet.launcher.start_worker(1, task)

    fleet.backend.processes[0].finish(exit_code=None, signal_name="SIGKILL")
    wait_until(lambda: 1 not in fleet.registry)

    assert worker.status_channel.last_status().endswith(
        "TERMINATED: Process killed by signal SIGKILL",
    )


def test_completed_worker_exit_adds_no_terminal_message(
    fleet_factory,
    instruction_files,
    wait_until,
) -> None:
    fleet = fleet_factory()
    (task,) = instruction_files("a.md")
    worker = fleet.launcher.start_worker(1, task)
    with worker.status_channel.path.open("a", encoding="utf-8") as handle:
        handle.write(f"[2026-03-01 00:00:00] [Worker1] {COMPLETION_SENTINEL} all done\n")

    fleet.backend.processes[0].finish(exit_code=0)
    wait_until(lambda: 1 not in fleet.registry)
    wait_until(lambda: not fleet.layout.pid_path(1).exists())

    assert not any("TERMINATED" in line for line in worker.status_channel.read_lines())


def test_unterminated_sentinel_counts_once_worker_exited(
    fleet_factory,
    instruction_files,
    wait_until,
) -> None:
    fleet = fleet_factory()
    (task,) = instruction_files("a.md")
    worker = fleet.launcher.start_worker(1, task)
    with worker.status_channel.path.open("a", encoding="utf-8") as handle:
        handle.write(f"[2026-03-01 00:00:00] [Worker1] {COMPLETION_SENTINEL} done")

    fleet.backend.processes[0].finish(exit_code=0)
    wait_until(lambda: not fleet.layout.pid_path(1).exists())

    content = worker.status_channel.path.read_text("utf-8")
    assert "TERMINATED" not in content
    assert content.endswith(f"[Worker1] {COMPLETION_SENTINEL} done")


def test_exit_after_terminator_drained_registry_still_cleans_up(
    fleet_factory,
    instruction_files,
    wait_until,
) -> None:
    fleet = fleet_factory()
    (task,) = instruction_files("a.md")
    worker = fleet.launcher.start_worker(1, task)

    assert fleet.terminator.terminate() == [1]
    assert len(fleet.registry) == 0
    wait_until(lambda: worker.log_sink.closed)

    assert not fleet.layout.pid_path(1).exists()
    assert worker.status_channel.last_status().endswith("killed by signal SIGTERM")


def test_exit_reaction_removes_registry_entry_once(
    fleet_factory,
    instruction_files,
) -> None:
    fleet = fleet_factory()
    (task,) = instruction_files("a.md")
    worker = fleet.launcher.start_worker(1, task)
    removals = []
    original_remove = fleet.registry.remove

    def _tracking_remove(worker_id: int):
        removed = original_remove(worker_id)
        removals.append(removed)
        return removed

    fleet.registry.remove = _tracking_remove  # type: ignore[method-assign]
    fleet.dispatcher.handle(WorkerExited(worker=worker, exit=ProcessExit(exit_code=1)))

    assert removals == [worker]
    assert fleet.layout.pid_path(1).exists() is False


def test_failing_event_is_logged_and_dispatch_continues(
    fleet_factory,
    instruction_files,
    wait_until,
    caplog,
) -> None:
    fleet = fleet_factory()
    (task,) = instruction_files("a.md")
    worker = fleet.launcher.start_worker(1, task)

    with caplog.at_level(logging.ERROR, logger="parallel_agents.fleet.dispatcher"):
        fleet.dispatcher.submit("not a worker event")
        fleet.backend.processes[0].finish(exit_code=0)
        wait_until(lambda: 1 not in fleet.registry)

    assert "Worker event handling failed" in caplog.text
    assert worker.log_sink.closed is True
