"""Shared test fixtures."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

import pytest
from fakes import FakeProcessLauncher

from parallel_agents.fleet.dispatcher import EventDispatcher
from parallel_agents.fleet.launcher import WorkerLauncher
from parallel_agents.fleet.layout import FleetLayout
from parallel_agents.fleet.registry import WorkerRegistry
from parallel_agents.fleet.terminator import Terminator


@dataclass(slots=True)
class Fleet:
    """Wired components backed by :class:`FakeProcessLauncher`."""

    layout: FleetLayout
    registry: WorkerRegistry
    dispatcher: EventDispatcher
    launcher: WorkerLauncher
    terminator: Terminator
    backend: FakeProcessLauncher


@pytest.fixture()
def fleet_factory(tmp_path: Path) -> Iterator[Callable[..., Fleet]]:
    created: list[Fleet] = []

    def _build(
        *,
        max_workers: int = 4,
        stagger_seconds: float = 0.0,
        fail_on_calls: tuple[int, ...] = (),
    ) -> Fleet:
        layout = FleetLayout(tmp_path)
        layout.ensure_directories()
        registry = WorkerRegistry()
        dispatcher = EventDispatcher(registry=registry)
        dispatcher.start()
        fake = FakeProcessLauncher(fail_on_calls=fail_on_calls)
        launcher = WorkerLauncher(
            layout=layout,
            registry=registry,
            dispatcher=dispatcher,
            process_launcher=fake,
            max_workers=max_workers,
            command_template="agent --worker {worker_id} {prompt}",
            stagger_seconds=stagger_seconds,
            environment={"PATH": "/usr/bin"},
        )
        fleet = Fleet(
            layout=layout,
            registry=registry,
            dispatcher=dispatcher,
            launcher=launcher,
            terminator=Terminator(registry),
            backend=fake,
        )
        created.append(fleet)
        return fleet

    yield _build

    for fleet in created:
        fleet.backend.finish_all()
        fleet.launcher.wait_for_exits(5)
        fleet.dispatcher.stop(timeout=5)


@pytest.fixture()
def wait_until() -> Callable[..., None]:
    def _wait(predicate: Callable[[], bool], timeout: float = 5.0, message: str = "") -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return
            time.sleep(0.01)
        raise AssertionError(message or "Condition was not met in time.")

    return _wait


@pytest.fixture()
def instruction_files(tmp_path: Path) -> Callable[..., list[Path]]:
    def _make(*names: str, missing: tuple[str, ...] = ()) -> list[Path]:
        paths: list[Path] = []
        for name in names:
            path = tmp_path / "tasks" / name
            if name not in missing:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(f"# Task {name}\n", "utf-8")
            paths.append(path)
        return paths

    return _make
