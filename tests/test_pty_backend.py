from __future__ import annotations

import os
import sys
from pathlib import Path

import allure
import pytest

from parallel_agents.fleet.backend import PtyProcess, PtyProcessLauncher, WorkerLaunchError
from parallel_agents.fleet.backend.base import ProcessSpawnRequest
from parallel_agents.fleet.command import build_agent_environment

pytestmark = [
    allure.epic("Worker Lifecycle"),
    allure.feature("Pseudo-terminal Backend"),
    pytest.mark.skipif(os.name != "posix", reason="pseudo-terminals require POSIX"),
]


def _spawn(tmp_path: Path, code: str, **overrides) -> PtyProcess:
    request = ProcessSpawnRequest(
        argv=[sys.executable, "-c", code],
        cwd=tmp_path,
        env=build_agent_environment(),
        **overrides,
    )
    return PtyProcessLauncher().spawn(request)


def _read_all(process: PtyProcess) -> bytes:
    chunks = []
    while chunk := process.read():
        chunks.append(chunk)
    return b"".join(chunks)


def test_process_sees_terminal_with_configured_size_and_env(tmp_path: Path) -> None:
    process = _spawn(
        tmp_path,
        "import os, sys; size = os.get_terminal_size(sys.stdout.fileno()); "
        "print(sys.stdin.isatty(), sys.stdout.isatty(), size.columns, size.lines, "
        "os.environ['TERM'], os.environ['FORCE_COLOR'], os.getcwd())",
        columns=100,
        rows=40,
    )

    output = _read_all(process).decode("utf-8", errors="replace")
    result = process.wait()

    assert result.exit_code == 0
    assert result.signal_name is None
    assert "True True 100 40 xterm-256color 1" in output
    assert str(tmp_path.resolve()) in output


def test_exit_code_is_reported(tmp_path: Path) -> None:
    process = _spawn(tmp_path, "import sys; sys.exit(3)")

    _read_all(process)
    result = process.wait()

    assert result.exit_code == 3
    assert process.poll() == 3
    assert result.describe() == "code 3"


def test_terminate_delivers_sigterm(tmp_path: Path) -> None:
    process = _spawn(tmp_path, "import time; print('ready', flush=True); time.sleep(30)")
    assert b"ready" in process.read()
    assert process.poll() is None

    process.terminate()
    _read_all(process)
    result = process.wait()

    assert result.exit_code is None
    assert result.signal_name == "SIGTERM"
    process.terminate()


def test_missing_command_raises_launch_error(tmp_path: Path) -> None:
    request = ProcessSpawnRequest(argv=["definitely-not-an-agent-binary"], cwd=tmp_path)

    with pytest.raises(WorkerLaunchError, match="not found"):
        PtyProcessLauncher().spawn(request)


def test_empty_command_raises_launch_error(tmp_path: Path) -> None:
    with pytest.raises(WorkerLaunchError, match="empty"):
        PtyProcessLauncher().spawn(ProcessSpawnRequest(argv=[], cwd=tmp_path))
