"""Pseudo-terminal backend: agents see a real TTY on stdin/stdout/stderr."""

from __future__ import annotations

import errno
import fcntl
import os
import pty
import signal
import struct
import subprocess
import termios

from parallel_agents.fleet.backend.base import (
    ProcessExit,
    ProcessSpawnRequest,
    WorkerLaunchError,
)

_READ_CHUNK_BYTES = 4096


class PtyProcess:
    """Process whose standard streams are the slave side of a pty pair."""

    def __init__(self, popen: subprocess.Popen[bytes], master_fd: int) -> None:
        self._popen = popen
        self._master_fd: int | None = master_fd

    @property
    def pid(self) -> int:
        return self._popen.pid

    def read(self) -> bytes:
        if self._master_fd is None:
            return b""
        try:
            return os.read(self._master_fd, _READ_CHUNK_BYTES)
        except OSError as error:
            # Linux reports EIO on the master once every slave fd is closed.
            if error.errno == errno.EIO:
                return b""
            raise

    def poll(self) -> int | None:
        return self._popen.poll()

    def wait(self) -> ProcessExit:
        returncode = self._popen.wait()
        self._close_master()
        if returncode < 0:
            return ProcessExit(exit_code=None, signal_name=_signal_name(-returncode))
        return ProcessExit(exit_code=returncode)

    def terminate(self) -> None:
        if self._popen.poll() is not None:
            return
        try:
            os.killpg(self._popen.pid, signal.SIGTERM)
        except ProcessLookupError:
            return

    def _close_master(self) -> None:
        if self._master_fd is None:
            return
        fd, self._master_fd = self._master_fd, None
        try:
            os.close(fd)
        except OSError:
            return


class PtyProcessLauncher:
    """Spawn each agent in its own session attached to a fresh pty."""

    def spawn(self, request: ProcessSpawnRequest) -> PtyProcess:
        if not request.argv:
            raise WorkerLaunchError("Agent command is empty.")
        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as error:
            raise WorkerLaunchError(f"Pseudo-terminal allocation failed: {error}") from error

        try:
            _set_window_size(slave_fd, rows=request.rows, columns=request.columns)
            popen = subprocess.Popen(  # noqa: S603
                request.argv,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=request.cwd,
                env=request.env or None,
                start_new_session=True,
                close_fds=True,
            )
        except FileNotFoundError as error:
            os.close(master_fd)
            raise WorkerLaunchError(f"Agent command not found: {request.argv[0]}") from error
        except OSError as error:
            os.close(master_fd)
            raise WorkerLaunchError(f"Agent process failed to start: {error}") from error
        finally:
            os.close(slave_fd)
        return PtyProcess(popen, master_fd)


def _set_window_size(fd: int, *, rows: int, columns: int) -> None:
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, columns, 0, 0))


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)
