"""Single consumer thread applying worker output and exit reactions."""

from __future__ import annotations

import logging
import queue
import threading

from parallel_agents.fleet.models import WorkerEvent, WorkerExited, WorkerOutput
from parallel_agents.fleet.registry import WorkerRegistry

logger = logging.getLogger(__name__)

_STOP = object()


class EventDispatcher:
    """Consumes :class:`WorkerOutput` / :class:`WorkerExited` messages in order.

    Producers are the per-worker output pumps. Because one pump emits all
    events of its worker, output chunks always precede that worker's exit.
    """

    def __init__(self, *, registry: WorkerRegistry) -> None:
        self._registry = registry
        self._queue: queue.Queue[WorkerEvent | object] = queue.Queue()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="fleet-dispatcher",
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Process queued events, then stop the consumer thread."""

        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout=timeout)
        self._thread = None

    def submit(self, event: WorkerEvent) -> None:
        self._queue.put(event)

    def handle(self, event: WorkerEvent) -> None:
        if isinstance(event, WorkerOutput):
            self._on_output(event)
        elif isinstance(event, WorkerExited):
            self._on_exit(event)
        else:
            raise TypeError(f"Unsupported worker event: {event!r}")

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            if event is _STOP:
                return
            try:
                self.handle(event)  # type: ignore[arg-type]
            except Exception:  # noqa: BLE001
                logger.exception("Worker event handling failed: %r", event)

    def _on_output(self, event: WorkerOutput) -> None:
        sink = event.worker.log_sink
        if sink.closed:
            return
        sink.write(event.data)
        sink.flush()

    def _on_exit(self, event: WorkerExited) -> None:
        worker = event.worker
        worker.running = False
        logger.info(
            "Worker %d (pid %d) exited with %s",
            worker.worker_id,
            worker.pid,
            event.exit.describe(),
        )

        channel = worker.status_channel
        if not channel.is_complete(include_partial=True):
            if event.exit.signal_name is not None:
                message = f"TERMINATED: Process killed by signal {event.exit.signal_name}"
            else:
                message = f"TERMINATED: Process exited with code {event.exit.exit_code}"
            channel.append(message)
            logger.info("Worker %d ended without completion marker", worker.worker_id)

        worker.pid_path.unlink(missing_ok=True)
        if not worker.log_sink.closed:
            worker.log_sink.close()
        self._registry.remove(worker.worker_id)
