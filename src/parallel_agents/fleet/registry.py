"""Thread-safe registry of workers that are possibly alive."""

from __future__ import annotations

import threading

from parallel_agents.fleet.models import Worker


class WorkerRegistry:
    """Mapping worker id -> Worker guarded by one lock.

    Inserts come from the launcher; removals come from the exit reaction and
    the terminator. Removing an id that is already gone is a no-op so the two
    removal paths may race freely.
    """

    def __init__(self) -> None:
        self._workers: dict[int, Worker] = {}
        self._lock = threading.Lock()

    def add(self, worker: Worker) -> None:
        with self._lock:
            if worker.worker_id in self._workers:
                raise ValueError(f"Worker {worker.worker_id} is already registered.")
            self._workers[worker.worker_id] = worker

    def remove(self, worker_id: int) -> Worker | None:
        with self._lock:
            return self._workers.pop(worker_id, None)

    def get(self, worker_id: int) -> Worker | None:
        with self._lock:
            return self._workers.get(worker_id)

    def snapshot(self) -> list[Worker]:
        """Consistent copy ordered by worker id."""

        with self._lock:
            return [self._workers[key] for key in sorted(self._workers)]

    def drain(self) -> list[Worker]:
        """Atomically remove and return every registered worker."""

        with self._lock:
            drained = [self._workers[key] for key in sorted(self._workers)]
            self._workers.clear()
        return drained

    def __contains__(self, worker_id: object) -> bool:
        with self._lock:
            return worker_id in self._workers

    def __len__(self) -> int:
        with self._lock:
            return len(self._workers)
