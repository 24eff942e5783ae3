"""Idempotent shutdown of every registered worker."""

from __future__ import annotations

import logging

from parallel_agents.fleet.registry import WorkerRegistry

logger = logging.getLogger(__name__)


class Terminator:
    """Signals live workers and empties the registry."""

    def __init__(self, registry: WorkerRegistry) -> None:
        self.registry = registry

    def terminate(self) -> list[int]:
        """Send a graceful termination request to each still-running worker.

        The registry is drained atomically first, so repeated or concurrent
        calls never signal the same worker twice. A failure to signal one
        worker does not stop the rest. Returns ids that were signalled.
        """

        workers = self.registry.drain()
        signalled: list[int] = []
        for worker in workers:
            if not worker.is_alive():
                continue
            try:
                worker.process.terminate()
            except OSError as error:
                logger.warning(
                    "Failed to terminate worker %d (pid %d): %s",
                    worker.worker_id,
                    worker.pid,
                    error,
                )
                continue
            signalled.append(worker.worker_id)
            logger.info("Sent SIGTERM to worker %d (pid %d)", worker.worker_id, worker.pid)
        return signalled
