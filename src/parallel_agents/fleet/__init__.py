"""Worker lifecycle manager for pseudo-terminal agent processes.

Each worker is an opaque interactive CLI agent started inside its own
pseudo-terminal. The orchestrator never parses agent output; progress is
observed only through a per-worker append-only status file that the agent
writes itself (``comm/worker<id>_status.txt``). Completion is a sentinel
substring in that file, so detection is a polling loop over files rather
than a signal from the agent.

Concurrency: agent processes run in parallel; bookkeeping is serialized
through :class:`WorkerRegistry` (lock-guarded) and a single
:class:`EventDispatcher` thread that applies output and exit reactions.
"""
