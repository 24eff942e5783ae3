"""Agent command, prompt and environment rendering."""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from pathlib import Path

from parallel_agents.fleet.backend.base import WorkerLaunchError

DEFAULT_AGENT_COMMAND_TEMPLATE = "claude --dangerously-skip-permissions {prompt}"

TERMINAL_ENVIRONMENT = {
    "TERM": "xterm-256color",
    "FORCE_COLOR": "1",
    "CI": "false",
    "NODE_NO_READLINE": "1",
}


def build_agent_prompt(
    *,
    worker_id: int,
    instruction_file: Path,
    status_file: Path,
    sentinel: str,
) -> str:
    """Tell the agent where its task is and how to report progress."""

    append_command = (
        f"echo \"[$(date -u '+%Y-%m-%d %H:%M:%S')] [Worker{worker_id}] Status: <message>\" "
        f">> {status_file}"
    )
    return (
        f"Please read {instruction_file} and execute the task. "
        f"Write status updates to {status_file} using the format: {append_command}. "
        f"When the task is done, write a final status line containing {sentinel} "
        f"followed by a short summary."
    )


def build_run_args(  # noqa: PLR0913
    *,
    command_template: str,
    shell: str,
    prompt: str,
    instruction_file: Path,
    status_file: Path,
    worker_id: int,
) -> list[str]:
    """Render the template with quoted values and wrap it in ``<shell> -c``."""

    stripped = command_template.strip()
    if not stripped:
        raise WorkerLaunchError("Agent command template is empty.", worker_id=worker_id)
    if "{prompt}" not in stripped:
        raise WorkerLaunchError(
            "Agent command template must include {prompt}.",
            worker_id=worker_id,
        )

    try:
        rendered = stripped.format(
            prompt=shlex.quote(prompt),
            instruction_file=shlex.quote(str(instruction_file)),
            status_file=shlex.quote(str(status_file)),
            worker_id=worker_id,
        )
    except (KeyError, IndexError) as error:
        raise WorkerLaunchError(
            f"Unsupported command template placeholder: {error}",
            worker_id=worker_id,
        ) from error

    if not shlex.split(rendered):
        raise WorkerLaunchError(
            "Agent command template rendered empty command.",
            worker_id=worker_id,
        )
    return [shell, "-c", rendered]


def build_agent_environment(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Inherited environment plus terminal settings expected by TUI agents."""

    env = dict(os.environ if base is None else base)
    env.update(TERMINAL_ENVIRONMENT)
    return env
