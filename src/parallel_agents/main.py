"""CLI entrypoint for parallel-agents."""

from pathlib import Path

import rich_click as click

from parallel_agents import __version__
from parallel_agents.fleet.controllers import (
    FleetCliController,
    FleetConfigurationError,
    FleetRunCommand,
    FleetStartupError,
)

click.rich_click.USE_MARKDOWN = True


@click.command()
@click.version_option(version=__version__, prog_name="parallel-agents")
@click.argument(
    "instruction_files",
    nargs=-1,
    type=click.Path(path_type=Path),
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding logs/ and comm/. Defaults to PARALLEL_AGENTS_WORK_DIR or cwd.",
)
@click.option(
    "--stagger-seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Delay between worker launches. Defaults to PARALLEL_AGENTS_STAGGER_SECONDS (2).",
)
@click.option(
    "--interval-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Monitor refresh interval. Defaults to PARALLEL_AGENTS_MONITOR_INTERVAL_SECONDS (10).",
)
@click.option(
    "--agent-command",
    default=None,
    help=(
        "Agent command template. Supports {prompt}, {instruction_file}, {status_file} "
        "and {worker_id}. If omitted, PARALLEL_AGENTS_AGENT_COMMAND is used."
    ),
)
def parallel_agents(
    instruction_files: tuple[Path, ...],
    work_dir: Path | None,
    stagger_seconds: float | None,
    interval_seconds: float | None,
    agent_command: str | None,
) -> None:
    """Run one agent per instruction file in parallel and monitor until all complete.

    Each worker reports progress to `comm/worker<id>_status.txt`; raw terminal
    output is captured in `logs/worker<id>.log`.
    """

    if not instruction_files:
        raise click.ClickException(
            "At least one instruction file is required.\n"
            "Usage: parallel-agents <worker1_instructions.md> [worker2_instructions.md] ...",
        )

    controller = FleetCliController(emit=click.echo)
    try:
        controller.run(
            FleetRunCommand(
                instruction_files=instruction_files,
                work_dir=work_dir,
                stagger_seconds=stagger_seconds,
                interval_seconds=interval_seconds,
                agent_command=agent_command,
            ),
        )
    except (FleetConfigurationError, FleetStartupError) as error:
        raise click.ClickException(str(error)) from error


if __name__ == "__main__":  # pragma: no cover
    parallel_agents()
