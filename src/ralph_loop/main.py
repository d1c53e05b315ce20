"""CLI entrypoint for ralph-loop."""

import logging
from pathlib import Path

import rich_click as click

from ralph_loop import __version__
from ralph_loop.backend import AgentTool
from ralph_loop.controllers import (
    LoopCliController,
    PreconditionError,
    RunCommand,
    StatusCommand,
)
from ralph_loop.stories import RequirementsParseError

click.rich_click.USE_MARKDOWN = True
LOOP_CONTROLLER = LoopCliController()


class PreconditionFailure(click.ClickException):
    """Startup check failed; nothing was run."""

    exit_code = 2


@click.group()
@click.version_option(version=__version__, prog_name="ralph-loop")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Diagnostic logging level (stderr).",
)
def ralph_loop(log_level: str) -> None:
    """Drive a CLI coding agent through the stories of a prd.json."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@ralph_loop.command("run")
@click.argument("max_iterations", type=click.IntRange(min=1), default=10)
@click.option(
    "--tool",
    type=click.Choice([tool.value for tool in AgentTool], case_sensitive=False),
    default=None,
    help="Agent CLI to invoke. Defaults to RALPH_LOOP_TOOL or claude.",
)
@click.option("--model", default=None, help="Optional model id passed to the agent CLI.")
@click.option(
    "--workdir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory holding prd.json, prompt.md and progress.txt.",
)
@click.option(
    "--sleep-seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Pause between iterations. Defaults to RALPH_LOOP_SLEEP_SECONDS or 2.",
)
@click.pass_context
def run(  # noqa: PLR0913
    ctx: click.Context,
    max_iterations: int,
    tool: str | None,
    model: str | None,
    workdir: Path | None,
    sleep_seconds: float | None,
) -> None:
    """Run up to MAX_ITERATIONS agent iterations.

    Exits 0 when every story passes or the agent prints the completion
    marker, 1 when the iteration budget runs out, 2 when a precondition fails.
    """

    try:
        result = LOOP_CONTROLLER.run(
            RunCommand(
                max_iterations=max_iterations,
                workdir=workdir,
                tool=tool.lower() if tool else None,
                model=model,
                sleep_seconds=sleep_seconds,
            ),
            echo=click.echo,
        )
    except (PreconditionError, RequirementsParseError) as error:
        raise PreconditionFailure(str(error)) from error
    ctx.exit(result.exit_code)


@ralph_loop.command("status")
@click.option(
    "--workdir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory holding prd.json.",
)
def status(workdir: Path | None) -> None:
    """Show branch, progress, and stories in selection order."""

    try:
        lines = LOOP_CONTROLLER.status(StatusCommand(workdir=workdir))
    except PreconditionError as error:
        raise PreconditionFailure(str(error)) from error
    _emit_lines(lines)


@ralph_loop.command("tools")
def tools() -> None:
    """List supported agent CLIs and whether they are on PATH."""

    _emit_lines(LOOP_CONTROLLER.tools())


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    ralph_loop()
