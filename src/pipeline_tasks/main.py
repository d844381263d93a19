"""CLI entrypoint for pipeline-tasks."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from pipeline_tasks import __version__
from pipeline_tasks.controllers import CommandResult, RunTaskCommand, TaskCliController
from pipeline_tasks.errors import TaskInputError

click.rich_click.USE_MARKDOWN = True
TASK_CONTROLLER = TaskCliController()

_CONTEXT_FILE_OPTION = click.option(
    "--context-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="JSON stage record with executionId, startTime, context and trigger.user.",
)
_ONCE_OPTION = click.option(
    "--once",
    is_flag=True,
    default=False,
    help="Run a single attempt instead of retrying until the task timeout.",
)


@click.group()
@click.version_option(version=__version__, prog_name="pipeline-tasks")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def pipeline_tasks(log_level: str) -> None:
    """Retryable pipeline tasks CLI."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@pipeline_tasks.command("monitor")
@_CONTEXT_FILE_OPTION
@_ONCE_OPTION
def monitor(context_file: Path, once: bool) -> None:
    """Wait until the stage's write is visible in the metadata store."""

    _finish(
        lambda: TASK_CONTROLLER.monitor(RunTaskCommand(context_file=context_file, once=once)),
        failure_message="Metadata store check did not succeed.",
    )


@pipeline_tasks.command("save-service-account")
@_CONTEXT_FILE_OPTION
@_ONCE_OPTION
def save_service_account(context_file: Path, once: bool) -> None:
    """Create or update the pipeline's managed service account."""

    _finish(
        lambda: TASK_CONTROLLER.save_service_account(
            RunTaskCommand(context_file=context_file, once=once),
        ),
        failure_message="Managed service account was not saved.",
    )


def _finish(run: Callable[[], CommandResult], *, failure_message: str) -> None:
    try:
        result = run()
    except (TaskInputError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(failure_message)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    pipeline_tasks()
