"""Local tick loop that drives a task the way the execution engine does."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from pipeline_tasks.errors import RemoteServiceError, TaskError
from pipeline_tasks.tasks.base import ExecutionContext, ExecutionStatus, RetryableTask, TaskResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunOutcome:
    """Final state of a locally driven task."""

    result: TaskResult
    attempts: int
    timed_out: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.result.status is ExecutionStatus.SUCCEEDED and not self.timed_out


def run_once(task: RetryableTask, context: ExecutionContext) -> RunOutcome:
    """Invoke the task a single time.

    Remote failures leave the task RUNNING so the next tick retries; other
    task errors are TERMINAL.
    """

    try:
        result = task.execute(context)
    except RemoteServiceError as error:
        logger.warning("Task %s hit a remote failure: %s", type(task).__name__, error)
        return RunOutcome(result=TaskResult.running(), attempts=1, error=str(error))
    except TaskError as error:
        logger.error("Task %s failed: %s", type(task).__name__, error)
        return RunOutcome(result=TaskResult.terminal(), attempts=1, error=str(error))
    return RunOutcome(result=result, attempts=1)


def run_until_complete(
    task: RetryableTask,
    context: ExecutionContext,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> RunOutcome:
    """Re-invoke ``task`` every backoff period until it completes or times out."""

    deadline = clock() + task.timeout.total_seconds()
    backoff_seconds = task.backoff_period.total_seconds()
    attempts = 0
    while True:
        outcome = run_once(task, context)
        attempts += 1
        outcome.attempts = attempts
        if outcome.result.status.is_complete:
            return outcome
        if clock() + backoff_seconds > deadline:
            logger.warning(
                "Task %s did not complete within %s (executionId: %s)",
                type(task).__name__,
                task.timeout,
                context.execution_id,
            )
            outcome.timed_out = True
            return outcome
        sleep(backoff_seconds)
