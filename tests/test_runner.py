from __future__ import annotations

from datetime import timedelta

import allure

from pipeline_tasks.errors import RemoteServiceError, TaskConfigurationError
from pipeline_tasks.runner import run_once, run_until_complete
from pipeline_tasks.tasks.base import ExecutionContext, ExecutionStatus, TaskResult

pytestmark = [
    allure.epic("Local Runner"),
    allure.feature("Retry Loop"),
]

CONTEXT = ExecutionContext(execution_id="exec-1", stage_start_time=0)


class ScriptedTask:
    backoff_period = timedelta(seconds=5)
    timeout = timedelta(seconds=12)

    def __init__(self, results: list[TaskResult]) -> None:
        self.results = results
        self.calls = 0

    def execute(self, context: ExecutionContext) -> TaskResult:
        self.calls += 1
        return self.results.pop(0) if len(self.results) > 1 else self.results[0]


class FailingTask(ScriptedTask):
    def execute(self, context: ExecutionContext) -> TaskResult:
        raise TaskConfigurationError("store disabled")


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_retries_until_succeeded() -> None:
    clock = FakeClock()
    task = ScriptedTask([TaskResult.running(), TaskResult.succeeded({"k": "v"})])

    outcome = run_until_complete(task, CONTEXT, clock=clock, sleep=clock.sleep)

    assert outcome.succeeded
    assert outcome.attempts == 2
    assert outcome.result.context == {"k": "v"}
    assert clock.sleeps == [5.0]


def test_times_out_when_still_running() -> None:
    clock = FakeClock()
    task = ScriptedTask([TaskResult.running()])

    outcome = run_until_complete(task, CONTEXT, clock=clock, sleep=clock.sleep)

    assert outcome.timed_out
    assert not outcome.succeeded
    assert task.calls == 3
    assert outcome.attempts == 3


def test_terminal_stops_immediately() -> None:
    clock = FakeClock()
    outcome = run_until_complete(
        ScriptedTask([TaskResult.terminal()]),
        CONTEXT,
        clock=clock,
        sleep=clock.sleep,
    )

    assert outcome.result.status is ExecutionStatus.TERMINAL
    assert clock.sleeps == []


def test_task_errors_are_reported_as_terminal() -> None:
    outcome = run_once(FailingTask([]), CONTEXT)

    assert outcome.result.status is ExecutionStatus.TERMINAL
    assert outcome.error == "store disabled"


class FlakyRemoteTask(ScriptedTask):
    def execute(self, context: ExecutionContext) -> TaskResult:
        self.calls += 1
        if self.calls == 1:
            raise RemoteServiceError("permission service unavailable", status_code=503)
        return TaskResult.succeeded()


def test_remote_failure_keeps_running() -> None:
    outcome = run_once(FlakyRemoteTask([]), CONTEXT)

    assert outcome.result.status is ExecutionStatus.RUNNING
    assert outcome.error == "permission service unavailable"


def test_remote_failure_is_retried_until_success() -> None:
    clock = FakeClock()

    outcome = run_until_complete(FlakyRemoteTask([]), CONTEXT, clock=clock, sleep=clock.sleep)

    assert outcome.succeeded
    assert outcome.attempts == 2
    assert outcome.error is None
