"""Controllers for pipeline task CLI commands."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pipeline_tasks.clients.metadata_store import HttpMetadataStoreClient
from pipeline_tasks.clients.permissions import HttpPermissionService
from pipeline_tasks.config import Settings
from pipeline_tasks.errors import TaskInputError
from pipeline_tasks.runner import RunOutcome, run_once, run_until_complete
from pipeline_tasks.tasks.base import ExecutionContext, RetryableTask
from pipeline_tasks.tasks.monitor import MonitorMetadataStoreTask
from pipeline_tasks.tasks.policy import ConfirmationPolicy
from pipeline_tasks.tasks.service_account import SaveServiceAccountTask


@dataclass(slots=True)
class RunTaskCommand:
    """CLI input for running one task against a stage record."""

    context_file: Path
    once: bool


@dataclass(slots=True)
class CommandResult:
    """Lines to print plus overall success."""

    lines: list[str]
    success: bool


class TaskCliController:
    """Builds tasks from settings and drives them against a stage record file."""

    def __init__(self, settings_factory: Callable[[], Settings] = Settings.from_env) -> None:
        self._settings_factory = settings_factory

    def monitor(self, command: RunTaskCommand) -> CommandResult:
        with self._clients() as (settings, store, _):
            task = MonitorMetadataStoreTask(
                store,
                ConfirmationPolicy(
                    attempts=settings.monitor.success_threshold,
                    grace_period_ms=settings.monitor.grace_period_ms,
                    spacing_seconds=settings.monitor.spacing_seconds,
                ),
            )
            return self._run(task, command)

    def save_service_account(self, command: RunTaskCommand) -> CommandResult:
        with self._clients() as (_, store, permissions):
            return self._run(SaveServiceAccountTask(store, permissions), command)

    @contextmanager
    def _clients(
        self,
    ) -> Iterator[tuple[Settings, HttpMetadataStoreClient | None, HttpPermissionService | None]]:
        settings = self._settings_factory()
        settings.validate()
        with ExitStack() as stack:
            store = None
            if settings.metadata_store.enabled:
                store = stack.enter_context(
                    HttpMetadataStoreClient(
                        settings.metadata_store.base_url,
                        timeout_seconds=settings.metadata_store.timeout_seconds,
                        max_retries=settings.metadata_store.max_retries,
                    ),
                )
            permissions = None
            if settings.permissions.enabled:
                permissions = stack.enter_context(
                    HttpPermissionService(
                        settings.permissions.base_url,
                        timeout_seconds=settings.permissions.timeout_seconds,
                        max_retries=settings.permissions.max_retries,
                    ),
                )
            yield settings, store, permissions

    def _run(self, task: RetryableTask, command: RunTaskCommand) -> CommandResult:
        context = load_execution_context(command.context_file)
        if command.once:
            outcome = run_once(task, context)
        else:
            outcome = run_until_complete(task, context)
        return CommandResult(lines=render_outcome(outcome), success=outcome.succeeded)


def load_execution_context(path: Path) -> ExecutionContext:
    """Read a JSON stage record: ``executionId``, ``startTime``, ``context``, ``trigger.user``."""

    try:
        record = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError) as error:
        raise TaskInputError(f"Cannot read stage record {path}: {error}") from error
    if not isinstance(record, dict):
        raise TaskInputError(f"Expected JSON object in {path}")
    start_time = record.get("startTime")
    if start_time is None:
        raise TaskInputError(f"Stage record {path} has no startTime")
    stage_context = record.get("context") or {}
    if not isinstance(stage_context, dict):
        raise TaskInputError(f"Stage record {path} context must be an object")
    trigger: dict[str, Any] = record.get("trigger") or {}
    return ExecutionContext.from_stage(
        execution_id=str(record.get("executionId", "local")),
        stage_start_time=int(start_time),
        context=stage_context,
        trigger_user=trigger.get("user"),
    )


def render_outcome(outcome: RunOutcome) -> list[str]:
    lines = [
        f"status: {outcome.result.status.value}",
        f"attempts: {outcome.attempts}",
    ]
    if outcome.timed_out:
        lines.append("timed_out: true")
    if outcome.error:
        lines.append(f"error: {outcome.error}")
    for key, value in sorted(outcome.result.context.items()):
        lines.append(f"context.{key}: {value}")
    return lines
