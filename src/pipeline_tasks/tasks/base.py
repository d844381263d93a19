"""Retryable task contract shared with the pipeline execution engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Protocol


class ExecutionStatus(str, Enum):
    """Task outcomes understood by the engine."""

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    TERMINAL = "terminal"

    @property
    def is_complete(self) -> bool:
        return self is not ExecutionStatus.RUNNING


@dataclass(frozen=True, slots=True)
class TaskResult:
    """Status plus the context patch the engine merges into stage state."""

    status: ExecutionStatus
    context: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def running(cls) -> TaskResult:
        return cls(ExecutionStatus.RUNNING)

    @classmethod
    def succeeded(cls, context: Mapping[str, Any] | None = None) -> TaskResult:
        return cls(ExecutionStatus.SUCCEEDED, dict(context or {}))

    @classmethod
    def terminal(cls) -> TaskResult:
        return cls(ExecutionStatus.TERMINAL)


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Read-only snapshot of one stage execution handed to a task."""

    execution_id: str
    stage_start_time: int
    context: Mapping[str, Any] = field(default_factory=dict)
    pipeline_id: str | None = None
    pipeline_name: str | None = None
    service_account: str | None = None
    delivery_config_id: str | None = None
    pipeline: str | Mapping[str, Any] | None = None
    trigger_user: str | None = None

    @classmethod
    def from_stage(
        cls,
        *,
        execution_id: str,
        stage_start_time: int,
        context: Mapping[str, Any],
        trigger_user: str | None = None,
    ) -> ExecutionContext:
        """Build a snapshot from a raw stage context map.

        Reads the dotted keys the engine writes (``pipeline.id``,
        ``pipeline.name``, ``pipeline.serviceAccount``), the nested
        ``deliveryConfig.id`` and the ``pipeline`` payload.
        """

        delivery_config = context.get("deliveryConfig")
        delivery_config_id = None
        if isinstance(delivery_config, Mapping):
            delivery_config_id = _optional_str(delivery_config.get("id"))
        return cls(
            execution_id=execution_id,
            stage_start_time=int(stage_start_time),
            context=dict(context),
            pipeline_id=_optional_str(context.get("pipeline.id")),
            pipeline_name=_optional_str(context.get("pipeline.name")),
            service_account=_optional_str(context.get("pipeline.serviceAccount")),
            delivery_config_id=delivery_config_id,
            pipeline=context.get("pipeline"),
            trigger_user=trigger_user,
        )


class RetryableTask(Protocol):
    """A unit of work the engine re-invokes until it completes or times out."""

    @property
    def backoff_period(self) -> timedelta:
        """Delay between two invocations."""
        raise NotImplementedError

    @property
    def timeout(self) -> timedelta:
        """How long the stage may stay non-terminal."""
        raise NotImplementedError

    def execute(self, context: ExecutionContext) -> TaskResult:
        """Run one attempt; must be safe to repeat."""
        raise NotImplementedError


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None
