"""Retryable tasks run by the pipeline execution engine."""

from pipeline_tasks.tasks.base import (
    ExecutionContext,
    ExecutionStatus,
    RetryableTask,
    TaskResult,
)
from pipeline_tasks.tasks.monitor import MonitorMetadataStoreTask
from pipeline_tasks.tasks.policy import ConfirmationPolicy
from pipeline_tasks.tasks.service_account import SaveServiceAccountTask

__all__ = [
    "ConfirmationPolicy",
    "ExecutionContext",
    "ExecutionStatus",
    "MonitorMetadataStoreTask",
    "RetryableTask",
    "SaveServiceAccountTask",
    "TaskResult",
]
