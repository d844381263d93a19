"""Wait until a freshly written object is visible in the metadata store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from pipeline_tasks.capability import Capability
from pipeline_tasks.clients.metadata_store import MetadataStoreClient
from pipeline_tasks.errors import RemoteServiceError
from pipeline_tasks.tasks.base import ExecutionContext, TaskResult
from pipeline_tasks.tasks.policy import ConfirmationPolicy

logger = logging.getLogger(__name__)

STORE_DISABLED_REASON = (
    "Metadata store was not enabled. Fix this by setting PIPELINE_TASKS_METADATA_STORE_URL."
)

Lookup = Callable[[str], dict[str, Any] | None]


@dataclass(frozen=True, slots=True)
class MonitorTarget:
    """The single object checked by one invocation."""

    kind: str
    object_id: str


def select_target(context: ExecutionContext) -> MonitorTarget | None:
    """Pick pipeline, then delivery config, then service account."""

    if context.pipeline_id:
        return MonitorTarget("pipeline", context.pipeline_id)
    if context.delivery_config_id:
        return MonitorTarget("delivery_config", context.delivery_config_id)
    if context.service_account:
        return MonitorTarget("service_account", context.service_account)
    return None


class MonitorMetadataStoreTask:
    """Poll the metadata store until the stage's write is fresh everywhere."""

    backoff_period = timedelta(seconds=5)
    timeout = timedelta(seconds=90)

    def __init__(
        self,
        store: MetadataStoreClient | None,
        policy: ConfirmationPolicy,
    ) -> None:
        self._store: Capability[MetadataStoreClient] = Capability.of(
            "metadata store",
            store,
            disabled_reason=STORE_DISABLED_REASON,
        )
        self._policy = policy

    def execute(self, context: ExecutionContext) -> TaskResult:
        store = self._store.require()
        if self._policy.disabled:
            return TaskResult.succeeded()

        target = select_target(context)
        if target is None:
            logger.warning(
                "No id found, unable to verify that the object has been updated "
                "(executionId: %s)",
                context.execution_id,
            )
            return TaskResult.succeeded()

        lookup = self._lookup_for(store, target.kind)
        try:
            confirmed = self._policy.confirm(
                lambda: lookup(target.object_id),
                context.stage_start_time,
            )
        except Exception:
            logger.exception(
                "Unable to verify that %s has been updated (executionId: %s, id: %s, name: %s)",
                target.kind,
                context.execution_id,
                target.object_id,
                context.pipeline_name,
            )
            return TaskResult.running()

        if not confirmed:
            logger.debug("%s %s is not fresh yet", target.kind, target.object_id)
            return TaskResult.running()
        return TaskResult.succeeded()

    def _lookup_for(self, store: MetadataStoreClient, kind: str) -> Lookup:
        if kind == "pipeline":
            return lambda object_id: _latest_pipeline(store, object_id)
        if kind == "delivery_config":
            return lambda object_id: _absent_on_denied(store.get_delivery_config, object_id)
        return lambda object_id: _fresh_service_account(store, object_id)


def _latest_pipeline(store: MetadataStoreClient, pipeline_id: str) -> dict[str, Any] | None:
    history = store.get_pipeline_history(pipeline_id, 1)
    return history[0] if history else None


def _fresh_service_account(store: MetadataStoreClient, name: str) -> dict[str, Any] | None:
    def fetch(account_name: str) -> dict[str, Any] | None:
        store.invalidate_service_account_cache(account_name)
        return store.get_service_account(account_name)

    return _absent_on_denied(fetch, name)


def _absent_on_denied(
    fetch: Callable[[str], dict[str, Any] | None],
    object_id: str,
) -> dict[str, Any] | None:
    try:
        return fetch(object_id)
    except RemoteServiceError as error:
        if error.is_absent:
            return None
        raise
