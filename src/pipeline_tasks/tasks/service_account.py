"""Save a pipeline-scoped managed service account.

The account's roles are used for authorization decisions when the pipeline
runs from an automated trigger. Re-running with unchanged roles performs no
writes.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import timedelta

from pipeline_tasks.capability import Capability
from pipeline_tasks.clients.metadata_store import MetadataStoreClient
from pipeline_tasks.clients.permissions import PermissionService
from pipeline_tasks.models import ServiceAccount
from pipeline_tasks.pipeline import (
    bind_triggers,
    decode_pipeline,
    pipeline_roles,
    service_account_name,
)
from pipeline_tasks.tasks.base import ExecutionContext, TaskResult

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_CONTEXT_KEY = "pipeline.serviceAccount"

PERMISSIONS_DISABLED_REASON = "Permission service is not enabled, cannot save roles."
STORE_DISABLED_REASON = (
    "Metadata store is not enabled, no way to save pipeline. "
    "Fix this by setting PIPELINE_TASKS_METADATA_STORE_URL."
)


class SaveServiceAccountTask:
    """Create or update the managed service account of a pipeline."""

    backoff_period = timedelta(seconds=1)
    timeout = timedelta(seconds=30)

    def __init__(
        self,
        store: MetadataStoreClient | None,
        permissions: PermissionService | None,
    ) -> None:
        if permissions is not None and not permissions.is_enabled():
            permissions = None
        self._permissions: Capability[PermissionService] = Capability.of(
            "permission service",
            permissions,
            disabled_reason=PERMISSIONS_DISABLED_REASON,
        )
        self._store: Capability[MetadataStoreClient] = Capability.of(
            "metadata store",
            store,
            disabled_reason=STORE_DISABLED_REASON,
        )

    def execute(self, context: ExecutionContext) -> TaskResult:
        permissions = self._permissions.require()
        store = self._store.require()

        pipeline = decode_pipeline(context.pipeline)
        if pipeline.get("id") is None and context.pipeline_id:
            pipeline["id"] = context.pipeline_id

        if "roles" not in pipeline:
            logger.debug("Skipping managed service accounts since roles field is not present.")
            return TaskResult.succeeded()

        roles = pipeline_roles(pipeline)
        account_name = service_account_name(pipeline)

        # Null roles always count as changed.
        roles_declared = pipeline.get("roles") is not None
        if roles_declared and not self._roles_changed(permissions, account_name, roles):
            logger.debug(
                "Skipping managed service account %s since roles have not changed.",
                account_name,
            )
            return TaskResult.succeeded({SERVICE_ACCOUNT_CONTEXT_KEY: account_name})

        if not self._is_user_authorized(permissions, context.trigger_user, roles):
            logger.warning(
                "User %s is not authorized with all roles for pipeline %s",
                context.trigger_user,
                pipeline.get("id"),
            )
            return TaskResult.terminal()

        # Saving under an existing name overwrites the account.
        account = ServiceAccount(name=account_name, member_of=roles)
        status = store.save_service_account(account)
        if not _is_success(status):
            logger.error("Saving service account %s returned HTTP %s", account_name, status)
            return TaskResult.terminal()

        bind_triggers(pipeline, account.name)
        status = store.save_pipeline(pipeline)
        if not _is_success(status):
            logger.error(
                "Saving pipeline %s returned HTTP %s after service account %s was saved",
                pipeline.get("id"),
                status,
                account_name,
            )
            return TaskResult.terminal()

        logger.info("Saved managed service account %s with roles %s", account_name, roles)
        return TaskResult.succeeded({SERVICE_ACCOUNT_CONTEXT_KEY: account.name})

    @staticmethod
    def _roles_changed(
        permissions: PermissionService,
        account_name: str,
        roles: Collection[str],
    ) -> bool:
        current = permissions.get_permission(account_name)
        if current is None:
            return True
        return set(current.roles) != set(roles)

    @staticmethod
    def _is_user_authorized(
        permissions: PermissionService,
        user: str | None,
        roles: Collection[str],
    ) -> bool:
        if user is None:
            return False
        # No roles requested means no restriction.
        if not roles:
            return True
        permission = permissions.get_permission(user)
        if permission is None:
            return False
        if permission.admin:
            return True
        return set(roles).issubset(permission.roles)


def _is_success(status: int) -> bool:
    return 200 <= status < 300
