"""Shared test fixtures."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

import pytest

from pipeline_tasks.errors import RemoteServiceError
from pipeline_tasks.models import PermissionView, ServiceAccount


class FakeMetadataStore:
    """In-memory metadata store recording reads and writes."""

    def __init__(self) -> None:
        self.pipeline_history: dict[str, list[list[dict[str, Any]]]] = {}
        self.delivery_configs: dict[str, list[dict[str, Any] | Exception]] = {}
        self.service_accounts: dict[str, list[dict[str, Any] | None | Exception]] = {}
        self.invalidated: list[str] = []
        self.saved_accounts: list[ServiceAccount] = []
        self.saved_pipelines: list[dict[str, Any]] = []
        self.save_account_status = 200
        self.save_pipeline_status = 200
        self.history_error: Exception | None = None
        self.reads = 0

    def get_pipeline_history(self, pipeline_id: str, limit: int) -> list[dict[str, Any]]:
        self.reads += 1
        if self.history_error is not None:
            raise self.history_error
        responses = self.pipeline_history.get(pipeline_id, [[]])
        entries = responses.pop(0) if len(responses) > 1 else responses[0]
        return entries[:limit]

    def get_delivery_config(self, config_id: str) -> dict[str, Any]:
        self.reads += 1
        responses = self.delivery_configs.get(config_id)
        if not responses:
            raise RemoteServiceError("not found", status_code=404)
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def get_service_account(self, name: str) -> dict[str, Any] | None:
        self.reads += 1
        responses = self.service_accounts.get(name, [None])
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def invalidate_service_account_cache(self, name: str) -> None:
        self.invalidated.append(name)

    def save_service_account(self, account: ServiceAccount) -> int:
        self.saved_accounts.append(copy.deepcopy(account))
        return self.save_account_status

    def save_pipeline(self, pipeline: Mapping[str, Any]) -> int:
        self.saved_pipelines.append(copy.deepcopy(dict(pipeline)))
        return self.save_pipeline_status

    @property
    def writes(self) -> int:
        return len(self.saved_accounts) + len(self.saved_pipelines)


class FakePermissionService:
    """In-memory permission service keyed by user or account name."""

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self.permissions: dict[str, PermissionView] = {}
        self.lookups: list[str] = []

    def grant(self, name: str, *roles: str, admin: bool = False) -> None:
        self.permissions[name] = PermissionView(name=name, admin=admin, roles=frozenset(roles))

    def is_enabled(self) -> bool:
        return self.enabled

    def get_permission(self, name: str) -> PermissionView | None:
        self.lookups.append(name)
        return self.permissions.get(name)


class RecordingSleep:
    """Stand-in for ``time.sleep`` that only records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def store() -> FakeMetadataStore:
    return FakeMetadataStore()


@pytest.fixture()
def permissions() -> FakePermissionService:
    return FakePermissionService()


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()
