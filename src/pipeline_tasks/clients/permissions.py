"""Permission service contract and its HTTP adapter."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol
from urllib.parse import quote

import httpx

from pipeline_tasks.errors import ABSENT_STATUS_CODES, RemoteServiceError
from pipeline_tasks.models import PermissionView

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3


class PermissionService(Protocol):
    """Resolves roles granted to users and service accounts."""

    def is_enabled(self) -> bool:
        """Whether authorization is switched on for this deployment."""
        raise NotImplementedError

    def get_permission(self, name: str) -> PermissionView | None:
        """Return granted roles, ``None`` when the identity is unknown."""
        raise NotImplementedError


class HttpPermissionService:
    """``PermissionService`` over JSON/HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        enabled: bool = True,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._enabled = enabled
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={"Accept": "application/json"},
            transport=transport or httpx.HTTPTransport(retries=max_retries),
        )

    def is_enabled(self) -> bool:
        return self._enabled

    def get_permission(self, name: str) -> PermissionView | None:
        path = f"/authorize/{quote(name, safe='')}"
        try:
            response = self._client.get(path)
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"GET {path} failed: {exc}") from exc
        if response.status_code in ABSENT_STATUS_CODES:
            logger.debug(
                "No readable permission record for %s: HTTP %s",
                name,
                response.status_code,
            )
            return None
        if not response.is_success:
            raise RemoteServiceError(
                f"GET {path} failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as error:
            raise RemoteServiceError(f"GET {path} returned invalid JSON") from error
        if not isinstance(payload, Mapping):
            raise RemoteServiceError(f"Unexpected permission payload for {name!r}")
        return PermissionView.from_payload(payload)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpPermissionService:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
