"""Metadata store contract and its HTTP adapter."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from pipeline_tasks.errors import RemoteServiceError
from pipeline_tasks.models import ServiceAccount

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3


class MetadataStoreClient(Protocol):
    """Remote store holding pipelines, delivery configs and service accounts."""

    def get_pipeline_history(self, pipeline_id: str, limit: int) -> list[dict[str, Any]]:
        """Return the most recent revisions of a pipeline, newest first."""
        raise NotImplementedError

    def get_delivery_config(self, config_id: str) -> dict[str, Any]:
        """Return a delivery config or raise ``RemoteServiceError``."""
        raise NotImplementedError

    def get_service_account(self, name: str) -> dict[str, Any] | None:
        """Return a service account record, ``None`` if the store has none."""
        raise NotImplementedError

    def invalidate_service_account_cache(self, name: str) -> None:
        """Drop any cached copy so the next read goes to storage."""
        raise NotImplementedError

    def save_service_account(self, account: ServiceAccount) -> int:
        """Create or overwrite a service account; return the HTTP status."""
        raise NotImplementedError

    def save_pipeline(self, pipeline: Mapping[str, Any]) -> int:
        """Persist a pipeline definition; return the HTTP status."""
        raise NotImplementedError


class HttpMetadataStoreClient:
    """``MetadataStoreClient`` over JSON/HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={"Accept": "application/json"},
            transport=transport or httpx.HTTPTransport(retries=max_retries),
        )

    def get_pipeline_history(self, pipeline_id: str, limit: int) -> list[dict[str, Any]]:
        payload = self._get_json(f"/pipelines/{_segment(pipeline_id)}/history", {"limit": limit})
        if not isinstance(payload, list):
            raise RemoteServiceError(f"Unexpected pipeline history payload for {pipeline_id!r}")
        return [entry for entry in payload if isinstance(entry, dict)]

    def get_delivery_config(self, config_id: str) -> dict[str, Any]:
        payload = self._get_json(f"/deliveries/{_segment(config_id)}")
        if not isinstance(payload, dict):
            raise RemoteServiceError(f"Unexpected delivery config payload for {config_id!r}")
        return payload

    def get_service_account(self, name: str) -> dict[str, Any] | None:
        payload = self._get_json(f"/serviceAccounts/{_segment(name)}")
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise RemoteServiceError(f"Unexpected service account payload for {name!r}")
        return payload

    def invalidate_service_account_cache(self, name: str) -> None:
        response = self._send("POST", f"/serviceAccounts/{_segment(name)}/invalidate")
        if not response.is_success:
            raise RemoteServiceError(
                f"Cache invalidation for {name!r} failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

    def save_service_account(self, account: ServiceAccount) -> int:
        response = self._send("POST", "/serviceAccounts", json=account.to_payload())
        if not response.is_success:
            logger.warning(
                "Saving service account %s failed: HTTP %s",
                account.name,
                response.status_code,
            )
        return response.status_code

    def save_pipeline(self, pipeline: Mapping[str, Any]) -> int:
        response = self._send("POST", "/pipelines", json=dict(pipeline))
        if not response.is_success:
            logger.warning(
                "Saving pipeline %s failed: HTTP %s",
                pipeline.get("id"),
                response.status_code,
            )
        return response.status_code

    def _get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        response = self._send("GET", path, params=params)
        if not response.is_success:
            raise RemoteServiceError(
                f"GET {path} failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as error:
            raise RemoteServiceError(f"GET {path} returned invalid JSON") from error

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"{method} {path} failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpMetadataStoreClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _segment(value: str) -> str:
    return quote(value, safe="")
