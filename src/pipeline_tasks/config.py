"""Runtime configuration for pipeline tasks and their remote collaborators."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse


@dataclass(slots=True)
class MetadataStoreSettings:
    """Metadata store connection settings. An empty URL disables the store."""

    base_url: str = ""
    timeout_seconds: float = 30.0
    max_retries: int = 3

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


@dataclass(slots=True)
class PermissionSettings:
    """Permission service settings."""

    enabled: bool = False
    base_url: str = ""
    timeout_seconds: float = 30.0
    max_retries: int = 3


@dataclass(slots=True)
class MonitorSettings:
    """Consistency check settings.

    ``success_threshold`` of 0 turns verification off for strongly consistent
    storage.
    """

    success_threshold: int = 0
    grace_period_ms: int = 5_000
    spacing_seconds: float = 1.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by collaborator."""

    metadata_store: MetadataStoreSettings = field(default_factory=MetadataStoreSettings)
    permissions: PermissionSettings = field(default_factory=PermissionSettings)
    monitor: MonitorSettings = field(default_factory=MonitorSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local development."""

        return cls(
            metadata_store=MetadataStoreSettings(
                base_url=os.getenv("PIPELINE_TASKS_METADATA_STORE_URL", "").strip(),
                timeout_seconds=float(
                    os.getenv("PIPELINE_TASKS_METADATA_STORE_TIMEOUT_SECONDS", "30.0"),
                ),
                max_retries=int(os.getenv("PIPELINE_TASKS_METADATA_STORE_MAX_RETRIES", "3")),
            ),
            permissions=PermissionSettings(
                enabled=_env_bool("PIPELINE_TASKS_PERMISSIONS_ENABLED", default=False),
                base_url=os.getenv("PIPELINE_TASKS_PERMISSIONS_URL", "").strip(),
                timeout_seconds=float(
                    os.getenv("PIPELINE_TASKS_PERMISSIONS_TIMEOUT_SECONDS", "30.0"),
                ),
                max_retries=int(os.getenv("PIPELINE_TASKS_PERMISSIONS_MAX_RETRIES", "3")),
            ),
            monitor=MonitorSettings(
                success_threshold=int(os.getenv("PIPELINE_TASKS_MONITOR_SUCCESS_THRESHOLD", "0")),
                grace_period_ms=int(os.getenv("PIPELINE_TASKS_MONITOR_GRACE_PERIOD_MS", "5000")),
                spacing_seconds=float(
                    os.getenv("PIPELINE_TASKS_MONITOR_SPACING_SECONDS", "1.0"),
                ),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for inconsistent or out-of-range values."""

        if self.monitor.success_threshold < 0:
            raise ValueError("PIPELINE_TASKS_MONITOR_SUCCESS_THRESHOLD must be >= 0.")
        if self.monitor.grace_period_ms < 0:
            raise ValueError("PIPELINE_TASKS_MONITOR_GRACE_PERIOD_MS must be >= 0.")
        if self.monitor.spacing_seconds < 0:
            raise ValueError("PIPELINE_TASKS_MONITOR_SPACING_SECONDS must be >= 0.")
        if self.metadata_store.timeout_seconds <= 0:
            raise ValueError("PIPELINE_TASKS_METADATA_STORE_TIMEOUT_SECONDS must be > 0.")
        if self.metadata_store.max_retries < 0:
            raise ValueError("PIPELINE_TASKS_METADATA_STORE_MAX_RETRIES must be >= 0.")
        if self.permissions.timeout_seconds <= 0:
            raise ValueError("PIPELINE_TASKS_PERMISSIONS_TIMEOUT_SECONDS must be > 0.")
        if self.permissions.max_retries < 0:
            raise ValueError("PIPELINE_TASKS_PERMISSIONS_MAX_RETRIES must be >= 0.")
        if self.metadata_store.base_url:
            _validate_url("PIPELINE_TASKS_METADATA_STORE_URL", self.metadata_store.base_url)
        if self.permissions.enabled:
            if not self.permissions.base_url:
                raise ValueError(
                    "PIPELINE_TASKS_PERMISSIONS_URL is required when permissions are enabled.",
                )
            _validate_url("PIPELINE_TASKS_PERMISSIONS_URL", self.permissions.base_url)


def _validate_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            f"Invalid {name}: {value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
