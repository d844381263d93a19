"""Explicit enabled/disabled wrapper for optional collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pipeline_tasks.errors import TaskConfigurationError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Capability(Generic[T]):
    """A collaborator that is either configured or disabled with a fix-it hint."""

    name: str
    service: T | None
    disabled_reason: str = ""

    @classmethod
    def of(cls, name: str, service: T | None, *, disabled_reason: str) -> Capability[T]:
        return cls(name=name, service=service, disabled_reason=disabled_reason)

    @property
    def enabled(self) -> bool:
        return self.service is not None

    def require(self) -> T:
        """Return the collaborator or raise a configuration error."""

        if self.service is None:
            raise TaskConfigurationError(
                self.disabled_reason or f"{self.name} is not enabled.",
            )
        return self.service
