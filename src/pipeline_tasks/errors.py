"""Error taxonomy shared by tasks and remote clients."""

from __future__ import annotations

from dataclasses import dataclass

ABSENT_STATUS_CODES = frozenset({401, 403, 404})


@dataclass(slots=True)
class TaskError(Exception):
    """Base task error."""

    message: str
    code: str = "task_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class TaskConfigurationError(TaskError):
    """A required collaborator is not enabled; retrying cannot fix it."""

    code: str = "configuration_error"


@dataclass(slots=True)
class TaskInputError(TaskError):
    """Required stage context is missing or malformed."""

    code: str = "input_error"


@dataclass(slots=True)
class RemoteServiceError(TaskError):
    """Remote call failed with an HTTP status or at the transport level."""

    code: str = "remote_error"
    status_code: int | None = None

    @property
    def is_absent(self) -> bool:
        """Unknown (404) and unauthorized (401, 403) reads mean "not there yet"."""

        return self.status_code in ABSENT_STATUS_CODES
