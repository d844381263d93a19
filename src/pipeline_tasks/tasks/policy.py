"""Bounded confirmation policy for eventually consistent reads."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

TIMESTAMP_FIELDS: tuple[str, ...] = ("updateTs", "lastModified")

DEFAULT_SPACING_SECONDS = 1.0
DEFAULT_GRACE_PERIOD_MS = 5_000


def extract_timestamp(record: Mapping[str, Any]) -> int | None:
    """Return the record's modification time in epoch millis.

    ``updateTs`` wins over ``lastModified``; older stored records only carry
    the latter. Returns ``None`` when neither field is present or parseable.
    """

    for key in TIMESTAMP_FIELDS:
        if key in record:
            value = record[key]
            if value is None:
                return None
            try:
                return int(str(value))
            except ValueError:
                return None
    return None


@dataclass(slots=True)
class ConfirmationPolicy:
    """How many fresh reads are needed, how far apart, and what counts as fresh.

    Storage providers such as versioned object stores round last-modified
    times to the second while stage start times are in millis, hence the
    grace period.
    """

    attempts: int
    grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS
    spacing_seconds: float = DEFAULT_SPACING_SECONDS
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0.")
        if self.grace_period_ms < 0:
            raise ValueError("grace_period_ms must be >= 0.")
        if self.spacing_seconds < 0:
            raise ValueError("spacing_seconds must be >= 0.")

    @property
    def disabled(self) -> bool:
        return self.attempts == 0

    def threshold(self, stage_start_time: int) -> int:
        return stage_start_time - self.grace_period_ms

    def is_fresh(self, record: Mapping[str, Any], stage_start_time: int) -> bool:
        timestamp = extract_timestamp(record)
        if timestamp is None:
            return False
        return timestamp >= self.threshold(stage_start_time)

    def confirm(
        self,
        fetch: Callable[[], Mapping[str, Any] | None],
        stage_start_time: int,
    ) -> bool:
        """Require ``attempts`` consecutive fresh reads; stop at the first miss.

        Each call starts counting from zero. Several reads spaced apart are
        likely to hit every replica behind a round-robin client.
        """

        for attempt in range(1, self.attempts + 1):
            record = fetch()
            if record is None or not self.is_fresh(record, stage_start_time):
                return False
            if attempt < self.attempts:
                self.sleep(self.spacing_seconds)
        return True
