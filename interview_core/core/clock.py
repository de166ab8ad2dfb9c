"""Time sources for the session engine.

Ticking and elapsed-time accounting use a monotonic reading; anything that is
persisted or compared by calendar day uses an aware UTC datetime.
"""

import time
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def monotonic(self) -> float: ...

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock backed by time.monotonic and datetime.now(UTC)."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(UTC)


class FakeClock:
    """Manually advanced clock for deterministic tests.

    Both readings move together, so elapsed seconds computed from monotonic()
    agree with the difference between two now() values.
    """

    def __init__(self, start: datetime | None = None):
        self._start = start or datetime(2025, 1, 6, 9, 0, tzinfo=UTC)
        self._offset = 0.0

    def monotonic(self) -> float:
        return self._offset

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._offset)

    def advance(self, seconds: float) -> None:
        self._offset += seconds
