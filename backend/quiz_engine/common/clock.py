"""Clock sources for session timing.

All engine timestamps are naive UTC datetimes so they compare cleanly with values
read back from SQLite and PostgreSQL ``timestamp`` columns.
"""

from datetime import UTC, datetime, timedelta
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current wall-clock time as a naive UTC datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


class FrozenClock:
    """Manually advanced clock for tests and replay."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by a ``timedelta(**kwargs)``."""
        self.current = self.current + timedelta(**kwargs)
        return self.current
