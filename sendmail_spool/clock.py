"""Injectable source of the current instant.

Every timestamp written into a record (envelope line, ``Received:``,
``Date:``, ``Message-ID:``) comes from a :data:`Clock`, so tests can pin it.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def fixed_clock(instant: datetime) -> Clock:
    """Return a clock that always reports *instant*."""
    if instant.tzinfo is None:
        raise ValueError("fixed_clock requires an aware datetime")
    return lambda: instant
