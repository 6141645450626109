from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """FastAPI dependency; override in tests to freeze time."""
    return utc_now
