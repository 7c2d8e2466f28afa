"""Injectable wall clock returning epoch milliseconds."""

import time
from collections.abc import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time() * 1000)


def fixed_clock(now: int) -> Clock:
    """A clock frozen at ``now``. Used by tests and replays."""
    return lambda: now
