"""
clock.py - Logical time shared by tokens and the controller.

Timestamps are integer seconds. Time only moves forward; several operations
may happen at the same instant.
"""


class Clock:
    """
    Monotonic logical clock.

    Example:
        clock = Clock(1_700_000_000)
        clock.advance(3600)
        clock.now  # 1_700_003_600
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"Clock cannot start before 0: {start}")
        self._now = int(start)

    @property
    def now(self) -> int:
        """Current logical time in seconds."""
        return self._now

    def advance(self, seconds: int) -> int:
        """
        Move time forward by `seconds` and return the new time.

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards by {seconds}s")
        self._now += int(seconds)
        return self._now

    def advance_to(self, timestamp: int) -> int:
        """
        Set the clock to `timestamp`.

        Raises:
            ValueError: If timestamp is before the current time
        """
        if timestamp < self._now:
            raise ValueError(
                f"Cannot move time backwards: {timestamp} < {self._now}"
            )
        self._now = int(timestamp)
        return self._now

    def __repr__(self) -> str:
        return f"Clock(now={self._now})"
