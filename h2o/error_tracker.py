"""
error_tracker.py - Proportional-integral error accumulator

The ErrorTracker knows nothing about prices. It asks its responder for the
current error, integrates it over the elapsed time, and hands the
proportional and integral terms back to the responder to act on.

An update runs at most once per timestamp: further calls at the same
instant are no-ops, so a sequence of calls within one instant cannot apply
the same correction repeatedly.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, runtime_checkable

from . import fixed_point as fp


@runtime_checkable
class ErrorResponder(Protocol):
    """
    The two extension points an ErrorTracker delegates to.

    compute_error() returns the current signed error (fixed-point).
    apply_error() receives the error, the accumulated error (error-seconds)
    and the seconds elapsed since the previous update.
    """

    def compute_error(self) -> int:
        ...

    def apply_error(self, error: int, accumulated_error: int, time_delta: int) -> None:
        ...


@dataclass(frozen=True, slots=True)
class ErrorTrackerState:
    """
    Attributes:
        last_error: Error observed at the last update
        accumulated_error: Sum of error * elapsed seconds over all updates
        last_update_time: Timestamp of the last update
    """
    last_error: int
    accumulated_error: int
    last_update_time: int


class ErrorTracker:
    """Time-gated PI accumulator."""

    def __init__(self, responder: ErrorResponder, start_time: int):
        self._responder = responder
        self.last_error = 0
        self.accumulated_error = 0
        self.last_update_time = start_time

    def project(self, now: int) -> Optional[Tuple[int, int, int]]:
        """
        Terms an update at `now` would hand to the responder, without storing them.

        Returns:
            (error, accumulated_error, time_delta), or None if an update
            already ran at `now`

        Raises:
            ValueError: If now is before the last update
        """
        if now == self.last_update_time:
            return None
        if now < self.last_update_time:
            raise ValueError(
                f"Cannot update backwards in time: {now} < {self.last_update_time}"
            )

        time_delta = now - self.last_update_time
        error = self._responder.compute_error()
        accumulated_error = fp.add(self.accumulated_error, fp.mul(error, fp.to_fixed(time_delta)))
        return error, accumulated_error, time_delta

    def update(self, now: int) -> bool:
        """
        Integrate the current error up to `now` and let the responder react.

        Returns:
            True if an update ran, False if one already ran at `now`

        Raises:
            ValueError: If now is before the last update
        """
        terms = self.project(now)
        if terms is None:
            return False

        error, accumulated_error, time_delta = terms
        self.accumulated_error = accumulated_error
        self.last_error = error
        self.last_update_time = now

        self._responder.apply_error(error, accumulated_error, time_delta)
        return True

    def state(self) -> ErrorTrackerState:
        return ErrorTrackerState(self.last_error, self.accumulated_error, self.last_update_time)

    def restore(self, state: ErrorTrackerState) -> None:
        self.last_error = state.last_error
        self.accumulated_error = state.accumulated_error
        self.last_update_time = state.last_update_time
