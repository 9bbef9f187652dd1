"""
Core types for the H2O stabilization engine.

This module provides the foundational pieces shared by every component:
1. Constants: fixed-point scale, integer bounds, reserved addresses
2. Exceptions: ProtocolError and the domain-specific error types
3. Events: immutable records published by tokens and the controller
4. EventLog: append-only audit trail with subscriber notification
5. atomic(): all-or-nothing scope over an EventLog and a snapshot/restore pair

Nothing in this module holds protocol state.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Union


# ============================================================================
# CONSTANTS
# ============================================================================

# Number of fractional decimal digits carried by every amount and price.
DECIMALS = 18

# One whole unit in fixed-point representation.
SCALE = 10 ** DECIMALS

# Bounds of the 256-bit domain amounts live in.
INT256_MIN = -(2 ** 255)
INT256_MAX = 2 ** 255 - 1
UINT256_MAX = 2 ** 256 - 1

# Placeholder for "no account": the source of a mint, the destination of a burn.
# Reward accrual is never tracked for it.
ZERO_ADDRESS = "0x0"

# Token symbols.
H2O = "H2O"
ICE = "ICE"
STM = "STM"

SECONDS_PER_DAY = 86_400
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ProtocolError(Exception):
    """Base exception for all protocol errors."""
    pass


class FixedPointError(ProtocolError, ArithmeticError):
    """Raised when a fixed-point operation cannot produce an exact, in-range result."""
    pass


class DivisionByZero(FixedPointError, ZeroDivisionError):
    """Raised when a fixed-point division has a zero divisor."""
    pass


class FixedPointOverflow(FixedPointError, OverflowError):
    """Raised when a result leaves the 256-bit domain of its operation."""
    pass


class FixedPointUnderflow(FixedPointError):
    """Raised when an unsigned result would be negative."""
    pass


class InsufficientBalance(ProtocolError):
    """Raised when an account holds less than the amount it asks to spend."""
    pass


class PoolExhausted(ProtocolError):
    """Raised when a swap would drain the destination side of a virtual pool."""
    pass


class InvalidClaimRequest(ProtocolError):
    """Raised when a reward claim selects no reward source."""
    pass


class ReentrantCall(ProtocolError):
    """Raised when a guarded operation is entered while it is already running."""
    pass


class Unauthorized(ProtocolError):
    """Raised when a caller invokes an operation reserved for another component."""
    pass


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class RewardEvent:
    """
    Reward accrued to an account.

    Attributes:
        account: Holder whose entry was updated
        amount: Newly accrued reward (token-seconds, fixed-point)
        new_claimable_total: Stored claimable reward after the accrual
        timestamp: Time of the accrual
    """
    account: str
    amount: int
    new_claimable_total: int
    timestamp: int = 0


@dataclass(frozen=True, slots=True)
class ClaimRewardEvent:
    """Claimable reward paid out and reset to zero."""
    account: str
    amount: int
    timestamp: int = 0


@dataclass(frozen=True, slots=True)
class SwapEvent:
    """
    A completed swap against a virtual pool.

    Attributes:
        account: Requester of the swap
        token_from: Symbol of the burned input token
        amount_from: Amount burned
        token_to: Symbol of the minted output token
        amount_to: Amount minted
        timestamp: Time of the swap
    """
    account: str
    token_from: str
    amount_from: int
    token_to: str
    amount_to: int
    timestamp: int = 0

    def __repr__(self) -> str:
        return (f"Swap({self.account}: {self.amount_from} {self.token_from}"
                f" → {self.amount_to} {self.token_to})")


Event = Union[RewardEvent, ClaimRewardEvent, SwapEvent]
EventListener = Callable[[Event], None]


class EventLog:
    """
    Append-only record of published events.

    Subscribers are called synchronously, in subscription order, after the
    event has been appended.

    Between begin() and commit() events are held back: commit() publishes
    them, rollback() discards them. Scopes nest; only the outermost commit
    publishes. The outermost commit appends the whole batch before notifying
    anyone; if a subscriber raises, the batch is withdrawn from the log and
    the exception propagates.
    """

    def __init__(self) -> None:
        self.events: List[Event] = []
        self._listeners: List[EventListener] = []
        self._pending: List[Event] = []
        self._depth = 0

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def emit(self, event: Event) -> None:
        if self._depth:
            self._pending.append(event)
            return
        self._publish([event])

    def begin(self) -> int:
        """Open a scope and return a marker for rollback()."""
        self._depth += 1
        return len(self._pending)

    def commit(self) -> None:
        if not self._depth:
            raise RuntimeError("commit() without begin()")
        self._depth -= 1
        if self._depth == 0:
            pending, self._pending = self._pending, []
            self._publish(pending)

    def rollback(self, marker: int) -> None:
        """Close a scope, discarding the events it held back."""
        if not self._depth:
            raise RuntimeError("rollback() without begin()")
        self._depth -= 1
        del self._pending[marker:]

    @property
    def pending(self) -> List[Event]:
        return list(self._pending)

    def _publish(self, batch: List[Event]) -> None:
        start = len(self.events)
        self.events.extend(batch)
        try:
            for event in batch:
                for listener in self._listeners:
                    listener(event)
        except Exception:
            del self.events[start:]
            raise

    def of_type(self, event_type: type) -> List[Event]:
        """Return every recorded event of the given type, oldest first."""
        return [e for e in self.events if isinstance(e, event_type)]

    def last(self, event_type: Optional[type] = None) -> Optional[Event]:
        """Return the most recent event (of a type, if given), or None."""
        for event in reversed(self.events):
            if event_type is None or isinstance(event, event_type):
                return event
        return None

    def __len__(self) -> int:
        return len(self.events)


@contextmanager
def atomic(
    events: EventLog,
    snapshot: Callable[[], Any],
    restore: Callable[[Any], None],
    on_reject: Optional[Callable[[Exception], None]] = None,
) -> Iterator[None]:
    """
    Run a block all-or-nothing against `events` and one snapshot/restore pair.

    Events emitted inside the block are held back until it finishes. If the
    block raises, or a subscriber raises while the events are published,
    state is restored, nothing stays in the log, and the exception
    propagates after on_reject(exc) has run.
    """
    saved = snapshot()
    marker = events.begin()
    try:
        yield
    except Exception as exc:
        restore(saved)
        events.rollback(marker)
        if on_reject is not None:
            on_reject(exc)
        raise
    try:
        events.commit()
    except Exception as exc:
        restore(saved)
        if on_reject is not None:
            on_reject(exc)
        raise
