"""
rewards.py - Per-account time-weighted reward accrual

A RewardLedger tracks, for every holder of a reward-bearing token, how much
reward the holder has earned: balance multiplied by seconds held. The result
is measured in token-seconds (fixed-point); the controller converts it to
H2O at claim time using the melt or condensation rate.

Accrual must be triggered with the balance held *before* the event that
changes it, so that the elapsed period is weighted by what was actually held.

Entries are created on the first observation of an account and never
removed. The first observation only starts the clock; nothing accrues.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterator, List, Optional

from .core import ReentrantCall
from . import fixed_point as fp


# Called after an accrual is committed: (account, amount, new_claimable_total, now)
AccrualListener = Callable[[str, int, int, int], None]


@dataclass(slots=True)
class RewardEntry:
    """
    Reward bookkeeping for one account.

    Attributes:
        last_reward_time: When accrual was last committed
        claimable_reward: Reward earned and not yet claimed (token-seconds)
    """
    last_reward_time: int
    claimable_reward: int = 0


def accrued_since(entry: RewardEntry, balance: int, now: int) -> int:
    """Reward earned by holding `balance` from entry.last_reward_time to `now`."""
    if now < entry.last_reward_time:
        raise ValueError(
            f"Cannot accrue backwards in time: {now} < {entry.last_reward_time}"
        )
    return fp.umul(balance, fp.to_fixed(now - entry.last_reward_time))


class RewardLedger:
    """
    Mapping from account to RewardEntry with accrue / project / claim.

    accrue() and claim() are guarded: entering either while one of them is
    running (for example from the accrual listener) raises ReentrantCall.
    The entry is updated before the listener runs, so nothing observes
    uncommitted state.

    Not thread-safe.
    """

    def __init__(self, listener: Optional[AccrualListener] = None):
        self._entries: Dict[str, RewardEntry] = {}
        self._listener = listener
        self._in_progress = False

    @contextmanager
    def _guard(self) -> Iterator[None]:
        if self._in_progress:
            raise ReentrantCall("reward accrual already in progress")
        self._in_progress = True
        try:
            yield
        finally:
            self._in_progress = False

    def _accrue(self, account: str, balance: int, now: int) -> int:
        entry = self._entries.get(account)
        if entry is None:
            self._entries[account] = RewardEntry(last_reward_time=now)
            return 0

        delta = accrued_since(entry, balance, now)
        entry.claimable_reward = fp.uadd(entry.claimable_reward, delta)
        entry.last_reward_time = now

        if delta and self._listener is not None:
            self._listener(account, delta, entry.claimable_reward, now)
        return delta

    def accrue(self, account: str, balance: int, now: int) -> int:
        """
        Commit the reward earned by `account` up to `now`.

        Args:
            account: Holder identity
            balance: Balance held since the last accrual (pre-event balance)
            now: Current time

        Returns:
            The newly accrued amount (0 on the first observation)

        Raises:
            ReentrantCall: If called while an accrual or claim is running
            ValueError: If now is before the last accrual
        """
        with self._guard():
            return self._accrue(account, balance, now)

    def claimable_reward(self, account: str, balance: int, now: int) -> int:
        """Stored claimable reward plus what has accrued since; never mutates."""
        entry = self._entries.get(account)
        if entry is None:
            return 0
        return fp.uadd(entry.claimable_reward, accrued_since(entry, balance, now))

    def claim(self, account: str, balance: int, now: int) -> int:
        """
        Accrue, then read and reset the claimable reward.

        Returns:
            The claimable reward before the reset
        """
        with self._guard():
            self._accrue(account, balance, now)
            entry = self._entries[account]
            amount = entry.claimable_reward
            entry.claimable_reward = 0
        return amount

    def entry(self, account: str) -> Optional[RewardEntry]:
        """Return a copy of the account's entry, or None if it was never observed."""
        entry = self._entries.get(account)
        return replace(entry) if entry is not None else None

    def accounts(self) -> List[str]:
        return sorted(self._entries)

    def snapshot(self) -> Dict[str, RewardEntry]:
        return {account: replace(entry) for account, entry in self._entries.items()}

    def restore(self, snapshot: Dict[str, RewardEntry]) -> None:
        self._entries = {account: replace(entry) for account, entry in snapshot.items()}

    def __len__(self) -> int:
        return len(self._entries)
