"""
token.py - Token collaborator: balances, supply, mint/burn, transfer

Token is the minimal fungible token the controller and the virtual pools
operate on. Minting and burning are reserved for authorized callers (the
pools and the controller); who authorizes them is decided at deployment.

RewardToken adds a RewardLedger: every balance change commits the reward
earned with the pre-change balance, and holders can have their claimable
reward paid out by an authorized caller.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import ContextManager, Dict, FrozenSet, Optional, Set

from .clock import Clock
from .core import (
    ZERO_ADDRESS,
    EventLog, RewardEvent, ClaimRewardEvent, atomic,
    InsufficientBalance, Unauthorized,
)
from .rewards import RewardEntry, RewardLedger
from . import fixed_point as fp


@dataclass(frozen=True, slots=True)
class TokenSnapshot:
    """Complete token state, for inspection and rollback."""
    symbol: str
    balances: Dict[str, int]
    total_supply: int
    reward_entries: Optional[Dict[str, RewardEntry]] = None


class Token:
    """
    Fungible token with authorized mint/burn.

    Example:
        clock = Clock()
        h2o = Token("H2O", "H2O stable token", clock)
        h2o.authorize("controller")
        h2o.mint("alice", to_fixed(100), caller="controller")
    """

    def __init__(self, symbol: str, name: str, clock: Clock, events: Optional[EventLog] = None):
        if not symbol or not symbol.strip():
            raise ValueError("Token symbol cannot be empty")
        self.symbol = symbol
        self.name = name
        self.clock = clock
        self.events = events if events is not None else EventLog()
        self._balances: Dict[str, int] = {}
        self._total_supply = 0
        self._minters: Set[str] = set()

    # ========================================================================
    # READS
    # ========================================================================

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def total_supply(self) -> int:
        return self._total_supply

    def holders(self) -> Dict[str, int]:
        """All accounts with a non-zero balance."""
        return {a: b for a, b in self._balances.items() if b}

    @property
    def minters(self) -> FrozenSet[str]:
        return frozenset(self._minters)

    # ========================================================================
    # AUTHORIZATION
    # ========================================================================

    def authorize(self, caller: str) -> None:
        """Allow `caller` to mint and burn."""
        if not caller or caller == ZERO_ADDRESS:
            raise ValueError(f"Cannot authorize {caller!r}")
        self._minters.add(caller)

    def revoke(self, caller: str) -> None:
        self._minters.discard(caller)

    def _require_minter(self, caller: str, action: str) -> None:
        if caller not in self._minters:
            raise Unauthorized(f"{caller} may not {action} {self.symbol}")

    # ========================================================================
    # BALANCE CHANGES
    # ========================================================================

    def _before_balance_change(self, account: str) -> None:
        """Hook run before any balance of `account` changes."""
        pass

    def _scope(self) -> ContextManager[None]:
        """
        Hold back events until the change is complete.

        Subscribers see the post-change balances; if one raises, the token
        is restored and the events are withdrawn.
        """
        return atomic(self.events, self.snapshot, self.restore)

    @staticmethod
    def _require_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"amount must be a fixed-point int, got {type(amount).__name__}")
        if amount < 0:
            raise ValueError(f"amount cannot be negative: {amount}")

    @staticmethod
    def _require_account(account: str) -> None:
        if not account or account == ZERO_ADDRESS:
            raise ValueError(f"Invalid account {account!r}")

    def mint(self, account: str, amount: int, caller: str) -> None:
        """
        Create `amount` tokens in `account`.

        Raises:
            Unauthorized: If caller is not an authorized minter
        """
        self._require_minter(caller, "mint")
        self._require_account(account)
        self._require_amount(amount)
        new_supply = fp.uadd(self._total_supply, amount)
        with self._scope():
            self._before_balance_change(account)
            self._balances[account] = fp.uadd(self.balance_of(account), amount)
            self._total_supply = new_supply

    def burn(self, account: str, amount: int, caller: str) -> None:
        """
        Destroy `amount` tokens held by `account`.

        Raises:
            Unauthorized: If caller is not an authorized minter
            InsufficientBalance: If the account holds less than amount
        """
        self._require_minter(caller, "burn")
        self._require_account(account)
        self._require_amount(amount)
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalance(
                f"{account} holds {fp.format_amount(balance)} {self.symbol}, "
                f"cannot burn {fp.format_amount(amount)}"
            )
        with self._scope():
            self._before_balance_change(account)
            self._balances[account] = balance - amount
            self._total_supply = fp.usub(self._total_supply, amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move `amount` tokens from sender to recipient.

        Raises:
            InsufficientBalance: If sender holds less than amount
            ValueError: If either side is the zero address or they are equal
        """
        self._require_account(sender)
        self._require_account(recipient)
        self._require_amount(amount)
        if sender == recipient:
            raise ValueError("Sender and recipient must be different")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{sender} holds {fp.format_amount(balance)} {self.symbol}, "
                f"cannot transfer {fp.format_amount(amount)}"
            )
        with self._scope():
            self._before_balance_change(sender)
            self._before_balance_change(recipient)
            self._balances[sender] = balance - amount
            self._balances[recipient] = fp.uadd(self.balance_of(recipient), amount)

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    def snapshot(self) -> TokenSnapshot:
        return TokenSnapshot(
            symbol=self.symbol,
            balances=dict(self._balances),
            total_supply=self._total_supply,
        )

    def restore(self, snapshot: TokenSnapshot) -> None:
        if snapshot.symbol != self.symbol:
            raise ValueError(f"Snapshot of {snapshot.symbol} cannot restore {self.symbol}")
        self._balances = dict(snapshot.balances)
        self._total_supply = snapshot.total_supply

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol}, supply={fp.format_amount(self._total_supply)})"


class RewardToken(Token):
    """
    Token whose holders accrue reward over time.

    Reward is measured in token-seconds; the controller decides what a
    token-second is worth. Accrual runs before every mint, burn and transfer
    using the balance held until then. The zero address never accrues.
    """

    def __init__(self, symbol: str, name: str, clock: Clock, events: Optional[EventLog] = None):
        super().__init__(symbol, name, clock, events)
        self.rewards = RewardLedger(listener=self._on_accrual)

    def _on_accrual(self, account: str, amount: int, new_total: int, now: int) -> None:
        self.events.emit(RewardEvent(account, amount, new_total, now))

    def _before_balance_change(self, account: str) -> None:
        if account == ZERO_ADDRESS:
            return
        self.rewards.accrue(account, self.balance_of(account), self.clock.now)

    def claimable_reward(self, account: str) -> int:
        """Reward `account` could claim right now."""
        return self.rewards.claimable_reward(account, self.balance_of(account), self.clock.now)

    def claim_reward(self, account: str, caller: str) -> int:
        """
        Pay out and reset the account's claimable reward.

        Returns:
            The claimed reward in token-seconds

        Raises:
            Unauthorized: If caller is not an authorized minter
        """
        self._require_minter(caller, "claim rewards of")
        self._require_account(account)
        with self._scope():
            amount = self.rewards.claim(account, self.balance_of(account), self.clock.now)
            self.events.emit(ClaimRewardEvent(account, amount, self.clock.now))
        return amount

    def snapshot(self) -> TokenSnapshot:
        return TokenSnapshot(
            symbol=self.symbol,
            balances=dict(self._balances),
            total_supply=self._total_supply,
            reward_entries=self.rewards.snapshot(),
        )

    def restore(self, snapshot: TokenSnapshot) -> None:
        super().restore(snapshot)
        self.rewards.restore(snapshot.reward_entries or {})
