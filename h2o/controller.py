"""
controller.py - The stabilization controller

The Controller keeps H2O steady by steering the ICE price toward a target.
It owns the two virtual pools (H2O/ICE and H2O/STM) and a PI error tracker,
and supplies the tracker with the concrete error and response:

    error = price of ICE in the H2O/ICE pool - target price

    On each update (at most once per timestamp):
        1. STM price    += scale_by_time(error * stm_price_factor * stm/ice, dt, stm_price_period)
        2. condensation += scale_by_time(base + accumulated * factor - condensation, dt, condensation_period)
                           (never below zero)
        3. target price += scale_by_time(error, dt, target_price_period)

scale_by_time caps the fraction of a change applied in one step at
dt / period, so neither frequent nor rare updates can move state faster
than the configured periods allow.

Every public operation is atomic: it either completes or raises with all
tokens, pools, tracker and controller scalars exactly as they were, and the
events it produced discarded.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import ContextManager, Dict, Optional, Tuple

from .clock import Clock
from .config import ControllerConfig
from .core import (
    H2O, ICE, STM,
    EventLog, SwapEvent, atomic,
    InvalidClaimRequest,
)
from .error_tracker import ErrorTracker, ErrorTrackerState
from .token import Token, RewardToken, TokenSnapshot
from .virtual_pool import PoolState, VirtualPool
from . import fixed_point as fp


# Smallest STM price the controller will set (one fixed-point unit).
MIN_PRICE = 1


@dataclass(frozen=True, slots=True)
class ControllerState:
    """
    The controller's own scalars.

    Attributes:
        target_price: Price the controller steers ICE toward (H2O per ICE)
        melt_rate: H2O paid per ICE per second held
        condensation_rate: H2O paid per STM per second held
        last_total_h2o_supply: H2O supply plus pool H2O sides at the last rescale
    """
    target_price: int
    melt_rate: int
    condensation_rate: int
    last_total_h2o_supply: int


@dataclass(frozen=True, slots=True)
class ProtocolSnapshot:
    """Everything a controller operation can change."""
    controller: ControllerState
    error_tracker: ErrorTrackerState
    ice_pool: PoolState
    stm_pool: PoolState
    tokens: Tuple[TokenSnapshot, ...]


class Controller:
    """
    Stabilization controller for the H2O / ICE / STM protocol.

    The controller must be authorized to mint H2O and to claim ICE and STM
    rewards, and its pools must be authorized to mint and burn their tokens;
    init_token_roles() grants all of that.

    Thread Safety:
        Not thread-safe. Operations must be serialized by the caller.

    Example:
        clock = Clock(0)
        controller = Controller(h2o, ice, stm, clock, verbose=False)
        controller.init_token_roles()
        clock.advance(60)
        ice_out = controller.swap_h2o_for_ice("alice", to_fixed(1_000))
    """

    def __init__(
        self,
        h2o: Token,
        ice: RewardToken,
        stm: RewardToken,
        clock: Clock,
        config: Optional[ControllerConfig] = None,
        address: str = "controller",
        events: Optional[EventLog] = None,
        verbose: bool = True,
    ):
        """
        Create a controller and its two pools.

        Args:
            h2o: Stable token
            ice: Measurement token (reward-bearing)
            stm: Control token (reward-bearing)
            clock: Shared logical clock
            config: Deployment parameters (default: ControllerConfig())
            address: Identity used as owner of the pools and as minter
            events: Event log for swap events (default: the H2O token's log)
            verbose: Print one line per operation (default: True)
        """
        self.config = config or ControllerConfig()
        self.address = address
        self.h2o = h2o
        self.ice = ice
        self.stm = stm
        self.clock = clock
        self.events = events if events is not None else h2o.events
        self.verbose = verbose

        cfg = self.config
        self.ice_pool = VirtualPool(
            h2o, ice, cfg.fixed('ice_pool_h2o_size'), cfg.fixed('ice_pool_ice_size'),
            owner=address, address=f"{address}:pool:{H2O}/{ICE}",
        )
        self.stm_pool = VirtualPool(
            h2o, stm, cfg.fixed('stm_pool_h2o_size'), cfg.fixed('stm_pool_stm_size'),
            owner=address, address=f"{address}:pool:{H2O}/{STM}",
        )
        self.error_tracker = ErrorTracker(self, clock.now)

        self._target_price = cfg.fixed('target_ice_price')
        self._melt_rate = cfg.fixed('melt_rate')
        self._condensation_rate = cfg.fixed('base_condensation_rate')
        self._base_condensation_rate = cfg.fixed('base_condensation_rate')
        self._condensation_factor = cfg.fixed('condensation_factor')
        self._stm_price_factor = cfg.fixed('stm_price_factor')
        self._last_total_h2o_supply = self.total_h2o_supply()

    def init_token_roles(self) -> None:
        """Authorize the controller and its pools on the three tokens."""
        self.h2o.authorize(self.address)
        self.ice.authorize(self.address)
        self.stm.authorize(self.address)
        for pool in (self.ice_pool, self.stm_pool):
            pool.token_a.authorize(pool.address)
            pool.token_b.authorize(pool.address)

    # ========================================================================
    # READS
    # ========================================================================

    @property
    def target_price(self) -> int:
        return self._target_price

    @property
    def melt_rate(self) -> int:
        return self._melt_rate

    @property
    def condensation_rate(self) -> int:
        return self._condensation_rate

    @property
    def last_total_h2o_supply(self) -> int:
        return self._last_total_h2o_supply

    def ice_price(self) -> int:
        """Price of ICE in H2O, from the H2O/ICE pool."""
        return self.ice_pool.price_of_b()

    def stm_price(self) -> int:
        """Price of STM in H2O, from the H2O/STM pool."""
        return self.stm_pool.price_of_b()

    def total_h2o_supply(self) -> int:
        """Circulating H2O plus the H2O sides of both pools."""
        return fp.uadd(
            self.h2o.total_supply(),
            fp.uadd(self.ice_pool.size_a, self.stm_pool.size_a),
        )

    def claimable_h2o(self, account: str, ice: bool = True, stm: bool = True) -> int:
        """
        H2O the account would receive from claim_rewards() right now.

        STM rewards are valued at the condensation rate the claim's error
        update would set, so the preview matches the amount paid.
        """
        amount = 0
        if ice:
            amount = fp.uadd(amount, fp.umul(self.ice.claimable_reward(account), self._melt_rate))
        if stm:
            rate = self._current_condensation_rate()
            amount = fp.uadd(amount, fp.umul(self.stm.claimable_reward(account), rate))
        return amount

    def _current_condensation_rate(self) -> int:
        terms = self.error_tracker.project(self.clock.now)
        if terms is None:
            return self._condensation_rate
        return self._compute_response(*terms)[1]

    def preview_h2o_for_ice(self, amount_in: int) -> int:
        return self.ice_pool.preview_a_for_b(amount_in)

    def preview_ice_for_h2o(self, amount_in: int) -> int:
        return self.ice_pool.preview_b_for_a(amount_in)

    def preview_h2o_for_stm(self, amount_in: int) -> int:
        return self.stm_pool.preview_a_for_b(amount_in)

    def preview_stm_for_h2o(self, amount_in: int) -> int:
        return self.stm_pool.preview_b_for_a(amount_in)

    def state(self) -> ControllerState:
        return ControllerState(
            target_price=self._target_price,
            melt_rate=self._melt_rate,
            condensation_rate=self._condensation_rate,
            last_total_h2o_supply=self._last_total_h2o_supply,
        )

    def describe(self) -> Dict[str, Decimal]:
        """Human-readable view of prices, rates and pool sizes."""
        return {
            'ice_price': fp.to_decimal(self.ice_price()),
            'target_price': fp.to_decimal(self._target_price),
            'stm_price': fp.to_decimal(self.stm_price()),
            'melt_rate': fp.to_decimal(self._melt_rate),
            'condensation_rate': fp.to_decimal(self._condensation_rate),
            'accumulated_error': fp.to_decimal(self.error_tracker.accumulated_error),
            'ice_pool_h2o': fp.to_decimal(self.ice_pool.size_a),
            'ice_pool_ice': fp.to_decimal(self.ice_pool.size_b),
            'stm_pool_h2o': fp.to_decimal(self.stm_pool.size_a),
            'stm_pool_stm': fp.to_decimal(self.stm_pool.size_b),
            'h2o_supply': fp.to_decimal(self.h2o.total_supply()),
        }

    # ========================================================================
    # ERROR RESPONSE (called by the ErrorTracker)
    # ========================================================================

    @staticmethod
    def scale_by_time(change: int, time_delta: int, base_period: int) -> int:
        """
        change * min(time_delta, base_period) / base_period.

        Equals `change` exactly once time_delta reaches base_period.
        """
        if time_delta < 0:
            raise ValueError(f"time_delta cannot be negative: {time_delta}")
        if base_period <= 0:
            raise ValueError(f"base_period must be positive: {base_period}")
        return fp.mul_div(change, min(time_delta, base_period), base_period)

    def compute_error(self) -> int:
        """ICE price minus target price (signed)."""
        return fp.sub(self.ice_price(), self._target_price)

    def _compute_response(self, error: int, accumulated_error: int, time_delta: int) -> Tuple[int, int, int]:
        """New (STM price, condensation rate, target price) for the given error terms."""
        cfg = self.config

        # 1. STM price drift, weighted by the STM/ICE valuation
        stm_price = self.stm_price()
        relative_value = fp.div(stm_price, self.ice_price())
        stm_change = fp.mul(fp.mul(error, self._stm_price_factor), relative_value)
        new_stm_price = fp.smax(
            fp.add(stm_price, self.scale_by_time(stm_change, time_delta, cfg.stm_price_period)),
            MIN_PRICE,
        )

        # 2. Condensation rate drifts toward base + integral term
        target_rate = fp.add(
            self._base_condensation_rate,
            fp.mul(accumulated_error, self._condensation_factor),
        )
        rate_change = self.scale_by_time(
            fp.sub(target_rate, self._condensation_rate), time_delta, cfg.condensation_period
        )
        new_condensation_rate = fp.smax(fp.add(self._condensation_rate, rate_change), 0)

        # 3. Target price follows the observed price
        new_target_price = fp.add(
            self._target_price, self.scale_by_time(error, time_delta, cfg.target_price_period)
        )
        return new_stm_price, new_condensation_rate, new_target_price

    def apply_error(self, error: int, accumulated_error: int, time_delta: int) -> None:
        """
        React to the error terms; see the module docstring for the three updates.

        All three new values are computed before any is stored.
        """
        new_stm_price, new_condensation_rate, new_target_price = self._compute_response(
            error, accumulated_error, time_delta
        )

        self.stm_pool.set_price_of_b(new_stm_price, caller=self.address)
        self._condensation_rate = new_condensation_rate
        self._target_price = new_target_price

        if self.verbose:
            print(f"↻ ERROR UPDATE (+{time_delta}s): error={fp.format_amount(error)} "
                  f"target={fp.format_amount(new_target_price)} "
                  f"STM={fp.format_amount(new_stm_price)} "
                  f"condensation={fp.format_amount(new_condensation_rate, 18)}")

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def _transaction(self, label: str) -> ContextManager[None]:
        """
        Run a block all-or-nothing.

        On any exception, including one raised by an event subscriber while
        the block's events are published, restore and re-raise.
        """
        def reject(exc: Exception) -> None:
            if self.verbose:
                print(f"✗ REJECTED {label}: {type(exc).__name__}: {exc}")

        return atomic(self.events, self.snapshot, self.restore, on_reject=reject)

    def update_error(self) -> bool:
        """
        Run the error tracker at the current time.

        Returns:
            True if an update ran, False if one already ran at this timestamp
        """
        with self._transaction("error update"):
            return self.error_tracker.update(self.clock.now)

    def _swap(
        self,
        pool: VirtualPool,
        a_to_b: bool,
        account: str,
        amount_in: int,
        update_error: bool,
    ) -> int:
        token_from, token_to = (
            (pool.token_a, pool.token_b) if a_to_b else (pool.token_b, pool.token_a)
        )
        label = f"swap {token_from.symbol}→{token_to.symbol} for {account}"
        with self._transaction(label):
            if update_error:
                self.error_tracker.update(self.clock.now)
            if a_to_b:
                amount_out = pool.swap_a_for_b(amount_in, account)
            else:
                amount_out = pool.swap_b_for_a(amount_in, account)
            self.events.emit(SwapEvent(
                account, token_from.symbol, amount_in, token_to.symbol, amount_out,
                self.clock.now,
            ))

        if self.verbose:
            print(f"✓ SWAP {account}: {fp.format_amount(amount_in)} {token_from.symbol}"
                  f" → {fp.format_amount(amount_out)} {token_to.symbol}")
        return amount_out

    def swap_h2o_for_ice(self, account: str, amount_in: int) -> int:
        """Update the error, then swap H2O for ICE. Returns the ICE received."""
        return self._swap(self.ice_pool, True, account, amount_in, update_error=True)

    def swap_ice_for_h2o(self, account: str, amount_in: int) -> int:
        """Update the error, then swap ICE for H2O. Returns the H2O received."""
        return self._swap(self.ice_pool, False, account, amount_in, update_error=True)

    def swap_h2o_for_stm(self, account: str, amount_in: int) -> int:
        """Swap H2O for STM without updating the error. Returns the STM received."""
        return self._swap(self.stm_pool, True, account, amount_in, update_error=False)

    def swap_stm_for_h2o(self, account: str, amount_in: int) -> int:
        """Swap STM for H2O without updating the error. Returns the H2O received."""
        return self._swap(self.stm_pool, False, account, amount_in, update_error=False)

    def claim_rewards(self, account: str, ice: bool = True, stm: bool = True) -> int:
        """
        Convert the account's ICE and/or STM rewards into newly minted H2O.

        ICE rewards are paid at the melt rate, STM rewards at the condensation
        rate. The error tracker is updated first, and both pools are rescaled
        afterwards to follow the new H2O supply.

        Returns:
            H2O minted to the account

        Raises:
            InvalidClaimRequest: If neither ice nor stm is selected
        """
        if not (ice or stm):
            if self.verbose:
                print(f"✗ REJECTED claim for {account}: no reward source selected")
            raise InvalidClaimRequest("Select ICE rewards, STM rewards, or both")

        with self._transaction(f"claim for {account}"):
            self.error_tracker.update(self.clock.now)
            amount = 0
            if ice:
                reward = self.ice.claim_reward(account, caller=self.address)
                amount = fp.uadd(amount, fp.umul(reward, self._melt_rate))
            if stm:
                reward = self.stm.claim_reward(account, caller=self.address)
                amount = fp.uadd(amount, fp.umul(reward, self._condensation_rate))
            if amount:
                self.h2o.mint(account, amount, caller=self.address)
                self._on_reward_claimed()

        if self.verbose:
            print(f"✓ CLAIM {account}: {fp.format_amount(amount)} {H2O}")
        return amount

    def _on_reward_claimed(self) -> None:
        """
        Rescale both pools by the growth of the total H2O supply.

        Keeps pool depth proportional to circulating H2O as rewards are minted.
        """
        total = self.total_h2o_supply()
        if total == self._last_total_h2o_supply:
            return
        ratio = fp.udiv(total, self._last_total_h2o_supply)
        self.ice_pool.scale(ratio, caller=self.address)
        self.stm_pool.scale(ratio, caller=self.address)
        self._last_total_h2o_supply = total

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    def snapshot(self) -> ProtocolSnapshot:
        return ProtocolSnapshot(
            controller=self.state(),
            error_tracker=self.error_tracker.state(),
            ice_pool=self.ice_pool.state(),
            stm_pool=self.stm_pool.state(),
            tokens=(self.h2o.snapshot(), self.ice.snapshot(), self.stm.snapshot()),
        )

    def restore(self, snapshot: ProtocolSnapshot) -> None:
        self._target_price = snapshot.controller.target_price
        self._melt_rate = snapshot.controller.melt_rate
        self._condensation_rate = snapshot.controller.condensation_rate
        self._last_total_h2o_supply = snapshot.controller.last_total_h2o_supply
        self.error_tracker.restore(snapshot.error_tracker)
        self.ice_pool.restore(snapshot.ice_pool)
        self.stm_pool.restore(snapshot.stm_pool)
        for token, token_snapshot in zip((self.h2o, self.ice, self.stm), snapshot.tokens):
            token.restore(token_snapshot)

    def __repr__(self) -> str:
        return (f"Controller(ICE={fp.format_amount(self.ice_price())}, "
                f"target={fp.format_amount(self._target_price)}, "
                f"STM={fp.format_amount(self.stm_price())})")
