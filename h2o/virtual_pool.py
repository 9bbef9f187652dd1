"""
virtual_pool.py - Constant-product exchange simulated by mint and burn

A VirtualPool prices token A against token B with the constant-product
formula but holds no reserves: a swap burns the input token from the
requester and mints the output token to them. The two sizes only exist to
define prices and slippage.

Invariants:
    - size_a > 0 and size_b > 0 at all times
    - price_of_a == size_b / size_a, price_of_b == size_a / size_b
    - a swap never brings the destination size to zero or below

Prices, sizes and amounts are fixed-point ints (see fixed_point.py).
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from .core import (
    DivisionByZero, InsufficientBalance, PoolExhausted, ReentrantCall, Unauthorized,
)
from .token import Token
from . import fixed_point as fp


@dataclass(frozen=True, slots=True)
class PoolState:
    """Sizes of both sides of a virtual pool."""
    size_a: int
    size_b: int


class VirtualPool:
    """
    Two-sided simulated exchange between token_a and token_b.

    Only `owner` may reprice or rescale the pool. Swaps are open to anyone
    holding the input token; the pool itself must be an authorized minter of
    both tokens (its identity is `address`).

    Example:
        pool = VirtualPool(h2o, ice, to_fixed(1_000_000), to_fixed(40_000), owner="controller")
        pool.price_of_b()                       # 25 H2O per ICE
        pool.swap_a_for_b(to_fixed(10_000), "alice")
    """

    def __init__(
        self,
        token_a: Token,
        token_b: Token,
        size_a: int,
        size_b: int,
        owner: str,
        address: Optional[str] = None,
    ):
        if token_a is token_b:
            raise ValueError("A virtual pool needs two different tokens")
        if size_a <= 0 or size_b <= 0:
            raise ValueError(f"Pool sizes must be positive, got {size_a} / {size_b}")
        self.token_a = token_a
        self.token_b = token_b
        self.owner = owner
        self.address = address or f"pool:{token_a.symbol}/{token_b.symbol}"
        self._size_a = size_a
        self._size_b = size_b
        self._swapping = False

    # ========================================================================
    # READS
    # ========================================================================

    @property
    def size_a(self) -> int:
        return self._size_a

    @property
    def size_b(self) -> int:
        return self._size_b

    def price_of_a(self) -> int:
        """Units of B one A is worth."""
        return fp.udiv(self._size_b, self._size_a)

    def price_of_b(self) -> int:
        """Units of A one B is worth."""
        return fp.udiv(self._size_a, self._size_b)

    @staticmethod
    def preview_swap(from_size: int, to_size: int, amount_in: int) -> int:
        """
        Constant-product output: to_size * amount_in / (from_size + amount_in).

        Strictly below to_size for any finite amount_in when from_size > 0.
        """
        denominator = fp.uadd(from_size, amount_in)
        if denominator == 0:
            raise DivisionByZero("preview_swap on an empty pool")
        return to_size * amount_in // denominator

    def preview_a_for_b(self, amount_in: int) -> int:
        return self.preview_swap(self._size_a, self._size_b, amount_in)

    def preview_b_for_a(self, amount_in: int) -> int:
        return self.preview_swap(self._size_b, self._size_a, amount_in)

    # ========================================================================
    # OWNER OPERATIONS
    # ========================================================================

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized(f"{caller} does not own {self.address}")

    def set_price_of_a(self, price: int, caller: str) -> None:
        """Resize side B so that price_of_a() == price, keeping side A."""
        self._require_owner(caller)
        new_size_b = fp.umul(price, self._size_a)
        if new_size_b <= 0:
            raise ValueError(f"Price {price} would empty side B of {self.address}")
        self._size_b = new_size_b

    def set_price_of_b(self, price: int, caller: str) -> None:
        """Resize side A so that price_of_b() == price, keeping side B."""
        self._require_owner(caller)
        new_size_a = fp.umul(price, self._size_b)
        if new_size_a <= 0:
            raise ValueError(f"Price {price} would empty side A of {self.address}")
        self._size_a = new_size_a

    def scale(self, factor: int, caller: str) -> None:
        """Multiply both sides by `factor`; prices are unchanged."""
        self._require_owner(caller)
        new_size_a = fp.umul(self._size_a, factor)
        new_size_b = fp.umul(self._size_b, factor)
        if new_size_a <= 0 or new_size_b <= 0:
            raise ValueError(f"Scale factor {factor} would empty {self.address}")
        self._size_a = new_size_a
        self._size_b = new_size_b

    # ========================================================================
    # SWAPS
    # ========================================================================

    @contextmanager
    def _guard(self) -> Iterator[None]:
        if self._swapping:
            raise ReentrantCall(f"swap already in progress on {self.address}")
        self._swapping = True
        try:
            yield
        finally:
            self._swapping = False

    def swap_a_for_b(self, amount_in: int, requester: str) -> int:
        """Burn `amount_in` A from requester, mint B to them. Returns the B amount."""
        with self._guard():
            amount_out = self._execute_swap(
                self.token_a, self.token_b, self._size_a, self._size_b, amount_in, requester
            )
            self._size_a = fp.uadd(self._size_a, amount_in)
            self._size_b = fp.usub(self._size_b, amount_out)
        return amount_out

    def swap_b_for_a(self, amount_in: int, requester: str) -> int:
        """Burn `amount_in` B from requester, mint A to them. Returns the A amount."""
        with self._guard():
            amount_out = self._execute_swap(
                self.token_b, self.token_a, self._size_b, self._size_a, amount_in, requester
            )
            self._size_b = fp.uadd(self._size_b, amount_in)
            self._size_a = fp.usub(self._size_a, amount_out)
        return amount_out

    def _execute_swap(
        self,
        token_from: Token,
        token_to: Token,
        from_size: int,
        to_size: int,
        amount_in: int,
        requester: str,
    ) -> int:
        """
        Validate, price and settle a swap; pool sizes are updated by the caller.

        Raises:
            ValueError: If amount_in is not positive
            InsufficientBalance: If requester holds less than amount_in
            PoolExhausted: If the output would not be strictly below to_size
        """
        if isinstance(amount_in, bool) or not isinstance(amount_in, int):
            raise TypeError(f"amount_in must be a fixed-point int, got {type(amount_in).__name__}")
        if amount_in <= 0:
            raise ValueError(f"Swap amount must be positive, got {amount_in}")

        balance = token_from.balance_of(requester)
        if balance < amount_in:
            raise InsufficientBalance(
                f"{requester} holds {fp.format_amount(balance)} {token_from.symbol}, "
                f"cannot swap {fp.format_amount(amount_in)}"
            )

        amount_out = self.preview_swap(from_size, to_size, amount_in)
        if amount_out >= to_size:
            raise PoolExhausted(
                f"Swap of {fp.format_amount(amount_in)} {token_from.symbol} would drain "
                f"{token_to.symbol} side of {self.address}"
            )

        token_from.burn(requester, amount_in, caller=self.address)
        token_to.mint(requester, amount_out, caller=self.address)
        return amount_out

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    def state(self) -> PoolState:
        return PoolState(self._size_a, self._size_b)

    def restore(self, state: PoolState) -> None:
        if state.size_a <= 0 or state.size_b <= 0:
            raise ValueError("Pool sizes must be positive")
        self._size_a = state.size_a
        self._size_b = state.size_b

    def __repr__(self) -> str:
        return (f"VirtualPool({self.address}: {fp.format_amount(self._size_a)} "
                f"{self.token_a.symbol} / {fp.format_amount(self._size_b)} {self.token_b.symbol})")
