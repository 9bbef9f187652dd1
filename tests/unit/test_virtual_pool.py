"""
Tests for virtual_pool.py - Constant-product exchange simulated by mint/burn

Tests:
- Prices and price setters
- preview_swap formula
- Swaps: mint/burn effects, size bookkeeping, failure modes
- Owner-only operations
- Re-entrancy guard
"""

import pytest
from decimal import Decimal

from h2o import (
    VirtualPool, PoolState,
    InsufficientBalance, PoolExhausted, ReentrantCall, Unauthorized,
    SCALE, to_fixed, from_decimal,
)


@pytest.fixture
def pool(h2o_token, ice_token):
    """H2O/ICE pool of 1,000,000 / 40,000 owned by "controller"."""
    pool = VirtualPool(h2o_token, ice_token, to_fixed(1_000_000), to_fixed(40_000), owner="controller")
    h2o_token.authorize(pool.address)
    ice_token.authorize(pool.address)
    return pool


class TestPrices:

    def test_initial_prices(self, pool):
        assert pool.price_of_a() == from_decimal("0.04")
        assert pool.price_of_b() == to_fixed(25)

    def test_set_price_of_a_resizes_side_b(self, pool):
        pool.set_price_of_a(from_decimal("0.05"), caller="controller")
        assert pool.size_a == to_fixed(1_000_000)
        assert pool.size_b == to_fixed(50_000)
        assert pool.price_of_a() == from_decimal("0.05")

    def test_set_price_of_b_resizes_side_a(self, pool):
        pool.set_price_of_b(to_fixed(30), caller="controller")
        assert pool.size_b == to_fixed(40_000)
        assert pool.size_a == to_fixed(1_200_000)
        assert pool.price_of_b() == to_fixed(30)

    def test_scale_keeps_prices(self, pool):
        pool.scale(from_decimal("1.5"), caller="controller")
        assert pool.size_a == to_fixed(1_500_000)
        assert pool.size_b == to_fixed(60_000)
        assert pool.price_of_b() == to_fixed(25)

    def test_owner_only(self, pool):
        with pytest.raises(Unauthorized):
            pool.set_price_of_a(SCALE, caller="mallory")
        with pytest.raises(Unauthorized):
            pool.set_price_of_b(SCALE, caller="mallory")
        with pytest.raises(Unauthorized):
            pool.scale(SCALE, caller="mallory")

    def test_price_that_empties_a_side_is_rejected(self, pool):
        with pytest.raises(ValueError):
            pool.set_price_of_b(0, caller="controller")
        with pytest.raises(ValueError):
            pool.scale(0, caller="controller")
        assert pool.state() == PoolState(to_fixed(1_000_000), to_fixed(40_000))

    def test_constructor_rejects_non_positive_sizes(self, h2o_token, ice_token):
        with pytest.raises(ValueError):
            VirtualPool(h2o_token, ice_token, 0, to_fixed(1), owner="controller")

    def test_constructor_rejects_same_token(self, h2o_token):
        with pytest.raises(ValueError):
            VirtualPool(h2o_token, h2o_token, to_fixed(1), to_fixed(1), owner="controller")


class TestPreviewSwap:

    def test_zero_in_gives_zero_out(self):
        assert VirtualPool.preview_swap(to_fixed(100), to_fixed(100), 0) == 0

    def test_formula(self):
        out = VirtualPool.preview_swap(to_fixed(1_000_000), to_fixed(40_000), to_fixed(10_000))
        assert out == to_fixed(40_000) * to_fixed(10_000) // to_fixed(1_010_000)
        assert abs(Decimal(out) / SCALE - Decimal("396.0396")) < Decimal("0.0001")

    def test_huge_input_stays_below_destination(self):
        out = VirtualPool.preview_swap(to_fixed(1), to_fixed(1_000), to_fixed(10 ** 30))
        assert out < to_fixed(1_000)


class TestSwap:

    def test_swap_a_for_b_end_to_end(self, pool, h2o_token, ice_token):
        h2o_token.mint("alice", to_fixed(10_000), caller="minter")
        expected = to_fixed(40_000) * to_fixed(10_000) // to_fixed(1_010_000)

        out = pool.swap_a_for_b(to_fixed(10_000), "alice")

        assert out == expected
        assert h2o_token.balance_of("alice") == 0
        assert ice_token.balance_of("alice") == expected
        assert pool.size_a == to_fixed(1_010_000)
        assert pool.size_b == to_fixed(40_000) - expected
        assert abs(Decimal(pool.size_b) / SCALE - Decimal("39603.96")) < Decimal("0.01")

    def test_swap_b_for_a(self, pool, h2o_token, ice_token):
        ice_token.mint("alice", to_fixed(100), caller="minter")
        expected = VirtualPool.preview_swap(to_fixed(40_000), to_fixed(1_000_000), to_fixed(100))

        out = pool.swap_b_for_a(to_fixed(100), "alice")

        assert out == expected
        assert ice_token.balance_of("alice") == 0
        assert h2o_token.balance_of("alice") == expected
        assert pool.size_b == to_fixed(40_100)
        assert pool.size_a == to_fixed(1_000_000) - expected

    def test_insufficient_balance(self, pool, h2o_token):
        h2o_token.mint("alice", to_fixed(5), caller="minter")
        with pytest.raises(InsufficientBalance):
            pool.swap_a_for_b(to_fixed(6), "alice")
        assert pool.state() == PoolState(to_fixed(1_000_000), to_fixed(40_000))
        assert h2o_token.balance_of("alice") == to_fixed(5)

    def test_non_positive_amount(self, pool):
        with pytest.raises(ValueError):
            pool.swap_a_for_b(0, "alice")

    def test_pool_exhausted(self, pool, h2o_token, monkeypatch):
        h2o_token.mint("alice", to_fixed(10), caller="minter")
        monkeypatch.setattr(
            VirtualPool, "preview_swap", staticmethod(lambda from_size, to_size, amount_in: to_size)
        )
        with pytest.raises(PoolExhausted):
            pool.swap_a_for_b(to_fixed(10), "alice")
        assert pool.state() == PoolState(to_fixed(1_000_000), to_fixed(40_000))
        assert h2o_token.balance_of("alice") == to_fixed(10)

    def test_pool_must_be_authorized_minter(self, h2o_token, ice_token):
        pool = VirtualPool(h2o_token, ice_token, to_fixed(100), to_fixed(100), owner="controller")
        h2o_token.mint("alice", to_fixed(1), caller="minter")
        with pytest.raises(Unauthorized):
            pool.swap_a_for_b(to_fixed(1), "alice")

    def test_reentrant_swap_rejected(self, pool, h2o_token, ice_token, monkeypatch):
        h2o_token.mint("alice", to_fixed(100), caller="minter")
        original_mint = ice_token.mint
        attempts = []

        def reentering_mint(account, amount, caller):
            attempts.append(account)
            pool.swap_a_for_b(to_fixed(1), account)

        monkeypatch.setattr(ice_token, "mint", reentering_mint)
        with pytest.raises(ReentrantCall):
            pool.swap_a_for_b(to_fixed(10), "alice")
        assert attempts == ["alice"]

        monkeypatch.setattr(ice_token, "mint", original_mint)
        # Guard is released after the failure
        pool.swap_a_for_b(to_fixed(1), "alice")
