"""
config.py - Controller parameter sheet

ControllerConfig holds every constant the controller is deployed with:
initial pool sizes, the initial target price, reward rates, response
factors and the damping periods. It is immutable; values are given in human
units (Decimal) and converted to fixed-point by the controller.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Dict

from .core import SECONDS_PER_DAY, SECONDS_PER_YEAR
from . import fixed_point as fp


_DECIMAL_FIELDS = (
    'ice_pool_h2o_size', 'ice_pool_ice_size',
    'stm_pool_h2o_size', 'stm_pool_stm_size',
    'target_ice_price', 'melt_rate', 'base_condensation_rate',
    'condensation_factor', 'stm_price_factor',
)

_PERIOD_FIELDS = ('stm_price_period', 'condensation_period', 'target_price_period')

# 10% of a token per token per year, expressed per second.
_TEN_PERCENT_PER_YEAR = Decimal("0.1") / SECONDS_PER_YEAR


@dataclass(frozen=True, slots=True)
class ControllerConfig:
    """
    Immutable deployment parameters of a Controller.

    Attributes:
        ice_pool_h2o_size: Initial H2O side of the H2O/ICE pool
        ice_pool_ice_size: Initial ICE side of the H2O/ICE pool
        stm_pool_h2o_size: Initial H2O side of the H2O/STM pool
        stm_pool_stm_size: Initial STM side of the H2O/STM pool
        target_ice_price: Initial target price of ICE in H2O
        melt_rate: H2O paid per ICE per second held
        base_condensation_rate: Condensation rate when accumulated error is zero
        condensation_factor: Condensation rate change per unit of accumulated error
        stm_price_factor: Weight of the price error in the STM price drift
        stm_price_period: Seconds over which a full STM price change applies
        condensation_period: Seconds over which a full condensation rate change applies
        target_price_period: Seconds over which a full target price change applies
    """
    ice_pool_h2o_size: Decimal = Decimal("1000000")
    ice_pool_ice_size: Decimal = Decimal("40000")
    stm_pool_h2o_size: Decimal = Decimal("1000000")
    stm_pool_stm_size: Decimal = Decimal("100000")
    target_ice_price: Decimal = Decimal("25")
    melt_rate: Decimal = _TEN_PERCENT_PER_YEAR
    base_condensation_rate: Decimal = _TEN_PERCENT_PER_YEAR
    condensation_factor: Decimal = Decimal("0.00000000000001")
    stm_price_factor: Decimal = Decimal("0.5")
    stm_price_period: int = SECONDS_PER_DAY
    condensation_period: int = 7 * SECONDS_PER_DAY
    target_price_period: int = 30 * SECONDS_PER_DAY

    def __post_init__(self):
        """Convert numeric inputs to Decimal and validate ranges."""
        for name in _DECIMAL_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                if isinstance(value, bool):
                    raise ValueError(f"{name} must be numeric, got {value!r}")
                object.__setattr__(self, name, Decimal(str(value)))

        for name in ('ice_pool_h2o_size', 'ice_pool_ice_size',
                     'stm_pool_h2o_size', 'stm_pool_stm_size', 'target_ice_price'):
            if fp.from_decimal(getattr(self, name)) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

        for name in ('melt_rate', 'base_condensation_rate', 'condensation_factor',
                     'stm_price_factor'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative, got {getattr(self, name)}")

        for name in _PERIOD_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive number of seconds, got {value!r}")

    def fixed(self, name: str) -> int:
        """Return a Decimal parameter in fixed-point."""
        if name not in _DECIMAL_FIELDS:
            raise KeyError(f"{name} is not a numeric parameter")
        return fp.from_decimal(getattr(self, name))

    def to_dict(self) -> Dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
