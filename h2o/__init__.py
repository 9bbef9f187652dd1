"""
h2o - Stabilization engine of the H2O / ICE / STM protocol

A PI controller keeps the stable token H2O steady: it measures the price of
the measurement token ICE against a target, and reacts by repricing the
control token STM, adjusting the STM reward (condensation) rate and letting
the target drift toward the observed price. Prices come from two virtual
constant-product pools that mint and burn instead of holding reserves.

Usage:
    from h2o import deploy_protocol, to_fixed

    protocol = deploy_protocol(genesis={"alice": {"H2O": 10_000, "ICE": 100}}, verbose=False)

    protocol.clock.advance(60)
    ice_out = protocol.controller.swap_h2o_for_ice("alice", to_fixed(1_000))

    protocol.clock.advance(3600)
    h2o_reward = protocol.controller.claim_rewards("alice")
"""

# Core types
from .core import (
    DECIMALS,
    SCALE,
    ZERO_ADDRESS,
    H2O,
    ICE,
    STM,
    SECONDS_PER_DAY,
    SECONDS_PER_YEAR,
    ProtocolError,
    FixedPointError,
    DivisionByZero,
    FixedPointOverflow,
    FixedPointUnderflow,
    InsufficientBalance,
    PoolExhausted,
    InvalidClaimRequest,
    ReentrantCall,
    Unauthorized,
    RewardEvent,
    ClaimRewardEvent,
    SwapEvent,
    EventLog,
    atomic,
)

# Fixed-point arithmetic
from .fixed_point import (
    to_fixed,
    to_int,
    from_decimal,
    to_decimal,
    format_amount,
)

# Components
from .clock import Clock
from .rewards import RewardEntry, RewardLedger
from .token import Token, RewardToken, TokenSnapshot
from .virtual_pool import VirtualPool, PoolState
from .error_tracker import ErrorTracker, ErrorResponder, ErrorTrackerState
from .config import ControllerConfig
from .controller import Controller, ControllerState, ProtocolSnapshot, MIN_PRICE
from .protocol import Protocol, deploy_protocol, GENESIS_ISSUER

__all__ = [
    # Core
    'DECIMALS', 'SCALE', 'ZERO_ADDRESS', 'H2O', 'ICE', 'STM',
    'SECONDS_PER_DAY', 'SECONDS_PER_YEAR',
    'ProtocolError', 'FixedPointError', 'DivisionByZero', 'FixedPointOverflow',
    'FixedPointUnderflow', 'InsufficientBalance', 'PoolExhausted',
    'InvalidClaimRequest', 'ReentrantCall', 'Unauthorized',
    'RewardEvent', 'ClaimRewardEvent', 'SwapEvent', 'EventLog', 'atomic',
    # Fixed-point
    'to_fixed', 'to_int', 'from_decimal', 'to_decimal', 'format_amount',
    # Components
    'Clock', 'RewardEntry', 'RewardLedger',
    'Token', 'RewardToken', 'TokenSnapshot',
    'VirtualPool', 'PoolState',
    'ErrorTracker', 'ErrorResponder', 'ErrorTrackerState',
    'ControllerConfig', 'Controller', 'ControllerState', 'ProtocolSnapshot', 'MIN_PRICE',
    # Deployment
    'Protocol', 'deploy_protocol', 'GENESIS_ISSUER',
]

__version__ = '0.1.0'
