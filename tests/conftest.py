"""
conftest.py - Shared pytest fixtures for H2O tests

Provides common fixtures used across unit, conformance and functional tests:
- A bare clock/event log/token set
- A deployed protocol with funded accounts
- A recording ErrorResponder for tracker tests
"""

import pytest

from h2o import (
    Clock, EventLog, Token, RewardToken,
    deploy_protocol,
    H2O, ICE, STM,
)
from tests.fake_responder import RecordingResponder


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    """Clock starting at t=1000."""
    return Clock(1000)


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def h2o_token(clock, events):
    token = Token(H2O, "H2O stable token", clock, events)
    token.authorize("minter")
    return token


@pytest.fixture
def ice_token(clock, events):
    token = RewardToken(ICE, "ICE measurement token", clock, events)
    token.authorize("minter")
    return token


@pytest.fixture
def stm_token(clock, events):
    token = RewardToken(STM, "Steam control token", clock, events)
    token.authorize("minter")
    return token


@pytest.fixture
def responder():
    return RecordingResponder()


# =============================================================================
# PROTOCOL FIXTURES
# =============================================================================

@pytest.fixture
def protocol():
    """Freshly deployed protocol with default configuration, at t=0."""
    return deploy_protocol(verbose=False)


@pytest.fixture
def funded_protocol():
    """
    Deployed protocol with two funded traders.

    alice: 100,000 H2O, 1,000 ICE, 1,000 STM
    bob:    50,000 H2O,   500 ICE,   500 STM
    """
    return deploy_protocol(
        genesis={
            "alice": {H2O: 100_000, ICE: 1_000, STM: 1_000},
            "bob": {H2O: 50_000, ICE: 500, STM: 500},
        },
        verbose=False,
    )
