"""
protocol.py - Deploy a complete H2O protocol instance

deploy_protocol() creates the shared clock and event log, the three tokens
and the controller, then grants the controller and its pools the mint/burn
rights they need. An optional genesis distribution is minted before the
controller is created, so the controller's H2O supply baseline includes it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .clock import Clock
from .config import ControllerConfig
from .controller import Controller
from .core import H2O, ICE, STM, EventLog
from .token import Token, RewardToken
from . import fixed_point as fp


# Identity that mints the genesis distribution; its rights are revoked afterwards.
GENESIS_ISSUER = "genesis"

# account -> {symbol -> whole-token amount}
Genesis = Mapping[str, Mapping[str, int]]


@dataclass
class Protocol:
    """Handles to every deployed component."""
    clock: Clock
    events: EventLog
    h2o: Token
    ice: RewardToken
    stm: RewardToken
    controller: Controller

    def balances(self, account: str) -> Dict[str, int]:
        return {
            H2O: self.h2o.balance_of(account),
            ICE: self.ice.balance_of(account),
            STM: self.stm.balance_of(account),
        }


def _mint_genesis(tokens: Dict[str, Token], genesis: Genesis) -> None:
    for token in tokens.values():
        token.authorize(GENESIS_ISSUER)
    try:
        for account, amounts in genesis.items():
            for symbol, amount in amounts.items():
                if symbol not in tokens:
                    raise ValueError(f"Unknown token {symbol!r} in genesis for {account}")
                if amount:
                    tokens[symbol].mint(account, fp.to_fixed(amount), caller=GENESIS_ISSUER)
    finally:
        for token in tokens.values():
            token.revoke(GENESIS_ISSUER)


def deploy_protocol(
    config: Optional[ControllerConfig] = None,
    start_time: int = 0,
    genesis: Optional[Genesis] = None,
    verbose: bool = True,
    controller_address: str = "controller",
) -> Protocol:
    """
    Deploy tokens and controller, and wire the token roles.

    Args:
        config: Controller parameters (default: ControllerConfig())
        start_time: Initial clock time in seconds
        genesis: Initial balances, e.g. {"alice": {"H2O": 1000, "ICE": 10}}
        verbose: Passed to the controller
        controller_address: Identity of the controller

    Returns:
        Protocol with all components

    Example:
        protocol = deploy_protocol(genesis={"alice": {"H2O": 10_000, "ICE": 100}})
        protocol.controller.swap_h2o_for_ice("alice", to_fixed(500))
    """
    clock = Clock(start_time)
    events = EventLog()
    h2o = Token(H2O, "H2O stable token", clock, events)
    ice = RewardToken(ICE, "ICE measurement token", clock, events)
    stm = RewardToken(STM, "Steam control token", clock, events)

    if genesis:
        _mint_genesis({H2O: h2o, ICE: ice, STM: stm}, genesis)

    controller = Controller(
        h2o, ice, stm, clock,
        config=config,
        address=controller_address,
        events=events,
        verbose=verbose,
    )
    controller.init_token_roles()

    if verbose:
        print(f"📝 Deployed: {controller!r}")
        print(f"   {controller.ice_pool!r}")
        print(f"   {controller.stm_pool!r}")
    return Protocol(clock=clock, events=events, h2o=h2o, ice=ice, stm=stm, controller=controller)
