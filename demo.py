#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: The H2O Stabilization Engine Step by Step

This is a pedagogical walkthrough of how the controller keeps H2O steady.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation     - Fixed-point amounts, deployment, virtual pools
  4-6:  Feedback Loop  - Swaps, the error, the three responses
  7-8:  Rewards        - Melting ICE and condensing STM into H2O
  9-10: Guarantees     - All-or-nothing operations, damping

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from decimal import Decimal
import sys

from h2o import (
    Protocol, ControllerConfig,
    deploy_protocol,
    to_fixed, from_decimal, to_decimal, format_amount,
    InsufficientBalance, SwapEvent, ClaimRewardEvent,
    H2O, ICE, STM, SCALE, SECONDS_PER_DAY,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    # Initial balances (whole tokens)
    alice_h2o: int = 200_000
    alice_ice: int = 2_000
    alice_stm: int = 2_000
    bob_h2o: int = 50_000
    bob_ice: int = 500

    # Trading
    ice_purchase: Decimal = Decimal("20000")
    days_of_updates: int = 30


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_controller(protocol: Protocol):
    for key, value in protocol.controller.describe().items():
        print(f"  {key:<20} {value:,.6f}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_fixed_point():
    """Show how amounts are represented."""
    step_header(1, "Fixed-Point Amounts",
        "Every amount and price is an integer with 18 implied decimals.")

    print(">>> to_fixed(25)")
    print(f"    {to_fixed(25)}")
    print('>>> from_decimal("0.04")')
    print(f"    {from_decimal('0.04')}")
    print(">>> format_amount(to_fixed(1_234_567) // 3)")
    print(f"    {format_amount(to_fixed(1_234_567) // 3)}")

    section_header("Key Insight")
    print(f"""
    One token is {SCALE:,} units. Multiplication and division
    truncate toward zero, so every node computing the same sequence of
    operations arrives at exactly the same state.
    """)


def step_02_deploy() -> Protocol:
    """Deploy tokens, pools and controller."""
    step_header(2, "Deploying the Protocol",
        "Create H2O, ICE and STM, the controller and its two virtual pools.")

    print(">>> protocol = deploy_protocol(genesis={...})")
    protocol = deploy_protocol(genesis={
        "alice": {H2O: CONFIG.alice_h2o, ICE: CONFIG.alice_ice, STM: CONFIG.alice_stm},
        "bob": {H2O: CONFIG.bob_h2o, ICE: CONFIG.bob_ice},
    })

    section_header("Initial State")
    show_controller(protocol)

    section_header("Key Insight")
    print("""
    ICE is the measurement token: its price in the H2O/ICE pool is what the
    controller watches. STM is the control token: the controller reprices
    the H2O/STM pool to push back against deviations.
    """)
    return protocol


def step_03_virtual_pools(protocol: Protocol):
    """Explain mint/burn pools."""
    step_header(3, "Virtual Pools",
        "Pools price swaps with x*y=k but hold no reserves.")

    pool = protocol.controller.ice_pool
    amount = to_fixed(1_000)
    print(">>> controller.preview_h2o_for_ice(to_fixed(1_000))")
    print(f"    {format_amount(protocol.controller.preview_h2o_for_ice(amount))} ICE")
    print(f"\nPool: {pool!r}")

    section_header("Key Insight")
    print("""
    A swap BURNS the input token from the trader and MINTS the output
    token to them. The pool sizes only exist to set prices and slippage;
    a swap can never drain a side to zero.
    """)


# ============================================================================
# PHASE 2: FEEDBACK LOOP (Steps 4-6)
# ============================================================================

def step_04_buy_ice(protocol: Protocol):
    """Move the ICE price away from target."""
    step_header(4, "Pushing the ICE Price",
        "A large ICE purchase moves the measured price above target.")

    protocol.clock.advance(60)
    amount = from_decimal(CONFIG.ice_purchase)
    print(f">>> controller.swap_h2o_for_ice('alice', {format_amount(amount)} H2O)")
    protocol.controller.swap_h2o_for_ice("alice", amount)

    section_header("After the Swap")
    print(f"ICE price:    {format_amount(protocol.controller.ice_price())}")
    print(f"Target price: {format_amount(protocol.controller.target_price)}")
    print(f"Error:        {format_amount(protocol.controller.compute_error())}")
    print(f"Last event:   {protocol.events.last(SwapEvent)!r}")


def step_05_error_update(protocol: Protocol):
    """Run one error update after a day."""
    step_header(5, "The Error Update",
        "Once per timestamp, the controller integrates the error and responds.")

    print("""
    error = ICE price - target price

    1. STM price    drifts by error x 0.5 x (STM/ICE), over 1 day
    2. Condensation drifts toward base + accumulated error x factor, over 7 days
    3. Target price drifts toward the ICE price, over 30 days
    """)

    protocol.clock.advance(SECONDS_PER_DAY)
    print(">>> controller.update_error()")
    protocol.controller.update_error()
    print(">>> controller.update_error()   # same instant: no-op")
    print(f"    {protocol.controller.update_error()}")

    section_header("Controller State")
    show_controller(protocol)


def step_06_a_month_of_updates(protocol: Protocol):
    """Watch the target converge."""
    step_header(6, "A Month of Updates",
        "The target follows the ICE price while STM and condensation react.")

    controller = protocol.controller
    controller.verbose = False
    print(f"{'day':>4}  {'ICE':>10}  {'target':>10}  {'STM':>10}")
    for day in range(1, CONFIG.days_of_updates + 1):
        protocol.clock.advance(SECONDS_PER_DAY)
        controller.update_error()
        if day % 5 == 0:
            print(f"{day:>4}  {format_amount(controller.ice_price()):>10}  "
                  f"{format_amount(controller.target_price):>10}  "
                  f"{format_amount(controller.stm_price()):>10}")
    controller.verbose = True


# ============================================================================
# PHASE 3: REWARDS (Steps 7-8)
# ============================================================================

def step_07_rewards(protocol: Protocol):
    """Show accrued rewards."""
    step_header(7, "Holding Rewards",
        "ICE and STM holders earn token-seconds, paid in H2O.")

    for account in ("alice", "bob"):
        print(f"{account:<6} ICE reward: {format_amount(protocol.ice.claimable_reward(account))} token-s"
              f"   worth {format_amount(protocol.controller.claimable_h2o(account))} H2O")

    section_header("Key Insight")
    print("""
    Rewards accrue on the balance held BEFORE each mint, burn or transfer,
    so trading never changes what was already earned.
    ICE pays at the melt rate; STM pays at the condensation rate.
    """)


def step_08_claim(protocol: Protocol):
    """Claim rewards and watch the pools rescale."""
    step_header(8, "Claiming Rewards",
        "Claimed rewards mint H2O, and both pools grow with the H2O supply.")

    before = protocol.controller.ice_pool.state()
    print(">>> controller.claim_rewards('alice')")
    protocol.controller.claim_rewards("alice")
    after = protocol.controller.ice_pool.state()

    section_header("ICE Pool")
    print(f"Before: {format_amount(before.size_a)} H2O / {format_amount(before.size_b)} ICE")
    print(f"After:  {format_amount(after.size_a)} H2O / {format_amount(after.size_b)} ICE")
    print(f"Claims: {len(protocol.events.of_type(ClaimRewardEvent))} ClaimReward events")


# ============================================================================
# PHASE 4: GUARANTEES (Steps 9-10)
# ============================================================================

def step_09_atomicity(protocol: Protocol):
    """A failing swap leaves no trace."""
    step_header(9, "All or Nothing",
        "A rejected operation rolls back tokens, pools, tracker and events.")

    protocol.clock.advance(3_600)
    snapshot = protocol.controller.snapshot()
    print(">>> controller.swap_h2o_for_ice('bob', to_fixed(10**9))")
    try:
        protocol.controller.swap_h2o_for_ice("bob", to_fixed(10 ** 9))
    except InsufficientBalance:
        pass
    print(f"\nState unchanged: {protocol.controller.snapshot() == snapshot}")


def step_10_damping():
    """Compare hourly and daily updates."""
    step_header(10, "Damping",
        "Each response moves at most dt/period of the way, however often it runs.")

    config = ControllerConfig(target_ice_price=20)
    hourly = deploy_protocol(config=config, verbose=False)
    daily = deploy_protocol(config=config, verbose=False)
    for _ in range(24):
        hourly.clock.advance(3_600)
        hourly.controller.update_error()
    daily.clock.advance(SECONDS_PER_DAY)
    daily.controller.update_error()

    print(f"Target after 24 hourly updates: {to_decimal(hourly.controller.target_price):.6f}")
    print(f"Target after 1 daily update:    {to_decimal(daily.controller.target_price):.6f}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       H2O STABILIZATION ENGINE - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    step_01_fixed_point()
    wait_for_enter()

    protocol = step_02_deploy()
    wait_for_enter()

    step_03_virtual_pools(protocol)
    wait_for_enter()

    step_04_buy_ice(protocol)
    wait_for_enter()

    step_05_error_update(protocol)
    wait_for_enter()

    step_06_a_month_of_updates(protocol)
    wait_for_enter()

    step_07_rewards(protocol)
    wait_for_enter()

    step_08_claim(protocol)
    wait_for_enter()

    step_09_atomicity(protocol)
    wait_for_enter()

    step_10_damping()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See h2o/controller.py for the error response
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
