"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the H2O stabilization engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. pool_invariants.py - Virtual pool prices, outputs and sizes
2. reward_accrual.py - Reward is balance x time
3. atomicity.py - All-or-nothing controller operations
4. conservation.py - Swaps neither create nor destroy tokens

These tests use hypothesis for property-based testing.
"""
