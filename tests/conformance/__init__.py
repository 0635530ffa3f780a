"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Token supplies and claim backing
2. atomicity.py - All-or-nothing operations
3. determinism.py - Reproducible behavior
4. collateral.py - Collateralization bounds on borrow and liquidation

These tests use hypothesis for property-based testing.
"""
