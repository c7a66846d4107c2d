"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the tokenledger system.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Issuance equals the sum of balances
2. atomicity.py - Failed operations leave no trace; batches keep their prefix
3. imbalance_algebra.py - split/merge identity and offset correctness
4. determinism.py - Reproducible behavior

These tests use hypothesis for property-based testing.
"""
