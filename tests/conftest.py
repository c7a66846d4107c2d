"""
conftest.py - Shared pytest fixtures for tokenledger tests

Provides common fixtures used across unit, functional and conformance tests:
- Ledgers (empty, single token, funded multi-token)
- Strict ledgers that fail the test if any imbalance was left to the backstop
- Snapshot and conservation helpers
"""

import pytest
from typing import Dict, Tuple

from tokenledger import Ledger, EventLog, GenesisConfig


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def snapshot(ledger: Ledger) -> Tuple[Dict, Dict]:
    """(balances, issuance) copy for before/after comparisons."""
    return ledger.storage.snapshot()


def assert_conserved(ledger: Ledger) -> None:
    """Fail with the discrepancy list if any token violates conservation."""
    report = ledger.verify_conservation()
    assert report.valid, f"Conservation violated: {report.discrepancies}"


def make_ledger(name: str = "test", **kwargs) -> Ledger:
    """Quiet ledger with a fresh EventLog."""
    kwargs.setdefault("verbose", False)
    kwargs.setdefault("event_sink", EventLog())
    return Ledger(name, **kwargs)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger: token 0 exists with zero issuance, no balances."""
    return make_ledger()


@pytest.fixture
def token_ledger():
    """Ledger with token 0 created for alice with a supply of 1,000."""
    ledger = make_ledger()
    token = ledger.create_token("alice", 1_000)
    assert token == 0
    ledger.events.clear()
    return ledger


@pytest.fixture
def funded_ledger():
    """
    Ledger with two tokens:
        token 0: alice 1,000, bob 500
        token 1: alice 50
    """
    ledger = make_ledger()
    t0 = ledger.create_token("alice", 1_000)
    t1 = ledger.create_token("alice", 50)
    ledger.mint("bob", t0, 500).settle()
    ledger.events.clear()
    assert (t0, t1) == (0, 1)
    return ledger


@pytest.fixture
def test_mode_ledger():
    """Ledger with set_balance()/set_issuance() enabled."""
    return make_ledger(test_mode=True)


@pytest.fixture
def genesis_ledger():
    """Ledger whose token counter starts at 100."""
    return make_ledger(genesis=GenesisConfig(initial_token=100))


# =============================================================================
# LEAK CHECK
# =============================================================================

@pytest.fixture
def strict_ledger(token_ledger):
    """
    token_ledger that must not rely on automatic reconciliation.

    After the test body has finished (and its locals are gone), fails if any
    imbalance was discharged by the backstop instead of being settled,
    merged or offset explicitly.
    """
    yield token_ledger
    assert token_ledger.imbalances.pending() == []
    assert token_ledger.imbalances.discharged == 0, \
        f"{token_ledger.imbalances.discharged} imbalance(s) reached the backstop"
    assert_conserved(token_ledger)
