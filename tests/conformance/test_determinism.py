"""
Determinism Conformance Tests

INVARIANT: Given identical inputs, the ledger produces identical outputs.

    ∀ inputs I:
        ledger1.process(I) = ledger2.process(I)

This guarantees:
- Replaying a call sequence produces identical state and events
- A clone evolves exactly like its original
- Automatic reconciliation happens at a deterministic point
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from tokenledger import Ledger, Dispatcher, Origin


ACCOUNTS = ["alice", "bob", "charlie"]


@st.composite
def call(draw):
    """A dispatched call as (method name, args)."""
    kind = draw(st.sampled_from(["transfer", "mint", "burn", "create"]))
    signer = draw(st.sampled_from(ACCOUNTS))
    token = draw(st.integers(min_value=0, max_value=3))
    amount = draw(st.integers(min_value=0, max_value=500))
    if kind == "transfer":
        return "safe_transfer_from", (Origin.signed(signer), draw(st.sampled_from(ACCOUNTS)), token, amount)
    if kind == "mint":
        return "mint", (Origin.root(), signer, token, amount)
    if kind == "burn":
        return "burn", (Origin.signed(signer), token, amount)
    return "create_token", (Origin.signed(signer), amount)


def run(ledger: Ledger, calls):
    dispatcher = Dispatcher(ledger)
    return [getattr(dispatcher, name)(*args).result for name, args in calls]


class TestDeterminismProperties:
    """Property-based determinism tests."""

    @given(st.lists(call(), max_size=30))
    @settings(max_examples=100)
    def test_identical_sequences_produce_identical_state(self, calls):
        """
        PROPERTY: Two ledgers processing the same calls reach the same state.
        """
        ledger1 = Ledger("test1", verbose=False)
        ledger2 = Ledger("test2", verbose=False)

        assert run(ledger1, calls) == run(ledger2, calls)
        assert ledger1.storage.snapshot() == ledger2.storage.snapshot()
        assert list(ledger1.events) == list(ledger2.events)
        assert ledger1.last_token_id == ledger2.last_token_id

    @given(st.lists(call(), max_size=15), st.lists(call(), max_size=15))
    @settings(max_examples=50)
    def test_clone_evolves_like_original(self, prefix, suffix):
        """
        PROPERTY: clone() captures the full state; applying the same calls
        to original and clone keeps them identical.
        """
        original = Ledger("test", verbose=False)
        run(original, prefix)
        cloned = original.clone()

        assert run(original, suffix) == run(cloned, suffix)
        assert original.storage.snapshot() == cloned.storage.snapshot()
        assert list(original.events) == list(cloned.events)

    @given(st.integers(min_value=0, max_value=1_000), st.integers(min_value=0, max_value=1_000))
    @settings(max_examples=50)
    def test_dropped_imbalance_reconciles_immediately(self, minted, burned):
        """
        PROPERTY: A dropped imbalance has touched issuance by the time the
        next statement runs.
        """
        ledger = Ledger("test", verbose=False)
        ledger.mint("alice", 0, minted)
        assert ledger.total_issuance(0) == minted
        if burned <= minted:
            ledger.burn("alice", 0, burned)
            assert ledger.total_issuance(0) == minted - burned
