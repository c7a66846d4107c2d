"""
test_dispatch.py - Unit tests for the call entry points

Tests:
- Origin construction and validation
- Signed / root requirements per call
- LedgerError becomes a REJECTED outcome
- No imbalance survives a dispatched call
"""

import pytest
from tokenledger import (
    Dispatcher, DispatchOutcome, ExecuteResult, Origin, OriginType,
    AccountNotFound, BadOrigin, NotSupported, OutOfFunds, InvalidInput,
    BALANCE_MAX, DEFAULT_ACCOUNT,
)
from tokenledger.dispatch import ensure_signed, ensure_root
from tests.conftest import snapshot, assert_conserved, make_ledger


@pytest.fixture
def dispatcher(funded_ledger):
    return Dispatcher(funded_ledger)


ALICE = Origin.signed("alice")
ROOT = Origin.root()


class TestOrigin:

    def test_signed(self):
        assert ALICE.origin_type == OriginType.SIGNED
        assert ensure_signed(ALICE) == "alice"

    def test_root_and_none_carry_no_signer(self):
        assert ROOT.signer is None
        assert Origin.none().signer is None
        with pytest.raises(ValueError):
            Origin(OriginType.ROOT, "alice")
        with pytest.raises(ValueError):
            Origin(OriginType.SIGNED)

    def test_ensure_signed_rejects_root(self):
        with pytest.raises(BadOrigin):
            ensure_signed(ROOT)

    def test_ensure_signed_rejects_default_account(self):
        with pytest.raises(AccountNotFound):
            ensure_signed(Origin.signed(DEFAULT_ACCOUNT))

    def test_ensure_root(self):
        ensure_root(ROOT)
        with pytest.raises(BadOrigin):
            ensure_root(ALICE)

    def test_repr(self):
        assert repr(ALICE) == "Origin(signed:alice)"
        assert repr(ROOT) == "Origin(root)"


class TestTransfers:

    def test_safe_transfer_from(self, dispatcher):
        outcome = dispatcher.safe_transfer_from(ALICE, "carol", 0, 100)
        assert isinstance(outcome, DispatchOutcome)
        assert outcome.ok
        assert outcome.result == ExecuteResult.APPLIED
        assert dispatcher.ledger.balance_of("carol", 0) == 100

    def test_calldata_accepted(self, dispatcher):
        assert dispatcher.safe_transfer_from(ALICE, "carol", 0, 1, b"\x01\x02").ok

    def test_insufficient_funds_rejected(self, dispatcher):
        before = snapshot(dispatcher.ledger)
        outcome = dispatcher.safe_transfer_from(ALICE, "carol", 0, 10_000)
        assert outcome.result == ExecuteResult.REJECTED
        assert isinstance(outcome.error, OutOfFunds)
        assert snapshot(dispatcher.ledger) == before

    def test_unsigned_rejected(self, dispatcher):
        outcome = dispatcher.safe_transfer_from(Origin.none(), "carol", 0, 1)
        assert isinstance(outcome.error, BadOrigin)

    def test_default_recipient_rejected(self, dispatcher):
        outcome = dispatcher.safe_transfer_from(ALICE, DEFAULT_ACCOUNT, 0, 1)
        assert isinstance(outcome.error, AccountNotFound)

    def test_batch_prefix_applied_on_rejection(self, dispatcher):
        outcome = dispatcher.safe_batch_transfer_from(ALICE, "carol", [(0, 10), (1, 999)])
        assert not outcome.ok
        assert dispatcher.ledger.balance_of("carol", 0) == 10
        assert_conserved(dispatcher.ledger)


class TestMintAndBurn:

    def test_mint_requires_root(self, dispatcher):
        outcome = dispatcher.mint(ALICE, "alice", 0, 5)
        assert isinstance(outcome.error, BadOrigin)
        assert dispatcher.ledger.total_issuance(0) == 1_500

    def test_mint_settles(self, dispatcher):
        assert dispatcher.mint(ROOT, "carol", 0, 5).ok
        assert dispatcher.ledger.total_issuance(0) == 1_505
        assert dispatcher.ledger.imbalances.pending() == []
        assert dispatcher.ledger.imbalances.discharged == 0

    def test_mint_batch(self, dispatcher):
        assert dispatcher.mint_batch(ROOT, "carol", [(0, 1), (1, 2)]).ok
        assert dispatcher.ledger.balance_of_batch([("carol", 0), ("carol", 1)]) == [1, 2]
        assert_conserved(dispatcher.ledger)

    def test_burn_own_funds(self, dispatcher):
        assert dispatcher.burn(Origin.signed("bob"), 0, 200).ok
        assert dispatcher.ledger.balance_of("bob", 0) == 300
        assert dispatcher.ledger.total_issuance(0) == 1_300

    def test_burn_rejected_for_root(self, dispatcher):
        assert isinstance(dispatcher.burn(ROOT, 0, 1).error, BadOrigin)

    def test_burn_batch(self, dispatcher):
        assert dispatcher.burn_batch(ALICE, [(0, 100), (1, 50)]).ok
        assert dispatcher.ledger.total_issuance(1) == 0
        assert_conserved(dispatcher.ledger)


class TestTokenAdministration:

    def test_create_token_returns_id(self, dispatcher):
        outcome = dispatcher.create_token(Origin.signed("carol"), 42)
        assert outcome.ok
        assert outcome.value == 2
        assert dispatcher.ledger.balance_of("carol", 2) == 42

    def test_create_token_requires_signed(self, dispatcher):
        assert isinstance(dispatcher.create_token(ROOT, 1).error, BadOrigin)
        assert dispatcher.ledger.last_token_id == 2

    def test_set_uri_root_only(self, dispatcher):
        assert not dispatcher.set_uri(ALICE, 0, "ipfs://x").ok
        assert dispatcher.set_uri(ROOT, 0, "ipfs://x").ok
        assert dispatcher.ledger.uri(0) == "ipfs://x"

    def test_approvals_rejected(self, dispatcher):
        outcome = dispatcher.set_approval_for_all(ALICE, "bob", True)
        assert isinstance(outcome.error, NotSupported)


class TestMalformedInput:
    """Validation failures are rejections, never exceptions."""

    @pytest.mark.parametrize("amount", [-1, BALANCE_MAX + 1, 1.5, "10", True])
    def test_bad_transfer_amount_rejected(self, dispatcher, amount):
        before = snapshot(dispatcher.ledger)
        outcome = dispatcher.safe_transfer_from(ALICE, "bob", 0, amount)
        assert outcome.result == ExecuteResult.REJECTED
        assert isinstance(outcome.error, InvalidInput)
        assert snapshot(dispatcher.ledger) == before

    def test_bad_token_id_rejected(self, dispatcher):
        outcome = dispatcher.mint(ROOT, "carol", -3, 5)
        assert isinstance(outcome.error, InvalidInput)

    def test_bad_supply_rejected(self, dispatcher):
        outcome = dispatcher.create_token(Origin.signed("carol"), -1)
        assert isinstance(outcome.error, InvalidInput)
        assert dispatcher.ledger.last_token_id == 2

    def test_bad_uri_rejected(self, dispatcher):
        assert isinstance(dispatcher.set_uri(ROOT, 0, 42).error, InvalidInput)

    def test_bad_item_stops_batch(self, dispatcher):
        outcome = dispatcher.burn_batch(ALICE, [(0, 10), (0, -1), (0, 10)])
        assert isinstance(outcome.error, InvalidInput)
        assert dispatcher.ledger.balance_of("alice", 0) == 990
        assert_conserved(dispatcher.ledger)


class TestOutput:

    def test_verbose_outcomes(self, capsys):
        ledger = make_ledger(verbose=True)
        dispatcher = Dispatcher(ledger)
        dispatcher.create_token(ALICE, 1)
        dispatcher.burn(ALICE, 0, 5)
        out = capsys.readouterr().out
        assert "✓ APPLIED: create_token" in out
        assert "✗ REJECTED: burn" in out

    def test_quiet_dispatcher(self, dispatcher, capsys):
        dispatcher.safe_transfer_from(ALICE, "carol", 0, 1)
        assert capsys.readouterr().out == ""
