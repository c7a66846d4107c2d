"""
ledger.py - Stateful multi-token accounting ledger

The Ledger class is the token accounting engine. Together with the currency
views it hands out, it is the only code that mutates balances, and it changes
issuance exclusively through imbalances.

Key responsibilities:
    - Implements the LedgerView protocol for read-only access by pure functions
    - transfer / mint / burn with check-before-write atomicity
    - Batch variants with best-effort prefix semantics
    - Token creation from a monotonic id counter seeded at genesis
    - Emits a TransferSingle notification for every non-trivial balance change
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Tuple

from .core import (
    # Types
    AccountId, TokenId, Balance, Positions,
    TransferSingle, EventSink, EventLog, GenesisConfig, ConservationReport,
    # Constants
    ZERO,
    # Exceptions
    LedgerError, OutOfFunds, NotSupported, InvalidInput,
    # Helpers
    ensure_account, ensure_balance, ensure_token_id,
    saturating_add, checked_sub, check_conservation,
)
from .storage import LedgerStorage
from .imbalance import Reconciler, ImbalanceScope, PositiveImbalance, NegativeImbalance
from .currency import CurrencyView


class Ledger:
    """
    Multi-token ledger that keeps issuance equal to the sum of balances.

    Implements the LedgerView protocol, so it can be passed to pure functions
    such as check_conservation().

    Design Principles:
        - Checks before writes: every atomic unit validates completely before
          its first storage write. A failed operation leaves no trace.
        - Issuance follows imbalances: mint and burn change balances and hand
          back an imbalance; issuance moves when that imbalance is settled,
          offset into another, or discharged by the backstop.

    Thread Safety:
        Not thread-safe. Operations run one at a time to completion.

    Example:
        ledger = Ledger("main")
        token = ledger.create_token("alice", 1_000)
        ledger.transfer("alice", "bob", token, 250)

        ledger.mint("carol", token, 50).settle()
        assert ledger.total_issuance(token) == 1_050
    """

    def __init__(
        self,
        name: str,
        genesis: Optional[GenesisConfig] = None,
        verbose: bool = True,
        test_mode: bool = False,
        event_sink: Optional[EventSink] = None,
    ):
        """
        Create a ledger and run genesis.

        Args:
            name: Ledger identifier
            genesis: Initialization input (default: initial_token=0)
            verbose: Enable console output (default: True)
            test_mode: Allow set_balance()/set_issuance() backdoors (default: False)
            event_sink: Receiver of TransferSingle notifications (default: a new EventLog)
        """
        self.name = name
        self.genesis = genesis if genesis is not None else GenesisConfig()
        self.verbose = verbose
        self._test_mode = test_mode
        self.storage = LedgerStorage()
        self.imbalances = Reconciler(self.storage)
        self.events: EventSink = event_sink if event_sink is not None else EventLog()
        self._currencies: Dict[TokenId, CurrencyView] = {}

        self.storage.seed_token_counter(self.genesis.initial_token)
        self.storage.set_issuance(self.genesis.initial_token, ZERO)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def balance_of(self, account: AccountId, token: TokenId) -> Balance:
        """Balance of account in token (0 if there is no entry)."""
        return self.storage.get_balance(account, token)

    def total_issuance(self, token: TokenId) -> Balance:
        """Recorded issuance of token (0 if there is no entry)."""
        return self.storage.get_issuance(token)

    def get_positions(self, token: TokenId) -> Positions:
        """Every balance entry recorded for token."""
        return self.storage.get_positions(token)

    def list_tokens(self) -> List[TokenId]:
        return self.storage.list_tokens()

    def balance_of_batch(self, pairs: Iterable[Tuple[AccountId, TokenId]]) -> List[Balance]:
        """Balances for (account, token) pairs, in input order."""
        return [self.balance_of(account, token) for account, token in pairs]

    def total_supply(self, token: TokenId) -> Balance:
        """
        Sum of all balances in token.

        Accounts are sorted before summation for a deterministic order.
        Equals total_issuance(token) whenever no operation is in flight.
        """
        positions = self.storage.get_positions(token)
        return sum(positions[a] for a in sorted(positions))

    def verify_conservation(self, tokens: Optional[Iterable[TokenId]] = None) -> ConservationReport:
        """
        Verify issuance equals the sum of balances for every token.

        Example:
            report = ledger.verify_conservation()
            assert report.valid, f"Conservation violated: {report.discrepancies}"
        """
        return check_conservation(self, tokens)

    @property
    def last_token_id(self) -> TokenId:
        """The id the next create_token() call will allocate."""
        return self.storage.last_token_id

    def uri(self, token: TokenId) -> str:
        """Metadata URI of a token ("" if unset)."""
        return self.storage.get_uri(token)

    # ========================================================================
    # IMBALANCES
    # ========================================================================

    def scope(self) -> ImbalanceScope:
        """
        Open a scope that discharges any imbalance still live at its end.

        Example:
            with ledger.scope():
                ledger.mint("alice", token, 10)   # dropped: reconciled anyway
        """
        return self.imbalances.scope()

    def currency(self, token: TokenId) -> CurrencyView:
        """The currency view bound to token (one instance per token)."""
        ensure_token_id(token)
        if token not in self._currencies:
            self._currencies[token] = CurrencyView(self, token)
        return self._currencies[token]

    # ========================================================================
    # TOKEN ACCOUNTING (Mutating)
    # ========================================================================

    def transfer(self, source: AccountId, dest: AccountId, token: TokenId, amount: Balance) -> None:
        """
        Move amount of token from source to dest.

        Zero amounts and self-transfers succeed without writing anything or
        emitting a notification. Total issuance is unaffected.

        Raises:
            AccountNotFound: dest is the default account
            OutOfFunds: source holds less than amount (nothing is written)
        """
        ensure_account(dest)
        ensure_balance(amount)
        ensure_token_id(token)
        if amount == ZERO or source == dest:
            return

        current = self.balance_of(source, token)
        remaining = checked_sub(current, amount)
        if remaining is None:
            raise OutOfFunds(f"{source} holds {current} of token {token}, needs {amount}")
        self.storage.set_balance(source, token, remaining)
        self.storage.set_balance(dest, token, saturating_add(self.balance_of(dest, token), amount))
        self._emit(source, dest, token, amount)

    def mint(self, account: AccountId, token: TokenId, amount: Balance) -> PositiveImbalance:
        """
        Credit account with newly created funds.

        Issuance is not touched here: it grows when the returned imbalance is
        settled (or otherwise discharged). Settle it right away unless it is
        being netted against a deficit.

        Raises:
            AccountNotFound: account is the default account
        """
        ensure_account(account)
        ensure_balance(amount)
        ensure_token_id(token)
        credited = self._credit(account, token, amount)
        if credited:
            self._emit(None, account, token, credited)
        return self.imbalances.positive(credited, token)

    def burn(self, account: AccountId, token: TokenId, amount: Balance) -> NegativeImbalance:
        """
        Destroy amount of account's funds.

        Issuance shrinks when the returned imbalance is settled.

        Raises:
            OutOfFunds: account holds less than amount (nothing is written)
        """
        ensure_balance(amount)
        ensure_token_id(token)
        self._debit(account, token, amount)
        if amount:
            self._emit(account, None, token, amount)
        return self.imbalances.negative(amount, token)

    def transfer_batch(
        self,
        source: AccountId,
        dest: AccountId,
        id_amounts: Iterable[Tuple[TokenId, Balance]]
    ) -> None:
        """
        transfer() once per (token, amount) pair, in order.

        Stops at the first failure and re-raises it. Pairs before the failing
        one stay applied; there is no rollback of the prefix.
        """
        for token, amount in id_amounts:
            self.transfer(source, dest, token, amount)

    def mint_batch(self, account: AccountId, id_amounts: Iterable[Tuple[TokenId, Balance]]) -> None:
        """
        mint() once per (token, amount) pair, settling each imbalance.

        Best-effort prefix: stops at the first failure, earlier mints remain.
        """
        for token, amount in id_amounts:
            self.mint(account, token, amount).settle()

    def burn_batch(self, account: AccountId, id_amounts: Iterable[Tuple[TokenId, Balance]]) -> None:
        """
        burn() once per (token, amount) pair, settling each imbalance.

        Best-effort prefix: stops at the first failure, earlier burns remain.
        """
        for token, amount in id_amounts:
            self.burn(account, token, amount).settle()

    def create_token(self, account: AccountId, initial_supply: Balance = ZERO) -> TokenId:
        """
        Allocate a new token id and credit its initial supply to account.

        The supply is minted and settled like any other mint, so entries that
        already exist under the allocated id (the genesis token, or an id
        minted into before the counter reached it) are added to, never
        overwritten.

        Returns:
            The allocated token id

        Raises:
            AccountNotFound: account is the default account
        """
        ensure_account(account)
        ensure_balance(initial_supply, "initial_supply")
        token = self.storage.next_token_id()
        if not self.storage.has_issuance(token):
            # Same zero entry genesis records for its token.
            self.storage.set_issuance(token, ZERO)
        self.mint(account, token, initial_supply).settle()
        if self.verbose:
            print(f"📝 Created: token {token} ({initial_supply} to {account})")
        return token

    def set_uri(self, token: TokenId, uri: str) -> None:
        ensure_token_id(token)
        if not isinstance(uri, str):
            raise InvalidInput(f"uri must be str, got {type(uri).__name__}")
        self.storage.set_uri(token, uri)

    # ========================================================================
    # APPROVALS (not supported)
    # ========================================================================

    def set_approval_for_all(self, owner: AccountId, operator: AccountId, approved: bool) -> None:
        """Operator approvals are not implemented."""
        raise NotSupported("set_approval_for_all is not supported")

    def is_approved_for_all(self, owner: AccountId, operator: AccountId) -> bool:
        """Operator approvals are not implemented."""
        raise NotSupported("is_approved_for_all is not supported")

    # ========================================================================
    # TEST BACKDOORS
    # ========================================================================

    def set_balance(self, account: AccountId, token: TokenId, value: Balance) -> None:
        """
        Write a balance directly, bypassing issuance.

        WARNING: breaks conservation unless paired with set_issuance(). Only
        available in test mode.

        Raises:
            LedgerError: If called when test_mode is False
        """
        self._require_test_mode("set_balance")
        self.storage.set_balance(account, token, ensure_balance(value))

    def set_issuance(self, token: TokenId, value: Balance) -> None:
        """Write issuance directly. Only available in test mode."""
        self._require_test_mode("set_issuance")
        self.storage.set_issuance(token, ensure_balance(value))

    def _require_test_mode(self, method: str) -> None:
        if not self._test_mode:
            raise LedgerError(
                f"{method}() is disabled in production mode. "
                "Use mint/burn/transfer to modify balances. "
                "Set test_mode=True when creating Ledger for testing."
            )

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _credit(self, account: AccountId, token: TokenId, amount: Balance) -> Balance:
        """Saturating credit. Returns the amount actually added."""
        if amount == ZERO:
            return ZERO
        current = self.balance_of(account, token)
        updated = saturating_add(current, amount)
        self.storage.set_balance(account, token, updated)
        return updated - current

    def _debit(self, account: AccountId, token: TokenId, amount: Balance) -> None:
        """Checked debit. Raises OutOfFunds before writing anything."""
        if amount == ZERO:
            return
        current = self.balance_of(account, token)
        remaining = checked_sub(current, amount)
        if remaining is None:
            raise OutOfFunds(f"{account} holds {current} of token {token}, needs {amount}")
        self.storage.set_balance(account, token, remaining)

    def _emit(
        self,
        source: Optional[AccountId],
        dest: Optional[AccountId],
        token: TokenId,
        amount: Balance
    ) -> None:
        self.events.deposit_event(TransferSingle(source, dest, token, amount))

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create a deep copy of this ledger.

        Storage and the event log are copied; the clone gets its own
        reconciler, so imbalances live on the original stay bound to it.
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned.genesis = self.genesis
        cloned.verbose = self.verbose
        cloned._test_mode = self._test_mode
        cloned.storage = self.storage.copy()
        cloned.imbalances = Reconciler(cloned.storage)
        cloned.events = EventLog()
        if isinstance(self.events, EventLog):
            cloned.events.events.extend(self.events.events)
        cloned._currencies = {}
        return cloned

    def __repr__(self) -> str:
        return f"Ledger({self.name!r}, tokens={self.list_tokens()})"
