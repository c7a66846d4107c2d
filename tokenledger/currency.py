"""
currency.py - Per-token currency adapter over the ledger

A CurrencyView projects one token of a Ledger onto the generic interface of
a balance-holding asset (balances, issuance, slash, deposit, withdraw, ...).
The token is fixed at construction; obtain views through Ledger.currency()
so there is one instance per token.

Operations that change a balance hand back an imbalance describing the
issuance side of the change. Operations that change issuance alone (burn,
issue) hand back the opposite imbalance so the two can be netted.
"""

from __future__ import annotations
from enum import Enum, Flag, auto
from typing import TYPE_CHECKING, Tuple

from .core import (
    AccountId, TokenId, Balance,
    BALANCE_MAX, ZERO,
    AccountNotFound, OutOfFunds,
    ensure_balance,
)
from .imbalance import PositiveImbalance, NegativeImbalance, SignedImbalance

if TYPE_CHECKING:
    from .ledger import Ledger


class ExistenceRequirement(Enum):
    """
    Whether an operation may leave an account with nothing.

    Accepted by transfer() and withdraw() but not enforced: the ledger has no
    minimum balance, so both values behave the same.
    """
    KEEP_ALIVE = "keep_alive"
    ALLOW_DEATH = "allow_death"


class WithdrawReasons(Flag):
    """Why funds are leaving an account. Informational only."""
    TRANSACTION_PAYMENT = auto()
    TRANSFER = auto()
    RESERVE = auto()
    FEE = auto()
    TIP = auto()


class CurrencyView:
    """
    Currency interface bound to a single token.

    Example:
        usd = ledger.currency(usd_token)
        imbalance = usd.deposit_creating("alice", 500)
        imbalance.settle()                      # issuance += 500
        slashed, remaining = usd.slash("alice", 200)
        slashed.settle()                        # issuance -= 200
    """

    def __init__(self, ledger: Ledger, token: TokenId):
        self._ledger = ledger
        self._token = token

    @property
    def token(self) -> TokenId:
        return self._token

    # ========================================================================
    # QUERIES
    # ========================================================================

    def total_balance(self, who: AccountId) -> Balance:
        return self._ledger.balance_of(who, self._token)

    def free_balance(self, who: AccountId) -> Balance:
        return self.total_balance(who)

    def total_issuance(self) -> Balance:
        return self._ledger.total_issuance(self._token)

    def minimum_balance(self) -> Balance:
        return ZERO

    def can_slash(self, who: AccountId, value: Balance) -> bool:
        # True when the slash would take the whole balance.
        return value >= self.total_balance(who)

    def ensure_can_withdraw(
        self,
        who: AccountId,
        value: Balance,
        reasons: WithdrawReasons,
        new_balance: Balance
    ) -> None:
        """
        Raises:
            OutOfFunds: the account's balance is below new_balance
        """
        if self.total_balance(who) < new_balance:
            raise OutOfFunds(f"{who} cannot end with {new_balance} of token {self._token}")

    # ========================================================================
    # ISSUANCE-ONLY ADJUSTMENTS
    # ========================================================================

    def burn(self, amount: Balance) -> PositiveImbalance:
        """
        Reduce total issuance by amount without touching any balance.

        Issuance is clamped at zero. The returned positive imbalance carries
        the amount actually removed and restores it if simply dropped; offset
        it against a negative imbalance to make the reduction stick.
        """
        ensure_balance(amount)
        applied = min(amount, self.total_issuance())
        self._ledger.imbalances.negative(applied, self._token).settle()
        return self._ledger.imbalances.positive(applied, self._token)

    def issue(self, amount: Balance) -> NegativeImbalance:
        """
        Increase total issuance by amount without touching any balance.

        Issuance is clamped at BALANCE_MAX. The returned negative imbalance
        carries the amount actually added.
        """
        ensure_balance(amount)
        applied = min(amount, BALANCE_MAX - self.total_issuance())
        self._ledger.imbalances.positive(applied, self._token).settle()
        return self._ledger.imbalances.negative(applied, self._token)

    # ========================================================================
    # BALANCE CHANGES
    # ========================================================================

    def transfer(
        self,
        source: AccountId,
        dest: AccountId,
        value: Balance,
        existence_requirement: ExistenceRequirement = ExistenceRequirement.ALLOW_DEATH
    ) -> None:
        """Ledger.transfer() for this token. existence_requirement is inert."""
        self._ledger.transfer(source, dest, self._token, value)

    def slash(self, who: AccountId, value: Balance) -> Tuple[NegativeImbalance, Balance]:
        """
        Take up to value from who.

        Returns:
            (imbalance for the amount taken, amount that could not be taken)
        """
        ensure_balance(value)
        imbalances = self._ledger.imbalances
        if value == ZERO:
            return imbalances.negative(ZERO, self._token), ZERO

        balance = self.total_balance(who)
        if balance == ZERO:
            return imbalances.negative(ZERO, self._token), value

        slashed = min(balance, value)
        self._ledger.storage.set_balance(who, self._token, balance - slashed)
        self._ledger._emit(who, None, self._token, slashed)
        return imbalances.negative(slashed, self._token), value - slashed

    def deposit_into_existing(self, who: AccountId, value: Balance) -> PositiveImbalance:
        """
        Credit an account that already has an entry for this token.

        Raises:
            AccountNotFound: who has no balance entry for this token
        """
        ensure_balance(value)
        if value == ZERO:
            return self._ledger.imbalances.positive(ZERO, self._token)
        if not self._ledger.storage.has_balance(who, self._token):
            raise AccountNotFound(f"{who} has no balance entry for token {self._token}")
        return self._deposit(who, value)

    def deposit_creating(self, who: AccountId, value: Balance) -> PositiveImbalance:
        """Credit who, creating the balance entry if needed. Never fails."""
        ensure_balance(value)
        if value == ZERO:
            return self._ledger.imbalances.positive(ZERO, self._token)
        return self._deposit(who, value)

    def withdraw(
        self,
        who: AccountId,
        value: Balance,
        reasons: WithdrawReasons = WithdrawReasons.TRANSFER,
        existence_requirement: ExistenceRequirement = ExistenceRequirement.ALLOW_DEATH
    ) -> NegativeImbalance:
        """
        Remove value from who.

        Raises:
            OutOfFunds: who holds less than value (nothing is written)
        """
        ensure_balance(value)
        self._ledger._debit(who, self._token, value)
        if value:
            self._ledger._emit(who, None, self._token, value)
        return self._ledger.imbalances.negative(value, self._token)

    def make_free_balance_be(self, who: AccountId, value: Balance) -> SignedImbalance:
        """
        Force who's balance to value.

        Returns:
            SignedImbalance: positive by the increase if the balance rose (or
            stayed equal), negative by the decrease if it fell
        """
        ensure_balance(value)
        imbalances = self._ledger.imbalances
        current = self.total_balance(who)
        self._ledger.storage.set_balance(who, self._token, value)
        if value >= current:
            if value > current:
                self._ledger._emit(None, who, self._token, value - current)
            return SignedImbalance.of(imbalances.positive(value - current, self._token))
        self._ledger._emit(who, None, self._token, current - value)
        return SignedImbalance.of(imbalances.negative(current - value, self._token))

    def _deposit(self, who: AccountId, value: Balance) -> PositiveImbalance:
        credited = self._ledger._credit(who, self._token, value)
        if credited:
            self._ledger._emit(None, who, self._token, credited)
        return self._ledger.imbalances.positive(credited, self._token)

    def __repr__(self) -> str:
        return f"CurrencyView(token={self._token}, ledger={self._ledger.name!r})"
