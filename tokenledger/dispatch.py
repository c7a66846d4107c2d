"""
dispatch.py - Entry points for externally submitted calls

The dispatch surface is the boundary between callers and the ledger. Each
entry point:

1. Validates the origin (who is calling) and the addressed accounts
2. Forwards to the Ledger inside an ImbalanceScope
3. Settles every imbalance before returning (none crosses this boundary)
4. Converts LedgerError (including InvalidInput for malformed amounts, token
   ids and metadata) into a REJECTED outcome instead of raising

Batch calls keep the ledger's best-effort prefix semantics: a failing item
rejects the call, but items before it remain applied.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Tuple

from .core import (
    AccountId, TokenId, Balance,
    LedgerError, BadOrigin,
    ensure_account,
)
from .ledger import Ledger


class OriginType(Enum):
    """Authority a call was submitted with."""
    SIGNED = "signed"    # An account signed the call
    ROOT = "root"        # Privileged (governance / system) origin
    NONE = "none"        # Unsigned


@dataclass(frozen=True, slots=True)
class Origin:
    origin_type: OriginType
    signer: Optional[AccountId] = None

    def __post_init__(self):
        if (self.origin_type == OriginType.SIGNED) != (self.signer is not None):
            raise ValueError("Only SIGNED origins carry a signer")

    @classmethod
    def signed(cls, account: AccountId) -> Origin:
        return cls(OriginType.SIGNED, account)

    @classmethod
    def root(cls) -> Origin:
        return cls(OriginType.ROOT)

    @classmethod
    def none(cls) -> Origin:
        return cls(OriginType.NONE)

    def __repr__(self) -> str:
        if self.signer is not None:
            return f"Origin(signed:{self.signer})"
        return f"Origin({self.origin_type.value})"


def ensure_signed(origin: Origin) -> AccountId:
    """Return the signing account or raise BadOrigin."""
    if origin.origin_type != OriginType.SIGNED:
        raise BadOrigin(f"{origin!r} is not a signed origin")
    return ensure_account(origin.signer)


def ensure_root(origin: Origin) -> None:
    if origin.origin_type != OriginType.ROOT:
        raise BadOrigin(f"{origin!r} is not root")


def lookup(source: AccountId) -> AccountId:
    """Resolve an addressed account. Raises AccountNotFound for the default account."""
    return ensure_account(source)


class ExecuteResult(Enum):
    """
    Outcome of a dispatched call.

    APPLIED: The call ran to completion.
    REJECTED: The call failed validation or a ledger check. For batch calls,
              items before the failing one may have been applied.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    call: str
    result: ExecuteResult
    error: Optional[LedgerError] = None
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.result == ExecuteResult.APPLIED


class Dispatcher:
    """
    Call entry points for one ledger.

    Example:
        dispatcher = Dispatcher(ledger)
        outcome = dispatcher.safe_transfer_from(Origin.signed("alice"), "bob", token, 10)
        if not outcome.ok:
            print(outcome.error)
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def safe_transfer_from(
        self,
        origin: Origin,
        to: AccountId,
        token_id: TokenId,
        value: Balance,
        calldata: Optional[bytes] = None
    ) -> DispatchOutcome:
        """Transfer from the signer. calldata is accepted; receiver hooks are not run."""
        def call():
            sender = ensure_signed(origin)
            self.ledger.transfer(sender, lookup(to), token_id, value)
        return self._run("safe_transfer_from", call)

    def safe_batch_transfer_from(
        self,
        origin: Origin,
        to: AccountId,
        id_values: Iterable[Tuple[TokenId, Balance]],
        calldata: Optional[bytes] = None
    ) -> DispatchOutcome:
        def call():
            sender = ensure_signed(origin)
            self.ledger.transfer_batch(sender, lookup(to), id_values)
        return self._run("safe_batch_transfer_from", call)

    def mint(self, origin: Origin, to: AccountId, token_id: TokenId, amount: Balance) -> DispatchOutcome:
        """Mint requires root."""
        def call():
            ensure_root(origin)
            self.ledger.mint(lookup(to), token_id, amount).settle()
        return self._run("mint", call)

    def mint_batch(
        self,
        origin: Origin,
        to: AccountId,
        id_amounts: Iterable[Tuple[TokenId, Balance]]
    ) -> DispatchOutcome:
        def call():
            ensure_root(origin)
            self.ledger.mint_batch(lookup(to), id_amounts)
        return self._run("mint_batch", call)

    def burn(self, origin: Origin, token_id: TokenId, amount: Balance) -> DispatchOutcome:
        """The signer burns its own funds."""
        def call():
            owner = ensure_signed(origin)
            self.ledger.burn(owner, token_id, amount).settle()
        return self._run("burn", call)

    def burn_batch(self, origin: Origin, id_amounts: Iterable[Tuple[TokenId, Balance]]) -> DispatchOutcome:
        def call():
            owner = ensure_signed(origin)
            self.ledger.burn_batch(owner, id_amounts)
        return self._run("burn_batch", call)

    def create_token(self, origin: Origin, initial_supply: Balance) -> DispatchOutcome:
        """The signer receives the initial supply. The new id is the outcome value."""
        def call():
            return self.ledger.create_token(ensure_signed(origin), initial_supply)
        return self._run("create_token", call)

    def set_uri(self, origin: Origin, token_id: TokenId, uri: str) -> DispatchOutcome:
        def call():
            ensure_root(origin)
            self.ledger.set_uri(token_id, uri)
        return self._run("set_uri", call)

    def set_approval_for_all(self, origin: Origin, operator: AccountId, approved: bool) -> DispatchOutcome:
        def call():
            owner = ensure_signed(origin)
            self.ledger.set_approval_for_all(owner, lookup(operator), approved)
        return self._run("set_approval_for_all", call)

    def _run(self, name: str, call: Callable[[], Any]) -> DispatchOutcome:
        try:
            with self.ledger.scope():
                value = call()
        except LedgerError as e:
            if self.ledger.verbose:
                print(f"✗ REJECTED: {name}: {e}")
            return DispatchOutcome(name, ExecuteResult.REJECTED, error=e)
        if self.ledger.verbose:
            print(f"✓ APPLIED: {name}")
        return DispatchOutcome(name, ExecuteResult.APPLIED, value=value)
