"""
imbalance.py - Single-use values for unreconciled changes in total issuance

An imbalance records that some balance changed while the token's issuance has
not caught up yet. It is the only way issuance moves:

    PositiveImbalance   surplus: funds were created; discharging ADDS to issuance
    NegativeImbalance   deficit: funds were destroyed; discharging SUBTRACTS
                        from issuance (saturating at zero)

Every imbalance must be consumed exactly once. The consuming operations are
settle(), drop_zero() on a zero amount, split(), merge(), subsume() (consumes
the argument) and offset(). Touching a consumed imbalance raises
ImbalanceConsumed.

An imbalance that is still live when its owner lets go of it is discharged
into issuance automatically, exactly once:

    - when the last reference to it disappears, or
    - when the ImbalanceScope it was created in exits, normally or by exception.

Automatic discharge is the backstop, not the intended path. Code that means
to reconcile should call settle() (or offset the value against an opposite)
explicitly.

Example:
    with ledger.scope():
        minted = ledger.mint("alice", token, 100)
        burned = ledger.burn("bob", token, 40)
        net = minted.offset(burned)      # SameOrOther(same=PositiveImbalance(60))
        net.settle()                     # issuance += 60
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Type
import weakref

from .core import (
    TokenId, Balance,
    ImbalanceConsumed, ImbalanceMismatch,
    ensure_balance, ensure_token_id,
    saturating_add, saturating_sub,
    ZERO,
)


# ============================================================================
# IMBALANCE
# ============================================================================

class Imbalance(ABC):
    """
    Base class for the two imbalance polarities.

    Not instantiated directly. Subclasses set `_sign` (+1 surplus, -1 deficit)
    and are wired to each other through `opposite()`.

    Attributes are private: an imbalance's amount can only be read through
    peek() and only changed through the consuming operations.
    """

    _sign = 0

    def __init__(self, amount: Balance, token: TokenId, reconciler: Reconciler):
        ensure_balance(amount)
        ensure_token_id(token)
        self._amount = amount
        self._token = token
        self._reconciler = reconciler
        self._live = True
        self._serial = reconciler._track(self)

    @classmethod
    @abstractmethod
    def opposite(cls) -> Type[Imbalance]:
        """The imbalance class of the other polarity."""

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def token(self) -> TokenId:
        return self._token

    @property
    def is_live(self) -> bool:
        """False once the imbalance has been consumed or discharged."""
        return self._live

    def peek(self) -> Balance:
        """Read the amount without consuming."""
        self._require_live()
        return self._amount

    # ------------------------------------------------------------------
    # Consuming operations
    # ------------------------------------------------------------------

    def settle(self) -> None:
        """Reconcile the amount against the token's issuance now."""
        self._require_live()
        self._discharge()

    def drop_zero(self) -> Optional[Imbalance]:
        """
        Discharge a zero imbalance.

        Returns:
            None if the amount was zero (the imbalance is consumed, no effect).
            Otherwise the same imbalance, still live, for the caller to handle.
        """
        self._require_live()
        if self._amount == ZERO:
            self._consume()
            return None
        return self

    def try_drop(self) -> Optional[Imbalance]:
        return self.drop_zero()

    def split(self, amount: Balance) -> Tuple[Imbalance, Imbalance]:
        """
        Partition into (min(amount, total), remainder).

        Both parts keep this polarity and token and their amounts add up to
        the original exactly. The original is consumed.
        """
        ensure_balance(amount)
        total = self._consume()
        first = min(amount, total)
        cls = type(self)
        return (
            cls(first, self._token, self._reconciler),
            cls(total - first, self._token, self._reconciler),
        )

    def merge(self, other: Imbalance) -> Imbalance:
        """
        Combine with another imbalance of the same polarity and token.

        Amounts add with saturation. Both operands are consumed; the returned
        imbalance owns their combined effect.
        """
        self._check_same(other)
        a = self._consume()
        b = other._consume()
        return type(self)(saturating_add(a, b), self._token, self._reconciler)

    def subsume(self, other: Imbalance) -> None:
        """In-place merge: absorb `other` into this imbalance and consume it."""
        self._check_same(other)
        self._amount = saturating_add(self._amount, other._consume())

    def offset(self, other: Imbalance) -> SameOrOther:
        """
        Net this imbalance against one of the opposite polarity.

        Returns:
            SameOrOther.same(a - b)    if this amount is larger
            SameOrOther.other(b - a)   if the other amount is larger
            SameOrOther.none()         if they cancel exactly

        Both operands are consumed.
        """
        self._require_live()
        if not isinstance(other, self.opposite()):
            raise ImbalanceMismatch(
                f"Cannot offset {type(self).__name__} against {type(other).__name__}"
            )
        self._check_compatible(other)
        a = self._consume()
        b = other._consume()
        if a > b:
            return SameOrOther.same(type(self)(a - b, self._token, self._reconciler))
        if b > a:
            return SameOrOther.other(self.opposite()(b - a, self._token, self._reconciler))
        return SameOrOther.none()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_live(self) -> None:
        if not self._live:
            raise ImbalanceConsumed(f"{self!r} was already consumed")

    def _check_compatible(self, other: Imbalance) -> None:
        other._require_live()
        if other is self:
            raise ImbalanceMismatch("An imbalance cannot be combined with itself")
        if other._token != self._token:
            raise ImbalanceMismatch(
                f"Token mismatch: {self._token} vs {other._token}"
            )
        if other._reconciler is not self._reconciler:
            raise ImbalanceMismatch("Imbalances belong to different ledgers")

    def _check_same(self, other: Imbalance) -> None:
        self._require_live()
        if type(other) is not type(self):
            raise ImbalanceMismatch(
                f"Polarity mismatch: {type(self).__name__} vs {type(other).__name__}"
            )
        self._check_compatible(other)

    def _consume(self) -> Balance:
        """Mark consumed without touching issuance; the effect moves elsewhere."""
        self._require_live()
        self._live = False
        self._reconciler._untrack(self)
        return self._amount

    def _discharge(self) -> None:
        """Fold the amount into issuance and mark consumed."""
        if self._live:
            self._live = False
            self._reconciler._untrack(self)
            self._reconciler._apply(self)

    def __del__(self):
        # Partially constructed instances never became live.
        if getattr(self, "_live", False):
            self._reconciler._backstop(self)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._amount == other._amount and self._token == other._token

    __hash__ = None

    def __repr__(self) -> str:
        state = "" if self._live else ", consumed"
        return f"{type(self).__name__}({self._amount}, token={self._token}{state})"


class PositiveImbalance(Imbalance):
    """Funds created without equal and opposite accounting. Discharge adds to issuance."""

    _sign = 1

    @classmethod
    def opposite(cls) -> Type[Imbalance]:
        return NegativeImbalance


class NegativeImbalance(Imbalance):
    """Funds destroyed without equal and opposite accounting. Discharge subtracts from issuance."""

    _sign = -1

    @classmethod
    def opposite(cls) -> Type[Imbalance]:
        return PositiveImbalance


# ============================================================================
# COMPOSITE RESULTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class SameOrOther:
    """
    Outcome of Imbalance.offset().

    At most one of `same_` / `other_` is set. `same_` keeps the polarity of
    the imbalance offset() was called on; `other_` has the opposite polarity.
    """
    same_: Optional[Imbalance] = None
    other_: Optional[Imbalance] = None

    @classmethod
    def same(cls, imbalance: Imbalance) -> SameOrOther:
        return cls(same_=imbalance)

    @classmethod
    def other(cls, imbalance: Imbalance) -> SameOrOther:
        return cls(other_=imbalance)

    @classmethod
    def none(cls) -> SameOrOther:
        return cls()

    @property
    def is_same(self) -> bool:
        return self.same_ is not None

    @property
    def is_other(self) -> bool:
        return self.other_ is not None

    @property
    def is_none(self) -> bool:
        return self.same_ is None and self.other_ is None

    @property
    def remainder(self) -> Optional[Imbalance]:
        return self.same_ if self.same_ is not None else self.other_

    def settle(self) -> None:
        """Settle whichever remainder exists."""
        if self.remainder is not None:
            self.remainder.settle()


@dataclass(frozen=True, slots=True)
class SignedImbalance:
    """Exactly one of a positive or negative imbalance."""
    positive: Optional[PositiveImbalance] = None
    negative: Optional[NegativeImbalance] = None

    def __post_init__(self):
        if (self.positive is None) == (self.negative is None):
            raise ValueError("SignedImbalance holds exactly one imbalance")

    @classmethod
    def of(cls, imbalance: Imbalance) -> SignedImbalance:
        if isinstance(imbalance, PositiveImbalance):
            return cls(positive=imbalance)
        return cls(negative=imbalance)

    @property
    def is_positive(self) -> bool:
        return self.positive is not None

    @property
    def imbalance(self) -> Imbalance:
        return self.positive if self.positive is not None else self.negative

    @property
    def delta(self) -> int:
        """Signed issuance effect: +amount for positive, -amount for negative."""
        amount = self.imbalance.peek()
        return amount if self.is_positive else -amount

    def settle(self) -> None:
        self.imbalance.settle()


# ============================================================================
# SCOPES AND RECONCILIATION
# ============================================================================

class ImbalanceScope:
    """
    Context manager bounding the lifetime of imbalances created inside it.

    Imbalances created while a scope is the innermost open one belong to it.
    On exit (normal or exceptional) every member that is still live is
    discharged into issuance, in creation order. To hand an imbalance to the
    caller instead, release() it before the scope exits.

    Example:
        def mint_for_caller(ledger, who, token, amount):
            with ledger.scope() as scope:
                imbalance = ledger.mint(who, token, amount)
                return scope.release(imbalance)
    """

    def __init__(self, reconciler: Reconciler):
        self._reconciler = reconciler
        self._members: Dict[int, weakref.ref] = {}
        self._open = False

    def __enter__(self) -> ImbalanceScope:
        if self._open:
            raise RuntimeError("ImbalanceScope is not reentrant")
        self._open = True
        self._reconciler._scopes.append(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        scopes = self._reconciler._scopes
        if scopes and scopes[-1] is self:
            scopes.pop()
        else:
            scopes.remove(self)
        self._open = False
        for imbalance in self.pending():
            self._reconciler._backstop(imbalance)
        self._members.clear()
        return False

    def release(self, imbalance: Imbalance) -> Imbalance:
        """Move ownership of a live imbalance to the enclosing scope (if any)."""
        imbalance._require_live()
        self._members.pop(imbalance._serial, None)
        scopes = self._reconciler._scopes
        if self in scopes:
            index = scopes.index(self)
            if index > 0:
                scopes[index - 1]._adopt(imbalance)
        return imbalance

    def pending(self) -> List[Imbalance]:
        """Live members, in creation order."""
        live = []
        for serial in sorted(self._members):
            imbalance = self._members[serial]()
            if imbalance is not None and imbalance.is_live:
                live.append(imbalance)
        return live

    def _adopt(self, imbalance: Imbalance) -> None:
        self._members[imbalance._serial] = weakref.ref(imbalance)


class Reconciler:
    """
    Owner of the issuance side of every imbalance on one ledger.

    Creates imbalances, tracks which are live, and is the only code that
    writes issuance on an imbalance's behalf.

    Attributes:
        discharged: Number of imbalances reconciled by the backstop (dropped
                    or scope-exited) rather than explicitly.
    """

    def __init__(self, storage):
        self._storage = storage
        self._scopes: List[ImbalanceScope] = []
        self._live: Dict[int, weakref.ref] = {}
        self._next_serial = 0
        self.discharged = 0

    def positive(self, amount: Balance, token: TokenId) -> PositiveImbalance:
        return PositiveImbalance(amount, token, self)

    def negative(self, amount: Balance, token: TokenId) -> NegativeImbalance:
        return NegativeImbalance(amount, token, self)

    def scope(self) -> ImbalanceScope:
        return ImbalanceScope(self)

    def pending(self) -> List[Imbalance]:
        """Every live imbalance on this ledger, in creation order."""
        live = []
        for serial in sorted(self._live):
            imbalance = self._live[serial]()
            if imbalance is not None and imbalance.is_live:
                live.append(imbalance)
        return live

    def _track(self, imbalance: Imbalance) -> int:
        serial = self._next_serial
        self._next_serial += 1
        self._live[serial] = weakref.ref(imbalance)
        if self._scopes:
            self._scopes[-1]._members[serial] = weakref.ref(imbalance)
        return serial

    def _untrack(self, imbalance: Imbalance) -> None:
        self._live.pop(imbalance._serial, None)

    def _backstop(self, imbalance: Imbalance) -> None:
        if imbalance._live:
            self.discharged += 1
            imbalance._discharge()

    def _apply(self, imbalance: Imbalance) -> None:
        amount = imbalance._amount
        if amount == ZERO:
            return
        token = imbalance._token
        current = self._storage.get_issuance(token)
        if imbalance._sign > 0:
            self._storage.set_issuance(token, saturating_add(current, amount))
        else:
            self._storage.set_issuance(token, saturating_sub(current, amount))
