"""
Core types and pure functions for the multi-token ledger.

This module provides the foundational pieces the rest of the package builds on:
1. Constants: balance and token-id bounds, the default (invalid) account
2. Type aliases: AccountId, TokenId, Balance, Positions
3. Exceptions: LedgerError and domain-specific error types
4. Saturating / checked arithmetic over the Balance domain
5. Events: TransferSingle and the EventSink protocol with an in-memory EventLog
6. Configuration: GenesisConfig
7. Protocols: LedgerView for read-only ledger access
8. Pure conservation check over any LedgerView

Nothing in this module mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import (
    Dict, List, Optional, Iterator, Iterable, Any, Protocol, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Balances live in the unsigned 128-bit domain.
BALANCE_MAX = 2 ** 128 - 1

# Token identifiers share the same domain; the counter saturates here.
TOKEN_ID_MAX = 2 ** 128 - 1

# The default account id. Never a valid transfer target or mint recipient.
DEFAULT_ACCOUNT = ""

ZERO = 0


# ============================================================================
# TYPE ALIASES
# ============================================================================

AccountId = str

TokenId = int

# Non-negative integer in [0, BALANCE_MAX].
Balance = int

# Mapping from account ID to the balance it holds for a single token.
Positions = Dict[AccountId, Balance]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class OutOfFunds(LedgerError):
    """Raised when a debit, withdrawal or burn exceeds the available balance."""
    pass


class AccountNotFound(LedgerError):
    """Raised when a target account fails its existence precondition."""
    pass


class TokenNotFound(LedgerError):
    """Reserved for token lookups. No current operation raises it."""
    pass


class NotSupported(LedgerError):
    """Raised by interface methods that have no implementation (approvals)."""
    pass


class BadOrigin(LedgerError):
    """Raised when a dispatch origin does not carry the required authority."""
    pass


class ImbalanceConsumed(LedgerError):
    """Raised when an imbalance is used after it was merged, offset, split or settled."""
    pass


class ImbalanceMismatch(LedgerError):
    """Raised when two imbalances of incompatible polarity or token are combined."""
    pass


class InvalidInput(LedgerError, ValueError):
    """Raised when an amount, token id or metadata value is malformed or out of range."""
    pass


# ============================================================================
# VALIDATION
# ============================================================================

def is_valid_account(account: Optional[AccountId]) -> bool:
    """An account is valid if it is a non-blank string."""
    return isinstance(account, str) and bool(account.strip())


def ensure_account(account: Optional[AccountId]) -> AccountId:
    """Return the account or raise AccountNotFound for the default account."""
    if not is_valid_account(account):
        raise AccountNotFound(f"Account {account!r} is not a valid account")
    return account


def ensure_balance(value: Any, what: str = "amount") -> Balance:
    """
    Validate a balance-domain value.

    Raises:
        InvalidInput: if value is not an int in [0, BALANCE_MAX]
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{what} must be int, got {type(value).__name__}")
    if value < 0:
        raise InvalidInput(f"{what} cannot be negative: {value}")
    if value > BALANCE_MAX:
        raise InvalidInput(f"{what} exceeds BALANCE_MAX: {value}")
    return value


def ensure_token_id(token: Any) -> TokenId:
    if isinstance(token, bool) or not isinstance(token, int):
        raise InvalidInput(f"token id must be int, got {type(token).__name__}")
    if token < 0 or token > TOKEN_ID_MAX:
        raise InvalidInput(f"token id out of range: {token}")
    return token


# ============================================================================
# ARITHMETIC
# ============================================================================
#
# Saturating operations clamp toward a bound; they never invent value on the
# far side of the clamp. Checked operations return None instead of clamping.

def saturating_add(a: Balance, b: Balance, bound: int = BALANCE_MAX) -> Balance:
    return min(a + b, bound)


def saturating_sub(a: Balance, b: Balance) -> Balance:
    return max(a - b, ZERO)


def checked_add(a: Balance, b: Balance, bound: int = BALANCE_MAX) -> Optional[Balance]:
    total = a + b
    return total if total <= bound else None


def checked_sub(a: Balance, b: Balance) -> Optional[Balance]:
    return a - b if a >= b else None


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransferSingle:
    """
    Notification for a single balance movement.

    Attributes:
        source: Debited account, or None when value was minted or deposited.
        dest: Credited account, or None when value was burned or slashed.
        token: Token identifier.
        amount: Amount moved (never zero).
    """
    source: Optional[AccountId]
    dest: Optional[AccountId]
    token: TokenId
    amount: Balance

    @property
    def is_mint(self) -> bool:
        return self.source is None

    @property
    def is_burn(self) -> bool:
        return self.dest is None

    def __repr__(self) -> str:
        src = self.source if self.source is not None else "∅"
        dst = self.dest if self.dest is not None else "∅"
        return f"TransferSingle({self.amount} #{self.token}: {src}→{dst})"


@runtime_checkable
class EventSink(Protocol):
    """Anything that accepts ledger notifications."""

    def deposit_event(self, event: TransferSingle) -> None:
        ...


class EventLog:
    """
    In-memory EventSink that records notifications in emission order.

    Example:
        log = EventLog()
        ledger = Ledger("main", event_sink=log)
        ...
        assert log.events[-1].amount == 30
    """

    def __init__(self) -> None:
        self.events: List[TransferSingle] = []

    def deposit_event(self, event: TransferSingle) -> None:
        self.events.append(event)

    def for_token(self, token: TokenId) -> List[TransferSingle]:
        return [e for e in self.events if e.token == token]

    def clear(self) -> None:
        self.events.clear()

    def __iter__(self) -> Iterator[TransferSingle]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class GenesisConfig:
    """
    Initialization input for a fresh ledger.

    Attributes:
        initial_token: Seeds the token-id counter and gets a zero issuance entry.
    """
    initial_token: TokenId = 0

    def __post_init__(self):
        ensure_token_id(self.initial_token)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Functions accepting a LedgerView declare their read-only intent. The
    Ledger class implements this protocol but also provides mutation methods.
    For testing, FakeView provides a truly immutable implementation.
    """

    def balance_of(self, account: AccountId, token: TokenId) -> Balance:
        """Return the balance of an account in a token (0 when absent)."""
        ...

    def total_issuance(self, token: TokenId) -> Balance:
        """Return the recorded issuance of a token (0 when absent)."""
        ...

    def get_positions(self, token: TokenId) -> Positions:
        """Return every balance entry recorded for a token."""
        ...

    def list_tokens(self) -> List[TokenId]:
        """Return every token with an issuance or balance entry, sorted."""
        ...


# ============================================================================
# CONSERVATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class Discrepancy:
    token: TokenId
    issuance: Balance
    balances: Balance

    @property
    def difference(self) -> int:
        return self.issuance - self.balances


@dataclass(frozen=True, slots=True)
class ConservationReport:
    """
    Result of a conservation check.

    Attributes:
        supplies: Recorded issuance per token that was checked.
        discrepancies: Tokens whose issuance differs from the sum of balances.
    """
    supplies: Dict[TokenId, Balance] = field(default_factory=dict)
    discrepancies: List[Discrepancy] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.discrepancies


def check_conservation(
    view: LedgerView,
    tokens: Optional[Iterable[TokenId]] = None
) -> ConservationReport:
    """
    Verify issuance[token] == sum(balance[*, token]) for every token.

    Holders are summed in sorted order so the accumulation is deterministic.

    Args:
        view: Read-only ledger access
        tokens: Tokens to check (default: every token the view lists)

    Returns:
        ConservationReport with per-token supplies and any discrepancies
    """
    supplies: Dict[TokenId, Balance] = {}
    discrepancies: List[Discrepancy] = []
    for token in (view.list_tokens() if tokens is None else tokens):
        positions = view.get_positions(token)
        held = sum(positions[a] for a in sorted(positions))
        issuance = view.total_issuance(token)
        supplies[token] = issuance
        if held != issuance:
            discrepancies.append(Discrepancy(token, issuance, held))
    return ConservationReport(supplies, discrepancies)
