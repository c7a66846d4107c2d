"""
tokenledger - Multi-Token Balance Ledger

A multi-token ledger in which every token's total issuance always equals the
sum of its account balances. Issuance changes only through single-use
imbalance values that must be consumed exactly once.

Usage:
    from tokenledger import Ledger, Dispatcher, Origin

    ledger = Ledger("main")
    token = ledger.create_token("alice", 1_000)

    # Move funds (issuance unchanged)
    ledger.transfer("alice", "bob", token, 250)

    # Mint and reconcile issuance
    ledger.mint("carol", token, 100).settle()

    # Net a burn against a mint: issuance moves by the difference only
    with ledger.scope():
        net = ledger.mint("dave", token, 40).offset(ledger.burn("bob", token, 50))
        net.settle()

    # Per-token currency interface
    currency = ledger.currency(token)
    slashed, remaining = currency.slash("bob", 500)
    slashed.settle()

    assert ledger.verify_conservation().valid
"""

# Core types
from .core import (
    AccountId,
    TokenId,
    Balance,
    Positions,
    LedgerView,
    EventSink,
    EventLog,
    TransferSingle,
    GenesisConfig,
    ConservationReport,
    Discrepancy,
    check_conservation,
    LedgerError,
    OutOfFunds,
    AccountNotFound,
    TokenNotFound,
    NotSupported,
    BadOrigin,
    ImbalanceConsumed,
    ImbalanceMismatch,
    InvalidInput,
    saturating_add,
    saturating_sub,
    checked_add,
    checked_sub,
    is_valid_account,
    BALANCE_MAX,
    TOKEN_ID_MAX,
    DEFAULT_ACCOUNT,
)

# Storage
from .storage import LedgerStorage

# Imbalances
from .imbalance import (
    Imbalance,
    PositiveImbalance,
    NegativeImbalance,
    SameOrOther,
    SignedImbalance,
    ImbalanceScope,
    Reconciler,
)

# Ledger
from .ledger import Ledger

# Currency
from .currency import (
    CurrencyView,
    ExistenceRequirement,
    WithdrawReasons,
)

# Dispatch
from .dispatch import (
    Dispatcher,
    DispatchOutcome,
    ExecuteResult,
    Origin,
    OriginType,
    ensure_signed,
    ensure_root,
    lookup,
)

__all__ = [
    # Core
    'AccountId', 'TokenId', 'Balance', 'Positions',
    'LedgerView', 'EventSink', 'EventLog', 'TransferSingle', 'GenesisConfig',
    'ConservationReport', 'Discrepancy', 'check_conservation',
    'LedgerError', 'OutOfFunds', 'AccountNotFound', 'TokenNotFound',
    'NotSupported', 'BadOrigin', 'ImbalanceConsumed', 'ImbalanceMismatch',
    'InvalidInput',
    'saturating_add', 'saturating_sub', 'checked_add', 'checked_sub',
    'is_valid_account',
    'BALANCE_MAX', 'TOKEN_ID_MAX', 'DEFAULT_ACCOUNT',
    # Storage
    'LedgerStorage',
    # Imbalances
    'Imbalance', 'PositiveImbalance', 'NegativeImbalance',
    'SameOrOther', 'SignedImbalance', 'ImbalanceScope', 'Reconciler',
    # Ledger
    'Ledger',
    # Currency
    'CurrencyView', 'ExistenceRequirement', 'WithdrawReasons',
    # Dispatch
    'Dispatcher', 'DispatchOutcome', 'ExecuteResult', 'Origin', 'OriginType',
    'ensure_signed', 'ensure_root', 'lookup',
]

__version__ = '1.0.0'
