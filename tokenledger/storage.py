"""
storage.py - Durable key-value state for the ledger

Three persisted entities and nothing else:

    Issuance[token]            total supply recorded for a token
    Balances[account][token]   balance of an account in a token
    LastTokenId                next token id to allocate

plus token metadata (Uri[token]). Reads of absent keys return zero; every
operation is synchronous and total. Composing reads and writes into an atomic
unit is the caller's job.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from .core import (
    AccountId, TokenId, Balance, Positions,
    TOKEN_ID_MAX, ZERO,
    saturating_add,
)


class LedgerStorage:
    """
    Balance double map, issuance map and token-id counter.

    Balances are kept per account, with an inverted per-token index so that
    holder lookups and conservation sums do not scan every account.

    Thread Safety:
        Not thread-safe. The ledger assumes a single logical writer.
    """

    def __init__(self) -> None:
        self._balances: Dict[AccountId, Dict[TokenId, Balance]] = defaultdict(dict)
        # Inverted index mapping token -> {account -> balance}
        self._positions_by_token: Dict[TokenId, Dict[AccountId, Balance]] = defaultdict(dict)
        self._issuance: Dict[TokenId, Balance] = {}
        self._uris: Dict[TokenId, str] = {}
        self._last_token_id: Optional[TokenId] = None

    # ========================================================================
    # BALANCES
    # ========================================================================

    def get_balance(self, account: AccountId, token: TokenId) -> Balance:
        """Balance of account in token (0 if no entry)."""
        return self._balances.get(account, {}).get(token, ZERO)

    def has_balance(self, account: AccountId, token: TokenId) -> bool:
        """True if an entry exists, even one holding zero."""
        return token in self._balances.get(account, {})

    def set_balance(self, account: AccountId, token: TokenId, value: Balance) -> None:
        """Write a balance entry. Zero is stored as a present entry."""
        self._balances[account][token] = value
        self._positions_by_token[token][account] = value

    def get_positions(self, token: TokenId) -> Positions:
        """Every balance entry recorded for token, as a copy."""
        return dict(self._positions_by_token.get(token, {}))

    # ========================================================================
    # ISSUANCE
    # ========================================================================

    def get_issuance(self, token: TokenId) -> Balance:
        """Recorded issuance of token (0 if no entry)."""
        return self._issuance.get(token, ZERO)

    def has_issuance(self, token: TokenId) -> bool:
        return token in self._issuance

    def set_issuance(self, token: TokenId, value: Balance) -> None:
        self._issuance[token] = value

    # ========================================================================
    # TOKEN COUNTER
    # ========================================================================

    def seed_token_counter(self, initial_token: TokenId) -> None:
        """Initialize LastTokenId. Called once, at genesis."""
        if self._last_token_id is not None:
            raise ValueError("Token counter already seeded")
        self._last_token_id = initial_token

    @property
    def last_token_id(self) -> TokenId:
        """The next id that next_token_id() will hand out."""
        if self._last_token_id is None:
            raise ValueError("Token counter not seeded")
        return self._last_token_id

    def next_token_id(self) -> TokenId:
        """Read the counter, then increment it (saturating)."""
        token = self.last_token_id
        self._last_token_id = saturating_add(token, 1, TOKEN_ID_MAX)
        return token

    # ========================================================================
    # METADATA
    # ========================================================================

    def get_uri(self, token: TokenId) -> str:
        return self._uris.get(token, "")

    def set_uri(self, token: TokenId, uri: str) -> None:
        self._uris[token] = uri

    # ========================================================================
    # ENUMERATION / COPY
    # ========================================================================

    def list_tokens(self) -> List[TokenId]:
        """Tokens with an issuance entry or at least one balance entry."""
        return sorted(set(self._issuance) | set(self._positions_by_token))

    def snapshot(self) -> Tuple[Dict[Tuple[AccountId, TokenId], Balance], Dict[TokenId, Balance]]:
        """Flat copy of (balances, issuance) for comparisons in tests and audits."""
        balances = {
            (account, token): value
            for account, tokens in self._balances.items()
            for token, value in tokens.items()
        }
        return balances, dict(self._issuance)

    def copy(self) -> LedgerStorage:
        """Fully independent copy of all state."""
        cloned = LedgerStorage()
        for account, tokens in self._balances.items():
            cloned._balances[account] = dict(tokens)
        for token, positions in self._positions_by_token.items():
            cloned._positions_by_token[token] = dict(positions)
        cloned._issuance = dict(self._issuance)
        cloned._uris = dict(self._uris)
        cloned._last_token_id = self._last_token_id
        return cloned

    def __repr__(self) -> str:
        entries = sum(len(t) for t in self._balances.values())
        return f"LedgerStorage({entries} balance entries, {len(self._issuance)} tokens)"
