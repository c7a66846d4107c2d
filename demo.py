#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Token Ledger Step by Step

This is a pedagogical demonstration of how the multi-token ledger keeps
issuance and balances in agreement. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation     - Genesis, creating tokens, transfers
  4-5:  Imbalances     - mint/burn hand back imbalances; netting them
  6:    Safety Net     - Dropped imbalances are reconciled automatically
  7:    Currency View  - slash, deposit and make_free_balance_be
  8:    Dispatch       - Origins, APPLIED/REJECTED outcomes, batch prefixes

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from tokenledger import (
    Ledger, GenesisConfig, Dispatcher, Origin,
    OutOfFunds,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    initial_token: int = 0
    gold_supply: int = 1_000
    silver_supply: int = 50_000
    transfer_amount: int = 300
    mint_amount: int = 250
    slash_amount: int = 1_200


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def show_token(ledger: Ledger, token: int):
    """Print every balance of a token next to its issuance."""
    positions = ledger.get_positions(token)
    for account in sorted(positions):
        print(f"  {account:<10} {positions[account]:>10}")
    print(f"  {'-'*21}")
    print(f"  {'sum':<10} {ledger.total_supply(token):>10}")
    print(f"  {'issuance':<10} {ledger.total_issuance(token):>10}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_genesis():
    """Create a ledger and inspect what genesis wrote."""
    step_header(1, "Genesis",
        "A ledger starts with a seeded token counter and one zero-issuance token.")

    print(f">>> ledger = Ledger('tutorial', GenesisConfig(initial_token={CONFIG.initial_token}))")
    ledger = Ledger("tutorial", GenesisConfig(initial_token=CONFIG.initial_token))

    section_header("Initial State")
    print(f"Next token id:  {ledger.last_token_id}")
    print(f"Known tokens:   {ledger.list_tokens()}")
    print(f"Issuance of {CONFIG.initial_token}:  {ledger.total_issuance(CONFIG.initial_token)}")
    return ledger


def step_02_create_tokens(ledger: Ledger):
    step_header(2, "Creating Tokens",
        "create_token() allocates the next id and records balance and issuance together.")

    gold = ledger.create_token("alice", CONFIG.gold_supply)
    silver = ledger.create_token("bob", CONFIG.silver_supply)
    ledger.set_uri(gold, "ipfs://gold.json")

    section_header("Gold")
    show_token(ledger, gold)
    section_header("Silver")
    show_token(ledger, silver)
    return ledger, gold, silver


def step_03_transfers(ledger: Ledger, gold: int):
    step_header(3, "Transfers",
        "transfer() moves value between accounts; issuance never changes.")

    print(f">>> ledger.transfer('alice', 'bob', gold, {CONFIG.transfer_amount})")
    ledger.transfer("alice", "bob", gold, CONFIG.transfer_amount)
    show_token(ledger, gold)

    section_header("Insufficient Funds")
    try:
        ledger.transfer("carol", "bob", gold, 1)
    except OutOfFunds as e:
        print(f"OutOfFunds: {e}")
    print("Nothing was written: the check runs before any write.")
    return ledger


# ============================================================================
# PHASE 2: IMBALANCES (Steps 4-6)
# ============================================================================

def step_04_mint_and_settle(ledger: Ledger, gold: int):
    step_header(4, "Mint Returns an Imbalance",
        "Balances change immediately; issuance follows when the imbalance is settled.")

    imbalance = ledger.mint("carol", gold, CONFIG.mint_amount)
    print(f">>> imbalance = ledger.mint('carol', gold, {CONFIG.mint_amount})")
    print(f"{imbalance!r}")
    section_header("Before settle()")
    show_token(ledger, gold)

    imbalance.settle()
    section_header("After settle()")
    show_token(ledger, gold)
    return ledger


def step_05_netting(ledger: Ledger, gold: int):
    step_header(5, "Netting Imbalances",
        "A burn and a mint of the same token can cancel without touching issuance.")

    burned = ledger.burn("bob", gold, 100)
    minted = ledger.mint("carol", gold, 100)
    result = burned.offset(minted)
    print(f">>> burned.offset(minted).is_none  ->  {result.is_none}")
    show_token(ledger, gold)
    return ledger


def step_06_safety_net(ledger: Ledger, gold: int):
    step_header(6, "The Safety Net",
        "An imbalance nobody settles is reconciled when it is dropped.")

    before = ledger.total_issuance(gold)
    ledger.mint("dave", gold, 10)   # result dropped on purpose
    print(f"Issuance before: {before}, after: {ledger.total_issuance(gold)}")
    print(f"Discharged by the backstop so far: {ledger.imbalances.discharged}")

    section_header("Scopes")
    with ledger.scope() as scope:
        held = ledger.mint("dave", gold, 5)
        print(f"Pending inside scope: {scope.pending()}")
    print(f"After scope exit, live: {held.is_live}")
    show_token(ledger, gold)
    return ledger


# ============================================================================
# PHASE 3: ADAPTERS (Steps 7-8)
# ============================================================================

def step_07_currency_view(ledger: Ledger, gold: int):
    step_header(7, "The Currency View",
        "ledger.currency(token) exposes slash/deposit/withdraw for one token.")

    currency = ledger.currency(gold)
    slashed, shortfall = currency.slash("carol", CONFIG.slash_amount)
    print(f"slash carol {CONFIG.slash_amount}: took {slashed.peek()}, short by {shortfall}")
    currency.deposit_creating("treasury", slashed.peek()).offset(slashed).settle()

    signed = currency.make_free_balance_be("dave", 0)
    print(f"make_free_balance_be('dave', 0): delta {signed.delta}")
    signed.settle()
    show_token(ledger, gold)
    return ledger


def step_08_dispatch(ledger: Ledger, gold: int, silver: int):
    step_header(8, "Dispatch",
        "Calls carry an origin; failures become REJECTED outcomes, not exceptions.")

    dispatcher = Dispatcher(ledger)
    dispatcher.safe_transfer_from(Origin.signed("bob"), "alice", silver, 500)
    dispatcher.mint(Origin.signed("bob"), "bob", silver, 1)
    outcome = dispatcher.safe_batch_transfer_from(
        Origin.signed("alice"), "eve", [(silver, 200), (gold, 10**9)])
    print(f"Batch outcome: {outcome.result.value} ({outcome.error})")
    print(f"Eve kept the applied prefix: {ledger.balance_of('eve', silver)} silver")

    section_header("Conservation Proof")
    report = ledger.verify_conservation()
    print(f"Conserved: {report.valid}")
    for token, supply in sorted(report.supplies.items()):
        print(f"  token {token}: {supply}")
    return ledger


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       TOKEN LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger = step_01_genesis()
    wait_for_enter()
    ledger, gold, silver = step_02_create_tokens(ledger)
    wait_for_enter()
    ledger = step_03_transfers(ledger, gold)
    wait_for_enter()
    ledger = step_04_mint_and_settle(ledger, gold)
    wait_for_enter()
    ledger = step_05_netting(ledger, gold)
    wait_for_enter()
    ledger = step_06_safety_net(ledger, gold)
    wait_for_enter()
    ledger = step_07_currency_view(ledger, gold)
    wait_for_enter()
    step_08_dispatch(ledger, gold, silver)

    print(f"\n{'='*70}")
    print("Tutorial complete.")


if __name__ == "__main__":
    main()
