#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Marketplace Step by Step

A pedagogical walk through the marketplace ledger. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation  - Payments, the empty marketplace, first listing
  4-6:  Trading     - Buying, losing a race, rejections leave no trace
  7-8:  Ownership   - Updates, removals, who may do what
  9-10: Durability  - Notifications, snapshots, restart from bytes

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from marketplace import (
    MarketplaceLedger, BalanceBook,
    MarketplaceError, PaymentFailed,
    notification_to_dict,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    starting_balance: int = 1_000
    chair_price: int = 100
    lamp_price: int = 50
    lamp_new_price: int = 60


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


def attempt(label: str, fn, *args):
    """Run one marketplace call and report the outcome instead of raising."""
    print(f">>> {label}")
    try:
        result = fn(*args)
        print(f"    -> {result!r}")
        return result
    except MarketplaceError as e:
        print(f"    -> {e.kind}: {e}")
        return e


# ============================================================================
# PHASE 1: FOUNDATION
# ============================================================================

def step_01_payments() -> BalanceBook:
    step_header(1, "The Balance Book",
        "Money lives outside the marketplace; the marketplace only asks it to move.")

    print("""
    The marketplace never holds balances. It calls a payment mover:

        move(source, dest, amount) -> bool

    BalanceBook is the in-memory mover. New money enters from the system
    account, so the sum of all balances is always zero.
    """)
    wait_for_enter()

    book = BalanceBook("demo", verbose=True)
    for account in ("S1", "S2", "B1", "B2"):
        book.register_account(account)
        book.fund(account, CONFIG.starting_balance)

    section_header("Balances")
    for account in sorted(book.list_accounts()):
        print(f"  {account:8s} {book.get_balance(account):>8d}")
    print(f"\nConservation: {book.verify_conservation()}")
    return book


def step_02_empty_market(book: BalanceBook) -> MarketplaceLedger:
    step_header(2, "The Empty Marketplace",
        "A marketplace starts with no products and a counter at zero.")
    wait_for_enter()

    market = MarketplaceLedger("demo", payments=book, verbose=True)
    print(f"{market!r}")
    print(f"product_count = {market.product_count}")
    return market


def step_03_first_listing(market: MarketplaceLedger) -> int:
    step_header(3, "First Listing",
        "Listing returns the next id; ids are dense and never reused.")
    wait_for_enter()

    chair = attempt('list_product("S1", "Chair", "Wooden", 100)',
                    market.list_product, "S1", "Chair", "Wooden", CONFIG.chair_price)
    print(f"\n{market.get_product(chair)!r}")
    return chair


# ============================================================================
# PHASE 2: TRADING
# ============================================================================

def step_04_buy(market: MarketplaceLedger, book: BalanceBook, chair: int):
    step_header(4, "Buying",
        "A purchase moves exactly the price and retires the product.")
    wait_for_enter()

    attempt('buy_product("B1", chair, 100)', market.buy_product, "B1", chair, CONFIG.chair_price)
    section_header("After the sale")
    print(f"S1 balance:       {book.get_balance('S1')}")
    print(f"B1 balance:       {book.get_balance('B1')}")
    print(f"B1 purchases:     {market.get_buyer_purchases('B1')}")
    print(f"Chair available:  {market.get_product(chair).is_available}")


def step_05_second_buyer(market: MarketplaceLedger, chair: int):
    step_header(5, "Too Late",
        "A product sells once. The second buyer is told it is unavailable.")
    wait_for_enter()

    attempt('buy_product("B2", chair, 100)', market.buy_product, "B2", chair, CONFIG.chair_price)


def step_06_rejections(market: MarketplaceLedger):
    step_header(6, "Rejections Leave No Trace",
        "Every failed call changes nothing, not even the id counter.")
    wait_for_enter()

    before = market.state_digest()
    attempt('list_product("S1", "Free", "x", 0)', market.list_product, "S1", "Free", "x", 0)
    attempt('list_product("", "Chair", "x", 5)', market.list_product, "", "Chair", "x", 5)
    attempt('get_product(42)', market.get_product, 42)
    print(f"\nState unchanged: {market.state_digest() == before}")
    attempt('list_product("S1", "Paid", "x", 1)', market.list_product, "S1", "Paid", "x", 1)


# ============================================================================
# PHASE 3: OWNERSHIP
# ============================================================================

def step_07_update(market: MarketplaceLedger) -> int:
    step_header(7, "Updating",
        "Only the seller may edit a listing, and only while it is for sale.")
    wait_for_enter()

    lamp = market.list_product("S2", "Lamp", "Desk lamp", CONFIG.lamp_price)
    attempt('update_product("S2", lamp, "Lamp", "Brass desk lamp", 60)',
            market.update_product, "S2", lamp, "Lamp", "Brass desk lamp", CONFIG.lamp_new_price)
    attempt('update_product("S1", lamp, "Lamp", "Mine now", 1)',
            market.update_product, "S1", lamp, "Lamp", "Mine now", 1)
    attempt('buy_product("S2", lamp, 60)', market.buy_product, "S2", lamp, CONFIG.lamp_new_price)
    print(f"\n{market.get_product(lamp)!r}")
    return lamp


def step_08_remove(market: MarketplaceLedger, lamp: int):
    step_header(8, "Removing",
        "Removal retires a listing; the seller's history still shows it.")
    wait_for_enter()

    attempt('remove_product("S2", lamp)', market.remove_product, "S2", lamp)
    attempt('remove_product("S2", lamp)', market.remove_product, "S2", lamp)
    print(f"\nS2 listings: {market.get_seller_listings('S2')}")


# ============================================================================
# PHASE 4: DURABILITY
# ============================================================================

def step_09_notifications(market: MarketplaceLedger):
    step_header(9, "Notifications",
        "Each committed change emits one ordered notification.")
    wait_for_enter()

    for notification in market.notification_log:
        print(f"  {notification_to_dict(notification)}")


def step_10_restart(market: MarketplaceLedger, book: BalanceBook):
    step_header(10, "Restart From Bytes",
        "Serialized state restores to an identical, fully working marketplace.")
    wait_for_enter()

    data = market.to_bytes()
    print(f"Serialized {len(data)} bytes, digest {market.state_digest()[:16]}...")

    restored = MarketplaceLedger.from_bytes(data, book, name="restored", verbose=True)
    print(f"{restored!r}")
    print(f"Digest matches:  {restored.state_digest() == market.state_digest()}")
    print(f"Invariants:      {restored.verify_invariants()}")

    section_header("Trading resumes")
    rug = attempt('list_product("S1", "Rug", "Wool", 80)', restored.list_product, "S1", "Rug", "Wool", 80)
    try:
        restored.buy_product("B2", rug, 80)
    except PaymentFailed as e:
        print(f"Settlement failed: {e}")
    print(f"\nConservation: {book.verify_conservation()}")


def main():
    print("""
    ======================================================================
                       MARKETPLACE LEDGER TUTORIAL
    ======================================================================
    """)

    book = step_01_payments()
    market = step_02_empty_market(book)
    chair = step_03_first_listing(market)

    step_04_buy(market, book, chair)
    step_05_second_buyer(market, chair)
    step_06_rejections(market)

    lamp = step_07_update(market)
    step_08_remove(market, lamp)

    step_09_notifications(market)
    step_10_restart(market, book)

    print("""
    SUMMARY

      - Ids are dense; rejected listings never consume one
      - A product sells at most once, at exactly its price
      - Only sellers edit or remove, and never buy their own
      - Failed calls change nothing
      - Snapshots restore to the same digest

    Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
