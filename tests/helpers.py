"""
helpers.py - Shared helpers for marketplace tests
"""

from marketplace import BalanceBook, MarketplaceLedger, MarketplaceError


SELLERS = ("seller_1", "seller_2")
BUYERS = ("buyer_1", "buyer_2", "buyer_3")


def funded_book(balance: int = 10_000, accounts=SELLERS + BUYERS) -> BalanceBook:
    """BalanceBook with every account registered and funded."""
    book = BalanceBook("test", test_mode=True)
    for account in accounts:
        book.register_account(account)
        book.fund(account, balance)
    return book


def quiet_market(payments=None, name: str = "test") -> MarketplaceLedger:
    """Marketplace with console output disabled."""
    return MarketplaceLedger(name, payments=payments or funded_book(), verbose=False)


def ledger_snapshot(market: MarketplaceLedger) -> dict:
    """Everything observable about a marketplace, for before/after comparisons."""
    return {
        'digest': market.state_digest(),
        'product_count': market.product_count,
        'notifications': len(market.notification_log),
    }


# =============================================================================
# RANDOM OPERATION SEQUENCES
# =============================================================================

IDENTITIES = SELLERS + BUYERS


def apply_operation(market: MarketplaceLedger, op: tuple):
    """
    Apply one generated operation, returning the result or the raised error.

    Operations are tuples tagged by their first element:
        ("list", caller, name, description, price)
        ("buy", caller, product_id, amount_paid)
        ("update", caller, product_id, name, description, price)
        ("remove", caller, product_id)
    """
    kind, args = op[0], op[1:]
    handlers = {
        "list": market.list_product,
        "buy": market.buy_product,
        "update": market.update_product,
        "remove": market.remove_product,
    }
    try:
        return handlers[kind](*args)
    except MarketplaceError as e:
        return e
