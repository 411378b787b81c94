"""
marketplace - Marketplace Product Registry and Settlement Ledger

Sellers list products, buyers purchase them with immediate settlement to the
seller, and both sides can query their own history.

Usage:
    from marketplace import MarketplaceLedger, BalanceBook

    book = BalanceBook("settlement")
    book.register_account("alice")
    book.register_account("bob")
    book.fund("bob", 1000)

    market = MarketplaceLedger("main", payments=book)
    pid = market.list_product("alice", "Chair", "Wooden chair", 100)
    receipt = market.buy_product("bob", pid, 100)

    market.get_product(pid).is_available   # False
    market.get_buyer_purchases("bob")      # (1,)
"""

# Core types
from .core import (
    MarketView,
    PaymentMover,
    Product,
    Receipt,
    MarketplaceError,
    InvalidArgument,
    NotFound,
    Forbidden,
    Unavailable,
    InsufficientPayment,
    Conflict,
    PaymentFailed,
    CorruptState,
    PaymentError,
    AccountNotRegistered,
    NOT_FOUND_ID,
    SYSTEM_ACCOUNT,
    SERIALIZATION_VERSION,
    NOTIFICATION_LISTED,
    NOTIFICATION_SOLD,
    NOTIFICATION_UPDATED,
    NOTIFICATION_REMOVED,
)

# Ledger
from .ledger import MarketplaceLedger

# Payments
from .payments import BalanceBook, Transfer

# Notifications
from .notifications import (
    Listed,
    Sold,
    Updated,
    Removed,
    Notification,
    NotificationLog,
    notification_to_dict,
)

# Persistence
from .serialization import (
    MarketState,
    serialize_state,
    deserialize_state,
    find_violations,
)

__all__ = [
    # Core
    'MarketView', 'PaymentMover', 'Product', 'Receipt',
    'MarketplaceError', 'InvalidArgument', 'NotFound', 'Forbidden', 'Unavailable',
    'InsufficientPayment', 'Conflict', 'PaymentFailed', 'CorruptState',
    'PaymentError', 'AccountNotRegistered',
    'NOT_FOUND_ID', 'SYSTEM_ACCOUNT', 'SERIALIZATION_VERSION',
    'NOTIFICATION_LISTED', 'NOTIFICATION_SOLD', 'NOTIFICATION_UPDATED', 'NOTIFICATION_REMOVED',
    # Ledger
    'MarketplaceLedger',
    # Payments
    'BalanceBook', 'Transfer',
    # Notifications
    'Listed', 'Sold', 'Updated', 'Removed', 'Notification', 'NotificationLog',
    'notification_to_dict',
    # Persistence
    'MarketState', 'serialize_state', 'deserialize_state', 'find_violations',
]

__version__ = '1.0.0'
