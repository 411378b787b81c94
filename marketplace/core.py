"""
Core types and pure functions for the marketplace ledger.

This module provides the foundational data structures and protocols:
1. Protocols: MarketView for read-only access, PaymentMover for settlement
2. Immutable data structures: Product, Receipt
3. Exceptions: MarketplaceError and the operation failure kinds
4. Type aliases: ProductTable, ProductIndex
5. Validation helpers shared by the ledger operations
6. Canonical hashing used for state digests and serialization checksums

Nothing in this module mutates marketplace state.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
import hashlib
from typing import (
    Dict, List, Any, Protocol, Tuple, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Lookup sentinel: no valid product ever carries this id.
NOT_FOUND_ID = 0

# Reserved account for issuing funds into a BalanceBook.
# The system account is exempt from the non-negative balance rule.
SYSTEM_ACCOUNT = "system"

# Notification kinds (strings, not enum, matching the wire names).
NOTIFICATION_LISTED = "Listed"
NOTIFICATION_SOLD = "Sold"
NOTIFICATION_UPDATED = "Updated"
NOTIFICATION_REMOVED = "Removed"

# Bumped whenever the serialized layout changes.
SERIALIZATION_VERSION = 1


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from product id to its current record.
ProductTable = Dict[int, 'Product']

# Mapping from caller identity to the ordered product ids it created or bought.
ProductIndex = Dict[str, List[int]]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""
    kind = "MarketplaceError"


class InvalidArgument(MarketplaceError):
    """Raised for malformed input: non-positive price, empty required text, bad caller."""
    kind = "InvalidArgument"


class NotFound(MarketplaceError):
    """Raised when the referenced product id has no record."""
    kind = "NotFound"


class Forbidden(MarketplaceError):
    """Raised when the caller is not authorized for the operation."""
    kind = "Forbidden"


class Unavailable(MarketplaceError):
    """Raised when the product exists but can no longer be bought or updated."""
    kind = "Unavailable"


class InsufficientPayment(MarketplaceError):
    """Raised when the tendered amount is below the product price."""
    kind = "InsufficientPayment"


class Conflict(MarketplaceError):
    """Raised when the product is already in the state the operation would produce."""
    kind = "Conflict"


class PaymentFailed(MarketplaceError):
    """Raised when the payment mover declines or fails during settlement."""
    kind = "PaymentFailed"


class CorruptState(MarketplaceError):
    """Raised when serialized state fails version, checksum, or invariant checks."""
    kind = "CorruptState"


class PaymentError(MarketplaceError):
    """Base exception for errors raised by payment movers."""
    kind = "PaymentError"


class AccountNotRegistered(PaymentError):
    """Raised when a transfer references an account that has not been registered."""
    kind = "AccountNotRegistered"


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PaymentMover(Protocol):
    """
    Capability that settles a purchase by moving value between two parties.

    The ledger calls move() exactly once per successful purchase, after every
    precondition has passed and before any table is mutated. A False return
    (or an exception) aborts the purchase with no state change.
    """

    def move(self, source: str, dest: str, amount: int) -> bool:
        """Move amount units from source to dest. Return True if applied."""
        ...


@runtime_checkable
class MarketView(Protocol):
    """
    Read-only interface to marketplace state.

    Functions accepting a MarketView declare that they only query the
    registry. MarketplaceLedger implements this protocol alongside its
    mutation methods.
    """

    def get_product(self, product_id: int) -> 'Product':
        """Return the full product record. Raises NotFound if it does not exist."""
        ...

    def get_seller_listings(self, caller: str) -> Tuple[int, ...]:
        """Return ids created by caller, in listing order."""
        ...

    def get_buyer_purchases(self, caller: str) -> Tuple[int, ...]:
        """Return ids purchased by caller, in purchase order."""
        ...


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Product:
    """
    A marketplace listing.

    Records are immutable: every change produces a new Product that replaces
    the old one in a single table assignment, so readers always see a whole
    record.

    Attributes:
        id: Positive id assigned at listing time, never reused.
        name: Display name.
        description: Free-form description.
        price: Price in the smallest currency unit.
        seller: Identity of the creator. Never changes.
        is_available: True until the product is sold or removed. Never reverts.
    """
    id: int
    name: str
    description: str
    price: int
    seller: str
    is_available: bool = True

    def with_details(self, name: str, description: str, price: int) -> Product:
        """Return a copy with new name, description and price."""
        return replace(self, name=name, description=description, price=price)

    def deactivated(self) -> Product:
        """Return a copy with the availability flag cleared."""
        return replace(self, is_available=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
            'seller': self.seller,
            'is_available': self.is_available,
        }

    def __repr__(self) -> str:
        status = "available" if self.is_available else "inactive"
        return f"Product(#{self.id} {self.name!r} @ {self.price} by {self.seller}, {status})"


@dataclass(frozen=True, slots=True)
class Receipt:
    """
    Result of a successful purchase.

    Attributes:
        product_id: The purchased product.
        buyer: Identity that paid.
        seller: Identity that was paid.
        price: Amount moved to the seller (the price at time of sale).
    """
    product_id: int
    buyer: str
    seller: str
    price: int

    def __repr__(self) -> str:
        return f"Receipt(#{self.product_id}: {self.buyer}→{self.seller} {self.price})"


# ============================================================================
# VALIDATION
# ============================================================================

def is_positive_amount(value: Any) -> bool:
    """True for a strictly positive int. Booleans are not amounts."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def require_caller(caller: Any) -> str:
    """
    Check that the caller identity is a non-empty string.

    Raises:
        InvalidArgument: If caller is not a string or is empty.
    """
    if not isinstance(caller, str) or not caller:
        raise InvalidArgument(f"caller identity must be a non-empty string, got {caller!r}")
    return caller


def require_price(price: Any) -> int:
    """
    Check that a price is a positive integer.

    Raises:
        InvalidArgument: If price is not a positive int.
    """
    if not is_positive_amount(price):
        raise InvalidArgument(f"price must be a positive integer, got {price!r}")
    return price


def require_text(field_name: str, value: Any) -> str:
    """
    Check that a text field is a non-empty string.

    Length only: whitespace counts as content.

    Raises:
        InvalidArgument: If value is not a string or has length zero.
    """
    if not isinstance(value, str) or len(value) == 0:
        raise InvalidArgument(f"{field_name} must be non-empty text")
    return value


def normalize_product_id(product_id: Any) -> int:
    """
    Map any lookup key to an int id, with NOT_FOUND_ID for anything invalid.

    Non-integers, booleans and non-positive values all resolve to the sentinel.
    """
    if isinstance(product_id, bool) or not isinstance(product_id, int):
        return NOT_FOUND_ID
    if product_id <= 0:
        return NOT_FOUND_ID
    return product_id


# ============================================================================
# CANONICAL HASHING
# ============================================================================

def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Dicts are emitted with sorted keys; lists and tuples keep their order,
    since index order is part of the state.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, Product):
        return f"P:{_canonicalize(value.to_dict())}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    return f"R:{repr(value)}"


def compute_digest(value: Any) -> str:
    """Deterministic SHA-256 hex digest of a value's canonical form."""
    return hashlib.sha256(_canonicalize(value).encode("utf-8")).hexdigest()
