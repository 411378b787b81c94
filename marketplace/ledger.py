"""
ledger.py - Marketplace Product Registry and Settlement Engine

MarketplaceLedger is the central state manager of the marketplace. It is the
only class that mutates the product table and the history indices.

Key responsibilities:
    - Implements MarketView for read-only access
    - Lists, sells, updates and removes products atomically
    - Settles each purchase through an injected PaymentMover
    - Emits a notification for every committed change
    - Snapshots, clones and (de)serializes its full state
"""

from __future__ import annotations
from typing import Any, Dict, List, Tuple
import threading

from .core import (
    # Types
    Product, Receipt, PaymentMover,
    ProductTable, ProductIndex,
    # Exceptions
    MarketplaceError, InvalidArgument, NotFound, Forbidden, Unavailable,
    InsufficientPayment, Conflict, PaymentFailed, CorruptState,
    # Helpers
    require_caller, require_price, require_text, normalize_product_id,
)
from .notifications import (
    Listed, Sold, Updated, Removed,
    Notification, NotificationLog, Subscriber,
)
from .serialization import (
    MarketState, find_violations, serialize_state, deserialize_state,
)


class MarketplaceLedger:
    """
    Product registry with seller-only mutation and immediate settlement.

    Implements the MarketView protocol.

    Design Principles:
        - Always validates first: every precondition is checked before any
          mutation, so a rejected call leaves no trace (no id consumed, no
          index entry, no notification).
        - Always serial: list/buy/update/remove run inside one ledger-wide
          critical section, so id order matches notification order.
        - Records are immutable: a Product is replaced wholesale on change,
          so lock-free readers never see a half-written record.

    Example:
        book = BalanceBook("settlement")
        for account in ("alice", "bob"):
            book.register_account(account)
        book.fund("bob", 500)

        market = MarketplaceLedger("main", payments=book)
        pid = market.list_product("alice", "Chair", "Wooden chair", 100)
        receipt = market.buy_product("bob", pid, 100)
    """

    def __init__(self, name: str, payments: PaymentMover, verbose: bool = True):
        """
        Create an empty marketplace.

        Args:
            name: Ledger identifier
            payments: Settlement capability used by buy_product()
            verbose: Print each applied or rejected operation (default: True)
        """
        if not isinstance(payments, PaymentMover):
            raise TypeError(f"payments must implement move(source, dest, amount), got {type(payments)}")
        self.name = name
        self.payments = payments
        self.verbose = verbose
        self._next_id: int = 0
        self.products: ProductTable = {}
        self.seller_index: ProductIndex = {}
        self.buyer_index: ProductIndex = {}
        self.notification_log = NotificationLog(verbose=verbose)
        self._lock = threading.RLock()

    # ========================================================================
    # MarketView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def get_product(self, product_id: int) -> Product:
        """
        Return the full record of a product, available or not.

        Raises:
            NotFound: If the id was never assigned (including 0 and non-integers)
        """
        product = self.products.get(normalize_product_id(product_id))
        if product is None:
            raise NotFound(f"Product {product_id!r} not found")
        return product

    def get_seller_listings(self, caller: str) -> Tuple[int, ...]:
        """Ids listed by caller in listing order, sold and removed ones included."""
        return tuple(self.seller_index.get(caller, ()))

    def get_buyer_purchases(self, caller: str) -> Tuple[int, ...]:
        """Ids bought by caller in purchase order."""
        return tuple(self.buyer_index.get(caller, ()))

    @property
    def product_count(self) -> int:
        """Number of products ever listed."""
        return self._next_id

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def list_product(self, caller: str, name: str, description: str, price: int) -> int:
        """
        List a new product for sale.

        Args:
            caller: Seller identity
            name: Non-empty display name
            description: Non-empty description
            price: Positive integer price

        Returns:
            The new product id

        Raises:
            InvalidArgument: If price is not positive or a text field is empty
        """
        with self._lock:
            try:
                require_caller(caller)
                require_price(price)
                require_text("name", name)
                require_text("description", description)
            except MarketplaceError as e:
                self._reject("list", e)
                raise

            self._next_id += 1
            product = Product(
                id=self._next_id,
                name=name,
                description=description,
                price=price,
                seller=caller,
            )
            self.products[product.id] = product
            self.seller_index.setdefault(caller, []).append(product.id)
            self._emit(Listed(product.id, name, price, caller, self.notification_log.next_sequence))
            return product.id

    def buy_product(self, caller: str, product_id: int, amount_paid: int) -> Receipt:
        """
        Buy an available product, paying its seller immediately.

        Checks run in order and the first failure wins. Exactly the product's
        price is moved to the seller; any overpayment is not collected here.

        Args:
            caller: Buyer identity
            product_id: Product to buy
            amount_paid: Amount tendered

        Returns:
            Receipt with buyer, seller and the price paid

        Raises:
            NotFound: If the product does not exist
            Unavailable: If the product was already sold or removed
            Forbidden: If the caller is the product's seller
            InsufficientPayment: If amount_paid is below the price
            PaymentFailed: If the payment mover declines or fails
        """
        with self._lock:
            try:
                require_caller(caller)
                product = self.get_product(product_id)
                if not product.is_available:
                    raise Unavailable(f"Product {product.id} is no longer available")
                if caller == product.seller:
                    raise Forbidden(f"Seller {caller} cannot buy their own product {product.id}")
                if isinstance(amount_paid, bool) or not isinstance(amount_paid, int):
                    raise InvalidArgument(f"amount_paid must be an integer, got {amount_paid!r}")
                if amount_paid < product.price:
                    raise InsufficientPayment(
                        f"Product {product.id} costs {product.price}, paid {amount_paid}"
                    )
                self._settle(caller, product)
            except MarketplaceError as e:
                self._reject("buy", e)
                raise

            self.products[product.id] = product.deactivated()
            self.buyer_index.setdefault(caller, []).append(product.id)
            self._emit(Sold(
                product.id, caller, product.seller, product.price,
                self.notification_log.next_sequence,
            ))
            return Receipt(product.id, caller, product.seller, product.price)

    def update_product(self, caller: str, product_id: int, name: str, description: str, price: int) -> None:
        """
        Replace name, description and price of an available product.

        Only the price is validated; name and description are stored as given.

        Raises:
            NotFound: If the product does not exist
            Forbidden: If the caller is not the seller
            Unavailable: If the product was already sold or removed
            InvalidArgument: If price is not positive
        """
        with self._lock:
            try:
                require_caller(caller)
                product = self.get_product(product_id)
                if caller != product.seller:
                    raise Forbidden(f"{caller} is not the seller of product {product.id}")
                if not product.is_available:
                    raise Unavailable(f"Product {product.id} is no longer available")
                require_price(price)
            except MarketplaceError as e:
                self._reject("update", e)
                raise

            self.products[product.id] = product.with_details(name, description, price)
            self._emit(Updated(product.id, name, price, self.notification_log.next_sequence))

    def remove_product(self, caller: str, product_id: int) -> None:
        """
        Withdraw an available product. The record stays retrievable.

        Raises:
            NotFound: If the product does not exist
            Forbidden: If the caller is not the seller
            Conflict: If the product is already inactive
        """
        with self._lock:
            try:
                require_caller(caller)
                product = self.get_product(product_id)
                if caller != product.seller:
                    raise Forbidden(f"{caller} is not the seller of product {product.id}")
                if not product.is_available:
                    raise Conflict(f"Product {product.id} is already inactive")
            except MarketplaceError as e:
                self._reject("remove", e)
                raise

            self.products[product.id] = product.deactivated()
            self._emit(Removed(product.id, self.notification_log.next_sequence))

    def _settle(self, buyer: str, product: Product) -> None:
        """Move exactly the price to the seller, or raise PaymentFailed."""
        try:
            applied = self.payments.move(buyer, product.seller, product.price)
        except Exception as e:
            raise PaymentFailed(f"Settlement of product {product.id} failed: {e!r}") from e
        if not applied:
            raise PaymentFailed(
                f"Settlement of product {product.id} declined: "
                f"{buyer} could not pay {product.price} to {product.seller}"
            )

    # ========================================================================
    # NOTIFICATIONS AND OUTPUT
    # ========================================================================

    def subscribe(self, subscriber: Subscriber):
        """
        Register a callback for committed changes.

        Returns:
            A function that unsubscribes the callback
        """
        return self.notification_log.subscribe(subscriber)

    def _emit(self, notification: Notification) -> None:
        self.notification_log.emit(notification)
        if self.verbose:
            print(f"✓ {notification.kind}: {notification!r}")

    def _reject(self, operation: str, error: MarketplaceError) -> None:
        if self.verbose:
            print(f"✗ REJECTED {operation}: {error.kind}: {error}")

    # ========================================================================
    # SNAPSHOTS AND PERSISTENCE
    # ========================================================================

    def snapshot(self) -> MarketState:
        """Return an immutable copy of the whole state, taken atomically."""
        with self._lock:
            return MarketState(
                next_id=self._next_id,
                products=dict(self.products),
                seller_index={s: tuple(ids) for s, ids in self.seller_index.items()},
                buyer_index={b: tuple(ids) for b, ids in self.buyer_index.items()},
            )

    @classmethod
    def restore(
        cls,
        state: MarketState,
        payments: PaymentMover,
        name: str = "restored",
        verbose: bool = True,
    ) -> MarketplaceLedger:
        """
        Build a ledger from a snapshot.

        The notification log starts empty; notifications are not part of the
        persisted state.

        Raises:
            CorruptState: If the snapshot violates any invariant
        """
        violations = find_violations(state)
        if violations:
            raise CorruptState("; ".join(violations))

        ledger = cls(name, payments=payments, verbose=verbose)
        ledger._next_id = state.next_id
        ledger.products = dict(state.products)
        ledger.seller_index = {s: list(ids) for s, ids in state.seller_index.items()}
        ledger.buyer_index = {b: list(ids) for b, ids in state.buyer_index.items()}
        return ledger

    def to_bytes(self) -> bytes:
        """Serialize the current state (see serialization.serialize_state)."""
        return serialize_state(self.snapshot())

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        payments: PaymentMover,
        name: str = "restored",
        verbose: bool = True,
    ) -> MarketplaceLedger:
        """Rebuild a ledger from bytes produced by to_bytes()."""
        return cls.restore(deserialize_state(data), payments, name=name, verbose=verbose)

    def clone(self) -> MarketplaceLedger:
        """
        Create an independent copy of this ledger.

        Product records are immutable and shared; tables, indices and the
        notification log are copied. The payment mover is shared.
        """
        with self._lock:
            cloned = MarketplaceLedger.restore(
                self.snapshot(), self.payments, name=self.name, verbose=self.verbose,
            )
            cloned.notification_log.entries = list(self.notification_log.entries)
            return cloned

    def state_digest(self) -> str:
        """Deterministic content hash of the current state."""
        return self.snapshot().digest()

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Verify the structural invariants of the registry.

        Returns:
            Dict with keys:
            - 'valid': bool - True if no invariant is violated
            - 'product_count': int - number of products ever listed
            - 'violations': List[str] - description of each violation

        Example:
            result = market.verify_invariants()
            assert result['valid'], result['violations']
        """
        state = self.snapshot()
        violations: List[str] = find_violations(state)
        return {
            'valid': len(violations) == 0,
            'product_count': state.next_id,
            'violations': violations,
        }

    def __repr__(self) -> str:
        return (
            f"MarketplaceLedger({self.name!r}, products={self._next_id}, "
            f"sellers={len(self.seller_index)}, buyers={len(self.buyer_index)})"
        )
