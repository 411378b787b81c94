"""
serialization.py - Marketplace state snapshots and their byte encoding

MarketState is an immutable snapshot of everything the ledger owns: the id
counter, every product record, and both history indices. It is the unit of
persistence:

    state = ledger.snapshot()
    data = serialize_state(state)          # bytes, safe to store
    restored = deserialize_state(data)     # verified MarketState

The encoding is UTF-8 JSON with sorted keys, a format version and a SHA-256
checksum over the canonical content. deserialize_state() rejects anything
whose version, checksum or invariants do not hold.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import json
from typing import Any, Dict, List, Tuple

from .core import (
    Product, CorruptState,
    SERIALIZATION_VERSION,
    compute_digest, is_positive_amount,
)


@dataclass(frozen=True, slots=True)
class MarketState:
    """
    Immutable snapshot of marketplace state.

    Attributes:
        next_id: Last id handed out (0 when nothing was ever listed).
        products: Product records keyed by id.
        seller_index: Seller identity -> ids it listed, in listing order.
        buyer_index: Buyer identity -> ids it bought, in purchase order.
    """
    next_id: int = 0
    products: Dict[int, Product] = field(default_factory=dict)
    seller_index: Dict[str, Tuple[int, ...]] = field(default_factory=dict)
    buyer_index: Dict[str, Tuple[int, ...]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-compatible representation (without version or checksum)."""
        return {
            'next_id': self.next_id,
            'products': [self.products[pid].to_dict() for pid in sorted(self.products)],
            'seller_index': {s: list(ids) for s, ids in self.seller_index.items()},
            'buyer_index': {b: list(ids) for b, ids in self.buyer_index.items()},
        }

    def digest(self) -> str:
        """Deterministic content hash; equal snapshots have equal digests."""
        return compute_digest(self.to_dict())


# ============================================================================
# INVARIANTS
# ============================================================================

def _is_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def find_violations(state: MarketState) -> List[str]:
    """
    Check every structural invariant of a snapshot.

    Checks performed:
    1. Ids are dense from 1 to next_id and match their keys
    2. Prices are positive and sellers are non-empty
    3. Every product appears exactly once, in id order, in its seller's index
    4. Buyer index entries refer to unavailable products, bought once,
       never by their own seller

    Returns:
        List of human-readable violations (empty if the snapshot is consistent)
    """
    violations: List[str] = []

    if not isinstance(state.next_id, int) or isinstance(state.next_id, bool) or state.next_id < 0:
        return [f"next_id must be a non-negative integer, got {state.next_id!r}"]

    out_of_range = sorted(
        (pid for pid in state.products if not _is_id(pid) or not 1 <= pid <= state.next_id), key=repr,
    )
    if out_of_range or len(state.products) != state.next_id:
        violations.append(
            f"product ids not dense: {len(state.products)} products for next_id={state.next_id}, "
            f"out of range={out_of_range}"
        )

    for pid, product in state.products.items():
        if product.id != pid:
            violations.append(f"product keyed {pid} carries id {product.id}")
        if not is_positive_amount(product.price):
            violations.append(f"product {pid} has invalid price {product.price!r}")
        if not isinstance(product.seller, str) or not product.seller:
            violations.append(f"product {pid} has no seller")

    listed: Dict[int, str] = {}
    for seller, ids in state.seller_index.items():
        if all(_is_id(i) for i in ids) and list(ids) != sorted(set(ids)):
            violations.append(f"seller index for {seller} is not in listing order")
        for pid in ids:
            if not _is_id(pid):
                violations.append(f"seller index for {seller} holds non-id {pid!r}")
                continue
            product = state.products.get(pid)
            if product is None:
                violations.append(f"seller index for {seller} references unknown product {pid}")
            elif product.seller != seller:
                violations.append(f"product {pid} indexed under {seller} but sold by {product.seller}")
            if pid in listed:
                violations.append(f"product {pid} listed under both {listed[pid]} and {seller}")
            listed[pid] = seller
    unindexed = sorted(set(state.products) - set(listed))
    if unindexed:
        violations.append(f"products missing from seller index: {unindexed}")

    bought: Dict[int, str] = {}
    for buyer, ids in state.buyer_index.items():
        for pid in ids:
            if not _is_id(pid):
                violations.append(f"buyer index for {buyer} holds non-id {pid!r}")
                continue
            product = state.products.get(pid)
            if product is None:
                violations.append(f"buyer index for {buyer} references unknown product {pid}")
                continue
            if product.is_available:
                violations.append(f"product {pid} bought by {buyer} is still available")
            if product.seller == buyer:
                violations.append(f"product {pid} bought by its own seller")
            if pid in bought:
                violations.append(f"product {pid} purchased more than once")
            bought[pid] = buyer

    return violations


# ============================================================================
# ENCODING
# ============================================================================

def serialize_state(state: MarketState) -> bytes:
    """
    Encode a snapshot as versioned, checksummed UTF-8 JSON.

    The output is deterministic: equal snapshots produce identical bytes.
    """
    payload = state.to_dict()
    document = {
        'version': SERIALIZATION_VERSION,
        'checksum': compute_digest(payload),
        'state': payload,
    }
    return json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _product_from_dict(raw: Dict[str, Any]) -> Product:
    try:
        product = Product(
            id=raw['id'],
            name=raw['name'],
            description=raw['description'],
            price=raw['price'],
            seller=raw['seller'],
            is_available=raw['is_available'],
        )
    except (KeyError, TypeError) as e:
        raise CorruptState(f"malformed product record: {raw!r}") from e
    if not _is_id(product.id) or not isinstance(product.is_available, bool):
        raise CorruptState(f"malformed product record: {raw!r}")
    return product


def _index_from_dict(name: str, raw: Any) -> Dict[str, Tuple[int, ...]]:
    if not isinstance(raw, dict):
        raise CorruptState(f"{name} must be an object")
    index: Dict[str, Tuple[int, ...]] = {}
    for identity, ids in raw.items():
        if not isinstance(ids, list) or not all(_is_id(i) for i in ids):
            raise CorruptState(f"{name} entry for {identity} must be a list of ids")
        index[identity] = tuple(ids)
    return index


def deserialize_state(data: bytes) -> MarketState:
    """
    Decode and verify bytes produced by serialize_state().

    Raises:
        CorruptState: If the data is not valid JSON, has the wrong version,
                      fails its checksum, or violates any invariant
    """
    try:
        document = json.loads(data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data)
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
        raise CorruptState(f"state is not valid JSON: {e}") from e

    if not isinstance(document, dict) or 'state' not in document:
        raise CorruptState("state document missing 'state' section")
    if document.get('version') != SERIALIZATION_VERSION:
        raise CorruptState(
            f"unsupported state version {document.get('version')!r}, expected {SERIALIZATION_VERSION}"
        )

    payload = document['state']
    if compute_digest(payload) != document.get('checksum'):
        raise CorruptState("state checksum mismatch")

    try:
        raw_products = payload['products']
        next_id = payload['next_id']
        seller_raw = payload['seller_index']
        buyer_raw = payload['buyer_index']
    except (KeyError, TypeError) as e:
        raise CorruptState(f"state section incomplete: {e}") from e
    if not isinstance(raw_products, list):
        raise CorruptState("products must be a list of records")

    products: Dict[int, Product] = {}
    for raw in raw_products:
        if not isinstance(raw, dict):
            raise CorruptState(f"malformed product record: {raw!r}")
        product = _product_from_dict(raw)
        if product.id in products:
            raise CorruptState(f"duplicate product id {product.id}")
        products[product.id] = product

    state = MarketState(
        next_id=next_id,
        products=products,
        seller_index=_index_from_dict('seller_index', seller_raw),
        buyer_index=_index_from_dict('buyer_index', buyer_raw),
    )

    violations = find_violations(state)
    if violations:
        raise CorruptState("; ".join(violations))
    return state
