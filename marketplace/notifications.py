"""
notifications.py - Marketplace change notifications

Notifications are just data, subscribers are just functions:
1. Listed / Sold / Updated / Removed: immutable records of a committed change
2. NotificationLog: append-only log plus fire-and-forget subscriber dispatch

The ledger emits a notification in the same critical section as the state
change it describes, and never for a rejected operation. The log IS the audit
trail; subscriber delivery is best effort.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Union

from .core import (
    NOTIFICATION_LISTED, NOTIFICATION_SOLD,
    NOTIFICATION_UPDATED, NOTIFICATION_REMOVED,
)


# ============================================================================
# NOTIFICATION RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Listed:
    """A product was listed."""
    product_id: int
    name: str
    price: int
    seller: str
    sequence: int = 0

    kind = NOTIFICATION_LISTED


@dataclass(frozen=True, slots=True)
class Sold:
    """A product was bought. price is the price at time of sale."""
    product_id: int
    buyer: str
    seller: str
    price: int
    sequence: int = 0

    kind = NOTIFICATION_SOLD


@dataclass(frozen=True, slots=True)
class Updated:
    """A seller changed a listing's details."""
    product_id: int
    name: str
    price: int
    sequence: int = 0

    kind = NOTIFICATION_UPDATED


@dataclass(frozen=True, slots=True)
class Removed:
    """A seller withdrew a listing."""
    product_id: int
    sequence: int = 0

    kind = NOTIFICATION_REMOVED


Notification = Union[Listed, Sold, Updated, Removed]

# Subscriber type: called once per committed notification
Subscriber = Callable[[Notification], None]


def notification_to_dict(notification: Notification) -> Dict[str, Any]:
    """Flatten a notification into a plain dict tagged with its kind."""
    return {'kind': notification.kind, **asdict(notification)}


# ============================================================================
# NOTIFICATION LOG
# ============================================================================

class NotificationLog:
    """
    Append-only notification log with subscriber fan-out.

    Not thread-safe on its own; the ledger calls emit() while holding its lock,
    which also keeps sequence numbers in commit order.
    """

    def __init__(self, verbose: bool = False):
        self.entries: List[Notification] = []
        self._subscribers: List[Subscriber] = []
        self.verbose = verbose
        self.failed_deliveries: int = 0

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def next_sequence(self) -> int:
        return len(self.entries)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns:
            A function that unsubscribes it again.
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def emit(self, notification: Notification) -> Notification:
        """
        Record a notification and deliver it to every subscriber.

        A subscriber that raises is counted and reported but does not stop
        delivery to the others; the change it describes is already committed.
        """
        self.entries.append(notification)
        for subscriber in list(self._subscribers):
            try:
                subscriber(notification)
            except Exception as e:
                self.failed_deliveries += 1
                if self.verbose:
                    print(f"⚠️  DELIVERY FAILED: {notification.kind} #{notification.product_id}: {e!r}")
        return notification

    def since(self, sequence: int) -> List[Notification]:
        """Return notifications with sequence >= the given value."""
        return self.entries[max(sequence, 0):]
