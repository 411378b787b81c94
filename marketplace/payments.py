"""
payments.py - In-memory settlement accounts

BalanceBook is the reference PaymentMover. It keeps integer balances per
account and applies each transfer as a single debit/credit pair, so the sum
of all balances (system account included) is always zero.

Key rules:
    - Accounts must be registered before they can send or receive
    - A transfer never takes a regular account below zero; move() returns
      False instead and changes nothing
    - SYSTEM_ACCOUNT is exempt from the balance floor and is used to issue funds
    - Every applied transfer is recorded in transfer_log

Example:
    book = BalanceBook("settlement")
    book.register_account("alice")
    book.register_account("bob")
    book.fund("alice", 1000)

    book.move("alice", "bob", 250)   # True
    book.get_balance("bob")          # 250
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Set, Any
import threading

from .core import (
    SYSTEM_ACCOUNT,
    PaymentError, AccountNotRegistered,
    is_positive_amount,
)


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single applied movement of value between two accounts.

    Attributes:
        amount: Units moved (positive int).
        source: Account debited.
        dest: Account credited.
        sequence: Monotonic position within the book's transfer log.
    """
    amount: int
    source: str
    dest: str
    sequence: int = 0

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Transfer source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Transfer dest cannot be empty")
        if not is_positive_amount(self.amount):
            raise ValueError(f"Transfer amount must be a positive integer, got {self.amount!r}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Transfer({self.amount}: {self.source}→{self.dest})"


class BalanceBook:
    """
    Account balances with atomic, validated transfers.

    Implements the PaymentMover protocol. Thread-safe: every balance change
    happens under the book's lock.
    """

    def __init__(self, name: str = "payments", verbose: bool = False, test_mode: bool = False):
        """
        Create a balance book.

        Args:
            name: Book identifier
            verbose: Print each applied or declined transfer (default: False)
            test_mode: Allow set_balance() calls (default: False)
        """
        self.name = name
        self.verbose = verbose
        self._test_mode = test_mode
        self.balances: Dict[str, int] = {SYSTEM_ACCOUNT: 0}
        self.transfer_log: List[Transfer] = []
        self._next_sequence: int = 0
        self._lock = threading.Lock()

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_balance(self, account: str) -> int:
        """
        Return an account's balance.

        Raises:
            AccountNotRegistered: If the account is unknown
        """
        if account not in self.balances:
            raise AccountNotRegistered(f"Account {account} not registered")
        return self.balances[account]

    def is_registered(self, account: str) -> bool:
        """Check if an account is registered."""
        return account in self.balances

    def list_accounts(self) -> Set[str]:
        """List all registered account ids."""
        return set(self.balances)

    def total_supply(self) -> int:
        """Sum of every balance, system account included."""
        return sum(self.balances[a] for a in sorted(self.balances))

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Check that value was neither created nor destroyed.

        Issuance debits the system account, so the sum of all balances must
        stay at zero.

        Returns:
            Dict with keys:
            - 'valid': bool - True if the book is balanced
            - 'total': int - current sum of all balances
            - 'negative_accounts': List[str] - regular accounts below zero
        """
        total = self.total_supply()
        negative = sorted(
            a for a, bal in self.balances.items()
            if a != SYSTEM_ACCOUNT and bal < 0
        )
        return {
            'valid': total == 0 and not negative,
            'total': total,
            'negative_accounts': negative,
        }

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_account(self, account: str) -> str:
        """
        Register a new account with a zero balance.

        Raises:
            ValueError: If the account is already registered or the id is empty
        """
        if not account or not account.strip():
            raise ValueError("Account id cannot be empty")
        with self._lock:
            if account in self.balances:
                raise ValueError(f"Account {account} already registered")
            self.balances[account] = 0
        return account

    def set_balance(self, account: str, amount: int) -> None:
        """
        Set an account's balance directly.

        WARNING: Bypasses double-entry accounting and is only available in
        test mode. Use fund() or move() otherwise.

        Raises:
            PaymentError: If called when test_mode is False
            AccountNotRegistered: If the account is unknown
        """
        if not self._test_mode:
            raise PaymentError(
                "set_balance() is disabled in production mode. "
                "Use fund() and move() to modify balances. "
                "Set test_mode=True when creating BalanceBook for testing."
            )
        with self._lock:
            if account not in self.balances:
                raise AccountNotRegistered(f"Account {account} not registered")
            self.balances[account] = int(amount)

    # ========================================================================
    # TRANSFERS (Mutating)
    # ========================================================================

    def fund(self, account: str, amount: int) -> Transfer:
        """
        Issue new funds to an account from the system account.

        Raises:
            AccountNotRegistered: If the account is unknown
            ValueError: If amount is not a positive integer
        """
        # The system account has no floor, so issuance is never declined.
        return self._apply(SYSTEM_ACCOUNT, account, amount)

    def move(self, source: str, dest: str, amount: int) -> bool:
        """
        Move amount from source to dest atomically.

        Args:
            source: Account to debit
            dest: Account to credit
            amount: Positive integer amount

        Returns:
            True if applied, False if source lacks the funds (nothing changes)

        Raises:
            AccountNotRegistered: If either account is unknown
            ValueError: If the transfer itself is malformed
        """
        return self._apply(source, dest, amount) is not None

    def _apply(self, source: str, dest: str, amount: int):
        with self._lock:
            transfer = Transfer(amount, source, dest, self._next_sequence)
            if source not in self.balances:
                raise AccountNotRegistered(f"Account {source} not registered")
            if dest not in self.balances:
                raise AccountNotRegistered(f"Account {dest} not registered")

            proposed = self.balances[source] - amount
            if source != SYSTEM_ACCOUNT and proposed < 0:
                if self.verbose:
                    print(f"✗ DECLINED: {source} has {self.balances[source]}, needs {amount}")
                return None

            self.balances[source] = proposed
            self.balances[dest] += amount
            self.transfer_log.append(transfer)
            self._next_sequence += 1

        if self.verbose:
            print(f"✓ {transfer!r}")
        return transfer
