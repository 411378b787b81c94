"""
test_payments.py - Unit tests for payments.py

Tests:
- Transfer validation
- Account registration
- fund() issuance from the system account
- move() success, decline, and errors
- Test-mode guard on set_balance()
- Conservation
"""

import pytest
from dataclasses import FrozenInstanceError

from marketplace import (
    BalanceBook, Transfer, SYSTEM_ACCOUNT,
    PaymentError, AccountNotRegistered,
)


@pytest.fixture
def pair_book():
    book = BalanceBook("pair")
    book.register_account("alice")
    book.register_account("bob")
    book.fund("alice", 1000)
    return book


class TestTransfer:

    def test_valid_transfer(self):
        t = Transfer(100, "alice", "bob", 3)
        assert (t.amount, t.source, t.dest, t.sequence) == (100, "alice", "bob", 3)

    def test_is_frozen(self):
        t = Transfer(100, "alice", "bob")
        with pytest.raises(FrozenInstanceError):
            t.amount = 5

    @pytest.mark.parametrize("amount", [0, -5, 1.5, True])
    def test_rejects_bad_amount(self, amount):
        with pytest.raises(ValueError):
            Transfer(amount, "alice", "bob")

    def test_rejects_empty_accounts(self):
        with pytest.raises(ValueError):
            Transfer(1, "", "bob")
        with pytest.raises(ValueError):
            Transfer(1, "alice", "  ")

    def test_rejects_self_transfer(self):
        with pytest.raises(ValueError, match="different"):
            Transfer(1, "alice", "alice")

    def test_repr(self):
        assert repr(Transfer(5, "a", "b")) == "Transfer(5: a→b)"


class TestRegistration:

    def test_system_account_auto_registered(self):
        book = BalanceBook()
        assert book.is_registered(SYSTEM_ACCOUNT)
        assert book.get_balance(SYSTEM_ACCOUNT) == 0

    def test_register_account(self):
        book = BalanceBook()
        assert book.register_account("alice") == "alice"
        assert book.get_balance("alice") == 0
        assert book.list_accounts() == {SYSTEM_ACCOUNT, "alice"}

    def test_duplicate_registration(self):
        book = BalanceBook()
        book.register_account("alice")
        with pytest.raises(ValueError, match="already registered"):
            book.register_account("alice")

    def test_empty_account_id(self):
        with pytest.raises(ValueError):
            BalanceBook().register_account("")

    def test_unknown_account_balance(self):
        with pytest.raises(AccountNotRegistered):
            BalanceBook().get_balance("ghost")


class TestFund:

    def test_fund_issues_from_system(self):
        book = BalanceBook()
        book.register_account("alice")
        transfer = book.fund("alice", 500)
        assert transfer.source == SYSTEM_ACCOUNT
        assert book.get_balance("alice") == 500
        assert book.get_balance(SYSTEM_ACCOUNT) == -500

    def test_fund_unknown_account(self):
        with pytest.raises(AccountNotRegistered):
            BalanceBook().fund("ghost", 10)


class TestMove:

    def test_move_applies(self, pair_book):
        assert pair_book.move("alice", "bob", 250) is True
        assert pair_book.get_balance("alice") == 750
        assert pair_book.get_balance("bob") == 250

    def test_move_entire_balance(self, pair_book):
        assert pair_book.move("alice", "bob", 1000) is True
        assert pair_book.get_balance("alice") == 0

    def test_move_declined_when_short(self, pair_book):
        log_size = len(pair_book.transfer_log)
        assert pair_book.move("bob", "alice", 1) is False
        assert pair_book.get_balance("bob") == 0
        assert pair_book.get_balance("alice") == 1000
        assert len(pair_book.transfer_log) == log_size

    def test_move_unknown_account(self, pair_book):
        with pytest.raises(AccountNotRegistered):
            pair_book.move("alice", "ghost", 10)
        with pytest.raises(AccountNotRegistered):
            pair_book.move("ghost", "alice", 10)
        assert pair_book.get_balance("alice") == 1000

    def test_move_malformed(self, pair_book):
        with pytest.raises(ValueError):
            pair_book.move("alice", "bob", 0)
        with pytest.raises(ValueError):
            pair_book.move("alice", "alice", 5)

    def test_transfer_log_sequence(self, pair_book):
        pair_book.move("alice", "bob", 10)
        pair_book.move("bob", "alice", 5)
        sequences = [t.sequence for t in pair_book.transfer_log]
        assert sequences == list(range(len(sequences)))
        assert pair_book.transfer_log[-1] == Transfer(5, "bob", "alice", 2)


class TestSetBalance:

    def test_disabled_outside_test_mode(self):
        book = BalanceBook()
        book.register_account("alice")
        with pytest.raises(PaymentError, match="test_mode"):
            book.set_balance("alice", 100)

    def test_enabled_in_test_mode(self):
        book = BalanceBook(test_mode=True)
        book.register_account("alice")
        book.set_balance("alice", 100)
        assert book.get_balance("alice") == 100

    def test_unknown_account(self):
        with pytest.raises(AccountNotRegistered):
            BalanceBook(test_mode=True).set_balance("ghost", 1)


class TestConservation:

    def test_balanced_after_transfers(self, pair_book):
        pair_book.move("alice", "bob", 300)
        pair_book.move("bob", "alice", 100)
        result = pair_book.verify_conservation()
        assert result['valid']
        assert result['total'] == 0
        assert result['negative_accounts'] == []

    def test_set_balance_breaks_conservation(self):
        book = BalanceBook(test_mode=True)
        book.register_account("alice")
        book.set_balance("alice", 100)
        result = book.verify_conservation()
        assert not result['valid']
        assert result['total'] == 100


class TestVerbose:

    def test_prints_applied_and_declined(self, capsys):
        book = BalanceBook(verbose=True)
        book.register_account("alice")
        book.register_account("bob")
        book.fund("alice", 10)
        book.move("bob", "alice", 5)
        out = capsys.readouterr().out
        assert "✓" in out
        assert "DECLINED" in out
