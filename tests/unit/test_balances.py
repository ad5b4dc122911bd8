"""
Unit tests for the store-backed balance module.
"""

import pytest

from shielded_pool.core.balances import Balances
from shielded_pool.core.errors import InsufficientFunds, InvalidParameter
from shielded_pool.core.storage import StateStore
from shielded_pool.crypto import sovereign_account
from shielded_pool.utils.validation import MAX_AMOUNT

RESERVE = sovereign_account(b"xorionct")
ALICE = b"\x01" * 32


@pytest.fixture
def balances():
    b = Balances(StateStore.in_memory(), RESERVE)
    b.set_balance(ALICE, 1000)
    return b


class TestBalances:
    def test_unknown_account_is_zero(self, balances):
        assert balances.balance_of(b"\x09" * 32) == 0

    def test_debit_credit(self, balances):
        balances.debit(ALICE, 400)
        balances.credit(RESERVE, 400)
        assert balances.balance_of(ALICE) == 600
        assert balances.reserve_balance() == 400

    def test_insufficient_funds(self, balances):
        with pytest.raises(InsufficientFunds):
            balances.debit(ALICE, 1001)
        assert balances.balance_of(ALICE) == 1000

    def test_overflow(self, balances):
        balances.set_balance(RESERVE, MAX_AMOUNT)
        with pytest.raises(InvalidParameter):
            balances.credit(RESERVE, 1)

    def test_set_balance_range(self, balances):
        with pytest.raises(InvalidParameter):
            balances.set_balance(ALICE, -1)

    def test_total_issuance(self, balances):
        balances.set_balance(RESERVE, 50)
        assert balances.total_issuance() == 1050
