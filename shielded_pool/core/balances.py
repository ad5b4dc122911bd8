"""
Transparent balance module.

The pool never owns account balances; it moves value between a caller and
its sovereign reserve through this interface. `Balances` is a store-backed
implementation used by the CLI and tests. Any other module (for instance
one wrapping a host chain's currency) can be injected instead, as long as
each call is atomic on its own.
"""

from abc import ABC, abstractmethod

from shielded_pool.core.errors import InsufficientFunds, InvalidParameter
from shielded_pool.core.storage.state_store import BALANCES, StateStore
from shielded_pool.crypto import short_hex
from shielded_pool.utils.validation import MAX_AMOUNT

BALANCE_WIDTH = 16  # u128


class BalanceModule(ABC):
    """
    Interface to the transparent ledger.

    Attributes:
        reserve_account: Account id of the pool's sovereign reserve
    """

    def __init__(self, reserve_account: bytes):
        self.reserve_account = reserve_account

    @abstractmethod
    def balance_of(self, account: bytes) -> int:
        ...

    @abstractmethod
    def debit(self, account: bytes, amount: int):
        """Remove `amount` from `account`. Raises InsufficientFunds."""

    @abstractmethod
    def credit(self, account: bytes, amount: int):
        """Add `amount` to `account`."""

    def reserve_balance(self) -> int:
        return self.balance_of(self.reserve_account)


class Balances(BalanceModule):
    """Balances kept in the pool's own state store (`balances` bucket)."""

    def __init__(self, store: StateStore, reserve_account: bytes):
        super().__init__(reserve_account)
        self.store = store

    def balance_of(self, account: bytes) -> int:
        return self.store.get_int(BALANCES, bytes(account))

    def set_balance(self, account: bytes, amount: int):
        """Set a balance outright (genesis endowments)."""
        if not 0 <= amount <= MAX_AMOUNT:
            raise InvalidParameter(f"balance out of range: {amount}")
        self.store.put_int(BALANCES, bytes(account), amount, width=BALANCE_WIDTH)

    def debit(self, account: bytes, amount: int):
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientFunds(
                f"{short_hex(account)} has {balance}, needs {amount}"
            )
        self.store.put_int(BALANCES, bytes(account), balance - amount, width=BALANCE_WIDTH)

    def credit(self, account: bytes, amount: int):
        balance = self.balance_of(account) + amount
        if balance > MAX_AMOUNT:
            raise InvalidParameter(f"balance of {short_hex(account)} would overflow")
        self.store.put_int(BALANCES, bytes(account), balance, width=BALANCE_WIDTH)

    def total_issuance(self) -> int:
        """Sum of every balance in the store."""
        return sum(self.balance_of(account) for account in self.store.iter_keys(BALANCES))
