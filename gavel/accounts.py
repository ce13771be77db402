# gavel/accounts.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from gavel.core import (
    AccountNotFound,
    IdSource,
    InsufficientFunds,
    UsernameTaken,
)

log = logging.getLogger("gavel.accounts")


@dataclass
class Account:
    id: str
    username: str
    email: str
    balance: float = 0.0
    bid_history: List[str] = field(default_factory=list)  # item ids, one per bid
    owned_items: List[str] = field(default_factory=list)
    sold_items: List[str] = field(default_factory=list)

    def can_afford(self, amount: float) -> bool:
        return self.balance >= amount


class AccountStore:
    """In-memory accounts. Also the settlement ledger for closing auctions."""

    def __init__(self, ids: IdSource, initial_balance: float = 1000.0):
        self.ids = ids
        self.initial_balance = initial_balance
        self._accounts: Dict[str, Account] = {}
        self._lock = threading.RLock()

    # ---- registration & lookup ------------------------------------------------

    def register(
        self, username: str, email: str, initial_balance: Optional[float] = None
    ) -> Account:
        with self._lock:
            if self.find_by_username(username) is not None:
                raise UsernameTaken(f"username {username!r} already exists")
            balance = self.initial_balance if initial_balance is None else initial_balance
            account = Account(self.ids.next_id(), username, email, balance)
            self._accounts[account.id] = account
        log.info("Registered %s as %s", username, account.id)
        return account

    def get(self, account_id: str) -> Account:
        with self._lock:
            account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account

    def find_by_username(self, username: str) -> Optional[Account]:
        with self._lock:
            return next(
                (a for a in self._accounts.values() if a.username == username), None
            )

    def can_afford(self, account_id: str, amount: float) -> bool:
        with self._lock:
            return self.get(account_id).can_afford(amount)

    def add_balance(self, account_id: str, amount: float) -> float:
        if amount <= 0:
            raise ValueError("amount must be positive")
        with self._lock:
            account = self.get(account_id)
            account.balance += amount
            return account.balance

    def record_bid(self, account_id: str, item_id: str) -> None:
        with self._lock:
            self.get(account_id).bid_history.append(item_id)

    # ---- settlement ledger ----------------------------------------------------

    def debit(self, account_id: str, amount: float) -> None:
        with self._lock:
            account = self.get(account_id)
            if not account.can_afford(amount):
                raise InsufficientFunds(
                    f"{account_id} has {account.balance:.2f}, needs {amount:.2f}"
                )
            account.balance -= amount

    def credit(self, account_id: str, amount: float) -> None:
        with self._lock:
            self.get(account_id).balance += amount

    def record_ownership(self, account_id: str, item_id: str) -> None:
        with self._lock:
            self.get(account_id).owned_items.append(item_id)

    def record_sale(self, account_id: str, item_id: str) -> None:
        with self._lock:
            self.get(account_id).sold_items.append(item_id)

    def settle(
        self, winner_id: str, seller_id: str, item_id: str, price: float
    ) -> None:
        """Move `price` from winner to seller and transfer the item.

        Everything that can fail is checked before anything is mutated.
        """
        with self._lock:
            winner = self.get(winner_id)
            self.get(seller_id)
            if not winner.can_afford(price):
                raise InsufficientFunds(
                    f"{winner_id} has {winner.balance:.2f}, needs {price:.2f}"
                )
            self.debit(winner_id, price)
            self.record_ownership(winner_id, item_id)
            self.credit(seller_id, price)
            self.record_sale(seller_id, item_id)
        log.info("Settled %s: %s paid %s %.2f", item_id, winner_id, seller_id, price)
