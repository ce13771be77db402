from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from gavel.accounts import Account, AccountStore
from gavel.auction import Auction
from gavel.clock import SystemClock
from gavel.core import (
    AccountNotFound,
    AuctionNotFound,
    Clock,
    IdSource,
    InvalidAuction,
)
from gavel.ids import CounterIds
from gavel.models import (
    AuctionSummary,
    BidResult,
    CloseStatus,
    Item,
    Rejection,
    SettlementOutcome,
)
from gavel.registry import AuctionRegistry
from gavel.settings import Settings

log = logging.getLogger("gavel.house")


@dataclass(frozen=True)
class Profile:
    username: str
    email: str
    balance: float
    bids_placed: int
    items_owned: int
    items_sold: int
    auctions_created: int


class AuctionHouse:
    """The marketplace: accounts, auctions and the operations users invoke.

    Every call names the acting account explicitly; there is no session.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        ids: Optional[IdSource] = None,
    ):
        self.settings = settings or Settings()
        self.clock = clock or SystemClock()
        self.ids = ids or CounterIds(self.settings.ids.prefix, self.settings.ids.start)
        self.accounts = AccountStore(self.ids, self.settings.accounts.initial_balance)
        self.auctions = AuctionRegistry()
        self._created: Dict[str, List[str]] = defaultdict(list)

    # =================== #
    # accounts            #
    # =================== #

    def register_user(self, username: str, email: str) -> Account:
        return self.accounts.register(username, email)

    def add_balance(self, account_id: str, amount: float) -> float:
        return self.accounts.add_balance(account_id, amount)

    def profile(self, account_id: str) -> Profile:
        a = self.accounts.get(account_id)
        return Profile(
            username=a.username,
            email=a.email,
            balance=a.balance,
            bids_placed=len(a.bid_history),
            items_owned=len(a.owned_items),
            items_sold=len(a.sold_items),
            auctions_created=len(self._created.get(account_id, [])),
        )

    # =================== #
    # auctions            #
    # =================== #

    def create_auction(
        self,
        seller_id: str,
        name: str,
        description: str,
        starting_price: float,
        reserve_price: float,
        duration_minutes: Optional[int] = None,
    ) -> Auction:
        if duration_minutes is None:
            duration_minutes = self.settings.auctions.default_duration_minutes
        self._validate(name, starting_price, reserve_price, duration_minutes)
        self.accounts.get(seller_id)

        item = Item.create(
            self.ids.next_id(),
            name,
            description,
            starting_price,
            reserve_price,
            seller_id,
            duration_minutes,
            self.clock,
        )
        auction = self.auctions.add(Auction(item, self.clock))
        self._created[seller_id].append(item.id)
        log.info(
            "%s created auction %s (%s) starting at %.2f for %d min",
            seller_id,
            item.id,
            name,
            starting_price,
            duration_minutes,
        )
        return auction

    def _validate(
        self,
        name: str,
        starting_price: float,
        reserve_price: float,
        duration_minutes: int,
    ) -> None:
        if not name.strip():
            raise InvalidAuction("item name is required")
        if not math.isfinite(starting_price) or starting_price <= 0:
            raise InvalidAuction("starting price must be a positive number")
        if not math.isfinite(reserve_price):
            raise InvalidAuction("reserve price must be a finite number")
        if reserve_price < 0:
            raise InvalidAuction("reserve price cannot be negative")
        if duration_minutes <= 0:
            raise InvalidAuction("duration must be positive")
        if duration_minutes > self.settings.auctions.max_duration_minutes:
            raise InvalidAuction(
                f"duration exceeds {self.settings.auctions.max_duration_minutes} minutes"
            )

    def auctions_created_by(self, seller_id: str) -> List[str]:
        return list(self._created.get(seller_id, []))

    def active_auctions(self) -> List[Auction]:
        return self.auctions.active()

    def auction_summary(self, item_id: str) -> AuctionSummary:
        return self.auctions.get(item_id).summary()

    def place_bid(self, bidder_id: str, item_id: str, amount: float) -> BidResult:
        auction = self.auctions.find(item_id)
        if auction is None:
            return BidResult.rejected(amount, Rejection.NOT_FOUND)

        try:
            bidder = self.accounts.get(bidder_id)
        except AccountNotFound:
            return BidResult.rejected(amount, Rejection.UNKNOWN_BIDDER)
        if not bidder.can_afford(amount):
            log.info("%s cannot afford %.2f on %s", bidder_id, amount, item_id)
            return BidResult.rejected(
                amount, Rejection.INSUFFICIENT_FUNDS, bidder.balance
            )

        result = auction.place_bid(bidder_id, amount)
        if result.accepted:
            self.accounts.record_bid(bidder_id, item_id)
        return result

    def end_auction(self, item_id: str) -> SettlementOutcome:
        try:
            auction = self.auctions.get(item_id)
        except AuctionNotFound:
            return SettlementOutcome(CloseStatus.NOT_FOUND, item_id)
        return auction.end_auction(self.accounts)
