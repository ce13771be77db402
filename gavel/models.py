"""
Value types for the bidding core.

  • Item              what is being sold and its time window
  • Bid               one accepted bid, never mutated
  • BidResult         outcome of a bid attempt (accepted or a Rejection)
  • SettlementOutcome outcome of closing an auction
  • AuctionSummary    read-only snapshot for display
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from gavel.core import Clock


# --------------------------------------------------------------------------- #
#  Enums
# --------------------------------------------------------------------------- #
class Rejection(str, Enum):
    AUCTION_CLOSED = "auction_closed"
    BELOW_STARTING_PRICE = "below_starting_price"
    BELOW_CURRENT_BID = "below_current_bid"
    SELF_BID = "self_bid"
    NOT_FOUND = "not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_BIDDER = "unknown_bidder"


class CloseStatus(str, Enum):
    SOLD = "sold"
    UNSOLD = "unsold"
    ALREADY_CLOSED = "already_closed"
    NOT_FOUND = "not_found"


class UnsoldReason(str, Enum):
    NO_BIDS = "no_bids"
    RESERVE_NOT_MET = "reserve_not_met"


# --------------------------------------------------------------------------- #
#  Item & Bid
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class Item:
    # The owning Auction swaps in a copy with is_active=False when it closes.
    id: str
    name: str
    description: str
    starting_price: float
    reserve_price: float
    seller_id: str
    start_time: float
    end_time: float
    is_active: bool = True

    @classmethod
    def create(
        cls,
        item_id: str,
        name: str,
        description: str,
        starting_price: float,
        reserve_price: float,
        seller_id: str,
        duration_minutes: int,
        clock: Clock,
    ) -> Item:
        # Inputs are validated by the caller; see AuctionHouse.create_auction.
        start = clock.now()
        return cls(
            id=item_id,
            name=name,
            description=description,
            starting_price=starting_price,
            reserve_price=reserve_price,
            seller_id=seller_id,
            start_time=start,
            end_time=start + duration_minutes * 60,
        )

    def is_expired(self, now: float) -> bool:
        return now > self.end_time

    def remaining_seconds(self, now: float) -> int:
        return max(0, math.floor(self.end_time - now))


@dataclass(frozen=True)
class Bid:
    bidder_id: str
    amount: float
    timestamp: float
    item_id: str

    def rank_key(self) -> tuple[float, float]:
        """Sort key where smaller means better: highest amount, then earliest."""
        return (-self.amount, self.timestamp)


def best_of(bids: Iterable[Bid]) -> Optional[Bid]:
    """Best bid under (amount desc, timestamp asc); None for no bids."""
    return min(bids, key=Bid.rank_key, default=None)


# --------------------------------------------------------------------------- #
#  Results
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class BidResult:
    accepted: bool
    amount: float
    reason: Optional[Rejection] = None
    # Price the bid was measured against when rejected (starting or current).
    threshold: Optional[float] = None

    @classmethod
    def ok(cls, amount: float) -> BidResult:
        return cls(True, amount)

    @classmethod
    def rejected(
        cls, amount: float, reason: Rejection, threshold: Optional[float] = None
    ) -> BidResult:
        return cls(False, amount, reason, threshold)

    def message(self) -> str:
        if self.accepted:
            return f"Bid placed successfully! Current highest bid: ${self.amount:,.2f}"
        return _REJECTION_MESSAGES[self.reason].format(threshold=self.threshold or 0.0)


_REJECTION_MESSAGES = {
    Rejection.AUCTION_CLOSED: "Auction is not active!",
    Rejection.BELOW_STARTING_PRICE: "Bid must be higher than starting price: ${threshold:,.2f}",
    Rejection.BELOW_CURRENT_BID: "Bid must be higher than current highest bid: ${threshold:,.2f}",
    Rejection.SELF_BID: "Cannot bid on your own item!",
    Rejection.NOT_FOUND: "Auction not found!",
    Rejection.INSUFFICIENT_FUNDS: "Insufficient balance! Your balance: ${threshold:,.2f}",
    Rejection.UNKNOWN_BIDDER: "User not found!",
}


@dataclass(frozen=True)
class SettlementOutcome:
    status: CloseStatus
    item_id: str
    reason: Optional[UnsoldReason] = None
    winner_id: Optional[str] = None
    price: Optional[float] = None

    @property
    def sold(self) -> bool:
        return self.status is CloseStatus.SOLD

    def message(self) -> str:
        if self.status is CloseStatus.SOLD:
            return f"Item sold to {self.winner_id} for ${self.price:,.2f}"
        if self.status is CloseStatus.ALREADY_CLOSED:
            return "Auction already ended!"
        if self.status is CloseStatus.NOT_FOUND:
            return "Auction not found!"
        if self.reason is UnsoldReason.NO_BIDS:
            return "No bids were placed. Item remains unsold."
        return "Reserve price not met. Item remains unsold."


@dataclass(frozen=True)
class AuctionSummary:
    item_id: str
    name: str
    description: str
    starting_price: float
    reserve_price: float
    current_price: float
    seller_id: str
    active: bool
    remaining_seconds: int
    reserve_met: bool
    total_bids: int
    highest_bidder: Optional[str]
