from __future__ import annotations

import logging
import math
import threading
from dataclasses import replace
from typing import Optional

from gavel.clock import SystemClock
from gavel.core import Clock, GavelError, SettlementError, SettlementLedger
from gavel.models import (
    AuctionSummary,
    Bid,
    BidResult,
    CloseStatus,
    Item,
    Rejection,
    SettlementOutcome,
    UnsoldReason,
    best_of,
)

log = logging.getLogger("gavel.auction")


class Auction:
    """English auction over one item with a starting and a reserve price.

    Time expiry only stops new bids. Closing and settlement happen when
    `end_auction` is called. Every operation holds the auction's lock, so
    bids and closes on one auction are serialized while separate auctions
    proceed independently.
    """

    def __init__(self, item: Item, clock: Optional[Clock] = None):
        self.item = item
        self.clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._history: list[Bid] = []
        self._best: Optional[Bid] = None
        self._bidder_highs: dict[str, float] = {}
        self._outcome: Optional[SettlementOutcome] = None

    @property
    def id(self) -> str:
        return self.item.id

    # ---------------- queries ---------------- #

    def is_active(self) -> bool:
        with self._lock:
            return self.item.is_active and self.clock.now() <= self.item.end_time

    @property
    def closed(self) -> bool:
        with self._lock:
            return not self.item.is_active

    def current_price(self) -> float:
        with self._lock:
            return self._best.amount if self._best else self.item.starting_price

    def has_reserve_been_met(self) -> bool:
        with self._lock:
            return self.current_price() >= self.item.reserve_price

    def highest_bid(self) -> Optional[Bid]:
        with self._lock:
            return self._best

    def bid_history(self) -> tuple[Bid, ...]:
        with self._lock:
            return tuple(self._history)

    def bidder_highs(self) -> dict[str, float]:
        with self._lock:
            return dict(self._bidder_highs)

    def outcome(self) -> Optional[SettlementOutcome]:
        """Outcome recorded when the auction closed, None while open."""
        with self._lock:
            return self._outcome

    def summary(self) -> AuctionSummary:
        with self._lock:
            item = self.item
            return AuctionSummary(
                item_id=item.id,
                name=item.name,
                description=item.description,
                starting_price=item.starting_price,
                reserve_price=item.reserve_price,
                current_price=self.current_price(),
                seller_id=item.seller_id,
                active=self.is_active(),
                remaining_seconds=item.remaining_seconds(self.clock.now()),
                reserve_met=self.has_reserve_been_met(),
                total_bids=len(self._history),
                highest_bidder=self._best.bidder_id if self._best else None,
            )

    # ---------------- bidding ---------------- #

    def place_bid(self, bidder_id: str, amount: float) -> BidResult:
        with self._lock:
            result = self._admit(bidder_id, amount)
            if not result.accepted:
                log.info(
                    "%s: bid %.2f by %s rejected (%s)",
                    self.id,
                    amount,
                    bidder_id,
                    result.reason.value,
                )
                return result

            bid = Bid(bidder_id, amount, self.clock.now(), self.id)
            self._history.append(bid)
            self._best = best_of(b for b in (self._best, bid) if b is not None)
            self._bidder_highs[bidder_id] = max(
                self._bidder_highs.get(bidder_id, 0.0), amount
            )
            log.info("%s: bid %.2f by %s accepted", self.id, amount, bidder_id)
            return result

    def _admit(self, bidder_id: str, amount: float) -> BidResult:
        if not self.is_active():
            return BidResult.rejected(amount, Rejection.AUCTION_CLOSED)
        if not math.isfinite(amount) or amount <= self.item.starting_price:
            return BidResult.rejected(
                amount, Rejection.BELOW_STARTING_PRICE, self.item.starting_price
            )
        if self._best is not None and amount <= self._best.amount:
            return BidResult.rejected(
                amount, Rejection.BELOW_CURRENT_BID, self._best.amount
            )
        if bidder_id == self.item.seller_id:
            return BidResult.rejected(amount, Rejection.SELF_BID)
        return BidResult.ok(amount)

    # ---------------- closing ---------------- #

    def decide_outcome(self) -> SettlementOutcome:
        """What closing now would produce. Pure; settles nothing."""
        with self._lock:
            if self._best is None:
                return SettlementOutcome(
                    CloseStatus.UNSOLD, self.id, reason=UnsoldReason.NO_BIDS
                )
            if not self.has_reserve_been_met():
                return SettlementOutcome(
                    CloseStatus.UNSOLD, self.id, reason=UnsoldReason.RESERVE_NOT_MET
                )
            return SettlementOutcome(
                CloseStatus.SOLD,
                self.id,
                winner_id=self._best.bidder_id,
                price=self._best.amount,
            )

    def end_auction(
        self, ledger: Optional[SettlementLedger] = None
    ) -> SettlementOutcome:
        """Close the auction and settle a sale through `ledger`.

        A second call is a no-op returning ALREADY_CLOSED. An auction with a
        winner cannot close without a ledger: SettlementError is raised and
        the auction stays open. If the ledger fails, SettlementError
        propagates, the auction stays closed and no sold outcome is recorded.
        """
        with self._lock:
            if not self.item.is_active:
                return SettlementOutcome(CloseStatus.ALREADY_CLOSED, self.id)

            outcome = self.decide_outcome()
            if outcome.sold and ledger is None:
                raise SettlementError(f"{self.id} has a winner but no ledger to settle")

            self.item = replace(self.item, is_active=False)

            if outcome.sold:
                try:
                    ledger.settle(
                        outcome.winner_id,
                        self.item.seller_id,
                        self.id,
                        outcome.price,
                    )
                except GavelError as exc:
                    log.critical(
                        "%s: settlement of %.2f from %s to %s failed: %s",
                        self.id,
                        outcome.price,
                        outcome.winner_id,
                        self.item.seller_id,
                        exc,
                    )
                    raise SettlementError(
                        f"settlement failed for {self.id}: {exc}"
                    ) from exc

            self._outcome = outcome
            log.info("%s: closed (%s)", self.id, outcome.message())
            return outcome
