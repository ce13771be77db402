import dataclasses
import threading

import pytest

from gavel.auction import Auction
from gavel.clock import ManualClock
from gavel.core import InsufficientFunds, SettlementError
from gavel.models import CloseStatus, Item, Rejection, UnsoldReason, best_of


class RecordingLedger:
    """Stands in for the account store; records every settlement."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.settlements: list[tuple[str, str, str, float]] = []

    def debit(self, account_id, amount):
        raise NotImplementedError

    def credit(self, account_id, amount):
        raise NotImplementedError

    def record_ownership(self, account_id, item_id):
        raise NotImplementedError

    def record_sale(self, account_id, item_id):
        raise NotImplementedError

    def settle(self, winner_id, seller_id, item_id, price):
        if self.fail:
            raise InsufficientFunds("drained")
        self.settlements.append((winner_id, seller_id, item_id, price))


def make_auction(
    clock: ManualClock, starting: float = 10.0, reserve: float = 50.0
) -> Auction:
    item = Item.create("ID1", "Lamp", "Brass lamp", starting, reserve, "S", 1, clock)
    return Auction(item, clock)


def test_example_scenario() -> None:
    clock = ManualClock()
    auction = make_auction(clock)
    ledger = RecordingLedger()

    assert auction.place_bid("A", 20.0).accepted
    assert auction.current_price() == 20.0

    rejected = auction.place_bid("B", 15.0)
    assert rejected.reason is Rejection.BELOW_CURRENT_BID

    clock.advance(1)
    assert auction.place_bid("A", 60.0).accepted
    assert auction.current_price() == 60.0

    outcome = auction.end_auction(ledger)
    assert outcome.status is CloseStatus.SOLD
    assert (outcome.winner_id, outcome.price) == ("A", 60.0)
    assert ledger.settlements == [("A", "S", "ID1", 60.0)]


def test_current_price_defaults_to_starting_price() -> None:
    auction = make_auction(ManualClock())
    assert auction.current_price() == 10.0
    assert auction.highest_bid() is None


def test_validation_order() -> None:
    clock = ManualClock()
    auction = make_auction(clock)

    # seller bidding below the starting price: the price check comes first
    assert auction.place_bid("S", 5.0).reason is Rejection.BELOW_STARTING_PRICE
    assert auction.place_bid("A", 10.0).reason is Rejection.BELOW_STARTING_PRICE
    assert auction.place_bid("A", 30.0).accepted
    assert auction.place_bid("S", 20.0).reason is Rejection.BELOW_CURRENT_BID
    assert auction.place_bid("S", 40.0).reason is Rejection.SELF_BID

    clock.advance(61)
    assert auction.place_bid("S", 5.0).reason is Rejection.AUCTION_CLOSED


def test_ties_with_best_bid_are_rejected() -> None:
    auction = make_auction(ManualClock())
    auction.place_bid("A", 25.0)
    result = auction.place_bid("B", 25.0)
    assert result.reason is Rejection.BELOW_CURRENT_BID
    assert result.threshold == 25.0
    assert auction.highest_bid().bidder_id == "A"


def test_self_bid_rejected_at_any_amount() -> None:
    auction = make_auction(ManualClock())
    for amount in (11.0, 100.0, 1e9):
        assert auction.place_bid("S", amount).reason is Rejection.SELF_BID
    assert auction.bid_history() == ()


def test_accepted_bids_strictly_increase() -> None:
    clock = ManualClock()
    auction = make_auction(clock)
    for bidder, amount in [
        ("A", 12), ("B", 11), ("B", 15), ("C", 15), ("A", 14), ("C", 30), ("B", 29.5),
    ]:
        clock.advance(0.5)
        auction.place_bid(bidder, amount)

    amounts = [b.amount for b in auction.bid_history()]
    assert amounts == [12, 15, 30]
    assert all(a < b for a, b in zip(amounts, amounts[1:]))
    assert auction.highest_bid().amount == 30


def test_admission_ordering_against_best() -> None:
    auction = make_auction(ManualClock())
    auction.place_bid("A", 20.0)
    for amount in (12.0, 19.99, 20.0):
        assert auction.place_bid("B", amount).reason is Rejection.BELOW_CURRENT_BID
    assert auction.place_bid("B", 20.01).accepted


def test_bidder_highs_and_history() -> None:
    clock = ManualClock()
    auction = make_auction(clock)
    auction.place_bid("A", 20.0)
    clock.advance(2)
    auction.place_bid("B", 25.0)
    clock.advance(2)
    auction.place_bid("A", 40.0)

    assert auction.bidder_highs() == {"A": 40.0, "B": 25.0}
    history = auction.bid_history()
    assert [(b.bidder_id, b.timestamp) for b in history] == [
        ("A", 0.0), ("B", 2.0), ("A", 4.0),
    ]
    assert all(b.item_id == "ID1" for b in history)


def test_expiry_freezes_bidding_but_not_closing() -> None:
    clock = ManualClock()
    auction = make_auction(clock)
    auction.place_bid("A", 70.0)

    clock.advance(60)
    assert auction.is_active()
    clock.advance(0.5)
    assert not auction.is_active()
    assert not auction.closed
    assert auction.place_bid("B", 90.0).reason is Rejection.AUCTION_CLOSED
    assert auction.current_price() == 70.0

    outcome = auction.end_auction(RecordingLedger())
    assert outcome.status is CloseStatus.SOLD
    assert outcome.winner_id == "A"


def test_no_bids_closes_unsold() -> None:
    ledger = RecordingLedger()
    outcome = make_auction(ManualClock()).end_auction(ledger)
    assert outcome.status is CloseStatus.UNSOLD
    assert outcome.reason is UnsoldReason.NO_BIDS
    assert ledger.settlements == []


def test_reserve_not_met_closes_unsold() -> None:
    ledger = RecordingLedger()
    auction = make_auction(ManualClock(), reserve=100.0)
    auction.place_bid("A", 99.0)
    assert not auction.has_reserve_been_met()

    outcome = auction.end_auction(ledger)
    assert outcome.status is CloseStatus.UNSOLD
    assert outcome.reason is UnsoldReason.RESERVE_NOT_MET
    assert ledger.settlements == []


def test_reserve_below_starting_price_is_met_without_bids() -> None:
    auction = make_auction(ManualClock(), starting=10.0, reserve=5.0)
    assert auction.has_reserve_been_met()
    assert auction.end_auction().reason is UnsoldReason.NO_BIDS


def test_close_is_idempotent() -> None:
    ledger = RecordingLedger()
    auction = make_auction(ManualClock())
    auction.place_bid("A", 60.0)

    first = auction.end_auction(ledger)
    second = auction.end_auction(ledger)
    assert first.status is CloseStatus.SOLD
    assert second.status is CloseStatus.ALREADY_CLOSED
    assert len(ledger.settlements) == 1
    assert auction.outcome() == first


def test_closed_auction_rejects_bids() -> None:
    auction = make_auction(ManualClock())
    auction.end_auction()
    assert not auction.is_active()
    assert auction.place_bid("A", 60.0).reason is Rejection.AUCTION_CLOSED


def test_decide_outcome_is_pure() -> None:
    auction = make_auction(ManualClock())
    auction.place_bid("A", 60.0)
    assert auction.decide_outcome().status is CloseStatus.SOLD
    assert auction.is_active()
    assert auction.outcome() is None


def test_settlement_failure_is_raised_and_not_reported_sold() -> None:
    auction = make_auction(ManualClock())
    auction.place_bid("A", 60.0)

    with pytest.raises(SettlementError):
        auction.end_auction(RecordingLedger(fail=True))
    assert auction.closed
    assert auction.outcome() is None
    assert auction.end_auction(RecordingLedger()).status is CloseStatus.ALREADY_CLOSED


def test_summary() -> None:
    clock = ManualClock()
    auction = make_auction(clock)
    auction.place_bid("A", 55.0)
    clock.advance(10.2)

    s = auction.summary()
    assert s.name == "Lamp"
    assert s.current_price == 55.0
    assert s.remaining_seconds == 49
    assert s.reserve_met
    assert s.total_bids == 1
    assert s.highest_bidder == "A"
    assert s.active


def test_concurrent_bids_keep_invariants() -> None:
    auction = make_auction(ManualClock(), starting=1.0)
    barrier = threading.Barrier(8)

    def bidder(n: int) -> None:
        barrier.wait()
        for i in range(200):
            auction.place_bid(f"B{n}", 2.0 + i * 8 + n)

    threads = [threading.Thread(target=bidder, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    amounts = [b.amount for b in auction.bid_history()]
    assert amounts
    assert all(a < b for a, b in zip(amounts, amounts[1:]))
    assert auction.current_price() == amounts[-1]


def test_non_finite_amounts_rejected() -> None:
    auction = make_auction(ManualClock())
    auction.place_bid("A", 50.0)
    for amount in (float("nan"), float("inf"), float("-inf")):
        result = auction.place_bid("B", amount)
        assert result.reason is Rejection.BELOW_STARTING_PRICE
    assert [b.amount for b in auction.bid_history()] == [50.0]
    assert auction.highest_bid().amount == 50.0


def test_non_finite_first_bid_rejected() -> None:
    auction = make_auction(ManualClock())
    assert not auction.place_bid("A", float("nan")).accepted
    assert auction.bid_history() == ()
    assert auction.highest_bid() is None


def test_winner_without_ledger_cannot_close() -> None:
    auction = make_auction(ManualClock())
    auction.place_bid("A", 60.0)

    with pytest.raises(SettlementError):
        auction.end_auction()
    assert not auction.closed
    assert auction.outcome() is None

    ledger = RecordingLedger()
    assert auction.end_auction(ledger).status is CloseStatus.SOLD
    assert ledger.settlements == [("A", "S", "ID1", 60.0)]


def test_item_is_not_mutated_on_close() -> None:
    auction = make_auction(ManualClock())
    original = auction.item
    auction.end_auction()
    assert original.is_active
    assert not auction.item.is_active
    assert auction.item.starting_price == original.starting_price
    with pytest.raises(dataclasses.FrozenInstanceError):
        auction.item.starting_price = 1.0


def test_best_bid_tracks_history() -> None:
    clock = ManualClock()
    auction = make_auction(clock)
    for bidder, amount in [("A", 20.0), ("B", 35.0), ("C", 30.0), ("C", 41.0)]:
        clock.advance(1)
        auction.place_bid(bidder, amount)
    assert auction.highest_bid() == best_of(auction.bid_history())
