from __future__ import annotations

import logging
import threading
from typing import Dict, Iterator, List, Optional

from gavel.auction import Auction
from gavel.core import AuctionNotFound, DuplicateAuctionId

log = logging.getLogger("gavel.registry")


class AuctionRegistry:
    """One auction per item id for the lifetime of the process."""

    def __init__(self):
        self._auctions: Dict[str, Auction] = {}
        self._lock = threading.Lock()

    def add(self, auction: Auction) -> Auction:
        with self._lock:
            if auction.id in self._auctions:
                # ids come from a unique source; a collision is a bug upstream
                log.error("Duplicate auction id %s", auction.id)
                raise DuplicateAuctionId(f"auction {auction.id} already registered")
            self._auctions[auction.id] = auction
        return auction

    def get(self, item_id: str) -> Auction:
        auction = self.find(item_id)
        if auction is None:
            raise AuctionNotFound(item_id)
        return auction

    def find(self, item_id: str) -> Optional[Auction]:
        with self._lock:
            return self._auctions.get(item_id)

    def active(self) -> List[Auction]:
        """Auctions accepting bids right now; evaluated on every call."""
        return [a for a in self if a.is_active()]

    def __iter__(self) -> Iterator[Auction]:
        with self._lock:
            snapshot = list(self._auctions.values())
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._auctions)

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._auctions
