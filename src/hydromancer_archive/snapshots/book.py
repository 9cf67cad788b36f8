"""
Orderbook view over a decoded L4 snapshot.

Provides:
- SortedDict for price-sorted levels (like BTreeMap)
- Insertion-ordered dict per price level for FIFO queue position
- O(1) order lookup by order ID and by wallet

Snapshot orders are resting orders, so the book never matches.
All prices and sizes are integers scaled by 10^8.
Use format_price() and format_size() for display.
"""

from typing import Iterable, Iterator, Optional

from sortedcontainers import SortedDict

from ..identifiers import parse_wallet_address
from ..orderlog.records import Side
from ..scaling import format_price, format_size
from .reader import SnapshotOrder


class PriceLevel:
    """Orders resting at one price, oldest first."""

    def __init__(self):
        self.orders: dict[int, SnapshotOrder] = {}  # oid -> order, insertion = queue order

    def __len__(self) -> int:
        return len(self.orders)

    def is_empty(self) -> bool:
        return not self.orders

    def push_back(self, order: SnapshotOrder):
        """Add order to end of queue (newest)."""
        self.orders.setdefault(order.oid, order)

    def remove(self, oid: int) -> bool:
        """Remove order by oid. Returns True if found."""
        return self.orders.pop(oid, None) is not None

    def get(self, oid: int) -> Optional[SnapshotOrder]:
        return self.orders.get(oid)

    def total_size(self) -> int:
        """Sum of all order sizes at this level (scaled)."""
        return sum(o.sz for o in self.orders.values())

    def iter_orders(self) -> Iterator[SnapshotOrder]:
        """Iterate orders in FIFO order (oldest first)."""
        return iter(self.orders.values())


class OrderBook:
    """
    Single market L4 book rebuilt from snapshot orders.

    Uses:
    - SortedDict for price-sorted levels (bids keyed by -px so best is first)
    - PriceLevel for FIFO queue at each price
    - dict for O(1) order lookup by oid and by wallet
    """

    def __init__(self, asset_id: int):
        self.asset_id = asset_id
        # Bids: highest price first (negative keys for reverse sort)
        self.bids: SortedDict[int, PriceLevel] = SortedDict()
        # Asks: lowest price first
        self.asks: SortedDict[int, PriceLevel] = SortedDict()
        # O(1) lookup: oid -> (side, px)
        self.oid_to_loc: dict[int, tuple[Side, int]] = {}
        # O(1) lookup: wallet -> set of oids
        self.wallet_to_oids: dict[bytes, set[int]] = {}
        # Cached counts for O(1) order_count
        self._bid_count: int = 0
        self._ask_count: int = 0

    @classmethod
    def from_orders(cls, asset_id: int, orders: Iterable[SnapshotOrder]) -> "OrderBook":
        """Build a book from snapshot orders, keeping their file order as queue order."""
        book = cls(asset_id)
        for order in orders:
            book.add_order(order)
        return book

    def _get_book(self, side: Side) -> SortedDict:
        return self.bids if side == Side.BID else self.asks

    @staticmethod
    def _key(side: Side, px: int) -> int:
        return -px if side == Side.BID else px

    def add_order(self, order: SnapshotOrder):
        """Add a resting order. Duplicate oids are ignored."""
        if order.oid in self.oid_to_loc:
            return
        book = self._get_book(order.side)
        key = self._key(order.side, order.px)
        if key not in book:
            book[key] = PriceLevel()
        book[key].push_back(order)
        self.oid_to_loc[order.oid] = (order.side, order.px)
        self.wallet_to_oids.setdefault(order.wallet, set()).add(order.oid)
        if order.side == Side.BID:
            self._bid_count += 1
        else:
            self._ask_count += 1

    def remove_order(self, oid: int) -> bool:
        """Remove order from book."""
        if oid not in self.oid_to_loc:
            return False
        side, px = self.oid_to_loc.pop(oid)
        book = self._get_book(side)
        key = self._key(side, px)
        level = book[key]
        order = level.get(oid)
        oids = self.wallet_to_oids.get(order.wallet)
        if oids is not None:
            oids.discard(oid)
            if not oids:
                del self.wallet_to_oids[order.wallet]
        level.remove(oid)
        if level.is_empty():
            del book[key]
        if side == Side.BID:
            self._bid_count -= 1
        else:
            self._ask_count -= 1
        return True

    def best_bid(self) -> Optional[int]:
        """Get best bid price (highest), scaled."""
        if not self.bids:
            return None
        # First key is most negative = highest price
        return -self.bids.peekitem(0)[0]

    def best_ask(self) -> Optional[int]:
        """Get best ask price (lowest), scaled."""
        if not self.asks:
            return None
        return self.asks.peekitem(0)[0]

    def best_bid_size(self) -> Optional[int]:
        if not self.bids:
            return None
        return self.bids.peekitem(0)[1].total_size()

    def best_ask_size(self) -> Optional[int]:
        if not self.asks:
            return None
        return self.asks.peekitem(0)[1].total_size()

    def spread(self) -> Optional[int]:
        bid, ask = self.best_bid(), self.best_ask()
        if bid is not None and ask is not None:
            return ask - bid
        return None

    def mid_price(self) -> Optional[int]:
        bid, ask = self.best_bid(), self.best_ask()
        if bid is not None and ask is not None:
            return (bid + ask) // 2
        return None

    def order_count(self) -> tuple[int, int]:
        """Return (bid_count, ask_count)."""
        return self._bid_count, self._ask_count

    # Convenience methods for formatted output
    def best_bid_str(self) -> str:
        bid = self.best_bid()
        return format_price(bid) if bid is not None else "N/A"

    def best_ask_str(self) -> str:
        ask = self.best_ask()
        return format_price(ask) if ask is not None else "N/A"

    def spread_str(self) -> str:
        s = self.spread()
        return format_price(s) if s is not None else "N/A"

    def mid_price_str(self) -> str:
        m = self.mid_price()
        return format_price(m) if m is not None else "N/A"

    # =========================================================================
    # Query Helpers
    # =========================================================================

    def get_order(self, oid: int) -> Optional[SnapshotOrder]:
        """Get an order by its ID. O(1) lookup."""
        if oid not in self.oid_to_loc:
            return None
        side, px = self.oid_to_loc[oid]
        return self._get_book(side)[self._key(side, px)].get(oid)

    def orders_by_user(self, user: str, side: Optional[Side] = None) -> list[SnapshotOrder]:
        """
        Get all orders from a wallet address. O(k) where k = wallet's order count.

        Args:
            user: 0x-prefixed wallet address (any case)
            side: Optional filter - Side.BID, Side.ASK, or None for both

        Returns:
            List of SnapshotOrder objects from the wallet
        """
        wallet = parse_wallet_address(user)
        if wallet is None or wallet not in self.wallet_to_oids:
            return []
        orders = []
        for oid in self.wallet_to_oids[wallet]:
            order = self.get_order(oid)
            if order and (side is None or order.side == side):
                orders.append(order)
        return orders

    def depth(self, side: Side, levels: Optional[int] = None) -> list[tuple[int, int, int]]:
        """
        Aggregate the book into price levels, best first.

        Args:
            side: Side.BID or Side.ASK
            levels: Max number of levels, None for all

        Returns:
            List of (px, total_sz, order_count), scaled
        """
        book = self._get_book(side)
        result = []
        for key, level in book.items():
            if levels is not None and len(result) >= levels:
                break
            px = -key if side == Side.BID else key
            result.append((px, level.total_size(), len(level)))
        return result
