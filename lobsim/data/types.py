"""
LOBSTER records: message rows (events) and order book rows (states).
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Sequence

import numpy as np

from ..core.types import Side

# Unoccupied levels are filled with -DUMMY_PRICE (bid) / +DUMMY_PRICE (ask), volume 0
DUMMY_PRICE = 9999999999

# ============================================================================
# ENUMS
# ============================================================================

class LobEventType(Enum):
    SUBMISSION = 1          # new limit order
    CANCELLATION = 2        # partial deletion of a limit order
    DELETION = 3            # total deletion of a limit order
    EXECUTION_VISIBLE = 4   # execution of a visible limit order
    EXECUTION_HIDDEN = 5    # execution of a hidden limit order
    CROSS_TRADE = 6         # auction trade
    TRADING_HALT = 7

# ============================================================================
# ORDER BOOK SNAPSHOT
# ============================================================================

@dataclass(frozen=True)
class LobState:
    """
    Snapshot of the N visible levels of each side, best level first.
    Dummy levels are never stored.
    """
    ask_price: np.ndarray
    ask_volume: np.ndarray
    bid_price: np.ndarray
    bid_volume: np.ndarray

    @classmethod
    def from_row(cls, row: Sequence[int]) -> 'LobState':
        """Parse an orderbook row: ask price, ask size, bid price, bid size per level"""
        row = np.asarray(row, dtype=np.int64)
        if row.size % 4 != 0:
            raise ValueError(f"Orderbook row has {row.size} columns, expected a multiple of 4")

        ask_price, ask_volume = row[0::4], row[1::4]
        bid_price, bid_volume = row[2::4], row[3::4]
        ask_mask = ask_price != DUMMY_PRICE
        bid_mask = bid_price != -DUMMY_PRICE
        return cls(
            ask_price=ask_price[ask_mask],
            ask_volume=ask_volume[ask_mask],
            bid_price=bid_price[bid_mask],
            bid_volume=bid_volume[bid_mask],
        )

    @property
    def best_ask(self) -> Optional[int]:
        return int(self.ask_price[0]) if self.ask_price.size else None

    @property
    def best_bid(self) -> Optional[int]:
        return int(self.bid_price[0]) if self.bid_price.size else None

    @property
    def spread(self) -> Optional[int]:
        if self.best_ask is None or self.best_bid is None:
            return None
        return self.best_ask - self.best_bid

    @property
    def asks(self) -> Dict[int, int]:
        return dict(zip(self.ask_price.tolist(), self.ask_volume.tolist()))

    @property
    def bids(self) -> Dict[int, int]:
        return dict(zip(self.bid_price.tolist(), self.bid_volume.tolist()))

    def depth(self, price: int, side: Side) -> int:
        """Visible volume at a price (0 if the level is not in the snapshot)"""
        prices, volumes = (
            (self.bid_price, self.bid_volume) if side == Side.BUY
            else (self.ask_price, self.ask_volume)
        )
        hits = np.flatnonzero(prices == price)
        return int(volumes[hits[0]]) if hits.size else 0

    def __str__(self):
        return f"LobState(bid={self.best_bid}, ask={self.best_ask}, levels={self.ask_price.size}/{self.bid_price.size})"

# ============================================================================
# MESSAGE
# ============================================================================

@dataclass
class LobEvent:
    """A message row, linked to the book state before and after it"""
    time: float
    type: LobEventType
    order_id: int
    volume: int
    price: int
    side: Side
    initial_state: Optional[LobState] = field(default=None, repr=False)
    final_state: Optional[LobState] = field(default=None, repr=False)

    @classmethod
    def from_row(cls, row: Sequence[float]) -> 'LobEvent':
        """Parse a message row: time, type, order id, size, price, direction"""
        if len(row) != 6:
            raise ValueError(f"Message row has {len(row)} columns, expected 6")
        return cls(
            time=float(row[0]),
            type=LobEventType(int(row[1])),
            order_id=int(row[2]),
            volume=int(row[3]),
            price=int(row[4]),
            side=Side(int(row[5])),
        )

    @property
    def distance_best_opposite_quote(self) -> Optional[int]:
        """
        Buy: best ask - price, sell: price - best bid (pre-event state).
        None without a pre-event state or when the opposite side is empty.
        """
        if self.initial_state is None:
            return None
        if self.side == Side.BUY:
            quote = self.initial_state.best_ask
            return None if quote is None else quote - self.price
        quote = self.initial_state.best_bid
        return None if quote is None else self.price - quote
