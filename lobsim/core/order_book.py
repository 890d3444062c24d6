"""
Aggregate-depth limit order book.
Each side maps price tick -> depth; levels are deleted, never zeroed.
"""
from sortedcontainers import SortedDict
from typing import Optional, List, Tuple, Dict, Mapping
import logging

from .types import Side, OrderBookEvent, Price, EmptyBookSideError, CrossedBookError

logger = logging.getLogger(__name__)

class LimitOrderBook:
    """
    Order book tracking outstanding depth per price tick on both sides.

    Individual orders are not tracked: a submission adds depth at a tick,
    a market order removes depth at the best opposite quote and a
    cancellation removes depth at a given tick.
    """

    def __init__(self, time: float = 0.0):
        self.bids: SortedDict = SortedDict()  # price -> depth (best = last key)
        self.asks: SortedDict = SortedDict()  # price -> depth (best = first key)
        self.time = time

        # time -> Price, only recorded while both sides are populated
        self.price_time_series: SortedDict = SortedDict()
        self.counter: Dict[OrderBookEvent, int] = {event: 0 for event in OrderBookEvent}

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    @property
    def best_bid(self) -> Optional[int]:
        """Best bid price, None if the buy side is empty"""
        return self.bids.keys()[-1] if self.bids else None

    @property
    def best_ask(self) -> Optional[int]:
        """Best ask price, None if the sell side is empty"""
        return self.asks.keys()[0] if self.asks else None

    @property
    def spread(self) -> Optional[int]:
        if self.bids and self.asks:
            return self.best_ask - self.best_bid
        return None

    @property
    def mid_price(self) -> Optional[float]:
        if self.bids and self.asks:
            return 0.5 * (self.best_bid + self.best_ask)
        return None

    @property
    def is_empty(self) -> bool:
        return not self.bids and not self.asks

    def is_side_empty(self, side: Side) -> bool:
        return not self._levels(side)

    def depth(self, side: Side, price: int) -> int:
        """Depth at a price tick (0 if there is no level)"""
        return self._levels(side).get(price, 0)

    def depth_profile(self, side: Side) -> List[Tuple[int, int]]:
        """(price, depth) pairs in ascending price order"""
        return list(self._levels(side).items())

    def number_of_orders(self, side: Side, price_min: int, price_max: int) -> int:
        """Total depth on a side with price in [price_min, price_max]"""
        levels = self._levels(side)
        return sum(levels[price] for price in levels.irange(price_min, price_max))

    def inverse_cdf(self, side: Side, price_min: int, price_max: int, rank: int) -> int:
        """
        Walk prices upward from price_min accumulating depth and return
        the first price where the cumulative depth reaches rank.
        """
        levels = self._levels(side)
        total = 0
        for price in levels.irange(price_min, price_max):
            total += levels[price]
            if total >= rank:
                return price
        raise ValueError(
            f"rank={rank} exceeds the depth {total} on the {side.name.lower()} side "
            f"within [{price_min}, {price_max}]"
        )

    def random_price(self, side: Side, price_min: int, price_max: int, random) -> int:
        """Draw a price from [price_min, price_max] weighted by its depth"""
        levels = self._levels(side)
        weights = {price: levels[price] for price in levels.irange(price_min, price_max)}
        if not weights:
            raise EmptyBookSideError(
                side,
                f"No {side.name.lower()} depth within [{price_min}, {price_max}]"
            )
        return random.from_weights(weights)

    # ========================================================================
    # MUTATION METHODS
    # ========================================================================

    def submit_limit_buy_order(self, price: int, amount: int = 1):
        if self.asks and price >= self.best_ask:
            raise CrossedBookError(f"Limit buy at {price} would cross the best ask {self.best_ask}")
        self._add(Side.BUY, price, amount)
        self.counter[OrderBookEvent.SUBMIT_LIMIT_BUY] += 1

    def submit_limit_sell_order(self, price: int, amount: int = 1):
        if self.bids and price <= self.best_bid:
            raise CrossedBookError(f"Limit sell at {price} would cross the best bid {self.best_bid}")
        self._add(Side.SELL, price, amount)
        self.counter[OrderBookEvent.SUBMIT_LIMIT_SELL] += 1

    def submit_market_buy_order(self, amount: int = 1) -> int:
        """Match against the best ask, returns the matched price"""
        price = self.best_ask
        if price is None:
            raise EmptyBookSideError(Side.SELL, "Market buy order without any sell depth")
        self._remove(Side.SELL, price, amount)
        self.counter[OrderBookEvent.SUBMIT_MARKET_BUY] += 1
        return price

    def submit_market_sell_order(self, amount: int = 1) -> int:
        """Match against the best bid, returns the matched price"""
        price = self.best_bid
        if price is None:
            raise EmptyBookSideError(Side.BUY, "Market sell order without any buy depth")
        self._remove(Side.BUY, price, amount)
        self.counter[OrderBookEvent.SUBMIT_MARKET_SELL] += 1
        return price

    def cancel_limit_buy_order(self, price: int, amount: int = 1):
        self._remove(Side.BUY, price, amount)
        self.counter[OrderBookEvent.CANCEL_LIMIT_BUY] += 1

    def cancel_limit_sell_order(self, price: int, amount: int = 1):
        self._remove(Side.SELL, price, amount)
        self.counter[OrderBookEvent.CANCEL_LIMIT_SELL] += 1

    def initialize_depth_profile(self, side: Side, depth: Mapping[int, int]):
        """Replace a side with the given price -> depth mapping"""
        levels = self._levels(side)
        levels.clear()
        for price, amount in depth.items():
            if amount > 0:
                levels[int(price)] = int(amount)
        self._save_current_price()

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _levels(self, side: Side) -> SortedDict:
        return self.bids if side == Side.BUY else self.asks

    def _add(self, side: Side, price: int, amount: int):
        levels = self._levels(side)
        levels[price] = levels.get(price, 0) + amount
        self._save_current_price()

    def _remove(self, side: Side, price: int, amount: int):
        levels = self._levels(side)
        if price not in levels:
            return

        remaining = levels[price] - amount
        if remaining <= 0:
            del levels[price]  # Over-cancellation floors the level
        else:
            levels[price] = remaining
        self._save_current_price()

    def _save_current_price(self):
        if not self.bids or not self.asks:
            return

        price = Price(bid=self.best_bid, ask=self.best_ask)
        series = self.price_time_series
        if self.time in series:
            # Same timestamp: compare against the entry the overwrite would follow
            index = series.index(self.time)
            if index > 0 and series.values()[index - 1] == price:
                del series[self.time]
            else:
                series[self.time] = price
            return

        if series and series.values()[-1] == price:
            return
        series[self.time] = price

    def __repr__(self):
        return (
            f"LimitOrderBook(time={self.time}, "
            f"bid={self.best_bid}, ask={self.best_ask}, "
            f"bids={len(self.bids)}, asks={len(self.asks)})"
        )
