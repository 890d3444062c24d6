"""
One trading day of LOBSTER data, aligned into (event, pre-state, post-state)
transitions, and the statistics the calibration is built on.
"""
from typing import Optional, Dict, List, Tuple
import logging

import numpy as np

from ..core.types import Side
from ..statistics.distribution import DiscreteDistribution
from .types import LobEvent, LobEventType, LobState, DUMMY_PRICE

logger = logging.getLogger(__name__)

# Message columns
TIME, TYPE, ORDER_ID, VOLUME, PRICE, DIRECTION = range(6)

class TradingData:
    """
    Aligned message / orderbook matrices of a single trading day.

    The k-th message row describes the event that moved the book from
    orderbook row k-1 to orderbook row k, so the first message has no
    pre-state and is dropped.
    """

    def __init__(
        self,
        level: int,
        messages: np.ndarray,
        orderbook: np.ndarray,
        skip_first_seconds: float = 0.0,
        skip_last_seconds: float = 0.0
    ):
        messages = np.asarray(messages, dtype=float).reshape(-1, 6)
        if len(messages) == 0:
            raise ValueError("Trading data needs at least one message row")
        orderbook = np.asarray(orderbook, dtype=np.int64).reshape(len(messages), -1)
        if orderbook.shape[1] != 4 * level:
            raise ValueError(f"Expected {4 * level} orderbook columns for level {level}, got {orderbook.shape[1]}")

        self.level = level

        # ====================================================================
        # Skip the first and last seconds of the day
        # ====================================================================
        times = messages[:, TIME]
        t0, t1 = times.min(), times.max()

        first = np.flatnonzero(times >= t0 + skip_first_seconds)
        if first.size == 0:
            # Only the closing state survives, no events
            logger.warning(f"Skipping the first {skip_first_seconds}s leaves no events")
            messages, orderbook = messages[-1:], orderbook[-1:]
        elif first[0] > 1:
            k1 = int(first[0]) - 1
            messages, orderbook = messages[k1:], orderbook[k1:]
        times = messages[:, TIME]

        last = np.flatnonzero(times <= t1 - skip_last_seconds)
        if last.size == 0:
            logger.warning(f"Skipping the last {skip_last_seconds}s leaves no events")
            messages, orderbook = messages[:1], orderbook[:1]
        else:
            k2 = int(last[-1]) + 1
            messages, orderbook = messages[:k2], orderbook[:k2]

        self.messages = messages
        self.orderbook = orderbook

        self.start_time = float(messages[:, TIME].min())
        self.end_time = float(messages[:, TIME].max())
        self.duration = self.end_time - self.start_time

        # ====================================================================
        # Transitions: event k <-> (orderbook[k-1], orderbook[k])
        # ====================================================================
        self.time = messages[1:, TIME]
        self.event_type = messages[1:, TYPE].astype(np.int64)
        self.order_id = messages[1:, ORDER_ID].astype(np.int64)
        self.volume = messages[1:, VOLUME].astype(np.int64)
        self.price = messages[1:, PRICE].astype(np.int64)
        self.side = messages[1:, DIRECTION].astype(np.int64)
        self._pre = orderbook[:-1]
        self._post = orderbook[1:]

        self.price_tick_size = self._infer_tick_size()

        self._states: Optional[List[LobState]] = None
        self._events: Optional[List[LobEvent]] = None
        self._depth_profiles: Dict[Optional[Side], DiscreteDistribution] = {}

    # ========================================================================
    # CLASSIFICATION
    # ========================================================================

    @property
    def limit_mask(self) -> np.ndarray:
        return self.event_type == LobEventType.SUBMISSION.value

    @property
    def market_mask(self) -> np.ndarray:
        return self.event_type == LobEventType.EXECUTION_VISIBLE.value

    @property
    def canceled_mask(self) -> np.ndarray:
        return np.isin(
            self.event_type,
            (LobEventType.CANCELLATION.value, LobEventType.DELETION.value)
        )

    @property
    def limit_orders(self) -> List[LobEvent]:
        return self._select(self.limit_mask)

    @property
    def market_orders(self) -> List[LobEvent]:
        return self._select(self.market_mask)

    @property
    def canceled_orders(self) -> List[LobEvent]:
        return self._select(self.canceled_mask)

    @property
    def number_of_events(self) -> int:
        return len(self.time)

    # ========================================================================
    # RECORDS
    # ========================================================================

    @property
    def states(self) -> List[LobState]:
        if self._states is None:
            self._states = [LobState.from_row(row) for row in self.orderbook]
        return self._states

    @property
    def events(self) -> List[LobEvent]:
        if self._events is None:
            states = self.states
            self._events = []
            for k, row in enumerate(self.messages[1:], start=1):
                event = LobEvent.from_row(row)
                event.initial_state = states[k - 1]
                event.final_state = states[k]
                self._events.append(event)
        return self._events

    def _select(self, mask: np.ndarray) -> List[LobEvent]:
        events = self.events
        return [events[i] for i in np.flatnonzero(mask)]

    # ========================================================================
    # PRICES
    # ========================================================================

    @property
    def best_ask_before(self) -> np.ndarray:
        return self._pre[:, 0]

    @property
    def best_bid_before(self) -> np.ndarray:
        return self._pre[:, 2]

    @property
    def distance_best_opposite_quote(self) -> np.ndarray:
        """
        Buy: best ask - price, sell: price - best bid, both taken from the
        pre-event state. NaN where the opposite side was empty.
        """
        ask, bid = self.best_ask_before, self.best_bid_before
        distance = np.where(self.side == Side.BUY.value, ask - self.price, self.price - bid).astype(float)
        missing = np.where(self.side == Side.BUY.value, ask == DUMMY_PRICE, bid == -DUMMY_PRICE)
        distance[missing] = np.nan
        return distance

    def _infer_tick_size(self) -> int:
        prices = np.concatenate([self.orderbook[:, 0::4].ravel(), self.orderbook[:, 2::4].ravel()])
        prices = np.unique(prices[np.abs(prices) != DUMMY_PRICE])
        diffs = np.diff(prices)
        diffs = diffs[diffs > 0]
        if diffs.size == 0:
            logger.warning("Cannot infer the price tick size from fewer than two price levels, using 1")
            return 1
        return int(np.gcd.reduce(diffs))

    def price_process(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(time, bid, ask) after each event, keeping the last state per timestamp"""
        last = np.append(self.time[1:] != self.time[:-1], True) if len(self.time) else np.array([], dtype=bool)
        return self.time[last], self._post[last, 2], self._post[last, 0]

    # ========================================================================
    # DISTRIBUTIONS (keyed by distance to the best opposite quote)
    # ========================================================================

    def _volume_distribution(self, mask: np.ndarray, side: Optional[Side]) -> DiscreteDistribution:
        distance = self.distance_best_opposite_quote
        mask = mask & ~np.isnan(distance)
        if side is not None:
            mask = mask & (self.side == side.value)
        return DiscreteDistribution.from_samples(distance[mask], self.volume[mask].astype(float))

    def limit_order_distribution(self, side: Optional[Side] = None) -> DiscreteDistribution:
        """Submitted limit volume per distance"""
        return self._volume_distribution(self.limit_mask, side)

    def canceled_order_distribution(self, side: Optional[Side] = None) -> DiscreteDistribution:
        """Canceled and deleted volume per distance"""
        return self._volume_distribution(self.canceled_mask, side)

    def average_depth_profile(self, side: Optional[Side] = None) -> DiscreteDistribution:
        """
        Visible depth per distance to the best opposite quote, averaged over
        the day with each post-event state weighted by how long it was held.
        Without a side the result is the mean of the buy and sell profiles.
        """
        if side in self._depth_profiles:
            return self._depth_profiles[side]

        if side is None:
            buy = self.average_depth_profile(Side.BUY)
            sell = self.average_depth_profile(Side.SELL)
            keys = set(buy.keys.tolist()) | set(sell.keys.tolist())
            profile = DiscreteDistribution({k: 0.5 * (buy.weight(k) + sell.weight(k)) for k in keys})
        else:
            profile = self._one_sided_depth_profile(side)

        self._depth_profiles[side] = profile
        return profile

    def _one_sided_depth_profile(self, side: Side) -> DiscreteDistribution:
        states = self._post[:-1]
        holding = np.diff(self.time)
        total_weight = holding.sum()
        if len(states) == 0 or total_weight <= 0:
            return DiscreteDistribution({})

        if side == Side.SELL:
            prices, volumes = states[:, 0::4], states[:, 1::4]
            opposite = states[:, 2]
            valid_quote = opposite != -DUMMY_PRICE
            valid_level = prices != DUMMY_PRICE
            distance = prices - opposite[:, None]
        else:
            prices, volumes = states[:, 2::4], states[:, 3::4]
            opposite = states[:, 0]
            valid_quote = opposite != DUMMY_PRICE
            valid_level = prices != -DUMMY_PRICE
            distance = opposite[:, None] - prices

        mask = valid_level & valid_quote[:, None]
        weights = (holding / total_weight)[:, None] * volumes
        return DiscreteDistribution.from_samples(distance[mask], weights[mask])

    def cancellation_rate_distribution(self) -> DiscreteDistribution:
        """Canceled volume per unit of average depth and time, per distance"""
        if self.duration <= 0:
            return DiscreteDistribution({})
        rate = self.canceled_order_distribution().divide(self.average_depth_profile())
        return rate.scale(1.0, 1.0 / self.duration)

    # ========================================================================
    # CONSISTENCY CHECKS
    # ========================================================================

    def check_consistency(self) -> Dict[str, int]:
        """
        Verify every classified event against its pre/post states.
        Returns the number of inconsistent events per class.
        """
        unique_times = np.unique(self.time).size
        if unique_times != len(self.time):
            logger.warning(f"{len(self.time) - unique_times} events share a timestamp with another event")

        results = {}
        for name, orders, check in (
            ("limit", self.limit_orders, self._is_consistent_limit_order),
            ("market", self.market_orders, self._is_consistent_market_order),
            ("canceled", self.canceled_orders, self._is_consistent_canceled_order),
        ):
            inconsistent = sum(1 for order in orders if not check(order))
            if inconsistent:
                logger.error(f"Inconsistent {name} orders: {inconsistent} of {len(orders)}")
            else:
                logger.info(f"All {len(orders)} {name} orders are consistent")
            results[name] = inconsistent
        return results

    @staticmethod
    def _is_consistent_limit_order(order: LobEvent) -> bool:
        consistent = True
        before, after = order.initial_state, order.final_state

        if order.price <= 0:
            logger.error(f"Limit order {order.order_id} (t={order.time}): price is not positive")
            consistent = False
        if order.volume <= 0:
            logger.error(f"Limit order {order.order_id} (t={order.time}): volume is not positive")
            consistent = False
        if order.side == Side.SELL and before.best_bid is not None and not order.price > before.best_bid:
            logger.error(f"Limit sell {order.order_id} (t={order.time}): price {order.price} <= best bid {before.best_bid}")
            consistent = False
        if order.side == Side.BUY and before.best_ask is not None and not order.price < before.best_ask:
            logger.error(f"Limit buy {order.order_id} (t={order.time}): price {order.price} >= best ask {before.best_ask}")
            consistent = False
        if after.depth(order.price, order.side) - before.depth(order.price, order.side) != order.volume:
            logger.error(f"Limit order {order.order_id} (t={order.time}): depth change differs from volume")
            consistent = False
        return consistent

    def _is_consistent_market_order(self, order: LobEvent) -> bool:
        consistent = True
        before, after = order.initial_state, order.final_state
        best = before.best_bid if order.side == Side.BUY else before.best_ask

        if order.volume <= 0:
            logger.error(f"Market order {order.order_id} (t={order.time}): volume is not positive")
            consistent = False
        if order.price != best:
            logger.error(f"Market order {order.order_id} (t={order.time}): price {order.price} != best quote {best}")
            consistent = False
        elif self._depth_difference_near_spread(order.side, before, after) != order.volume:
            logger.error(f"Market order {order.order_id} (t={order.time}): executed depth differs from volume")
            consistent = False
        return consistent

    @staticmethod
    def _is_consistent_canceled_order(order: LobEvent) -> bool:
        consistent = True
        before, after = order.initial_state, order.final_state

        if order.side == Side.BUY:
            inside = before.best_bid is not None and order.price <= before.best_bid
        else:
            inside = before.best_ask is not None and order.price >= before.best_ask

        if not inside:
            logger.error(f"Canceled order {order.order_id} (t={order.time}): price {order.price} is inside the spread")
            consistent = False
        elif before.depth(order.price, order.side) - after.depth(order.price, order.side) != order.volume:
            logger.error(f"Canceled order {order.order_id} (t={order.time}): depth change differs from volume")
            consistent = False
        return consistent

    def _depth_difference_near_spread(self, side: Side, before: LobState, after: LobState) -> int:
        """Depth removed walking away from the best quote until a level is untouched"""
        step = -self.price_tick_size if side == Side.BUY else self.price_tick_size
        price = before.best_bid if side == Side.BUY else before.best_ask
        total = 0
        while True:
            removed = before.depth(price, side) - after.depth(price, side)
            total += removed
            if removed <= 0:
                return total
            price += step

    def __repr__(self):
        return (
            f"TradingData(level={self.level}, events={self.number_of_events}, "
            f"start={self.start_time}, end={self.end_time})"
        )
