"""
Continuous-time simulation of the Smith-Farmer zero-intelligence model.

Six independent Poisson processes compete at every step:
- market buy / sell at rate mu
- limit buy / sell at rate alpha * L, placed uniformly within L ticks of the opposite quote
- cancel buy / sell at rate delta * (depth within L ticks of the own best quote)
"""
from dataclasses import dataclass, field
from itertools import islice
from typing import Optional, Mapping, Dict, List, Tuple
import logging
import time as wall_clock

import numpy as np

from .core.order_book import LimitOrderBook
from .core.types import Side, OrderBookEvent, EVENT_KINDS, Price, EmptyBookSideError
from .data.trading_data import TradingData
from .data.types import LobEventType, DUMMY_PRICE
from .parameters import ModelParameter
from .statistics.random_stream import RandomStream

logger = logging.getLogger(__name__)

# ============================================================================
# EVENT RATES
# ============================================================================

def compute_event_rates(parameter: ModelParameter, bid_depth: float, ask_depth: float) -> np.ndarray:
    """Rates of the six events, laid out in EVENT_KINDS order"""
    mu = parameter.market_order_rate
    limit_rate = parameter.limit_order_rate_density * parameter.simulation_interval_size
    delta = parameter.cancellation_rate
    return np.array([mu, mu, limit_rate, limit_rate, delta * bid_depth, delta * ask_depth], dtype=float)

def event_probabilities(
    parameter: ModelParameter,
    bid_depth: float,
    ask_depth: float
) -> Dict[OrderBookEvent, float]:
    rates = compute_event_rates(parameter, bid_depth, ask_depth)
    total = rates.sum()
    if total <= 0:
        raise ValueError(f"Total event rate must be positive, got {total}")
    return dict(zip(EVENT_KINDS, (rates / total).tolist()))

def flat_depth_profile(depth: int, best_bid: int, best_ask: int, levels: int) -> Tuple[Dict[int, int], Dict[int, int]]:
    """(bids, asks) with the same depth on `levels` ticks below the bid and above the ask"""
    if best_bid >= best_ask:
        raise ValueError(f"Best bid {best_bid} must be below best ask {best_ask}")
    bids = {best_bid - i: depth for i in range(levels)}
    asks = {best_ask + i: depth for i in range(levels)}
    return bids, asks

# ============================================================================
# RESULTS
# ============================================================================

@dataclass
class SimulationStats:
    """Run metrics"""
    events_processed: int = 0
    start_time: float = 0.0
    current_time: float = 0.0
    wall_time_seconds: float = 0.0
    stopped: bool = False

@dataclass
class SimulationResult:
    price_time_series: List[Tuple[float, Price]]
    bids: List[Tuple[int, int]]
    asks: List[Tuple[int, int]]
    counter: Dict[OrderBookEvent, int]
    events_processed: int
    start_time: float
    end_time: float
    stopped: bool = False

    @property
    def final_price(self) -> Optional[Price]:
        return self.price_time_series[-1][1] if self.price_time_series else None

# ============================================================================
# SIMULATION
# ============================================================================

class SmithFarmerSimulation:
    """
    Drives a LimitOrderBook with the six competing order flow events.

    The run terminates when the requested duration is reached, when
    `stop()` is called, or with EmptyBookSideError as soon as a side of
    the book runs empty.
    """

    def __init__(
        self,
        parameter: ModelParameter,
        initial_bids: Mapping[int, int],
        initial_asks: Mapping[int, int],
        random: Optional[RandomStream] = None,
        start_time: float = 0.0
    ):
        if parameter.simulation_interval_size <= 0:
            raise ValueError(f"Simulation interval size must be positive, got {parameter.simulation_interval_size}")

        self.parameter = parameter
        self.interval = parameter.simulation_interval_size
        self.random = random if random is not None else RandomStream()

        self.book = LimitOrderBook(time=start_time)
        self.book.initialize_depth_profile(Side.BUY, initial_bids)
        self.book.initialize_depth_profile(Side.SELL, initial_asks)
        self._check_sides()
        if self.book.best_bid >= self.book.best_ask:
            raise ValueError(f"Initial book is crossed: bid {self.book.best_bid} >= ask {self.book.best_ask}")

        self._stop_requested = False
        self.stats = SimulationStats(start_time=start_time, current_time=start_time)

    # ========================================================================
    # CONTROL METHODS
    # ========================================================================

    def stop(self):
        """Request termination, honoured before the next event"""
        self._stop_requested = True
        logger.info("Simulation stop requested")

    # ========================================================================
    # EVENT HANDLERS
    # ========================================================================

    def submit_market_buy(self) -> int:
        return self.book.submit_market_buy_order(1)

    def submit_market_sell(self) -> int:
        return self.book.submit_market_sell_order(1)

    def submit_limit_buy(self) -> int:
        """Uniform price in [ask - L, ask - 1]"""
        ask = self.book.best_ask
        price = self.random.integer(ask - self.interval, ask - 1)
        self.book.submit_limit_buy_order(price, 1)
        return price

    def submit_limit_sell(self) -> int:
        """Uniform price in [bid + 1, bid + L]"""
        bid = self.book.best_bid
        price = self.random.integer(bid + 1, bid + self.interval)
        self.book.submit_limit_sell_order(price, 1)
        return price

    def cancel_limit_buy(self) -> int:
        """Depth-weighted price in [bid - L, bid]"""
        bid = self.book.best_bid
        price = self.book.random_price(Side.BUY, bid - self.interval, bid, self.random)
        self.book.cancel_limit_buy_order(price, 1)
        return price

    def cancel_limit_sell(self) -> int:
        """Depth-weighted price in [ask, ask + L]"""
        ask = self.book.best_ask
        price = self.book.random_price(Side.SELL, ask, ask + self.interval, self.random)
        self.book.cancel_limit_sell_order(price, 1)
        return price

    def apply_event(self, kind: OrderBookEvent) -> int:
        """Apply one event to the book and return its price tick"""
        if kind == OrderBookEvent.SUBMIT_MARKET_BUY:
            return self.submit_market_buy()
        elif kind == OrderBookEvent.SUBMIT_MARKET_SELL:
            return self.submit_market_sell()
        elif kind == OrderBookEvent.SUBMIT_LIMIT_BUY:
            return self.submit_limit_buy()
        elif kind == OrderBookEvent.SUBMIT_LIMIT_SELL:
            return self.submit_limit_sell()
        elif kind == OrderBookEvent.CANCEL_LIMIT_BUY:
            return self.cancel_limit_buy()
        elif kind == OrderBookEvent.CANCEL_LIMIT_SELL:
            return self.cancel_limit_sell()
        raise ValueError(f"Unknown order book event: {kind}")

    # ========================================================================
    # MAIN LOOP
    # ========================================================================

    def depth_in_band(self) -> Tuple[int, int]:
        """(bid depth in [bid - L, bid], ask depth in [ask, ask + L])"""
        bid, ask = self.book.best_bid, self.book.best_ask
        return (
            self.book.number_of_orders(Side.BUY, bid - self.interval, bid),
            self.book.number_of_orders(Side.SELL, ask, ask + self.interval)
        )

    def simulate_order_flow(self, duration: float, recorder: Optional['TradingDataRecorder'] = None) -> SimulationResult:
        if duration <= 0:
            raise ValueError(f"Duration must be positive, got {duration}")

        book = self.book
        start_time = book.time
        end_time = start_time + duration
        started = wall_clock.perf_counter()
        progress_checkpoint = 10

        if recorder is not None:
            recorder.start(book)

        logger.info(f"Simulating order flow for {duration}s ({self.parameter.summary()})")

        while book.time < end_time:
            if self._stop_requested:
                self.stats.stopped = True
                logger.info(f"Simulation stopped at t={book.time:.3f}")
                break

            bid_depth, ask_depth = self.depth_in_band()
            rates = compute_event_rates(self.parameter, bid_depth, ask_depth)
            total_rate = rates.sum()

            dt = self.random.exponential_time(total_rate)
            if book.time + dt > end_time:
                book.time = end_time
                break
            book.time += dt

            kind = EVENT_KINDS[self.random.index_from_probabilities(rates / total_rate)]
            price = self.apply_event(kind)
            self._check_sides()

            if recorder is not None:
                recorder.record(book, kind, price)
            self.stats.events_processed += 1

            # Log progress every 10%
            progress = (book.time - start_time) / duration * 100
            if progress >= progress_checkpoint:
                logger.info(
                    f"Simulation progress: {progress_checkpoint}% "
                    f"({self.stats.events_processed} events, price {book.price_time_series.values()[-1]})"
                )
                progress_checkpoint += 10

        self.stats.current_time = book.time
        self.stats.wall_time_seconds += wall_clock.perf_counter() - started
        logger.info(
            f"Simulation finished at t={book.time:.3f}: {self.stats.events_processed} events "
            f"in {self.stats.wall_time_seconds:.2f}s"
        )

        return SimulationResult(
            price_time_series=list(book.price_time_series.items()),
            bids=book.depth_profile(Side.BUY),
            asks=book.depth_profile(Side.SELL),
            counter=dict(book.counter),
            events_processed=self.stats.events_processed,
            start_time=start_time,
            end_time=book.time,
            stopped=self.stats.stopped
        )

    def _check_sides(self):
        for side in (Side.BUY, Side.SELL):
            if self.book.is_side_empty(side):
                logger.error(f"The {side.name.lower()} side ran empty at t={self.book.time}")
                raise EmptyBookSideError(side)

    def get_stats(self) -> dict:
        return {
            'events_processed': self.stats.events_processed,
            'start_time': self.stats.start_time,
            'current_time': self.book.time,
            'wall_time_seconds': self.stats.wall_time_seconds,
            'stopped': self.stats.stopped,
            'order_book': {
                'best_bid': self.book.best_bid,
                'best_ask': self.book.best_ask,
                'spread': self.book.spread,
                'bid_levels': len(self.book.bids),
                'ask_levels': len(self.book.asks)
            },
            'counter': {event.value: count for event, count in self.book.counter.items()}
        }

# ============================================================================
# RECORDING
# ============================================================================

# event -> (LOBSTER type, side of the book that changed)
_LOBSTER_EVENTS = {
    OrderBookEvent.SUBMIT_MARKET_BUY: (LobEventType.EXECUTION_VISIBLE, Side.SELL),
    OrderBookEvent.SUBMIT_MARKET_SELL: (LobEventType.EXECUTION_VISIBLE, Side.BUY),
    OrderBookEvent.SUBMIT_LIMIT_BUY: (LobEventType.SUBMISSION, Side.BUY),
    OrderBookEvent.SUBMIT_LIMIT_SELL: (LobEventType.SUBMISSION, Side.SELL),
    OrderBookEvent.CANCEL_LIMIT_BUY: (LobEventType.CANCELLATION, Side.BUY),
    OrderBookEvent.CANCEL_LIMIT_SELL: (LobEventType.CANCELLATION, Side.SELL),
}

@dataclass
class TradingDataRecorder:
    """
    Records a simulation as LOBSTER message / orderbook rows so it can be
    fed back into the calibration.

    Snapshots hold up to `levels` levels per side, restricted to prices
    within `window` ticks of the best opposite quote when a window is given.
    """
    levels: int
    window: Optional[int] = None
    price_scale: int = 1
    volume_scale: int = 1
    messages: List[List[float]] = field(default_factory=list, repr=False)
    snapshots: List[np.ndarray] = field(default_factory=list, repr=False)

    def start(self, book: LimitOrderBook):
        """Placeholder row holding the initial state, dropped by the alignment"""
        self.messages.append([book.time, LobEventType.SUBMISSION.value, 0, 0, 0, Side.BUY.value])
        self.snapshots.append(self.snapshot(book))

    def record(self, book: LimitOrderBook, kind: OrderBookEvent, price: int):
        event_type, side = _LOBSTER_EVENTS[kind]
        self.messages.append([
            book.time,
            event_type.value,
            len(self.messages),
            self.volume_scale,
            price * self.price_scale,
            side.value
        ])
        self.snapshots.append(self.snapshot(book))

    def snapshot(self, book: LimitOrderBook) -> np.ndarray:
        row = np.zeros(4 * self.levels, dtype=np.int64)
        row[0::4] = DUMMY_PRICE
        row[2::4] = -DUMMY_PRICE

        bid, ask = book.best_bid, book.best_ask
        ask_max = bid + self.window if self.window is not None and bid is not None else None
        bid_min = ask - self.window if self.window is not None and ask is not None else None

        for i, price in enumerate(islice(book.asks.irange(maximum=ask_max), self.levels)):
            row[4 * i] = price * self.price_scale
            row[4 * i + 1] = book.asks[price] * self.volume_scale
        for i, price in enumerate(islice(book.bids.irange(minimum=bid_min, reverse=True), self.levels)):
            row[4 * i + 2] = price * self.price_scale
            row[4 * i + 3] = book.bids[price] * self.volume_scale
        return row

    def __len__(self):
        return max(len(self.messages) - 1, 0)

    def to_trading_data(self) -> TradingData:
        if not self.messages:
            raise ValueError("Nothing has been recorded")
        return TradingData(
            self.levels,
            np.array(self.messages, dtype=float),
            np.vstack(self.snapshots)
        )
