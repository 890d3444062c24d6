import numpy as np
import pytest

from lobsim.calibration import Calibrator
from lobsim.core.types import Side, CalibrationError
from lobsim.data.trading_data import TradingData
from lobsim.data.types import LobEvent, LobEventType, LobState, DUMMY_PRICE

def test_state_drops_dummy_levels():
    state = LobState.from_row([10200, 50, 10000, 150, DUMMY_PRICE, 0, -DUMMY_PRICE, 0])
    assert state.best_ask == 10200
    assert state.best_bid == 10000
    assert state.spread == 200
    assert state.asks == {10200: 50}
    assert state.bids == {10000: 150}
    assert state.depth(10000, Side.BUY) == 150
    assert state.depth(9900, Side.BUY) == 0

def test_empty_side_has_no_quote():
    state = LobState.from_row([DUMMY_PRICE, 0, 100, 1])
    assert state.best_ask is None
    assert state.spread is None

def test_event_from_row():
    event = LobEvent.from_row([34200.5, 4, 17, 100, 10100, -1])
    assert event.type == LobEventType.EXECUTION_VISIBLE
    assert event.side == Side.SELL
    assert event.order_id == 17
    with pytest.raises(ValueError):
        LobEvent.from_row([1, 2, 3])

def test_alignment_drops_first_message(sample_trading_data):
    data = sample_trading_data
    assert data.number_of_events == 4
    assert data.time.tolist() == [34201.0, 34202.0, 34203.5, 34204.0]
    assert data.start_time == 34200.0
    assert data.end_time == 34204.0
    assert data.duration == 4.0

    first = data.events[0]
    assert first.initial_state.bids == {10000: 100, 9900: 50}
    assert first.final_state.bids == {10000: 150, 9900: 50}

def test_classification(sample_trading_data):
    data = sample_trading_data
    assert [e.order_id for e in data.limit_orders] == [2, 6]
    assert [e.order_id for e in data.market_orders] == [1]
    assert [e.order_id for e in data.canceled_orders] == [5]

def test_tick_size_is_gcd_of_price_gaps(sample_trading_data):
    # levels 9900, 10000, 10100, 10150, 10200
    assert sample_trading_data.price_tick_size == 50

def test_distance_to_best_opposite_quote(sample_trading_data):
    assert sample_trading_data.distance_best_opposite_quote.tolist() == [100.0, 100.0, 300.0, 150.0]
    assert [e.distance_best_opposite_quote for e in sample_trading_data.events] == [100, 100, 300, 150]

def test_order_distributions(sample_trading_data):
    assert sample_trading_data.limit_order_distribution().items() == [(100.0, 50.0), (150.0, 30.0)]
    assert sample_trading_data.limit_order_distribution(Side.SELL).items() == [(150.0, 30.0)]
    assert sample_trading_data.canceled_order_distribution().items() == [(300.0, 50.0)]
    assert not sample_trading_data.canceled_order_distribution(Side.SELL)

def test_average_depth_profile(sample_trading_data):
    sell = sample_trading_data.average_depth_profile(Side.SELL)
    buy = sample_trading_data.average_depth_profile(Side.BUY)
    both = sample_trading_data.average_depth_profile()

    assert sell.keys.tolist() == [100.0, 200.0]
    assert sell.weights == pytest.approx([100 / 3, 50.0])
    assert buy.keys.tolist() == [100.0, 200.0, 300.0]
    assert buy.weights == pytest.approx([50.0, 350 / 3, 25.0])
    assert both.weights == pytest.approx([125 / 3, 250 / 3, 12.5])

def test_cancellation_rate_distribution(sample_trading_data):
    rate = sample_trading_data.cancellation_rate_distribution()
    assert rate.keys.tolist() == [300.0]
    assert rate.weights == pytest.approx([50.0 / 12.5 / 4.0])

def test_consistency_check_passes(sample_trading_data):
    assert sample_trading_data.check_consistency() == {"limit": 0, "market": 0, "canceled": 0}

def test_consistency_check_flags_broken_limit_order(sample_trading_data):
    messages = sample_trading_data.messages.copy()
    messages[1, 3] = 40  # depth grew by 50
    data = TradingData(2, messages, sample_trading_data.orderbook)
    assert data.check_consistency()["limit"] == 1

def test_price_process_keeps_last_state_per_time(sample_trading_data):
    messages = sample_trading_data.messages.copy()
    messages[3, 0] = messages[2, 0]
    data = TradingData(2, messages, sample_trading_data.orderbook)
    times, bids, asks = data.price_process()
    assert times.tolist() == [34201.0, 34202.0, 34204.0]
    assert bids.tolist() == [10000, 10000, 10000]
    assert asks.tolist() == [10100, 10200, 10150]

def test_skip_first_and_last_seconds(sample_trading_data):
    data = TradingData(
        2,
        sample_trading_data.messages,
        sample_trading_data.orderbook,
        skip_first_seconds=1.5,
        skip_last_seconds=0.25
    )
    # the row before the first kept event stays as its pre-state
    assert data.start_time == 34201.0
    assert data.end_time == 34203.5
    assert data.time.tolist() == [34202.0, 34203.5]

@pytest.mark.parametrize("skip", [{"skip_first_seconds": 100.0}, {"skip_last_seconds": 100.0}])
def test_skipping_more_than_the_day_leaves_no_events(sample_trading_data, skip):
    data = TradingData(2, sample_trading_data.messages, sample_trading_data.orderbook, **skip)
    assert data.number_of_events == 0
    assert data.duration == 0
    with pytest.raises(CalibrationError):
        Calibrator().calibrate_day(data)

def test_distance_without_opposite_quote():
    # limit sell while the bid side holds only dummy levels
    messages = [[34200.0, 1, 1, 10, 10100, -1], [34201.0, 1, 2, 10, 10200, -1]]
    orderbook = [[10100, 10, -DUMMY_PRICE, 0], [10100, 10, -DUMMY_PRICE, 0]]
    data = TradingData(1, messages, orderbook)
    assert np.isnan(data.distance_best_opposite_quote).all()
    assert [e.distance_best_opposite_quote for e in data.events] == [None]

    assert LobEvent.from_row([34200.0, 1, 1, 10, 10100, 1]).distance_best_opposite_quote is None

def test_invalid_shapes():
    with pytest.raises(ValueError):
        TradingData(2, np.empty((0, 6)), np.empty((0, 8)))
    with pytest.raises(ValueError):
        TradingData(3, [[0, 1, 1, 1, 1, 1]], [[1, 1, 0, 1, 2, 1, -1, 1]])
