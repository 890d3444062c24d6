import pytest

from lobsim.calibration import Calibrator
from lobsim.core.types import Side, OrderBookEvent, EVENT_KINDS, EmptyBookSideError
from lobsim.data.types import LobEventType
from lobsim.parameters import ModelParameter
from lobsim.simulation import (
    SmithFarmerSimulation, TradingDataRecorder, compute_event_rates, event_probabilities, flat_depth_profile
)
from lobsim.statistics.random_stream import RandomStream

# =============================================================================
# EVENT RATES
# =============================================================================

def test_event_rates_without_depth(parameter):
    L = parameter.simulation_interval_size
    probabilities = event_probabilities(parameter, bid_depth=0, ask_depth=0)
    total = 2 * 10.0 + 2 * 5.0 * L

    assert probabilities[OrderBookEvent.SUBMIT_MARKET_BUY] == pytest.approx(10.0 / total)
    assert probabilities[OrderBookEvent.SUBMIT_MARKET_SELL] == pytest.approx(10.0 / total)
    assert probabilities[OrderBookEvent.SUBMIT_LIMIT_BUY] == pytest.approx(5.0 * L / total)
    assert probabilities[OrderBookEvent.SUBMIT_LIMIT_SELL] == pytest.approx(5.0 * L / total)
    assert probabilities[OrderBookEvent.CANCEL_LIMIT_BUY] == 0.0
    assert probabilities[OrderBookEvent.CANCEL_LIMIT_SELL] == 0.0

def test_event_rates_follow_depth(parameter):
    rates = compute_event_rates(parameter, bid_depth=7, ask_depth=3)
    assert rates.tolist() == [10.0, 10.0, 50.0, 50.0, 7.0, 3.0]

def test_zero_total_rate_is_rejected():
    with pytest.raises(ValueError):
        event_probabilities(ModelParameter(simulation_interval_size=5), 0, 0)

# =============================================================================
# EVENT HANDLERS
# =============================================================================

@pytest.fixture
def simulation(parameter):
    bids, asks = flat_depth_profile(3, 100, 104, 30)
    return SmithFarmerSimulation(parameter, bids, asks, random=RandomStream(1))

def test_limit_orders_stay_within_band(simulation):
    L = simulation.interval
    ask, bid = simulation.book.best_ask, simulation.book.best_bid
    buys = [simulation.submit_limit_buy() for _ in range(500)]
    assert all(ask - L <= p <= ask - 1 for p in buys)
    assert set(buys) == set(range(ask - L, ask))

    bid = simulation.book.best_bid
    sells = [simulation.submit_limit_sell() for _ in range(500)]
    assert all(bid + 1 <= p <= bid + L for p in sells)

def test_cancellations_stay_within_band(simulation):
    L = simulation.interval
    for _ in range(50):
        bid = simulation.book.best_bid
        assert bid - L <= simulation.cancel_limit_buy() <= bid
        ask = simulation.book.best_ask
        assert ask <= simulation.cancel_limit_sell() <= ask + L

def test_market_orders_hit_best_quotes(simulation):
    ask, bid = simulation.book.best_ask, simulation.book.best_bid
    assert simulation.submit_market_buy() == ask
    assert simulation.submit_market_sell() == bid
    assert simulation.book.depth(Side.SELL, ask) == 2

def test_apply_event_dispatches_every_kind(simulation):
    for kind in EVENT_KINDS:
        simulation.apply_event(kind)
    assert all(simulation.book.counter[kind] == 1 for kind in EVENT_KINDS)

# =============================================================================
# MAIN LOOP
# =============================================================================

def test_run_respects_horizon_and_keeps_book_uncrossed(simulation):
    result = simulation.simulate_order_flow(20.0)

    assert result.end_time == 20.0
    assert result.events_processed > 0
    assert result.events_processed == sum(result.counter.values())
    times = [t for t, _ in result.price_time_series]
    assert times == sorted(times)
    assert all(t <= 20.0 for t in times)
    assert all(price.bid < price.ask for _, price in result.price_time_series)
    assert result.bids and result.asks

def test_same_seed_same_path(parameter):
    def run(seed):
        bids, asks = flat_depth_profile(3, 100, 104, 30)
        simulation = SmithFarmerSimulation(parameter, bids, asks, random=RandomStream(seed))
        return simulation.simulate_order_flow(5.0).price_time_series

    assert run(8) == run(8)
    assert run(8) != run(9)

def test_empty_side_aborts_the_run():
    parameter = ModelParameter(market_order_rate=1.0, simulation_interval_size=5)
    simulation = SmithFarmerSimulation(parameter, {100: 1}, {101: 1}, random=RandomStream(0))
    with pytest.raises(EmptyBookSideError):
        simulation.simulate_order_flow(100.0)

def test_initial_book_needs_both_sides(parameter):
    with pytest.raises(EmptyBookSideError):
        SmithFarmerSimulation(parameter, {100: 5}, {})

def test_interval_size_must_be_positive():
    with pytest.raises(ValueError):
        SmithFarmerSimulation(ModelParameter(market_order_rate=1.0), {100: 1}, {101: 1})

def test_stop_before_run(simulation):
    simulation.stop()
    result = simulation.simulate_order_flow(10.0)
    assert result.stopped
    assert result.events_processed == 0
    assert simulation.get_stats()["stopped"]

# =============================================================================
# RECORDING AND RE-CALIBRATION
# =============================================================================

def test_recorder_produces_aligned_trading_data(simulation):
    recorder = TradingDataRecorder(levels=15)
    result = simulation.simulate_order_flow(10.0, recorder=recorder)
    data = recorder.to_trading_data()

    assert len(recorder) == result.events_processed
    assert data.number_of_events == result.events_processed
    counter = result.counter
    assert data.market_mask.sum() == counter[OrderBookEvent.SUBMIT_MARKET_BUY] + counter[OrderBookEvent.SUBMIT_MARKET_SELL]
    assert data.limit_mask.sum() == counter[OrderBookEvent.SUBMIT_LIMIT_BUY] + counter[OrderBookEvent.SUBMIT_LIMIT_SELL]
    assert data.canceled_mask.sum() == counter[OrderBookEvent.CANCEL_LIMIT_BUY] + counter[OrderBookEvent.CANCEL_LIMIT_SELL]

    # market buys execute against the sell side
    market = [e for e in data.events if e.type == LobEventType.EXECUTION_VISIBLE]
    assert all(e.price == (e.initial_state.best_ask if e.side == Side.SELL else e.initial_state.best_bid) for e in market)
    assert data.check_consistency() == {"limit": 0, "market": 0, "canceled": 0}

@pytest.mark.parametrize("seed", [42, 0, 1])
def test_recalibration_recovers_parameters(synthetic_profile, seed):
    bids, asks = synthetic_profile
    L = 40
    delta = 0.05
    alpha = 5.5 * delta
    mu = 10 * alpha * 2
    parameter = ModelParameter(
        market_order_rate=mu,
        limit_order_rate_density=alpha,
        cancellation_rate=delta,
        simulation_interval_size=L
    )

    simulation = SmithFarmerSimulation(parameter, bids, asks, random=RandomStream(seed))
    # snapshots clipped to the simulation band keep the calibration band inside L
    recorder = TradingDataRecorder(levels=L, window=L)
    simulation.simulate_order_flow(1000.0, recorder=recorder)

    calibrated = Calibrator(0.01, 0.80).calibrate_day(recorder.to_trading_data())

    assert calibrated.price_tick_size == 1
    assert calibrated.characteristic_order_size == 1.0
    assert calibrated.market_order_rate == pytest.approx(mu, rel=0.05)
    assert calibrated.limit_order_rate_density == pytest.approx(alpha, rel=0.05)
    assert calibrated.cancellation_rate == pytest.approx(delta, rel=0.05)
