"""
Shared fixtures: synthetic order books and a small LOBSTER trading day.
"""
import math
from datetime import date
from pathlib import Path

import numpy as np
import pytest

from lobsim.core.order_book import LimitOrderBook
from lobsim.core.types import Side
from lobsim.data.trading_data import TradingData
from lobsim.parameters import ModelParameter

# =============================================================================
# SYNTHETIC DEPTH PROFILE
# =============================================================================

def synthetic_depth(price: int, price_min: int, price_max: int, scale: float) -> int:
    """Gamma-shaped depth, 0 at price_min and vanishing towards price_max, at least 1"""
    x = (price - price_min) / (price_max - price_min)
    lam = 5e-3
    f_max = 0.07512
    f = 0.0 if x == 0 else math.exp(x * math.log(lam) - lam) / math.gamma(x)
    return max(int(scale * f / f_max), 1)

@pytest.fixture
def synthetic_profile():
    """(bids, asks): buy depth on [100, 300], sell depth on [310, 510]"""
    bids = {p: synthetic_depth(p, 300, 100, 10) for p in range(100, 301)}
    asks = {p: synthetic_depth(p, 310, 510, 1) for p in range(310, 511)}
    return bids, asks

@pytest.fixture
def small_book():
    """bids {100: 50, 101: 60}, asks {110: 40, 111: 30}"""
    book = LimitOrderBook()
    book.initialize_depth_profile(Side.BUY, {100: 50, 101: 60})
    book.initialize_depth_profile(Side.SELL, {110: 40, 111: 30})
    return book

@pytest.fixture
def parameter():
    return ModelParameter(
        market_order_rate=10.0,
        limit_order_rate_density=5.0,
        cancellation_rate=1.0,
        simulation_interval_size=10
    )

# =============================================================================
# LOBSTER FIXTURES
# =============================================================================

SYMBOL = "AAPL"
TRADING_DAY = date(2012, 6, 21)
LEVEL = 2

# limit buy, market buy (hits the sell side), deletion of a buy, limit sell
MESSAGE_LINES = [
    "34200.0,1,1,100,10100,-1",
    "34201.0,1,2,50,10000,1",
    "34202.0,4,1,100,10100,-1",
    "34203.5,3,5,50,9900,1",
    "34204.0,1,6,30,10150,-1",
]

ORDERBOOK_LINES = [
    "10100,100,10000,100,10200,50,9900,50",
    "10100,100,10000,150,10200,50,9900,50",
    "10200,50,10000,150,9999999999,0,9900,50",
    "10200,50,10000,150,9999999999,0,-9999999999,0",
    "10150,30,10000,150,10200,50,-9999999999,0",
]

def _parse(lines, dtype):
    return np.array([[float(v) for v in line.split(",")] for line in lines]).astype(dtype)

@pytest.fixture
def sample_trading_data() -> TradingData:
    return TradingData(LEVEL, _parse(MESSAGE_LINES, float), _parse(ORDERBOOK_LINES, np.int64))

@pytest.fixture
def lobster_dir(tmp_path) -> Path:
    """A data folder with one trading day (and an unparsable line pair) in a sub folder"""
    folder = tmp_path / "lobster" / SYMBOL
    folder.mkdir(parents=True)
    stem = f"{SYMBOL}_{TRADING_DAY:%Y-%m-%d}_34200000_57600000"

    messages = MESSAGE_LINES[:2] + ["34201.5,oops,3,10,10100,-1"] + MESSAGE_LINES[2:]
    orderbook = ORDERBOOK_LINES[:2] + ["10100,100,10000"] + ORDERBOOK_LINES[2:]
    (folder / f"{stem}_message_{LEVEL}.csv").write_text("\n".join(messages) + "\n")
    (folder / f"{stem}_orderbook_{LEVEL}.csv").write_text("\n".join(orderbook) + "\n")
    return tmp_path / "lobster"
