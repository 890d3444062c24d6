"""
Plain delimited dumps of simulation and historical data for plotting.
One record per line, no header.
"""
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union
import logging

from .core.order_book import LimitOrderBook
from .core.types import Side, Price
from .data.trading_data import TradingData
from .statistics.distribution import DiscreteDistribution

logger = logging.getLogger(__name__)

def _open(path: Union[str, Path]):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return open(path, 'w')

def save_price_process(
    series: Iterable[Tuple[float, Price]],
    tick_size: float,
    path: Union[str, Path],
    delimiter: str = "\t"
) -> int:
    """Write `time, bid * tick_size, ask * tick_size` rows, returns the row count"""
    rows = 0
    with _open(path) as f:
        for time, price in series:
            f.write(f"{time}{delimiter}{price.bid * tick_size}{delimiter}{price.ask * tick_size}\n")
            rows += 1
    logger.info(f"Saved {rows} prices to {path}")
    return rows

def save_depth_profile(
    order_book: LimitOrderBook,
    path: Union[str, Path],
    side: Optional[Side] = None,
    delimiter: str = "\t"
) -> int:
    """Write `price, depth` rows, buy side first when no side is given"""
    sides = (Side.BUY, Side.SELL) if side is None else (side,)
    rows = 0
    with _open(path) as f:
        for s in sides:
            for price, depth in order_book.depth_profile(s):
                f.write(f"{price}{delimiter}{depth}\n")
                rows += 1
    logger.info(f"Saved {rows} depth levels to {path}")
    return rows

def save_distribution(distribution: DiscreteDistribution, path: Union[str, Path]) -> int:
    with _open(path) as f:
        for key, weight in distribution.items():
            f.write(f"{key}, {weight}\n")
    logger.info(f"Saved distribution with {len(distribution)} keys to {path}")
    return len(distribution)

def save_trading_price_process(trading_data: TradingData, path: Union[str, Path]) -> int:
    """Write `time,bid,ask` of a historical day, last state per timestamp"""
    times, bids, asks = trading_data.price_process()
    with _open(path) as f:
        for time, bid, ask in zip(times.tolist(), bids.tolist(), asks.tolist()):
            f.write(f"{time},{bid},{ask}\n")
    logger.info(f"Saved {len(times)} prices to {path}")
    return len(times)
