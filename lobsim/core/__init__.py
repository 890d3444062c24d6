"""
Core order book components.
"""

from .types import (
    Side, OrderBookEvent, EVENT_KINDS, Price,
    LobSimError, EmptyBookSideError, CrossedBookError, CalibrationError
)
from .order_book import LimitOrderBook

__all__ = [
    "Side",
    "OrderBookEvent",
    "EVENT_KINDS",
    "Price",
    "LobSimError",
    "EmptyBookSideError",
    "CrossedBookError",
    "CalibrationError",
    "LimitOrderBook"
]
