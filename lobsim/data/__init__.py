"""
Historical LOBSTER data.
"""

from .types import LobEventType, LobEvent, LobState, DUMMY_PRICE
from .trading_data import TradingData
from .repository import LobsterRepository

__all__ = [
    "LobEventType",
    "LobEvent",
    "LobState",
    "DUMMY_PRICE",
    "TradingData",
    "LobsterRepository"
]
