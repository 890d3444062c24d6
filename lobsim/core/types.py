"""
Domain models for the zero-intelligence order book.
Prices are integer ticks, depth is counted in characteristic order sizes.
"""
from dataclasses import dataclass
from enum import Enum

# ============================================================================
# ENUMS
# ============================================================================

class Side(Enum):
    BUY = 1
    SELL = -1

    @property
    def opposite(self) -> 'Side':
        return Side.SELL if self is Side.BUY else Side.BUY

class OrderBookEvent(Enum):
    """The six competing order flow events of the Smith-Farmer model"""
    SUBMIT_MARKET_BUY = "SUBMIT_MARKET_BUY"
    SUBMIT_MARKET_SELL = "SUBMIT_MARKET_SELL"
    SUBMIT_LIMIT_BUY = "SUBMIT_LIMIT_BUY"
    SUBMIT_LIMIT_SELL = "SUBMIT_LIMIT_SELL"
    CANCEL_LIMIT_BUY = "CANCEL_LIMIT_BUY"
    CANCEL_LIMIT_SELL = "CANCEL_LIMIT_SELL"

# Fixed dispatch order, rates are always laid out in this order
EVENT_KINDS = (
    OrderBookEvent.SUBMIT_MARKET_BUY,
    OrderBookEvent.SUBMIT_MARKET_SELL,
    OrderBookEvent.SUBMIT_LIMIT_BUY,
    OrderBookEvent.SUBMIT_LIMIT_SELL,
    OrderBookEvent.CANCEL_LIMIT_BUY,
    OrderBookEvent.CANCEL_LIMIT_SELL,
)

# ============================================================================
# VALUE OBJECTS (Immutable)
# ============================================================================

@dataclass(frozen=True)
class Price:
    """Best bid/ask pair in ticks"""
    bid: int
    ask: int

    @property
    def spread(self) -> int:
        return self.ask - self.bid

    @property
    def mid(self) -> float:
        return 0.5 * (self.bid + self.ask)

    def __str__(self):
        return f"[{self.bid}, {self.ask}]"

# ============================================================================
# EXCEPTIONS
# ============================================================================

class LobSimError(Exception):
    """Base class for all order book model errors"""

class EmptyBookSideError(LobSimError):
    """A side of the book has no levels where the model requires one"""

    def __init__(self, side: Side, message: str = None):
        self.side = side
        super().__init__(message or f"The {side.name.lower()} side of the limit order book is empty")

class CrossedBookError(LobSimError, ValueError):
    """A limit order would lock or cross the book"""

class CalibrationError(LobSimError, ValueError):
    """Model parameters cannot be estimated from the given data"""
