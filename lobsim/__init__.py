"""
Zero-Intelligence Limit Order Book Simulation

Calibrates the Smith-Farmer order flow model on LOBSTER data and
simulates the limit order book it describes.
"""

__version__ = "1.0.0"

from .core.types import Side, OrderBookEvent, Price, LobSimError, EmptyBookSideError, CrossedBookError, CalibrationError
from .core.order_book import LimitOrderBook
from .statistics import DiscreteDistribution, RandomStream
from .data import LobEventType, LobEvent, LobState, TradingData, LobsterRepository
from .parameters import ModelParameter, save_parameter, load_parameter
from .calibration import Calibrator, initial_depth_profile
from .simulation import SmithFarmerSimulation, SimulationResult, TradingDataRecorder, compute_event_rates, event_probabilities

__all__ = [
    "Side",
    "OrderBookEvent",
    "Price",
    "LobSimError",
    "EmptyBookSideError",
    "CrossedBookError",
    "CalibrationError",
    "LimitOrderBook",
    "DiscreteDistribution",
    "RandomStream",
    "LobEventType",
    "LobEvent",
    "LobState",
    "TradingData",
    "LobsterRepository",
    "ModelParameter",
    "save_parameter",
    "load_parameter",
    "Calibrator",
    "initial_depth_profile",
    "SmithFarmerSimulation",
    "SimulationResult",
    "TradingDataRecorder",
    "compute_event_rates",
    "event_probabilities"
]
