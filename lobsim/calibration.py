"""
Calibration of the Smith-Farmer model from historical trading days.

Per day:
- sigma: mean volume of limit, market and canceled orders
- pi: tick size inferred from the visible price levels
- band: [lower, upper] quantile of the average depth profile, as a
  distance to the best opposite quote
- mu = market volume / (sigma * T * 2)
- alpha = in-band limit volume / (sigma * T * width * 2), width = (upper - lower) / pi + 1
- delta = in-band canceled volume / (in-band average depth * T * 2)

Several days are combined by the arithmetic mean of the per-day values.
"""
from collections.abc import Mapping
from typing import Dict, Iterable, Tuple, Union
import logging
import math

import numpy as np

from .config import CalibrationSettings
from .core.types import CalibrationError
from .data.trading_data import TradingData
from .data.types import LobState
from .parameters import ModelParameter

logger = logging.getLogger(__name__)

class Calibrator:
    """Estimates ModelParameter from TradingData. Deterministic, no randomness."""

    def __init__(
        self,
        lower_quantile_probability: float = 0.01,
        upper_quantile_probability: float = 0.80
    ):
        # Validates 0 <= lower < upper <= 1
        self.settings = CalibrationSettings(
            lower_quantile_probability=lower_quantile_probability,
            upper_quantile_probability=upper_quantile_probability
        )

    @classmethod
    def from_settings(cls, settings: CalibrationSettings) -> 'Calibrator':
        return cls(settings.lower_quantile_probability, settings.upper_quantile_probability)

    # ========================================================================
    # SINGLE DAY
    # ========================================================================

    @staticmethod
    def characteristic_order_size(trading_data: TradingData) -> float:
        mask = trading_data.limit_mask | trading_data.market_mask | trading_data.canceled_mask
        if not mask.any():
            raise CalibrationError("Cannot calibrate the model without limit, market or canceled orders")
        return float(trading_data.volume[mask].mean())

    def calibrate_day(self, trading_data: TradingData) -> ModelParameter:
        if trading_data.number_of_events == 0:
            raise CalibrationError("Cannot calibrate the model without trading data")

        duration = trading_data.duration
        if duration <= 0:
            raise CalibrationError(f"Trading duration must be positive, got {duration}")

        sigma = self.characteristic_order_size(trading_data)
        pi = trading_data.price_tick_size

        # Band around the spread taken from the average depth profile
        profile = trading_data.average_depth_profile()
        if not profile:
            raise CalibrationError("The average depth profile is empty")
        lower = profile.quantile(self.settings.lower_quantile_probability)
        upper = profile.quantile(self.settings.upper_quantile_probability)

        distance = trading_data.distance_best_opposite_quote
        with np.errstate(invalid="ignore"):
            in_band = (lower <= distance) & (distance <= upper)
        volume = trading_data.volume

        # Market order rate
        market_volume = float(volume[trading_data.market_mask].sum())
        mu = market_volume / (sigma * duration * 2)

        # Limit order rate density
        width = (upper - lower) / pi + 1
        limit_volume = float(volume[trading_data.limit_mask & in_band].sum())
        alpha = limit_volume / (sigma * duration * width * 2)

        # Cancellation rate
        canceled_volume = float(volume[trading_data.canceled_mask & in_band].sum())
        depth = profile.weight_between(lower, upper)
        if depth > 0:
            delta = canceled_volume / (depth * duration * 2)
        else:
            logger.warning(f"No average depth within the band [{lower}, {upper}], cancellation rate set to 0")
            delta = 0.0

        return ModelParameter(
            limit_order_rate_density=alpha,
            market_order_rate=mu,
            cancellation_rate=delta,
            price_tick_size=pi,
            characteristic_order_size=sigma,
            simulation_interval_size=max(int(math.ceil(upper / pi)), 1),
            lower_quantile_probability=self.settings.lower_quantile_probability,
            upper_quantile_probability=self.settings.upper_quantile_probability,
            lower_quantile=lower,
            upper_quantile=upper,
            min_trading_time=trading_data.start_time,
            max_trading_time=trading_data.end_time
        )

    # ========================================================================
    # SEVERAL DAYS
    # ========================================================================

    def calibrate(
        self,
        trading_data: Union[Mapping, Iterable[TradingData]]
    ) -> ModelParameter:
        """Calibrate each day and average the results"""
        if isinstance(trading_data, Mapping):
            days = list(trading_data.items())
        else:
            days = list(enumerate(trading_data))
        if not days:
            raise CalibrationError("Cannot calibrate the model without trading data")

        logger.info(f"Calibrating model on {len(days)} trading day(s)")
        parameters = []
        for label, data in days:
            parameter = self.calibrate_day(data)
            logger.info("=" * 80)
            logger.info(f"Calibration parameters for {label}")
            logger.info("=" * 80)
            log_parameter(parameter)
            parameters.append(parameter)

        mean = ModelParameter(
            market_order_rate=_mean(p.market_order_rate for p in parameters),
            limit_order_rate_density=_mean(p.limit_order_rate_density for p in parameters),
            cancellation_rate=_mean(p.cancellation_rate for p in parameters),
            price_tick_size=_mean(p.price_tick_size for p in parameters),
            characteristic_order_size=_mean(p.characteristic_order_size for p in parameters),
            simulation_interval_size=int(round(_mean(p.simulation_interval_size for p in parameters))),
            lower_quantile_probability=self.settings.lower_quantile_probability,
            upper_quantile_probability=self.settings.upper_quantile_probability,
            lower_quantile=_mean(p.lower_quantile for p in parameters),
            upper_quantile=_mean(p.upper_quantile for p in parameters),
            min_trading_time=min(p.min_trading_time for p in parameters),
            max_trading_time=max(p.max_trading_time for p in parameters)
        )

        logger.info("=" * 80)
        logger.info("Mean calibration parameters")
        logger.info("=" * 80)
        log_parameter(mean)
        return mean

def _mean(values: Iterable[float]) -> float:
    return float(np.mean(list(values)))

def log_parameter(parameter: ModelParameter):
    logger.info(f"Market order rate (mu): {parameter.market_order_rate} [sigma]/[time]")
    logger.info(f"Limit order rate density (alpha): {parameter.limit_order_rate_density} [sigma]/([time]*[tick])")
    logger.info(f"Cancellation rate (delta): {parameter.cancellation_rate} 1/[time]")
    logger.info(f"Characteristic size (sigma): {parameter.characteristic_order_size}")
    logger.info(f"Tick size (pi): {parameter.price_tick_size}")

# ============================================================================
# INITIAL BOOK
# ============================================================================

def initial_depth_profile(state: LobState, parameter: ModelParameter) -> Tuple[Dict[int, int], Dict[int, int]]:
    """
    Convert a historical snapshot into (bids, asks) in model units:
    price / pi ticks and ceil(volume / sigma) depth.
    """
    pi = parameter.price_tick_size
    sigma = parameter.characteristic_order_size

    def convert(prices, volumes) -> Dict[int, int]:
        depth = {}
        for price, volume in zip(prices.tolist(), volumes.tolist()):
            if volume <= 0:
                continue
            tick = int(round(price / pi))
            depth[tick] = depth.get(tick, 0) + int(math.ceil(volume / sigma))
        return depth

    return convert(state.bid_price, state.bid_volume), convert(state.ask_price, state.ask_volume)
