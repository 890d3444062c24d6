"""
Smith-Farmer model parameters and their JSON persistence.
"""
from pathlib import Path
from typing import Optional, Union
import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

class ModelParameter(BaseModel):
    """
    Rates are expressed in units of the characteristic order size (sigma)
    and the price tick (pi).
    """
    limit_order_rate_density: float = Field(0.0, ge=0, description="alpha [sigma]/([time]*[tick])")
    market_order_rate: float = Field(0.0, ge=0, description="mu [sigma]/[time]")
    cancellation_rate: float = Field(0.0, ge=0, description="delta 1/[time]")
    price_tick_size: float = Field(1.0, gt=0, description="pi, price units per tick")
    characteristic_order_size: float = Field(1.0, gt=0, description="sigma, shares")
    simulation_interval_size: int = Field(0, ge=0, description="L, band half-width in ticks")

    # Calibration window
    lower_quantile_probability: Optional[float] = None
    upper_quantile_probability: Optional[float] = None
    lower_quantile: Optional[float] = None
    upper_quantile: Optional[float] = None
    min_trading_time: Optional[float] = None
    max_trading_time: Optional[float] = None

    @property
    def asymptotic_depth(self) -> float:
        """Mean depth far from the spread, alpha / delta"""
        if self.cancellation_rate == 0:
            return float("inf")
        return self.limit_order_rate_density / self.cancellation_rate

    def summary(self) -> str:
        return (
            f"mu={self.market_order_rate:.6g}, alpha={self.limit_order_rate_density:.6g}, "
            f"delta={self.cancellation_rate:.6g}, sigma={self.characteristic_order_size:.6g}, "
            f"pi={self.price_tick_size:.6g}, L={self.simulation_interval_size}"
        )

def save_parameter(parameter: ModelParameter, path: Union[str, Path]):
    """Write the parameter as indented JSON"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(parameter.model_dump_json(indent=2))
    logger.info(f"Saved model parameter to {path}")

def load_parameter(path: Union[str, Path]) -> ModelParameter:
    path = Path(path)
    parameter = ModelParameter.model_validate_json(path.read_text())
    logger.info(f"Loaded model parameter from {path}: {parameter.summary()}")
    return parameter
