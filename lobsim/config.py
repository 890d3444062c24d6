"""
Runtime settings for calibration, data loading and simulation runs.
"""
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

class CalibrationSettings(BaseModel):
    """Quantile probabilities of the calibration band"""
    lower_quantile_probability: float = Field(0.01, ge=0, le=1)
    upper_quantile_probability: float = Field(0.80, ge=0, le=1)

    @model_validator(mode="after")
    def check_band(self) -> 'CalibrationSettings':
        if not self.lower_quantile_probability < self.upper_quantile_probability:
            raise ValueError(
                f"Lower quantile probability {self.lower_quantile_probability} must be below "
                f"the upper one {self.upper_quantile_probability}"
            )
        return self

class RepositorySettings(BaseModel):
    """Location and shape of the LOBSTER files"""
    data_dir: Path
    symbol: str
    level: int = Field(10, gt=0)
    skip_first_seconds: float = Field(0.0, ge=0)
    skip_last_seconds: float = Field(0.0, ge=0)

class SimulationSettings(BaseModel):
    duration: float = Field(..., gt=0, description="Simulated time in seconds")
    simulation_interval_size: Optional[int] = Field(None, gt=0)
    # L = multiple x initial spread when no interval size is given
    interval_spread_multiple: int = Field(4, gt=0)
    seed: Optional[int] = 42
