"""
FastAPI server for batch simulation runs.
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Dict, Optional
import logging

from .. import __version__
from ..core.types import LobSimError
from ..parameters import ModelParameter
from ..simulation import SmithFarmerSimulation
from ..statistics.random_stream import RandomStream

logger = logging.getLogger(__name__)

app = FastAPI(title="Limit Order Book Simulation API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Pydantic models
class SimulationRequest(BaseModel):
    parameter: ModelParameter
    bids: Dict[int, int]
    asks: Dict[int, int]
    duration_seconds: float = Field(60.0, gt=0)
    seed: Optional[int] = 42

class PricePoint(BaseModel):
    time: float
    bid: int
    ask: int

class DepthLevel(BaseModel):
    price: int
    depth: int

class SimulationResponse(BaseModel):
    prices: List[PricePoint]
    bids: List[DepthLevel]
    asks: List[DepthLevel]
    counter: Dict[str, int]
    events_processed: int
    end_time: float

@app.get("/")
def root():
    """API root"""
    return {
        "message": "Limit Order Book Simulation API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }

@app.get("/health")
def health():
    """Health check"""
    return {"status": "ok"}

@app.post("/api/simulation/run", response_model=SimulationResponse)
def run_simulation(request: SimulationRequest):
    """Run one simulation and return the full price series and final book"""
    logger.info(
        f"Running simulation: {request.duration_seconds}s, seed={request.seed}, "
        f"{request.parameter.summary()}"
    )
    try:
        simulation = SmithFarmerSimulation(
            request.parameter,
            request.bids,
            request.asks,
            random=RandomStream(request.seed)
        )
        result = simulation.simulate_order_flow(request.duration_seconds)
    except (LobSimError, ValueError) as e:
        logger.error(f"Simulation rejected: {e}", exc_info=True)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Simulation error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    return SimulationResponse(
        prices=[PricePoint(time=t, bid=p.bid, ask=p.ask) for t, p in result.price_time_series],
        bids=[DepthLevel(price=price, depth=depth) for price, depth in result.bids],
        asks=[DepthLevel(price=price, depth=depth) for price, depth in result.asks],
        counter={event.value: count for event, count in result.counter.items()},
        events_processed=result.events_processed,
        end_time=result.end_time
    )
