"""
Synthetic round trip: simulate the Smith-Farmer model with known rates,
record the order flow as LOBSTER data and calibrate it back.

    python examples/calibrate_and_simulate.py --duration 1000 --output-dir ./output
"""
import argparse
import logging
import math
from pathlib import Path

from lobsim.calibration import Calibrator
from lobsim.export import save_price_process, save_depth_profile, save_distribution
from lobsim.parameters import ModelParameter, save_parameter
from lobsim.simulation import SmithFarmerSimulation, TradingDataRecorder
from lobsim.statistics.random_stream import RandomStream

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def gamma_depth(price: int, price_min: int, price_max: int, scale: float) -> int:
    """Depth rising from the spread like a gamma density, never below 1"""
    x = (price - price_min) / (price_max - price_min)
    lam = 5e-3
    f = 0.0 if x == 0 else math.exp(x * math.log(lam) - lam) / math.gamma(x)
    return max(int(scale * f / 0.07512), 1)

def main():
    parser = argparse.ArgumentParser(
        description="Simulate, record and re-calibrate the Smith-Farmer model",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('--duration', type=float, default=1000.0, help='Simulated time in seconds')
    parser.add_argument('--cancellation-rate', type=float, default=0.05, help='delta')
    parser.add_argument('--asymptotic-depth', type=float, default=5.5, help='alpha / delta')
    parser.add_argument('--interval', type=int, default=40, help='Band half-width L in ticks')
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    parser.add_argument('--output-dir', type=Path, default=Path('./output'), help='Output folder')
    args = parser.parse_args()

    alpha = args.asymptotic_depth * args.cancellation_rate
    parameter = ModelParameter(
        market_order_rate=10 * alpha * 2,
        limit_order_rate_density=alpha,
        cancellation_rate=args.cancellation_rate,
        simulation_interval_size=args.interval
    )

    bids = {p: gamma_depth(p, 300, 100, 10) for p in range(100, 301)}
    asks = {p: gamma_depth(p, 310, 510, 10) for p in range(310, 511)}

    simulation = SmithFarmerSimulation(parameter, bids, asks, random=RandomStream(args.seed))
    recorder = TradingDataRecorder(levels=args.interval, window=args.interval)
    result = simulation.simulate_order_flow(args.duration, recorder=recorder)

    trading_data = recorder.to_trading_data()
    calibrated = Calibrator().calibrate_day(trading_data)

    logger.info("=" * 80)
    logger.info(f"Input:      {parameter.summary()}")
    logger.info(f"Calibrated: {calibrated.summary()}")
    for name in ('market_order_rate', 'limit_order_rate_density', 'cancellation_rate'):
        expected, actual = getattr(parameter, name), getattr(calibrated, name)
        logger.info(f"{name}: relative error {abs(actual - expected) / expected:.2%}")
    logger.info("=" * 80)

    args.output_dir.mkdir(parents=True, exist_ok=True)
    save_price_process(result.price_time_series, parameter.price_tick_size, args.output_dir / "prices.txt")
    save_depth_profile(simulation.book, args.output_dir / "depth.txt")
    save_distribution(trading_data.average_depth_profile(), args.output_dir / "average_depth_profile.csv")
    save_parameter(calibrated, args.output_dir / "calibrated_parameters.json")

if __name__ == "__main__":
    main()
