"""
Command line entry point.

    lobsim calibrate --data-dir D --symbol S --dates 2024-01-02 2024-01-03 --output params.json
    lobsim simulate --parameters params.json --duration 3600 --output-dir out
    lobsim export-prices --data-dir D --symbol S --dates 2024-01-02 --output-dir out
"""
import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, Tuple

from .calibration import Calibrator, initial_depth_profile
from .config import CalibrationSettings, RepositorySettings, SimulationSettings
from .core.types import LobSimError
from .data.repository import LobsterRepository
from .export import save_price_process, save_depth_profile, save_distribution, save_trading_price_process
from .parameters import ModelParameter, save_parameter, load_parameter
from .simulation import SmithFarmerSimulation, flat_depth_profile
from .statistics.random_stream import RandomStream

logger = logging.getLogger(__name__)

# ============================================================================
# ARGUMENTS
# ============================================================================

def _add_repository_arguments(parser: argparse.ArgumentParser, required: bool = True):
    parser.add_argument('--data-dir', type=Path, required=required, help='Folder searched recursively for LOBSTER files')
    parser.add_argument('--symbol', required=required, help='Ticker symbol of the LOBSTER files')
    parser.add_argument('--level', type=int, default=10, help='Number of levels in the LOBSTER files')
    parser.add_argument('--skip-first-seconds', type=float, default=0.0, help='Ignore the first seconds of each day')
    parser.add_argument('--skip-last-seconds', type=float, default=0.0, help='Ignore the last seconds of each day')

def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        prog='lobsim',
        description="Smith-Farmer limit order book calibration and simulation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    # calibrate
    calibrate = subparsers.add_parser(
        'calibrate',
        help='Estimate model parameters from LOBSTER data',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    _add_repository_arguments(calibrate)
    calibrate.add_argument('--dates', nargs='+', type=date.fromisoformat, required=True, help='Trading days (YYYY-MM-DD)')
    calibrate.add_argument('--lower-quantile', type=float, default=0.01, help='Lower quantile probability of the band')
    calibrate.add_argument('--upper-quantile', type=float, default=0.80, help='Upper quantile probability of the band')
    calibrate.add_argument('--output', type=Path, default=Path('parameters.json'), help='Parameter JSON file')
    calibrate.add_argument('--check-consistency', action='store_true', help='Check every event against its states')
    calibrate.add_argument('--distribution-dir', type=Path, default=None, help='Also save the empirical distributions here')

    # simulate
    simulate = subparsers.add_parser(
        'simulate',
        help='Simulate the order flow with calibrated parameters',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    simulate.add_argument('--parameters', type=Path, required=True, help='Parameter JSON file')
    _add_repository_arguments(simulate, required=False)
    simulate.add_argument('--date', type=date.fromisoformat, default=None, help='Trading day whose first state seeds the book')
    simulate.add_argument('--initial-bid', type=int, default=1000, help='Best bid tick of a synthetic initial book')
    simulate.add_argument('--initial-spread', type=int, default=2, help='Spread in ticks of a synthetic initial book')
    simulate.add_argument('--duration', type=float, default=3600.0, help='Simulated time in seconds')
    simulate.add_argument('--simulation-interval-size', type=int, default=None, help='Band half-width L in ticks')
    simulate.add_argument('--interval-spread-multiple', type=int, default=4, help='L as a multiple of the initial spread')
    simulate.add_argument('--seed', type=int, default=42, help='Random seed')
    simulate.add_argument('--output-dir', type=Path, default=Path('./output'), help='Output folder')

    # export-prices
    export = subparsers.add_parser(
        'export-prices',
        help='Export the historical (time, bid, ask) process',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    _add_repository_arguments(export)
    export.add_argument('--dates', nargs='+', type=date.fromisoformat, required=True, help='Trading days (YYYY-MM-DD)')
    export.add_argument('--output-dir', type=Path, default=Path('./output'), help='Output folder')

    return parser.parse_args(argv)

def _repository_settings(args) -> RepositorySettings:
    return RepositorySettings(
        data_dir=args.data_dir,
        symbol=args.symbol,
        level=args.level,
        skip_first_seconds=args.skip_first_seconds,
        skip_last_seconds=args.skip_last_seconds
    )

# ============================================================================
# COMMANDS
# ============================================================================

def run_calibrate(args) -> ModelParameter:
    settings = CalibrationSettings(
        lower_quantile_probability=args.lower_quantile,
        upper_quantile_probability=args.upper_quantile
    )
    repository = LobsterRepository(_repository_settings(args), args.dates)

    if args.check_consistency:
        for day, trading_data in repository.trading_data.items():
            logger.info(f"Checking consistency of {day}")
            trading_data.check_consistency()

    if args.distribution_dir is not None:
        for day, trading_data in repository.trading_data.items():
            prefix = args.distribution_dir / f"{args.symbol}_{day}"
            save_distribution(trading_data.average_depth_profile(), f"{prefix}_average_depth_profile.csv")
            save_distribution(trading_data.limit_order_distribution(), f"{prefix}_limit_orders.csv")
            save_distribution(trading_data.canceled_order_distribution(), f"{prefix}_canceled_orders.csv")
            save_distribution(trading_data.cancellation_rate_distribution(), f"{prefix}_cancellation_rate.csv")

    parameter = Calibrator.from_settings(settings).calibrate(repository.trading_data)
    save_parameter(parameter, args.output)
    return parameter

def resolve_interval_size(parameter: ModelParameter, settings: SimulationSettings, spread: int) -> int:
    """Explicit setting, else the calibrated value, else a multiple of the initial spread"""
    if settings.simulation_interval_size is not None:
        return settings.simulation_interval_size
    if parameter.simulation_interval_size > 0:
        return parameter.simulation_interval_size
    return settings.interval_spread_multiple * spread

def initial_book(args, parameter: ModelParameter) -> Tuple[Dict[int, int], Dict[int, int]]:
    if args.data_dir is not None:
        if args.symbol is None or args.date is None:
            raise ValueError("--symbol and --date are required to seed the book from LOBSTER data")
        repository = LobsterRepository(_repository_settings(args), [args.date])
        if args.date not in repository.trading_data:
            raise LobSimError(f"No trading data for {args.date}")
        state = repository.trading_data[args.date].states[0]
        logger.info(f"Seeding the book with the first state of {args.date}: {state}")
        return initial_depth_profile(state, parameter)

    depth = max(int(round(parameter.asymptotic_depth)), 1) if parameter.cancellation_rate > 0 else 1
    levels = max(parameter.simulation_interval_size, args.simulation_interval_size or 0, 1) * 2
    logger.info(f"Seeding a synthetic book with {levels} levels of depth {depth} per side")
    return flat_depth_profile(depth, args.initial_bid, args.initial_bid + args.initial_spread, levels)

def run_simulate(args):
    settings = SimulationSettings(
        duration=args.duration,
        simulation_interval_size=args.simulation_interval_size,
        interval_spread_multiple=args.interval_spread_multiple,
        seed=args.seed
    )
    parameter = load_parameter(args.parameters)
    bids, asks = initial_book(args, parameter)
    if not bids or not asks:
        raise LobSimError("The initial book needs depth on both sides")

    spread = min(asks) - max(bids)
    parameter = parameter.model_copy(
        update={'simulation_interval_size': resolve_interval_size(parameter, settings, spread)}
    )

    simulation = SmithFarmerSimulation(parameter, bids, asks, random=RandomStream(settings.seed))
    result = simulation.simulate_order_flow(settings.duration)

    output_dir = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    save_price_process(result.price_time_series, parameter.price_tick_size, output_dir / "prices.txt")
    save_depth_profile(simulation.book, output_dir / "depth.txt")
    save_parameter(parameter, output_dir / "parameters.json")
    with open(output_dir / "stats.json", 'w') as f:
        json.dump(simulation.get_stats(), f, indent=2)
    return result

def run_export_prices(args):
    repository = LobsterRepository(_repository_settings(args), args.dates)
    for day in repository.trading_days:
        path = args.output_dir / f"{args.symbol}_{day}_prices.csv"
        save_trading_price_process(repository.trading_data[day], path)
    return repository.trading_days

COMMANDS = {
    'calibrate': run_calibrate,
    'simulate': run_simulate,
    'export-prices': run_export_prices,
}

# ============================================================================
# MAIN
# ============================================================================

def main(argv=None) -> int:
    """Entry point"""
    args = parse_arguments(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        COMMANDS[args.command](args)
    except (LobSimError, ValueError, FileNotFoundError) as e:
        logger.error(f"{args.command} failed: {e}", exc_info=args.log_level == 'DEBUG')
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
