"""
LOBSTER file repository.
Finds the message/orderbook pair of each trading day and parses them.
"""
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging

import numpy as np

from ..config import RepositorySettings
from .trading_data import TradingData

logger = logging.getLogger(__name__)

MESSAGE_FILE = "message"
ORDERBOOK_FILE = "orderbook"

class LobsterRepository:
    """
    Loads `{symbol}_{YYYY-MM-DD}_*_{message|orderbook}_{level}.csv` pairs
    found anywhere below the data directory.

    Unparsable line pairs are skipped, a day without exactly one file of
    each kind is skipped. Neither raises.
    """

    def __init__(self, settings: RepositorySettings, trading_days: List[date]):
        self.settings = settings
        self.requested_days = list(trading_days)
        self.trading_data: Dict[date, TradingData] = {}

        # Stats
        self.skipped_lines = 0
        self.skipped_days = 0

        self._load()

    @property
    def trading_days(self) -> List[date]:
        """Successfully loaded days, in request order"""
        return [day for day in self.requested_days if day in self.trading_data]

    # ========================================================================
    # FILE SEARCH
    # ========================================================================

    def find_file(self, trading_day: date, kind: str) -> Path:
        pattern = f"{self.settings.symbol}_{trading_day:%Y-%m-%d}_*_{kind}_{self.settings.level}.csv"
        files = sorted(self.settings.data_dir.rglob(pattern))
        if len(files) != 1:
            raise FileNotFoundError(
                f"Expected one file matching '{pattern}' in '{self.settings.data_dir}', found {len(files)}"
            )
        return files[0]

    # ========================================================================
    # PARSING
    # ========================================================================

    @staticmethod
    def parse_message(line: str) -> List[float]:
        values = [float(value) for value in line.strip().split(",")]
        if len(values) != 6:
            raise ValueError(f"Message line has {len(values)} fields, expected 6")
        return values

    def parse_orderbook(self, line: str) -> List[int]:
        values = [int(value) for value in line.strip().split(",")]
        if len(values) != 4 * self.settings.level:
            raise ValueError(f"Orderbook line has {len(values)} fields, expected {4 * self.settings.level}")
        return values

    def load_files(self, message_file: Path, orderbook_file: Path) -> Tuple[np.ndarray, np.ndarray]:
        """Parse both files in lockstep, dropping any line pair that fails"""
        messages, orderbook = [], []
        with open(message_file) as fm, open(orderbook_file) as fo:
            message_lines = fm.read().splitlines()
            orderbook_lines = fo.read().splitlines()

        if len(message_lines) != len(orderbook_lines):
            logger.warning(
                f"{message_file.name} has {len(message_lines)} lines but "
                f"{orderbook_file.name} has {len(orderbook_lines)}, extra lines are ignored"
            )

        for number, (message_line, orderbook_line) in enumerate(zip(message_lines, orderbook_lines), start=1):
            try:
                message = self.parse_message(message_line)
                state = self.parse_orderbook(orderbook_line)
            except ValueError as e:
                self.skipped_lines += 1
                logger.warning(f"Skipping line {number} of {message_file.name}: {e}")
                continue
            messages.append(message)
            orderbook.append(state)

        return (
            np.array(messages, dtype=float).reshape(-1, 6),
            np.array(orderbook, dtype=np.int64).reshape(-1, 4 * self.settings.level)
        )

    # ========================================================================
    # LOADING
    # ========================================================================

    def load_day(self, trading_day: date) -> Optional[TradingData]:
        try:
            message_file = self.find_file(trading_day, MESSAGE_FILE)
            orderbook_file = self.find_file(trading_day, ORDERBOOK_FILE)
        except FileNotFoundError as e:
            logger.error(f"Could not find the files for trading day {trading_day:%Y-%m-%d}: {e}")
            return None

        messages, orderbook = self.load_files(message_file, orderbook_file)
        if len(messages) == 0:
            logger.error(f"No parsable lines for trading day {trading_day:%Y-%m-%d}")
            return None

        trading_data = TradingData(
            self.settings.level,
            messages,
            orderbook,
            skip_first_seconds=self.settings.skip_first_seconds,
            skip_last_seconds=self.settings.skip_last_seconds
        )
        logger.info(f"Loaded {len(messages)} events and states for {trading_day:%Y-%m-%d}")
        return trading_data

    def _load(self):
        if not self.settings.data_dir.is_dir():
            logger.error(f"The data directory '{self.settings.data_dir}' does not exist")
            self.skipped_days = len(self.requested_days)
            return

        for trading_day in self.requested_days:
            trading_data = self.load_day(trading_day)
            if trading_data is None:
                self.skipped_days += 1
                continue
            self.trading_data[trading_day] = trading_data

    def get_stats(self) -> dict:
        return {
            'symbol': self.settings.symbol,
            'level': self.settings.level,
            'requested_days': len(self.requested_days),
            'loaded_days': len(self.trading_data),
            'skipped_days': self.skipped_days,
            'skipped_lines': self.skipped_lines
        }
