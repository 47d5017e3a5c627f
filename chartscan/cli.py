"""
Command-line scan of OHLCV CSV files.

Each file must have date, open, high, low, close columns (volume optional); the
file stem is used as the symbol unless one is given.
"""
import argparse
import json
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd
from rich.console import Console

from chartscan.analyzer.scanner import PatternScanner, ScanRecord
from chartscan.config.loader import Config, load_config
from chartscan.logger.logger import Logger
from chartscan.utils.series import ChartscanError, PriceSeries

REQUIRED_COLUMNS = ('date', 'open', 'high', 'low', 'close')


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scan OHLCV CSV files for breakouts, cup-and-handle, candlestick and divergence patterns",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python start.py data/INFY.csv              # Scan one file, symbol INFY
  python start.py data/*.csv --matches-only  # Only print structural matches
  python start.py data/TCS.csv --config my.ini
        """
    )
    parser.add_argument("files", nargs="+", help="CSV files with date,open,high,low,close[,volume] columns")
    parser.add_argument("-s", "--symbol", default=None, help="Symbol name (single file only). Default: file stem")
    parser.add_argument("-c", "--config", default=None, help="Path to an INI file. Default: config/config.ini")
    parser.add_argument("--matches-only", action="store_true", help="Skip symbols without a structural match")
    return parser.parse_args(argv)


def load_csv(path) -> PriceSeries:
    """Read one OHLCV CSV into a date-sorted series."""
    frame = pd.read_csv(path)
    frame.columns = [str(column).strip().lower() for column in frame.columns]
    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise ChartscanError(f"{path}: missing columns {missing}")

    frame = frame.sort_values('date', kind='stable').drop_duplicates(subset='date', keep='last')
    volume = frame['volume'].fillna(0).to_numpy() if 'volume' in frame.columns else None
    return PriceSeries(frame['date'].astype(str).tolist(), frame['open'].to_numpy(), frame['high'].to_numpy(),
                       frame['low'].to_numpy(), frame['close'].to_numpy(), volume)


def scan_files(paths: List[Path], scanner: PatternScanner, symbol: Optional[str] = None) -> List[ScanRecord]:
    records = []
    for path in paths:
        series = load_csv(path)
        records.append(scanner.scan(series, symbol or path.stem))
    return records


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config: Config = load_config(args.config) if args.config else load_config()
    logger = Logger(logger_name="Scanner", logger_debug=config.LOGGER_DEBUG,
                    log_dir=config.LOG_DIR, log_to_file=config.LOG_TO_FILE)

    paths = [Path(name) for name in args.files]
    if args.symbol and len(paths) > 1:
        logger.error("--symbol can only be used with a single file")
        return 2

    scanner = PatternScanner(config, logger)
    try:
        records = scan_files(paths, scanner, args.symbol)
    except (OSError, ChartscanError) as e:
        logger.error(f"Scan failed: {e}")
        return 1

    console = Console()
    for record in records:
        if args.matches_only and not record.has_structural_match:
            continue
        console.print_json(json.dumps(record.to_dict(), default=str))
    return 0
