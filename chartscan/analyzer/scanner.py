"""
One-call scan of a single price series: every structural classifier, the tiered
swing grade, the daily positional scanners and the candlestick and divergence
flags on the last bar.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from chartscan.analyzer.pattern_engine.candlestick_patterns import CANDLESTICK_PATTERNS
from chartscan.analyzer.pattern_engine.indicator_patterns import DIVERGENCE_TYPES
from chartscan.analyzer.structural import (
    DAILY_SCANNER_IDS,
    CupAndHandleResult,
    CupAndHandleScanner,
    CupAndHandleSettings,
    PositionalBreakoutResult,
    PositionalBreakoutScanner,
    PositionalBreakoutSettings,
    SwingBreakoutResult,
    SwingBreakoutSettings,
    SwingConsolidationScanner,
    TieredBreakoutResult,
    TieredBreakoutScanner,
    TieredBreakoutSettings,
    run_positional_scanner
)
from chartscan.contracts.config import ConfigProtocol
from chartscan.registry import IndicatorRegistry, indicators_in_category
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries


@dataclass
class ScanRecord(SerializableMixin):
    symbol: str
    scan_date: str
    bars: int
    candlestick_patterns: List[str] = field(default_factory=list)
    divergences: List[str] = field(default_factory=list)
    swing_breakout: Optional[SwingBreakoutResult] = None
    positional_breakout: Optional[PositionalBreakoutResult] = None
    cup_and_handle: Optional[CupAndHandleResult] = None
    tiered_breakout: Optional[TieredBreakoutResult] = None
    positional_signals: List[str] = field(default_factory=list)

    @property
    def has_structural_match(self) -> bool:
        return any(result is not None and result.match
                   for result in (self.swing_breakout, self.positional_breakout, self.cup_and_handle))


class PatternScanner:
    """Runs the full pattern battery on one series.

    Thresholds come from the injected config (INI sections named after each
    classifier); without a config every classifier uses its built-in defaults.
    """

    def __init__(self, config: Optional[ConfigProtocol] = None, logger: Optional[logging.Logger] = None,
                 registry: Optional[IndicatorRegistry] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.registry = registry or IndicatorRegistry(logger=self.logger)
        benchmark = config.BENCHMARK_RETURN_65D if config is not None else 0.0
        self.benchmark_return_20d = config.BENCHMARK_RETURN_20D if config is not None else 0.0

        self.swing = SwingConsolidationScanner(SwingBreakoutSettings.from_config(config), self.logger)
        self.positional = PositionalBreakoutScanner(PositionalBreakoutSettings.from_config(config),
                                                    benchmark, self.logger)
        self.cup_and_handle = CupAndHandleScanner(CupAndHandleSettings.from_config(config), self.logger)
        self.tiered = TieredBreakoutScanner(TieredBreakoutSettings.from_config(config), "swing", self.logger)

    def scan(self, series: PriceSeries, symbol: str = "") -> ScanRecord:
        n = len(series)
        record = ScanRecord(symbol=symbol, scan_date=series.dates[-1] if n else "", bars=n)
        if n == 0:
            self.logger.warning(f"[{symbol}] empty series, nothing to scan")
            return record

        record.candlestick_patterns = self.last_bar_candlesticks(series)
        record.divergences = self.last_bar_divergences(series)
        record.swing_breakout = self.swing.scan(series, symbol)
        record.positional_breakout = self.positional.scan(series, symbol)
        record.cup_and_handle = self.cup_and_handle.scan(series, symbol)
        record.tiered_breakout = self.tiered.scan(series, symbol)
        record.positional_signals = self.positional_signals(series, symbol)

        self.logger.info(f"[{symbol}] swing={record.swing_breakout.match} "
                         f"positional={record.positional_breakout.tier_name} "
                         f"cup_and_handle={record.cup_and_handle.match} tier={record.tiered_breakout.tier} "
                         f"signals={record.positional_signals} "
                         f"candles={record.candlestick_patterns} divergences={record.divergences}")
        return record

    def positional_signals(self, series: PriceSeries, symbol: str = "") -> List[str]:
        return [scanner_id for scanner_id in DAILY_SCANNER_IDS
                if run_positional_scanner(scanner_id, series, symbol,
                                          benchmark_return_20d=self.benchmark_return_20d) is not None]

    def last_bar_candlesticks(self, series: PriceSeries) -> List[str]:
        return [pattern_id for pattern_id in CANDLESTICK_PATTERNS
                if self.registry.compute(pattern_id, None, series)[-1] == 1.0]

    def last_bar_divergences(self, series: PriceSeries) -> List[str]:
        """Names like ``rsi_divergence:bullish`` for every divergence firing on the last bar."""
        found = []
        for definition in indicators_in_category("divergence"):
            for div_type in DIVERGENCE_TYPES:
                values = self.registry.compute(definition.id, {'div_type': div_type}, series)
                if values[-1] == 1.0:
                    found.append(f"{definition.id}:{div_type}")
        return found


def scan_series(series: PriceSeries, symbol: str = "", config: Optional[ConfigProtocol] = None) -> ScanRecord:
    return PatternScanner(config).scan(series, symbol)
