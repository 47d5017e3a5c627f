"""
MACD (12, 26, 9) position scans: a bullish crossover within the last N bars and
a bullish cross building under or above the zero line on the latest bar.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from chartscan.indicators.momentum import macd_numba
from chartscan.indicators.setups import crossover_numba
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries

FAST_PERIOD = 12
SLOW_PERIOD = 26
SIGNAL_PERIOD = 9
MIN_BARS = SLOW_PERIOD + SIGNAL_PERIOD
DEFAULT_LOOKBACK_BARS = 30


@dataclass
class MacdCrossoverResult(SerializableMixin):
    match: bool
    today_close: float
    crossover_date: Optional[str] = None
    macd_value: Optional[float] = None
    signal_value: Optional[float] = None
    histogram_value: Optional[float] = None


@dataclass
class CrossBuildingResult(SerializableMixin):
    match: bool
    today_close: float
    macd_value: Optional[float] = None
    signal_value: Optional[float] = None
    current_histogram: Optional[float] = None
    previous_histogram: Optional[float] = None
    histogram_change: Optional[float] = None


def _chronological(series: PriceSeries) -> Tuple[list, np.ndarray]:
    order = sorted(range(len(series)), key=lambda i: series.dates[i])
    return [series.dates[i] for i in order], series.close[order]


def _today_close(series: PriceSeries) -> float:
    return float(series.close[-1]) if len(series) else 0.0


def scan_macd_crossover(series: PriceSeries, lookback_bars: int = DEFAULT_LOOKBACK_BARS) -> MacdCrossoverResult:
    """Most recent bullish MACD/signal crossover within the last ``lookback_bars`` bars."""
    result = MacdCrossoverResult(match=False, today_close=_today_close(series))
    if len(series) < MIN_BARS:
        return result

    dates, closes = _chronological(series)
    line, signal, hist = macd_numba(closes, FAST_PERIOD, SLOW_PERIOD, SIGNAL_PERIOD)
    crosses = np.flatnonzero(crossover_numba(line, signal, True))
    recent = crosses[crosses >= max(0, len(closes) - lookback_bars)]
    if len(recent) == 0:
        return result

    i = int(recent[-1])
    result.match = True
    result.crossover_date = dates[i]
    result.macd_value = float(line[i])
    result.signal_value = float(signal[i])
    result.histogram_value = float(hist[i])
    return result


def _cross_building(series: PriceSeries, above_zero: bool) -> CrossBuildingResult:
    result = CrossBuildingResult(match=False, today_close=_today_close(series))
    if len(series) < MIN_BARS:
        return result

    _, closes = _chronological(series)
    line, signal, hist = macd_numba(closes, FAST_PERIOD, SLOW_PERIOD, SIGNAL_PERIOD)
    macd_now, signal_now, hist_now, hist_prev = line[-1], signal[-1], hist[-1], hist[-2]
    if np.isnan(macd_now) or np.isnan(signal_now) or np.isnan(hist_now) or np.isnan(hist_prev):
        return result

    if above_zero:
        side_ok = macd_now > 0 and signal_now > 0
    else:
        side_ok = macd_now < 0 and signal_now < 0
    if not (side_ok and hist_now < 0 and hist_now > hist_prev):
        return result

    result.match = True
    result.macd_value = float(macd_now)
    result.signal_value = float(signal_now)
    result.current_histogram = float(hist_now)
    result.previous_histogram = float(hist_prev)
    result.histogram_change = float(hist_now - hist_prev)
    return result


def scan_bullish_cross_building_negative(series: PriceSeries) -> CrossBuildingResult:
    """MACD and signal below zero, histogram negative but higher than on the previous bar."""
    return _cross_building(series, above_zero=False)


def scan_bullish_cross_building_positive(series: PriceSeries) -> CrossBuildingResult:
    """MACD and signal above zero, histogram negative but rising."""
    return _cross_building(series, above_zero=True)
