"""
Positional (weeks-to-months) daily-bar scanners and the id registry that runs them.

Each scanner returns a result dataclass whose ``match`` flag says whether the
setup is present on the latest bar; ``run_positional_scanner`` wraps a match in
a ``PositionalHit`` row and returns None otherwise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import numpy as np

from chartscan.analyzer.structural.base_utils import round_half_up
from chartscan.analyzer.structural.cup_and_handle import scan_cup_and_handle
from chartscan.analyzer.structural.macd_scanners import (
    DEFAULT_LOOKBACK_BARS,
    scan_bullish_cross_building_negative,
    scan_bullish_cross_building_positive,
    scan_macd_crossover
)
from chartscan.analyzer.structural.positional_breakout import scan_positional_breakout
from chartscan.indicators.momentum import cutler_rsi_numba
from chartscan.indicators.overlap import ema_numba
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries

logger = logging.getLogger(__name__)

TRADING_DAYS_52W = 252
LOOKBACK_20D = 20
RSI_PERIOD = 14
DIVERGENCE_LOOKBACK = 30
EMA50_PERIOD = 50
DOUBLE_BOTTOM_BARS = 35


@dataclass
class Fresh52WeekHighResult(SerializableMixin):
    match: bool = False
    high_52w: float = 0.0
    today_high: float = 0.0
    today_close: float = 0.0
    pct_from_52w_high: float = 0.0


@dataclass
class AllTimeHighBreakoutResult(SerializableMixin):
    match: bool = False
    ath: float = 0.0
    today_close: float = 0.0
    pct_above_ath: float = 0.0


@dataclass
class RelativeStrengthResult(SerializableMixin):
    match: bool = False
    stock_return_20d: float = 0.0
    benchmark_return_20d: float = 0.0
    outperformance: float = 0.0
    today_close: float = 0.0


@dataclass
class Pullback50EmaResult(SerializableMixin):
    match: bool = False
    ema50: float = 0.0
    today_close: float = 0.0
    pct_from_ema50: float = 0.0
    ema50_rising: bool = False


@dataclass
class RsiDivergenceResult(SerializableMixin):
    match: bool = False
    rsi_current: float = 0.0
    price_low_1: float = 0.0
    price_low_2: float = 0.0
    rsi_1: float = 0.0
    rsi_2: float = 0.0
    today_close: float = 0.0


@dataclass
class SupportZoneTestResult(SerializableMixin):
    match: bool = False
    support_level: float = 0.0
    today_low: float = 0.0
    today_close: float = 0.0
    pct_from_support: float = 0.0


@dataclass
class CupHandleSummary(SerializableMixin):
    match: bool = False
    cup_low: float = 0.0
    handle_low: float = 0.0
    resistance_level: float = 0.0
    today_close: float = 0.0
    pct_from_resistance: float = 0.0


@dataclass
class DoubleBottomResult(SerializableMixin):
    match: bool = False
    first_low: float = 0.0
    second_low: float = 0.0
    neckline: float = 0.0
    today_close: float = 0.0
    pct_from_neckline: float = 0.0


@dataclass
class MorningStarResult(SerializableMixin):
    match: bool = False
    day1_body_pct: float = 0.0
    day3_body_pct: float = 0.0
    today_close: float = 0.0


@dataclass
class AccumulationPhaseResult(SerializableMixin):
    match: bool = False
    volatility_ratio: float = 0.0
    volume_ratio: float = 0.0
    today_close: float = 0.0


@dataclass
class PositionalHit(SerializableMixin):
    symbol: str
    name: str
    scanner_id: str
    today_close: float
    data: Any


def _pct_from(value: float, reference: float) -> float:
    return (value - reference) / reference * 100 if reference > 0 else 0.0


def scan_fresh_52w_high(series: PriceSeries) -> Fresh52WeekHighResult:
    """Today's high reaches the highest high of the prior 252 bars."""
    if len(series) < 2:
        return Fresh52WeekHighResult()
    high_52w = float(series.high[:-1][-TRADING_DAYS_52W:].max())
    today_high = float(series.high[-1])
    today_close = float(series.close[-1])
    return Fresh52WeekHighResult(
        match=high_52w > 0 and today_high >= high_52w,
        high_52w=high_52w,
        today_high=today_high,
        today_close=today_close,
        pct_from_52w_high=_pct_from(today_close, high_52w),
    )


def scan_all_time_high_breakout(series: PriceSeries) -> AllTimeHighBreakoutResult:
    """Today's close above the highest high of all prior bars."""
    if len(series) < 2:
        return AllTimeHighBreakoutResult()
    ath = float(series.high[:-1].max())
    today_close = float(series.close[-1])
    return AllTimeHighBreakoutResult(match=ath > 0 and today_close > ath, ath=ath, today_close=today_close,
                                     pct_above_ath=_pct_from(today_close, ath))


def scan_relative_strength_leaders(series: PriceSeries, benchmark_return_20d: float) -> RelativeStrengthResult:
    """20-bar return beats the benchmark's by at least 2 points."""
    n = len(series)
    if n < LOOKBACK_20D + 1:
        return RelativeStrengthResult(benchmark_return_20d=benchmark_return_20d,
                                      today_close=float(series.close[-1]) if n else 0.0)
    start = float(series.close[-1 - LOOKBACK_20D])
    end = float(series.close[-1])
    stock_return = (end - start) / start * 100 if start != 0 else 0.0
    outperformance = stock_return - benchmark_return_20d
    return RelativeStrengthResult(match=outperformance >= 2, stock_return_20d=stock_return,
                                  benchmark_return_20d=benchmark_return_20d,
                                  outperformance=outperformance, today_close=end)


def scan_pullback_50ema(series: PriceSeries) -> Pullback50EmaResult:
    """Rising 50 EMA, price near it today after holding above it ten bars ago."""
    n = len(series)
    if n < EMA50_PERIOD + 20:
        return Pullback50EmaResult()
    ema50 = ema_numba(series.close, EMA50_PERIOD)
    ema_now = float(ema50[-1])
    ema_prior = float(ema50[-11])
    today_close = float(series.close[-1])
    pct = _pct_from(today_close, ema_now)
    rising = ema_now > ema_prior
    was_above = float(series.close[-11]) >= ema_prior * 0.98
    return Pullback50EmaResult(match=was_above and abs(pct) <= 2 and rising, ema50=ema_now,
                               today_close=today_close, pct_from_ema50=pct, ema50_rising=rising)


def scan_bullish_rsi_divergence(series: PriceSeries) -> RsiDivergenceResult:
    """Lower low in price against a higher RSI low across the two halves of the last 30 bars."""
    n = len(series)
    window = DIVERGENCE_LOOKBACK + RSI_PERIOD
    if n < window:
        return RsiDivergenceResult(today_close=float(series.close[-1]) if n else 0.0)

    rsi = cutler_rsi_numba(series.close[-window:], RSI_PERIOD)
    rsi_valid = rsi[RSI_PERIOD:]
    lows = series.low[-window:][RSI_PERIOD:]
    mid = len(lows) // 2
    first = int(np.argmin(lows[:mid]))
    second = mid + int(np.argmin(lows[mid:]))
    rsi_current = float(rsi[-1])

    price_low_1, price_low_2 = float(lows[first]), float(lows[second])
    rsi_1, rsi_2 = float(rsi_valid[first]), float(rsi_valid[second])
    return RsiDivergenceResult(
        match=price_low_2 < price_low_1 and rsi_2 > rsi_1 and rsi_current < 50,
        rsi_current=rsi_current,
        price_low_1=price_low_1,
        price_low_2=price_low_2,
        rsi_1=rsi_1,
        rsi_2=rsi_2,
        today_close=float(series.close[-1]),
    )


def scan_support_zone_test(series: PriceSeries) -> SupportZoneTestResult:
    """Today's low tags the prior 20-bar low (within 2%) and the close holds near it."""
    if len(series) < LOOKBACK_20D + 2:
        return SupportZoneTestResult()
    support = float(series.low[-(LOOKBACK_20D + 1):-1].min())
    today_low = float(series.low[-1])
    today_close = float(series.close[-1])
    touched = today_low <= support * 1.02
    held = today_close >= support * 0.98
    return SupportZoneTestResult(match=touched and held and support > 0, support_level=support,
                                 today_low=today_low, today_close=today_close,
                                 pct_from_support=_pct_from(today_close, support))


def scan_cup_handle_summary(series: PriceSeries, symbol: str = "") -> CupHandleSummary:
    result = scan_cup_and_handle(series, symbol)
    return CupHandleSummary(match=result.match, cup_low=result.cup_low, handle_low=result.handle_low,
                            resistance_level=result.resistance_level, today_close=result.today_close,
                            pct_from_resistance=result.pct_from_resistance)


def scan_double_bottom(series: PriceSeries) -> DoubleBottomResult:
    """Two lows within 3% of each other in the halves of the last 35 bars, with price bouncing off them."""
    if len(series) < DOUBLE_BOTTOM_BARS:
        return DoubleBottomResult()
    lows = series.low[-DOUBLE_BOTTOM_BARS:]
    mid = DOUBLE_BOTTOM_BARS // 2
    first_low = float(lows[:mid].min())
    second_low = float(lows[mid:].min())
    neckline = float(series.high[-DOUBLE_BOTTOM_BARS:].max())
    today_close = float(series.close[-1])
    floor = min(first_low, second_low)
    similar = abs(first_low - second_low) / floor <= 0.03 if floor > 0 else False
    bounce = today_close > (first_low + second_low) / 2 * 1.02
    return DoubleBottomResult(match=similar and bounce and neckline > 0, first_low=first_low,
                              second_low=second_low, neckline=neckline, today_close=today_close,
                              pct_from_neckline=_pct_from(today_close, neckline))


def scan_morning_star(series: PriceSeries) -> MorningStarResult:
    """Large red bar, a small gapped-down star, then a strong green bar closing past the first body's midpoint."""
    if len(series) < 3:
        return MorningStarResult()
    o, c, h, lo = series.open, series.close, series.high, series.low
    body1 = (o[-3] - c[-3]) / o[-3] if o[-3] > c[-3] else 0.0
    body3 = (c[-1] - o[-1]) / o[-1] if c[-1] > o[-1] else 0.0
    small_star = abs(c[-2] - o[-2]) / o[-2] <= 0.015 if o[-2] != 0 else False
    star_gap = h[-2] < lo[-3] * 1.001
    strong_third = c[-1] > (o[-3] + c[-3]) / 2 and body3 >= 0.01
    return MorningStarResult(match=bool(body1 >= 0.02 and small_star and star_gap and strong_third),
                             day1_body_pct=float(body1 * 100), day3_body_pct=float(body3 * 100),
                             today_close=float(c[-1]))


def scan_accumulation_phase(series: PriceSeries) -> AccumulationPhaseResult:
    """Tightening range (10-bar range at most 85% of the 20-bar range) on rising volume (5-bar average 10% above 20)."""
    if len(series) < 25:
        return AccumulationPhaseResult()
    range10 = float(series.high[-10:].max() - series.low[-10:].min())
    range20 = float(series.high[-20:].max() - series.low[-20:].min())
    vol5 = float(series.volume[-5:].mean())
    vol20 = float(series.volume[-20:].mean())
    volatility_ratio = range10 / range20 if range20 > 0 else 0.0
    volume_ratio = vol5 / vol20 if vol20 > 0 else 0.0
    return AccumulationPhaseResult(
        match=volatility_ratio <= 0.85 and volume_ratio >= 1.1,
        volatility_ratio=round_half_up(volatility_ratio),
        volume_ratio=round_half_up(volume_ratio),
        today_close=float(series.close[-1]),
    )


POSITIONAL_SCANNERS: Dict[str, Callable[..., Any]] = {
    'fresh-52w-high': lambda series, ctx: scan_fresh_52w_high(series),
    'ath-breakout': lambda series, ctx: scan_all_time_high_breakout(series),
    'rs-leaders': lambda series, ctx: scan_relative_strength_leaders(series, ctx['benchmark_return_20d']),
    'pullback-50ema': lambda series, ctx: scan_pullback_50ema(series),
    'bullish-divergence': lambda series, ctx: scan_bullish_rsi_divergence(series),
    'consolidation-breakout': lambda series, ctx: scan_positional_breakout(
        series, ctx['symbol'], ctx['benchmark_return_65d']),
    'support-test': lambda series, ctx: scan_support_zone_test(series),
    'cup-handle': lambda series, ctx: scan_cup_handle_summary(series, ctx['symbol']),
    'double-bottom': lambda series, ctx: scan_double_bottom(series),
    'morning-star': lambda series, ctx: scan_morning_star(series),
    'accumulation-pattern': lambda series, ctx: scan_accumulation_phase(series),
    'macd-crossover-1d': lambda series, ctx: scan_macd_crossover(series, DEFAULT_LOOKBACK_BARS),
    'macd-crossover-1mo': lambda series, ctx: scan_macd_crossover(series, DEFAULT_LOOKBACK_BARS),
    'bullish-cross-building-negative': lambda series, ctx: scan_bullish_cross_building_negative(series),
    'bullish-cross-building-positive': lambda series, ctx: scan_bullish_cross_building_positive(series),
}


def run_positional_scanner(scanner_id: str, series: PriceSeries, symbol: str = "", name: str = "",
                           benchmark_return_20d: float = 0.0,
                           benchmark_return_65d: float = 0.0) -> Optional[PositionalHit]:
    scanner = POSITIONAL_SCANNERS.get(scanner_id)
    if scanner is None:
        logger.warning(f"Unknown positional scanner id: {scanner_id}")
        return None
    context = {'symbol': symbol, 'benchmark_return_20d': benchmark_return_20d,
               'benchmark_return_65d': benchmark_return_65d}
    data = scanner(series, context)
    if not data.match:
        return None
    today_close = float(series.close[-1]) if len(series) else 0.0
    return PositionalHit(symbol=symbol, name=name, scanner_id=scanner_id, today_close=today_close, data=data)


# Ids run on every daily scan; the monthly MACD scans and the two classifiers
# with their own ScanRecord fields are left to explicit calls.
DAILY_SCANNER_IDS = tuple(scanner_id for scanner_id in POSITIONAL_SCANNERS if scanner_id not in (
    'consolidation-breakout', 'cup-handle', 'macd-crossover-1mo',
    'bullish-cross-building-negative', 'bullish-cross-building-positive'))
