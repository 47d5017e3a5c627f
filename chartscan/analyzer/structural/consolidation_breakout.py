"""
Swing consolidation-breakout classifier.

Looks for a tight 5-25 bar base ending yesterday, preceded by a strong upward move,
and confirms that today broke out of it on volume with a clean candle inside an
uptrend. Each gate failure is reported with its step number, reason code and the
metric that failed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from chartscan.analyzer.structural.base_utils import (
    ScanFailure,
    count_touches,
    ema_seeded_first,
    has_large_red_candles,
    has_lower_lows_after_day3,
    round_half_up,
    safe_ratio
)
from chartscan.analyzer.structural.criteria import contraction_ratio
from chartscan.analyzer.structural.settings import SwingBreakoutSettings
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries


@dataclass
class ConsolidationWindow(SerializableMixin):
    start_date: str
    end_date: str
    duration_days: int
    high: float
    low: float
    range_percent: float


@dataclass
class PriorMove(SerializableMixin):
    start_date: str
    end_date: str
    low: float
    high: float
    move_percent: float


@dataclass
class VolumeAnalysis(SerializableMixin):
    avg_volume_prior_move: float
    avg_volume_consolidation: float
    contraction_ratio: float
    breakout_day_volume: float
    volume_surge_ratio: float
    avg_volume_50d: float


@dataclass
class BreakoutCandle(SerializableMixin):
    date: str
    open: float
    high: float
    low: float
    close: float
    close_position_in_range: float
    gap_percent: float


@dataclass
class TrendContext(SerializableMixin):
    ema_20: float
    ema_50: float
    price_vs_ema50: str
    ema_50_slope: str


@dataclass
class TradeLevels(SerializableMixin):
    entry: float
    stop_loss: float
    target: float
    risk_reward_ratio: float


@dataclass
class QualityChecks(SerializableMixin):
    lower_lows_after_day_3: bool
    support_touches: int
    resistance_touches: int
    large_red_candles: bool


@dataclass
class SwingBreakoutResult(SerializableMixin):
    match: bool
    symbol: str = ""
    scan_date: str = ""
    breakout_level: Optional[float] = None
    consolidation: Optional[ConsolidationWindow] = None
    prior_move: Optional[PriorMove] = None
    volume_analysis: Optional[VolumeAnalysis] = None
    breakout_candle: Optional[BreakoutCandle] = None
    trend_context: Optional[TrendContext] = None
    trade_levels: Optional[TradeLevels] = None
    quality_checks: Optional[QualityChecks] = None
    failure: Optional[ScanFailure] = None


@dataclass
class _Base:
    start: int
    end: int
    high: float
    low: float

    @property
    def duration(self) -> int:
        return self.end - self.start


class SwingConsolidationScanner:
    """Classifies the last bar of a series as a swing consolidation breakout (or explains why not)."""

    def __init__(self, settings: Optional[SwingBreakoutSettings] = None,
                 logger: Optional[logging.Logger] = None):
        self.settings = settings or SwingBreakoutSettings()
        self.logger = logger or logging.getLogger(__name__)

    def scan(self, series: PriceSeries, symbol: str = "") -> SwingBreakoutResult:
        s = self.settings
        n = len(series)
        self.logger.debug(f"[{symbol}] Step 1: starting scan with {n} rows")

        if n < s.min_rows:
            return self._fail(symbol, series, 1, "insufficient_data", rows=n, required=s.min_rows)

        today = n - 1
        close = series.close
        ema_fast_series = ema_seeded_first(close, s.ema_fast)
        ema_slow_series = ema_seeded_first(close, s.ema_slow)
        ema_fast = float(ema_fast_series[-1])
        ema_slow = float(ema_slow_series[-1])
        ema_slow_prev = float(ema_slow_series[-(s.ema_slope_bars + 1)])
        avg_volume_50 = float(series.volume[-s.volume_average_bars:].sum()) / s.volume_average_bars
        self.logger.debug(f"[{symbol}] Step 3: ema20={ema_fast:.2f} ema50={ema_slow:.2f} "
                          f"ema50_prev={ema_slow_prev:.2f} avg_volume_50={avg_volume_50:.0f}")

        base, tried = self._find_consolidation(series)
        if base is None:
            return self._fail(symbol, series, 4, "no_valid_consolidation", tried=tried)
        self.logger.debug(f"[{symbol}] Step 4: consolidation of {base.duration} bars "
                          f"high={base.high} low={base.low}")

        # Prior move: up to 20 bars before the base
        prior_end = base.start
        prior_start = max(0, prior_end - s.prior_move_window)
        prior_low = float(series.low[prior_start:prior_end].min())
        prior_high = float(series.high[prior_start:prior_end].max())
        prior_move_pct = safe_ratio(prior_high - prior_low, prior_low) * 100
        if prior_move_pct < s.min_prior_move_percent:
            return self._fail(symbol, series, 5, "prior_move_too_small",
                              prior_move_pct=round(prior_move_pct, 1), required=s.min_prior_move_percent)

        start_close = float(close[prior_start])
        end_close = float(close[prior_end - 1])
        if end_close < start_close * s.prior_move_upward_ratio:
            return self._fail(symbol, series, 5, "prior_move_not_upward",
                              start_close=start_close, end_close=end_close)

        avg_vol_prior = float(series.volume[prior_start:prior_end].mean())
        avg_vol_consol = float(series.volume[base.start:base.end].mean())
        # NaN (no volume at all) does not fail the gate
        contraction = contraction_ratio(avg_vol_consol, avg_vol_prior)
        if contraction > s.volume_contraction_threshold:
            return self._fail(symbol, series, 6, "no_volume_contraction",
                              ratio=round(contraction, 2), max_allowed=s.volume_contraction_threshold)

        today_close = float(close[today])
        breakout_level = base.high * s.breakout_buffer
        if today_close <= breakout_level:
            return self._fail(symbol, series, 7, "no_breakout_today", today_close=today_close,
                              consolidation_high=base.high, breakout_required=round(breakout_level, 2))

        today_volume = float(series.volume[today])
        required_volume = avg_volume_50 * s.min_breakout_volume_ratio
        surge_ratio = safe_ratio(today_volume, avg_volume_50)
        if today_volume < required_volume:
            return self._fail(symbol, series, 8, "breakout_volume_too_low", today_volume=today_volume,
                              required=round(required_volume), ratio=round(surge_ratio, 2))

        today_high = float(series.high[today])
        today_low = float(series.low[today])
        candle_range = today_high - today_low
        close_position = (today_close - today_low) / candle_range if candle_range > 0 else 0.0
        if close_position < s.min_close_position:
            return self._fail(symbol, series, 9, "weak_candle_close",
                              close_position=round(close_position, 2), required=s.min_close_position)

        yesterday_close = float(close[today - 1])
        today_open = float(series.open[today])
        gap = safe_ratio(today_open - yesterday_close, yesterday_close)
        if gap > s.max_gap_pct:
            return self._fail(symbol, series, 10, "gap_up_too_large",
                              gap_pct=round(gap * 100, 1), max_allowed=s.max_gap_pct * 100)

        if today_close < ema_slow:
            return self._fail(symbol, series, 11, "price_below_ema50",
                              today_close=today_close, ema50=round(ema_slow, 2))
        if ema_slow < ema_slow_prev:
            return self._fail(symbol, series, 11, "ema50_not_rising",
                              ema50=round(ema_slow, 2), ema50_prev=round(ema_slow_prev, 2))

        self.logger.debug(f"[{symbol}] Step 12: all checks passed")

        base_highs = series.high[base.start:base.end]
        base_lows = series.low[base.start:base.end]
        support_touches, resistance_touches = count_touches(base_highs, base_lows, base.high, base.low,
                                                            s.touch_zone_fraction)

        stop = base.low * s.stop_buffer
        target = today_close * (1 + prior_move_pct / 100 * s.target_move_fraction)
        risk = today_close - stop
        risk_reward = (target - today_close) / risk if risk > 0 else 0.0

        return SwingBreakoutResult(
            match=True,
            symbol=symbol,
            scan_date=series.dates[today],
            breakout_level=breakout_level,
            consolidation=ConsolidationWindow(
                start_date=series.dates[base.start],
                end_date=series.dates[base.end - 1],
                duration_days=base.duration,
                high=base.high,
                low=base.low,
                range_percent=(base.high - base.low) / base.low * 100,
            ),
            prior_move=PriorMove(
                start_date=series.dates[prior_start],
                end_date=series.dates[prior_end - 1],
                low=prior_low,
                high=prior_high,
                move_percent=prior_move_pct,
            ),
            volume_analysis=VolumeAnalysis(
                avg_volume_prior_move=round_half_up(avg_vol_prior, 0),
                avg_volume_consolidation=round_half_up(avg_vol_consol, 0),
                contraction_ratio=round_half_up(contraction),
                breakout_day_volume=today_volume,
                volume_surge_ratio=round_half_up(surge_ratio),
                avg_volume_50d=round_half_up(avg_volume_50, 0),
            ),
            breakout_candle=BreakoutCandle(
                date=series.dates[today],
                open=today_open,
                high=today_high,
                low=today_low,
                close=today_close,
                close_position_in_range=round_half_up(close_position),
                gap_percent=round_half_up(gap * 100),
            ),
            trend_context=TrendContext(
                ema_20=round_half_up(ema_fast),
                ema_50=round_half_up(ema_slow),
                price_vs_ema50="above" if today_close >= ema_slow else "below",
                ema_50_slope="up" if ema_slow >= ema_slow_prev else "down",
            ),
            trade_levels=TradeLevels(
                entry=today_close,
                stop_loss=round_half_up(stop),
                target=round_half_up(target),
                risk_reward_ratio=round_half_up(risk_reward),
            ),
            quality_checks=QualityChecks(
                lower_lows_after_day_3=has_lower_lows_after_day3(base_lows, s.lower_low_tolerance),
                support_touches=support_touches,
                resistance_touches=resistance_touches,
                large_red_candles=has_large_red_candles(series.open[base.start:base.end],
                                                        close[base.start:base.end], s.large_red_body_pct),
            ),
        )

    def _find_consolidation(self, series: PriceSeries):
        """Return the shortest window ending yesterday that passes every base gate."""
        s = self.settings
        n = len(series)
        end = n - 1
        tried: List[Dict[str, Any]] = []

        for duration in range(s.consolidation_min_days, s.consolidation_max_days + 1):
            start = end - duration
            if start < 0:
                tried.append({'duration': duration, 'reason': 'not_enough_data'})
                continue

            highs = series.high[start:end]
            lows = series.low[start:end]
            high = float(highs.max())
            low = float(lows.min())

            if low <= 0:
                tried.append({'duration': duration, 'reason': 'non_positive_low'})
                continue
            range_pct = (high - low) / low
            if range_pct > s.max_consolidation_range:
                tried.append({'duration': duration,
                              'reason': f"range_too_wide: {range_pct * 100:.1f}% > "
                                        f"{s.max_consolidation_range * 100:g}%"})
                continue
            if has_lower_lows_after_day3(lows, s.lower_low_tolerance):
                tried.append({'duration': duration, 'reason': 'lower_lows_after_day3'})
                continue
            support, resistance = count_touches(highs, lows, high, low, s.touch_zone_fraction)
            if support < s.min_touches or resistance < s.min_touches:
                tried.append({'duration': duration, 'reason': 'insufficient_support_resistance_touches'})
                continue
            if has_large_red_candles(series.open[start:end], series.close[start:end], s.large_red_body_pct):
                tried.append({'duration': duration, 'reason': 'large_red_candles_present'})
                continue

            return _Base(start, end, high, low), tried

        return None, tried

    def _fail(self, symbol: str, series: PriceSeries, step: int, reason: str, **details) -> SwingBreakoutResult:
        self.logger.debug(f"[{symbol}] Step {step}: FAIL - {reason} {details}")
        scan_date = series.dates[-1] if len(series) else ""
        return SwingBreakoutResult(match=False, symbol=symbol, scan_date=scan_date,
                                   failure=ScanFailure(step, reason, details))


def scan_consolidation_breakout(series: PriceSeries, symbol: str = "",
                                settings: Optional[SwingBreakoutSettings] = None) -> SwingBreakoutResult:
    return SwingConsolidationScanner(settings).scan(series, symbol)
