"""
Positional (multi-week) consolidation-breakout classifier.

Scans every 20-80 bar window ending yesterday, discards V-shaped or sloppy bases,
scores the survivors on trend, relative strength, tightness, volume dry-up, base
stage and touch quality, and tiers the best window by where today's close sits
against its breakout level.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from chartscan.analyzer.structural.base_utils import (
    count_touches,
    has_large_red_candles,
    has_lower_lows_after_day3,
    round_half_up
)
from chartscan.analyzer.structural.settings import PositionalBreakoutSettings
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries

TIER_READY = "1"
TIER_ALERT = "2A"
TIER_WATCH = "2B"
TIER_BASE = "3"


@dataclass
class PositionalBreakoutResult(SerializableMixin):
    match: bool
    tier: Optional[str] = None
    tier_name: str = "No Pattern"
    consolidation_start: str = ""
    consolidation_end: str = ""
    consolidation_high: float = 0.0
    consolidation_low: float = 0.0
    range_pct: float = 0.0
    breakout_level: float = 0.0
    today_close: float = 0.0
    distance_to_breakout_pct: float = 0.0
    volume_ratio: float = 0.0
    prior_advance_pct: float = 0.0
    score_pct: int = 0
    suggested_stop: float = 0.0
    target: float = 0.0
    risk_reward: float = 0.0
    base_stage: int = 0
    rs_ratio: float = 0.0
    above_dma200: bool = False
    golden_cross: bool = False
    volume_contracting: bool = False
    fail_reason: str = ""


@dataclass
class _Candidate:
    start: int
    high: float
    low: float
    range_pct: float
    prior_advance_pct: float
    prior_peak_high: float
    volume_contracting: bool
    base_stage: int
    score: float


def _sma_or_zero(values: np.ndarray, period: int) -> np.ndarray:
    """Simple moving average with 0 (not NaN) before the first full window."""
    out = np.zeros(len(values))
    if len(values) >= period:
        cumulative = np.cumsum(np.insert(values, 0, 0.0))
        out[period - 1:] = (cumulative[period:] - cumulative[:-period]) / period
    return out


def _return_pct(close: np.ndarray, bars: int) -> float:
    n = len(close)
    if n <= bars:
        return 0.0
    past = close[n - bars - 1]
    return (close[-1] - past) / past * 100 if past != 0 else 0.0


def _relative_strength(stock_return: float, benchmark_return: float) -> float:
    if benchmark_return != 0:
        return stock_return / benchmark_return
    return 1.5 if stock_return > 0 else 0.5


def is_v_shaped(closes: np.ndarray, highs: np.ndarray, lows: np.ndarray, base_high: float, base_low: float,
                max_drift: float = 0.55, min_middle: float = 0.25, extreme_middle: float = 0.52) -> bool:
    """True for a straight run or a one-sided spike rather than a sideways base.

    Drift and the middle zone are measured against the bar range ``base_high - base_low``,
    so wicks widen the range a base may drift within.
    """
    n = len(closes)
    if n < 6:
        return False
    height = base_high - base_low
    if height <= 0:
        return False

    third = n // 3
    drift = abs(closes[n - third:].mean() - closes[:third].mean()) / height
    if drift >= max_drift:
        return True

    middle = np.sum((closes >= base_low + 0.25 * height) & (closes <= base_high - 0.25 * height)) / n
    if middle < min_middle:
        return True

    low_idx = int(np.argmax(lows == base_low))
    high_idx = int(np.argmax(highs == base_high))
    one_sided = ((low_idx < 0.4 * n and high_idx >= 0.6 * n) or
                 (high_idx < 0.4 * n and low_idx >= 0.6 * n))
    return bool(one_sided and middle < extreme_middle)


def count_base_stage(highs: np.ndarray, closes: np.ndarray, window: int = 20,
                     drawdown: float = 0.92, search: int = 60) -> int:
    """Count completed drawdown-and-recovery cycles; stage 1 is the first base."""
    n = len(highs)
    stages = 0
    i = 0
    while i < n - window:
        chunk = highs[i:min(i + window, n)]
        peak_idx = i + int(np.argmax(chunk))
        peak = highs[peak_idx]

        trough_idx = -1
        for j in range(peak_idx + 1, min(peak_idx + search, n)):
            if closes[j] <= peak * drawdown:
                trough_idx = j
                break

        if trough_idx >= 0:
            for j in range(trough_idx + 1, min(trough_idx + search, n)):
                if closes[j] > peak:
                    stages += 1
                    i = j
                    break
        i += window
    return stages + 1


class PositionalBreakoutScanner:
    """Finds the best-scoring positional base ending yesterday and tiers today's close against it."""

    def __init__(self, settings: Optional[PositionalBreakoutSettings] = None,
                 benchmark_return_65d: float = 0.0, logger: Optional[logging.Logger] = None):
        self.settings = settings or PositionalBreakoutSettings()
        self.benchmark_return_65d = benchmark_return_65d
        self.logger = logger or logging.getLogger(__name__)

    def scan(self, series: PriceSeries, symbol: str = "") -> PositionalBreakoutResult:
        s = self.settings
        n = len(series)
        if n < s.min_bars:
            return self._fail(series, symbol, f"Need {s.min_bars}+ bars, got {n}")

        close = series.close
        sma50 = _sma_or_zero(close, 50)
        sma200 = _sma_or_zero(close, 200)
        today_close = float(close[-1])
        dma50 = float(sma50[-1])
        dma200 = float(sma200[-1])
        above_dma200 = dma200 > 0 and today_close > dma200
        golden_cross = dma50 > 0 and dma200 > 0 and dma50 > dma200

        rs_ratio = _relative_strength(_return_pct(close, 65), self.benchmark_return_65d)
        advance_130 = _return_pct(close, 130)

        best: Optional[_Candidate] = None
        for duration in range(s.consol_min_days, s.consol_max_days + 1):
            candidate = self._evaluate_window(series, duration, sma200, above_dma200, golden_cross,
                                              rs_ratio, advance_130)
            if candidate is not None and (best is None or candidate.score > best.score):
                best = candidate

        if best is None:
            return self._fail(series, symbol, "No valid positional consolidation window found")

        self.logger.debug(f"[{symbol}] best positional base starts {series.dates[best.start]} "
                          f"score={best.score:.0f}")

        breakout = max(best.high, best.prior_peak_high) * s.breakout_buffer
        distance = (breakout - today_close) / today_close * 100 if today_close != 0 else 0.0
        avg_volume_50 = float(series.volume[-50:].sum()) / 50
        volume_ratio = float(series.volume[-1]) / avg_volume_50 if avg_volume_50 > 0 else 0.0

        stop = round_half_up(best.low * s.stop_buffer)
        target = round_half_up(breakout + (best.high - best.low))
        risk = breakout - stop
        risk_reward = (target - breakout) / risk if risk > 0 else 0.0

        tier, tier_name = self._tier(today_close, breakout, volume_ratio, risk_reward, distance)

        return PositionalBreakoutResult(
            match=True,
            tier=tier,
            tier_name=tier_name,
            consolidation_start=series.dates[best.start],
            consolidation_end=series.dates[n - 2],
            consolidation_high=round_half_up(best.high),
            consolidation_low=round_half_up(best.low),
            range_pct=round_half_up(best.range_pct),
            breakout_level=round_half_up(breakout),
            today_close=round_half_up(today_close),
            distance_to_breakout_pct=round_half_up(distance),
            volume_ratio=round_half_up(volume_ratio),
            prior_advance_pct=round_half_up(best.prior_advance_pct),
            score_pct=int(min(100, round_half_up(best.score, 0))),
            suggested_stop=stop,
            target=target,
            risk_reward=round_half_up(risk_reward),
            base_stage=best.base_stage,
            rs_ratio=round_half_up(rs_ratio),
            above_dma200=above_dma200,
            golden_cross=golden_cross,
            volume_contracting=best.volume_contracting,
        )

    def _evaluate_window(self, series: PriceSeries, duration: int, sma200: np.ndarray,
                         above_dma200: bool, golden_cross: bool, rs_ratio: float,
                         advance_130: float) -> Optional[_Candidate]:
        s = self.settings
        n = len(series)
        start = n - 1 - duration
        end = n - 1
        if start < 0:
            return None

        highs = series.high[start:end]
        lows = series.low[start:end]
        closes = series.close[start:end]
        high = float(highs.max())
        low = float(lows.min())
        range_pct = (high - low) / low * 100 if low > 0 else 0.0
        if range_pct > s.max_range_pct:
            return None

        if is_v_shaped(closes, highs, lows, high, low,
                       s.v_shape_max_drift, s.v_shape_min_middle, s.v_shape_extreme_middle):
            return None

        support, resistance = count_touches(highs, lows, high, low)
        if support < 1 or resistance < 1:
            return None

        no_lower_lows = not has_lower_lows_after_day3(lows)
        no_large_red = not has_large_red_candles(series.open[start:end], closes, s.large_red_body_pct)

        close = series.close
        start_close = close[start]
        advance_ref = close[max(0, start - s.prior_advance_bars)]
        prior_advance = (start_close - advance_ref) / advance_ref * 100 if advance_ref != 0 else 0.0
        if prior_advance < s.min_prior_advance_pct:
            return None

        pullback_ref = close[max(0, start - s.pullback_bars)]
        pullback = (start_close - pullback_ref) / pullback_ref * 100 if pullback_ref != 0 else 0.0
        if pullback < s.max_pullback_pct:
            return None

        prior_highs = series.high[max(0, start - s.base_position_bars):start]
        prior_60_high = float(prior_highs.max()) if len(prior_highs) else float('-inf')
        if prior_60_high > 0 and low / prior_60_high * 100 < s.min_base_position_pct:
            return None

        if sma200[start] > 0 and low < s.min_base_vs_sma200 * sma200[start]:
            return None

        consol_volume = float(series.volume[start:end].mean())
        prior_volumes = series.volume[max(0, start - s.prior_volume_bars):start]
        prior_volume = float(prior_volumes.mean()) if len(prior_volumes) else 1.0
        if prior_volume > 0 and consol_volume / prior_volume > s.max_volume_ratio:
            return None

        peak_highs = series.high[max(0, start - s.prior_advance_bars):start]
        prior_peak_high = float(peak_highs.max()) if len(peak_highs) else float('-inf')

        volume_contracting = False
        window_volume = series.volume[start:end]
        if len(window_volume) >= 6:
            third = len(window_volume) // 3
            first_avg = window_volume[:third].mean()
            last_avg = window_volume[-third:].mean()
            volume_contracting = bool(first_avg > 0 and last_avg < first_avg)

        stage_from = max(0, start - s.base_stage_lookback)
        if start - stage_from < 60:
            base_stage = 1
        else:
            base_stage = count_base_stage(series.high[stage_from:start], close[stage_from:start],
                                          s.base_stage_window, s.base_stage_drawdown, s.base_stage_search)

        score = 0.0
        if above_dma200 and golden_cross:
            score += 20
        elif above_dma200 or golden_cross:
            score += 10

        if advance_130 >= 25:
            score += 15
        elif advance_130 >= 15:
            score += 10
        elif advance_130 >= 8:
            score += 5

        if range_pct < 8:
            score += 15
        elif range_pct < 10:
            score += 10
        elif range_pct <= 15:
            score += 5

        if volume_contracting:
            score += 15

        if rs_ratio > 1.5:
            score += 10
        elif rs_ratio > 1.2:
            score += 7
        elif rs_ratio > 1.0:
            score += 3

        if base_stage == 1:
            score += 10
        elif base_stage == 2:
            score += 7
        else:
            score += 2

        if support >= 2 and resistance >= 2:
            score += 10
        elif support >= 1 and resistance >= 1:
            score += 5

        if no_lower_lows and no_large_red:
            score += 5
        elif no_lower_lows or no_large_red:
            score += 2

        if score < s.min_score_to_qualify:
            return None

        return _Candidate(start, high, low, range_pct, prior_advance, prior_peak_high,
                          volume_contracting, base_stage, score)

    def _tier(self, close: float, breakout: float, volume_ratio: float,
              risk_reward: float, distance: float):
        s = self.settings
        if close > breakout:
            if volume_ratio >= s.breakout_volume_ratio and risk_reward >= s.min_rr_for_tier1:
                return TIER_READY, "Ready to Trade"
            if volume_ratio >= s.breakout_volume_ratio:
                return TIER_ALERT, "Breakout (low R:R)"
            return TIER_WATCH, "Breakout (weak volume)"
        if distance <= s.imminent_distance_pct:
            return TIER_ALERT, "Imminent Breakout"
        if distance <= s.watchlist_distance_pct:
            return TIER_WATCH, "Watchlist"
        return TIER_BASE, "In Consolidation"

    def _fail(self, series: PriceSeries, symbol: str, reason: str) -> PositionalBreakoutResult:
        self.logger.debug(f"[{symbol}] positional breakout: {reason}")
        today_close = float(series.close[-1]) if len(series) else 0.0
        return PositionalBreakoutResult(match=False, today_close=today_close, fail_reason=reason)


def scan_positional_breakout(series: PriceSeries, symbol: str = "", benchmark_return_65d: float = 0.0,
                             settings: Optional[PositionalBreakoutSettings] = None) -> PositionalBreakoutResult:
    return PositionalBreakoutScanner(settings, benchmark_return_65d).scan(series, symbol)
