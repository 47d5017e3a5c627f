"""
Diagnostic swing-breakout scan.

Evaluates all ten breakout criteria for every symbol, records actual against
required values, flags near misses under relaxed thresholds and renders a
failure reason per failed criterion. ``summarize_diagnostics`` aggregates a
universe of results into score buckets, failure frequencies and near misses.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from chartscan.analyzer.structural.base_utils import ema_seeded_first, round_half_up, safe_ratio
from chartscan.analyzer.structural.criteria import (
    CriteriaScore,
    Criterion,
    QualityWindow,
    WindowSummary,
    contraction_ratio,
    find_best_quality_window
)
from chartscan.analyzer.structural.settings import DiagnosticSettings
from chartscan.analyzer.structural.tiered_breakout import summarize_window
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries

CRITERIA_KEYS = (
    'C1_consolidation_found',
    'C2_range_pct',
    'C3_support_touches',
    'C4_resistance_touches',
    'C5_no_lower_lows_after_day3',
    'C6_no_large_red_candles',
    'C7_prior_move_pct',
    'C8_prior_move_direction',
    'C9_volume_contraction',
    'C10_breakout_candle_quality',
)

SCORE_BUCKETS = (("90_to_100", 90), ("80_to_89", 80), ("70_to_79", 70), ("60_to_69", 60), ("below_60", -math.inf))
NEAR_MISS_LIMIT = 20


@dataclass
class RelaxedThresholds(SerializableMixin):
    would_pass_with_relaxed_range: bool = False
    would_pass_with_loose_range: bool = False
    would_pass_with_relaxed_prior_move: bool = False
    would_pass_with_loose_prior_move: bool = False
    would_pass_with_relaxed_support_touches: bool = False
    would_pass_with_relaxed_resistance_touches: bool = False
    would_pass_with_relaxed_volume_contraction: bool = False
    would_pass_if_all_relaxed: bool = False


@dataclass
class DiagnosticResult(SerializableMixin):
    symbol: str
    scan_date: str
    match: bool = False
    score: CriteriaScore = field(default_factory=lambda: CriteriaScore(0, len(CRITERIA_KEYS), 0))
    consolidation_analysis: WindowSummary = field(default_factory=WindowSummary)
    criteria_results: Dict[str, Criterion] = field(default_factory=dict)
    relaxed_thresholds_analysis: RelaxedThresholds = field(default_factory=RelaxedThresholds)
    failure_reasons: List[str] = field(default_factory=list)

    @property
    def failed_criteria(self) -> List[str]:
        return [key for key, c in self.criteria_results.items() if not c.passed]


@dataclass
class NearMiss(SerializableMixin):
    symbol: str
    score_pct: int
    failed_criteria: List[str]


@dataclass
class DiagnosticSummary(SerializableMixin):
    total_stocks_scanned: int
    total_matches: int
    stocks_by_score: Dict[str, int]
    criteria_failure_frequency: Dict[str, int]
    top_near_misses: List[NearMiss]


def format_value(value: Any) -> str:
    """Render a criterion value the way the failure-reason text expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def failure_reason(key: str, criterion: Criterion) -> str:
    reason = f"{key}: actual {format_value(criterion.actual)}"
    if criterion.required_min is not None:
        reason += f" < required_min {format_value(criterion.required_min)}"
    elif criterion.required_max is not None:
        reason += f" > required_max {format_value(criterion.required_max)}"
    elif criterion.required is not None:
        reason += f" vs required {format_value(criterion.required)}"
    if criterion.note:
        reason += f" ({criterion.note})"
    return reason


def _near_miss_note(passed: bool, checks) -> Optional[str]:
    if passed:
        return None
    for ok, note in checks:
        if ok:
            return note
    return None


class BreakoutDiagnostic:
    """Scores every breakout criterion instead of stopping at the first failure."""

    def __init__(self, settings: Optional[DiagnosticSettings] = None, logger: Optional[logging.Logger] = None):
        self.settings = settings or DiagnosticSettings()
        self.logger = logger or logging.getLogger(__name__)

    def _initial_criteria(self) -> Dict[str, Criterion]:
        s = self.settings
        return {
            'C1_consolidation_found': Criterion(False, False, required=True),
            'C2_range_pct': Criterion(False, 0, required_max=s.max_range_pct),
            'C3_support_touches': Criterion(False, 0, required_min=s.min_support_touches),
            'C4_resistance_touches': Criterion(False, 0, required_min=s.min_resistance_touches),
            'C5_no_lower_lows_after_day3': Criterion(False, True, required=False),
            'C6_no_large_red_candles': Criterion(False, True, required=False),
            'C7_prior_move_pct': Criterion(False, 0, required_min=s.min_prior_move_pct),
            'C8_prior_move_direction': Criterion(False, "down", required="up"),
            'C9_volume_contraction': Criterion(False, 0, required_max=s.max_volume_contraction),
            'C10_breakout_candle_quality': Criterion(False, 0, required_min=s.min_close_position),
        }

    def scan(self, series: PriceSeries, symbol: str = "") -> DiagnosticResult:
        s = self.settings
        n = len(series)
        result = DiagnosticResult(symbol=symbol, scan_date=series.dates[-1] if n else "",
                                  criteria_results=self._initial_criteria())

        if n < s.min_rows:
            result.failure_reasons.append(f"Insufficient data: {n} rows, need {s.min_rows}")
            return result

        window = find_best_quality_window(series, s.consolidation_min_days, s.consolidation_max_days,
                                          s.large_red_body_pct)
        if window is None:
            result.failure_reasons.append(
                f"No consolidation window found ({s.consolidation_min_days}-{s.consolidation_max_days} days)")
        else:
            result.consolidation_analysis = summarize_window(series, window)
            self._grade(series, window, result)

        criteria = result.criteria_results
        passed = sum(1 for c in criteria.values() if c.passed)
        result.score = CriteriaScore(passed, len(criteria), int(round_half_up(passed / len(criteria) * 100, 0)))
        result.match = passed == len(criteria)
        result.failure_reasons.extend(failure_reason(key, c) for key, c in criteria.items() if not c.passed)

        relaxed = result.relaxed_thresholds_analysis
        fixed_passed = all(criteria[key].passed for key in (
            'C1_consolidation_found', 'C5_no_lower_lows_after_day3', 'C6_no_large_red_candles',
            'C8_prior_move_direction', 'C10_breakout_candle_quality'))
        relaxed.would_pass_if_all_relaxed = bool(
            fixed_passed
            and (criteria['C2_range_pct'].passed or relaxed.would_pass_with_loose_range)
            and (criteria['C3_support_touches'].passed or relaxed.would_pass_with_relaxed_support_touches)
            and (criteria['C4_resistance_touches'].passed or relaxed.would_pass_with_relaxed_resistance_touches)
            and (criteria['C7_prior_move_pct'].passed or relaxed.would_pass_with_loose_prior_move)
            and (criteria['C9_volume_contraction'].passed or relaxed.would_pass_with_relaxed_volume_contraction)
        )

        self.logger.debug(f"[{symbol}] diagnostic score {result.score.criteria_passed}/"
                          f"{result.score.criteria_total} match={result.match}")
        return result

    def _grade(self, series: PriceSeries, window: QualityWindow, result: DiagnosticResult):
        s = self.settings
        criteria = result.criteria_results
        relaxed = result.relaxed_thresholds_analysis

        criteria['C1_consolidation_found'] = Criterion(True, True, required=True)

        range_passed = window.range_pct <= s.max_range_pct
        criteria['C2_range_pct'] = Criterion(
            range_passed, round_half_up(window.range_pct), required_max=s.max_range_pct,
            note=_near_miss_note(range_passed, (
                (window.range_pct <= s.relaxed_range_pct,
                 f"NEAR MISS - would pass with {format_value(s.relaxed_range_pct)}% threshold"),
                (window.range_pct <= s.loose_range_pct,
                 f"NEAR MISS - would pass with {format_value(s.loose_range_pct)}% threshold"),
            )))
        relaxed.would_pass_with_relaxed_range = window.range_pct <= s.relaxed_range_pct
        relaxed.would_pass_with_loose_range = window.range_pct <= s.loose_range_pct

        touch_note = f"NEAR MISS - would pass with threshold of {s.relaxed_min_touches}"
        support_passed = window.support_touches >= s.min_support_touches
        criteria['C3_support_touches'] = Criterion(
            support_passed, window.support_touches, required_min=s.min_support_touches,
            note=_near_miss_note(support_passed, ((window.support_touches >= s.relaxed_min_touches, touch_note),)))
        relaxed.would_pass_with_relaxed_support_touches = window.support_touches >= s.relaxed_min_touches

        resistance_passed = window.resistance_touches >= s.min_resistance_touches
        criteria['C4_resistance_touches'] = Criterion(
            resistance_passed, window.resistance_touches, required_min=s.min_resistance_touches,
            note=_near_miss_note(resistance_passed,
                                 ((window.resistance_touches >= s.relaxed_min_touches, touch_note),)))
        relaxed.would_pass_with_relaxed_resistance_touches = window.resistance_touches >= s.relaxed_min_touches

        criteria['C5_no_lower_lows_after_day3'] = Criterion(not window.has_lower_lows, window.has_lower_lows,
                                                            required=False)
        criteria['C6_no_large_red_candles'] = Criterion(not window.has_large_red, window.has_large_red,
                                                        required=False)

        # C7 / C8: the prior window ends where the base starts
        prior_start = max(0, window.start - s.prior_move_window)
        prior = slice(prior_start, window.start)
        has_prior = window.start > prior_start
        prior_low = float(series.low[prior].min()) if has_prior else 0.0
        prior_high = float(series.high[prior].max()) if has_prior else 0.0
        move_pct = safe_ratio(prior_high - prior_low, prior_low) * 100 if has_prior else 0.0

        move_passed = move_pct >= s.min_prior_move_pct
        criteria['C7_prior_move_pct'] = Criterion(
            move_passed, round_half_up(move_pct), required_min=s.min_prior_move_pct,
            details={'prior_low': round_half_up(prior_low), 'prior_high': round_half_up(prior_high)},
            note=_near_miss_note(move_passed, (
                (move_pct >= s.relaxed_prior_move_pct,
                 f"NEAR MISS - would pass with {format_value(s.relaxed_prior_move_pct)}% threshold"),
                (move_pct >= s.loose_prior_move_pct,
                 f"NEAR MISS - would pass with {format_value(s.loose_prior_move_pct)}% threshold"),
            )))
        relaxed.would_pass_with_relaxed_prior_move = move_pct >= s.relaxed_prior_move_pct
        relaxed.would_pass_with_loose_prior_move = move_pct >= s.loose_prior_move_pct

        start_close = float(series.close[prior_start]) if has_prior else 0.0
        end_close = float(series.close[window.start - 1]) if has_prior else 0.0
        direction_pct = safe_ratio(end_close - start_close, start_close) * 100
        direction_passed = has_prior and end_close >= start_close * (1 + s.prior_move_direction_pct / 100)
        criteria['C8_prior_move_direction'] = Criterion(
            direction_passed, "up" if direction_pct > 0 else "down", required="up",
            details={'start_close': round_half_up(start_close), 'end_close': round_half_up(end_close),
                     'direction_pct': round_half_up(direction_pct)},
            note=_near_miss_note(direction_passed, (
                (direction_pct > 0,
                 f"NEAR MISS - upward but less than {format_value(s.prior_move_direction_pct)}%"),
            )))

        avg_prior = float(series.volume[prior].mean()) if has_prior else 1.0
        avg_consol = float(series.volume[window.start:window.end].mean())
        ratio = contraction_ratio(avg_consol, avg_prior)
        volume_passed = ratio <= s.max_volume_contraction
        criteria['C9_volume_contraction'] = Criterion(
            volume_passed, round_half_up(ratio), required_max=s.max_volume_contraction,
            details={'avg_vol_prior': round_half_up(avg_prior, 0),
                     'avg_vol_consolidation': round_half_up(avg_consol, 0)},
            note=_near_miss_note(volume_passed, (
                (ratio <= s.relaxed_volume_contraction,
                 f"NEAR MISS - would pass with {s.relaxed_volume_contraction:.2f} threshold"),
            )))
        relaxed.would_pass_with_relaxed_volume_contraction = ratio <= s.relaxed_volume_contraction

        criteria['C10_breakout_candle_quality'] = self._breakout_quality(series, window)

    def _breakout_quality(self, series: PriceSeries, window: QualityWindow) -> Criterion:
        """Today's candle: breakout, close position, volume, gap and the 50 EMA trend."""
        s = self.settings
        close = float(series.close[-1])
        high = float(series.high[-1])
        low = float(series.low[-1])
        prev_close = float(series.close[-2])

        ema = ema_seeded_first(series.close, s.ema_slow)
        ema_now = float(ema[-1])
        ema_prior = float(ema[-(s.ema_slope_bars + 1)])
        avg_volume = float(series.volume[-s.volume_average_bars:].sum()) / s.volume_average_bars

        breakout = window.high * s.breakout_buffer
        is_breakout = close > breakout
        close_position = (close - low) / (high - low) if high > low else 0.0
        volume_ratio = safe_ratio(float(series.volume[-1]), avg_volume)
        gap = safe_ratio(float(series.open[-1]) - prev_close, prev_close)

        close_ok = close_position >= s.min_close_position
        volume_ok = volume_ratio >= s.min_breakout_volume_ratio
        gap_ok = gap <= s.max_gap_pct
        above_ema = close >= ema_now
        ema_rising = ema_now >= ema_prior

        issues = []
        if not is_breakout:
            issues.append(f"No breakout: close {close:.2f} <= level {breakout:.2f}")
        if not close_ok:
            issues.append(f"Weak close position: {close_position * 100:.0f}% < {s.min_close_position * 100:.0f}%")
        if not volume_ok:
            issues.append(f"Low volume: {volume_ratio:.2f}x < {format_value(s.min_breakout_volume_ratio)}x")
        if not gap_ok:
            issues.append(f"Gap too large: {gap * 100:.1f}% > {s.max_gap_pct * 100:.0f}%")
        if not above_ema:
            issues.append(f"Price below EMA50: {close:.2f} < {ema_now:.2f}")
        if not ema_rising:
            issues.append(f"EMA50 falling: {ema_now:.2f} < {ema_prior:.2f}")

        details = {
            'is_breakout': is_breakout,
            'today_close': round_half_up(close),
            'breakout_level': round_half_up(breakout),
            'close_position_in_range': round_half_up(close_position),
            'breakout_volume_ratio': round_half_up(volume_ratio),
            'required_min_volume_ratio': s.min_breakout_volume_ratio,
            'gap_pct': round_half_up(gap * 100),
            'price_above_ema50': above_ema,
            'ema50_rising': ema_rising,
            'ema50': round_half_up(ema_now),
            'ema50_prior': round_half_up(ema_prior),
        }
        if issues:
            details['issues'] = issues
        passed = is_breakout and close_ok and volume_ok and gap_ok and above_ema and ema_rising
        return Criterion(passed, close_position, required_min=s.min_close_position, details=details)


def scan_breakout_diagnostic(series: PriceSeries, symbol: str = "",
                             settings: Optional[DiagnosticSettings] = None) -> DiagnosticResult:
    return BreakoutDiagnostic(settings).scan(series, symbol)


def summarize_diagnostics(results: Sequence[DiagnosticResult], limit: int = NEAR_MISS_LIMIT) -> DiagnosticSummary:
    by_score = {bucket: 0 for bucket, _ in SCORE_BUCKETS}
    failures = {key: 0 for key in CRITERIA_KEYS}
    for result in results:
        pct = result.score.score_pct
        bucket = next(name for name, floor in SCORE_BUCKETS if pct >= floor)
        by_score[bucket] += 1
        for key in result.failed_criteria:
            failures[key] = failures.get(key, 0) + 1

    near = sorted((r for r in results if not r.match), key=lambda r: r.score.score_pct, reverse=True)[:limit]
    return DiagnosticSummary(
        total_stocks_scanned=len(results),
        total_matches=sum(1 for r in results if r.match),
        stocks_by_score=by_score,
        criteria_failure_frequency=failures,
        top_near_misses=[NearMiss(r.symbol, r.score.score_pct, [k.replace("_", "", 1) for k in r.failed_criteria])
                         for r in near],
    )
