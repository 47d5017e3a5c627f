"""
Tiered consolidation-breakout scan.

Grades ten criteria on the best-quality base ending yesterday instead of stopping
at the first failed gate, then sorts the symbol into Tier 1 (ready to trade),
2A (imminent breakout) or 2B (watchlist). The swing and positional contexts share
the logic and differ only in their thresholds.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from chartscan.analyzer.structural.base_utils import ema_seeded_first, round_half_up, safe_ratio
from chartscan.analyzer.structural.criteria import (
    PARTIAL,
    CriteriaScore,
    Criterion,
    QualityWindow,
    WindowSummary,
    contraction_ratio,
    find_best_quality_window,
    has_higher_lows
)
from chartscan.analyzer.structural.settings import TieredBreakoutSettings, TieredPositionalSettings
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries

CONTEXT_SETTINGS = {
    'swing': TieredBreakoutSettings,
    'positional': TieredPositionalSettings,
}

BREAKOUT_CONFIRMED = "BREAKOUT_CONFIRMED"
BREAKOUT_WEAK_VOLUME = "BREAKOUT_WEAK_VOLUME"
BREAKOUT_NO_VOLUME = "BREAKOUT_NO_VOLUME"
IMMINENT = "IMMINENT"
WATCHLIST = "WATCHLIST"
TOO_FAR = "TOO_FAR"

# Prior-trend bands (percent) for the direction criterion
PULLBACK_MIN_EXTENDED_PCT = 5.0
RECOVERY_MAX_DECLINE_PCT = -15.0
NEUTRAL_MAX_DECLINE_PCT = -10.0
DOWNTREND_CAVEAT_PCT = -10.0


@dataclass
class TierClassification(SerializableMixin):
    tier: Optional[str] = None
    tier_name: str = "No Pattern"
    confidence: str = "none"
    action: Optional[str] = None


@dataclass
class PriceInfo(SerializableMixin):
    current_price: float
    breakout_level: float
    distance_to_breakout: str
    consolidation_low: float
    suggested_stop: float


@dataclass
class VolumeInfo(SerializableMixin):
    avg_volume_50d: float
    volume_trigger: str
    today_volume_ratio: str


@dataclass
class TieredBreakoutResult(SerializableMixin):
    symbol: str
    scan_date: str
    context: str = "swing"
    tier_classification: TierClassification = field(default_factory=TierClassification)
    score: CriteriaScore = field(default_factory=lambda: CriteriaScore(0, 10, 0))
    consolidation_analysis: WindowSummary = field(default_factory=WindowSummary)
    criteria_results: Dict[str, Criterion] = field(default_factory=dict)
    caveats: List[str] = field(default_factory=list)
    price_info: Optional[PriceInfo] = None
    volume_info: Optional[VolumeInfo] = None

    @property
    def tier(self) -> Optional[str]:
        return self.tier_classification.tier

    @property
    def distance_pct(self) -> float:
        return self.criteria_results['C10_breakout_status'].details['distance_pct']


@dataclass
class TieredScanSummary(SerializableMixin):
    scan_date: str
    total_scanned: int
    tier_1_count: int
    tier_2a_count: int
    tier_2b_count: int
    market_note: str
    tier_1_ready_to_trade: List[TieredBreakoutResult] = field(default_factory=list)
    tier_2a_imminent_breakout: List[TieredBreakoutResult] = field(default_factory=list)
    tier_2b_watchlist: List[TieredBreakoutResult] = field(default_factory=list)


def _initial_criteria(s: TieredBreakoutSettings) -> Dict[str, Criterion]:
    return {
        'C1_consolidation_found': Criterion(False, False, required=True),
        'C2_range_pct': Criterion(False, 0, required_max=s.max_range_pct),
        'C3_support_touches': Criterion(False, 0, required_min=s.min_support_touches),
        'C4_resistance_touches': Criterion(False, 0, required_min=s.min_resistance_touches),
        'C5_no_lower_lows_after_day3': Criterion(False, True, required=False),
        'C6_no_large_red_candles': Criterion(False, True, required=False),
        'C7_prior_move_pct': Criterion(False, 0, required_min=s.min_prior_move_pct),
        'C8_prior_move_direction': Criterion(False, "downtrend", required="up", details={
            'type': "downtrend", 'confidence': "none",
            'direction_short_pct': 0.0, 'direction_extended_pct': 0.0,
        }),
        'C9_volume_contraction': Criterion(False, 0, required_max=s.max_volume_contraction, details={
            'passed_relaxed': False,
            'threshold_strict': s.max_volume_contraction,
            'threshold_relaxed': s.max_volume_contraction_relaxed,
            'avg_vol_prior': 0.0, 'avg_vol_consolidation': 0.0,
        }),
        'C10_breakout_status': Criterion(False, 100, required_max=0, details={
            'status': TOO_FAR, 'is_breakout': False, 'distance_pct': 100.0,
            'breakout_level': 0.0, 'current_price': 0.0, 'volume_ratio': 0.0,
            'close_position': 0.0, 'avg_volume_50d': 0.0, 'tier_eligible': None,
            'price_above_ema50': False, 'ema50_rising': False, 'ema50': 0.0, 'ema50_prior': 0.0,
        }),
    }


def summarize_window(series: PriceSeries, window: QualityWindow) -> WindowSummary:
    return WindowSummary(
        best_window_found=True,
        window_duration=window.duration,
        window_start_date=series.dates[window.start],
        window_end_date=series.dates[window.end - 1],
        consolidation_high=round_half_up(window.high),
        consolidation_low=round_half_up(window.low),
        range_pct=round_half_up(window.range_pct),
        quality_score=round_half_up(window.quality_score),
        start_idx=window.start,
    )


class TieredBreakoutScanner:
    """Grades every breakout criterion and assigns Tier 1 / 2A / 2B (or no tier)."""

    def __init__(self, settings: Optional[TieredBreakoutSettings] = None, context: str = "swing",
                 logger: Optional[logging.Logger] = None):
        if context not in CONTEXT_SETTINGS:
            raise ValueError(f"Unknown scan context: {context!r} (expected one of {sorted(CONTEXT_SETTINGS)})")
        self.context = context
        self.settings = settings or CONTEXT_SETTINGS[context]()
        self.logger = logger or logging.getLogger(__name__)

    def scan(self, series: PriceSeries, symbol: str = "") -> TieredBreakoutResult:
        s = self.settings
        n = len(series)
        result = TieredBreakoutResult(symbol=symbol, scan_date=series.dates[-1] if n else "",
                                      context=self.context, criteria_results=_initial_criteria(s))

        if n < s.min_bars:
            result.caveats.append(f"Insufficient data: {n} rows, need {s.min_bars}")
            self.logger.debug(f"[{symbol}] tiered scan skipped: {n} rows < {s.min_bars}")
            return result

        window = find_best_quality_window(series, s.consolidation_min_days, s.consolidation_max_days,
                                          s.large_red_body_pct)
        if window is None:
            result.caveats.append("No valid consolidation window found")
            return result

        criteria = result.criteria_results
        result.consolidation_analysis = summarize_window(series, window)
        criteria['C1_consolidation_found'] = Criterion(True, True, required=True)
        criteria['C2_range_pct'] = Criterion(window.range_pct <= s.max_range_pct, round_half_up(window.range_pct),
                                             required_max=s.max_range_pct)
        criteria['C3_support_touches'] = Criterion(window.support_touches >= s.min_support_touches,
                                                   window.support_touches, required_min=s.min_support_touches)
        criteria['C4_resistance_touches'] = Criterion(window.resistance_touches >= s.min_resistance_touches,
                                                      window.resistance_touches,
                                                      required_min=s.min_resistance_touches)
        criteria['C5_no_lower_lows_after_day3'] = Criterion(not window.has_lower_lows, window.has_lower_lows,
                                                            required=False)
        criteria['C6_no_large_red_candles'] = Criterion(not window.has_large_red, window.has_large_red,
                                                        required=False)
        criteria['C7_prior_move_pct'] = self._prior_move(series, window)
        criteria['C8_prior_move_direction'] = self._prior_direction(series, window)
        criteria['C9_volume_contraction'] = self._volume_contraction(series, window)
        criteria['C10_breakout_status'] = self._breakout_status(series, window)

        passed = sum(1.0 if c.passed is True else 0.5 if c.passed == PARTIAL else 0.0 for c in criteria.values())
        result.score = CriteriaScore(int(round_half_up(passed, 0)), len(criteria),
                                     int(round_half_up(passed * 10, 0)))
        result.tier_classification = self._classify(criteria)
        result.caveats = self._caveats(criteria)

        if result.tier is not None:
            c10 = criteria['C10_breakout_status'].details
            low = result.consolidation_analysis.consolidation_low
            result.price_info = PriceInfo(
                current_price=c10['current_price'],
                breakout_level=c10['breakout_level'],
                distance_to_breakout=f"{c10['distance_pct']:.2f}%",
                consolidation_low=low,
                suggested_stop=round_half_up(low * s.stop_buffer),
            )
            trigger = round_half_up(c10['avg_volume_50d'] * s.min_breakout_volume_ratio, 0)
            result.volume_info = VolumeInfo(
                avg_volume_50d=c10['avg_volume_50d'],
                volume_trigger=f"{trigger:,.0f}",
                today_volume_ratio=f"{c10['volume_ratio']:.2f}x",
            )

        self.logger.debug(f"[{symbol}] tiered ({self.context}): tier={result.tier} "
                          f"score={result.score.score_pct}% caveats={len(result.caveats)}")
        return result

    def _prior_move(self, series: PriceSeries, window: QualityWindow) -> Criterion:
        s = self.settings
        prior_start = max(0, window.start - s.prior_move_window)
        lows = series.low[prior_start:window.start]
        highs = series.high[prior_start:window.start]
        move_pct = 0.0
        if len(lows):
            prior_low = float(lows.min())
            move_pct = safe_ratio(float(highs.max()) - prior_low, prior_low) * 100
        return Criterion(move_pct >= s.min_prior_move_pct, round_half_up(move_pct),
                         required_min=s.min_prior_move_pct)

    def _prior_direction(self, series: PriceSeries, window: QualityWindow) -> Criterion:
        """Trend into the base over the short and extended prior windows."""
        s = self.settings
        close = series.close
        start = window.start
        end_close = float(close[start - 1] if start > 0 else close[start])
        short_ref = float(close[max(0, start - s.prior_move_window)])
        extended_ref = float(close[max(0, start - s.prior_move_window_extended)])
        short_pct = safe_ratio(end_close - short_ref, short_ref) * 100
        extended_pct = safe_ratio(end_close - extended_ref, extended_ref) * 100
        higher_lows = has_higher_lows(series.low[window.start:window.end])

        details = {'direction_short_pct': round_half_up(short_pct),
                   'direction_extended_pct': round_half_up(extended_pct)}
        if short_pct > 0:
            details.update(type="continuation", confidence="high")
            return Criterion(True, "up", required="up", details=details)
        if extended_pct >= PULLBACK_MIN_EXTENDED_PCT:
            details.update(type="pullback_in_uptrend", confidence="high")
            return Criterion(True, "pullback_in_uptrend", required="up", details=details)
        if higher_lows and short_pct > RECOVERY_MAX_DECLINE_PCT:
            details.update(type="recovery_base", confidence="medium", higher_lows=True)
            return Criterion(PARTIAL, "recovery_base", required="up", details=details,
                             note="Recovery base - forming higher lows despite prior weakness")
        if extended_pct > NEUTRAL_MAX_DECLINE_PCT:
            details.update(type="neutral_base", confidence="low")
            return Criterion(PARTIAL, "neutral_base", required="up", details=details,
                             note="Neutral trend context - not a classic continuation setup")
        details.update(type="downtrend", confidence="none")
        return Criterion(False, "downtrend", required="up", details=details)

    def _volume_contraction(self, series: PriceSeries, window: QualityWindow) -> Criterion:
        s = self.settings
        prior = series.volume[max(0, window.start - s.prior_move_window):window.start]
        avg_prior = float(prior.mean()) if len(prior) else 1.0
        avg_consol = float(series.volume[window.start:window.end].mean())
        ratio = contraction_ratio(avg_consol, avg_prior)
        return Criterion(ratio <= s.max_volume_contraction, round_half_up(ratio),
                         required_max=s.max_volume_contraction, details={
                             'passed_relaxed': ratio <= s.max_volume_contraction_relaxed,
                             'threshold_strict': s.max_volume_contraction,
                             'threshold_relaxed': s.max_volume_contraction_relaxed,
                             'avg_vol_prior': round_half_up(avg_prior, 0),
                             'avg_vol_consolidation': round_half_up(avg_consol, 0),
                         })

    def _breakout_status(self, series: PriceSeries, window: QualityWindow) -> Criterion:
        """Where today's close sits against the breakout level, with volume and candle quality."""
        s = self.settings
        n = len(series)
        close = float(series.close[-1])
        high = float(series.high[-1])
        low = float(series.low[-1])

        ema = ema_seeded_first(series.close, s.ema_slow)
        ema_now = float(ema[-1])
        ema_prior = float(ema[-(s.ema_slope_bars + 1)]) if n > s.ema_slope_bars else ema_now
        bars = min(s.volume_average_bars, n)
        avg_volume = float(series.volume[-bars:].sum()) / bars

        breakout = window.high * s.breakout_buffer
        distance = safe_ratio(breakout - close, close) * 100
        volume_ratio = safe_ratio(float(series.volume[-1]), avg_volume)
        close_position = (close - low) / (high - low) if high != low else 0.5

        details = {
            'breakout_level': round_half_up(breakout),
            'current_price': round_half_up(close),
            'distance_pct': round_half_up(distance),
            'volume_ratio': round_half_up(volume_ratio),
            'close_position': round_half_up(close_position),
            'avg_volume_50d': round_half_up(avg_volume, 0),
            'price_above_ema50': close >= ema_now,
            'ema50_rising': ema_now >= ema_prior,
            'ema50': round_half_up(ema_now),
            'ema50_prior': round_half_up(ema_prior),
        }

        broke_out = close > breakout
        if broke_out and volume_ratio >= s.min_breakout_volume_ratio and close_position >= s.min_close_position:
            status, eligible, passed = BREAKOUT_CONFIRMED, 1, True
        elif broke_out and volume_ratio >= s.weak_breakout_volume_ratio:
            status, eligible, passed = BREAKOUT_WEAK_VOLUME, 1, True
            details['caveat'] = f"Breakout confirmed but volume below ideal (< {s.min_breakout_volume_ratio}x)"
        elif broke_out:
            status, eligible, passed = BREAKOUT_NO_VOLUME, 2, PARTIAL
            details['caveat'] = "Price broke out but volume not confirming"
        elif distance <= s.tier_2a_distance_pct:
            status, eligible, passed = IMMINENT, 2, False
        elif distance <= s.tier_2b_distance_pct:
            status, eligible, passed = WATCHLIST, 2, False
        else:
            status, eligible, passed = TOO_FAR, None, False

        details.update(status=status, is_breakout=broke_out, tier_eligible=eligible)
        return Criterion(passed, distance, required_max=0, details=details)

    def _classify(self, criteria: Dict[str, Criterion]) -> TierClassification:
        s = self.settings

        def strict(key: str) -> bool:
            return criteria[key].passed is True

        base_checks = strict('C1_consolidation_found') and strict('C2_range_pct') and \
            strict('C3_support_touches') and strict('C4_resistance_touches')
        base_strict = base_checks and strict('C5_no_lower_lows_after_day3') and strict('C6_no_large_red_candles')
        base_relaxed = base_checks and (strict('C5_no_lower_lows_after_day3') or strict('C6_no_large_red_candles'))

        prior_move = strict('C7_prior_move_pct')
        prior_move_relaxed = prior_move or criteria['C7_prior_move_pct'].actual >= s.min_prior_move_pct_relaxed
        direction = strict('C8_prior_move_direction')
        direction_partial = direction or criteria['C8_prior_move_direction'].passed == PARTIAL
        c9 = criteria['C9_volume_contraction']
        volume = c9.passed is True
        volume_relaxed = volume or c9.details['passed_relaxed']
        c10 = criteria['C10_breakout_status'].details
        status = c10['status']
        distance = c10['distance_pct']

        if base_strict and prior_move and direction and volume and \
                status in (BREAKOUT_CONFIRMED, BREAKOUT_WEAK_VOLUME):
            return TierClassification("1", "Ready to Trade", "high", "Enter now with stop below consolidation low")
        if base_strict and prior_move_relaxed and direction_partial and volume_relaxed and \
                distance <= s.tier_2a_distance_pct:
            return TierClassification("2A", "Imminent Breakout", "high",
                                      f"Enter on break above {c10['breakout_level']} with volume surge")
        if base_relaxed and prior_move_relaxed and direction_partial and volume_relaxed and \
                distance <= s.tier_2b_distance_pct:
            return TierClassification("2B", "Watchlist", "medium", f"Watch for break above {c10['breakout_level']}")
        if base_relaxed and direction_partial and status == BREAKOUT_NO_VOLUME:
            return TierClassification("2B", "Watchlist", "low",
                                      "Broke out but needs volume confirmation. Watch for follow-through.")
        return TierClassification()

    def _caveats(self, criteria: Dict[str, Criterion]) -> List[str]:
        s = self.settings
        caveats = []
        c8 = criteria['C8_prior_move_direction']
        c9 = criteria['C9_volume_contraction']
        c10 = criteria['C10_breakout_status'].details

        if c8.passed == PARTIAL:
            if c8.details['type'] == "recovery_base":
                caveats.append("Recovery base - prior trend was down, higher risk")
            elif c8.details['type'] == "neutral_base":
                caveats.append("Neutral trend context - not a classic continuation setup")
        if c8.details['direction_short_pct'] < DOWNTREND_CAVEAT_PCT:
            caveats.append(f"Prior {s.prior_move_window}-day trend down {c8.details['direction_short_pct']}%")
        if c9.passed is not True and c9.details['passed_relaxed']:
            caveats.append(f"Volume contraction {c9.actual}x slightly high (ideal < {s.max_volume_contraction}x)")
        if c10['status'] == BREAKOUT_WEAK_VOLUME:
            caveats.append("Breakout on below-average volume - watch for follow-through")
        if c10['status'] == BREAKOUT_NO_VOLUME:
            caveats.append("Breakout with very low volume - high risk of false breakout")
        if not c10['price_above_ema50']:
            caveats.append("Price below 50 EMA - trend not fully confirmed")
        if not c10['ema50_rising']:
            caveats.append("50 EMA still falling - wait for trend confirmation")
        return caveats


def scan_tiered_breakout(series: PriceSeries, symbol: str = "", context: str = "swing",
                         settings: Optional[TieredBreakoutSettings] = None) -> TieredBreakoutResult:
    return TieredBreakoutScanner(settings, context).scan(series, symbol)


def market_note(tier_1_count: int, tier_2a_count: int) -> str:
    if tier_1_count >= 5:
        return "Healthy market - multiple confirmed breakouts"
    if tier_1_count >= 1:
        return "Selective opportunities - few confirmed breakouts"
    if tier_2a_count >= 10:
        return "Building momentum - multiple stocks near breakout"
    return "Correction phase - breakout setups require patience"


def summarize_tiered_scan(results: Sequence[TieredBreakoutResult]) -> TieredScanSummary:
    """Bucket results by tier; 2A and 2B are ordered by distance to breakout, closest first."""
    tier_1 = [r for r in results if r.tier == "1"]
    tier_2a = sorted((r for r in results if r.tier == "2A"), key=lambda r: r.distance_pct)
    tier_2b = sorted((r for r in results if r.tier == "2B"), key=lambda r: r.distance_pct)
    scan_date = results[0].scan_date if results else date.today().isoformat()
    return TieredScanSummary(
        scan_date=scan_date,
        total_scanned=len(results),
        tier_1_count=len(tier_1),
        tier_2a_count=len(tier_2a),
        tier_2b_count=len(tier_2b),
        market_note=market_note(len(tier_1), len(tier_2a)),
        tier_1_ready_to_trade=tier_1,
        tier_2a_imminent_breakout=tier_2a,
        tier_2b_watchlist=tier_2b,
    )
