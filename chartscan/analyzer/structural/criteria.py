"""
Criterion records and best-window search shared by the tiered and diagnostic
swing-breakout scans.

Unlike the gated classifier, these scans grade every criterion, so the window
search keeps the highest-quality window even when it fails a gate.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from chartscan.analyzer.structural.base_utils import count_touches, has_large_red_candles, has_lower_lows_after_day3
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries

PARTIAL = "partial"


@dataclass
class Criterion(SerializableMixin):
    """One graded criterion. ``passed`` is True, False or ``"partial"``."""
    passed: Any
    actual: Any
    required: Any = None
    required_min: Optional[float] = None
    required_max: Optional[float] = None
    note: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CriteriaScore(SerializableMixin):
    criteria_passed: int
    criteria_total: int
    score_pct: int


@dataclass
class WindowSummary(SerializableMixin):
    best_window_found: bool = False
    window_duration: Optional[int] = None
    window_start_date: Optional[str] = None
    window_end_date: Optional[str] = None
    consolidation_high: Optional[float] = None
    consolidation_low: Optional[float] = None
    range_pct: Optional[float] = None
    quality_score: Optional[float] = None
    start_idx: Optional[int] = None


@dataclass
class QualityWindow:
    duration: int
    start: int
    end: int
    high: float
    low: float
    range_pct: float
    support_touches: int
    resistance_touches: int
    has_lower_lows: bool
    has_large_red: bool
    quality_score: float


def window_quality_score(range_pct: float, support_touches: int, resistance_touches: int,
                         has_lower_lows: bool, has_large_red: bool) -> float:
    """0-100: tightness 25, support 25, resistance 25, no lower lows 15, no large red candles 10."""
    if range_pct <= 10:
        range_score = 25.0
    elif range_pct <= 15:
        range_score = 12.5
    else:
        range_score = 0.0
    support_score = min(support_touches, 3) / 3 * 25
    resistance_score = min(resistance_touches, 3) / 3 * 25
    lower_lows_score = 0.0 if has_lower_lows else 15.0
    large_red_score = 0.0 if has_large_red else 10.0
    return range_score + support_score + resistance_score + lower_lows_score + large_red_score


def find_best_quality_window(series: PriceSeries, min_days: int, max_days: int,
                             large_red_body_pct: float) -> Optional[QualityWindow]:
    """Highest-scoring window ending yesterday; the shortest wins ties."""
    n = len(series)
    end = n - 1
    best: Optional[QualityWindow] = None
    for duration in range(min_days, max_days + 1):
        start = end - duration
        if start < 0:
            continue
        highs = series.high[start:end]
        lows = series.low[start:end]
        high = float(highs.max())
        low = float(lows.min())
        range_pct = (high - low) / low * 100 if low != 0 else float('inf')

        support, resistance = count_touches(highs, lows, high, low)
        lower_lows = has_lower_lows_after_day3(lows)
        large_red = has_large_red_candles(series.open[start:end], series.close[start:end], large_red_body_pct)
        score = window_quality_score(range_pct, support, resistance, lower_lows, large_red)

        if best is None or score > best.quality_score:
            best = QualityWindow(duration, start, end, high, low, range_pct, support, resistance,
                                 lower_lows, large_red, score)
    return best


def has_higher_lows(lows: np.ndarray, tolerance: float = 0.99) -> bool:
    """True when the last third's low holds above the first third's low (within tolerance)."""
    if len(lows) < 6:
        return False
    third = len(lows) // 3
    return bool(lows[-third:].min() > lows[:third].min() * tolerance)


def contraction_ratio(consolidation_volume: float, prior_volume: float) -> float:
    """Consolidation over prior average volume; 0/0 is NaN and x/0 is infinite."""
    if prior_volume != 0:
        return consolidation_volume / prior_volume
    return float('nan') if consolidation_volume == 0 else float('inf')
