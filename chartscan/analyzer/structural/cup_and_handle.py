"""
Cup-and-handle classifier.

Walks prominent left-rim highs from tallest to shortest and, for each, validates
a textbook cup (depth, roundedness, flat bottom, matching right rim, duration,
symmetry) followed by a shallow handle in the cup's upper third. Valid candidates
are scored on a fixed rubric; the best one must clear the confidence floor.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from chartscan.analyzer.structural.settings import CupAndHandleSettings
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries

PIVOT_WINDOW = 5
VALLEY_WINDOW = 20


@dataclass
class Pivot(SerializableMixin):
    index: int
    price: float
    date: str


@dataclass
class CupGeometry(SerializableMixin):
    left_rim: Pivot
    bottom: Pivot
    right_rim: Pivot
    depth_pct: float
    duration: int
    symmetry: float
    roundedness: float
    bottom_flatness: float
    bottom_width: int


@dataclass
class HandleGeometry(SerializableMixin):
    start: int
    end: int
    high: float
    low: float
    duration: int
    depth_pct: float
    avg_volume: float


@dataclass
class CupAndHandleResult(SerializableMixin):
    match: bool
    cup_low: float = 0.0
    handle_low: float = 0.0
    resistance_level: float = 0.0
    today_close: float = 0.0
    pct_from_resistance: float = 0.0
    confidence: Optional[float] = None
    target: Optional[float] = None
    rejection_reason: str = ""
    cup: Optional[CupGeometry] = None
    handle: Optional[HandleGeometry] = None


def score_cup_and_handle(cup: CupGeometry, handle: HandleGeometry, prior_gain: float,
                         handle_shape_valid: bool) -> float:
    """Fixed-weight confidence rubric, clamped to [0, 100]."""
    score = 0.0
    if 0.15 <= cup.depth_pct <= 0.30:
        score += 15
    elif 0.12 <= cup.depth_pct <= 0.35:
        score += 10

    if 50 <= cup.duration <= 100:
        score += 15
    elif 30 <= cup.duration <= 150:
        score += 10

    if cup.roundedness >= 1.5:
        score += 15
    elif cup.roundedness >= 1.4:
        score += 12
    elif cup.roundedness >= 1.3:
        score += 10

    if 0.8 <= cup.symmetry <= 1.2:
        score += 10
    elif 0.7 <= cup.symmetry <= 1.4:
        score += 7

    if cup.bottom_flatness <= 0.02:
        score += 10
    elif cup.bottom_flatness <= 0.03:
        score += 7

    score += 8 if 10 <= handle.duration <= 20 else 5

    if 0.05 <= handle.depth_pct <= 0.10:
        score += 7
    elif handle.depth_pct <= 0.15:
        score += 4

    if handle_shape_valid:
        score += 5

    if prior_gain >= 0.5:
        score += 5
    elif prior_gain >= 0.4:
        score += 4
    elif prior_gain >= 0.3:
        score += 3

    return float(min(100.0, max(0.0, score)))


class CupAndHandleDetector:
    """Geometry search over one (already trimmed) price window."""

    def __init__(self, series: PriceSeries, settings: CupAndHandleSettings):
        self.series = series
        self.settings = settings
        self.highs = series.high
        self.lows = series.low
        self.closes = series.close
        self.volumes = series.volume
        self.n = len(series)

    def _pivot(self, index: int, price: float) -> Pivot:
        return Pivot(index, float(price), self.series.dates[index])

    def find_significant_highs(self, start: int, end: int, min_prominence_ratio: float) -> List[Pivot]:
        """Local highs (5 bars each side) that stand out from the nearest valleys, tallest first."""
        highs, lows = self.highs, self.lows
        min_prominence = (highs[start:end].max() - lows[start:end].min()) * min_prominence_ratio

        found = []
        for i in range(start + PIVOT_WINDOW, end - PIVOT_WINDOW):
            current = highs[i]
            if current < highs[i - PIVOT_WINDOW:i].max() or current < highs[i + 1:i + PIVOT_WINDOW + 1].max():
                continue
            left_valley = lows[max(start, i - VALLEY_WINDOW):i].min()
            right_valley = lows[i + 1:min(end, i + VALLEY_WINDOW)].min()
            if current - max(left_valley, right_valley) >= min_prominence:
                found.append(self._pivot(i, current))

        found.sort(key=lambda p: p.price, reverse=True)
        return found

    def has_lower_highs(self, rim_index: int, min_count: int) -> bool:
        count = 0
        prev_high = self.highs[rim_index]
        for i in range(rim_index + 1, min(rim_index + min_count + 5, self.n)):
            high = self.highs[i]
            if high < prev_high:
                count += 1
                prev_high = high
                if count >= min_count:
                    return True
            elif high > prev_high * 1.01:
                count = 0
                prev_high = high
        return count >= min_count

    def prior_uptrend(self, rim: Pivot) -> Tuple[bool, float]:
        s = self.settings
        lookback = min(rim.index, s.max_prior_uptrend_bars)
        if lookback < s.min_prior_uptrend_bars:
            return False, 0.0
        prior_low = self.lows[rim.index - lookback:rim.index].min()
        if prior_low <= 0:
            return False, 0.0
        gain = float((rim.price - prior_low) / prior_low)
        return gain >= s.min_prior_uptrend, gain

    def find_cup_bottom(self, rim: Pivot, max_search_end: int) -> Optional[Pivot]:
        search_start = rim.index + 10
        search_end = min(rim.index + 120, max_search_end)
        if search_start >= search_end:
            return None
        index = search_start + int(np.argmin(self.lows[search_start:search_end]))
        return self._pivot(index, self.lows[index])

    def roundedness(self, rim: Pivot, bottom: Pivot) -> float:
        """Close-to-close path length from rim to bottom over the straight-line drop."""
        if bottom.index <= rim.index:
            return 0.0
        path = np.abs(np.diff(self.closes[rim.index:bottom.index + 1])).sum()
        direct = abs(rim.price - bottom.price)
        if direct == 0:
            return 0.0
        return float(path / direct)

    def bottom_flatness(self, bottom: Pivot) -> Tuple[float, int]:
        """Relative std-dev of lows within 5% of the bottom, and how many bars that covers."""
        zone = self.lows[max(0, bottom.index - 10):min(self.n, bottom.index + 10)]
        near_bottom = zone[zone <= bottom.price * 1.05]
        if len(near_bottom) == 0 or bottom.price <= 0:
            return 1.0, 0
        return float(near_bottom.std() / bottom.price), len(near_bottom)

    def find_right_rim(self, rim: Pivot, bottom: Pivot) -> Optional[Pivot]:
        left_duration = bottom.index - rim.index
        search_start = bottom.index + 5
        search_end = min(bottom.index + int(left_duration * 1.5), self.n - 5)
        if search_start >= search_end:
            return None

        best = None
        best_diff = float('inf')
        for i in range(search_start, search_end):
            current = self.highs[i]
            local_max = self.highs[max(search_start, i - 3):min(search_end, i + 4)].max()
            if current < local_max * 0.995:
                continue
            diff = abs(current - rim.price) / rim.price
            if diff <= self.settings.right_rim_tolerance and diff < best_diff:
                best_diff = diff
                best = self._pivot(i, current)
        return best

    def detect_handle(self, rim: Pivot, bottom: Pivot, right_rim: Pivot) -> Optional[HandleGeometry]:
        s = self.settings
        start = right_rim.index
        end = self.n - 1
        duration = end - start
        if duration < s.min_handle_duration or duration > s.max_handle_duration:
            return None

        high = float(self.highs[start:end + 1].max())
        low = float(self.lows[start:end + 1].min())
        depth_pct = (right_rim.price - low) / right_rim.price
        if depth_pct > s.max_handle_depth:
            return None

        cup_depth = rim.price - bottom.price
        if right_rim.price - low > cup_depth * s.max_handle_to_cup_ratio:
            return None

        # Handle must hold the upper third of the cup
        if low < bottom.price + cup_depth * 0.67:
            return None

        return HandleGeometry(start, end, high, low, duration, depth_pct,
                              float(self.volumes[start:end + 1].mean()))

    def handle_shape_valid(self, handle: HandleGeometry) -> bool:
        """Handle drifts down (lower highs on 40% of bars) or trades in a tight range."""
        highs = self.highs[handle.start:handle.end + 1]
        if len(highs) < 3:
            return False
        lower_highs = int(np.sum(highs[1:] < highs[:-1]))
        downward = lower_highs >= len(highs) * 0.4
        tight = handle.high > 0 and (handle.high - handle.low) / handle.high < 0.08
        return bool(downward or tight)

    def handle_complete(self, handle: HandleGeometry) -> bool:
        recent = self.lows[max(handle.start, handle.end - 5):handle.end + 1]
        if len(recent) < 3:
            return False
        return bool(recent[-1] >= recent[:-1].min() * 0.995)

    def detect(self):
        """Return (cup, handle, confidence, rejection_reason) for the best candidate."""
        s = self.settings
        n = self.n
        search_end = n - s.min_bars_after_left_rim
        if search_end < 20:
            return None, None, None, f"Insufficient data (need {s.min_rows}+ days)"

        candidates = self.find_significant_highs(0, search_end, s.min_prominence_ratio)
        if not candidates:
            return None, None, None, "No significant highs found"

        best = None
        best_score = 0.0
        current_price = self.closes[-1]

        for rim in candidates:
            if rim.price <= 0:
                continue
            if not self.has_lower_highs(rim.index, s.min_lower_highs):
                continue
            uptrend_ok, prior_gain = self.prior_uptrend(rim)
            if not uptrend_ok:
                continue

            bottom = self.find_cup_bottom(rim, n - 30)
            if bottom is None:
                continue
            depth = (rim.price - bottom.price) / rim.price
            if depth < s.min_cup_depth or depth > s.max_cup_depth:
                continue

            roundedness = self.roundedness(rim, bottom)
            if roundedness < s.min_roundedness:
                continue

            flatness, width = self.bottom_flatness(bottom)
            if flatness > s.max_bottom_flatness:
                continue

            right_rim = self.find_right_rim(rim, bottom)
            if right_rim is None or right_rim.price < rim.price * s.right_rim_min_ratio:
                continue

            duration = right_rim.index - rim.index
            if duration < s.min_cup_duration or duration > s.max_cup_duration:
                continue
            bottom_position = (bottom.index - rim.index) / duration
            if bottom_position < s.min_bottom_position or bottom_position > s.max_bottom_position:
                continue

            right_duration = right_rim.index - bottom.index
            symmetry = (bottom.index - rim.index) / right_duration if right_duration else 0.0
            if symmetry < s.min_symmetry or symmetry > s.max_symmetry:
                continue

            handle = self.detect_handle(rim, bottom, right_rim)
            if handle is None:
                continue
            shape_valid = self.handle_shape_valid(handle)
            if not shape_valid or not self.handle_complete(handle):
                continue

            # Resistance is the left rim
            broken_out = current_price > rim.price
            if broken_out and not s.allow_post_breakout:
                continue
            if not broken_out and (rim.price - current_price) / rim.price > s.breakout_proximity_max:
                continue

            cup = CupGeometry(rim, bottom, right_rim, float(depth), duration, float(symmetry),
                              roundedness, flatness, width)
            confidence = score_cup_and_handle(cup, handle, prior_gain, shape_valid)
            if confidence > best_score:
                best_score = confidence
                best = (cup, handle, confidence)

        if best is None:
            return None, None, None, "No valid pattern after all validations"
        cup, handle, confidence = best
        if confidence < s.min_confidence_score:
            return None, None, confidence, f"Confidence {confidence:g} below {s.min_confidence_score:g}"
        return cup, handle, confidence, ""


class CupAndHandleScanner:
    """Classifies the last bar of a series as a completed (or just broken-out) cup and handle."""

    def __init__(self, settings: Optional[CupAndHandleSettings] = None,
                 logger: Optional[logging.Logger] = None):
        self.settings = settings or CupAndHandleSettings()
        self.logger = logger or logging.getLogger(__name__)

    def scan(self, series: PriceSeries, symbol: str = "") -> CupAndHandleResult:
        s = self.settings
        n = len(series)
        today_close = float(series.close[-1]) if n else 0.0

        if n < s.min_rows:
            reason = f"Insufficient data (need {s.min_rows}+ days)"
            self.logger.debug(f"[{symbol}] cup and handle: {reason}")
            return CupAndHandleResult(match=False, today_close=today_close, rejection_reason=reason)

        window = series.tail(s.max_lookback)
        cup, handle, confidence, reason = CupAndHandleDetector(window, s).detect()
        if cup is None:
            self.logger.debug(f"[{symbol}] cup and handle: {reason}")
            return CupAndHandleResult(match=False, today_close=today_close,
                                      confidence=confidence, rejection_reason=reason)

        resistance = cup.left_rim.price
        pct_from_resistance = (resistance - today_close) / resistance * 100 if resistance > 0 else 0.0
        target = resistance + (cup.left_rim.price - cup.bottom.price)
        self.logger.debug(f"[{symbol}] cup and handle: confidence={confidence:g} "
                          f"resistance={resistance:.2f} cup_low={cup.bottom.price:.2f}")

        return CupAndHandleResult(
            match=True,
            cup_low=cup.bottom.price,
            handle_low=handle.low,
            resistance_level=resistance,
            today_close=today_close,
            pct_from_resistance=pct_from_resistance,
            confidence=confidence,
            target=target,
            cup=cup,
            handle=handle,
        )


def scan_cup_and_handle(series: PriceSeries, symbol: str = "",
                        settings: Optional[CupAndHandleSettings] = None) -> CupAndHandleResult:
    return CupAndHandleScanner(settings).scan(series, symbol)
