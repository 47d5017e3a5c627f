"""
Window helpers shared by the consolidation classifiers.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import numpy as np

from chartscan.utils.dataclass_utils import SerializableMixin


@dataclass
class ScanFailure(SerializableMixin):
    """Why a classifier did not match: gate number, reason code and offending metrics."""
    step: int
    reason: str
    details: Dict[str, Any] = field(default_factory=dict)


def round_half_up(value: float, digits: int = 2) -> float:
    """Round like a price display does (halves away from zero for positive values)."""
    if not math.isfinite(value):
        return value
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def has_lower_lows_after_day3(lows: np.ndarray, tolerance: float = 0.998) -> bool:
    """True when any low after the first three bars undercuts their minimum by more than the tolerance."""
    if len(lows) < 4:
        return False
    floor = lows[:3].min()
    return bool(np.any(lows[3:] < floor * tolerance))


def count_touches(highs: np.ndarray, lows: np.ndarray, high: float, low: float,
                  zone_fraction: float = 0.3) -> Tuple[int, int]:
    """Count bars reaching the support zone (bottom) and resistance zone (top) of a range."""
    height = high - low
    support_zone = low + height * zone_fraction
    resistance_zone = high - height * zone_fraction
    return int(np.sum(lows <= support_zone)), int(np.sum(highs >= resistance_zone))


def has_large_red_candles(opens: np.ndarray, closes: np.ndarray, threshold: float) -> bool:
    red = (opens > closes) & (opens > 0)
    if not np.any(red):
        return False
    body_pct = (opens[red] - closes[red]) / opens[red]
    return bool(np.any(body_pct > threshold))


def ema_seeded_first(values: np.ndarray, span: int) -> np.ndarray:
    """EMA whose first value is the first input (no warm-up gap)."""
    out = np.empty(len(values))
    if len(values) == 0:
        return out
    k = 2.0 / (span + 1)
    out[0] = values[0]
    for i in range(1, len(values)):
        out[i] = values[i] * k + out[i - 1] * (1 - k)
    return out


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    return numerator / denominator if denominator != 0 else default
