"""
Floor-trader pivot levels derived from the previous bar's high, low and close.

Each level is aligned to the bar it applies to, so index 0 (no previous bar) is NaN.
"""
from typing import Dict

import numpy as np

CAMARILLA_FACTOR = 1.1
CAMARILLA_DIVISORS = {'1': 12.0, '2': 6.0, '3': 4.0, '4': 2.0}

PIVOT_FIELDS = (
    'pp', 'r1', 'r2', 'r3', 's1', 's2', 's3',
    'cam_r1', 'cam_r2', 'cam_r3', 'cam_r4', 'cam_s1', 'cam_s2', 'cam_s3', 'cam_s4',
    'cpr_upper', 'cpr_lower', 'cpr_width_pct',
)


def _shift_previous(values: np.ndarray) -> np.ndarray:
    out = np.full(len(values), np.nan)
    out[1:] = values[:-1]
    return out


def pivot_levels(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> Dict[str, np.ndarray]:
    """Compute every standard, Camarilla and CPR level for each bar."""
    h = _shift_previous(np.asarray(high, dtype=np.float64))
    l = _shift_previous(np.asarray(low, dtype=np.float64))
    c = _shift_previous(np.asarray(close, dtype=np.float64))
    rng = h - l
    pp = (h + l + c) / 3.0

    levels = {
        'pp': pp,
        'r1': 2 * pp - l,
        'r2': pp + rng,
        'r3': h + 2 * (pp - l),
        's1': 2 * pp - h,
        's2': pp - rng,
        's3': l - 2 * (h - pp),
    }

    for suffix, divisor in CAMARILLA_DIVISORS.items():
        offset = rng * CAMARILLA_FACTOR / divisor
        levels[f'cam_r{suffix}'] = c + offset
        levels[f'cam_s{suffix}'] = c - offset

    bc = (h + l) / 2.0
    tc = 2 * pp - bc
    upper = np.maximum(tc, bc)
    lower = np.minimum(tc, bc)
    levels['cpr_upper'] = upper
    levels['cpr_lower'] = lower

    width = np.zeros(len(pp))
    positive = pp > 0
    width[positive] = (upper[positive] - lower[positive]) / pp[positive] * 100.0
    width[np.isnan(pp)] = np.nan
    levels['cpr_width_pct'] = width
    return levels


def compute_pivot(high: np.ndarray, low: np.ndarray, close: np.ndarray, field: str) -> np.ndarray:
    if field not in PIVOT_FIELDS:
        raise KeyError(f"Unknown pivot field: {field}")
    return pivot_levels(high, low, close)[field]
