"""
Candlestick Pattern Detection - Numba Implementation

Each detector returns a float array aligned with the input bars: 1.0 where the
pattern completes on that bar, 0.0 elsewhere. Multi-bar patterns read at most the
two preceding bars, so the first bars of a series simply report 0.0.
"""

import numpy as np
from numba import njit

DOJI_BODY_RATIO = 0.1
HAMMER_SHADOW_MULT = 2.0
HAMMER_OPPOSITE_SHADOW = 0.3
MIN_BODY_RATIO = 0.1
SPINNING_TOP_BODY_RATIO = 0.3
MARUBOZU_BODY_RATIO = 0.95
TWEEZER_RANGE_TOLERANCE = 0.05
TWEEZER_MIN_TOLERANCE = 0.01
STAR_MIDDLE_BODY_RATIO = 0.3


@njit(cache=True)
def _upper_shadow(o, h, c):
    return h - max(o, c)


@njit(cache=True)
def _lower_shadow(o, l, c):
    return min(o, c) - l


@njit(cache=True)
def _is_hammer_shape(o, h, l, c):
    body = abs(c - o)
    rng = h - l
    if rng == 0:
        return False
    return (_lower_shadow(o, l, c) >= HAMMER_SHADOW_MULT * body
            and _upper_shadow(o, h, c) <= body * HAMMER_OPPOSITE_SHADOW
            and body / rng >= MIN_BODY_RATIO)


@njit(cache=True)
def _is_inverted_hammer_shape(o, h, l, c):
    body = abs(c - o)
    rng = h - l
    if rng == 0:
        return False
    return (_upper_shadow(o, h, c) >= HAMMER_SHADOW_MULT * body
            and _lower_shadow(o, l, c) <= body * HAMMER_OPPOSITE_SHADOW
            and body / rng >= MIN_BODY_RATIO)


@njit(cache=True)
def detect_doji_numba(open_, high, low, close):
    n = len(close)
    out = np.zeros(n)
    for i in range(n):
        rng = high[i] - low[i]
        if rng > 0 and abs(close[i] - open_[i]) / rng < DOJI_BODY_RATIO:
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_hammer_numba(open_, high, low, close):
    n = len(close)
    out = np.zeros(n)
    for i in range(n):
        if _is_hammer_shape(open_[i], high[i], low[i], close[i]):
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_inverted_hammer_numba(open_, high, low, close):
    n = len(close)
    out = np.zeros(n)
    for i in range(n):
        if _is_inverted_hammer_shape(open_[i], high[i], low[i], close[i]):
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_spinning_top_numba(open_, high, low, close):
    n = len(close)
    out = np.zeros(n)
    for i in range(n):
        rng = high[i] - low[i]
        if rng == 0:
            continue
        body = abs(close[i] - open_[i])
        if (body / rng < SPINNING_TOP_BODY_RATIO
                and _upper_shadow(open_[i], high[i], close[i]) > body
                and _lower_shadow(open_[i], low[i], close[i]) > body):
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_marubozu_numba(open_, high, low, close):
    n = len(close)
    out = np.zeros(n)
    for i in range(n):
        rng = high[i] - low[i]
        if rng != 0 and abs(close[i] - open_[i]) / rng >= MARUBOZU_BODY_RATIO:
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_hanging_man_numba(open_, high, low, close):
    """Hammer shape printed after an up bar."""
    n = len(close)
    out = np.zeros(n)
    for i in range(1, n):
        if close[i - 1] > open_[i - 1] and _is_hammer_shape(open_[i], high[i], low[i], close[i]):
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_shooting_star_numba(open_, high, low, close):
    """Inverted-hammer shape printed after an up bar."""
    n = len(close)
    out = np.zeros(n)
    for i in range(1, n):
        if close[i - 1] > open_[i - 1] and _is_inverted_hammer_shape(open_[i], high[i], low[i], close[i]):
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_engulfing_numba(open_, high, low, close, bullish):
    n = len(close)
    out = np.zeros(n)
    for i in range(1, n):
        po, pc = open_[i - 1], close[i - 1]
        o, c = open_[i], close[i]
        if bullish:
            if pc < po and c > o and o <= pc and c >= po:
                out[i] = 1.0
        elif pc > po and c < o and o >= pc and c <= po:
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_piercing_line_numba(open_, high, low, close):
    n = len(close)
    out = np.zeros(n)
    for i in range(1, n):
        po, pc = open_[i - 1], close[i - 1]
        o, c = open_[i], close[i]
        prev_mid = (po + pc) / 2.0
        if pc < po and c > o and o < pc and c > prev_mid and c < po:
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_dark_cloud_cover_numba(open_, high, low, close):
    n = len(close)
    out = np.zeros(n)
    for i in range(1, n):
        po, pc = open_[i - 1], close[i - 1]
        o, c = open_[i], close[i]
        prev_mid = (po + pc) / 2.0
        if pc > po and c < o and o > pc and c < prev_mid and c > po:
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_harami_numba(open_, high, low, close, bullish):
    n = len(close)
    out = np.zeros(n)
    for i in range(1, n):
        po, pc = open_[i - 1], close[i - 1]
        o, c = open_[i], close[i]
        if bullish:
            if pc < po and c > o and o > pc and c < po:
                out[i] = 1.0
        elif pc > po and c < o and o < pc and c > po:
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_tweezer_numba(open_, high, low, close, top):
    """Matching highs (top) or lows (bottom) on a reversal pair of bars."""
    n = len(close)
    out = np.zeros(n)
    for i in range(1, n):
        po, pc = open_[i - 1], close[i - 1]
        o, c = open_[i], close[i]
        tolerance = max((high[i] - low[i]) * TWEEZER_RANGE_TOLERANCE, TWEEZER_MIN_TOLERANCE)
        if top:
            if pc > po and c < o and abs(high[i] - high[i - 1]) <= tolerance:
                out[i] = 1.0
        elif pc < po and c > o and abs(low[i] - low[i - 1]) <= tolerance:
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_star_numba(open_, high, low, close, morning):
    """Morning star (bullish) or evening star (bearish) three-bar reversal."""
    n = len(close)
    out = np.zeros(n)
    for i in range(2, n):
        fo, fc = open_[i - 2], close[i - 2]
        first_body = abs(fc - fo)
        mid_body = abs(close[i - 1] - open_[i - 1])
        first_mid = (fo + fc) / 2.0
        if first_body <= 0 or mid_body >= first_body * STAR_MIDDLE_BODY_RATIO:
            continue
        if morning:
            if fc < fo and close[i] > open_[i] and close[i] > first_mid:
                out[i] = 1.0
        elif fc > fo and close[i] < open_[i] and close[i] < first_mid:
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_three_soldiers_numba(open_, high, low, close, bullish):
    """Three white soldiers (bullish) or three black crows (bearish)."""
    n = len(close)
    out = np.zeros(n)
    for i in range(2, n):
        a, b, c = i - 2, i - 1, i
        if bullish:
            if (close[a] > open_[a] and close[b] > open_[b] and close[c] > open_[c]
                    and close[b] > close[a] and close[c] > close[b]
                    and open_[b] > open_[a] and open_[c] > open_[b]):
                out[i] = 1.0
        elif (close[a] < open_[a] and close[b] < open_[b] and close[c] < open_[c]
                and close[b] < close[a] and close[c] < close[b]
                and open_[b] < open_[a] and open_[c] < open_[b]):
            out[i] = 1.0
    return out


@njit(cache=True)
def detect_three_inside_numba(open_, high, low, close, up):
    n = len(close)
    out = np.zeros(n)
    for i in range(2, n):
        a, b, c = i - 2, i - 1, i
        if up:
            if (close[a] < open_[a] and close[b] > open_[b]
                    and open_[b] > close[a] and close[b] < open_[a]
                    and close[c] > open_[c] and close[c] > open_[a]):
                out[i] = 1.0
        elif (close[a] > open_[a] and close[b] < open_[b]
                and open_[b] < close[a] and close[b] > open_[a]
                and close[c] < open_[c] and close[c] < open_[a]):
            out[i] = 1.0
    return out


def _flagged(kernel, flag):
    def detect(open_, high, low, close):
        return kernel(open_, high, low, close, flag)
    return detect


# Pattern id -> detector(open, high, low, close)
CANDLESTICK_PATTERNS = {
    'doji': detect_doji_numba,
    'hammer': detect_hammer_numba,
    'inverted_hammer': detect_inverted_hammer_numba,
    'spinning_top': detect_spinning_top_numba,
    'marubozu': detect_marubozu_numba,
    'hanging_man': detect_hanging_man_numba,
    'shooting_star': detect_shooting_star_numba,
    'bullish_engulfing': _flagged(detect_engulfing_numba, True),
    'bearish_engulfing': _flagged(detect_engulfing_numba, False),
    'piercing_line': detect_piercing_line_numba,
    'dark_cloud_cover': detect_dark_cloud_cover_numba,
    'bullish_harami': _flagged(detect_harami_numba, True),
    'bearish_harami': _flagged(detect_harami_numba, False),
    'tweezer_top': _flagged(detect_tweezer_numba, True),
    'tweezer_bottom': _flagged(detect_tweezer_numba, False),
    'morning_star': _flagged(detect_star_numba, True),
    'evening_star': _flagged(detect_star_numba, False),
    'three_white_soldiers': _flagged(detect_three_soldiers_numba, True),
    'three_black_crows': _flagged(detect_three_soldiers_numba, False),
    'three_inside_up': _flagged(detect_three_inside_numba, True),
    'three_inside_down': _flagged(detect_three_inside_numba, False),
}


def detect_candlestick(pattern_id: str, open_: np.ndarray, high: np.ndarray,
                       low: np.ndarray, close: np.ndarray) -> np.ndarray:
    detector = CANDLESTICK_PATTERNS.get(pattern_id)
    if detector is None:
        return np.zeros(len(close))
    return detector(open_, high, low, close)
