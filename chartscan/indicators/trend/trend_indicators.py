import numpy as np
from numba import njit

from chartscan.indicators.overlap import wilder_smooth_numba, fill_nan_numba
from chartscan.indicators.statistical import rolling_max_numba, rolling_min_numba, true_range_numba
from chartscan.indicators.trend.trend_calculation_utils import (
    calculate_directional_movement,
    calculate_directional_indicators
)


@njit(cache=True)
def adx_numba(high, low, close, length=14):
    """Return (adx, plus_di, minus_di)."""
    tr = true_range_numba(high, low, close)
    dm_pos, dm_neg = calculate_directional_movement(high, low)

    tr_smooth = wilder_smooth_numba(tr, length)
    dm_pos_smooth = wilder_smooth_numba(dm_pos, length)
    dm_neg_smooth = wilder_smooth_numba(dm_neg, length)

    plus_di, minus_di, dx = calculate_directional_indicators(dm_pos_smooth, dm_neg_smooth, tr_smooth)

    adx = wilder_smooth_numba(fill_nan_numba(dx), length)
    for i in range(len(dx)):
        if np.isnan(dx[i]):
            adx[i] = np.nan

    return adx, plus_di, minus_di


@njit(cache=True)
def parabolic_sar_numba(high, low, step=0.02, max_step=0.2):
    n = len(high)
    sar = np.full(n, np.nan)
    if n < 2:
        return sar

    is_long = high[1] > high[0]
    af = step
    ep = high[0] if is_long else low[0]
    sar[0] = low[0] if is_long else high[0]

    for i in range(1, n):
        current = sar[i - 1] + af * (ep - sar[i - 1])

        if is_long:
            # Wilder: SAR may not rise above the two prior lows
            prior_low = low[i - 2] if i > 1 else low[i - 1]
            current = min(current, min(low[i - 1], prior_low))
            if low[i] < current:
                is_long = False
                current = ep
                ep = low[i]
                af = step
            elif high[i] > ep:
                ep = high[i]
                af = min(af + step, max_step)
        else:
            prior_high = high[i - 2] if i > 1 else high[i - 1]
            current = max(current, max(high[i - 1], prior_high))
            if high[i] > current:
                is_long = True
                current = ep
                ep = high[i]
                af = step
            elif low[i] < ep:
                ep = low[i]
                af = min(af + step, max_step)

        sar[i] = current

    return sar


@njit(cache=True)
def donchian_midline_numba(high, low, length):
    hh = rolling_max_numba(high, length)
    ll = rolling_min_numba(low, length)
    return (hh + ll) / 2.0


@njit(cache=True)
def ichimoku_senkou_a_numba(high, low, tenkan_length=9, kijun_length=26):
    tenkan = donchian_midline_numba(high, low, tenkan_length)
    kijun = donchian_midline_numba(high, low, kijun_length)
    return (tenkan + kijun) / 2.0


@njit(cache=True)
def aroon_up_numba(high, length=25):
    n = len(high)
    out = np.full(n, np.nan)
    for i in range(length, n):
        max_idx = i - length
        for j in range(i - length + 1, i + 1):
            if high[j] >= high[max_idx]:
                max_idx = j
        out[i] = (length - (i - max_idx)) / length * 100.0
    return out


@njit(cache=True)
def aroon_down_numba(low, length=25):
    n = len(low)
    out = np.full(n, np.nan)
    for i in range(length, n):
        min_idx = i - length
        for j in range(i - length + 1, i + 1):
            if low[j] <= low[min_idx]:
                min_idx = j
        out[i] = (length - (i - min_idx)) / length * 100.0
    return out
