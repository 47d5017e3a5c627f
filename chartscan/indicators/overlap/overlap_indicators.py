import numpy as np
from numba import njit


@njit(cache=True)
def sma_numba(arr, length):
    n = len(arr)
    sma_values = np.full(n, np.nan)

    # Running sum; a NaN inside the series propagates to every later window
    window_sum = 0.0
    for i in range(n):
        window_sum += arr[i]
        if i >= length:
            window_sum -= arr[i - length]
        if i >= length - 1:
            sma_values[i] = window_sum / length

    return sma_values


@njit(cache=True)
def ema_numba(arr, length):
    """EMA seeded with the simple mean of the first ``length`` values."""
    n = len(arr)
    ema_arr = np.full(n, np.nan)
    if n < length:
        return ema_arr

    multiplier = 2.0 / (length + 1)
    seed = 0.0
    for i in range(length):
        seed += arr[i]
    prev = seed / length
    ema_arr[length - 1] = prev

    for i in range(length, n):
        prev = arr[i] * multiplier + prev * (1.0 - multiplier)
        ema_arr[i] = prev

    return ema_arr


@njit(cache=True)
def wma_numba(arr, length):
    n = len(arr)
    out = np.full(n, np.nan)
    denom = length * (length + 1) / 2.0

    for i in range(length - 1, n):
        weighted = 0.0
        for j in range(length):
            weighted += arr[i - length + 1 + j] * (j + 1)
        out[i] = weighted / denom

    return out


@njit(cache=True)
def fill_nan_numba(arr):
    out = arr.copy()
    for i in range(len(out)):
        if np.isnan(out[i]):
            out[i] = 0.0
    return out


@njit(cache=True)
def dema_numba(arr, length):
    e1 = ema_numba(arr, length)
    e2 = ema_numba(fill_nan_numba(e1), length)
    out = np.full(len(arr), np.nan)
    for i in range(len(arr)):
        if not np.isnan(e1[i]) and not np.isnan(e2[i]):
            out[i] = 2.0 * e1[i] - e2[i]
    return out


@njit(cache=True)
def tema_numba(arr, length):
    e1 = ema_numba(arr, length)
    e2 = ema_numba(fill_nan_numba(e1), length)
    e3 = ema_numba(fill_nan_numba(e2), length)
    out = np.full(len(arr), np.nan)
    for i in range(len(arr)):
        if not np.isnan(e1[i]) and not np.isnan(e2[i]) and not np.isnan(e3[i]):
            out[i] = 3.0 * e1[i] - 3.0 * e2[i] + e3[i]
    return out


@njit(cache=True)
def hull_ma_numba(arr, length):
    half = max(1, length // 2)
    sqrt_len = max(1, int(np.floor(np.sqrt(length) + 0.5)))
    wma_full = wma_numba(arr, length)
    wma_half = wma_numba(arr, half)

    n = len(arr)
    diff = np.full(n, np.nan)
    for i in range(n):
        if not np.isnan(wma_half[i]) and not np.isnan(wma_full[i]):
            diff[i] = 2.0 * wma_half[i] - wma_full[i]

    hull = wma_numba(fill_nan_numba(diff), sqrt_len)
    for i in range(n):
        if np.isnan(diff[i]):
            hull[i] = np.nan
    return hull


@njit(cache=True)
def vwma_numba(close, volume, length):
    n = len(close)
    out = np.full(n, np.nan)
    for i in range(length - 1, n):
        sum_pv = 0.0
        sum_v = 0.0
        for j in range(i - length + 1, i + 1):
            sum_pv += close[j] * volume[j]
            sum_v += volume[j]
        if sum_v > 0:
            out[i] = sum_pv / sum_v
    return out


@njit(cache=True)
def wilder_smooth_numba(arr, length):
    """Wilder's moving average: mean seed at ``length - 1``, then ``(prev * (length - 1) + x) / length``."""
    n = len(arr)
    out = np.full(n, np.nan)
    if n < length:
        return out

    seed = 0.0
    for i in range(length):
        seed += arr[i]
    prev = seed / length
    out[length - 1] = prev

    for i in range(length, n):
        prev = (prev * (length - 1) + arr[i]) / length
        out[i] = prev

    return out
