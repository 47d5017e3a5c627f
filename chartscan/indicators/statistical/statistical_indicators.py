import numpy as np
from numba import njit

from chartscan.indicators.overlap import sma_numba


@njit(cache=True)
def std_dev_numba(arr, length):
    """Population standard deviation around the rolling mean."""
    n = len(arr)
    means = sma_numba(arr, length)
    out = np.full(n, np.nan)

    for i in range(n):
        if np.isnan(means[i]):
            continue
        sum_sq = 0.0
        for j in range(i - length + 1, i + 1):
            d = arr[j] - means[i]
            sum_sq += d * d
        out[i] = np.sqrt(sum_sq / length)

    return out


@njit(cache=True)
def rolling_max_numba(arr, length):
    n = len(arr)
    out = np.full(n, np.nan)
    for i in range(length - 1, n):
        mx = -np.inf
        for j in range(i - length + 1, i + 1):
            if arr[j] > mx:
                mx = arr[j]
        out[i] = mx
    return out


@njit(cache=True)
def rolling_min_numba(arr, length):
    n = len(arr)
    out = np.full(n, np.nan)
    for i in range(length - 1, n):
        mn = np.inf
        for j in range(i - length + 1, i + 1):
            if arr[j] < mn:
                mn = arr[j]
        out[i] = mn
    return out


@njit(cache=True)
def true_range_numba(high, low, close):
    n = len(high)
    tr = np.full(n, np.nan)
    if n == 0:
        return tr

    tr[0] = high[0] - low[0]
    for i in range(1, n):
        hl = high[i] - low[i]
        hc = abs(high[i] - close[i - 1])
        lc = abs(low[i] - close[i - 1])
        tr[i] = max(hl, max(hc, lc))
    return tr
