import numpy as np
from numba import njit


@njit(cache=True)
def previous_value_numba(values):
    out = np.full(len(values), np.nan)
    for i in range(1, len(values)):
        out[i] = values[i - 1]
    return out


@njit(cache=True)
def trailing_high_numba(high, lookback):
    """Highest high of the ``lookback`` bars before each bar; the current bar is excluded."""
    n = len(high)
    out = np.full(n, np.nan)
    for i in range(1, n):
        mx = -np.inf
        for j in range(max(0, i - lookback), i):
            if high[j] > mx:
                mx = high[j]
        out[i] = mx
    return out


@njit(cache=True)
def trailing_low_numba(low, lookback):
    n = len(low)
    out = np.full(n, np.nan)
    for i in range(1, n):
        mn = np.inf
        for j in range(max(0, i - lookback), i):
            if low[j] < mn:
                mn = low[j]
        out[i] = mn
    return out


@njit(cache=True)
def percent_change_numba(values, lag):
    n = len(values)
    out = np.full(n, np.nan)
    for i in range(lag, n):
        prev = values[i - lag]
        if prev != 0:
            out[i] = (values[i] - prev) / prev * 100.0
    return out


@njit(cache=True)
def percent_from_numba(values, reference):
    """Percent distance of ``values`` from ``reference``; NaN where the reference is NaN or 0."""
    n = len(values)
    out = np.full(n, np.nan)
    for i in range(n):
        ref = reference[i]
        if not np.isnan(ref) and ref != 0:
            out[i] = (values[i] - ref) / ref * 100.0
    return out
