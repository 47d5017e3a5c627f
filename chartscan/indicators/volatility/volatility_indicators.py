import numpy as np
from numba import njit

from chartscan.indicators.overlap import sma_numba, ema_numba, wilder_smooth_numba
from chartscan.indicators.statistical import std_dev_numba, true_range_numba


@njit(cache=True)
def bollinger_bands_numba(close, length=20, num_std_dev=2.0):
    """Return (upper, middle, lower) with a population standard deviation."""
    middle = sma_numba(close, length)
    std = std_dev_numba(close, length)
    upper = middle + num_std_dev * std
    lower = middle - num_std_dev * std
    return upper, middle, lower


@njit(cache=True)
def bollinger_bandwidth_numba(close, length=20, num_std_dev=2.0):
    middle = sma_numba(close, length)
    std = std_dev_numba(close, length)
    out = np.full(len(close), np.nan)
    for i in range(len(close)):
        if np.isnan(middle[i]) or middle[i] == 0:
            continue
        out[i] = 2.0 * num_std_dev * std[i] / middle[i] * 100.0
    return out


@njit(cache=True)
def bollinger_percent_b_numba(close, length=20, num_std_dev=2.0):
    upper, _, lower = bollinger_bands_numba(close, length, num_std_dev)
    out = np.full(len(close), np.nan)
    for i in range(len(close)):
        if np.isnan(upper[i]) or np.isnan(lower[i]):
            continue
        width = upper[i] - lower[i]
        out[i] = 0.5 if width == 0 else (close[i] - lower[i]) / width
    return out


@njit(cache=True)
def atr_numba(high, low, close, length=14):
    return wilder_smooth_numba(true_range_numba(high, low, close), length)


@njit(cache=True)
def atr_percent_numba(high, low, close, length=14):
    atr = atr_numba(high, low, close, length)
    out = np.full(len(close), np.nan)
    for i in range(len(close)):
        if not np.isnan(atr[i]) and close[i] != 0:
            out[i] = atr[i] / close[i] * 100.0
    return out


@njit(cache=True)
def supertrend_numba(high, low, close, length=10, multiplier=3.0):
    """Supertrend line: the lower band while trending up, the upper band while trending down.

    Bands only tighten while the prior close stays inside them; the state is carried
    bar by bar in index order.
    """
    n = len(close)
    atr = atr_numba(high, low, close, length)
    supertrend = np.full(n, np.nan)
    upper_band = np.zeros(n)
    lower_band = np.zeros(n)
    direction = np.ones(n)

    for i in range(n):
        if np.isnan(atr[i]):
            continue
        hl2 = (high[i] + low[i]) / 2.0
        ub = hl2 + multiplier * atr[i]
        lb = hl2 - multiplier * atr[i]

        if i > 0:
            if not (ub < upper_band[i - 1] or close[i - 1] > upper_band[i - 1]):
                ub = upper_band[i - 1]
            if not (lb > lower_band[i - 1] or close[i - 1] < lower_band[i - 1]):
                lb = lower_band[i - 1]

        upper_band[i] = ub
        lower_band[i] = lb

        if i == 0 or np.isnan(supertrend[i - 1]):
            direction[i] = 1.0 if close[i] > ub else -1.0
        elif direction[i - 1] == 1.0:
            direction[i] = -1.0 if close[i] < lb else 1.0
        else:
            direction[i] = 1.0 if close[i] > ub else -1.0

        supertrend[i] = lb if direction[i] == 1.0 else ub

    return supertrend


@njit(cache=True)
def keltner_channels_numba(high, low, close, length=20, multiplier=2.0):
    """Return (upper, lower) as EMA +/- multiplier * ATR over the same length."""
    middle = ema_numba(close, length)
    atr = atr_numba(high, low, close, length)
    upper = middle + multiplier * atr
    lower = middle - multiplier * atr
    return upper, lower


@njit(cache=True)
def historical_volatility_numba(close, length=20):
    """Annualised population std of log returns, in percent."""
    n = len(close)
    out = np.full(n, np.nan)
    returns = np.empty(length)

    for i in range(length, n):
        valid = True
        for k in range(length):
            j = i - length + 1 + k
            if close[j - 1] <= 0 or close[j] <= 0:
                valid = False
                break
            returns[k] = np.log(close[j] / close[j - 1])
        if not valid:
            continue

        mean = 0.0
        for k in range(length):
            mean += returns[k]
        mean /= length
        var = 0.0
        for k in range(length):
            var += (returns[k] - mean) ** 2
        var /= length
        out[i] = np.sqrt(var * 252.0) * 100.0

    return out
