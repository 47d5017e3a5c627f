"""
Compound setup signals: moving-average, MACD and Supertrend crossovers as 0/1 flags.

A flag fires only on the bar where the fast series moves strictly through the slow
one, so a flat touch followed by a cross counts once.
"""
import numpy as np
from numba import njit

from chartscan.indicators.overlap import ema_numba, sma_numba
from chartscan.indicators.momentum import macd_numba
from chartscan.indicators.volatility import supertrend_numba


@njit(cache=True)
def crossover_numba(fast, slow, bullish):
    n = len(fast)
    out = np.zeros(n)
    for i in range(1, n):
        if np.isnan(fast[i]) or np.isnan(slow[i]) or np.isnan(fast[i - 1]) or np.isnan(slow[i - 1]):
            continue
        if bullish:
            if fast[i - 1] <= slow[i - 1] and fast[i] > slow[i]:
                out[i] = 1.0
        elif fast[i - 1] >= slow[i - 1] and fast[i] < slow[i]:
            out[i] = 1.0
    return out


@njit(cache=True)
def ema_cross_numba(close, fast_length, slow_length, bullish):
    return crossover_numba(ema_numba(close, fast_length), ema_numba(close, slow_length), bullish)


@njit(cache=True)
def sma_cross_numba(close, fast_length, slow_length, bullish):
    return crossover_numba(sma_numba(close, fast_length), sma_numba(close, slow_length), bullish)


@njit(cache=True)
def macd_cross_numba(close, fast_length, slow_length, signal_length, bullish):
    line, signal, _ = macd_numba(close, fast_length, slow_length, signal_length)
    return crossover_numba(line, signal, bullish)


@njit(cache=True)
def supertrend_flip_numba(high, low, close, length, multiplier, bullish):
    """Flag bars where the close crosses the Supertrend line."""
    st = supertrend_numba(high, low, close, length, multiplier)
    n = len(close)
    out = np.zeros(n)
    for i in range(1, n):
        if np.isnan(st[i]) or np.isnan(st[i - 1]):
            continue
        if bullish:
            if close[i - 1] <= st[i - 1] and close[i] > st[i]:
                out[i] = 1.0
        elif close[i - 1] >= st[i - 1] and close[i] < st[i]:
            out[i] = 1.0
    return out
