import numpy as np
from numba import njit

from chartscan.indicators.overlap import sma_numba


@njit(cache=True)
def obv_numba(close, volume):
    n = len(close)
    out = np.zeros(n)
    if n == 0:
        return out

    out[0] = 0.0 if np.isnan(volume[0]) else volume[0]
    for i in range(1, n):
        if close[i] > close[i - 1]:
            out[i] = out[i - 1] + volume[i]
        elif close[i] < close[i - 1]:
            out[i] = out[i - 1] - volume[i]
        else:
            out[i] = out[i - 1]
    return out


@njit(cache=True)
def vwap_numba(high, low, close, volume):
    """Running VWAP over the whole series; intraday callers pass one session."""
    n = len(close)
    out = np.full(n, np.nan)
    cum_pv = 0.0
    cum_v = 0.0
    for i in range(n):
        typical = (high[i] + low[i] + close[i]) / 3.0
        cum_pv += typical * volume[i]
        cum_v += volume[i]
        if cum_v > 0:
            out[i] = cum_pv / cum_v
    return out


@njit(cache=True)
def relative_volume_numba(volume, length=20):
    avg = sma_numba(volume, length)
    out = np.full(len(volume), np.nan)
    for i in range(len(volume)):
        if not np.isnan(avg[i]) and avg[i] != 0:
            out[i] = volume[i] / avg[i]
    return out


@njit(cache=True)
def _close_location_value(high, low, close):
    n = len(close)
    clv = np.zeros(n)
    for i in range(n):
        hl = high[i] - low[i]
        if hl != 0:
            clv[i] = ((close[i] - low[i]) - (high[i] - close[i])) / hl
    return clv


@njit(cache=True)
def chaikin_money_flow_numba(high, low, close, volume, length=20):
    n = len(close)
    mfv = _close_location_value(high, low, close) * volume
    out = np.full(n, np.nan)
    for i in range(length - 1, n):
        sum_mfv = 0.0
        sum_vol = 0.0
        for j in range(i - length + 1, i + 1):
            sum_mfv += mfv[j]
            sum_vol += volume[j]
        out[i] = 0.0 if sum_vol == 0 else sum_mfv / sum_vol
    return out


@njit(cache=True)
def accumulation_distribution_numba(high, low, close, volume):
    return np.cumsum(_close_location_value(high, low, close) * volume)
