"""
Divergence Pattern Detection - Numba Implementation

Compares the last two swing pivots of price (close) with the last two swing pivots
of an oscillator inside a trailing window:
1. Bullish - price lower low, oscillator higher low
2. Bearish - price higher high, oscillator lower high
3. Hidden bullish - price higher low, oscillator lower low
4. Hidden bearish - price lower high, oscillator higher high

A pivot needs ``pivot_strength`` bars on its right to exist, so it only becomes
usable ``pivot_strength`` bars after it prints. The flag at bar i therefore never
depends on later bars.
"""

import numpy as np
from numba import njit

from chartscan.analyzer.pattern_engine.swing_detection import (
    detect_swing_highs_numba,
    detect_swing_lows_numba,
    last_two_swings_numba
)
from chartscan.indicators.momentum import rsi_numba, macd_numba, stochastic_k_numba, cci_numba
from chartscan.indicators.volume import obv_numba

DIVERGENCE_BULLISH = 0
DIVERGENCE_BEARISH = 1
DIVERGENCE_HIDDEN_BULLISH = 2
DIVERGENCE_HIDDEN_BEARISH = 3

DIVERGENCE_TYPES = {
    'bullish': DIVERGENCE_BULLISH,
    'bearish': DIVERGENCE_BEARISH,
    'hidden_bullish': DIVERGENCE_HIDDEN_BULLISH,
    'hidden_bearish': DIVERGENCE_HIDDEN_BEARISH,
}


@njit(cache=True)
def detect_divergence_numba(
    prices: np.ndarray,
    oscillator: np.ndarray,
    div_type: int = DIVERGENCE_BULLISH,
    lookback: int = 20,
    pivot_strength: int = 5
) -> np.ndarray:
    """
    Flag bars where price and oscillator pivots diverge.

    Args:
        prices: Close prices
        oscillator: Any numeric series aligned with prices (NaN allowed)
        div_type: One of the DIVERGENCE_* codes
        lookback: Window length in bars ending at the evaluated bar
        pivot_strength: Bars required on each side of a pivot

    Returns:
        Float array with 1.0 on bars where the divergence holds, else 0.0
    """
    n = len(prices)
    result = np.zeros(n)

    use_lows = div_type == DIVERGENCE_BULLISH or div_type == DIVERGENCE_HIDDEN_BULLISH
    if use_lows:
        price_swings = detect_swing_lows_numba(prices, pivot_strength)
        osc_swings = detect_swing_lows_numba(oscillator, pivot_strength)
    else:
        price_swings = detect_swing_highs_numba(prices, pivot_strength)
        osc_swings = detect_swing_highs_numba(oscillator, pivot_strength)

    for i in range(lookback, n):
        window_start = i - lookback
        confirmed_end = i - pivot_strength
        if confirmed_end < window_start:
            continue

        last_p, prev_p = last_two_swings_numba(price_swings, window_start, confirmed_end)
        last_o, prev_o = last_two_swings_numba(osc_swings, window_start, confirmed_end)
        if prev_p == -1 or prev_o == -1:
            continue

        price_rising = prices[last_p] > prices[prev_p]
        price_falling = prices[last_p] < prices[prev_p]
        osc_rising = oscillator[last_o] > oscillator[prev_o]
        osc_falling = oscillator[last_o] < oscillator[prev_o]

        if div_type == DIVERGENCE_BULLISH:
            hit = price_falling and osc_rising
        elif div_type == DIVERGENCE_BEARISH:
            hit = price_rising and osc_falling
        elif div_type == DIVERGENCE_HIDDEN_BULLISH:
            hit = price_rising and osc_falling
        else:
            hit = price_falling and osc_rising

        if hit:
            result[i] = 1.0

    return result


@njit(cache=True)
def rsi_divergence_numba(close, div_type, rsi_period=14, lookback=20, pivot_strength=5):
    return detect_divergence_numba(close, rsi_numba(close, rsi_period), div_type, lookback, pivot_strength)


@njit(cache=True)
def macd_divergence_numba(close, div_type, fast_length=12, slow_length=26, signal_length=9,
                          lookback=20, pivot_strength=5):
    _, _, histogram = macd_numba(close, fast_length, slow_length, signal_length)
    return detect_divergence_numba(close, histogram, div_type, lookback, pivot_strength)


@njit(cache=True)
def stoch_divergence_numba(high, low, close, div_type, period_k=14, smooth_k=3,
                           lookback=20, pivot_strength=5):
    k = stochastic_k_numba(high, low, close, period_k, smooth_k)
    return detect_divergence_numba(close, k, div_type, lookback, pivot_strength)


@njit(cache=True)
def obv_divergence_numba(close, volume, div_type, lookback=20, pivot_strength=5):
    return detect_divergence_numba(close, obv_numba(close, volume), div_type, lookback, pivot_strength)


@njit(cache=True)
def cci_divergence_numba(high, low, close, div_type, period=20, lookback=20, pivot_strength=5):
    cci = cci_numba(high, low, close, period)
    return detect_divergence_numba(close, cci, div_type, lookback, pivot_strength)
