"""
Directional-movement helpers for the ADX family.
"""
from typing import Tuple

import numpy as np
from numba import njit


@njit(cache=True)
def calculate_directional_movement(high: np.ndarray, low: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Calculate +DM and -DM; the first bar has no prior bar and carries 0."""
    n = len(high)
    dm_pos = np.zeros(n)
    dm_neg = np.zeros(n)

    for i in range(1, n):
        up_move = high[i] - high[i - 1]
        down_move = low[i - 1] - low[i]

        if up_move > down_move and up_move > 0:
            dm_pos[i] = up_move
        if down_move > up_move and down_move > 0:
            dm_neg[i] = down_move

    return dm_pos, dm_neg


@njit(cache=True)
def calculate_directional_indicators(dm_pos_smooth: np.ndarray, dm_neg_smooth: np.ndarray,
                                     tr_smooth: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Calculate +DI, -DI and DX from Wilder-smoothed values.

    A DI is undefined unless the smoothed true range is positive; DX is undefined
    unless both DI values exist and their sum is positive.
    """
    n = len(tr_smooth)
    pdi = np.full(n, np.nan)
    ndi = np.full(n, np.nan)
    dx = np.full(n, np.nan)

    for i in range(n):
        s_tr = tr_smooth[i]
        if s_tr > 0 and not np.isnan(dm_pos_smooth[i]):
            pdi[i] = dm_pos_smooth[i] / s_tr * 100.0
        if s_tr > 0 and not np.isnan(dm_neg_smooth[i]):
            ndi[i] = dm_neg_smooth[i] / s_tr * 100.0

        total = pdi[i] + ndi[i]
        if not np.isnan(pdi[i]) and not np.isnan(ndi[i]) and total > 0:
            dx[i] = abs(pdi[i] - ndi[i]) / total * 100.0

    return pdi, ndi, dx
