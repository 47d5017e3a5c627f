import numpy as np
from numba import njit


@njit(cache=True)
def detect_swing_highs_numba(values: np.ndarray, strength: int = 5) -> np.ndarray:
    """Mark bars no lower than every non-NaN neighbour within ``strength`` bars on each side.

    Ties keep the pivot; NaN bars are never pivots and never disqualify one.
    """
    n = len(values)
    swings = np.zeros(n, dtype=np.bool_)

    for i in range(strength, n - strength):
        current = values[i]
        if np.isnan(current):
            continue

        is_swing = True
        for j in range(i - strength, i + strength + 1):
            if j != i and not np.isnan(values[j]) and values[j] > current:
                is_swing = False
                break

        swings[i] = is_swing

    return swings


@njit(cache=True)
def detect_swing_lows_numba(values: np.ndarray, strength: int = 5) -> np.ndarray:
    n = len(values)
    swings = np.zeros(n, dtype=np.bool_)

    for i in range(strength, n - strength):
        current = values[i]
        if np.isnan(current):
            continue

        is_swing = True
        for j in range(i - strength, i + strength + 1):
            if j != i and not np.isnan(values[j]) and values[j] < current:
                is_swing = False
                break

        swings[i] = is_swing

    return swings


@njit(cache=True)
def last_two_swings_numba(swings: np.ndarray, start: int, end: int):
    """Return the indices of the last two marked bars in ``[start, end]`` (-1 where missing)."""
    last = -1
    prev = -1
    for j in range(end, start - 1, -1):
        if swings[j]:
            if last == -1:
                last = j
            else:
                prev = j
                break
    return last, prev
