"""
Windowed statistics shared by the indicator families.
"""
from .statistical_indicators import (
    std_dev_numba,
    rolling_max_numba,
    rolling_min_numba,
    true_range_numba
)

__all__ = [
    'std_dev_numba',
    'rolling_max_numba',
    'rolling_min_numba',
    'true_range_numba'
]
