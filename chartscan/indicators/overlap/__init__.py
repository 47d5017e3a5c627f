from .overlap_indicators import (
    sma_numba, ema_numba, wma_numba, dema_numba, tema_numba,
    hull_ma_numba, vwma_numba, wilder_smooth_numba, fill_nan_numba
)

__all__ = [
    'sma_numba', 'ema_numba', 'wma_numba', 'dema_numba', 'tema_numba',
    'hull_ma_numba', 'vwma_numba', 'wilder_smooth_numba', 'fill_nan_numba'
]
