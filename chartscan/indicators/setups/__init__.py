from .setup_signals import (
    crossover_numba, ema_cross_numba, sma_cross_numba,
    macd_cross_numba, supertrend_flip_numba
)

__all__ = [
    'crossover_numba', 'ema_cross_numba', 'sma_cross_numba',
    'macd_cross_numba', 'supertrend_flip_numba'
]
