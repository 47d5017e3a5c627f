from .divergence_patterns import (
    DIVERGENCE_TYPES,
    detect_divergence_numba,
    rsi_divergence_numba,
    macd_divergence_numba,
    stoch_divergence_numba,
    obv_divergence_numba,
    cci_divergence_numba
)

__all__ = [
    'DIVERGENCE_TYPES',
    'detect_divergence_numba',
    'rsi_divergence_numba',
    'macd_divergence_numba',
    'stoch_divergence_numba',
    'obv_divergence_numba',
    'cci_divergence_numba'
]
