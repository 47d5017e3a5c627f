from .momentum_indicators import (
    rsi_numba, cutler_rsi_numba, stochastic_k_numba, stochastic_d_numba, stoch_rsi_k_numba,
    stoch_rsi_d_numba, williams_r_numba, cci_numba, roc_numba, mfi_numba, macd_numba
)

__all__ = [
    'rsi_numba', 'cutler_rsi_numba', 'stochastic_k_numba', 'stochastic_d_numba', 'stoch_rsi_k_numba',
    'stoch_rsi_d_numba', 'williams_r_numba', 'cci_numba', 'roc_numba', 'mfi_numba', 'macd_numba'
]
