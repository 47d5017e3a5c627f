from .volume_indicators import (
    obv_numba, vwap_numba, relative_volume_numba,
    chaikin_money_flow_numba, accumulation_distribution_numba
)

__all__ = [
    'obv_numba', 'vwap_numba', 'relative_volume_numba',
    'chaikin_money_flow_numba', 'accumulation_distribution_numba'
]
