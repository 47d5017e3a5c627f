from .price_indicators import (
    previous_value_numba, trailing_high_numba, trailing_low_numba,
    percent_change_numba, percent_from_numba
)

__all__ = [
    'previous_value_numba', 'trailing_high_numba', 'trailing_low_numba',
    'percent_change_numba', 'percent_from_numba'
]
