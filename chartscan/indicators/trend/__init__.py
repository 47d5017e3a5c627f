from .trend_indicators import (
    adx_numba, parabolic_sar_numba, donchian_midline_numba,
    ichimoku_senkou_a_numba, aroon_up_numba, aroon_down_numba
)

# Tenkan, kijun and senkou B share one formula with different periods
ichimoku_tenkan_numba = donchian_midline_numba
ichimoku_kijun_numba = donchian_midline_numba
ichimoku_senkou_b_numba = donchian_midline_numba

__all__ = [
    'adx_numba', 'parabolic_sar_numba', 'donchian_midline_numba',
    'ichimoku_tenkan_numba', 'ichimoku_kijun_numba', 'ichimoku_senkou_a_numba',
    'ichimoku_senkou_b_numba', 'aroon_up_numba', 'aroon_down_numba'
]
