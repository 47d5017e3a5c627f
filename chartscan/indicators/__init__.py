"""
Numba-compiled indicator kernels, grouped by family.
"""
