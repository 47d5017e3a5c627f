from .pivot_levels import PIVOT_FIELDS, pivot_levels, compute_pivot

__all__ = ['PIVOT_FIELDS', 'pivot_levels', 'compute_pivot']
