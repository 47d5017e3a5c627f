from .catalog import (
    CATEGORIES, INDICATORS, OPERATORS, OUTPUT_NUMERIC, OUTPUT_PATTERN,
    NumberParam, SelectParam, IndicatorDefinition, OperatorDefinition,
    get_indicator, get_operator, operators_for, indicators_in_category
)
from .params import IndicatorParams
from .indicator_registry import IndicatorRegistry, compute_indicator, get_registry

__all__ = [
    'CATEGORIES', 'INDICATORS', 'OPERATORS', 'OUTPUT_NUMERIC', 'OUTPUT_PATTERN',
    'NumberParam', 'SelectParam', 'IndicatorDefinition', 'OperatorDefinition',
    'get_indicator', 'get_operator', 'operators_for', 'indicators_in_category',
    'IndicatorParams', 'IndicatorRegistry', 'compute_indicator', 'get_registry'
]
