"""
Parameter coercion for registry calls.

Raw parameter mappings come from loosely typed sources (query builders, INI files,
JSON). ``IndicatorParams`` validates them once against the catalog so the kernels
only ever see well-typed values.
"""

import math
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from chartscan.registry.catalog import IndicatorDefinition, NumberParam, SelectParam

ParamValue = Union[int, float, str]


def coerce_number(value: Any, param: NumberParam) -> Union[int, float]:
    """Coerce one numeric parameter.

    Numbers and numeric strings are accepted; empty, zero, non-finite or unparseable
    values fall back to the declared default. The result is clamped to the declared
    bounds and cast to int for integer-stepped params.
    """
    number: Optional[float] = None
    if isinstance(value, bool):
        number = None
    elif isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            number = None

    if number is None or not math.isfinite(number) or number == 0:
        number = float(param.default)

    if param.min is not None:
        number = max(number, float(param.min))
    if param.max is not None:
        number = min(number, float(param.max))

    if param.is_integer:
        return int(round(number))
    return number


def coerce_select(value: Any, param: SelectParam) -> str:
    if value is None:
        return param.default
    text = str(value)
    return text if text in param.values else param.default


class IndicatorParams(Mapping[str, ParamValue]):
    """Immutable, validated parameter set for one indicator definition."""

    __slots__ = ('_values',)

    def __init__(self, values: Dict[str, ParamValue]):
        self._values = dict(values)

    @classmethod
    def build(cls, definition: IndicatorDefinition,
              raw: Optional[Mapping[str, Any]] = None) -> "IndicatorParams":
        raw = raw or {}
        values: Dict[str, ParamValue] = {}
        for param in definition.params:
            value = raw.get(param.key)
            if isinstance(param, SelectParam):
                values[param.key] = coerce_select(value, param)
            else:
                values[param.key] = coerce_number(value, param)
        return cls(values)

    def __getitem__(self, key: str) -> ParamValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"IndicatorParams({self._values!r})"

    def to_dict(self) -> Dict[str, ParamValue]:
        return dict(self._values)
