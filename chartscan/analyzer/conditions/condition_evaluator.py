"""
Condition evaluator for user-built screener queries.

A query is a list of condition groups. Each group is evaluated against the series of
its timeframe, combining its conditions with AND/OR; groups are then chained left to
right with their connectors (the first group's connector is ignored).
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np

from chartscan.registry.catalog import get_indicator
from chartscan.registry.indicator_registry import IndicatorRegistry, get_registry
from chartscan.utils.dataclass_utils import SerializableMixin
from chartscan.utils.series import PriceSeries

DEFAULT_TIMEFRAME = "1d"
DEFAULT_TREND_BARS = 3
DEFAULT_WITHIN_BARS = 5

NO_RIGHT_OPERAND = ("detected", "is_increasing", "is_decreasing")


@dataclass
class Condition(SerializableMixin):
    id: str = ""
    left_indicator_id: str = ""
    left_params: Dict[str, Any] = field(default_factory=dict)
    operator: str = ""
    right_type: str = "value"
    right_value: Optional[str] = None
    right_indicator_id: str = ""
    right_params: Dict[str, Any] = field(default_factory=dict)
    right_multiplier: float = 1.0
    right_value2: Optional[str] = None
    has_time_modifier: bool = False
    time_modifier_mode: str = "within_last"
    time_modifier_bars: int = 0

    @property
    def is_filled(self) -> bool:
        return bool(self.left_indicator_id and self.operator)


@dataclass
class ConditionGroup(SerializableMixin):
    id: str = ""
    logic: str = "AND"
    timeframe: str = DEFAULT_TIMEFRAME
    connector: str = "AND"
    conditions: List[Condition] = field(default_factory=list)


@dataclass
class Query(SerializableMixin):
    name: str = ""
    groups: List[ConditionGroup] = field(default_factory=list)


@dataclass
class ConditionResult(SerializableMixin):
    condition_id: str
    match: bool


@dataclass
class GroupResult(SerializableMixin):
    group_id: str
    match: bool
    condition_results: List[ConditionResult] = field(default_factory=list)


@dataclass
class EvalResult(SerializableMixin):
    match: bool
    matched_groups: int
    details: List[GroupResult] = field(default_factory=list)


def _parse_scalar(value: Union[str, float, int, None]) -> Optional[float]:
    """Empty values mean "not set"; unparseable text is treated the same way."""
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


class ConditionEvaluator:
    """Evaluates conditions on the most recent bars of a series through the indicator registry."""

    def __init__(self, registry: Optional[IndicatorRegistry] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.registry = registry or get_registry()

    def evaluate_query(self, query: Query, series_by_timeframe: Mapping[str, PriceSeries]) -> EvalResult:
        details: List[GroupResult] = []
        matched_groups = 0

        for group in query.groups:
            timeframe = group.timeframe or DEFAULT_TIMEFRAME
            series = series_by_timeframe.get(timeframe)
            if series is None or len(series) == 0:
                self.logger.debug(f"No data for timeframe {timeframe}, group {group.id} fails")
                details.append(GroupResult(group.id, False, []))
                continue

            result = self.evaluate_group(group, series)
            if result.match:
                matched_groups += 1
            details.append(result)

        overall = details[0].match if details else False
        for group, result in zip(query.groups[1:], details[1:]):
            if group.connector == "OR":
                overall = overall or result.match
            else:
                overall = overall and result.match

        return EvalResult(overall, matched_groups, details)

    def evaluate_group(self, group: ConditionGroup, series: PriceSeries) -> GroupResult:
        condition_results = [
            ConditionResult(condition.id, self.evaluate_condition(condition, series))
            for condition in group.conditions
        ]
        valid = [result.match for condition, result in zip(group.conditions, condition_results)
                 if condition.is_filled]

        if not valid:
            match = False
        elif group.logic == "AND":
            match = all(valid)
        else:
            match = any(valid)

        return GroupResult(group.id, match, condition_results)

    def evaluate_condition(self, condition: Condition, series: PriceSeries) -> bool:
        if not condition.is_filled or get_indicator(condition.left_indicator_id) is None:
            return False
        if len(series) == 0:
            return False

        op = condition.operator
        left = self.registry.compute(condition.left_indicator_id, condition.left_params, series)
        right: Optional[np.ndarray] = None
        scalar: Optional[float] = None
        upper: Optional[float] = None
        multiplier = condition.right_multiplier or 1.0

        if op in NO_RIGHT_OPERAND:
            pass
        elif condition.right_type == "indicator" and condition.right_indicator_id:
            right = self.registry.compute(condition.right_indicator_id, condition.right_params, series)
        else:
            scalar = _parse_scalar(condition.right_value)
            upper = _parse_scalar(condition.right_value2)

        last = len(series) - 1

        if op in ("is_increasing", "is_decreasing"):
            return self._is_trending(left, op, last, condition.time_modifier_bars or DEFAULT_TREND_BARS)

        if not condition.has_time_modifier:
            return self._evaluate_at(op, left, right, scalar, upper, multiplier, last)

        bars = condition.time_modifier_bars or DEFAULT_WITHIN_BARS
        mode = condition.time_modifier_mode

        if mode == "exactly_ago":
            idx = last - bars
            return idx >= 0 and self._evaluate_at(op, left, right, scalar, upper, multiplier, idx)

        if mode == "all_of_last":
            for b in range(bars):
                idx = last - b
                if idx < 0 or not self._evaluate_at(op, left, right, scalar, upper, multiplier, idx):
                    return False
            return True

        # within_last
        for b in range(bars):
            idx = last - b
            if idx < 0:
                break
            if self._evaluate_at(op, left, right, scalar, upper, multiplier, idx):
                return True
        return False

    @staticmethod
    def _is_trending(values: np.ndarray, op: str, last: int, bars: int) -> bool:
        """Strictly rising (or falling) over ``bars`` consecutive bar-to-bar steps."""
        for b in range(bars):
            idx = last - b
            if idx <= 0:
                return False
            current, previous = values[idx], values[idx - 1]
            if np.isnan(current) or np.isnan(previous):
                return False
            if op == "is_increasing" and current <= previous:
                return False
            if op == "is_decreasing" and current >= previous:
                return False
        return True

    @staticmethod
    def _evaluate_at(op: str, left_values: np.ndarray, right_values: Optional[np.ndarray],
                     scalar: Optional[float], upper: Optional[float], multiplier: float, idx: int) -> bool:
        left = left_values[idx]
        if np.isnan(left):
            return False

        if right_values is not None:
            if np.isnan(right_values[idx]):
                return False
            right = right_values[idx] * multiplier
        elif scalar is not None:
            right = scalar
        else:
            right = 0.0

        if op == "greater_than":
            return bool(left > right)
        if op == "less_than":
            return bool(left < right)
        if op == "greater_equal":
            return bool(left >= right)
        if op == "less_equal":
            return bool(left <= right)
        if op == "is_between":
            if scalar is None or upper is None:
                return False
            return bool(scalar <= left <= upper)
        if op in ("crossed_above", "crossed_below"):
            if idx == 0:
                return False
            prev_left = left_values[idx - 1]
            prev_right = right_values[idx - 1] * multiplier if right_values is not None else right
            if np.isnan(prev_left) or np.isnan(prev_right):
                return False
            if op == "crossed_above":
                return bool(prev_left <= prev_right and left > right)
            return bool(prev_left >= prev_right and left < right)
        if op == "detected":
            return bool(left == 1)
        return False


def evaluate_query(query: Query, series_by_timeframe: Mapping[str, PriceSeries]) -> EvalResult:
    return ConditionEvaluator().evaluate_query(query, series_by_timeframe)
