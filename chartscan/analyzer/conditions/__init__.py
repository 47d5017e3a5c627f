from .condition_evaluator import (
    Condition, ConditionGroup, Query, ConditionResult, GroupResult, EvalResult,
    ConditionEvaluator, evaluate_query
)

__all__ = [
    'Condition', 'ConditionGroup', 'Query', 'ConditionResult', 'GroupResult', 'EvalResult',
    'ConditionEvaluator', 'evaluate_query'
]
