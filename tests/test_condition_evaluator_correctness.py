import pytest

from chartscan.analyzer.conditions.condition_evaluator import (
    Condition, ConditionEvaluator, ConditionGroup, Query, evaluate_query
)


def _series(make_series, closes):
    return make_series([[c, c + 0.5, c - 0.5, c, 1000.0] for c in closes])


@pytest.fixture
def rising(make_series):
    return _series(make_series, [float(c) for c in range(1, 31)])


@pytest.fixture
def crossed_two_bars_ago(make_series):
    # Close crosses 10 on the third-to-last bar and stays above
    return _series(make_series, [8.0] * 20 + [9.0, 11.0, 12.0, 12.5])


@pytest.fixture
def evaluator():
    return ConditionEvaluator()


def _cond(**kwargs):
    kwargs.setdefault('id', 'c1')
    kwargs.setdefault('left_indicator_id', 'close')
    return Condition(**kwargs)


def test_scalar_comparisons(evaluator, rising):
    assert evaluator.evaluate_condition(_cond(operator='greater_than', right_value='10'), rising)
    assert not evaluator.evaluate_condition(_cond(operator='less_than', right_value='10'), rising)
    assert evaluator.evaluate_condition(_cond(operator='greater_equal', right_value='30'), rising)
    assert evaluator.evaluate_condition(_cond(operator='less_equal', right_value='30'), rising)


def test_empty_right_value_compares_against_zero(evaluator, rising):
    assert evaluator.evaluate_condition(_cond(operator='greater_than', right_value=''), rising)


def test_between_needs_both_bounds(evaluator, rising):
    assert evaluator.evaluate_condition(
        _cond(operator='is_between', right_value='25', right_value2='35'), rising)
    assert not evaluator.evaluate_condition(
        _cond(operator='is_between', right_value='25', right_value2=''), rising)


def test_indicator_operand_with_multiplier(evaluator, rising):
    cond = _cond(operator='greater_than', right_type='indicator',
                 right_indicator_id='sma', right_params={'period': 5})
    assert evaluator.evaluate_condition(cond, rising)
    cond.right_multiplier = 2.0
    assert not evaluator.evaluate_condition(cond, rising)


def test_crossed_above_time_modifiers(evaluator, crossed_two_bars_ago):
    series = crossed_two_bars_ago
    on_last_bar = _cond(operator='crossed_above', right_value='10')
    assert not evaluator.evaluate_condition(on_last_bar, series)

    within = _cond(operator='crossed_above', right_value='10', has_time_modifier=True,
                   time_modifier_mode='within_last', time_modifier_bars=5)
    assert evaluator.evaluate_condition(within, series)

    exactly = _cond(operator='crossed_above', right_value='10', has_time_modifier=True,
                    time_modifier_mode='exactly_ago', time_modifier_bars=2)
    assert evaluator.evaluate_condition(exactly, series)
    exactly.time_modifier_bars = 1
    assert not evaluator.evaluate_condition(exactly, series)

    below = _cond(operator='crossed_below', right_value='10', has_time_modifier=True,
                  time_modifier_mode='within_last', time_modifier_bars=5)
    assert not evaluator.evaluate_condition(below, series)


def test_all_of_last(evaluator, crossed_two_bars_ago):
    cond = _cond(operator='greater_than', right_value='10', has_time_modifier=True,
                 time_modifier_mode='all_of_last', time_modifier_bars=3)
    assert evaluator.evaluate_condition(cond, crossed_two_bars_ago)
    cond.time_modifier_bars = 4
    assert not evaluator.evaluate_condition(cond, crossed_two_bars_ago)


def test_exactly_ago_before_first_bar(evaluator, rising):
    cond = _cond(operator='greater_than', right_value='0', has_time_modifier=True,
                 time_modifier_mode='exactly_ago', time_modifier_bars=100)
    assert not evaluator.evaluate_condition(cond, rising)


def test_trend_operators(evaluator, rising, crossed_two_bars_ago):
    assert evaluator.evaluate_condition(_cond(operator='is_increasing'), rising)
    assert not evaluator.evaluate_condition(_cond(operator='is_decreasing'), rising)
    # Flat stretch before the cross breaks a long run
    flat_run = _cond(operator='is_increasing', time_modifier_bars=5)
    assert not evaluator.evaluate_condition(flat_run, crossed_two_bars_ago)


def test_undefined_values_never_match(evaluator, rising):
    cond = _cond(left_indicator_id='sma', left_params={'period': 200}, operator='less_than',
                 right_value='1000')
    assert not evaluator.evaluate_condition(cond, rising)


def test_detected_pattern(evaluator, make_series):
    rows = [[100.0, 100.5, 99.5, 100.2, 1000.0]] * 5 + [[100.0, 100.6, 98.0, 100.5, 1000.0]]
    series = make_series(rows)
    assert evaluator.evaluate_condition(_cond(left_indicator_id='hammer', operator='detected'), series)
    assert not evaluator.evaluate_condition(_cond(left_indicator_id='doji', operator='detected'), series)


def test_unknown_or_unfilled_conditions(evaluator, rising):
    assert not evaluator.evaluate_condition(_cond(left_indicator_id='nope', operator='greater_than'), rising)
    assert not evaluator.evaluate_condition(_cond(operator=''), rising)


def test_group_ignores_unfilled_conditions(evaluator, rising):
    group = ConditionGroup(id='g', logic='AND', conditions=[
        _cond(operator='greater_than', right_value='10'),
        Condition(id='blank'),
    ])
    result = evaluator.evaluate_group(group, rising)
    assert result.match
    assert [r.condition_id for r in result.condition_results] == ['c1', 'blank']

    empty = ConditionGroup(id='e', conditions=[Condition(id='blank')])
    assert not evaluator.evaluate_group(empty, rising).match


def test_group_or_logic(evaluator, rising):
    group = ConditionGroup(id='g', logic='OR', conditions=[
        _cond(id='a', operator='less_than', right_value='10'),
        _cond(id='b', operator='greater_than', right_value='10'),
    ])
    assert evaluator.evaluate_group(group, rising).match


def test_query_connectors_and_missing_timeframe(rising):
    passing = ConditionGroup(id='pass', conditions=[_cond(operator='greater_than', right_value='10')])
    failing = ConditionGroup(id='fail', conditions=[_cond(operator='less_than', right_value='10')])
    weekly = ConditionGroup(id='weekly', timeframe='1w', connector='OR',
                            conditions=[_cond(operator='greater_than', right_value='10')])

    failing.connector = 'OR'
    result = evaluate_query(Query('q', [passing, failing]), {'1d': rising})
    assert result.match
    assert result.matched_groups == 1

    failing.connector = 'AND'
    assert not evaluate_query(Query('q', [passing, failing]), {'1d': rising}).match

    result = evaluate_query(Query('q', [failing, weekly]), {'1d': rising})
    assert not result.match
    assert [d.match for d in result.details] == [False, False]


def test_empty_query_does_not_match(rising):
    assert not evaluate_query(Query('empty', []), {'1d': rising}).match


def test_query_from_dict(rising):
    query = Query.from_dict({
        'name': 'momentum',
        'groups': [{
            'id': 'g1',
            'logic': 'AND',
            'conditions': [
                {'id': 'rsi', 'left_indicator_id': 'rsi', 'left_params': {'period': 14},
                 'operator': 'greater_than', 'right_value': '70'},
                {'id': 'above', 'left_indicator_id': 'close', 'operator': 'greater_than',
                 'right_type': 'indicator', 'right_indicator_id': 'ema', 'right_params': {'period': 10},
                 'right_multiplier': '1'},
            ],
        }],
    })
    assert isinstance(query.groups[0].conditions[0], Condition)
    assert query.groups[0].conditions[1].right_multiplier == 1.0
    assert evaluate_query(query, {'1d': rising}).match
