from datetime import date

from horizon_engine.models import Goal
from horizon_engine.time_saved import (
    boost_days_closer,
    compute_time_saved,
    days_at_speed,
    top_horizons,
)


def test_days_saved_uses_ceil():
    goal = Goal('car', target_amount=3044)
    assert days_at_speed(3044, 100) == 927
    assert days_at_speed(3044, 200) == 464

    report = compute_time_saved([goal], {'car': 100}, {'car': 200})
    assert report.per_goal == {'car': 463}
    assert report.total == 463


def test_slower_strategy_is_negative():
    goal = Goal('car', target_amount=3044)
    report = compute_time_saved([goal], {'car': 200}, {'car': 100})
    assert report.per_goal['car'] == -463


def test_goals_failing_preconditions_are_skipped():
    goals = [
        Goal('stalled', target_amount=1000),
        Goal('paused', target_amount=1000),
        Goal('done', current_amount=1000, target_amount=1000),
        Goal('car', target_amount=1000),
    ]
    baseline = {'stalled': 0, 'paused': 100, 'done': 100, 'car': 100}
    current = {'stalled': 100, 'paused': 0, 'done': 200, 'car': 200}
    report = compute_time_saved(goals, baseline, current)

    assert set(report.per_goal) == {'car'}
    assert report.total == report.per_goal['car']


def test_ranked_orders_by_days_saved():
    goals = [Goal('a', target_amount=1000), Goal('b', target_amount=3000)]
    report = compute_time_saved(goals, {'a': 100, 'b': 100}, {'a': 200, 'b': 200})
    assert [goal_id for goal_id, _ in report.ranked()] == ['b', 'a']


def test_boost_days_closer():
    goal = Goal('car', target_amount=1000, cash_flow_enabled=True, cash_flow_amount=100)
    assert boost_days_closer(goal, 0, 100) == 30
    assert boost_days_closer(goal, 0, 0) == 0
    assert boost_days_closer(Goal('car', target_amount=1000), 0, 100) == 0


def test_top_horizons_ranks_and_limits():
    target_date = date(2030, 1, 1)
    goals = [
        Goal('a', target_amount=1000, target_date=target_date, cash_flow_amount=100),
        Goal('b', target_amount=1000, target_date=target_date, cash_flow_amount=100),
        Goal('c', target_amount=1000, cash_flow_amount=100),
        Goal('d', target_amount=1000, target_date=target_date),
    ]
    allocations = {'a': 100, 'b': 300, 'c': 500, 'd': 500}

    impacts = top_horizons(goals, allocations)
    assert [impact.goal.id for impact in impacts] == ['b', 'a']
    assert [impact.days_saved for impact in impacts] == [91, 30]
    assert impacts[0].stuffed_amount == 300

    assert [impact.goal.id for impact in top_horizons(goals, allocations, limit=1)] == ['b']
