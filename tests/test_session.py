import asyncio
from datetime import date, datetime

import pytest

from horizon_engine.models import ContributionRecord, Goal, GoalUpdate
from horizon_engine.session import PlanningSession
from horizon_engine.store import InMemoryGoalStore

TODAY = date(2024, 1, 1)


def _store():
    goals = [
        Goal('a', target_amount=1000, cash_flow_enabled=True, cash_flow_amount=100),
        Goal('b', current_amount=500, target_amount=2000),
        Goal('wallet'),
    ]
    records = [ContributionRecord('b', 50, datetime(2023, 12, 1), 'external', 'inflow', 'Salary')]
    return InMemoryGoalStore(goals, records)


def _session(**kwargs):
    session = PlanningSession(_store(), today=TODAY, **kwargs)
    session.select(['a', 'b', 'wallet'])
    return session


def test_select_ignores_non_horizons():
    session = _session()
    assert session.allocation.selected == ['a', 'b']
    assert session.allocation.percentages == {'a': pytest.approx(50), 'b': pytest.approx(50)}
    assert not session.add_goal('wallet')


def test_recompute_builds_projections_and_time_saved():
    session = _session()
    session.set_total(400)
    snapshot = session.recompute()

    assert snapshot.amounts == {'a': pytest.approx(200), 'b': pytest.approx(200)}
    assert snapshot.baseline == {'a': 100, 'b': 50}
    assert snapshot.projections['a'].contributions_needed == 5
    assert snapshot.projections['a'].days_to_target == 150
    assert snapshot.time_saved.per_goal == {'a': 152, 'b': 685}
    assert snapshot.time_saved.total == 837
    assert snapshot.off_track == []


def test_snapshot_is_read_only():
    snapshot = _session().recompute()
    with pytest.raises(TypeError):
        snapshot.percentages['a'] = 10


def test_time_saved_uses_monthly_speed():
    session = _session()
    session.set_total(400)
    session.set_frequency('a', 'weekly')
    snapshot = session.recompute()

    assert snapshot.monthly_amounts['a'] == pytest.approx(200 * 30.44 / 7)
    assert snapshot.projections['a'].days_to_target == 35


def test_baseline_is_cached_until_reset():
    store = _store()
    session = PlanningSession(store, today=TODAY)
    assert session.baseline()['b'] == 50

    store.add_transaction(ContributionRecord('b', 80, datetime(2024, 1, 1), 'external', 'inflow'))
    assert session.baseline()['b'] == 50

    session.reset()
    assert session.baseline()['b'] == 80
    assert session.allocation.selected == []
    assert session.total_contribution == 0


def test_negative_or_bad_totals_become_zero():
    session = _session()
    session.set_total(-50)
    assert session.total_contribution == 0
    session.set_total('lots')
    assert session.total_contribution == 0


def test_typed_input_waits_for_flush_without_loop():
    session = _session()
    received = []
    session.subscribe(received.append)

    session.enter_total_text('4')
    session.enter_total_text('40')
    assert session.last_snapshot is None

    assert session.flush_input()
    assert session.total_contribution == 40
    assert [snapshot.total_contribution for snapshot in received] == [40]


def test_typed_input_is_debounced_on_event_loop():
    received = []

    async def scenario():
        session = _session(debounce_delay=0.01)
        session.subscribe(received.append)
        for text in ('1', '10', '1,000'):
            session.enter_total_text(text)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert [snapshot.total_contribution for snapshot in received] == [1000]


def test_compare_velocity_against_baseline():
    session = _session()
    report = session.compare_velocity(100)
    assert report.per_goal['a'] == 152
    assert session.compare_velocity(0).total == 0


def test_amount_edit_path():
    session = _session()
    session.set_total(1000)
    assert session.set_amount('a', 250)
    assert session.allocation.percentages['a'] == pytest.approx(25)
    assert not session.set_amount('a', 5000)


def test_store_changes_emit_new_snapshot():
    store = _store()
    session = PlanningSession(store, today=TODAY)
    session.select(['a', 'b'])
    session.set_total(400)
    seen = []
    session.subscribe(seen.append)

    store.update_goal('a', GoalUpdate(cash_flow_amount=150))
    assert seen == []

    first = session.recompute()
    store.update_goal('a', GoalUpdate(cash_flow_amount=300))
    assert len(seen) == 2
    assert seen[-1] is session.last_snapshot
    assert seen[-1] is not first

    session.reset()
    store.update_goal('a', GoalUpdate(cash_flow_amount=50))
    assert len(seen) == 2
