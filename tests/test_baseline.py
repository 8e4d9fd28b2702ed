from datetime import datetime

import pytest

from horizon_engine.baseline import (
    SOURCE_CASH_FLOW,
    SOURCE_RECENT_TRANSACTION,
    SOURCE_STALLED,
    BaselineDetector,
    apply_velocity,
    most_recent_external_inflow,
    normalize_to_monthly,
)
from horizon_engine.models import ContributionRecord, Goal


def _goals():
    return [
        Goal('car', target_amount=5000, cash_flow_enabled=True, cash_flow_amount=200),
        Goal('trip', target_amount=2000),
        Goal('bike', target_amount=800),
    ]


def _history():
    return {
        'trip': [
            ContributionRecord('trip', 80, datetime(2024, 1, 1), 'external', 'inflow'),
            ContributionRecord('trip', 100, datetime(2024, 2, 1), 'external', 'inflow'),
            ContributionRecord('trip', 999, datetime(2024, 3, 1), 'internal', 'move'),
        ],
    }


def test_normalize_to_monthly():
    assert normalize_to_monthly(100, 'monthly') == 100
    assert normalize_to_monthly(10, 'daily') == pytest.approx(304.4)
    assert normalize_to_monthly(70, 'weekly') == pytest.approx(304.4)
    assert normalize_to_monthly(140, 'biweekly') == pytest.approx(304.4)


def test_most_recent_external_inflow_ignores_moves():
    record = most_recent_external_inflow(_history()['trip'])
    assert record.amount == 100
    assert most_recent_external_inflow([]) is None


def test_detect_prefers_cash_flow_then_history():
    detector = BaselineDetector()
    baseline = detector.detect(_goals(), _history(), 'monthly')

    assert baseline == {'car': 200, 'trip': 100, 'bike': 0}
    assert detector.sources == {
        'car': SOURCE_CASH_FLOW,
        'trip': SOURCE_RECENT_TRANSACTION,
        'bike': SOURCE_STALLED,
    }


def test_detect_normalizes_by_default_frequency():
    baseline = BaselineDetector().detect(_goals(), _history(), 'weekly')
    assert baseline['car'] == pytest.approx(200 * 30.44 / 7)


def test_detect_is_cached_until_reset():
    detector = BaselineDetector()
    history = _history()
    first = detector.detect(_goals(), history)

    history['bike'] = [ContributionRecord('bike', 50, datetime(2024, 4, 1), 'external', 'inflow')]
    second = detector.detect(_goals()[:1], history)
    assert second == first

    detector.reset()
    assert not detector.is_computed
    assert detector.detect(_goals(), history)['bike'] == 50


def test_apply_velocity_scales_and_clamps():
    baseline = {'car': 200, 'trip': 100}
    assert apply_velocity(baseline, 0) == baseline
    assert apply_velocity(baseline, 50) == {'car': 300, 'trip': 150}
    assert apply_velocity(baseline, 250) == {'car': 400, 'trip': 200}
    assert apply_velocity(baseline, -300) == {'car': 0, 'trip': 0}
    assert apply_velocity(baseline, 50, ['trip', 'new']) == {'trip': 150, 'new': 0}
