import pytest

from horizon_engine.allocation import AllocationNormalizer


def _normalizer(ids=('a', 'b', 'c'), **kwargs):
    normalizer = AllocationNormalizer(**kwargs)
    normalizer.initialize_equal(list(ids))
    return normalizer


def test_initialize_equal_shares():
    normalizer = _normalizer()
    assert normalizer.percentages == {
        'a': pytest.approx(100 / 3),
        'b': pytest.approx(100 / 3),
        'c': pytest.approx(100 / 3),
    }
    assert normalizer.frequencies == {'a': 'monthly', 'b': 'monthly', 'c': 'monthly'}


def test_initialize_equal_keeps_existing_allocation():
    normalizer = _normalizer(('a', 'b'))
    normalizer.update_allocation('a', 70)
    normalizer.initialize_equal()
    assert normalizer.percentages['a'] == pytest.approx(70)


def test_update_allocation_spreads_difference():
    normalizer = _normalizer()
    assert normalizer.update_allocation('a', 50)
    assert normalizer.percentages['a'] == pytest.approx(50)
    assert normalizer.percentages['b'] == pytest.approx(25)
    assert normalizer.percentages['c'] == pytest.approx(25)


def test_update_allocation_to_full_share():
    normalizer = _normalizer()
    normalizer.update_allocation('a', 100)
    assert normalizer.percentages['a'] == pytest.approx(100)
    assert normalizer.total() == pytest.approx(100)


def test_update_unknown_goal_is_rejected():
    normalizer = _normalizer()
    assert not normalizer.update_allocation('zzz', 10)


def test_normalize_all_zero_gives_equal_shares():
    normalizer = _normalizer(('a', 'b'))
    normalizer.percentages = {'a': 0.0, 'b': 0.0}
    normalizer.normalize()
    assert normalizer.percentages == {'a': pytest.approx(50), 'b': pytest.approx(50)}


def test_add_resets_to_equal_by_default():
    normalizer = _normalizer(('a', 'b'))
    normalizer.update_allocation('a', 80)
    normalizer.add('c')
    assert all(value == pytest.approx(100 / 3) for value in normalizer.percentages.values())


def test_add_can_preserve_existing_shares():
    normalizer = _normalizer(('a', 'b'), preserve_on_add=True)
    normalizer.update_allocation('a', 60)
    normalizer.add('c')
    assert normalizer.percentages == {
        'a': pytest.approx(60),
        'b': pytest.approx(40),
        'c': pytest.approx(0),
    }


def test_remove_renormalizes():
    normalizer = _normalizer()
    assert normalizer.remove('c')
    assert normalizer.percentages == {'a': pytest.approx(50), 'b': pytest.approx(50)}
    assert 'c' not in normalizer.frequencies
    normalizer.remove('a')
    normalizer.remove('b')
    assert normalizer.percentages == {}
    assert normalizer.is_balanced()


def test_percentages_stay_balanced_over_a_sequence():
    normalizer = _normalizer()
    operations = [
        ('update', 'a', 90),
        ('add', 'd', None),
        ('update', 'b', 5),
        ('update', 'c', 150),
        ('remove', 'a', None),
        ('update', 'd', -20),
        ('add', 'e', None),
        ('update', 'e', 0),
        ('remove', 'b', None),
        ('update', 'c', 33.3),
    ]
    for op, goal_id, value in operations:
        if op == 'update':
            normalizer.update_allocation(goal_id, value)
        elif op == 'add':
            normalizer.add(goal_id)
        else:
            normalizer.remove(goal_id)
        assert abs(normalizer.total() - 100) <= 1e-6


def test_set_amount_converts_to_share():
    normalizer = _normalizer(('a', 'b'))
    assert normalizer.set_amount('a', '250', 1000)
    assert normalizer.percentages['a'] == pytest.approx(25)
    assert normalizer.percentages['b'] == pytest.approx(75)


@pytest.mark.parametrize('amount, total', [('abc', 1000), (1500, 1000), (100, 0)])
def test_set_amount_rejects_bad_input(amount, total):
    normalizer = _normalizer(('a', 'b'))
    before = dict(normalizer.percentages)
    assert not normalizer.set_amount('a', amount, total)
    assert normalizer.percentages == before


def test_amounts_and_frequencies():
    normalizer = _normalizer(('a', 'b'), default_frequency='weekly')
    normalizer.update_allocation('a', 75)
    assert normalizer.amounts(400) == {'a': pytest.approx(300), 'b': pytest.approx(100)}
    assert normalizer.frequency_for('a') == 'weekly'
    normalizer.set_frequency('b', 'fortnightly')
    assert normalizer.frequency_for('b') == 'monthly'


def test_load_amounts_builds_proportional_shares():
    normalizer = AllocationNormalizer()
    normalizer.load_amounts({'a': 300, 'b': 100})
    assert normalizer.selected == ['a', 'b']
    assert normalizer.percentages == {'a': pytest.approx(75), 'b': pytest.approx(25)}
