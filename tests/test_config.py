import importlib
import logging

import pytest

from horizon_engine import config
from horizon_engine.settings import clear_cache, defaults, get_config_value, load_config


def test_day_constants_are_separate():
    assert config.AVG_DAYS_PER_MONTH == pytest.approx(30.44)
    assert config.DAYS_PER_CONTRIBUTION == {'daily': 1, 'weekly': 7, 'biweekly': 14, 'monthly': 30}


def test_days_per_contribution_defaults_to_monthly():
    assert config.days_per_contribution('weekly') == 7
    assert config.days_per_contribution('WEEKLY') == 7
    assert config.days_per_contribution(None) == 30
    assert config.days_per_contribution('yearly') == 30


def test_settings_loader():
    assert load_config('engine')['constants']['top_horizons'] == 3
    assert get_config_value('engine', 'analytics', 'high_efficiency_threshold') == 0.2
    assert get_config_value('engine', 'missing', 'key', default='x') == 'x'
    assert get_config_value('nope', 'key') is None
    with pytest.raises(FileNotFoundError):
        load_config('nope')


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('HORIZON_DEBOUNCE_MS', '120')
    monkeypatch.setenv('HORIZON_TOP_HORIZONS', '5')
    monkeypatch.setenv('HORIZON_DEFAULT_FREQUENCY', 'yearly')
    try:
        reloaded = importlib.reload(config)
        assert reloaded.DEBOUNCE_SECONDS == pytest.approx(0.12)
        assert reloaded.TOP_HORIZONS == 5
        assert reloaded.DEFAULT_FREQUENCY == 'monthly'
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_bad_numeric_overrides_fall_back_to_settings(monkeypatch):
    monkeypatch.setenv('HORIZON_DEBOUNCE_MS', 'fast')
    monkeypatch.setenv('HORIZON_TOP_HORIZONS', '')
    try:
        reloaded = importlib.reload(config)
        assert reloaded.DEBOUNCE_MS == 50
        assert reloaded.TOP_HORIZONS == 3
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_configure_logging_sets_package_level():
    logger = logging.getLogger('horizon_engine')
    previous = logger.level
    try:
        config.configure_logging('debug')
        assert logger.level == logging.DEBUG
        config.configure_logging('not-a-level')
        assert logger.level == logging.WARNING
    finally:
        logger.setLevel(previous)


def test_clear_cache_rereads_settings():
    first = load_config('engine')
    clear_cache()
    assert load_config('engine') == first


def test_engine_config_requires_sections(monkeypatch):
    monkeypatch.setattr(defaults, 'load_config', lambda name: {'constants': {}})
    with pytest.raises(KeyError):
        defaults.get_engine_config()
