"""Engine settings files and loaders.

Tunables that are data rather than code (frequency tables, feedback
thresholds, message texts) are stored in JSON files next to this module so
they can be changed without touching the engine.
"""

from .defaults import clear_cache, get_config_value, get_engine_config, load_config

__all__ = ['load_config', 'get_engine_config', 'get_config_value', 'clear_cache']
