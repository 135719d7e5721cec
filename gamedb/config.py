"""Configuration loading and logging setup."""
import json
import logging
import os
from typing import Any, Dict, Optional

STORAGE_BACKENDS = ('json', 'database')
RECOMPUTE_FAILURE_POLICIES = ('log', 'raise')

DEFAULT_CONFIG: Dict[str, Any] = {
    'storage': 'json',
    'data_dir': '.',
    'database_url': 'sqlite:///gamedb.sqlite3',
    'log_level': 'WARNING',
    # 'log' keeps the review mutation successful when the rating recompute
    # fails; 'raise' re-raises the StoreError after the mutation committed.
    'recompute_failure_policy': 'log',
    'serialize_recomputes': False,
}

# env var -> config key
_ENV_OVERRIDES = {
    'GAMEDB_STORAGE': 'storage',
    'GAMEDB_DATA_DIR': 'data_dir',
    'DATABASE_URL': 'database_url',
    'GAMEDB_LOG_LEVEL': 'log_level',
    'GAMEDB_RECOMPUTE_FAILURE_POLICY': 'recompute_failure_policy',
    'GAMEDB_SERIALIZE_RECOMPUTES': 'serialize_recomputes',
}

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}

logger = logging.getLogger('gamedb.config')


def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root GameDB logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, str(level).upper(), logging.WARNING)
    root = logging.getLogger('gamedb')
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        root.addHandler(handler)
    root.setLevel(numeric)
    return root


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def load_config(config_path: Optional[str] = 'config.json') -> Dict[str, Any]:
    """Load configuration from a JSON file with environment variable support.

    Environment variables take precedence over config file values:
    - GAMEDB_STORAGE, GAMEDB_DATA_DIR, DATABASE_URL, GAMEDB_LOG_LEVEL
    - GAMEDB_RECOMPUTE_FAILURE_POLICY, GAMEDB_SERIALIZE_RECOMPUTES

    A missing config file is not an error; a corrupt one is logged and
    ignored.

    Raises:
        ValueError: If ``storage`` or ``recompute_failure_policy`` hold an
            unknown value.
    """
    config = dict(DEFAULT_CONFIG)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                config.update(loaded)
            else:
                logger.warning("Ignoring %s: top-level value is not an object", config_path)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Could not load config %s: %s", config_path, e)

    for env_name, key in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            config[key] = value

    config['storage'] = str(config['storage']).lower()
    config['recompute_failure_policy'] = str(config['recompute_failure_policy']).lower()
    config['serialize_recomputes'] = _as_bool(config['serialize_recomputes'])

    if config['storage'] not in STORAGE_BACKENDS:
        raise ValueError(
            f"storage must be one of {', '.join(STORAGE_BACKENDS)}, got {config['storage']!r}"
        )
    if config['recompute_failure_policy'] not in RECOMPUTE_FAILURE_POLICIES:
        raise ValueError(
            "recompute_failure_policy must be one of "
            f"{', '.join(RECOMPUTE_FAILURE_POLICIES)}, got {config['recompute_failure_policy']!r}"
        )
    return config
