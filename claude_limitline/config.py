"""
Configuration
=============

Settings are read from ``~/.claude/limitline.json`` (or the file named by
``CLAUDE_LIMITLINE_CONFIG``) and can be overridden per setting through
``LIMITLINE_*`` environment variables. A missing or broken file simply
leaves the defaults in place.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_ENV = 'CLAUDE_LIMITLINE_CONFIG'
CONFIG_FILE = 'limitline.json'
ENV_PREFIX = 'LIMITLINE_'


@dataclass
class BudgetConfig:
    """Polling and weekly reset schedule."""

    poll_interval: int = 15  # Minutes between API calls
    reset_day: int = 1  # 0=Sunday, 1=Monday, ..., 6=Saturday
    reset_hour: int = 0
    reset_minute: int = 0
    warning_threshold: int = 80  # Percentage from which the renderer warns


@dataclass
class HistoryConfig:
    enabled: bool = True
    width: int = 8  # Sparkline glyphs


@dataclass
class LimitlineConfig:
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    show_trend: bool = True


# (json key, attribute, valid range, environment suffix)
_BUDGET_FIELDS = (
    ('pollInterval', 'poll_interval', range(1, 24 * 60 + 1), 'POLL_INTERVAL'),
    ('resetDay', 'reset_day', range(0, 7), 'RESET_DAY'),
    ('resetHour', 'reset_hour', range(0, 24), 'RESET_HOUR'),
    ('resetMinute', 'reset_minute', range(0, 60), 'RESET_MINUTE'),
    ('warningThreshold', 'warning_threshold', range(0, 101), 'WARNING_THRESHOLD'),
)


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / '.claude' / CONFIG_FILE


def _int_in(value: Any, valid: range) -> int | None:
    """Return *value* as int if it is a whole number inside *valid*, else None."""
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    if isinstance(value, float) and number != value:
        return None
    return number if number in valid else None


def _env_int(suffix: str, valid: range) -> int | None:
    raw = os.environ.get(f'{ENV_PREFIX}{suffix}')
    if raw is None:
        return None
    value = _int_in(raw.strip(), valid)
    if value is None:
        logger.debug('Ignoring invalid %s%s=%r', ENV_PREFIX, suffix, raw)
    return value


def read_config_file(path: Path) -> dict[str, Any]:
    """Return the decoded config document, or an empty dict."""
    try:
        if not path.is_file():
            return {}
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug('Failed to read config from %s: %s', path, e)
        return {}

    if not isinstance(data, dict):
        logger.debug('Ignoring config %s: top level is not an object', path)
        return {}
    return data


def load_config(path: Path | None = None) -> LimitlineConfig:
    """Load configuration from file and environment.

    Parameters
    ----------
    path : Path, optional
        Config file to read instead of the default location.

    Returns
    -------
    LimitlineConfig
        Settings with every invalid or missing value replaced by its default.
    """
    data = read_config_file(path or default_config_path())
    config = LimitlineConfig()

    budget = data.get('budget')
    budget = budget if isinstance(budget, dict) else {}
    for key, attr, valid, env_suffix in _BUDGET_FIELDS:
        value = _env_int(env_suffix, valid)
        if value is None and key in budget:
            value = _int_in(budget[key], valid)
            if value is None:
                logger.debug('Ignoring invalid budget.%s=%r', key, budget[key])
        if value is not None:
            setattr(config.budget, attr, value)

    if isinstance(data.get('showTrend'), bool):
        config.show_trend = data['showTrend']

    history = data.get('history')
    if isinstance(history, dict):
        if isinstance(history.get('enabled'), bool):
            config.history.enabled = history['enabled']
        width = _int_in(history.get('width'), range(1, 129))
        if width is not None:
            config.history.width = width

    return config
