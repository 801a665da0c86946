"""
Command entry point
===================

Collects block, weekly, trend and history figures and prints them as one
JSON object for the status line renderer.

Usage:
    python -m claude_limitline
"""
from __future__ import annotations

import json
import logging
import sys
from typing import Any

from .cache import UsageTracker
from .config import LimitlineConfig, load_config
from .history import HistoryStore
from .log import configure_logging
from .providers import get_block_info, get_weekly_info

logger = logging.getLogger('claude_limitline')


def collect(config: LimitlineConfig, tracker: UsageTracker, history: HistoryStore | None = None) -> dict[str, Any]:
    """Gather everything the renderer needs from one usage lookup.

    The credential lookup and the HTTP call happen at most once per
    invocation; block and weekly figures are derived from the same snapshot.
    """
    usage = tracker.get_usage(config.budget.poll_interval)
    block = get_block_info(usage)
    weekly = get_weekly_info(usage, config.budget)

    result: dict[str, Any] = {
        'block': block.to_dict(),
        'weekly': weekly.to_dict(),
        'next_reset_seconds': usage.next_reset() if usage is not None else None,
        'warning_threshold': config.budget.warning_threshold,
        'trend': None,
        'sparkline': None,
    }
    if config.show_trend:
        result['trend'] = {dimension: direction.value for dimension, direction in tracker.get_trend().items()}

    if history is not None and config.history.enabled:
        if block.is_realtime or weekly.is_realtime:
            history.add_sample(block.percent_used, weekly.percent_used)
        result['sparkline'] = {
            'block': history.block_sparkline(config.history.width),
            'weekly': history.weekly_sparkline(config.history.width),
        }

    return result


def main() -> int:
    configure_logging()
    try:
        config = load_config()
        logger.debug('Config loaded: %s', config)
        result = collect(config, UsageTracker(), HistoryStore())
    except Exception:
        # A status line must never break the terminal
        logger.debug('Error in main', exc_info=True)
        return 0

    sys.stdout.write(json.dumps(result, ensure_ascii=False))
    return 0


if __name__ == '__main__':
    sys.exit(main())
