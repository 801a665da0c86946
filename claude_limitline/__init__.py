"""
claude-limitline
================

Usage engine for a Claude Code status line: resolves the OAuth token,
fetches quota data from the Anthropic usage API, caches it with trend
memory and turns reset timestamps into progress figures.
"""
from __future__ import annotations

import logging

__version__ = '1.0.0'

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .api import fetch_usage, parse_snapshot
from .cache import UsageState, UsageTracker
from .credentials import resolve_token, select_resolver
from .history import HistoryStore, render_sparkline
from .models import HistorySample, QuotaSnapshot, TrendDirection, UsageWindow
from .progress import elapsed_pct, estimated_week_progress, minutes_until, period_progress

__all__ = [
    'HistorySample',
    'HistoryStore',
    'QuotaSnapshot',
    'TrendDirection',
    'UsageState',
    'UsageTracker',
    'UsageWindow',
    'elapsed_pct',
    'estimated_week_progress',
    'fetch_usage',
    'minutes_until',
    'parse_snapshot',
    'period_progress',
    'render_sparkline',
    'resolve_token',
    'select_resolver',
]
