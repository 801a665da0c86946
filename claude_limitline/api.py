"""Client for the Anthropic OAuth usage API."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import requests

from . import __version__
from .models import DIMENSIONS, QuotaSnapshot, UsageWindow

logger = logging.getLogger(__name__)

API_URL_USAGE = 'https://api.anthropic.com/api/oauth/usage'
API_BETA = 'oauth-2025-04-20'
REQUEST_TIMEOUT = 10  # Seconds


def api_headers(token: str) -> dict[str, str]:
    """Return auth headers for the Anthropic OAuth API."""
    return {
        'Authorization': f'Bearer {token}',
        'Content-Type': 'application/json',
        'User-Agent': f'claude-limitline/{__version__}',
        'anthropic-beta': API_BETA,
    }


def parse_timestamp(value: Any, now: datetime | None = None) -> datetime:
    """Parse an ISO 8601 reset time, degrading to *now* when missing or invalid.

    Naive timestamps are taken as UTC.
    """
    now = now or datetime.now(timezone.utc)
    if not isinstance(value, str) or not value:
        return now

    try:
        # fromisoformat() only understands a trailing 'Z' from Python 3.11 on
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        logger.debug('Unparseable resets_at value: %r', value)
        return now

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_window(entry: Any, now: datetime | None = None) -> UsageWindow | None:
    """Convert one API usage block into a UsageWindow.

    A missing block means the plan has no such limit and yields None. A
    present block without ``utilization`` counts as 0 % used.
    """
    if not isinstance(entry, dict):
        return None

    utilization = entry.get('utilization')
    try:
        percent = float(utilization) if utilization is not None else 0.0
    except (TypeError, ValueError):
        logger.debug('Unparseable utilization value: %r', utilization)
        percent = 0.0

    return UsageWindow(
        reset_at=parse_timestamp(entry.get('resets_at'), now),
        percent_used=percent,
    )


def parse_snapshot(data: dict[str, Any], now: datetime | None = None) -> QuotaSnapshot:
    """Build a QuotaSnapshot from a decoded usage API response."""
    now = now or datetime.now(timezone.utc)
    return QuotaSnapshot(**{key: parse_window(data.get(key), now) for key in DIMENSIONS})


def fetch_usage(token: str, timeout: float = REQUEST_TIMEOUT) -> QuotaSnapshot | None:
    """Fetch usage data from the Anthropic OAuth usage API.

    Parameters
    ----------
    token : str
        OAuth access token.
    timeout : float
        Request timeout in seconds.

    Returns
    -------
    QuotaSnapshot or None
        The parsed snapshot, or None on any HTTP, transport or decoding
        failure. Callers should treat None as a hint that the token may
        have expired.
    """
    try:
        resp = requests.get(API_URL_USAGE, headers=api_headers(token), timeout=timeout)
    except requests.RequestException as e:
        logger.debug('Failed to fetch usage from API: %s', e)
        return None

    if not resp.ok:
        logger.debug('Usage API returned status %s: %s', resp.status_code, resp.reason)
        return None

    try:
        data = resp.json()
    except ValueError as e:
        logger.debug('Usage API returned invalid JSON: %s', e)
        return None

    if not isinstance(data, dict):
        logger.debug('Usage API returned unexpected payload type: %s', type(data).__name__)
        return None

    logger.debug('Usage API response: %s', data)
    return parse_snapshot(data)
