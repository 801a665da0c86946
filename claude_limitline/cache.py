"""
Usage cache and trend tracker
=============================

Keeps the latest quota snapshot plus the one before it. The usage API is
rate limited, so a snapshot is reused until the poll interval has passed;
the previous snapshot is kept to derive up/down trend arrows.

All I/O is blocking and happens in the calling thread: `get_usage` runs
the credential helpers (5 s timeout each) and one `requests` call (10 s
timeout) back to back. A tracker is not meant to be shared between threads.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .api import fetch_usage
from .credentials import resolve_token
from .models import DIMENSIONS, QuotaSnapshot, TrendDirection

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 15  # Minutes between API calls
TREND_DEAD_BAND = 0.5  # Percentage points treated as "no change"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class UsageState:
    """Cached usage data owned by a single UsageTracker."""

    current: QuotaSnapshot | None = None
    previous: QuotaSnapshot | None = None
    fetched_at_ms: int = 0
    token: str | None = None

    def store(self, snapshot: QuotaSnapshot, fetched_at_ms: int) -> None:
        """Make *snapshot* current, shifting the old one into ``previous``."""
        self.previous, self.current, self.fetched_at_ms = self.current, snapshot, fetched_at_ms

    def reset(self) -> None:
        self.current = None
        self.previous = None
        self.fetched_at_ms = 0
        self.token = None


def trend_between(current: float | None, previous: float | None) -> TrendDirection:
    """Compare two percentages, ignoring changes within the dead band."""
    if current is None or previous is None:
        return TrendDirection.UNKNOWN

    diff = current - previous
    if diff > TREND_DEAD_BAND:
        return TrendDirection.UP
    if diff < -TREND_DEAD_BAND:
        return TrendDirection.DOWN
    return TrendDirection.SAME


class UsageTracker:
    """Time-boxed usage cache with trend memory.

    Parameters
    ----------
    state : UsageState, optional
        State to operate on; a fresh one is created when omitted.
    resolver : callable, optional
        Returns the OAuth token or None. Defaults to :func:`resolve_token`.
    fetcher : callable, optional
        Takes a token and returns a QuotaSnapshot or None. Defaults to
        :func:`fetch_usage`.
    clock : callable, optional
        Returns the current wall clock time in milliseconds.
    """

    def __init__(
        self,
        state: UsageState | None = None,
        resolver: Callable[[], Optional[str]] = resolve_token,
        fetcher: Callable[[str], Optional[QuotaSnapshot]] = fetch_usage,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.state = state if state is not None else UsageState()
        self._resolve = resolver
        self._fetch = fetcher
        self._clock = clock

    def get_usage(self, poll_interval_minutes: float = DEFAULT_POLL_INTERVAL) -> QuotaSnapshot | None:
        """Return the current usage snapshot, fetching only when the cache is stale.

        Returns None when no token is available or the fetch failed. A
        failed fetch discards the cached token so the next call resolves
        it again, which recovers from expired credentials.
        """
        if poll_interval_minutes <= 0:
            raise ValueError(f'poll_interval_minutes must be positive, got {poll_interval_minutes!r}')

        state = self.state
        now = self._clock()
        age_ms = now - state.fetched_at_ms
        if state.current is not None and age_ms < poll_interval_minutes * 60 * 1000:
            logger.debug('Using cached usage data (age: %ds)', round(age_ms / 1000))
            return state.current

        if state.token is None:
            state.token = self._resolve()
            if state.token is None:
                logger.debug('Could not retrieve OAuth token for realtime usage')
                return None

        snapshot = self._fetch(state.token)
        if snapshot is None:
            # Token might be expired, resolve it again next time
            state.token = None
            return None

        state.store(snapshot, now)
        logger.debug('Refreshed realtime usage cache')
        return snapshot

    def get_trend(self) -> dict[str, TrendDirection]:
        """Return the trend of every usage dimension since the previous fetch."""
        current, previous = self.state.current, self.state.previous
        trend = {}
        for dimension in DIMENSIONS:
            now_window = current.get(dimension) if current else None
            prev_window = previous.get(dimension) if previous else None
            trend[dimension] = trend_between(
                now_window.percent_used if now_window else None,
                prev_window.percent_used if prev_window else None,
            )

        return trend

    def clear(self) -> None:
        """Forget all cached data, forcing token resolution and a fetch on next use."""
        self.state.reset()
