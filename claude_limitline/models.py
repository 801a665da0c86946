"""Usage value types shared by the engine and the status line renderer."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator

# API keys of the usage windows, in display order
DIMENSIONS = ('five_hour', 'seven_day', 'seven_day_opus', 'seven_day_sonnet')


class TrendDirection(str, Enum):
    """Direction of a window's percentage between two consecutive snapshots."""

    UP = 'up'
    DOWN = 'down'
    SAME = 'same'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class UsageWindow:
    """One quota dimension as reported by the usage API."""

    reset_at: datetime
    percent_used: float

    @property
    def is_over_limit(self) -> bool:
        return self.percent_used >= 100


@dataclass(frozen=True)
class QuotaSnapshot:
    """All usage windows returned by one successful API call.

    Any window may be ``None`` when the account's plan has no such limit.
    That is different from a window reporting 0 % usage.
    """

    five_hour: UsageWindow | None = None
    seven_day: UsageWindow | None = None
    seven_day_opus: UsageWindow | None = None
    seven_day_sonnet: UsageWindow | None = None

    def get(self, dimension: str) -> UsageWindow | None:
        if dimension not in DIMENSIONS:
            raise ValueError(f'Unknown usage dimension: {dimension!r}')
        return getattr(self, dimension)

    def windows(self) -> Iterator[tuple[str, UsageWindow]]:
        """Yield ``(dimension, window)`` for every window that is present."""
        for dimension in DIMENSIONS:
            window = getattr(self, dimension)
            if window is not None:
                yield dimension, window

    def bottleneck(self) -> tuple[str, UsageWindow] | None:
        """Return the present window with the highest percentage, or None."""
        best = None
        for dimension, window in self.windows():
            if best is None or window.percent_used > best[1].percent_used:
                best = (dimension, window)
        return best

    def next_reset(self, now: datetime | None = None) -> float | None:
        """Return seconds until the earliest upcoming reset, or None."""
        now = now or datetime.now(timezone.utc)
        earliest = None
        for _, window in self.windows():
            seconds = (window.reset_at - now).total_seconds()
            if seconds > 0 and (earliest is None or seconds < earliest):
                earliest = seconds

        return earliest


@dataclass(frozen=True)
class HistorySample:
    """Point-in-time usage percentages stored in the history file."""

    timestamp_ms: int
    block_percent: float | None = None
    weekly_percent: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'timestamp': self.timestamp_ms,
            'blockPercent': self.block_percent,
            'weeklyPercent': self.weekly_percent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistorySample:
        """Build a sample from its JSON form.

        Raises
        ------
        KeyError, TypeError, ValueError
            If the entry is not an object or has no usable timestamp.
        """
        if not isinstance(data, dict):
            raise TypeError(f'history sample must be an object, got {type(data).__name__}')
        block = data.get('blockPercent')
        weekly = data.get('weeklyPercent')
        return cls(
            timestamp_ms=int(data['timestamp']),
            block_percent=float(block) if block is not None else None,
            weekly_percent=float(weekly) if weekly is not None else None,
        )
