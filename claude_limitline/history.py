"""
Usage history
=============

Appends usage snapshots to a small JSON file under ``~/.claude`` and turns
them into sparklines. History is cosmetic: a missing or corrupt file reads
as empty and write failures are only logged.
"""
from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Callable, Iterable, Optional

from .cache import now_ms
from .models import HistorySample

logger = logging.getLogger(__name__)

HISTORY_FILE = 'limitline-history.json'
MAX_HISTORY_AGE_MS = 24 * 60 * 60 * 1000
SPARKLINE_CHARS = '▁▂▃▄▅▆▇█'


def default_history_path() -> Path:
    return Path.home() / '.claude' / HISTORY_FILE


def render_sparkline(values: Iterable[Optional[float]], width: int) -> str:
    """Render the last *width* non-null percentages as sparkline glyphs.

    Each value is clamped to 0-100 and mapped linearly onto the eight
    block characters. Returns an empty string when there is nothing to
    draw.
    """
    if width < 0:
        raise ValueError(f'width must not be negative, got {width!r}')

    valid = [v for v in values if v is not None]
    if not valid or width == 0:
        return ''

    chars = []
    for value in valid[-width:]:
        clamped = max(0.0, min(100.0, value))
        chars.append(SPARKLINE_CHARS[math.floor(clamped / 100 * 7)])

    return ''.join(chars)


class HistoryStore:
    """Rolling 24 hour log of usage samples stored as JSON.

    Parameters
    ----------
    path : Path, optional
        History file, defaults to ``~/.claude/limitline-history.json``.
    clock : callable, optional
        Returns the current wall clock time in milliseconds.
    """

    def __init__(self, path: Path | None = None, clock: Callable[[], int] = now_ms) -> None:
        self.path = path or default_history_path()
        self._clock = clock

    def load(self) -> list[HistorySample]:
        """Read all stored samples; unreadable files yield an empty list."""
        try:
            if not self.path.exists():
                return []
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug('Failed to load history from %s: %s', self.path, e)
            return []

        samples = data.get('samples') if isinstance(data, dict) else None
        if not isinstance(samples, list):
            logger.debug('History file %s has no samples list', self.path)
            return []
        try:
            return [HistorySample.from_dict(entry) for entry in samples]
        except (KeyError, TypeError, ValueError) as e:
            logger.debug('Malformed history sample in %s: %s', self.path, e)
            return []

    def save(self, samples: list[HistorySample]) -> None:
        """Write *samples* to disk, creating the parent directory as needed."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = {'samples': [sample.to_dict() for sample in samples]}
            self.path.write_text(json.dumps(payload, indent=2), encoding='utf-8')
        except OSError as e:
            logger.debug('Failed to save history to %s: %s', self.path, e)

    def prune(self, samples: list[HistorySample], now: int | None = None) -> list[HistorySample]:
        """Drop samples older than 24 hours, keeping the original order."""
        now = self._clock() if now is None else now
        cutoff = now - MAX_HISTORY_AGE_MS
        return [sample for sample in samples if sample.timestamp_ms > cutoff]

    def add_sample(self, block_percent: float | None, weekly_percent: float | None) -> None:
        """Append a sample stamped with the current time and persist the pruned log."""
        now = self._clock()
        samples = self.load()
        samples.append(HistorySample(now, block_percent, weekly_percent))
        self.save(self.prune(samples, now))

    def block_sparkline(self, width: int) -> str:
        return render_sparkline((s.block_percent for s in self.load()), width)

    def weekly_sparkline(self, width: int) -> str:
        return render_sparkline((s.weekly_percent for s in self.load()), width)
