"""Shared fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from claude_limitline.models import QuotaSnapshot, UsageWindow

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def window(percent: float, reset_in: timedelta = timedelta(hours=3)) -> UsageWindow:
    return UsageWindow(reset_at=NOW + reset_in, percent_used=percent)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        'CLAUDE_LIMITLINE_CONFIG',
        'CLAUDE_LIMITLINE_DEBUG',
        'LIMITLINE_POLL_INTERVAL',
        'LIMITLINE_RESET_DAY',
        'LIMITLINE_RESET_HOUR',
        'LIMITLINE_RESET_MINUTE',
        'LIMITLINE_WARNING_THRESHOLD',
        'XDG_CONFIG_HOME',
        'APPDATA',
        'LOCALAPPDATA',
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def snapshot() -> QuotaSnapshot:
    return QuotaSnapshot(
        five_hour=window(45.0),
        seven_day=window(30.0, timedelta(days=2)),
        seven_day_opus=None,
        seven_day_sonnet=window(12.5, timedelta(days=2)),
    )
