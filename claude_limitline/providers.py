"""Block and weekly usage figures handed to the status line renderer."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from .config import BudgetConfig
from .models import QuotaSnapshot
from .progress import PERIOD_5H, elapsed_pct, estimated_week_progress, minutes_until, period_progress

logger = logging.getLogger(__name__)


def _jsonable(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in data.items()}


@dataclass(frozen=True)
class BlockInfo:
    """Five-hour window usage."""

    percent_used: float | None = None
    reset_at: datetime | None = None
    time_remaining: int | None = None  # Minutes until reset
    is_realtime: bool = False
    elapsed_percent: float | None = None  # Share of the five hours already gone

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class WeeklyInfo:
    """Seven-day window usage, including the per-model weekly limits."""

    percent_used: float | None
    reset_at: datetime | None
    is_realtime: bool
    week_progress_percent: int
    opus_percent_used: float | None = None
    sonnet_percent_used: float | None = None
    opus_reset_at: datetime | None = None
    sonnet_reset_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


def get_block_info(usage: QuotaSnapshot | None) -> BlockInfo:
    """Return five-hour window usage, or an empty BlockInfo when unavailable."""
    if usage is None or usage.five_hour is None:
        logger.debug('No realtime block usage data available')
        return BlockInfo()

    five_hour = usage.five_hour
    logger.debug('Block segment (realtime): %s%% used, resets at %s', five_hour.percent_used, five_hour.reset_at.isoformat())
    return BlockInfo(
        percent_used=five_hour.percent_used,
        reset_at=five_hour.reset_at,
        time_remaining=minutes_until(five_hour.reset_at),
        is_realtime=True,
        elapsed_percent=elapsed_pct(five_hour.reset_at, PERIOD_5H),
    )


def get_weekly_info(usage: QuotaSnapshot | None, budget: BudgetConfig | None = None) -> WeeklyInfo:
    """Return weekly usage from the API, or a schedule-based estimate.

    Without a weekly window from the API only the week progress can be
    given; it is estimated from the configured reset day and time.
    """
    budget = budget or BudgetConfig()

    if usage is None or usage.seven_day is None:
        logger.debug('Realtime weekly data unavailable, falling back to estimate mode')
        return WeeklyInfo(
            percent_used=None,
            reset_at=None,
            is_realtime=False,
            week_progress_percent=estimated_week_progress(budget.reset_day, budget.reset_hour, budget.reset_minute),
        )

    seven_day, opus, sonnet = usage.seven_day, usage.seven_day_opus, usage.seven_day_sonnet
    logger.debug('Weekly segment (realtime): %s%% used, resets at %s', seven_day.percent_used, seven_day.reset_at.isoformat())
    return WeeklyInfo(
        percent_used=seven_day.percent_used,
        reset_at=seven_day.reset_at,
        is_realtime=True,
        week_progress_percent=period_progress(seven_day.reset_at),
        opus_percent_used=opus.percent_used if opus else None,
        sonnet_percent_used=sonnet.percent_used if sonnet else None,
        opus_reset_at=opus.reset_at if opus else None,
        sonnet_reset_at=sonnet.reset_at if sonnet else None,
    )
