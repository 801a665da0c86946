"""Convert reset times into elapsed-period and time-remaining figures."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

PERIOD_5H = timedelta(hours=5)
PERIOD_7D = timedelta(days=7)
HOURS_PER_WEEK = 7 * 24


def _clamp_pct(value: float) -> float:
    return max(0.0, min(100.0, value))


def elapsed_pct(reset_at: datetime | None, period: timedelta = PERIOD_5H, now: datetime | None = None) -> float | None:
    """Share of a rolling window already used up, from 0 to 100.

    Unlike `period_progress` this does not re-anchor past the reset: an
    overdue window reads 100. None when *reset_at* is unknown or *period*
    is empty.
    """
    total = period.total_seconds()
    if reset_at is None or total <= 0:
        return None

    left = reset_at - (now or datetime.now(timezone.utc))
    return _clamp_pct((1 - left.total_seconds() / total) * 100)


def period_progress(reset_at: datetime, period: timedelta = PERIOD_7D, now: datetime | None = None) -> int:
    """Return how far into its period a window is, as a whole percentage.

    The period is taken to end at *reset_at*. When *now* is already past
    *reset_at* the API has not rolled the window forward yet, so progress
    is measured in the next period starting at *reset_at* instead of
    sticking at 100 %. More than one full period past the reset there is
    nothing sensible to project and 100 is returned.
    """
    now = now or datetime.now(timezone.utc)
    total = period.total_seconds()

    if now > reset_at:
        overdue = (now - reset_at).total_seconds()
        if overdue > total:
            return 100
        return round(_clamp_pct(overdue / total * 100))

    elapsed = (now - (reset_at - period)).total_seconds()
    return round(_clamp_pct(elapsed / total * 100))


def estimated_week_progress(
    reset_day: int = 1,
    reset_hour: int = 0,
    reset_minute: int = 0,
    now: datetime | None = None,
) -> int:
    """Estimate weekly progress from a fixed weekly reset schedule.

    Used when the API reports no weekly reset time. *reset_day* counts
    from 0 = Sunday to 6 = Saturday; the schedule is interpreted in local
    time.
    """
    now = now or datetime.now()
    day_of_week = (now.weekday() + 1) % 7  # Python counts from Monday = 0

    days_since_reset = (day_of_week - reset_day) % 7
    # On the reset day but before the reset time the old period is still running
    if days_since_reset == 0 and now.hour * 60 + now.minute < reset_hour * 60 + reset_minute:
        days_since_reset = 7

    hours_into_week = days_since_reset * 24 + now.hour - reset_hour + (now.minute - reset_minute) / 60

    return round(_clamp_pct(hours_into_week / HOURS_PER_WEEK * 100))


def minutes_until(reset_at: datetime, now: datetime | None = None) -> int:
    """Return whole minutes until *reset_at*, never negative."""
    now = now or datetime.now(timezone.utc)
    return max(0, round((reset_at - now).total_seconds() / 60))
