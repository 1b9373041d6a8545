# app/services/date_ranges.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from app.schemas.commissions import DateInterval

# first day any analytics data exists on the platform
THE_BEGINNING_OF_TIME = datetime(2022, 9, 22, tzinfo=timezone.utc)

_ROLLING: dict[DateInterval, timedelta] = {
    DateInterval.last_24h: timedelta(hours=24),
    DateInterval.last_7d: timedelta(days=7),
    DateInterval.last_30d: timedelta(days=30),
    DateInterval.last_90d: timedelta(days=90),
    DateInterval.last_1y: timedelta(days=365),
}


@dataclass(frozen=True)
class DateRange:
    start_date: datetime
    end_date: datetime


def _utc(dt: datetime) -> datetime:
    # naive input is treated as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _interval_start(interval: DateInterval, now: datetime) -> datetime:
    if interval in _ROLLING:
        return now - _ROLLING[interval]

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if interval == DateInterval.mtd:
        return midnight.replace(day=1)
    if interval == DateInterval.qtd:
        first_month = ((now.month - 1) // 3) * 3 + 1
        return midnight.replace(month=first_month, day=1)
    if interval == DateInterval.ytd:
        return midnight.replace(month=1, day=1)

    return THE_BEGINNING_OF_TIME


def get_start_end_dates(
    *,
    interval: DateInterval | str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    now: datetime | None = None,
) -> DateRange:
    """
    Resolve the requested window into concrete UTC bounds.

    An explicit start wins over the interval preset; end defaults to now.
    Reversed explicit bounds are swapped rather than rejected.
    """
    now = _utc(now or datetime.now(timezone.utc))

    if start is not None:
        start_date = _utc(start)
        end_date = _utc(end) if end is not None else now
        if start_date > end_date:
            start_date, end_date = end_date, start_date
        return DateRange(start_date=start_date, end_date=end_date)

    preset = DateInterval(interval) if interval is not None else DateInterval.all
    return DateRange(start_date=_interval_start(preset, now), end_date=now)
