# webhook_trigger/worker/recurrence.py

import calendar
from datetime import datetime, timedelta
from typing import Optional

PATTERN_DAYS = {"daily": 1, "weekly": 7}


def _add_months(base: datetime, months: int) -> datetime:
    # Jan 31 + 1 month -> Feb 28/29 (clamp to the last day of the month)
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    day = min(base.day, calendar.monthrange(year, month)[1])
    return base.replace(year=year, month=month, day=day)


def next_trigger(
    base_time: datetime,
    pattern: Optional[str],
    timezone: Optional[str] = None,
    periods: int = 1,
) -> Optional[datetime]:
    """
    base_time advanced `periods` times by the pattern. Anything other than
    daily/weekly/monthly returns None (no recurrence).

    `timezone` is accepted but unused: arithmetic runs on the instant,
    not on the local calendar date of that zone.
    """
    if pattern in PATTERN_DAYS:
        return base_time + timedelta(days=PATTERN_DAYS[pattern] * periods)
    if pattern == "monthly":
        return _add_months(base_time, periods)
    return None


def next_after(
    base_time: datetime,
    pattern: Optional[str],
    after: Optional[datetime],
    timezone: Optional[str] = None,
) -> Optional[datetime]:
    """First occurrence of the base_time series strictly later than `after`.

    Occurrences are always computed from the anchor, so a monthly schedule
    anchored on the 31st comes back to the 31st after a short month.
    With `after` unset (or before the anchor) this is next_trigger(base_time, ...).
    """
    periods = 1
    candidate = next_trigger(base_time, pattern, timezone, periods)
    while candidate is not None and after is not None and candidate <= after:
        periods += 1
        candidate = next_trigger(base_time, pattern, timezone, periods)
    return candidate
