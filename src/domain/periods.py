"""
Rolling evaluation periods.

A driver's disputes accumulate inside a period that starts at midnight
UTC on the day it opens and ends a fixed number of calendar months
later.  ``relativedelta`` clamps the day to the end of shorter months,
so a period opened on 30 November ends on 28/29 February.

Complexity: O(1) per call.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

from .entities import Period

DEFAULT_PERIOD_MONTHS = 3


def start_of_day(moment: datetime) -> datetime:
    """Truncate *moment* to 00:00 of its day in UTC."""
    return moment.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )


def new_period(now: datetime, months: int = DEFAULT_PERIOD_MONTHS) -> Period:
    start = start_of_day(now)
    return Period(start=start, end=start + relativedelta(months=months))


def resolve_period(
    latest: Optional[Period],
    now: datetime,
    months: int = DEFAULT_PERIOD_MONTHS,
) -> tuple[Period, bool]:
    """
    Return the period in force at *now* and whether it is a fresh one.

    *latest* is the period of the driver's most recent action (by
    period start).  It is inherited while its end is still in the
    future; otherwise a new period opens today.
    """
    if latest is not None and latest.is_live(now):
        return Period(latest.start, latest.start + relativedelta(months=months)), False
    return new_period(now, months), True
