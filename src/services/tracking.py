"""
Read-side components of the discipline engine.

* ``PeriodTracker``     -- the rolling window disputes accumulate in
* ``DisputeCounter``    -- disputes against a driver inside a window
* ``ActiveRideOracle``  -- whether the driver is mid-trip right now
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from src.domain.entities import Period
from src.domain.periods import DEFAULT_PERIOD_MONTHS, resolve_period
from src.infrastructure.models import DriverModel
from src.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class PeriodTracker:
    def __init__(self, uow: UnitOfWork, months: int = DEFAULT_PERIOD_MONTHS):
        self.uow = uow
        self.months = months

    async def _latest_period(self, driver_id: int) -> Optional[Period]:
        last = await self.uow.actions.get_latest_by_period(driver_id)
        if last is None:
            return None
        return Period(last.period_start, last.period_end)

    async def current_period(self, driver_id: int) -> Period:
        latest = await self._latest_period(driver_id)
        period, _ = resolve_period(latest, self.uow.now(), self.months)
        return period

    async def reset_if_expired(self, driver: DriverModel) -> tuple[Period, bool]:
        """
        Resolve the current period and re-arm the warning when a new one
        opens.  This is the only place ``last_warning_at`` is cleared.
        """
        latest = await self._latest_period(driver.id)
        period, was_reset = resolve_period(latest, self.uow.now(), self.months)
        if was_reset and driver.last_warning_at is not None:
            driver.last_warning_at = None
            logger.info(
                "Driver %d: new period from %s, warning re-armed",
                driver.id,
                period.start.date(),
            )
        return period, was_reset


class DisputeCounter:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def count_in_period(self, driver_id: int, period_start: datetime) -> int:
        return await self.uow.disputes.count_for_driver(driver_id, since=period_start)

    async def count_between(
        self, driver_id: int, start: datetime, end: datetime
    ) -> int:
        return await self.uow.disputes.count_for_driver(
            driver_id, since=start, until=end
        )


class ActiveRideOracle:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def has_active_ride(self, driver_id: int) -> tuple[bool, Optional[int]]:
        booking_id = await self.uow.car_bookings.find_in_progress_for_driver(driver_id)
        return booking_id is not None, booking_id
