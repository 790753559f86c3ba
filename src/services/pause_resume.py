"""
Pause/Resume Controller
=======================

A driver who is mid-trip is never taken offline.  A suspension or ban
that comes due during a ride is parked in the PAUSED state against that
booking; when the booking completes the controller either

* **applies** it, so the penalty starts at ride-completion time, or
* **lifts** it without ever applying, when its ``scheduled_end`` passed
  while it was paused (the ride absorbed the whole window).
"""

from __future__ import annotations

import logging

from src.domain.enums import ActionType, NotificationType
from src.infrastructure.models import DisciplinaryActionModel, DriverModel
from src.services.action_store import DisciplinaryActionStore
from src.services.tracking import ActiveRideOracle
from src.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class PauseResumeController:
    def __init__(
        self,
        uow: UnitOfWork,
        oracle: ActiveRideOracle,
        store: DisciplinaryActionStore,
    ):
        self.uow = uow
        self.oracle = oracle
        self.store = store

    async def pause_if_active_ride(self, driver: DriverModel) -> bool:
        """Park the latest scheduled action if the driver is on a ride."""
        has_ride, booking_id = await self.oracle.has_active_ride(driver.id)
        if not has_ride:
            return False

        action = await self.uow.actions.get_latest_scheduled(driver.id)
        if action is None:
            return False

        self.store.pause(action, booking_id)
        logger.info(
            "Driver %d: %s %d paused by booking %d",
            driver.id,
            action.action_type.value,
            action.id,
            booking_id,
        )
        self.uow.outbox.add(
            driver.user_id,
            NotificationType.SUSPENSION_PAUSED,
            "Suspension Paused",
            "Your account suspension has been paused due to an active ride. "
            "It will resume after your current trip completes.",
            {"driver_id": driver.id, "action_id": action.id},
        )
        return True

    async def resume_after_ride(
        self, driver: DriverModel, booking_id: int
    ) -> list[DisciplinaryActionModel]:
        """Settle every action paused by *booking_id*; returns them."""
        paused = await self.uow.actions.get_paused_for_booking(driver.id, booking_id)
        now = self.uow.now()

        for action in paused:
            if action.scheduled_end is not None and action.scheduled_end <= now:
                # Window elapsed during the ride: served, never applied.
                await self.store.lift(driver, action)
                continue

            await self.store.apply(driver, action)
            self.store.unpause(action)
            logger.info(
                "Driver %d: %s %d resumed after booking %d",
                driver.id,
                action.action_type.value,
                action.id,
                booking_id,
            )
            noun = "ban" if action.action_type == ActionType.BAN else "suspension"
            self.uow.outbox.add(
                driver.user_id,
                NotificationType.SUSPENSION_RESUMED,
                f"{noun.capitalize()} Resumed",
                f"Your account {noun} has been resumed after your trip completion.",
                {"driver_id": driver.id, "action_id": action.id},
            )
        return paused
