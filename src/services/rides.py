"""
Ride lifecycle
==============

Car-booking transitions that matter to discipline:

* CONFIRMED -> IN_PROGRESS   pauses a scheduled action of the driver
* IN_PROGRESS -> COMPLETED   resumes or settles actions paused by it
* IN_PROGRESS -> CANCELLED   same as completion: the ride is over

The status change and the discipline reaction share the driver's
transaction, so a paused suspension can never outlive its ride.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from src.domain.enums import BOOKING_TRANSITIONS, BookingStatus
from src.domain.exceptions import InvalidStateTransition, NotFound
from src.infrastructure.models import CarBookingModel, DisciplinaryActionModel
from src.services.discipline import DisciplineService
from src.services.notifications import NotificationOutbox

logger = logging.getLogger(__name__)


@dataclass
class RideTransition:
    booking: CarBookingModel
    paused: bool = False
    settled: list[DisciplinaryActionModel] = field(default_factory=list)


class RideLifecycleService:
    def __init__(self, discipline: DisciplineService):
        self.discipline = discipline

    async def start_ride(self, booking_id: int) -> RideTransition:
        return await self._transition(booking_id, BookingStatus.IN_PROGRESS)

    async def complete_ride(self, booking_id: int) -> RideTransition:
        return await self._transition(booking_id, BookingStatus.COMPLETED)

    async def cancel_ride(self, booking_id: int) -> RideTransition:
        return await self._transition(booking_id, BookingStatus.CANCELLED)

    async def _transition(
        self, booking_id: int, new_status: BookingStatus
    ) -> RideTransition:
        async with self.discipline.read() as (uow, _):
            driver_id = await uow.car_bookings.get_driver_id(booking_id)
        if driver_id is None:
            raise NotFound("Car booking", booking_id)

        outbox = NotificationOutbox()
        async with self.discipline.transaction(driver_id, outbox) as (
            uow,
            driver,
            engine,
        ):
            booking = await uow.car_bookings.get_for_update(booking_id)
            current = BookingStatus(booking.status)
            if new_status not in BOOKING_TRANSITIONS.get(current, set()):
                raise InvalidStateTransition(current.value, new_status.value)

            was_in_progress = current == BookingStatus.IN_PROGRESS
            booking.status = new_status
            now = uow.now()
            result = RideTransition(booking)

            if new_status == BookingStatus.IN_PROGRESS:
                booking.started_at = now
                await uow.session.flush()
                result.paused = await engine.controller.pause_if_active_ride(driver)
            elif was_in_progress:
                if new_status == BookingStatus.COMPLETED:
                    booking.completed_at = now
                await uow.session.flush()
                result.settled = await engine.controller.resume_after_ride(
                    driver, booking.id
                )
        await self.discipline.deliver(outbox)

        logger.info(
            "Car booking %d: %s -> %s", booking_id, current.value, new_status.value
        )
        return result
