"""
Dispute management
==================

A dispute targets exactly one hotel booking or one car booking, and a
booking can be disputed only once.  Car disputes are inserted inside the
driver's discipline transaction and escalated in the same commit, so a
dispute never exists without its escalation having been evaluated.

Resolving or rejecting a dispute does not lower the driver's count: the
ladder counts disputes raised, not disputes upheld.
"""

from __future__ import annotations

import logging
from typing import Optional

from src.domain.enums import DisputeParty, DisputeStatus, NotificationType
from src.domain.exceptions import InvalidState, NotFound
from src.infrastructure.models import DisciplinaryActionModel, DisputeModel
from src.services.discipline import DisciplineService
from src.services.notifications import NotificationOutbox
from src.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class DisputeService:
    def __init__(self, discipline: DisciplineService):
        self.discipline = discipline

    async def create_dispute(
        self,
        *,
        raised_by: DisputeParty,
        description: str,
        booking_hotel_id: Optional[int] = None,
        booking_car_id: Optional[int] = None,
    ) -> tuple[DisputeModel, Optional[DisciplinaryActionModel]]:
        """Returns the dispute and the suspension/ban it triggered, if any."""
        if booking_hotel_id is None and booking_car_id is None:
            raise InvalidState("Either booking_hotel_id or booking_car_id must be provided")
        if booking_hotel_id is not None and booking_car_id is not None:
            raise InvalidState("Cannot provide both booking_hotel_id and booking_car_id")

        outbox = NotificationOutbox()
        if booking_hotel_id is not None:
            async with self.discipline.unit_of_work(outbox) as uow:
                booking = await uow.hotel_bookings.get_by_id(booking_hotel_id)
                if booking is None:
                    raise NotFound("Hotel booking", booking_hotel_id)
                dispute = await self._insert(
                    uow, raised_by, description, booking_hotel_id=booking_hotel_id
                )
                await self._notify_raised(uow, dispute, booking.user_id)
            await self.discipline.deliver(outbox)
            return dispute, None

        async with self.discipline.read() as (uow, _):
            driver_id = await uow.car_bookings.get_driver_id(booking_car_id)
        if driver_id is None:
            raise NotFound("Car booking", booking_car_id)

        async with self.discipline.transaction(driver_id, outbox) as (uow, driver, engine):
            booking = await uow.car_bookings.get_by_id(booking_car_id)
            dispute = await self._insert(
                uow, raised_by, description, booking_car_id=booking_car_id
            )
            action = await engine.escalation.evaluate(driver)
            await self._notify_raised(uow, dispute, booking.user_id)
        await self.discipline.deliver(outbox)

        if action is not None:
            logger.info(
                "Dispute %d escalated driver %d to %s %d",
                dispute.id,
                driver_id,
                action.action_type.value,
                action.id,
            )
        return dispute, action

    async def _insert(
        self,
        uow: UnitOfWork,
        raised_by: DisputeParty,
        description: str,
        *,
        booking_hotel_id: Optional[int] = None,
        booking_car_id: Optional[int] = None,
    ) -> DisputeModel:
        existing = await uow.disputes.get_by_booking(
            booking_hotel_id=booking_hotel_id, booking_car_id=booking_car_id
        )
        if existing is not None:
            raise InvalidState("A dispute already exists for this booking")
        return await uow.disputes.create(
            DisputeModel(
                booking_hotel_id=booking_hotel_id,
                booking_car_id=booking_car_id,
                raised_by=raised_by,
                description=description,
                status=DisputeStatus.PENDING,
                created_at=uow.now(),
            )
        )

    async def _notify_raised(
        self, uow: UnitOfWork, dispute: DisputeModel, customer_id: int
    ) -> None:
        booking_type = "car" if dispute.booking_car_id else "hotel"
        data = {
            "dispute_id": dispute.id,
            "booking_type": booking_type,
            "booking_id": dispute.booking_car_id or dispute.booking_hotel_id,
        }
        for admin_id in await uow.users.get_admin_ids():
            uow.outbox.add(
                admin_id,
                NotificationType.DISPUTE_RAISED,
                "New Dispute Raised",
                f"A new dispute has been raised: {dispute.description[:100]}",
                data,
            )
        if dispute.raised_by == DisputeParty.PROVIDER:
            uow.outbox.add(
                customer_id,
                NotificationType.DISPUTE_RAISED,
                "Dispute Raised Against You",
                "A dispute has been raised regarding your booking. "
                "Please review and respond.",
                data,
            )

    async def get_dispute(self, dispute_id: int) -> DisputeModel:
        async with self.discipline.read() as (uow, _):
            dispute = await uow.disputes.get_by_id(dispute_id)
            if dispute is None:
                raise NotFound("Dispute", dispute_id)
            return dispute

    async def resolve_dispute(self, dispute_id: int, resolution: str) -> DisputeModel:
        return await self._close(dispute_id, DisputeStatus.RESOLVED, resolution)

    async def reject_dispute(self, dispute_id: int, resolution: str) -> DisputeModel:
        return await self._close(dispute_id, DisputeStatus.REJECTED, resolution)

    async def _close(
        self, dispute_id: int, status: DisputeStatus, resolution: str
    ) -> DisputeModel:
        outbox = NotificationOutbox()
        async with self.discipline.unit_of_work(outbox) as uow:
            dispute = await uow.disputes.get_for_update(dispute_id)
            if dispute is None:
                raise NotFound("Dispute", dispute_id)
            if dispute.status != DisputeStatus.PENDING:
                raise InvalidState("Dispute is already resolved or rejected")

            dispute.status = status
            dispute.resolution = resolution
            dispute.resolved_at = uow.now()

            if dispute.booking_car_id is not None:
                booking = await uow.car_bookings.get_by_id(dispute.booking_car_id)
            else:
                booking = await uow.hotel_bookings.get_by_id(dispute.booking_hotel_id)
            if booking is not None:
                uow.outbox.add(
                    booking.user_id,
                    NotificationType.DISPUTE_RESOLVED,
                    f"Dispute {status.value.capitalize()}",
                    f"Your dispute has been {status.value}: {resolution}",
                    {"dispute_id": dispute.id},
                )
        await self.discipline.deliver(outbox)
        logger.info("Dispute %d %s", dispute_id, status.value)
        return dispute
