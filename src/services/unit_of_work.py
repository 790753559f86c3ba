"""
Unit of work shared by the engine components of one trigger.

Bundles the open session, its repositories, the notification outbox
and the clock, so every component of a single trigger reads and writes
through the same transaction and sees the same "now" source.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.repositories import (
    CarBookingRepository,
    CarRepository,
    DisciplinaryActionRepository,
    DisputeRepository,
    DriverRepository,
    HotelBookingRepository,
    UserRepository,
)
from src.services.notifications import NotificationOutbox

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UnitOfWork:
    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = utcnow,
        outbox: NotificationOutbox | None = None,
    ):
        self.session = session
        self.clock = clock
        self.outbox = outbox if outbox is not None else NotificationOutbox()

        self.users = UserRepository(session)
        self.drivers = DriverRepository(session)
        self.cars = CarRepository(session)
        self.car_bookings = CarBookingRepository(session)
        self.hotel_bookings = HotelBookingRepository(session)
        self.disputes = DisputeRepository(session)
        self.actions = DisciplinaryActionRepository(session)

    def now(self) -> datetime:
        return self.clock()
