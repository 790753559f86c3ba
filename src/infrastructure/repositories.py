"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Writes to ``users.status`` and
``drivers.current_suspension_id`` happen in the action store, never here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    CarBookingModel,
    CarModel,
    DisciplinaryActionModel,
    DisputeModel,
    DriverModel,
    HotelBookingModel,
    NotificationModel,
    UserModel,
)
from src.domain.enums import (
    RESTRICTIVE_ACTIONS,
    ActionType,
    BookingStatus,
    UserRole,
)


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_admin_ids(self) -> list[int]:
        result = await self.session.execute(
            select(UserModel.id).where(UserModel.role == UserRole.ADMIN)
        )
        return list(result.scalars().all())


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def get_for_update(self, driver_id: int) -> Optional[DriverModel]:
        """SELECT ... FOR UPDATE: the per-driver serialization point."""
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.id == driver_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


class CarRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, car_id: int) -> Optional[CarModel]:
        return await self.session.get(CarModel, car_id)

    async def get_for_driver(self, driver_id: int) -> list[CarModel]:
        result = await self.session.execute(
            select(CarModel).where(CarModel.driver_id == driver_id)
        )
        return list(result.scalars().all())

    async def deactivate_all_for_driver(self, driver_id: int) -> int:
        """Bulk-mark every car of *driver_id* as not bookable."""
        result = await self.session.execute(
            update(CarModel)
            .where(CarModel.driver_id == driver_id)
            .values(is_active=False)
        )
        return result.rowcount or 0


class CarBookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, booking_id: int) -> Optional[CarBookingModel]:
        return await self.session.get(CarBookingModel, booking_id)

    async def get_for_update(self, booking_id: int) -> Optional[CarBookingModel]:
        result = await self.session.execute(
            select(CarBookingModel)
            .where(CarBookingModel.id == booking_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_driver_id(self, booking_id: int) -> Optional[int]:
        """booking -> car -> driver."""
        result = await self.session.execute(
            select(CarModel.driver_id)
            .join(CarBookingModel, CarBookingModel.car_id == CarModel.id)
            .where(CarBookingModel.id == booking_id)
        )
        return result.scalar_one_or_none()

    async def find_in_progress_for_driver(self, driver_id: int) -> Optional[int]:
        result = await self.session.execute(
            select(CarBookingModel.id)
            .join(CarModel, CarBookingModel.car_id == CarModel.id)
            .where(
                CarModel.driver_id == driver_id,
                CarBookingModel.status == BookingStatus.IN_PROGRESS,
            )
            .order_by(CarBookingModel.id)
            .limit(1)
        )
        return result.scalar_one_or_none()


class HotelBookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, booking_id: int) -> Optional[HotelBookingModel]:
        return await self.session.get(HotelBookingModel, booking_id)


class DisputeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, dispute: DisputeModel) -> DisputeModel:
        self.session.add(dispute)
        await self.session.flush()
        return dispute

    async def get_by_id(self, dispute_id: int) -> Optional[DisputeModel]:
        return await self.session.get(DisputeModel, dispute_id)

    async def get_for_update(self, dispute_id: int) -> Optional[DisputeModel]:
        result = await self.session.execute(
            select(DisputeModel)
            .where(DisputeModel.id == dispute_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_booking(
        self,
        *,
        booking_hotel_id: int | None = None,
        booking_car_id: int | None = None,
    ) -> Optional[DisputeModel]:
        query = select(DisputeModel)
        if booking_car_id is not None:
            query = query.where(DisputeModel.booking_car_id == booking_car_id)
        else:
            query = query.where(DisputeModel.booking_hotel_id == booking_hotel_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def count_for_driver(
        self,
        driver_id: int,
        since: datetime,
        until: datetime | None = None,
    ) -> int:
        """Disputes on the driver's car bookings, whatever their status."""
        query = (
            select(func.count())
            .select_from(DisputeModel)
            .join(CarBookingModel, DisputeModel.booking_car_id == CarBookingModel.id)
            .join(CarModel, CarBookingModel.car_id == CarModel.id)
            .where(
                CarModel.driver_id == driver_id,
                DisputeModel.created_at >= since,
            )
        )
        if until is not None:
            query = query.where(DisputeModel.created_at <= until)
        result = await self.session.execute(query)
        return result.scalar() or 0


class DisciplinaryActionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, action: DisciplinaryActionModel) -> DisciplinaryActionModel:
        self.session.add(action)
        await self.session.flush()
        return action

    async def get_by_id(self, action_id: int) -> Optional[DisciplinaryActionModel]:
        return await self.session.get(DisciplinaryActionModel, action_id)

    async def get_latest_by_period(
        self, driver_id: int
    ) -> Optional[DisciplinaryActionModel]:
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(DisciplinaryActionModel.driver_id == driver_id)
            .order_by(
                DisciplinaryActionModel.period_start.desc(),
                DisciplinaryActionModel.id.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_in_flight(
        self, driver_id: int, period_start: datetime
    ) -> Optional[DisciplinaryActionModel]:
        """Suspension or ban of this period that has not been lifted."""
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(
                DisciplinaryActionModel.driver_id == driver_id,
                DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
                DisciplinaryActionModel.period_start == period_start,
                DisciplinaryActionModel.actual_end.is_(None),
            )
            .order_by(DisciplinaryActionModel.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_restrictive_in_period(
        self, driver_id: int, period_start: datetime
    ) -> list[DisciplinaryActionModel]:
        result = await self.session.execute(
            select(DisciplinaryActionModel).where(
                DisciplinaryActionModel.driver_id == driver_id,
                DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
                DisciplinaryActionModel.period_start == period_start,
            )
        )
        return list(result.scalars().all())

    async def get_latest_scheduled(
        self, driver_id: int
    ) -> Optional[DisciplinaryActionModel]:
        """Most recent suspension/ban neither applied nor paused."""
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(
                DisciplinaryActionModel.driver_id == driver_id,
                DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
                DisciplinaryActionModel.actual_start.is_(None),
                DisciplinaryActionModel.actual_end.is_(None),
                DisciplinaryActionModel.is_paused.is_(False),
            )
            .order_by(
                DisciplinaryActionModel.created_at.desc(),
                DisciplinaryActionModel.id.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_unapplied(self, driver_id: int) -> list[DisciplinaryActionModel]:
        """Suspensions/bans scheduled or paused but not yet in effect."""
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(
                DisciplinaryActionModel.driver_id == driver_id,
                DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
                DisciplinaryActionModel.actual_start.is_(None),
                DisciplinaryActionModel.actual_end.is_(None),
            )
            .order_by(DisciplinaryActionModel.id)
        )
        return list(result.scalars().all())

    async def get_paused_for_booking(
        self, driver_id: int, booking_id: int
    ) -> list[DisciplinaryActionModel]:
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(
                DisciplinaryActionModel.driver_id == driver_id,
                DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
                DisciplinaryActionModel.is_paused.is_(True),
                DisciplinaryActionModel.paused_booking_id == booking_id,
            )
            .order_by(DisciplinaryActionModel.id)
        )
        return list(result.scalars().all())

    async def get_current_restriction(
        self, driver_id: int
    ) -> Optional[DisciplinaryActionModel]:
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(
                DisciplinaryActionModel.driver_id == driver_id,
                DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
                DisciplinaryActionModel.actual_end.is_(None),
            )
            .order_by(
                DisciplinaryActionModel.created_at.desc(),
                DisciplinaryActionModel.id.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_for_driver(self, driver_id: int) -> list[DisciplinaryActionModel]:
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(DisciplinaryActionModel.driver_id == driver_id)
            .order_by(
                DisciplinaryActionModel.created_at.desc(),
                DisciplinaryActionModel.id.desc(),
            )
        )
        return list(result.scalars().all())

    async def get_all_scheduled(self) -> list[DisciplinaryActionModel]:
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(
                DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
                DisciplinaryActionModel.actual_start.is_(None),
                DisciplinaryActionModel.actual_end.is_(None),
                DisciplinaryActionModel.is_paused.is_(False),
            )
            .order_by(DisciplinaryActionModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_all_paused(self) -> list[DisciplinaryActionModel]:
        result = await self.session.execute(
            select(DisciplinaryActionModel)
            .where(
                DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
                DisciplinaryActionModel.is_paused.is_(True),
            )
            .order_by(DisciplinaryActionModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_due_to_start(
        self, now: datetime, driver_id: int | None = None
    ) -> list[DisciplinaryActionModel]:
        """Scheduled, unpaused actions whose start has arrived."""
        query = select(DisciplinaryActionModel).where(
            DisciplinaryActionModel.action_type.in_(RESTRICTIVE_ACTIONS),
            DisciplinaryActionModel.scheduled_start <= now,
            DisciplinaryActionModel.actual_start.is_(None),
            DisciplinaryActionModel.actual_end.is_(None),
            DisciplinaryActionModel.is_paused.is_(False),
        )
        if driver_id is not None:
            query = query.where(DisciplinaryActionModel.driver_id == driver_id)
        result = await self.session.execute(query.order_by(DisciplinaryActionModel.id))
        return list(result.scalars().all())

    async def get_applied_suspensions(
        self, driver_id: int | None = None
    ) -> list[DisciplinaryActionModel]:
        query = select(DisciplinaryActionModel).where(
            DisciplinaryActionModel.action_type == ActionType.SUSPENSION,
            DisciplinaryActionModel.actual_start.is_not(None),
            DisciplinaryActionModel.actual_end.is_(None),
        )
        if driver_id is not None:
            query = query.where(DisciplinaryActionModel.driver_id == driver_id)
        result = await self.session.execute(query.order_by(DisciplinaryActionModel.id))
        return list(result.scalars().all())


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, notification: NotificationModel) -> NotificationModel:
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def get_for_user(self, user_id: int) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.id)
        )
        return list(result.scalars().all())
