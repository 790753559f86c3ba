"""
Shared test fixtures.

Uses a SQLite database file per test (via aiosqlite) built from the
production models, so tests run without Docker / PostgreSQL / Redis.
SQLite ignores ``FOR UPDATE``; per-driver serialization in tests comes
from the service's in-process lock.

Time is injected through ``FakeClock`` and notifications are captured by
``RecordingDispatcher``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.domain.enums import (
    AccountStatus,
    ActionType,
    BookingStatus,
    DisputeParty,
    NotificationType,
    UserRole,
)
from src.domain.periods import new_period
from src.infrastructure.database import Base
from src.infrastructure.models import (
    CarBookingModel,
    CarModel,
    DisciplinaryActionModel,
    DriverModel,
    HotelBookingModel,
    UserModel,
)
from src.services.discipline import DisciplineService
from src.services.disputes import DisputeService
from src.services.rides import RideLifecycleService

NOW = datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)


# ── Test doubles ──────────────────────────────────────────────────────


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class SentNotification:
    user_id: int
    type: NotificationType
    title: str
    body: str
    data: Optional[dict] = None


class RecordingDispatcher:
    def __init__(self):
        self.sent: list[SentNotification] = []

    async def send(self, user_id, type, title, body, data=None) -> None:
        self.sent.append(SentNotification(user_id, type, title, body, data))

    def types_for(self, user_id: int) -> list[NotificationType]:
        return [n.type for n in self.sent if n.user_id == user_id]


class FailingDispatcher:
    def __init__(self):
        self.attempts = 0

    async def send(self, user_id, type, title, body, data=None) -> None:
        self.attempts += 1
        raise ConnectionError("notification gateway down")


# ── Sample data ───────────────────────────────────────────────────────


@dataclass
class DriverRecord:
    driver_id: int
    user_id: int
    car_ids: list[int] = field(default_factory=list)


class World:
    """Inserts accounts and bookings directly, bypassing the services."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._seq = 0

    def _email(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}{self._seq}@example.com"

    async def user(
        self,
        role: UserRole = UserRole.CUSTOMER,
        status: AccountStatus = AccountStatus.ACTIVE,
    ) -> int:
        async with self.session_factory() as session:
            user = UserModel(
                full_name=f"{role.value.title()} {self._seq}",
                email=self._email(role.value),
                role=role,
                status=status,
            )
            session.add(user)
            await session.commit()
            return user.id

    async def driver(
        self, cars: int = 1, status: AccountStatus = AccountStatus.ACTIVE
    ) -> DriverRecord:
        user_id = await self.user(UserRole.DRIVER, status)
        async with self.session_factory() as session:
            driver = DriverModel(user_id=user_id, is_verified=True)
            session.add(driver)
            await session.flush()
            record = DriverRecord(driver.id, user_id)
            for i in range(cars):
                car = CarModel(driver_id=driver.id, plate_number=f"T-{driver.id}-{i}")
                session.add(car)
                await session.flush()
                record.car_ids.append(car.id)
            await session.commit()
            return record

    async def booking(
        self,
        car_id: int,
        status: BookingStatus = BookingStatus.COMPLETED,
        customer_id: Optional[int] = None,
    ) -> int:
        if customer_id is None:
            customer_id = await self.user()
        async with self.session_factory() as session:
            booking = CarBookingModel(car_id=car_id, user_id=customer_id, status=status)
            session.add(booking)
            await session.commit()
            return booking.id

    async def hotel_booking(self, customer_id: Optional[int] = None) -> int:
        if customer_id is None:
            customer_id = await self.user()
        async with self.session_factory() as session:
            booking = HotelBookingModel(user_id=customer_id, status="CONFIRMED")
            session.add(booking)
            await session.commit()
            return booking.id

    async def get(self, model, pk: int):
        async with self.session_factory() as session:
            return await session.get(model, pk)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh database file, then dispose."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'discipline.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def world(session_factory) -> World:
    return World(session_factory)


@pytest.fixture
def discipline(session_factory, dispatcher, clock) -> DisciplineService:
    return DisciplineService(session_factory, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def dispute_service(discipline) -> DisputeService:
    return DisputeService(discipline)


@pytest.fixture
def ride_service(discipline) -> RideLifecycleService:
    return RideLifecycleService(discipline)


async def raise_disputes(
    world: World,
    disputes: DisputeService,
    driver: DriverRecord,
    n: int,
):
    """Raise *n* car disputes on fresh completed bookings; returns the last result."""
    result = None
    for _ in range(n):
        booking_id = await world.booking(driver.car_ids[0])
        result = await disputes.create_dispute(
            raised_by=DisputeParty.CUSTOMER,
            description="Driver was rude",
            booking_car_id=booking_id,
        )
    return result


async def actions_of(
    session_factory: async_sessionmaker[AsyncSession],
    driver_id: int,
    action_type: Optional[ActionType] = None,
) -> list[DisciplinaryActionModel]:
    async with session_factory() as session:
        query = select(DisciplinaryActionModel).where(
            DisciplinaryActionModel.driver_id == driver_id
        )
        if action_type is not None:
            query = query.where(DisciplinaryActionModel.action_type == action_type)
        result = await session.execute(query.order_by(DisciplinaryActionModel.id))
        return list(result.scalars().all())


async def insert_scheduled_action(
    session_factory: async_sessionmaker[AsyncSession],
    driver_id: int,
    now: datetime,
    *,
    starts_in: timedelta = timedelta(0),
    days: int = 3,
) -> int:
    """A suspension left SCHEDULED: neither applied nor paused."""
    period = new_period(now)
    start = now + starts_in
    async with session_factory() as session:
        action = DisciplinaryActionModel(
            driver_id=driver_id,
            action_type=ActionType.SUSPENSION,
            dispute_count=5,
            suspension_days=days,
            period_start=period.start,
            period_end=period.end,
            scheduled_start=start,
            scheduled_end=start + timedelta(days=days),
            is_paused=False,
            created_at=now,
        )
        session.add(action)
        await session.commit()
        return action.id
