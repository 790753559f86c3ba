"""Integration tests for car-booking transitions and their discipline side effects."""

from __future__ import annotations

import pytest

from src.domain.enums import AccountStatus, ActionType, BookingStatus
from src.domain.exceptions import InvalidStateTransition, NotFound
from src.infrastructure.models import UserModel
from tests.conftest import actions_of, raise_disputes


class TestRideLifecycle:
    @pytest.mark.asyncio
    async def test_start(self, world, ride_service, clock):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0], BookingStatus.CONFIRMED)

        result = await ride_service.start_ride(booking)

        assert result.booking.status == BookingStatus.IN_PROGRESS
        assert result.booking.started_at == clock.now
        assert result.paused is False

    @pytest.mark.asyncio
    async def test_complete(self, world, ride_service, clock):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0], BookingStatus.IN_PROGRESS)

        result = await ride_service.complete_ride(booking)

        assert result.booking.status == BookingStatus.COMPLETED
        assert result.booking.completed_at == clock.now
        assert result.settled == []

    @pytest.mark.asyncio
    async def test_pending_booking_cannot_start(self, world, ride_service):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0], BookingStatus.PENDING)
        with pytest.raises(InvalidStateTransition, match="PENDING to IN_PROGRESS"):
            await ride_service.start_ride(booking)

    @pytest.mark.asyncio
    async def test_confirmed_booking_cannot_complete(self, world, ride_service):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0], BookingStatus.CONFIRMED)
        with pytest.raises(InvalidStateTransition):
            await ride_service.complete_ride(booking)

    @pytest.mark.asyncio
    async def test_completed_booking_cannot_cancel(self, world, ride_service):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0], BookingStatus.COMPLETED)
        with pytest.raises(InvalidStateTransition):
            await ride_service.cancel_ride(booking)

    @pytest.mark.asyncio
    async def test_unknown_booking(self, ride_service):
        with pytest.raises(NotFound, match="Car booking 77 not found"):
            await ride_service.start_ride(77)

    @pytest.mark.asyncio
    async def test_cancelling_a_ride_applies_paused_suspension(
        self, world, dispute_service, ride_service, session_factory
    ):
        driver = await world.driver()
        ride = await world.booking(driver.car_ids[0], BookingStatus.IN_PROGRESS)
        await raise_disputes(world, dispute_service, driver, 5)

        result = await ride_service.cancel_ride(ride)

        assert result.booking.status == BookingStatus.CANCELLED
        assert result.booking.completed_at is None
        assert len(result.settled) == 1
        (action,) = await actions_of(
            session_factory, driver.driver_id, ActionType.SUSPENSION
        )
        assert action.actual_start is not None
        assert (await world.get(UserModel, driver.user_id)).status == AccountStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_cancelling_before_start_has_no_side_effects(self, world, ride_service):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0], BookingStatus.CONFIRMED)

        result = await ride_service.cancel_ride(booking)

        assert result.booking.status == BookingStatus.CANCELLED
        assert result.settled == []
