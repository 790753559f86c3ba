"""Integration tests for dispute management."""

from __future__ import annotations

import pytest

from src.domain.enums import (
    DisputeParty,
    DisputeStatus,
    NotificationType,
    UserRole,
)
from src.domain.exceptions import InvalidState, NotFound
from tests.conftest import raise_disputes


class TestCreateDispute:
    @pytest.mark.asyncio
    async def test_hotel_dispute_never_escalates(self, world, dispute_service):
        booking = await world.hotel_booking()
        dispute, action = await dispute_service.create_dispute(
            raised_by=DisputeParty.CUSTOMER,
            description="Room was not cleaned",
            booking_hotel_id=booking,
        )
        assert dispute.id is not None
        assert dispute.status == DisputeStatus.PENDING
        assert dispute.booking_car_id is None
        assert action is None

    @pytest.mark.asyncio
    async def test_car_dispute(self, world, dispute_service, clock):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0])
        dispute, action = await dispute_service.create_dispute(
            raised_by=DisputeParty.CUSTOMER,
            description="Driver was late",
            booking_car_id=booking,
        )
        assert dispute.booking_car_id == booking
        assert dispute.created_at == clock.now
        assert action is None

    @pytest.mark.asyncio
    async def test_requires_a_booking(self, dispute_service):
        with pytest.raises(InvalidState, match="must be provided"):
            await dispute_service.create_dispute(
                raised_by=DisputeParty.CUSTOMER, description="?"
            )

    @pytest.mark.asyncio
    async def test_rejects_both_bookings(self, world, dispute_service):
        driver = await world.driver()
        car_booking = await world.booking(driver.car_ids[0])
        hotel_booking = await world.hotel_booking()
        with pytest.raises(InvalidState, match="Cannot provide both"):
            await dispute_service.create_dispute(
                raised_by=DisputeParty.CUSTOMER,
                description="?",
                booking_car_id=car_booking,
                booking_hotel_id=hotel_booking,
            )

    @pytest.mark.asyncio
    async def test_unknown_car_booking(self, dispute_service):
        with pytest.raises(NotFound, match="Car booking 404 not found"):
            await dispute_service.create_dispute(
                raised_by=DisputeParty.CUSTOMER, description="?", booking_car_id=404
            )

    @pytest.mark.asyncio
    async def test_unknown_hotel_booking(self, dispute_service):
        with pytest.raises(NotFound, match="Hotel booking"):
            await dispute_service.create_dispute(
                raised_by=DisputeParty.CUSTOMER, description="?", booking_hotel_id=404
            )

    @pytest.mark.asyncio
    async def test_one_dispute_per_booking(self, world, dispute_service):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0])
        await dispute_service.create_dispute(
            raised_by=DisputeParty.CUSTOMER, description="Late", booking_car_id=booking
        )
        with pytest.raises(InvalidState, match="already exists"):
            await dispute_service.create_dispute(
                raised_by=DisputeParty.PROVIDER, description="Rude", booking_car_id=booking
            )

    @pytest.mark.asyncio
    async def test_admins_are_notified(self, world, dispute_service, dispatcher):
        admin = await world.user(UserRole.ADMIN)
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0])
        await dispute_service.create_dispute(
            raised_by=DisputeParty.CUSTOMER, description="Late", booking_car_id=booking
        )
        assert dispatcher.types_for(admin) == [NotificationType.DISPUTE_RAISED]

    @pytest.mark.asyncio
    async def test_provider_dispute_notifies_customer(self, world, dispute_service, dispatcher):
        customer = await world.user()
        booking = await world.hotel_booking(customer)
        await dispute_service.create_dispute(
            raised_by=DisputeParty.PROVIDER,
            description="Guest damaged the room",
            booking_hotel_id=booking,
        )
        (sent,) = [n for n in dispatcher.sent if n.user_id == customer]
        assert sent.title == "Dispute Raised Against You"


class TestCloseDispute:
    @pytest.mark.asyncio
    async def test_resolve(self, world, dispute_service, dispatcher, clock):
        customer = await world.user()
        booking = await world.hotel_booking(customer)
        dispute, _ = await dispute_service.create_dispute(
            raised_by=DisputeParty.CUSTOMER, description="Noise", booking_hotel_id=booking
        )
        clock.advance(days=1)

        closed = await dispute_service.resolve_dispute(dispute.id, "Partial refund issued")

        assert closed.status == DisputeStatus.RESOLVED
        assert closed.resolution == "Partial refund issued"
        assert closed.resolved_at == clock.now
        assert dispatcher.types_for(customer) == [NotificationType.DISPUTE_RESOLVED]

    @pytest.mark.asyncio
    async def test_reject(self, world, dispute_service):
        driver = await world.driver()
        booking = await world.booking(driver.car_ids[0])
        dispute, _ = await dispute_service.create_dispute(
            raised_by=DisputeParty.CUSTOMER, description="Late", booking_car_id=booking
        )
        closed = await dispute_service.reject_dispute(dispute.id, "GPS shows on-time arrival")
        assert closed.status == DisputeStatus.REJECTED

    @pytest.mark.asyncio
    async def test_close_twice_fails(self, world, dispute_service):
        booking = await world.hotel_booking()
        dispute, _ = await dispute_service.create_dispute(
            raised_by=DisputeParty.CUSTOMER, description="Noise", booking_hotel_id=booking
        )
        await dispute_service.resolve_dispute(dispute.id, "Refund")
        with pytest.raises(InvalidState, match="already resolved or rejected"):
            await dispute_service.reject_dispute(dispute.id, "Changed my mind")

    @pytest.mark.asyncio
    async def test_closing_does_not_lower_count(
        self, world, dispute_service, discipline
    ):
        driver = await world.driver()
        for _ in range(3):
            dispute, _action = await raise_disputes(world, dispute_service, driver, 1)
            await dispute_service.reject_dispute(dispute.id, "Unfounded")

        status = await discipline.get_status(driver.driver_id)
        assert status.dispute_count == 3
        assert status.last_warning_at is not None

    @pytest.mark.asyncio
    async def test_unknown_dispute(self, dispute_service):
        with pytest.raises(NotFound, match="Dispute 12 not found"):
            await dispute_service.resolve_dispute(12, "n/a")

    @pytest.mark.asyncio
    async def test_get_dispute(self, world, dispute_service):
        booking = await world.hotel_booking()
        dispute, _ = await dispute_service.create_dispute(
            raised_by=DisputeParty.CUSTOMER, description="Noise", booking_hotel_id=booking
        )
        fetched = await dispute_service.get_dispute(dispute.id)
        assert fetched.description == "Noise"

        with pytest.raises(NotFound):
            await dispute_service.get_dispute(dispute.id + 1)
