"""
Ride endpoints
==============

PATCH /api/v1/car-bookings/{id}/start    -- CONFIRMED -> IN_PROGRESS
PATCH /api/v1/car-bookings/{id}/complete -- IN_PROGRESS -> COMPLETED
PATCH /api/v1/car-bookings/{id}/cancel   -- -> CANCELLED
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_ride_service
from src.api.middleware import limiter
from src.api.schemas import (
    CarBookingResponse,
    DisciplinaryActionResponse,
    RideTransitionResponse,
)
from src.config import settings
from src.services.rides import RideLifecycleService, RideTransition

router = APIRouter(prefix="/car-bookings", tags=["rides"])


def _to_response(result: RideTransition) -> RideTransitionResponse:
    return RideTransitionResponse(
        booking=CarBookingResponse.model_validate(result.booking),
        suspension_paused=result.paused,
        settled_actions=[
            DisciplinaryActionResponse.from_model(a) for a in result.settled
        ],
    )


@router.patch(
    "/{booking_id}/start",
    response_model=RideTransitionResponse,
    summary="Start a ride",
    description="A suspension or ban scheduled for the driver is paused until the ride ends.",
)
@limiter.limit(settings.rate_limit)
async def start_ride(
    request: Request,
    booking_id: int,
    service: RideLifecycleService = Depends(get_ride_service),
):
    return _to_response(await service.start_ride(booking_id))


@router.patch(
    "/{booking_id}/complete",
    response_model=RideTransitionResponse,
    summary="Complete a ride",
    description=(
        "Actions paused by this ride are applied now, or lifted if their "
        "window elapsed during the ride."
    ),
)
@limiter.limit(settings.rate_limit)
async def complete_ride(
    request: Request,
    booking_id: int,
    service: RideLifecycleService = Depends(get_ride_service),
):
    return _to_response(await service.complete_ride(booking_id))


@router.patch(
    "/{booking_id}/cancel",
    response_model=RideTransitionResponse,
    summary="Cancel a booking",
)
@limiter.limit(settings.rate_limit)
async def cancel_ride(
    request: Request,
    booking_id: int,
    service: RideLifecycleService = Depends(get_ride_service),
):
    return _to_response(await service.cancel_ride(booking_id))
