"""
Dispute endpoints
=================

POST  /api/v1/disputes                 -- raise a dispute (may escalate the driver)
GET   /api/v1/disputes/{id}            -- fetch a dispute
PATCH /api/v1/disputes/{id}/resolve    -- close as resolved
PATCH /api/v1/disputes/{id}/reject     -- close as rejected
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_dispute_service
from src.api.middleware import limiter
from src.api.schemas import (
    DisciplinaryActionResponse,
    DisputeCloseRequest,
    DisputeCreateRequest,
    DisputeCreatedResponse,
    DisputeResponse,
)
from src.config import settings
from src.services.disputes import DisputeService

router = APIRouter(prefix="/disputes", tags=["disputes"])


@router.post(
    "",
    status_code=201,
    response_model=DisputeCreatedResponse,
    summary="Raise a dispute on a hotel or car booking",
    description=(
        "Car-booking disputes count against the car's driver and may "
        "trigger a warning, a suspension or a ban in the same transaction."
    ),
)
@limiter.limit(settings.rate_limit)
async def create_dispute(
    request: Request,
    body: DisputeCreateRequest,
    service: DisputeService = Depends(get_dispute_service),
):
    dispute, action = await service.create_dispute(
        raised_by=body.raised_by,
        description=body.description,
        booking_hotel_id=body.booking_hotel_id,
        booking_car_id=body.booking_car_id,
    )
    response = DisputeCreatedResponse.model_validate(dispute)
    if action is not None:
        response.triggered_action = DisciplinaryActionResponse.from_model(action)
    return response


@router.get("/{dispute_id}", response_model=DisputeResponse, summary="Get a dispute")
@limiter.limit(settings.rate_limit)
async def get_dispute(
    request: Request,
    dispute_id: int,
    service: DisputeService = Depends(get_dispute_service),
):
    return await service.get_dispute(dispute_id)


@router.patch(
    "/{dispute_id}/resolve",
    response_model=DisputeResponse,
    summary="Resolve a pending dispute",
)
@limiter.limit(settings.rate_limit)
async def resolve_dispute(
    request: Request,
    dispute_id: int,
    body: DisputeCloseRequest,
    service: DisputeService = Depends(get_dispute_service),
):
    return await service.resolve_dispute(dispute_id, body.resolution)


@router.patch(
    "/{dispute_id}/reject",
    response_model=DisputeResponse,
    summary="Reject a pending dispute",
)
@limiter.limit(settings.rate_limit)
async def reject_dispute(
    request: Request,
    dispute_id: int,
    body: DisputeCloseRequest,
    service: DisputeService = Depends(get_dispute_service),
):
    return await service.reject_dispute(dispute_id, body.resolution)
