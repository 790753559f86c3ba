"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from src.domain.entities import action_state
from src.domain.enums import (
    AccountStatus,
    ActionState,
    ActionType,
    BookingStatus,
    DisputeParty,
    DisputeStatus,
)


# ── Requests ──────────────────────────────────────────────────────────


class DisputeCreateRequest(BaseModel):
    booking_hotel_id: Optional[int] = None
    booking_car_id: Optional[int] = None
    raised_by: DisputeParty
    description: str = Field(..., min_length=1, max_length=2000)

    @model_validator(mode="after")
    def exactly_one_booking(self) -> "DisputeCreateRequest":
        if (self.booking_hotel_id is None) == (self.booking_car_id is None):
            raise ValueError(
                "Exactly one of booking_hotel_id or booking_car_id must be provided"
            )
        return self


class DisputeCloseRequest(BaseModel):
    resolution: str = Field(..., min_length=1, max_length=2000)


class SuspendRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    days: int = Field(3, ge=1, le=365)


class BanRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


# ── Responses ─────────────────────────────────────────────────────────


class DisciplinaryActionResponse(BaseModel):
    id: int
    driver_id: int
    action_type: ActionType
    state: Optional[ActionState] = None
    dispute_count: int
    suspension_days: Optional[int] = None
    reason: Optional[str] = None
    period_start: datetime
    period_end: datetime
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    is_paused: bool
    pause_reason: Optional[str] = None
    paused_booking_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, action) -> "DisciplinaryActionResponse":
        response = cls.model_validate(action)
        if action.action_type != ActionType.WARNING:
            response.state = action_state(
                action.actual_start, action.actual_end, action.is_paused
            )
        return response


class DisputeResponse(BaseModel):
    id: int
    booking_hotel_id: Optional[int] = None
    booking_car_id: Optional[int] = None
    raised_by: DisputeParty
    description: str
    status: DisputeStatus
    resolution: Optional[str] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DisputeCreatedResponse(DisputeResponse):
    triggered_action: Optional[DisciplinaryActionResponse] = None


class CarBookingResponse(BaseModel):
    id: int
    car_id: int
    user_id: int
    status: BookingStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RideTransitionResponse(BaseModel):
    booking: CarBookingResponse
    suspension_paused: bool = False
    settled_actions: list[DisciplinaryActionResponse] = []


class DriverDisciplineResponse(BaseModel):
    driver_id: int
    user_id: int
    account_status: AccountStatus
    is_suspended: bool
    is_banned: bool
    period_start: datetime
    period_end: datetime
    dispute_count: int
    last_warning_at: Optional[datetime] = None
    has_active_ride: bool
    active_booking_id: Optional[int] = None
    suspension_paused: bool
    current_action: Optional[DisciplinaryActionResponse] = None


class HistoryEntryResponse(BaseModel):
    action: DisciplinaryActionResponse
    period_dispute_count: int


class PendingActionsResponse(BaseModel):
    pending: list[DisciplinaryActionResponse]
    paused: list[DisciplinaryActionResponse]


class ReconcileResponse(BaseModel):
    applied: int
    paused: int
    lifted: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
