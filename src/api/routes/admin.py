"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/drivers/{id}/discipline            -- live discipline status
GET  /api/v1/admin/drivers/{id}/disciplinary-history  -- every action, newest first
GET  /api/v1/admin/disciplinary-actions/pending       -- scheduled and paused actions
GET  /api/v1/admin/disciplinary-actions/{id}          -- one action with its state
POST /api/v1/admin/drivers/{id}/suspend               -- manual suspension
POST /api/v1/admin/drivers/{id}/ban                   -- manual ban
POST /api/v1/admin/reconcile                          -- run the sweep once
GET  /api/v1/admin/health                             -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_discipline_service
from src.api.middleware import limiter
from src.api.schemas import (
    BanRequest,
    DisciplinaryActionResponse,
    DriverDisciplineResponse,
    HealthResponse,
    HistoryEntryResponse,
    PendingActionsResponse,
    ReconcileResponse,
    SuspendRequest,
)
from src.config import settings
from src.services.discipline import DisciplineService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/drivers/{driver_id}/discipline",
    response_model=DriverDisciplineResponse,
    summary="Current discipline status of a driver",
)
@limiter.limit(settings.rate_limit)
async def get_driver_discipline(
    request: Request,
    driver_id: int,
    service: DisciplineService = Depends(get_discipline_service),
):
    status = await service.get_status(driver_id)
    current = status.current_action
    return DriverDisciplineResponse(
        driver_id=status.driver_id,
        user_id=status.user_id,
        account_status=status.account_status,
        is_suspended=status.is_suspended,
        is_banned=status.is_banned,
        period_start=status.period_start,
        period_end=status.period_end,
        dispute_count=status.dispute_count,
        last_warning_at=status.last_warning_at,
        has_active_ride=status.has_active_ride,
        active_booking_id=status.active_booking_id,
        suspension_paused=status.suspension_paused,
        current_action=(
            DisciplinaryActionResponse.from_model(current) if current else None
        ),
    )


@router.get(
    "/drivers/{driver_id}/disciplinary-history",
    response_model=list[HistoryEntryResponse],
    summary="Disciplinary history of a driver",
)
@limiter.limit(settings.rate_limit)
async def get_disciplinary_history(
    request: Request,
    driver_id: int,
    service: DisciplineService = Depends(get_discipline_service),
):
    entries = await service.get_history(driver_id)
    return [
        HistoryEntryResponse(
            action=DisciplinaryActionResponse.from_model(e.action),
            period_dispute_count=e.period_dispute_count,
        )
        for e in entries
    ]


@router.get(
    "/disciplinary-actions/pending",
    response_model=PendingActionsResponse,
    summary="Scheduled and paused suspensions/bans across all drivers",
)
@limiter.limit(settings.rate_limit)
async def get_pending_actions(
    request: Request,
    service: DisciplineService = Depends(get_discipline_service),
):
    pending = await service.get_pending_actions()
    return PendingActionsResponse(
        pending=[DisciplinaryActionResponse.from_model(a) for a in pending.pending],
        paused=[DisciplinaryActionResponse.from_model(a) for a in pending.paused],
    )


@router.get(
    "/disciplinary-actions/{action_id}",
    response_model=DisciplinaryActionResponse,
    summary="One disciplinary action",
)
@limiter.limit(settings.rate_limit)
async def get_action(
    request: Request,
    action_id: int,
    service: DisciplineService = Depends(get_discipline_service),
):
    return DisciplinaryActionResponse.from_model(await service.get_action(action_id))


@router.post(
    "/drivers/{driver_id}/suspend",
    status_code=201,
    response_model=DisciplinaryActionResponse,
    summary="Suspend a driver manually",
)
@limiter.limit(settings.rate_limit)
async def suspend_driver(
    request: Request,
    driver_id: int,
    body: SuspendRequest,
    service: DisciplineService = Depends(get_discipline_service),
):
    action = await service.suspend_driver(driver_id, body.reason, body.days)
    return DisciplinaryActionResponse.from_model(action)


@router.post(
    "/drivers/{driver_id}/ban",
    status_code=201,
    response_model=DisciplinaryActionResponse,
    summary="Ban a driver manually",
)
@limiter.limit(settings.rate_limit)
async def ban_driver(
    request: Request,
    driver_id: int,
    body: BanRequest,
    service: DisciplineService = Depends(get_discipline_service),
):
    action = await service.ban_driver(driver_id, body.reason)
    return DisciplinaryActionResponse.from_model(action)


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Run one reconciliation sweep now",
)
@limiter.limit(settings.rate_limit)
async def reconcile(
    request: Request,
    service: DisciplineService = Depends(get_discipline_service),
):
    report = await service.reconcile()
    return ReconcileResponse(
        applied=report.applied, paused=report.paused, lifted=report.lifted
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
