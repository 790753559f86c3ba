"""
Disciplinary Action Store
=========================

Owns the append-only ledger of warnings, suspensions and bans, and is
the only writer of ``users.status`` and ``drivers.current_suspension_id``.

Lifecycle of a suspension or ban::

    SCHEDULED --apply--> APPLIED --lift--> LIFTED
        |                   ^                ^
        +--pause--> PAUSED -+----------------+

Rows are never deleted; ``actual_end`` is written once, terminally.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from src.domain.entities import Period, action_state, check_transition
from src.domain.enums import (
    AccountStatus,
    ActionState,
    ActionType,
    NotificationType,
)
from src.domain.exceptions import NotFound
from src.infrastructure.models import DisciplinaryActionModel, DriverModel
from src.services.tracking import ActiveRideOracle
from src.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def pause_tag(booking_id: int) -> str:
    """Display tag for a paused action; lookups go through ``paused_booking_id``."""
    return f"active_ride_booking_{booking_id}"


def state_of(action: DisciplinaryActionModel) -> ActionState:
    return action_state(action.actual_start, action.actual_end, action.is_paused)


class DisciplinaryActionStore:
    def __init__(self, uow: UnitOfWork, oracle: ActiveRideOracle):
        self.uow = uow
        self.oracle = oracle

    # ── Ledger writes ─────────────────────────────────────────────────

    async def record_warning(
        self, driver: DriverModel, dispute_count: int, period: Period
    ) -> DisciplinaryActionModel:
        now = self.uow.now()
        driver.last_warning_at = now
        warning = await self.uow.actions.create(
            DisciplinaryActionModel(
                driver_id=driver.id,
                action_type=ActionType.WARNING,
                dispute_count=dispute_count,
                period_start=period.start,
                period_end=period.end,
                created_at=now,
            )
        )
        self.uow.outbox.add(
            driver.user_id,
            NotificationType.DISPUTE_WARNING,
            "Dispute Warning",
            f"You have received {dispute_count} disputes. Please improve your "
            "service quality. Further disputes may result in account suspension.",
            {"driver_id": driver.id},
        )
        logger.info("Driver %d warned at %d disputes", driver.id, dispute_count)
        return warning

    async def schedule(
        self,
        driver: DriverModel,
        *,
        action_type: ActionType,
        days: Optional[int],
        dispute_count: int,
        period: Period,
        reason: Optional[str] = None,
    ) -> DisciplinaryActionModel:
        """
        Record a suspension or ban and apply it at once, unless the
        driver is mid-trip, in which case it is created paused against
        the blocking booking.
        """
        now = self.uow.now()
        is_ban = action_type == ActionType.BAN
        has_ride, booking_id = await self.oracle.has_active_ride(driver.id)

        action = await self.uow.actions.create(
            DisciplinaryActionModel(
                driver_id=driver.id,
                action_type=action_type,
                dispute_count=dispute_count,
                suspension_days=None if is_ban else days,
                reason=reason,
                period_start=period.start,
                period_end=period.end,
                scheduled_start=now,
                scheduled_end=None if is_ban or not days else now + timedelta(days=days),
                is_paused=has_ride,
                pause_reason=pause_tag(booking_id) if has_ride else None,
                paused_booking_id=booking_id if has_ride else None,
                created_at=now,
            )
        )
        if not is_ban:
            driver.current_suspension_id = action.id

        if not has_ride:
            await self.apply(driver, action)
            return action

        logger.info(
            "Driver %d: %s %d scheduled but paused by booking %d",
            driver.id,
            action_type.value,
            action.id,
            booking_id,
        )
        if is_ban:
            self.uow.outbox.add(
                driver.user_id,
                NotificationType.BAN_SCHEDULED,
                "Account Ban Scheduled",
                "Your account ban has been scheduled but is paused due to an "
                "active ride. It will be applied after your current trip completes.",
                {"driver_id": driver.id, "action_id": action.id},
            )
        elif reason is not None:
            self.uow.outbox.add(
                driver.user_id,
                NotificationType.SUSPENSION_SCHEDULED,
                "Account Suspension Scheduled",
                "Your account suspension has been scheduled but is paused due to "
                "an active ride. It will resume after your current trip completes. "
                f"Reason: {reason}",
                {"driver_id": driver.id, "action_id": action.id},
            )
        else:
            self.uow.outbox.add(
                driver.user_id,
                NotificationType.SUSPENSION_PAUSED,
                "Suspension Scheduled - Paused",
                "Your account suspension has been scheduled but is paused due to "
                "an active ride. It will resume after your current trip completes.",
                {"driver_id": driver.id, "action_id": action.id},
            )
        return action

    # ── State transitions ─────────────────────────────────────────────

    async def apply(
        self, driver: DriverModel, action: DisciplinaryActionModel
    ) -> None:
        """Take the account offline and make every car unbookable."""
        check_transition(state_of(action), ActionState.APPLIED)
        user = await self.uow.users.get_by_id(driver.user_id)
        if user is None:
            raise NotFound("User", driver.user_id)

        is_ban = action.action_type == ActionType.BAN
        user.status = AccountStatus.BANNED if is_ban else AccountStatus.INACTIVE
        deactivated = await self.uow.cars.deactivate_all_for_driver(driver.id)
        action.actual_start = self.uow.now()

        logger.info(
            "Driver %d: %s %d applied, %d cars deactivated",
            driver.id,
            action.action_type.value,
            action.id,
            deactivated,
        )
        if is_ban:
            body = (
                "Your account has been permanently banned due to "
                f"{action.dispute_count} disputes within the tracking period."
            )
            if action.reason:
                body = f"Your account has been permanently banned. Reason: {action.reason}"
            self.uow.outbox.add(
                driver.user_id,
                NotificationType.BAN_APPLIED,
                "Account Banned",
                body,
                {"driver_id": driver.id, "action_id": action.id},
            )
        else:
            body = (
                f"Your account has been suspended for {action.suspension_days} "
                f"days due to {action.dispute_count} disputes."
            )
            if action.reason:
                body = (
                    f"Your account has been suspended for {action.suspension_days} "
                    f"days. Reason: {action.reason}"
                )
            self.uow.outbox.add(
                driver.user_id,
                NotificationType.SUSPENSION_STARTED,
                "Account Suspended",
                body,
                {"driver_id": driver.id, "action_id": action.id},
            )

    def pause(self, action: DisciplinaryActionModel, booking_id: int) -> None:
        check_transition(state_of(action), ActionState.PAUSED)
        action.is_paused = True
        action.pause_reason = pause_tag(booking_id)
        action.paused_booking_id = booking_id

    @staticmethod
    def unpause(action: DisciplinaryActionModel) -> None:
        action.is_paused = False
        action.pause_reason = None
        action.paused_booking_id = None

    async def lift(
        self, driver: DriverModel, action: DisciplinaryActionModel
    ) -> None:
        """End an action for good; a lifted suspension reactivates the account."""
        check_transition(state_of(action), ActionState.LIFTED)
        action.actual_end = self.uow.now()
        self.unpause(action)

        if action.action_type == ActionType.SUSPENSION:
            user = await self.uow.users.get_by_id(driver.user_id)
            if user is None:
                raise NotFound("User", driver.user_id)
            if user.status != AccountStatus.BANNED:
                user.status = AccountStatus.ACTIVE
            if driver.current_suspension_id == action.id:
                driver.current_suspension_id = None

        logger.info(
            "Driver %d: %s %d lifted", driver.id, action.action_type.value, action.id
        )
