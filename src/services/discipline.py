"""
Discipline Service
==================

Entry point of the driver discipline engine.  Wires the engine
components to one unit of work per trigger and owns the transaction
boundary.

Concurrency safety
------------------
* A per-driver ``asyncio.Lock`` serialises triggers for the same driver
  inside one process.
* **SELECT … FOR UPDATE** on the driver row serialises them across
  processes, so two concurrent disputes can never both observe "no
  suspension yet" and both create one.

Atomicity
---------
Each trigger runs in a single transaction: creating an action, moving
the suspension pointer, changing the account status and deactivating
cars commit together or not at all.  Notifications are queued on an
outbox and delivered only after commit; delivery failures are logged
and swallowed.

Triggers
--------
* ``on_dispute_created``  -> escalation
* ``on_ride_started``     -> pause a scheduled action
* ``on_ride_completed``   -> resume or settle paused actions

Suspensions are event-driven: nothing wakes a scheduled action up by
itself.  ``reconcile`` is the optional sweep run by
``src.workers.reconciler`` when enabled.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import Settings, settings as default_settings
from src.domain.enums import AccountStatus, ActionType, NotificationType
from src.domain.exceptions import InvalidState, NotFound, TransientStoreFailure
from src.infrastructure.database import async_session_factory
from src.infrastructure.models import DisciplinaryActionModel, DriverModel
from src.services.action_store import DisciplinaryActionStore
from src.services.escalation import EscalationEngine
from src.services.notifications import (
    DatabaseNotificationDispatcher,
    NotificationDispatcher,
    NotificationOutbox,
)
from src.services.pause_resume import PauseResumeController
from src.services.tracking import ActiveRideOracle, DisputeCounter, PeriodTracker
from src.services.unit_of_work import Clock, UnitOfWork, utcnow

logger = logging.getLogger(__name__)


class EngineComponents:
    """The engine's components bound to one unit of work."""

    def __init__(self, uow: UnitOfWork, config: Settings):
        self.tracker = PeriodTracker(uow, config.period_months)
        self.counter = DisputeCounter(uow)
        self.oracle = ActiveRideOracle(uow)
        self.store = DisciplinaryActionStore(uow, self.oracle)
        self.escalation = EscalationEngine(
            uow,
            self.tracker,
            self.counter,
            self.store,
            warning_threshold=config.warning_threshold,
        )
        self.controller = PauseResumeController(uow, self.oracle, self.store)


# ── Read models ───────────────────────────────────────────────────────


@dataclass
class DriverDisciplineStatus:
    driver_id: int
    user_id: int
    account_status: AccountStatus
    is_suspended: bool
    is_banned: bool
    period_start: datetime
    period_end: datetime
    dispute_count: int
    last_warning_at: Optional[datetime]
    has_active_ride: bool
    active_booking_id: Optional[int]
    suspension_paused: bool
    current_action: Optional[DisciplinaryActionModel] = None


@dataclass
class ActionHistoryEntry:
    action: DisciplinaryActionModel
    period_dispute_count: int


@dataclass
class PendingActions:
    pending: list[DisciplinaryActionModel] = field(default_factory=list)
    paused: list[DisciplinaryActionModel] = field(default_factory=list)


@dataclass
class ReconcileReport:
    applied: int = 0
    paused: int = 0
    lifted: int = 0


# ── Service ───────────────────────────────────────────────────────────


class DisciplineService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = utcnow,
        config: Settings = default_settings,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or DatabaseNotificationDispatcher(session_factory)
        self.clock = clock
        self.config = config
        self._driver_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ── Transaction plumbing ──────────────────────────────────────────

    @asynccontextmanager
    async def unit_of_work(
        self, outbox: Optional[NotificationOutbox] = None
    ) -> AsyncIterator[UnitOfWork]:
        """One transaction, no driver lock.  Store outages become retryable."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield UnitOfWork(session, self.clock, outbox)
        except OperationalError as exc:
            raise TransientStoreFailure(str(exc.orig)) from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                raise TransientStoreFailure(str(exc.orig)) from exc
            raise

    @asynccontextmanager
    async def transaction(
        self, driver_id: int, outbox: NotificationOutbox
    ) -> AsyncIterator[tuple[UnitOfWork, DriverModel, EngineComponents]]:
        """Lock the driver and yield the engine wired to one transaction."""
        async with self._driver_locks[driver_id]:
            async with self.unit_of_work(outbox) as uow:
                driver = await uow.drivers.get_for_update(driver_id)
                if driver is None:
                    raise NotFound("Driver", driver_id)
                yield uow, driver, EngineComponents(uow, self.config)

    @asynccontextmanager
    async def read(self) -> AsyncIterator[tuple[UnitOfWork, EngineComponents]]:
        async with self.unit_of_work() as uow:
            yield uow, EngineComponents(uow, self.config)

    async def deliver(self, outbox: NotificationOutbox) -> None:
        await outbox.flush(self.dispatcher)

    # ── Inbound triggers ──────────────────────────────────────────────

    async def on_dispute_created(
        self, driver_id: int
    ) -> Optional[DisciplinaryActionModel]:
        outbox = NotificationOutbox()
        async with self.transaction(driver_id, outbox) as (_, driver, engine):
            action = await engine.escalation.evaluate(driver)
        await self.deliver(outbox)
        return action

    async def on_ride_started(self, driver_id: int) -> bool:
        outbox = NotificationOutbox()
        async with self.transaction(driver_id, outbox) as (_, driver, engine):
            paused = await engine.controller.pause_if_active_ride(driver)
        await self.deliver(outbox)
        return paused

    async def on_ride_completed(
        self, driver_id: int, booking_id: int
    ) -> list[DisciplinaryActionModel]:
        outbox = NotificationOutbox()
        async with self.transaction(driver_id, outbox) as (_, driver, engine):
            settled = await engine.controller.resume_after_ride(driver, booking_id)
        await self.deliver(outbox)
        return settled

    # ── Manual admin actions ──────────────────────────────────────────

    async def suspend_driver(
        self, driver_id: int, reason: str, days: int = 3
    ) -> DisciplinaryActionModel:
        outbox = NotificationOutbox()
        async with self.transaction(driver_id, outbox) as (uow, driver, engine):
            user = await uow.users.get_by_id(driver.user_id)
            if user is None:
                raise NotFound("User", driver.user_id)
            if user.status == AccountStatus.INACTIVE:
                raise InvalidState("Driver is already suspended")
            if user.status == AccountStatus.BANNED:
                raise InvalidState("Driver is banned and cannot be suspended")
            if await uow.actions.get_unapplied(driver.id):
                raise InvalidState("Driver already has a pending suspension or ban")

            period, _ = await engine.tracker.reset_if_expired(driver)
            action = await engine.store.schedule(
                driver,
                action_type=ActionType.SUSPENSION,
                days=days,
                dispute_count=0,
                period=period,
                reason=reason,
            )
        await self.deliver(outbox)
        return action

    async def ban_driver(self, driver_id: int, reason: str) -> DisciplinaryActionModel:
        outbox = NotificationOutbox()
        async with self.transaction(driver_id, outbox) as (uow, driver, engine):
            user = await uow.users.get_by_id(driver.user_id)
            if user is None:
                raise NotFound("User", driver.user_id)
            if user.status == AccountStatus.BANNED:
                raise InvalidState("Driver is already banned")
            unapplied = await uow.actions.get_unapplied(driver.id)
            if any(a.action_type == ActionType.BAN for a in unapplied):
                raise InvalidState("A ban is already scheduled for this driver")

            period, _ = await engine.tracker.reset_if_expired(driver)
            action = await engine.store.schedule(
                driver,
                action_type=ActionType.BAN,
                days=None,
                dispute_count=0,
                period=period,
                reason=reason,
            )
        await self.deliver(outbox)
        return action

    # ── Reconciliation sweep ──────────────────────────────────────────

    def _suspension_over(self, action: DisciplinaryActionModel, now: datetime) -> bool:
        days = action.suspension_days or 0
        return action.actual_start + timedelta(days=days) <= now

    async def reconcile(self) -> ReconcileReport:
        """
        Apply scheduled actions whose start has arrived and lift applied
        suspensions whose days have been served.  Never touches the
        warning flag; that is re-armed only when a period rolls over.
        """
        report = ReconcileReport()
        async with self.read() as (uow, _):
            now = uow.now()
            due = await uow.actions.get_due_to_start(now)
            applied = await uow.actions.get_applied_suspensions()
            driver_ids = {a.driver_id for a in due} | {
                a.driver_id for a in applied if self._suspension_over(a, now)
            }

        for driver_id in sorted(driver_ids):
            outbox = NotificationOutbox()
            async with self.transaction(driver_id, outbox) as (
                uow,
                driver,
                engine,
            ):
                now = uow.now()
                for action in await uow.actions.get_applied_suspensions(driver.id):
                    if self._suspension_over(action, now):
                        await engine.store.lift(driver, action)
                        report.lifted += 1

                for action in await uow.actions.get_due_to_start(now, driver.id):
                    has_ride, booking_id = await engine.oracle.has_active_ride(driver.id)
                    if has_ride:
                        engine.store.pause(action, booking_id)
                        uow.outbox.add(
                            driver.user_id,
                            NotificationType.SUSPENSION_PAUSED,
                            "Suspension Paused",
                            "Your account suspension has been paused due to an "
                            "active ride. It will resume after your current trip "
                            "completes.",
                            {"driver_id": driver.id, "action_id": action.id},
                        )
                        report.paused += 1
                    else:
                        await engine.store.apply(driver, action)
                        report.applied += 1
            await self.deliver(outbox)

        if report.applied or report.paused or report.lifted:
            logger.info(
                "Reconciliation: %d applied, %d paused, %d lifted",
                report.applied,
                report.paused,
                report.lifted,
            )
        return report

    # ── Read surfaces ─────────────────────────────────────────────────

    async def get_status(self, driver_id: int) -> DriverDisciplineStatus:
        async with self.read() as (uow, engine):
            driver = await uow.drivers.get_by_id(driver_id)
            if driver is None:
                raise NotFound("Driver", driver_id)
            user = await uow.users.get_by_id(driver.user_id)
            if user is None:
                raise NotFound("User", driver.user_id)

            period = await engine.tracker.current_period(driver.id)
            count = await engine.counter.count_in_period(driver.id, period.start)
            has_ride, booking_id = await engine.oracle.has_active_ride(driver.id)
            current = await uow.actions.get_current_restriction(driver.id)

            return DriverDisciplineStatus(
                driver_id=driver.id,
                user_id=user.id,
                account_status=user.status,
                is_suspended=user.status == AccountStatus.INACTIVE,
                is_banned=user.status == AccountStatus.BANNED,
                period_start=period.start,
                period_end=period.end,
                dispute_count=count,
                last_warning_at=driver.last_warning_at,
                has_active_ride=has_ride,
                active_booking_id=booking_id,
                suspension_paused=bool(current and current.is_paused),
                current_action=current,
            )

    async def get_history(self, driver_id: int) -> list[ActionHistoryEntry]:
        """All actions newest first, each with its own period's dispute count."""
        async with self.read() as (uow, engine):
            if await uow.drivers.get_by_id(driver_id) is None:
                raise NotFound("Driver", driver_id)
            entries = []
            for action in await uow.actions.get_for_driver(driver_id):
                count = await engine.counter.count_between(
                    driver_id, action.period_start, action.period_end
                )
                entries.append(ActionHistoryEntry(action, count))
            return entries

    async def get_pending_actions(self) -> PendingActions:
        async with self.read() as (uow, _):
            return PendingActions(
                pending=await uow.actions.get_all_scheduled(),
                paused=await uow.actions.get_all_paused(),
            )

    async def get_action(self, action_id: int) -> DisciplinaryActionModel:
        async with self.read() as (uow, _):
            action = await uow.actions.get_by_id(action_id)
            if action is None:
                raise NotFound("Disciplinary action", action_id)
            return action
