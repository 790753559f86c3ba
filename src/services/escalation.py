"""
Escalation Engine
=================

Runs after every dispute against a driver:

1. Skip drivers whose account is already offline.
2. Resolve the current period (re-arming the warning if it rolled over)
   and count the period's disputes.
3. Feed the count, the warning flag, the rungs already on record and
   the in-flight guard into the policy table (``src.domain.escalation``).
4. Record the warning and/or schedule the chosen rung.

Repeated calls with no new disputes are no-ops: the warning is guarded
by ``last_warning_at`` and every rung by the actions already recorded.
"""

from __future__ import annotations

import logging
from typing import Optional

from src.domain.enums import AccountStatus
from src.domain.escalation import (
    DEFAULT_WARNING_THRESHOLD,
    ESCALATION_POLICY,
    EscalationStep,
    decide,
    rung_of,
)
from src.domain.exceptions import NotFound
from src.infrastructure.models import DisciplinaryActionModel, DriverModel
from src.services.action_store import DisciplinaryActionStore
from src.services.tracking import DisputeCounter, PeriodTracker
from src.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class EscalationEngine:
    def __init__(
        self,
        uow: UnitOfWork,
        tracker: PeriodTracker,
        counter: DisputeCounter,
        store: DisciplinaryActionStore,
        policy: tuple[EscalationStep, ...] = ESCALATION_POLICY,
        warning_threshold: int = DEFAULT_WARNING_THRESHOLD,
    ):
        self.uow = uow
        self.tracker = tracker
        self.counter = counter
        self.store = store
        self.policy = policy
        self.warning_threshold = warning_threshold

    async def evaluate(self, driver: DriverModel) -> Optional[DisciplinaryActionModel]:
        """Return the suspension/ban scheduled by this call, if any."""
        user = await self.uow.users.get_by_id(driver.user_id)
        if user is None:
            raise NotFound("User", driver.user_id)
        if user.status != AccountStatus.ACTIVE:
            logger.debug("Driver %d is %s, skipping", driver.id, user.status.value)
            return None

        period, _ = await self.tracker.reset_if_expired(driver)
        count = await self.counter.count_in_period(driver.id, period.start)
        existing = await self.uow.actions.get_in_flight(driver.id, period.start)
        recorded = await self.uow.actions.get_restrictive_in_period(
            driver.id, period.start
        )
        prior_rungs = {rung_of(a.action_type, a.suspension_days) for a in recorded}
        prior_rungs.discard(None)

        decision = decide(
            count,
            already_warned=driver.last_warning_at is not None,
            prior_rungs=prior_rungs,
            has_in_flight=existing is not None,
            policy=self.policy,
            warning_threshold=self.warning_threshold,
        )

        if decision.warn:
            await self.store.record_warning(driver, count, period)

        if decision.step is None:
            return None

        logger.info(
            "Driver %d: %d disputes in period, escalating to %s",
            driver.id,
            count,
            decision.step.rung,
        )
        return await self.store.schedule(
            driver,
            action_type=decision.step.action_type,
            days=decision.step.days,
            dispute_count=count,
            period=period,
        )
