"""
Background Reconciliation Worker
================================

Disabled by default; turn on with ``RECONCILIATION_ENABLED=true``.
Runs every ``RECONCILIATION_INTERVAL_SECONDS`` (default 1 h).

The engine is event-driven: a suspension only ever moves on a dispute,
a ride start or a ride completion.  This sweep closes the gaps those
events leave open:

1. Lift applied suspensions whose days have been served.
2. Apply scheduled actions whose start has arrived, or pause them when
   the driver is mid-trip.

A **Redis distributed lock** ensures only one API process runs a sweep
at a time; per-driver work still goes through the engine's own
``SELECT … FOR UPDATE`` transaction.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.config import settings
from src.infrastructure.locks import DistributedLock
from src.infrastructure.redis_client import close_redis, get_redis
from src.services.discipline import DisciplineService, ReconcileReport

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_reconciliation_loop(service: DisciplineService) -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop(service))
    logger.info(
        "Reconciliation worker started (interval=%ds)",
        settings.reconciliation_interval_seconds,
    )


async def stop_reconciliation_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    await close_redis()
    logger.info("Reconciliation worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(service: DisciplineService) -> None:
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_reconciliation_cycle(service)
        except Exception:
            logger.exception("Unhandled error in reconciliation cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.reconciliation_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_reconciliation_cycle(
    service: DisciplineService,
) -> Optional[ReconcileReport]:
    """Run one sweep.  Returns ``None`` when another worker holds the lock."""
    redis = await get_redis()
    lock = DistributedLock(redis, "reconciler", ttl_seconds=300)

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping cycle")
        return None

    try:
        return await service.reconcile()
    finally:
        await lock.release()
