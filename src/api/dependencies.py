"""FastAPI dependency injection helpers."""

from functools import lru_cache

from fastapi import Depends

from src.services.discipline import DisciplineService
from src.services.disputes import DisputeService
from src.services.rides import RideLifecycleService


@lru_cache
def get_discipline_service() -> DisciplineService:
    """Process-wide engine; its per-driver locks must be shared."""
    return DisciplineService()


def get_dispute_service(
    discipline: DisciplineService = Depends(get_discipline_service),
) -> DisputeService:
    return DisputeService(discipline)


def get_ride_service(
    discipline: DisciplineService = Depends(get_discipline_service),
) -> RideLifecycleService:
    return RideLifecycleService(discipline)
