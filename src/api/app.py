"""
FastAPI application factory.

* Registers routes for disputes, car-booking rides and admin.
* Maps engine errors to HTTP status codes.
* Starts / stops the optional reconciliation worker via lifespan events.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.dependencies import get_discipline_service
from src.api.middleware import limiter
from src.api.routes import admin, disputes, rides
from src.config import settings
from src.domain.exceptions import InvalidState, NotFound, TransientStoreFailure
from src.workers import reconciler as _reconciler

logging.basicConfig(level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reconciliation worker on startup when enabled; stop on shutdown."""
    if settings.reconciliation_enabled:
        await _reconciler.start_reconciliation_loop(get_discipline_service())
    yield
    if settings.reconciliation_enabled:
        await _reconciler.stop_reconciliation_loop()


async def _not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _invalid_state_handler(request: Request, exc: InvalidState) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _transient_failure_handler(
    request: Request, exc: TransientStoreFailure
) -> JSONResponse:
    logger.warning("Store unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable, retry later"},
        headers={"Retry-After": "5"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Driver Discipline API",
        description=(
            "Tracks disputes against drivers in rolling three-month periods "
            "and escalates them through warnings, suspensions and bans.  "
            "Suspensions never interrupt a ride in progress."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Engine errors
    app.add_exception_handler(NotFound, _not_found_handler)
    app.add_exception_handler(InvalidState, _invalid_state_handler)
    app.add_exception_handler(TransientStoreFailure, _transient_failure_handler)

    # Routers
    app.include_router(disputes.router, prefix="/api/v1")
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
