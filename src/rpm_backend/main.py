import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.rpm_backend.api.v1.routes_admin import router as admin_router_v1
from src.rpm_backend.api.v1.routes_alerts import router as alerts_router_v1
from src.rpm_backend.api.v1.routes_approvals import router as approvals_router_v1
from src.rpm_backend.api.v1.routes_auth import router as auth_router_v1
from src.rpm_backend.api.v1.routes_dashboard import router as dashboard_router_v1
from src.rpm_backend.api.v1.routes_institutions import router as institutions_router_v1
from src.rpm_backend.api.v1.routes_patients import router as patients_router_v1
from src.rpm_backend.api.v1.routes_self import router as self_router_v1
from src.rpm_backend.api.v1.routes_system import router as system_router_v1
from src.rpm_backend.config import settings
from src.rpm_backend.domain.errors import AccessError
from src.rpm_backend.infra.db.bootstrap import init_sql_repositories
from src.rpm_backend.services.ratelimit.service import get_rate_limit_store

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

RATE_LIMIT_SWEEP_SECONDS = 60

app = FastAPI(title="Remote Patient Monitoring API")

_sweeper: Optional[asyncio.Task] = None


async def _sweep_rate_limits() -> None:
    while True:
        await asyncio.sleep(RATE_LIMIT_SWEEP_SECONDS)
        get_rate_limit_store().sweep()


@app.on_event("startup")
async def on_startup() -> None:
    """Application startup hook.

    When USE_SQL_REPOS is enabled and a DATABASE_URL is configured, this swaps
    in SQL-backed repositories. Otherwise the in-memory repositories remain
    active. Also starts the periodic rate-limit sweep.
    """

    global _sweeper
    init_sql_repositories()
    _sweeper = asyncio.create_task(_sweep_rate_limits())


@app.on_event("shutdown")
async def on_shutdown() -> None:
    global _sweeper
    if _sweeper is not None:
        _sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _sweeper
        _sweeper = None


@app.exception_handler(AccessError)
async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# CORS configuration: permissive by default for development. Tighten via
# CORS_ALLOW_ORIGINS in production deployments.
allow_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """Basic liveness probe for the API root."""
    return {"status": "ok"}


# Versioned API routers
app.include_router(system_router_v1, prefix="/api/v1")
app.include_router(auth_router_v1, prefix="/api/v1")
app.include_router(patients_router_v1, prefix="/api/v1")
app.include_router(alerts_router_v1, prefix="/api/v1")
app.include_router(dashboard_router_v1, prefix="/api/v1")
app.include_router(self_router_v1, prefix="/api/v1")
app.include_router(institutions_router_v1, prefix="/api/v1")
app.include_router(admin_router_v1, prefix="/api/v1")
app.include_router(approvals_router_v1, prefix="/api/v1")
