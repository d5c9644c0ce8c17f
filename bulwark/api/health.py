"""Health check endpoint with storage connectivity.

Accessible without authentication and exempt from CSRF so probes and
load balancers can call it directly.
"""

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from bulwark.api.deps import get_app_settings, get_user_repository
from bulwark.core.config import Settings
from bulwark.repositories.base import UserRepository
from bulwark.schemas.user import CamelModel

router = APIRouter(tags=["health"])


class DatabaseHealth(CamelModel):
    status: str
    response_time: int


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: DatabaseHealth
    version: str
    environment: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Settings = Depends(get_app_settings),
    users: UserRepository = Depends(get_user_repository),
) -> HealthResponse:
    """
    Liveness check.

    The service reports ``ok`` while the process is serving requests; storage
    reachability is reported separately with its round-trip time in ms.
    """
    start = time.perf_counter()
    connected = await users.ping()
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC),
        database=DatabaseHealth(
            status="connected" if connected else "disconnected",
            response_time=elapsed_ms if connected else 0,
        ),
        version=settings.app_version,
        environment=settings.environment,
    )
