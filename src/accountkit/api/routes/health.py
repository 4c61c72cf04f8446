"""Health check endpoints.

Both answer 503 with ``status: degraded`` when the account database does not
respond, so a load balancer can take the instance out of rotation.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from accountkit.config import Settings, get_settings
from accountkit.storage import database

router = APIRouter()

VERSION = "0.1.0"


async def _check_database(settings: Settings) -> tuple[int, dict]:
    reachable = await database.ping_db()
    return (200 if reachable else 503), {
        "status": "healthy" if reachable else "degraded",
        "service": settings.api_name,
        "database": "ok" if reachable else "unavailable",
    }


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings)) -> JSONResponse:
    status_code, body = await _check_database(settings)
    return JSONResponse(status_code=status_code, content=body)


@router.get("/health/detailed")
async def detailed_health(settings: Settings = Depends(get_settings)) -> JSONResponse:
    """Database status plus the redacted configuration."""
    status_code, body = await _check_database(settings)
    body.update(
        version=VERSION,
        config=settings.get_safe_dict(),
    )
    return JSONResponse(status_code=status_code, content=body)
