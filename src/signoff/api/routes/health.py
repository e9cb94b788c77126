"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from signoff.config import APP_VERSION
from signoff.logging_config import SERVICE_NAME

router = APIRouter()


@router.get("/health")
async def health_check():
    """Return service health status."""
    return {"status": "healthy", "service": SERVICE_NAME, "version": APP_VERSION}


@router.get("/health/live")
async def liveness():
    """Liveness probe; always returns 200 if process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe: checks DB connectivity."""
    checks: dict[str, str] = {}
    overall_ok = True

    try:
        session_factory = request.app.state.db_session_factory
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"
        overall_ok = False

    status_code = 200 if overall_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if overall_ok else "not_ready",
            "checks": checks,
        },
    )
