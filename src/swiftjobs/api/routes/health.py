"""Liveness and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from swiftjobs import __version__
from swiftjobs.logging_config import SERVICE_NAME

router = APIRouter(tags=["Health"])


async def _database_check(request: Request) -> str:
    try:
        async with request.app.state.db_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


async def _redis_check(request: Request) -> str:
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        return "disabled"
    try:
        await redis.ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


def _sweeper_check(request: Request) -> str:
    task = getattr(request.app.state, "sweeper_task", None)
    if task is None:
        return "disabled"
    return "stopped" if task.done() else "ok"


@router.get("/health")
async def health_check(request: Request):
    oracle = getattr(request.app.state, "brief_oracle", None)
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__,
        "brief_oracle": "anthropic" if oracle is not None and oracle.enabled else "keyword_fallback",
    }


@router.get("/health/live")
async def liveness():
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Ready when the database answers, Redis (if configured) answers and the hold sweeper is alive."""
    checks = {
        "database": await _database_check(request),
        "redis": await _redis_check(request),
        "hold_sweeper": _sweeper_check(request),
    }
    ready = all(value in ("ok", "disabled") for value in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
