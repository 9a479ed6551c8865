"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from swiftjobs import __version__
from swiftjobs.api.middleware.auth import AuthMiddleware
from swiftjobs.api.middleware.rate_limit import setup_rate_limiter
from swiftjobs.api.middleware.trace_id import TraceIdMiddleware
from swiftjobs.api.router import api_router
from swiftjobs.config import settings
from swiftjobs.db.engine import create_db_engine, create_session_factory
from swiftjobs.errors.handlers import register_exception_handlers
from swiftjobs.events.broker import build_broker
from swiftjobs.events.webhook_config import webhook_registry
from swiftjobs.logging_config import configure_logging
from swiftjobs.services.briefs import BriefOracle
from swiftjobs.workers.scheduler import run_hold_sweeper

configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


async def _create_sqlite_tables(engine) -> None:
    from swiftjobs.db.base import Base
    import swiftjobs.db.models  # noqa: F401 register all ORM models

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("SQLite tables created")


async def _connect_redis():
    """Redis carries cross-instance events and sweeper locks; without it both stay in-process."""
    if not settings.redis_enabled or settings.local_mode:
        return None
    client = aioredis.from_url(settings.redis_url, decode_responses=True)
    try:
        await client.ping()
    except (aioredis.RedisError, OSError) as exc:
        logger.warning("Redis not available (%s), events stay in-process", exc)
        await client.aclose()
        return None
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)
    if db_url.startswith("sqlite"):
        await _create_sqlite_tables(engine)

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)
    app.state.redis = await _connect_redis()
    app.state.broker = build_broker(redis=app.state.redis, registry=webhook_registry)
    app.state.brief_oracle = BriefOracle()
    app.state.sweeper_task = (
        asyncio.create_task(run_hold_sweeper(app), name="hold-sweeper")
        if settings.hold_sweeper_enabled
        else None
    )

    logger.info(
        "Swift Jobs API started (db=%s, redis=%s, sweeper=%s)",
        engine.dialect.name,
        "on" if app.state.redis else "off",
        "on" if app.state.sweeper_task else "off",
    )
    yield

    if app.state.sweeper_task is not None:
        app.state.sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await app.state.sweeper_task
    await app.state.broker.drain(timeout=5.0)
    if app.state.redis:
        await app.state.redis.aclose()
    await engine.dispose()
    logger.info("Swift Jobs API shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Swift Jobs API",
        version=__version__,
        description="Freelancer matching, time-limited offers and escrow for bounded deliverables.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Last added runs first: trace id is bound before authentication
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    register_exception_handlers(app)
    setup_rate_limiter(app)

    Instrumentator(
        should_group_status_codes=True,
        should_respect_env_var=False,
        excluded_handlers=["/api/v1/health.*", "/metrics"],
    ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    app.include_router(api_router)
    return app


app = create_app()
