"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from swiftjobs.errors.exceptions import AuthenticationError, AuthorizationError
from swiftjobs.events.broker import EventBroker
from swiftjobs.models.identity import Identity
from swiftjobs.services.briefs import BriefOracle


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


async def get_redis(request: Request):
    """Return the Redis connection from app state."""
    return getattr(request.app.state, "redis", None)


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


def get_broker(request: Request) -> EventBroker:
    return request.app.state.broker


def get_brief_oracle(request: Request) -> BriefOracle:
    oracle = getattr(request.app.state, "brief_oracle", None)
    return oracle if oracle is not None else BriefOracle()


async def get_identity(request: Request) -> Identity:
    """Return the authenticated caller or raise 401."""
    if getattr(request.state, "auth_error", None):
        raise AuthenticationError("Invalid or expired token")
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise AuthenticationError("Authentication required")
    return identity


async def require_client(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_client:
        raise AuthorizationError("Requires a client account")
    return identity


async def require_freelancer(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_freelancer:
        raise AuthorizationError("Requires a freelancer account")
    return identity


async def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise AuthorizationError("Requires admin")
    return identity


# Type aliases for dependency injection
DBSession = Annotated[object, Depends(get_db)]
RedisConn = Annotated[object, Depends(get_redis)]
TraceId = Annotated[str, Depends(get_trace_id)]
Broker = Annotated[EventBroker, Depends(get_broker)]
Oracle = Annotated[BriefOracle, Depends(get_brief_oracle)]
CurrentIdentity = Annotated[Identity, Depends(get_identity)]
ClientIdentity = Annotated[Identity, Depends(require_client)]
FreelancerIdentity = Annotated[Identity, Depends(require_freelancer)]
AdminIdentity = Annotated[Identity, Depends(require_admin)]
