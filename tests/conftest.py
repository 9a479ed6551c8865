"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine

from swiftjobs.config import settings
from swiftjobs.db.base import Base
# Import all models to register with Base.metadata
import swiftjobs.db.models  # noqa: F401
from swiftjobs.db.engine import create_session_factory
from swiftjobs.events.broker import build_broker
from swiftjobs.events.webhook_config import WebhookRegistry
from swiftjobs.models.enums import PaymentMethod, UserRole
from swiftjobs.models.identity import Identity
from swiftjobs.models.job import JobCreate
from swiftjobs.repositories.user_repo import UserRepository
from swiftjobs.services import escrow, jobs
from swiftjobs.services.briefs import BriefOracle

CLIENT_ID = "usr_client_alice"
OTHER_CLIENT_ID = "usr_client_bob"
ADMIN_ID = "usr_admin_root"


def make_token(user_id: str, role: str, admin: bool = False, **overrides) -> str:
    claims = {
        "sub": user_id,
        "role": role,
        "roles": ["admin"] if admin else [],
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    claims.update(overrides)
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: str, role: str, admin: bool = False) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role, admin)}"}


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def broker():
    """Composite broker with in-process delivery and no webhook subscribers."""
    return build_broker(redis=None, registry=WebhookRegistry())


@pytest.fixture
def oracle():
    """Brief oracle without an API key: always the keyword fallback."""
    return BriefOracle(api_key="")


@pytest.fixture
def app(db_engine, session_factory, broker, oracle):
    """Create a test application instance with in-memory DB."""
    from swiftjobs.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.redis = None
    _app.state.broker = broker
    _app.state.brief_oracle = oracle
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── Identities ────────────────────────────────────────────────────────────────

@pytest.fixture
def client_identity():
    return Identity(user_id=CLIENT_ID, role=UserRole.CLIENT)


@pytest.fixture
def other_client_identity():
    return Identity(user_id=OTHER_CLIENT_ID, role=UserRole.CLIENT)


@pytest.fixture
def admin_identity():
    return Identity(user_id=ADMIN_ID, role=UserRole.CLIENT, is_admin=True)


# ── Seed helpers ──────────────────────────────────────────────────────────────

@pytest.fixture
def add_freelancer(db_session):
    """Register a freelancer profile: ``await add_freelancer("usr_fl_a", ["debugging"])``."""

    async def _add(user_id: str, skills: list[str] | None = None):
        user = await UserRepository(db_session).upsert_profile(
            user_id, UserRole.FREELANCER, user_id, skills or []
        )
        await db_session.commit()
        return user

    return _add


@pytest.fixture
def make_job(db_session, client_identity, oracle):
    """Create a job for the default client (bug fix, 48h, budget 100 unless overridden)."""

    async def _make(**overrides):
        fields = {
            "one_line_request": "Fix the checkout bug on our store",
            "deliverable_type": "bug_fix",
            "budget": 100.0,
            "deadline_hours": 48,
        }
        fields.update(overrides)
        return await jobs.create_job(db_session, client_identity, oracle, JobCreate(**fields))

    return _make


@pytest.fixture
def matched_job(db_session, broker, client_identity, admin_identity, make_job):
    """A paid, admin-verified job: ``job, result = await matched_job()``."""

    async def _matched(now: datetime | None = None, **overrides):
        job = await make_job(**overrides)
        txn = await escrow.submit_payment(db_session, broker, client_identity, job.job_id, PaymentMethod.PAYPAL)
        result = await escrow.verify_payment(db_session, broker, admin_identity, txn.transaction_id, now=now)
        return job, result

    return _matched


# ── HTTP auth headers ─────────────────────────────────────────────────────────

@pytest.fixture
def client_headers():
    return auth_headers(CLIENT_ID, "client")


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, "client", admin=True)


@pytest.fixture
def freelancer_headers():
    """Headers for a named freelancer: ``freelancer_headers("usr_fl_a")``."""
    return lambda user_id: auth_headers(user_id, "freelancer")


@pytest.fixture
def other_client_headers():
    return auth_headers(OTHER_CLIENT_ID, "client")


@pytest.fixture
def bearer():
    """Raw bearer header with claim overrides: ``bearer("usr_x", "client", aud="other")``."""
    return lambda user_id, role, **claims: {"Authorization": f"Bearer {make_token(user_id, role, **claims)}"}
