import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, time, timedelta
from uuid import UUID, uuid4

# Settings are read at import time; tests run against in-memory SQLite
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import insert  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import settings  # noqa: E402
from app.core.calendar_utils import month_bounds, today  # noqa: E402
from app.core.plans import PlanTier  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.database import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import combined_metadata  # noqa: E402
from app.models.appointments import appointments  # noqa: E402
from app.models.patients import patients  # noqa: E402
from app.models.professionals import professionals  # noqa: E402
from app.services.subscription_service import SubscriptionService  # noqa: E402

metadata = combined_metadata()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh in-memory database and a session on it."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await test_engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def tenant_id() -> UUID:
    """ID of the tenant making requests."""
    return uuid4()


@pytest.fixture
def auth_headers(tenant_id: UUID) -> dict:
    """Authentication headers for the test tenant."""
    token = create_access_token(data={"sub": str(tenant_id)}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def local_today() -> date:
    """Today in the tenant's zone."""
    return today(settings.tenant_zone)


@pytest.fixture
def month_start(local_today: date) -> date:
    """First day of the current tenant-local month."""
    return month_bounds(local_today)[0]


@pytest.fixture
def subscribe(db_session: AsyncSession, tenant_id: UUID) -> Callable[[PlanTier], Awaitable]:
    """Activate a plan for the test tenant."""

    async def _subscribe(tier: PlanTier):
        return await SubscriptionService(db_session).apply_checkout_completion(tenant_id, tier)

    return _subscribe


@pytest_asyncio.fixture
async def basic_plan(subscribe) -> None:
    """Test tenant on the basic plan."""
    await subscribe(PlanTier.BASIC)


@pytest_asyncio.fixture
async def patient_id(db_session: AsyncSession, tenant_id: UUID) -> UUID:
    """A patient of the test tenant, inserted without a quota check."""
    patient = uuid4()
    await db_session.execute(
        insert(patients).values(id=patient, tenant_id=tenant_id, name="Maria Silva")
    )
    await db_session.commit()
    return patient


@pytest_asyncio.fixture
async def professional_id(db_session: AsyncSession, tenant_id: UUID) -> UUID:
    """A professional of the test tenant, inserted without a quota check."""
    professional = uuid4()
    await db_session.execute(
        insert(professionals).values(
            id=professional,
            tenant_id=tenant_id,
            name="Dr. Ana Costa",
            specialty="Psychology",
        )
    )
    await db_session.commit()
    return professional


@pytest.fixture
def seed_appointments(
    db_session: AsyncSession,
    tenant_id: UUID,
    patient_id: UUID,
) -> Callable[..., Awaitable[None]]:
    """Insert ``count`` appointments on ``on_date`` directly, bypassing quota."""

    async def _seed(count: int, on_date: date, start: time = time(7, 0)) -> None:
        if count == 0:
            return
        await db_session.execute(
            insert(appointments).values(
                [
                    {
                        "id": uuid4(),
                        "tenant_id": tenant_id,
                        "patient_id": patient_id,
                        "date": on_date,
                        "time": start,
                        "duration_minutes": 50,
                        "status": "scheduled",
                    }
                    for _ in range(count)
                ]
            )
        )
        await db_session.commit()

    return _seed
