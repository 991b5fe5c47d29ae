"""
Regional Franchise Platform - Test Configuration

Pytest fixtures and configuration.

Every test gets its own SQLite database file so that separate sessions
really contend for the same rows.
"""

import os

# Must be set before franchise.config is imported
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///./franchise_test.db")
os.environ.setdefault("APP_ENV", "testing")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Callable, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from franchise.database import Base, get_async_session
from franchise.models import (
    Licensee,
    LicenseeStatus,
    Territory,
    TerritoryOwnerType,
    Consultant,
    ConsultantRole,
    ConsultantStatus,
    AvailabilityStatus,
    Job,
    JobStatus,
    PauseReason,
)
from main import app


BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Engine bound to a fresh database file with the full schema."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'franchise_test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    """Session factory for tests that need more than one session."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def actor_headers() -> dict:
    return {"X-Actor-Id": "ops-admin@example.com"}


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest_asyncio.fixture
async def licensee(db_session: AsyncSession) -> Licensee:
    """ACTIVE licensee on an 80% revenue share."""
    licensee = Licensee(
        id=uuid4(),
        name="North Region Partners",
        legal_entity_name="North Region Partners Pty Ltd",
        email="finance@northregion.example.com",
        revenue_share_percent=Decimal("80.00"),
        status=LicenseeStatus.ACTIVE,
    )
    db_session.add(licensee)
    await db_session.commit()
    await db_session.refresh(licensee)
    return licensee


@pytest_asyncio.fixture
async def make_territory(db_session: AsyncSession) -> Callable:
    """Factory for territories; licensee-owned when a licensee is given."""
    counter = {"n": 0}

    async def _make(licensee: Optional[Licensee] = None, code: Optional[str] = None) -> Territory:
        counter["n"] += 1
        territory = Territory(
            id=uuid4(),
            name=f"Territory {counter['n']}",
            code=code or f"TER-{counter['n']:03d}",
            country="Australia",
            owner_type=TerritoryOwnerType.LICENSEE if licensee else TerritoryOwnerType.OPERATOR,
            licensee_id=licensee.id if licensee else None,
            is_active=True,
        )
        db_session.add(territory)
        await db_session.commit()
        await db_session.refresh(territory)
        return territory

    return _make


@pytest_asyncio.fixture
async def territory(make_territory, licensee: Licensee) -> Territory:
    """Territory owned by the licensee."""
    return await make_territory(licensee, code="NORTH-01")


@pytest_asyncio.fixture
async def operator_territory(make_territory) -> Territory:
    """Territory run by the operator."""
    return await make_territory(None, code="HQ-01")


@pytest_asyncio.fixture
async def make_consultant(db_session: AsyncSession) -> Callable:
    """Factory for consultants; creation times increase with each call."""
    counter = {"n": 0}

    async def _make(
        territory: Territory,
        current_jobs: int = 0,
        max_jobs: int = 5,
        role: ConsultantRole = ConsultantRole.RECRUITER,
        status: ConsultantStatus = ConsultantStatus.ACTIVE,
        availability: AvailabilityStatus = AvailabilityStatus.AVAILABLE,
        industry_expertise: Optional[list] = None,
        languages: Optional[list] = None,
        first_name: Optional[str] = None,
    ) -> Consultant:
        counter["n"] += 1
        consultant = Consultant(
            id=uuid4(),
            first_name=first_name or f"Consultant{counter['n']}",
            last_name="Smith",
            email=f"consultant{counter['n']}@example.com",
            role=role,
            status=status,
            availability=availability,
            territory_id=territory.id,
            current_jobs=current_jobs,
            max_jobs=max_jobs,
            industry_expertise=industry_expertise or [],
            languages=languages or [],
            created_at=BASE_TIME + timedelta(minutes=counter["n"]),
            updated_at=BASE_TIME + timedelta(minutes=counter["n"]),
        )
        db_session.add(consultant)
        await db_session.commit()
        await db_session.refresh(consultant)
        return consultant

    return _make


@pytest_asyncio.fixture
async def consultant(make_consultant, territory: Territory) -> Consultant:
    """Consultant in the licensee's territory with 2 of 5 slots used."""
    return await make_consultant(territory, current_jobs=2, max_jobs=5)


@pytest_asyncio.fixture
async def make_job(db_session: AsyncSession) -> Callable:
    """Factory for jobs."""
    counter = {"n": 0}

    async def _make(
        territory: Optional[Territory] = None,
        status: JobStatus = JobStatus.OPEN,
        paused_reason: Optional[PauseReason] = None,
    ) -> Job:
        counter["n"] += 1
        job = Job(
            id=uuid4(),
            title=f"Senior Engineer #{counter['n']}",
            category="Engineering",
            status=status,
            paused_reason=paused_reason,
            territory_id=territory.id if territory else None,
        )
        db_session.add(job)
        await db_session.commit()
        await db_session.refresh(job)
        return job

    return _make
