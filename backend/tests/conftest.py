"""
Test Configuration — Fixtures for async DB, test client, and warehouse data.

Each test gets a fresh in-memory SQLite database, so app code can commit
freely without leaking state between tests.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from api.deps import get_current_user, get_db
from api.main import app
from db.session import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create a test database engine and build all tables."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    """Session on the per-test database."""
    session = AsyncSession(bind=test_engine, expire_on_commit=False)
    yield session
    await session.close()


@pytest.fixture
def mock_user():
    """Mock authenticated user."""
    return {
        "sub": "test-user-id",
        "email": "supervisor@flowlogic.local",
    }


@pytest.fixture
async def client(test_db, mock_user):
    """Create an async test client with dependency overrides."""

    async def override_get_db():
        yield test_db

    def override_get_current_user():
        return mock_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def seeded_db(test_db):
    """Seed reference data: two zones, a few products, operators."""
    from db.models import Location, Operator, Product

    locations = [
        Location(code="PICK-A-01-01", zone="PICK", location_type="pick"),
        Location(code="PICK-A-01-02", zone="PICK", location_type="pick"),
        Location(code="BULK-B-02-03", zone="BULK", location_type="bulk"),
        Location(code="BULK-B-02-04", zone="BULK", location_type="bulk"),
    ]
    products = [
        Product(sku="SKU-001", name="Hex Bolt M8", category="Fasteners", cost=0.25),
        Product(sku="SKU-005", name="Cable Tie 200mm", category="Electrical", cost=0.05),
        Product(sku="SKU-012", name="Ball Valve 1in", category="Plumbing", cost=14.5),
    ]
    operators = [
        Operator(user_id="op-1", full_name="Alex Morgan", email="op1@flowlogic.local"),
        Operator(user_id="op-2", full_name="Sam Rivera", email="op2@flowlogic.local"),
    ]
    test_db.add_all(locations + products + operators)
    await test_db.commit()

    return {
        "locations": locations,
        "products": products,
        "operators": operators,
    }
