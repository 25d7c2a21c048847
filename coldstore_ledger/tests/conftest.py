"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from coldstore_ledger.app.main import app
from coldstore_ledger.app.db.session import get_db, Base
from coldstore_ledger.app.core.dependencies import CallerContext
from coldstore_ledger.app.core.jwt import create_caller_token
from coldstore_ledger.app.models.cold_storage import ColdStorage, Chamber
from coldstore_ledger.app.domain.ledger.lot_service import LotService
from coldstore_ledger.app.models.enums import AccessType, BagType, ChargeUnit, PaymentStatus
from coldstore_ledger.app.schemas.lot import LotCreate, PartialSaleCreate

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite (season reset relies on ON DELETE SET NULL)."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Route the app's sessions to the in-memory database for the whole run."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def cold_storage(db_session):
    """Per-bag billing: wafer 100 + 10 hammali, seed 120 + 12 hammali."""
    cs = ColdStorage(
        name="Shree Cold Storage",
        total_capacity=10000,
        charge_unit=ChargeUnit.BAG,
        wafer_cold_charge=100.0,
        wafer_hammali=10.0,
        seed_cold_charge=120.0,
        seed_hammali=12.0,
        starting_lot_number=1,
        next_lot_number=1,
    )
    db_session.add(cs)
    await db_session.commit()
    return cs


@pytest.fixture
async def chamber(db_session, cold_storage):
    ch = Chamber(cold_storage_id=cold_storage.id, name="C-1", capacity=5000, current_fill=0)
    db_session.add(ch)
    await db_session.commit()
    return ch


@pytest.fixture
def caller(cold_storage):
    return CallerContext(user_id=1, cold_storage_id=cold_storage.id, access_type=AccessType.EDIT)


def _token(cold_storage_id: int, access_type: AccessType) -> dict:
    token = create_caller_token(1, cold_storage_id, access_type.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(cold_storage):
    return _token(cold_storage.id, AccessType.EDIT)


@pytest.fixture
def view_headers(cold_storage):
    return _token(cold_storage.id, AccessType.VIEW)


@pytest.fixture
def lot_payload(chamber):
    """Factory for lot entry payloads in the test chamber."""

    def make(**overrides):
        data = {
            "farmer_name": "Ramesh Patel",
            "village": "Deesa",
            "contact_number": "9800000001",
            "chamber_id": chamber.id,
            "floor": 1,
            "position": "A-12",
            "original_size": 20,
            "bag_type": BagType.WAFER,
        }
        data.update(overrides)
        return LotCreate(**data)

    return make


@pytest.fixture
def sale_payload():
    """Factory for partial-sale payloads; defaults to a fully paid sale to one buyer."""

    def make(**overrides):
        data = {
            "quantity": 5,
            "payment_status": PaymentStatus.PAID,
            "buyer_name": "Mahesh Traders",
        }
        data.update(overrides)
        return PartialSaleCreate(**data)

    return make


@pytest.fixture
def new_lot(db_session, caller, lot_payload):
    """Create a lot through the service."""

    async def make(**overrides):
        return await LotService.create_lot(db_session, caller, lot_payload(**overrides))

    return make
