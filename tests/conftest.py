"""
Test fixtures for the PropDesk backend.

Every test gets a fresh in-memory SQLite database built from the model
metadata.  The API client shares one session with the test body, so rows
created through the API are visible to direct assertions and vice versa.
"""
import os

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("API_SECRET_KEY", "test-secret-key-that-is-long-enough-0123456789")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("MAIL_ENABLED", "false")

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from propdesk.core.database import Base, get_db, utcnow
from propdesk.core.security import create_access_token, hash_password
from propdesk.main import app
from propdesk.models import maintenance, message, tenant  # noqa: F401
from propdesk.models.property import Property, Unit
from propdesk.models.user import User

TEST_PASSWORD = "Str0ng!Passw0rd"


def _enable_savepoints(engine) -> None:
    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as session:
        yield session


@pytest.fixture
async def client(db_session):
    async def _get_test_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _get_test_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Data helpers ─────────────────────────────────────────────────────────────

async def make_user(db: AsyncSession, email: str = "owner@example.com", name: str = "Olive Owner") -> User:
    user = User(email=email, hashed_password=hash_password(TEST_PASSWORD), full_name=name)
    db.add(user)
    await db.commit()
    return user


async def make_property(
    db: AsyncSession, user: User, unit_numbers=("101", "102"), name: str = "Maple Court"
) -> Property:
    now = utcnow()
    prop = Property(
        created_by=user.id,
        name=name,
        address="12 Maple St",
        city="Springfield",
        state="IL",
        zip_code="62701",
        property_type="apartment",
        owner_name="Olive Owner",
        amenities=[],
        created_at=now,
        updated_at=now,
        units=[Unit(unit_number=n, rent=Decimal("1200.00")) for n in unit_numbers],
    )
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def owner(db_session) -> User:
    return await make_user(db_session)


@pytest.fixture
async def other_user(db_session) -> User:
    return await make_user(db_session, email="other@example.com", name="Oscar Other")


@pytest.fixture
def owner_headers(owner) -> dict:
    return auth_headers(owner)


@pytest.fixture
def other_headers(other_user) -> dict:
    return auth_headers(other_user)


@pytest.fixture
async def building(db_session, owner) -> Property:
    return await make_property(db_session, owner)


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def property_factory(db_session):
    async def _make(user: User, unit_numbers=("101", "102"), name: str = "Maple Court") -> Property:
        return await make_property(db_session, user, unit_numbers=unit_numbers, name=name)
    return _make


@pytest.fixture
def user_factory(db_session):
    async def _make(email: str, name: str = "Third User") -> User:
        return await make_user(db_session, email=email, name=name)
    return _make
