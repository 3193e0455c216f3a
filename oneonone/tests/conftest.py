"""
Test fixtures - in-memory SQLite database, seeded org chart, recording effects + one client per role
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from oneonone.database import Base, get_db, get_session_factory
from oneonone.main import app
from oneonone.api.auth import get_password_hash, create_access_token
from oneonone.models.user import User, UserRole
from oneonone.services.effects import Effects, get_effects
from oneonone.tests.fakes import FakeCalendar, FakeEmail, FakeNotifications


@pytest_asyncio.fixture()
async def session_factory():
    """Fresh in-memory SQLite database for each test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def effects():
    return Effects(calendar=FakeCalendar(), email=FakeEmail(), notifications=FakeNotifications())


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Administrator, two reporters with one direct report each"""
    password = get_password_hash("testpass123")

    admin = User(email="admin@example.com", name="Ada Admin", hashed_password=password, role=UserRole.SUPER_ADMIN)
    reporter = User(email="rita@example.com", name="Rita Reporter", hashed_password=password, role=UserRole.REPORTER)
    other_reporter = User(email="omar@example.com", name="Omar Reporter", hashed_password=password, role=UserRole.REPORTER)
    db_session.add_all([admin, reporter, other_reporter])
    await db_session.flush()

    employee = User(
        email="evan@example.com", name="Evan Employee", hashed_password=password,
        role=UserRole.EMPLOYEE, reports_to_id=reporter.id,
    )
    other_employee = User(
        email="olga@example.com", name="Olga Employee", hashed_password=password,
        role=UserRole.EMPLOYEE, reports_to_id=other_reporter.id,
    )
    db_session.add_all([employee, other_employee])
    await db_session.commit()

    users = {
        "admin": admin,
        "reporter": reporter,
        "employee": employee,
        "other_reporter": other_reporter,
        "other_employee": other_employee,
    }
    for user in users.values():
        await db_session.refresh(user)
    return users


@pytest_asyncio.fixture()
async def make_client(db_session, session_factory, seed_data, effects):
    """Factory for httpx AsyncClients bound to the FastAPI app, authenticated as a seeded user"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_effects] = lambda: effects
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    clients = []

    async def _make(role: str = None) -> AsyncClient:
        transport = ASGITransport(app=app)
        ac = AsyncClient(transport=transport, base_url="http://test", follow_redirects=True)
        if role:
            token = create_access_token(data={"sub": seed_data[role].email})
            ac.headers["Authorization"] = f"Bearer {token}"
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def admin_client(make_client):
    return await make_client("admin")


@pytest_asyncio.fixture()
async def reporter_client(make_client):
    return await make_client("reporter")


@pytest_asyncio.fixture()
async def employee_client(make_client):
    return await make_client("employee")


@pytest_asyncio.fixture()
async def other_reporter_client(make_client):
    return await make_client("other_reporter")


@pytest_asyncio.fixture()
async def unauth_client(make_client):
    return await make_client()
