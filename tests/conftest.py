"""Pytest configuration and fixtures."""

import os

# Set DEBUG=true for all tests BEFORE any subway imports
# This must be done before subway.core.config loads settings
os.environ["DEBUG"] = "true"

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from subway.core.auth import clear_jwks_cache, set_mock_jwks
from subway.core.database import create_engine_for_url, create_session_factory, get_db
from subway.core.utils import convert_async_db_url_to_sync
from subway.main import app
from subway.models.line import Line
from subway.models.member import Member
from subway.models.station import Station
from tests.helpers.jwt_helpers import MockJWTGenerator
from tests.helpers.test_data import make_unique_external_id

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"


def run_migrations(async_db_url: str) -> None:
    """
    Migrate a database to head the way deployments do, through Alembic.

    Raises:
        RuntimeError: If the migration fails
    """
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", convert_async_db_url_to_sync(async_db_url))

    try:
        command.upgrade(alembic_cfg, "head")
    except Exception as e:
        msg = f"Alembic migration failed: {e}"
        raise RuntimeError(msg) from e


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Fresh SQLite database per test, migrated with Alembic.

    Every commit in a test is a real commit, so IntegrityError recovery and
    rollback paths behave as they do in production. Foreign keys are enforced
    on every connection.

    Yields:
        Async engine bound to the test database
    """
    async_db_url = f"sqlite+aiosqlite:///{tmp_path / 'subway.db'}"
    run_migrations(async_db_url)

    engine = create_engine_for_url(async_db_url)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Session from the application's session factory, on the per-test database.

    Yields:
        Async SQLAlchemy session on the per-test database
    """
    async with create_session_factory(db_engine)() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client whose requests use the test database session.

    Yields:
        Async HTTP client with ASGI transport
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """
    FastAPI synchronous test client for endpoints that do not touch the database.

    Yields:
        Synchronous test client with app context
    """
    with TestClient(app) as test_client:
        yield test_client


# Auth fixtures


@pytest.fixture(scope="session", autouse=True)
def setup_mock_jwks() -> None:
    """Install the mock JWKS once per session so DEBUG-mode token verification works."""
    set_mock_jwks(MockJWTGenerator.get_mock_jwks())


@pytest.fixture
def reset_jwks_cache() -> Generator[None, None, None]:
    """Reset the JWKS cache before and after a test."""
    clear_jwks_cache()
    yield
    clear_jwks_cache()


@pytest.fixture
async def test_member(db_session: AsyncSession) -> Member:
    """Persisted member with a unique external ID."""
    member = Member(external_id=make_unique_external_id("auth0|test_member"), auth_provider="auth0")
    db_session.add(member)
    await db_session.commit()
    await db_session.refresh(member)
    return member


@pytest.fixture
async def another_member(db_session: AsyncSession) -> Member:
    """Second persisted member for cross-member scenarios."""
    member = Member(external_id=make_unique_external_id("auth0|another_member"), auth_provider="auth0")
    db_session.add(member)
    await db_session.commit()
    await db_session.refresh(member)
    return member


@pytest.fixture
def auth_headers_for_member(test_member: Member) -> dict[str, str]:
    """Authorization headers carrying a token for ``test_member``."""
    token = MockJWTGenerator.generate(subject=test_member.external_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_for_another_member(another_member: Member) -> dict[str, str]:
    """Authorization headers carrying a token for ``another_member``."""
    token = MockJWTGenerator.generate(subject=another_member.external_id)
    return {"Authorization": f"Bearer {token}"}


# Network fixtures


@pytest.fixture
async def stations(db_session: AsyncSession) -> dict[str, Station]:
    """
    Persist four stations used by the line scenarios.

    Returns:
        Stations keyed by name: A, B, C, D
    """
    created = {name: Station(name=name) for name in ("A", "B", "C", "D")}
    db_session.add_all(created.values())
    await db_session.commit()
    return created


@pytest.fixture
async def line_a_to_c(db_session: AsyncSession, stations: dict[str, Station]) -> Line:
    """
    Persist line 'Line 1' with the single section A -> C (distance 10).

    Returns:
        The line with its section loaded
    """
    line = Line(name="Line 1", color="bg-red-600", up_station=stations["A"], down_station=stations["C"], distance=10)
    db_session.add(line)
    await db_session.commit()
    return line
