"""Test fixtures and configuration."""

import logging
import os
import sys
from dataclasses import dataclass
from uuid import uuid4

import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ["ENVIRONMENT"] = "testing"

from bankmatch.database import Base, get_db  # noqa: E402
from bankmatch.logger import get_logger  # noqa: E402
from bankmatch.main import app  # noqa: E402
from bankmatch.models import BankAccount, Organization  # noqa: E402
from bankmatch.security import create_access_token  # noqa: E402
from bankmatch.services.ownership import Caller  # noqa: E402
from tests.factories import (  # noqa: E402
    BankAccountFactory,
    BankConnectionFactory,
    OrganizationFactory,
    ProfileFactory,
)

logger = get_logger(__name__)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=False),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


def _enable_sqlite_savepoints(engine) -> None:
    """Let pysqlite emit BEGIN/SAVEPOINT itself so nested transactions work."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema, one per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db(db_engine, request):
    """Test session bound to an outer transaction that is rolled back afterwards.

    Service-level commit/rollback only release or roll back savepoints, so
    per-batch commit semantics can be exercised without leaking data.
    """
    connection = await db_engine.connect()
    transaction = await connection.begin()
    session = AsyncSession(
        bind=connection,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    yield session

    await session.close()
    try:
        await transaction.rollback()
    except Exception as e:
        logger.error(
            "Test transaction rollback failed",
            test_name=request.node.name,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        await connection.close()


@dataclass
class OrgContext:
    """An organization with one connected account and an authenticated member."""

    organization: Organization
    account: BankAccount
    caller: Caller


async def make_org_context(db: AsyncSession, name: str) -> OrgContext:
    organization = await OrganizationFactory.create_async(db, name=name)
    connection = await BankConnectionFactory.create_async(db, organization_id=organization.id)
    account = await BankAccountFactory.create_async(db, connection_id=connection.id)
    user_id = uuid4()
    await ProfileFactory.create_async(db, user_id=user_id, organization_id=organization.id)
    return OrgContext(
        organization=organization,
        account=account,
        caller=Caller(user_id=user_id, organization_id=organization.id),
    )


@pytest_asyncio.fixture
async def org(db) -> OrgContext:
    return await make_org_context(db, "Hausverwaltung Nord")


@pytest_asyncio.fixture
async def other_org(db) -> OrgContext:
    return await make_org_context(db, "Hausverwaltung Sued")


@pytest_asyncio.fixture
async def client(db, org):
    """Async client authenticated as ``org``'s member, sharing the test session."""

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    token = create_access_token(data={"sub": str(org.caller.user_id)})
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(
            transport=transport,
            base_url="http://test",
            headers={"Authorization": f"Bearer {token}"},
        ) as client_instance:
            yield client_instance
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def anonymous_client(db):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client_instance:
            yield client_instance
    finally:
        app.dependency_overrides.pop(get_db, None)
