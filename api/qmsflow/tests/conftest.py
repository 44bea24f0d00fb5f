"""Shared pytest fixtures for service and API tests with database isolation."""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "test")

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.engine import make_url  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from qmsflow.api.deps import get_db, get_notification_center, get_rule_store, get_workflow_store  # noqa: E402
from qmsflow.core.config import settings  # noqa: E402
from qmsflow.db.base import Base  # noqa: E402
from qmsflow.main import app  # noqa: E402
from qmsflow.services.notification_service import NotificationCenter  # noqa: E402
from qmsflow.services.record_store import SqlRecordStore  # noqa: E402
from qmsflow.services.rule_store import InMemoryRuleStore  # noqa: E402
from qmsflow.services.service_factory import AutomationServices, build_services  # noqa: E402
from qmsflow.services.workflow_store import InMemoryWorkflowStore  # noqa: E402


@pytest_asyncio.fixture()
async def session(tmp_path) -> AsyncSession:
    database_url = settings.test_database_url or f"sqlite+aiosqlite:///{tmp_path / 'qmsflow.db'}"
    url = make_url(database_url)
    schema_name: str | None = None
    engine = create_async_engine(database_url, future=True)
    if url.drivername.startswith("postgresql"):
        # Isolate each test run in its own schema for parallel-friendly cleanup.
        schema_name = f"test_{uuid.uuid4().hex}"
        engine = engine.execution_options(schema_translate_map={None: schema_name})
    async with engine.begin() as conn:
        if schema_name:
            await conn.exec_driver_sql(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"')
        await conn.run_sync(Base.metadata.create_all)
    TestingSession = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        async with TestingSession() as session:
            yield session
    finally:
        async with engine.begin() as conn:
            if schema_name:
                await conn.exec_driver_sql(f'DROP SCHEMA IF EXISTS "{schema_name}" CASCADE')
            else:
                await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture()
def records(session: AsyncSession) -> SqlRecordStore:
    return SqlRecordStore(session)


@pytest.fixture()
def notifier() -> NotificationCenter:
    return NotificationCenter(max_items=50)


@pytest.fixture()
def rule_store() -> InMemoryRuleStore:
    return InMemoryRuleStore()


@pytest.fixture()
def workflow_store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture()
def services(
    records: SqlRecordStore,
    rule_store: InMemoryRuleStore,
    workflow_store: InMemoryWorkflowStore,
    notifier: NotificationCenter,
) -> AutomationServices:
    return build_services(records, rules=rule_store, templates=workflow_store, notifier=notifier)


@pytest_asyncio.fixture()
async def client(
    session: AsyncSession,
    rule_store: InMemoryRuleStore,
    workflow_store: InMemoryWorkflowStore,
    notifier: NotificationCenter,
) -> AsyncClient:
    async def _get_test_db():
        yield session

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_rule_store] = lambda: rule_store
    app.dependency_overrides[get_workflow_store] = lambda: workflow_store
    app.dependency_overrides[get_notification_center] = lambda: notifier
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()
