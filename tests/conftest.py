"""
Pytest configuration and fixtures for the alerting engine.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from alerting.domain import (
    AlertCatalog, AlertDefinition, MetricsSnapshot, TimeWindow
)
from alerting.infrastructure import (
    InMemoryAlertEventRepository,
    InMemoryEscalationRuleRepository,
    InMemoryNotificationPreferenceRepository,
    SQLAlchemyAlertEventRepository,
    SQLAlchemyEscalationRuleRepository,
    SQLAlchemyNotificationPreferenceRepository,
    StaticCatalogProvider,
)
from infrastructure.database import Base, create_session_maker
import alerting.infrastructure.models  # noqa: F401

NOW = datetime(2024, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time for deterministic tests."""
    return NOW


@pytest.fixture
def window(now):
    return TimeWindow(from_=now - timedelta(days=30), to=now)


@pytest.fixture
def make_snapshot(window):
    """Factory for metrics snapshots."""
    def _make(metrics, organization_id="org-1"):
        return MetricsSnapshot(organization_id=organization_id, window=window, metrics=metrics)
    return _make


@pytest.fixture
def low_compliance_catalog():
    """Single-rule catalog from the low compliance scenario."""
    return AlertCatalog(
        version="test",
        definitions=[
            AlertDefinition(
                id="low-compliance",
                title="Low compliance rate",
                metric_path="compliance_rate",
                comparator="<",
                threshold=0.8,
                severity="critical",
                message_template="Compliance rate dropped to {value}",
            )
        ],
    )


@pytest.fixture
def catalog_provider(low_compliance_catalog):
    return StaticCatalogProvider(low_compliance_catalog)


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine):
    """Create async session for testing."""
    session_maker = create_session_maker(async_engine)
    async with session_maker() as session:
        yield session


@pytest.fixture(params=["memory", "sqlalchemy"])
async def event_repository(request, async_session):
    """Alert event store, run against both implementations."""
    if request.param == "memory":
        return InMemoryAlertEventRepository()
    return SQLAlchemyAlertEventRepository(async_session)


@pytest.fixture(params=["memory", "sqlalchemy"])
async def preference_repository(request, async_session):
    if request.param == "memory":
        return InMemoryNotificationPreferenceRepository()
    return SQLAlchemyNotificationPreferenceRepository(async_session)


@pytest.fixture(params=["memory", "sqlalchemy"])
async def escalation_repository(request, async_session):
    if request.param == "memory":
        return InMemoryEscalationRuleRepository()
    return SQLAlchemyEscalationRuleRepository(async_session)
