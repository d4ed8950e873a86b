"""
Alerting Bootstrap
==================

Startup/shutdown lifecycle and service wiring for a serving layer.

STARTUP:
1. Setup structured logging
2. Initialize database
3. Create database tables (outside production)
4. Load the alert catalog

SHUTDOWN:
1. Close database connections

Usage:
    async with engine_lifespan() as engine:
        async with engine.services(correlation_id=request_id) as services:
            await services.alerts.evaluate_and_record(snapshot)
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from alerting.application import (
    AlertService, EscalationService, IAlertCatalogProvider,
    IMetricsSnapshotProvider, NotificationPreferenceService, SLAReportingService
)
from alerting.infrastructure import (
    SQLAlchemyAlertEventRepository, SQLAlchemyEscalationRuleRepository,
    SQLAlchemyNotificationPreferenceRepository, YAMLCatalogProvider
)
from config import settings
from infrastructure import database
from shared.infrastructure.logging import correlation_scope, get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class AlertingServices:
    """Services bound to one database session (one transaction)."""

    alerts: AlertService
    reporting: SLAReportingService
    preferences: NotificationPreferenceService
    escalations: EscalationService


def build_services(
    session: AsyncSession,
    catalog_provider: IAlertCatalogProvider,
    snapshot_provider: Optional[IMetricsSnapshotProvider] = None
) -> AlertingServices:
    """Wire the application services to SQLAlchemy repositories on ``session``."""
    event_repo = SQLAlchemyAlertEventRepository(session)
    return AlertingServices(
        alerts=AlertService(event_repo, catalog_provider, snapshot_provider),
        reporting=SLAReportingService(event_repo),
        preferences=NotificationPreferenceService(
            SQLAlchemyNotificationPreferenceRepository(session)
        ),
        escalations=EscalationService(SQLAlchemyEscalationRuleRepository(session)),
    )


class AlertingEngine:
    """Long-lived handle holding the catalog; hands out per-call services."""

    def __init__(
        self,
        catalog_provider: IAlertCatalogProvider,
        snapshot_provider: Optional[IMetricsSnapshotProvider] = None
    ):
        self.catalog_provider = catalog_provider
        self.snapshot_provider = snapshot_provider

    @asynccontextmanager
    async def services(self, correlation_id: Optional[str] = None) -> AsyncIterator[AlertingServices]:
        """
        Services sharing one transaction, committed when the block exits.

        Every line logged inside the block carries ``correlation_id``
        (generated when not given).
        """
        with correlation_scope(correlation_id):
            async with database.session_scope() as session:
                yield build_services(session, self.catalog_provider, self.snapshot_provider)


@asynccontextmanager
async def engine_lifespan(
    database_url: Optional[str] = None,
    snapshot_provider: Optional[IMetricsSnapshotProvider] = None,
    create_schema: Optional[bool] = None
) -> AsyncIterator[AlertingEngine]:
    """
    Application lifespan manager.

    Args:
        database_url: Overrides ``settings.database_url``
        snapshot_provider: External snapshot builder, if the caller has one
        create_schema: Create tables on startup; defaults to True outside production
    """
    setup_logging(settings.log_level, settings.environment, settings.app_name)
    logger.info("Starting alerting engine", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    database.init_database(database_url)

    if create_schema is None:
        create_schema = settings.environment != "production"

    try:
        if create_schema:
            logger.info("Creating database tables")
            await database.create_schema()

        catalog_provider = YAMLCatalogProvider(settings.alert_catalog_path)
        yield AlertingEngine(catalog_provider, snapshot_provider)
    finally:
        logger.info("Shutting down alerting engine")
        await database.close_database()
