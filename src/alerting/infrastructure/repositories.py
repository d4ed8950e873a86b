"""
Alerting Infrastructure Repositories
=====================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database. Repositories only flush; the caller's session
context commits or rolls back, so each service call is one transaction.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence
from uuid import UUID, uuid4

import yaml
from pydantic import ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from alerting.application import (
    IAlertEventRepository, INotificationPreferenceRepository,
    IEscalationRuleRepository, IAlertCatalogProvider
)
from alerting.domain import (
    AlertCatalog, AlertEvent, DEFAULT_ALERT_CATALOG, EscalationAuditEntry,
    EscalationConfig, EscalationRule, NotificationPreference, TriggeredAlert
)
from alerting.domain.value_objects import ensure_utc
from alerting.infrastructure.models import (
    AlertEventModel, NotificationPreferenceModel,
    EscalationConfigModel, EscalationAuditLogModel
)
from config import EscalationRuleType
from core import ConfigurationException, RepositoryException, StoreUnavailableException
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate driver failures into the repository exception taxonomy."""
    try:
        yield
    except (OperationalError, InterfaceError, OSError) as e:
        logger.error(
            "Store unavailable",
            extra={"operation": operation, "error": str(e)}
        )
        raise StoreUnavailableException(operation, {"error": str(e)}) from e
    except SQLAlchemyError as e:
        logger.error(
            "Store operation failed",
            extra={"operation": operation, "error": str(e)}
        )
        raise RepositoryException(f"{operation} failed: {e}") from e


def _upsert_insert(session: AsyncSession) -> Optional[Callable]:
    """Dialect insert construct supporting ON CONFLICT, if the backend has one."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    return None


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(value)
    except (ValueError, TypeError, AttributeError):
        return None


def _to_event(model: AlertEventModel) -> AlertEvent:
    return AlertEvent(
        id=str(model.id),
        organization_id=model.organization_id,
        alert_definition_id=model.alert_definition_id,
        severity=model.severity,
        title=model.title,
        metric_path=model.metric_path,
        triggered_at=model.triggered_at,
        message=model.message,
        context_snapshot=dict(model.context_snapshot or {}),
        acknowledged_at=model.acknowledged_at,
        acknowledged_by=model.acknowledged_by,
    )


class SQLAlchemyAlertEventRepository(IAlertEventRepository):
    """
    SQLAlchemy implementation of the alert event store.

    Dedup relies on the partial unique index over unacknowledged rows, so
    two concurrent writers cannot both create an active event.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(
        self,
        organization_id: str,
        triggered: Sequence[TriggeredAlert],
        now: Optional[datetime] = None
    ) -> List[AlertEvent]:
        """Insert triggered alerts, skipping definitions that are still active."""
        now = ensure_utc(now or datetime.now(timezone.utc))
        insert_fn = _upsert_insert(self._session)
        created = []

        with _store_errors("record"):
            for alert in triggered:
                values = dict(
                    id=uuid4(),
                    organization_id=organization_id,
                    alert_definition_id=alert.definition_id,
                    severity=alert.severity,
                    title=alert.title,
                    metric_path=alert.metric_path,
                    message=alert.message,
                    context_snapshot=alert.context_snapshot(),
                    triggered_at=now,
                )

                if insert_fn is not None:
                    stmt = (
                        insert_fn(AlertEventModel)
                        .values(**values)
                        .on_conflict_do_nothing(
                            index_elements=["organization_id", "alert_definition_id"],
                            index_where=AlertEventModel.acknowledged_at.is_(None),
                        )
                        .returning(AlertEventModel.id)
                    )
                    result = await self._session.execute(stmt)
                    inserted = result.scalar_one_or_none() is not None
                else:
                    inserted = not await self._has_active(organization_id, alert.definition_id)
                    if inserted:
                        self._session.add(AlertEventModel(**values))
                        await self._session.flush()

                if not inserted:
                    logger.debug(
                        "Active alert already recorded",
                        extra={
                            "organization_id": organization_id,
                            "definition_id": alert.definition_id,
                        }
                    )
                    continue

                created.append(AlertEvent(
                    id=str(values["id"]),
                    organization_id=organization_id,
                    alert_definition_id=alert.definition_id,
                    severity=alert.severity,
                    title=alert.title,
                    metric_path=alert.metric_path,
                    triggered_at=now,
                    message=alert.message,
                    context_snapshot=values["context_snapshot"],
                ))

        return created

    async def _has_active(self, organization_id: str, definition_id: str) -> bool:
        stmt = select(AlertEventModel.id).where(
            AlertEventModel.organization_id == organization_id,
            AlertEventModel.alert_definition_id == definition_id,
            AlertEventModel.acknowledged_at.is_(None),
        )
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def list(
        self,
        organization_id: str,
        limit: int = 50,
        acknowledged: Optional[bool] = None
    ) -> List[AlertEvent]:
        """List events most-recent-first."""
        stmt = select(AlertEventModel).where(AlertEventModel.organization_id == organization_id)

        if acknowledged is True:
            stmt = stmt.where(AlertEventModel.acknowledged_at.is_not(None))
        elif acknowledged is False:
            stmt = stmt.where(AlertEventModel.acknowledged_at.is_(None))

        stmt = (
            stmt.order_by(AlertEventModel.triggered_at.desc(), AlertEventModel.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )

        with _store_errors("list"):
            result = await self._session.execute(stmt)
            return [_to_event(model) for model in result.scalars().all()]

    async def list_between(
        self,
        organization_id: str,
        from_: datetime,
        to: datetime
    ) -> List[AlertEvent]:
        """Events triggered within ``[from_, to]``, oldest first."""
        stmt = (
            select(AlertEventModel)
            .where(
                AlertEventModel.organization_id == organization_id,
                AlertEventModel.triggered_at >= from_,
                AlertEventModel.triggered_at <= to,
            )
            .order_by(AlertEventModel.triggered_at.asc())
            .execution_options(populate_existing=True)
        )

        with _store_errors("list_between"):
            result = await self._session.execute(stmt)
            return [_to_event(model) for model in result.scalars().all()]

    async def get(self, event_id: str) -> Optional[AlertEvent]:
        """Get event by ID."""
        event_uuid = _parse_uuid(event_id)
        if event_uuid is None:
            return None

        stmt = (
            select(AlertEventModel)
            .where(AlertEventModel.id == event_uuid)
            .execution_options(populate_existing=True)
        )

        with _store_errors("get"):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()
            return _to_event(model) if model else None

    async def acknowledge(
        self,
        event_id: str,
        actor_id: str,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Conditionally acknowledge an event.

        The UPDATE only matches while ``acknowledged_at IS NULL``, so of two
        concurrent calls exactly one sees a matched row.
        """
        event_uuid = _parse_uuid(event_id)
        if event_uuid is None:
            return False

        now = ensure_utc(now or datetime.now(timezone.utc))

        with _store_errors("acknowledge"):
            result = await self._session.execute(
                select(AlertEventModel.triggered_at).where(
                    AlertEventModel.id == event_uuid,
                    AlertEventModel.acknowledged_at.is_(None),
                )
            )
            triggered_at = result.scalar_one_or_none()
            if triggered_at is None:
                return False

            stmt = (
                update(AlertEventModel)
                .where(
                    AlertEventModel.id == event_uuid,
                    AlertEventModel.acknowledged_at.is_(None),
                )
                .values(acknowledged_at=max(now, triggered_at), acknowledged_by=actor_id)
                .execution_options(synchronize_session=False)
            )
            result = await self._session.execute(stmt)
            return result.rowcount == 1


class SQLAlchemyNotificationPreferenceRepository(INotificationPreferenceRepository):
    """SQLAlchemy implementation of notification preference storage."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, organization_id: str) -> List[NotificationPreference]:
        stmt = (
            select(NotificationPreferenceModel)
            .where(NotificationPreferenceModel.organization_id == organization_id)
            .order_by(NotificationPreferenceModel.channel, NotificationPreferenceModel.severity)
            .execution_options(populate_existing=True)
        )

        with _store_errors("get_preferences"):
            result = await self._session.execute(stmt)
            return [
                NotificationPreference(
                    organization_id=model.organization_id,
                    channel=model.channel,
                    severity=model.severity,
                    enabled=model.enabled,
                )
                for model in result.scalars().all()
            ]

    async def set(
        self,
        organization_id: str,
        preferences: Sequence[NotificationPreference]
    ) -> None:
        """Upsert each row on the (organization, channel, severity) key."""
        now = datetime.now(timezone.utc)
        insert_fn = _upsert_insert(self._session)

        with _store_errors("set_preferences"):
            for pref in preferences:
                if insert_fn is not None:
                    stmt = insert_fn(NotificationPreferenceModel).values(
                        organization_id=organization_id,
                        channel=pref.channel,
                        severity=pref.severity,
                        enabled=pref.enabled,
                        updated_at=now,
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["organization_id", "channel", "severity"],
                        set_={"enabled": stmt.excluded.enabled, "updated_at": stmt.excluded.updated_at},
                    )
                    await self._session.execute(stmt)
                    continue

                result = await self._session.execute(
                    select(NotificationPreferenceModel).where(
                        NotificationPreferenceModel.organization_id == organization_id,
                        NotificationPreferenceModel.channel == pref.channel,
                        NotificationPreferenceModel.severity == pref.severity,
                    )
                )
                model = result.scalar_one_or_none()
                if model is None:
                    self._session.add(NotificationPreferenceModel(
                        organization_id=organization_id,
                        channel=pref.channel,
                        severity=pref.severity,
                        enabled=pref.enabled,
                        updated_at=now,
                    ))
                else:
                    model.enabled = pref.enabled
                    model.updated_at = now

            await self._session.flush()


class SQLAlchemyEscalationRuleRepository(IEscalationRuleRepository):
    """
    SQLAlchemy implementation of escalation configuration storage.

    The config change and its audit row share the caller's transaction.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, organization_id: str) -> Optional[EscalationConfig]:
        stmt = (
            select(EscalationConfigModel)
            .where(EscalationConfigModel.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )

        with _store_errors("get_escalation"):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()

        if model is None:
            return None

        return EscalationConfig(
            organization_id=model.organization_id,
            rule_type=model.rule_type,
            rules=[EscalationRule(**rule) for rule in model.rules or []],
            expires_at=model.expires_at,
            updated_at=model.updated_at,
        )

    async def set(
        self,
        organization_id: str,
        config: EscalationConfig,
        changed_by: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        now = ensure_utc(now or datetime.now(timezone.utc))
        rules = [rule.model_dump() for rule in config.rules]

        with _store_errors("set_escalation"):
            if config.rule_type == EscalationRuleType.REMOVE:
                await self._session.execute(
                    delete(EscalationConfigModel)
                    .where(EscalationConfigModel.organization_id == organization_id)
                )
            else:
                result = await self._session.execute(
                    select(EscalationConfigModel)
                    .where(EscalationConfigModel.organization_id == organization_id)
                )
                model = result.scalar_one_or_none()
                if model is None:
                    self._session.add(EscalationConfigModel(
                        organization_id=organization_id,
                        rule_type=config.rule_type,
                        rules=rules,
                        expires_at=config.expires_at,
                        updated_at=now,
                    ))
                else:
                    model.rule_type = config.rule_type
                    model.rules = rules
                    model.expires_at = config.expires_at
                    model.updated_at = now

            self._session.add(EscalationAuditLogModel(
                organization_id=organization_id,
                rule_type=config.rule_type,
                change=config.model_dump(mode="json"),
                changed_by=changed_by,
                created_at=now,
            ))
            await self._session.flush()

    async def audit_log(self, organization_id: str) -> List[EscalationAuditEntry]:
        stmt = (
            select(EscalationAuditLogModel)
            .where(EscalationAuditLogModel.organization_id == organization_id)
            .order_by(EscalationAuditLogModel.created_at.asc(), EscalationAuditLogModel.id.asc())
        )

        with _store_errors("escalation_audit_log"):
            result = await self._session.execute(stmt)
            return [
                EscalationAuditEntry(
                    organization_id=model.organization_id,
                    rule_type=model.rule_type,
                    change=dict(model.change),
                    changed_by=model.changed_by,
                    created_at=model.created_at,
                )
                for model in result.scalars().all()
            ]


class YAMLCatalogProvider(IAlertCatalogProvider):
    """
    Alert catalog provider that loads from YAML.

    The catalog is read once; changing it requires a new deployment.
    A missing file falls back to the built-in catalog.
    """

    def __init__(self, catalog_path: str | Path):
        self._catalog_path = Path(catalog_path)
        self._catalog: Optional[AlertCatalog] = None
        self._load_catalog()

    def _load_catalog(self) -> None:
        """Load the catalog from the YAML file."""
        if not self._catalog_path.exists():
            logger.warning(
                f"Alert catalog not found: {self._catalog_path}, using built-in catalog"
            )
            self._catalog = DEFAULT_ALERT_CATALOG
            return

        try:
            with open(self._catalog_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(
                f"Alert catalog {self._catalog_path} is not valid YAML",
                {"path": str(self._catalog_path), "error": str(e)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationException(
                f"Alert catalog {self._catalog_path} must be a mapping",
                {"path": str(self._catalog_path)}
            )

        try:
            self._catalog = AlertCatalog(
                version=str(data.get("version", "1")),
                definitions=data.get("definitions") or [],
            )
        except ValidationError as e:
            raise ConfigurationException(
                f"Alert catalog {self._catalog_path} is invalid",
                {"path": str(self._catalog_path), "errors": e.errors(include_url=False)}
            ) from e

        logger.info(
            "Alert catalog loaded",
            extra={
                "catalog_version": self._catalog.version,
                "definitions": len(self._catalog.definitions),
            }
        )

    def get_catalog(self) -> AlertCatalog:
        """Get the loaded alert catalog."""
        return self._catalog
