"""
Alerting Application Services
==============================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from alerting.domain import (
    AlertCatalog, AlertEvent, AlertEvaluator, EscalationAuditEntry,
    EscalationConfig, MetricsSnapshot, NotificationPreference,
    SLACalculator, SLAMetrics, TimeWindow, TrendAggregator, TrendBucket,
    TriggeredAlert, WindowResolver
)
from config import (
    settings, TrendGroupBy, EscalationRuleType,
    DEFAULT_ENABLED_SEVERITIES, VALID_SEVERITIES
)
from core import AlertNotFoundOrAcknowledgedException, ValidationException
from shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IAlertEventRepository(ABC):
    """Interface for alert event data access."""

    @abstractmethod
    async def record(
        self,
        organization_id: str,
        triggered: Sequence[TriggeredAlert],
        now: Optional[datetime] = None
    ) -> List[AlertEvent]:
        """
        Persist triggered alerts, skipping any whose definition already has
        an unacknowledged event for the organization.

        Returns:
            Only the newly created events
        """

    @abstractmethod
    async def list(
        self,
        organization_id: str,
        limit: int = 50,
        acknowledged: Optional[bool] = None
    ) -> List[AlertEvent]:
        """List events most-recent-first, optionally by acknowledgment state."""

    @abstractmethod
    async def list_between(
        self,
        organization_id: str,
        from_: datetime,
        to: datetime
    ) -> List[AlertEvent]:
        """Events triggered within ``[from_, to]``, oldest first."""

    @abstractmethod
    async def get(self, event_id: str) -> Optional[AlertEvent]:
        """Get event by ID."""

    @abstractmethod
    async def acknowledge(
        self,
        event_id: str,
        actor_id: str,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Transition an event to acknowledged.

        Returns:
            False if the event does not exist or is already acknowledged
        """


class INotificationPreferenceRepository(ABC):
    """Interface for notification preference data access."""

    @abstractmethod
    async def get(self, organization_id: str) -> List[NotificationPreference]:
        """Stored preference rows for the organization (may be empty)."""

    @abstractmethod
    async def set(
        self,
        organization_id: str,
        preferences: Sequence[NotificationPreference]
    ) -> None:
        """Upsert rows by (channel, severity), replacing prior values."""


class IEscalationRuleRepository(ABC):
    """Interface for escalation configuration data access."""

    @abstractmethod
    async def get(self, organization_id: str) -> Optional[EscalationConfig]:
        """Stored configuration, or None."""

    @abstractmethod
    async def set(
        self,
        organization_id: str,
        config: EscalationConfig,
        changed_by: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        """Store (or, for ``remove``, delete) the config and append one audit row."""

    @abstractmethod
    async def audit_log(self, organization_id: str) -> List[EscalationAuditEntry]:
        """Audit rows oldest first. Read by compliance tooling only."""


class IAlertCatalogProvider(ABC):
    """Interface for alert catalog access."""

    @abstractmethod
    def get_catalog(self) -> AlertCatalog:
        """Get the deployed alert catalog."""


class IMetricsSnapshotProvider(ABC):
    """Boundary to the external component that computes metric snapshots."""

    @abstractmethod
    async def build(self, organization_id: str, window: TimeWindow) -> MetricsSnapshot:
        """Build the snapshot for one organization and window."""


# ========== Application Services ==========

class AlertService:
    """
    Service for evaluating, recording and acknowledging alerts.

    Coordinates the pure evaluator with the event store.
    """

    def __init__(
        self,
        event_repository: IAlertEventRepository,
        catalog_provider: IAlertCatalogProvider,
        snapshot_provider: Optional[IMetricsSnapshotProvider] = None
    ):
        self._event_repo = event_repository
        self._catalog_provider = catalog_provider
        self._snapshot_provider = snapshot_provider

    def evaluate(self, snapshot: MetricsSnapshot) -> List[TriggeredAlert]:
        """Evaluate the deployed catalog against a snapshot without recording."""
        catalog = self._catalog_provider.get_catalog()
        return AlertEvaluator.evaluate(snapshot, catalog.definitions)

    async def evaluate_and_record(
        self,
        snapshot: MetricsSnapshot,
        now: Optional[datetime] = None
    ) -> List[AlertEvent]:
        """
        Evaluate a snapshot and persist newly triggered alerts.

        Returns:
            Events created by this call; re-triggered active alerts are
            deduplicated and not returned
        """
        triggered = self.evaluate(snapshot)
        if not triggered:
            return []

        with log_latency(logger, "record_alerts", organization_id=snapshot.organization_id):
            created = await self._event_repo.record(snapshot.organization_id, triggered, now)

        logger.info(
            "Alerts evaluated",
            extra={
                "organization_id": snapshot.organization_id,
                "triggered_count": len(triggered),
                "created_count": len(created),
                "deduplicated_count": len(triggered) - len(created),
            }
        )
        return created

    async def evaluate_organization(
        self,
        organization_id: str,
        window: Optional[str] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[AlertEvent]:
        """Build a snapshot through the snapshot provider, then evaluate and record."""
        if self._snapshot_provider is None:
            raise ValueError("Metrics snapshot provider not configured")

        resolved = WindowResolver.resolve(window, from_, to, now=now)
        snapshot = await self._snapshot_provider.build(organization_id, resolved)
        return await self.evaluate_and_record(snapshot, now)

    async def history(
        self,
        organization_id: str,
        limit: Optional[int] = None,
        status: Optional[str] = None
    ) -> List[AlertEvent]:
        """
        Alert history, most recent first.

        Args:
            organization_id: Organization to read
            limit: Max events, clamped to ``[1, history_max_limit]``
            status: ``active``, ``acknowledged`` or None for both
        """
        if status not in (None, "active", "acknowledged"):
            raise ValidationException(
                "status must be 'active' or 'acknowledged'",
                {"status": status}
            )
        limit = limit or settings.history_default_limit
        limit = max(1, min(limit, settings.history_max_limit))
        acknowledged = None if status is None else status == "acknowledged"
        return await self._event_repo.list(organization_id, limit, acknowledged)

    async def acknowledge(
        self,
        event_id: str,
        actor_id: str,
        now: Optional[datetime] = None
    ) -> AlertEvent:
        """
        Acknowledge an alert event.

        Raises:
            AlertNotFoundOrAcknowledgedException: Missing or already acknowledged
        """
        if not await self._event_repo.acknowledge(event_id, actor_id, now):
            logger.info(
                "Acknowledge rejected",
                extra={"event_id": event_id, "actor_id": actor_id}
            )
            raise AlertNotFoundOrAcknowledgedException(event_id)

        event = await self._event_repo.get(event_id)
        logger.info(
            "Alert acknowledged",
            extra={
                "event_id": event_id,
                "actor_id": actor_id,
                "organization_id": event.organization_id if event else None,
            }
        )
        return event


class SLAReportingService:
    """Service for SLA and trend reporting over recorded alert history."""

    def __init__(self, event_repository: IAlertEventRepository):
        self._event_repo = event_repository

    async def _events_in(self, organization_id: str, window: TimeWindow) -> List[AlertEvent]:
        return await self._event_repo.list_between(organization_id, window.from_, window.to)

    async def overview(
        self,
        organization_id: str,
        window: Optional[str] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> SLAMetrics:
        """SLA metrics for events triggered within the half-open resolved window."""
        resolved = WindowResolver.resolve(window, from_, to, now=now)
        events = [
            event for event in await self._events_in(organization_id, resolved)
            if resolved.contains(event.triggered_at)
        ]
        return SLACalculator.compute(events)

    async def trends(
        self,
        organization_id: str,
        group_by: str = TrendGroupBy.DAY,
        severity: Optional[str] = None,
        window: Optional[str] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[TrendBucket]:
        """Gap-filled trend buckets for the resolved window."""
        resolved = WindowResolver.resolve(window, from_, to, now=now)
        events = await self._events_in(organization_id, resolved)
        return TrendAggregator.trends(events, resolved.from_, resolved.to, group_by, severity)


class NotificationPreferenceService:
    """
    Service for notification preferences and delivery eligibility.

    An organization without any stored rows gets the default policy:
    critical and warn enabled, info disabled, on every known channel.
    """

    def __init__(
        self,
        preference_repository: INotificationPreferenceRepository,
        channels: Optional[Sequence[str]] = None
    ):
        self._pref_repo = preference_repository
        self._channels = list(channels or settings.notification_channels)

    @property
    def channels(self) -> List[str]:
        return list(self._channels)

    def default_preferences(self, organization_id: str) -> List[NotificationPreference]:
        return [
            NotificationPreference(
                organization_id=organization_id,
                channel=channel,
                severity=severity,
                enabled=DEFAULT_ENABLED_SEVERITIES[severity],
            )
            for channel in self._channels
            for severity in VALID_SEVERITIES
        ]

    async def get_preferences(self, organization_id: str) -> List[NotificationPreference]:
        stored = await self._pref_repo.get(organization_id)
        if not stored:
            return self.default_preferences(organization_id)
        return stored

    async def set_preferences(
        self,
        organization_id: str,
        preferences: Sequence[NotificationPreference]
    ) -> List[NotificationPreference]:
        """
        Upsert preferences by (channel, severity).

        Every row is validated before anything is written. Duplicate keys
        within one call resolve last-wins.

        Raises:
            ValidationException: Unknown channel/severity or foreign organization
        """
        merged: Dict[tuple, NotificationPreference] = {}
        for pref in preferences:
            if pref.organization_id != organization_id:
                raise ValidationException(
                    "Preference belongs to another organization",
                    {"organization_id": pref.organization_id}
                )
            if pref.channel not in self._channels:
                raise ValidationException(
                    f"Unknown notification channel '{pref.channel}'",
                    {"channel": pref.channel, "allowed": self._channels}
                )
            if pref.severity not in VALID_SEVERITIES:
                raise ValidationException(
                    f"Unknown severity '{pref.severity}'",
                    {"severity": pref.severity}
                )
            merged[pref.key] = pref

        await self._pref_repo.set(organization_id, list(merged.values()))
        logger.info(
            "Notification preferences updated",
            extra={"organization_id": organization_id, "rows": len(merged)}
        )
        return await self.get_preferences(organization_id)

    async def is_enabled(self, organization_id: str, channel: str, severity: str) -> bool:
        """Whether a channel/severity combination may notify. Absent rows are disabled."""
        for pref in await self.get_preferences(organization_id):
            if pref.channel == channel and pref.severity == severity:
                return pref.enabled
        return False

    async def eligible_channels(self, organization_id: str, severity: str) -> List[str]:
        """Channels that may notify for ``severity``, in configured channel order."""
        enabled = {
            pref.channel
            for pref in await self.get_preferences(organization_id)
            if pref.severity == severity and pref.enabled
        }
        return [channel for channel in self._channels if channel in enabled]


class EscalationService:
    """Service for per-organization escalation overrides."""

    def __init__(
        self,
        rule_repository: IEscalationRuleRepository,
        channels: Optional[Sequence[str]] = None
    ):
        self._rule_repo = rule_repository
        self._channels = list(channels or settings.notification_channels)

    async def get_config(
        self,
        organization_id: str,
        now: Optional[datetime] = None
    ) -> EscalationConfig:
        """Effective configuration; expired temporary overrides read as empty."""
        config = await self._rule_repo.get(organization_id)
        if config is None or config.is_expired(now):
            return EscalationConfig.empty(organization_id)
        return config

    async def set_config(
        self,
        organization_id: str,
        config: EscalationConfig,
        changed_by: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> EscalationConfig:
        """
        Apply an escalation change and append its audit row.

        Raises:
            ValidationException: Foreign organization or unknown target channel
        """
        if config.organization_id != organization_id:
            raise ValidationException(
                "Escalation config belongs to another organization",
                {"organization_id": config.organization_id}
            )
        for rule in config.rules:
            if rule.target_channel not in self._channels:
                raise ValidationException(
                    f"Unknown escalation channel '{rule.target_channel}'",
                    {"channel": rule.target_channel, "allowed": self._channels}
                )

        now = now or datetime.now(timezone.utc)
        if config.rule_type == EscalationRuleType.TEMPORARY and config.is_expired(now):
            raise ValidationException(
                "Temporary escalation rules must expire in the future",
                {"expires_at": config.expires_at.isoformat()}
            )

        config = config.model_copy(update={"updated_at": now})
        await self._rule_repo.set(organization_id, config, changed_by, now)
        logger.info(
            "Escalation config changed",
            extra={
                "organization_id": organization_id,
                "rule_type": config.rule_type,
                "rules": len(config.rules),
                "changed_by": changed_by,
            }
        )
        return await self.get_config(organization_id, now)
