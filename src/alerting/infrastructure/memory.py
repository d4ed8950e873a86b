"""
In-Memory Repositories
=======================

Process-local implementations of the repository interfaces for tests and
local runs. Each instance owns its state; nothing is shared at module
level. An ``asyncio.Lock`` serializes every read-check-write sequence so
the dedup and single-acknowledgment guarantees hold under concurrency.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from alerting.application import (
    IAlertEventRepository, INotificationPreferenceRepository,
    IEscalationRuleRepository, IAlertCatalogProvider
)
from alerting.domain import (
    AlertCatalog, AlertEvent, DEFAULT_ALERT_CATALOG, EscalationAuditEntry,
    EscalationConfig, NotificationPreference, TriggeredAlert
)
from alerting.domain.value_objects import ensure_utc
from config import EscalationRuleType


def _copy(event: AlertEvent) -> AlertEvent:
    return replace(event, context_snapshot=dict(event.context_snapshot))


class InMemoryAlertEventRepository(IAlertEventRepository):
    """Alert event store backed by a dict, returning copies of stored events."""

    def __init__(self):
        self._events: Dict[str, AlertEvent] = {}
        self._active: Dict[Tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def record(
        self,
        organization_id: str,
        triggered: Sequence[TriggeredAlert],
        now: Optional[datetime] = None
    ) -> List[AlertEvent]:
        now = ensure_utc(now or datetime.now(timezone.utc))
        created = []

        async with self._lock:
            for alert in triggered:
                key = (organization_id, alert.definition_id)
                if key in self._active:
                    continue

                event = AlertEvent(
                    id=str(uuid4()),
                    organization_id=organization_id,
                    alert_definition_id=alert.definition_id,
                    severity=alert.severity,
                    title=alert.title,
                    metric_path=alert.metric_path,
                    triggered_at=now,
                    message=alert.message,
                    context_snapshot=alert.context_snapshot(),
                )
                self._events[event.id] = event
                self._active[key] = event.id
                created.append(_copy(event))

        return created

    async def list(
        self,
        organization_id: str,
        limit: int = 50,
        acknowledged: Optional[bool] = None
    ) -> List[AlertEvent]:
        async with self._lock:
            events = [
                event for event in self._events.values()
                if event.organization_id == organization_id
                and (acknowledged is None or event.is_acknowledged == acknowledged)
            ]
        # Insertion order breaks ties between events triggered at the same instant
        ordered = sorted(
            enumerate(events),
            key=lambda pair: (pair[1].triggered_at, pair[0]),
            reverse=True
        )
        return [_copy(event) for _, event in ordered[:limit]]

    async def list_between(
        self,
        organization_id: str,
        from_: datetime,
        to: datetime
    ) -> List[AlertEvent]:
        async with self._lock:
            events = [
                event for event in self._events.values()
                if event.organization_id == organization_id
                and from_ <= event.triggered_at <= to
            ]
        return [_copy(event) for event in sorted(events, key=lambda e: e.triggered_at)]

    async def get(self, event_id: str) -> Optional[AlertEvent]:
        async with self._lock:
            event = self._events.get(event_id)
            return _copy(event) if event else None

    async def acknowledge(
        self,
        event_id: str,
        actor_id: str,
        now: Optional[datetime] = None
    ) -> bool:
        now = ensure_utc(now or datetime.now(timezone.utc))

        async with self._lock:
            event = self._events.get(event_id)
            if event is None or event.is_acknowledged:
                return False
            event.acknowledge(actor_id, now)
            self._active.pop((event.organization_id, event.alert_definition_id), None)
            return True


class InMemoryNotificationPreferenceRepository(INotificationPreferenceRepository):
    """Notification preferences keyed by (organization, channel, severity)."""

    def __init__(self):
        self._rows: Dict[Tuple[str, str, str], NotificationPreference] = {}
        self._lock = asyncio.Lock()

    async def get(self, organization_id: str) -> List[NotificationPreference]:
        async with self._lock:
            rows = [pref for key, pref in self._rows.items() if key[0] == organization_id]
        return sorted(rows, key=lambda pref: (pref.channel, pref.severity))

    async def set(
        self,
        organization_id: str,
        preferences: Sequence[NotificationPreference]
    ) -> None:
        async with self._lock:
            for pref in preferences:
                self._rows[(organization_id, pref.channel, pref.severity)] = replace(
                    pref, organization_id=organization_id
                )


class InMemoryEscalationRuleRepository(IEscalationRuleRepository):
    """Escalation configs plus their append-only audit log."""

    def __init__(self):
        self._configs: Dict[str, EscalationConfig] = {}
        self._audit: List[EscalationAuditEntry] = []
        self._lock = asyncio.Lock()

    async def get(self, organization_id: str) -> Optional[EscalationConfig]:
        async with self._lock:
            return self._configs.get(organization_id)

    async def set(
        self,
        organization_id: str,
        config: EscalationConfig,
        changed_by: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        now = ensure_utc(now or datetime.now(timezone.utc))

        async with self._lock:
            if config.rule_type == EscalationRuleType.REMOVE:
                self._configs.pop(organization_id, None)
            else:
                self._configs[organization_id] = config.model_copy(update={"updated_at": now})

            self._audit.append(EscalationAuditEntry(
                organization_id=organization_id,
                rule_type=config.rule_type,
                change=config.model_dump(mode="json"),
                changed_by=changed_by,
                created_at=now,
            ))

    async def audit_log(self, organization_id: str) -> List[EscalationAuditEntry]:
        async with self._lock:
            return [entry for entry in self._audit if entry.organization_id == organization_id]


class StaticCatalogProvider(IAlertCatalogProvider):
    """Serves a catalog held in memory, the built-in one by default."""

    def __init__(self, catalog: Optional[AlertCatalog] = None):
        self._catalog = catalog or DEFAULT_ALERT_CATALOG

    def get_catalog(self) -> AlertCatalog:
        return self._catalog
