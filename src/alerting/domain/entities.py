"""
Alerting Domain Entities
=========================

Pure Python domain entities for alerting and SLA reporting.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from config import VALID_SEVERITIES
from core import DomainException
from alerting.domain.value_objects import TimeWindow, is_numeric


@dataclass(frozen=True)
class MetricsSnapshot:
    """
    Point-in-time metric values for one organization and one window.

    Built by an external collaborator; the engine only reads it.
    """

    organization_id: str
    window: TimeWindow
    metrics: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TriggeredAlert:
    """Result of a definition whose condition held against a snapshot."""

    definition_id: str
    title: str
    severity: str
    message: str
    metric_path: str
    context_value: Any
    comparator: str
    threshold: Any

    def context_snapshot(self) -> Dict[str, Any]:
        """JSON-safe audit record of the values that caused the trigger."""
        return {
            "metric_path": self.metric_path,
            "value": float(self.context_value) if is_numeric(self.context_value) else self.context_value,
            "comparator": self.comparator,
            "threshold": self.threshold,
        }


@dataclass
class AlertEvent:
    """
    Alert event entity.

    One row of the alert audit trail. Created when a definition newly
    triggers for an organization, mutated only by acknowledgment and
    never deleted.
    """

    id: str
    organization_id: str
    alert_definition_id: str
    severity: str
    triggered_at: datetime
    message: str
    title: str = ""
    metric_path: str = ""
    context_snapshot: Dict[str, Any] = field(default_factory=dict)
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None

    def __post_init__(self):
        """Validate event on initialization."""
        if self.severity not in VALID_SEVERITIES:
            raise ValueError(f"severity must be one of {VALID_SEVERITIES}")

        if self.acknowledged_at and self.acknowledged_at < self.triggered_at:
            raise ValueError("acknowledged_at cannot be before triggered_at")

    @property
    def is_acknowledged(self) -> bool:
        """Check if event has been acknowledged."""
        return self.acknowledged_at is not None

    @property
    def time_to_acknowledge_seconds(self) -> Optional[float]:
        """Seconds between trigger and acknowledgment, None while open."""
        if self.acknowledged_at is None:
            return None
        return (self.acknowledged_at - self.triggered_at).total_seconds()

    def acknowledge(self, actor_id: str, timestamp: Optional[datetime] = None) -> None:
        """
        Acknowledge the event.

        Acknowledgment is one-way. A timestamp earlier than the trigger time
        (clock skew between writers) is clamped to the trigger time.
        """
        if self.acknowledged_at is not None:
            raise DomainException(
                f"Alert event {self.id} already acknowledged",
                {"event_id": self.id, "acknowledged_by": self.acknowledged_by}
            )
        at = timestamp or datetime.now(timezone.utc)
        self.acknowledged_at = max(at, self.triggered_at)
        self.acknowledged_by = actor_id


@dataclass(frozen=True)
class NotificationPreference:
    """Whether an organization is notified on a channel for a severity."""

    organization_id: str
    channel: str
    severity: str
    enabled: bool

    @property
    def key(self) -> tuple[str, str]:
        return (self.channel, self.severity)


@dataclass(frozen=True)
class EscalationAuditEntry:
    """Append-only record of one escalation configuration change."""

    organization_id: str
    rule_type: str
    change: Dict[str, Any]
    created_at: datetime
    changed_by: Optional[str] = None
