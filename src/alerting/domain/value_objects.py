"""
Alerting Value Objects
=======================

Immutable value objects for the alerting domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from numbers import Real
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import (
    Severity, EscalationRuleType,
    VALID_SEVERITIES, VALID_COMPARATORS, ORDERING_COMPARATORS,
    VALID_ESCALATION_RULE_TYPES
)


def is_numeric(value: Any) -> bool:
    """Real numbers and Decimal; bool is not numeric."""
    return isinstance(value, (Real, Decimal)) and not isinstance(value, bool)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeWindow:
    """
    Half-open ``[from_, to)`` time range used to scope metrics and history.

    ``from_`` carries a trailing underscore because ``from`` is a keyword.
    """

    from_: datetime
    to: datetime

    def __post_init__(self):
        if self.from_ >= self.to:
            raise ValueError("window start must be before window end")

    @property
    def duration(self) -> timedelta:
        return self.to - self.from_

    @property
    def days(self) -> float:
        return self.duration.total_seconds() / 86400

    def contains(self, timestamp: datetime) -> bool:
        return self.from_ <= timestamp < self.to

    def to_dict(self) -> dict:
        return {"from": self.from_.isoformat(), "to": self.to.isoformat()}


class AlertDefinition(BaseModel):
    """
    One rule of the alert catalog.

    A definition triggers when ``<metric value> <comparator> <threshold>``
    holds for a snapshot. Definitions are immutable at runtime.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable definition identifier")
    title: str = Field(..., min_length=1, description="Human readable title")
    metric_path: str = Field(..., min_length=1, description="Dotted key into the snapshot")
    comparator: str = Field(..., description="One of >, >=, <, <=, ==, !=")
    threshold: Union[bool, int, float, str] = Field(..., description="Value compared against")
    severity: str = Field(..., description="critical, warn or info")
    message_template: str = Field(
        default="{title}: {metric} is {value}",
        description="str.format template rendered with snapshot values"
    )

    @field_validator("comparator")
    @classmethod
    def validate_comparator(cls, v: str) -> str:
        if v not in VALID_COMPARATORS:
            raise ValueError(f"comparator must be one of {VALID_COMPARATORS}")
        return v

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v: str) -> str:
        if v not in VALID_SEVERITIES:
            raise ValueError(f"severity must be one of {VALID_SEVERITIES}")
        return v

    @model_validator(mode="after")
    def validate_threshold_for_comparator(self) -> "AlertDefinition":
        """Ordering comparators only make sense for numeric thresholds."""
        if self.comparator in ORDERING_COMPARATORS and not is_numeric(self.threshold):
            raise ValueError(
                f"comparator {self.comparator} requires a numeric threshold"
            )
        return self


class AlertCatalog(BaseModel):
    """
    Versioned, ordered set of alert definitions.

    Catalog order is evaluation order.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field(default="1", description="Catalog version label")
    definitions: List[AlertDefinition] = Field(default_factory=list)

    @field_validator("definitions")
    @classmethod
    def validate_unique_ids(cls, v: List[AlertDefinition]) -> List[AlertDefinition]:
        seen = set()
        for definition in v:
            if definition.id in seen:
                raise ValueError(f"duplicate alert definition id: {definition.id}")
            seen.add(definition.id)
        return v

    def get(self, definition_id: str) -> Optional[AlertDefinition]:
        for definition in self.definitions:
            if definition.id == definition_id:
                return definition
        return None


DEFAULT_ALERT_CATALOG = AlertCatalog(
    version="builtin-1",
    definitions=[
        AlertDefinition(
            id="low-compliance",
            title="Low compliance rate",
            metric_path="compliance_rate",
            comparator="<",
            threshold=0.8,
            severity=Severity.CRITICAL,
            message_template="Compliance rate dropped to {value} (threshold {threshold})",
        ),
        AlertDefinition(
            id="open-exceptions",
            title="Open compliance exceptions",
            metric_path="open_exceptions",
            comparator=">",
            threshold=10,
            severity=Severity.WARN,
            message_template="{value} compliance exceptions are open (threshold {threshold})",
        ),
        AlertDefinition(
            id="expiring-documents",
            title="Documents expiring",
            metric_path="document_expiry_count",
            comparator=">",
            threshold=0,
            severity=Severity.WARN,
            message_template="{value} documents expire within the window",
        ),
        AlertDefinition(
            id="ocr-failure-rate",
            title="Scan failures",
            metric_path="ocr.failure_rate",
            comparator=">=",
            threshold=0.1,
            severity=Severity.WARN,
            message_template="Scan failure rate is {value}",
        ),
        AlertDefinition(
            id="compliance-below-target",
            title="Compliance below target",
            metric_path="compliance_rate",
            comparator="<",
            threshold=0.95,
            severity=Severity.INFO,
            message_template="Compliance rate {value} is below the {threshold} target",
        ),
    ],
)


class EscalationRule(BaseModel):
    """Escalate events of ``severity`` left unacknowledged past a delay."""

    model_config = ConfigDict(frozen=True)

    severity: str = Field(..., description="Severity the rule applies to")
    escalate_after_minutes: int = Field(..., gt=0, description="Delay before escalating")
    target_channel: str = Field(..., min_length=1, description="Channel notified on escalation")

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v: str) -> str:
        if v not in VALID_SEVERITIES:
            raise ValueError(f"severity must be one of {VALID_SEVERITIES}")
        return v

    @property
    def escalate_after(self) -> timedelta:
        return timedelta(minutes=self.escalate_after_minutes)


class EscalationConfig(BaseModel):
    """
    Per-organization escalation override.

    ``permanent`` applies until replaced, ``temporary`` applies until
    ``expires_at``, and ``remove`` clears any stored override.
    """

    model_config = ConfigDict(frozen=True)

    organization_id: str = Field(..., min_length=1)
    rule_type: str = Field(default=EscalationRuleType.PERMANENT)
    rules: List[EscalationRule] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("rule_type")
    @classmethod
    def validate_rule_type(cls, v: str) -> str:
        if v not in VALID_ESCALATION_RULE_TYPES:
            raise ValueError(f"rule_type must be one of {VALID_ESCALATION_RULE_TYPES}")
        return v

    @field_validator("expires_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @field_validator("rules")
    @classmethod
    def validate_one_rule_per_severity(cls, v: List[EscalationRule]) -> List[EscalationRule]:
        severities = [rule.severity for rule in v]
        if len(severities) != len(set(severities)):
            raise ValueError("at most one escalation rule per severity")
        return v

    @model_validator(mode="after")
    def validate_rule_type_shape(self) -> "EscalationConfig":
        if self.rule_type == EscalationRuleType.TEMPORARY and self.expires_at is None:
            raise ValueError("temporary escalation rules require expires_at")
        if self.rule_type != EscalationRuleType.TEMPORARY and self.expires_at is not None:
            raise ValueError("expires_at is only valid for temporary escalation rules")
        if self.rule_type == EscalationRuleType.REMOVE and self.rules:
            raise ValueError("remove carries no rules")
        return self

    def rule_for(self, severity: str) -> Optional[EscalationRule]:
        for rule in self.rules:
            if rule.severity == severity:
                return rule
        return None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.rule_type != EscalationRuleType.TEMPORARY or self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    @classmethod
    def empty(cls, organization_id: str) -> "EscalationConfig":
        """Configuration of an organization without overrides."""
        return cls(organization_id=organization_id)


@dataclass(frozen=True)
class SLASummary:
    """Acknowledgment statistics over one set of alert events."""

    total: int = 0
    acknowledged: int = 0
    unacknowledged: int = 0
    mtta_mean: Optional[float] = None
    mtta_median: Optional[float] = None
    mtta_95th: Optional[float] = None
    acknowledged_rate: float = 0.0
    escalation_rate: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for dashboard responses."""
        return {
            "total": self.total,
            "acknowledged": self.acknowledged,
            "unacknowledged": self.unacknowledged,
            "mttaMean": self.mtta_mean,
            "mttaMedian": self.mtta_median,
            "mtta95th": self.mtta_95th,
            "acknowledgedRate": self.acknowledged_rate,
            "escalationRate": self.escalation_rate,
        }


@dataclass(frozen=True)
class SLAMetrics(SLASummary):
    """
    SLA statistics with a per-severity breakdown.

    ``by_severity`` always holds every severity, zero-filled when no
    events exist at that severity.
    """

    by_severity: Dict[str, SLASummary] = field(default_factory=dict)

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["bySeverity"] = {
            severity: self.by_severity.get(severity, SLASummary()).to_dict()
            for severity in VALID_SEVERITIES
        }
        return result


@dataclass(frozen=True)
class TrendBucket:
    """Event counts for one ``[start, end)`` bucket of a trend series."""

    start: datetime
    end: datetime
    total: int
    by_severity: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "total": self.total,
            "bySeverity": dict(self.by_severity),
        }
