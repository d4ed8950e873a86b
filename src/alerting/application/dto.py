"""
Alerting Application DTOs
==========================

Data Transfer Objects for the serving layer.

These Pydantic models handle serialization/deserialization and validation
of the engine's inputs and outputs. Field names serialize in camelCase,
the shape dashboard clients already consume.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from alerting.domain import (
    AlertEvent, EscalationConfig, EscalationRule, NotificationPreference,
    SLAMetrics, SLASummary, TrendBucket
)
from config import VALID_SEVERITIES


# ========== Type Aliases for Literals ==========
SeverityStr = Literal["critical", "warn", "info"]
WindowStr = Literal["day", "week", "month", "quarter", "custom"]
GroupByStr = Literal["day", "week"]
AlertStatusStr = Literal["active", "acknowledged"]
EscalationRuleTypeStr = Literal["permanent", "temporary", "remove"]


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========== Request DTOs ==========

class WindowQueryDTO(CamelModel):
    """Time-window query parameters shared by reporting endpoints."""
    window: Optional[WindowStr] = None
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None


class HistoryQueryDTO(CamelModel):
    """Query parameters for alert history."""
    limit: int = Field(default=50, ge=1, le=500)
    status: Optional[AlertStatusStr] = None


class TrendQueryDTO(WindowQueryDTO):
    """Query parameters for trend series."""
    group_by: GroupByStr = "day"
    severity: Optional[SeverityStr] = None


class AcknowledgeRequest(CamelModel):
    """Request body for acknowledging an alert event."""
    id: str = Field(..., min_length=1, description="Alert event ID")
    user: str = Field(..., min_length=1, description="Acknowledging actor ID")


class NotificationPreferenceDTO(CamelModel):
    """One (channel, severity) -> enabled row."""
    channel: str = Field(..., min_length=1)
    severity: SeverityStr
    enabled: bool

    def to_domain(self, organization_id: str) -> NotificationPreference:
        return NotificationPreference(
            organization_id=organization_id,
            channel=self.channel,
            severity=self.severity,
            enabled=self.enabled,
        )

    @classmethod
    def from_domain(cls, pref: NotificationPreference) -> "NotificationPreferenceDTO":
        return cls(channel=pref.channel, severity=pref.severity, enabled=pref.enabled)


class EscalationRuleDTO(CamelModel):
    """Escalation delay and target for one severity."""
    severity: SeverityStr
    escalate_after_minutes: int = Field(..., gt=0)
    target_channel: str = Field(..., min_length=1)


class EscalationConfigDTO(CamelModel):
    """Escalation override for an organization."""
    rule_type: EscalationRuleTypeStr = "permanent"
    rules: List[EscalationRuleDTO] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_domain(self, organization_id: str) -> EscalationConfig:
        return EscalationConfig(
            organization_id=organization_id,
            rule_type=self.rule_type,
            rules=[EscalationRule(**rule.model_dump()) for rule in self.rules],
            expires_at=self.expires_at,
        )

    @classmethod
    def from_domain(cls, config: EscalationConfig) -> "EscalationConfigDTO":
        return cls(
            rule_type=config.rule_type,
            rules=[EscalationRuleDTO(**rule.model_dump()) for rule in config.rules],
            expires_at=config.expires_at,
            updated_at=config.updated_at,
        )


# ========== Response DTOs ==========

class AlertEventResponse(CamelModel):
    """Response model for an alert event."""
    id: str
    organization_id: str
    alert_definition_id: str
    severity: SeverityStr
    title: str
    metric_path: str
    message: str
    triggered_at: datetime
    context_snapshot: Dict[str, Any] = Field(default_factory=dict)
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None

    @classmethod
    def from_domain(cls, event: AlertEvent) -> "AlertEventResponse":
        return cls(
            id=event.id,
            organization_id=event.organization_id,
            alert_definition_id=event.alert_definition_id,
            severity=event.severity,
            title=event.title,
            metric_path=event.metric_path,
            message=event.message,
            triggered_at=event.triggered_at,
            context_snapshot=dict(event.context_snapshot),
            acknowledged_at=event.acknowledged_at,
            acknowledged_by=event.acknowledged_by,
        )


class SLASummaryResponse(CamelModel):
    """SLA statistics for one set of events."""
    total: int
    acknowledged: int
    unacknowledged: int
    mtta_mean: Optional[float] = None
    mtta_median: Optional[float] = None
    mtta_95th: Optional[float] = Field(None, alias="mtta95th")
    acknowledged_rate: float
    escalation_rate: float

    @classmethod
    def from_domain(cls, summary: SLASummary) -> "SLASummaryResponse":
        return cls(
            total=summary.total,
            acknowledged=summary.acknowledged,
            unacknowledged=summary.unacknowledged,
            mtta_mean=summary.mtta_mean,
            mtta_median=summary.mtta_median,
            mtta_95th=summary.mtta_95th,
            acknowledged_rate=summary.acknowledged_rate,
            escalation_rate=summary.escalation_rate,
        )


class SLAMetricsResponse(SLASummaryResponse):
    """SLA statistics with the fixed per-severity breakdown."""
    by_severity: Dict[SeverityStr, SLASummaryResponse]

    @classmethod
    def from_domain(cls, metrics: SLAMetrics) -> "SLAMetricsResponse":
        base = SLASummaryResponse.from_domain(metrics)
        return cls(
            **base.model_dump(),
            by_severity={
                severity: SLASummaryResponse.from_domain(
                    metrics.by_severity.get(severity, SLASummary())
                )
                for severity in VALID_SEVERITIES
            },
        )


class TrendBucketResponse(CamelModel):
    """Response model for a trend bucket."""
    start: datetime
    end: datetime
    total: int
    by_severity: Dict[SeverityStr, int]

    @classmethod
    def from_domain(cls, bucket: TrendBucket) -> "TrendBucketResponse":
        return cls(
            start=bucket.start,
            end=bucket.end,
            total=bucket.total,
            by_severity=dict(bucket.by_severity),
        )
