"""
Alerting Domain Layer
=====================

Domain layer for the alerting module.

Contains:
- Entities: Core business objects with identity (AlertEvent) and the
  records exchanged with collaborators (MetricsSnapshot, TriggeredAlert)
- Value Objects: Immutable objects defined by attributes (TimeWindow,
  AlertDefinition, EscalationConfig, SLAMetrics, TrendBucket)
- Domain Services: Stateless business logic (WindowResolver,
  AlertEvaluator, SLACalculator, TrendAggregator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from alerting.domain.value_objects import (
    TimeWindow,
    AlertDefinition,
    AlertCatalog,
    DEFAULT_ALERT_CATALOG,
    EscalationRule,
    EscalationConfig,
    SLASummary,
    SLAMetrics,
    TrendBucket,
)
from alerting.domain.entities import (
    MetricsSnapshot,
    TriggeredAlert,
    AlertEvent,
    NotificationPreference,
    EscalationAuditEntry,
)
from alerting.domain.windows import WindowResolver
from alerting.domain.evaluation import AlertEvaluator
from alerting.domain.analytics import SLACalculator, TrendAggregator

__all__ = [
    # Entities
    "MetricsSnapshot",
    "TriggeredAlert",
    "AlertEvent",
    "NotificationPreference",
    "EscalationAuditEntry",
    # Value Objects
    "TimeWindow",
    "AlertDefinition",
    "AlertCatalog",
    "DEFAULT_ALERT_CATALOG",
    "EscalationRule",
    "EscalationConfig",
    "SLASummary",
    "SLAMetrics",
    "TrendBucket",
    # Domain Services
    "WindowResolver",
    "AlertEvaluator",
    "SLACalculator",
    "TrendAggregator",
]
