"""
Alerting Application Layer
===========================

Application layer for the alerting module.

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from alerting.application.dto import (
    WindowQueryDTO,
    HistoryQueryDTO,
    TrendQueryDTO,
    AcknowledgeRequest,
    NotificationPreferenceDTO,
    EscalationRuleDTO,
    EscalationConfigDTO,
    AlertEventResponse,
    SLASummaryResponse,
    SLAMetricsResponse,
    TrendBucketResponse,
)
from alerting.application.services import (
    AlertService,
    SLAReportingService,
    NotificationPreferenceService,
    EscalationService,
    IAlertEventRepository,
    INotificationPreferenceRepository,
    IEscalationRuleRepository,
    IAlertCatalogProvider,
    IMetricsSnapshotProvider,
)

__all__ = [
    # DTOs
    "WindowQueryDTO",
    "HistoryQueryDTO",
    "TrendQueryDTO",
    "AcknowledgeRequest",
    "NotificationPreferenceDTO",
    "EscalationRuleDTO",
    "EscalationConfigDTO",
    "AlertEventResponse",
    "SLASummaryResponse",
    "SLAMetricsResponse",
    "TrendBucketResponse",
    # Services
    "AlertService",
    "SLAReportingService",
    "NotificationPreferenceService",
    "EscalationService",
    # Repository Interfaces
    "IAlertEventRepository",
    "INotificationPreferenceRepository",
    "IEscalationRuleRepository",
    "IAlertCatalogProvider",
    "IMetricsSnapshotProvider",
]
