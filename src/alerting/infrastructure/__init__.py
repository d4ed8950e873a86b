"""
Alerting Infrastructure Layer
==============================

Infrastructure implementations for the alerting module:
- Models: SQLAlchemy ORM models
- Repositories: Durable data access and the YAML catalog provider
- Memory: In-memory repositories for tests and local runs
"""

from alerting.infrastructure.models import (
    AlertEventModel,
    NotificationPreferenceModel,
    EscalationConfigModel,
    EscalationAuditLogModel,
)
from alerting.infrastructure.repositories import (
    SQLAlchemyAlertEventRepository,
    SQLAlchemyNotificationPreferenceRepository,
    SQLAlchemyEscalationRuleRepository,
    YAMLCatalogProvider,
)
from alerting.infrastructure.memory import (
    InMemoryAlertEventRepository,
    InMemoryNotificationPreferenceRepository,
    InMemoryEscalationRuleRepository,
    StaticCatalogProvider,
)

__all__ = [
    "AlertEventModel",
    "NotificationPreferenceModel",
    "EscalationConfigModel",
    "EscalationAuditLogModel",
    "SQLAlchemyAlertEventRepository",
    "SQLAlchemyNotificationPreferenceRepository",
    "SQLAlchemyEscalationRuleRepository",
    "YAMLCatalogProvider",
    "InMemoryAlertEventRepository",
    "InMemoryNotificationPreferenceRepository",
    "InMemoryEscalationRuleRepository",
    "StaticCatalogProvider",
]
