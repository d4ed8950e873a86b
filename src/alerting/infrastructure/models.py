"""
Alerting Infrastructure Models
===============================

SQLAlchemy ORM models for the alerting module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON, Boolean, DateTime, Index, Integer, String, Text, TypeDecorator,
    UniqueConstraint, Uuid, text
)
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database import Base


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamps on every backend.

    SQLite drops tzinfo on read; values come back naive and are re-tagged
    as UTC here.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertEventModel(Base):
    """
    Database model for AlertEvent entity.

    Maps to the 'alert_events' table. The partial unique index allows at
    most one unacknowledged row per (organization, definition).
    """
    __tablename__ = "alert_events"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    organization_id: Mapped[str] = mapped_column(String(255), nullable=False)
    alert_definition_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Copied from the definition at trigger time
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    metric_path: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    message: Mapped[str] = mapped_column(Text, nullable=False)
    context_snapshot: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Lifecycle
    triggered_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index(
            "uq_alert_events_active",
            "organization_id",
            "alert_definition_id",
            unique=True,
            postgresql_where=text("acknowledged_at IS NULL"),
            sqlite_where=text("acknowledged_at IS NULL"),
        ),
        Index("ix_alert_events_org_triggered", "organization_id", "triggered_at"),
    )


class NotificationPreferenceModel(Base):
    """
    Database model for NotificationPreference.

    Maps to the 'notification_preferences' table.
    """
    __tablename__ = "notification_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "channel", "severity",
            name="uq_notification_preferences_key"
        ),
    )


class EscalationConfigModel(Base):
    """
    Database model for an organization's escalation override.

    Maps to the 'escalation_configs' table.
    """
    __tablename__ = "escalation_configs"

    organization_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    rule_type: Mapped[str] = mapped_column(String(20), nullable=False)
    rules: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)


class EscalationAuditLogModel(Base):
    """
    Append-only audit trail of escalation changes.

    Maps to the 'escalation_audit_log' table. Rows are never updated.
    """
    __tablename__ = "escalation_audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    rule_type: Mapped[str] = mapped_column(String(20), nullable=False)
    change: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    changed_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
