"""
Tests for the alert and SLA reporting services.
"""

from datetime import datetime, timedelta, timezone

import pytest

from alerting.application import (
    AlertService, IMetricsSnapshotProvider, SLAReportingService
)
from alerting.domain import MetricsSnapshot
from alerting.infrastructure import InMemoryAlertEventRepository, StaticCatalogProvider
from core import (
    AlertNotFoundOrAcknowledgedException, InvalidWindowException,
    ResourceNotFoundException, ValidationException
)


class FixedSnapshotProvider(IMetricsSnapshotProvider):
    """Returns the same metrics for every organization and records calls."""

    def __init__(self, metrics):
        self.metrics = metrics
        self.calls = []

    async def build(self, organization_id, window):
        self.calls.append((organization_id, window))
        return MetricsSnapshot(organization_id=organization_id, window=window, metrics=self.metrics)


@pytest.fixture
def alert_service(event_repository, catalog_provider):
    return AlertService(event_repository, catalog_provider)


@pytest.fixture
def reporting_service(event_repository):
    return SLAReportingService(event_repository)


class TestLowComplianceScenario:
    """Trigger, dedup, acknowledge and report one critical alert."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, alert_service, reporting_service, make_snapshot, now):
        snapshot = make_snapshot({"compliance_rate": 0.65})

        created = await alert_service.evaluate_and_record(snapshot, now)

        assert len(created) == 1
        event = created[0]
        assert event.alert_definition_id == "low-compliance"
        assert event.severity == "critical"
        assert event.message == "Compliance rate dropped to 0.65"

        # Still failing an hour later: no second active event
        assert await alert_service.evaluate_and_record(snapshot, now + timedelta(hours=1)) == []

        acknowledged = await alert_service.acknowledge(event.id, "user-7", now + timedelta(minutes=15))
        assert acknowledged.acknowledged_by == "user-7"

        metrics = await reporting_service.overview("org-1", window="day", now=now)

        assert metrics.total == 1
        assert metrics.acknowledged == 1
        assert metrics.mtta_mean == 900.0
        assert metrics.escalation_rate == 0.0
        assert metrics.by_severity["critical"].total == 1
        assert metrics.by_severity["warn"].total == 0

    @pytest.mark.asyncio
    async def test_healthy_snapshot_records_nothing(self, alert_service, make_snapshot, now):
        assert await alert_service.evaluate_and_record(make_snapshot({"compliance_rate": 0.97}), now) == []
        assert await alert_service.history("org-1") == []

    @pytest.mark.asyncio
    async def test_missing_metric_records_nothing(self, alert_service, make_snapshot, now):
        assert await alert_service.evaluate_and_record(make_snapshot({}), now) == []


class TestAcknowledge:
    """Acknowledgment through the service."""

    @pytest.mark.asyncio
    async def test_second_acknowledge_raises(self, alert_service, make_snapshot, now):
        [event] = await alert_service.evaluate_and_record(make_snapshot({"compliance_rate": 0.1}), now)
        await alert_service.acknowledge(event.id, "user-1", now + timedelta(minutes=1))

        with pytest.raises(AlertNotFoundOrAcknowledgedException) as exc_info:
            await alert_service.acknowledge(event.id, "user-2", now + timedelta(minutes=2))

        assert exc_info.value.event_id == event.id

    @pytest.mark.asyncio
    async def test_unknown_event_is_not_found(self, alert_service, now):
        with pytest.raises(ResourceNotFoundException):
            await alert_service.acknowledge("missing", "user-1", now)


class TestHistory:
    """History queries through the service."""

    @pytest.mark.asyncio
    async def test_status_filter(self, event_repository, now, make_snapshot):
        service = AlertService(event_repository, StaticCatalogProvider())
        created = await service.evaluate_and_record(
            make_snapshot({"compliance_rate": 0.5, "open_exceptions": 30}), now
        )
        assert [e.alert_definition_id for e in created] == [
            "low-compliance", "open-exceptions", "compliance-below-target"
        ]
        await service.acknowledge(created[1].id, "user-1", now + timedelta(minutes=1))

        active = await service.history("org-1", status="active")
        acknowledged = await service.history("org-1", status="acknowledged")

        assert len(active) == 2
        assert [e.alert_definition_id for e in acknowledged] == ["open-exceptions"]
        assert len(await service.history("org-1")) == 3

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, now, make_snapshot):
        service = AlertService(InMemoryAlertEventRepository(), StaticCatalogProvider())
        await service.evaluate_and_record(
            make_snapshot({"compliance_rate": 0.5, "open_exceptions": 30}), now
        )

        assert len(await service.history("org-1", limit=1)) == 1
        assert len(await service.history("org-1", limit=-5)) == 1
        assert len(await service.history("org-1", limit=10_000)) == 3

    @pytest.mark.asyncio
    async def test_invalid_status(self, alert_service):
        with pytest.raises(ValidationException):
            await alert_service.history("org-1", status="closed")


class TestEvaluateOrganization:
    """Evaluation through an external snapshot provider."""

    @pytest.mark.asyncio
    async def test_builds_snapshot_for_resolved_window(self, event_repository, catalog_provider, now):
        provider = FixedSnapshotProvider({"compliance_rate": 0.7})
        service = AlertService(event_repository, catalog_provider, provider)

        created = await service.evaluate_organization("org-9", window="week", now=now)

        assert [e.organization_id for e in created] == ["org-9"]
        [(organization_id, window)] = provider.calls
        assert organization_id == "org-9"
        assert window.days == 7
        assert window.contains(now)

    @pytest.mark.asyncio
    async def test_without_provider(self, alert_service):
        with pytest.raises(ValueError):
            await alert_service.evaluate_organization("org-1")


class TestReporting:
    """SLA overview and trends."""

    @pytest.mark.asyncio
    async def test_overview_of_empty_history(self, reporting_service, now):
        metrics = await reporting_service.overview("org-1", now=now)

        assert metrics.total == 0
        assert metrics.mtta_mean is None
        assert metrics.to_dict()["bySeverity"]["info"]["total"] == 0

    @pytest.mark.asyncio
    async def test_overview_excludes_events_outside_window(self, alert_service, reporting_service, make_snapshot, now):
        await alert_service.evaluate_and_record(make_snapshot({"compliance_rate": 0.5}), now - timedelta(days=10))

        assert (await reporting_service.overview("org-1", window="week", now=now)).total == 0
        assert (await reporting_service.overview("org-1", window="month", now=now)).total == 1

    @pytest.mark.asyncio
    async def test_event_on_shared_boundary_counted_once(self, alert_service, reporting_service, make_snapshot):
        midnight = datetime(2024, 3, 2, tzinfo=timezone.utc)
        await alert_service.evaluate_and_record(make_snapshot({"compliance_rate": 0.5}), midnight)

        earlier = await reporting_service.overview("org-1", from_="2024-03-01", to="2024-03-02", now=midnight)
        later = await reporting_service.overview("org-1", from_="2024-03-02", to="2024-03-03", now=midnight)

        assert earlier.total == 0
        assert later.total == 1

    @pytest.mark.asyncio
    async def test_trends_daily(self, alert_service, reporting_service, make_snapshot, now):
        [event] = await alert_service.evaluate_and_record(
            make_snapshot({"compliance_rate": 0.5}), now - timedelta(days=2)
        )
        await alert_service.acknowledge(event.id, "user-1", now - timedelta(days=2) + timedelta(minutes=1))
        await alert_service.evaluate_and_record(make_snapshot({"compliance_rate": 0.5}), now)

        buckets = await reporting_service.trends("org-1", group_by="day", window="week", now=now)

        assert len(buckets) == 7
        assert [b.total for b in buckets] == [0, 0, 0, 0, 1, 0, 1]
        assert buckets[-1].by_severity["critical"] == 1

    @pytest.mark.asyncio
    async def test_trends_reject_bad_window(self, reporting_service, now):
        with pytest.raises(InvalidWindowException):
            await reporting_service.trends("org-1", window="decade", now=now)
