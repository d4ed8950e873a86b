"""
Tests for notification preferences.
"""

import pytest

from alerting.application import NotificationPreferenceService
from alerting.domain import NotificationPreference
from core import ValidationException


def pref(channel, severity, enabled, organization_id="org-x"):
    return NotificationPreference(
        organization_id=organization_id, channel=channel, severity=severity, enabled=enabled
    )


@pytest.fixture
def service(preference_repository):
    return NotificationPreferenceService(preference_repository, channels=["email", "sms"])


def as_grid(preferences):
    return {(p.channel, p.severity): p.enabled for p in preferences}


class TestDefaults:
    """Organizations without stored rows get the default policy."""

    @pytest.mark.asyncio
    async def test_default_grid(self, service):
        prefs = await service.get_preferences("org-x")

        assert as_grid(prefs) == {
            ("email", "critical"): True,
            ("email", "warn"): True,
            ("email", "info"): False,
            ("sms", "critical"): True,
            ("sms", "warn"): True,
            ("sms", "info"): False,
        }
        assert all(p.organization_id == "org-x" for p in prefs)

    @pytest.mark.asyncio
    async def test_defaults_are_not_persisted(self, service, preference_repository):
        await service.get_preferences("org-x")

        assert await preference_repository.get("org-x") == []


class TestSetPreferences:
    """Upserts keyed by (channel, severity)."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, service):
        result = await service.set_preferences("org-x", [
            pref("email", "info", True),
            pref("sms", "critical", False),
        ])

        assert as_grid(result) == {("email", "info"): True, ("sms", "critical"): False}

    @pytest.mark.asyncio
    async def test_upsert_replaces_existing_row(self, service):
        await service.set_preferences("org-x", [pref("email", "warn", True)])
        await service.set_preferences("org-x", [pref("email", "warn", False), pref("sms", "warn", True)])

        grid = as_grid(await service.get_preferences("org-x"))

        assert grid == {("email", "warn"): False, ("sms", "warn"): True}

    @pytest.mark.asyncio
    async def test_duplicate_keys_last_wins(self, service):
        result = await service.set_preferences("org-x", [
            pref("email", "critical", True),
            pref("email", "critical", False),
        ])

        assert as_grid(result) == {("email", "critical"): False}

    @pytest.mark.asyncio
    async def test_organizations_are_isolated(self, service):
        await service.set_preferences("org-x", [pref("email", "info", True)])

        other = await service.get_preferences("org-y")

        assert as_grid(other)[("email", "info")] is False
        assert len(other) == 6

    @pytest.mark.asyncio
    async def test_unknown_channel_rejected_before_write(self, service, preference_repository):
        with pytest.raises(ValidationException):
            await service.set_preferences("org-x", [
                pref("email", "info", True),
                pref("pager", "critical", True),
            ])

        assert await preference_repository.get("org-x") == []

    @pytest.mark.asyncio
    async def test_unknown_severity_rejected(self, service):
        with pytest.raises(ValidationException):
            await service.set_preferences("org-x", [pref("email", "major", True)])

    @pytest.mark.asyncio
    async def test_foreign_organization_rejected(self, service):
        with pytest.raises(ValidationException):
            await service.set_preferences("org-x", [pref("email", "info", True, "org-y")])


class TestEligibility:
    """Delivery eligibility derived from preferences."""

    @pytest.mark.asyncio
    async def test_default_eligibility(self, service):
        assert await service.eligible_channels("org-x", "critical") == ["email", "sms"]
        assert await service.eligible_channels("org-x", "info") == []
        assert await service.is_enabled("org-x", "sms", "warn") is True

    @pytest.mark.asyncio
    async def test_stored_rows_replace_defaults(self, service):
        await service.set_preferences("org-x", [pref("sms", "info", True)])

        assert await service.eligible_channels("org-x", "info") == ["sms"]
        assert await service.is_enabled("org-x", "email", "critical") is False
