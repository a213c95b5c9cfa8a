from __future__ import annotations

from datetime import datetime, timezone

import pytest

import portal.services.notification_service as notification_service
from portal.domain.entities import APPLIANCES, ISSUES, SERVICE_PROVIDERS, Issue
from portal.services.entity_service import EntityService, PortalServiceError
from portal.services.notification_service import NotificationService, build_issue_email


def _issue(**overrides) -> Issue:
    values = dict(
        id="i1",
        appliance_id="a1",
        appliance_name="Break Room Microwave",
        room="105",
        floor="1",
        description="Not heating <at all>",
        reported_by="John Doe",
        priority="high",
        created_at=datetime(2024, 1, 28, 9, 30, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Issue(**values)


def test_build_issue_email_lists_issue_details():
    subject, html_body, text_body = build_issue_email(_issue())

    assert subject == "New Issue Reported: Break Room Microwave"
    assert "Room 105, Floor 1" in html_body
    assert "Not heating &lt;at all&gt;" in html_body
    assert "Reported by: John Doe" in text_body
    assert "2024-01-28 09:30 UTC" in text_body


def test_explicit_provider_id_overrides_routing(temp_db, monkeypatch):
    sent = []
    monkeypatch.setattr(notification_service, "send_email", lambda s, to, h, t=None: sent.append(to) or False)
    entities = EntityService()
    entities.create(SERVICE_PROVIDERS, {"name": "A", "email": "a@x.test", "applianceTypes": ["Microwave"]})
    other = entities.create(SERVICE_PROVIDERS, {"name": "B", "email": "b@x.test", "applianceTypes": ["Printer"]})
    appliance = entities.create(APPLIANCES, {"name": "Oven", "type": "Microwave", "room": "1", "floor": "1"})
    issue = entities.create(
        ISSUES,
        {
            "applianceId": appliance.id,
            "applianceName": appliance.name,
            "room": "1",
            "floor": "1",
            "description": "Sparks",
            "reportedBy": "Ana",
        },
    )

    result = NotificationService(entities).notify_issue(issue.id, provider_id=other.id)

    assert result.provider_name == "B"
    assert result.sent is False
    assert sent == ["b@x.test"]


def test_deleted_appliance_falls_back_to_snapshot_provider(temp_db, monkeypatch):
    monkeypatch.setattr(notification_service, "send_email", lambda *a, **kw: True)
    entities = EntityService()
    entities.create(SERVICE_PROVIDERS, {"name": "A", "email": "a@x.test", "applianceTypes": ["Microwave"]})
    issue = entities.create(
        ISSUES,
        {
            "applianceId": "gone",
            "applianceName": "Old oven",
            "room": "1",
            "floor": "1",
            "description": "Sparks",
            "reportedBy": "Ana",
            "serviceProvider": "A",
        },
    )

    assert NotificationService(entities).notify_issue(issue.id).recipient == "a@x.test"


def test_unknown_issue_is_not_found(temp_db):
    with pytest.raises(PortalServiceError) as excinfo:
        NotificationService().notify_issue("missing")
    assert excinfo.value.status_code == 404
