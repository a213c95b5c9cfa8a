"""
Smoke tests for the SQLRepository against a temporary SQLite database.
"""
from __future__ import annotations

from portal.repositories.sql_repository import SQLRepository


def _appliance(**overrides):
    values = {"name": "Lobby TV", "type": "Television", "room": "001", "floor": "0", "status": "working"}
    values.update(overrides)
    return values


def test_appliance_crud(temp_db):
    repo = SQLRepository()
    created = repo.create_appliance(_appliance())
    assert created.id
    assert created.created_at is not None

    updated = repo.update_appliance(created.id, {"status": "faulty"})
    assert updated.status == "faulty"
    assert updated.name == "Lobby TV"

    assert [row.id for row in repo.list_appliances()] == [created.id]
    assert repo.delete_appliance(created.id) is True
    assert repo.get_appliance(created.id) is None
    assert repo.delete_appliance(created.id) is False
    assert repo.update_appliance(created.id, {"status": "working"}) is None


def test_provider_types_are_stored_as_json(temp_db):
    repo = SQLRepository()
    provider = repo.create_service_provider(
        {"name": "CoolAir", "email": "ops@coolair.test", "phone": "", "address": "", "appliance_types": ["Air Conditioner"]}
    )
    assert repo.get_service_provider(provider.id).appliance_types == ["Air Conditioner"]


def test_deleting_appliance_leaves_issues_in_place(temp_db):
    repo = SQLRepository()
    appliance = repo.create_appliance(_appliance())
    issue = repo.create_issue(
        {
            "appliance_id": appliance.id,
            "appliance_name": appliance.name,
            "room": appliance.room,
            "floor": appliance.floor,
            "description": "No picture",
            "status": "reported",
            "priority": "low",
            "reported_by": "Ana",
            "service_provider": None,
        }
    )
    repo.delete_appliance(appliance.id)

    remaining = repo.get_issues_for_appliance(appliance.id)
    assert [row.id for row in remaining] == [issue.id]
    assert remaining[0].appliance_name == "Lobby TV"


def test_issue_update_moves_updated_at(temp_db):
    repo = SQLRepository()
    issue = repo.create_issue(
        {
            "appliance_id": "a1",
            "appliance_name": "Printer",
            "room": "201",
            "floor": "2",
            "description": "Paper jam",
            "status": "reported",
            "priority": "medium",
            "reported_by": "Ana",
        }
    )
    updated = repo.update_issue(issue.id, {"status": "in-progress"})
    assert updated.status == "in-progress"
    assert updated.updated_at >= issue.updated_at


def test_seed_script_fills_an_empty_database_once(temp_db):
    from scripts.seed_database import seed

    repo = SQLRepository()
    assert seed(repo) == 6
    assert seed(repo) == 0
    assert [row.name for row in repo.list_service_providers()] == ["TechFix Solutions", "ElectroRepair Pro"]
    assert repo.get_issue("1").service_provider == "ElectroRepair Pro"
