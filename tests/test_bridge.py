from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from portal.client.bridge import (
    CREATE,
    DELETE,
    PENDING_WRITES_KEY,
    UPDATE,
    Persisted,
    PersistenceBridge,
    next_updated_at,
)
from portal.client.remote import RemoteApi
from portal.client.seed import seed_records
from portal.domain.entities import APPLIANCES, ENTITY_KINDS, ISSUES, SERVICE_PROVIDERS, validate_fields
from portal.repositories.json_storage import InMemoryLocalStore, JsonFileStore

FRIDGE = {"name": "Fridge", "type": "Refrigerator", "room": "3", "floor": "1", "status": "working"}


def _remote(handler) -> RemoteApi:
    return RemoteApi(client=httpx.Client(transport=httpx.MockTransport(handler), base_url="http://api.test/api"))


def _unreachable(request):
    raise httpx.ConnectError("connection refused", request=request)


def test_offline_load_seeds_once_and_is_stable(tmp_path):
    path = tmp_path / "local.json"
    first = {kind: PersistenceBridge(JsonFileStore(path), _remote(_unreachable)).load(kind) for kind in ENTITY_KINDS}
    assert [len(first[kind]) for kind in (SERVICE_PROVIDERS, APPLIANCES, ISSUES)] == [2, 3, 1]

    second = {kind: PersistenceBridge(JsonFileStore(path), _remote(_unreachable)).load(kind) for kind in ENTITY_KINDS}
    for kind in ENTITY_KINDS:
        assert [r.to_dict() for r in second[kind]] == [r.to_dict() for r in first[kind]]
        assert [r.to_dict() for r in second[kind]] == [r.to_dict() for r in seed_records(kind)]


def test_malformed_local_snapshot_is_reseeded():
    local = InMemoryLocalStore({APPLIANCES: "{broken"})
    records = PersistenceBridge(local).load(APPLIANCES)

    assert [r.id for r in records] == ["1", "2", "3"]
    assert json.loads(local.get(APPLIANCES))[0]["name"] == "Conference Room Computer"


def test_server_errors_and_garbage_fall_back_to_local():
    answers = iter([httpx.Response(503, json={"message": "down"}), httpx.Response(200, text="<html>")])
    bridge = PersistenceBridge(InMemoryLocalStore(), _remote(lambda request: next(answers)))

    first = bridge.write(CREATE, APPLIANCES, [], fields=FRIDGE)
    second = bridge.write(CREATE, APPLIANCES, [first.record], fields=FRIDGE)

    assert first.persisted is Persisted.LOCAL_ONLY
    assert first.error == "down"
    assert second.persisted is Persisted.LOCAL_ONLY
    assert first.record_id != second.record_id
    assert bridge.pending_count() == 2


def test_remote_answer_wins():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(201, json={**body, "id": "srv-1", "createdAt": "2024-05-01T00:00:00+00:00"})

    bridge = PersistenceBridge(InMemoryLocalStore(), _remote(handler))
    result = bridge.write(CREATE, APPLIANCES, [], fields=FRIDGE)

    assert result.persisted is Persisted.REMOTE
    assert result.record.id == "srv-1"
    assert bridge.local.get(APPLIANCES) is None
    assert bridge.pending_count() == 0


def test_local_only_without_remote_has_no_outbox():
    local = InMemoryLocalStore()
    bridge = PersistenceBridge(local)
    result = bridge.write(CREATE, APPLIANCES, [], fields=FRIDGE)

    assert result.persisted is Persisted.LOCAL_ONLY
    assert result.record.created_at is not None
    assert json.loads(local.get(APPLIANCES))[0]["id"] == result.record_id
    assert local.get(PENDING_WRITES_KEY) is None


def test_local_ids_are_unique_within_a_session():
    frozen = datetime(2024, 6, 1, tzinfo=timezone.utc)
    bridge = PersistenceBridge(InMemoryLocalStore(), clock=lambda: frozen)
    records = []
    for _ in range(3):
        records.append(bridge.write(CREATE, APPLIANCES, records, fields=FRIDGE).record)
    assert len({r.id for r in records}) == 3


def test_outbox_folds_updates_and_deletes_into_pending_creates():
    bridge = PersistenceBridge(InMemoryLocalStore(), _remote(_unreachable))
    created = bridge.write(CREATE, APPLIANCES, [], fields=FRIDGE)
    collection = [created.record]
    bridge.write(UPDATE, APPLIANCES, collection, record_id=created.record_id, fields={"status": "faulty"})

    entries = bridge.pending_writes()
    assert len(entries) == 1
    assert entries[0]["fields"]["status"] == "faulty"

    bridge.write(DELETE, APPLIANCES, collection, record_id=created.record_id)
    assert bridge.pending_count() == 0


def test_local_update_of_unknown_record_raises():
    bridge = PersistenceBridge(InMemoryLocalStore())
    with pytest.raises(KeyError):
        bridge.write(UPDATE, APPLIANCES, [], record_id="nope", fields={"status": "faulty"})


def test_reconcile_stops_at_first_transport_failure():
    bridge = PersistenceBridge(InMemoryLocalStore(), _remote(_unreachable))
    created = bridge.write(CREATE, APPLIANCES, [], fields=FRIDGE)
    bridge.write(CREATE, APPLIANCES, [created.record], fields=FRIDGE)

    report = bridge.reconcile()
    assert report.replayed == []
    assert report.remaining == 2
    assert not report.complete


def test_next_updated_at_is_strictly_increasing():
    previous = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert next_updated_at(previous, previous) == previous + timedelta(microseconds=1)
    assert next_updated_at(previous, previous - timedelta(days=1)) > previous
    later = previous + timedelta(seconds=5)
    assert next_updated_at(previous, later) == later


def _issue_fields(appliance_id: str) -> dict:
    return validate_fields(
        ISSUES,
        {
            "appliance_id": appliance_id,
            "appliance_name": "Fridge",
            "room": "3",
            "floor": "1",
            "description": "Not cooling",
            "reported_by": "Ana",
        },
    )


def test_reconcile_writes_server_ids_into_local_snapshots(api_client, flaky_remote):
    local = InMemoryLocalStore()
    bridge = PersistenceBridge(local, flaky_remote)
    flaky_remote.online = False
    fridge = bridge.write(CREATE, APPLIANCES, [], fields=FRIDGE)
    bridge.write(CREATE, ISSUES, [], fields=_issue_fields(fridge.record_id))

    flaky_remote.online = True
    assert bridge.reconcile().complete
    server_appliance = api_client.get("/appliances").json()[0]
    server_issue = api_client.get("/issues").json()[0]

    flaky_remote.online = False
    offline = PersistenceBridge(local, flaky_remote)
    appliances = offline.load(APPLIANCES)
    issues = offline.load(ISSUES)
    assert [a.id for a in appliances] == [server_appliance["id"]]
    assert [(i.id, i.appliance_id) for i in issues] == [(server_issue["id"], server_appliance["id"])]

    offline.write(UPDATE, APPLIANCES, appliances, record_id=server_appliance["id"], fields={"status": "faulty"})
    flaky_remote.online = True
    report = offline.reconcile()
    assert report.failed == []
    assert api_client.get("/appliances").json()[0]["status"] == "faulty"


def test_new_issue_waits_behind_its_unsynced_appliance(api_client, flaky_remote):
    bridge = PersistenceBridge(InMemoryLocalStore(), flaky_remote)
    flaky_remote.online = False
    fridge = bridge.write(CREATE, APPLIANCES, [], fields=FRIDGE)

    flaky_remote.online = True
    issue = bridge.write(CREATE, ISSUES, [], fields=_issue_fields(fridge.record_id))

    assert issue.persisted is Persisted.LOCAL_ONLY
    assert fridge.record_id in issue.error
    assert bridge.pending_count() == 2
    assert api_client.get("/issues").json() == []

    assert bridge.reconcile().complete
    server_appliance = api_client.get("/appliances").json()[0]
    assert api_client.get("/issues").json()[0]["applianceId"] == server_appliance["id"]


@pytest.mark.parametrize("server_stamp", ["2024-01-28T00:00:00+00:00", "2023-12-01T00:00:00+00:00"])
def test_remote_issue_update_still_moves_updated_at_forward(server_stamp):
    issue = seed_records(ISSUES)[0]

    def handler(request):
        return httpx.Response(200, json={**issue.to_dict(), **json.loads(request.content), "updatedAt": server_stamp})

    bridge = PersistenceBridge(InMemoryLocalStore(), _remote(handler))
    result = bridge.write(UPDATE, ISSUES, [issue], record_id=issue.id, fields={"status": "resolved"})

    assert result.persisted is Persisted.REMOTE
    assert result.record.status == "resolved"
    assert result.record.updated_at > issue.updated_at


def test_close_releases_the_http_client():
    remote = _remote(_unreachable)
    PersistenceBridge(InMemoryLocalStore(), remote).close()
    assert remote._client.is_closed
