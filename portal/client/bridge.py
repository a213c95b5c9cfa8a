"""
PersistenceBridge: decides where a write lands.

Design
- Remote first: a configured RemoteApi gets every write; its answer wins
  (server-assigned id and timestamps).
- Local fallback: on any RemoteError, or when no API is configured, the bridge
  synthesizes id/timestamps, applies the write to a copy of the collection and
  saves the whole collection under the kind's key in local storage.
- Outbox: local-only writes made while an API is configured are queued under
  ``pendingWrites`` and replayed in order by reconcile(), which also rewrites
  the local snapshots with the ids the server assigned. A new issue for an
  appliance that is still queued waits in the outbox behind it.
- Reads: remote list, else local snapshot, else the fixed seed (persisted).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional, Sequence
import json

from portal.core.config import Settings, get_settings
from portal.domain.entities import (
    APPLIANCES,
    ISSUES,
    fields_from_wire,
    fields_to_wire,
    record_type,
    utc_now,
)
from portal.client.remote import RemoteApi, RemoteError, RemoteRejectedError
from portal.client.seed import seed_records
from portal.repositories.json_storage import JsonFileStore, LocalStore

CREATE = "create"
UPDATE = "update"
DELETE = "delete"

PENDING_WRITES_KEY = "pendingWrites"


class Persisted(str, Enum):
    REMOTE = "remote"
    LOCAL_ONLY = "local_only"


class SyncState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class WriteResult:
    """Outcome of one write. ``record`` is None for deletes."""

    op: str
    kind: str
    record_id: str
    record: object
    persisted: Persisted
    error: Optional[str] = None

    @property
    def synced(self) -> bool:
        return self.persisted is Persisted.REMOTE


@dataclass
class ReplayOutcome:
    op: str
    kind: str
    local_id: str
    record_id: str
    state: SyncState
    record: object = None
    error: Optional[str] = None


@dataclass
class ReconcileReport:
    replayed: list = field(default_factory=list)
    remaining: int = 0

    @property
    def committed(self) -> list:
        return [o for o in self.replayed if o.state is SyncState.COMMITTED]

    @property
    def failed(self) -> list:
        return [o for o in self.replayed if o.state is SyncState.FAILED]

    @property
    def complete(self) -> bool:
        return self.remaining == 0


def _index_of(records: Sequence, record_id: str) -> Optional[int]:
    for idx, record in enumerate(records):
        if record.id == record_id:
            return idx
    return None


def apply_write(records: Sequence, op: str, record_id: str, record=None) -> list:
    """Return a new list with the write applied; order is append-only."""
    updated = list(records)
    if op == CREATE:
        updated.append(record)
        return updated
    idx = _index_of(updated, record_id)
    if idx is None:
        return updated
    if op == UPDATE:
        updated[idx] = record
    elif op == DELETE:
        del updated[idx]
    return updated


def next_updated_at(previous: Optional[datetime], candidate: Optional[datetime]) -> datetime:
    """updatedAt never goes backwards (or stands still) for a given issue."""
    candidate = candidate or utc_now()
    if previous is not None and candidate <= previous:
        return previous + timedelta(microseconds=1)
    return candidate


class PersistenceBridge:
    def __init__(
        self,
        local: LocalStore,
        remote: RemoteApi | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.local = local
        self.remote = remote
        self._clock = clock
        self._last_id = 0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "PersistenceBridge":
        settings = settings or get_settings()
        return cls(JsonFileStore(settings.local_store_path), RemoteApi.from_settings(settings))

    # -------------------------- snapshots --------------------------
    def save_snapshot(self, kind: str, records: Sequence) -> None:
        self.local.set(kind, json.dumps([record.to_dict() for record in records], ensure_ascii=False))

    def read_snapshot(self, kind: str) -> Optional[list]:
        """Local copy of a collection, or None when absent or unreadable."""
        raw = self.local.get(kind)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("snapshot is not a list")
            return [record_type(kind).from_dict(item) for item in data]
        except ValueError as exc:
            print(f"[sync] Discarding malformed local {kind}: {exc}")
            return None

    def load(self, kind: str) -> list:
        if self.remote is not None:
            try:
                records = self.remote.list_records(kind)
            except RemoteError as exc:
                print(f"[sync] Remote list of {kind} failed ({exc.message}); using local data")
            else:
                if not self.has_pending(kind):
                    self.save_snapshot(kind, records)
                return records
        records = self.read_snapshot(kind)
        if records is None:
            records = seed_records(kind)
            self.save_snapshot(kind, records)
            print(f"[sync] Seeded local {kind} with {len(records)} records")
        return records

    # -------------------------- writes --------------------------
    def write(
        self,
        op: str,
        kind: str,
        collection: Sequence,
        *,
        record_id: str | None = None,
        fields: dict | None = None,
    ) -> WriteResult:
        error = None
        waiting_on = self._unsynced_appliance(op, kind, fields or {})
        if waiting_on is not None:
            # the server has never seen this appliance; replay the issue after it
            error = f"appliance '{waiting_on}' has not reached the server yet"
            print(f"[sync] Queueing new issue locally: {error}")
        elif self.remote is not None:
            try:
                record = self._write_remote(op, kind, record_id, fields or {})
            except RemoteError as exc:
                error = exc.message
                print(f"[sync] Remote {op} of {kind} failed ({error}); saving locally")
            else:
                if record is not None and kind == ISSUES and op == UPDATE:
                    previous = collection[_index_of(collection, record_id)]
                    record = record.merged(
                        {"updated_at": next_updated_at(previous.updated_at, record.updated_at)}
                    )
                return WriteResult(op, kind, record.id if record else record_id, record, Persisted.REMOTE)
        return self._write_local(op, kind, collection, record_id, fields or {}, error)

    def _unsynced_appliance(self, op: str, kind: str, fields: dict) -> Optional[str]:
        if self.remote is None or op != CREATE or kind != ISSUES:
            return None
        appliance_id = fields.get("appliance_id")
        if appliance_id and self.queued_create(APPLIANCES, appliance_id):
            return appliance_id
        return None

    def _write_remote(self, op: str, kind: str, record_id: str | None, fields: dict):
        if op == CREATE:
            return self.remote.create(kind, fields)
        if op == UPDATE:
            return self.remote.update(kind, record_id, fields)
        if op == DELETE:
            self.remote.delete(kind, record_id)
            return None
        raise ValueError(f"Unknown write op: {op!r}")

    def _new_id(self, records: Sequence) -> str:
        taken = {record.id for record in records}
        candidate = max(int(self._clock().timestamp() * 1000), self._last_id + 1)
        while str(candidate) in taken:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    def _write_local(self, op, kind, collection, record_id, fields, error) -> WriteResult:
        now = self._clock()
        record = None
        if op == CREATE:
            values = dict(fields, id=self._new_id(collection), created_at=now)
            if kind == ISSUES:
                values["updated_at"] = now
            record = record_type(kind)(**values)
            record_id = record.id
        elif op == UPDATE:
            idx = _index_of(collection, record_id)
            if idx is None:
                raise KeyError(f"{kind} '{record_id}' not found")
            changes = dict(fields)
            if kind == ISSUES:
                changes["updated_at"] = next_updated_at(collection[idx].updated_at, now)
            record = collection[idx].merged(changes)
        elif op == DELETE:
            if _index_of(collection, record_id) is None:
                raise KeyError(f"{kind} '{record_id}' not found")
        else:
            raise ValueError(f"Unknown write op: {op!r}")

        self.save_snapshot(kind, apply_write(collection, op, record_id, record))
        if self.remote is not None:
            self._enqueue(op, kind, record_id, fields)
        return WriteResult(op, kind, record_id, record, Persisted.LOCAL_ONLY, error=error)

    # -------------------------- outbox --------------------------
    def pending_writes(self) -> list:
        raw = self.local.get(PENDING_WRITES_KEY)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except ValueError as exc:
            print(f"[sync] Discarding malformed pending writes: {exc}")
            return []
        return [e for e in entries if isinstance(e, dict)] if isinstance(entries, list) else []

    def _save_pending(self, entries: list) -> None:
        self.local.set(PENDING_WRITES_KEY, json.dumps(entries, ensure_ascii=False))

    def pending_count(self) -> int:
        return len(self.pending_writes())

    def has_pending(self, kind: str, record_id: str | None = None) -> bool:
        return any(
            e.get("kind") == kind and (record_id is None or e.get("id") == record_id)
            for e in self.pending_writes()
        )

    def queued_create(self, kind: str, record_id: str) -> bool:
        """True while the record exists only on this device."""
        return any(
            e.get("op") == CREATE and e.get("kind") == kind and e.get("id") == record_id
            for e in self.pending_writes()
        )

    def _enqueue(self, op: str, kind: str, record_id: str, fields: dict) -> None:
        entries = self.pending_writes()
        create = next(
            (e for e in entries if e["op"] == CREATE and e["kind"] == kind and e["id"] == record_id),
            None,
        )
        if create is not None and op == UPDATE:
            # never reached the server: fold the change into the queued create
            create["fields"].update(fields_to_wire(fields))
        elif create is not None and op == DELETE:
            entries = [e for e in entries if not (e["kind"] == kind and e["id"] == record_id)]
        else:
            entries.append(
                {
                    "op": op,
                    "kind": kind,
                    "id": record_id,
                    "fields": fields_to_wire(fields),
                    "queuedAt": self._clock().isoformat(),
                }
            )
        self._save_pending(entries)

    def _rename_queued(self, queue: list, kind: str, local_id: str, server_id: str) -> None:
        for entry in queue:
            if entry["kind"] == kind and entry["id"] == local_id:
                entry["id"] = server_id
            if kind == APPLIANCES and entry["kind"] == ISSUES:
                queued_fields = entry.get("fields") or {}
                if queued_fields.get("applianceId") == local_id:
                    queued_fields["applianceId"] = server_id

    def _adopt_server_ids(self, report: ReconcileReport) -> None:
        """Rewrite local snapshots so replayed creates carry their server ids."""
        renames: dict = {}
        for outcome in report.committed:
            if outcome.op == CREATE and outcome.record_id != outcome.local_id:
                renames.setdefault(outcome.kind, {})[outcome.local_id] = outcome.record_id
        appliance_ids = renames.get(APPLIANCES, {})
        kinds = set(renames) | ({ISSUES} if appliance_ids else set())
        for kind in kinds:
            records = self.read_snapshot(kind)
            if records is None:
                continue
            ids = renames.get(kind, {})
            rewritten = []
            for record in records:
                changes = {}
                if record.id in ids:
                    changes["id"] = ids[record.id]
                if kind == ISSUES and record.appliance_id in appliance_ids:
                    changes["appliance_id"] = appliance_ids[record.appliance_id]
                rewritten.append(record.merged(changes) if changes else record)
            self.save_snapshot(kind, rewritten)

    def close(self) -> None:
        if self.remote is not None:
            self.remote.close()

    def reconcile(self) -> ReconcileReport:
        """
        Replay queued local-only writes against the API, oldest first.

        Stops at the first transport failure and keeps the rest queued. A
        rejected entry (4xx) is dropped and reported as failed, except a
        delete the server no longer knows about, which counts as done.
        """
        queue = self.pending_writes()
        report = ReconcileReport(remaining=len(queue))
        if self.remote is None or not queue:
            return report
        while queue:
            entry = queue[0]
            op, kind, local_id = entry["op"], entry["kind"], entry["id"]
            fields = fields_from_wire(kind, entry.get("fields") or {})
            try:
                record = self._write_remote(op, kind, local_id, fields)
            except RemoteRejectedError as exc:
                queue.pop(0)
                done = op == DELETE and exc.status_code == 404
                state = SyncState.COMMITTED if done else SyncState.FAILED
                report.replayed.append(ReplayOutcome(op, kind, local_id, local_id, state, error=exc.message))
                if not done:
                    print(f"[sync] Server rejected queued {op} of {kind} '{local_id}': {exc.message}")
                continue
            except RemoteError as exc:
                print(f"[sync] Reconciliation paused: {exc.message}")
                break
            queue.pop(0)
            if op == CREATE:
                self._rename_queued(queue, kind, local_id, record.id)
            report.replayed.append(
                ReplayOutcome(op, kind, local_id, record.id if record else local_id, SyncState.COMMITTED, record)
            )
        self._save_pending(queue)
        self._adopt_server_ids(report)
        report.remaining = len(queue)
        print(f"[sync] Reconciled {len(report.committed)} writes; {report.remaining} still pending")
        return report
