"""
EntityStore: the session's in-memory copy of the three collections.

Every mutation is validated here, handed to the PersistenceBridge, and the
returned record is applied to the in-memory list. Remote failures never
reach the caller; the WriteResult says where the write landed instead.
"""
from __future__ import annotations

from typing import Optional, Protocol

from portal.core.config import Settings, get_settings
from portal.domain.entities import (
    APPLIANCES,
    ENTITY_KINDS,
    ISSUES,
    SERVICE_PROVIDERS,
    Appliance,
    Issue,
    IssueSnapshot,
    ServiceProvider,
    ValidationError,
    validate_fields,
)
from portal.domain.routing import FirstMatchPolicy, RoutingPolicy, get_routing_policy
from portal.client.bridge import (
    CREATE,
    DELETE,
    UPDATE,
    PersistenceBridge,
    ReconcileReport,
    SyncState,
    WriteResult,
    apply_write,
)
from portal.client.remote import RemoteError


class StoreError(Exception):
    """Base exception for store operations."""


class EntityNotFoundError(StoreError, LookupError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class Notifier(Protocol):
    def notify(self, issue: Issue, provider: ServiceProvider) -> object:
        ...


class EntityStore:
    def __init__(
        self,
        bridge: PersistenceBridge,
        *,
        notifier: Notifier | None = None,
        routing: RoutingPolicy | None = None,
    ) -> None:
        self.bridge = bridge
        self.notifier = notifier if notifier is not None else bridge.remote
        self.routing = routing or FirstMatchPolicy()
        self._collections: dict = {kind: [] for kind in ENTITY_KINDS}
        self._failed: set = set()
        self.last_reconcile: ReconcileReport | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "EntityStore":
        settings = settings or get_settings()
        return cls(
            PersistenceBridge.from_settings(settings),
            routing=get_routing_policy(settings.routing_policy),
        )

    # -------------------------- reads --------------------------
    def load(self) -> "EntityStore":
        """Populate every collection; queued offline writes are pushed first."""
        if self.bridge.remote is not None and self.bridge.pending_count():
            self.last_reconcile = self.bridge.reconcile()
            self._mark_failed(self.last_reconcile)
        for kind in ENTITY_KINDS:
            self._collections[kind] = self.bridge.load(kind)
        return self

    def close(self) -> None:
        self.bridge.close()

    def __enter__(self) -> "EntityStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def list(self, kind: str) -> list:
        return list(self._collections[kind])

    def get(self, kind: str, record_id: str):
        return next((r for r in self._collections[kind] if r.id == record_id), None)

    @property
    def service_providers(self) -> list[ServiceProvider]:
        return self.list(SERVICE_PROVIDERS)

    @property
    def appliances(self) -> list[Appliance]:
        return self.list(APPLIANCES)

    @property
    def issues(self) -> list[Issue]:
        return self.list(ISSUES)

    def _require(self, kind: str, record_id: str):
        record = self.get(kind, record_id)
        if record is None:
            raise EntityNotFoundError(kind, record_id)
        return record

    # -------------------------- writes --------------------------
    def create(self, kind: str, fields: dict) -> WriteResult:
        values = validate_fields(kind, fields)
        provider = None
        if kind == ISSUES:
            if self.bridge.remote is not None and self.bridge.queued_create(APPLIANCES, values["appliance_id"]):
                values = self._push_appliance_first(values)
            values, provider = self._route_issue(values)
        result = self.bridge.write(CREATE, kind, self._collections[kind], fields=values)
        self._apply(result)
        if provider is not None:
            self._notify(result.record, provider)
        return result

    def update(self, kind: str, record_id: str, fields: dict) -> WriteResult:
        self._require(kind, record_id)
        values = validate_fields(kind, fields, partial=True)
        result = self.bridge.write(UPDATE, kind, self._collections[kind], record_id=record_id, fields=values)
        self._apply(result)
        return result

    def delete(self, kind: str, record_id: str) -> WriteResult:
        self._require(kind, record_id)
        result = self.bridge.write(DELETE, kind, self._collections[kind], record_id=record_id)
        self._apply(result)
        return result

    def report_issue(
        self,
        appliance_id: str,
        description: str,
        *,
        priority: str = "medium",
        reported_by: str = "Unknown",
    ) -> WriteResult:
        """File an issue against an appliance, copying its details at this moment."""
        appliance = self._require(APPLIANCES, appliance_id)
        snapshot = IssueSnapshot.capture(appliance)
        fields = snapshot.as_fields()
        fields.update(
            description=description,
            priority=priority,
            reported_by=reported_by,
            status="reported",
        )
        return self.create(ISSUES, fields)

    def _apply(self, result: WriteResult) -> None:
        self._collections[result.kind] = apply_write(
            self._collections[result.kind], result.op, result.record_id, result.record
        )
        if result.synced:
            self._failed.discard((result.kind, result.record_id))

    # -------------------------- issue routing --------------------------
    def provider_for(self, appliance: Appliance) -> Optional[ServiceProvider]:
        return self.routing.route(self.service_providers, appliance, self.issues)

    def _route_issue(self, values: dict) -> tuple[dict, Optional[ServiceProvider]]:
        named = values.get("service_provider")
        if named:
            # explicit assignment wins over the routing policy
            provider = next((p for p in self.service_providers if p.name == named), None)
            return values, provider
        appliance = self.get(APPLIANCES, values["appliance_id"])
        if appliance is None:
            return values, None
        provider = self.provider_for(appliance)
        if provider is not None:
            values = dict(values, service_provider=provider.name)
        return values, provider

    def _push_appliance_first(self, values: dict) -> dict:
        """The appliance exists only locally: replay the outbox so the issue can use its server id."""
        report = self.reconcile()
        for outcome in report.committed:
            if outcome.kind == APPLIANCES and outcome.op == CREATE and outcome.local_id == values["appliance_id"]:
                return dict(values, appliance_id=outcome.record_id)
        return values

    def _notify(self, issue: Issue, provider: ServiceProvider) -> None:
        if self.notifier is None:
            print(f"[notify] No notifier configured; {provider.name} not e-mailed for issue {issue.id}")
            return
        try:
            self.notifier.notify(issue, provider)
        except RemoteError as exc:
            print(f"[notify] Could not notify {provider.name} about issue {issue.id}: {exc.message}")
        except Exception as exc:  # the issue is already saved
            print(f"[notify] Notifier error for issue {issue.id}: {exc!r}")

    # -------------------------- sync state --------------------------
    def sync_state(self, kind: str, record_id: str) -> SyncState:
        self._require(kind, record_id)
        if (kind, record_id) in self._failed:
            return SyncState.FAILED
        if self.bridge.has_pending(kind, record_id):
            return SyncState.PENDING
        return SyncState.COMMITTED

    def pending_count(self) -> int:
        return self.bridge.pending_count()

    def reconcile(self) -> ReconcileReport:
        """Push queued offline writes and adopt the ids the server assigned."""
        report = self.bridge.reconcile()
        self.last_reconcile = report
        self._mark_failed(report)
        touched = set()
        for outcome in report.committed:
            if outcome.op == CREATE and outcome.record_id != outcome.local_id:
                self._adopt_id(outcome.kind, outcome.local_id, outcome.record_id)
                touched.add(outcome.kind)
                if outcome.kind == APPLIANCES:
                    touched.add(ISSUES)
        # the session may hold online writes the snapshot has not seen yet
        for kind in touched:
            self.bridge.save_snapshot(kind, self._collections[kind])
        return report

    def _mark_failed(self, report: ReconcileReport) -> None:
        for outcome in report.failed:
            self._failed.add((outcome.kind, outcome.record_id))

    def _adopt_id(self, kind: str, local_id: str, server_id: str) -> None:
        self._collections[kind] = [
            r.merged({"id": server_id}) if r.id == local_id else r for r in self._collections[kind]
        ]
        if kind == APPLIANCES:
            self._collections[ISSUES] = [
                i.merged({"appliance_id": server_id}) if i.appliance_id == local_id else i
                for i in self._collections[ISSUES]
            ]
        if (kind, local_id) in self._failed:
            self._failed.discard((kind, local_id))
            self._failed.add((kind, server_id))


__all__ = ["EntityNotFoundError", "EntityStore", "StoreError", "ValidationError"]
