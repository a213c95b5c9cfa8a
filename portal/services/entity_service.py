"""CRUD use cases for service providers, appliances and issues."""
from __future__ import annotations

from dataclasses import dataclass

from portal.domain.entities import (
    APPLIANCES,
    ISSUES,
    SERVICE_PROVIDERS,
    ValidationError,
    fields_from_wire,
    editable_fields,
    record_type,
    validate_fields,
)
from portal.repositories.sql_repository import SQLRepository


class PortalServiceError(Exception):
    def __init__(self, message: str, code: str = "invalid", status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class EntityNotFound(PortalServiceError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} '{entity_id}' not found", "not_found", 404)


@dataclass(frozen=True)
class _Crud:
    list: object
    get: object
    create: object
    update: object
    delete: object


def row_to_record(kind: str, row):
    """Copy a SQL row into the matching domain record."""
    cls = record_type(kind)
    names = ("id",) + editable_fields(kind) + tuple(
        name for name in ("created_at", "updated_at") if hasattr(row, name)
    )
    values = {name: getattr(row, name) for name in names}
    if kind == SERVICE_PROVIDERS:
        values["appliance_types"] = list(values.get("appliance_types") or [])
    return cls(**values)


class EntityService:
    """Validates payloads and maps them onto SQLRepository calls."""

    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()
        repo = self.repository
        self._crud = {
            SERVICE_PROVIDERS: _Crud(
                repo.list_service_providers,
                repo.get_service_provider,
                repo.create_service_provider,
                repo.update_service_provider,
                repo.delete_service_provider,
            ),
            APPLIANCES: _Crud(
                repo.list_appliances,
                repo.get_appliance,
                repo.create_appliance,
                repo.update_appliance,
                repo.delete_appliance,
            ),
            ISSUES: _Crud(
                repo.list_issues,
                repo.get_issue,
                repo.create_issue,
                repo.update_issue,
                repo.delete_issue,
            ),
        }

    def _validated(self, kind: str, payload: dict, *, partial: bool) -> dict:
        try:
            return validate_fields(kind, fields_from_wire(kind, payload), partial=partial)
        except ValidationError as exc:
            raise PortalServiceError(exc.message, "validation", 400) from exc

    def list(self, kind: str) -> list:
        return [row_to_record(kind, row) for row in self._crud[kind].list()]

    def get(self, kind: str, entity_id: str):
        row = self._crud[kind].get(entity_id)
        if not row:
            raise EntityNotFound(kind, entity_id)
        return row_to_record(kind, row)

    def create(self, kind: str, payload: dict):
        values = self._validated(kind, payload, partial=False)
        return row_to_record(kind, self._crud[kind].create(values))

    def update(self, kind: str, entity_id: str, payload: dict):
        values = self._validated(kind, payload, partial=True)
        row = self._crud[kind].update(entity_id, values)
        if not row:
            raise EntityNotFound(kind, entity_id)
        return row_to_record(kind, row)

    def delete(self, kind: str, entity_id: str) -> int:
        """Delete a record. Returns how many issues still point at it (appliances only)."""
        if not self._crud[kind].delete(entity_id):
            raise EntityNotFound(kind, entity_id)
        if kind == APPLIANCES:
            return len(self.repository.get_issues_for_appliance(entity_id))
        return 0
