"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, delete

from portal.db.models import ApplianceRow, IssueRow, ServiceProviderRow
from portal.db.session import get_session


def new_id() -> str:
    return secrets.token_hex(12)


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- generic --------------------------
    def _list(self, model) -> list:
        with get_session() as session:
            stmt = select(model).order_by(model.created_at, model.id)
            return session.execute(stmt).scalars().all()

    def _get(self, model, entity_id: str):
        with get_session() as session:
            return session.get(model, entity_id)

    def _create(self, model, values: dict, *, entity_id: str | None = None, created_at: datetime | None = None):
        now = created_at or datetime.now(timezone.utc)
        entity = model(id=entity_id or new_id(), created_at=now, **values)
        if hasattr(model, "updated_at"):
            entity.updated_at = now
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def _update(self, model, entity_id: str, values: dict):
        with get_session() as session:
            entity = session.get(model, entity_id)
            if not entity:
                return None
            for name, value in values.items():
                setattr(entity, name, value)
            if hasattr(model, "updated_at"):
                entity.updated_at = datetime.now(timezone.utc)
            session.commit()
            session.refresh(entity)
            return entity

    def _delete(self, model, entity_id: str) -> bool:
        with get_session() as session:
            result = session.execute(delete(model).where(model.id == entity_id))
            session.commit()
            return bool(result.rowcount)

    # -------------------------- service providers --------------------------
    def list_service_providers(self) -> list[ServiceProviderRow]:
        return self._list(ServiceProviderRow)

    def get_service_provider(self, provider_id: str) -> Optional[ServiceProviderRow]:
        return self._get(ServiceProviderRow, provider_id)

    def create_service_provider(self, values: dict, **kwargs) -> ServiceProviderRow:
        return self._create(ServiceProviderRow, values, **kwargs)

    def update_service_provider(self, provider_id: str, values: dict) -> Optional[ServiceProviderRow]:
        return self._update(ServiceProviderRow, provider_id, values)

    def delete_service_provider(self, provider_id: str) -> bool:
        return self._delete(ServiceProviderRow, provider_id)

    # -------------------------- appliances --------------------------
    def list_appliances(self) -> list[ApplianceRow]:
        return self._list(ApplianceRow)

    def get_appliance(self, appliance_id: str) -> Optional[ApplianceRow]:
        return self._get(ApplianceRow, appliance_id)

    def create_appliance(self, values: dict, **kwargs) -> ApplianceRow:
        return self._create(ApplianceRow, values, **kwargs)

    def update_appliance(self, appliance_id: str, values: dict) -> Optional[ApplianceRow]:
        return self._update(ApplianceRow, appliance_id, values)

    def delete_appliance(self, appliance_id: str) -> bool:
        return self._delete(ApplianceRow, appliance_id)

    # -------------------------- issues --------------------------
    def list_issues(self) -> list[IssueRow]:
        return self._list(IssueRow)

    def get_issue(self, issue_id: str) -> Optional[IssueRow]:
        return self._get(IssueRow, issue_id)

    def get_issues_for_appliance(self, appliance_id: str) -> list[IssueRow]:
        with get_session() as session:
            stmt = select(IssueRow).where(IssueRow.appliance_id == appliance_id).order_by(IssueRow.created_at)
            return session.execute(stmt).scalars().all()

    def create_issue(self, values: dict, **kwargs) -> IssueRow:
        return self._create(IssueRow, values, **kwargs)

    def update_issue(self, issue_id: str, values: dict) -> Optional[IssueRow]:
        return self._update(IssueRow, issue_id, values)

    def delete_issue(self, issue_id: str) -> bool:
        return self._delete(IssueRow, issue_id)
