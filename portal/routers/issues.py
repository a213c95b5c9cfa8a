"""Issue endpoints: CRUD plus the provider e-mail notification."""
from __future__ import annotations

from fastapi import Request

from portal.domain.entities import ISSUES
from portal.routers.common import build_crud_router, error_response
from portal.services.entity_service import PortalServiceError
from portal.services.notification_service import NotificationService

router = build_crud_router(ISSUES, "/issues")


def _get_notification_service(request: Request) -> NotificationService:
    svc = getattr(getattr(request.app, "state", None), "notification_service", None)
    if not svc:
        raise RuntimeError("NotificationService not configured")
    return svc


@router.post("/{issue_id}/notify")
def notify_issue(issue_id: str, request: Request, payload: dict | None = None):
    svc = _get_notification_service(request)
    provider_id = (payload or {}).get("providerId") or None
    try:
        result = svc.notify_issue(issue_id, provider_id)
    except PortalServiceError as exc:
        return error_response(exc)
    return {
        "ok": True,
        "issueId": result.issue_id,
        "providerId": result.provider_id,
        "provider": result.provider_name,
        "recipient": result.recipient,
        "sent": result.sent,
    }
