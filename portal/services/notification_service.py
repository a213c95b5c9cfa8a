"""
Issue notifications: e-mail the service provider responsible for an issue.
"""

from __future__ import annotations

from dataclasses import dataclass
import html
from typing import Optional

from portal.core.config import get_settings
from portal.core.mailer import send_email
from portal.domain.entities import APPLIANCES, ISSUES, SERVICE_PROVIDERS, Issue, ServiceProvider
from portal.domain.routing import get_routing_policy
from portal.services.entity_service import EntityNotFound, EntityService, PortalServiceError


@dataclass
class NotificationResult:
    issue_id: str
    provider_id: str
    provider_name: str
    recipient: str
    sent: bool


def build_issue_email(issue: Issue) -> tuple[str, str, str]:
    """Return (subject, html_body, text_body) for a new-issue e-mail."""
    reported_at = issue.created_at.strftime("%Y-%m-%d %H:%M UTC") if issue.created_at else "-"
    rows = [
        ("Appliance", issue.appliance_name),
        ("Location", f"Room {issue.room}, Floor {issue.floor}"),
        ("Priority", issue.priority),
        ("Description", issue.description),
        ("Reported by", issue.reported_by),
        ("Date", reported_at),
    ]
    subject = f"New Issue Reported: {issue.appliance_name}"
    html_rows = "\n".join(
        f"<p><strong>{label}:</strong> {html.escape(str(value))}</p>" for label, value in rows
    )
    html_body = (
        "<h2>New Issue Reported</h2>\n"
        f"{html_rows}\n"
        "<p>Please contact the facility manager to schedule a repair.</p>"
    )
    text_body = "\n".join(f"{label}: {value}" for label, value in rows)
    text_body += "\n\nPlease contact the facility manager to schedule a repair."
    return subject, html_body, text_body


class NotificationService:
    """Resolves the provider for an issue and sends the e-mail."""

    def __init__(self, entities: EntityService | None = None) -> None:
        self.entities = entities or EntityService()
        self.policy = get_routing_policy(get_settings().routing_policy)

    def resolve_provider(self, issue: Issue, provider_id: Optional[str] = None) -> ServiceProvider:
        if provider_id:
            return self.entities.get(SERVICE_PROVIDERS, provider_id)
        providers = self.entities.list(SERVICE_PROVIDERS)
        try:
            appliance = self.entities.get(APPLIANCES, issue.appliance_id)
        except EntityNotFound:
            appliance = None
        provider = None
        if appliance is not None:
            provider = self.policy.route(providers, appliance, self.entities.list(ISSUES))
        elif issue.service_provider:
            # appliance gone: fall back to the provider named on the snapshot
            provider = next((p for p in providers if p.name == issue.service_provider), None)
        if provider is None:
            raise PortalServiceError("No service provider for this issue", "no_provider", 404)
        return provider

    def notify_issue(self, issue_id: str, provider_id: Optional[str] = None) -> NotificationResult:
        issue = self.entities.get(ISSUES, issue_id)
        provider = self.resolve_provider(issue, provider_id)
        subject, html_body, text_body = build_issue_email(issue)
        sent = send_email(subject, provider.email, html_body, text_body)
        return NotificationResult(
            issue_id=issue.id,
            provider_id=provider.id,
            provider_name=provider.name,
            recipient=provider.email,
            sent=sent,
        )
