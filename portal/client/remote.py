"""
HTTP client for the portal REST API.

Every call either returns parsed records or raises a RemoteError subclass:
RemoteUnavailableError for transport failures, 5xx and malformed bodies,
RemoteRejectedError for 4xx answers.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from portal.core.config import Settings, get_settings
from portal.domain.entities import (
    APPLIANCES,
    ISSUES,
    SERVICE_PROVIDERS,
    Issue,
    ServiceProvider,
    fields_to_wire,
    record_type,
)

RESOURCE_PATHS = {
    SERVICE_PROVIDERS: "/service-providers",
    APPLIANCES: "/appliances",
    ISSUES: "/issues",
}


class RemoteError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RemoteUnavailableError(RemoteError):
    """Server unreachable, failing (5xx) or answering garbage."""


class RemoteRejectedError(RemoteError):
    """Server refused the request (4xx); retrying it unchanged will not help."""


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if message:
            return str(message)
    return f"API request failed with status {response.status_code}"


class RemoteApi:
    """Remote persistence interface plus the issue notification hook."""

    def __init__(self, base_url: str = "", *, client: httpx.Client | None = None, timeout: float = 10.0) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Optional["RemoteApi"]:
        """Build a client from PORTAL_API_URL, or None when no API is configured."""
        settings = settings or get_settings()
        if not settings.api_base_url:
            return None
        return cls(settings.api_base_url, timeout=settings.remote_timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        try:
            response = self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(f"{method} {path}: {exc}") from exc
        if response.status_code >= 400:
            error_cls = RemoteRejectedError if response.status_code < 500 else RemoteUnavailableError
            raise error_cls(_error_message(response), response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteUnavailableError(f"{method} {path}: malformed response body") from exc

    def _record(self, kind: str, data: Any):
        try:
            return record_type(kind).from_dict(data)
        except ValueError as exc:
            raise RemoteUnavailableError(str(exc)) from exc

    # -------------------------- CRUD --------------------------
    def list_records(self, kind: str) -> list:
        data = self._request("GET", RESOURCE_PATHS[kind])
        if not isinstance(data, list):
            raise RemoteUnavailableError(f"Expected a list of {kind}")
        return [self._record(kind, item) for item in data]

    def create(self, kind: str, fields: dict):
        return self._record(kind, self._request("POST", RESOURCE_PATHS[kind], fields_to_wire(fields)))

    def update(self, kind: str, record_id: str, fields: dict):
        path = f"{RESOURCE_PATHS[kind]}/{record_id}"
        return self._record(kind, self._request("PUT", path, fields_to_wire(fields)))

    def delete(self, kind: str, record_id: str) -> None:
        self._request("DELETE", f"{RESOURCE_PATHS[kind]}/{record_id}")

    # -------------------------- notifications --------------------------
    def notify(self, issue: Issue, provider: ServiceProvider) -> dict:
        return self._request(
            "POST",
            f"{RESOURCE_PATHS[ISSUES]}/{issue.id}/notify",
            {"providerId": provider.id},
        )
