"""
Entity records for the three collections (service providers, appliances,
issues) plus the field rules both tiers enforce.

Records use snake_case attributes in Python and camelCase keys on the wire
(REST bodies and the local JSON snapshots).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields as dc_fields, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

SERVICE_PROVIDERS = "serviceProviders"
APPLIANCES = "appliances"
ISSUES = "issues"
ENTITY_KINDS = (SERVICE_PROVIDERS, APPLIANCES, ISSUES)

APPLIANCE_STATUSES = ("working", "faulty", "maintenance")
ISSUE_STATUSES = ("reported", "in-progress", "resolved")
ISSUE_PRIORITIES = ("low", "medium", "high")

SYSTEM_FIELDS = ("id", "created_at", "updated_at")
_TIMESTAMP_FIELDS = ("created_at", "updated_at")


class ValidationError(ValueError):
    """Raised when a payload misses a required field or carries an invalid value."""

    def __init__(self, message: str, field_name: str | None = None):
        super().__init__(message)
        self.message = message
        self.field_name = field_name


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings (or datetimes); naive values are taken as UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return parse_timestamp(value).astimezone(timezone.utc).isoformat()


def wire_name(name: str) -> str:
    """appliance_types -> applianceTypes"""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class _Record:
    """Serialization shared by the entity dataclasses."""

    def to_dict(self) -> dict:
        data = {}
        for f in dc_fields(self):
            value = getattr(self, f.name)
            if f.name in _TIMESTAMP_FIELDS:
                value = format_timestamp(value)
            elif isinstance(value, list):
                value = list(value)
            data[wire_name(f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """Build a record from its wire form. Raises ValueError on bad shapes."""
        if not isinstance(data, Mapping):
            raise ValueError(f"{cls.__name__} payload must be an object")
        values = {}
        for f in dc_fields(cls):
            key = wire_name(f.name)
            if key not in data:
                continue
            value = data[key]
            if f.name in _TIMESTAMP_FIELDS:
                value = parse_timestamp(value)
            values[f.name] = value
        if not values.get("id"):
            raise ValueError(f"{cls.__name__} payload has no id")
        values["id"] = str(values["id"])
        try:
            return cls(**values)
        except TypeError as exc:
            raise ValueError(f"Invalid {cls.__name__} payload: {exc}") from exc

    def merged(self, changes: Mapping[str, Any]):
        return replace(self, **dict(changes))


@dataclass
class ServiceProvider(_Record):
    id: str
    name: str
    email: str
    phone: str = ""
    address: str = ""
    appliance_types: list = field(default_factory=list)
    created_at: Optional[datetime] = None

    def services(self, appliance_type: str) -> bool:
        return appliance_type in (self.appliance_types or [])


@dataclass
class Appliance(_Record):
    id: str
    name: str
    type: str
    room: str
    floor: str
    status: str = "working"
    created_at: Optional[datetime] = None


@dataclass
class Issue(_Record):
    id: str
    appliance_id: str
    appliance_name: str
    room: str
    floor: str
    description: str
    reported_by: str
    status: str = "reported"
    priority: str = "medium"
    service_provider: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def snapshot(self) -> "IssueSnapshot":
        return IssueSnapshot(
            appliance_id=self.appliance_id,
            appliance_name=self.appliance_name,
            room=self.room,
            floor=self.floor,
            service_provider=self.service_provider,
        )

    @property
    def is_open(self) -> bool:
        return self.status != "resolved"


@dataclass(frozen=True)
class IssueSnapshot:
    """
    Point-in-time copy of the appliance (and provider) an issue was filed
    against. Renaming or deleting the source records never touches it.
    """

    appliance_id: str
    appliance_name: str
    room: str
    floor: str
    service_provider: Optional[str] = None

    @classmethod
    def capture(cls, appliance: Appliance, provider: Optional[ServiceProvider] = None) -> "IssueSnapshot":
        return cls(
            appliance_id=appliance.id,
            appliance_name=appliance.name,
            room=appliance.room,
            floor=appliance.floor,
            service_provider=provider.name if provider else None,
        )

    def as_fields(self) -> dict:
        return asdict(self)


RECORD_TYPES = {
    SERVICE_PROVIDERS: ServiceProvider,
    APPLIANCES: Appliance,
    ISSUES: Issue,
}

REQUIRED_FIELDS = {
    SERVICE_PROVIDERS: ("name", "email", "appliance_types"),
    APPLIANCES: ("name", "type", "room", "floor"),
    ISSUES: ("appliance_id", "appliance_name", "room", "floor", "description", "reported_by"),
}

DEFAULT_VALUES = {
    APPLIANCES: {"status": "working"},
    ISSUES: {"status": "reported", "priority": "medium"},
}

FIELD_CHOICES = {
    (APPLIANCES, "status"): APPLIANCE_STATUSES,
    (ISSUES, "status"): ISSUE_STATUSES,
    (ISSUES, "priority"): ISSUE_PRIORITIES,
}

# Snapshot fields are fixed once the issue exists.
READ_ONLY_FIELDS = {
    ISSUES: ("appliance_id", "appliance_name", "room", "floor"),
}


def record_type(kind: str):
    try:
        return RECORD_TYPES[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind!r}") from None


def editable_fields(kind: str) -> tuple:
    return tuple(f.name for f in dc_fields(record_type(kind)) if f.name not in SYSTEM_FIELDS)


def validate_fields(kind: str, values: Mapping[str, Any], *, partial: bool = False) -> dict:
    """
    Check a create (or, with partial=True, an update) payload and return a
    cleaned copy: strings stripped, appliance types de-duplicated, defaults
    filled for creates.
    """
    allowed = editable_fields(kind)
    cleaned: dict = {}
    for name, value in (values or {}).items():
        if name not in allowed:
            raise ValidationError(f"Unknown field '{name}'", name)
        if partial and name in READ_ONLY_FIELDS.get(kind, ()):
            raise ValidationError(f"Field '{name}' cannot change after creation", name)
        cleaned[name] = value.strip() if isinstance(value, str) else value

    if "appliance_types" in cleaned:
        types = cleaned["appliance_types"]
        if isinstance(types, str) or not isinstance(types, (list, tuple, set)):
            raise ValidationError("Field 'appliance_types' must be a list of labels", "appliance_types")
        labels = (str(label).strip() for label in types)
        cleaned["appliance_types"] = list(dict.fromkeys(label for label in labels if label))

    if not partial:
        for name, default in DEFAULT_VALUES.get(kind, {}).items():
            if cleaned.get(name) in (None, ""):
                cleaned[name] = default
    for name in REQUIRED_FIELDS[kind]:
        if (not partial or name in cleaned) and not cleaned.get(name):
            raise ValidationError(f"Field '{name}' is required", name)

    for (choice_kind, name), choices in FIELD_CHOICES.items():
        if choice_kind == kind and name in cleaned and cleaned[name] not in choices:
            raise ValidationError(
                f"Field '{name}' must be one of: {', '.join(choices)}", name
            )
    if kind == SERVICE_PROVIDERS and "email" in cleaned and "@" not in cleaned["email"]:
        raise ValidationError("Field 'email' must be an e-mail address", "email")
    if kind == ISSUES and cleaned.get("service_provider") == "":
        cleaned["service_provider"] = None
    return cleaned


def fields_to_wire(values: Mapping[str, Any]) -> dict:
    return {wire_name(name): value for name, value in values.items()}


def fields_from_wire(kind: str, payload: Mapping[str, Any]) -> dict:
    """Map a camelCase body onto editable attribute names, ignoring the rest."""
    by_wire = {wire_name(name): name for name in editable_fields(kind)}
    return {by_wire[key]: value for key, value in (payload or {}).items() if key in by_wire}
