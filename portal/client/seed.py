"""Fixed starter data used when neither the API nor local storage has any."""
from __future__ import annotations

from datetime import datetime, timezone

from portal.domain.entities import (
    APPLIANCES,
    ISSUES,
    SERVICE_PROVIDERS,
    Appliance,
    Issue,
    ServiceProvider,
)


def _day(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def seed_records(kind: str) -> list:
    """Fresh copies of the seed collection for ``kind``; identical on every call."""
    if kind == SERVICE_PROVIDERS:
        return [
            ServiceProvider(
                id="1",
                name="TechFix Solutions",
                email="contact@techfix.com",
                phone="+1 (555) 123-4567",
                address="123 Tech Street, City, State 12345",
                appliance_types=["Computer", "Printer", "Projector"],
                created_at=_day(2024, 1, 15),
            ),
            ServiceProvider(
                id="2",
                name="ElectroRepair Pro",
                email="service@electrorepair.com",
                phone="+1 (555) 987-6543",
                address="456 Electric Ave, City, State 12345",
                appliance_types=["Air Conditioner", "Refrigerator", "Microwave"],
                created_at=_day(2024, 1, 20),
            ),
        ]
    if kind == APPLIANCES:
        return [
            Appliance(id="1", name="Conference Room Computer", type="Computer", room="101", floor="1",
                      status="working", created_at=_day(2024, 1, 25)),
            Appliance(id="2", name="Break Room Microwave", type="Microwave", room="105", floor="1",
                      status="faulty", created_at=_day(2024, 1, 26)),
            Appliance(id="3", name="Office Printer", type="Printer", room="201", floor="2",
                      status="working", created_at=_day(2024, 1, 27)),
        ]
    if kind == ISSUES:
        return [
            Issue(
                id="1",
                appliance_id="2",
                appliance_name="Break Room Microwave",
                room="105",
                floor="1",
                description=(
                    "Microwave is not heating food properly. The turntable also makes "
                    "strange noises when rotating."
                ),
                status="reported",
                priority="medium",
                reported_by="John Doe",
                service_provider="ElectroRepair Pro",
                created_at=_day(2024, 1, 28),
                updated_at=_day(2024, 1, 28),
            ),
        ]
    raise ValueError(f"Unknown entity kind: {kind!r}")
