"""Create the service provider, appliance and issue tables."""
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from .session import Base, get_engine
from . import models  # noqa: F401  # registers the portal tables on Base.metadata


def create_all() -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    try:
        create_all()
        print("Portal tables created.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Could not create portal tables: {exc}") from exc
