"""SQLAlchemy models for the three portal collections."""
from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    String,
    Text,
    JSON,
    func,
)

from .session import Base


class ServiceProviderRow(Base):
    __tablename__ = "service_providers"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(64), nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    appliance_types = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ApplianceRow(Base):
    __tablename__ = "appliances"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(64), nullable=False)
    room = Column(String(64), nullable=False)
    floor = Column(String(64), nullable=False)
    status = Column(String(32), nullable=False, default="working")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class IssueRow(Base):
    __tablename__ = "issues"

    id = Column(String(64), primary_key=True)
    # Plain column, not a foreign key: deleting an appliance leaves its issues alone.
    appliance_id = Column(String(64), nullable=False, index=True)
    appliance_name = Column(String(255), nullable=False)
    room = Column(String(64), nullable=False)
    floor = Column(String(64), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(32), nullable=False, default="reported")
    priority = Column(String(16), nullable=False, default="medium")
    reported_by = Column(String(255), nullable=False)
    service_provider = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
