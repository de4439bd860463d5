"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for the three ITSM ticket tables.

These are the database representations of the Ticket domain entity.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from msp_itsm.infrastructure.database import Base, UTCDateTime
from msp_itsm.config import Priority


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketColumnsMixin:
    """Columns shared by incidents, change requests and service requests."""

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(50), nullable=False, default=Priority.MEDIUM.value)
    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Owning team (resolves to the client relationship type)
    team_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    requested_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Assignment
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    attributes: Mapped[Dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class IncidentModel(TicketColumnsMixin, Base):
    """Maps to the 'itsm_incidents' table."""
    __tablename__ = "itsm_incidents"

    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)


class ChangeRequestModel(TicketColumnsMixin, Base):
    """Maps to the 'itsm_change_requests' table."""
    __tablename__ = "itsm_change_requests"

    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)


class ServiceRequestModel(TicketColumnsMixin, Base):
    """Maps to the 'itsm_service_requests' table."""
    __tablename__ = "itsm_service_requests"

    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
