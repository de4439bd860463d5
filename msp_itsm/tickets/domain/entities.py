"""
Ticket Domain Entities
======================

Pure Python domain entities for ITSM tickets.

Incidents, change requests and service requests share one entity; the
``kind`` field selects the transition table that governs ``status``.
Entities are treated as immutable snapshots: every mutation goes through the
state machine or the assignment manager, which return updated copies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from msp_itsm.config import Priority, TicketKind


@dataclass
class Ticket:
    """
    ITSM ticket snapshot.

    ``resolved_at`` is the terminal timestamp for incidents and service
    requests, ``completed_at`` the one for change requests.
    """

    # Core attributes
    id: str
    kind: TicketKind
    title: str
    priority: Priority
    status: str
    team_id: str

    # Timestamps
    created_at: datetime
    updated_at: datetime

    description: Optional[str] = None
    requested_by: Optional[str] = None
    updated_by: Optional[str] = None

    # Assignment
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None

    # Terminal timestamps
    resolved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Change approval
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None

    # Known optional attributes (category, impact, urgency, change_type...)
    attributes: Dict[str, str] = field(default_factory=dict)

    # Optimistic concurrency counter, bumped by the repository on every write
    version: int = 1

    def __post_init__(self):
        """Validate ticket on initialization."""
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")

        if (self.assigned_to is None) != (self.assigned_at is None):
            raise ValueError("assigned_at must be set if and only if assigned_to is set")

        if self.assigned_at and self.assigned_at < self.created_at:
            raise ValueError("assigned_at cannot be before created_at")

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status,
            "team_id": self.team_id,
            "requested_by": self.requested_by,
            "updated_by": self.updated_by,
            "assigned_to": self.assigned_to,
            "assigned_at": self.assigned_at,
            "resolved_at": self.resolved_at,
            "completed_at": self.completed_at,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at,
            "attributes": dict(self.attributes),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "version": self.version,
        }
