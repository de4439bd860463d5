"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from msp_itsm.config import ClientType, Priority, SLAHealth, TicketKind


@dataclass
class SLAPolicy:
    """
    SLA policy for one (client type, priority) pair.

    Created and edited by an administrator; disabled through ``is_active``
    and never hard-deleted.
    """

    id: str
    name: str
    client_type: ClientType
    priority: Priority
    response_time_hours: float
    resolution_time_hours: float
    created_at: datetime
    updated_at: datetime

    escalation_time_hours: Optional[float] = None
    escalation_to: Optional[str] = None
    is_active: bool = True
    description: Optional[str] = None
    team_id: Optional[str] = None

    def __post_init__(self):
        """Validate policy on initialization."""
        if self.response_time_hours < 0 or self.resolution_time_hours < 0:
            raise ValueError("SLA hours cannot be negative")

        if self.escalation_time_hours is not None and self.escalation_time_hours < 0:
            raise ValueError("escalation_time_hours cannot be negative")

    def matches(self, client_type: ClientType, priority: Priority) -> bool:
        """Exact applicability check (no fallback across either field)."""
        return self.client_type == client_type and self.priority == priority

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "team_id": self.team_id,
            "client_type": self.client_type.value,
            "priority": self.priority.value,
            "response_time_hours": self.response_time_hours,
            "resolution_time_hours": self.resolution_time_hours,
            "escalation_time_hours": self.escalation_time_hours,
            "escalation_to": self.escalation_to,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class SLADeadlines:
    """Due instants derived from a policy and a ticket's timestamps."""
    policy_id: str
    response_due_at: datetime
    resolution_due_at: datetime
    escalation_due_at: Optional[datetime] = None


@dataclass(frozen=True)
class SLAClassification:
    """Health verdict for one ticket at one instant."""
    health: SLAHealth
    is_breached_response: bool = False
    is_breached_resolution: bool = False
    is_escalation_due: bool = False


@dataclass(frozen=True)
class SLATracking:
    """
    Read-only SLA view over a ticket and its resolved policy.

    Computed on demand; never persisted or mutated.
    """

    ticket_id: str
    kind: TicketKind
    health: SLAHealth
    evaluated_at: datetime
    policy_id: Optional[str] = None
    response_due_at: Optional[datetime] = None
    resolution_due_at: Optional[datetime] = None
    escalation_due_at: Optional[datetime] = None
    is_breached_response: bool = False
    is_breached_resolution: bool = False
    is_escalation_due: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "ticket_id": self.ticket_id,
            "kind": self.kind.value,
            "policy_id": self.policy_id,
            "health": self.health.value,
            "response_due_at": self.response_due_at,
            "resolution_due_at": self.resolution_due_at,
            "escalation_due_at": self.escalation_due_at,
            "is_breached_response": self.is_breached_response,
            "is_breached_resolution": self.is_breached_resolution,
            "is_escalation_due": self.is_escalation_due,
            "evaluated_at": self.evaluated_at,
        }


@dataclass
class SLASummary:
    """Health counts over a set of tickets, for dashboard badges."""

    kind: TicketKind
    evaluated_at: datetime
    counts: Dict[SLAHealth, int] = field(
        default_factory=lambda: {health: 0 for health in SLAHealth}
    )

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def breach_rate(self) -> float:
        """Percentage of SLA-tracked tickets that are breached."""
        tracked = self.total - self.counts[SLAHealth.NOT_APPLICABLE]
        if tracked == 0:
            return 0.0
        return round(self.counts[SLAHealth.BREACHED] / tracked * 100, 2)

    def add(self, health: SLAHealth) -> None:
        self.counts[health] += 1
