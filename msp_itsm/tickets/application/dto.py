"""
Ticket Application DTOs
=======================

Data Transfer Objects for the ticket lifecycle API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from msp_itsm.tickets.domain import Ticket


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "critical"]
TicketKindStr = Literal["incident", "change_request", "service_request"]


# ========== Request DTOs ==========

class TicketCreateDTO(BaseModel):
    """DTO for opening a ticket of any kind."""
    title: str = Field(..., min_length=1, max_length=500, description="Ticket title")
    description: Optional[str] = Field(None, description="Free-text description")
    priority: PriorityStr = Field(default="medium", description="Ticket priority")
    team_id: str = Field(..., min_length=1, description="Owning team")
    requested_by: Optional[str] = Field(None, description="Requesting user id")
    assigned_to: Optional[str] = Field(None, min_length=1, description="Initial assignee")
    attributes: Dict[str, str] = Field(
        default_factory=dict,
        description="Known optional attributes (category, impact, urgency, change_type...)"
    )


class StatusChangeRequest(BaseModel):
    """Request body for a status transition."""
    status: str = Field(..., min_length=1, description="Target status")
    actor: Optional[str] = Field(None, description="User performing the change")
    expected_version: Optional[int] = Field(
        None, ge=1, description="Version the caller last read; stale versions are rejected"
    )


class AssignRequest(BaseModel):
    """Request body for assigning a ticket."""
    user_id: str = Field(..., min_length=1, description="New assignee")
    actor: Optional[str] = None
    expected_version: Optional[int] = Field(None, ge=1)


class UnassignRequest(BaseModel):
    """Request body for clearing the assignee."""
    actor: Optional[str] = None
    expected_version: Optional[int] = Field(None, ge=1)


# ========== Response DTOs ==========

class TicketResponse(BaseModel):
    """Response model for a ticket."""
    id: str
    kind: TicketKindStr
    title: str
    description: Optional[str] = None
    priority: PriorityStr
    status: str
    team_id: str
    requested_by: Optional[str] = None
    updated_by: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    attributes: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    version: int

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        return cls(**ticket.to_dict())


class TransitionsResponse(BaseModel):
    """Statuses reachable from the ticket's current status."""
    ticket_id: str
    kind: TicketKindStr
    status: str
    is_terminal: bool
    allowed: List[str] = Field(default_factory=list)
