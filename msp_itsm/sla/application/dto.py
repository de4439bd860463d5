"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Following YAGNI - only what's needed.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from msp_itsm.config import SLAHealth
from msp_itsm.sla.domain import SLAPolicy, SLASummary, SLATracking


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "critical"]
ClientTypeStr = Literal["direct", "via_esn"]
TicketKindStr = Literal["incident", "change_request", "service_request"]
SLAHealthStr = Literal["on_track", "at_risk", "breached", "not_applicable"]

# Policy fields that an edit may change but never clear
REQUIRED_POLICY_FIELDS = (
    "name",
    "client_type",
    "priority",
    "response_time_hours",
    "resolution_time_hours",
    "is_active",
)


# ========== Request DTOs ==========

class SLAPolicyCreateDTO(BaseModel):
    """DTO for creating an SLA policy."""
    name: str = Field(..., min_length=1, max_length=255, description="Policy name")
    description: Optional[str] = None
    team_id: Optional[str] = Field(None, description="Team that owns the policy")
    client_type: ClientTypeStr = Field(..., description="Client relationship type")
    priority: PriorityStr = Field(..., description="Ticket priority")
    response_time_hours: float = Field(..., ge=0, description="Hours until first response is due")
    resolution_time_hours: float = Field(..., ge=0, description="Hours until resolution is due")
    escalation_time_hours: Optional[float] = Field(
        None, ge=0, description="Hours after assignment (or creation) until escalation"
    )
    escalation_to: Optional[str] = Field(None, description="User escalated to")
    is_active: bool = True


class SLAPolicyUpdateDTO(BaseModel):
    """DTO for editing an SLA policy. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    client_type: Optional[ClientTypeStr] = None
    priority: Optional[PriorityStr] = None
    response_time_hours: Optional[float] = Field(None, ge=0)
    resolution_time_hours: Optional[float] = Field(None, ge=0)
    escalation_time_hours: Optional[float] = Field(None, ge=0)
    escalation_to: Optional[str] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def reject_cleared_required_fields(self) -> "SLAPolicyUpdateDTO":
        cleared = sorted(
            field for field in REQUIRED_POLICY_FIELDS
            if field in self.model_fields_set and getattr(self, field) is None
        )
        if cleared:
            raise ValueError(f"fields cannot be null: {', '.join(cleared)}")
        return self


# ========== Response DTOs ==========

class SLAPolicyResponse(BaseModel):
    """Response model for an SLA policy."""
    id: str
    name: str
    description: Optional[str] = None
    team_id: Optional[str] = None
    client_type: ClientTypeStr
    priority: PriorityStr
    response_time_hours: float
    resolution_time_hours: float
    escalation_time_hours: Optional[float] = None
    escalation_to: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, policy: SLAPolicy) -> "SLAPolicyResponse":
        return cls(**policy.to_dict())


class SLATrackingResponse(BaseModel):
    """Response model for a ticket's SLA badge."""
    ticket_id: str
    kind: TicketKindStr
    policy_id: Optional[str] = None
    health: SLAHealthStr
    response_due_at: Optional[datetime] = None
    resolution_due_at: Optional[datetime] = None
    escalation_due_at: Optional[datetime] = None
    is_breached_response: bool = False
    is_breached_resolution: bool = False
    is_escalation_due: bool = False
    evaluated_at: datetime

    @classmethod
    def from_domain(cls, tracking: SLATracking) -> "SLATrackingResponse":
        return cls(**tracking.to_dict())


class SLASummaryResponse(BaseModel):
    """Health counts for a dashboard."""
    kind: TicketKindStr
    total_tickets: int
    on_track_count: int
    at_risk_count: int
    breached_count: int
    not_applicable_count: int
    breach_rate: float = Field(..., description="Percentage of SLA-tracked tickets breached")
    evaluated_at: datetime

    @classmethod
    def from_domain(cls, summary: SLASummary) -> "SLASummaryResponse":
        return cls(
            kind=summary.kind.value,
            total_tickets=summary.total,
            on_track_count=summary.counts[SLAHealth.ON_TRACK],
            at_risk_count=summary.counts[SLAHealth.AT_RISK],
            breached_count=summary.counts[SLAHealth.BREACHED],
            not_applicable_count=summary.counts[SLAHealth.NOT_APPLICABLE],
            breach_rate=summary.breach_rate,
            evaluated_at=summary.evaluated_at,
        )


class BreachedTicketsResponse(BaseModel):
    """Open tickets currently in breach."""
    kind: TicketKindStr
    tickets: List[SLATrackingResponse] = Field(default_factory=list)
