"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for incident, change request and service request lifecycle.

Controllers are thin - they delegate to application services. Domain
exceptions are mapped to HTTP responses by the shared exception handler.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from msp_itsm.config import TicketKind
from msp_itsm.infrastructure.database import get_session
from msp_itsm.shared.infrastructure.logging import get_logger
from msp_itsm.tickets.application import (
    AssignRequest,
    StatusChangeRequest,
    TicketCreateDTO,
    TicketLifecycleService,
    TicketResponse,
    TransitionsResponse,
    UnassignRequest,
)
from msp_itsm.tickets.domain import get_state_machine
from msp_itsm.tickets.infrastructure import SQLAlchemyTicketRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/itsm", tags=["ITSM Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "title": "VPN gateway unreachable",
    "description": "Users at the Lyon office cannot reach the VPN since 08:00.",
    "priority": "critical",
    "team_id": "team-lyon",
    "requested_by": "user-42",
    "attributes": {"category": "network", "impact": "high"}
}

CONFLICT_RESPONSE_EXAMPLE = {
    "detail": "Cannot move change_request from 'draft' to 'implemented'",
    "error_type": "InvalidTransitionException",
    "details": {
        "kind": "change_request",
        "current_status": "draft",
        "target_status": "implemented",
        "allowed": ["pending_approval"]
    },
    "correlation_id": "5f0c4d1e-0b7a-4a38-9c52-1f1b1d0e6c3a"
}


# ========== Dependencies ==========

async def get_ticket_service(
    session: AsyncSession = Depends(get_session)
) -> TicketLifecycleService:
    """Get ticket lifecycle service instance."""
    return TicketLifecycleService(SQLAlchemyTicketRepository(session))


# ========== Route Handlers ==========

@router.post(
    "/{kind}",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a ticket",
    description="""
    Open an incident, change request or service request.

    The ticket starts in its kind's initial status: `open` for incidents and
    service requests, `draft` for change requests. Providing `assigned_to`
    stamps `assigned_at` at creation.
    """,
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}
    }
)
async def create_ticket(
    kind: TicketKind,
    data: TicketCreateDTO,
    service: TicketLifecycleService = Depends(get_ticket_service)
):
    ticket = await service.create(kind, data, actor=data.requested_by)
    return TicketResponse.from_domain(ticket)


@router.get(
    "/{kind}",
    response_model=List[TicketResponse],
    summary="List tickets"
)
async def list_tickets(
    kind: TicketKind,
    team_id: Optional[str] = Query(None, description="Filter by owning team"),
    ticket_status: Optional[str] = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(100, ge=1, le=1000, description="Results per page"),
    offset: int = Query(0, ge=0, description="Page offset"),
    service: TicketLifecycleService = Depends(get_ticket_service)
):
    tickets = await service.list(
        kind, team_id=team_id, status=ticket_status, limit=limit, offset=offset
    )
    return [TicketResponse.from_domain(t) for t in tickets]


@router.get(
    "/{kind}/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket"
)
async def get_ticket(
    kind: TicketKind,
    ticket_id: str,
    service: TicketLifecycleService = Depends(get_ticket_service)
):
    ticket = await service.get(kind, ticket_id)
    return TicketResponse.from_domain(ticket)


@router.get(
    "/{kind}/{ticket_id}/transitions",
    response_model=TransitionsResponse,
    summary="List legal next statuses"
)
async def get_transitions(
    kind: TicketKind,
    ticket_id: str,
    service: TicketLifecycleService = Depends(get_ticket_service)
):
    ticket = await service.get(kind, ticket_id)
    machine = get_state_machine(kind)
    return TransitionsResponse(
        ticket_id=ticket.id,
        kind=kind.value,
        status=ticket.status,
        is_terminal=machine.is_terminal(ticket.status),
        allowed=machine.allowed_targets(ticket),
    )


@router.post(
    "/{kind}/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Change ticket status",
    description="""
    Move a ticket to another status.

    - Unknown statuses for the kind are rejected with **422**.
    - Statuses not reachable from the current one are rejected with **409**
      and the list of allowed targets.
    - A stale `expected_version` is rejected with **409**.

    Entering a terminal status stamps `resolved_at` (incidents, service
    requests) or `completed_at` (change requests) once; entering `approved`
    records `approved_by` / `approved_at`.
    """,
    responses={
        409: {
            "description": "Illegal transition or stale version",
            "content": {"application/json": {"example": CONFLICT_RESPONSE_EXAMPLE}}
        }
    }
)
async def change_status(
    kind: TicketKind,
    ticket_id: str,
    request: StatusChangeRequest,
    service: TicketLifecycleService = Depends(get_ticket_service)
):
    ticket = await service.change_status(
        kind, ticket_id, request.status,
        actor=request.actor,
        expected_version=request.expected_version
    )
    return TicketResponse.from_domain(ticket)


@router.post(
    "/{kind}/{ticket_id}/assign",
    response_model=TicketResponse,
    summary="Assign a ticket",
    description="""
    Assign a ticket to a user. Assigning to the current assignee is a no-op.
    Terminal tickets cannot be reassigned (**409**).
    """
)
async def assign_ticket(
    kind: TicketKind,
    ticket_id: str,
    request: AssignRequest,
    service: TicketLifecycleService = Depends(get_ticket_service)
):
    ticket = await service.assign(
        kind, ticket_id, request.user_id,
        actor=request.actor,
        expected_version=request.expected_version
    )
    return TicketResponse.from_domain(ticket)


@router.post(
    "/{kind}/{ticket_id}/unassign",
    response_model=TicketResponse,
    summary="Clear the assignee"
)
async def unassign_ticket(
    kind: TicketKind,
    ticket_id: str,
    request: UnassignRequest,
    service: TicketLifecycleService = Depends(get_ticket_service)
):
    ticket = await service.unassign(
        kind, ticket_id,
        actor=request.actor,
        expected_version=request.expected_version
    )
    return TicketResponse.from_domain(ticket)


# Export router for inclusion in main app
tickets_router = router
