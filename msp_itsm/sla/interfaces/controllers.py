"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA tracking and SLA policy administration.

Controllers are thin - they delegate to application services.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from msp_itsm.config import TicketKind, get_settings
from msp_itsm.infrastructure.database import get_session
from msp_itsm.shared.infrastructure.logging import get_logger
from msp_itsm.sla.application import (
    BreachedTicketsResponse,
    IPolicyAdminStore,
    ITeamDirectory,
    SLAPolicyCreateDTO,
    SLAPolicyResponse,
    SLAPolicyService,
    SLAPolicyUpdateDTO,
    SLAService,
    SLASummaryResponse,
    SLATrackingResponse,
)
from msp_itsm.sla.domain import SLAWarningPolicy
from msp_itsm.sla.infrastructure import SQLAlchemyPolicyStore, SQLAlchemyTeamDirectory
from msp_itsm.tickets.infrastructure import SQLAlchemyTicketRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Tracking"])


# ========== Example payloads for Swagger ==========

POLICY_CREATE_EXAMPLE = {
    "name": "Direct - Critical",
    "client_type": "direct",
    "priority": "critical",
    "response_time_hours": 1,
    "resolution_time_hours": 4,
    "escalation_time_hours": 2,
    "escalation_to": "duty-manager"
}

TICKET_SLA_RESPONSE_EXAMPLE = {
    "ticket_id": "123e4567-e89b-12d3-a456-426614174000",
    "kind": "incident",
    "policy_id": "0b5c1f8e-3f4e-4c8a-9a55-2b1b9e4b7c11",
    "health": "at_risk",
    "response_due_at": "2026-01-15T11:00:00Z",
    "resolution_due_at": "2026-01-15T14:00:00Z",
    "escalation_due_at": "2026-01-15T12:00:00Z",
    "is_breached_response": False,
    "is_breached_resolution": False,
    "is_escalation_due": False,
    "evaluated_at": "2026-01-15T10:55:00Z"
}

DASHBOARD_RESPONSE_EXAMPLE = {
    "kind": "incident",
    "total_tickets": 12,
    "on_track_count": 8,
    "at_risk_count": 2,
    "breached_count": 1,
    "not_applicable_count": 1,
    "breach_rate": 9.09,
    "evaluated_at": "2026-01-15T10:55:00Z"
}


# ========== Dependencies ==========

async def get_policy_store(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> IPolicyAdminStore:
    """File-backed store when one was loaded at startup, database otherwise."""
    file_store = getattr(request.app.state, "policy_store", None)
    if file_store is not None:
        return file_store
    return SQLAlchemyPolicyStore(session)


async def get_team_directory(
    session: AsyncSession = Depends(get_session)
) -> ITeamDirectory:
    return SQLAlchemyTeamDirectory(session)


def get_warning_policy() -> SLAWarningPolicy:
    settings = get_settings()
    return SLAWarningPolicy(
        warning_fraction=settings.sla_warning_fraction,
        warning_window_hours=settings.sla_warning_window_hours
    )


async def get_sla_service(
    session: AsyncSession = Depends(get_session),
    policy_store: IPolicyAdminStore = Depends(get_policy_store),
    team_directory: ITeamDirectory = Depends(get_team_directory),
    warning: SLAWarningPolicy = Depends(get_warning_policy)
) -> SLAService:
    """Get SLA service instance."""
    return SLAService(
        SQLAlchemyTicketRepository(session),
        policy_store,
        team_directory,
        warning=warning
    )


async def get_policy_service(
    policy_store: IPolicyAdminStore = Depends(get_policy_store)
) -> SLAPolicyService:
    """Get SLA policy administration service instance."""
    return SLAPolicyService(policy_store)


# ========== Policy administration ==========
# Declared before the ticket routes so "/policies/..." is not read as a kind.

@router.get(
    "/policies",
    response_model=List[SLAPolicyResponse],
    summary="List SLA policies"
)
async def list_policies(
    client_type: Optional[str] = Query(None, description="Filter by client type (direct, via_esn)"),
    priority: Optional[str] = Query(None, description="Filter by priority (critical, high, medium, low)"),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    team_id: Optional[str] = Query(None, description="Filter by owning team"),
    service: SLAPolicyService = Depends(get_policy_service)
):
    policies = await service.list(
        client_type=client_type, priority=priority, is_active=is_active, team_id=team_id
    )
    return [SLAPolicyResponse.from_domain(p) for p in policies]


@router.post(
    "/policies",
    response_model=SLAPolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an SLA policy",
    description="""
    Create a policy for one (client type, priority) pair.

    When several active policies share a pair, the most recently updated one
    applies. Hours may be zero; a response target longer than the resolution
    target is accepted as entered.
    """,
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": POLICY_CREATE_EXAMPLE}}}
    }
)
async def create_policy(
    data: SLAPolicyCreateDTO,
    service: SLAPolicyService = Depends(get_policy_service)
):
    policy = await service.create(data)
    return SLAPolicyResponse.from_domain(policy)


@router.get(
    "/policies/{policy_id}",
    response_model=SLAPolicyResponse,
    summary="Get an SLA policy"
)
async def get_policy(
    policy_id: str,
    service: SLAPolicyService = Depends(get_policy_service)
):
    policy = await service.get(policy_id)
    return SLAPolicyResponse.from_domain(policy)


@router.patch(
    "/policies/{policy_id}",
    response_model=SLAPolicyResponse,
    summary="Edit an SLA policy"
)
async def update_policy(
    policy_id: str,
    data: SLAPolicyUpdateDTO,
    service: SLAPolicyService = Depends(get_policy_service)
):
    policy = await service.update(policy_id, data)
    return SLAPolicyResponse.from_domain(policy)


@router.post(
    "/policies/{policy_id}/deactivate",
    response_model=SLAPolicyResponse,
    summary="Deactivate an SLA policy",
    description="Policies are never deleted; a deactivated policy stops applying to tickets."
)
async def deactivate_policy(
    policy_id: str,
    service: SLAPolicyService = Depends(get_policy_service)
):
    policy = await service.deactivate(policy_id)
    return SLAPolicyResponse.from_domain(policy)


@router.get(
    "/resolve",
    response_model=Optional[SLAPolicyResponse],
    summary="Preview the applicable policy",
    description="Policy that would apply to a ticket of this priority for this client type and team, or null."
)
async def resolve_policy(
    client_type: str = Query(..., description="Client type (direct, via_esn)"),
    priority: str = Query(..., description="Priority (critical, high, medium, low)"),
    team_id: Optional[str] = Query(None, description="Owning team; team policies outrank shared ones"),
    service: SLAPolicyService = Depends(get_policy_service)
):
    policy = await service.resolve(client_type, priority, team_id)
    return SLAPolicyResponse.from_domain(policy) if policy else None


# ========== Tracking ==========

@router.get(
    "/dashboard/{kind}",
    response_model=SLASummaryResponse,
    summary="SLA health counts",
    responses={
        200: {
            "description": "Health counts",
            "content": {"application/json": {"example": DASHBOARD_RESPONSE_EXAMPLE}}
        }
    }
)
async def get_dashboard(
    kind: TicketKind,
    team_id: Optional[str] = Query(None, description="Restrict to one team"),
    service: SLAService = Depends(get_sla_service)
):
    summary = await service.dashboard(kind, team_id=team_id)
    return SLASummaryResponse.from_domain(summary)


@router.get(
    "/breached/{kind}",
    response_model=BreachedTicketsResponse,
    summary="Open tickets in breach"
)
async def get_breached(
    kind: TicketKind,
    team_id: Optional[str] = Query(None, description="Restrict to one team"),
    service: SLAService = Depends(get_sla_service)
):
    breached = await service.list_breached(kind, team_id=team_id)
    return BreachedTicketsResponse(
        kind=kind.value,
        tickets=[SLATrackingResponse.from_domain(t) for t in breached]
    )


@router.get(
    "/{kind}/{ticket_id}",
    response_model=SLATrackingResponse,
    summary="Get ticket SLA status",
    description="""
    SLA badge for a single ticket, recomputed at request time.

    `health` is one of `on_track`, `at_risk`, `breached`, `not_applicable`.
    A ticket whose team has no client type, or with no matching active
    policy, is `not_applicable`.
    """,
    responses={
        200: {
            "description": "Ticket SLA information",
            "content": {"application/json": {"example": TICKET_SLA_RESPONSE_EXAMPLE}}
        },
        404: {"description": "Ticket not found"}
    }
)
async def get_ticket_sla(
    kind: TicketKind,
    ticket_id: str,
    service: SLAService = Depends(get_sla_service)
):
    tracking = await service.track(kind, ticket_id)
    return SLATrackingResponse.from_domain(tracking)


# Export router for inclusion in main app
sla_router = router
