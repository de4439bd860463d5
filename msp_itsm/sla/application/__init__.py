"""
SLA Application Layer
======================

Application layer for SLA tracking.

Contains:
- Services: SLA tracking over tickets, and SLA policy administration
- DTOs: Data transfer objects for API serialization
- Store interfaces: policy store and team directory

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from msp_itsm.sla.application.dto import (
    SLAPolicyCreateDTO,
    SLAPolicyUpdateDTO,
    SLAPolicyResponse,
    SLATrackingResponse,
    SLASummaryResponse,
    BreachedTicketsResponse,
)
from msp_itsm.sla.application.services import (
    SLAService,
    SLAPolicyService,
    IPolicyStore,
    IPolicyAdminStore,
    ITeamDirectory,
)

__all__ = [
    # DTOs
    "SLAPolicyCreateDTO",
    "SLAPolicyUpdateDTO",
    "SLAPolicyResponse",
    "SLATrackingResponse",
    "SLASummaryResponse",
    "BreachedTicketsResponse",
    # Services
    "SLAService",
    "SLAPolicyService",
    # Store Interfaces
    "IPolicyStore",
    "IPolicyAdminStore",
    "ITeamDirectory",
]
