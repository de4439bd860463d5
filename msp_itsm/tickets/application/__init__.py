"""
Ticket Application Layer
========================

Application layer for the ITSM ticket lifecycle.

Contains:
- Services: TicketLifecycleService (create, transition, assign)
- DTOs: Data transfer objects for API serialization
- Repository interface: ITicketRepository

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from msp_itsm.tickets.application.dto import (
    TicketCreateDTO,
    StatusChangeRequest,
    AssignRequest,
    UnassignRequest,
    TicketResponse,
    TransitionsResponse,
)
from msp_itsm.tickets.application.services import (
    ITicketRepository,
    TicketLifecycleService,
    utc_now,
)

__all__ = [
    # DTOs
    "TicketCreateDTO",
    "StatusChangeRequest",
    "AssignRequest",
    "UnassignRequest",
    "TicketResponse",
    "TransitionsResponse",
    # Services
    "TicketLifecycleService",
    "utc_now",
    # Repository Interfaces
    "ITicketRepository",
]
