"""
Ticket Infrastructure Layer
===========================

Infrastructure implementations for the ticket lifecycle:
- Models: SQLAlchemy ORM models (one table per ticket kind)
- Repositories: Data access layer with optimistic concurrency
"""

from msp_itsm.tickets.infrastructure.models import (
    IncidentModel,
    ChangeRequestModel,
    ServiceRequestModel,
)
from msp_itsm.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    MODEL_BY_KIND,
)

__all__ = [
    "IncidentModel",
    "ChangeRequestModel",
    "ServiceRequestModel",
    "SQLAlchemyTicketRepository",
    "MODEL_BY_KIND",
]
