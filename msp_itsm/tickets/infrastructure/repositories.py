"""
Ticket Infrastructure Repositories
==================================

SQLAlchemy implementation of the ticket repository interface.

Writes use optimistic concurrency: an UPDATE only matches the row while its
``version`` equals the version the caller loaded, and bumps it by one.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Type
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from msp_itsm.config import Priority, TicketKind
from msp_itsm.core import ConcurrencyConflictException, ResourceNotFoundException
from msp_itsm.tickets.application import ITicketRepository
from msp_itsm.tickets.domain import Ticket
from msp_itsm.tickets.infrastructure.models import (
    ChangeRequestModel,
    IncidentModel,
    ServiceRequestModel,
    TicketColumnsMixin,
)

MODEL_BY_KIND: Dict[TicketKind, Type[TicketColumnsMixin]] = {
    TicketKind.INCIDENT: IncidentModel,
    TicketKind.CHANGE_REQUEST: ChangeRequestModel,
    TicketKind.SERVICE_REQUEST: ServiceRequestModel,
}

# Kind-specific columns, present only on some tables
OPTIONAL_COLUMNS = ("resolved_at", "completed_at", "approved_by", "approved_at")


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Handles persistence of Ticket entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, kind: TicketKind, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by id."""
        model = MODEL_BY_KIND[kind]
        ticket_uuid = _parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        stmt = (
            select(model)
            .where(model.id == ticket_uuid)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return self._to_domain(kind, row) if row else None

    async def list(
        self,
        kind: TicketKind,
        filters: dict,
        limit: int = 100,
        offset: int = 0
    ) -> List[Ticket]:
        """List tickets with filters."""
        model = MODEL_BY_KIND[kind]
        stmt = select(model).execution_options(populate_existing=True)

        conditions = []
        if "team_id" in filters:
            conditions.append(model.team_id == filters["team_id"])

        if "status" in filters:
            status_list = filters["status"]
            if isinstance(status_list, (list, tuple, set)):
                conditions.append(model.status.in_(list(status_list)))
            else:
                conditions.append(model.status == status_list)

        if "priority" in filters:
            conditions.append(model.priority == filters["priority"])

        if "assigned_to" in filters:
            conditions.append(model.assigned_to == filters["assigned_to"])

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(model.created_at.desc()).limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return [self._to_domain(kind, row) for row in result.scalars().all()]

    async def create(self, ticket: Ticket) -> Ticket:
        """Create new ticket."""
        model = MODEL_BY_KIND[ticket.kind]
        row = model(
            id=UUID(ticket.id),
            created_at=ticket.created_at,
            version=ticket.version,
            **self._column_values(model, ticket)
        )
        self._session.add(row)
        await self._session.flush()
        return ticket

    async def update(self, ticket: Ticket, expected_version: int) -> Ticket:
        """Update ticket if its stored version is still ``expected_version``."""
        model = MODEL_BY_KIND[ticket.kind]
        ticket_uuid = _parse_uuid(ticket.id)
        if ticket_uuid is None:
            raise ResourceNotFoundException(ticket.kind.value, ticket.id)

        stmt = (
            update(model)
            .where(model.id == ticket_uuid, model.version == expected_version)
            .values(version=expected_version + 1, **self._column_values(model, ticket))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)

        if result.rowcount == 0:
            current = await self._session.scalar(
                select(model.version).where(model.id == ticket_uuid)
            )
            if current is None:
                raise ResourceNotFoundException(ticket.kind.value, ticket.id)
            raise ConcurrencyConflictException(
                ticket.kind.value, ticket.id, expected_version, current
            )

        return replace(ticket, version=expected_version + 1)

    @staticmethod
    def _column_values(model: Type[TicketColumnsMixin], ticket: Ticket) -> Dict[str, Any]:
        values = {
            "title": ticket.title,
            "description": ticket.description,
            "priority": ticket.priority.value,
            "status": ticket.status,
            "team_id": ticket.team_id,
            "requested_by": ticket.requested_by,
            "updated_by": ticket.updated_by,
            "assigned_to": ticket.assigned_to,
            "assigned_at": ticket.assigned_at,
            "attributes": dict(ticket.attributes),
            "updated_at": ticket.updated_at,
        }
        for column in OPTIONAL_COLUMNS:
            if hasattr(model, column):
                values[column] = getattr(ticket, column)
        return values

    @staticmethod
    def _to_domain(kind: TicketKind, row: Any) -> Ticket:
        return Ticket(
            id=str(row.id),
            kind=kind,
            title=row.title,
            description=row.description,
            priority=Priority(row.priority),
            status=row.status,
            team_id=row.team_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            requested_by=row.requested_by,
            updated_by=row.updated_by,
            assigned_to=row.assigned_to,
            assigned_at=row.assigned_at,
            resolved_at=getattr(row, "resolved_at", None),
            completed_at=getattr(row, "completed_at", None),
            approved_by=getattr(row, "approved_by", None),
            approved_at=getattr(row, "approved_at", None),
            attributes=dict(row.attributes or {}),
            version=row.version,
        )
