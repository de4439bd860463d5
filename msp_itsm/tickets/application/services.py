"""
Ticket Application Services
===========================

Application services orchestrate the ticket lifecycle: load a snapshot,
apply a state-machine transition or an assignment change, persist it.

Following SOLID principles:
- Single Responsibility: transition/assignment rules live in the domain
- Dependency Inversion: depend on the repository abstraction, not SQLAlchemy
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import uuid4

from msp_itsm.config import TicketKind, parse_priority
from msp_itsm.core import ConcurrencyConflictException, ResourceNotFoundException
from msp_itsm.shared.infrastructure.logging import get_logger
from msp_itsm.tickets.application.dto import TicketCreateDTO
from msp_itsm.tickets.domain import AssignmentManager, Ticket, get_state_machine

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket persistence across the three ticket tables."""

    @abstractmethod
    async def get_by_id(self, kind: TicketKind, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by id, None if unknown."""

    @abstractmethod
    async def list(
        self,
        kind: TicketKind,
        filters: dict,
        limit: int = 100,
        offset: int = 0
    ) -> List[Ticket]:
        """List tickets of a kind. Supported filters: team_id, status, priority, assigned_to."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket."""

    @abstractmethod
    async def update(self, ticket: Ticket, expected_version: int) -> Ticket:
        """
        Persist ``ticket`` if the stored row is still at ``expected_version``.

        Returns the stored ticket with its version bumped.

        Raises:
            ResourceNotFoundException: the ticket no longer exists
            ConcurrencyConflictException: the stored version moved on
        """


# ========== Application Services ==========

class TicketLifecycleService:
    """
    Service for status transitions and assignment of ITSM tickets.

    Every mutation is validated by the domain layer and written with an
    optimistic version check; no retries happen here.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        clock: Callable[[], datetime] = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._clock = clock

    async def create(
        self,
        kind: TicketKind,
        data: TicketCreateDTO,
        actor: Optional[str] = None
    ) -> Ticket:
        """Open a ticket in its kind's initial status."""
        machine = get_state_machine(kind)
        now = self._clock()

        ticket = Ticket(
            id=str(uuid4()),
            kind=machine.kind,
            title=data.title,
            description=data.description,
            priority=parse_priority(data.priority),
            status=machine.initial_status,
            team_id=data.team_id,
            created_at=now,
            updated_at=now,
            requested_by=data.requested_by,
            updated_by=actor,
            assigned_to=data.assigned_to,
            assigned_at=now if data.assigned_to else None,
            attributes=dict(data.attributes),
        )
        machine.check_invariants(ticket)

        created = await self._ticket_repo.create(ticket)
        logger.info(
            "Ticket created",
            extra={"ticket_id": created.id, "kind": kind.value, "team_id": created.team_id}
        )
        return created

    async def get(self, kind: TicketKind, ticket_id: str) -> Ticket:
        """Get a ticket or raise ResourceNotFoundException."""
        ticket = await self._ticket_repo.get_by_id(kind, ticket_id)
        if ticket is None:
            raise ResourceNotFoundException(kind.value, ticket_id)
        return ticket

    async def list(
        self,
        kind: TicketKind,
        team_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Ticket]:
        """List tickets of a kind, optionally scoped to a team and status."""
        filters = {}
        if team_id:
            filters["team_id"] = team_id
        if status:
            filters["status"] = get_state_machine(kind).validate_status(status)
        return await self._ticket_repo.list(kind, filters, limit=limit, offset=offset)

    async def allowed_transitions(self, kind: TicketKind, ticket_id: str) -> List[str]:
        ticket = await self.get(kind, ticket_id)
        return get_state_machine(kind).allowed_targets(ticket)

    async def change_status(
        self,
        kind: TicketKind,
        ticket_id: str,
        target_status: str,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> Ticket:
        """
        Transition a ticket to ``target_status``.

        Raises:
            ResourceNotFoundException: unknown ticket
            ValidationException: unknown status for this kind
            InvalidTransitionException: status not reachable
            ConcurrencyConflictException: stale ``expected_version`` or a
                concurrent write between load and save
        """
        ticket = await self._load(kind, ticket_id, expected_version)
        updated = get_state_machine(kind).transition(
            ticket, target_status, actor, self._clock()
        )

        if updated is ticket:
            logger.debug(
                "Status unchanged",
                extra={"ticket_id": ticket_id, "kind": kind.value, "status": ticket.status}
            )
            return ticket

        saved = await self._save(updated, ticket.version)
        logger.info(
            "Ticket status changed",
            extra={
                "ticket_id": ticket_id,
                "kind": kind.value,
                "from_status": ticket.status,
                "to_status": saved.status,
                "actor": actor,
            }
        )
        return saved

    async def assign(
        self,
        kind: TicketKind,
        ticket_id: str,
        user_id: str,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> Ticket:
        """Assign a ticket; assigning to the current assignee is a no-op."""
        ticket = await self._load(kind, ticket_id, expected_version)
        updated = AssignmentManager.assign(ticket, user_id, self._clock(), actor)

        if updated is ticket:
            return ticket

        saved = await self._save(updated, ticket.version)
        logger.info(
            "Ticket assigned",
            extra={
                "ticket_id": ticket_id,
                "kind": kind.value,
                "previous_assignee": ticket.assigned_to,
                "assigned_to": user_id,
                "actor": actor,
            }
        )
        return saved

    async def unassign(
        self,
        kind: TicketKind,
        ticket_id: str,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> Ticket:
        """Clear the assignee of a non-terminal ticket."""
        ticket = await self._load(kind, ticket_id, expected_version)
        updated = AssignmentManager.unassign(ticket, self._clock(), actor)

        if updated is ticket:
            return ticket

        saved = await self._save(updated, ticket.version)
        logger.info(
            "Ticket unassigned",
            extra={
                "ticket_id": ticket_id,
                "kind": kind.value,
                "previous_assignee": ticket.assigned_to,
                "actor": actor,
            }
        )
        return saved

    async def _load(
        self,
        kind: TicketKind,
        ticket_id: str,
        expected_version: Optional[int]
    ) -> Ticket:
        ticket = await self.get(kind, ticket_id)
        if expected_version is not None and ticket.version != expected_version:
            raise ConcurrencyConflictException(
                kind.value, ticket_id, expected_version, ticket.version
            )
        return ticket

    async def _save(self, ticket: Ticket, expected_version: int) -> Ticket:
        try:
            return await self._ticket_repo.update(ticket, expected_version)
        except ConcurrencyConflictException:
            logger.warning(
                "Concurrent ticket modification",
                extra={
                    "ticket_id": ticket.id,
                    "kind": ticket.kind.value,
                    "expected_version": expected_version,
                }
            )
            raise
