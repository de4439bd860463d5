"""
Assignment Manager
==================

Records who owns a ticket. Assignment is orthogonal to status: nothing here
changes ``status``, and the state machine never touches ``assigned_to``.
``assigned_at`` anchors the escalation clock and measures response time.
"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from msp_itsm.core import TicketClosedException, ValidationException
from msp_itsm.tickets.domain.entities import Ticket
from msp_itsm.tickets.domain.state_machine import get_state_machine


class AssignmentManager:
    """Stateless assign/unassign rules for ticket snapshots."""

    @staticmethod
    def assign(
        ticket: Ticket,
        user_id: str,
        now: datetime,
        actor: Optional[str] = None
    ) -> Ticket:
        """
        Assign ``ticket`` to ``user_id``.

        Reassigning to the current assignee returns the snapshot unchanged.
        Changing the assignee of a terminal ticket raises
        ``TicketClosedException``.
        """
        if not user_id:
            raise ValidationException("user_id is required to assign a ticket")

        if ticket.assigned_to == user_id:
            return ticket

        if get_state_machine(ticket.kind).is_terminal(ticket.status):
            raise TicketClosedException(ticket.id, ticket.status)

        return replace(
            ticket,
            assigned_to=user_id,
            assigned_at=now,
            updated_at=now,
            updated_by=actor,
        )

    @staticmethod
    def unassign(
        ticket: Ticket,
        now: datetime,
        actor: Optional[str] = None
    ) -> Ticket:
        """Clear the assignee of a non-terminal ticket."""
        if get_state_machine(ticket.kind).is_terminal(ticket.status):
            raise TicketClosedException(ticket.id, ticket.status)

        if ticket.assigned_to is None:
            return ticket

        return replace(
            ticket,
            assigned_to=None,
            assigned_at=None,
            updated_at=now,
            updated_by=actor,
        )
