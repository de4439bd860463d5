"""
Ticket State Machine
====================

One transition engine parameterized by a per-kind transition table.

A table maps every status to the set of statuses reachable from it and names
the terminal subset. Entering a terminal status stamps the kind's terminal
timestamp exactly once; re-entering the current terminal status is accepted
and changes nothing. Every other pair not listed in the table is rejected with
``InvalidTransitionException``.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, FrozenSet, List, Mapping, Optional

from msp_itsm.config import (
    ChangeRequestStatus, IncidentStatus, ServiceRequestStatus, TicketKind,
    STATUSES_BY_KIND,
)
from msp_itsm.core import (
    DomainException, InvalidTransitionException, ValidationException,
)
from msp_itsm.tickets.domain.entities import Ticket


@dataclass(frozen=True)
class TransitionTable:
    """Legal status graph for one ticket kind."""
    kind: TicketKind
    initial: str
    transitions: Mapping[str, FrozenSet[str]]
    terminal: FrozenSet[str]
    terminal_timestamp_field: str
    approval_status: Optional[str] = None

    @property
    def statuses(self) -> FrozenSet[str]:
        return frozenset(self.transitions)

    def is_terminal(self, status: str) -> bool:
        return status in self.terminal

    def allowed_targets(self, status: str) -> FrozenSet[str]:
        targets = set(self.transitions.get(status, frozenset()))
        if status in self.terminal:
            targets.add(status)
        return frozenset(targets)


def _table(
    kind: TicketKind,
    initial: str,
    edges: Dict[str, List[str]],
    terminal: List[str],
    terminal_timestamp_field: str,
    approval_status: Optional[str] = None
) -> TransitionTable:
    return TransitionTable(
        kind=kind,
        initial=initial,
        transitions={s: frozenset(t) for s, t in edges.items()},
        terminal=frozenset(terminal),
        terminal_timestamp_field=terminal_timestamp_field,
        approval_status=approval_status,
    )


INCIDENT_TRANSITIONS = _table(
    TicketKind.INCIDENT,
    initial=IncidentStatus.OPEN.value,
    edges={
        "open": ["in_progress", "resolved", "closed"],
        "in_progress": ["resolved", "closed"],
        # Closing a resolved incident is the only edge out of a terminal state.
        "resolved": ["closed"],
        "closed": [],
    },
    terminal=[IncidentStatus.RESOLVED.value, IncidentStatus.CLOSED.value],
    terminal_timestamp_field="resolved_at",
)

CHANGE_REQUEST_TRANSITIONS = _table(
    TicketKind.CHANGE_REQUEST,
    initial=ChangeRequestStatus.DRAFT.value,
    edges={
        "draft": ["pending_approval"],
        "pending_approval": ["approved", "rejected"],
        "approved": ["implemented", "failed"],
        "rejected": [],
        "implemented": [],
        "failed": [],
    },
    terminal=[
        ChangeRequestStatus.REJECTED.value,
        ChangeRequestStatus.IMPLEMENTED.value,
        ChangeRequestStatus.FAILED.value,
    ],
    terminal_timestamp_field="completed_at",
    approval_status=ChangeRequestStatus.APPROVED.value,
)

SERVICE_REQUEST_TRANSITIONS = _table(
    TicketKind.SERVICE_REQUEST,
    initial=ServiceRequestStatus.OPEN.value,
    edges={
        "open": ["in_progress", "cancelled"],
        "in_progress": ["resolved", "closed", "cancelled"],
        "resolved": [],
        "closed": [],
        "cancelled": [],
    },
    terminal=[
        ServiceRequestStatus.RESOLVED.value,
        ServiceRequestStatus.CLOSED.value,
        ServiceRequestStatus.CANCELLED.value,
    ],
    terminal_timestamp_field="resolved_at",
)


class TicketStateMachine:
    """Applies a transition table to ticket snapshots."""

    def __init__(self, table: TransitionTable):
        self.table = table

    @property
    def kind(self) -> TicketKind:
        return self.table.kind

    @property
    def initial_status(self) -> str:
        return self.table.initial

    def is_terminal(self, status: str) -> bool:
        return self.table.is_terminal(status)

    def terminal_at(self, ticket: Ticket) -> Optional[datetime]:
        """The ticket's terminal timestamp for this kind, if stamped."""
        return getattr(ticket, self.table.terminal_timestamp_field)

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.table.allowed_targets(current)

    def allowed_targets(self, ticket: Ticket) -> List[str]:
        return sorted(self.table.allowed_targets(ticket.status))

    def validate_status(self, status: str) -> str:
        if status not in self.table.statuses:
            raise ValidationException(
                f"Unknown {self.kind.value} status '{status}'",
                {"allowed": STATUSES_BY_KIND[self.kind]}
            )
        return status

    def _check_kind(self, ticket: Ticket) -> None:
        if ticket.kind != self.kind:
            raise DomainException(
                f"{ticket.kind.value} ticket handed to the {self.kind.value} state machine"
            )

    def check_invariants(self, ticket: Ticket) -> None:
        """
        Ensure the ticket belongs to this machine and that its terminal
        timestamp is set exactly when its status is terminal.
        """
        self._check_kind(ticket)
        self.validate_status(ticket.status)
        stamped = self.terminal_at(ticket) is not None
        if stamped != self.is_terminal(ticket.status):
            raise DomainException(
                f"Ticket {ticket.id}: {self.table.terminal_timestamp_field} must be set "
                f"if and only if status is terminal (status '{ticket.status}')",
                {"ticket_id": ticket.id, "status": ticket.status}
            )

    def transition(
        self,
        ticket: Ticket,
        target_status: str,
        actor: Optional[str],
        now: datetime
    ) -> Ticket:
        """
        Move ``ticket`` to ``target_status``.

        Args:
            ticket: Current snapshot
            target_status: Requested status
            actor: User performing the change (recorded, never authorized here)
            now: Transition time

        Returns:
            Updated copy of the ticket, or the same snapshot when re-entering
            the current terminal status

        Raises:
            ValidationException: ``target_status`` is not a status of this kind
            InvalidTransitionException: ``target_status`` is not reachable
        """
        self._check_kind(ticket)
        self.validate_status(target_status)

        if not self.can_transition(ticket.status, target_status):
            raise InvalidTransitionException(
                self.kind.value,
                ticket.status,
                target_status,
                self.table.allowed_targets(ticket.status),
            )

        if target_status == ticket.status:
            return ticket

        changes = {
            "status": target_status,
            "updated_at": now,
            "updated_by": actor,
        }

        field_name = self.table.terminal_timestamp_field
        if self.is_terminal(target_status) and getattr(ticket, field_name) is None:
            changes[field_name] = now

        if target_status == self.table.approval_status:
            changes["approved_by"] = actor
            changes["approved_at"] = now

        return replace(ticket, **changes)


_MACHINES = {
    table.kind: TicketStateMachine(table)
    for table in (INCIDENT_TRANSITIONS, CHANGE_REQUEST_TRANSITIONS, SERVICE_REQUEST_TRANSITIONS)
}


def get_state_machine(kind: TicketKind) -> TicketStateMachine:
    """Get the state machine for a ticket kind."""
    return _MACHINES[TicketKind(kind)]
