"""
Ticket Domain Layer
===================

Domain layer for the ITSM ticket lifecycle.

Contains:
- Entities: Ticket
- State machine: per-kind transition tables and the engine applying them
- Assignment manager: assign/unassign rules

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from msp_itsm.tickets.domain.entities import Ticket
from msp_itsm.tickets.domain.state_machine import (
    TransitionTable,
    TicketStateMachine,
    INCIDENT_TRANSITIONS,
    CHANGE_REQUEST_TRANSITIONS,
    SERVICE_REQUEST_TRANSITIONS,
    get_state_machine,
)
from msp_itsm.tickets.domain.assignment import AssignmentManager

__all__ = [
    "Ticket",
    "TransitionTable",
    "TicketStateMachine",
    "INCIDENT_TRANSITIONS",
    "CHANGE_REQUEST_TRANSITIONS",
    "SERVICE_REQUEST_TRANSITIONS",
    "get_state_machine",
    "AssignmentManager",
]
