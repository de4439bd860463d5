"""
Exhaustive transition tests for the three ticket state machines.

    1. **Incident** (INCIDENT_TRANSITIONS)
       - open -> in_progress | resolved | closed
       - in_progress -> resolved | closed
       - resolved -> closed
       - closed -> (terminal)

    2. **ChangeRequest** (CHANGE_REQUEST_TRANSITIONS)
       - draft -> pending_approval
       - pending_approval -> approved | rejected
       - approved -> implemented | failed
       - rejected, implemented, failed -> (terminal)

    3. **ServiceRequest** (SERVICE_REQUEST_TRANSITIONS)
       - open -> in_progress | cancelled
       - in_progress -> resolved | closed | cancelled
       - resolved, closed, cancelled -> (terminal)

For each machine every (from, to) pair over its statuses either yields the
target status or raises InvalidTransitionException. Re-entering the current
terminal status is the only accepted self-transition.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from msp_itsm.config import STATUSES_BY_KIND, TicketKind
from msp_itsm.core import (
    DomainException,
    InvalidTransitionException,
    ValidationException,
)
from msp_itsm.tickets.domain import (
    CHANGE_REQUEST_TRANSITIONS,
    INCIDENT_TRANSITIONS,
    SERVICE_REQUEST_TRANSITIONS,
    get_state_machine,
)
from tests.conftest import T0, make_ticket

TABLES = [INCIDENT_TRANSITIONS, CHANGE_REQUEST_TRANSITIONS, SERVICE_REQUEST_TRANSITIONS]
NOW = T0 + timedelta(hours=2)


# ═════════════════════════════════════════════════════════════════════════════
# Parametrize helpers -- generate (kind, from_status, to_status) tuples
# ═════════════════════════════════════════════════════════════════════════════


def _valid_transitions() -> list[tuple]:
    pairs = []
    for table in TABLES:
        for src, targets in table.transitions.items():
            for tgt in sorted(targets):
                pairs.append((table.kind, src, tgt))
    return pairs


def _invalid_transitions() -> list[tuple]:
    """Every pair not listed, except re-entering a terminal status."""
    pairs = []
    for table in TABLES:
        for src, targets in table.transitions.items():
            for candidate in sorted(table.statuses):
                if candidate in targets:
                    continue
                if candidate == src and table.is_terminal(src):
                    continue
                pairs.append((table.kind, src, candidate))
    return pairs


def _terminal_statuses() -> list[tuple]:
    return [(table.kind, status) for table in TABLES for status in sorted(table.terminal)]


# ═════════════════════════════════════════════════════════════════════════════
# Table structure
# ═════════════════════════════════════════════════════════════════════════════


class TestTransitionTables:

    @pytest.mark.parametrize("table", TABLES, ids=lambda t: t.kind.value)
    def test_every_status_has_an_entry(self, table):
        assert table.statuses == set(STATUSES_BY_KIND[table.kind])

    @pytest.mark.parametrize("table", TABLES, ids=lambda t: t.kind.value)
    def test_targets_are_known_statuses(self, table):
        for targets in table.transitions.values():
            assert targets <= table.statuses

    @pytest.mark.parametrize("table", TABLES, ids=lambda t: t.kind.value)
    def test_initial_status_is_not_terminal(self, table):
        assert not table.is_terminal(table.initial)

    def test_initial_statuses(self):
        assert get_state_machine(TicketKind.INCIDENT).initial_status == "open"
        assert get_state_machine(TicketKind.CHANGE_REQUEST).initial_status == "draft"
        assert get_state_machine(TicketKind.SERVICE_REQUEST).initial_status == "open"

    def test_lookup_accepts_raw_kind_value(self):
        assert get_state_machine("change_request").kind == TicketKind.CHANGE_REQUEST


# ═════════════════════════════════════════════════════════════════════════════
# Completeness grid
# ═════════════════════════════════════════════════════════════════════════════


class TestTransitionsValid:

    @pytest.mark.parametrize("kind,from_status,to_status", _valid_transitions())
    def test_valid_transition(self, kind, from_status, to_status):
        ticket = make_ticket(kind, from_status)

        updated = get_state_machine(kind).transition(ticket, to_status, "agent-1", NOW)

        assert updated.status == to_status
        assert updated.updated_at == NOW
        assert updated.updated_by == "agent-1"
        assert ticket.status == from_status


class TestTransitionsInvalid:

    @pytest.mark.parametrize("kind,from_status,to_status", _invalid_transitions())
    def test_invalid_transition(self, kind, from_status, to_status):
        ticket = make_ticket(kind, from_status)

        with pytest.raises(InvalidTransitionException) as exc_info:
            get_state_machine(kind).transition(ticket, to_status, "agent-1", NOW)

        assert exc_info.value.current_status == from_status
        assert exc_info.value.target_status == to_status
        assert to_status not in exc_info.value.allowed

    @pytest.mark.parametrize("kind", list(TicketKind))
    def test_non_terminal_self_transition_rejected(self, kind):
        machine = get_state_machine(kind)
        ticket = make_ticket(kind)

        with pytest.raises(InvalidTransitionException):
            machine.transition(ticket, machine.initial_status, "agent-1", NOW)

    def test_unknown_status_is_a_validation_error(self):
        ticket = make_ticket(TicketKind.INCIDENT)

        with pytest.raises(ValidationException) as exc_info:
            get_state_machine(TicketKind.INCIDENT).transition(ticket, "pending_approval", None, NOW)

        assert exc_info.value.details["allowed"] == STATUSES_BY_KIND[TicketKind.INCIDENT]

    def test_ticket_of_another_kind_rejected(self):
        ticket = make_ticket(TicketKind.INCIDENT)

        with pytest.raises(DomainException):
            get_state_machine(TicketKind.SERVICE_REQUEST).transition(ticket, "in_progress", None, NOW)


# ═════════════════════════════════════════════════════════════════════════════
# Side effects
# ═════════════════════════════════════════════════════════════════════════════


class TestTerminalTimestamp:

    @pytest.mark.parametrize("kind,status", _terminal_statuses())
    def test_reentering_terminal_status_is_noop(self, kind, status):
        ticket = make_ticket(kind, status)
        machine = get_state_machine(kind)

        again = machine.transition(ticket, status, "agent-2", NOW + timedelta(hours=5))

        assert again is ticket
        assert machine.terminal_at(again) == machine.terminal_at(ticket)

    def test_incident_resolution_stamps_resolved_at(self):
        ticket = make_ticket(TicketKind.INCIDENT, "in_progress")

        resolved = get_state_machine(TicketKind.INCIDENT).transition(ticket, "resolved", "agent-1", NOW)

        assert resolved.resolved_at == NOW

    def test_closing_resolved_incident_keeps_resolved_at(self):
        machine = get_state_machine(TicketKind.INCIDENT)
        resolved = machine.transition(make_ticket(TicketKind.INCIDENT), "resolved", None, NOW)

        closed = machine.transition(resolved, "closed", None, NOW + timedelta(days=1))

        assert closed.status == "closed"
        assert closed.resolved_at == NOW

    def test_change_request_completion_stamps_completed_at(self):
        ticket = make_ticket(TicketKind.CHANGE_REQUEST, "approved")

        done = get_state_machine(TicketKind.CHANGE_REQUEST).transition(ticket, "implemented", "cab", NOW)

        assert done.completed_at == NOW
        assert done.resolved_at is None

    def test_service_request_cancellation_stamps_resolved_at(self):
        ticket = make_ticket(TicketKind.SERVICE_REQUEST, "open")

        cancelled = get_state_machine(TicketKind.SERVICE_REQUEST).transition(ticket, "cancelled", None, NOW)

        assert cancelled.resolved_at == NOW

    def test_non_terminal_transition_leaves_timestamps_empty(self):
        ticket = make_ticket(TicketKind.INCIDENT)

        updated = get_state_machine(TicketKind.INCIDENT).transition(ticket, "in_progress", None, NOW)

        assert updated.resolved_at is None

    def test_transition_does_not_touch_assignment(self):
        ticket = make_ticket(
            TicketKind.INCIDENT, assigned_to="tech-1", assigned_at=T0 + timedelta(minutes=5)
        )

        resolved = get_state_machine(TicketKind.INCIDENT).transition(ticket, "resolved", None, NOW)

        assert resolved.assigned_to == "tech-1"
        assert resolved.assigned_at == T0 + timedelta(minutes=5)


class TestChangeApproval:

    def test_draft_to_implemented_rejected(self):
        ticket = make_ticket(TicketKind.CHANGE_REQUEST, "draft")
        machine = get_state_machine(TicketKind.CHANGE_REQUEST)

        with pytest.raises(InvalidTransitionException) as exc_info:
            machine.transition(ticket, "implemented", "requester", NOW)

        assert exc_info.value.allowed == ["pending_approval"]

    def test_draft_to_pending_approval(self):
        ticket = make_ticket(TicketKind.CHANGE_REQUEST, "draft")

        submitted = get_state_machine(TicketKind.CHANGE_REQUEST).transition(
            ticket, "pending_approval", "requester", NOW
        )

        assert submitted.status == "pending_approval"

    def test_approval_records_approver(self):
        ticket = make_ticket(TicketKind.CHANGE_REQUEST, "pending_approval")

        approved = get_state_machine(TicketKind.CHANGE_REQUEST).transition(ticket, "approved", "cab-chair", NOW)

        assert approved.approved_by == "cab-chair"
        assert approved.approved_at == NOW
        assert approved.completed_at is None

    def test_rejection_does_not_record_approver(self):
        ticket = make_ticket(TicketKind.CHANGE_REQUEST, "pending_approval")

        rejected = get_state_machine(TicketKind.CHANGE_REQUEST).transition(ticket, "rejected", "cab-chair", NOW)

        assert rejected.approved_by is None
        assert rejected.completed_at == NOW


class TestAllowedTargets:

    def test_open_incident(self):
        ticket = make_ticket(TicketKind.INCIDENT)

        assert get_state_machine(TicketKind.INCIDENT).allowed_targets(ticket) == [
            "closed", "in_progress", "resolved"
        ]

    def test_terminal_status_lists_itself(self):
        ticket = make_ticket(TicketKind.SERVICE_REQUEST, "cancelled")

        assert get_state_machine(TicketKind.SERVICE_REQUEST).allowed_targets(ticket) == ["cancelled"]


class TestInvariants:

    def test_terminal_status_without_timestamp_rejected(self):
        ticket = replace(make_ticket(TicketKind.INCIDENT, "open"), status="closed")

        with pytest.raises(DomainException):
            get_state_machine(TicketKind.INCIDENT).check_invariants(ticket)

    def test_timestamp_without_terminal_status_rejected(self):
        ticket = make_ticket(TicketKind.INCIDENT, "open", resolved_at=NOW, updated_at=NOW)

        with pytest.raises(DomainException):
            get_state_machine(TicketKind.INCIDENT).check_invariants(ticket)

    def test_ticket_of_another_kind_rejected(self):
        ticket = make_ticket(TicketKind.CHANGE_REQUEST)

        with pytest.raises(DomainException):
            get_state_machine(TicketKind.INCIDENT).check_invariants(ticket)

    def test_consistent_ticket_passes(self):
        get_state_machine(TicketKind.CHANGE_REQUEST).check_invariants(
            make_ticket(TicketKind.CHANGE_REQUEST, "failed")
        )
