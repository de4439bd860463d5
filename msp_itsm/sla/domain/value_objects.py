"""
SLA Value Objects
==================

Immutable value objects and pure calculators for the SLA domain.

The resolver, deadline calculator and health classifier are pure functions
of their inputs: no clock reads, no I/O, no hidden state. Repeated calls with
the same ticket snapshot, deadlines and ``now`` return equal results.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from msp_itsm.config import ClientType, Priority, SLAHealth
from msp_itsm.sla.domain.entities import SLAClassification, SLADeadlines, SLAPolicy
from msp_itsm.tickets.domain import Ticket, get_state_machine


class SLAWarningPolicy(BaseModel):
    """
    When a running clock counts as at risk.

    A clock is at risk once its remaining time drops to ``warning_fraction``
    of its total duration or, if ``warning_window_hours`` is set, to that
    fixed window, whichever comes first.
    """
    model_config = ConfigDict(frozen=True)

    warning_fraction: float = Field(default=0.2, gt=0.0, lt=1.0)
    warning_window_hours: Optional[float] = Field(default=None, ge=0.0)

    def is_at_risk(self, started_at: datetime, due_at: datetime, now: datetime) -> bool:
        remaining = (due_at - now).total_seconds()
        total = max((due_at - started_at).total_seconds(), 0.0)

        if remaining <= total * self.warning_fraction:
            return True
        if self.warning_window_hours is not None:
            return remaining <= self.warning_window_hours * 3600
        return False


DEFAULT_WARNING_POLICY = SLAWarningPolicy()


class SLAResolver:
    """
    Picks the policy applicable to a ticket's (client type, priority) pair.

    Only active policies matching both fields exactly are candidates, and a
    policy owned by a team only applies to that team's tickets. A team's own
    policy outranks a shared one (``team_id`` unset). When several remain, the
    most recently updated wins; ``created_at`` then ``id`` break any remaining
    tie so the choice never depends on input order.
    """

    def __init__(self, policies: Iterable[SLAPolicy]):
        self._policies: List[SLAPolicy] = [p for p in policies if p.is_active]

    def resolve(
        self,
        client_type: ClientType,
        priority: Priority,
        team_id: Optional[str] = None
    ) -> Optional[SLAPolicy]:
        candidates = [
            p for p in self._policies
            if p.matches(client_type, priority) and p.team_id in (None, team_id)
        ]
        if not candidates:
            return None
        return max(
            candidates,
            key=lambda p: (p.team_id is not None, p.updated_at, p.created_at, p.id)
        )


class SLACalculator:
    """
    Pure functions for SLA calculations.

    All offsets are wall-clock hours; there is no business-hours calendar.
    """

    @staticmethod
    def compute_deadlines(
        policy: SLAPolicy,
        created_at: datetime,
        assigned_at: Optional[datetime] = None
    ) -> SLADeadlines:
        """
        Compute response, resolution and escalation due instants.

        The escalation clock starts at assignment when the ticket has been
        assigned, otherwise at creation.
        """
        escalation_due_at = None
        if policy.escalation_time_hours is not None:
            anchor = assigned_at or created_at
            escalation_due_at = anchor + timedelta(hours=policy.escalation_time_hours)

        return SLADeadlines(
            policy_id=policy.id,
            response_due_at=created_at + timedelta(hours=policy.response_time_hours),
            resolution_due_at=created_at + timedelta(hours=policy.resolution_time_hours),
            escalation_due_at=escalation_due_at,
        )

    @staticmethod
    def classify(
        ticket: Ticket,
        deadlines: Optional[SLADeadlines],
        now: datetime,
        warning: SLAWarningPolicy = DEFAULT_WARNING_POLICY
    ) -> SLAClassification:
        """
        Classify a ticket's SLA health at ``now``.

        Args:
            ticket: Ticket snapshot
            deadlines: Deadlines from the resolved policy, None if no policy
            now: Evaluation instant
            warning: At-risk thresholds

        Returns:
            SLAClassification
        """
        if deadlines is None:
            return SLAClassification(health=SLAHealth.NOT_APPLICABLE)

        machine = get_state_machine(ticket.kind)

        if machine.is_terminal(ticket.status):
            terminal_at = machine.terminal_at(ticket) or ticket.updated_at
            breached_resolution = terminal_at > deadlines.resolution_due_at
            breached_response = (ticket.assigned_at or terminal_at) > deadlines.response_due_at
            health = (
                SLAHealth.BREACHED if breached_response or breached_resolution
                else SLAHealth.ON_TRACK
            )
            return SLAClassification(
                health=health,
                is_breached_response=breached_response,
                is_breached_resolution=breached_resolution,
            )

        if ticket.assigned_at is None:
            breached_response = now > deadlines.response_due_at
        else:
            breached_response = ticket.assigned_at > deadlines.response_due_at
        breached_resolution = now > deadlines.resolution_due_at

        escalation_due = (
            deadlines.escalation_due_at is not None
            and now > deadlines.escalation_due_at
        )

        if breached_response or breached_resolution:
            health = SLAHealth.BREACHED
        elif SLACalculator._any_clock_at_risk(ticket, deadlines, now, warning):
            health = SLAHealth.AT_RISK
        else:
            health = SLAHealth.ON_TRACK

        return SLAClassification(
            health=health,
            is_breached_response=breached_response,
            is_breached_resolution=breached_resolution,
            is_escalation_due=escalation_due,
        )

    @staticmethod
    def _any_clock_at_risk(
        ticket: Ticket,
        deadlines: SLADeadlines,
        now: datetime,
        warning: SLAWarningPolicy
    ) -> bool:
        # The response clock stops at assignment.
        if ticket.assigned_at is None and warning.is_at_risk(
            ticket.created_at, deadlines.response_due_at, now
        ):
            return True
        return warning.is_at_risk(ticket.created_at, deadlines.resolution_due_at, now)
