"""
Shared pytest fixtures for the MSP ITSM test suite.

Provides:
    - T0: fixed reference instant (UTC)
    - make_ticket / make_policy: domain factories that respect entity invariants
    - InMemoryTicketRepository, InMemoryPolicyStore, InMemoryTeamDirectory:
      fakes of the repository interfaces, with the same versioning contract
      as the SQLAlchemy implementations
    - FixedClock: injectable clock
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from msp_itsm.config import ClientType, Priority, TicketKind
from msp_itsm.core import ConcurrencyConflictException, ResourceNotFoundException
from msp_itsm.sla.application import IPolicyAdminStore, ITeamDirectory
from msp_itsm.sla.domain import SLAPolicy
from msp_itsm.tickets.application import ITicketRepository
from msp_itsm.tickets.domain import Ticket, get_state_machine


T0 = datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)


# ── Factories ────────────────────────────────────────────────────────────────


def make_ticket(
    kind: TicketKind = TicketKind.INCIDENT,
    status: Optional[str] = None,
    ticket_id: str = "11111111-1111-1111-1111-111111111111",
    priority: Priority = Priority.CRITICAL,
    team_id: str = "team-direct",
    created_at: datetime = T0,
    **overrides
) -> Ticket:
    """Build a ticket at any status; terminal statuses get their timestamp."""
    machine = get_state_machine(kind)
    status = status or machine.initial_status

    fields = dict(
        id=ticket_id,
        kind=kind,
        title="Printer on fire",
        priority=priority,
        status=status,
        team_id=team_id,
        created_at=created_at,
        updated_at=created_at,
    )
    if machine.is_terminal(status):
        fields[machine.table.terminal_timestamp_field] = created_at + timedelta(hours=1)
        fields["updated_at"] = created_at + timedelta(hours=1)
    fields.update(overrides)
    return Ticket(**fields)


def make_policy(
    policy_id: str = "policy-direct-critical",
    client_type: ClientType = ClientType.DIRECT,
    priority: Priority = Priority.CRITICAL,
    response_time_hours: float = 1,
    resolution_time_hours: float = 4,
    updated_at: datetime = T0 - timedelta(days=30),
    **overrides
) -> SLAPolicy:
    fields = dict(
        id=policy_id,
        name=f"{client_type.value} {priority.value}",
        client_type=client_type,
        priority=priority,
        response_time_hours=response_time_hours,
        resolution_time_hours=resolution_time_hours,
        created_at=updated_at,
        updated_at=updated_at,
    )
    fields.update(overrides)
    return SLAPolicy(**fields)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ── In-memory fakes ──────────────────────────────────────────────────────────


class InMemoryTicketRepository(ITicketRepository):
    def __init__(self):
        self.rows: Dict[tuple, Ticket] = {}
        self.update_calls = 0

    def add(self, ticket: Ticket) -> Ticket:
        self.rows[(ticket.kind, ticket.id)] = ticket
        return ticket

    async def get_by_id(self, kind: TicketKind, ticket_id: str) -> Optional[Ticket]:
        return self.rows.get((kind, ticket_id))

    async def list(self, kind, filters, limit=100, offset=0) -> List[Ticket]:
        tickets = [t for (k, _), t in self.rows.items() if k == kind]
        if "team_id" in filters:
            tickets = [t for t in tickets if t.team_id == filters["team_id"]]
        if "status" in filters:
            wanted = filters["status"]
            wanted = set(wanted) if isinstance(wanted, (list, tuple, set)) else {wanted}
            tickets = [t for t in tickets if t.status in wanted]
        tickets.sort(key=lambda t: t.created_at, reverse=True)
        return tickets[offset:offset + limit]

    async def create(self, ticket: Ticket) -> Ticket:
        return self.add(ticket)

    async def update(self, ticket: Ticket, expected_version: int) -> Ticket:
        self.update_calls += 1
        current = self.rows.get((ticket.kind, ticket.id))
        if current is None:
            raise ResourceNotFoundException(ticket.kind.value, ticket.id)
        if current.version != expected_version:
            raise ConcurrencyConflictException(
                ticket.kind.value, ticket.id, expected_version, current.version
            )
        saved = replace(ticket, version=expected_version + 1)
        self.rows[(ticket.kind, ticket.id)] = saved
        return saved


class InMemoryPolicyStore(IPolicyAdminStore):
    def __init__(self, policies=()):
        self.policies: Dict[str, SLAPolicy] = {p.id: p for p in policies}

    async def list_active_policies(self) -> List[SLAPolicy]:
        return [p for p in self.policies.values() if p.is_active]

    async def get_by_id(self, policy_id: str) -> Optional[SLAPolicy]:
        return self.policies.get(policy_id)

    async def list(self, filters: dict) -> List[SLAPolicy]:
        policies = list(self.policies.values())
        for key in ("client_type", "priority", "is_active", "team_id"):
            if key in filters:
                policies = [p for p in policies if getattr(p, key) == filters[key]]
        return policies

    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        self.policies[policy.id] = policy
        return policy

    async def update(self, policy: SLAPolicy) -> SLAPolicy:
        if policy.id not in self.policies:
            raise ResourceNotFoundException("SLA policy", policy.id)
        self.policies[policy.id] = policy
        return policy


class InMemoryTeamDirectory(ITeamDirectory):
    def __init__(self, teams: Optional[Dict[str, ClientType]] = None):
        self.teams = dict(teams or {})
        self.lookups = 0

    async def get_client_type(self, team_id: str) -> Optional[ClientType]:
        self.lookups += 1
        return self.teams.get(team_id)


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def ticket_repo():
    return InMemoryTicketRepository()


@pytest.fixture
def policy_store():
    return InMemoryPolicyStore([make_policy()])


@pytest.fixture
def team_directory():
    return InMemoryTeamDirectory({
        "team-direct": ClientType.DIRECT,
        "team-esn": ClientType.VIA_ESN,
    })
