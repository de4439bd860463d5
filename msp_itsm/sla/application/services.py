"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

SLA health is recomputed from the stored ticket on every read; nothing here
schedules background work or persists tracking rows.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
from uuid import uuid4

from msp_itsm.config import (
    ClientType, TicketKind, SLAHealth, parse_client_type, parse_priority,
)
from msp_itsm.core import ResourceNotFoundException, ValidationException
from msp_itsm.shared.infrastructure.logging import get_logger, log_latency
from msp_itsm.sla.application.dto import (
    REQUIRED_POLICY_FIELDS,
    SLAPolicyCreateDTO,
    SLAPolicyUpdateDTO,
)
from msp_itsm.sla.domain import (
    DEFAULT_WARNING_POLICY,
    SLACalculator,
    SLAPolicy,
    SLAResolver,
    SLASummary,
    SLATracking,
    SLAWarningPolicy,
)
from msp_itsm.tickets.application import ITicketRepository, utc_now
from msp_itsm.tickets.domain import Ticket, get_state_machine

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IPolicyStore(ABC):
    """Read access to SLA policies, as the resolver needs it."""

    @abstractmethod
    async def list_active_policies(self) -> List[SLAPolicy]:
        """All policies with is_active set."""


class IPolicyAdminStore(IPolicyStore):
    """Administrative access to SLA policies."""

    @abstractmethod
    async def get_by_id(self, policy_id: str) -> Optional[SLAPolicy]:
        """Get policy by id."""

    @abstractmethod
    async def list(self, filters: dict) -> List[SLAPolicy]:
        """List policies. Supported filters: client_type, priority, is_active, team_id."""

    @abstractmethod
    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        """Create new policy."""

    @abstractmethod
    async def update(self, policy: SLAPolicy) -> SLAPolicy:
        """Update existing policy."""


class ITeamDirectory(ABC):
    """Resolves a ticket's owning team to its client relationship type."""

    @abstractmethod
    async def get_client_type(self, team_id: str) -> Optional[ClientType]:
        """Client type of the team, None if the team is unknown."""


# ========== Application Services ==========

class SLAService:
    """
    Service for SLA tracking of ITSM tickets.

    Coordinates ticket, policy and team lookups with the pure SLA domain.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        policy_store: IPolicyStore,
        team_directory: ITeamDirectory,
        warning: SLAWarningPolicy = DEFAULT_WARNING_POLICY,
        clock: Callable[[], datetime] = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._policy_store = policy_store
        self._team_directory = team_directory
        self._warning = warning
        self._clock = clock

    @staticmethod
    def evaluate(
        ticket: Ticket,
        client_type: Optional[ClientType],
        policies: Iterable[SLAPolicy],
        now: datetime,
        warning: SLAWarningPolicy = DEFAULT_WARNING_POLICY
    ) -> SLATracking:
        """
        Compose resolver, deadline calculator and classifier for one ticket.

        A missing client type or policy yields a ``not_applicable`` view.
        """
        policy = None
        if client_type is not None:
            policy = SLAResolver(policies).resolve(
                client_type, ticket.priority, ticket.team_id
            )

        if policy is None:
            return SLATracking(
                ticket_id=ticket.id,
                kind=ticket.kind,
                health=SLAHealth.NOT_APPLICABLE,
                evaluated_at=now,
            )

        deadlines = SLACalculator.compute_deadlines(
            policy, ticket.created_at, ticket.assigned_at
        )
        verdict = SLACalculator.classify(ticket, deadlines, now, warning)

        return SLATracking(
            ticket_id=ticket.id,
            kind=ticket.kind,
            health=verdict.health,
            evaluated_at=now,
            policy_id=policy.id,
            response_due_at=deadlines.response_due_at,
            resolution_due_at=deadlines.resolution_due_at,
            escalation_due_at=deadlines.escalation_due_at,
            is_breached_response=verdict.is_breached_response,
            is_breached_resolution=verdict.is_breached_resolution,
            is_escalation_due=verdict.is_escalation_due,
        )

    async def track(
        self,
        kind: TicketKind,
        ticket_id: str,
        now: Optional[datetime] = None
    ) -> SLATracking:
        """
        Current SLA view of one ticket.

        Raises:
            ResourceNotFoundException: unknown ticket
        """
        ticket = await self._ticket_repo.get_by_id(kind, ticket_id)
        if ticket is None:
            raise ResourceNotFoundException(kind.value, ticket_id)

        client_type = await self._team_directory.get_client_type(ticket.team_id)
        if client_type is None:
            logger.warning(
                "Team has no client type, SLA not applicable",
                extra={"ticket_id": ticket_id, "team_id": ticket.team_id}
            )

        policies = await self._policy_store.list_active_policies()
        return self.evaluate(
            ticket, client_type, policies, now or self._clock(), self._warning
        )

    async def track_many(
        self,
        tickets: Iterable[Ticket],
        now: Optional[datetime] = None
    ) -> List[SLATracking]:
        """SLA views for several tickets, sharing one policy snapshot and clock."""
        now = now or self._clock()
        policies = await self._policy_store.list_active_policies()
        client_types: Dict[str, Optional[ClientType]] = {}

        results = []
        for ticket in tickets:
            if ticket.team_id not in client_types:
                client_types[ticket.team_id] = await self._team_directory.get_client_type(
                    ticket.team_id
                )
            results.append(self.evaluate(
                ticket, client_types[ticket.team_id], policies, now, self._warning
            ))
        return results

    async def dashboard(
        self,
        kind: TicketKind,
        team_id: Optional[str] = None,
        now: Optional[datetime] = None,
        limit: int = 1000
    ) -> SLASummary:
        """Health counts over a team's tickets of one kind."""
        now = now or self._clock()
        filters = {"team_id": team_id} if team_id else {}

        with log_latency(logger, "sla_dashboard", kind=kind.value, team_id=team_id):
            tickets = await self._ticket_repo.list(kind, filters, limit=limit)
            summary = SLASummary(kind=kind, evaluated_at=now)
            for tracking in await self.track_many(tickets, now):
                summary.add(tracking.health)

        return summary

    async def list_breached(
        self,
        kind: TicketKind,
        team_id: Optional[str] = None,
        now: Optional[datetime] = None,
        limit: int = 1000
    ) -> List[SLATracking]:
        """
        Open tickets currently in breach.

        Evaluated on demand; a periodic sweep feeding notifications would call
        this on a timer.
        """
        machine = get_state_machine(kind)
        open_statuses = sorted(s for s in machine.table.statuses if not machine.is_terminal(s))

        filters = {"status": open_statuses}
        if team_id:
            filters["team_id"] = team_id

        tickets = await self._ticket_repo.list(kind, filters, limit=limit)
        breached = [
            t for t in await self.track_many(tickets, now)
            if t.health == SLAHealth.BREACHED
        ]

        if breached:
            logger.info(
                "SLA breaches found",
                extra={"kind": kind.value, "team_id": team_id, "count": len(breached)}
            )
        return breached


class SLAPolicyService:
    """
    Administration of SLA policies.

    Policies are never deleted: historical tracking stays explainable, so a
    retired policy is deactivated instead.
    """

    def __init__(
        self,
        policy_store: IPolicyAdminStore,
        clock: Callable[[], datetime] = utc_now
    ):
        self._store = policy_store
        self._clock = clock

    async def list(
        self,
        client_type: Optional[str] = None,
        priority: Optional[str] = None,
        is_active: Optional[bool] = None,
        team_id: Optional[str] = None
    ) -> List[SLAPolicy]:
        filters = {}
        if client_type is not None:
            filters["client_type"] = parse_client_type(client_type)
        if priority is not None:
            filters["priority"] = parse_priority(priority)
        if is_active is not None:
            filters["is_active"] = is_active
        if team_id is not None:
            filters["team_id"] = team_id
        return await self._store.list(filters)

    async def get(self, policy_id: str) -> SLAPolicy:
        policy = await self._store.get_by_id(policy_id)
        if policy is None:
            raise ResourceNotFoundException("SLA policy", policy_id)
        return policy

    async def resolve(
        self, client_type: str, priority: str, team_id: Optional[str] = None
    ) -> Optional[SLAPolicy]:
        """Policy that would apply to a new ticket, None when SLA is not applicable."""
        resolver = SLAResolver(await self._store.list_active_policies())
        return resolver.resolve(
            parse_client_type(client_type), parse_priority(priority), team_id
        )

    async def create(self, data: SLAPolicyCreateDTO) -> SLAPolicy:
        now = self._clock()
        policy = SLAPolicy(
            id=str(uuid4()),
            name=data.name,
            description=data.description,
            team_id=data.team_id,
            client_type=parse_client_type(data.client_type),
            priority=parse_priority(data.priority),
            response_time_hours=data.response_time_hours,
            resolution_time_hours=data.resolution_time_hours,
            escalation_time_hours=data.escalation_time_hours,
            escalation_to=data.escalation_to,
            is_active=data.is_active,
            created_at=now,
            updated_at=now,
        )
        created = await self._store.create(policy)
        logger.info(
            "SLA policy created",
            extra={
                "policy_id": created.id,
                "client_type": created.client_type.value,
                "priority": created.priority.value,
            }
        )
        return created

    async def update(self, policy_id: str, data: SLAPolicyUpdateDTO) -> SLAPolicy:
        changes = data.model_dump(exclude_unset=True)
        cleared = sorted(
            field for field in REQUIRED_POLICY_FIELDS
            if field in changes and changes[field] is None
        )
        if cleared:
            raise ValidationException(
                "SLA policy fields cannot be null", {"fields": cleared}
            )

        policy = await self.get(policy_id)

        if "client_type" in changes:
            changes["client_type"] = parse_client_type(changes["client_type"])
        if "priority" in changes:
            changes["priority"] = parse_priority(changes["priority"])

        updated = await self._store.update(
            replace(policy, updated_at=self._clock(), **changes)
        )
        logger.info(
            "SLA policy updated",
            extra={"policy_id": policy_id, "fields": sorted(changes)}
        )
        return updated

    async def deactivate(self, policy_id: str) -> SLAPolicy:
        policy = await self.get(policy_id)
        if not policy.is_active:
            return policy

        updated = await self._store.update(
            replace(policy, is_active=False, updated_at=self._clock())
        )
        logger.info("SLA policy deactivated", extra={"policy_id": policy_id})
        return updated
