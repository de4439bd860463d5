"""
SLA Infrastructure Repositories
=================================

Concrete implementations of the policy store and team directory.

Policies live either in the ``itsm_sla_policies`` table, administered
through the API, or in a YAML file for static deployments.
"""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Union
from uuid import UUID

import yaml
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from msp_itsm.config import ClientType, Priority
from msp_itsm.core import (
    ConfigurationException,
    ResourceNotFoundException,
)
from msp_itsm.shared.infrastructure.logging import get_logger
from msp_itsm.sla.application import IPolicyAdminStore, ITeamDirectory
from msp_itsm.sla.domain import SLAPolicy
from msp_itsm.sla.infrastructure.models import SLAPolicyModel, TeamModel

logger = get_logger(__name__)


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SQLAlchemyPolicyStore(IPolicyAdminStore):
    """
    SQLAlchemy implementation of the SLA policy store.

    Handles persistence of SLAPolicy entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_active_policies(self) -> List[SLAPolicy]:
        """All active policies."""
        return await self.list({"is_active": True})

    async def get_by_id(self, policy_id: str) -> Optional[SLAPolicy]:
        """Get policy by id."""
        policy_uuid = _parse_uuid(policy_id)
        if policy_uuid is None:
            return None

        stmt = select(SLAPolicyModel).where(SLAPolicyModel.id == policy_uuid)
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return self._to_domain(row) if row else None

    async def list(self, filters: dict) -> List[SLAPolicy]:
        """List policies with filters."""
        stmt = select(SLAPolicyModel)

        conditions = []
        if "client_type" in filters:
            conditions.append(SLAPolicyModel.client_type == filters["client_type"].value)

        if "priority" in filters:
            conditions.append(SLAPolicyModel.priority == filters["priority"].value)

        if "is_active" in filters:
            conditions.append(SLAPolicyModel.is_active == filters["is_active"])

        if "team_id" in filters:
            conditions.append(SLAPolicyModel.team_id == filters["team_id"])

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(SLAPolicyModel.client_type, SLAPolicyModel.priority, SLAPolicyModel.name)

        result = await self._session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars().all()]

    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        """Create new policy."""
        model = SLAPolicyModel(
            id=UUID(policy.id),
            created_at=policy.created_at,
            **self._column_values(policy)
        )
        self._session.add(model)
        await self._session.flush()
        return policy

    async def update(self, policy: SLAPolicy) -> SLAPolicy:
        """Update existing policy."""
        policy_uuid = _parse_uuid(policy.id)
        model = await self._session.get(SLAPolicyModel, policy_uuid) if policy_uuid else None
        if model is None:
            raise ResourceNotFoundException("SLA policy", policy.id)

        for column, value in self._column_values(policy).items():
            setattr(model, column, value)

        await self._session.flush()
        return policy

    @staticmethod
    def _column_values(policy: SLAPolicy) -> dict:
        return {
            "name": policy.name,
            "description": policy.description,
            "team_id": policy.team_id,
            "client_type": policy.client_type.value,
            "priority": policy.priority.value,
            "response_time_hours": policy.response_time_hours,
            "resolution_time_hours": policy.resolution_time_hours,
            "escalation_time_hours": policy.escalation_time_hours,
            "escalation_to": policy.escalation_to,
            "is_active": policy.is_active,
            "updated_at": policy.updated_at,
        }

    @staticmethod
    def _to_domain(row: Any) -> SLAPolicy:
        return SLAPolicy(
            id=str(row.id),
            name=row.name,
            description=row.description,
            team_id=row.team_id,
            client_type=ClientType(row.client_type),
            priority=Priority(row.priority),
            response_time_hours=row.response_time_hours,
            resolution_time_hours=row.resolution_time_hours,
            escalation_time_hours=row.escalation_time_hours,
            escalation_to=row.escalation_to,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class SQLAlchemyTeamDirectory(ITeamDirectory):
    """Looks up a team's client relationship type in the 'teams' table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_client_type(self, team_id: str) -> Optional[ClientType]:
        stmt = select(TeamModel.client_type).where(TeamModel.id == team_id)
        value = await self._session.scalar(stmt)
        if value is None:
            return None

        try:
            return ClientType(value)
        except ValueError:
            logger.warning(
                "Team has unknown client type",
                extra={"team_id": team_id, "client_type": value}
            )
            return None


# ========== YAML policy file ==========

class PolicyFileEntry(BaseModel):
    """One policy as written in the YAML policy file."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    team_id: Optional[str] = None
    client_type: ClientType
    priority: Priority
    response_time_hours: float = Field(..., ge=0)
    resolution_time_hours: float = Field(..., ge=0)
    escalation_time_hours: Optional[float] = Field(None, ge=0)
    escalation_to: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PolicyFile(BaseModel):
    """Root of the YAML policy file."""
    policies: List[PolicyFileEntry] = Field(default_factory=list)


def _as_utc(value: Optional[datetime], default: datetime) -> datetime:
    if value is None:
        return default
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def load_policy_file(path: Union[str, Path]) -> List[SLAPolicy]:
    """
    Parse a YAML policy file.

    Missing timestamps default to the file's modification time.

    Raises:
        ConfigurationException: unreadable file, invalid YAML or entries, duplicate ids
    """
    path = Path(path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except yaml.YAMLError as e:
        raise ConfigurationException(
            f"Invalid YAML in SLA policy file: {path}", {"error": str(e)}
        )
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationException(
            f"Unreadable SLA policy file: {path}", {"error": str(e)}
        )

    try:
        parsed = PolicyFile.model_validate(data)
    except ValidationError as e:
        raise ConfigurationException(
            f"Invalid SLA policy file: {path}",
            {"errors": e.errors(include_url=False, include_context=False)}
        )

    policies = []
    seen = set()
    for entry in parsed.policies:
        if entry.id in seen:
            raise ConfigurationException(
                f"Duplicate SLA policy id in {path}: {entry.id}", {"policy_id": entry.id}
            )
        seen.add(entry.id)

        created_at = _as_utc(entry.created_at, mtime)
        policies.append(SLAPolicy(
            id=entry.id,
            name=entry.name,
            description=entry.description,
            team_id=entry.team_id,
            client_type=entry.client_type,
            priority=entry.priority,
            response_time_hours=entry.response_time_hours,
            resolution_time_hours=entry.resolution_time_hours,
            escalation_time_hours=entry.escalation_time_hours,
            escalation_to=entry.escalation_to,
            is_active=entry.is_active,
            created_at=created_at,
            updated_at=_as_utc(entry.updated_at, created_at),
        ))

    return policies


class YAMLPolicyStore(IPolicyAdminStore):
    """
    SLA policy store backed by a YAML file.

    Read-only through the API: edits are made in the file and picked up by
    ``reload()``, which the file watcher calls on change.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._policies: List[SLAPolicy] = []
        self._lock = threading.Lock()
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            logger.warning(
                "SLA policy file not found, no SLA policies loaded",
                extra={"path": str(self._path)}
            )
            policies = []
        else:
            policies = load_policy_file(self._path)

        with self._lock:
            self._policies = policies

        logger.info(
            "SLA policies loaded from file",
            extra={"path": str(self._path), "count": len(policies)}
        )

    def reload(self) -> bool:
        """
        Reload policies from file.

        A broken file leaves the previously loaded policies in place.
        """
        try:
            self._load()
            return True
        except ConfigurationException as e:
            logger.error(
                "Failed to reload SLA policy file, keeping previous policies",
                extra={"path": str(self._path), "error": e.message, "details": e.details}
            )
            return False

    def snapshot(self) -> List[SLAPolicy]:
        with self._lock:
            return list(self._policies)

    async def list_active_policies(self) -> List[SLAPolicy]:
        return [p for p in self.snapshot() if p.is_active]

    async def get_by_id(self, policy_id: str) -> Optional[SLAPolicy]:
        for policy in self.snapshot():
            if policy.id == policy_id:
                return policy
        return None

    async def list(self, filters: dict) -> List[SLAPolicy]:
        policies = self.snapshot()
        if "client_type" in filters:
            policies = [p for p in policies if p.client_type == filters["client_type"]]
        if "priority" in filters:
            policies = [p for p in policies if p.priority == filters["priority"]]
        if "is_active" in filters:
            policies = [p for p in policies if p.is_active == filters["is_active"]]
        if "team_id" in filters:
            policies = [p for p in policies if p.team_id == filters["team_id"]]
        return policies

    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        raise self._read_only()

    async def update(self, policy: SLAPolicy) -> SLAPolicy:
        raise self._read_only()

    def _read_only(self) -> ConfigurationException:
        return ConfigurationException(
            "SLA policies are managed in the policy file and cannot be changed through the API",
            {"path": str(self._path)}
        )
