"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA tracking:
- Models: SQLAlchemy ORM models
- Repositories: policy stores (database, YAML file) and team directory
- External: policy file watcher
"""

from msp_itsm.sla.infrastructure.models import SLAPolicyModel, TeamModel
from msp_itsm.sla.infrastructure.repositories import (
    SQLAlchemyPolicyStore,
    SQLAlchemyTeamDirectory,
    YAMLPolicyStore,
    load_policy_file,
)
from msp_itsm.sla.infrastructure.external import PolicyFileWatcher

__all__ = [
    "SLAPolicyModel",
    "TeamModel",
    "SQLAlchemyPolicyStore",
    "SQLAlchemyTeamDirectory",
    "YAMLPolicyStore",
    "load_policy_file",
    "PolicyFileWatcher",
]
