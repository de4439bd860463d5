"""
SLA Domain Layer
================

Domain layer for SLA tracking.

Contains:
- Entities: SLAPolicy, SLADeadlines, SLAClassification, SLATracking, SLASummary
- Value Objects: SLAWarningPolicy
- Domain Services: SLAResolver, SLACalculator (deadlines + health)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from msp_itsm.sla.domain.entities import (
    SLAPolicy,
    SLADeadlines,
    SLAClassification,
    SLATracking,
    SLASummary,
)
from msp_itsm.sla.domain.value_objects import (
    SLAWarningPolicy,
    DEFAULT_WARNING_POLICY,
    SLAResolver,
    SLACalculator,
)

__all__ = [
    # Entities
    "SLAPolicy",
    "SLADeadlines",
    "SLAClassification",
    "SLATracking",
    "SLASummary",
    # Value Objects & Services
    "SLAWarningPolicy",
    "DEFAULT_WARNING_POLICY",
    "SLAResolver",
    "SLACalculator",
]
