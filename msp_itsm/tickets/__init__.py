"""
ITSM Ticket Lifecycle Module
============================

Bounded Context for incidents, change requests and service requests.

Responsibilities:
- Enforce legal status transitions per ticket kind
- Stamp terminal and approval timestamps on transition
- Record assignment independently of status
- Serialize concurrent writes with optimistic versioning
"""

__version__ = "1.0.0"
