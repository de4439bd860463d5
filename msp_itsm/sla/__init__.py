"""
SLA Tracking Module
===================

Bounded Context for Service Level Agreement tracking.

Responsibilities:
- Resolve the SLA policy for a client type and priority
- Calculate response, resolution and escalation deadlines
- Classify ticket health (on_track, at_risk, breached, not_applicable)
- Administer SLA policies (database or YAML file, hot-reloaded via watchdog)
- Provide dashboard API for SLA visibility
"""

__version__ = "1.0.0"
