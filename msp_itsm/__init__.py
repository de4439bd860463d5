"""
MSP ITSM Core
=============

Ticket lifecycle state machines and SLA tracking for a multi-tenant MSP
console.
"""

__version__ = "1.0.0"
