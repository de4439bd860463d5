"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Iterable, Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class InvalidTransitionException(DomainException):
    """Raised when a status change is not reachable from the current status."""

    def __init__(
        self,
        kind: str,
        current_status: str,
        target_status: str,
        allowed: Iterable[str] = ()
    ):
        self.kind = kind
        self.current_status = current_status
        self.target_status = target_status
        self.allowed = sorted(allowed)
        super().__init__(
            f"Cannot move {kind} from '{current_status}' to '{target_status}'",
            {
                "kind": kind,
                "current_status": current_status,
                "target_status": target_status,
                "allowed": self.allowed,
            }
        )


class TicketClosedException(DomainException):
    """Raised when assignment is changed on a ticket in a terminal state."""

    def __init__(self, ticket_id: str, status: str):
        self.ticket_id = ticket_id
        self.status = status
        super().__init__(
            f"Ticket {ticket_id} is {status}; assignment can no longer change",
            {"ticket_id": ticket_id, "status": status}
        )


class ConcurrencyConflictException(RepositoryException):
    """Raised when a write targets a ticket version that is no longer current."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        expected_version: int,
        actual_version: Optional[int] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{resource_type} '{resource_id}' was modified concurrently",
            {
                "resource_id": resource_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            }
        )
