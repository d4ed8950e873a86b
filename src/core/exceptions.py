"""
Core Exceptions
================

Exception taxonomy of the alerting engine.

Every error carries a message and a ``details`` dict for structured logs.
Client errors (bad windows, acknowledging a missing or closed alert) are
separated from store faults so the serving layer can map them without
inspecting messages.
"""

from typing import Optional


class ApplicationException(Exception):
    """Root of every error raised by the alerting engine."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """An entity rule was violated, e.g. acknowledging twice."""


class RepositoryException(ApplicationException):
    """The alert store failed to carry out an operation."""


class StoreUnavailableException(RepositoryException):
    """
    The durable store could not be reached.

    Fatal for the current request; the caller may retry.
    """

    retryable = True

    def __init__(self, operation: str, details: Optional[dict] = None):
        self.operation = operation
        super().__init__(f"Store unavailable during {operation}", details)


class ValidationException(ApplicationException):
    """Caller input was rejected; not retryable."""


class InvalidWindowException(ValidationException):
    """A time window request was unparsable or contradictory."""


class ResourceNotFoundException(ApplicationException):
    """A referenced record does not exist."""

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


class AlertNotFoundOrAcknowledgedException(ResourceNotFoundException):
    """Acknowledge was called on a missing or already acknowledged alert event."""

    def __init__(self, event_id: str, details: Optional[dict] = None):
        super().__init__(
            "Unacknowledged alert event",
            event_id,
            details or {"event_id": event_id}
        )
        self.event_id = event_id


class ConfigurationException(ApplicationException):
    """Settings or the alert catalog file are unusable."""
