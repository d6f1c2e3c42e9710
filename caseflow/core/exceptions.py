"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.

Propagation policy for the SLA monitor:
- ConfigurationReadError is absorbed where thresholds are resolved
  (built-in defaults are used instead).
- RecordQueryError and TickTimeout abort the whole tick; the monitor keeps
  its last good snapshot and surfaces the error to the caller.
- ExternalServiceException from a notifier is logged by the alert
  dispatcher and never reaches the tick.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ConfigurationReadError(ConfigurationException):
    """The configuration store could not be read."""

    def __init__(self, source: str, message: str, details: Optional[dict] = None):
        self.source = source
        super().__init__(f"{source}: {message}", details)


class RecordQueryError(RepositoryException):
    """A read against one monitored record category failed."""

    def __init__(self, category: str, message: str, details: Optional[dict] = None):
        self.category = category
        super().__init__(
            f"Query for {category} records failed: {message}",
            details or {"category": category}
        )


class TickTimeout(ApplicationException):
    """An SLA evaluation tick exceeded its time budget."""

    def __init__(self, timeout_seconds: float, details: Optional[dict] = None):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"SLA tick did not complete within {timeout_seconds}s",
            details or {"timeout_seconds": timeout_seconds}
        )


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)
