"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from caseflow.core.exceptions import (
    ApplicationException,
    RepositoryException,
    ConfigurationException,
    ConfigurationReadError,
    RecordQueryError,
    TickTimeout,
    ExternalServiceException,
)

__all__ = [
    "ApplicationException",
    "RepositoryException",
    "ConfigurationException",
    "ConfigurationReadError",
    "RecordQueryError",
    "TickTimeout",
    "ExternalServiceException",
]
