"""
SLA Interfaces Layer
====================

Interface adapters (controllers) for SLA monitoring module.

Contains:
- Controllers: FastAPI route handlers

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from caseflow.sla.interfaces.controllers import sla_router, get_sla_monitor

__all__ = ["sla_router", "get_sla_monitor"]
