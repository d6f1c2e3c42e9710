"""
SLA Domain Layer
================

Domain layer for SLA monitoring module.

Contains:
- Entities: monitored record views, BreachItem, SLACounts, SLAMetrics
- Value Objects: SLAThresholds and the SLACalculator time helpers
- Domain Services: BreachAggregator, HealthScoreCalculator

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from caseflow.sla.domain.entities import (
    LeadRecord,
    ContractRecord,
    PaymentRecord,
    AuthorityRequirementRecord,
    BreachItem,
    SLACounts,
    SLAMetrics,
    breach_link,
)
from caseflow.sla.domain.value_objects import (
    SLAThresholds,
    SLACalculator,
    THRESHOLD_KEYS,
    THRESHOLD_KEY_PREFIX,
    parse_positive_int,
)
from caseflow.sla.domain.services import BreachAggregator, HealthScoreCalculator

__all__ = [
    # Entities
    "LeadRecord",
    "ContractRecord",
    "PaymentRecord",
    "AuthorityRequirementRecord",
    "BreachItem",
    "SLACounts",
    "SLAMetrics",
    "breach_link",
    # Value Objects
    "SLAThresholds",
    "SLACalculator",
    "THRESHOLD_KEYS",
    "THRESHOLD_KEY_PREFIX",
    "parse_positive_int",
    # Domain Services
    "BreachAggregator",
    "HealthScoreCalculator",
]
