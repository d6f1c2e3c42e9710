"""
SLA Domain Entities
====================

Pure Python domain objects for SLA monitoring.

Monitored records are mapped to explicit per-category types before any
scanner sees them. Breach items and metrics snapshots are immutable: each
tick builds them from scratch and nothing is carried over between ticks.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple

from caseflow.config import Severity, BreachCategory, VALID_SEVERITIES, VALID_BREACH_CATEGORIES


# ========== Monitored records (read-only views) ==========

@dataclass(frozen=True)
class LeadRecord:
    """A lead as seen by the first-response scanner."""
    id: str
    status: str
    created_at: datetime
    updated_at: datetime
    contact_name: Optional[str] = None


@dataclass(frozen=True)
class ContractRecord:
    """A contract awaiting client signature."""
    id: str
    status: str
    created_at: datetime
    opportunity_id: Optional[str] = None


@dataclass(frozen=True)
class PaymentRecord:
    """A payment installment with a due date."""
    id: str
    status: str
    due_date: date
    amount: Decimal
    currency: str
    installment_number: Optional[int] = None
    opportunity_id: Optional[str] = None


@dataclass(frozen=True)
class AuthorityRequirementRecord:
    """A requirement issued by an immigration authority on a service case."""
    id: str
    status: str
    description: str
    created_at: datetime
    internal_deadline: Optional[datetime] = None
    service_case_id: Optional[str] = None


# ========== Breaches ==========

_BREACH_ROUTES = {
    BreachCategory.LEAD: ("/crm/leads/{id}", "/crm/leads"),
    BreachCategory.CONTRACT: ("/contracts/{id}", "/contracts"),
    BreachCategory.PAYMENT: ("/payments", "/payments"),
    BreachCategory.REQUIREMENT: ("/cases/{id}", "/cases"),
    BreachCategory.DOCUMENT: ("/cases/{id}", "/cases"),
}


def breach_link(category: str, related_id: Optional[str]) -> str:
    """CRM route a breach deep-links to."""
    with_id, without_id = _BREACH_ROUTES.get(category, ("/dashboard", "/dashboard"))
    if related_id:
        return with_id.format(id=related_id)
    return without_id


@dataclass(frozen=True)
class BreachItem:
    """
    One overdue (or, for requirements, imminently due) business fact.

    The id is derived from the category prefix and the source record id,
    so it is unique within a snapshot and stable across snapshots.
    """

    id: str
    category: str
    title: str
    description: str
    severity: str
    hours_overdue: int
    related_id: Optional[str] = None

    def __post_init__(self):
        if self.hours_overdue < 0:
            raise ValueError("hours_overdue cannot be negative")
        if self.severity not in VALID_SEVERITIES:
            raise ValueError(f"unknown severity: {self.severity}")
        if self.category not in VALID_BREACH_CATEGORIES:
            raise ValueError(f"unknown category: {self.category}")

    @property
    def is_critical(self) -> bool:
        return self.severity == Severity.CRITICAL

    @property
    def link(self) -> str:
        return breach_link(self.category, self.related_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "hours_overdue": self.hours_overdue,
            "related_id": self.related_id,
            "link": self.link,
        }


# ========== Snapshot ==========

@dataclass(frozen=True)
class SLACounts:
    """
    Per-category counts, always taken from the full matching record sets.

    payments_pre_due, onboarding_incomplete and tie_pending_pickup have no
    scanner yet and stay at zero.
    """
    leads_awaiting_response: int = 0
    leads_incomplete: int = 0
    contracts_pending_signature: int = 0
    payments_pending: int = 0
    payments_pre_due: int = 0
    requirements_urgent: int = 0
    documents_pending_review: int = 0
    onboarding_incomplete: int = 0
    tie_pending_pickup: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SLAMetrics:
    """
    One SLA snapshot: the result of a single tick.

    `breaches` is the sorted, truncated display list; every other figure
    is computed from the untruncated breach set.
    """

    counts: SLACounts
    breaches: Tuple[BreachItem, ...]
    health_score: int
    health_status: str
    total_breaches: int
    critical_count: int
    generated_at: datetime

    warning_count: int = field(init=False)

    def __post_init__(self):
        # frozen dataclass: derived field set through object.__setattr__
        object.__setattr__(self, "warning_count", self.total_breaches - self.critical_count)

    @property
    def is_truncated(self) -> bool:
        return self.total_breaches > len(self.breaches)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "health_score": self.health_score,
            "health_status": self.health_status,
            "counts": self.counts.to_dict(),
            "total_breaches": self.total_breaches,
            "critical_count": self.critical_count,
            "warning_count": self.warning_count,
            "breaches": [breach.to_dict() for breach in self.breaches],
        }
