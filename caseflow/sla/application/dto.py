"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization for API responses.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from caseflow.sla.domain import BreachItem, SLAMetrics, SLAThresholds, THRESHOLD_KEYS


# ========== Type Aliases for Literals ==========
SeverityStr = Literal["warning", "critical"]
BreachCategoryStr = Literal["lead", "contract", "payment", "requirement", "document", "onboarding", "tie"]
HealthStatusStr = Literal["healthy", "attention", "critical"]
MonitorStateStr = Literal["idle", "scanning", "ready", "failed"]


class BreachItemResponse(BaseModel):
    """One breach in the display list."""
    id: str = Field(..., description="Stable breach id (category prefix + record id)")
    category: BreachCategoryStr
    title: str
    description: str
    severity: SeverityStr
    hours_overdue: int = Field(..., ge=0)
    related_id: Optional[str] = Field(None, description="Record to deep-link to")
    link: str = Field(..., description="CRM route for the related record")

    @classmethod
    def from_domain(cls, breach: BreachItem) -> "BreachItemResponse":
        return cls(**breach.to_dict())


class SLACountsResponse(BaseModel):
    """Per-category counts from the full breach set."""
    leads_awaiting_response: int
    leads_incomplete: int
    contracts_pending_signature: int
    payments_pending: int
    payments_pre_due: int
    requirements_urgent: int
    documents_pending_review: int
    onboarding_incomplete: int
    tie_pending_pickup: int


class SLAMetricsResponse(BaseModel):
    """One SLA snapshot."""
    generated_at: datetime
    health_score: int = Field(..., ge=0, le=100)
    health_status: HealthStatusStr
    counts: SLACountsResponse
    total_breaches: int
    critical_count: int
    warning_count: int
    breaches: List[BreachItemResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, snapshot: SLAMetrics) -> "SLAMetricsResponse":
        return cls(
            generated_at=snapshot.generated_at,
            health_score=snapshot.health_score,
            health_status=snapshot.health_status,
            counts=SLACountsResponse(**snapshot.counts.to_dict()),
            total_breaches=snapshot.total_breaches,
            critical_count=snapshot.critical_count,
            warning_count=snapshot.warning_count,
            breaches=[BreachItemResponse.from_domain(b) for b in snapshot.breaches],
        )


class MonitorSnapshotResponse(BaseModel):
    """Last good snapshot plus the monitor's current state."""
    state: MonitorStateStr
    stale: bool = Field(..., description="True while the error of the last completed tick is unresolved")
    last_error: Optional[str] = None
    metrics: SLAMetricsResponse


class ThresholdsResponse(BaseModel):
    """Effective SLA thresholds keyed by configuration key."""
    thresholds: Dict[str, int]

    @classmethod
    def from_domain(cls, thresholds: SLAThresholds) -> "ThresholdsResponse":
        values = thresholds.to_dict()
        return cls(thresholds={key: values[name] for key, name in THRESHOLD_KEYS.items()})
