"""
SLA Domain Services
===================

Stateless business rules applied to a complete breach set:
ordering and truncation for display, and the aggregate health score.
"""

from typing import Iterable, List, Sequence, Tuple

from caseflow.config import Severity, HealthStatus
from caseflow.sla.domain.entities import BreachItem

_SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.WARNING: 1}


class BreachAggregator:
    """
    Merges scanner output into one prioritized list.

    Critical items precede warnings regardless of magnitude; within a
    severity the longest-overdue item comes first. Python's sort is stable,
    so ties keep scanner order.
    """

    def __init__(self, display_limit: int = 10):
        if display_limit < 1:
            raise ValueError("display_limit must be at least 1")
        self.display_limit = display_limit

    @staticmethod
    def sort(breaches: Iterable[BreachItem]) -> List[BreachItem]:
        return sorted(
            breaches,
            key=lambda b: (_SEVERITY_RANK[b.severity], -b.hours_overdue)
        )

    def aggregate(self, breaches: Sequence[BreachItem]) -> Tuple[BreachItem, ...]:
        """Sorted display list, capped at display_limit."""
        return tuple(self.sort(breaches)[:self.display_limit])


class HealthScoreCalculator:
    """
    Health score: 100 minus 15 per critical and 5 per warning, within [0, 100].

    Always computed over the untruncated breach set.
    """

    CRITICAL_PENALTY = 15
    WARNING_PENALTY = 5
    HEALTHY_FROM = 80
    ATTENTION_FROM = 50

    @classmethod
    def calculate(cls, breaches: Sequence[BreachItem]) -> int:
        critical = sum(1 for b in breaches if b.is_critical)
        other = len(breaches) - critical
        score = 100 - cls.CRITICAL_PENALTY * critical - cls.WARNING_PENALTY * other
        return max(0, min(100, score))

    @classmethod
    def status_for(cls, score: int) -> str:
        if score >= cls.HEALTHY_FROM:
            return HealthStatus.HEALTHY
        if score >= cls.ATTENTION_FROM:
            return HealthStatus.ATTENTION
        return HealthStatus.CRITICAL
