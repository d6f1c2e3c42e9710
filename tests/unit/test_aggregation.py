"""Tests for breach ordering, truncation and the health score."""

import pytest

from caseflow.config import Severity, HealthStatus, BreachCategory
from caseflow.sla.domain import BreachAggregator, BreachItem, HealthScoreCalculator


def breach(id: str, severity: str = Severity.WARNING, hours: int = 0) -> BreachItem:
    return BreachItem(
        id=id,
        category=BreachCategory.PAYMENT,
        title="Overdue payment",
        description="",
        severity=severity,
        hours_overdue=hours,
    )


# =============================================================================
# BreachItem
# =============================================================================


class TestBreachItem:
    def test_negative_hours_rejected(self):
        with pytest.raises(ValueError):
            breach("x", hours=-1)

    def test_unknown_severity_rejected(self):
        with pytest.raises(ValueError):
            breach("x", severity="info")

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            BreachItem("x-1", "invoice", "t", "d", Severity.WARNING, 1)

    def test_link_without_related_record(self):
        item = BreachItem("lead-response-1", BreachCategory.LEAD, "t", "d", Severity.WARNING, 1)
        assert item.link == "/crm/leads"

    def test_unknown_category_links_to_dashboard(self):
        item = BreachItem("x-1", BreachCategory.ONBOARDING, "t", "d", Severity.WARNING, 1, related_id="1")
        assert item.link == "/dashboard"


# =============================================================================
# BreachAggregator
# =============================================================================


class TestBreachAggregator:
    def test_critical_before_warning_regardless_of_hours(self):
        items = [breach("w", Severity.WARNING, 500), breach("c", Severity.CRITICAL, 1)]

        ordered = BreachAggregator.sort(items)

        assert [b.id for b in ordered] == ["c", "w"]

    def test_longest_overdue_first_within_severity(self):
        items = [
            breach("c1", Severity.CRITICAL, 5),
            breach("c2", Severity.CRITICAL, 50),
            breach("w1", Severity.WARNING, 2),
            breach("w2", Severity.WARNING, 20),
        ]

        ordered = BreachAggregator.sort(items)

        assert [b.id for b in ordered] == ["c2", "c1", "w2", "w1"]

    def test_ties_keep_input_order(self):
        items = [breach("a", hours=3), breach("b", hours=3), breach("c", hours=3)]
        assert [b.id for b in BreachAggregator.sort(items)] == ["a", "b", "c"]

    def test_truncates_to_display_limit(self):
        items = [breach(f"w{i}", hours=i) for i in range(25)]

        displayed = BreachAggregator(display_limit=10).aggregate(items)

        assert len(displayed) == 10
        assert displayed[0].id == "w24"
        assert isinstance(displayed, tuple)

    def test_display_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            BreachAggregator(display_limit=0)


# =============================================================================
# HealthScoreCalculator
# =============================================================================


class TestHealthScoreCalculator:
    def test_no_breaches_is_perfect(self):
        assert HealthScoreCalculator.calculate([]) == 100

    def test_penalties(self):
        items = [breach("c", Severity.CRITICAL), breach("w1"), breach("w2")]
        assert HealthScoreCalculator.calculate(items) == 100 - 15 - 10

    def test_clamped_at_zero(self):
        items = [breach(f"c{i}", Severity.CRITICAL) for i in range(20)]
        assert HealthScoreCalculator.calculate(items) == 0

    def test_adding_a_breach_never_raises_score(self):
        items = []
        previous = HealthScoreCalculator.calculate(items)
        for i in range(30):
            items.append(breach(f"b{i}", Severity.CRITICAL if i % 3 == 0 else Severity.WARNING))
            score = HealthScoreCalculator.calculate(items)
            assert 0 <= score <= previous
            previous = score

    @pytest.mark.parametrize("score,status", [
        (100, HealthStatus.HEALTHY),
        (80, HealthStatus.HEALTHY),
        (79, HealthStatus.ATTENTION),
        (50, HealthStatus.ATTENTION),
        (49, HealthStatus.CRITICAL),
        (0, HealthStatus.CRITICAL),
    ])
    def test_status_bands(self, score, status):
        assert HealthScoreCalculator.status_for(score) == status
