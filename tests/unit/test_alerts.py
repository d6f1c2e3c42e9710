"""Tests for breach alert de-duplication and dispatch."""

from datetime import timedelta

import pytest

from caseflow.config import BreachCategory, Severity
from caseflow.core import ExternalServiceException
from caseflow.sla.application import AlertDeduplicator, BreachAlertDispatcher
from caseflow.sla.domain import BreachItem, SLACounts, SLAMetrics


def make_snapshot(now, *breaches) -> SLAMetrics:
    return SLAMetrics(
        counts=SLACounts(),
        breaches=tuple(breaches),
        health_score=70,
        health_status="attention",
        total_breaches=len(breaches),
        critical_count=sum(1 for b in breaches if b.is_critical),
        generated_at=now,
    )


def make_breach(id: str, severity: str = Severity.CRITICAL) -> BreachItem:
    return BreachItem(
        id=id,
        category=BreachCategory.PAYMENT,
        title="Overdue payment",
        description="450.00 EUR overdue by 8 day(s)",
        severity=severity,
        hours_overdue=200,
        related_id="OPP-1",
    )


# =============================================================================
# AlertDeduplicator
# =============================================================================


class TestAlertDeduplicator:
    def test_new_key_notifies(self, now):
        assert AlertDeduplicator().should_notify("payment-1", now)

    def test_shown_key_suppressed_within_ttl(self, now):
        dedup = AlertDeduplicator(ttl=timedelta(hours=24))
        dedup.mark_shown("payment-1", now)

        assert not dedup.should_notify("payment-1", now + timedelta(hours=23))

    def test_shown_key_notifies_again_after_ttl(self, now):
        dedup = AlertDeduplicator(ttl=timedelta(hours=24))
        dedup.mark_shown("payment-1", now)

        assert dedup.should_notify("payment-1", now + timedelta(hours=24))
        assert "payment-1" not in dedup

    def test_oldest_entries_dropped_over_capacity(self, now):
        dedup = AlertDeduplicator(max_entries=2)
        dedup.mark_shown("a", now)
        dedup.mark_shown("b", now + timedelta(minutes=1))
        dedup.mark_shown("c", now + timedelta(minutes=2))

        assert len(dedup) == 2
        assert "a" not in dedup
        assert "c" in dedup

    def test_reshown_entry_moves_to_newest(self, now):
        dedup = AlertDeduplicator(max_entries=2)
        dedup.mark_shown("a", now)
        dedup.mark_shown("b", now)
        dedup.mark_shown("a", now + timedelta(minutes=1))
        dedup.mark_shown("c", now + timedelta(minutes=2))

        assert "a" in dedup
        assert "b" not in dedup

    def test_evict_expired_counts(self, now):
        dedup = AlertDeduplicator(ttl=timedelta(hours=1))
        dedup.mark_shown("a", now)
        dedup.mark_shown("b", now + timedelta(minutes=30))

        assert dedup.evict_expired(now + timedelta(minutes=61)) == 1
        assert len(dedup) == 1

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            AlertDeduplicator(max_entries=0)


# =============================================================================
# BreachAlertDispatcher
# =============================================================================


class TestBreachAlertDispatcher:
    @pytest.mark.asyncio
    async def test_critical_breaches_sent_once(self, notifier, now):
        dispatcher = BreachAlertDispatcher(notifier, clock=lambda: now)
        snapshot = make_snapshot(now, make_breach("payment-1"), make_breach("payment-2"))

        assert await dispatcher.dispatch(snapshot) == 2
        assert await dispatcher.dispatch(snapshot) == 0
        assert notifier.sent == ["payment-1", "payment-2"]

    @pytest.mark.asyncio
    async def test_warnings_skipped_by_default(self, notifier, now):
        dispatcher = BreachAlertDispatcher(notifier, clock=lambda: now)
        snapshot = make_snapshot(now, make_breach("lead-response-1", Severity.WARNING))

        assert await dispatcher.dispatch(snapshot) == 0
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_warning_threshold_includes_warnings(self, notifier, now):
        dispatcher = BreachAlertDispatcher(notifier, min_severity=Severity.WARNING, clock=lambda: now)
        snapshot = make_snapshot(
            now,
            make_breach("payment-1"),
            make_breach("lead-response-1", Severity.WARNING),
        )

        assert await dispatcher.dispatch(snapshot) == 2

    @pytest.mark.asyncio
    async def test_undelivered_breach_retried_next_time(self, notifier, now):
        notifier.deliver = False
        dispatcher = BreachAlertDispatcher(notifier, clock=lambda: now)
        snapshot = make_snapshot(now, make_breach("payment-1"))

        assert await dispatcher.dispatch(snapshot) == 0

        notifier.deliver = True
        assert await dispatcher.dispatch(snapshot) == 1

    @pytest.mark.asyncio
    async def test_renotified_after_ttl(self, notifier, now):
        clock = {"now": now}
        dispatcher = BreachAlertDispatcher(
            notifier,
            AlertDeduplicator(ttl=timedelta(hours=24)),
            clock=lambda: clock["now"],
        )
        snapshot = make_snapshot(now, make_breach("payment-1"))

        await dispatcher.dispatch(snapshot)
        clock["now"] = now + timedelta(hours=25)
        await dispatcher.dispatch(snapshot)

        assert notifier.sent == ["payment-1", "payment-1"]

    @pytest.mark.asyncio
    async def test_notifier_error_does_not_stop_dispatch(self, notifier, now):
        calls = []

        async def flaky_notify(breach, snapshot):
            calls.append(breach.id)
            if breach.id == "payment-1":
                raise ExternalServiceException("Slack", "webhook rejected")
            return True

        notifier.notify = flaky_notify
        dispatcher = BreachAlertDispatcher(notifier, clock=lambda: now)
        snapshot = make_snapshot(now, make_breach("payment-1"), make_breach("payment-2"))

        assert await dispatcher.dispatch(snapshot) == 1
        assert calls == ["payment-1", "payment-2"]

    @pytest.mark.asyncio
    async def test_close_closes_notifier(self, notifier):
        dispatcher = BreachAlertDispatcher(notifier)
        await dispatcher.close()
        assert notifier.closed

    def test_unknown_min_severity_rejected(self, notifier):
        with pytest.raises(ValueError):
            BreachAlertDispatcher(notifier, min_severity="info")
