"""Tests for the YAML override store, circuit breaker, Slack notifier and scheduler."""

import asyncio
import json

import httpx
import pytest

from caseflow.config import BreachCategory, Severity
from caseflow.core import ConfigurationReadError
from caseflow.sla.domain import BreachItem, SLACounts, SLAMetrics
from caseflow.sla.infrastructure import (
    CircuitBreaker,
    CircuitState,
    SlackNotifier,
    SLAScheduler,
    YAMLConfigStore,
)

# =============================================================================
# YAMLConfigStore
# =============================================================================


class TestYAMLConfigStore:
    @pytest.mark.asyncio
    async def test_values_read_as_strings(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text("sla_first_response_hours: 4\nsla_document_review_hours: '12'\nother: 1\n")
        store = YAMLConfigStore(path)

        assert store.load()
        values = await store.get_values("sla_")

        assert values == {"sla_first_response_hours": "4", "sla_document_review_hours": "12"}

    @pytest.mark.asyncio
    async def test_missing_file_means_no_overrides(self, tmp_path):
        store = YAMLConfigStore(tmp_path / "absent.yaml")

        assert store.load()
        assert await store.get_values("sla_") == {}

    @pytest.mark.asyncio
    async def test_unreadable_file_raises_on_read(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text("sla_first_response_hours: [unclosed\n")
        store = YAMLConfigStore(path)

        assert not store.load()
        with pytest.raises(ConfigurationReadError):
            await store.get_values("sla_")

    @pytest.mark.asyncio
    async def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text("- 1\n- 2\n")
        store = YAMLConfigStore(path)

        assert not store.load()

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_previous_values(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text("sla_first_response_hours: 4\n")
        store = YAMLConfigStore(path)
        store.load()

        path.write_text("sla_first_response_hours: [broken\n")
        assert not store.reload()

        assert await store.get_values("sla_") == {"sla_first_response_hours": "4"}

    @pytest.mark.asyncio
    async def test_reload_picks_up_changes(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text("sla_first_response_hours: 4\n")
        store = YAMLConfigStore(path)
        store.load()

        path.write_text("sla_first_response_hours: 8\n")
        assert store.reload()

        assert await store.get_values("sla_") == {"sla_first_response_hours": "8"}

    def test_stop_watching_without_start_is_safe(self, tmp_path):
        YAMLConfigStore(tmp_path / "absent.yaml").stop_watching()


# =============================================================================
# CircuitBreaker
# =============================================================================


class TestCircuitBreaker:
    def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60, clock=lambda: 0.0)

        breaker.record_failure()
        assert breaker.allow_request()
        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert not breaker.allow_request()

    def test_half_open_after_recovery_timeout(self):
        clock = {"t": 0.0}
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=lambda: clock["t"])
        breaker.record_failure()

        clock["t"] = 61.0

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request()

    def test_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1, clock=lambda: 0.0)
        breaker.record_failure()
        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED


# =============================================================================
# SlackNotifier
# =============================================================================


@pytest.fixture
def snapshot(now):
    breach = BreachItem(
        id="contract-C9",
        category=BreachCategory.CONTRACT,
        title="Contract pending signature",
        description="Contract sent 6 day(s) ago and still unsigned",
        severity=Severity.CRITICAL,
        hours_overdue=96,
        related_id="C9",
    )
    return SLAMetrics(
        counts=SLACounts(contracts_pending_signature=1),
        breaches=(breach,),
        health_score=85,
        health_status="healthy",
        total_breaches=1,
        critical_count=1,
        generated_at=now,
    )


def make_notifier(handler, **kwargs) -> SlackNotifier:
    kwargs.setdefault("webhook_url", "https://hooks.slack.test/T000/B000")
    return SlackNotifier(
        channel="#sla",
        base_url="https://crm.example.com/",
        backoff_seconds=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs
    )


class TestSlackNotifier:
    @pytest.mark.asyncio
    async def test_posts_block_kit_message(self, snapshot):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text="ok")

        notifier = make_notifier(handler)
        sent = await notifier.notify(snapshot.breaches[0], snapshot)
        await notifier.close()

        assert sent
        assert len(requests) == 1
        body = json.loads(requests[0].content)
        assert body["channel"] == "#sla"
        assert "https://crm.example.com/contracts/C9" in json.dumps(body["blocks"])

    @pytest.mark.asyncio
    async def test_retries_then_gives_up(self, snapshot):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(500)

        notifier = make_notifier(handler, max_retries=3)
        sent = await notifier.notify(snapshot.breaches[0], snapshot)

        assert not sent
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, snapshot):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200)

        notifier = make_notifier(handler)

        assert await notifier.notify(snapshot.breaches[0], snapshot)
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_no_webhook_configured(self, snapshot):
        def handler(request):
            raise AssertionError("no request expected")

        notifier = make_notifier(handler, webhook_url="")

        assert not await notifier.notify(snapshot.breaches[0], snapshot)

    @pytest.mark.asyncio
    async def test_open_circuit_skips_request(self, snapshot):
        def handler(request):
            raise AssertionError("no request expected")

        breaker = CircuitBreaker(failure_threshold=1, clock=lambda: 0.0)
        breaker.record_failure()
        notifier = make_notifier(handler, circuit_breaker=breaker)

        assert not await notifier.notify(snapshot.breaches[0], snapshot)


# =============================================================================
# SLAScheduler
# =============================================================================


class TestSLAScheduler:
    @pytest.mark.asyncio
    async def test_first_tick_runs_on_start(self):
        ticked = asyncio.Event()

        async def job():
            ticked.set()

        scheduler = SLAScheduler(interval_seconds=3600)
        await scheduler.start(job)
        try:
            await asyncio.wait_for(ticked.wait(), timeout=5)
            assert scheduler.is_running
        finally:
            await scheduler.stop()

        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self):
        scheduler = SLAScheduler()
        await scheduler.stop()
        assert not scheduler.is_running
