"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain objects and repositories.

- ThresholdResolver: turns configuration store contents into SLAThresholds.
- SLAMonitoringService: the metrics facade. One tick resolves thresholds
  once, runs every scanner concurrently, aggregates and scores, and
  publishes an immutable snapshot.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from caseflow.config import MonitorState
from caseflow.core import (
    ApplicationException,
    ConfigurationReadError,
    RecordQueryError,
    TickTimeout,
)
from caseflow.sla.domain import (
    BreachAggregator,
    HealthScoreCalculator,
    SLACounts,
    SLAMetrics,
    SLAThresholds,
    THRESHOLD_KEY_PREFIX,
)
from caseflow.sla.application.interfaces import ISLAConfigStore
from caseflow.sla.application.scanners import BreachScanner, ScanResult
from caseflow.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ThresholdResolver:
    """
    Resolves SLA thresholds from the configuration store.

    A store that cannot be read is not an error for the tick: the
    built-in defaults are used instead.
    """

    def __init__(self, config_store: ISLAConfigStore):
        self._config_store = config_store

    async def resolve(self) -> SLAThresholds:
        try:
            values = await self._config_store.get_values(THRESHOLD_KEY_PREFIX)
        except ConfigurationReadError as e:
            logger.warning(
                "SLA configuration unavailable, using default thresholds",
                extra={"error": str(e)}
            )
            return SLAThresholds.defaults()
        except Exception as e:
            logger.warning(
                "SLA configuration store failed, using default thresholds",
                extra={"error_type": type(e).__name__, "error": str(e)}
            )
            return SLAThresholds.defaults()

        return SLAThresholds.from_overrides(values)


class SLAMonitoringService:
    """
    Computes SLA snapshots.

    States: idle -> scanning -> ready | failed, then scanning again on the
    next tick. At most one tick runs at a time; callers arriving while a
    tick is in flight share its result. A failed tick publishes nothing and
    leaves the last good snapshot in place.
    """

    def __init__(
        self,
        scanners: Iterable[BreachScanner],
        threshold_resolver: ThresholdResolver,
        display_limit: int = 10,
        tick_timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._scanners: List[BreachScanner] = list(scanners)
        self._resolver = threshold_resolver
        self._aggregator = BreachAggregator(display_limit)
        self._tick_timeout = tick_timeout_seconds
        self._clock = clock

        self._state = MonitorState.IDLE
        self._last_snapshot: Optional[SLAMetrics] = None
        self._last_error: Optional[ApplicationException] = None
        self._inflight: Optional[asyncio.Future] = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def last_snapshot(self) -> Optional[SLAMetrics]:
        """Last successfully computed snapshot, if any."""
        return self._last_snapshot

    @property
    def last_error(self) -> Optional[ApplicationException]:
        """Error of the most recent tick, cleared by the next success."""
        return self._last_error

    @property
    def threshold_resolver(self) -> ThresholdResolver:
        return self._resolver

    async def compute_sla_metrics(self) -> SLAMetrics:
        """
        Run one tick and return its snapshot.

        Joins the running tick instead of starting a second one.

        Raises:
            RecordQueryError: a scanner could not read its records
            TickTimeout: the tick exceeded its time budget
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._run_tick())
        return await asyncio.shield(self._inflight)

    async def refresh(self) -> Optional[SLAMetrics]:
        """
        Scheduled entry point. Never raises.

        Returns the new snapshot, or None if the tick failed. The next
        scheduled tick is the retry.
        """
        try:
            return await self.compute_sla_metrics()
        except ApplicationException:
            return None

    async def _run_tick(self) -> SLAMetrics:
        self._state = MonitorState.SCANNING
        try:
            snapshot = await asyncio.wait_for(self._compute(), timeout=self._tick_timeout)
        except asyncio.TimeoutError as e:
            error = TickTimeout(self._tick_timeout)
            self._fail(error)
            raise error from e
        except ApplicationException as e:
            self._fail(e)
            raise
        except Exception as e:
            error = ApplicationException(
                f"SLA tick failed unexpectedly: {e}",
                {"error_type": type(e).__name__}
            )
            self._fail(error)
            raise error from e

        self._last_snapshot = snapshot
        self._last_error = None
        self._state = MonitorState.READY

        logger.info(
            "SLA snapshot published",
            extra={
                "health_score": snapshot.health_score,
                "total_breaches": snapshot.total_breaches,
                "critical_count": snapshot.critical_count,
            }
        )
        return snapshot

    def _fail(self, error: ApplicationException) -> None:
        self._last_error = error
        self._state = MonitorState.FAILED
        logger.error(
            "SLA tick failed, keeping last snapshot",
            extra={
                "error_type": type(error).__name__,
                "error": error.message,
                "has_previous_snapshot": self._last_snapshot is not None,
            }
        )

    async def _compute(self) -> SLAMetrics:
        now = self._clock()
        thresholds = await self._resolver.resolve()

        with log_latency(logger, "sla_scan", scanners=len(self._scanners)):
            outcomes = await asyncio.gather(
                *(self._run_scanner(scanner, now, thresholds) for scanner in self._scanners),
                return_exceptions=True
            )

        # every scanner has finished; report the first failure in scanner order
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        return self._build_snapshot(now, outcomes)

    @staticmethod
    async def _run_scanner(
        scanner: BreachScanner,
        now: datetime,
        thresholds: SLAThresholds
    ) -> ScanResult:
        try:
            return await scanner.scan(now, thresholds)
        except ApplicationException:
            raise
        except Exception as e:
            raise RecordQueryError(scanner.category, str(e)) from e

    def _build_snapshot(self, now: datetime, results: List[ScanResult]) -> SLAMetrics:
        breaches = [breach for result in results for breach in result.breaches]

        counts = {}
        for result in results:
            counts[result.count_key] = counts.get(result.count_key, 0) + result.count

        health_score = HealthScoreCalculator.calculate(breaches)

        return SLAMetrics(
            counts=SLACounts(**counts),
            breaches=self._aggregator.aggregate(breaches),
            health_score=health_score,
            health_status=HealthScoreCalculator.status_for(health_score),
            total_breaches=len(breaches),
            critical_count=sum(1 for b in breaches if b.is_critical),
            generated_at=now,
        )
