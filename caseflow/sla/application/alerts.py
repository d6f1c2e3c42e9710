"""
SLA Breach Alerts
=================

Downstream consumer of SLA snapshots that pushes breaches to people.

The monitor itself is stateless between ticks. Remembering which breaches
were already notified is the dispatcher's job, through a bounded
entity id -> last shown map with TTL eviction.
"""

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Optional

from caseflow.config import Severity, VALID_SEVERITIES
from caseflow.core import ExternalServiceException
from caseflow.sla.domain import BreachItem, SLAMetrics
from caseflow.sla.application.interfaces import ISLANotifier
from caseflow.sla.application.services import utc_now
from caseflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class AlertDeduplicator:
    """
    Remembers when each breach was last shown.

    Entries expire after `ttl`; when more than `max_entries` are held the
    least recently shown ones are dropped first.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=24), max_entries: int = 1000):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self._last_shown: "OrderedDict[str, datetime]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._last_shown)

    def __contains__(self, key: str) -> bool:
        return key in self._last_shown

    def should_notify(self, key: str, now: datetime) -> bool:
        self.evict_expired(now)
        return key not in self._last_shown

    def mark_shown(self, key: str, now: datetime) -> None:
        self._last_shown[key] = now
        self._last_shown.move_to_end(key)
        while len(self._last_shown) > self.max_entries:
            self._last_shown.popitem(last=False)

    def evict_expired(self, now: datetime) -> int:
        """Drop entries older than the TTL. Returns how many were dropped."""
        evicted = 0
        # ordered oldest first, so stop at the first live entry
        while self._last_shown:
            key, shown_at = next(iter(self._last_shown.items()))
            if now - shown_at < self.ttl:
                break
            del self._last_shown[key]
            evicted += 1
        return evicted


class BreachAlertDispatcher:
    """Sends newly seen breaches from a snapshot to a notifier."""

    def __init__(
        self,
        notifier: ISLANotifier,
        deduplicator: Optional[AlertDeduplicator] = None,
        min_severity: str = Severity.CRITICAL,
        clock: Callable[[], datetime] = utc_now,
    ):
        if min_severity not in VALID_SEVERITIES:
            raise ValueError(f"unknown severity: {min_severity}")
        self._notifier = notifier
        self._deduplicator = deduplicator or AlertDeduplicator()
        self._min_rank = VALID_SEVERITIES.index(min_severity)
        self._clock = clock

    def _is_alertable(self, breach: BreachItem) -> bool:
        return VALID_SEVERITIES.index(breach.severity) >= self._min_rank

    async def dispatch(self, snapshot: SLAMetrics) -> int:
        """
        Notify every displayed breach not shown within the TTL.

        Returns the number of notifications delivered. Undelivered breaches
        are not remembered, so they are retried on the next snapshot.
        """
        now = self._clock()
        delivered = 0

        for breach in snapshot.breaches:
            if not self._is_alertable(breach):
                continue
            if not self._deduplicator.should_notify(breach.id, now):
                continue
            try:
                sent = await self._notifier.notify(breach, snapshot)
            except ExternalServiceException as e:
                logger.warning(
                    "Breach notification failed",
                    extra={"breach_id": breach.id, "error": e.message}
                )
                continue
            if sent:
                self._deduplicator.mark_shown(breach.id, now)
                delivered += 1

        if delivered:
            logger.info(
                "SLA breach alerts sent",
                extra={"delivered": delivered, "health_score": snapshot.health_score}
            )
        return delivered

    async def close(self) -> None:
        await self._notifier.close()
