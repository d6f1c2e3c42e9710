"""
SLA External Service Integrations
==================================

External services for SLA monitoring:
- YAML override file with hot reload (alternative configuration store)
- Slack webhook notifications for breach alerts
- APScheduler for the periodic monitoring tick
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from caseflow.config import settings, Severity
from caseflow.core import ConfigurationReadError
from caseflow.sla.application import ISLAConfigStore, ISLANotifier
from caseflow.sla.domain import BreachItem, SLAMetrics
from caseflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA override file changes."""

    def __init__(self, config_store: "YAMLConfigStore", config_path: Path):
        self.config_store = config_store
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("SLA override file changed", extra={"path": str(event.src_path)})
            self.config_store.reload()


class YAMLConfigStore(ISLAConfigStore):
    """
    SLA overrides from a flat YAML mapping, e.g.

        sla_first_response_hours: 4
        sla_payment_critical_after_days: 10

    Thread-safe with hot-reload support: the watchdog observer thread swaps
    the values while ticks read them. A missing file means no overrides.
    A reload that fails keeps the previous values; a file that could not be
    read at all makes every read fail so the tick falls back to defaults.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._values: Dict[str, Optional[str]] = {}
        self._load_error: Optional[str] = None
        self._lock = threading.Lock()
        self._observer = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> bool:
        """Initial load. Returns False if the file exists but is unusable."""
        try:
            values = self._load_from_file()
        except ConfigurationReadError as e:
            logger.error("Failed to load SLA override file", extra={"error": e.message})
            with self._lock:
                self._values = {}
                self._load_error = e.message
            return False

        with self._lock:
            self._values = values
            self._load_error = None
        return True

    def reload(self) -> bool:
        """Reload from file, keeping the previous values on failure."""
        try:
            values = self._load_from_file()
        except ConfigurationReadError as e:
            logger.error("Failed to reload SLA override file", extra={"error": e.message})
            return False

        with self._lock:
            self._values = values
            self._load_error = None
        logger.info("SLA overrides reloaded", extra={"keys": len(values)})
        return True

    def _load_from_file(self) -> Dict[str, Optional[str]]:
        if not self._path.exists():
            logger.warning(
                "SLA override file not found, using defaults",
                extra={"path": str(self._path)}
            )
            return {}

        try:
            with open(self._path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationReadError(str(self._path), str(e)) from e

        if not isinstance(data, dict):
            raise ConfigurationReadError(str(self._path), "expected a mapping of keys to values")

        return {
            str(key): None if value is None else str(value)
            for key, value in data.items()
        }

    async def get_values(self, prefix: str) -> Dict[str, Optional[str]]:
        with self._lock:
            if self._load_error is not None:
                raise ConfigurationReadError(str(self._path), self._load_error)
            return {k: v for k, v in self._values.items() if k.startswith(prefix)}

    def start_watching(self) -> None:
        """
        Start watching the override file for changes.

        Skips watching if the file doesn't exist or inotify is unavailable
        (common in containers).
        """
        if not self._path.exists():
            logger.info(
                "SLA override file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Started watching SLA override file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning(f"File watching not available, using static overrides: {e}")
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for the Slack webhook.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if self._clock() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


@dataclass
class SlackMessage:
    """Slack notification for one breach."""
    breach_id: str
    category: str
    title: str
    description: str
    severity: str
    hours_overdue: int
    url: str
    health_score: int
    health_status: str
    generated_at: str

    @classmethod
    def from_breach(cls, breach: BreachItem, snapshot: SLAMetrics, base_url: str) -> "SlackMessage":
        return cls(
            breach_id=breach.id,
            category=breach.category,
            title=breach.title,
            description=breach.description,
            severity=breach.severity,
            hours_overdue=breach.hours_overdue,
            url=f"{base_url.rstrip('/')}{breach.link}",
            health_score=snapshot.health_score,
            health_status=snapshot.health_status,
            generated_at=snapshot.generated_at.isoformat(),
        )


class SlackNotifier(ISLANotifier):
    """
    Slack webhook notifier with circuit breaker and retry logic.

    - Circuit breaker to prevent cascade failures
    - Exponential backoff retry
    - Timeout handling
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        channel: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._webhook_url = webhook_url if webhook_url is not None else settings.slack_webhook_url
        self._channel = channel or settings.slack_channel
        self._base_url = base_url or settings.app_base_url
        self._timeout = timeout_seconds or settings.slack_timeout_seconds
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )
        self._http_client = http_client

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def _build_message(self, data: SlackMessage) -> Dict[str, Any]:
        """Build Slack Block Kit message."""
        if data.severity == Severity.CRITICAL:
            header_text = ":rotating_light: SLA Breach (critical)"
        else:
            header_text = ":warning: SLA Breach (warning)"

        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": header_text, "emoji": True}
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*<{data.url}|{data.title}>*\n{data.description}"}
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Category:*\n{data.category.title()}"},
                    {"type": "mrkdwn", "text": f"*Hours Overdue:*\n{data.hours_overdue}"},
                    {"type": "mrkdwn", "text": f"*Health:*\n{data.health_score} ({data.health_status})"},
                ]
            },
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": f"Breach: {data.breach_id} | Snapshot: {data.generated_at}"}
                ]
            }
        ]

        return {
            "channel": self._channel,
            "text": f"SLA breach: {data.title}",
            "blocks": blocks
        }

    async def notify(self, breach: BreachItem, snapshot: SLAMetrics) -> bool:
        """
        Send one breach to the Slack webhook.

        Returns:
            True if sent successfully, False otherwise
        """
        if not self._webhook_url:
            logger.debug("Slack webhook URL not configured, skipping notification")
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping Slack notification",
                extra={"breach_id": breach.id}
            )
            return False

        message = self._build_message(SlackMessage.from_breach(breach, snapshot, self._base_url))

        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._webhook_url, json=message)

                if response.status_code == 200:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Slack notification sent",
                        extra={"breach_id": breach.id, "severity": breach.severity}
                    )
                    return True

                logger.warning(
                    "Slack webhook returned non-200",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )

            except httpx.HTTPError as e:
                logger.error(
                    "Slack notification failed",
                    extra={"error": str(e), "attempt": attempt + 1, "breach_id": breach.id}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._backoff_seconds * 2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class SLAScheduler:
    """
    Wrapper for APScheduler running the monitoring tick.

    The first tick fires immediately on start. Ticks never overlap: a tick
    still running when the next is due makes APScheduler skip that run.
    """

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[None]]) -> None:
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="sla_monitoring",
            name="SLA Monitoring Tick",
            next_run_time=datetime.now(timezone.utc),
            misfire_grace_time=self.interval_seconds,
            coalesce=True,
            max_instances=1,
            replace_existing=True
        )

        self._scheduler.start()
        self._running = True

        logger.info("SLA scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
