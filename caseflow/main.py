"""
Caseflow SLA Monitor - Main Application
=========================================

Periodic SLA breach monitoring for the immigration-services CRM.

Every tick scans leads, contracts, payments, authority requirements and
service documents, scores overall health and publishes one immutable
snapshot. New critical breaches are pushed to Slack.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Scanners, monitoring service, alert dispatcher, DTOs
- Domain: Records, breaches, thresholds, scoring
- Infrastructure: Database, YAML overrides, Slack, scheduler
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from caseflow.config import settings

# Infrastructure
from caseflow.infrastructure.database import init_database, close_database, create_tables

# SLA Module
from caseflow.sla.application import (
    AlertDeduplicator,
    BreachAlertDispatcher,
    ISLAConfigStore,
    SLAMonitoringService,
    ThresholdResolver,
    build_scanners,
)
from caseflow.sla.infrastructure import (
    SQLAlchemyLeadRepository,
    SQLAlchemyContractRepository,
    SQLAlchemyPaymentRepository,
    SQLAlchemyAuthorityRequirementRepository,
    SQLAlchemyServiceDocumentRepository,
    SQLAlchemyConfigStore,
    YAMLConfigStore,
    SlackNotifier,
    SLAScheduler,
)
from caseflow.sla.interfaces import sla_router

# Shared
from caseflow.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler
)
from caseflow.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


async def prepare_database() -> None:
    """
    Open the database engine.

    The CRM owns its schema, so tables are only created when
    db_create_tables_on_startup is enabled for local development.
    """
    init_database()
    if not settings.db_create_tables_on_startup:
        return

    # Ticks fail and are retried on schedule until the database is back
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")


def build_config_store() -> ISLAConfigStore:
    """Threshold overrides come from system_config or from a YAML file."""
    if settings.sla_config_source == "yaml":
        store = YAMLConfigStore(settings.sla_config_path)
        store.load()
        store.start_watching()
        return store
    return SQLAlchemyConfigStore()


def build_monitor(config_store: ISLAConfigStore) -> SLAMonitoringService:
    scanners = build_scanners(
        leads=SQLAlchemyLeadRepository(),
        contracts=SQLAlchemyContractRepository(),
        payments=SQLAlchemyPaymentRepository(),
        requirements=SQLAlchemyAuthorityRequirementRepository(),
        documents=SQLAlchemyServiceDocumentRepository(),
    )
    return SLAMonitoringService(
        scanners,
        ThresholdResolver(config_store),
        display_limit=settings.sla_breach_display_limit,
        tick_timeout_seconds=settings.sla_tick_timeout_seconds,
    )


def build_dispatcher() -> BreachAlertDispatcher:
    return BreachAlertDispatcher(
        SlackNotifier(),
        AlertDeduplicator(
            ttl=timedelta(hours=settings.sla_alert_ttl_hours),
            max_entries=settings.sla_alert_cache_size,
        ),
        min_severity=settings.sla_alert_min_severity,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database (tables only when enabled)
    3. Open the SLA configuration store
    4. Build the monitor and alert dispatcher
    5. Start the SLA scheduler

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Stop config file watcher
    3. Close Slack client
    4. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SLA Monitor", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    await prepare_database()

    logger.info("Loading SLA configuration", extra={"source": settings.sla_config_source})
    config_store = build_config_store()

    monitor = build_monitor(config_store)
    dispatcher = build_dispatcher()

    async def sla_monitoring_job():
        """Background SLA tick."""
        snapshot = await monitor.refresh()
        if snapshot is not None:
            await dispatcher.dispatch(snapshot)

    scheduler = SLAScheduler(interval_seconds=settings.sla_evaluation_interval)
    await scheduler.start(sla_monitoring_job)

    app.state.sla_monitor = monitor
    app.state.sla_scheduler = scheduler
    app.state.sla_config_store = config_store

    logger.info("SLA Monitor started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down SLA Monitor")

    await scheduler.stop()

    if isinstance(config_store, YAMLConfigStore):
        config_store.stop_watching()

    await dispatcher.close()

    await close_database()

    logger.info("SLA Monitor shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Caseflow SLA Monitor API",
    description="""
    ## SLA Breach Monitoring for the Immigration-Services CRM

    **Endpoints:**
    - `GET /sla/metrics` - Latest SLA snapshot and monitor state
    - `POST /sla/metrics/refresh` - Run a tick now
    - `GET /sla/thresholds` - Effective thresholds

    **Monitored rules:**
    - New leads without first response
    - Contracts awaiting signature
    - Overdue payment installments
    - Open authority requirements near or past their deadline
    - Submitted documents awaiting review
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: correlation id is set before requests are logged
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(sla_router)


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    The service is healthy while it runs; SLA tick failures are reported
    in the checks, not as an unhealthy service.
    """
    monitor = getattr(request.app.state, "sla_monitor", None)
    scheduler = getattr(request.app.state, "sla_scheduler", None)

    checks = {
        "sla_config_source": settings.sla_config_source,
        "sla_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
        "sla_monitor": monitor.state if monitor else "not_initialized",
        "last_snapshot_at": (
            monitor.last_snapshot.generated_at.isoformat()
            if monitor and monitor.last_snapshot else None
        ),
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Caseflow SLA Monitor",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "sla": {
                "prefix": "/sla",
                "endpoints": [
                    "GET /sla/metrics - Latest SLA snapshot",
                    "POST /sla/metrics/refresh - Run a tick now",
                    "GET /sla/thresholds - Effective thresholds"
                ]
            }
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "caseflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
