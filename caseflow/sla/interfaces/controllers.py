"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA monitoring endpoints.

Controllers are thin - they read from the monitoring service held on
the application state and never trigger scans on GET.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from caseflow.core import ApplicationException
from caseflow.sla.application import (
    SLAMonitoringService,
    SLAMetricsResponse,
    MonitorSnapshotResponse,
    ThresholdsResponse,
)
from caseflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

SNAPSHOT_RESPONSE_EXAMPLE = {
    "state": "ready",
    "stale": False,
    "last_error": None,
    "metrics": {
        "generated_at": "2026-03-02T09:00:00Z",
        "health_score": 70,
        "health_status": "attention",
        "counts": {
            "leads_awaiting_response": 1,
            "leads_incomplete": 0,
            "contracts_pending_signature": 0,
            "payments_pending": 1,
            "payments_pre_due": 0,
            "requirements_urgent": 1,
            "documents_pending_review": 3,
            "onboarding_incomplete": 0,
            "tie_pending_pickup": 0
        },
        "total_breaches": 3,
        "critical_count": 1,
        "warning_count": 2,
        "breaches": [
            {
                "id": "payment-5f1c",
                "category": "payment",
                "title": "Overdue payment (installment 2)",
                "description": "450.00 EUR overdue by 8 day(s)",
                "severity": "critical",
                "hours_overdue": 192,
                "related_id": "a81b",
                "link": "/payments"
            }
        ]
    }
}


# ========== Dependencies ==========

def get_sla_monitor(request: Request) -> SLAMonitoringService:
    """Monitoring service created in the application lifespan."""
    monitor = getattr(request.app.state, "sla_monitor", None)
    if monitor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SLA monitor not initialized"
        )
    return monitor


def _snapshot_response(monitor: SLAMonitoringService) -> MonitorSnapshotResponse:
    error = monitor.last_error
    return MonitorSnapshotResponse(
        state=monitor.state,
        stale=error is not None,
        last_error=error.message if error else None,
        metrics=SLAMetricsResponse.from_domain(monitor.last_snapshot),
    )


# ========== Route Handlers ==========

@router.get(
    "/metrics",
    response_model=MonitorSnapshotResponse,
    summary="Get the latest SLA snapshot",
    description="""
    Returns the last successfully computed SLA snapshot together with the
    monitor state. When the most recent tick failed, the previous snapshot
    is returned with `stale: true` and the error.

    Returns 503 until the first tick has succeeded.
    """,
    responses={
        200: {
            "description": "Latest snapshot",
            "content": {"application/json": {"example": SNAPSHOT_RESPONSE_EXAMPLE}}
        },
        503: {"description": "No snapshot computed yet"}
    }
)
async def get_sla_metrics(monitor: SLAMonitoringService = Depends(get_sla_monitor)):
    if monitor.last_snapshot is None:
        error = monitor.last_error
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "state": monitor.state,
                "last_error": error.message if error else None,
            }
        )
    return _snapshot_response(monitor)


@router.post(
    "/metrics/refresh",
    response_model=MonitorSnapshotResponse,
    summary="Run an SLA tick now",
    description="""
    Runs a monitoring tick immediately, or joins the one already running.

    Returns 503 with the error if the tick fails; the previous snapshot
    stays published.
    """
)
async def refresh_sla_metrics(monitor: SLAMonitoringService = Depends(get_sla_monitor)):
    try:
        await monitor.compute_sla_metrics()
    except ApplicationException as e:
        logger.warning("Manual SLA refresh failed", extra={"error": e.message})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"state": monitor.state, "last_error": e.message}
        )
    return _snapshot_response(monitor)


@router.get(
    "/thresholds",
    response_model=ThresholdsResponse,
    summary="Get effective SLA thresholds",
    description="Thresholds as resolved right now: configured overrides over built-in defaults."
)
async def get_sla_thresholds(monitor: SLAMonitoringService = Depends(get_sla_monitor)):
    thresholds = await monitor.threshold_resolver.resolve()
    return ThresholdsResponse.from_domain(thresholds)


sla_router = router
