"""
SLA Application Layer
======================

Application layer for SLA monitoring module.

Contains:
- Interfaces: record repositories, configuration store, notifier
- Scanners: one read-only rule per monitored record category
- Services: ThresholdResolver and the SLAMonitoringService facade
- Alerts: breach notification consumer with its own de-duplication
- DTOs: API response models

This layer depends on the domain layer and on interfaces,
but not on concrete infrastructure implementations.
"""

from caseflow.sla.application.interfaces import (
    ILeadRepository,
    IContractRepository,
    IPaymentRepository,
    IAuthorityRequirementRepository,
    IServiceDocumentRepository,
    ISLAConfigStore,
    ISLANotifier,
)
from caseflow.sla.application.scanners import (
    ScanResult,
    BreachScanner,
    LeadFirstResponseScanner,
    LeadReengagementScanner,
    ContractSignatureScanner,
    PaymentOverdueScanner,
    AuthorityRequirementScanner,
    DocumentReviewScanner,
    build_scanners,
)
from caseflow.sla.application.services import (
    ThresholdResolver,
    SLAMonitoringService,
    utc_now,
)
from caseflow.sla.application.alerts import AlertDeduplicator, BreachAlertDispatcher
from caseflow.sla.application.dto import (
    BreachItemResponse,
    SLACountsResponse,
    SLAMetricsResponse,
    MonitorSnapshotResponse,
    ThresholdsResponse,
)

__all__ = [
    # Interfaces
    "ILeadRepository",
    "IContractRepository",
    "IPaymentRepository",
    "IAuthorityRequirementRepository",
    "IServiceDocumentRepository",
    "ISLAConfigStore",
    "ISLANotifier",
    # Scanners
    "ScanResult",
    "BreachScanner",
    "LeadFirstResponseScanner",
    "LeadReengagementScanner",
    "ContractSignatureScanner",
    "PaymentOverdueScanner",
    "AuthorityRequirementScanner",
    "DocumentReviewScanner",
    "build_scanners",
    # Services
    "ThresholdResolver",
    "SLAMonitoringService",
    "utc_now",
    # Alerts
    "AlertDeduplicator",
    "BreachAlertDispatcher",
    # DTOs
    "BreachItemResponse",
    "SLACountsResponse",
    "SLAMetricsResponse",
    "MonitorSnapshotResponse",
    "ThresholdsResponse",
]
