"""
SLA Infrastructure Layer
=========================

Infrastructure layer for SLA monitoring module.

Contains:
- Models: SQLAlchemy ORM models for the monitored CRM tables
- Repositories: SQLAlchemy implementations of the read interfaces
- External: YAML override store, Slack notifier, scheduler
"""

from caseflow.sla.infrastructure.models import (
    ContactModel,
    LeadModel,
    ContractModel,
    PaymentModel,
    AuthorityRequirementModel,
    ServiceDocumentModel,
    SystemConfigModel,
)
from caseflow.sla.infrastructure.repositories import (
    SQLAlchemyLeadRepository,
    SQLAlchemyContractRepository,
    SQLAlchemyPaymentRepository,
    SQLAlchemyAuthorityRequirementRepository,
    SQLAlchemyServiceDocumentRepository,
    SQLAlchemyConfigStore,
    as_utc,
)
from caseflow.sla.infrastructure.external import (
    YAMLConfigStore,
    CircuitState,
    CircuitBreaker,
    SlackMessage,
    SlackNotifier,
    SLAScheduler,
)

__all__ = [
    # Models
    "ContactModel",
    "LeadModel",
    "ContractModel",
    "PaymentModel",
    "AuthorityRequirementModel",
    "ServiceDocumentModel",
    "SystemConfigModel",
    # Repositories
    "SQLAlchemyLeadRepository",
    "SQLAlchemyContractRepository",
    "SQLAlchemyPaymentRepository",
    "SQLAlchemyAuthorityRequirementRepository",
    "SQLAlchemyServiceDocumentRepository",
    "SQLAlchemyConfigStore",
    "as_utc",
    # External
    "YAMLConfigStore",
    "CircuitState",
    "CircuitBreaker",
    "SlackMessage",
    "SlackNotifier",
    "SLAScheduler",
]
