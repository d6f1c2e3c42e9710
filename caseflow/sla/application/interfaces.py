"""
SLA Application Interfaces
===========================

Abstractions the SLA monitor depends on (Dependency Inversion).

Each record repository issues exactly one filtered read per call and
returns explicit record types, never ORM rows. Repositories raise
RecordQueryError when the store cannot be read; config stores raise
ConfigurationReadError.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, List, Optional

from caseflow.sla.domain import (
    LeadRecord,
    ContractRecord,
    PaymentRecord,
    AuthorityRequirementRecord,
    BreachItem,
    SLAMetrics,
)


# ========== Record Store ==========

class ILeadRepository(ABC):
    """Read access to leads."""

    @abstractmethod
    async def list_by_status_created_before(
        self,
        status: str,
        before: datetime
    ) -> List[LeadRecord]:
        """Leads in a status created strictly before a cut-off."""

    @abstractmethod
    async def count_by_status_updated_before(
        self,
        status: str,
        before: datetime
    ) -> int:
        """Count of leads in a status last updated strictly before a cut-off."""


class IContractRepository(ABC):
    """Read access to contracts."""

    @abstractmethod
    async def list_by_status_created_before(
        self,
        status: str,
        before: datetime
    ) -> List[ContractRecord]:
        """Contracts in a status created strictly before a cut-off."""


class IPaymentRepository(ABC):
    """Read access to payments."""

    @abstractmethod
    async def list_by_status_due_before(
        self,
        status: str,
        before: date
    ) -> List[PaymentRecord]:
        """Payments in a status with a non-null due date strictly before a day."""


class IAuthorityRequirementRepository(ABC):
    """Read access to requirements issued by immigration authorities."""

    @abstractmethod
    async def list_by_status(self, status: str) -> List[AuthorityRequirementRecord]:
        """All requirements in a status."""


class IServiceDocumentRepository(ABC):
    """Read access to case documents."""

    @abstractmethod
    async def count_by_status_uploaded_before(
        self,
        status: str,
        before: datetime
    ) -> int:
        """Count of documents in a status uploaded strictly before a cut-off."""


# ========== Configuration Store ==========

class ISLAConfigStore(ABC):
    """Key/value store holding SLA threshold overrides."""

    @abstractmethod
    async def get_values(self, prefix: str) -> Dict[str, Optional[str]]:
        """
        Raw values for every key starting with prefix.

        Absent keys are simply missing from the result.
        """


# ========== Notifications ==========

class ISLANotifier(ABC):
    """Delivers breach alerts to people."""

    @abstractmethod
    async def notify(self, breach: BreachItem, snapshot: SLAMetrics) -> bool:
        """Send one alert. Returns True if it was delivered."""

    async def close(self) -> None:
        """Release any held resources."""
