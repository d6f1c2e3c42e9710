"""Shared fixtures for SLA monitor tests."""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from caseflow.config import (
    LeadStatus, ContractStatus, PaymentStatus, RequirementStatus, DocumentStatus,
)
from caseflow.core import ConfigurationReadError
from caseflow.sla.application import (
    ILeadRepository,
    IContractRepository,
    IPaymentRepository,
    IAuthorityRequirementRepository,
    IServiceDocumentRepository,
    ISLAConfigStore,
    ISLANotifier,
    SLAMonitoringService,
    ThresholdResolver,
    build_scanners,
)
from caseflow.sla.domain import (
    LeadRecord,
    ContractRecord,
    PaymentRecord,
    AuthorityRequirementRecord,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# In-memory record store
# ---------------------------------------------------------------------------


class InMemoryRecordStore:
    """Holds records for every category and applies the repository filters."""

    def __init__(self):
        self.leads: List[LeadRecord] = []
        self.contracts: List[ContractRecord] = []
        self.payments: List[PaymentRecord] = []
        self.requirements: List[AuthorityRequirementRecord] = []
        self.documents: List[tuple] = []  # (status, uploaded_at)
        self.failing: set = set()
        self.delay_seconds: float = 0.0
        self.reads: int = 0

    async def _read(self, name: str) -> None:
        self.reads += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if name in self.failing:
            raise ConnectionError(f"{name} store unavailable")

    # Builders

    def add_lead(self, created_at, status=LeadStatus.NEW, updated_at=None, name="Ana Silva", id=None):
        lead = LeadRecord(
            id=id or f"L{len(self.leads) + 1}",
            status=status,
            created_at=created_at,
            updated_at=updated_at or created_at,
            contact_name=name,
        )
        self.leads.append(lead)
        return lead

    def add_contract(self, created_at, status=ContractStatus.SENT, id=None, opportunity_id=None):
        contract = ContractRecord(
            id=id or f"C{len(self.contracts) + 1}",
            status=status,
            created_at=created_at,
            opportunity_id=opportunity_id,
        )
        self.contracts.append(contract)
        return contract

    def add_payment(
        self,
        due_date: date,
        status=PaymentStatus.PENDING,
        amount="450.00",
        installment_number=None,
        id=None,
        opportunity_id="OPP-1",
    ):
        payment = PaymentRecord(
            id=id or f"P{len(self.payments) + 1}",
            status=status,
            due_date=due_date,
            amount=Decimal(amount),
            currency="EUR",
            installment_number=installment_number,
            opportunity_id=opportunity_id,
        )
        self.payments.append(payment)
        return payment

    def add_requirement(
        self,
        created_at,
        description="Submit updated criminal record certificate",
        internal_deadline=None,
        status=RequirementStatus.OPEN,
        id=None,
        service_case_id="CASE-1",
    ):
        requirement = AuthorityRequirementRecord(
            id=id or f"R{len(self.requirements) + 1}",
            status=status,
            description=description,
            created_at=created_at,
            internal_deadline=internal_deadline,
            service_case_id=service_case_id,
        )
        self.requirements.append(requirement)
        return requirement

    def add_document(self, uploaded_at, status=DocumentStatus.SUBMITTED):
        self.documents.append((status, uploaded_at))

    # Wiring

    def scanners(self):
        return build_scanners(
            leads=FakeLeadRepository(self),
            contracts=FakeContractRepository(self),
            payments=FakePaymentRepository(self),
            requirements=FakeRequirementRepository(self),
            documents=FakeDocumentRepository(self),
        )


class FakeLeadRepository(ILeadRepository):
    def __init__(self, store: InMemoryRecordStore):
        self.store = store

    async def list_by_status_created_before(self, status, before):
        await self.store._read("lead")
        return [lead for lead in self.store.leads if lead.status == status and lead.created_at < before]

    async def count_by_status_updated_before(self, status, before):
        await self.store._read("lead")
        return sum(1 for lead in self.store.leads if lead.status == status and lead.updated_at < before)


class FakeContractRepository(IContractRepository):
    def __init__(self, store: InMemoryRecordStore):
        self.store = store

    async def list_by_status_created_before(self, status, before):
        await self.store._read("contract")
        return [c for c in self.store.contracts if c.status == status and c.created_at < before]


class FakePaymentRepository(IPaymentRepository):
    def __init__(self, store: InMemoryRecordStore):
        self.store = store

    async def list_by_status_due_before(self, status, before):
        await self.store._read("payment")
        return [p for p in self.store.payments if p.status == status and p.due_date < before]


class FakeRequirementRepository(IAuthorityRequirementRepository):
    def __init__(self, store: InMemoryRecordStore):
        self.store = store

    async def list_by_status(self, status):
        await self.store._read("requirement")
        return [r for r in self.store.requirements if r.status == status]


class FakeDocumentRepository(IServiceDocumentRepository):
    def __init__(self, store: InMemoryRecordStore):
        self.store = store

    async def count_by_status_uploaded_before(self, status, before):
        await self.store._read("document")
        return sum(
            1 for s, uploaded_at in self.store.documents
            if s == status and uploaded_at is not None and uploaded_at < before
        )


# ---------------------------------------------------------------------------
# Configuration and notification fakes
# ---------------------------------------------------------------------------


class FakeConfigStore(ISLAConfigStore):
    def __init__(self, values: Optional[Dict[str, Optional[str]]] = None):
        self.values = dict(values or {})
        self.error: Optional[Exception] = None
        self.calls = 0

    async def get_values(self, prefix):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return {k: v for k, v in self.values.items() if k.startswith(prefix)}


class RecordingNotifier(ISLANotifier):
    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.sent: List[str] = []
        self.closed = False

    async def notify(self, breach, snapshot):
        if self.deliver:
            self.sent.append(breach.id)
        return self.deliver

    async def close(self):
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def config_store() -> FakeConfigStore:
    return FakeConfigStore()


@pytest.fixture
def config_read_error() -> ConfigurationReadError:
    return ConfigurationReadError("system_config", "connection refused")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def monitor(store, config_store) -> SLAMonitoringService:
    return SLAMonitoringService(
        store.scanners(),
        ThresholdResolver(config_store),
        display_limit=10,
        tick_timeout_seconds=5.0,
        clock=lambda: NOW,
    )


@pytest.fixture
def scanners(store) -> dict:
    """Standard scanner set keyed by the count each one fills."""
    return {scanner.count_key: scanner for scanner in store.scanners()}
