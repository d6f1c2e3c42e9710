"""
SLA Category Scanners
=====================

One scanner per monitored record category. A scanner is a read-only
function of "now", the resolved thresholds and the current store contents:
it issues one filtered read through its repository and turns the matching
records into breach items plus a count.

Lead re-engagement and document review are count-only: no per-record rule
has been defined for them, so they emit no breach items.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from caseflow.config import (
    BreachCategory, Severity,
    LeadStatus, ContractStatus, PaymentStatus, RequirementStatus, DocumentStatus,
)
from caseflow.sla.domain import BreachItem, SLACalculator, SLAThresholds
from caseflow.sla.application.interfaces import (
    ILeadRepository,
    IContractRepository,
    IPaymentRepository,
    IAuthorityRequirementRepository,
    IServiceDocumentRepository,
)

REQUIREMENT_SUMMARY_LENGTH = 50


@dataclass(frozen=True)
class ScanResult:
    """Output of one scanner for one tick."""
    count_key: str
    count: int
    breaches: Tuple[BreachItem, ...] = ()


class BreachScanner(ABC):
    """Base class for category scanners."""

    category: str
    count_key: str

    @abstractmethod
    async def scan(self, now: datetime, thresholds: SLAThresholds) -> ScanResult:
        """Inspect one record category as of `now`."""


class LeadFirstResponseScanner(BreachScanner):
    """New leads nobody has answered within the first-response window."""

    category = BreachCategory.LEAD
    count_key = "leads_awaiting_response"

    def __init__(self, repository: ILeadRepository):
        self._repository = repository

    async def scan(self, now: datetime, thresholds: SLAThresholds) -> ScanResult:
        window = thresholds.first_response_hours
        leads = await self._repository.list_by_status_created_before(
            LeadStatus.NEW, SLACalculator.hours_ago(now, window)
        )

        breaches = []
        for lead in leads:
            waited = SLACalculator.whole_hours_between(lead.created_at, now)
            hours_overdue = waited - window
            severity = (
                Severity.CRITICAL
                if hours_overdue > thresholds.lead_critical_after_hours
                else Severity.WARNING
            )
            breaches.append(BreachItem(
                id=f"lead-response-{lead.id}",
                category=self.category,
                title="First response pending",
                description=f"Lead {lead.contact_name or 'unnamed'} waiting {waited}h without a response",
                severity=severity,
                hours_overdue=hours_overdue,
                related_id=lead.id,
            ))

        return ScanResult(self.count_key, len(leads), tuple(breaches))


class LeadReengagementScanner(BreachScanner):
    """Leads stuck with incomplete data past the re-engagement window."""

    category = BreachCategory.LEAD
    count_key = "leads_incomplete"

    def __init__(self, repository: ILeadRepository):
        self._repository = repository

    async def scan(self, now: datetime, thresholds: SLAThresholds) -> ScanResult:
        count = await self._repository.count_by_status_updated_before(
            LeadStatus.INCOMPLETE_DATA,
            SLACalculator.days_ago(now, thresholds.reengagement_days)
        )
        return ScanResult(self.count_key, count)


class ContractSignatureScanner(BreachScanner):
    """Contracts sent to the client and still unsigned after the reminder window."""

    category = BreachCategory.CONTRACT
    count_key = "contracts_pending_signature"

    def __init__(self, repository: IContractRepository):
        self._repository = repository

    async def scan(self, now: datetime, thresholds: SLAThresholds) -> ScanResult:
        window_days = thresholds.signature_reminder_days
        contracts = await self._repository.list_by_status_created_before(
            ContractStatus.SENT, SLACalculator.days_ago(now, window_days)
        )

        breaches = []
        for contract in contracts:
            elapsed = SLACalculator.whole_hours_between(contract.created_at, now)
            hours_overdue = elapsed - window_days * 24
            if hours_overdue <= 0:
                continue
            days_overdue = hours_overdue // 24
            severity = (
                Severity.CRITICAL
                if days_overdue > thresholds.contract_critical_after_days
                else Severity.WARNING
            )
            breaches.append(BreachItem(
                id=f"contract-{contract.id}",
                category=self.category,
                title="Contract pending signature",
                description=f"Contract sent {elapsed // 24} day(s) ago and still unsigned",
                severity=severity,
                hours_overdue=hours_overdue,
                related_id=contract.id,
            ))

        return ScanResult(self.count_key, len(contracts), tuple(breaches))


class PaymentOverdueScanner(BreachScanner):
    """Pending payments whose due date has passed."""

    category = BreachCategory.PAYMENT
    count_key = "payments_pending"

    def __init__(self, repository: IPaymentRepository):
        self._repository = repository

    async def scan(self, now: datetime, thresholds: SLAThresholds) -> ScanResult:
        today = now.astimezone(timezone.utc).date()
        payments = await self._repository.list_by_status_due_before(
            PaymentStatus.PENDING, today
        )

        breaches = []
        for payment in payments:
            hours_overdue = SLACalculator.whole_hours_between(
                SLACalculator.start_of_day(payment.due_date), now
            )
            days_overdue = hours_overdue // 24
            if days_overdue <= 0:
                continue
            severity = (
                Severity.CRITICAL
                if days_overdue >= thresholds.payment_critical_after_days
                else Severity.WARNING
            )
            title = "Overdue payment"
            if payment.installment_number:
                title += f" (installment {payment.installment_number})"
            breaches.append(BreachItem(
                id=f"payment-{payment.id}",
                category=self.category,
                title=title,
                description=f"{payment.amount} {payment.currency} overdue by {days_overdue} day(s)",
                severity=severity,
                hours_overdue=hours_overdue,
                related_id=payment.opportunity_id,
            ))

        return ScanResult(self.count_key, len(payments), tuple(breaches))


class AuthorityRequirementScanner(BreachScanner):
    """
    Open authority requirements past, or close to, their internal deadline.

    Past the deadline the item is critical and measures hours overdue.
    Inside the look-ahead window it is a warning with zero hours overdue.
    The count covers every open requirement, reported or not.
    """

    category = BreachCategory.REQUIREMENT
    count_key = "requirements_urgent"

    def __init__(self, repository: IAuthorityRequirementRepository):
        self._repository = repository

    async def scan(self, now: datetime, thresholds: SLAThresholds) -> ScanResult:
        requirements = await self._repository.list_by_status(RequirementStatus.OPEN)

        breaches = []
        for requirement in requirements:
            deadline = requirement.internal_deadline or (
                requirement.created_at + timedelta(hours=thresholds.requirement_response_hours)
            )
            hours_left = SLACalculator.hours_until(deadline, now)

            if hours_left < 0:
                breaches.append(BreachItem(
                    id=f"requirement-{requirement.id}",
                    category=self.category,
                    title="Authority requirement overdue",
                    description=_summarize(requirement.description),
                    severity=Severity.CRITICAL,
                    hours_overdue=math.floor(abs(hours_left)),
                    related_id=requirement.service_case_id,
                ))
            elif hours_left <= thresholds.requirement_lookahead_hours:
                breaches.append(BreachItem(
                    id=f"requirement-{requirement.id}",
                    category=self.category,
                    title="Authority requirement due soon",
                    description=f"Due in {round(hours_left)}h",
                    severity=Severity.WARNING,
                    hours_overdue=0,
                    related_id=requirement.service_case_id,
                ))

        return ScanResult(self.count_key, len(requirements), tuple(breaches))


class DocumentReviewScanner(BreachScanner):
    """Client documents waiting for review past the review window."""

    category = BreachCategory.DOCUMENT
    count_key = "documents_pending_review"

    def __init__(self, repository: IServiceDocumentRepository):
        self._repository = repository

    async def scan(self, now: datetime, thresholds: SLAThresholds) -> ScanResult:
        count = await self._repository.count_by_status_uploaded_before(
            DocumentStatus.SUBMITTED,
            SLACalculator.hours_ago(now, thresholds.document_review_hours)
        )
        return ScanResult(self.count_key, count)


def _summarize(text: str) -> str:
    text = " ".join(text.split())
    if len(text) <= REQUIREMENT_SUMMARY_LENGTH:
        return text
    return text[:REQUIREMENT_SUMMARY_LENGTH] + "..."


def build_scanners(
    leads: ILeadRepository,
    contracts: IContractRepository,
    payments: IPaymentRepository,
    requirements: IAuthorityRequirementRepository,
    documents: IServiceDocumentRepository,
) -> List[BreachScanner]:
    """The standard scanner set, one per monitored rule."""
    return [
        LeadFirstResponseScanner(leads),
        LeadReengagementScanner(leads),
        ContractSignatureScanner(contracts),
        PaymentOverdueScanner(payments),
        AuthorityRequirementScanner(requirements),
        DocumentReviewScanner(documents),
    ]
