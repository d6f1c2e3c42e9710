"""
SLA Infrastructure Repositories
=================================

Concrete implementations of the SLA read interfaces using SQLAlchemy.

Every read opens its own session from the session factory, so scanners
can query concurrently without sharing an AsyncSession. Rows are mapped
to the domain record types here; timestamps come back as aware UTC even
from backends that drop the offset.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import AsyncContextManager, AsyncIterator, Callable, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.config import BreachCategory
from caseflow.core import RecordQueryError, ConfigurationReadError
from caseflow.infrastructure.database import get_session_context
from caseflow.sla.application import (
    ILeadRepository,
    IContractRepository,
    IPaymentRepository,
    IAuthorityRequirementRepository,
    IServiceDocumentRepository,
    ISLAConfigStore,
)
from caseflow.sla.domain import (
    LeadRecord,
    ContractRecord,
    PaymentRecord,
    AuthorityRequirementRecord,
)
from caseflow.sla.infrastructure.models import (
    ContactModel,
    LeadModel,
    ContractModel,
    PaymentModel,
    AuthorityRequirementModel,
    ServiceDocumentModel,
    SystemConfigModel,
)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _optional_id(value) -> Optional[str]:
    return str(value) if value is not None else None


class _SQLAlchemyReadRepository:
    """Opens one session per read and converts driver errors to RecordQueryError."""

    category: str

    def __init__(self, session_factory: SessionFactory = get_session_context):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _read(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise RecordQueryError(self.category, str(e)) from e


class SQLAlchemyLeadRepository(_SQLAlchemyReadRepository, ILeadRepository):
    """Lead reads, joined to the contact for display names."""

    category = BreachCategory.LEAD

    async def list_by_status_created_before(
        self,
        status: str,
        before: datetime
    ) -> List[LeadRecord]:
        stmt = (
            select(
                LeadModel.id,
                LeadModel.status,
                LeadModel.created_at,
                LeadModel.updated_at,
                ContactModel.full_name,
            )
            .outerjoin(ContactModel, LeadModel.contact_id == ContactModel.id)
            .where(LeadModel.status == status, LeadModel.created_at < before)
            .order_by(LeadModel.created_at.asc(), LeadModel.id.asc())
        )

        async with self._read() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            LeadRecord(
                id=str(row.id),
                status=row.status,
                created_at=as_utc(row.created_at),
                updated_at=as_utc(row.updated_at),
                contact_name=row.full_name,
            )
            for row in rows
        ]

    async def count_by_status_updated_before(self, status: str, before: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(LeadModel)
            .where(LeadModel.status == status, LeadModel.updated_at < before)
        )

        async with self._read() as session:
            result = await session.execute(stmt)
            return result.scalar_one()


class SQLAlchemyContractRepository(_SQLAlchemyReadRepository, IContractRepository):
    """Contract reads."""

    category = BreachCategory.CONTRACT

    async def list_by_status_created_before(
        self,
        status: str,
        before: datetime
    ) -> List[ContractRecord]:
        stmt = (
            select(ContractModel)
            .where(ContractModel.status == status, ContractModel.created_at < before)
            .order_by(ContractModel.created_at.asc(), ContractModel.id.asc())
        )

        async with self._read() as session:
            result = await session.execute(stmt)
            models = result.scalars().all()

        return [
            ContractRecord(
                id=str(model.id),
                status=model.status,
                created_at=as_utc(model.created_at),
                opportunity_id=_optional_id(model.opportunity_id),
            )
            for model in models
        ]


class SQLAlchemyPaymentRepository(_SQLAlchemyReadRepository, IPaymentRepository):
    """Payment reads."""

    category = BreachCategory.PAYMENT

    async def list_by_status_due_before(self, status: str, before: date) -> List[PaymentRecord]:
        stmt = (
            select(PaymentModel)
            .where(
                PaymentModel.status == status,
                PaymentModel.due_date.is_not(None),
                PaymentModel.due_date < before,
            )
            .order_by(PaymentModel.due_date.asc(), PaymentModel.id.asc())
        )

        async with self._read() as session:
            result = await session.execute(stmt)
            models = result.scalars().all()

        return [
            PaymentRecord(
                id=str(model.id),
                status=model.status,
                due_date=model.due_date,
                amount=model.amount,
                currency=model.currency,
                installment_number=model.installment_number,
                opportunity_id=_optional_id(model.opportunity_id),
            )
            for model in models
        ]


class SQLAlchemyAuthorityRequirementRepository(
    _SQLAlchemyReadRepository,
    IAuthorityRequirementRepository
):
    """Authority requirement reads."""

    category = BreachCategory.REQUIREMENT

    async def list_by_status(self, status: str) -> List[AuthorityRequirementRecord]:
        stmt = (
            select(AuthorityRequirementModel)
            .where(AuthorityRequirementModel.status == status)
            .order_by(AuthorityRequirementModel.created_at.asc(), AuthorityRequirementModel.id.asc())
        )

        async with self._read() as session:
            result = await session.execute(stmt)
            models = result.scalars().all()

        return [
            AuthorityRequirementRecord(
                id=str(model.id),
                status=model.status,
                description=model.description,
                created_at=as_utc(model.created_at),
                internal_deadline=as_utc(model.internal_deadline) if model.internal_deadline else None,
                service_case_id=_optional_id(model.service_case_id),
            )
            for model in models
        ]


class SQLAlchemyServiceDocumentRepository(_SQLAlchemyReadRepository, IServiceDocumentRepository):
    """Service document reads."""

    category = BreachCategory.DOCUMENT

    async def count_by_status_uploaded_before(self, status: str, before: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(ServiceDocumentModel)
            .where(
                ServiceDocumentModel.status == status,
                ServiceDocumentModel.uploaded_at < before,
            )
        )

        async with self._read() as session:
            result = await session.execute(stmt)
            return result.scalar_one()


class SQLAlchemyConfigStore(ISLAConfigStore):
    """SLA overrides from the CRM's 'system_config' table."""

    def __init__(self, session_factory: SessionFactory = get_session_context):
        self._session_factory = session_factory

    async def get_values(self, prefix: str) -> Dict[str, Optional[str]]:
        stmt = select(SystemConfigModel.key, SystemConfigModel.value).where(
            SystemConfigModel.key.like(f"{prefix}%")
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except (SQLAlchemyError, RuntimeError) as e:
            raise ConfigurationReadError("system_config", str(e)) from e

        # LIKE treats "_" as a wildcard
        return {row.key: row.value for row in rows if row.key.startswith(prefix)}
