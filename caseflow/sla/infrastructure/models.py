"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the CRM tables the SLA monitor reads.

Only the columns the monitor needs are mapped. The CRM application owns
these tables; the monitor never writes to them.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Date, Integer, Numeric, Text, Uuid, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from caseflow.infrastructure.database import Base
from caseflow.config import LeadStatus, ContractStatus, PaymentStatus, RequirementStatus, DocumentStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactModel(Base):
    """Maps to the 'contacts' table."""
    __tablename__ = "contacts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class LeadModel(Base):
    """Maps to the 'leads' table."""
    __tablename__ = "leads"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    contact_id: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("contacts.id"), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=LeadStatus.NEW, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ContractModel(Base):
    """Maps to the 'contracts' table."""
    __tablename__ = "contracts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    opportunity_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=ContractStatus.SENT, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PaymentModel(Base):
    """Maps to the 'payments' table."""
    __tablename__ = "payments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    opportunity_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=PaymentStatus.PENDING, index=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    installment_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class AuthorityRequirementModel(Base):
    """Maps to the 'requirements_from_authority' table."""
    __tablename__ = "requirements_from_authority"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    service_case_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=RequirementStatus.OPEN, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    internal_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class ServiceDocumentModel(Base):
    """Maps to the 'service_documents' table."""
    __tablename__ = "service_documents"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    service_case_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=DocumentStatus.SUBMITTED, index=True)
    uploaded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class SystemConfigModel(Base):
    """Maps to the 'system_config' key/value table."""
    __tablename__ = "system_config"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
