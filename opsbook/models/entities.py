"""ORM entities for the opsbook schema."""

from __future__ import annotations

import datetime as dt
import enum
import uuid
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Time,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from opsbook.db.base import Base

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


class WorkType(str, enum.Enum):
    HOURLY = "hourly"
    JOB = "job"


class PaymentType(str, enum.Enum):
    FULL = "full"
    PARTIAL = "partial"
    BALANCE = "balance"


class JobStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class JobType(str, enum.Enum):
    SHOOTING = "shooting"
    UPGRADE = "upgrade"
    PRODUCT = "product"


class BillStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> SQLEnum:
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(_enum_column(UserRole, "user_role"), nullable=False, default=UserRole.STAFF)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class TimesheetEntry(Base):
    __tablename__ = "timesheet_entries"
    __table_args__ = (
        CheckConstraint("total_salary >= 0", name="ck_timesheet_entries_total_salary_non_negative"),
        Index("ix_timesheet_entries_user_date", "user_id", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    work_type: Mapped[WorkType] = mapped_column(_enum_column(WorkType, "work_type"), nullable=False)
    job_description: Mapped[str] = mapped_column(String(2000), nullable=False)
    hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    job_count: Mapped[int | None] = mapped_column(nullable=True)
    job_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    start_time: Mapped[dt.time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[dt.time | None] = mapped_column(Time, nullable=True)
    total_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)

    @property
    def computed_salary(self) -> Decimal:
        """Salary derived from the work inputs rather than the stored total."""

        if self.work_type is WorkType.HOURLY:
            amount = (self.hours or ZERO) * (self.hourly_rate or ZERO)
        else:
            amount = Decimal(self.job_count or 0) * (self.job_rate or ZERO)
        return Decimal(amount).quantize(Q2)


class ExpenseEntry(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        Index("ix_expenses_user_date", "user_id", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    receipt_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)


class CompanyIncome(Base):
    __tablename__ = "company_income"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_company_income_amount_positive"),
        Index("ix_company_income_date", "date"),
        Index("ix_company_income_brand", "brand"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brand: Mapped[str] = mapped_column(String(255), nullable=False)
    client: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_type: Mapped[PaymentType] = mapped_column(
        _enum_column(PaymentType, "payment_type"), nullable=False, default=PaymentType.FULL
    )
    payment_method: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    job_status: Mapped[JobStatus] = mapped_column(
        _enum_column(JobStatus, "job_status"), nullable=False, default=JobStatus.COMPLETED
    )
    job_completion_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    job_type: Mapped[JobType | None] = mapped_column(_enum_column(JobType, "job_type"), nullable=True)
    payment_slip_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)


class StudioExpense(Base):
    __tablename__ = "studio_expenses"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_studio_expenses_amount_positive"),
        Index("ix_studio_expenses_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    merchant: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)


class PersonalExpense(Base):
    __tablename__ = "personal_expenses"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_personal_expenses_amount_positive"),
        Index("ix_personal_expenses_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    merchant: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    paid_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)


class Vendor(Base):
    __tablename__ = "vendors"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)


class VendorBill(Base):
    __tablename__ = "vendor_bills"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_vendor_bills_amount_positive"),
        Index("ix_vendor_bills_due_date", "due_date"),
        Index("ix_vendor_bills_vendor_id", "vendor_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vendor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("vendors.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    due_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[BillStatus] = mapped_column(
        _enum_column(BillStatus, "bill_status"), nullable=False, default=BillStatus.PENDING
    )
    invoice_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False)
    paid_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True)
    paid_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=dt.datetime.utcnow)
