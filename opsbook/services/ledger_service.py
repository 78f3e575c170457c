"""CRUD service for timesheets, expenses, company finances, vendors and profiles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Union
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opsbook.core.auth import (
    ADMIN_ROLES,
    VIEW_REPORT_ROLES,
    RequestUserContext,
    ensure_owner_or_roles,
    ensure_roles,
)
from opsbook.core.config import get_settings
from opsbook.models.entities import (
    BillStatus,
    CompanyIncome,
    ExpenseEntry,
    JobStatus,
    JobType,
    PaymentType,
    PersonalExpense,
    Profile,
    StudioExpense,
    TimesheetEntry,
    UserRole,
    Vendor,
    VendorBill,
    WorkType,
)
from opsbook.repositories.ledger_repository import LedgerRepository
from opsbook.services.aggregation import timesheet_salary
from opsbook.services.date_ranges import month_date_range
from opsbook.services.storage import COMPANY_INCOME_BUCKET, RECEIPTS_BUCKET, BlobStorage

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")

EXPENSE_KINDS: dict[str, type[StudioExpense] | type[PersonalExpense]] = {
    "studio": StudioExpense,
    "personal": PersonalExpense,
}

CompanyExpense = Union[StudioExpense, PersonalExpense]


# ---------- Input data ----------
@dataclass(frozen=True, slots=True)
class TimesheetCreateData:
    date: date
    work_type: WorkType
    job_description: str
    hours: Decimal | None = None
    hourly_rate: Decimal | None = None
    job_count: int | None = None
    job_rate: Decimal | None = None
    start_time: time | None = None
    end_time: time | None = None
    total_salary: Decimal | None = None
    user_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class TimesheetUpdateData:
    date: date | None = None
    work_type: WorkType | None = None
    job_description: str | None = None
    hours: Decimal | None = None
    hourly_rate: Decimal | None = None
    job_count: int | None = None
    job_rate: Decimal | None = None
    start_time: time | None = None
    end_time: time | None = None
    total_salary: Decimal | None = None


@dataclass(frozen=True, slots=True)
class ExpenseCreateData:
    date: date
    description: str
    amount: Decimal
    user_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class ExpenseUpdateData:
    date: date | None = None
    description: str | None = None
    amount: Decimal | None = None


@dataclass(frozen=True, slots=True)
class CompanyIncomeCreateData:
    brand: str
    amount: Decimal
    payment_method: str
    date: date
    client: str | None = None
    payment_type: PaymentType = PaymentType.FULL
    job_status: JobStatus = JobStatus.COMPLETED
    job_completion_date: date | None = None
    job_type: JobType | None = None


@dataclass(frozen=True, slots=True)
class CompanyIncomeUpdateData:
    brand: str | None = None
    amount: Decimal | None = None
    payment_method: str | None = None
    date: date | None = None
    client: str | None = None
    payment_type: PaymentType | None = None
    job_status: JobStatus | None = None
    job_completion_date: date | None = None
    job_type: JobType | None = None


@dataclass(frozen=True, slots=True)
class CompanyExpenseCreateData:
    merchant: str
    amount: Decimal
    method: str
    date: date
    details: str | None = None
    paid_by: str | None = None


@dataclass(frozen=True, slots=True)
class CompanyExpenseUpdateData:
    merchant: str | None = None
    amount: Decimal | None = None
    method: str | None = None
    date: date | None = None
    details: str | None = None
    paid_by: str | None = None


@dataclass(frozen=True, slots=True)
class VendorCreateData:
    name: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class VendorUpdateData:
    name: str | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True)
class VendorBillCreateData:
    vendor_id: UUID
    amount: Decimal
    due_date: date
    description: str | None = None
    method: str | None = None


@dataclass(frozen=True, slots=True)
class VendorBillUpdateData:
    vendor_id: UUID | None = None
    amount: Decimal | None = None
    due_date: date | None = None
    description: str | None = None
    method: str | None = None


@dataclass(frozen=True, slots=True)
class ProfileCreateData:
    email: str
    full_name: str | None = None
    role: UserRole = UserRole.STAFF


@dataclass(frozen=True, slots=True)
class ProfileUpdateData:
    full_name: str | None = None
    role: UserRole | None = None


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _iso(value: date | datetime | time | None) -> str | None:
    return value.isoformat() if value is not None else None


class LedgerService:
    """Validated writes and scoped reads over ledger records."""

    def __init__(self, db: Session, storage: BlobStorage | None = None) -> None:
        self.db = db
        self.repo = LedgerRepository(db)
        self.settings = get_settings()
        self.storage = storage or BlobStorage()

    # ---------- Serialization ----------
    @staticmethod
    def serialize_profile(row: Profile) -> dict[str, object]:
        return {
            "id": str(row.id),
            "email": row.email,
            "full_name": row.full_name,
            "display_name": row.display_name,
            "role": row.role.value,
            "created_at": _iso(row.created_at),
            "updated_at": _iso(row.updated_at),
        }

    @staticmethod
    def serialize_timesheet_entry(row: TimesheetEntry) -> dict[str, object]:
        return {
            "id": str(row.id),
            "user_id": str(row.user_id),
            "date": row.date.isoformat(),
            "work_type": row.work_type.value,
            "job_description": row.job_description,
            "hours": str(row.hours) if row.hours is not None else None,
            "hourly_rate": str(row.hourly_rate) if row.hourly_rate is not None else None,
            "job_count": row.job_count,
            "job_rate": str(row.job_rate) if row.job_rate is not None else None,
            "start_time": _iso(row.start_time),
            "end_time": _iso(row.end_time),
            "total_salary": str(_q2(row.total_salary)),
        }

    @staticmethod
    def serialize_expense(row: ExpenseEntry) -> dict[str, object]:
        return {
            "id": str(row.id),
            "user_id": str(row.user_id),
            "date": row.date.isoformat(),
            "description": row.description,
            "amount": str(_q2(row.amount)),
            "receipt_path": row.receipt_path,
        }

    @staticmethod
    def serialize_company_income(row: CompanyIncome) -> dict[str, object]:
        return {
            "id": str(row.id),
            "brand": row.brand,
            "client": row.client,
            "amount": str(_q2(row.amount)),
            "payment_type": row.payment_type.value,
            "payment_method": row.payment_method,
            "date": row.date.isoformat(),
            "job_status": row.job_status.value,
            "job_completion_date": _iso(row.job_completion_date),
            "job_type": row.job_type.value if row.job_type is not None else None,
            "payment_slip_path": row.payment_slip_path,
            "created_by": str(row.created_by),
        }

    @staticmethod
    def serialize_company_expense(row: CompanyExpense) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": str(row.id),
            "merchant": row.merchant,
            "details": row.details,
            "amount": str(_q2(row.amount)),
            "method": row.method,
            "date": row.date.isoformat(),
            "created_by": str(row.created_by),
        }
        if isinstance(row, PersonalExpense):
            payload["paid_by"] = row.paid_by
        return payload

    @staticmethod
    def serialize_vendor(row: Vendor) -> dict[str, object]:
        return {
            "id": str(row.id),
            "name": row.name,
            "description": row.description,
        }

    @staticmethod
    def serialize_vendor_bill(row: VendorBill) -> dict[str, object]:
        return {
            "id": str(row.id),
            "vendor_id": str(row.vendor_id),
            "amount": str(_q2(row.amount)),
            "description": row.description,
            "method": row.method,
            "due_date": row.due_date.isoformat(),
            "status": row.status.value,
            "invoice_path": row.invoice_path,
            "created_by": str(row.created_by),
            "paid_by": str(row.paid_by) if row.paid_by is not None else None,
            "paid_at": _iso(row.paid_at),
        }

    # ---------- Shared helpers ----------
    @staticmethod
    def _require_text(value: str | None, field_name: str) -> str:
        stripped = value.strip() if value else ""
        if not stripped:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field_name} is required.",
            )
        return stripped

    @staticmethod
    def _require_positive(value: Decimal | None, field_name: str) -> Decimal:
        if value is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field_name} is required.",
            )
        # Columns hold two decimal places; validate and compute with the stored value.
        value = _q2(value)
        if value <= ZERO:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field_name} must be greater than zero.",
            )
        return value

    def _get_or_404(self, model: type, row_id: UUID, label: str):
        row = self.repo.get(model, row_id)
        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found.")
        return row

    def _persist(self, row, *, conflict_detail: str):
        try:
            self.repo.add(row)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict_detail) from exc
        self.db.refresh(row)
        return row

    def _commit(self, *, conflict_detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict_detail) from exc

    def _remove_row(self, row, *, conflict_detail: str) -> None:
        try:
            self.repo.delete(row)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=conflict_detail) from exc

    def _resolve_owner(self, context: RequestUserContext, user_id: UUID | None) -> UUID:
        if user_id is None or user_id == context.profile_id:
            return context.profile_id
        ensure_roles(context, ADMIN_ROLES)
        self._get_or_404(Profile, user_id, "Profile")
        return user_id

    # ---------- Attachments ----------
    def _replace_attachment(
        self,
        row,
        *,
        attribute: str,
        bucket: str,
        filename: str | None,
        content: bytes,
    ) -> str:
        if not content:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Attachment body must not be empty.",
            )
        key = self.storage.upload(bucket, self.storage.new_key(filename), content)
        previous = getattr(row, attribute)
        setattr(row, attribute, key)
        self._commit(conflict_detail="Attachment update violated database constraints.")
        if previous and previous != key:
            self.storage.remove(bucket, previous)
        return key

    def _read_attachment(self, row, *, attribute: str, bucket: str) -> tuple[str, bytes]:
        key = getattr(row, attribute)
        if not key:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found.")
        return key, self.storage.download(bucket, key)

    def _drop_attachment(self, key: str | None, bucket: str) -> None:
        if key:
            self.storage.remove(bucket, key)

    def attachment_url(self, bucket: str, key: str) -> str:
        return self.storage.public_url(bucket, key)

    # ---------- Timesheets ----------
    def _timesheet_fields(self, data: TimesheetCreateData) -> dict[str, object]:
        fields: dict[str, object] = {
            "date": data.date,
            "work_type": data.work_type,
            "job_description": self._require_text(data.job_description, "job_description"),
            "start_time": data.start_time,
            "end_time": data.end_time,
        }
        if data.work_type is WorkType.HOURLY:
            fields["hours"] = self._require_positive(data.hours, "hours")
            fields["hourly_rate"] = self._require_positive(data.hourly_rate, "hourly_rate")
            fields["job_count"] = None
            fields["job_rate"] = None
        else:
            if data.job_count is None or data.job_count < 1:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="job_count must be at least 1 for job entries.",
                )
            fields["job_count"] = data.job_count
            fields["job_rate"] = self._require_positive(data.job_rate, "job_rate")
            fields["hours"] = None
            fields["hourly_rate"] = None

        salary = timesheet_salary(fields)
        if data.total_salary is not None and _q2(data.total_salary) != salary:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"total_salary {_q2(data.total_salary)} does not match the work inputs ({salary}).",
            )
        fields["total_salary"] = salary
        return fields

    def list_timesheet_entries(
        self,
        *,
        context: RequestUserContext,
        month: str,
        user_id: UUID | None = None,
    ) -> list[TimesheetEntry]:
        month_range = month_date_range(month)
        target = user_id or context.profile_id
        if target != context.profile_id:
            ensure_roles(context, VIEW_REPORT_ROLES)
        return self.repo.list_timesheet_entries(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            user_id=target,
        )

    def get_timesheet_entry(self, *, context: RequestUserContext, entry_id: UUID) -> TimesheetEntry:
        row = self._get_or_404(TimesheetEntry, entry_id, "Timesheet entry")
        ensure_owner_or_roles(context, owner_id=row.user_id, allowed_roles=VIEW_REPORT_ROLES)
        return row

    def create_timesheet_entry(self, *, context: RequestUserContext, data: TimesheetCreateData) -> TimesheetEntry:
        owner_id = self._resolve_owner(context, data.user_id)
        row = TimesheetEntry(user_id=owner_id, **self._timesheet_fields(data))
        self._persist(row, conflict_detail="Timesheet entry violated database constraints.")
        logger.info("Timesheet entry %s created for %s.", row.id, owner_id)
        return row

    def update_timesheet_entry(
        self,
        *,
        context: RequestUserContext,
        entry_id: UUID,
        data: TimesheetUpdateData,
    ) -> TimesheetEntry:
        row = self._get_or_404(TimesheetEntry, entry_id, "Timesheet entry")
        ensure_owner_or_roles(context, owner_id=row.user_id, allowed_roles=ADMIN_ROLES)

        merged = TimesheetCreateData(
            date=data.date or row.date,
            work_type=data.work_type or row.work_type,
            job_description=data.job_description if data.job_description is not None else row.job_description,
            hours=data.hours if data.hours is not None else row.hours,
            hourly_rate=data.hourly_rate if data.hourly_rate is not None else row.hourly_rate,
            job_count=data.job_count if data.job_count is not None else row.job_count,
            job_rate=data.job_rate if data.job_rate is not None else row.job_rate,
            start_time=data.start_time if data.start_time is not None else row.start_time,
            end_time=data.end_time if data.end_time is not None else row.end_time,
            total_salary=data.total_salary,
        )
        for name, value in self._timesheet_fields(merged).items():
            setattr(row, name, value)
        self._commit(conflict_detail="Timesheet entry violated database constraints.")
        self.db.refresh(row)
        return row

    def delete_timesheet_entry(self, *, context: RequestUserContext, entry_id: UUID) -> None:
        row = self._get_or_404(TimesheetEntry, entry_id, "Timesheet entry")
        ensure_owner_or_roles(context, owner_id=row.user_id, allowed_roles=ADMIN_ROLES)
        self._remove_row(row, conflict_detail="Timesheet entry could not be deleted.")
        logger.info("Timesheet entry %s deleted by %s.", entry_id, context.email)

    # ---------- Employee expenses ----------
    def list_expenses(
        self,
        *,
        context: RequestUserContext,
        month: str,
        user_id: UUID | None = None,
    ) -> list[ExpenseEntry]:
        month_range = month_date_range(month)
        target = user_id or context.profile_id
        if target != context.profile_id:
            ensure_roles(context, VIEW_REPORT_ROLES)
        return self.repo.list_expenses(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            user_id=target,
        )

    def create_expense(self, *, context: RequestUserContext, data: ExpenseCreateData) -> ExpenseEntry:
        owner_id = self._resolve_owner(context, data.user_id)
        row = ExpenseEntry(
            user_id=owner_id,
            date=data.date,
            description=self._require_text(data.description, "description"),
            amount=self._require_positive(data.amount, "amount"),
        )
        self._persist(row, conflict_detail="Expense violated database constraints.")
        logger.info("Expense %s created for %s.", row.id, owner_id)
        return row

    def update_expense(
        self,
        *,
        context: RequestUserContext,
        expense_id: UUID,
        data: ExpenseUpdateData,
    ) -> ExpenseEntry:
        row = self._get_or_404(ExpenseEntry, expense_id, "Expense")
        ensure_owner_or_roles(context, owner_id=row.user_id, allowed_roles=ADMIN_ROLES)

        description = self._require_text(data.description, "description") if data.description is not None else None
        amount = self._require_positive(data.amount, "amount") if data.amount is not None else None
        if data.date is not None:
            row.date = data.date
        if description is not None:
            row.description = description
        if amount is not None:
            row.amount = amount
        self._commit(conflict_detail="Expense violated database constraints.")
        self.db.refresh(row)
        return row

    def delete_expense(self, *, context: RequestUserContext, expense_id: UUID) -> None:
        row = self._get_or_404(ExpenseEntry, expense_id, "Expense")
        ensure_owner_or_roles(context, owner_id=row.user_id, allowed_roles=ADMIN_ROLES)
        receipt = row.receipt_path
        self._remove_row(row, conflict_detail="Expense could not be deleted.")
        self._drop_attachment(receipt, RECEIPTS_BUCKET)
        logger.info("Expense %s deleted by %s.", expense_id, context.email)

    def upload_receipt(
        self,
        *,
        context: RequestUserContext,
        expense_id: UUID,
        filename: str | None,
        content: bytes,
    ) -> str:
        row = self._get_or_404(ExpenseEntry, expense_id, "Expense")
        ensure_owner_or_roles(context, owner_id=row.user_id, allowed_roles=ADMIN_ROLES)
        return self._replace_attachment(
            row,
            attribute="receipt_path",
            bucket=RECEIPTS_BUCKET,
            filename=filename,
            content=content,
        )

    def download_receipt(self, *, context: RequestUserContext, expense_id: UUID) -> tuple[str, bytes]:
        row = self._get_or_404(ExpenseEntry, expense_id, "Expense")
        ensure_owner_or_roles(context, owner_id=row.user_id, allowed_roles=VIEW_REPORT_ROLES)
        return self._read_attachment(row, attribute="receipt_path", bucket=RECEIPTS_BUCKET)

    # ---------- Company income ----------
    def list_company_income(
        self,
        *,
        context: RequestUserContext,
        month: str,
        brand: str | None = None,
    ) -> list[CompanyIncome]:
        ensure_roles(context, ADMIN_ROLES)
        month_range = month_date_range(month)
        return self.repo.list_company_income(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            brand=_optional_text(brand),
        )

    def create_company_income(self, *, context: RequestUserContext, data: CompanyIncomeCreateData) -> CompanyIncome:
        ensure_roles(context, ADMIN_ROLES)
        row = CompanyIncome(
            brand=self._require_text(data.brand, "brand"),
            client=_optional_text(data.client),
            amount=self._require_positive(data.amount, "amount"),
            payment_type=data.payment_type,
            payment_method=self._require_text(data.payment_method, "payment_method"),
            date=data.date,
            job_status=data.job_status,
            job_completion_date=data.job_completion_date,
            job_type=data.job_type,
            created_by=context.profile_id,
        )
        self._persist(row, conflict_detail="Company income record violated database constraints.")
        logger.info("Company income %s recorded for brand %s.", row.id, row.brand)
        return row

    def update_company_income(
        self,
        *,
        context: RequestUserContext,
        income_id: UUID,
        data: CompanyIncomeUpdateData,
    ) -> CompanyIncome:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(CompanyIncome, income_id, "Company income record")

        if data.brand is not None:
            row.brand = self._require_text(data.brand, "brand")
        if data.payment_method is not None:
            row.payment_method = self._require_text(data.payment_method, "payment_method")
        if data.amount is not None:
            row.amount = self._require_positive(data.amount, "amount")
        if data.client is not None:
            row.client = _optional_text(data.client)
        if data.date is not None:
            row.date = data.date
        if data.payment_type is not None:
            row.payment_type = data.payment_type
        if data.job_status is not None:
            row.job_status = data.job_status
        if data.job_completion_date is not None:
            row.job_completion_date = data.job_completion_date
        if data.job_type is not None:
            row.job_type = data.job_type
        self._commit(conflict_detail="Company income record violated database constraints.")
        self.db.refresh(row)
        return row

    def delete_company_income(self, *, context: RequestUserContext, income_id: UUID) -> None:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(CompanyIncome, income_id, "Company income record")
        slip = row.payment_slip_path
        self._remove_row(row, conflict_detail="Company income record could not be deleted.")
        self._drop_attachment(slip, COMPANY_INCOME_BUCKET)
        logger.info("Company income %s deleted by %s.", income_id, context.email)

    def upload_payment_slip(
        self,
        *,
        context: RequestUserContext,
        income_id: UUID,
        filename: str | None,
        content: bytes,
    ) -> str:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(CompanyIncome, income_id, "Company income record")
        return self._replace_attachment(
            row,
            attribute="payment_slip_path",
            bucket=COMPANY_INCOME_BUCKET,
            filename=filename,
            content=content,
        )

    def download_payment_slip(self, *, context: RequestUserContext, income_id: UUID) -> tuple[str, bytes]:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(CompanyIncome, income_id, "Company income record")
        return self._read_attachment(row, attribute="payment_slip_path", bucket=COMPANY_INCOME_BUCKET)

    # ---------- Studio and personal expenses ----------
    @staticmethod
    def expense_model(kind: str) -> type[StudioExpense] | type[PersonalExpense]:
        model = EXPENSE_KINDS.get(kind.strip().lower())
        if model is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Unknown expense kind. Expected one of: personal, studio.",
            )
        return model

    def list_company_expenses(self, *, context: RequestUserContext, kind: str, month: str) -> list[CompanyExpense]:
        ensure_roles(context, ADMIN_ROLES)
        month_range = month_date_range(month)
        if self.expense_model(kind) is PersonalExpense:
            return self.repo.list_personal_expenses(start_date=month_range.start_date, end_date=month_range.end_date)
        return self.repo.list_studio_expenses(start_date=month_range.start_date, end_date=month_range.end_date)

    def create_company_expense(
        self,
        *,
        context: RequestUserContext,
        kind: str,
        data: CompanyExpenseCreateData,
    ) -> CompanyExpense:
        ensure_roles(context, ADMIN_ROLES)
        model = self.expense_model(kind)
        fields: dict[str, object] = {
            "merchant": self._require_text(data.merchant, "merchant"),
            "details": _optional_text(data.details),
            "amount": self._require_positive(data.amount, "amount"),
            "method": self._require_text(data.method, "method"),
            "date": data.date,
            "created_by": context.profile_id,
        }
        if model is PersonalExpense:
            fields["paid_by"] = _optional_text(data.paid_by)
        row = model(**fields)
        self._persist(row, conflict_detail=f"{kind.capitalize()} expense violated database constraints.")
        logger.info("%s expense %s recorded at %s.", kind.capitalize(), row.id, row.merchant)
        return row

    def update_company_expense(
        self,
        *,
        context: RequestUserContext,
        kind: str,
        expense_id: UUID,
        data: CompanyExpenseUpdateData,
    ) -> CompanyExpense:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(self.expense_model(kind), expense_id, "Expense")

        if data.merchant is not None:
            row.merchant = self._require_text(data.merchant, "merchant")
        if data.method is not None:
            row.method = self._require_text(data.method, "method")
        if data.amount is not None:
            row.amount = self._require_positive(data.amount, "amount")
        if data.details is not None:
            row.details = _optional_text(data.details)
        if data.date is not None:
            row.date = data.date
        if data.paid_by is not None and isinstance(row, PersonalExpense):
            row.paid_by = _optional_text(data.paid_by)
        self._commit(conflict_detail="Expense violated database constraints.")
        self.db.refresh(row)
        return row

    def delete_company_expense(self, *, context: RequestUserContext, kind: str, expense_id: UUID) -> None:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(self.expense_model(kind), expense_id, "Expense")
        self._remove_row(row, conflict_detail="Expense could not be deleted.")
        logger.info("%s expense %s deleted by %s.", kind.capitalize(), expense_id, context.email)

    # ---------- Vendors ----------
    def list_vendors(self, *, context: RequestUserContext) -> list[Vendor]:
        ensure_roles(context, ADMIN_ROLES)
        return self.repo.list_vendors()

    def create_vendor(self, *, context: RequestUserContext, data: VendorCreateData) -> Vendor:
        ensure_roles(context, ADMIN_ROLES)
        row = Vendor(
            name=self._require_text(data.name, "name"),
            description=_optional_text(data.description),
        )
        return self._persist(row, conflict_detail="Vendor name already exists.")

    def update_vendor(self, *, context: RequestUserContext, vendor_id: UUID, data: VendorUpdateData) -> Vendor:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(Vendor, vendor_id, "Vendor")
        if data.name is not None:
            row.name = self._require_text(data.name, "name")
        if data.description is not None:
            row.description = _optional_text(data.description)
        self._commit(conflict_detail="Vendor name already exists.")
        self.db.refresh(row)
        return row

    def delete_vendor(self, *, context: RequestUserContext, vendor_id: UUID) -> None:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(Vendor, vendor_id, "Vendor")
        if self.repo.vendor_bill_count(row.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete vendor with existing bills.",
            )
        self._remove_row(row, conflict_detail="Vendor could not be deleted.")

    # ---------- Vendor bills ----------
    def list_vendor_bills(
        self,
        *,
        context: RequestUserContext,
        month: str,
        bill_status: BillStatus | None = None,
        vendor_id: UUID | None = None,
    ) -> list[VendorBill]:
        ensure_roles(context, ADMIN_ROLES)
        month_range = month_date_range(month)
        return self.repo.list_vendor_bills(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            status=bill_status,
            vendor_id=vendor_id,
        )

    def create_vendor_bill(self, *, context: RequestUserContext, data: VendorBillCreateData) -> VendorBill:
        ensure_roles(context, ADMIN_ROLES)
        vendor = self._get_or_404(Vendor, data.vendor_id, "Vendor")
        row = VendorBill(
            vendor_id=vendor.id,
            amount=self._require_positive(data.amount, "amount"),
            description=_optional_text(data.description),
            method=_optional_text(data.method),
            due_date=data.due_date,
            status=BillStatus.PENDING,
            created_by=context.profile_id,
        )
        self._persist(row, conflict_detail="Vendor bill violated database constraints.")
        logger.info("Vendor bill %s created for vendor %s.", row.id, vendor.name)
        return row

    def update_vendor_bill(
        self,
        *,
        context: RequestUserContext,
        bill_id: UUID,
        data: VendorBillUpdateData,
    ) -> VendorBill:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(VendorBill, bill_id, "Vendor bill")
        if data.vendor_id is not None:
            row.vendor_id = self._get_or_404(Vendor, data.vendor_id, "Vendor").id
        if data.amount is not None:
            row.amount = self._require_positive(data.amount, "amount")
        if data.due_date is not None:
            row.due_date = data.due_date
        if data.description is not None:
            row.description = _optional_text(data.description)
        if data.method is not None:
            row.method = _optional_text(data.method)
        self._commit(conflict_detail="Vendor bill violated database constraints.")
        self.db.refresh(row)
        return row

    def mark_vendor_bill_paid(self, *, context: RequestUserContext, bill_id: UUID) -> VendorBill:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(VendorBill, bill_id, "Vendor bill")
        if row.status is BillStatus.PAID:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vendor bill is already paid.")
        row.status = BillStatus.PAID
        row.paid_by = context.profile_id
        row.paid_at = datetime.utcnow()
        self._commit(conflict_detail="Vendor bill violated database constraints.")
        self.db.refresh(row)
        logger.info("Vendor bill %s marked paid by %s.", bill_id, context.email)
        return row

    def delete_vendor_bill(self, *, context: RequestUserContext, bill_id: UUID) -> None:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(VendorBill, bill_id, "Vendor bill")
        invoice = row.invoice_path
        self._remove_row(row, conflict_detail="Vendor bill could not be deleted.")
        self._drop_attachment(invoice, RECEIPTS_BUCKET)

    def upload_invoice(
        self,
        *,
        context: RequestUserContext,
        bill_id: UUID,
        filename: str | None,
        content: bytes,
    ) -> str:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(VendorBill, bill_id, "Vendor bill")
        return self._replace_attachment(
            row,
            attribute="invoice_path",
            bucket=RECEIPTS_BUCKET,
            filename=filename,
            content=content,
        )

    def download_invoice(self, *, context: RequestUserContext, bill_id: UUID) -> tuple[str, bytes]:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(VendorBill, bill_id, "Vendor bill")
        return self._read_attachment(row, attribute="invoice_path", bucket=RECEIPTS_BUCKET)

    # ---------- Profiles ----------
    def list_profiles(self, *, context: RequestUserContext, role: UserRole | None = None) -> list[Profile]:
        ensure_roles(context, ADMIN_ROLES)
        return self.repo.list_profiles(role=role)

    def create_profile(self, *, context: RequestUserContext, data: ProfileCreateData) -> Profile:
        ensure_roles(context, ADMIN_ROLES)
        email = self._require_text(data.email, "email").lower()
        if self.repo.get_profile_by_email(email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Profile email already exists.")
        now = datetime.utcnow()
        row = Profile(
            email=email,
            full_name=_optional_text(data.full_name),
            role=data.role,
            created_at=now,
            updated_at=now,
        )
        self._persist(row, conflict_detail="Profile email already exists.")
        logger.info("Profile %s created with role %s.", email, data.role.value)
        return row

    def update_profile(self, *, context: RequestUserContext, profile_id: UUID, data: ProfileUpdateData) -> Profile:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(Profile, profile_id, "Profile")
        if data.full_name is not None:
            row.full_name = _optional_text(data.full_name)
        if data.role is not None:
            row.role = data.role
        row.updated_at = datetime.utcnow()
        self._commit(conflict_detail="Profile violated database constraints.")
        self.db.refresh(row)
        return row

    def delete_profile(self, *, context: RequestUserContext, profile_id: UUID) -> None:
        ensure_roles(context, ADMIN_ROLES)
        row = self._get_or_404(Profile, profile_id, "Profile")
        if row.id == context.profile_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Administrators cannot delete their own profile.",
            )
        if self.repo.profile_record_count(row.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete profile that still owns ledger records.",
            )
        email = row.email
        self._remove_row(row, conflict_detail="Profile could not be deleted.")
        logger.info("Profile %s deleted by %s.", email, context.email)
