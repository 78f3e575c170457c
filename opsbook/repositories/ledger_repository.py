"""Repository helpers for ledger records, profiles and vendors."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from datetime import date
from typing import TypeVar
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from opsbook.db.base import Base
from opsbook.models.entities import (
    BillStatus,
    CompanyIncome,
    ExpenseEntry,
    PersonalExpense,
    Profile,
    StudioExpense,
    TimesheetEntry,
    UserRole,
    Vendor,
    VendorBill,
)

ModelT = TypeVar("ModelT", bound=Base)

OWNED_RECORD_MODELS: tuple[type[Base], ...] = (TimesheetEntry, ExpenseEntry)
CREATED_RECORD_MODELS: tuple[type[Base], ...] = (CompanyIncome, StudioExpense, PersonalExpense, VendorBill)


class LedgerRepository:
    """Persistence operations used by ledger and reporting services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Generic query / write interface ----------
    def fetch_rows(
        self,
        model: type[ModelT],
        *,
        date_column: str,
        start_date: date,
        end_date: date,
        filters: Mapping[str, object] | None = None,
        in_filters: Mapping[str, Collection[object]] | None = None,
        ascending: bool = False,
    ) -> list[ModelT]:
        column = getattr(model, date_column)
        conditions = [column >= start_date, column <= end_date]
        for name, value in (filters or {}).items():
            conditions.append(getattr(model, name) == value)
        for name, values in (in_filters or {}).items():
            conditions.append(getattr(model, name).in_(list(values)))

        ordering = (column.asc(), model.created_at.asc()) if ascending else (column.desc(), model.created_at.desc())
        return list(self.db.scalars(select(model).where(and_(*conditions)).order_by(*ordering)).all())

    def get(self, model: type[ModelT], row_id: UUID) -> ModelT | None:
        return self.db.get(model, row_id)

    def add(self, row: ModelT) -> ModelT:
        self.db.add(row)
        self.db.flush()
        return row

    def delete(self, row: Base) -> None:
        self.db.delete(row)
        self.db.flush()

    # ---------- Timesheets and employee expenses ----------
    def list_timesheet_entries(
        self,
        *,
        start_date: date,
        end_date: date,
        user_id: UUID | None = None,
        user_ids: Collection[UUID] | None = None,
        ascending: bool = False,
    ) -> list[TimesheetEntry]:
        return self.fetch_rows(
            TimesheetEntry,
            date_column="date",
            start_date=start_date,
            end_date=end_date,
            filters={"user_id": user_id} if user_id is not None else None,
            in_filters={"user_id": user_ids} if user_ids is not None else None,
            ascending=ascending,
        )

    def list_expenses(
        self,
        *,
        start_date: date,
        end_date: date,
        user_id: UUID | None = None,
        user_ids: Collection[UUID] | None = None,
        ascending: bool = False,
    ) -> list[ExpenseEntry]:
        return self.fetch_rows(
            ExpenseEntry,
            date_column="date",
            start_date=start_date,
            end_date=end_date,
            filters={"user_id": user_id} if user_id is not None else None,
            in_filters={"user_id": user_ids} if user_ids is not None else None,
            ascending=ascending,
        )

    # ---------- Company finances ----------
    def list_company_income(
        self,
        *,
        start_date: date,
        end_date: date,
        brand: str | None = None,
    ) -> list[CompanyIncome]:
        return self.fetch_rows(
            CompanyIncome,
            date_column="date",
            start_date=start_date,
            end_date=end_date,
            filters={"brand": brand} if brand else None,
        )

    def list_studio_expenses(self, *, start_date: date, end_date: date) -> list[StudioExpense]:
        return self.fetch_rows(StudioExpense, date_column="date", start_date=start_date, end_date=end_date)

    def list_personal_expenses(self, *, start_date: date, end_date: date) -> list[PersonalExpense]:
        return self.fetch_rows(PersonalExpense, date_column="date", start_date=start_date, end_date=end_date)

    def list_vendor_bills(
        self,
        *,
        start_date: date,
        end_date: date,
        status: BillStatus | None = None,
        vendor_id: UUID | None = None,
    ) -> list[VendorBill]:
        filters: dict[str, object] = {}
        if status is not None:
            filters["status"] = status
        if vendor_id is not None:
            filters["vendor_id"] = vendor_id
        return self.fetch_rows(
            VendorBill,
            date_column="due_date",
            start_date=start_date,
            end_date=end_date,
            filters=filters,
            ascending=True,
        )

    # ---------- Profiles ----------
    def list_profiles(self, *, role: UserRole | None = None) -> list[Profile]:
        query = select(Profile)
        if role is not None:
            query = query.where(Profile.role == role)
        return list(self.db.scalars(query.order_by(Profile.full_name.asc(), Profile.email.asc())).all())

    def get_profile_by_email(self, email: str) -> Profile | None:
        return self.db.scalar(select(Profile).where(Profile.email == email))

    def profile_record_count(self, profile_id: UUID) -> int:
        total = 0
        for model in OWNED_RECORD_MODELS:
            total += self.db.scalar(select(func.count()).select_from(model).where(model.user_id == profile_id)) or 0
        for model in CREATED_RECORD_MODELS:
            total += self.db.scalar(select(func.count()).select_from(model).where(model.created_by == profile_id)) or 0
        total += self.db.scalar(select(func.count()).select_from(VendorBill).where(VendorBill.paid_by == profile_id)) or 0
        return total

    # ---------- Vendors ----------
    def list_vendors(self) -> list[Vendor]:
        return list(self.db.scalars(select(Vendor).order_by(Vendor.name.asc())).all())

    def vendor_bill_count(self, vendor_id: UUID) -> int:
        return self.db.scalar(select(func.count()).select_from(VendorBill).where(VendorBill.vendor_id == vendor_id)) or 0
