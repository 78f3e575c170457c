"""Dashboard, profit/loss, trend and export service layer."""

from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsbook.core.auth import ADMIN_ROLES, VIEW_REPORT_ROLES, RequestUserContext, ensure_roles
from opsbook.core.config import get_settings
from opsbook.models.entities import BillStatus, PersonalExpense, Profile, UserRole
from opsbook.repositories.ledger_repository import LedgerRepository
from opsbook.services.aggregation import (
    EmployeeTotals,
    MonthlyFinancials,
    build_monthly_financials,
    compute_trend,
    employee_totals,
    group_totals,
    merchant_breakdown,
    method_totals,
    sum_field,
    total_hours,
    weekday_averages,
)
from opsbook.services.date_ranges import (
    current_month_token,
    month_date_range,
    parse_month_token,
    trailing_month_tokens,
)
from opsbook.services.exporter import (
    EXPORT_FORMATS,
    EmployeeReport,
    ExportFilePayload,
    build_payload,
    employee_report_csv,
    employee_report_tables,
    income_records_csv,
    income_records_tables,
    personal_expense_table,
    studio_expense_table,
    vendor_bill_table,
)
from opsbook.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

EXPORT_ENTITIES = ("company-income", "personal-expenses", "studio-expenses", "vendor-bills")
MAX_TREND_MONTHS = 60


def _serialize_totals(totals: EmployeeTotals) -> dict[str, object]:
    return {
        "employee_id": str(totals.employee_id),
        "name": totals.name,
        "email": totals.email,
        "total_hours": str(totals.total_hours),
        "total_salary": str(totals.total_salary),
        "total_expenses": str(totals.total_expenses),
        "total_payment": str(totals.total_payment),
    }


def _money_map(values: dict[str, Decimal]) -> dict[str, str]:
    return {key: str(value) for key, value in values.items()}


class ReportingService:
    """Read-only reporting over one calendar month (or a trailing series of them)."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = LedgerRepository(db)
        self.settings = get_settings()

    @staticmethod
    def _normalize_format(format_name: str) -> str:
        normalized = format_name.strip().lower()
        if normalized not in EXPORT_FORMATS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )
        return normalized

    def _employee(self, employee_id: UUID) -> Profile:
        profile = self.repo.get(Profile, employee_id)
        if profile is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")
        return profile

    # ---------- Staff and employee dashboards ----------
    def my_month_summary(self, *, context: RequestUserContext, month: str) -> dict[str, object]:
        month_range = month_date_range(month)
        timesheets = self.repo.list_timesheet_entries(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            user_id=context.profile_id,
        )
        expenses = self.repo.list_expenses(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            user_id=context.profile_id,
        )
        total_salary = sum_field(timesheets, "total_salary")
        total_expenses = sum_field(expenses, "amount")
        return {
            "month": month_range.month,
            **month_range.as_dict(),
            "total_hours": str(total_hours(timesheets)),
            "total_salary": str(total_salary),
            "total_expenses": str(total_expenses),
            "total_payment": str(total_salary + total_expenses),
            "timesheet_entry_count": len(timesheets),
            "expense_count": len(expenses),
        }

    def employee_stats(
        self,
        *,
        context: RequestUserContext,
        month: str,
        employee_id: UUID | None = None,
    ) -> dict[str, object]:
        ensure_roles(context, VIEW_REPORT_ROLES)
        month_range = month_date_range(month)
        if employee_id is not None:
            employees = [self._employee(employee_id)]
        else:
            employees = self.repo.list_profiles(role=UserRole.STAFF)
        employee_ids = [employee.id for employee in employees]

        timesheets = self.repo.list_timesheet_entries(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            user_ids=employee_ids,
        )
        expenses = self.repo.list_expenses(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            user_ids=employee_ids,
        )
        rows = employee_totals(employees, timesheets, expenses)
        return {
            "month": month_range.month,
            **month_range.as_dict(),
            "items": [_serialize_totals(row) for row in rows],
            "total_salary": str(sum_field(rows, "total_salary")),
            "total_expenses": str(sum_field(rows, "total_expenses")),
        }

    def employee_entries(
        self,
        *,
        context: RequestUserContext,
        month: str,
        employee_id: UUID,
    ) -> dict[str, object]:
        ensure_roles(context, VIEW_REPORT_ROLES)
        month_range = month_date_range(month)
        employee = self._employee(employee_id)
        timesheets = self.repo.list_timesheet_entries(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            user_id=employee.id,
        )
        expenses = self.repo.list_expenses(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            user_id=employee.id,
        )
        totals = employee_totals([employee], timesheets, expenses)[0]
        return {
            "month": month_range.month,
            **month_range.as_dict(),
            "employee": LedgerService.serialize_profile(employee),
            "totals": _serialize_totals(totals),
            "timesheet_entries": [LedgerService.serialize_timesheet_entry(row) for row in timesheets],
            "expenses": [LedgerService.serialize_expense(row) for row in expenses],
        }

    # ---------- Company finance dashboards ----------
    def income_summary(
        self,
        *,
        context: RequestUserContext,
        month: str,
        brand: str | None = None,
    ) -> dict[str, object]:
        ensure_roles(context, ADMIN_ROLES)
        month_range = month_date_range(month)
        records = self.repo.list_company_income(
            start_date=month_range.start_date,
            end_date=month_range.end_date,
            brand=brand.strip() if brand and brand.strip() else None,
        )
        return {
            "month": month_range.month,
            **month_range.as_dict(),
            "total_income": str(sum_field(records, "amount")),
            "record_count": len(records),
            "by_brand": _money_map(group_totals(records, "brand")),
            "by_payment_method": _money_map(group_totals(records, "payment_method")),
            "by_payment_type": _money_map(group_totals(records, "payment_type")),
            "by_job_type": _money_map(group_totals(records, "job_type")),
        }

    def expenses_by_method(self, *, context: RequestUserContext, kind: str, month: str) -> dict[str, object]:
        ensure_roles(context, ADMIN_ROLES)
        model = LedgerService.expense_model(kind)
        month_range = month_date_range(month)
        if model is PersonalExpense:
            rows = self.repo.list_personal_expenses(start_date=month_range.start_date, end_date=month_range.end_date)
        else:
            rows = self.repo.list_studio_expenses(start_date=month_range.start_date, end_date=month_range.end_date)

        totals = method_totals(rows)
        counts = Counter(row.method for row in rows)
        return {
            "month": month_range.month,
            **month_range.as_dict(),
            "kind": kind.strip().lower(),
            "total": str(sum_field(rows, "amount")),
            "by_method": [
                {"method": method, "total": str(total), "count": counts[method]}
                for method, total in totals.items()
            ],
        }

    def personal_expense_insights(self, *, context: RequestUserContext, month: str) -> dict[str, object]:
        ensure_roles(context, ADMIN_ROLES)
        month_range = month_date_range(month)
        rows = self.repo.list_personal_expenses(start_date=month_range.start_date, end_date=month_range.end_date)
        return {
            "month": month_range.month,
            **month_range.as_dict(),
            "total": str(sum_field(rows, "amount")),
            "merchants": [
                {"merchant": item.merchant, "amount": str(item.amount)}
                for item in merchant_breakdown(rows, limit=self.settings.merchant_chart_limit)
            ],
            "weekday_averages": weekday_averages(rows),
        }

    def vendor_bill_summary(self, *, context: RequestUserContext, month: str) -> dict[str, object]:
        ensure_roles(context, ADMIN_ROLES)
        month_range = month_date_range(month)
        bills = self.repo.list_vendor_bills(start_date=month_range.start_date, end_date=month_range.end_date)
        vendor_names = {str(vendor.id): vendor.name for vendor in self.repo.list_vendors()}
        pending = [bill for bill in bills if bill.status is BillStatus.PENDING]
        paid = [bill for bill in bills if bill.status is BillStatus.PAID]

        by_vendor = {
            vendor_names.get(vendor_id, vendor_id): total for vendor_id, total in group_totals(bills, "vendor_id").items()
        }
        return {
            "month": month_range.month,
            **month_range.as_dict(),
            "total": str(sum_field(bills, "amount")),
            "pending_total": str(sum_field(pending, "amount")),
            "paid_total": str(sum_field(paid, "amount")),
            "pending_count": len(pending),
            "paid_count": len(paid),
            "by_vendor": _money_map(by_vendor),
        }

    # ---------- Profit / loss ----------
    def _month_financials(self, month: str) -> MonthlyFinancials:
        month_range = month_date_range(month)
        start_date, end_date = month_range.start_date, month_range.end_date
        try:
            return build_monthly_financials(
                income=self.repo.list_company_income(start_date=start_date, end_date=end_date),
                timesheets=self.repo.list_timesheet_entries(start_date=start_date, end_date=end_date),
                expenses=self.repo.list_expenses(start_date=start_date, end_date=end_date),
                studio_expenses=self.repo.list_studio_expenses(start_date=start_date, end_date=end_date),
                personal_expenses=self.repo.list_personal_expenses(start_date=start_date, end_date=end_date),
                vendor_bills=self.repo.list_vendor_bills(start_date=start_date, end_date=end_date),
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def profit_loss(self, *, context: RequestUserContext, month: str) -> dict[str, object]:
        ensure_roles(context, ADMIN_ROLES)
        month_range = month_date_range(month)
        financials = self._month_financials(month_range.month)
        return {
            "month": month_range.month,
            **month_range.as_dict(),
            **financials.as_dict(),
        }

    def profit_loss_trends(
        self,
        *,
        context: RequestUserContext,
        anchor_month: str | None = None,
        months: int | None = None,
    ) -> dict[str, object]:
        ensure_roles(context, ADMIN_ROLES)
        anchor = anchor_month or current_month_token()
        parse_month_token(anchor)
        count = months if months is not None else self.settings.trend_months
        if not 1 <= count <= MAX_TREND_MONTHS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"months must be between 1 and {MAX_TREND_MONTHS}.",
            )

        points = compute_trend(trailing_month_tokens(anchor, count), self._month_financials)
        incomplete = [point.month for point in points if not point.complete]
        if incomplete:
            logger.warning("Profit/loss trend ending %s is missing data for %s.", anchor, ", ".join(incomplete))
        return {
            "anchor_month": anchor.strip(),
            "months": count,
            "incomplete_months": incomplete,
            "items": [
                {"month": point.month, "complete": point.complete, **point.financials.as_dict()}
                for point in points
            ],
        }

    # ---------- Exports ----------
    def export_employee_report(
        self,
        *,
        context: RequestUserContext,
        format_name: str,
        months: list[str] | None = None,
        employee_ids: list[UUID] | None = None,
    ) -> ExportFilePayload:
        ensure_roles(context, VIEW_REPORT_ROLES)
        normalized_format = self._normalize_format(format_name)
        tokens = sorted({month_date_range(month).month for month in months}) if months else None
        if not tokens:
            tokens = trailing_month_tokens(current_month_token(), self.settings.trend_months)
        ranges = [month_date_range(token) for token in tokens]

        if employee_ids:
            employees = [self._employee(employee_id) for employee_id in dict.fromkeys(employee_ids)]
        else:
            employees = self.repo.list_profiles(role=UserRole.STAFF)

        reports: list[EmployeeReport] = []
        for employee in employees:
            timesheets = []
            expenses = []
            for month_range in ranges:
                timesheets.extend(
                    self.repo.list_timesheet_entries(
                        start_date=month_range.start_date,
                        end_date=month_range.end_date,
                        user_id=employee.id,
                        ascending=True,
                    )
                )
                expenses.extend(
                    self.repo.list_expenses(
                        start_date=month_range.start_date,
                        end_date=month_range.end_date,
                        user_id=employee.id,
                        ascending=True,
                    )
                )
            totals = employee_totals([employee], timesheets, expenses)[0]
            reports.append(EmployeeReport(totals=totals, timesheet_entries=timesheets, expenses=expenses))

        logger.info(
            "Employee report exported by %s: %d employees, months %s, format %s.",
            context.email,
            len(reports),
            ",".join(tokens),
            normalized_format,
        )
        return build_payload(
            entity="employee-report",
            months=tokens,
            format_name=normalized_format,
            tables=employee_report_tables(reports),
            csv_content=employee_report_csv(reports) if normalized_format == "csv" else None,
        )

    def export_entity(
        self,
        *,
        context: RequestUserContext,
        entity: str,
        month: str,
        format_name: str,
    ) -> ExportFilePayload:
        ensure_roles(context, ADMIN_ROLES)
        normalized_entity = entity.strip().lower()
        if normalized_entity not in EXPORT_ENTITIES:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown export entity. Expected one of: {', '.join(EXPORT_ENTITIES)}.",
            )
        normalized_format = self._normalize_format(format_name)
        month_range = month_date_range(month)
        start_date, end_date = month_range.start_date, month_range.end_date

        csv_content = None
        if normalized_entity == "company-income":
            records = self.repo.list_company_income(start_date=start_date, end_date=end_date)
            tables = income_records_tables(records)
            if normalized_format == "csv":
                csv_content = income_records_csv(records, start_date=start_date, end_date=end_date)
        elif normalized_entity == "studio-expenses":
            tables = [studio_expense_table(self.repo.list_studio_expenses(start_date=start_date, end_date=end_date))]
        elif normalized_entity == "personal-expenses":
            tables = [personal_expense_table(self.repo.list_personal_expenses(start_date=start_date, end_date=end_date))]
        else:
            bills = self.repo.list_vendor_bills(start_date=start_date, end_date=end_date)
            vendor_names = {vendor.id: vendor.name for vendor in self.repo.list_vendors()}
            tables = [vendor_bill_table(bills, vendor_names)]

        return build_payload(
            entity=normalized_entity,
            months=[month_range.month],
            format_name=normalized_format,
            tables=tables,
            csv_content=csv_content,
        )
