"""CSV and XLSX rendering for ledger exports."""

from __future__ import annotations

import csv
import enum
import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from io import BytesIO
from typing import Any

from openpyxl import Workbook

from opsbook.services.aggregation import EmployeeTotals, group_totals, sum_field

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FORMATS = {"csv", "xlsx"}

Q2 = Decimal("0.01")
# Excel rejects sheet titles longer than 31 characters.
SHEET_TITLE_LIMIT = 31


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


@dataclass(slots=True)
class ExportTable:
    title: str
    headers: list[str]
    rows: list[list[Any]] = field(default_factory=list)


def format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return str(value.quantize(Q2))
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


def _xlsx_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return float(value.quantize(Q2))
    if isinstance(value, enum.Enum):
        return value.value
    return value


def write_csv(rows: Iterable[Sequence[Any]]) -> bytes:
    """Serialize rows with standard quoting; ``[]`` rows become blank separator lines."""

    sio = io.StringIO()
    writer = csv.writer(sio, lineterminator="\n")
    for row in rows:
        writer.writerow([format_csv_value(value) for value in row])
    return sio.getvalue().encode("utf-8")


def render_csv(tables: Sequence[ExportTable]) -> bytes:
    """One header row per table, tables separated by a blank row."""

    lines: list[Sequence[Any]] = []
    for index, table in enumerate(tables):
        if index:
            lines.append([])
        lines.append(table.headers)
        lines.extend(table.rows)
    return write_csv(lines)


def render_xlsx(tables: Sequence[ExportTable]) -> bytes:
    """One worksheet per table, header row first."""

    workbook = Workbook()
    workbook.remove(workbook.active)
    for table in tables:
        sheet = workbook.create_sheet(title=table.title[:SHEET_TITLE_LIMIT])
        sheet.append(table.headers)
        for row in table.rows:
            sheet.append([_xlsx_value(value) for value in row])

    if not workbook.worksheets:
        workbook.create_sheet(title="report")

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def export_filename(entity: str, months: Sequence[str], format_name: str) -> str:
    """``<entity>-<YYYY-MM>.<ext>``; a span of sorted months is named ``<first>_<last>``."""

    label = months[0] if len(months) == 1 else f"{months[0]}_{months[-1]}"
    return f"{entity}-{label}.{format_name}"


def build_payload(
    *,
    entity: str,
    months: Sequence[str],
    format_name: str,
    tables: Sequence[ExportTable],
    csv_content: bytes | None = None,
) -> ExportFilePayload:
    filename = export_filename(entity, months, format_name)
    if format_name == "csv":
        return ExportFilePayload(
            media_type=CSV_MEDIA_TYPE,
            filename=filename,
            content=csv_content if csv_content is not None else render_csv(tables),
        )
    return ExportFilePayload(media_type=XLSX_MEDIA_TYPE, filename=filename, content=render_xlsx(tables))


# ---------- Employee report ----------
@dataclass(slots=True)
class EmployeeReport:
    totals: EmployeeTotals
    timesheet_entries: list[Any]
    expenses: list[Any]


EMPLOYEE_CSV_HEADERS = ["Employee", "Entry Type", "Date", "Description", "Hours", "Amount"]


def employee_report_csv(reports: Sequence[EmployeeReport]) -> bytes:
    lines: list[Sequence[Any]] = [EMPLOYEE_CSV_HEADERS]
    for report in reports:
        name = report.totals.name
        for entry in report.timesheet_entries:
            lines.append([name, "Timesheet", entry.date, entry.job_description, entry.hours, entry.total_salary])
        for expense in report.expenses:
            lines.append([name, "Expense", expense.date, expense.description, None, expense.amount])
        lines.append(
            [
                name,
                "Summary",
                None,
                f"Total Salary: {format_csv_value(report.totals.total_salary)}",
                f"Total Expenses: {format_csv_value(report.totals.total_expenses)}",
                f"Total Payment: {format_csv_value(report.totals.total_payment)}",
            ]
        )
        lines.append([])
    return write_csv(lines)


def employee_report_tables(reports: Sequence[EmployeeReport]) -> list[ExportTable]:
    summary = ExportTable(
        title="Summary",
        headers=["Employee", "Total Hours", "Total Salary", "Total Expenses", "Total Payment"],
        rows=[
            [
                report.totals.name,
                report.totals.total_hours,
                report.totals.total_salary,
                report.totals.total_expenses,
                report.totals.total_payment,
            ]
            for report in reports
        ],
    )
    timesheets = ExportTable(
        title="Timesheet Entries",
        headers=["Employee", "Date", "Type", "Description", "Hours", "Amount"],
        rows=[
            [report.totals.name, entry.date, entry.work_type, entry.job_description, entry.hours, entry.total_salary]
            for report in reports
            for entry in report.timesheet_entries
        ],
    )
    expenses = ExportTable(
        title="Expenses",
        headers=["Employee", "Date", "Description", "Amount"],
        rows=[
            [report.totals.name, expense.date, expense.description, expense.amount]
            for report in reports
            for expense in report.expenses
        ],
    )
    return [summary, timesheets, expenses]


# ---------- Company income ----------
INCOME_HEADERS = [
    "Date",
    "Client",
    "Brand",
    "Job Type",
    "Payment Type",
    "Payment Method",
    "Completion Date",
    "Amount",
]


def _income_row(record: Any) -> list[Any]:
    job_type = record.job_type.value.capitalize() if record.job_type else "-"
    return [
        record.date,
        record.client or "",
        record.brand,
        job_type,
        record.payment_type,
        record.payment_method,
        record.job_completion_date or "-",
        record.amount,
    ]


def income_records_csv(records: Sequence[Any], *, start_date: date, end_date: date) -> bytes:
    padding = [None] * (len(INCOME_HEADERS) - 2)
    lines: list[Sequence[Any]] = [INCOME_HEADERS]
    lines.extend(_income_row(record) for record in records)
    lines.append([])
    lines.append(["Brand Totals:"])
    for brand, total in group_totals(records, "brand").items():
        lines.append([brand, *padding, total])
    lines.append([])
    lines.append(
        [
            f"Total Income ({start_date.isoformat()} - {end_date.isoformat()})",
            *padding,
            sum_field(records, "amount"),
        ]
    )
    return write_csv(lines)


def income_records_tables(records: Sequence[Any]) -> list[ExportTable]:
    return [
        ExportTable(title="Income", headers=INCOME_HEADERS, rows=[_income_row(record) for record in records]),
        ExportTable(
            title="Brand Totals",
            headers=["Brand", "Amount"],
            rows=[[brand, total] for brand, total in group_totals(records, "brand").items()],
        ),
    ]


# ---------- Studio / personal expenses and vendor bills ----------
def studio_expense_table(rows: Sequence[Any], *, title: str = "Studio Expenses") -> ExportTable:
    return ExportTable(
        title=title,
        headers=["Date", "Merchant", "Details", "Method", "Amount"],
        rows=[[row.date, row.merchant, row.details, row.method, row.amount] for row in rows],
    )


def personal_expense_table(rows: Sequence[Any]) -> ExportTable:
    return ExportTable(
        title="Personal Expenses",
        headers=["Date", "Merchant", "Details", "Method", "Paid By", "Amount"],
        rows=[[row.date, row.merchant, row.details, row.method, row.paid_by, row.amount] for row in rows],
    )


def vendor_bill_table(rows: Sequence[Any], vendor_names: dict[Any, str]) -> ExportTable:
    return ExportTable(
        title="Vendor Bills",
        headers=["Due Date", "Vendor", "Description", "Method", "Status", "Paid At", "Amount"],
        rows=[
            [
                row.due_date,
                vendor_names.get(row.vendor_id, str(row.vendor_id)),
                row.description,
                row.method,
                row.status,
                row.paid_at.date() if row.paid_at else None,
                row.amount,
            ]
            for row in rows
        ],
    )
