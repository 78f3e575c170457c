"""Reductions from flat ledger rows to dashboard and profit/loss figures.

Rows may be ORM entities or plain mappings; missing or null values count as
zero. Every function here is free of I/O so it can be fed fixture rows.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
OTHERS_LABEL = "Others"


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def _value(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def sum_field(rows: Iterable[Any], name: str) -> Decimal:
    """Sum one numeric field across rows, treating null as zero."""

    total = ZERO
    for row in rows:
        total += _as_decimal(_value(row, name))
    return _q2(total)


def group_totals(rows: Iterable[Any], key: str, name: str = "amount") -> dict[str, Decimal]:
    """Running totals per distinct key value, in first-seen order.

    Rows with a null key are skipped.
    """

    totals: dict[str, Decimal] = {}
    for row in rows:
        group = _value(row, key)
        if group is None:
            continue
        group_key = group.value if isinstance(group, enum.Enum) else str(group)
        totals[group_key] = totals.get(group_key, ZERO) + _as_decimal(_value(row, name))
    return {group_key: _q2(total) for group_key, total in totals.items()}


def method_totals(rows: Iterable[Any]) -> dict[str, Decimal]:
    return group_totals(rows, "method")


def timesheet_salary(entry: Any) -> Decimal:
    """Salary implied by an entry's work inputs."""

    work_type = _value(entry, "work_type")
    work_type = work_type.value if isinstance(work_type, enum.Enum) else work_type
    if work_type == "hourly":
        amount = _as_decimal(_value(entry, "hours")) * _as_decimal(_value(entry, "hourly_rate"))
    else:
        amount = _as_decimal(_value(entry, "job_count")) * _as_decimal(_value(entry, "job_rate"))
    return _q2(amount)


def total_hours(entries: Iterable[Any]) -> Decimal:
    return sum_field(entries, "hours")


@dataclass(slots=True)
class EmployeeTotals:
    employee_id: Any
    name: str
    email: str
    total_hours: Decimal = ZERO
    total_salary: Decimal = ZERO
    total_expenses: Decimal = ZERO

    @property
    def total_payment(self) -> Decimal:
        return _q2(self.total_salary + self.total_expenses)


def employee_totals(
    employees: Sequence[Any],
    timesheets: Iterable[Any],
    expenses: Iterable[Any],
) -> list[EmployeeTotals]:
    """Per-employee salary, hours and expense totals, one row per employee."""

    by_id: dict[Any, EmployeeTotals] = {}
    for employee in employees:
        email = _value(employee, "email") or ""
        by_id[_value(employee, "id")] = EmployeeTotals(
            employee_id=_value(employee, "id"),
            name=_value(employee, "full_name") or email,
            email=email,
        )

    for entry in timesheets:
        bucket = by_id.get(_value(entry, "user_id"))
        if bucket is None:
            continue
        bucket.total_hours = _q2(bucket.total_hours + _as_decimal(_value(entry, "hours")))
        bucket.total_salary = _q2(bucket.total_salary + _as_decimal(_value(entry, "total_salary")))

    for expense in expenses:
        bucket = by_id.get(_value(expense, "user_id"))
        if bucket is None:
            continue
        bucket.total_expenses = _q2(bucket.total_expenses + _as_decimal(_value(expense, "amount")))

    return list(by_id.values())


@dataclass(frozen=True, slots=True)
class MonthlyFinancials:
    company_income: Decimal = ZERO
    employee_salaries: Decimal = ZERO
    employee_expenses: Decimal = ZERO
    studio_expenses: Decimal = ZERO
    personal_expenses: Decimal = ZERO
    vendor_bills: Decimal = ZERO

    @classmethod
    def zero(cls) -> MonthlyFinancials:
        return cls()

    @property
    def total_costs(self) -> Decimal:
        return _q2(self.employee_salaries + self.employee_expenses + self.studio_expenses + self.vendor_bills)

    @property
    def net_profit(self) -> Decimal:
        return _q2(self.company_income - self.total_costs)

    @property
    def net_profit_after_personal(self) -> Decimal:
        return _q2(self.net_profit - self.personal_expenses)

    def as_dict(self) -> dict[str, str]:
        return {
            "company_income": str(self.company_income),
            "employee_salaries": str(self.employee_salaries),
            "employee_expenses": str(self.employee_expenses),
            "studio_expenses": str(self.studio_expenses),
            "personal_expenses": str(self.personal_expenses),
            "vendor_bills": str(self.vendor_bills),
            "total_costs": str(self.total_costs),
            "net_profit": str(self.net_profit),
            "net_profit_after_personal": str(self.net_profit_after_personal),
        }


def build_monthly_financials(
    *,
    income: Iterable[Any] = (),
    timesheets: Iterable[Any] = (),
    expenses: Iterable[Any] = (),
    studio_expenses: Iterable[Any] = (),
    personal_expenses: Iterable[Any] = (),
    vendor_bills: Iterable[Any] = (),
) -> MonthlyFinancials:
    return MonthlyFinancials(
        company_income=sum_field(income, "amount"),
        employee_salaries=sum_field(timesheets, "total_salary"),
        employee_expenses=sum_field(expenses, "amount"),
        studio_expenses=sum_field(studio_expenses, "amount"),
        personal_expenses=sum_field(personal_expenses, "amount"),
        vendor_bills=sum_field(vendor_bills, "amount"),
    )


@dataclass(frozen=True, slots=True)
class TrendPoint:
    month: str
    financials: MonthlyFinancials
    complete: bool = True


def compute_trend(
    month_tokens: Iterable[str],
    load_month: Callable[[str], MonthlyFinancials],
) -> list[TrendPoint]:
    """One point per month; a month whose data cannot be loaded reads as zero."""

    points: list[TrendPoint] = []
    for token in month_tokens:
        try:
            financials = load_month(token)
        except (SQLAlchemyError, InvalidOperation):
            logger.warning("Trend data for %s could not be loaded; using zero totals.", token, exc_info=True)
            points.append(TrendPoint(month=token, financials=MonthlyFinancials.zero(), complete=False))
            continue
        points.append(TrendPoint(month=token, financials=financials))
    return points


@dataclass(frozen=True, slots=True)
class MerchantTotal:
    merchant: str
    amount: Decimal


def merchant_breakdown(rows: Iterable[Any], limit: int = 10) -> list[MerchantTotal]:
    """Merchants by spend, largest first; the tail beyond ``limit`` folds into Others."""

    totals = group_totals(rows, "merchant")
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    head = [MerchantTotal(merchant=name, amount=amount) for name, amount in ranked[:limit]]
    tail = ranked[limit:]
    if tail:
        head.append(MerchantTotal(merchant=OTHERS_LABEL, amount=_q2(sum((amount for _, amount in tail), ZERO))))
    return head


@dataclass(slots=True)
class _WeekdayBucket:
    total: Decimal = ZERO
    dates: set[date] = field(default_factory=set)


def weekday_averages(rows: Iterable[Any]) -> list[dict[str, str]]:
    """Average spend per distinct spending day for each weekday, Sunday first."""

    buckets: dict[int, _WeekdayBucket] = {}
    for row in rows:
        row_date = _value(row, "date")
        if row_date is None:
            continue
        if isinstance(row_date, str):
            row_date = date.fromisoformat(row_date)
        # date.weekday() is Monday=0; shift to Sunday=0.
        index = (row_date.weekday() + 1) % 7
        bucket = buckets.setdefault(index, _WeekdayBucket())
        bucket.total += _as_decimal(_value(row, "amount"))
        bucket.dates.add(row_date)

    output = []
    for index, name in enumerate(WEEKDAY_NAMES):
        bucket = buckets.get(index)
        average = _q2(bucket.total / len(bucket.dates)) if bucket else ZERO
        output.append({"day": name, "short_day": name[:3], "average": str(average)})
    return output
