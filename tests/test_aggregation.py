from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from opsbook.models.entities import TimesheetEntry, WorkType
from opsbook.services.aggregation import (
    MonthlyFinancials,
    build_monthly_financials,
    compute_trend,
    employee_totals,
    group_totals,
    merchant_breakdown,
    sum_field,
    timesheet_salary,
    weekday_averages,
)
from opsbook.services.date_ranges import trailing_month_tokens


def test_empty_inputs_produce_zero_totals_and_empty_groups() -> None:
    financials = build_monthly_financials()

    assert sum_field([], "amount") == Decimal("0.00")
    assert group_totals([], "brand") == {}
    assert financials == MonthlyFinancials.zero()
    assert financials.net_profit == Decimal("0.00")
    assert merchant_breakdown([]) == []


def test_net_profit_subtracts_every_cost_category() -> None:
    financials = build_monthly_financials(
        income=[{"amount": Decimal("1000")}],
        timesheets=[{"total_salary": Decimal("300")}],
        expenses=[{"amount": Decimal("50")}],
        studio_expenses=[{"amount": Decimal("100")}],
    )

    assert financials.total_costs == Decimal("450.00")
    assert financials.net_profit == Decimal("550.00")

    with_bills = build_monthly_financials(
        income=[{"amount": "1000"}],
        timesheets=[{"total_salary": "300"}],
        expenses=[{"amount": "50"}],
        studio_expenses=[{"amount": "100"}],
        personal_expenses=[{"amount": "25"}],
        vendor_bills=[{"amount": "200"}],
    )
    assert with_bills.net_profit == Decimal("350.00")
    assert with_bills.net_profit_after_personal == Decimal("325.00")
    assert with_bills.as_dict()["vendor_bills"] == "200.00"


def test_group_totals_skip_null_keys_and_treat_null_amounts_as_zero() -> None:
    rows = [
        {"brand": "Acme", "amount": Decimal("10.50")},
        {"brand": None, "amount": Decimal("99")},
        {"brand": "Zen", "amount": None},
        {"brand": "Acme", "amount": Decimal("4.50")},
    ]

    assert group_totals(rows, "brand") == {"Acme": Decimal("15.00"), "Zen": Decimal("0.00")}


def test_stored_salaries_match_recomputed_salaries() -> None:
    entries = [
        TimesheetEntry(
            work_type=WorkType.HOURLY,
            hours=Decimal("7.50"),
            hourly_rate=Decimal("20.00"),
            total_salary=Decimal("150.00"),
        ),
        TimesheetEntry(
            work_type=WorkType.JOB,
            job_count=3,
            job_rate=Decimal("45.00"),
            total_salary=Decimal("135.00"),
        ),
    ]

    assert sum_field(entries, "total_salary") == sum((timesheet_salary(entry) for entry in entries), Decimal("0"))
    assert [entry.computed_salary for entry in entries] == [Decimal("150.00"), Decimal("135.00")]


def test_employee_totals_cover_every_employee() -> None:
    alice, bob = uuid.uuid4(), uuid.uuid4()
    employees = [
        {"id": alice, "full_name": "Alice", "email": "alice@test.local"},
        {"id": bob, "full_name": None, "email": "bob@test.local"},
    ]
    timesheets = [
        {"user_id": alice, "hours": Decimal("8"), "total_salary": Decimal("160")},
        {"user_id": alice, "hours": None, "total_salary": Decimal("40")},
        {"user_id": uuid.uuid4(), "hours": Decimal("1"), "total_salary": Decimal("10")},
    ]
    expenses = [{"user_id": bob, "amount": Decimal("12.25")}]

    totals = employee_totals(employees, timesheets, expenses)

    assert [row.name for row in totals] == ["Alice", "bob@test.local"]
    assert totals[0].total_salary == Decimal("200.00")
    assert totals[0].total_hours == Decimal("8.00")
    assert totals[0].total_payment == Decimal("200.00")
    assert totals[1].total_salary == Decimal("0.00")
    assert totals[1].total_payment == Decimal("12.25")


def test_trend_isolates_failing_month() -> None:
    tokens = trailing_month_tokens("2024-12", 12)
    failing = tokens[6]

    def load_month(token: str) -> MonthlyFinancials:
        if token == failing:
            raise OperationalError("SELECT 1", {}, Exception("connection dropped"))
        return build_monthly_financials(income=[{"amount": "100"}], studio_expenses=[{"amount": "40"}])

    points = compute_trend(tokens, load_month)

    assert [point.month for point in points] == tokens
    assert points[6].financials == MonthlyFinancials.zero()
    assert points[6].complete is False
    for index, point in enumerate(points):
        if index != 6:
            assert point.complete is True
            assert point.financials.net_profit == Decimal("60.00")


def test_merchant_breakdown_folds_tail_into_others() -> None:
    rows = [{"merchant": f"M{index}", "amount": Decimal(index + 1)} for index in range(12)]

    breakdown = merchant_breakdown(rows, limit=10)

    assert len(breakdown) == 11
    assert breakdown[0].merchant == "M11"
    assert breakdown[-1].merchant == "Others"
    assert breakdown[-1].amount == Decimal("3.00")


def test_weekday_averages_divide_by_distinct_days() -> None:
    rows = [
        {"date": date(2024, 6, 2), "amount": Decimal("10")},
        {"date": date(2024, 6, 2), "amount": Decimal("20")},
        {"date": date(2024, 6, 9), "amount": Decimal("30")},
        {"date": "2024-06-03", "amount": Decimal("5")},
    ]

    averages = weekday_averages(rows)

    assert averages[0] == {"day": "Sunday", "short_day": "Sun", "average": "30.00"}
    assert averages[1]["average"] == "5.00"
    assert averages[6]["average"] == "0.00"


def test_trend_isolates_unusable_amounts() -> None:
    def load_month(token: str) -> MonthlyFinancials:
        if token == "2024-02":
            return build_monthly_financials(income=[{"amount": "not-a-number"}])
        return build_monthly_financials(income=[{"amount": "10"}])

    points = compute_trend(["2024-01", "2024-02", "2024-03"], load_month)

    assert [point.complete for point in points] == [True, False, True]
    assert points[1].financials == MonthlyFinancials.zero()
    assert points[2].financials.company_income == Decimal("10.00")
