from __future__ import annotations

import csv
import io
from datetime import date
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook
from sqlalchemy.exc import OperationalError

from opsbook.repositories.ledger_repository import LedgerRepository

API = "/api/v1"
ALICE = {"X-AUTH-EMAIL": "alice@test.local", "X-AUTH-NAME": "Alice"}
BOB = {"X-AUTH-EMAIL": "bob@test.local", "X-AUTH-NAME": "Bob"}


def _seed_march(client: TestClient) -> None:
    """Income 1000, salaries 300, employee expenses 50, studio 100, personal 25, one vendor bill of 80."""

    responses = [
        client.post(
            f"{API}/company-income",
            json={"brand": "Acme", "amount": "1000", "payment_method": "card", "date": "2024-03-10", "job_type": "shooting"},
        ),
        client.post(
            f"{API}/timesheets",
            json={
                "date": "2024-03-04",
                "work_type": "hourly",
                "job_description": "Studio shoot",
                "hours": "10",
                "hourly_rate": "30",
            },
            headers=ALICE,
        ),
        client.post(
            f"{API}/expenses",
            json={"date": "2024-03-05", "description": "Props, tape", "amount": "50"},
            headers=ALICE,
        ),
        client.post(
            f"{API}/studio-expenses",
            json={"merchant": "Camera Shop", "amount": "100", "method": "card", "date": "2024-03-12"},
        ),
        client.post(
            f"{API}/personal-expenses",
            json={"merchant": "Cafe", "amount": "25", "method": "cash", "date": "2024-03-03", "paid_by": "Owner"},
        ),
    ]
    vendor = client.post(f"{API}/vendors", json={"name": "Print Co"})
    responses.append(vendor)
    responses.append(
        client.post(
            f"{API}/vendor-bills",
            json={"vendor_id": vendor.json()["id"], "amount": "80", "due_date": "2024-03-20"},
        )
    )
    assert [response.status_code for response in responses] == [201] * len(responses)


def _seed_core(client: TestClient) -> None:
    """Only the figures behind the 550 net profit example."""

    client.post(
        f"{API}/company-income",
        json={"brand": "Acme", "amount": "1000", "payment_method": "card", "date": "2024-03-10"},
    )
    client.post(
        f"{API}/timesheets",
        json={"date": "2024-03-04", "work_type": "hourly", "job_description": "Shoot", "hours": "10", "hourly_rate": "30"},
        headers=ALICE,
    )
    client.post(f"{API}/expenses", json={"date": "2024-03-05", "description": "Props", "amount": "50"}, headers=ALICE)
    client.post(
        f"{API}/studio-expenses",
        json={"merchant": "Camera Shop", "amount": "100", "method": "card", "date": "2024-03-12"},
    )


def _read_csv(content: bytes) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content.decode("utf-8"))))


def test_profit_loss_for_month(client: TestClient) -> None:
    _seed_core(client)

    response = client.get(f"{API}/reports/profit-loss", params={"month": "2024-03"})

    assert response.status_code == 200
    body = response.json()
    assert body["month"] == "2024-03"
    assert body["start_date"] == "2024-03-01"
    assert body["end_date"] == "2024-03-31"
    assert body["company_income"] == "1000.00"
    assert body["total_costs"] == "450.00"
    assert body["net_profit"] == "550.00"


def test_profit_loss_includes_vendor_bills_and_reports_personal_spend(client: TestClient) -> None:
    _seed_march(client)

    body = client.get(f"{API}/reports/profit-loss", params={"month": "2024-03"}).json()

    assert body["vendor_bills"] == "80.00"
    assert body["net_profit"] == "470.00"
    assert body["personal_expenses"] == "25.00"
    assert body["net_profit_after_personal"] == "445.00"


def test_profit_loss_rejects_staff_and_malformed_months(client: TestClient) -> None:
    assert client.get(f"{API}/reports/profit-loss", params={"month": "2024-03"}, headers=ALICE).status_code == 403
    assert client.get(f"{API}/reports/profit-loss", params={"month": "2024-13"}).status_code == 422
    assert client.get(f"{API}/reports/profit-loss", params={"month": "March"}).status_code == 422
    assert client.get(f"{API}/reports/profit-loss/trends", params={"months": 0}).status_code == 422
    assert client.get(f"{API}/reports/profit-loss/trends", params={"months": 61}).status_code == 422


def test_profit_loss_backend_failure_is_reported(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing(self, *, start_date: date, end_date: date):
        raise OperationalError("SELECT studio_expenses", {}, Exception("connection dropped"))

    client.get(f"{API}/me")
    monkeypatch.setattr(LedgerRepository, "list_studio_expenses", failing)

    response = client.get(f"{API}/reports/profit-loss", params={"month": "2024-03"})

    assert response.status_code == 503
    assert response.json() == {"detail": "Backend request failed."}


def test_trends_keep_twelve_points_when_one_month_fails(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    _seed_core(client)
    client.post(
        f"{API}/company-income",
        json={"brand": "Acme", "amount": "200", "payment_method": "card", "date": "2024-04-02"},
    )
    original = LedgerRepository.list_studio_expenses

    def flaky(self, *, start_date: date, end_date: date):
        if start_date == date(2024, 3, 1):
            raise OperationalError("SELECT studio_expenses", {}, Exception("connection dropped"))
        return original(self, start_date=start_date, end_date=end_date)

    monkeypatch.setattr(LedgerRepository, "list_studio_expenses", flaky)

    response = client.get(f"{API}/reports/profit-loss/trends", params={"month": "2024-06"})

    assert response.status_code == 200
    body = response.json()
    assert body["anchor_month"] == "2024-06"
    assert body["months"] == 12
    assert body["incomplete_months"] == ["2024-03"]
    items = {item["month"]: item for item in body["items"]}
    assert list(items) == [f"2023-{month:02d}" for month in range(7, 13)] + [f"2024-{month:02d}" for month in range(1, 7)]
    assert items["2024-03"]["complete"] is False
    assert items["2024-03"]["net_profit"] == "0.00"
    assert items["2024-04"]["complete"] is True
    assert items["2024-04"]["company_income"] == "200.00"


def test_trends_without_failures(client: TestClient) -> None:
    _seed_core(client)

    body = client.get(f"{API}/reports/profit-loss/trends", params={"month": "2024-04", "months": 3}).json()

    assert [item["month"] for item in body["items"]] == ["2024-02", "2024-03", "2024-04"]
    assert body["incomplete_months"] == []
    assert [item["net_profit"] for item in body["items"]] == ["0.00", "550.00", "0.00"]


def test_employee_dashboards(client: TestClient) -> None:
    _seed_march(client)

    mine = client.get(f"{API}/dashboards/me", params={"month": "2024-03"}, headers=ALICE).json()
    assert mine["total_hours"] == "10.00"
    assert mine["total_payment"] == "350.00"
    assert mine["timesheet_entry_count"] == 1

    stats = client.get(f"{API}/dashboards/employees", params={"month": "2024-03"})
    assert stats.status_code == 200
    assert [item["name"] for item in stats.json()["items"]] == ["Alice"]
    alice = stats.json()["items"][0]
    assert (alice["total_salary"], alice["total_expenses"], alice["total_payment"]) == ("300.00", "50.00", "350.00")

    entries = client.get(f"{API}/dashboards/employees/{alice['employee_id']}/entries", params={"month": "2024-03"})
    assert entries.json()["employee"]["email"] == "alice@test.local"
    assert len(entries.json()["timesheet_entries"]) == 1
    assert len(entries.json()["expenses"]) == 1

    client.get(f"{API}/me", headers=BOB)
    assert client.get(f"{API}/dashboards/employees", params={"month": "2024-03"}, headers=BOB).status_code == 403


def test_company_finance_dashboards(client: TestClient) -> None:
    _seed_march(client)

    income = client.get(f"{API}/dashboards/income", params={"month": "2024-03"}).json()
    assert income["total_income"] == "1000.00"
    assert income["by_brand"] == {"Acme": "1000.00"}
    assert income["by_payment_type"] == {"full": "1000.00"}
    assert income["by_job_type"] == {"shooting": "1000.00"}

    studio = client.get(f"{API}/dashboards/expenses/studio", params={"month": "2024-03"}).json()
    assert studio["by_method"] == [{"method": "card", "total": "100.00", "count": 1}]
    assert client.get(f"{API}/dashboards/expenses/travel", params={"month": "2024-03"}).status_code == 404

    insights = client.get(f"{API}/dashboards/personal-insights", params={"month": "2024-03"}).json()
    assert insights["merchants"] == [{"merchant": "Cafe", "amount": "25.00"}]
    assert insights["weekday_averages"][0] == {"day": "Sunday", "short_day": "Sun", "average": "25.00"}

    bills = client.get(f"{API}/dashboards/vendor-bills", params={"month": "2024-03"}).json()
    assert bills["by_vendor"] == {"Print Co": "80.00"}
    assert (bills["pending_count"], bills["paid_count"]) == (1, 0)
    assert bills["pending_total"] == "80.00"


def test_company_income_csv_export(client: TestClient) -> None:
    _seed_march(client)

    response = client.get(f"{API}/exports/company-income", params={"month": "2024-03", "format": "csv"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="company-income-2024-03.csv"'
    rows = _read_csv(response.content)
    assert rows[0][0] == "Date"
    assert rows[1][2] == "Acme"
    assert rows[-1][-1] == "1000.00"


def test_register_xlsx_exports(client: TestClient) -> None:
    _seed_march(client)

    studio = client.get(f"{API}/exports/studio-expenses", params={"month": "2024-03", "format": "xlsx"})
    bills = client.get(f"{API}/exports/vendor-bills", params={"month": "2024-03", "format": "XLSX"})

    assert studio.status_code == 200
    assert studio.headers["content-disposition"] == 'attachment; filename="studio-expenses-2024-03.xlsx"'
    workbook = load_workbook(BytesIO(studio.content))
    assert workbook.sheetnames == ["Studio Expenses"]
    assert workbook["Studio Expenses"]["B2"].value == "Camera Shop"

    bill_sheet = load_workbook(BytesIO(bills.content))["Vendor Bills"]
    assert bill_sheet["B2"].value == "Print Co"
    assert bill_sheet["E2"].value == "pending"


def test_employee_report_export(client: TestClient) -> None:
    _seed_march(client)

    response = client.get(
        f"{API}/exports/employee-report",
        params=[("month", "2024-03"), ("month", "2024-02"), ("month", "2024-03")],
    )

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="employee-report-2024-02_2024-03.csv"'
    rows = _read_csv(response.content)
    assert rows[0] == ["Employee", "Entry Type", "Date", "Description", "Hours", "Amount"]
    assert rows[1] == ["Alice", "Timesheet", "2024-03-04", "Studio shoot", "10.00", "300.00"]
    assert rows[2] == ["Alice", "Expense", "2024-03-05", "Props, tape", "", "50.00"]
    assert rows[3][1] == "Summary"
    assert rows[3][5] == "Total Payment: 350.00"

    workbook_response = client.get(
        f"{API}/exports/employee-report",
        params={"month": "2024-03", "format": "xlsx"},
    )
    workbook = load_workbook(BytesIO(workbook_response.content))
    assert workbook.sheetnames == ["Summary", "Timesheet Entries", "Expenses"]


def test_export_rejections(client: TestClient) -> None:
    assert client.get(f"{API}/exports/payroll", params={"month": "2024-03"}).status_code == 404
    assert client.get(f"{API}/exports/company-income", params={"month": "2024-03", "format": "pdf"}).status_code == 422
    assert client.get(f"{API}/exports/company-income", params={"month": "2024-03"}, headers=ALICE).status_code == 403
    assert client.get(f"{API}/exports/employee-report", params={"month": "2024-03"}, headers=ALICE).status_code == 403
