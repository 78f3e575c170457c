from __future__ import annotations

import dataclasses
import datetime as dt
from decimal import Decimal
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from opsbook.core.auth import ensure_profile
from opsbook.models.entities import TimesheetEntry, UserRole, WorkType
from opsbook.services.ledger_service import TimesheetCreateData

API = "/api/v1"
ALICE = {"X-AUTH-EMAIL": "alice@test.local", "X-AUTH-NAME": "Alice"}
BOB = {"X-AUTH-EMAIL": "bob@test.local", "X-AUTH-NAME": "Bob"}


def _hourly_entry(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "date": "2024-03-04",
        "work_type": "hourly",
        "job_description": "Studio shoot",
        "hours": "7.5",
        "hourly_rate": "20",
    }
    payload.update(overrides)
    return payload


def _profile_id(client: TestClient, headers: dict[str, str] | None = None) -> str:
    response = client.get(f"{API}/me", headers=headers or {})
    assert response.status_code == 200
    return response.json()["id"]


def test_timesheet_salary_is_computed_from_work_inputs(client: TestClient) -> None:
    hourly = client.post(f"{API}/timesheets", json=_hourly_entry(), headers=ALICE)
    job = client.post(
        f"{API}/timesheets",
        json={
            "date": "2024-03-05",
            "work_type": "job",
            "job_description": "Retouching",
            "job_count": 3,
            "job_rate": "45",
            "total_salary": "135.00",
        },
        headers=ALICE,
    )

    assert hourly.status_code == 201
    assert hourly.json()["total_salary"] == "150.00"
    assert hourly.json()["job_count"] is None
    assert job.status_code == 201
    assert job.json()["total_salary"] == "135.00"
    assert job.json()["hours"] is None

    listed = client.get(f"{API}/timesheets", params={"month": "2024-03"}, headers=ALICE)
    assert listed.status_code == 200
    assert listed.json()["month"] == "2024-03"
    assert [item["date"] for item in listed.json()["items"]] == ["2024-03-05", "2024-03-04"]


def test_timesheet_rejects_mismatched_or_incomplete_inputs(client: TestClient) -> None:
    mismatch = client.post(f"{API}/timesheets", json=_hourly_entry(total_salary="100"), headers=ALICE)
    missing_rate = client.post(f"{API}/timesheets", json=_hourly_entry(hourly_rate=None), headers=ALICE)
    missing_jobs = client.post(
        f"{API}/timesheets",
        json={"date": "2024-03-05", "work_type": "job", "job_description": "Edit", "job_rate": "10"},
        headers=ALICE,
    )

    assert mismatch.status_code == 422
    assert "does not match" in mismatch.json()["detail"]
    assert missing_rate.status_code == 422
    assert missing_rate.json()["detail"] == "hourly_rate is required."
    assert missing_jobs.status_code == 422


def test_stored_salaries_agree_with_inputs_after_updates(client: TestClient, db_session: Session) -> None:
    created = client.post(f"{API}/timesheets", json=_hourly_entry(), headers=ALICE).json()
    client.post(f"{API}/timesheets", json=_hourly_entry(hours="2", hourly_rate="33.33"), headers=ALICE)

    switched = client.patch(
        f"{API}/timesheets/{created['id']}",
        json={"work_type": "job", "job_count": 2, "job_rate": "80"},
        headers=ALICE,
    )
    assert switched.status_code == 200
    assert switched.json()["total_salary"] == "160.00"
    assert switched.json()["hours"] is None

    entries = db_session.scalars(select(TimesheetEntry)).all()
    assert len(entries) == 2
    assert sum((entry.total_salary for entry in entries), Decimal("0")) == sum(
        (entry.computed_salary for entry in entries), Decimal("0")
    )


def test_only_owner_or_admin_can_change_timesheet_entries(client: TestClient) -> None:
    entry = client.post(f"{API}/timesheets", json=_hourly_entry(), headers=ALICE).json()

    assert client.patch(f"{API}/timesheets/{entry['id']}", json={"hours": "1"}, headers=BOB).status_code == 403
    assert client.delete(f"{API}/timesheets/{entry['id']}", headers=BOB).status_code == 403
    assert client.get(f"{API}/timesheets/{entry['id']}", headers=BOB).status_code == 403

    alice_id = entry["user_id"]
    assert client.get(f"{API}/timesheets", params={"user_id": alice_id}, headers=BOB).status_code == 403

    admin_update = client.patch(f"{API}/timesheets/{entry['id']}", json={"hours": "1"})
    assert admin_update.status_code == 200
    assert admin_update.json()["total_salary"] == "20.00"
    assert client.delete(f"{API}/timesheets/{entry['id']}").status_code == 204
    assert client.get(f"{API}/timesheets/{entry['id']}").status_code == 404


def test_manager_can_read_but_not_write_staff_entries(client: TestClient, db_session: Session) -> None:
    ensure_profile(db_session, email="mia@test.local", full_name="Mia", role=UserRole.MANAGER)
    manager = {"X-AUTH-EMAIL": "mia@test.local", "X-AUTH-NAME": "Mia"}
    entry = client.post(f"{API}/timesheets", json=_hourly_entry(), headers=ALICE).json()

    listed = client.get(
        f"{API}/timesheets",
        params={"month": "2024-03", "user_id": entry["user_id"]},
        headers=manager,
    )

    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()["items"]] == [entry["id"]]
    assert client.delete(f"{API}/timesheets/{entry['id']}", headers=manager).status_code == 403


def test_admin_can_record_entries_for_another_profile(client: TestClient) -> None:
    alice_id = _profile_id(client, ALICE)

    payload = {"date": "2024-03-02", "description": "Cab", "amount": "9.90", "user_id": alice_id}

    on_behalf = client.post(f"{API}/expenses", json=payload)
    forged = client.post(f"{API}/expenses", json=payload, headers=BOB)

    assert on_behalf.status_code == 201
    assert on_behalf.json()["user_id"] == alice_id
    assert forged.status_code == 403


def test_expense_receipt_upload_replace_and_cleanup(client: TestClient, isolated_settings: Path) -> None:
    expense = client.post(
        f"{API}/expenses",
        json={"date": "2024-03-02", "description": "Lens cleaning", "amount": "42.10"},
        headers=ALICE,
    ).json()
    receipt_url = f"{API}/expenses/{expense['id']}/receipt"

    assert client.get(receipt_url, headers=ALICE).status_code == 404
    assert client.put(receipt_url, params={"filename": "empty.pdf"}, content=b"", headers=ALICE).status_code == 422

    first = client.put(receipt_url, params={"filename": "receipt.PDF"}, content=b"%PDF first", headers=ALICE)
    assert first.status_code == 200
    first_key = first.json()["receipt_path"]
    assert first_key.endswith(".pdf")
    assert first.json()["url"] == f"http://files.test.local/receipts/{first_key}"

    downloaded = client.get(receipt_url, headers=ALICE)
    assert downloaded.status_code == 200
    assert downloaded.content == b"%PDF first"
    assert downloaded.headers["content-type"] == "application/pdf"
    assert client.get(receipt_url, headers=BOB).status_code == 403

    second = client.put(receipt_url, params={"filename": "receipt.png"}, content=b"png bytes", headers=ALICE)
    second_key = second.json()["receipt_path"]
    assert not (isolated_settings / "receipts" / first_key).exists()
    assert (isolated_settings / "receipts" / second_key).read_bytes() == b"png bytes"

    assert client.delete(f"{API}/expenses/{expense['id']}", headers=ALICE).status_code == 204
    assert not (isolated_settings / "receipts" / second_key).exists()


def test_company_income_is_admin_only(client: TestClient) -> None:
    payload = {"brand": "Acme", "amount": "1000", "payment_method": "card", "date": "2024-03-10", "job_type": "shooting"}

    assert client.post(f"{API}/company-income", json=payload, headers=ALICE).status_code == 403
    assert client.get(f"{API}/company-income", params={"month": "2024-03"}, headers=ALICE).status_code == 403

    created = client.post(f"{API}/company-income", json=payload)
    assert created.status_code == 201
    assert created.json()["payment_type"] == "full"
    assert created.json()["job_status"] == "completed"

    slip = client.put(
        f"{API}/company-income/{created.json()['id']}/payment-slip",
        params={"filename": "slip.jpg"},
        content=b"jpeg",
    )
    assert slip.status_code == 200
    assert slip.json()["url"].startswith("http://files.test.local/company-income/")

    listed = client.get(f"{API}/company-income", params={"month": "2024-03", "brand": "Acme"})
    assert [item["amount"] for item in listed.json()["items"]] == ["1000.00"]
    assert listed.json()["items"][0]["payment_slip_path"] == slip.json()["payment_slip_path"]


def test_studio_and_personal_expense_registers(client: TestClient) -> None:
    base = {"merchant": "Camera Shop", "amount": "250", "method": "card", "date": "2024-03-12"}

    studio = client.post(f"{API}/studio-expenses", json={**base, "paid_by": "ignored"})
    personal = client.post(f"{API}/personal-expenses", json={**base, "paid_by": "Owner"})
    unknown = client.post(f"{API}/travel-expenses", json=base)

    assert studio.status_code == 201
    assert "paid_by" not in studio.json()
    assert personal.status_code == 201
    assert personal.json()["paid_by"] == "Owner"
    assert unknown.status_code == 404
    assert client.post(f"{API}/studio-expenses", json=base, headers=ALICE).status_code == 403

    updated = client.patch(f"{API}/personal-expenses/{personal.json()['id']}", json={"amount": "260"})
    assert updated.json()["amount"] == "260.00"
    assert client.delete(f"{API}/studio-expenses/{studio.json()['id']}").status_code == 204
    assert client.get(f"{API}/studio-expenses", params={"month": "2024-03"}).json()["items"] == []


def test_vendor_bill_payment_lifecycle(client: TestClient) -> None:
    vendor = client.post(f"{API}/vendors", json={"name": "Print Co"}).json()
    bill = client.post(
        f"{API}/vendor-bills",
        json={"vendor_id": vendor["id"], "amount": "80", "due_date": "2024-03-20", "method": "transfer"},
    )
    assert bill.status_code == 201
    assert bill.json()["status"] == "pending"

    pending = client.get(f"{API}/vendor-bills", params={"month": "2024-03", "status": "pending"})
    assert [item["id"] for item in pending.json()["items"]] == [bill.json()["id"]]

    paid = client.post(f"{API}/vendor-bills/{bill.json()['id']}/pay")
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"
    assert paid.json()["paid_by"] == _profile_id(client)
    assert paid.json()["paid_at"] is not None

    assert client.post(f"{API}/vendor-bills/{bill.json()['id']}/pay").status_code == 409
    assert client.delete(f"{API}/vendors/{vendor['id']}").status_code == 409
    assert client.post(f"{API}/vendors", json={"name": "Print Co"}).status_code == 409

    assert client.delete(f"{API}/vendor-bills/{bill.json()['id']}").status_code == 204
    assert client.delete(f"{API}/vendors/{vendor['id']}").status_code == 204


def test_profile_management_guards(client: TestClient) -> None:
    admin_id = _profile_id(client)

    created = client.post(f"{API}/profiles", json={"email": "Carol@Test.Local", "full_name": "Carol"})
    assert created.status_code == 201
    assert created.json()["email"] == "carol@test.local"
    assert created.json()["role"] == "staff"
    assert client.post(f"{API}/profiles", json={"email": "carol@test.local"}).status_code == 409

    promoted = client.patch(f"{API}/profiles/{created.json()['id']}", json={"role": "manager"})
    assert promoted.json()["role"] == "manager"
    managers = client.get(f"{API}/profiles", params={"role": "manager"}).json()["items"]
    assert [item["email"] for item in managers] == ["carol@test.local"]

    assert client.get(f"{API}/profiles", headers=ALICE).status_code == 403
    assert client.delete(f"{API}/profiles/{admin_id}").status_code == 422

    client.post(f"{API}/timesheets", json=_hourly_entry(), headers=ALICE)
    alice_id = _profile_id(client, ALICE)
    assert client.delete(f"{API}/profiles/{alice_id}").status_code == 409
    assert client.delete(f"{API}/profiles/{created.json()['id']}").status_code == 204


def test_timesheet_inputs_are_stored_at_two_decimal_places(client: TestClient, db_session: Session) -> None:
    created = client.post(f"{API}/timesheets", json=_hourly_entry(hours="7.333", hourly_rate="20"), headers=ALICE)

    assert created.status_code == 201
    body = created.json()
    assert (body["hours"], body["hourly_rate"], body["total_salary"]) == ("7.33", "20.00", "146.60")

    renamed = client.patch(
        f"{API}/timesheets/{body['id']}",
        json={"job_description": "Studio shoot and cleanup"},
        headers=ALICE,
    )
    assert renamed.status_code == 200
    assert renamed.json()["total_salary"] == "146.60"

    entry = db_session.get(TimesheetEntry, UUID(body["id"]))
    assert entry.total_salary == entry.hours * entry.hourly_rate

    unrounded = client.post(
        f"{API}/timesheets",
        json=_hourly_entry(hours="7.333", hourly_rate="20", total_salary="146.66"),
        headers=ALICE,
    )
    assert unrounded.status_code == 422


def test_timesheet_inputs_that_round_to_zero_are_rejected(client: TestClient) -> None:
    tiny_hours = client.post(f"{API}/timesheets", json=_hourly_entry(hours="0.001"), headers=ALICE)
    tiny_rate = client.post(
        f"{API}/timesheets",
        json={"date": "2024-03-05", "work_type": "job", "job_description": "Edit", "job_count": 1, "job_rate": "0.004"},
        headers=ALICE,
    )

    assert tiny_hours.status_code == 422
    assert tiny_hours.json()["detail"] == "hours must be greater than zero."
    assert tiny_rate.status_code == 422
    assert tiny_rate.json()["detail"] == "job_rate must be greater than zero."


def test_vendor_routes_require_admin_role(client: TestClient) -> None:
    assert client.get(f"{API}/vendors", headers=ALICE).status_code == 403
    assert client.post(f"{API}/vendors", json={"name": "Print Co"}, headers=ALICE).status_code == 403
    assert client.get(f"{API}/vendor-bills", params={"month": "2024-03"}, headers=ALICE).status_code == 403


def test_profile_that_paid_bills_cannot_be_deleted(client: TestClient, db_session: Session) -> None:
    payer = ensure_profile(db_session, email="ops@test.local", full_name="Ops", role=UserRole.ADMIN)
    payer_id = str(payer.id)
    vendor = client.post(f"{API}/vendors", json={"name": "Print Co"}).json()
    bill = client.post(
        f"{API}/vendor-bills",
        json={"vendor_id": vendor["id"], "amount": "80", "due_date": "2024-03-20"},
    ).json()

    paid = client.post(f"{API}/vendor-bills/{bill['id']}/pay", headers={"X-AUTH-EMAIL": "ops@test.local"})
    assert paid.json()["paid_by"] == payer_id

    response = client.delete(f"{API}/profiles/{payer_id}")

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete profile that still owns ledger records."


def test_timesheet_input_data_is_immutable() -> None:
    data = TimesheetCreateData(
        date=dt.date(2024, 3, 4),
        work_type=WorkType.HOURLY,
        job_description="Shoot",
        hours=Decimal("1"),
        hourly_rate=Decimal("10"),
    )

    with pytest.raises(dataclasses.FrozenInstanceError):
        data.hours = Decimal("2")
