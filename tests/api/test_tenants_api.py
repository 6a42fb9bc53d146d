"""Tenant endpoints: tenancy lifecycle over HTTP, payments, receipts, reminders."""
import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from propdesk.core.deps import get_email_sender, get_receipt_generator
from propdesk.main import app
from propdesk.models.property import Unit
from propdesk.services.email import NotificationError
from propdesk.services.receipts import ReceiptGenerator

BASE = "/api/v1/tenants/"


def _payload(property_id, unit="101", email="tina@example.com"):
    return {
        "first_name": "Tina",
        "last_name": "Tenant",
        "email": email,
        "phone": "555-0100",
        "emergency_contact": {"name": "Ed", "relation": "brother"},
        "lease_details": {
            "property_id": str(property_id),
            "unit": unit,
            "start_date": "2026-01-01",
            "end_date": "2026-12-31",
            "rent_amount": "1200.00",
            "security_deposit": "1200.00",
        },
    }


async def _unit(db, property_id, unit_number) -> Unit:
    result = await db.execute(
        select(Unit)
        .where(Unit.property_id == property_id, Unit.unit_number == unit_number)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_occupies_unit(client, db_session, building, owner_headers):
    prop_id = building.id
    resp = await client.post(BASE, json=_payload(prop_id), headers=owner_headers)

    assert resp.status_code == 201
    data = resp.json()
    assert data["lease_details"]["unit"] == "101"
    assert data["lease_details"]["property_id"] == str(prop_id)
    assert data["emergency_contact"]["relation"] == "brother"
    assert data["payment_history"] == []
    assert data["status"] == "active"

    unit = await _unit(db_session, prop_id, "101")
    assert unit.is_occupied is True
    assert str(unit.current_tenant_id) == data["id"]


@pytest.mark.asyncio
async def test_second_tenant_for_same_unit_is_rejected(client, building, owner_headers):
    prop_id = building.id
    assert (await client.post(BASE, json=_payload(prop_id), headers=owner_headers)).status_code == 201

    resp = await client.post(BASE, json=_payload(prop_id, email="x@example.com"), headers=owner_headers)
    assert resp.status_code == 400
    assert resp.json() == {"detail": "Unit is already occupied"}

    listing = await client.get(BASE, headers=owner_headers)
    assert len(listing.json()) == 1


@pytest.mark.asyncio
async def test_unknown_property_and_unit(client, building, owner_headers):
    prop_id = building.id
    resp = await client.post(BASE, json=_payload(uuid.uuid4()), headers=owner_headers)
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Property not found"}

    resp = await client.post(BASE, json=_payload(prop_id, unit="999"), headers=owner_headers)
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Unit not found"}


@pytest.mark.asyncio
async def test_invalid_lease_dates_400(client, building, owner_headers):
    payload = _payload(building.id)
    payload["lease_details"]["end_date"] = "2025-01-01"
    resp = await client.post(BASE, json=payload, headers=owner_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_delete_releases_unit(client, db_session, building, owner_headers):
    prop_id = building.id
    tenant_id = (await client.post(BASE, json=_payload(prop_id), headers=owner_headers)).json()["id"]

    resp = await client.delete(f"{BASE}{tenant_id}", headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Tenant deleted"}

    unit = await _unit(db_session, prop_id, "101")
    assert unit.is_occupied is False
    assert unit.current_tenant_id is None

    # The unit can be let again
    again = await client.post(BASE, json=_payload(prop_id, email="new@example.com"), headers=owner_headers)
    assert again.status_code == 201


@pytest.mark.asyncio
async def test_access_control(client, building, owner_headers, other_headers):
    tenant_id = (await client.post(BASE, json=_payload(building.id), headers=owner_headers)).json()["id"]

    assert (await client.get(f"{BASE}{tenant_id}", headers=other_headers)).status_code == 401
    assert (await client.delete(f"{BASE}{tenant_id}", headers=other_headers)).status_code == 401
    assert (await client.get(BASE, headers=other_headers)).json() == []
    assert (await client.get(f"{BASE}{uuid.uuid4()}", headers=owner_headers)).status_code == 404


@pytest.mark.asyncio
async def test_update_keeps_lease_reference(client, building, owner_headers):
    prop_id = building.id
    tenant_id = (await client.post(BASE, json=_payload(prop_id), headers=owner_headers)).json()["id"]

    resp = await client.put(
        f"{BASE}{tenant_id}",
        json={"phone": "555-0111", "status": "eviction", "lease_details": {"rent_amount": "1250.00"}},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["phone"] == "555-0111"
    assert data["status"] == "eviction"
    assert data["lease_details"]["rent_amount"] == "1250.00"
    assert data["lease_details"]["unit"] == "101"
    assert data["lease_details"]["property_id"] == str(prop_id)


# ── Payments ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_add_payment(client, building, owner_headers, other_headers):
    tenant_id = (await client.post(BASE, json=_payload(building.id), headers=owner_headers)).json()["id"]
    payment = {"amount": "1200.00", "payment_date": "2026-03-01", "method": "ach", "status": "paid"}

    resp = await client.post(f"{BASE}{tenant_id}/payments", json=payment, headers=owner_headers)
    assert resp.status_code == 201
    history = resp.json()["payment_history"]
    assert len(history) == 1
    assert history[0]["status"] == "paid"

    bad = await client.post(
        f"{BASE}{tenant_id}/payments", json={**payment, "amount": "-5"}, headers=owner_headers
    )
    assert bad.status_code == 400

    foreign = await client.post(f"{BASE}{tenant_id}/payments", json=payment, headers=other_headers)
    assert foreign.status_code == 401


@pytest.mark.asyncio
async def test_receipt_pdf(client, building, owner_headers, tmp_path):
    app.dependency_overrides[get_receipt_generator] = lambda: ReceiptGenerator(tmp_path, "PropDesk")
    tenant_id = (await client.post(BASE, json=_payload(building.id), headers=owner_headers)).json()["id"]
    payment = {"amount": "1200.00", "payment_date": "2026-03-01", "method": "ach", "status": "paid"}
    tenant = (await client.post(f"{BASE}{tenant_id}/payments", json=payment, headers=owner_headers)).json()
    payment_id = tenant["payment_history"][0]["id"]

    resp = await client.get(f"{BASE}{tenant_id}/payments/{payment_id}/receipt", headers=owner_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")

    missing = await client.get(f"{BASE}{tenant_id}/payments/{uuid.uuid4()}/receipt", headers=owner_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_rent_reminder(client, building, owner_headers):
    sender = MagicMock()
    sender.send.return_value = "<id@mail>"
    app.dependency_overrides[get_email_sender] = lambda: sender
    tenant_id = (await client.post(BASE, json=_payload(building.id), headers=owner_headers)).json()["id"]

    resp = await client.post(f"{BASE}{tenant_id}/payments/reminder", headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["message_id"] == "<id@mail>"
    to, subject, body = sender.send.call_args.args
    assert to == "tina@example.com"
    assert subject.startswith("Rent reminder for")
    assert "Maple Court" in body

    sender.send.side_effect = NotificationError("Failed to send email")
    failed = await client.post(f"{BASE}{tenant_id}/payments/reminder", headers=owner_headers)
    assert failed.status_code == 502


@pytest.mark.asyncio
async def test_null_or_empty_update_fields_400(client, building, owner_headers):
    tenant_id = (await client.post(BASE, json=_payload(building.id), headers=owner_headers)).json()["id"]

    for body in (
        {"first_name": None},
        {"first_name": ""},
        {"phone": ""},
        {"status": None},
        {"lease_details": None},
        {"lease_details": {"end_date": None}},
        {"lease_details": {"rent_amount": None}},
    ):
        resp = await client.put(f"{BASE}{tenant_id}", json=body, headers=owner_headers)
        assert resp.status_code == 400, body

    data = (await client.get(f"{BASE}{tenant_id}", headers=owner_headers)).json()
    assert data["first_name"] == "Tina"
    assert data["lease_details"]["end_date"] == "2026-12-31"


@pytest.mark.asyncio
async def test_update_rejects_end_before_start(client, building, owner_headers):
    tenant_id = (await client.post(BASE, json=_payload(building.id), headers=owner_headers)).json()["id"]
    resp = await client.put(
        f"{BASE}{tenant_id}", json={"lease_details": {"end_date": "2025-06-30"}}, headers=owner_headers
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_clears_emergency_contact(client, building, owner_headers):
    tenant_id = (await client.post(BASE, json=_payload(building.id), headers=owner_headers)).json()["id"]
    resp = await client.put(f"{BASE}{tenant_id}", json={"emergency_contact": None}, headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["emergency_contact"] is None
