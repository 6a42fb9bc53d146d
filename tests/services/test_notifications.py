"""
Tests for email delivery, receipt PDFs and the lease reminder task.

The mail transport is a mocked requests session; the reminder query runs
against a synchronous in-memory SQLite database.
"""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from propdesk.core.database import Base
from propdesk.models import maintenance, message  # noqa: F401
from propdesk.models.property import Property, Unit
from propdesk.models.tenant import LeaseDetails, Tenant
from propdesk.models.user import User
from propdesk.services.email import EmailConfig, EmailSender, NotificationError
from propdesk.services.notifications import (
    lease_expiry_message,
    remind_expiring_leases,
    rent_reminder_message,
)
from propdesk.services.receipts import ReceiptGenerator

CONFIG = EmailConfig(
    api_url="https://mail.example.test/v3/smtp/email",
    api_key="key-123",
    sender_email="noreply@example.test",
    sender_name="PropDesk",
)


def _response(status_code=201, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body or {"messageId": "<abc@mail>"}
    resp.text = str(body)
    return resp


def _tenant(end_date=date(2026, 4, 1), rent="1250.00"):
    return SimpleNamespace(
        id=uuid.uuid4(),
        first_name="Tina",
        last_name="Tenant",
        email="tina@example.com",
        lease_details=SimpleNamespace(
            unit_number="4B", end_date=end_date, rent_amount=Decimal(rent)
        ),
    )


# ── EmailSender ──────────────────────────────────────────────────────────────

class TestEmailSender:
    def test_posts_message_and_returns_id(self):
        session = MagicMock()
        session.post.return_value = _response()
        sender = EmailSender(CONFIG, session=session)

        message_id = sender.send("tina@example.com", "Hello", "Plain body", html="<p>Hi</p>")

        assert message_id == "<abc@mail>"
        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        assert url == CONFIG.api_url
        assert kwargs["headers"]["api-key"] == "key-123"
        assert kwargs["json"]["to"] == [{"email": "tina@example.com"}]
        assert kwargs["json"]["sender"] == {"name": "PropDesk", "email": "noreply@example.test"}
        assert kwargs["json"]["textContent"] == "Plain body"
        assert kwargs["json"]["htmlContent"] == "<p>Hi</p>"

    def test_attachments_are_base64_encoded(self, tmp_path):
        pdf = tmp_path / "receipt.pdf"
        pdf.write_bytes(b"%PDF-1.4 test")
        session = MagicMock()
        session.post.return_value = _response()

        EmailSender(CONFIG, session=session).send("t@example.com", "S", "B", attachments=[pdf])

        attachment = session.post.call_args.kwargs["json"]["attachment"][0]
        assert attachment["name"] == "receipt.pdf"
        assert attachment["content"] == "JVBERi0xLjQgdGVzdA=="

    def test_disabled_sends_nothing(self):
        session = MagicMock()
        config = EmailConfig(**{**CONFIG.__dict__, "enabled": False})

        assert EmailSender(config, session=session).send("t@example.com", "S", "B") is None
        session.post.assert_not_called()

    def test_error_status_raises(self):
        session = MagicMock()
        session.post.return_value = _response(400, {"message": "bad sender"})

        with pytest.raises(NotificationError):
            EmailSender(CONFIG, session=session).send("t@example.com", "S", "B")

    def test_transport_failure_raises(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("down")

        with pytest.raises(NotificationError):
            EmailSender(CONFIG, session=session).send("t@example.com", "S", "B")


# ── Receipts ─────────────────────────────────────────────────────────────────

class TestReceiptGenerator:
    def test_writes_pdf(self, tmp_path):
        payment = SimpleNamespace(
            id=uuid.uuid4(),
            amount=Decimal("1250.00"),
            payment_date=date(2026, 3, 1),
            method="ach",
            status="paid",
            notes="March rent – thanks",
        )
        path = ReceiptGenerator(tmp_path / "receipts", "PropDesk").payment_receipt(
            _tenant(), payment, "Maple Court"
        )

        assert path.exists()
        assert path.name == f"receipt-{payment.id}.pdf"
        assert path.read_bytes().startswith(b"%PDF")


# ── Message builders ─────────────────────────────────────────────────────────

class TestMessages:
    def test_lease_expiry(self):
        subject, body = lease_expiry_message(_tenant(), "Maple Court", date(2026, 3, 2))
        assert subject == "Your lease ends on April 01, 2026"
        assert "unit 4B at Maple Court" in body
        assert "ends in 30 days" in body

    def test_lease_expiry_singular_day(self):
        _, body = lease_expiry_message(_tenant(), None, date(2026, 3, 31))
        assert "ends in 1 day," in body

    def test_rent_reminder(self):
        subject, body = rent_reminder_message(_tenant(), "Maple Court", date(2026, 3, 9))
        assert subject == "Rent reminder for March 2026"
        assert "$1,250.00" in body
        assert "unit 4B at Maple Court" in body


# ── Lease reminder task ──────────────────────────────────────────────────────

@pytest.fixture
def sync_db():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


def _seed_tenant(db, owner, prop, unit_number, end_date, status="active"):
    tenant = Tenant(
        created_by=owner.id,
        first_name=f"T{unit_number}",
        last_name="Tenant",
        email=f"{unit_number}@example.com",
        phone="555",
        status=status,
        lease_details=LeaseDetails(
            property_id=prop.id,
            unit_number=unit_number,
            start_date=date(2025, 1, 1),
            end_date=end_date,
            rent_amount=Decimal("1000"),
            security_deposit=Decimal("1000"),
        ),
    )
    db.add(tenant)
    return tenant


class TestLeaseExpiryReminders:
    def test_emails_active_tenants_ending_within_thirty_days(self, sync_db):
        owner = User(email="o@example.com", hashed_password="x", full_name="Owner")
        sync_db.add(owner)
        sync_db.flush()
        prop = Property(
            created_by=owner.id, name="Maple Court", address="1 Main", city="X", state="IL",
            zip_code="1", property_type="house", owner_name="Owner", amenities=[],
            units=[Unit(unit_number=n, rent=Decimal("1000")) for n in ("1", "2", "3", "4")],
        )
        sync_db.add(prop)
        sync_db.flush()

        today = date(2026, 3, 1)
        _seed_tenant(sync_db, owner, prop, "1", date(2026, 3, 20))
        _seed_tenant(sync_db, owner, prop, "2", date(2026, 5, 1))
        _seed_tenant(sync_db, owner, prop, "3", date(2026, 3, 10), status="moveout")
        _seed_tenant(sync_db, owner, prop, "4", date(2026, 2, 1))
        sync_db.commit()

        sender = MagicMock()
        sent = remind_expiring_leases(sync_db, sender, today)

        assert sent == 1
        to, subject, body = sender.send.call_args.args
        assert to == "1@example.com"
        assert "Maple Court" in body

    def test_failures_are_skipped(self, sync_db):
        owner = User(email="o@example.com", hashed_password="x", full_name="Owner")
        sync_db.add(owner)
        sync_db.flush()
        prop = Property(
            created_by=owner.id, name="Elm", address="1 Elm", city="X", state="IL",
            zip_code="1", property_type="house", owner_name="Owner", amenities=[],
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        sync_db.add(prop)
        sync_db.flush()
        _seed_tenant(sync_db, owner, prop, "1", date(2026, 3, 5))
        sync_db.commit()

        sender = MagicMock()
        sender.send.side_effect = NotificationError("boom")

        assert remind_expiring_leases(sync_db, sender, date(2026, 3, 1)) == 0
