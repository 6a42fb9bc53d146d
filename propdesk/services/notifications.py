"""
Tenant notifications: message builders plus the scheduled email tasks.

The builders are pure so request handlers can reuse them.  Tasks are
synchronous (for Celery) and use a fresh SQLAlchemy sync session per run.

Scheduled tasks (via celery beat):
  send_lease_expiry_reminders   08:30 UTC daily
"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from propdesk.core.config import settings
from propdesk.models.enums import TenantStatus
from propdesk.models.property import Property
from propdesk.models.tenant import LeaseDetails, Tenant
from propdesk.services.email import EmailConfig, EmailSender, NotificationError
from propdesk.worker import celery_app

logger = logging.getLogger(__name__)

LEASE_REMINDER_WINDOW = timedelta(days=30)

_engine = None


def _get_engine():
    global _engine
    if _engine is None:
        _engine = create_engine(settings.database_url_sync, pool_pre_ping=True)
    return _engine


def _fmt_currency(value: Decimal | None) -> str:
    return f"${value or 0:,.2f}"


# ── Message builders ─────────────────────────────────────────────────────────

def lease_expiry_message(tenant, property_name: str | None, today: date) -> tuple[str, str]:
    """Subject and body for a tenant whose lease is about to end."""
    lease = tenant.lease_details
    days_left = (lease.end_date - today).days
    where = f"unit {lease.unit_number}"
    if property_name:
        where += f" at {property_name}"
    subject = f"Your lease ends on {lease.end_date:%B %d, %Y}"
    body = (
        f"Hello {tenant.first_name},\n\n"
        f"This is a reminder that your lease for {where} ends in {days_left} day"
        f"{'' if days_left == 1 else 's'}, on {lease.end_date:%B %d, %Y}.\n"
        "Please contact your property manager to discuss renewal or move-out.\n\n"
        f"{settings.app_name}"
    )
    return subject, body


def rent_reminder_message(tenant, property_name: str | None, today: date) -> tuple[str, str]:
    """Subject and body asking the tenant to pay this month's rent."""
    lease = tenant.lease_details
    rent = _fmt_currency(lease.rent_amount if lease is not None else None)
    month = f"{today:%B %Y}"
    where = f" for unit {lease.unit_number}" if lease is not None else ""
    if property_name:
        where += f" at {property_name}"
    subject = f"Rent reminder for {month}"
    body = (
        f"Hello {tenant.first_name},\n\n"
        f"Your rent of {rent}{where} for {month} has not been recorded yet.\n"
        "If you have already paid, please disregard this message.\n\n"
        f"{settings.app_name}"
    )
    return subject, body


# ── Lease expiry reminders ───────────────────────────────────────────────────

def _expiring_leases(db: Session, today: date) -> list[tuple[Tenant, str | None]]:
    rows = db.execute(
        select(Tenant, Property.name)
        .join(LeaseDetails, LeaseDetails.tenant_id == Tenant.id)
        .outerjoin(Property, Property.id == LeaseDetails.property_id)
        .where(
            Tenant.status == TenantStatus.active.value,
            LeaseDetails.end_date >= today,
            LeaseDetails.end_date <= today + LEASE_REMINDER_WINDOW,
        )
        .order_by(LeaseDetails.end_date)
    ).all()
    return [(tenant, name) for tenant, name in rows]


def remind_expiring_leases(db: Session, sender: EmailSender, today: date) -> int:
    """Email every active tenant whose lease ends within 30 days. Returns emails sent."""
    sent = 0
    for tenant, property_name in _expiring_leases(db, today):
        if not tenant.email:
            continue
        subject, body = lease_expiry_message(tenant, property_name, today)
        try:
            sender.send(tenant.email, subject, body)
            sent += 1
        except NotificationError as exc:
            logger.warning("Lease reminder for tenant %s failed: %s", tenant.id, exc)
    return sent


@celery_app.task(name="propdesk.services.notifications.send_lease_expiry_reminders")
def send_lease_expiry_reminders():
    """08:30 UTC: email tenants whose lease ends in the next 30 days."""
    logger.info("Sending lease expiry reminders")
    today = datetime.now(timezone.utc).date()
    sender = EmailSender(EmailConfig.from_settings(settings))

    with Session(_get_engine()) as db:
        sent = remind_expiring_leases(db, sender, today)

    logger.info("Lease expiry reminders sent: %d", sent)
    return sent
