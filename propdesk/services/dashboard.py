"""
Dashboard aggregation: summary counts, payment figures and two bounded feeds.

Pure functions over lists that were already fetched for the caller.  Inputs
are ORM rows (or anything with the same attributes); nothing here touches
the database or the clock except through the ``now``/``today`` arguments.
"""

import enum
from collections import Counter
from datetime import date, datetime, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from propdesk.core.database import as_utc
from propdesk.models.enums import (
    MaintenancePriority,
    MaintenanceStatus,
    PaymentStatus,
    RevenuePeriod,
    TenantStatus,
)
from propdesk.schemas.dashboard import (
    DashboardSummary,
    FeedItem,
    MaintenanceStats,
    PaymentStats,
    PropertyStats,
    RentSummary,
    RevenuePoint,
    TenantStats,
)
from propdesk.services.calendar import next_occurrence

UPCOMING_WINDOW = timedelta(days=30)
RECENT_WINDOW = timedelta(days=7)
MAX_UPCOMING_EVENTS = 5
MAX_RECENT_ACTIVITY = 10
RENT_OVERDUE_AFTER_DAY = 5

_URGENT_PRIORITIES = {MaintenancePriority.high.value, MaintenancePriority.emergency.value}
_CLOSED_STATUSES = {MaintenanceStatus.resolved.value, MaintenanceStatus.cancelled.value}
_COLLECTED_STATUSES = {PaymentStatus.paid.value, PaymentStatus.partial.value}


def _value(v):
    return v.value if isinstance(v, enum.Enum) else v


def _as_date(value: datetime | date) -> date:
    return value.date() if isinstance(value, datetime) else value


# ─── Stats ───────────────────────────────────────────────────────────────────

def property_stats(properties) -> PropertyStats:
    total = len(properties)
    occupied = sum(1 for p in properties if p.is_occupied)
    units = [u for p in properties for u in p.units]
    occupied_units = sum(1 for u in units if u.is_occupied)
    return PropertyStats(
        total=total,
        occupied=occupied,
        vacant=total - occupied,
        total_units=len(units),
        occupied_units=occupied_units,
        vacant_units=len(units) - occupied_units,
        occupancy_rate=round(occupied_units / len(units) * 100, 1) if units else 0.0,
    )


def tenant_stats(tenants) -> TenantStats:
    counts = Counter(_value(t.status) for t in tenants)
    return TenantStats(
        total=len(tenants),
        **{s.value: counts.get(s.value, 0) for s in TenantStatus},
    )


def maintenance_stats(tickets) -> MaintenanceStats:
    counts = Counter(_value(t.status) for t in tickets)
    urgent = sum(
        1 for t in tickets
        if _value(t.priority) in _URGENT_PRIORITIES and _value(t.status) not in _CLOSED_STATUSES
    )
    return MaintenanceStats(
        **{s.value: counts.get(s.value, 0) for s in MaintenanceStatus},
        urgent=urgent,
    )


def rent_summary(tenants, today: date) -> RentSummary:
    """
    Rent position for the current month, active tenants only.

    A tenant with no payment this month is pending until the 5th and
    overdue after it.
    """
    collected = pending = overdue = Decimal(0)

    for tenant in tenants:
        if _value(tenant.status) != TenantStatus.active.value or tenant.lease_details is None:
            continue
        rent = Decimal(tenant.lease_details.rent_amount)
        payment = next(
            (
                p for p in tenant.payment_history
                if p.payment_date.year == today.year and p.payment_date.month == today.month
            ),
            None,
        )

        if payment is None:
            if today.day > RENT_OVERDUE_AFTER_DAY:
                overdue += rent
            else:
                pending += rent
            continue

        amount = Decimal(payment.amount)
        status = _value(payment.status)
        if status == PaymentStatus.paid.value:
            collected += amount
        elif status == PaymentStatus.partial.value:
            collected += amount
            pending += max(rent - amount, Decimal(0))
        elif status == PaymentStatus.late.value:
            overdue += rent
        else:
            pending += rent

    return RentSummary(collected=collected, pending=pending, overdue=overdue)


def payment_stats(tenants, today: date) -> PaymentStats:
    """
    Counts over every recorded payment plus this month's expected and
    received totals.  A pending payment dated before today counts as overdue,
    as does any payment marked late.
    """
    payments = [p for t in tenants for p in t.payment_history]
    counts = Counter(_value(p.status) for p in payments)
    overdue = sum(
        1 for p in payments
        if _value(p.status) == PaymentStatus.late.value
        or (_value(p.status) == PaymentStatus.pending.value and _as_date(p.payment_date) < today)
    )
    expected = sum(
        (
            Decimal(t.lease_details.rent_amount) for t in tenants
            if _value(t.status) == TenantStatus.active.value and t.lease_details is not None
        ),
        Decimal(0),
    )
    received = sum(
        (
            Decimal(p.amount) for p in payments
            if _value(p.status) in _COLLECTED_STATUSES
            and (p.payment_date.year, p.payment_date.month) == (today.year, today.month)
        ),
        Decimal(0),
    )
    return PaymentStats(
        total=len(payments),
        **{s.value: counts.get(s.value, 0) for s in PaymentStatus},
        overdue=overdue,
        expected_this_month=expected,
        received_this_month=received,
    )


def revenue_window(period: RevenuePeriod, today: date) -> tuple[date, date, bool]:
    """(first day, last day, bucket by month) for a revenue period."""
    month_start = today.replace(day=1)
    month_end = month_start + relativedelta(months=1, days=-1)
    if period == RevenuePeriod.yearly:
        return date(today.year - 1, 1, 1), date(today.year, 12, 31), True
    if period == RevenuePeriod.quarterly:
        return month_start - relativedelta(months=3), month_end, False
    return month_start, month_end, False


def revenue_series(tenants, today: date, period: RevenuePeriod = RevenuePeriod.monthly) -> list[RevenuePoint]:
    """Collected payments grouped by day (by month for the yearly view), oldest first."""
    first_day, last_day, by_month = revenue_window(period, today)
    buckets: dict[str, list] = {}

    for tenant in tenants:
        for payment in tenant.payment_history:
            paid_on = _as_date(payment.payment_date)
            if _value(payment.status) not in _COLLECTED_STATUSES or not first_day <= paid_on <= last_day:
                continue
            key = paid_on.strftime("%Y-%m") if by_month else paid_on.isoformat()
            bucket = buckets.setdefault(key, [Decimal(0), 0])
            bucket[0] += Decimal(payment.amount)
            bucket[1] += 1

    return [
        RevenuePoint(date=key, amount=amount, count=count)
        for key, (amount, count) in sorted(buckets.items())
    ]


# ─── Feeds ───────────────────────────────────────────────────────────────────

def upcoming_events(tenants, tickets, now: datetime, events=()) -> list[FeedItem]:
    """
    Leases ending in the next 30 days, future maintenance visits and the
    next occurrence of each calendar event, soonest first.
    """
    now = as_utc(now)
    first_day, last_day = now.date(), (now + UPCOMING_WINDOW).date()
    upcoming: list[FeedItem] = []

    for tenant in tenants:
        lease = tenant.lease_details
        if lease is None or lease.end_date is None:
            continue
        if first_day <= _as_date(lease.end_date) <= last_day:
            upcoming.append(FeedItem(
                id=f"lease-{tenant.id}",
                title=f"Lease expiring: {tenant.first_name} {tenant.last_name}",
                date=as_utc(lease.end_date),
                type="lease",
                related_id=tenant.id,
            ))

    for ticket in tickets:
        appointment = as_utc(ticket.appointment_date)
        if appointment is not None and appointment >= now:
            upcoming.append(FeedItem(
                id=f"maintenance-{ticket.id}",
                title=f"Maintenance: {ticket.title}",
                date=appointment,
                type="maintenance",
                related_id=ticket.id,
            ))

    for event in events:
        occurs = next_occurrence(event, now)
        if occurs is not None:
            upcoming.append(FeedItem(
                id=f"event-{event.id}",
                title=event.title,
                date=occurs,
                type="event",
                related_id=event.id,
            ))

    upcoming.sort(key=lambda e: e.date)
    return upcoming[:MAX_UPCOMING_EVENTS]


def recent_activity(properties, tenants, tickets, now: datetime) -> list[FeedItem]:
    """Creations, updates and resolutions from the trailing 7 days, newest first."""
    cutoff = as_utc(now) - RECENT_WINDOW
    activity: list[FeedItem] = []

    def add(item_id: str, title: str, when, kind: str, related_id) -> None:
        when = as_utc(when)
        if when is not None and when >= cutoff:
            activity.append(FeedItem(
                id=item_id, title=title, date=when, type=kind, related_id=related_id,
            ))

    for prop in properties:
        add(f"property-{prop.id}", f"Property added: {prop.name}", prop.created_at, "property", prop.id)
        created, updated = as_utc(prop.created_at), as_utc(prop.updated_at)
        if updated is not None and created is not None and updated > created:
            add(f"property-update-{prop.id}", f"Property updated: {prop.name}", updated, "property", prop.id)

    for tenant in tenants:
        add(
            f"tenant-{tenant.id}",
            f"Tenant added: {tenant.first_name} {tenant.last_name}",
            tenant.created_at, "tenant", tenant.id,
        )

    for ticket in tickets:
        add(f"ticket-{ticket.id}", f"Maintenance ticket: {ticket.title}", ticket.created_at, "maintenance", ticket.id)
        if _value(ticket.status) == MaintenanceStatus.resolved.value:
            add(
                f"ticket-resolved-{ticket.id}", f"Ticket resolved: {ticket.title}",
                ticket.resolved_at, "maintenance", ticket.id,
            )

    activity.sort(key=lambda a: a.date, reverse=True)
    return activity[:MAX_RECENT_ACTIVITY]


def build_summary(properties, tenants, tickets, now: datetime, events=()) -> DashboardSummary:
    now = as_utc(now)
    return DashboardSummary(
        properties=property_stats(properties),
        tenants=tenant_stats(tenants),
        maintenance=maintenance_stats(tickets),
        finances=rent_summary(tenants, now.date()),
        upcoming_events=upcoming_events(tenants, tickets, now, events),
        recent_activity=recent_activity(properties, tenants, tickets, now),
    )
