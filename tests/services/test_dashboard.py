"""
Unit tests for the dashboard aggregator: pure functions, no DB.
"""
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from propdesk.models.enums import RevenuePeriod
from propdesk.services.dashboard import (
    MAX_RECENT_ACTIVITY,
    MAX_UPCOMING_EVENTS,
    build_summary,
    maintenance_stats,
    payment_stats,
    property_stats,
    recent_activity,
    rent_summary,
    revenue_series,
    tenant_stats,
    upcoming_events,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _unit(occupied=False):
    return SimpleNamespace(is_occupied=occupied)


def _property(units=(), created_at=NOW - timedelta(days=30), updated_at=None, name="Maple Court"):
    units = list(units)
    return SimpleNamespace(
        id=uuid.uuid4(),
        name=name,
        units=units,
        is_occupied=any(u.is_occupied for u in units),
        created_at=created_at,
        updated_at=updated_at or created_at,
    )


def _payment(amount, status, payment_date):
    return SimpleNamespace(amount=Decimal(amount), status=status, payment_date=payment_date)


def _tenant(status="active", end_date=None, rent="1000", payments=(), created_at=NOW - timedelta(days=60)):
    lease = SimpleNamespace(end_date=end_date or date(2027, 1, 1), rent_amount=Decimal(rent))
    return SimpleNamespace(
        id=uuid.uuid4(),
        first_name="Tina",
        last_name="Tenant",
        status=status,
        lease_details=lease,
        payment_history=list(payments),
        created_at=created_at,
    )


def _ticket(status="open", priority="medium", appointment_date=None,
            created_at=NOW - timedelta(days=60), resolved_at=None, title="Leaky tap"):
    return SimpleNamespace(
        id=uuid.uuid4(),
        title=title,
        status=status,
        priority=priority,
        appointment_date=appointment_date,
        created_at=created_at,
        resolved_at=resolved_at,
    )


# ── Stats ────────────────────────────────────────────────────────────────────

class TestPropertyStats:
    def test_partition_by_any_occupied_unit(self):
        props = [
            _property([_unit(True), _unit(False)]),
            _property([_unit(False)]),
            _property([]),
        ]
        stats = property_stats(props)
        assert stats.total == 3
        assert stats.occupied == 1
        assert stats.vacant == 2
        assert stats.total_units == 3
        assert stats.occupied_units == 1
        assert stats.vacant_units == 2
        assert stats.occupancy_rate == 33.3

    def test_empty(self):
        stats = property_stats([])
        assert stats.total == 0
        assert stats.occupancy_rate == 0.0


class TestTenantStats:
    def test_counts_every_status_exactly(self):
        tenants = [_tenant("active"), _tenant("active"), _tenant("inactive"),
                   _tenant("eviction"), _tenant("moveout")]
        stats = tenant_stats(tenants)
        assert stats.total == 5
        assert (stats.active, stats.inactive, stats.eviction, stats.moveout) == (2, 1, 1, 1)
        assert stats.active + stats.inactive + stats.eviction + stats.moveout == stats.total


class TestMaintenanceStats:
    def test_urgent_excludes_closed_tickets(self):
        tickets = [
            _ticket("open", "emergency"),
            _ticket("in_progress", "high"),
            _ticket("resolved", "high"),
            _ticket("cancelled", "emergency"),
            _ticket("open", "low"),
        ]
        stats = maintenance_stats(tickets)
        assert stats.open == 2
        assert stats.in_progress == 1
        assert stats.resolved == 1
        assert stats.cancelled == 1
        assert stats.urgent == 2


class TestRentSummary:
    def test_paid_partial_late(self):
        today = date(2026, 3, 10)
        tenants = [
            _tenant(payments=[_payment("1000", "paid", date(2026, 3, 1))]),
            _tenant(payments=[_payment("400", "partial", date(2026, 3, 2))]),
            _tenant(payments=[_payment("1000", "late", date(2026, 3, 8))]),
        ]
        summary = rent_summary(tenants, today)
        assert summary.collected == Decimal("1400")
        assert summary.pending == Decimal("600")
        assert summary.overdue == Decimal("1000")

    def test_missing_payment_pending_until_the_fifth(self):
        tenants = [_tenant(payments=[_payment("1000", "paid", date(2026, 2, 1))])]
        assert rent_summary(tenants, date(2026, 3, 5)).pending == Decimal("1000")
        assert rent_summary(tenants, date(2026, 3, 6)).overdue == Decimal("1000")

    def test_inactive_tenants_ignored(self):
        tenants = [_tenant("moveout"), _tenant("eviction")]
        summary = rent_summary(tenants, date(2026, 3, 20))
        assert summary.collected == summary.pending == summary.overdue == Decimal(0)


# ── Feeds ────────────────────────────────────────────────────────────────────

class TestUpcomingEvents:
    def test_window_and_order(self):
        soon = _tenant(end_date=(NOW + timedelta(days=10)).date())
        later = _tenant(end_date=(NOW + timedelta(days=40)).date())
        past = _tenant(end_date=(NOW - timedelta(days=1)).date())
        visit = _ticket(appointment_date=NOW + timedelta(days=2))
        old_visit = _ticket(appointment_date=NOW - timedelta(hours=1))

        events = upcoming_events([soon, later, past], [visit, old_visit], NOW)

        assert [e.related_id for e in events] == [visit.id, soon.id]
        assert [e.type for e in events] == ["maintenance", "lease"]

    def test_lease_ending_today_and_on_last_day_included(self):
        today = _tenant(end_date=NOW.date())
        edge = _tenant(end_date=(NOW + timedelta(days=30)).date())
        events = upcoming_events([edge, today], [], NOW)
        assert [e.related_id for e in events] == [today.id, edge.id]

    def test_truncated_to_five(self):
        tickets = [_ticket(appointment_date=NOW + timedelta(days=d)) for d in range(1, 9)]
        events = upcoming_events([], tickets, NOW)
        assert len(events) == MAX_UPCOMING_EVENTS
        assert [e.related_id for e in events] == [t.id for t in tickets[:5]]

    def test_naive_appointments_treated_as_utc(self):
        ticket = _ticket(appointment_date=(NOW + timedelta(hours=3)).replace(tzinfo=None))
        assert len(upcoming_events([], [ticket], NOW)) == 1


class TestRecentActivity:
    def test_window_and_newest_first(self):
        new_prop = _property(created_at=NOW - timedelta(days=3), name="New")
        old_prop = _property(created_at=NOW - timedelta(days=10), name="Old")
        tenant = _tenant(created_at=NOW - timedelta(days=1))

        activity = recent_activity([new_prop, old_prop], [tenant], [], NOW)

        assert [a.related_id for a in activity] == [tenant.id, new_prop.id]

    def test_update_only_reported_after_creation(self):
        created = NOW - timedelta(days=20)
        touched = _property(created_at=created, updated_at=NOW - timedelta(days=2))
        untouched = _property(created_at=NOW - timedelta(days=2))

        activity = recent_activity([touched, untouched], [], [], NOW)

        titles = [a.title for a in activity]
        assert titles == ["Property updated: Maple Court", "Property added: Maple Court"]
        assert activity[0].related_id == touched.id

    def test_resolved_ticket(self):
        ticket = _ticket(
            status="resolved",
            created_at=NOW - timedelta(days=30),
            resolved_at=NOW - timedelta(hours=5),
        )
        activity = recent_activity([], [], [ticket], NOW)
        assert [a.title for a in activity] == ["Ticket resolved: Leaky tap"]

    def test_truncated_to_ten(self):
        tenants = [_tenant(created_at=NOW - timedelta(hours=h)) for h in range(1, 15)]
        activity = recent_activity([], tenants, [], NOW)
        assert len(activity) == MAX_RECENT_ACTIVITY
        assert activity[0].related_id == tenants[0].id


class TestBuildSummary:
    def test_composes_all_sections(self):
        prop = _property([_unit(True)])
        tenant = _tenant(payments=[_payment("1000", "paid", NOW.date())])
        summary = build_summary([prop], [tenant], [_ticket()], NOW)
        assert summary.properties.occupied == 1
        assert summary.tenants.active == 1
        assert summary.maintenance.open == 1
        assert summary.finances.collected == Decimal("1000")


# ── Payments and revenue ─────────────────────────────────────────────────────

def _payment_book():
    return [
        _tenant(rent="1000", payments=[
            _payment("1000", "paid", date(2026, 3, 2)),
            _payment("1000", "pending", date(2026, 2, 1)),
            _payment("500", "paid", date(2025, 12, 15)),
        ]),
        _tenant(rent="800", payments=[
            _payment("300", "partial", date(2026, 3, 4)),
            _payment("800", "late", date(2026, 1, 3)),
            _payment("800", "paid", date(2024, 12, 1)),
        ]),
        _tenant(status="inactive", rent="500", payments=[
            _payment("500", "pending", date(2026, 3, 20)),
        ]),
    ]


class TestPaymentStats:
    def test_counts_overdue_and_month_totals(self):
        stats = payment_stats(_payment_book(), NOW.date())
        assert stats.total == 7
        assert (stats.paid, stats.pending, stats.partial, stats.late) == (3, 2, 1, 1)
        # stale pending plus the late one; the future pending payment is not overdue
        assert stats.overdue == 2
        assert stats.expected_this_month == Decimal("1800")
        assert stats.received_this_month == Decimal("1300")

    def test_empty(self):
        stats = payment_stats([], NOW.date())
        assert stats.total == 0
        assert stats.expected_this_month == Decimal(0)


class TestRevenueSeries:
    def test_monthly_groups_by_day(self):
        points = revenue_series(_payment_book(), NOW.date())
        assert [(p.date, p.amount, p.count) for p in points] == [
            ("2026-03-02", Decimal("1000"), 1),
            ("2026-03-04", Decimal("300"), 1),
        ]

    def test_quarterly_reaches_back_three_months(self):
        points = revenue_series(_payment_book(), NOW.date(), RevenuePeriod.quarterly)
        assert [p.date for p in points] == ["2025-12-15", "2026-03-02", "2026-03-04"]

    def test_yearly_groups_by_month_over_two_years(self):
        points = revenue_series(_payment_book(), NOW.date(), RevenuePeriod.yearly)
        assert [(p.date, p.amount, p.count) for p in points] == [
            ("2025-12", Decimal("500"), 1),
            ("2026-03", Decimal("1300"), 2),
        ]


# ── Calendar events in the feed ──────────────────────────────────────────────

def _event(start, title="Inspection", **recurrence):
    return SimpleNamespace(
        id=uuid.uuid4(),
        title=title,
        start=start,
        is_recurring=bool(recurrence),
        recurrence_frequency=recurrence.get("frequency"),
        recurrence_interval=recurrence.get("interval"),
        recurrence_until=recurrence.get("until"),
    )


class TestUpcomingCalendarEvents:
    def test_future_and_recurring_events_listed(self):
        once = _event(NOW + timedelta(days=3), title="Inspection")
        weekly = _event(NOW - timedelta(days=20), title="Bin day", frequency="weekly", interval=1)
        past = _event(NOW - timedelta(days=1), title="Done")

        items = upcoming_events([], [], NOW, [once, weekly, past])
        assert [i.title for i in items] == ["Bin day", "Inspection"]
        assert items[0].date == NOW + timedelta(days=1)
        assert {i.type for i in items} == {"event"}

    def test_summary_accepts_events(self):
        summary = build_summary([], [], [], NOW, [_event(NOW + timedelta(hours=2))])
        assert [e.type for e in summary.upcoming_events] == ["event"]
