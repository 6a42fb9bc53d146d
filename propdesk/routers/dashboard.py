from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.access import event_visible_to, owned_by
from propdesk.core.database import get_db, utcnow
from propdesk.core.deps import get_current_user
from propdesk.models.enums import RevenuePeriod
from propdesk.models.event import CalendarEvent
from propdesk.models.maintenance import MaintenanceRequest
from propdesk.models.property import Property
from propdesk.models.tenant import Tenant
from propdesk.models.user import User
from propdesk.schemas.dashboard import DashboardSummary, OccupancyViolation, PaymentStats, RevenuePoint
from propdesk.services.dashboard import build_summary, payment_stats, revenue_series
from propdesk.services.tenancy import find_occupancy_violations

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


async def _owned_tenants(db: AsyncSession, user: User):
    return (await db.execute(select(Tenant).where(owned_by(Tenant, user)))).scalars().all()


@router.get("/summary", response_model=DashboardSummary)
async def summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    properties = (await db.execute(select(Property).where(owned_by(Property, user)))).scalars().all()
    tenants = await _owned_tenants(db, user)
    tickets = (
        await db.execute(select(MaintenanceRequest).where(owned_by(MaintenanceRequest, user)))
    ).scalars().all()
    events = (await db.execute(select(CalendarEvent).where(event_visible_to(user)))).scalars().all()
    return build_summary(properties, tenants, tickets, utcnow(), events)


@router.get("/payments", response_model=PaymentStats)
async def payments(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return payment_stats(await _owned_tenants(db, user), utcnow().date())


@router.get("/revenue", response_model=list[RevenuePoint])
async def revenue(
    period: RevenuePeriod = Query(RevenuePeriod.monthly),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return revenue_series(await _owned_tenants(db, user), utcnow().date(), period)


@router.get("/integrity", response_model=list[OccupancyViolation])
async def integrity(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await find_occupancy_violations(db, user)
