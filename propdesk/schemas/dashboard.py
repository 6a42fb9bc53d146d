import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class PropertyStats(BaseModel):
    total: int
    occupied: int
    vacant: int
    total_units: int
    occupied_units: int
    vacant_units: int
    occupancy_rate: float


class TenantStats(BaseModel):
    total: int
    active: int
    inactive: int
    eviction: int
    moveout: int


class MaintenanceStats(BaseModel):
    open: int
    in_progress: int
    resolved: int
    cancelled: int
    urgent: int


class RentSummary(BaseModel):
    collected: Decimal
    pending: Decimal
    overdue: Decimal


class FeedItem(BaseModel):
    id: str
    title: str
    date: datetime
    type: str  # lease | maintenance | event | property | tenant
    related_id: uuid.UUID


class PaymentStats(BaseModel):
    total: int
    pending: int
    paid: int
    late: int
    partial: int
    overdue: int
    expected_this_month: Decimal
    received_this_month: Decimal


class RevenuePoint(BaseModel):
    date: str  # YYYY-MM-DD, or YYYY-MM for the yearly view
    amount: Decimal
    count: int


class DashboardSummary(BaseModel):
    properties: PropertyStats
    tenants: TenantStats
    maintenance: MaintenanceStats
    finances: RentSummary
    upcoming_events: list[FeedItem]
    recent_activity: list[FeedItem]


class OccupancyViolation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    property_id: uuid.UUID | None
    unit_number: str | None
    tenant_id: uuid.UUID | None
    message: str
