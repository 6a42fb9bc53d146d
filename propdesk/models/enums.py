import enum


class PropertyType(str, enum.Enum):
    apartment = "apartment"
    house = "house"
    condo = "condo"
    commercial = "commercial"


class TenantStatus(str, enum.Enum):
    """Canonical tenant lifecycle values; the dashboard counts these exactly."""
    active = "active"
    inactive = "inactive"
    eviction = "eviction"
    moveout = "moveout"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    late = "late"
    partial = "partial"


class MaintenancePriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    emergency = "emergency"


class MaintenanceCategory(str, enum.Enum):
    plumbing = "plumbing"
    electrical = "electrical"
    appliance = "appliance"
    hvac = "hvac"
    structural = "structural"
    pest = "pest"
    other = "other"


class MaintenanceStatus(str, enum.Enum):
    open = "open"
    in_progress = "in_progress"
    resolved = "resolved"
    cancelled = "cancelled"


class RelatedEntity(str, enum.Enum):
    property = "property"
    tenant = "tenant"
    maintenance = "maintenance"
    payment = "payment"


class EventType(str, enum.Enum):
    rent_due = "rent_due"
    lease_expiration = "lease_expiration"
    maintenance = "maintenance"
    appointment = "appointment"
    reminder = "reminder"
    other = "other"


class AttendeeStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"


class RecurrenceFrequency(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class RevenuePeriod(str, enum.Enum):
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"
