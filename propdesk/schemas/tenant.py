import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from propdesk.models.enums import PaymentStatus, TenantStatus
from propdesk.schemas.common import PartialUpdate


# ─── Lease ─────────────────────────────────────────────────────────────────

class LeaseDetailsCreate(BaseModel):
    property_id: uuid.UUID
    unit: str = Field(min_length=1, max_length=50)
    start_date: date
    end_date: date
    rent_amount: Decimal = Field(ge=0)
    security_deposit: Decimal = Field(ge=0)
    lease_document: str | None = None

    @model_validator(mode="after")
    def end_after_start(self) -> "LeaseDetailsCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class LeaseDetailsUpdate(PartialUpdate):
    """Lease terms only; the (property, unit) reference is fixed for a tenancy."""
    nullable: ClassVar[frozenset[str]] = frozenset({"lease_document"})

    start_date: date | None = None
    end_date: date | None = None
    rent_amount: Decimal | None = Field(default=None, ge=0)
    security_deposit: Decimal | None = Field(default=None, ge=0)
    lease_document: str | None = None


class LeaseDetailsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    property_id: uuid.UUID | None
    unit: str = Field(validation_alias="unit_number")
    start_date: date
    end_date: date
    rent_amount: Decimal
    security_deposit: Decimal
    lease_document: str | None


# ─── Emergency contact ─────────────────────────────────────────────────────

class EmergencyContact(BaseModel):
    name: str | None = None
    relation: str | None = None
    phone: str | None = None
    email: EmailStr | None = None


# ─── Payment ───────────────────────────────────────────────────────────────

class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_date: date
    method: str  # cash | check | ach | card | other
    status: PaymentStatus = PaymentStatus.pending
    notes: str | None = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    amount: Decimal
    payment_date: date
    method: str
    status: PaymentStatus
    notes: str | None
    created_at: datetime


# ─── Tenant ────────────────────────────────────────────────────────────────

class TenantCreate(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    lease_details: LeaseDetailsCreate
    emergency_contact: EmergencyContact | None = None
    notes: str | None = None
    status: TenantStatus = TenantStatus.active


class TenantUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset({"emergency_contact", "notes"})

    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, min_length=1)
    lease_details: LeaseDetailsUpdate | None = None
    emergency_contact: EmergencyContact | None = None
    notes: str | None = None
    status: TenantStatus | None = None


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_by: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: str
    lease_details: LeaseDetailsResponse
    payment_history: list[PaymentResponse]
    emergency_contact: EmergencyContact | None = None
    notes: str | None
    status: TenantStatus
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _collect_emergency_contact(cls, data):
        # ORM rows keep the contact as flat columns
        if hasattr(data, "emergency_contact_name"):
            contact = {
                "name": data.emergency_contact_name,
                "relation": data.emergency_contact_relation,
                "phone": data.emergency_contact_phone,
                "email": data.emergency_contact_email,
            }
            return {
                field: getattr(data, field)
                for field in cls.model_fields
                if field != "emergency_contact"
            } | {"emergency_contact": contact if any(contact.values()) else None}
        return data
