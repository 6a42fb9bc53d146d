import uuid
from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from propdesk.models.enums import PropertyType
from propdesk.schemas.common import PartialUpdate


# ─── Unit ──────────────────────────────────────────────────────────────────

class UnitCreate(BaseModel):
    unit_number: str = Field(min_length=1, max_length=50)
    bedrooms: int = Field(default=1, ge=0)
    bathrooms: Decimal = Field(default=Decimal(1), ge=0)
    square_feet: int | None = Field(default=None, ge=0)
    rent: Decimal = Field(ge=0)


class UnitUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset({"square_feet"})

    unit_number: str | None = Field(default=None, min_length=1, max_length=50)
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: Decimal | None = Field(default=None, ge=0)
    square_feet: int | None = Field(default=None, ge=0)
    rent: Decimal | None = Field(default=None, ge=0)


class UnitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    unit_number: str
    bedrooms: int
    bathrooms: Decimal
    square_feet: int | None
    rent: Decimal
    is_occupied: bool
    current_tenant_id: uuid.UUID | None


# ─── Property ──────────────────────────────────────────────────────────────

class PropertyCreate(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)  # street
    city: str
    state: str
    zip_code: str
    country: str = "USA"
    property_type: PropertyType
    owner_name: str
    owner_email: EmailStr | None = None
    owner_phone: str | None = None
    amenities: list[str] = []
    notes: str | None = None
    units: list[UnitCreate] = []

    @field_validator("units")
    @classmethod
    def unit_numbers_unique(cls, v: list[UnitCreate]) -> list[UnitCreate]:
        numbers = [u.unit_number for u in v]
        dupes = sorted({n for n in numbers if numbers.count(n) > 1})
        if dupes:
            raise ValueError("Duplicate unit numbers: " + ", ".join(dupes))
        return v


class PropertyUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset({"owner_email", "owner_phone", "notes"})

    name: str | None = Field(default=None, min_length=1)
    address: str | None = Field(default=None, min_length=1)
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    property_type: PropertyType | None = None
    owner_name: str | None = None
    owner_email: EmailStr | None = None
    owner_phone: str | None = None
    amenities: list[str] | None = None
    notes: str | None = None


class PropertyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_by: uuid.UUID
    name: str
    address: str
    city: str
    state: str
    zip_code: str
    country: str
    property_type: PropertyType
    owner_name: str
    owner_email: str | None
    owner_phone: str | None
    amenities: list[str]
    notes: str | None
    is_occupied: bool
    units: list[UnitResponse]
    created_at: datetime
    updated_at: datetime
