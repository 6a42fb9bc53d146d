import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from propdesk.core.database import Base, utcnow


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Set once at creation; never updated
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    address: Mapped[str] = mapped_column(String(500))  # street
    city: Mapped[str] = mapped_column(String(100))
    state: Mapped[str] = mapped_column(String(50))
    zip_code: Mapped[str] = mapped_column(String(20))
    country: Mapped[str] = mapped_column(String(100), default="USA")
    property_type: Mapped[str] = mapped_column(String(20))  # apartment | house | condo | commercial
    owner_name: Mapped[str] = mapped_column(String(255))
    owner_email: Mapped[str | None] = mapped_column(String(320))
    owner_phone: Mapped[str | None] = mapped_column(String(50))
    amenities: Mapped[list[str]] = mapped_column(JSON, default=list)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    units: Mapped[list["Unit"]] = relationship(
        back_populates="property",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Unit.unit_number",
    )

    @property
    def is_occupied(self) -> bool:
        """A property counts as occupied while any of its units is."""
        return any(u.is_occupied for u in self.units)

    def find_unit(self, unit_number: str) -> "Unit | None":
        return next((u for u in self.units if u.unit_number == unit_number), None)


class Unit(Base):
    """A rentable unit within a property; tracks who occupies it."""
    __tablename__ = "units"
    __table_args__ = (
        UniqueConstraint("property_id", "unit_number", name="uq_units_property_unit_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), index=True
    )
    unit_number: Mapped[str] = mapped_column(String(50))
    bedrooms: Mapped[int] = mapped_column(Integer, default=1)
    bathrooms: Mapped[Decimal] = mapped_column(Numeric(3, 1), default=1)
    square_feet: Mapped[int | None] = mapped_column(Integer)
    rent: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    is_occupied: Mapped[bool] = mapped_column(Boolean, default=False)
    current_tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True
    )

    property: Mapped["Property"] = relationship(back_populates="units")
