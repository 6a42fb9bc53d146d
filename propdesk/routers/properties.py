import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.access import ensure_owner, owned_by
from propdesk.core.database import get_db, utcnow
from propdesk.core.deps import get_current_user
from propdesk.core.errors import ConflictError, NotFoundError
from propdesk.models.property import Property, Unit
from propdesk.models.user import User
from propdesk.schemas.property import (
    PropertyCreate,
    PropertyResponse,
    PropertyUpdate,
    UnitCreate,
    UnitUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["properties"])


async def _get_owned_property(db: AsyncSession, property_id: uuid.UUID, user: User) -> Property:
    prop = await db.get(Property, property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    ensure_owner(prop.created_by, user)
    return prop


def _find_unit_or_404(prop: Property, unit_number: str) -> Unit:
    unit = prop.find_unit(unit_number)
    if unit is None:
        raise NotFoundError("Unit not found")
    return unit


@router.get("/", response_model=list[PropertyResponse])
async def list_properties(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Property)
        .where(owned_by(Property, user))
        .order_by(Property.created_at.desc())
    )
    return result.scalars().all()


@router.post("/", response_model=PropertyResponse, status_code=201)
async def create_property(
    payload: PropertyCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    prop = Property(
        created_by=user.id,
        name=payload.name,
        address=payload.address,
        city=payload.city,
        state=payload.state,
        zip_code=payload.zip_code,
        country=payload.country,
        property_type=payload.property_type.value,
        owner_name=payload.owner_name,
        owner_email=payload.owner_email,
        owner_phone=payload.owner_phone,
        amenities=payload.amenities,
        notes=payload.notes,
        created_at=now,
        updated_at=now,
        units=[Unit(**u.model_dump(), is_occupied=False) for u in payload.units],
    )
    db.add(prop)
    await db.flush()
    await db.refresh(prop)
    logger.info("Property %s created with %d units", prop.id, len(prop.units))
    return prop


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _get_owned_property(db, property_id, user)


@router.put("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: uuid.UUID,
    payload: PropertyUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    prop = await _get_owned_property(db, property_id, user)

    # Units and occupancy are managed through the unit routes and tenancies
    for field, value in payload.changes().items():
        setattr(prop, field, value)
    prop.updated_at = utcnow()

    await db.flush()
    await db.refresh(prop)
    return prop


@router.delete("/{property_id}")
async def delete_property(
    property_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    prop = await _get_owned_property(db, property_id, user)
    occupied = [u.unit_number for u in prop.units if u.is_occupied]
    if occupied:
        # Leases keep pointing at the unit numbers; the property reference is nulled
        logger.warning(
            "Deleting property %s with occupied units %s", prop.id, ", ".join(occupied)
        )
    await db.delete(prop)
    await db.flush()
    return {"message": "Property deleted"}


# ─── Units ───────────────────────────────────────────────────────────────────

@router.post("/{property_id}/units", response_model=PropertyResponse, status_code=201)
async def add_unit(
    property_id: uuid.UUID,
    payload: UnitCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    prop = await _get_owned_property(db, property_id, user)
    if prop.find_unit(payload.unit_number) is not None:
        raise ConflictError(f"Unit {payload.unit_number} already exists")

    prop.units.append(Unit(**payload.model_dump(), is_occupied=False))
    prop.updated_at = utcnow()
    await db.flush()
    await db.refresh(prop)
    return prop


@router.put("/{property_id}/units/{unit_number}", response_model=PropertyResponse)
async def update_unit(
    property_id: uuid.UUID,
    unit_number: str,
    payload: UnitUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    prop = await _get_owned_property(db, property_id, user)
    unit = _find_unit_or_404(prop, unit_number)

    changes = payload.changes()
    new_number = changes.get("unit_number")
    if new_number is not None and new_number != unit.unit_number:
        if unit.is_occupied:
            raise ConflictError("Cannot renumber an occupied unit")
        if prop.find_unit(new_number) is not None:
            raise ConflictError(f"Unit {new_number} already exists")

    for field, value in changes.items():
        setattr(unit, field, value)
    prop.updated_at = utcnow()

    await db.flush()
    await db.refresh(prop)
    return prop


@router.delete("/{property_id}/units/{unit_number}", response_model=PropertyResponse)
async def delete_unit(
    property_id: uuid.UUID,
    unit_number: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    prop = await _get_owned_property(db, property_id, user)
    unit = _find_unit_or_404(prop, unit_number)
    if unit.is_occupied:
        raise ConflictError("Cannot remove an occupied unit")

    prop.units.remove(unit)
    prop.updated_at = utcnow()
    await db.flush()
    await db.refresh(prop)
    return prop
