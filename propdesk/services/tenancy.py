"""
Tenancy lifecycle: keeps unit occupancy and tenant leases in step.

Invariant: a unit is occupied iff its ``current_tenant_id`` points at an
existing tenant whose lease names the same property and unit number.

Both mutating operations run inside a savepoint nested in the request
transaction, so the tenant row and the unit update commit or roll back
together.  Claiming a unit is a single conditional UPDATE
(``... WHERE is_occupied = false``); two requests racing for the same unit
cannot both win, the loser gets a ConflictError and its tenant insert is
rolled back.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.access import ensure_owner
from propdesk.core.database import utcnow
from propdesk.core.errors import ConflictError, NotFoundError
from propdesk.models.property import Property, Unit
from propdesk.models.tenant import LeaseDetails, Tenant
from propdesk.models.user import User
from propdesk.schemas.tenant import EmergencyContact, TenantCreate

logger = logging.getLogger(__name__)


def apply_emergency_contact(tenant: Tenant, contact: EmergencyContact | None) -> None:
    contact = contact or EmergencyContact()
    tenant.emergency_contact_name = contact.name
    tenant.emergency_contact_relation = contact.relation
    tenant.emergency_contact_phone = contact.phone
    tenant.emergency_contact_email = contact.email


# ─── Create ──────────────────────────────────────────────────────────────────

async def create_tenancy(db: AsyncSession, user: User, draft: TenantCreate) -> Tenant:
    """
    Create a tenant and mark the leased unit occupied by it.

    Raises NotFoundError when the property or unit does not exist and
    ConflictError when the unit is already occupied.  Nothing is written
    on failure.
    """
    lease = draft.lease_details

    async with db.begin_nested():
        prop = await db.get(Property, lease.property_id)
        if prop is None:
            raise NotFoundError("Property not found")

        unit = prop.find_unit(lease.unit)
        if unit is None:
            raise NotFoundError("Unit not found")

        if unit.is_occupied:
            raise ConflictError("Unit is already occupied")

        now = utcnow()
        tenant = Tenant(
            created_by=user.id,
            first_name=draft.first_name,
            last_name=draft.last_name,
            email=draft.email,
            phone=draft.phone,
            notes=draft.notes,
            status=draft.status.value,
            created_at=now,
            updated_at=now,
            payment_history=[],
            lease_details=LeaseDetails(
                property_id=prop.id,
                unit_number=unit.unit_number,
                start_date=lease.start_date,
                end_date=lease.end_date,
                rent_amount=lease.rent_amount,
                security_deposit=lease.security_deposit,
                lease_document=lease.lease_document,
            ),
        )
        apply_emergency_contact(tenant, draft.emergency_contact)
        db.add(tenant)
        await db.flush()

        claimed = await db.execute(
            update(Unit)
            .where(
                Unit.id == unit.id,
                Unit.is_occupied == False,  # noqa: E712
            )
            .values(is_occupied=True, current_tenant_id=tenant.id)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            # Someone else took the unit between our read and this write
            logger.warning(
                "Lost race for unit %s of property %s", unit.unit_number, prop.id
            )
            raise ConflictError("Unit is already occupied")

    await db.refresh(unit)
    logger.info(
        "Tenant %s now occupies unit %s of property %s",
        tenant.id, unit.unit_number, prop.id,
    )
    return tenant


# ─── Delete ──────────────────────────────────────────────────────────────────

async def _release_unit(db: AsyncSession, tenant: Tenant) -> None:
    lease = tenant.lease_details
    if lease is None or lease.property_id is None:
        logger.info("Tenant %s has no leased property to release", tenant.id)
        return

    prop = await db.get(Property, lease.property_id)
    if prop is None:
        logger.info(
            "Property %s of tenant %s no longer exists; nothing to release",
            lease.property_id, tenant.id,
        )
        return

    unit = prop.find_unit(lease.unit_number)
    if unit is None:
        logger.info(
            "Unit %s of property %s no longer exists; nothing to release",
            lease.unit_number, prop.id,
        )
        return

    if unit.current_tenant_id not in (None, tenant.id):
        logger.warning(
            "Unit %s of property %s is held by tenant %s, not %s; left untouched",
            unit.unit_number, prop.id, unit.current_tenant_id, tenant.id,
        )
        return

    unit.is_occupied = False
    unit.current_tenant_id = None
    await db.flush()


async def delete_tenancy(db: AsyncSession, tenant_id: uuid.UUID, user: User) -> None:
    """
    Release the tenant's unit (best effort) and delete the tenant.

    The tenant is deleted even when its property or unit is gone.
    """
    async with db.begin_nested():
        tenant = await db.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")
        ensure_owner(tenant.created_by, user)

        await _release_unit(db, tenant)
        await db.delete(tenant)
        await db.flush()

    logger.info("Tenant %s removed", tenant_id)


# ─── Integrity scan ──────────────────────────────────────────────────────────

@dataclass
class OccupancyViolation:
    kind: str
    property_id: uuid.UUID | None
    unit_number: str | None
    tenant_id: uuid.UUID | None
    message: str


def _lease_matches(tenant: Tenant, unit: Unit) -> bool:
    lease = tenant.lease_details
    return (
        lease is not None
        and lease.property_id == unit.property_id
        and lease.unit_number == unit.unit_number
    )


async def find_occupancy_violations(
    db: AsyncSession, user: User | None = None
) -> list[OccupancyViolation]:
    """
    Report every breach of the occupancy invariant.

    Scoped to the caller's tenants and properties when ``user`` is given,
    otherwise scans everything.
    """
    tenant_query = select(Tenant).execution_options(populate_existing=True)
    if user is not None:
        tenant_query = tenant_query.where(Tenant.created_by == user.id)
    tenants = {t.id: t for t in (await db.execute(tenant_query)).scalars().all()}

    leased_property_ids = {
        t.lease_details.property_id
        for t in tenants.values()
        if t.lease_details is not None and t.lease_details.property_id is not None
    }
    unit_query = (
        select(Unit)
        .join(Property, Unit.property_id == Property.id)
        .execution_options(populate_existing=True)
    )
    if user is not None:
        unit_query = unit_query.where(
            or_(
                Property.created_by == user.id,
                Unit.property_id.in_(leased_property_ids),
            )
        )
    units = (await db.execute(unit_query)).scalars().all()

    # Units may point at tenants outside the scoped set
    missing = {u.current_tenant_id for u in units if u.current_tenant_id} - tenants.keys()
    if missing:
        extra = await db.execute(select(Tenant).where(Tenant.id.in_(missing)))
        tenants.update({t.id: t for t in extra.scalars().all()})

    violations: list[OccupancyViolation] = []
    units_by_key = {(u.property_id, u.unit_number): u for u in units}

    for unit in units:
        if unit.is_occupied:
            if unit.current_tenant_id is None:
                violations.append(OccupancyViolation(
                    "occupied_without_tenant", unit.property_id, unit.unit_number, None,
                    "Unit is marked occupied but has no tenant",
                ))
                continue
            tenant = tenants.get(unit.current_tenant_id)
            if tenant is None:
                violations.append(OccupancyViolation(
                    "tenant_missing", unit.property_id, unit.unit_number, unit.current_tenant_id,
                    "Unit is occupied by a tenant that no longer exists",
                ))
            elif not _lease_matches(tenant, unit):
                violations.append(OccupancyViolation(
                    "lease_mismatch", unit.property_id, unit.unit_number, tenant.id,
                    "Occupying tenant's lease names a different unit",
                ))
        elif unit.current_tenant_id is not None:
            violations.append(OccupancyViolation(
                "vacant_with_tenant", unit.property_id, unit.unit_number, unit.current_tenant_id,
                "Unit is marked vacant but references a tenant",
            ))

    for tenant in tenants.values():
        if user is not None and tenant.created_by != user.id:
            continue
        lease = tenant.lease_details
        if lease is None or lease.property_id is None:
            continue
        unit = units_by_key.get((lease.property_id, lease.unit_number))
        if unit is not None and not (unit.is_occupied and unit.current_tenant_id == tenant.id):
            violations.append(OccupancyViolation(
                "tenant_without_occupancy", lease.property_id, lease.unit_number, tenant.id,
                "Tenant's leased unit does not record the tenant as occupant",
            ))

    return violations
