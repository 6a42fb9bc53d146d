import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.access import ensure_owner, owned_by
from propdesk.core.database import get_db, utcnow
from propdesk.core.deps import get_current_user, get_email_sender, get_receipt_generator
from propdesk.core.errors import NotFoundError, ValidationError
from propdesk.models.property import Property
from propdesk.models.tenant import Tenant, TenantPayment
from propdesk.models.user import User
from propdesk.schemas.tenant import (
    PaymentCreate,
    TenantCreate,
    TenantResponse,
    TenantUpdate,
)
from propdesk.services.email import EmailSender, NotificationError
from propdesk.services.notifications import rent_reminder_message
from propdesk.services.receipts import ReceiptGenerator
from propdesk.services.tenancy import apply_emergency_contact, create_tenancy, delete_tenancy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["tenants"])


async def _get_owned_tenant(db: AsyncSession, tenant_id: uuid.UUID, user: User) -> Tenant:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    ensure_owner(tenant.created_by, user)
    return tenant


async def _property_name(db: AsyncSession, tenant: Tenant) -> str | None:
    lease = tenant.lease_details
    if lease is None or lease.property_id is None:
        return None
    prop = await db.get(Property, lease.property_id)
    return prop.name if prop else None


@router.get("/", response_model=list[TenantResponse])
async def list_tenants(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Tenant)
        .where(owned_by(Tenant, user))
        .order_by(Tenant.created_at.desc())
    )
    return result.scalars().all()


@router.post("/", response_model=TenantResponse, status_code=201)
async def create_tenant(
    payload: TenantCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await create_tenancy(db, user, payload)


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _get_owned_tenant(db, tenant_id, user)


@router.put("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: uuid.UUID,
    payload: TenantUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tenant = await _get_owned_tenant(db, tenant_id, user)
    for field, value in payload.changes(exclude={"lease_details", "emergency_contact"}).items():
        setattr(tenant, field, value)

    if "emergency_contact" in payload.model_fields_set:
        apply_emergency_contact(tenant, payload.emergency_contact)

    # Property and unit stay fixed; only the terms of the lease change
    if payload.lease_details is not None and tenant.lease_details is not None:
        lease = tenant.lease_details
        for field, value in payload.lease_details.changes().items():
            setattr(lease, field, value)
        if lease.end_date < lease.start_date:
            raise ValidationError("end_date must not be before start_date")

    tenant.updated_at = utcnow()
    await db.flush()
    return tenant


@router.delete("/{tenant_id}")
async def delete_tenant(
    tenant_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_tenancy(db, tenant_id, user)
    return {"message": "Tenant deleted"}


# ─── Payments ────────────────────────────────────────────────────────────────

@router.post("/{tenant_id}/payments", response_model=TenantResponse, status_code=201)
async def add_payment(
    tenant_id: uuid.UUID,
    payload: PaymentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tenant = await _get_owned_tenant(db, tenant_id, user)
    tenant.payment_history.append(TenantPayment(
        amount=payload.amount,
        payment_date=payload.payment_date,
        method=payload.method,
        status=payload.status.value,
        notes=payload.notes,
        created_at=utcnow(),
    ))
    tenant.updated_at = utcnow()
    await db.flush()
    logger.info("Payment of %s recorded for tenant %s", payload.amount, tenant.id)
    return tenant


@router.get("/{tenant_id}/payments/{payment_id}/receipt")
async def payment_receipt(
    tenant_id: uuid.UUID,
    payment_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    receipts: ReceiptGenerator = Depends(get_receipt_generator),
):
    tenant = await _get_owned_tenant(db, tenant_id, user)
    payment = next((p for p in tenant.payment_history if p.id == payment_id), None)
    if payment is None:
        raise NotFoundError("Payment not found")

    property_name = await _property_name(db, tenant)
    path = await run_in_threadpool(receipts.payment_receipt, tenant, payment, property_name)
    return FileResponse(path, media_type="application/pdf", filename=path.name)


@router.post("/{tenant_id}/payments/reminder")
async def send_rent_reminder(
    tenant_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
):
    tenant = await _get_owned_tenant(db, tenant_id, user)
    property_name = await _property_name(db, tenant)
    subject, body = rent_reminder_message(tenant, property_name, utcnow().date())

    try:
        message_id = await run_in_threadpool(sender.send, tenant.email, subject, body)
    except NotificationError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    return {"message": "Reminder sent" if message_id else "Mail disabled", "message_id": message_id}
