import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.access import ensure_owner, owned_by
from propdesk.core.database import get_db, utcnow
from propdesk.core.deps import get_current_user
from propdesk.core.errors import NotFoundError
from propdesk.models.enums import MaintenancePriority, MaintenanceStatus
from propdesk.models.maintenance import MaintenanceComment, MaintenanceRequest
from propdesk.models.property import Property
from propdesk.models.tenant import Tenant
from propdesk.models.user import User
from propdesk.schemas.maintenance import (
    CommentCreate,
    MaintenanceCreate,
    MaintenanceResponse,
    MaintenanceStatusUpdate,
    MaintenanceUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


async def _get_owned_request(
    db: AsyncSession, request_id: uuid.UUID, user: User
) -> MaintenanceRequest:
    ticket = await db.get(MaintenanceRequest, request_id)
    if ticket is None:
        raise NotFoundError("Maintenance request not found")
    ensure_owner(ticket.created_by, user)
    return ticket


async def _check_linked_tenant(db: AsyncSession, tenant_id: uuid.UUID, user: User) -> None:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    ensure_owner(tenant.created_by, user)


@router.get("/", response_model=list[MaintenanceResponse])
async def list_requests(
    status: MaintenanceStatus | None = Query(None),
    priority: MaintenancePriority | None = Query(None),
    property_id: uuid.UUID | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(MaintenanceRequest).where(owned_by(MaintenanceRequest, user))
    if status:
        query = query.where(MaintenanceRequest.status == status.value)
    if priority:
        query = query.where(MaintenanceRequest.priority == priority.value)
    if property_id:
        query = query.where(MaintenanceRequest.property_id == property_id)

    result = await db.execute(query.order_by(MaintenanceRequest.created_at.desc()))
    return result.scalars().all()


@router.post("/", response_model=MaintenanceResponse, status_code=201)
async def create_request(
    payload: MaintenanceCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    prop = await db.get(Property, payload.property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    ensure_owner(prop.created_by, user)
    if payload.tenant_id is not None:
        await _check_linked_tenant(db, payload.tenant_id, user)

    now = utcnow()
    ticket = MaintenanceRequest(
        created_by=user.id,
        property_id=payload.property_id,
        unit=payload.unit,
        tenant_id=payload.tenant_id,
        title=payload.title,
        description=payload.description,
        priority=payload.priority.value,
        category=payload.category.value,
        status=MaintenanceStatus.open.value,
        appointment_date=payload.appointment_date,
        created_at=now,
        updated_at=now,
        comments=[],
    )
    db.add(ticket)
    await db.flush()
    logger.info("Maintenance request %s opened (%s)", ticket.id, ticket.priority)
    return ticket


@router.get("/{request_id}", response_model=MaintenanceResponse)
async def get_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _get_owned_request(db, request_id, user)


@router.put("/{request_id}", response_model=MaintenanceResponse)
async def update_request(
    request_id: uuid.UUID,
    payload: MaintenanceUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ticket = await _get_owned_request(db, request_id, user)
    changes = payload.changes()
    if changes.get("tenant_id") is not None:
        await _check_linked_tenant(db, changes["tenant_id"], user)

    for field, value in changes.items():
        setattr(ticket, field, value)
    ticket.updated_at = utcnow()
    await db.flush()
    return ticket


@router.patch("/{request_id}/status", response_model=MaintenanceResponse)
async def update_status(
    request_id: uuid.UUID,
    payload: MaintenanceStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ticket = await _get_owned_request(db, request_id, user)
    now = utcnow()
    if payload.status == MaintenanceStatus.resolved:
        if ticket.status != MaintenanceStatus.resolved.value:
            ticket.resolved_at = now
    else:
        ticket.resolved_at = None
    ticket.status = payload.status.value
    ticket.updated_at = now
    await db.flush()
    return ticket


@router.delete("/{request_id}")
async def delete_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ticket = await _get_owned_request(db, request_id, user)
    await db.delete(ticket)
    await db.flush()
    return {"message": "Maintenance request deleted"}


@router.post("/{request_id}/comments", response_model=MaintenanceResponse, status_code=201)
async def add_comment(
    request_id: uuid.UUID,
    payload: CommentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ticket = await _get_owned_request(db, request_id, user)
    ticket.comments.append(MaintenanceComment(
        author_id=user.id,
        content=payload.content,
        created_at=utcnow(),
    ))
    ticket.updated_at = utcnow()
    await db.flush()
    return ticket
