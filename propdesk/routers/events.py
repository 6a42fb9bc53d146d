import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core.access import ensure_owner, event_visible_to
from propdesk.core.database import as_utc, get_db, utcnow
from propdesk.core.deps import get_current_user
from propdesk.core.errors import NotFoundError, UnauthorizedError, ValidationError
from propdesk.models.enums import AttendeeStatus, EventType
from propdesk.models.event import CalendarEvent, EventAttendee
from propdesk.models.maintenance import MaintenanceRequest
from propdesk.models.property import Property
from propdesk.models.tenant import Tenant
from propdesk.models.user import User
from propdesk.schemas.event import (
    AttendeeStatusUpdate,
    EventCreate,
    EventResponse,
    EventUpdate,
    check_schedule,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])

_LINKS = (
    ("property_id", Property, "Property"),
    ("tenant_id", Tenant, "Tenant"),
    ("maintenance_request_id", MaintenanceRequest, "Maintenance request"),
)


async def _get_event(db: AsyncSession, event_id: uuid.UUID) -> CalendarEvent:
    event = await db.get(CalendarEvent, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


async def _get_owned_event(db: AsyncSession, event_id: uuid.UUID, user: User) -> CalendarEvent:
    event = await _get_event(db, event_id)
    ensure_owner(event.created_by, user)
    return event


async def _check_links(db: AsyncSession, user: User, values: dict) -> None:
    """Linked property, tenant and ticket must exist and belong to the caller."""
    for field, model, label in _LINKS:
        linked_id = values.get(field)
        if linked_id is None:
            continue
        row = await db.get(model, linked_id)
        if row is None:
            raise NotFoundError(f"{label} not found")
        ensure_owner(row.created_by, user)


async def _check_attendees(db: AsyncSession, attendee_ids: list[uuid.UUID]) -> list[uuid.UUID]:
    ids = list(dict.fromkeys(attendee_ids))
    if not ids:
        return []
    result = await db.execute(select(User.id).where(User.id.in_(ids), User.is_active.is_(True)))
    found = set(result.scalars().all())
    missing = [str(i) for i in ids if i not in found]
    if missing:
        raise NotFoundError("Unknown attendees: " + ", ".join(missing))
    return ids


@router.get("/", response_model=list[EventResponse])
async def list_events(
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    property_id: uuid.UUID | None = Query(None),
    tenant_id: uuid.UUID | None = Query(None),
    event_type: EventType | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Events the caller organises or attends, earliest first.

    With a date range, an event is included when any part of it overlaps
    the range.
    """
    query = select(CalendarEvent).where(event_visible_to(user))
    if start is not None and end is not None and as_utc(end) < as_utc(start):
        raise ValidationError("end must not be before start")
    if start is not None:
        query = query.where(CalendarEvent.end >= start)
    if end is not None:
        query = query.where(CalendarEvent.start <= end)
    if property_id:
        query = query.where(CalendarEvent.property_id == property_id)
    if tenant_id:
        query = query.where(CalendarEvent.tenant_id == tenant_id)
    if event_type:
        query = query.where(CalendarEvent.event_type == event_type.value)

    result = await db.execute(query.order_by(CalendarEvent.start))
    return result.scalars().all()


@router.post("/", response_model=EventResponse, status_code=201)
async def create_event(
    payload: EventCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _check_links(db, user, payload.model_dump())
    attendee_ids = await _check_attendees(db, payload.attendee_ids)

    now = utcnow()
    event = CalendarEvent(
        created_by=user.id,
        title=payload.title,
        description=payload.description,
        event_type=payload.event_type.value,
        start=payload.start,
        end=payload.end,
        all_day=payload.all_day,
        location=payload.location,
        property_id=payload.property_id,
        tenant_id=payload.tenant_id,
        maintenance_request_id=payload.maintenance_request_id,
        is_recurring=payload.is_recurring,
        recurrence_frequency=payload.recurrence_frequency.value if payload.recurrence_frequency else None,
        recurrence_interval=payload.recurrence_interval,
        recurrence_until=payload.recurrence_until,
        created_at=now,
        updated_at=now,
        attendees=[
            EventAttendee(user_id=attendee_id, status=AttendeeStatus.pending.value)
            for attendee_id in attendee_ids
        ],
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)
    logger.info("Event %s scheduled (%s)", event.id, event.event_type)
    return event


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await _get_event(db, event_id)
    if event.created_by != user.id and event.attendee(user.id) is None:
        raise UnauthorizedError("Not authorized")
    return event


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: uuid.UUID,
    payload: EventUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await _get_owned_event(db, event_id, user)
    changes = payload.changes()
    attendee_ids = changes.pop("attendee_ids", None)

    merged = {
        field: changes.get(field, getattr(event, field))
        for field in ("start", "end", "is_recurring", "recurrence_frequency", "recurrence_interval")
    }
    try:
        check_schedule(
            merged["start"], merged["end"], merged["is_recurring"],
            merged["recurrence_frequency"], merged["recurrence_interval"],
        )
    except ValueError as exc:
        raise ValidationError(str(exc))
    await _check_links(db, user, changes)

    if attendee_ids is not None:
        current = {a.user_id: a for a in event.attendees}
        event.attendees = [
            current.get(attendee_id) or EventAttendee(user_id=attendee_id, status=AttendeeStatus.pending.value)
            for attendee_id in await _check_attendees(db, attendee_ids)
        ]

    for field, value in changes.items():
        setattr(event, field, value)
    event.updated_at = utcnow()

    await db.flush()
    await db.refresh(event)
    return event


@router.delete("/{event_id}")
async def delete_event(
    event_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await _get_owned_event(db, event_id, user)
    await db.delete(event)
    await db.flush()
    return {"message": "Event deleted"}


@router.patch("/{event_id}/attendee", response_model=EventResponse)
async def update_attendee_status(
    event_id: uuid.UUID,
    payload: AttendeeStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await _get_event(db, event_id)
    target = payload.user_id or user.id
    if target != user.id:
        ensure_owner(event.created_by, user)

    attendee = event.attendee(target)
    if attendee is None:
        raise NotFoundError("Attendee not found")
    attendee.status = payload.status.value

    await db.flush()
    await db.refresh(event)
    return event
