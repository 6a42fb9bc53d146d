import uuid
from datetime import date, datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from propdesk.core.database import as_utc
from propdesk.models.enums import AttendeeStatus, EventType, RecurrenceFrequency
from propdesk.schemas.common import PartialUpdate


def check_schedule(start, end, is_recurring, frequency, interval) -> None:
    if start is not None and end is not None and as_utc(end) < as_utc(start):
        raise ValueError("end must not be before start")
    if is_recurring and (frequency is None or interval is None):
        raise ValueError("Recurring events require frequency and interval")


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    event_type: EventType
    start: datetime
    end: datetime
    all_day: bool = False
    location: str | None = None
    property_id: uuid.UUID | None = None
    tenant_id: uuid.UUID | None = None
    maintenance_request_id: uuid.UUID | None = None
    attendee_ids: list[uuid.UUID] = []
    is_recurring: bool = False
    recurrence_frequency: RecurrenceFrequency | None = None
    recurrence_interval: int | None = Field(default=None, ge=1)
    recurrence_until: date | None = None

    @model_validator(mode="after")
    def schedule_is_consistent(self) -> "EventCreate":
        check_schedule(
            self.start, self.end, self.is_recurring,
            self.recurrence_frequency, self.recurrence_interval,
        )
        return self


class EventUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset({
        "description", "location", "property_id", "tenant_id", "maintenance_request_id",
        "recurrence_frequency", "recurrence_interval", "recurrence_until",
    })

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    event_type: EventType | None = None
    start: datetime | None = None
    end: datetime | None = None
    all_day: bool | None = None
    location: str | None = None
    property_id: uuid.UUID | None = None
    tenant_id: uuid.UUID | None = None
    maintenance_request_id: uuid.UUID | None = None
    attendee_ids: list[uuid.UUID] | None = None
    is_recurring: bool | None = None
    recurrence_frequency: RecurrenceFrequency | None = None
    recurrence_interval: int | None = Field(default=None, ge=1)
    recurrence_until: date | None = None


class AttendeeStatusUpdate(BaseModel):
    """Attendees answer for themselves; the organiser may set anyone's status."""
    status: AttendeeStatus
    user_id: uuid.UUID | None = None


class AttendeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    status: AttendeeStatus


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_by: uuid.UUID
    title: str
    description: str | None
    event_type: EventType
    start: datetime
    end: datetime
    all_day: bool
    location: str | None
    property_id: uuid.UUID | None
    tenant_id: uuid.UUID | None
    maintenance_request_id: uuid.UUID | None
    attendees: list[AttendeeResponse]
    is_recurring: bool
    recurrence_frequency: RecurrenceFrequency | None
    recurrence_interval: int | None
    recurrence_until: date | None
    created_at: datetime
    updated_at: datetime
