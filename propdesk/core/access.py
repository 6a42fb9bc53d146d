import uuid

from sqlalchemy import or_, select

from propdesk.core.errors import UnauthorizedError
from propdesk.models.event import CalendarEvent, EventAttendee
from propdesk.models.user import User


def ensure_owner(owner_id: uuid.UUID | None, user: User) -> None:
    """Allow the operation only when the record's creator is the caller."""
    if owner_id is None or owner_id != user.id:
        raise UnauthorizedError("Not authorized")


def owned_by(model, user: User):
    """WHERE clause scoping a list query to records the caller created."""
    return model.created_by == user.id


def event_visible_to(user: User):
    """WHERE clause for events the caller organises or is invited to."""
    invited = select(EventAttendee.event_id).where(EventAttendee.user_id == user.id)
    return or_(CalendarEvent.created_by == user.id, CalendarEvent.id.in_(invited))
