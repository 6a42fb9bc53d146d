import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from propdesk.models.enums import RelatedEntity


class MessageCreate(BaseModel):
    recipient_id: uuid.UUID
    content: str = Field(min_length=1)
    related_type: RelatedEntity | None = None
    related_id: uuid.UUID | None = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sender_id: uuid.UUID
    recipient_id: uuid.UUID
    conversation_id: str
    content: str
    related_type: RelatedEntity | None
    related_id: uuid.UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class ConversationSummary(BaseModel):
    conversation_id: str
    other_user_id: uuid.UUID
    other_user_name: str
    last_message: MessageResponse
    unread_count: int


class UnreadCount(BaseModel):
    count: int
