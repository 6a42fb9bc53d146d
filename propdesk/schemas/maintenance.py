import uuid
from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from propdesk.models.enums import MaintenanceCategory, MaintenancePriority, MaintenanceStatus
from propdesk.schemas.common import PartialUpdate


class MaintenanceCreate(BaseModel):
    property_id: uuid.UUID
    unit: str = Field(min_length=1, max_length=50)
    tenant_id: uuid.UUID | None = None
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    priority: MaintenancePriority = MaintenancePriority.medium
    category: MaintenanceCategory = MaintenanceCategory.other
    appointment_date: datetime | None = None


class MaintenanceUpdate(PartialUpdate):
    nullable: ClassVar[frozenset[str]] = frozenset({"tenant_id", "appointment_date"})

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    priority: MaintenancePriority | None = None
    category: MaintenanceCategory | None = None
    tenant_id: uuid.UUID | None = None
    appointment_date: datetime | None = None


class MaintenanceStatusUpdate(BaseModel):
    status: MaintenanceStatus


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    author_id: uuid.UUID
    content: str
    created_at: datetime


class MaintenanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_by: uuid.UUID
    property_id: uuid.UUID
    unit: str
    tenant_id: uuid.UUID | None
    title: str
    description: str
    priority: MaintenancePriority
    category: MaintenanceCategory
    status: MaintenanceStatus
    appointment_date: datetime | None
    resolved_at: datetime | None
    comments: list[CommentResponse]
    created_at: datetime
    updated_at: datetime
