"""Pydantic schemas for complaints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import ComplaintCategory, ComplaintPriority, ComplaintStatus


class ComplaintCreate(BaseModel):
    """Request schema for filing a complaint (or saving a draft)."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=10000)
    category: ComplaintCategory
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    is_anonymous: bool = False
    is_draft: bool = False


class ComplaintDraftUpdate(BaseModel):
    """Request schema for editing a draft (partial)."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=10000)
    category: ComplaintCategory | None = None
    priority: ComplaintPriority | None = None
    is_anonymous: bool | None = None


class ComplaintFilters(BaseModel):
    """List filters; all optional."""

    status: ComplaintStatus | None = None
    category: ComplaintCategory | None = None
    priority: ComplaintPriority | None = None
    assigned_to: UUID | None = None
    assigned_to_me: bool = False
    limit: int = Field(50, ge=1, le=200)
    offset: int = Field(0, ge=0)


class ComplaintRead(BaseModel):
    """Complaint detail, already passed through the visibility filter."""

    id: UUID
    title: str
    description: str
    category: str
    priority: str
    status: str
    is_anonymous: bool
    is_draft: bool
    # Owner id, or "anonymous" when withheld from this viewer
    student: str | None
    assigned_to: UUID | None
    escalation_level: int
    tags: list[str] = []
    created_at: datetime
    updated_at: datetime
    opened_at: datetime | None
    resolved_at: datetime | None
    escalated_at: datetime | None


class ComplaintListItem(BaseModel):
    """Complaint summary for list views."""

    id: UUID
    title: str
    category: str
    priority: str
    status: str
    is_anonymous: bool
    student: str | None
    assigned_to: UUID | None
    escalation_level: int
    created_at: datetime


class StatusChangeRequest(BaseModel):
    """Staff status change."""

    status: ComplaintStatus
    note: str | None = Field(None, max_length=2000)


class AssignRequest(BaseModel):
    """Assign or reassign to a lecturer/admin."""

    lecturer_id: UUID


class ReopenRequest(BaseModel):
    """Owner reopen; an empty justification is rejected by the service."""

    justification: str = Field("", max_length=2000)


class TagsAdd(BaseModel):
    """Tags to attach."""

    tags: list[str] = Field(..., max_length=20)


class TagsAddResult(BaseModel):
    added: list[str]
    tags: list[str]
