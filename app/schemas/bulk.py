"""Pydantic schemas for bulk complaint actions."""

from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import ComplaintStatus


class BulkAssign(BaseModel):
    complaint_ids: list[UUID] = Field(..., max_length=500)
    lecturer_id: UUID


class BulkStatusChange(BaseModel):
    complaint_ids: list[UUID] = Field(..., max_length=500)
    status: ComplaintStatus
    note: str | None = Field(None, max_length=2000)


class BulkTags(BaseModel):
    complaint_ids: list[UUID] = Field(..., max_length=500)
    tags: list[str] = Field(..., max_length=20)


class BulkError(BaseModel):
    complaint_id: UUID
    kind: str
    detail: str


class BulkResult(BaseModel):
    """Per-complaint outcome counts; each complaint is its own unit."""

    success: int = 0
    failed: int = 0
    errors: list[BulkError] = []
