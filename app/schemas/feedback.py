"""Pydantic schemas for lecturer feedback."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class FeedbackCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class FeedbackRead(BaseModel):
    id: UUID
    complaint_id: UUID
    lecturer_id: UUID | None
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}
