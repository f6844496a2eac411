"""Pydantic schemas for complaint comments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    """Request to add a comment or internal note."""

    body: str = Field(..., min_length=1, max_length=20000)
    is_internal: bool = False


class CommentUpdate(BaseModel):
    """Author edit (partial)."""

    body: str | None = Field(None, min_length=1, max_length=20000)
    is_internal: bool | None = None


class CommentRead(BaseModel):
    """Comment response."""

    id: UUID
    complaint_id: UUID
    author_id: str  # "anonymous" when the owner is withheld
    body: str
    is_internal: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
