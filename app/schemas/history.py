"""Pydantic schemas for complaint history."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class HistoryEntryRead(BaseModel):
    """One audit trail entry."""

    id: int
    complaint_id: UUID
    action: str
    old_value: str | None
    new_value: str | None
    performed_by: str | None  # "anonymous" when the owner is withheld
    details: dict | None
    created_at: datetime

    model_config = {"from_attributes": True}
