"""Pydantic schemas for satisfaction ratings."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class RatingCreate(BaseModel):
    """
    Rating submission.

    rating is accepted untyped; the rating service rejects anything but a
    whole number from 1 to 5 (missing, fractional, string and boolean values
    included) with the InvalidRatingValue error kind.
    """

    rating: Any = None
    feedback_text: str | None = Field(None, max_length=2000)


class RatingRead(BaseModel):
    id: UUID
    complaint_id: UUID
    student_id: str | None  # "anonymous" when the owner is withheld
    rating: int
    feedback_text: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class RatingStatus(BaseModel):
    """Whether the caller has rated, plus the complaint's rating if visible."""

    has_rated: bool
    rating: RatingRead | None = None
