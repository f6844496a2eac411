"""Ratings router - owner satisfaction ratings."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_actor, get_db, require_csrf_header
from app.routers.complaints_shared import load_complaint, rating_to_read
from app.schemas.auth import Actor
from app.schemas.rating import RatingCreate, RatingRead, RatingStatus
from app.services import rating_service

router = APIRouter()


@router.post(
    "/complaints/{complaint_id}/rating",
    response_model=RatingRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def submit_rating(
    complaint_id: UUID,
    data: RatingCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Rate a resolved complaint (owner only, once)."""
    complaint = load_complaint(db, complaint_id, actor)
    rating = rating_service.submit_rating(
        db, complaint, actor, data.rating, data.feedback_text
    )
    return rating_to_read(rating, complaint, actor.role)


@router.get("/complaints/{complaint_id}/rating", response_model=RatingStatus)
def get_rating(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = load_complaint(db, complaint_id, actor)
    rating = rating_service.get_rating(db, complaint.id)
    return RatingStatus(
        has_rated=rating_service.has_rated(db, complaint.id, actor.user_id),
        rating=rating_to_read(rating, complaint, actor.role) if rating else None,
    )


@router.get("/ratings/me/average")
def my_average_rating(
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Average of the ratings the caller has given (None when none)."""
    return {"average": rating_service.average_rating_for_student(db, actor.user_id)}
