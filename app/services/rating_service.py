"""Satisfaction ratings - one per (complaint, student), only after resolution."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.capabilities import Action, can_perform
from app.core.complaint_access import is_owner
from app.db.enums import HistoryAction
from app.db.models import Complaint, ComplaintRating
from app.schemas.auth import Actor
from app.services import complaint_events, history_service
from app.services.complaint_errors import (
    AlreadyRated,
    InvalidRatingValue,
    NotOwner,
    PermissionDenied,
    RatingNotAllowed,
)
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _validate_rating_value(rating) -> int:
    # bool is an int subclass; True must not pass as 1
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingValue("Rating must be a whole number between 1 and 5")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingValue("Rating must be between 1 and 5")
    return rating


def submit_rating(
    db: Session,
    complaint: Complaint,
    actor: Actor,
    rating: int,
    feedback_text: str | None = None,
) -> ComplaintRating:
    """
    Create the owner's rating for a complaint that has been resolved.

    A second submission is rejected, never treated as an update.

    Raises:
        PermissionDenied: actor is not a student
        InvalidRatingValue: rating not an integer in 1..5
        NotOwner: actor does not own the complaint
        RatingNotAllowed: complaint has never been resolved
        AlreadyRated: a rating already exists for this complaint and student
    """
    if not can_perform(actor.role, Action.RATE):
        raise PermissionDenied("Only students can rate complaints", field="rating")

    value = _validate_rating_value(rating)

    if not is_owner(complaint, actor):
        raise NotOwner("Only the complaint owner can rate it")

    if complaint.resolved_at is None or not can_perform(
        actor.role, Action.RATE, complaint.status
    ):
        raise RatingNotAllowed("Complaint can only be rated after it has been resolved")

    if has_rated(db, complaint.id, actor.user_id):
        raise AlreadyRated("You have already rated this complaint")

    text = feedback_text.strip() if feedback_text else None
    with complaint_mutation(db):
        row = ComplaintRating(
            complaint_id=complaint.id,
            student_id=actor.user_id,
            rating=value,
            feedback_text=text or None,
        )
        db.add(row)
        try:
            db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent submission
            raise AlreadyRated("You have already rated this complaint") from e

        history_service.record(
            db,
            complaint_id=complaint.id,
            action=HistoryAction.RATED,
            performed_by=actor.user_id,
            new_value=str(value),
            details={"feedback": text or None},
        )

    db.refresh(row)
    logger.info(f"Complaint {complaint.id} rated {value}")
    complaint_events.publish(
        db,
        complaint_events.ComplaintEvent(
            type=complaint_events.EventType.RATED,
            complaint_id=complaint.id,
            actor_id=actor.user_id,
            payload={"rating": value},
        ),
    )
    return row


def has_rated(db: Session, complaint_id: UUID, student_id: UUID) -> bool:
    return (
        db.scalar(
            select(ComplaintRating.id).where(
                ComplaintRating.complaint_id == complaint_id,
                ComplaintRating.student_id == student_id,
            )
        )
        is not None
    )


def get_rating(db: Session, complaint_id: UUID) -> ComplaintRating | None:
    """The (single) rating left on a complaint, if any."""
    return db.scalars(
        select(ComplaintRating).where(ComplaintRating.complaint_id == complaint_id)
    ).first()


def average_rating_for_student(db: Session, student_id: UUID) -> float | None:
    """Average of the ratings a student has given, to one decimal; None if none."""
    average = db.scalar(
        select(func.avg(ComplaintRating.rating)).where(
            ComplaintRating.student_id == student_id
        )
    )
    if average is None:
        return None
    return round(float(average), 1)
