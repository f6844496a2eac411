"""Formal lecturer feedback on complaints."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.capabilities import Action, can_perform
from app.db.enums import HistoryAction
from app.db.models import Complaint, ComplaintFeedback
from app.db.types import utcnow
from app.schemas.auth import Actor
from app.services import complaint_events, history_service
from app.services.complaint_errors import InvalidInput, PermissionDenied
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)


def add_feedback(
    db: Session,
    complaint: Complaint,
    actor: Actor,
    content: str,
) -> ComplaintFeedback:
    """
    Record staff feedback for the complaint owner.

    Raises:
        PermissionDenied: actor is not staff, or complaint is a draft
        InvalidInput: content is blank
    """
    if not can_perform(actor.role, Action.ADD_FEEDBACK, complaint.status):
        raise PermissionDenied("Only staff can give feedback on submitted complaints")

    text = (content or "").strip()
    if not text:
        raise InvalidInput("Feedback cannot be empty", field="content")

    with complaint_mutation(db):
        feedback = ComplaintFeedback(
            complaint_id=complaint.id,
            lecturer_id=actor.user_id,
            content=text,
        )
        db.add(feedback)
        db.flush()
        complaint.updated_at = utcnow()
        history_service.record(
            db,
            complaint_id=complaint.id,
            action=HistoryAction.FEEDBACK_ADDED,
            performed_by=actor.user_id,
            details={"feedback_id": str(feedback.id)},
        )

    db.refresh(feedback)
    logger.info(f"Feedback {feedback.id} added to complaint {complaint.id}")
    complaint_events.publish(
        db,
        complaint_events.ComplaintEvent(
            type=complaint_events.EventType.FEEDBACK_ADDED,
            complaint_id=complaint.id,
            actor_id=actor.user_id,
            payload={"feedback_id": str(feedback.id)},
        ),
    )
    return feedback


def list_feedback(db: Session, complaint_id: UUID) -> list[ComplaintFeedback]:
    """Feedback on a complaint, oldest first."""
    return list(
        db.scalars(
            select(ComplaintFeedback)
            .where(ComplaintFeedback.complaint_id == complaint_id)
            .order_by(ComplaintFeedback.created_at.asc(), ComplaintFeedback.id.asc())
        ).all()
    )
