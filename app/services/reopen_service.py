"""Owner reopen workflow for resolved/closed complaints.

Reopening is the only status change a student can cause, so it carries a
stricter precondition than staff transitions: a non-empty justification,
which is kept in the `reopened` history entry.
"""

import logging

from sqlalchemy.orm import Session

from app.core.capabilities import Action, can_perform
from app.core.complaint_access import is_owner
from app.db.enums import ComplaintStatus
from app.db.models import Complaint
from app.schemas.auth import Actor
from app.services import complaint_events
from app.services.complaint_errors import JustificationRequired, ReopenNotAllowed
from app.services.complaint_status_service import apply_transition
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)


def reopen(
    db: Session,
    complaint: Complaint,
    actor: Actor,
    justification: str | None,
) -> Complaint:
    """
    Reopen a resolved or closed complaint on behalf of its owner.

    Raises:
        ReopenNotAllowed: wrong status, or actor is not the student owner
        JustificationRequired: justification is empty after trimming
        StaleComplaint: another writer changed the complaint first
    """
    if not can_perform(actor.role, Action.REOPEN, complaint.status):
        if complaint.status not in (
            ComplaintStatus.RESOLVED.value,
            ComplaintStatus.CLOSED.value,
        ):
            raise ReopenNotAllowed(
                f"Only resolved or closed complaints can be reopened "
                f"(current status: {complaint.status})"
            )
        raise ReopenNotAllowed(
            "Only the complaint owner can reopen it", field="student_id"
        )

    if not is_owner(complaint, actor):
        raise ReopenNotAllowed(
            "Only the complaint owner can reopen it", field="student_id"
        )

    text = (justification or "").strip()
    if not text:
        raise JustificationRequired("A justification is required to reopen a complaint")

    old_status = complaint.status
    with complaint_mutation(db):
        apply_transition(
            db,
            complaint,
            ComplaintStatus.REOPENED,
            performed_by=actor.user_id,
            details={"justification": text},
        )

    db.refresh(complaint)
    logger.info(f"Complaint {complaint.id} reopened by owner")
    complaint_events.publish(
        db,
        complaint_events.ComplaintEvent(
            type=complaint_events.EventType.REOPENED,
            complaint_id=complaint.id,
            actor_id=actor.user_id,
            payload={"from_status": old_status, "to_status": complaint.status},
        ),
    )
    return complaint
