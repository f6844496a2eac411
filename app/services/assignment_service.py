"""Complaint assignment - the only code path that writes Complaint.assigned_to.

Every change to assigned_to is paired with an `assigned` (first assignment)
or `reassigned` (any later change) history entry whose new_value is the new
assignee, so the current assignee can always be re-derived from history.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.capabilities import Action, can_perform
from app.db.enums import HistoryAction
from app.db.models import Complaint
from app.db.types import utcnow
from app.schemas.auth import Actor
from app.services import complaint_events, history_service, staff_directory
from app.services.complaint_errors import PermissionDenied, UnknownAssignee
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)


def apply_assignment(
    db: Session,
    complaint: Complaint,
    assignee_id: UUID,
    performed_by: UUID | None,
    details: dict | None = None,
) -> HistoryAction | None:
    """
    Set assigned_to and flush the matching history entry.

    No role checks, no commit. Returns the history action written, or None
    when the complaint is already assigned to `assignee_id`.
    """
    previous = complaint.assigned_to
    if previous == assignee_id:
        return None

    action = HistoryAction.REASSIGNED if previous else HistoryAction.ASSIGNED
    complaint.assigned_to = assignee_id
    complaint.updated_at = utcnow()

    history_service.record(
        db,
        complaint_id=complaint.id,
        action=action,
        performed_by=performed_by,
        old_value=str(previous) if previous else None,
        new_value=str(assignee_id),
        details=details,
    )
    return action


def assign(
    db: Session,
    complaint: Complaint,
    actor: Actor,
    lecturer_id: UUID,
) -> Complaint:
    """
    Assign (or reassign) a complaint to a staff member.

    Assigning to the current assignee is a no-op. Status is never changed.

    Raises:
        PermissionDenied: actor is not staff, or complaint is a draft
        UnknownAssignee: lecturer_id is not an active lecturer/admin
        StaleComplaint: another writer changed the complaint first
    """
    if not can_perform(actor.role, Action.ASSIGN, complaint.status):
        raise PermissionDenied(
            f"Role '{actor.role.value}' cannot assign this complaint",
            field="assigned_to",
        )

    if not staff_directory.is_staff_member(db, lecturer_id):
        raise UnknownAssignee(f"User {lecturer_id} is not an active staff member")

    previous = complaint.assigned_to
    with complaint_mutation(db):
        action = apply_assignment(
            db, complaint, lecturer_id, performed_by=actor.user_id
        )

    if action is None:
        return complaint

    db.refresh(complaint)
    logger.info(
        f"Complaint {complaint.id} {action.value} to {lecturer_id} by {actor.user_id}"
    )
    complaint_events.publish(
        db,
        complaint_events.ComplaintEvent(
            type=complaint_events.EventType.ASSIGNED,
            complaint_id=complaint.id,
            actor_id=actor.user_id,
            payload={
                "assignee_id": str(lecturer_id),
                "previous_assignee_id": str(previous) if previous else None,
            },
        ),
    )
    return complaint
