"""Complaint history (audit trail) service.

History rows are append-only: this module only inserts and reads. Entries are
flushed, never committed here; the caller commits them together with the
mutation they describe.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.enums import ASSIGNMENT_ACTIONS, HistoryAction, Role
from app.db.models import Complaint, ComplaintComment, ComplaintHistory
from app.services import visibility_service


def record(
    db: Session,
    complaint_id: UUID,
    action: HistoryAction,
    performed_by: UUID | None,
    old_value: str | None = None,
    new_value: str | None = None,
    details: dict | None = None,
) -> ComplaintHistory:
    """
    Append one history entry.

    Args:
        db: Database session
        complaint_id: Complaint the entry belongs to
        action: Kind of applied mutation
        performed_by: Acting user (None for system jobs)
        old_value: Value before the mutation, if any
        new_value: Value after the mutation, if any
        details: Action-specific structured data

    Returns:
        The flushed history entry
    """
    entry = ComplaintHistory(
        complaint_id=complaint_id,
        action=action.value,
        old_value=old_value,
        new_value=new_value,
        performed_by=performed_by,
        details=details,
    )
    db.add(entry)
    db.flush()  # Don't commit - caller owns the transaction
    return entry


def list_history(db: Session, complaint_id: UUID) -> list[ComplaintHistory]:
    """Entries for a complaint, oldest first; insertion order breaks ties."""
    return list(
        db.scalars(
            select(ComplaintHistory)
            .where(ComplaintHistory.complaint_id == complaint_id)
            .order_by(ComplaintHistory.created_at.asc(), ComplaintHistory.id.asc())
        ).all()
    )


def list_visible_history(
    db: Session,
    complaint_id: UUID,
    viewer_role: Role | str | None,
) -> list[ComplaintHistory]:
    """Entries filtered for the viewer, judged by each comment's current internal flag."""
    rows = db.execute(
        select(ComplaintComment.id, ComplaintComment.is_internal).where(
            ComplaintComment.complaint_id == complaint_id
        )
    ).all()
    comment_visibility = {str(comment_id): is_internal for comment_id, is_internal in rows}
    return visibility_service.visible_history(
        list_history(db, complaint_id), viewer_role, comment_visibility
    )


def current_assignee_from_history(db: Session, complaint_id: UUID) -> UUID | None:
    """Assignee according to the latest assigned/reassigned entry."""
    latest = db.scalars(
        select(ComplaintHistory)
        .where(
            ComplaintHistory.complaint_id == complaint_id,
            ComplaintHistory.action.in_([a.value for a in ASSIGNMENT_ACTIONS]),
        )
        .order_by(ComplaintHistory.created_at.desc(), ComplaintHistory.id.desc())
        .limit(1)
    ).first()
    if not latest or not latest.new_value:
        return None
    return UUID(latest.new_value)


def verify_assignment_consistency(db: Session, complaint: Complaint) -> bool:
    """True when Complaint.assigned_to matches the assignment history."""
    return current_assignee_from_history(db, complaint.id) == complaint.assigned_to


def find_inconsistent_assignments(db: Session) -> list[Complaint]:
    """Complaints whose assigned_to disagrees with their history."""
    complaints = db.scalars(select(Complaint).order_by(Complaint.created_at)).all()
    return [c for c in complaints if not verify_assignment_consistency(db, c)]
