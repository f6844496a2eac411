"""Shared helpers for complaint routers.

Every response that mentions the complaint owner goes through the
visibility service here, so no router can leak an anonymous student.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from app.core.complaint_access import check_complaint_access
from app.db.enums import Role
from app.db.models import (
    Complaint,
    ComplaintComment,
    ComplaintHistory,
    ComplaintRating,
)
from app.schemas.auth import Actor
from app.schemas.comment import CommentRead
from app.schemas.complaint import ComplaintListItem, ComplaintRead
from app.schemas.history import HistoryEntryRead
from app.schemas.rating import RatingRead
from app.services import complaint_service, visibility_service


def load_complaint(db: Session, complaint_id: UUID, actor: Actor) -> Complaint:
    """Read a complaint the actor may see (ComplaintNotFound / PermissionDenied otherwise)."""
    complaint = complaint_service.get_complaint(db, complaint_id)
    check_complaint_access(complaint, actor)
    return complaint


def load_complaint_for_update(db: Session, complaint_id: UUID, actor: Actor) -> Complaint:
    """Row-locked read for mutating routes, with the same access check."""
    complaint = complaint_service.get_complaint_for_update(db, complaint_id)
    check_complaint_access(complaint, actor)
    return complaint


def complaint_to_read(complaint: Complaint, viewer_role: Role) -> ComplaintRead:
    return ComplaintRead(
        id=complaint.id,
        title=complaint.title,
        description=complaint.description,
        category=complaint.category,
        priority=complaint.priority,
        status=complaint.status,
        is_anonymous=complaint.is_anonymous,
        is_draft=complaint.is_draft,
        student=visibility_service.visible_identity(complaint, viewer_role),
        assigned_to=complaint.assigned_to,
        escalation_level=complaint.escalation_level,
        tags=complaint.tag_names,
        created_at=complaint.created_at,
        updated_at=complaint.updated_at,
        opened_at=complaint.opened_at,
        resolved_at=complaint.resolved_at,
        escalated_at=complaint.escalated_at,
    )


def complaint_to_list_item(complaint: Complaint, viewer_role: Role) -> ComplaintListItem:
    return ComplaintListItem(
        id=complaint.id,
        title=complaint.title,
        category=complaint.category,
        priority=complaint.priority,
        status=complaint.status,
        is_anonymous=complaint.is_anonymous,
        student=visibility_service.visible_identity(complaint, viewer_role),
        assigned_to=complaint.assigned_to,
        escalation_level=complaint.escalation_level,
        created_at=complaint.created_at,
    )


def comment_to_read(
    comment: ComplaintComment,
    complaint: Complaint,
    viewer_role: Role,
) -> CommentRead:
    return CommentRead(
        id=comment.id,
        complaint_id=comment.complaint_id,
        author_id=visibility_service.visible_actor(complaint, comment.author_id, viewer_role),
        body=comment.body,
        is_internal=comment.is_internal,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


def history_to_read(
    entry: ComplaintHistory,
    complaint: Complaint,
    viewer_role: Role,
) -> HistoryEntryRead:
    return HistoryEntryRead(
        id=entry.id,
        complaint_id=entry.complaint_id,
        action=entry.action,
        old_value=entry.old_value,
        new_value=entry.new_value,
        performed_by=visibility_service.visible_actor(
            complaint, entry.performed_by, viewer_role
        ),
        details=entry.details,
        created_at=entry.created_at,
    )


def rating_to_read(
    rating: ComplaintRating,
    complaint: Complaint,
    viewer_role: Role,
) -> RatingRead:
    return RatingRead(
        id=rating.id,
        complaint_id=rating.complaint_id,
        student_id=visibility_service.visible_actor(complaint, rating.student_id, viewer_role),
        rating=rating.rating,
        feedback_text=rating.feedback_text,
        created_at=rating.created_at,
    )
