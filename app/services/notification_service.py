"""
Notification Service - handles in-app notifications.

Provides CRUD for notifications and the per-event trigger functions used by
the complaint event dispatcher. Trigger functions only flush; the dispatcher
commits once per event.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.db.enums import NotificationType
from app.db.models import Complaint, Notification
from app.db.types import utcnow

DEDUPE_WINDOW = timedelta(hours=1)


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    user_id: UUID,
    type: NotificationType,
    title: str,
    body: Optional[str] = None,
    complaint_id: Optional[UUID] = None,
    dedupe_key: Optional[str] = None,
) -> Optional[Notification]:
    """
    Create a notification.

    Dedupes by dedupe_key + user_id within a one hour window.
    """
    if dedupe_key:
        existing = db.scalar(
            select(Notification.id).where(
                Notification.dedupe_key == dedupe_key,
                Notification.user_id == user_id,
                Notification.created_at > utcnow() - DEDUPE_WINDOW,
            )
        )
        if existing:
            return None  # Already notified

    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        body=body,
        complaint_id=complaint_id,
        dedupe_key=dedupe_key,
    )
    db.add(notification)
    db.flush()
    return notification


def get_notifications(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user, newest first."""
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read_at.is_(None))
    query = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(db.scalars(query).all())


def get_unread_count(db: Session, user_id: UUID) -> int:
    """Get count of unread notifications."""
    return db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.read_at.is_(None),
        )
    ) or 0


def mark_read(db: Session, notification_id: UUID, user_id: UUID) -> Optional[Notification]:
    """Mark a notification as read (scoped to its owner)."""
    notification = db.scalars(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    ).first()

    if notification and not notification.read_at:
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)

    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    """Mark all notifications as read. Returns count updated."""
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        .values(read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


# =============================================================================
# Notification Triggers (called from complaint_events)
# =============================================================================


def _recipients(*user_ids: UUID | None, exclude: UUID | None) -> list[UUID]:
    seen: list[UUID] = []
    for user_id in user_ids:
        if user_id and user_id != exclude and user_id not in seen:
            seen.append(user_id)
    return seen


def notify_status_changed(
    db: Session,
    complaint: Complaint,
    to_status: str,
    actor_id: UUID | None,
) -> None:
    """Notify the owner when staff move their complaint."""
    for user_id in _recipients(complaint.student_id, exclude=actor_id):
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.STATUS_CHANGED,
            title=f"Complaint status changed to {to_status.replace('_', ' ')}",
            body=f'"{complaint.title}" is now {to_status.replace("_", " ")}',
            complaint_id=complaint.id,
            dedupe_key=f"status:{complaint.id}:v{complaint.version}:{to_status}:{user_id}",
        )


def notify_assigned(
    db: Session,
    complaint: Complaint,
    assignee_id: UUID | None,
    actor_id: UUID | None,
) -> None:
    """Notify a lecturer when a complaint is assigned to them."""
    for user_id in _recipients(assignee_id, exclude=actor_id):
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.COMPLAINT_ASSIGNED,
            title="Complaint assigned to you",
            body=f'"{complaint.title}" ({complaint.priority} priority)',
            complaint_id=complaint.id,
            dedupe_key=f"assigned:{complaint.id}:v{complaint.version}:{user_id}",
        )


def notify_comment_added(
    db: Session,
    complaint: Complaint,
    comment_id: str,
    is_internal: bool,
    actor_id: UUID | None,
) -> None:
    """
    Notify owner and assignee about a new comment, never the author.

    Internal notes only reach the assignee.
    """
    owner = None if is_internal else complaint.student_id
    for user_id in _recipients(owner, complaint.assigned_to, exclude=actor_id):
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.COMMENT_ADDED,
            title="New internal note" if is_internal else "New comment",
            body=f'On "{complaint.title}"',
            complaint_id=complaint.id,
            dedupe_key=f"comment:{comment_id}:{user_id}",
        )


def notify_feedback_received(
    db: Session,
    complaint: Complaint,
    feedback_id: str,
    actor_id: UUID | None,
) -> None:
    """Notify the owner about lecturer feedback."""
    for user_id in _recipients(complaint.student_id, exclude=actor_id):
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.FEEDBACK_RECEIVED,
            title="Feedback on your complaint",
            body=f'A lecturer responded to "{complaint.title}"',
            complaint_id=complaint.id,
            dedupe_key=f"feedback:{feedback_id}:{user_id}",
        )


def notify_reopened(
    db: Session,
    complaint: Complaint,
    actor_id: UUID | None,
) -> None:
    """Notify the assignee that a complaint came back."""
    for user_id in _recipients(complaint.assigned_to, exclude=actor_id):
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.COMPLAINT_REOPENED,
            title="Complaint reopened",
            body=f'"{complaint.title}" was reopened',
            complaint_id=complaint.id,
            dedupe_key=f"reopened:{complaint.id}:v{complaint.version}:{user_id}",
        )


def notify_rated(
    db: Session,
    complaint: Complaint,
    rating: int,
    actor_id: UUID | None,
) -> None:
    """Notify the assignee about the owner's satisfaction rating."""
    for user_id in _recipients(complaint.assigned_to, exclude=actor_id):
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.COMPLAINT_RATED,
            title=f"Complaint rated {rating}/5",
            body=f'"{complaint.title}"',
            complaint_id=complaint.id,
            dedupe_key=f"rated:{complaint.id}:{user_id}",
        )


def notify_escalated(
    db: Session,
    complaint: Complaint,
    level: int,
) -> None:
    """Notify the escalation target."""
    for user_id in _recipients(complaint.assigned_to, exclude=None):
        create_notification(
            db=db,
            user_id=user_id,
            type=NotificationType.COMPLAINT_ESCALATED,
            title=f"Complaint escalated to level {level}",
            body=f'"{complaint.title}" ({complaint.priority} priority) needs attention',
            complaint_id=complaint.id,
            dedupe_key=f"escalated:{complaint.id}:{level}:{user_id}",
        )
