"""Complaint domain events for side effects (in-app notifications).

publish() runs after the originating mutation has committed. It never raises:
a failed dispatch is logged and rolled back, and the caller's result stands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.models import Complaint

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    COMMENT_ADDED = "comment_added"
    FEEDBACK_ADDED = "feedback_added"
    REOPENED = "reopened"
    RATED = "rated"
    ESCALATED = "escalated"


@dataclass(frozen=True)
class ComplaintEvent:
    type: EventType
    complaint_id: UUID
    actor_id: UUID | None
    payload: dict[str, Any] = field(default_factory=dict)


def _handle_status_changed(db: Session, complaint: Complaint, event: ComplaintEvent) -> None:
    from app.services import notification_service

    notification_service.notify_status_changed(
        db, complaint, event.payload.get("to_status", complaint.status), event.actor_id
    )


def _handle_assigned(db: Session, complaint: Complaint, event: ComplaintEvent) -> None:
    from app.services import notification_service

    assignee = event.payload.get("assignee_id")
    notification_service.notify_assigned(
        db, complaint, UUID(assignee) if assignee else None, event.actor_id
    )


def _handle_comment_added(db: Session, complaint: Complaint, event: ComplaintEvent) -> None:
    from app.services import notification_service

    notification_service.notify_comment_added(
        db,
        complaint,
        comment_id=event.payload["comment_id"],
        is_internal=bool(event.payload.get("is_internal")),
        actor_id=event.actor_id,
    )


def _handle_feedback_added(db: Session, complaint: Complaint, event: ComplaintEvent) -> None:
    from app.services import notification_service

    notification_service.notify_feedback_received(
        db, complaint, event.payload["feedback_id"], event.actor_id
    )


def _handle_reopened(db: Session, complaint: Complaint, event: ComplaintEvent) -> None:
    from app.services import notification_service

    notification_service.notify_reopened(db, complaint, event.actor_id)
    # The owner hears about staff-initiated reopens like any other status change
    notification_service.notify_status_changed(
        db, complaint, complaint.status, event.actor_id
    )


def _handle_rated(db: Session, complaint: Complaint, event: ComplaintEvent) -> None:
    from app.services import notification_service

    notification_service.notify_rated(
        db, complaint, int(event.payload["rating"]), event.actor_id
    )


def _handle_escalated(db: Session, complaint: Complaint, event: ComplaintEvent) -> None:
    from app.services import notification_service

    notification_service.notify_escalated(
        db, complaint, int(event.payload.get("escalation_level", complaint.escalation_level))
    )


_HANDLERS: dict[EventType, Callable[[Session, Complaint, ComplaintEvent], None]] = {
    EventType.STATUS_CHANGED: _handle_status_changed,
    EventType.ASSIGNED: _handle_assigned,
    EventType.COMMENT_ADDED: _handle_comment_added,
    EventType.FEEDBACK_ADDED: _handle_feedback_added,
    EventType.REOPENED: _handle_reopened,
    EventType.RATED: _handle_rated,
    EventType.ESCALATED: _handle_escalated,
}


def publish(db: Session, event: ComplaintEvent) -> None:
    """Dispatch a committed complaint event. Failures are logged, never raised."""
    try:
        complaint = db.get(Complaint, event.complaint_id)
        if complaint is None:
            return
        _HANDLERS[event.type](db, complaint, event)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            f"Failed to dispatch {event.type.value} event for complaint {event.complaint_id}"
        )
