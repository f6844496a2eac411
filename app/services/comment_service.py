"""Complaint comment thread - comments and staff-only internal notes.

Policy:
- A student asking for is_internal=True is rejected, on add and on edit.
- Edit/delete are author-only; no role (admin included) overrides this.
- Only additions are audited; edits and deletes leave history untouched.
"""

import logging
from uuid import UUID

import nh3
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from app.core.capabilities import Action, can_perform
from app.core.config import settings
from app.db.enums import HistoryAction, Role
from app.db.models import Complaint, ComplaintComment
from app.db.types import utcnow
from app.schemas.auth import Actor
from app.services import complaint_events, history_service, visibility_service
from app.services.complaint_errors import (
    ComplaintNotFound,
    InvalidInput,
    NotAuthor,
    PermissionDenied,
)
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)

# Allowed HTML tags for rich text comments
ALLOWED_TAGS = {"p", "br", "strong", "em", "ul", "ol", "li", "a", "blockquote", "code", "pre"}
ALLOWED_ATTRIBUTES = {"a": {"href", "target"}}


def sanitize_html(html: str) -> str:
    """Sanitize HTML to prevent XSS, allowing only safe rich text tags."""
    return nh3.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES)


def _clean_body(body: str | None) -> str:
    clean = sanitize_html(body or "").strip()
    if not clean:
        raise InvalidInput("Comment cannot be empty", field="body")
    if len(clean) > settings.COMMENT_MAX_LENGTH:
        raise InvalidInput(
            f"Comment exceeds {settings.COMMENT_MAX_LENGTH} characters", field="body"
        )
    return clean


def _check_internal_flag(actor: Actor, is_internal: bool, status: str | None) -> None:
    if is_internal and not can_perform(actor.role, Action.ADD_INTERNAL_NOTE, status):
        raise PermissionDenied(
            "Only staff can write internal notes", field="is_internal"
        )


# =============================================================================
# Write path
# =============================================================================

def add_comment(
    db: Session,
    complaint: Complaint,
    actor: Actor,
    body: str,
    is_internal: bool = False,
) -> ComplaintComment:
    """
    Add a comment (or internal note) and its `comment_added` history entry.

    Raises:
        PermissionDenied: complaint is a draft, or a non-staff internal note
        InvalidInput: body empty or too long after sanitization
    """
    if not can_perform(actor.role, Action.ADD_COMMENT, complaint.status):
        raise PermissionDenied("Comments are not allowed on drafts", field="status")
    _check_internal_flag(actor, is_internal, complaint.status)
    clean = _clean_body(body)

    with complaint_mutation(db):
        comment = ComplaintComment(
            complaint_id=complaint.id,
            author_id=actor.user_id,
            body=clean,
            is_internal=is_internal,
        )
        db.add(comment)
        db.flush()

        # Touch the parent so concurrent writers on this complaint conflict
        complaint.updated_at = utcnow()
        history_service.record(
            db,
            complaint_id=complaint.id,
            action=HistoryAction.COMMENT_ADDED,
            performed_by=actor.user_id,
            details={"comment_id": str(comment.id), "is_internal": is_internal},
        )

    db.refresh(comment)
    logger.info(
        f"Comment {comment.id} added to complaint {complaint.id} (internal={is_internal})"
    )
    complaint_events.publish(
        db,
        complaint_events.ComplaintEvent(
            type=complaint_events.EventType.COMMENT_ADDED,
            complaint_id=complaint.id,
            actor_id=actor.user_id,
            payload={"comment_id": str(comment.id), "is_internal": is_internal},
        ),
    )
    return comment


def edit_comment(
    db: Session,
    comment: ComplaintComment,
    actor: Actor,
    body: str | None = None,
    is_internal: bool | None = None,
) -> ComplaintComment:
    """
    Edit a comment's body and/or internal flag. Author only.

    Raises:
        NotAuthor: actor did not write the comment
        PermissionDenied: a non-staff author asked for is_internal=True
        InvalidInput: new body empty or too long
    """
    if comment.author_id != actor.user_id:
        raise NotAuthor("Only the author can edit this comment")
    if is_internal:
        _check_internal_flag(actor, is_internal, None)

    clean = _clean_body(body) if body is not None else None

    with complaint_mutation(db):
        if clean is not None:
            comment.body = clean
        if is_internal is not None:
            comment.is_internal = is_internal
        comment.updated_at = utcnow()

    db.refresh(comment)
    return comment


def delete_comment(db: Session, comment: ComplaintComment, actor: Actor) -> None:
    """
    Delete a comment. Author only.

    Raises:
        NotAuthor: actor did not write the comment
    """
    if comment.author_id != actor.user_id:
        raise NotAuthor("Only the author can delete this comment")

    comment_id = comment.id
    with complaint_mutation(db):
        db.delete(comment)
    logger.info(f"Comment {comment_id} deleted by author")


# =============================================================================
# Read path
# =============================================================================

def get_comment(db: Session, comment_id: UUID) -> ComplaintComment:
    comment = db.get(ComplaintComment, comment_id)
    if not comment:
        raise ComplaintNotFound("Comment not found")
    return comment


def list_comments(db: Session, complaint_id: UUID) -> list[ComplaintComment]:
    """Every comment on a complaint, internal notes included. Oldest first."""
    return list(
        db.scalars(
            select(ComplaintComment)
            .options(joinedload(ComplaintComment.author))
            .where(ComplaintComment.complaint_id == complaint_id)
            .order_by(ComplaintComment.created_at.asc(), ComplaintComment.id.asc())
        )
        .unique()
        .all()
    )


def list_visible_comments(
    db: Session,
    complaint_id: UUID,
    viewer_role: Role | str | None,
) -> list[ComplaintComment]:
    """Comments filtered for the viewer's role."""
    return visibility_service.visible_comments(
        list_comments(db, complaint_id), viewer_role
    )
