"""Comments router - complaint discussion thread and internal notes.

Mixed paths: /complaints/{id}/comments and /comments/{id}.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.core.deps import get_actor, get_db, require_csrf_header
from app.routers.complaints_shared import (
    comment_to_read,
    load_complaint,
    load_complaint_for_update,
)
from app.schemas.auth import Actor
from app.schemas.comment import CommentCreate, CommentRead, CommentUpdate
from app.services import comment_service

router = APIRouter()


@router.get("/complaints/{complaint_id}/comments", response_model=list[CommentRead])
def list_comments(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Thread for the caller: internal notes only reach staff."""
    complaint = load_complaint(db, complaint_id, actor)
    comments = comment_service.list_visible_comments(db, complaint.id, actor.role)
    return [comment_to_read(c, complaint, actor.role) for c in comments]


@router.post(
    "/complaints/{complaint_id}/comments",
    response_model=CommentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_comment(
    complaint_id: UUID,
    data: CommentCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = load_complaint_for_update(db, complaint_id, actor)
    comment = comment_service.add_comment(
        db, complaint, actor, data.body, is_internal=data.is_internal
    )
    return comment_to_read(comment, complaint, actor.role)


@router.patch(
    "/comments/{comment_id}",
    response_model=CommentRead,
    dependencies=[Depends(require_csrf_header)],
)
def edit_comment(
    comment_id: UUID,
    data: CommentUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Author-only edit."""
    comment = comment_service.get_comment(db, comment_id)
    complaint = load_complaint(db, comment.complaint_id, actor)
    comment = comment_service.edit_comment(
        db, comment, actor, body=data.body, is_internal=data.is_internal
    )
    return comment_to_read(comment, complaint, actor.role)


@router.delete(
    "/comments/{comment_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_comment(
    comment_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Author-only delete."""
    comment = comment_service.get_comment(db, comment_id)
    load_complaint(db, comment.complaint_id, actor)
    comment_service.delete_comment(db, comment, actor)
    return Response(status_code=204)
