"""Feedback router - formal lecturer responses."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_actor, get_db, require_csrf_header
from app.routers.complaints_shared import load_complaint, load_complaint_for_update
from app.schemas.auth import Actor
from app.schemas.feedback import FeedbackCreate, FeedbackRead
from app.services import feedback_service

router = APIRouter()


@router.get("/complaints/{complaint_id}/feedback", response_model=list[FeedbackRead])
def list_feedback(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = load_complaint(db, complaint_id, actor)
    return feedback_service.list_feedback(db, complaint.id)


@router.post(
    "/complaints/{complaint_id}/feedback",
    response_model=FeedbackRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_feedback(
    complaint_id: UUID,
    data: FeedbackCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = load_complaint_for_update(db, complaint_id, actor)
    return feedback_service.add_feedback(db, complaint, actor, data.content)
