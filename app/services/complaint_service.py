"""Complaint intake and reads: create, drafts, lookup, listing."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.capabilities import Action, can_perform
from app.core.complaint_access import is_owner
from app.db.enums import ComplaintStatus, HistoryAction
from app.db.models import Complaint
from app.db.types import utcnow
from app.schemas.auth import Actor
from app.schemas.complaint import ComplaintCreate, ComplaintDraftUpdate, ComplaintFilters
from app.services import history_service
from app.services.complaint_errors import (
    ComplaintNotFound,
    DraftRequired,
    NotOwner,
    PermissionDenied,
)
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)


# =============================================================================
# Lookup
# =============================================================================

def get_complaint(db: Session, complaint_id: UUID) -> Complaint:
    """
    Raises:
        ComplaintNotFound: no complaint with this id
    """
    complaint = db.scalars(
        select(Complaint)
        .options(selectinload(Complaint.tags))
        .where(Complaint.id == complaint_id)
    ).first()
    if not complaint:
        raise ComplaintNotFound(f"Complaint {complaint_id} not found")
    return complaint


def get_complaint_for_update(db: Session, complaint_id: UUID) -> Complaint:
    """
    Load a complaint with a row lock for the rest of the transaction.

    Writers on the same complaint queue behind each other; other complaints
    are unaffected. Always re-reads the row, even if it is already in the
    session, so the version column is current.

    Raises:
        ComplaintNotFound: no complaint with this id
    """
    complaint = db.scalars(
        select(Complaint)
        .where(Complaint.id == complaint_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if not complaint:
        raise ComplaintNotFound(f"Complaint {complaint_id} not found")
    return complaint


# =============================================================================
# Intake
# =============================================================================

def create_complaint(db: Session, actor: Actor, data: ComplaintCreate) -> Complaint:
    """
    File a complaint, or save it as a draft.

    The owner is always stored; anonymity only affects what viewers see.
    Drafts get no history until they are submitted.

    Raises:
        PermissionDenied: actor is not a student
    """
    if not can_perform(actor.role, Action.CREATE_COMPLAINT):
        raise PermissionDenied("Only students can file complaints")

    status = ComplaintStatus.DRAFT if data.is_draft else ComplaintStatus.NEW
    with complaint_mutation(db):
        complaint = Complaint(
            student_id=actor.user_id,
            title=data.title.strip(),
            description=data.description.strip(),
            category=data.category.value,
            priority=data.priority.value,
            is_anonymous=data.is_anonymous,
            is_draft=data.is_draft,
            status=status.value,
        )
        db.add(complaint)
        db.flush()
        if not data.is_draft:
            _record_created(db, complaint, actor)

    db.refresh(complaint)
    logger.info(f"Complaint {complaint.id} created (status={complaint.status})")
    return complaint


def _record_created(db: Session, complaint: Complaint, actor: Actor) -> None:
    history_service.record(
        db,
        complaint_id=complaint.id,
        action=HistoryAction.CREATED,
        performed_by=actor.user_id,
        new_value=ComplaintStatus.NEW.value,
        details={
            "category": complaint.category,
            "priority": complaint.priority,
            "is_anonymous": complaint.is_anonymous,
        },
    )


def _check_owned_draft(complaint: Complaint, actor: Actor, action: Action) -> None:
    if not can_perform(actor.role, action):
        raise PermissionDenied("Only the student who wrote a draft can change it")
    if not is_owner(complaint, actor):
        raise NotOwner("Only the student who wrote a draft can change it")
    if not can_perform(actor.role, action, complaint.status):
        raise DraftRequired("Complaint has already been submitted")


def update_draft(
    db: Session,
    complaint: Complaint,
    actor: Actor,
    data: ComplaintDraftUpdate,
) -> Complaint:
    """
    Edit a draft in place (partial update).

    Raises:
        PermissionDenied / NotOwner: not the student owner
        DraftRequired: complaint already submitted
    """
    _check_owned_draft(complaint, actor, Action.EDIT_DRAFT)

    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    with complaint_mutation(db):
        for field, value in updates.items():
            if hasattr(value, "value"):
                value = value.value
            elif isinstance(value, str):
                value = value.strip()
            setattr(complaint, field, value)
        complaint.updated_at = utcnow()

    db.refresh(complaint)
    return complaint


def submit_draft(db: Session, complaint: Complaint, actor: Actor) -> Complaint:
    """
    Turn a draft into a new complaint and write its `created` entry.

    Raises:
        PermissionDenied / NotOwner: not the student owner
        DraftRequired: complaint already submitted
    """
    _check_owned_draft(complaint, actor, Action.SUBMIT_DRAFT)

    with complaint_mutation(db):
        now = utcnow()
        complaint.status = ComplaintStatus.NEW.value
        complaint.is_draft = False
        complaint.created_at = now  # Lifecycle clock starts at submission
        complaint.updated_at = now
        _record_created(db, complaint, actor)

    db.refresh(complaint)
    logger.info(f"Draft {complaint.id} submitted")
    return complaint


def delete_draft(db: Session, complaint: Complaint, actor: Actor) -> None:
    """
    Raises:
        PermissionDenied / NotOwner: not the student owner
        DraftRequired: complaint already submitted
    """
    _check_owned_draft(complaint, actor, Action.EDIT_DRAFT)

    complaint_id = complaint.id
    with complaint_mutation(db):
        db.delete(complaint)
    logger.info(f"Draft {complaint_id} deleted")


# =============================================================================
# Listing
# =============================================================================

def list_complaints(
    db: Session,
    actor: Actor,
    filters: ComplaintFilters | None = None,
) -> list[Complaint]:
    """
    Complaints visible to the actor, newest first.

    Students see only their own complaints (drafts included). Staff see every
    submitted complaint.
    """
    filters = filters or ComplaintFilters()
    query = select(Complaint).options(selectinload(Complaint.tags))

    if can_perform(actor.role, Action.VIEW_ALL_COMPLAINTS):
        query = query.where(Complaint.status != ComplaintStatus.DRAFT.value)
    else:
        query = query.where(Complaint.student_id == actor.user_id)

    if filters.status:
        query = query.where(Complaint.status == filters.status.value)
    if filters.category:
        query = query.where(Complaint.category == filters.category.value)
    if filters.priority:
        query = query.where(Complaint.priority == filters.priority.value)
    if filters.assigned_to_me:
        query = query.where(Complaint.assigned_to == actor.user_id)
    elif filters.assigned_to:
        query = query.where(Complaint.assigned_to == filters.assigned_to)

    query = (
        query.order_by(Complaint.created_at.desc(), Complaint.id.desc())
        .offset(filters.offset)
        .limit(filters.limit)
    )
    return list(db.scalars(query).all())
