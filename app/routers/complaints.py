"""Complaints router - intake, lifecycle actions, history and export.

Mutating routes load the complaint with a row lock and hand it to the
service; domain errors are rendered by the ComplaintServiceError handler
in app.main.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from app.core.deps import get_actor, get_db, require_csrf_header
from app.core.rate_limit import limiter
from app.db.enums import ComplaintCategory, ComplaintPriority, ComplaintStatus
from app.routers.complaints_shared import (
    complaint_to_list_item,
    complaint_to_read,
    history_to_read,
    load_complaint,
    load_complaint_for_update,
)
from app.schemas.auth import Actor
from app.schemas.bulk import BulkAssign, BulkResult, BulkStatusChange, BulkTags
from app.schemas.complaint import (
    AssignRequest,
    ComplaintCreate,
    ComplaintDraftUpdate,
    ComplaintFilters,
    ComplaintListItem,
    ComplaintRead,
    ReopenRequest,
    StatusChangeRequest,
    TagsAdd,
    TagsAddResult,
)
from app.schemas.history import HistoryEntryRead
from app.services import (
    assignment_service,
    bulk_action_service,
    complaint_service,
    complaint_status_service,
    export_service,
    history_service,
    reopen_service,
    tag_service,
    visibility_service,
)

router = APIRouter()


# =============================================================================
# Bulk actions (declared before /{complaint_id} routes)
# =============================================================================

@router.post(
    "/bulk/assign",
    response_model=BulkResult,
    dependencies=[Depends(require_csrf_header)],
)
def bulk_assign(
    data: BulkAssign,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Assign many complaints to one lecturer; each succeeds or fails on its own."""
    return bulk_action_service.bulk_assign(db, actor, data.complaint_ids, data.lecturer_id)


@router.post(
    "/bulk/status",
    response_model=BulkResult,
    dependencies=[Depends(require_csrf_header)],
)
def bulk_status(
    data: BulkStatusChange,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return bulk_action_service.bulk_change_status(
        db, actor, data.complaint_ids, data.status, data.note
    )


@router.post(
    "/bulk/tags",
    response_model=BulkResult,
    dependencies=[Depends(require_csrf_header)],
)
def bulk_tags(
    data: BulkTags,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return bulk_action_service.bulk_add_tags(db, actor, data.complaint_ids, data.tags)


# =============================================================================
# Intake
# =============================================================================

@router.get("", response_model=list[ComplaintListItem])
def list_complaints(
    status: ComplaintStatus | None = None,
    category: ComplaintCategory | None = None,
    priority: ComplaintPriority | None = None,
    assigned_to: UUID | None = None,
    assigned_to_me: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """List complaints visible to the caller (students: own; staff: all submitted)."""
    filters = ComplaintFilters(
        status=status,
        category=category,
        priority=priority,
        assigned_to=assigned_to,
        assigned_to_me=assigned_to_me,
        limit=limit,
        offset=offset,
    )
    complaints = complaint_service.list_complaints(db, actor, filters)
    return [complaint_to_list_item(c, actor.role) for c in complaints]


@router.post(
    "",
    response_model=ComplaintRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit("20/minute")
def create_complaint(
    request: Request,
    data: ComplaintCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """File a complaint or save a draft."""
    complaint = complaint_service.create_complaint(db, actor, data)
    return complaint_to_read(complaint, actor.role)


@router.get("/{complaint_id}", response_model=ComplaintRead)
def get_complaint(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = load_complaint(db, complaint_id, actor)
    return complaint_to_read(complaint, actor.role)


@router.patch(
    "/{complaint_id}",
    response_model=ComplaintRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_draft(
    complaint_id: UUID,
    data: ComplaintDraftUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Edit a draft (owner only)."""
    complaint = load_complaint_for_update(db, complaint_id, actor)
    complaint = complaint_service.update_draft(db, complaint, actor, data)
    return complaint_to_read(complaint, actor.role)


@router.delete(
    "/{complaint_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_draft(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Delete a draft (owner only)."""
    complaint = load_complaint_for_update(db, complaint_id, actor)
    complaint_service.delete_draft(db, complaint, actor)
    return Response(status_code=204)


@router.post(
    "/{complaint_id}/submit",
    response_model=ComplaintRead,
    dependencies=[Depends(require_csrf_header)],
)
def submit_draft(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Submit a draft; it becomes a `new` complaint."""
    complaint = load_complaint_for_update(db, complaint_id, actor)
    complaint = complaint_service.submit_draft(db, complaint, actor)
    return complaint_to_read(complaint, actor.role)


# =============================================================================
# Lifecycle
# =============================================================================

@router.post(
    "/{complaint_id}/status",
    response_model=ComplaintRead,
    dependencies=[Depends(require_csrf_header)],
)
def change_status(
    complaint_id: UUID,
    data: StatusChangeRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Staff status change."""
    complaint = load_complaint_for_update(db, complaint_id, actor)
    complaint = complaint_status_service.change_status(
        db, complaint, actor, data.status, data.note
    )
    return complaint_to_read(complaint, actor.role)


@router.post(
    "/{complaint_id}/assign",
    response_model=ComplaintRead,
    dependencies=[Depends(require_csrf_header)],
)
def assign_complaint(
    complaint_id: UUID,
    data: AssignRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = load_complaint_for_update(db, complaint_id, actor)
    complaint = assignment_service.assign(db, complaint, actor, data.lecturer_id)
    return complaint_to_read(complaint, actor.role)


@router.post(
    "/{complaint_id}/reopen",
    response_model=ComplaintRead,
    dependencies=[Depends(require_csrf_header)],
)
def reopen_complaint(
    complaint_id: UUID,
    data: ReopenRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Owner reopen with a mandatory justification."""
    complaint = load_complaint_for_update(db, complaint_id, actor)
    complaint = reopen_service.reopen(db, complaint, actor, data.justification)
    return complaint_to_read(complaint, actor.role)


@router.post(
    "/{complaint_id}/tags",
    response_model=TagsAddResult,
    dependencies=[Depends(require_csrf_header)],
)
def add_tags(
    complaint_id: UUID,
    data: TagsAdd,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    complaint = load_complaint_for_update(db, complaint_id, actor)
    added = tag_service.add_tags(db, complaint, actor, data.tags)
    db.refresh(complaint)
    return TagsAddResult(added=added, tags=complaint.tag_names)


# =============================================================================
# History / export
# =============================================================================

@router.get("/{complaint_id}/history", response_model=list[HistoryEntryRead])
def get_history(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Audit trail, oldest first, filtered for the caller's role."""
    complaint = load_complaint(db, complaint_id, actor)
    entries = history_service.list_visible_history(db, complaint.id, actor.role)
    return [history_to_read(e, complaint, actor.role) for e in entries]


@router.get("/{complaint_id}/export.csv")
def export_complaint(
    complaint_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Timeline CSV honoring the same visibility rules as the API."""
    complaint = load_complaint(db, complaint_id, actor)
    content = export_service.export_complaint_csv(db, complaint, actor.role)
    headers = {
        "Content-Disposition": f'attachment; filename="complaint_{complaint.id}.csv"'
    }
    return Response(content=content, media_type="text/csv", headers=headers)
