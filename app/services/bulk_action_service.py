"""Bulk complaint actions for staff.

Each complaint goes through the same single-complaint service as the
per-complaint endpoints and commits on its own, so one bad id never
blocks or undoes the rest.
"""

import logging
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.capabilities import Action, can_perform
from app.db.enums import ComplaintStatus
from app.db.models import Complaint
from app.schemas.auth import Actor
from app.services import (
    assignment_service,
    complaint_service,
    complaint_status_service,
    tag_service,
)
from app.services.complaint_errors import ComplaintServiceError, InvalidInput, PermissionDenied

logger = logging.getLogger(__name__)


def _run_bulk(
    db: Session,
    actor: Actor,
    complaint_ids: list[UUID],
    operation: Callable[[Complaint], object],
    label: str,
) -> dict:
    if not can_perform(actor.role, Action.BULK_UPDATE):
        raise PermissionDenied("Only staff can run bulk actions")
    if not complaint_ids:
        raise InvalidInput("No complaints selected", field="complaint_ids")

    result = {"success": 0, "failed": 0, "errors": []}
    for complaint_id in dict.fromkeys(complaint_ids):  # de-dupe, keep order
        try:
            complaint = complaint_service.get_complaint_for_update(db, complaint_id)
            operation(complaint)
            result["success"] += 1
        except ComplaintServiceError as e:
            db.rollback()
            result["failed"] += 1
            result["errors"].append(
                {"complaint_id": complaint_id, "kind": e.kind, "detail": e.message}
            )

    logger.info(
        f"Bulk {label} by {actor.user_id}: {result['success']} ok, {result['failed']} failed"
    )
    return result


def bulk_assign(
    db: Session,
    actor: Actor,
    complaint_ids: list[UUID],
    lecturer_id: UUID,
) -> dict:
    """Assign every listed complaint to one lecturer."""
    return _run_bulk(
        db,
        actor,
        complaint_ids,
        lambda c: assignment_service.assign(db, c, actor, lecturer_id),
        "assign",
    )


def bulk_change_status(
    db: Session,
    actor: Actor,
    complaint_ids: list[UUID],
    target_status: ComplaintStatus | str,
    note: str | None = None,
) -> dict:
    """Move every listed complaint to one status; invalid transitions are reported per id."""
    return _run_bulk(
        db,
        actor,
        complaint_ids,
        lambda c: complaint_status_service.change_status(db, c, actor, target_status, note),
        "status",
    )


def bulk_add_tags(
    db: Session,
    actor: Actor,
    complaint_ids: list[UUID],
    tags: list[str],
) -> dict:
    """Add tags to every listed complaint."""
    if not can_perform(actor.role, Action.BULK_UPDATE):
        raise PermissionDenied("Only staff can run bulk actions")
    tag_service.normalize_tags(tags)  # reject a bad tag list once, up front
    return _run_bulk(
        db,
        actor,
        complaint_ids,
        lambda c: tag_service.add_tags(db, c, actor, tags),
        "tags",
    )
