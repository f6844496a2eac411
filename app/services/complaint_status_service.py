"""Complaint status transitions (validate + apply + history + events).

The transition table is closed-world: a (current, target) pair that is not
listed is rejected with InvalidTransition before anything is written.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.capabilities import Action, can_perform
from app.db.enums import ComplaintStatus, HistoryAction
from app.db.models import Complaint
from app.db.types import utcnow
from app.schemas.auth import Actor
from app.services import complaint_events, history_service
from app.services.complaint_errors import InvalidTransition, PermissionDenied
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[ComplaintStatus, frozenset[ComplaintStatus]] = {
    ComplaintStatus.DRAFT: frozenset(),  # Drafts leave via complaint_service.submit_draft
    ComplaintStatus.NEW: frozenset(
        {
            ComplaintStatus.OPENED,
            ComplaintStatus.IN_PROGRESS,
            ComplaintStatus.RESOLVED,
            ComplaintStatus.CLOSED,
        }
    ),
    ComplaintStatus.OPENED: frozenset(
        {ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED}
    ),
    ComplaintStatus.IN_PROGRESS: frozenset(
        {ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED}
    ),
    ComplaintStatus.REOPENED: frozenset(
        {ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED}
    ),
    ComplaintStatus.RESOLVED: frozenset(
        {ComplaintStatus.CLOSED, ComplaintStatus.REOPENED}
    ),
    ComplaintStatus.CLOSED: frozenset({ComplaintStatus.REOPENED}),
}


def allowed_targets(current: ComplaintStatus | str) -> frozenset[ComplaintStatus]:
    """Statuses reachable from `current` in one step."""
    return ALLOWED_TRANSITIONS.get(ComplaintStatus(current), frozenset())


def is_transition_allowed(
    current: ComplaintStatus | str,
    target: ComplaintStatus | str,
) -> bool:
    return ComplaintStatus(target) in allowed_targets(current)


def _coerce_target(target_status: ComplaintStatus | str) -> ComplaintStatus:
    try:
        return ComplaintStatus(target_status)
    except ValueError:
        raise InvalidTransition(f"Unknown status '{target_status}'")


def apply_transition(
    db: Session,
    complaint: Complaint,
    target_status: ComplaintStatus | str,
    performed_by: UUID | None,
    details: dict | None = None,
) -> bool:
    """
    Validate and apply a transition without role checks or committing.

    Callers own the capability check and the transaction. Returns False for
    the same-status no-op (nothing written), True when a transition was
    applied and its history entry flushed.

    Raises:
        InvalidTransition: target not allowed from the current status
    """
    target = _coerce_target(target_status)
    current = ComplaintStatus(complaint.status)

    if target == current:
        return False

    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot change status from '{current.value}' to '{target.value}'"
        )

    now = utcnow()
    if complaint.opened_at is None:
        # First move out of `new` stamps who picked the complaint up
        complaint.opened_at = now
        complaint.opened_by = performed_by
    if target == ComplaintStatus.RESOLVED and complaint.resolved_at is None:
        complaint.resolved_at = now

    complaint.status = target.value
    complaint.updated_at = now

    action = (
        HistoryAction.REOPENED
        if target == ComplaintStatus.REOPENED
        else HistoryAction.STATUS_CHANGED
    )
    history_service.record(
        db,
        complaint_id=complaint.id,
        action=action,
        performed_by=performed_by,
        old_value=current.value,
        new_value=target.value,
        details=details,
    )
    return True


def change_status(
    db: Session,
    complaint: Complaint,
    actor: Actor,
    target_status: ComplaintStatus | str,
    note: str | None = None,
) -> Complaint:
    """
    Staff status change.

    Same-status requests succeed without writing anything. Students cannot
    use this path at all; owners reopen through reopen_service.

    Raises:
        PermissionDenied: actor is not staff
        InvalidTransition: target not allowed from the current status
        StaleComplaint: another writer changed the complaint first
    """
    if not can_perform(actor.role, Action.CHANGE_STATUS, complaint.status):
        raise PermissionDenied(
            f"Role '{actor.role.value}' cannot change complaint status", field="status"
        )

    old_status = complaint.status
    note = note.strip() if note else None
    with complaint_mutation(db):
        applied = apply_transition(
            db,
            complaint,
            target_status,
            performed_by=actor.user_id,
            details={"note": note} if note else None,
        )

    if not applied:
        return complaint

    db.refresh(complaint)
    logger.info(
        f"Complaint {complaint.id} status {old_status} -> {complaint.status} "
        f"by {actor.role.value} {actor.user_id}"
    )
    complaint_events.publish(
        db,
        complaint_events.ComplaintEvent(
            type=(
                complaint_events.EventType.REOPENED
                if complaint.status == ComplaintStatus.REOPENED.value
                else complaint_events.EventType.STATUS_CHANGED
            ),
            complaint_id=complaint.id,
            actor_id=actor.user_id,
            payload={"from_status": old_status, "to_status": complaint.status},
        ),
    )
    return complaint
