"""Complaint access control - who may read a complaint at all.

Access rules:
- Staff (lecturer/admin): every submitted complaint; never another user's draft
- Students: only complaints they own (drafts included)

Finer-grained rules (internal notes, anonymous owner) are applied by the
visibility service after access is granted.
"""

from app.core.capabilities import Action, can_perform
from app.db.enums import ComplaintStatus
from app.db.models import Complaint
from app.schemas.auth import Actor
from app.services.complaint_errors import PermissionDenied


def is_owner(complaint: Complaint, actor: Actor) -> bool:
    return complaint.student_id is not None and complaint.student_id == actor.user_id


def check_complaint_access(complaint: Complaint, actor: Actor) -> None:
    """
    Raise PermissionDenied unless the actor may read this complaint.

    Args:
        complaint: The complaint being accessed
        actor: Requesting identity
    """
    if is_owner(complaint, actor):
        return

    if complaint.status == ComplaintStatus.DRAFT.value:
        raise PermissionDenied("Drafts are only visible to their author", field="id")

    if can_perform(actor.role, Action.VIEW_ALL_COMPLAINTS):
        return

    raise PermissionDenied("You do not have access to this complaint", field="id")
