"""Role/status capability table for complaint actions.

Every complaint service consults `can_perform` before checking any other
precondition, so "who may do what, in which status" lives in one place
instead of being re-derived at each call site.
"""

from dataclasses import dataclass, field
from enum import Enum

from app.db.enums import (
    ROLES_CAN_MANAGE_ESCALATION,
    ROLES_CAN_SEE_ANONYMOUS_OWNER,
    STAFF_ROLES,
    ComplaintStatus,
    Role,
)


class Action(str, Enum):
    """Complaint actions gated by role and status."""

    CHANGE_STATUS = "change_status"
    ASSIGN = "assign"
    REOPEN = "reopen"
    RATE = "rate"
    ADD_COMMENT = "add_comment"
    ADD_INTERNAL_NOTE = "add_internal_note"
    VIEW_INTERNAL_NOTES = "view_internal_notes"
    VIEW_ANONYMOUS_IDENTITY = "view_anonymous_identity"
    ADD_FEEDBACK = "add_feedback"
    ADD_TAGS = "add_tags"
    SUBMIT_DRAFT = "submit_draft"
    EDIT_DRAFT = "edit_draft"
    MANAGE_ESCALATION_RULES = "manage_escalation_rules"
    BULK_UPDATE = "bulk_update"
    VIEW_ALL_COMPLAINTS = "view_all_complaints"
    CREATE_COMPLAINT = "create_complaint"


@dataclass(frozen=True)
class Capability:
    """
    Roles allowed to perform an action and the statuses it applies in.

    `statuses=None` means any status except those in `excluded`.
    """

    roles: frozenset[Role]
    statuses: frozenset[ComplaintStatus] | None = None
    excluded: frozenset[ComplaintStatus] = field(default_factory=frozenset)

    def allows_status(self, status: ComplaintStatus) -> bool:
        if status in self.excluded:
            return False
        return self.statuses is None or status in self.statuses


_STUDENT = frozenset({Role.STUDENT})
_EVERYONE = frozenset(Role)
_DRAFTS = frozenset({ComplaintStatus.DRAFT})


CAPABILITIES: dict[Action, Capability] = {
    # Drafts are rejected by the transition table, not the role check
    Action.CHANGE_STATUS: Capability(STAFF_ROLES),
    Action.ASSIGN: Capability(STAFF_ROLES, excluded=_DRAFTS),
    Action.REOPEN: Capability(
        _STUDENT,
        statuses=frozenset({ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED}),
    ),
    # Once-resolved history is checked by the rating gate itself
    Action.RATE: Capability(
        _STUDENT,
        statuses=frozenset(
            {
                ComplaintStatus.RESOLVED,
                ComplaintStatus.CLOSED,
                ComplaintStatus.REOPENED,
            }
        ),
    ),
    Action.ADD_COMMENT: Capability(_EVERYONE, excluded=_DRAFTS),
    Action.ADD_INTERNAL_NOTE: Capability(STAFF_ROLES, excluded=_DRAFTS),
    Action.VIEW_INTERNAL_NOTES: Capability(STAFF_ROLES),
    Action.VIEW_ANONYMOUS_IDENTITY: Capability(ROLES_CAN_SEE_ANONYMOUS_OWNER),
    Action.ADD_FEEDBACK: Capability(STAFF_ROLES, excluded=_DRAFTS),
    Action.ADD_TAGS: Capability(STAFF_ROLES, excluded=_DRAFTS),
    Action.SUBMIT_DRAFT: Capability(_STUDENT, statuses=_DRAFTS),
    Action.EDIT_DRAFT: Capability(_STUDENT, statuses=_DRAFTS),
    Action.MANAGE_ESCALATION_RULES: Capability(ROLES_CAN_MANAGE_ESCALATION),
    Action.BULK_UPDATE: Capability(STAFF_ROLES),
    Action.VIEW_ALL_COMPLAINTS: Capability(STAFF_ROLES),
    Action.CREATE_COMPLAINT: Capability(_STUDENT),
}


def _coerce_role(role: Role | str) -> Role | None:
    if isinstance(role, Role):
        return role
    if Role.has_value(role):
        return Role(role)
    return None


def _coerce_status(status: ComplaintStatus | str) -> ComplaintStatus | None:
    if isinstance(status, ComplaintStatus):
        return status
    try:
        return ComplaintStatus(status)
    except ValueError:
        return None


def can_perform(
    actor_role: Role | str,
    action: Action | str,
    complaint_status: ComplaintStatus | str | None = None,
) -> bool:
    """
    Return True if `actor_role` may perform `action` on a complaint in
    `complaint_status`.

    Pure function. When `complaint_status` is None only the role half of
    the rule is evaluated (list screens, rule management). Unknown roles,
    actions or statuses are never allowed.
    """
    role = _coerce_role(actor_role)
    if role is None:
        return False

    try:
        capability = CAPABILITIES[Action(action)]
    except ValueError:
        return False

    if role not in capability.roles:
        return False

    if complaint_status is None:
        return True

    status = _coerce_status(complaint_status)
    if status is None:
        return False
    return capability.allows_status(status)
