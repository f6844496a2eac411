"""Enum definitions for application constants."""

from app.db.enums.audit import ASSIGNMENT_ACTIONS, HistoryAction
from app.db.enums.auth import Role
from app.db.enums.complaints import (
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
)
from app.db.enums.notifications import NotificationType
from app.db.enums.permissions import (
    ROLES_CAN_MANAGE_ESCALATION,
    ROLES_CAN_SEE_ANONYMOUS_OWNER,
    STAFF_ROLES,
)

__all__ = [
    "ASSIGNMENT_ACTIONS",
    "ComplaintCategory",
    "ComplaintPriority",
    "ComplaintStatus",
    "HistoryAction",
    "NotificationType",
    "ROLES_CAN_MANAGE_ESCALATION",
    "ROLES_CAN_SEE_ANONYMOUS_OWNER",
    "Role",
    "STAFF_ROLES",
]
