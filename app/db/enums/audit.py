"""Complaint history (audit) enums."""

from enum import Enum


class HistoryAction(str, Enum):
    """
    Kinds of complaint history entries.

    One entry is appended per applied mutation; entries are never
    updated or deleted.
    """

    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"  # First assignment
    REASSIGNED = "reassigned"  # Every later change of assignee
    COMMENT_ADDED = "comment_added"
    FEEDBACK_ADDED = "feedback_added"
    REOPENED = "reopened"
    ESCALATED = "escalated"
    RATED = "rated"
    TAGS_ADDED = "tags_added"


# Actions whose new_value is the assignee id
ASSIGNMENT_ACTIONS = {HistoryAction.ASSIGNED, HistoryAction.REASSIGNED}
