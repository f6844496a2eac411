"""Notification-related enums."""

from enum import Enum


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    COMPLAINT_ASSIGNED = "complaint_assigned"
    STATUS_CHANGED = "status_changed"
    COMMENT_ADDED = "comment_added"
    FEEDBACK_RECEIVED = "feedback_received"
    COMPLAINT_REOPENED = "complaint_reopened"
    COMPLAINT_RATED = "complaint_rated"
    COMPLAINT_ESCALATED = "complaint_escalated"
