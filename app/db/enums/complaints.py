"""Complaint-related enums."""

from enum import Enum


class ComplaintStatus(str, Enum):
    """
    Complaint lifecycle status.

    draft → (submit) → new → opened → in_progress → resolved → closed
    resolved/closed → reopened → in_progress → resolved ...
    """

    DRAFT = "draft"
    NEW = "new"
    OPENED = "opened"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REOPENED = "reopened"


class ComplaintCategory(str, Enum):
    ACADEMIC = "academic"
    FACILITIES = "facilities"
    HARASSMENT = "harassment"
    COURSE_CONTENT = "course_content"
    ADMINISTRATIVE = "administrative"
    OTHER = "other"


class ComplaintPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
