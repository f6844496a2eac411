"""SQLAlchemy ORM models for the complaint portal."""

from app.db.models.audit import ComplaintHistory, ImmutableHistoryError
from app.db.models.auth import User
from app.db.models.complaints import (
    Complaint,
    ComplaintComment,
    ComplaintFeedback,
    ComplaintRating,
    ComplaintTag,
)
from app.db.models.escalation import EscalationRule
from app.db.models.notifications import Notification

__all__ = [
    "Complaint",
    "ComplaintComment",
    "ComplaintFeedback",
    "ComplaintHistory",
    "ComplaintRating",
    "ComplaintTag",
    "EscalationRule",
    "ImmutableHistoryError",
    "Notification",
    "User",
]
