"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import TIMESTAMP, ForeignKey, Index, String, Text, Uuid, event, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.types import JSONType, SequenceKey, utcnow

if TYPE_CHECKING:
    from app.db.models import User


class ComplaintHistory(Base):
    """
    Append-only complaint audit trail.

    One row per applied mutation. The integer primary key is the insertion
    sequence and breaks ties between entries with equal created_at.

    Rows are never updated or deleted through the ORM (see listeners below).
    """

    __tablename__ = "complaint_history"
    __table_args__ = (
        Index("ix_complaint_history_timeline", "complaint_id", "created_at", "id"),
        Index("ix_complaint_history_action", "complaint_id", "action"),
    )

    id: Mapped[int] = mapped_column(SequenceKey, primary_key=True, autoincrement=True)
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(30), nullable=False)  # HistoryAction
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    performed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,  # System events have no actor
    )
    details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    actor: Mapped["User | None"] = relationship()


class ImmutableHistoryError(RuntimeError):
    """Raised when code tries to rewrite or remove a history entry."""


@event.listens_for(ComplaintHistory, "before_update")
def _refuse_history_update(mapper, connection, target):
    raise ImmutableHistoryError(f"Complaint history entry {target.id} is immutable")


@event.listens_for(ComplaintHistory, "before_delete")
def _refuse_history_delete(mapper, connection, target):
    raise ImmutableHistoryError(f"Complaint history entry {target.id} cannot be deleted")
