"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import ComplaintStatus
from app.db.types import utcnow

if TYPE_CHECKING:
    from app.db.models import User


class Complaint(Base):
    """
    Aggregate root for a student complaint.

    Lifecycle timestamps (opened_at, resolved_at, escalated_at) are set once at
    the corresponding transition and never cleared. `version` is the optimistic
    concurrency counter; a flush against a stale version raises StaleDataError.
    """

    __tablename__ = "complaints"
    __table_args__ = (
        Index("ix_complaints_status_created", "status", "created_at"),
        Index("ix_complaints_student", "student_id", "created_at"),
        Index("ix_complaints_assigned_to", "assigned_to"),
        Index("ix_complaints_escalation_scan", "category", "priority", "status"),
        CheckConstraint("escalation_level >= 0", name="escalation_level_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Owner is always stored; anonymity is applied at read time
    student_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    is_anonymous: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    is_draft: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)  # ComplaintCategory
    priority: Mapped[str] = mapped_column(String(20), nullable=False)  # ComplaintPriority
    status: Mapped[str] = mapped_column(
        String(20), default=ComplaintStatus.NEW.value, nullable=False
    )  # ComplaintStatus

    # Single write path: assignment_service
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    opened_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    escalation_level: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
    opened_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    escalated_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    student: Mapped["User | None"] = relationship(foreign_keys=[student_id])
    assignee: Mapped["User | None"] = relationship(foreign_keys=[assigned_to])
    tags: Mapped[list["ComplaintTag"]] = relationship(
        back_populates="complaint",
        cascade="all, delete-orphan",
        order_by="ComplaintTag.created_at",
    )

    @property
    def tag_names(self) -> list[str]:
        return [t.tag_name for t in self.tags]

    def __repr__(self) -> str:
        return f"<Complaint {self.id} [{self.status}]>"


class ComplaintTag(Base):
    """Free-form label attached to a complaint by staff."""

    __tablename__ = "complaint_tags"
    __table_args__ = (
        UniqueConstraint("complaint_id", "tag_name", name="uq_complaint_tags_complaint_tag"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )
    tag_name: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    complaint: Mapped["Complaint"] = relationship(back_populates="tags")


class ComplaintComment(Base):
    """
    Discussion entry on a complaint.

    is_internal=True marks a staff-only note. Visibility is computed at read
    time (visibility_service); there is never a second filtered copy.
    """

    __tablename__ = "complaint_comments"
    __table_args__ = (
        Index("ix_complaint_comments_complaint_created", "complaint_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    author: Mapped["User"] = relationship()


class ComplaintFeedback(Base):
    """Formal response from a lecturer/admin to the complaint owner."""

    __tablename__ = "complaint_feedback"
    __table_args__ = (
        Index("ix_complaint_feedback_complaint_created", "complaint_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )
    lecturer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    lecturer: Mapped["User | None"] = relationship()


class ComplaintRating(Base):
    """
    Satisfaction rating from the complaint owner.

    Insert-only; at most one per (complaint, student).
    """

    __tablename__ = "complaint_ratings"
    __table_args__ = (
        UniqueConstraint(
            "complaint_id", "student_id", name="uq_complaint_ratings_complaint_student"
        ),
        CheckConstraint("rating >= 1 AND rating <= 5", name="rating_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    feedback_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
