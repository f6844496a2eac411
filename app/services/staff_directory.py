"""Staff directory lookups (assignment and escalation targets)."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.enums import STAFF_ROLES
from app.db.models import User

_STAFF_ROLE_VALUES = [r.value for r in STAFF_ROLES]


def get_staff_member(db: Session, user_id: UUID | None) -> User | None:
    """Return the active lecturer/admin with this id, else None."""
    if user_id is None:
        return None
    return db.scalars(
        select(User).where(
            User.id == user_id,
            User.is_active.is_(True),
            User.role.in_(_STAFF_ROLE_VALUES),
        )
    ).first()


def is_staff_member(db: Session, user_id: UUID | None) -> bool:
    return get_staff_member(db, user_id) is not None


def list_staff(db: Session) -> list[User]:
    """Active lecturers and admins, by display name."""
    return list(
        db.scalars(
            select(User)
            .where(User.is_active.is_(True), User.role.in_(_STAFF_ROLE_VALUES))
            .order_by(User.display_name)
        ).all()
    )
