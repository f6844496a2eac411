"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.db.enums import STAFF_ROLES, Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    role: str
    token_version: int


class Actor(BaseModel):
    """
    Identity + role initiating an operation.

    Every mutating complaint service takes an Actor as its intent identity.
    """
    model_config = ConfigDict(frozen=True)

    user_id: UUID
    role: Role

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class UserSession(BaseModel):
    """
    Full session context for authenticated requests.

    Returned by the get_current_session dependency.
    """
    user_id: UUID
    role: Role  # Validated enum
    email: str
    display_name: str

    @property
    def actor(self) -> Actor:
        return Actor(user_id=self.user_id, role=self.role)


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    user_id: UUID
    email: str
    display_name: str
    role: Role
