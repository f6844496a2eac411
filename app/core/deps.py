"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.security import decode_session_token
from app.db.session import SessionLocal
from app.schemas.auth import Actor, UserSession


# Cookie and header names
COOKIE_NAME = "complaints_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed when the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Resolve the portal account behind the session cookie.

    The cookie must hold an unexpired token for an existing, active account
    whose token_version still matches (revoke-sessions bumps it).

    Raises:
        HTTPException 401: no usable session
    """
    from app.db.models import User

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.get(User, _parse_subject(payload.get("sub")))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Revoked by the revoke-sessions command
    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def _parse_subject(sub):
    try:
        return UUID(str(sub))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")


def get_current_session(
    request: Request,
    db: Session = Depends(get_db),
) -> UserSession:
    """
    Get full session context: user_id, role, email, display name.

    This is the PRIMARY auth dependency for most endpoints. The role comes
    from the user row, not the token, so role changes apply immediately.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Unknown role
    """
    from app.db.enums import Role

    user = get_current_user(request, db)

    # Role column holds something other than student/lecturer/admin
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator.",
        )

    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
    )


def get_actor(session: UserSession = Depends(get_current_session)) -> Actor:
    """Intent identity for complaint services."""
    return session.actor


def require_roles(allowed_roles: list):
    """
    Build a dependency that admits only the given portal roles.

    Used by the escalation rule routes, which are admin only; complaint
    routes check capabilities in the services instead.
    """
    def dependency(request: Request, db: Session = Depends(get_db)) -> UserSession:
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action",
            )
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Reject cookie-authenticated writes that lack the X-Requested-With header.

    Raises:
        HTTPException 403: header missing or wrong
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
