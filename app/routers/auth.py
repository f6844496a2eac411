"""Auth router - session introspection."""

from fastapi import APIRouter, Depends

from app.core.deps import get_current_session
from app.schemas.auth import MeResponse, UserSession

router = APIRouter()


@router.get("/me", response_model=MeResponse)
def me(session: UserSession = Depends(get_current_session)):
    """Return the current session's user and role."""
    return MeResponse(
        user_id=session.user_id,
        email=session.email,
        display_name=session.display_name,
        role=session.role,
    )
