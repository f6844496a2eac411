"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from an external scheduler (cron, GH Actions, platform jobs).
"""

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db
from app.schemas.escalation import EscalationRunResult
from app.services import escalation_service

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)) -> None:
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if not hmac.compare_digest(x_internal_secret, expected):
        raise HTTPException(status_code=403, detail="Invalid internal secret")


@router.post(
    "/escalations",
    response_model=EscalationRunResult,
    dependencies=[Depends(verify_internal_secret)],
)
def run_escalations(db: Session = Depends(get_db)):
    """
    Auto-escalation sweep.

    Escalates complaints that sat in new/opened longer than their rule's
    threshold. Safe to call repeatedly: escalated complaints are skipped.
    """
    return escalation_service.run_auto_escalation(db)
