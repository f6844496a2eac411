"""Escalation rules router (admin only)."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_roles
from app.db.enums import ROLES_CAN_MANAGE_ESCALATION
from app.schemas.auth import UserSession
from app.schemas.escalation import (
    EscalationRuleCreate,
    EscalationRuleRead,
    EscalationRuleSaved,
    EscalationRuleUpdate,
    RuleIssue,
)
from app.services import escalation_service

router = APIRouter()

require_rule_manager = require_roles(list(ROLES_CAN_MANAGE_ESCALATION))


def _get_rule_or_404(db: Session, rule_id: UUID):
    rule = escalation_service.get_rule(db, rule_id)
    if not rule:
        raise HTTPException(status_code=404, detail="Escalation rule not found")
    return rule


def _saved(rule, warnings: list[dict]) -> EscalationRuleSaved:
    return EscalationRuleSaved(
        rule=EscalationRuleRead.model_validate(rule),
        warnings=[RuleIssue(**w) for w in warnings],
    )


@router.get("", response_model=list[EscalationRuleRead])
def list_rules(
    session: UserSession = Depends(require_rule_manager),
    db: Session = Depends(get_db),
):
    return escalation_service.list_rules(db)


@router.post(
    "",
    response_model=EscalationRuleSaved,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_rule(
    data: EscalationRuleCreate,
    session: UserSession = Depends(require_rule_manager),
    db: Session = Depends(get_db),
):
    """Create a rule; response carries non-blocking warnings."""
    rule, warnings = escalation_service.create_rule(db, session.actor, data)
    return _saved(rule, warnings)


@router.patch(
    "/{rule_id}",
    response_model=EscalationRuleSaved,
    dependencies=[Depends(require_csrf_header)],
)
def update_rule(
    rule_id: UUID,
    data: EscalationRuleUpdate,
    session: UserSession = Depends(require_rule_manager),
    db: Session = Depends(get_db),
):
    rule = _get_rule_or_404(db, rule_id)
    rule, warnings = escalation_service.update_rule(db, session.actor, rule, data)
    return _saved(rule, warnings)


@router.post(
    "/{rule_id}/toggle",
    response_model=EscalationRuleRead,
    dependencies=[Depends(require_csrf_header)],
)
def toggle_rule(
    rule_id: UUID,
    session: UserSession = Depends(require_rule_manager),
    db: Session = Depends(get_db),
):
    """Flip is_active (activation re-checks the one-active-rule constraint)."""
    rule = _get_rule_or_404(db, rule_id)
    return escalation_service.set_rule_active(db, session.actor, rule, not rule.is_active)


@router.delete(
    "/{rule_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_rule(
    rule_id: UUID,
    session: UserSession = Depends(require_rule_manager),
    db: Session = Depends(get_db),
):
    rule = _get_rule_or_404(db, rule_id)
    escalation_service.delete_rule(db, session.actor, rule)
    return Response(status_code=204)
