"""Escalation rules and the auto-escalation sweep.

A rule says: complaints of (category, priority) still waiting in new/opened
after `hours_threshold` hours go to `escalate_to`. Only one active rule may
exist per (category, priority).
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.capabilities import Action, can_perform
from app.core.config import settings
from app.db.enums import ComplaintPriority, ComplaintStatus, HistoryAction
from app.db.models import Complaint, EscalationRule
from app.db.types import utcnow
from app.schemas.auth import Actor
from app.schemas.escalation import EscalationRuleCreate, EscalationRuleUpdate
from app.services import complaint_events, complaint_service, history_service, staff_directory
from app.services.assignment_service import apply_assignment
from app.services.complaint_errors import (
    ComplaintServiceError,
    InvalidEscalationRule,
    PermissionDenied,
)
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)

MAX_HOURS_THRESHOLD = 8760  # one year
ESCALATABLE_STATUSES = (ComplaintStatus.NEW.value, ComplaintStatus.OPENED.value)

# Recommended upper bounds per priority; exceeding them is a warning only
RECOMMENDED_MAX_HOURS = {
    ComplaintPriority.CRITICAL.value: 24,
    ComplaintPriority.HIGH.value: 72,
    ComplaintPriority.MEDIUM.value: 168,
}


def _issue(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


# =============================================================================
# Validation
# =============================================================================

def _validate_hours(hours, priority: str | None) -> tuple[list[dict], list[dict]]:
    errors: list[dict] = []
    warnings: list[dict] = []

    if hours is None:
        return [_issue("hours_threshold", "Time threshold is required")], warnings
    if isinstance(hours, bool) or not isinstance(hours, int):
        return [_issue("hours_threshold", "Time threshold must be a whole number")], warnings
    if hours <= 0:
        return [_issue("hours_threshold", "Time threshold must be greater than 0")], warnings
    if hours > MAX_HOURS_THRESHOLD:
        return [
            _issue(
                "hours_threshold",
                f"Time threshold cannot exceed 1 year ({MAX_HOURS_THRESHOLD} hours)",
            )
        ], warnings

    recommended = RECOMMENDED_MAX_HOURS.get(priority or "")
    if recommended is not None and hours > recommended:
        warnings.append(
            _issue(
                "hours_threshold",
                f"{priority.capitalize()} priority complaints typically require faster "
                f"escalation (recommended: <= {recommended} hours)",
            )
        )
    if hours < 2:
        warnings.append(
            _issue(
                "hours_threshold",
                "Very short escalation thresholds (< 2 hours) may result in premature escalations",
            )
        )
    if hours > 720 and priority != ComplaintPriority.LOW.value:
        warnings.append(
            _issue(
                "hours_threshold",
                "Very long escalation thresholds (> 30 days) may not be effective "
                "for non-low priority complaints",
            )
        )
    return errors, warnings


def validate_escalation_rule(
    db: Session,
    data: dict,
    rule_id: UUID | None = None,
) -> tuple[list[dict], list[dict]]:
    """
    Validate a complete rule configuration.

    Args:
        db: Database session
        data: category, priority, hours_threshold, escalate_to, is_active
        rule_id: rule being edited, excluded from the duplicate check

    Returns:
        (errors, warnings); the rule is valid when errors is empty
    """
    errors: list[dict] = []
    warnings: list[dict] = []

    category = _enum_value(data.get("category"))
    priority = _enum_value(data.get("priority"))
    is_active = data.get("is_active", True)

    if not category:
        errors.append(_issue("category", "Category is required"))
    if not priority:
        errors.append(_issue("priority", "Priority is required"))

    hour_errors, hour_warnings = _validate_hours(data.get("hours_threshold"), priority)
    errors.extend(hour_errors)
    warnings.extend(hour_warnings)

    escalate_to = data.get("escalate_to")
    if not escalate_to:
        errors.append(_issue("escalate_to", "Please select a user to escalate to"))
    elif not staff_directory.is_staff_member(db, escalate_to):
        errors.append(
            _issue(
                "escalate_to",
                "Complaints can only be escalated to active lecturers or admins",
            )
        )

    if is_active and category and priority:
        query = select(EscalationRule.id).where(
            EscalationRule.category == category,
            EscalationRule.priority == priority,
            EscalationRule.is_active.is_(True),
        )
        if rule_id:
            query = query.where(EscalationRule.id != rule_id)
        if db.scalar(query):
            errors.append(
                _issue(
                    "duplicate",
                    "An active escalation rule already exists for this category "
                    "and priority combination",
                )
            )

    if is_active is False:
        warnings.append(
            _issue(
                "is_active",
                "This rule is inactive and will not be applied until activated",
            )
        )

    return errors, warnings


# =============================================================================
# CRUD (admin only)
# =============================================================================

def _require_rule_manager(actor: Actor) -> None:
    if not can_perform(actor.role, Action.MANAGE_ESCALATION_RULES):
        raise PermissionDenied("Only admins can manage escalation rules")


def _save(db: Session, rule: EscalationRule) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise InvalidEscalationRule(
            "Escalation rule conflicts with an existing active rule",
            [_issue("duplicate", "An active rule already exists for this category and priority")],
        ) from e
    db.refresh(rule)


def list_rules(db: Session) -> list[EscalationRule]:
    return list(
        db.scalars(
            select(EscalationRule).order_by(
                EscalationRule.category, EscalationRule.priority, EscalationRule.created_at
            )
        ).all()
    )


def get_rule(db: Session, rule_id: UUID) -> EscalationRule | None:
    return db.get(EscalationRule, rule_id)


def create_rule(
    db: Session,
    actor: Actor,
    data: EscalationRuleCreate,
) -> tuple[EscalationRule, list[dict]]:
    """
    Create a rule. Returns the rule and any non-blocking warnings.

    Raises:
        PermissionDenied: actor is not an admin
        InvalidEscalationRule: validation errors (all of them)
    """
    _require_rule_manager(actor)

    payload = data.model_dump()
    errors, warnings = validate_escalation_rule(db, payload)
    if errors:
        raise InvalidEscalationRule("Escalation rule is invalid", errors)

    rule = EscalationRule(
        category=data.category.value,
        priority=data.priority.value,
        hours_threshold=data.hours_threshold,
        escalate_to=data.escalate_to,
        is_active=data.is_active,
        created_by=actor.user_id,
    )
    db.add(rule)
    _save(db, rule)
    logger.info(f"Escalation rule {rule.id} created for {rule.category}/{rule.priority}")
    return rule, warnings


def update_rule(
    db: Session,
    actor: Actor,
    rule: EscalationRule,
    data: EscalationRuleUpdate,
) -> tuple[EscalationRule, list[dict]]:
    """
    Partially update a rule; the merged result is validated as a whole.

    Raises:
        PermissionDenied: actor is not an admin
        InvalidEscalationRule: validation errors
    """
    _require_rule_manager(actor)

    updates = {
        k: _enum_value(v) for k, v in data.model_dump(exclude_unset=True).items()
    }
    merged = {
        "category": rule.category,
        "priority": rule.priority,
        "hours_threshold": rule.hours_threshold,
        "escalate_to": rule.escalate_to,
        "is_active": rule.is_active,
        **updates,
    }
    errors, warnings = validate_escalation_rule(db, merged, rule_id=rule.id)
    if errors:
        raise InvalidEscalationRule("Escalation rule is invalid", errors)

    for field, value in updates.items():
        setattr(rule, field, value)
    rule.updated_at = utcnow()
    _save(db, rule)
    return rule, warnings


def set_rule_active(
    db: Session,
    actor: Actor,
    rule: EscalationRule,
    is_active: bool,
) -> EscalationRule:
    """Activate or deactivate a rule (activation re-checks uniqueness)."""
    rule, _ = update_rule(db, actor, rule, EscalationRuleUpdate(is_active=is_active))
    return rule


def delete_rule(db: Session, actor: Actor, rule: EscalationRule) -> None:
    _require_rule_manager(actor)
    rule_id = rule.id
    db.delete(rule)
    db.commit()
    logger.info(f"Escalation rule {rule_id} deleted")


# =============================================================================
# Auto-escalation sweep
# =============================================================================

def _candidate_ids(
    db: Session,
    rule: EscalationRule,
    cutoff: datetime,
    limit: int,
) -> list[UUID]:
    return list(
        db.scalars(
            select(Complaint.id)
            .where(
                Complaint.category == rule.category,
                Complaint.priority == rule.priority,
                Complaint.status.in_(ESCALATABLE_STATUSES),
                Complaint.escalated_at.is_(None),
                Complaint.created_at < cutoff,
            )
            .order_by(Complaint.created_at.asc())
            .limit(limit)
        ).all()
    )


def escalate_complaint(
    db: Session,
    complaint: Complaint,
    rule: EscalationRule,
    now: datetime,
) -> bool:
    """
    Escalate one complaint under `rule` and commit.

    Returns False if the complaint no longer qualifies (another writer got
    there first). Assignment goes through apply_assignment so the
    assigned_to/history cross-check keeps holding.
    """
    if complaint.status not in ESCALATABLE_STATUSES or complaint.escalated_at is not None:
        return False

    with complaint_mutation(db):
        level = complaint.escalation_level + 1
        complaint.escalated_at = now
        complaint.escalation_level = level
        complaint.updated_at = now
        apply_assignment(
            db,
            complaint,
            rule.escalate_to,
            performed_by=None,
            details={"auto_escalated": True, "rule_id": str(rule.id)},
        )
        history_service.record(
            db,
            complaint_id=complaint.id,
            action=HistoryAction.ESCALATED,
            performed_by=None,
            old_value=None,
            new_value=f"Level {level}",
            details={
                "escalation_level": level,
                "rule_id": str(rule.id),
                "hours_threshold": rule.hours_threshold,
                "auto_escalated": True,
            },
        )

    complaint_events.publish(
        db,
        complaint_events.ComplaintEvent(
            type=complaint_events.EventType.ESCALATED,
            complaint_id=complaint.id,
            actor_id=None,
            payload={"escalation_level": level, "rule_id": str(rule.id)},
        ),
    )
    return True


def run_auto_escalation(
    db: Session,
    now: datetime | None = None,
    batch_limit: int | None = None,
) -> dict:
    """
    Apply every active rule once.

    Each complaint is its own transaction; a failure is logged and the sweep
    moves on.

    Returns:
        {"rules_checked", "escalated", "failed", "escalated_ids"}
    """
    now = now or utcnow()
    limit = batch_limit or settings.ESCALATION_BATCH_LIMIT
    rules = db.scalars(
        select(EscalationRule).where(EscalationRule.is_active.is_(True))
    ).all()

    escalated_ids: list[str] = []
    failed = 0

    for rule in rules:
        if not staff_directory.is_staff_member(db, rule.escalate_to):
            logger.warning(
                f"Skipping escalation rule {rule.id}: target {rule.escalate_to} is not active staff"
            )
            continue

        cutoff = now - timedelta(hours=rule.hours_threshold)
        for complaint_id in _candidate_ids(db, rule, cutoff, limit):
            try:
                complaint = complaint_service.get_complaint_for_update(db, complaint_id)
                if escalate_complaint(db, complaint, rule, now):
                    escalated_ids.append(str(complaint_id))
            except (ComplaintServiceError, SQLAlchemyError) as e:
                db.rollback()
                failed += 1
                logger.error(f"Auto-escalation failed for complaint {complaint_id}: {e}")

    logger.info(
        f"Auto-escalation complete: {len(rules)} rule(s), "
        f"{len(escalated_ids)} escalated, {failed} failed"
    )
    return {
        "rules_checked": len(rules),
        "escalated": len(escalated_ids),
        "failed": failed,
        "escalated_ids": escalated_ids,
    }
