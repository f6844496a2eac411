"""Pydantic schemas for escalation rules."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from app.db.enums import ComplaintCategory, ComplaintPriority


class EscalationRuleCreate(BaseModel):
    """
    New rule. hours_threshold is validated by the escalation service so
    the response lists every field error at once.
    """

    category: ComplaintCategory
    priority: ComplaintPriority
    hours_threshold: int | None = None
    escalate_to: UUID | None = None
    is_active: bool = True


class EscalationRuleUpdate(BaseModel):
    category: ComplaintCategory | None = None
    priority: ComplaintPriority | None = None
    hours_threshold: int | None = None
    escalate_to: UUID | None = None
    is_active: bool | None = None


class EscalationRuleRead(BaseModel):
    id: UUID
    category: str
    priority: str
    hours_threshold: int
    escalate_to: UUID
    is_active: bool
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RuleIssue(BaseModel):
    field: str
    message: str


class EscalationRuleSaved(BaseModel):
    """Saved rule plus non-blocking warnings."""

    rule: EscalationRuleRead
    warnings: list[RuleIssue] = []


class EscalationRunResult(BaseModel):
    rules_checked: int
    escalated: int
    failed: int
    escalated_ids: list[str] = []
