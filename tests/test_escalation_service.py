"""Tests for escalation rule validation, CRUD and the auto-escalation sweep."""

import pytest

from app.db.enums import (
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
    HistoryAction,
    NotificationType,
    Role,
)
from app.schemas.escalation import EscalationRuleCreate, EscalationRuleUpdate
from app.services import escalation_service, history_service, notification_service
from app.services.complaint_errors import InvalidEscalationRule, PermissionDenied


def _rule_data(target, **overrides) -> dict:
    data = {
        "category": ComplaintCategory.ACADEMIC,
        "priority": ComplaintPriority.HIGH,
        "hours_threshold": 48,
        "escalate_to": target.id,
        "is_active": True,
    }
    data.update(overrides)
    return data


def _fields(issues: list[dict]) -> list[str]:
    return [i["field"] for i in issues]


@pytest.fixture
def rule(db, admin, lecturer, actor_of):
    created, _ = escalation_service.create_rule(
        db, actor_of(admin), EscalationRuleCreate(**_rule_data(lecturer))
    )
    return created


# =============================================================================
# Validation
# =============================================================================

@pytest.mark.parametrize("hours", [None, 0, -5, 8761, True, 2.5])
def test_invalid_hours_are_errors(db, lecturer, hours):
    errors, _ = escalation_service.validate_escalation_rule(
        db, _rule_data(lecturer, hours_threshold=hours)
    )
    assert _fields(errors) == ["hours_threshold"]


def test_valid_rule_has_no_issues(db, lecturer):
    errors, warnings = escalation_service.validate_escalation_rule(db, _rule_data(lecturer))
    assert errors == []
    assert warnings == []


@pytest.mark.parametrize(
    "priority,hours",
    [
        (ComplaintPriority.CRITICAL, 25),
        (ComplaintPriority.HIGH, 73),
        (ComplaintPriority.MEDIUM, 169),
    ],
)
def test_slow_threshold_for_priority_is_a_warning(db, lecturer, priority, hours):
    errors, warnings = escalation_service.validate_escalation_rule(
        db, _rule_data(lecturer, priority=priority, hours_threshold=hours)
    )
    assert errors == []
    assert _fields(warnings) == ["hours_threshold"]


def test_very_short_and_very_long_thresholds_warn(db, lecturer):
    _, short = escalation_service.validate_escalation_rule(
        db, _rule_data(lecturer, hours_threshold=1)
    )
    assert any("< 2 hours" in w["message"] for w in short)

    _, long_low = escalation_service.validate_escalation_rule(
        db, _rule_data(lecturer, priority=ComplaintPriority.LOW, hours_threshold=1000)
    )
    assert long_low == []

    _, long_medium = escalation_service.validate_escalation_rule(
        db, _rule_data(lecturer, priority=ComplaintPriority.MEDIUM, hours_threshold=1000)
    )
    assert any("30 days" in w["message"] for w in long_medium)


def test_inactive_rule_warns(db, lecturer):
    _, warnings = escalation_service.validate_escalation_rule(
        db, _rule_data(lecturer, is_active=False)
    )
    assert _fields(warnings) == ["is_active"]


def test_escalation_target_must_be_active_staff(db, student, make_user):
    errors, _ = escalation_service.validate_escalation_rule(db, _rule_data(student))
    assert _fields(errors) == ["escalate_to"]

    inactive = make_user(Role.ADMIN, is_active=False)
    errors, _ = escalation_service.validate_escalation_rule(db, _rule_data(inactive))
    assert _fields(errors) == ["escalate_to"]


def test_all_errors_reported_together(db):
    errors, _ = escalation_service.validate_escalation_rule(
        db, {"category": None, "priority": None, "hours_threshold": 0, "escalate_to": None}
    )
    assert _fields(errors) == ["category", "priority", "hours_threshold", "escalate_to"]


def test_duplicate_active_rule_is_an_error(db, lecturer, rule):
    errors, _ = escalation_service.validate_escalation_rule(db, _rule_data(lecturer))
    assert _fields(errors) == ["duplicate"]

    # The rule itself is not a duplicate of itself
    errors, _ = escalation_service.validate_escalation_rule(
        db, _rule_data(lecturer), rule_id=rule.id
    )
    assert errors == []

    # Inactive rules never clash
    errors, _ = escalation_service.validate_escalation_rule(
        db, _rule_data(lecturer, is_active=False)
    )
    assert errors == []


# =============================================================================
# CRUD
# =============================================================================

def test_only_admins_manage_rules(db, lecturer, actor_of):
    with pytest.raises(PermissionDenied):
        escalation_service.create_rule(
            db, actor_of(lecturer), EscalationRuleCreate(**_rule_data(lecturer))
        )


def test_create_rule_returns_warnings(db, admin, lecturer, actor_of):
    rule, warnings = escalation_service.create_rule(
        db,
        actor_of(admin),
        EscalationRuleCreate(**_rule_data(lecturer, priority=ComplaintPriority.CRITICAL)),
    )
    assert rule.created_by == admin.id
    assert _fields(warnings) == ["hours_threshold"]


def test_create_invalid_rule_raises_with_errors(db, admin, student, actor_of):
    with pytest.raises(InvalidEscalationRule) as exc:
        escalation_service.create_rule(
            db,
            actor_of(admin),
            EscalationRuleCreate(**_rule_data(student, hours_threshold=0)),
        )
    assert _fields(exc.value.errors) == ["hours_threshold", "escalate_to"]
    assert exc.value.to_dict()["errors"] == exc.value.errors
    assert escalation_service.list_rules(db) == []


def test_update_rule_validates_merged_rule(db, admin, actor_of, rule):
    updated, _ = escalation_service.update_rule(
        db, actor_of(admin), rule, EscalationRuleUpdate(hours_threshold=24)
    )
    assert updated.hours_threshold == 24

    with pytest.raises(InvalidEscalationRule):
        escalation_service.update_rule(
            db, actor_of(admin), rule, EscalationRuleUpdate(hours_threshold=0)
        )
    db.refresh(rule)
    assert rule.hours_threshold == 24


def test_reactivating_clashing_rule_is_rejected(db, admin, lecturer, actor_of, rule):
    staff = actor_of(admin)
    escalation_service.set_rule_active(db, staff, rule, False)
    replacement, _ = escalation_service.create_rule(
        db, staff, EscalationRuleCreate(**_rule_data(lecturer, hours_threshold=24))
    )
    assert replacement.is_active

    with pytest.raises(InvalidEscalationRule) as exc:
        escalation_service.set_rule_active(db, staff, rule, True)
    assert exc.value.field == "duplicate"


def test_delete_rule(db, admin, actor_of, rule):
    escalation_service.delete_rule(db, actor_of(admin), rule)
    assert escalation_service.list_rules(db) == []


# =============================================================================
# Sweep
# =============================================================================

def test_overdue_complaint_is_escalated_and_assigned(
    db, student, lecturer, insert_complaint, rule
):
    overdue = insert_complaint(student, ComplaintStatus.NEW, age_hours=50)

    result = escalation_service.run_auto_escalation(db)

    assert result["escalated"] == 1
    assert result["escalated_ids"] == [str(overdue.id)]
    db.refresh(overdue)
    assert overdue.escalation_level == 1
    assert overdue.escalated_at is not None
    assert overdue.assigned_to == lecturer.id

    entries = history_service.list_history(db, overdue.id)
    assert [e.action for e in entries] == [
        HistoryAction.ASSIGNED.value,
        HistoryAction.ESCALATED.value,
    ]
    assert entries[0].performed_by is None
    assert entries[0].details == {"auto_escalated": True, "rule_id": str(rule.id)}
    assert entries[1].new_value == "Level 1"
    assert entries[1].details["hours_threshold"] == 48
    assert history_service.verify_assignment_consistency(db, overdue)

    notes = notification_service.get_notifications(db, lecturer.id)
    assert [n.type for n in notes] == [NotificationType.COMPLAINT_ESCALATED.value]


def test_sweep_skips_fresh_progressed_and_already_escalated(
    db, student, insert_complaint, rule
):
    insert_complaint(student, ComplaintStatus.NEW, age_hours=2)
    insert_complaint(student, ComplaintStatus.IN_PROGRESS, age_hours=100)
    insert_complaint(
        student, ComplaintStatus.NEW, age_hours=100, priority=ComplaintPriority.LOW
    )
    overdue = insert_complaint(student, ComplaintStatus.OPENED, age_hours=100)

    first = escalation_service.run_auto_escalation(db)
    second = escalation_service.run_auto_escalation(db)

    assert first["escalated_ids"] == [str(overdue.id)]
    assert second["escalated"] == 0


def test_inactive_rules_do_not_run(db, admin, student, actor_of, insert_complaint, rule):
    escalation_service.set_rule_active(db, actor_of(admin), rule, False)
    insert_complaint(student, ComplaintStatus.NEW, age_hours=100)

    result = escalation_service.run_auto_escalation(db)

    assert result == {"rules_checked": 0, "escalated": 0, "failed": 0, "escalated_ids": []}


def test_rule_with_deactivated_target_is_skipped(db, student, lecturer, insert_complaint, rule):
    lecturer.is_active = False
    db.commit()
    insert_complaint(student, ComplaintStatus.NEW, age_hours=100)

    result = escalation_service.run_auto_escalation(db)

    assert result["rules_checked"] == 1
    assert result["escalated"] == 0


def test_batch_limit(db, student, insert_complaint, rule):
    for _ in range(3):
        insert_complaint(student, ComplaintStatus.NEW, age_hours=100)

    result = escalation_service.run_auto_escalation(db, batch_limit=2)

    assert result["escalated"] == 2
