"""Tests for complaint status transitions."""

import itertools

import pytest
from sqlalchemy import update

from app.db.enums import ComplaintStatus, HistoryAction
from app.db.models import Complaint
from app.services import complaint_service, complaint_status_service, history_service
from app.services.complaint_errors import (
    InvalidTransition,
    PermissionDenied,
    StaleComplaint,
)
from app.services.complaint_status_service import ALLOWED_TRANSITIONS

SUBMITTED = [s for s in ComplaintStatus if s != ComplaintStatus.DRAFT]


def _disallowed_pairs():
    for current, target in itertools.product(ComplaintStatus, ComplaintStatus):
        if current == target:
            continue
        if target not in ALLOWED_TRANSITIONS[current]:
            yield current, target


@pytest.mark.parametrize("current,target", list(_disallowed_pairs()))
def test_disallowed_transition_changes_nothing(
    db, student, lecturer, actor_of, insert_complaint, current, target
):
    complaint = insert_complaint(student, current)
    before = history_service.list_history(db, complaint.id)

    with pytest.raises(InvalidTransition) as exc:
        complaint_status_service.change_status(db, complaint, actor_of(lecturer), target)

    assert exc.value.field == "status"
    db.refresh(complaint)
    assert complaint.status == current.value
    assert history_service.list_history(db, complaint.id) == before


def test_draft_has_no_outward_transitions():
    assert ALLOWED_TRANSITIONS[ComplaintStatus.DRAFT] == frozenset()


def test_same_status_is_a_silent_no_op(db, student, lecturer, actor_of, make_complaint):
    complaint = make_complaint(student)
    before = len(history_service.list_history(db, complaint.id))

    result = complaint_status_service.change_status(
        db, complaint, actor_of(lecturer), ComplaintStatus.NEW
    )

    assert result.status == ComplaintStatus.NEW.value
    assert len(history_service.list_history(db, complaint.id)) == before


def test_status_change_writes_one_entry_with_note(
    db, student, lecturer, actor_of, make_complaint
):
    complaint = make_complaint(student)

    complaint_status_service.change_status(
        db, complaint, actor_of(lecturer), ComplaintStatus.IN_PROGRESS, note="  On it  "
    )

    entries = history_service.list_history(db, complaint.id)
    last = entries[-1]
    assert last.action == HistoryAction.STATUS_CHANGED.value
    assert last.old_value == "new"
    assert last.new_value == "in_progress"
    assert last.details == {"note": "On it"}
    assert last.performed_by == lecturer.id


def test_students_cannot_change_status(db, student, actor_of, make_complaint):
    complaint = make_complaint(student)

    with pytest.raises(PermissionDenied):
        complaint_status_service.change_status(
            db, complaint, actor_of(student), ComplaintStatus.CLOSED
        )

    db.refresh(complaint)
    assert complaint.status == ComplaintStatus.NEW.value


def test_unknown_target_status_is_invalid(db, student, lecturer, actor_of, make_complaint):
    complaint = make_complaint(student)
    with pytest.raises(InvalidTransition):
        complaint_status_service.change_status(db, complaint, actor_of(lecturer), "archived")


def test_first_transition_stamps_opened_at_and_opened_by(
    db, student, lecturer, other_lecturer, actor_of, make_complaint
):
    complaint = make_complaint(student)
    assert complaint.opened_at is None

    complaint_status_service.change_status(
        db, complaint, actor_of(lecturer), ComplaintStatus.OPENED
    )
    first_opened_at = complaint.opened_at
    assert first_opened_at is not None
    assert complaint.opened_by == lecturer.id

    complaint_status_service.change_status(
        db, complaint, actor_of(other_lecturer), ComplaintStatus.IN_PROGRESS
    )
    assert complaint.opened_at == first_opened_at
    assert complaint.opened_by == lecturer.id


def test_resolved_at_is_set_once_and_never_cleared(
    db, student, lecturer, actor_of, make_complaint
):
    complaint = make_complaint(student)
    staff = actor_of(lecturer)

    complaint_status_service.change_status(db, complaint, staff, ComplaintStatus.RESOLVED)
    first_resolved_at = complaint.resolved_at
    assert first_resolved_at is not None

    complaint_status_service.change_status(db, complaint, staff, ComplaintStatus.REOPENED)
    assert complaint.resolved_at == first_resolved_at

    complaint_status_service.change_status(db, complaint, staff, ComplaintStatus.RESOLVED)
    assert complaint.resolved_at == first_resolved_at


def test_staff_reopen_is_logged_as_reopened(db, student, lecturer, actor_of, insert_complaint):
    complaint = insert_complaint(student, ComplaintStatus.CLOSED, resolved=True)

    complaint_status_service.change_status(
        db, complaint, actor_of(lecturer), ComplaintStatus.REOPENED
    )

    last = history_service.list_history(db, complaint.id)[-1]
    assert last.action == HistoryAction.REOPENED.value
    assert (last.old_value, last.new_value) == ("closed", "reopened")


@pytest.mark.parametrize("current", SUBMITTED)
def test_allowed_targets_match_table(current):
    for target in ALLOWED_TRANSITIONS[current]:
        assert complaint_status_service.is_transition_allowed(current, target)


def test_stale_write_is_rejected_without_history(
    db, student, lecturer, actor_of, make_complaint
):
    complaint = make_complaint(student)
    loaded = complaint_service.get_complaint(db, complaint.id)
    before = len(history_service.list_history(db, complaint.id))

    # Another writer bumps the version; our loaded snapshot keeps the old one
    db.execute(
        update(Complaint)
        .where(Complaint.id == complaint.id)
        .values(version=Complaint.version + 1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(StaleComplaint):
        complaint_status_service.change_status(
            db, loaded, actor_of(lecturer), ComplaintStatus.IN_PROGRESS
        )

    assert len(history_service.list_history(db, complaint.id)) == before
    fresh = complaint_service.get_complaint_for_update(db, complaint.id)
    assert fresh.status == ComplaintStatus.NEW.value
