"""Tests for in-app notifications and complaint event dispatch."""

from app.db.enums import ComplaintStatus, NotificationType
from app.services import (
    assignment_service,
    comment_service,
    complaint_events,
    complaint_status_service,
    notification_service,
    reopen_service,
)


def _types(db, user) -> list[str]:
    return [n.type for n in notification_service.get_notifications(db, user.id)]


def test_assignment_notifies_assignee_not_actor(
    db, student, lecturer, other_lecturer, actor_of, make_complaint
):
    complaint = make_complaint(student)

    assignment_service.assign(db, complaint, actor_of(lecturer), lecturer.id)
    assert _types(db, lecturer) == []

    assignment_service.assign(db, complaint, actor_of(lecturer), other_lecturer.id)
    assert _types(db, other_lecturer) == [NotificationType.COMPLAINT_ASSIGNED.value]


def test_status_change_notifies_owner(db, student, lecturer, actor_of, make_complaint):
    complaint = make_complaint(student)

    complaint_status_service.change_status(
        db, complaint, actor_of(lecturer), ComplaintStatus.IN_PROGRESS
    )

    notes = notification_service.get_notifications(db, student.id)
    assert [n.type for n in notes] == [NotificationType.STATUS_CHANGED.value]
    assert notes[0].complaint_id == complaint.id
    assert notes[0].title == "Complaint status changed to in progress"


def test_internal_note_never_reaches_owner(
    db, student, lecturer, other_lecturer, actor_of, make_complaint
):
    complaint = make_complaint(student)
    assignment_service.assign(db, complaint, actor_of(lecturer), other_lecturer.id)

    comment_service.add_comment(
        db, complaint, actor_of(lecturer), "Waiting on estates", is_internal=True
    )

    assert _types(db, student) == []
    assert NotificationType.COMMENT_ADDED.value in _types(db, other_lecturer)


def test_public_comment_skips_its_author(db, student, actor_of, make_complaint):
    complaint = make_complaint(student)
    comment_service.add_comment(db, complaint, actor_of(student), "Still broken")
    assert _types(db, student) == []


def test_second_resolution_after_reopen_notifies_owner_again(
    db, student, lecturer, actor_of, make_complaint
):
    complaint = make_complaint(student)
    staff = actor_of(lecturer)

    complaint_status_service.change_status(db, complaint, staff, ComplaintStatus.RESOLVED)
    reopen_service.reopen(db, complaint, actor_of(student), "Still leaking")
    complaint_status_service.change_status(db, complaint, staff, ComplaintStatus.RESOLVED)

    titles = [n.title for n in notification_service.get_notifications(db, student.id)]
    assert titles.count("Complaint status changed to resolved") == 2


def test_reassignment_back_notifies_assignee_again(
    db, student, lecturer, other_lecturer, admin, actor_of, make_complaint
):
    complaint = make_complaint(student)
    coordinator = actor_of(admin)

    assignment_service.assign(db, complaint, coordinator, other_lecturer.id)
    assignment_service.assign(db, complaint, coordinator, lecturer.id)
    assignment_service.assign(db, complaint, coordinator, other_lecturer.id)

    assert _types(db, other_lecturer) == [NotificationType.COMPLAINT_ASSIGNED.value] * 2


def test_dedupe_key_suppresses_repeat(db, student):
    first = notification_service.create_notification(
        db, student.id, NotificationType.STATUS_CHANGED, "x", dedupe_key="k"
    )
    second = notification_service.create_notification(
        db, student.id, NotificationType.STATUS_CHANGED, "x", dedupe_key="k"
    )
    db.commit()

    assert first is not None
    assert second is None
    assert notification_service.get_unread_count(db, student.id) == 1


def test_mark_read_is_scoped_to_owner(db, student, other_student):
    note = notification_service.create_notification(
        db, student.id, NotificationType.STATUS_CHANGED, "Status"
    )
    db.commit()

    assert notification_service.mark_read(db, note.id, other_student.id) is None
    assert notification_service.get_unread_count(db, student.id) == 1

    read = notification_service.mark_read(db, note.id, student.id)
    assert read.read_at is not None
    assert notification_service.get_unread_count(db, student.id) == 0


def test_mark_all_read(db, student):
    for i in range(3):
        notification_service.create_notification(
            db, student.id, NotificationType.COMMENT_ADDED, f"Comment {i}"
        )
    db.commit()

    assert notification_service.mark_all_read(db, student.id) == 3
    assert notification_service.get_unread_count(db, student.id) == 0
    assert notification_service.get_notifications(db, student.id, unread_only=True) == []


def test_failed_dispatch_keeps_the_mutation(
    db, student, lecturer, actor_of, make_complaint, monkeypatch
):
    def boom(*args, **kwargs):
        raise RuntimeError("notification backend down")

    monkeypatch.setitem(
        complaint_events._HANDLERS, complaint_events.EventType.STATUS_CHANGED, boom
    )
    complaint = make_complaint(student)

    complaint_status_service.change_status(
        db, complaint, actor_of(lecturer), ComplaintStatus.RESOLVED
    )

    db.refresh(complaint)
    assert complaint.status == ComplaintStatus.RESOLVED.value
    assert _types(db, student) == []
