"""Tests for the complaint timeline CSV export."""

import csv
import io

from app.db.enums import HistoryAction, Role
from app.services import comment_service, export_service


def _rows(text: str) -> list[dict]:
    return list(csv.DictReader(io.StringIO(text)))


def test_internal_notes_hidden_from_students(db, student, lecturer, actor_of, make_complaint):
    complaint = make_complaint(student)
    comment_service.add_comment(db, complaint, actor_of(lecturer), "We are looking into it")
    comment_service.add_comment(
        db, complaint, actor_of(lecturer), "Budget issue, escalate", is_internal=True
    )

    student_rows = _rows(export_service.export_complaint_csv(db, complaint, Role.STUDENT))
    staff_rows = _rows(export_service.export_complaint_csv(db, complaint, Role.LECTURER))

    student_text = [r["content"] for r in student_rows]
    assert "We are looking into it" in student_text
    assert "Budget issue, escalate" not in student_text
    assert "Budget issue, escalate" in [r["content"] for r in staff_rows]

    def comment_entries(rows):
        return [r for r in rows if r["action"] == HistoryAction.COMMENT_ADDED.value]

    assert len(comment_entries(student_rows)) == 1
    assert len(comment_entries(staff_rows)) == 2


def test_first_row_is_the_complaint(db, student, make_complaint):
    complaint = make_complaint(student, title="Heating off in library")

    rows = _rows(export_service.export_complaint_csv(db, complaint, Role.STUDENT))

    assert rows[0]["entry_type"] == "complaint"
    assert rows[0]["content"] == "Heating off in library"
    assert rows[1]["action"] == HistoryAction.CREATED.value


def test_anonymous_owner_masked_except_for_admin(
    db, student, actor_of, make_complaint
):
    complaint = make_complaint(student, is_anonymous=True)
    comment_service.add_comment(db, complaint, actor_of(student), "Please respond")

    lecturer_rows = _rows(export_service.export_complaint_csv(db, complaint, Role.LECTURER))
    admin_rows = _rows(export_service.export_complaint_csv(db, complaint, Role.ADMIN))

    assert str(student.id) not in export_service.export_complaint_csv(
        db, complaint, Role.LECTURER
    )
    assert {r["actor"] for r in lecturer_rows if r["actor"]} == {"anonymous"}
    assert admin_rows[0]["actor"] == str(student.id)


def test_formula_cells_are_neutralised(db, student, actor_of, make_complaint):
    complaint = make_complaint(student)
    comment_service.add_comment(db, complaint, actor_of(student), "=HYPERLINK(\"x\")")

    rows = _rows(export_service.export_complaint_csv(db, complaint, Role.STUDENT))

    comment = next(r for r in rows if r["entry_type"] == "comment")
    assert comment["content"].startswith("'=")
