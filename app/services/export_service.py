"""CSV export of a complaint timeline.

Exports are one more read path, so they go through the same visibility rules
as the API: internal notes and their history entries are dropped for
non-staff viewers, and the owner of an anonymous complaint stays masked.
"""

import csv
import io
import json
from datetime import datetime
from typing import Any, Iterable, Sequence

from sqlalchemy.orm import Session

from app.db.enums import Role
from app.db.models import Complaint
from app.services import comment_service, history_service, visibility_service

CSV_DANGEROUS_PREFIXES = ("=", "+", "-", "@")

HEADERS = [
    "timestamp",
    "entry_type",
    "action",
    "old_value",
    "new_value",
    "actor",
    "content",
    "is_internal",
]


def _csv_safe(value: str) -> str:
    if value and value.startswith(CSV_DANGEROUS_PREFIXES):
        return f"'{value}"
    return value


def _serialize_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def _write_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_csv_safe(_serialize_csv_value(value)) for value in row])
    return output.getvalue()


def build_timeline_rows(
    db: Session,
    complaint: Complaint,
    viewer_role: Role | str | None,
) -> list[list[Any]]:
    """Complaint header row followed by history and comments, oldest first."""
    owner = visibility_service.visible_identity(complaint, viewer_role)
    header_row = [
        complaint.created_at,
        "complaint",
        complaint.status,
        None,
        None,
        owner,
        complaint.title,
        None,
    ]

    timeline: list[tuple[datetime, int, list[Any]]] = []
    history = history_service.list_visible_history(db, complaint.id, viewer_role)
    for entry in history:
        timeline.append(
            (
                entry.created_at,
                0,
                [
                    entry.created_at,
                    "history",
                    entry.action,
                    entry.old_value,
                    entry.new_value,
                    visibility_service.visible_actor(complaint, entry.performed_by, viewer_role),
                    entry.details,
                    None,
                ],
            )
        )

    comments = comment_service.list_visible_comments(db, complaint.id, viewer_role)
    for comment in comments:
        timeline.append(
            (
                comment.created_at,
                1,
                [
                    comment.created_at,
                    "comment",
                    None,
                    None,
                    None,
                    visibility_service.visible_actor(complaint, comment.author_id, viewer_role),
                    comment.body,
                    comment.is_internal,
                ],
            )
        )

    timeline.sort(key=lambda item: (item[0], item[1]))
    return [header_row] + [row for _, _, row in timeline]


def export_complaint_csv(
    db: Session,
    complaint: Complaint,
    viewer_role: Role | str | None,
) -> str:
    """Render the visible timeline of one complaint as CSV text."""
    return _write_csv(HEADERS, build_timeline_rows(db, complaint, viewer_role))
