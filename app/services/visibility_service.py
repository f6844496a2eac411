"""Read-time visibility rules for complaint threads.

Nothing here touches the database. Filtering happens on every read; the
stored thread is never copied or rewritten per audience.
"""

from typing import Iterable, Mapping, TypeVar
from uuid import UUID

from app.core.capabilities import Action, can_perform
from app.db.enums import HistoryAction, Role
from app.db.models import Complaint, ComplaintComment, ComplaintHistory

ANONYMOUS = "anonymous"

T = TypeVar("T", ComplaintComment, ComplaintHistory)


def can_view_internal(viewer_role: Role | str | None) -> bool:
    if viewer_role is None:
        return False
    return can_perform(viewer_role, Action.VIEW_INTERNAL_NOTES)


def _chronological(items: Iterable[T]) -> list[T]:
    # Equal timestamps fall back to id so repeated reads agree
    return sorted(items, key=lambda item: (item.created_at, str(item.id)))


def visible_comments(
    comments: Iterable[ComplaintComment],
    viewer_role: Role | str | None,
) -> list[ComplaintComment]:
    """
    Comments the viewer may see, oldest first.

    Staff see everything. Everyone else gets internal notes removed entirely,
    so they are neither shown nor counted.
    """
    if can_view_internal(viewer_role):
        return _chronological(comments)
    return _chronological(c for c in comments if not c.is_internal)


def visible_history(
    entries: Iterable[ComplaintHistory],
    viewer_role: Role | str | None,
    comment_visibility: Mapping[str, bool] | None = None,
) -> list[ComplaintHistory]:
    """
    History entries the viewer may see.

    Non-staff lose the comment_added entries of internal notes. A comment's
    internal flag can change after the entry was written, so
    comment_visibility (comment id -> is_internal) takes precedence over the
    flag captured in the entry; deleted comments fall back to that flag.
    """
    entries = list(entries)
    if can_view_internal(viewer_role):
        return entries
    return [e for e in entries if not _is_internal_comment_entry(e, comment_visibility or {})]


def _is_internal_comment_entry(
    entry: ComplaintHistory,
    comment_visibility: Mapping[str, bool],
) -> bool:
    if entry.action != HistoryAction.COMMENT_ADDED.value:
        return False
    details = entry.details or {}
    comment_id = details.get("comment_id")
    if comment_id is not None and comment_id in comment_visibility:
        return comment_visibility[comment_id]
    return bool(details.get("is_internal"))


def visible_identity(complaint: Complaint, viewer_role: Role | str | None) -> str | None:
    """
    Owner identity as shown to the viewer.

    Anonymous complaints reveal the owner only to roles with the
    view_anonymous_identity capability; everyone else, the owner included,
    sees "anonymous".
    """
    if complaint.is_anonymous:
        if viewer_role is not None and can_perform(viewer_role, Action.VIEW_ANONYMOUS_IDENTITY):
            return str(complaint.student_id) if complaint.student_id else None
        return ANONYMOUS
    return str(complaint.student_id) if complaint.student_id else None


def visible_actor(
    complaint: Complaint,
    actor_id: UUID | None,
    viewer_role: Role | str | None,
) -> str | None:
    """
    An actor id as shown to the viewer.

    The owner of an anonymous complaint also appears as the author of
    comments, ratings and history entries; those references are masked
    with the same rule as visible_identity.
    """
    if actor_id is None:
        return None
    if complaint.student_id is not None and actor_id == complaint.student_id:
        return visible_identity(complaint, viewer_role)
    return str(actor_id)
