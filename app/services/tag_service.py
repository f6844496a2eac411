"""Complaint tags."""

import logging

from sqlalchemy.orm import Session

from app.core.capabilities import Action, can_perform
from app.db.enums import HistoryAction
from app.db.models import Complaint, ComplaintTag
from app.db.types import utcnow
from app.schemas.auth import Actor
from app.services import history_service
from app.services.complaint_errors import InvalidTags, PermissionDenied
from app.services.unit_of_work import complaint_mutation

logger = logging.getLogger(__name__)

MAX_TAG_LENGTH = 50


def normalize_tags(tags: list[str]) -> list[str]:
    """
    Trim, lower-case and de-duplicate tags, keeping first-seen order.

    Raises:
        InvalidTags: empty list, or a tag blank / longer than 50 characters
    """
    normalized: list[str] = []
    for raw in tags or []:
        tag = (raw or "").strip().lower()
        if not tag:
            raise InvalidTags("Tags cannot be blank")
        if len(tag) > MAX_TAG_LENGTH:
            raise InvalidTags(f"Tag '{tag[:20]}...' exceeds {MAX_TAG_LENGTH} characters")
        if tag not in normalized:
            normalized.append(tag)
    if not normalized:
        raise InvalidTags("At least one tag is required")
    return normalized


def add_tags(
    db: Session,
    complaint: Complaint,
    actor: Actor,
    tags: list[str],
) -> list[str]:
    """
    Attach tags not already on the complaint. Returns the newly added tags.

    One `tags_added` history entry is written when anything was added.

    Raises:
        PermissionDenied: actor is not staff, or complaint is a draft
        InvalidTags: see normalize_tags
    """
    if not can_perform(actor.role, Action.ADD_TAGS, complaint.status):
        raise PermissionDenied("Only staff can tag submitted complaints", field="tags")

    wanted = normalize_tags(tags)
    existing = complaint.tag_names
    added = [t for t in wanted if t not in existing]
    if not added:
        return []

    with complaint_mutation(db):
        for tag in added:
            complaint.tags.append(ComplaintTag(tag_name=tag))
        complaint.updated_at = utcnow()
        db.flush()
        history_service.record(
            db,
            complaint_id=complaint.id,
            action=HistoryAction.TAGS_ADDED,
            performed_by=actor.user_id,
            old_value=", ".join(existing) if existing else "none",
            new_value=", ".join(existing + added),
            details={"added_tags": added},
        )

    logger.info(f"Added {len(added)} tag(s) to complaint {complaint.id}")
    return added
