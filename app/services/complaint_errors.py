"""Domain errors raised by the complaint services.

Every error is a precondition failure detected before any mutation is
flushed. Each carries a `kind` (stable identifier used by clients) and the
offending `field` where one applies. HTTP mapping lives in app.main.
"""


class ComplaintServiceError(Exception):
    """Base exception for complaint service errors."""

    kind = "ComplaintServiceError"
    default_field: str | None = None

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field if field is not None else self.default_field

    def to_dict(self) -> dict:
        return {"kind": self.kind, "field": self.field, "detail": self.message}


class InvalidTransition(ComplaintServiceError):
    """Target status is not reachable from the current status."""

    kind = "InvalidTransition"
    default_field = "status"


class ReopenNotAllowed(ComplaintServiceError):
    """Complaint is not resolved/closed, or the actor is not its owner."""

    kind = "ReopenNotAllowed"
    default_field = "status"


class JustificationRequired(ComplaintServiceError):
    """Reopen requested with an empty justification."""

    kind = "JustificationRequired"
    default_field = "justification"


class AlreadyRated(ComplaintServiceError):
    """A rating already exists for this (complaint, student)."""

    kind = "AlreadyRated"
    default_field = "rating"


class NotOwner(ComplaintServiceError):
    """Actor is not the complaint's student owner."""

    kind = "NotOwner"
    default_field = "student_id"


class NotAuthor(ComplaintServiceError):
    """Actor is not the comment's author."""

    kind = "NotAuthor"
    default_field = "author_id"


class UnknownAssignee(ComplaintServiceError):
    """Assignee id does not resolve to an active staff account."""

    kind = "UnknownAssignee"
    default_field = "assigned_to"


class InvalidRatingValue(ComplaintServiceError):
    """Rating is not an integer in 1..5."""

    kind = "InvalidRatingValue"
    default_field = "rating"


class PermissionDenied(ComplaintServiceError):
    """Actor's role lacks the capability for this action."""

    kind = "PermissionDenied"


class ComplaintNotFound(ComplaintServiceError):
    """Complaint (or a child row) does not exist."""

    kind = "ComplaintNotFound"
    default_field = "id"


class RatingNotAllowed(ComplaintServiceError):
    """Complaint has never been resolved."""

    kind = "RatingNotAllowed"
    default_field = "status"


class InvalidEscalationRule(ComplaintServiceError):
    """Escalation rule failed validation."""

    kind = "InvalidEscalationRule"

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        field = self.errors[0]["field"] if self.errors else None
        super().__init__(message, field)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class StaleComplaint(ComplaintServiceError):
    """Complaint was modified concurrently; the caller's snapshot is stale."""

    kind = "StaleComplaint"
    default_field = "version"


class DraftRequired(ComplaintServiceError):
    """Draft-only operation on a submitted complaint."""

    kind = "DraftRequired"
    default_field = "status"


class InvalidTags(ComplaintServiceError):
    """Tag list is empty or contains an invalid tag."""

    kind = "InvalidTags"
    default_field = "tags"


class InvalidInput(ComplaintServiceError):
    """Request payload failed a domain validation (empty body, bad filter)."""

    kind = "InvalidInput"
