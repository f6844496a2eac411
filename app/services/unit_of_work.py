"""Atomic commit boundary for complaint mutations."""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.services.complaint_errors import StaleComplaint

logger = logging.getLogger(__name__)


@contextmanager
def complaint_mutation(db: Session) -> Iterator[None]:
    """
    Run a complaint mutation and its history entries as one transaction.

    Commits when the block exits cleanly. Any exception rolls back every
    pending row, so a mutation is never applied without its audit entry and
    vice versa. A version mismatch on the complaint row (another writer
    committed first) surfaces as StaleComplaint.
    """
    try:
        yield
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.info(f"Concurrent complaint modification rejected: {e}")
        raise StaleComplaint(
            "Complaint was modified by another request; reload and retry"
        ) from e
    except Exception:
        db.rollback()
        raise
