"""
Activity ledger — append-only audit trail for applications.

Writes:
    - append(): one ActivityLog row for a BaseApplication
    - append_review_note(): one ReviewNote row for a legacy application

Both run *after* the business commit in their own short transaction.  A
failed ledger write is logged at WARNING and swallowed; it never rolls back
the status change that triggered it.

Reads:
    - list_for_application(): reverse-chronological, audience-filtered
    - activity_feed(): paginated ledger across all applications
"""

import logging

from sqlalchemy import func, or_

from portal.models import db
from portal.models.application import BaseApplication
from portal.models.audit import INTERNAL_MARKER, LEDGER_AUDIENCES, ActivityLog
from portal.models.legacy import NOTE_AUTHOR_TYPES, ReviewNote

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Writes
# ═════════════════════════════════════════════════════════════════════════════

def append(
    application_id: str,
    service_type: str,
    action: str,
    performed_by: str,
    notes: str | None = None,
) -> ActivityLog | None:
    """
    Append one ledger entry and commit it on its own.

    Returns the stored entry, or None when the write failed.
    """
    if not action or not performed_by:
        logger.warning(
            "Activity log skipped for application %s — action and actor are required",
            application_id,
        )
        return None
    try:
        entry = ActivityLog(
            application_id=application_id,
            service_type=service_type,
            action=action,
            performed_by=performed_by,
            notes=notes,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        db.session.rollback()
        logger.warning(
            "Activity log failed for application %s — main flow unaffected",
            application_id, exc_info=True,
            extra={"application_id": application_id, "event_type": "ledger_write_failed"},
        )
        return None


def append_review_note(application_id: str, note: str, author_type: str = "STAFF") -> ReviewNote | None:
    """Append one review note to a legacy application (same guarantees as ``append``)."""
    if not note or author_type not in NOTE_AUTHOR_TYPES:
        logger.warning("Review note skipped for legacy application %s — invalid note", application_id)
        return None
    try:
        row = ReviewNote(application_id=application_id, note=note, author_type=author_type)
        db.session.add(row)
        db.session.commit()
        return row
    except Exception:
        db.session.rollback()
        logger.warning(
            "Review note failed for legacy application %s — main flow unaffected",
            application_id, exc_info=True,
            extra={"application_id": application_id, "event_type": "ledger_write_failed"},
        )
        return None


# ═════════════════════════════════════════════════════════════════════════════
# Reads
# ═════════════════════════════════════════════════════════════════════════════

def _not_internal():
    marker = f"%{INTERNAL_MARKER}%"
    return ~or_(
        func.lower(ActivityLog.action).like(marker),
        func.lower(func.coalesce(ActivityLog.notes, "")).like(marker),
    )


def list_for_application(application_id: str, audience: str = "staff", limit: int | None = None) -> list[dict]:
    """
    Ledger entries for one application, newest first.

    ``audience="submitter"`` hides entries carrying the internal marker in
    their action or notes.  ``limit`` caps the number of entries returned.
    """
    if audience not in LEDGER_AUDIENCES:
        raise ValueError(f"Unknown ledger audience: {audience}")
    q = ActivityLog.query.filter(ActivityLog.application_id == application_id)
    if audience == "submitter":
        q = q.filter(_not_internal())
    q = q.order_by(ActivityLog.performed_at.desc(), ActivityLog.id.desc())
    if limit:
        q = q.limit(limit)
    return [e.to_dict() for e in q.all()]


def list_review_notes(application_id: str, limit: int | None = None) -> list[dict]:
    """Review notes of a legacy application, newest first."""
    q = (
        ReviewNote.query
        .filter(ReviewNote.application_id == application_id)
        .order_by(ReviewNote.created_at.desc(), ReviewNote.id.desc())
    )
    if limit:
        q = q.limit(limit)
    return [n.to_dict() for n in q.all()]


def activity_feed(page: int = 1, per_page: int = 15) -> dict:
    """
    Paginated reverse-chronological ledger across all applications.

    Each item carries the submitter name and email of its application so the
    feed renders without a further lookup.
    """
    q = (
        db.session.query(ActivityLog, BaseApplication.submitted_by, BaseApplication.submitted_by_email)
        .join(BaseApplication, BaseApplication.id == ActivityLog.application_id)
        .order_by(ActivityLog.performed_at.desc(), ActivityLog.id.desc())
    )
    paginated = q.paginate(page=page, per_page=per_page, error_out=False)
    items = []
    for entry, submitted_by, submitted_by_email in paginated.items:
        d = entry.to_dict()
        d["submitted_by"] = submitted_by
        d["submitted_by_email"] = submitted_by_email
        items.append(d)
    return {"items": items, "total": paginated.total, "page": paginated.page, "pages": paginated.pages}
