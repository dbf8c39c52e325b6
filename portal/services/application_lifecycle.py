"""
Application lifecycle service — every mutation of a BaseApplication after intake.

Flow for one update request:
  1. Resolve the status change (status_machine) and validate every other field
  2. Apply all field changes, plus certificate issuance on approval, in one
     transaction and commit it
  3. Append one ledger entry per independently meaningful change
     (status, assignment, internal notes, staff response)

A request that changes nothing commits nothing and writes no ledger entry.

Usage:
    from portal.services.application_lifecycle import transition_application

    app = transition_application(app_id, "UNDER_REVIEW", actor="Jane Reviewer")
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from portal.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    TransitionError,
    ValidationError,
)
from portal.models import db
from portal.models.application import BaseApplication, StaffUser
from portal.services import activity_ledger
from portal.services.certificate_service import issue_certificate
from portal.services.status_machine import resolve_resubmission, resolve_transition
from portal.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)

# Staff response fields of the knowledge-sharing extension
KS_RESPONSE_FIELDS = (
    "response_text",
    "response_attachment_url",
    "response_attachment_name",
    "responded_at",
    "responded_by",
    "survey_sent_at",
)
_KS_DATETIME_FIELDS = frozenset({"responded_at", "survey_sent_at"})


def _utcnow():
    return datetime.now(UTC)


def get_application_or_404(application_id: str) -> BaseApplication:
    app = db.session.get(BaseApplication, application_id)
    if app is None:
        raise NotFoundError("Application", application_id)
    return app


def _require_actor(actor):
    if not isinstance(actor, str) or not actor.strip():
        raise ValidationError("actor must not be empty", details={"performed_by": "required"})
    return actor.strip()


def _status_action(from_status: str, to_status: str) -> str:
    return f"Status changed from {from_status} to {to_status}"


# ── Field resolution (no writes) ─────────────────────────────────────────────

def _resolve_assignment(app: BaseApplication, changes: dict):
    """Return (new_assignee_id, ledger_action) or None when unchanged."""
    if "assigned_to_id" not in changes:
        return None
    new_id = changes.get("assigned_to_id") or None
    if new_id == app.assigned_to_id:
        return None
    if new_id is None:
        return None, "Unassigned from reviewer"
    staff = db.session.get(StaffUser, new_id)
    if staff is None:
        raise NotFoundError("StaffUser", new_id)
    return new_id, f"Assigned to {staff.name}"


def _resolve_ks_response(app: BaseApplication, changes: dict) -> dict:
    """Validated subset of knowledge-sharing response fields that actually change."""
    present = {f: changes[f] for f in KS_RESPONSE_FIELDS if f in changes}
    if not present:
        return {}
    if app.service_type != "KNOWLEDGE_SHARING" or app.knowledge_sharing_application is None:
        raise ValidationError(
            f"Response fields apply to KNOWLEDGE_SHARING applications, not {app.service_type}",
            details={f: "not applicable" for f in present},
        )
    ext = app.knowledge_sharing_application
    updates = {}
    for field, value in present.items():
        if field in _KS_DATETIME_FIELDS and value is not None:
            parsed = parse_datetime(value)
            if parsed is None:
                raise ValidationError(f"Invalid datetime for {field}", details={field: "invalid"})
            value = parsed
        if getattr(ext, field) != value:
            updates[field] = value
    return updates


# ═════════════════════════════════════════════════════════════════════════════
# Public API
# ═════════════════════════════════════════════════════════════════════════════

def update_application(application_id: str, changes: dict, actor: str, *, now: datetime | None = None) -> BaseApplication:
    """
    Apply any subset of: status (+ note), assigned_to_id, internal_notes,
    rejection_reason and knowledge-sharing response fields.

    Returns the (committed) application.

    Raises:
        NotFoundError: unknown application or reviewer.
        ValidationError: blank actor, unknown status, inapplicable fields.
        TransitionError: status not reachable, or certificate issuance failed.
        ConflictError: the application already owns a certificate.
    """
    actor = _require_actor(actor)
    app = get_application_or_404(application_id)
    now = now or _utcnow()

    # 1. Resolve everything before touching the row
    plan = None
    if changes.get("status"):
        plan = resolve_transition(app.status, changes["status"], app.service_type)
        if plan.noop:
            plan = None
    assignment = _resolve_assignment(app, changes)
    ks_updates = _resolve_ks_response(app, changes)

    notes_changed = "internal_notes" in changes and changes["internal_notes"] != app.internal_notes
    reason_changed = "rejection_reason" in changes and changes["rejection_reason"] != app.rejection_reason

    if not (plan or assignment or ks_updates or notes_changed or reason_changed):
        return app

    # 2. Apply in one transaction
    ledger: list[tuple[str, str | None]] = []
    try:
        if plan:
            app.status = plan.to_status
            if plan.enters_terminal and app.reviewed_at is None:
                app.reviewed_at = now
                app.reviewed_by = actor
            if plan.issue_certificate:
                issue_certificate(base_application_id=app.id, now=now)
            ledger.append((
                _status_action(plan.from_status, plan.to_status),
                changes.get("note") or (changes.get("rejection_reason") if plan.to_status == "REJECTED" else None),
            ))
        if assignment:
            app.assigned_to_id = assignment[0]
            ledger.append((assignment[1], None))
        if notes_changed:
            app.internal_notes = changes["internal_notes"]
            ledger.append(("Internal notes updated", None))
        if reason_changed:
            app.rejection_reason = changes["rejection_reason"]
            # A note-less rejection in the same request already carries the reason
            if not (plan and plan.to_status == "REJECTED" and not changes.get("note")):
                ledger.append(("Rejection reason updated", changes["rejection_reason"] or None))
        if ks_updates:
            ext = app.knowledge_sharing_application
            for field, value in ks_updates.items():
                setattr(ext, field, value)
            if "response_text" in ks_updates and ks_updates["response_text"]:
                ledger.append(("Response sent to member", None))
        app.updated_at = now
        db.session.commit()
    except ConflictError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Update of application %s failed — rolled back", application_id)
        if plan and plan.issue_certificate:
            raise TransitionError(plan.from_status, plan.to_status, "certificate issuance failed") from exc
        raise

    if plan:
        logger.info(
            "Application %s: %s → %s by %s", app.id, plan.from_status, plan.to_status, actor,
            extra={
                "event_type": "status_changed",
                "application_id": app.id,
                "service_type": app.service_type,
                "actor": actor,
                "from_status": plan.from_status,
                "to_status": plan.to_status,
            },
        )

    # 3. Ledger (outside the business transaction)
    for action, notes in ledger:
        activity_ledger.append(app.id, app.service_type, action, actor, notes)

    return app


def transition_application(application_id: str, requested_status: str, actor: str,
                           note: str | None = None, *, now: datetime | None = None) -> BaseApplication:
    """Change status only.  See ``update_application``."""
    return update_application(application_id, {"status": requested_status, "note": note}, actor, now=now)


def assign_application(application_id: str, staff_user_id: str | None, actor: str) -> BaseApplication:
    """Assign (or with ``None`` unassign) a reviewer."""
    return update_application(application_id, {"assigned_to_id": staff_user_id}, actor)


def respond_to_information_request(
    application_id: str,
    details: str,
    actor: str,
    *,
    submitter_email: str | None = None,
    now: datetime | None = None,
) -> BaseApplication:
    """
    Submitter supplies the information requested while in PENDING_INFO.

    Moves the record back to UNDER_REVIEW and logs the supplied details as
    the ledger notes.
    """
    actor = _require_actor(actor)
    if not details or not str(details).strip():
        raise ValidationError("details are required", details={"details": "required"})
    app = get_application_or_404(application_id)
    if submitter_email and submitter_email.lower() != (app.submitted_by_email or "").lower():
        raise PermissionDenied(actor, "application.resubmit")

    plan = resolve_resubmission(app.status)
    app.status = plan.to_status
    app.updated_at = now or _utcnow()
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Information supply for application %s failed — rolled back", application_id)
        raise

    logger.info(
        "Application %s: information supplied by %s", app.id, actor,
        extra={
            "event_type": "information_supplied",
            "application_id": app.id,
            "actor": actor,
            "from_status": plan.from_status,
            "to_status": plan.to_status,
        },
    )
    activity_ledger.append(
        app.id, app.service_type,
        _status_action(plan.from_status, plan.to_status), actor, str(details).strip(),
    )
    return app
