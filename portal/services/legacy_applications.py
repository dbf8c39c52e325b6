"""
Legacy ESG applications — operations on the deprecated record family.

Legacy records keep their own five-state graph (see ``status_machine``) and
record their history as ReviewNotes instead of ActivityLog entries.

    create_legacy_application()   new record + system note
    get_legacy_or_404()           live (un-migrated) record or NotFoundError
    change_legacy_status()        one review note per change; APPROVED mints a certificate
    resubmit_legacy_application() CORRECTIONS_REQUESTED → SUBMITTED with updated fields
    add_review_note()             free staff / customer note
    legacy_to_dict()              detail shape with notes and certificate
"""

import json
import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from portal.core.exceptions import ConflictError, NotFoundError, TransitionError, ValidationError
from portal.models import db
from portal.models.application import BaseApplication
from portal.models.legacy import NOTE_AUTHOR_TYPES, LegacyApplication, map_legacy_status
from portal.services import activity_ledger
from portal.services.certificate_service import issue_certificate
from portal.services.status_machine import resolve_legacy_transition, resolve_resubmission
from portal.utils.helpers import as_utc, normalize_email, require_fields, require_text

logger = logging.getLogger(__name__)

SUBMITTED_NOTE = "Application submitted for ESG certification review."
RESUBMITTED_NOTE = "Customer resubmitted application after corrections."

_EDITABLE_FIELDS = (
    "description",
    "ai_precheck_result",
    "sector",
    "sub_sector",
    "country",
    "phone_number",
    "trade_license_number",
)
_PROFILE_FIELDS = ("environmental_profile", "social_profile", "governance_profile")


def _profile_json(value, key):
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValidationError(f"{key} must be a JSON object", details={key: "invalid"})
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be a JSON object", details={key: "invalid"})
    return json.dumps(value, ensure_ascii=False)


def not_migrated():
    """Clause keeping legacy rows whose id has not been copied into base_applications."""
    return LegacyApplication.id.notin_(select(BaseApplication.id))


def get_legacy_or_404(application_id: str) -> LegacyApplication:
    """
    Load a legacy record that is still live.

    Once migrated the id belongs to the base record, so the legacy copy is
    reported as not found and can no longer be changed.
    """
    legacy = db.session.get(LegacyApplication, application_id)
    if legacy is None or db.session.get(BaseApplication, application_id) is not None:
        raise NotFoundError("LegacyApplication", application_id)
    return legacy


def legacy_to_dict(legacy: LegacyApplication, *, include_notes: bool = True) -> dict:
    created = as_utc(legacy.created_at)
    updated = as_utc(legacy.updated_at)
    d = {
        "id": legacy.id,
        "applicant_name": legacy.applicant_name,
        "organization_name": legacy.organization_name,
        "email": legacy.email,
        "sector": legacy.sector,
        "sub_sector": legacy.sub_sector,
        "country": legacy.country,
        "phone_number": legacy.phone_number,
        "trade_license_number": legacy.trade_license_number,
        "description": legacy.description,
        "ai_precheck_result": legacy.ai_precheck_result,
        "status": legacy.status,
        "mapped_status": map_legacy_status(legacy.status),
        "created_at": created.isoformat() if created else None,
        "updated_at": updated.isoformat() if updated else None,
        "certificate": legacy.certificate.to_dict() if legacy.certificate else None,
        **legacy.profiles(),
    }
    if include_notes:
        d["review_notes"] = activity_ledger.list_review_notes(legacy.id)
    return d


# ═════════════════════════════════════════════════════════════════════════════
# Mutations
# ═════════════════════════════════════════════════════════════════════════════

def create_legacy_application(payload: dict) -> LegacyApplication:
    """Create a legacy ESG record.  New intake should use ``create_submission``."""
    payload = payload or {}
    require_text(payload, "applicant_name", "organization_name", *_EDITABLE_FIELDS)
    require_fields(payload, "applicant_name", "organization_name")
    email = normalize_email(payload.get("email"))

    legacy = LegacyApplication(
        applicant_name=payload["applicant_name"].strip(),
        organization_name=payload["organization_name"].strip(),
        email=email,
        status="SUBMITTED",
        **{f: payload.get(f) for f in _EDITABLE_FIELDS},
        **{f: _profile_json(payload.get(f), f) for f in _PROFILE_FIELDS},
    )
    try:
        db.session.add(legacy)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Legacy application create failed — rolled back")
        raise

    logger.info("Legacy application %s created", legacy.id,
                extra={"event_type": "legacy_created", "application_id": legacy.id})
    activity_ledger.append_review_note(legacy.id, SUBMITTED_NOTE, "SYSTEM")
    return legacy


def change_legacy_status(application_id: str, requested_status: str, actor: str,
                         note: str | None = None, *, now: datetime | None = None) -> LegacyApplication:
    """
    Staff status change on a legacy record.

    Approval mints the certificate in the same transaction; a failure there
    leaves the stored status unchanged.
    """
    if not isinstance(actor, str) or not actor.strip():
        raise ValidationError("actor must not be empty", details={"performed_by": "required"})
    legacy = get_legacy_or_404(application_id)
    plan = resolve_legacy_transition(legacy.status, requested_status)
    if plan.noop:
        return legacy

    now = now or datetime.now(UTC)
    try:
        legacy.status = plan.to_status
        legacy.updated_at = now
        if plan.issue_certificate:
            issue_certificate(legacy_application_id=legacy.id, now=now)
        db.session.commit()
    except ConflictError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Legacy status change for %s failed — rolled back", application_id)
        raise TransitionError(plan.from_status, plan.to_status, "could not be persisted") from exc

    logger.info(
        "Legacy application %s: %s → %s by %s", legacy.id, plan.from_status, plan.to_status, actor,
        extra={
            "event_type": "legacy_status_changed",
            "application_id": legacy.id,
            "actor": actor.strip(),
            "from_status": plan.from_status,
            "to_status": plan.to_status,
        },
    )
    text = f"Status changed from {plan.from_status} to {plan.to_status} by {actor.strip()}"
    if note:
        text += f": {note}"
    activity_ledger.append_review_note(legacy.id, text, "STAFF")
    return legacy


def resubmit_legacy_application(application_id: str, changes: dict, *,
                                submitter_email: str | None = None) -> LegacyApplication:
    """Submitter resubmission after corrections; status returns to SUBMITTED."""
    legacy = get_legacy_or_404(application_id)
    if submitter_email and submitter_email.lower() != legacy.email.lower():
        raise NotFoundError("LegacyApplication", application_id)
    plan = resolve_resubmission(legacy.status)

    changes = changes or {}
    require_text(changes, *_EDITABLE_FIELDS)
    for field in _EDITABLE_FIELDS:
        if field in changes:
            setattr(legacy, field, changes[field])
    for field in _PROFILE_FIELDS:
        if field in changes:
            setattr(legacy, field, _profile_json(changes[field], field))
    legacy.status = plan.to_status
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Legacy resubmission for %s failed — rolled back", application_id)
        raise

    logger.info("Legacy application %s resubmitted", legacy.id,
                extra={"event_type": "legacy_resubmitted", "application_id": legacy.id})
    activity_ledger.append_review_note(legacy.id, RESUBMITTED_NOTE, "SYSTEM")
    return legacy


def add_review_note(application_id: str, note: str, author_type: str = "STAFF"):
    """Append a free-text note; does not change status."""
    get_legacy_or_404(application_id)
    if not note or not str(note).strip():
        raise ValidationError("note is required", details={"note": "required"})
    if author_type not in NOTE_AUTHOR_TYPES:
        raise ValidationError(
            f"Unknown author_type: {author_type}",
            details={"author_type": sorted(NOTE_AUTHOR_TYPES)},
        )
    return activity_ledger.append_review_note(application_id, str(note).strip(), author_type)
