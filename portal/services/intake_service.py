"""
Intake service — creates a BaseApplication plus its typed extension.

The two rows are written in one transaction; the "submitted" ledger entry
follows in its own write (see ``activity_ledger``).

Per-kind rules:
    ESG_LABEL          profile blobs must be JSON objects when given
    KNOWLEDGE_SHARING  request_type required; TRAINING_QUERY needs ≥ 20 chars of query_text
    CHAMBER_BOOST      deal fields required; LIMITED needs intended_use;
                       UNLIMITED gets a voucher and is approved on the spot
    (any other kind)   request_details required

Usage:
    from portal.services.intake_service import create_submission

    app = create_submission("KNOWLEDGE_SHARING", {
        "submitted_by": "Acme LLC", "email": "ops@acme.ae",
        "request_type": "TRAINING_QUERY", "query_text": "How do I register for ...",
    })
"""

import json
import logging
import random
import re
import string
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from portal.core.exceptions import ValidationError
from portal.models import db
from portal.models.application import (
    DEAL_TYPES,
    KS_REQUEST_TYPES,
    SERVICE_TYPES,
    BaseApplication,
    ChamberBoostApplication,
    EsgApplication,
    GeneralServiceRequest,
    KnowledgeSharingApplication,
)
from portal.services import activity_ledger
from portal.services.service_catalog import service_labels
from portal.utils.helpers import normalize_email, parse_datetime, require_fields, require_text

logger = logging.getLogger(__name__)

MIN_QUERY_TEXT_LENGTH = 20
_VOUCHER_ALPHABET = string.ascii_uppercase + string.digits


def generate_voucher_code(vendor_name: str, rng=random) -> str:
    """``ADCCI-<first 4 vendor chars, no spaces>-<6 random upper-case chars>``."""
    vendor = re.sub(r"\s+", "", vendor_name or "").upper()[:4]
    suffix = "".join(rng.choice(_VOUCHER_ALPHABET) for _ in range(6))
    return f"ADCCI-{vendor}-{suffix}"


def _json_blob(payload: dict, key: str):
    value = payload.get(key)
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


def _optional_int(payload: dict, key: str):
    value = payload.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", details={key: "invalid"})


# ── Extension builders: return (extension, ledger_action) ────────────────────

def _build_esg(payload: dict, now: datetime):
    require_text(payload, "phone_number", "trade_license_number", "sector", "sub_sector", "country")
    ext = EsgApplication(
        phone_number=payload.get("phone_number"),
        trade_license_number=payload.get("trade_license_number"),
        sector=payload.get("sector"),
        sub_sector=payload.get("sub_sector"),
        country=payload.get("country"),
        environmental_profile=_json_blob(payload, "environmental_profile"),
        social_profile=_json_blob(payload, "social_profile"),
        governance_profile=_json_blob(payload, "governance_profile"),
        eoi_submitted_at=parse_datetime(payload.get("eoi_submitted_at")) or now,
    )
    return ext, "ESG Label application submitted"


def _build_knowledge_sharing(payload: dict, now: datetime):
    require_text(payload, "request_type", "query_text", "program_name", "program_type", "attendee_details")
    require_fields(payload, "request_type")
    request_type = payload["request_type"]
    if request_type not in KS_REQUEST_TYPES:
        raise ValidationError(
            f"Unknown request_type: {request_type}",
            details={"request_type": sorted(KS_REQUEST_TYPES)},
        )
    query_text = payload.get("query_text")
    if request_type == "TRAINING_QUERY" and (not query_text or len(query_text) < MIN_QUERY_TEXT_LENGTH):
        raise ValidationError(
            f"Query text is required and must be at least {MIN_QUERY_TEXT_LENGTH} characters",
            details={"query_text": f"min_length={MIN_QUERY_TEXT_LENGTH}"},
        )
    session_dates = payload.get("session_dates")
    if session_dates is not None and not isinstance(session_dates, list):
        raise ValidationError("session_dates must be a list", details={"session_dates": "invalid"})

    program_name = payload.get("program_name")
    ext = KnowledgeSharingApplication(
        request_type=request_type,
        program_type=payload.get("program_type"),
        program_type_ar=payload.get("program_type_ar"),
        program_name=program_name,
        program_name_ar=payload.get("program_name_ar"),
        session_date=parse_datetime(payload.get("session_date")),
        session_dates=json.dumps(session_dates) if session_dates is not None else None,
        number_of_attendees=_optional_int(payload, "number_of_attendees"),
        attendee_details=payload.get("attendee_details"),
        query_text=query_text,
        attachment_name=payload.get("attachment_name"),
    )
    if request_type == "CALENDAR_BOOKING":
        action = f"Calendar booking submitted for {program_name or 'a program'}"
    else:
        action = "Training query submitted" + (f" regarding {program_name}" if program_name else "")
    return ext, action


def _build_chamber_boost(payload: dict, now: datetime):
    require_text(payload, "deal_title", "deal_type", "vendor_name", "category", "intended_use", "additional_notes")
    require_fields(payload, "deal_id", "deal_title", "deal_type", "vendor_name", "category")
    deal_type = payload["deal_type"]
    if deal_type not in DEAL_TYPES:
        raise ValidationError(f"Unknown deal_type: {deal_type}", details={"deal_type": sorted(DEAL_TYPES)})
    if deal_type == "LIMITED" and not payload.get("intended_use"):
        raise ValidationError("Intended use is required for limited deals", details={"intended_use": "required"})

    unlimited = deal_type == "UNLIMITED"
    ext = ChamberBoostApplication(
        deal_id=str(payload["deal_id"]),
        deal_title=payload["deal_title"],
        deal_title_ar=payload.get("deal_title_ar"),
        deal_type=deal_type,
        vendor_name=payload["vendor_name"],
        vendor_name_ar=payload.get("vendor_name_ar"),
        category=payload["category"],
        category_ar=payload.get("category_ar"),
        company_size=payload.get("company_size"),
        intended_use=payload.get("intended_use"),
        additional_notes=payload.get("additional_notes"),
        voucher_code=generate_voucher_code(payload["vendor_name"]) if unlimited else None,
        fulfilled_at=now if unlimited else None,
    )
    if unlimited:
        action = f"Unlimited deal submitted — voucher auto-generated for {payload['deal_title']}"
    else:
        action = f"Limited deal request submitted for {payload['deal_title']}"
    return ext, action


def _build_general(service_type: str):
    def _build(payload: dict, now: datetime):
        require_text(payload, "subject", "request_details")
        require_fields(payload, "request_details")
        ext = GeneralServiceRequest(
            service_type=service_type,
            subject=payload.get("subject"),
            request_details=payload["request_details"],
        )
        return ext, f"{service_labels(service_type)['service_name_en']} request submitted"
    return _build


_BUILDERS = {
    "ESG_LABEL": _build_esg,
    "KNOWLEDGE_SHARING": _build_knowledge_sharing,
    "CHAMBER_BOOST": _build_chamber_boost,
}


# ═════════════════════════════════════════════════════════════════════════════
# Public API
# ═════════════════════════════════════════════════════════════════════════════

def create_submission(service_type: str, payload: dict, actor: str | None = None,
                      *, now: datetime | None = None) -> BaseApplication:
    """
    Validate *payload* and create the application with its extension.

    The submitter name is read from ``submitted_by`` (or ``company_name``).
    *actor* defaults to that name and is recorded on the ledger entry.

    Raises:
        ValidationError: unknown service kind or invalid payload.
    """
    if service_type not in SERVICE_TYPES:
        raise ValidationError(
            f"Unknown service_type: {service_type}",
            details={"service_type": list(SERVICE_TYPES)},
        )
    payload = dict(payload or {})
    require_text(payload, "submitted_by", "company_name")
    if not payload.get("submitted_by") and payload.get("company_name"):
        payload["submitted_by"] = payload["company_name"]
    require_fields(payload, "submitted_by")
    email = normalize_email(payload.get("email"))
    now = now or datetime.now(UTC)

    builder = _BUILDERS.get(service_type) or _build_general(service_type)
    extension, action = builder(payload, now)

    app = BaseApplication(
        service_type=service_type,
        status="SUBMITTED",
        submitted_by=payload["submitted_by"].strip(),
        submitted_by_email=email,
        member_tier=payload.get("member_tier") or "Standard",
        submitted_at=now,
        updated_at=now,
    )
    if service_type == "CHAMBER_BOOST" and extension.deal_type == "UNLIMITED":
        app.status = "APPROVED"
        app.reviewed_at = now
        app.reviewed_by = "System"
    extension.base_application = app

    try:
        db.session.add(app)
        db.session.add(extension)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Submission for %s failed — rolled back", service_type)
        raise

    actor = (actor or app.submitted_by).strip() or app.submitted_by
    logger.info(
        "Submission %s created (%s)", app.id, service_type,
        extra={
            "event_type": "submission_created",
            "application_id": app.id,
            "service_type": service_type,
            "actor": actor,
        },
    )
    activity_ledger.append(app.id, service_type, action, actor)
    return app
