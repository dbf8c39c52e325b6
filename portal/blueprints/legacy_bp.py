"""
Legacy ESG applications blueprint.

Endpoints:
    POST   /api/v1/legacy/applications                    — create (new intake uses /submissions)
    GET    /api/v1/legacy/applications                    — list of un-migrated records (?email=, ?status=)
    GET    /api/v1/legacy/applications/<id>               — detail with review notes
    PUT    /api/v1/legacy/applications/<id>/status        — staff status change
    POST   /api/v1/legacy/applications/<id>/notes         — free review note
    PUT    /api/v1/legacy/applications/<id>/resubmit      — resubmission after corrections
"""

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy import func

from portal.auth import authorize, resolve_actor
from portal.blueprints import register_error_handlers
from portal.core.exceptions import ValidationError
from portal.models.legacy import LEGACY_STATUSES, LegacyApplication
from portal.services.legacy_applications import (
    add_review_note,
    change_legacy_status,
    create_legacy_application,
    get_legacy_or_404,
    legacy_to_dict,
    not_migrated,
    resubmit_legacy_application,
)
from portal.utils.helpers import normalize_email, page_args

logger = logging.getLogger(__name__)

legacy_bp = Blueprint("legacy", __name__, url_prefix="/api/v1/legacy/applications")
register_error_handlers(legacy_bp)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data


@legacy_bp.route("", methods=["POST"])
def create():
    data = _json_body()
    actor = resolve_actor(data, default=data.get("applicant_name") or "Member")
    authorize(actor, "legacy.create")
    legacy = create_legacy_application(data)
    return jsonify(legacy_to_dict(legacy)), 201


@legacy_bp.route("", methods=["GET"])
def list_legacy():
    q = LegacyApplication.query.filter(not_migrated())
    email = (request.args.get("email") or "").strip()
    if email:
        q = q.filter(func.lower(LegacyApplication.email) == email.lower())
    status = (request.args.get("status") or "").strip()
    if status:
        if status not in LEGACY_STATUSES:
            raise ValidationError(f"Unknown status: {status}", details={"status": list(LEGACY_STATUSES)})
        q = q.filter(LegacyApplication.status == status)

    page, per_page = page_args()
    result = q.order_by(LegacyApplication.created_at.desc()).paginate(
        page=page, per_page=per_page, error_out=False,
    )
    return jsonify({
        "items": [legacy_to_dict(lg, include_notes=False) for lg in result.items],
        "total": result.total,
        "page": result.page,
        "pages": result.pages,
    }), 200


@legacy_bp.route("/<application_id>", methods=["GET"])
def get_legacy(application_id):
    return jsonify(legacy_to_dict(get_legacy_or_404(application_id))), 200


@legacy_bp.route("/<application_id>/status", methods=["PUT"])
def update_status(application_id):
    data = _json_body()
    if not data.get("status"):
        raise ValidationError("status is required", details={"status": "required"})
    actor = resolve_actor(data)
    legacy = get_legacy_or_404(application_id)
    authorize(actor, "legacy.update", legacy)
    legacy = change_legacy_status(application_id, data["status"], actor, data.get("note"))
    return jsonify(legacy_to_dict(legacy)), 200


@legacy_bp.route("/<application_id>/notes", methods=["POST"])
def add_note(application_id):
    data = _json_body()
    author_type = data.get("author_type") or "STAFF"
    actor = resolve_actor(data)
    authorize(actor, "legacy.note", get_legacy_or_404(application_id))
    note = add_review_note(application_id, data.get("note"), author_type)
    return jsonify(note.to_dict() if note else {}), 201


@legacy_bp.route("/<application_id>/resubmit", methods=["PUT"])
def resubmit(application_id):
    data = _json_body()
    legacy = get_legacy_or_404(application_id)
    actor = resolve_actor(data, default=legacy.applicant_name)
    authorize(actor, "legacy.resubmit", legacy)
    email = normalize_email(data["email"]) if data.get("email") else None
    legacy = resubmit_legacy_application(application_id, data, submitter_email=email)
    return jsonify(legacy_to_dict(legacy)), 200
