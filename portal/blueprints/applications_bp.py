"""
Applications blueprint — unified listing, detail and staff updates.

Endpoints (member):
    GET    /api/v1/member/applications?email=...             — own applications, both families
    GET    /api/v1/member/applications/<id>?email=...        — submitter view
    POST   /api/v1/member/applications/<id>/resubmit         — supply info / legacy resubmission

Endpoints (staff):
    GET    /api/v1/staff/applications                        — merged listing with facets
    GET    /api/v1/staff/applications/<id>                   — staff view with ledger
    PATCH  /api/v1/staff/applications/<id>                   — status / assignment / notes / response
    GET    /api/v1/staff/applications/<id>/assist            — reviewer hint
    GET    /api/v1/staff/users                               — reviewers available for assignment

Listing query params:
    email, service_type, status, department   (comma-separated lists allowed)
    date_from, date_to                         (ISO 8601 or DD.MM.YYYY)
    search                                     (submitter name or id)
    sort, order, page, per_page
"""

import logging

from flask import Blueprint, jsonify, request

from portal.ai import get_assistant
from portal.auth import authorize, resolve_actor
from portal.blueprints import register_error_handlers
from portal.core.exceptions import ValidationError
from portal.models import db
from portal.models.application import BaseApplication, StaffUser
from portal.models.legacy import LegacyApplication
from portal.services import reconciliation
from portal.services.application_lifecycle import (
    KS_RESPONSE_FIELDS,
    get_application_or_404,
    respond_to_information_request,
    update_application,
)
from portal.services.legacy_applications import resubmit_legacy_application
from portal.utils.helpers import normalize_email, page_args

logger = logging.getLogger(__name__)

applications_bp = Blueprint("applications", __name__, url_prefix="/api/v1")
register_error_handlers(applications_bp)

_PATCH_FIELDS = ("status", "note", "assigned_to_id", "internal_notes", "rejection_reason", *KS_RESPONSE_FIELDS)


def _listing(flt):
    page, per_page = page_args()
    result = reconciliation.list_applications(
        flt, page=page, per_page=per_page,
        sort=request.args.get("sort"), order=request.args.get("order"),
    )
    return jsonify(result), 200


def _submitter_email():
    email = request.args.get("email")
    if email is None and request.is_json:
        email = (request.get_json(silent=True) or {}).get("email")
    return normalize_email(email)


# ═════════════════════════════════════════════════════════════════════════════
# Member views
# ═════════════════════════════════════════════════════════════════════════════

@applications_bp.route("/member/applications", methods=["GET"])
def member_list():
    flt = reconciliation.ApplicationFilter.from_args(request.args)
    flt.email = _submitter_email()
    return _listing(flt)


@applications_bp.route("/member/applications/<application_id>", methods=["GET"])
def member_detail(application_id):
    detail = reconciliation.get_application(
        application_id, audience="submitter", submitter_email=_submitter_email(),
    )
    return jsonify(detail), 200


@applications_bp.route("/member/applications/<application_id>/resubmit", methods=["POST"])
def member_resubmit(application_id):
    """
    Base records in PENDING_INFO take ``details``; legacy records in
    CORRECTIONS_REQUESTED take the corrected fields.
    """
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))

    app = db.session.get(BaseApplication, application_id)
    if app is not None:
        actor = resolve_actor(data, default=app.submitted_by)
        authorize(actor, "application.resubmit", app)
        respond_to_information_request(
            application_id, data.get("details"), actor, submitter_email=email,
        )
    else:
        legacy = db.session.get(LegacyApplication, application_id)
        actor = resolve_actor(data, default=legacy.applicant_name if legacy else "Member")
        authorize(actor, "legacy.resubmit", legacy)
        resubmit_legacy_application(application_id, data, submitter_email=email)

    detail = reconciliation.get_application(application_id, audience="submitter", submitter_email=email)
    return jsonify(detail), 200


# ═════════════════════════════════════════════════════════════════════════════
# Staff views
# ═════════════════════════════════════════════════════════════════════════════

@applications_bp.route("/staff/applications", methods=["GET"])
def staff_list():
    return _listing(reconciliation.ApplicationFilter.from_args(request.args))


@applications_bp.route("/staff/applications/<application_id>", methods=["GET"])
def staff_detail(application_id):
    return jsonify(reconciliation.get_application(application_id, audience="staff")), 200


@applications_bp.route("/staff/applications/<application_id>", methods=["PATCH"])
def staff_update(application_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    changes = {k: data[k] for k in _PATCH_FIELDS if k in data}
    if not changes:
        raise ValidationError(
            "No updatable fields supplied",
            details={"accepted": list(_PATCH_FIELDS)},
        )

    actor = resolve_actor(data)
    app = get_application_or_404(application_id)
    authorize(actor, "application.update", app)
    update_application(application_id, changes, actor)
    return jsonify(reconciliation.get_application(application_id, audience="staff")), 200


@applications_bp.route("/staff/applications/<application_id>/assist", methods=["GET"])
def staff_assist(application_id):
    detail = reconciliation.get_application(application_id, audience="staff")
    return jsonify(get_assistant().review_assist(detail)), 200


@applications_bp.route("/staff/users", methods=["GET"])
def staff_users():
    users = StaffUser.query.order_by(StaffUser.name).all()
    return jsonify({"items": [u.to_dict() for u in users], "total": len(users)}), 200
