"""
Submissions blueprint — intake of new service requests.

Endpoints:
    POST /api/v1/submissions                  — service_type in the body
    POST /api/v1/submissions/<service_type>   — service_type in the path

Returns 201 with ``{id, service_type, status, submitted_at}``.
"""

import logging

from flask import Blueprint, jsonify, request

from portal.auth import authorize, resolve_actor
from portal.blueprints import register_error_handlers
from portal.core.exceptions import ValidationError
from portal.services.intake_service import create_submission

logger = logging.getLogger(__name__)

submissions_bp = Blueprint("submissions", __name__, url_prefix="/api/v1/submissions")
register_error_handlers(submissions_bp)


@submissions_bp.route("", methods=["POST"])
@submissions_bp.route("/<service_type>", methods=["POST"])
def submit(service_type=None):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    service_type = (service_type or data.get("service_type") or "").strip().upper()
    if not service_type:
        raise ValidationError("service_type is required", details={"service_type": "required"})

    actor = resolve_actor(data, default=data.get("submitted_by") or data.get("company_name") or "Member")
    authorize(actor, "application.submit")
    app = create_submission(service_type, data, actor)
    return jsonify({
        "id": app.id,
        "service_type": app.service_type,
        "status": app.status,
        "submitted_at": app.to_dict()["submitted_at"],
    }), 201
