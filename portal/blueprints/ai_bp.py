"""
Chamber Service Portal
Assistant blueprint.

Endpoints:
    PRECHECK   /api/v1/ai/precheck     POST   — completeness feedback on a draft ESG application

Body: ``{description, sector?, organization_name?}``.  Returns ``{text, score}``.
"""

from flask import Blueprint, jsonify, request

from portal.ai import get_assistant
from portal.blueprints import register_error_handlers
from portal.core.exceptions import ValidationError

ai_bp = Blueprint("ai", __name__, url_prefix="/api/v1/ai")
register_error_handlers(ai_bp)


@ai_bp.route("/precheck", methods=["POST"])
def precheck():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    if not (data.get("description") or "").strip():
        raise ValidationError("description is required", details={"description": "required"})
    return jsonify(get_assistant().precheck(data)), 200
