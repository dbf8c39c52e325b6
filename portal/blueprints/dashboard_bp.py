"""
Staff dashboard blueprint.

Endpoints:
    GET /api/v1/staff/stats      — headline KPIs and per-service counts
    GET /api/v1/staff/activity   — cross-application activity feed (?page=, ?per_page=)
"""

from flask import Blueprint, current_app, jsonify

from portal.blueprints import register_error_handlers
from portal.services import activity_ledger
from portal.services.dashboard_service import get_staff_stats
from portal.utils.helpers import page_args

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/staff")
register_error_handlers(dashboard_bp)


@dashboard_bp.route("/stats", methods=["GET"])
def stats():
    return jsonify(get_staff_stats()), 200


@dashboard_bp.route("/activity", methods=["GET"])
def activity():
    page, per_page = page_args(current_app.config.get("ACTIVITY_FEED_PAGE_SIZE", 15))
    return jsonify(activity_ledger.activity_feed(page=page, per_page=per_page)), 200
