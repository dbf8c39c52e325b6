"""
Staff dashboard metrics.

Aggregates over BaseApplication only, computed fresh on every call:
  - total open / pending review / resolved today
  - average resolution time over the trailing 30 days
  - per-service totals with the age of the oldest pending item
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import func

from portal.models import db
from portal.models.application import (
    OPEN_STATUSES,
    PENDING_REVIEW_STATUSES,
    TERMINAL_STATUSES,
    BaseApplication,
)
from portal.services.sla import (
    average_resolution_days,
    cohort_bucket,
    format_resolution_days,
    oldest_pending_days,
)

logger = logging.getLogger(__name__)

RESOLUTION_WINDOW_DAYS = 30


def _count(statuses):
    return BaseApplication.query.filter(BaseApplication.status.in_(statuses)).count()


def get_resolution_pairs(since: datetime):
    """(submitted_at, reviewed_at) for records resolved since *since*."""
    return (
        db.session.query(BaseApplication.submitted_at, BaseApplication.reviewed_at)
        .filter(
            BaseApplication.status.in_(TERMINAL_STATUSES),
            BaseApplication.reviewed_at >= since,
        )
        .all()
    )


def get_service_counts(now: datetime) -> dict:
    """``{SERVICE_TYPE: {total, oldest_pending_days, bucket}}``."""
    counts = {}
    totals = (
        db.session.query(BaseApplication.service_type, func.count(BaseApplication.id))
        .group_by(BaseApplication.service_type)
        .all()
    )
    for service_type, total in totals:
        counts[service_type] = {"total": total, "oldest_pending_days": 0, "bucket": cohort_bucket(None)}

    oldest = (
        db.session.query(BaseApplication.service_type, func.min(BaseApplication.submitted_at))
        .filter(BaseApplication.status.in_(PENDING_REVIEW_STATUSES))
        .group_by(BaseApplication.service_type)
        .all()
    )
    for service_type, oldest_at in oldest:
        days = oldest_pending_days(oldest_at, now)
        entry = counts.setdefault(service_type, {"total": 0})
        entry["oldest_pending_days"] = days
        entry["bucket"] = cohort_bucket(days)
    return counts


def get_staff_stats(now: datetime | None = None) -> dict:
    """Headline KPIs plus per-service counts."""
    now = now or datetime.now(UTC)
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    resolved_today = BaseApplication.query.filter(
        BaseApplication.status.in_(TERMINAL_STATUSES),
        BaseApplication.reviewed_at >= today_start,
    ).count()
    avg_days = average_resolution_days(get_resolution_pairs(now - timedelta(days=RESOLUTION_WINDOW_DAYS)))

    return {
        "stats": {
            "total_open": _count(OPEN_STATUSES),
            "pending_review": _count(PENDING_REVIEW_STATUSES),
            "resolved_today": resolved_today,
            "avg_resolution_days": avg_days,
            "avg_resolution_display": format_resolution_days(avg_days),
        },
        "service_counts": get_service_counts(now),
    }
