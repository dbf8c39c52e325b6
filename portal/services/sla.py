"""
SLA / aging calculator — pure functions of timestamps, SLA days and ``now``.

    sla_status(submitted_at, sla_days, now)   per-record signal
    cohort_bucket(oldest_pending_days)         dashboard tile signal
    average_resolution_days(pairs)             mean (reviewed − submitted), 1 decimal
    format_resolution_days(value)              "—" for an empty average

Buckets:
    N/A       service kind has no SLA
    healthy   within SLA (record) / oldest pending < 3 days (cohort)
    watch     overdue and ≤ 7 days elapsed (record) / oldest pending 3–7 days (cohort)
    critical  overdue and > 7 days elapsed (record) / oldest pending > 7 days (cohort)
"""

import math
from datetime import UTC, datetime

from portal.utils.helpers import as_utc

BUCKET_NA = "N/A"
BUCKET_HEALTHY = "healthy"
BUCKET_WATCH = "watch"
BUCKET_CRITICAL = "critical"

WATCH_AFTER_DAYS = 3
CRITICAL_AFTER_DAYS = 7
APPROACHING_RATIO = 0.75

_SECONDS_PER_DAY = 86400


def _elapsed_days(start: datetime, now: datetime) -> float:
    return max((as_utc(now) - as_utc(start)).total_seconds(), 0) / _SECONDS_PER_DAY


def _label(elapsed: float, sla_days: int) -> tuple[str, str]:
    ratio = elapsed / sla_days
    remaining = sla_days - elapsed
    if ratio > 1:
        overdue = math.ceil(elapsed - sla_days)
        return f"{overdue}d overdue", f"متأخر {overdue} يوم"
    if ratio > APPROACHING_RATIO:
        hours = max(0, math.ceil(remaining * 24))
        if hours < 24:
            return f"{hours}h left", f"{hours} ساعة متبقية"
    days = math.ceil(remaining)
    return f"{days}d left", f"{days} يوم متبقي"


def sla_status(submitted_at: datetime, sla_days: int | None, now: datetime | None = None) -> dict:
    """
    Time-remaining-or-overdue signal for one record.

    ``sla_days`` of None (or ≤ 0) always yields the N/A bucket with no
    numeric fields.
    """
    if not sla_days or sla_days <= 0 or submitted_at is None:
        return {
            "sla_days": None,
            "days_elapsed": None,
            "days_remaining": None,
            "overdue_days": None,
            "bucket": BUCKET_NA,
            "label": "N/A",
            "label_ar": "غير محدد",
        }

    now = now or datetime.now(UTC)
    elapsed = _elapsed_days(submitted_at, now)
    overdue = elapsed > sla_days
    if not overdue:
        bucket = BUCKET_HEALTHY
    elif elapsed > CRITICAL_AFTER_DAYS:
        bucket = BUCKET_CRITICAL
    else:
        bucket = BUCKET_WATCH

    label, label_ar = _label(elapsed, sla_days)
    return {
        "sla_days": sla_days,
        "days_elapsed": round(elapsed, 2),
        "days_remaining": None if overdue else round(sla_days - elapsed, 2),
        "overdue_days": round(elapsed - sla_days, 2) if overdue else None,
        "bucket": bucket,
        "label": label,
        "label_ar": label_ar,
    }


def cohort_bucket(oldest_pending_days: float | None) -> str:
    """Aging signal for a group, driven by its oldest unresolved item."""
    if oldest_pending_days is None or oldest_pending_days < WATCH_AFTER_DAYS:
        return BUCKET_HEALTHY
    if oldest_pending_days <= CRITICAL_AFTER_DAYS:
        return BUCKET_WATCH
    return BUCKET_CRITICAL


def oldest_pending_days(oldest_submitted_at: datetime | None, now: datetime | None = None) -> int:
    """Whole days since the oldest pending submission (0 when none)."""
    if oldest_submitted_at is None:
        return 0
    return math.floor(_elapsed_days(oldest_submitted_at, now or datetime.now(UTC)))


def average_resolution_days(pairs) -> float:
    """Mean of ``reviewed_at − submitted_at`` in days, rounded to one decimal.

    *pairs* is an iterable of ``(submitted_at, reviewed_at)``; rows without a
    review timestamp are skipped.  An empty set yields 0.
    """
    durations = [
        (as_utc(reviewed) - as_utc(submitted)).total_seconds() / _SECONDS_PER_DAY
        for submitted, reviewed in pairs
        if submitted is not None and reviewed is not None
    ]
    if not durations:
        return 0
    return round(sum(durations) / len(durations), 1)


def format_resolution_days(value: float) -> str:
    return "—" if not value else f"{value}d"
