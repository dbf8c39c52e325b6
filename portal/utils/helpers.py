"""Shared utility functions for services and blueprints.

as_utc:             naive SQLite datetimes → tz-aware UTC
parse_datetime:     ISO / DD.MM.YYYY input → aware datetime (None on bad input)
normalize_email:    syntax check + normalisation via email-validator
require_fields:     collect missing required payload keys into one ValidationError
require_text:       reject non-string values for free-text fields
page_args:          page / per_page query params, clamped to config limits
"""
import logging
from datetime import UTC, date, datetime

from email_validator import EmailNotValidError, validate_email
from flask import current_app, request

from portal.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def as_utc(dt):
    """Normalise a datetime to UTC-aware regardless of whether SQLite stored it naive.

    SQLite's DateTime columns return naive datetimes; PostgreSQL returns tz-aware.
    All comparisons against ``datetime.now(UTC)`` go through this helper so the
    same code works in both environments.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def parse_datetime(value):
    """Parse an ISO date/datetime (or DD.MM.YYYY) string to an aware datetime.

    Returns None for empty/invalid input.  Plain dates become midnight UTC.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(raw))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(raw, "%d.%m.%Y").replace(tzinfo=UTC)
    except (ValueError, TypeError):
        return None


def normalize_email(email):
    """Return the normalised form of *email* or raise ValidationError."""
    if not email or not str(email).strip():
        raise ValidationError("email is required", details={"email": "required"})
    try:
        return validate_email(str(email).strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"})


def require_fields(payload: dict, *fields):
    """Raise ValidationError naming every field that is missing or blank."""
    missing = [
        f for f in fields
        if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload.get(f).strip())
    ]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={f: "required" for f in missing},
        )


def page_args(default_size=None):
    """Read ``page`` / ``per_page`` from the query string.

    Non-numeric input falls back to the defaults; ``per_page`` is capped at
    ``MAX_PAGE_SIZE``.
    """
    cfg = current_app.config
    default_size = default_size or cfg.get("DEFAULT_PAGE_SIZE", 10)
    max_size = cfg.get("MAX_PAGE_SIZE", 100)
    try:
        page = max(int(request.args.get("page", 1)), 1)
    except (ValueError, TypeError):
        page = 1
    try:
        per_page = int(request.args.get("per_page", default_size))
    except (ValueError, TypeError):
        per_page = default_size
    return page, min(max(per_page, 1), max_size)


def require_text(payload: dict, *fields):
    """Raise ValidationError for any of *fields* that is present but not a string."""
    wrong = [f for f in fields if payload.get(f) is not None and not isinstance(payload.get(f), str)]
    if wrong:
        raise ValidationError(
            f"Fields must be text: {', '.join(wrong)}",
            details={f: "must be a string" for f in wrong},
        )
