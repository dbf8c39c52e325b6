"""
Reconciliation / merge layer — the one place that knows both record families.

Every read path (member list, staff list, detail) goes through here and gets
the same unified row shape, whether the record is a BaseApplication or a
not-yet-migrated LegacyApplication.

Merge rules:
  - Base and legacy records are filtered independently with the same filter.
  - A legacy record whose id exists in base_applications is already migrated
    and is dropped; the base record wins.
  - Each family is ordered by the requested sort; base rows come first, then
    legacy rows, and pagination slices the concatenated list.
  - Facet counts ignore the status / service / department / date / search
    filters and are scoped only by submitter email.  Legacy records count as
    ESG_LABEL with CORRECTIONS_REQUESTED folded into PENDING_INFO.

Usage:
    from portal.services.reconciliation import ApplicationFilter, list_applications

    result = list_applications(ApplicationFilter(email="ops@acme.ae"), page=1, per_page=10)
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime, time

from flask import current_app
from sqlalchemy import case, func, or_
from sqlalchemy.orm import selectinload

from portal.core.exceptions import NotFoundError, ValidationError
from portal.models import db
from portal.models.application import (
    APPLICATION_STATUSES,
    SERVICE_TYPES,
    TERMINAL_STATUSES,
    BaseApplication,
)
from portal.models.audit import INTERNAL_MARKER
from portal.models.legacy import LEGACY_STATUS_MAP, LegacyApplication, map_legacy_status
from portal.services import activity_ledger
from portal.services.legacy_applications import legacy_to_dict, not_migrated
from portal.services.service_catalog import (
    request_summary,
    service_labels,
    service_meta,
    service_types_for_department,
    status_meta,
)
from portal.services.sla import sla_status
from portal.services.status_machine import allowed_next_statuses
from portal.utils.helpers import as_utc, parse_datetime

logger = logging.getLogger(__name__)

LEGACY_SERVICE_TYPE = "ESG_LABEL"

# sort key → default direction
SORT_KEYS = {
    "submitted_at": "desc",
    "status": "asc",
    "submitted_by": "asc",
    "id": "asc",
}
SORT_ALIASES = {
    "newest": ("submitted_at", "desc"),
    "oldest": ("submitted_at", "asc"),
}
DEFAULT_SORT = ("submitted_at", "desc")


# ═════════════════════════════════════════════════════════════════════════════
# Filter
# ═════════════════════════════════════════════════════════════════════════════

def _split(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [v.strip() for v in value if v and v.strip()]


def _date_bound(value, *, end: bool):
    """Parse a date-range bound; a bare date as upper bound covers the whole day."""
    if not value:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        key = "date_to" if end else "date_from"
        raise ValidationError(f"Invalid date for {key}: {value}", details={key: "invalid"})
    if end and isinstance(value, str) and len(value.strip()) == 10:
        parsed = datetime.combine(parsed.date(), time.max, tzinfo=UTC)
    return parsed


@dataclass
class ApplicationFilter:
    """Listing filter.  Empty fields mean "no restriction"."""

    email: str | None = None
    service_types: list[str] = field(default_factory=list)
    statuses: list[str] = field(default_factory=list)
    department: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None

    @classmethod
    def from_args(cls, args) -> "ApplicationFilter":
        """Build from request query args (comma-separated multi-values)."""
        return cls(
            email=(args.get("email") or "").strip() or None,
            service_types=_split(args.get("service_type")),
            statuses=_split(args.get("status")),
            department=(args.get("department") or "").strip() or None,
            date_from=_date_bound(args.get("date_from"), end=False),
            date_to=_date_bound(args.get("date_to"), end=True),
            search=(args.get("search") or "").strip() or None,
        )

    def effective_service_types(self) -> list[str] | None:
        """
        Service kinds the listing is restricted to, or None for "all".

        Department is resolved to its kinds and intersected with any explicit
        service-kind filter.
        """
        unknown = [s for s in self.service_types if s not in SERVICE_TYPES]
        if unknown:
            raise ValidationError(
                f"Unknown service_type: {', '.join(unknown)}",
                details={"service_type": list(SERVICE_TYPES)},
            )
        kinds = list(self.service_types) or None
        if self.department:
            dept_kinds = service_types_for_department(self.department)
            kinds = [k for k in (kinds or dept_kinds) if k in dept_kinds]
        return kinds

    def validated_statuses(self) -> list[str]:
        unknown = [s for s in self.statuses if s not in APPLICATION_STATUSES]
        if unknown:
            raise ValidationError(
                f"Unknown status: {', '.join(unknown)}",
                details={"status": list(APPLICATION_STATUSES)},
            )
        return list(self.statuses)


def resolve_sort(sort: str | None, order: str | None = None) -> tuple[str, str]:
    """Map a requested sort onto the allow-list; anything else → submitted_at desc."""
    if sort in SORT_ALIASES:
        return SORT_ALIASES[sort]
    if sort not in SORT_KEYS:
        return DEFAULT_SORT
    direction = (order or SORT_KEYS[sort]).lower()
    if direction not in ("asc", "desc"):
        direction = SORT_KEYS[sort]
    return sort, direction


# ═════════════════════════════════════════════════════════════════════════════
# Queries
# ═════════════════════════════════════════════════════════════════════════════

def _status_rank(column, mapping=None):
    """Workflow-order rank of a status column (legacy values mapped first)."""
    order = {s: i for i, s in enumerate(APPLICATION_STATUSES)}
    if mapping:
        order = {legacy: order[mapped] for legacy, mapped in mapping.items()}
    return case(order, value=column, else_=len(APPLICATION_STATUSES))


def _ordered(q, columns: dict, sort_key: str, direction: str):
    col = columns[sort_key]
    primary = col.desc() if direction == "desc" else col.asc()
    tiebreak = columns["id"].desc() if direction == "desc" else columns["id"].asc()
    return q.order_by(primary, tiebreak) if sort_key != "id" else q.order_by(primary)


def _base_query(flt: ApplicationFilter, kinds, statuses):
    q = BaseApplication.query
    if flt.email:
        q = q.filter(func.lower(BaseApplication.submitted_by_email) == flt.email.lower())
    if kinds is not None:
        q = q.filter(BaseApplication.service_type.in_(kinds))
    if statuses:
        q = q.filter(BaseApplication.status.in_(statuses))
    if flt.date_from:
        q = q.filter(BaseApplication.submitted_at >= flt.date_from)
    if flt.date_to:
        q = q.filter(BaseApplication.submitted_at <= flt.date_to)
    if flt.search:
        term = f"%{flt.search.lower()}%"
        q = q.filter(or_(
            func.lower(BaseApplication.submitted_by).like(term),
            func.lower(BaseApplication.id).like(term),
        ))
    return q


def _legacy_query(flt: ApplicationFilter, kinds, statuses):
    q = LegacyApplication.query.filter(not_migrated())
    if kinds is not None and LEGACY_SERVICE_TYPE not in kinds:
        return None
    if flt.email:
        q = q.filter(func.lower(LegacyApplication.email) == flt.email.lower())
    if statuses:
        legacy_statuses = [ls for ls, mapped in LEGACY_STATUS_MAP.items() if mapped in statuses]
        if not legacy_statuses:
            return None
        q = q.filter(LegacyApplication.status.in_(legacy_statuses))
    if flt.date_from:
        q = q.filter(LegacyApplication.created_at >= flt.date_from)
    if flt.date_to:
        q = q.filter(LegacyApplication.created_at <= flt.date_to)
    if flt.search:
        term = f"%{flt.search.lower()}%"
        q = q.filter(or_(
            func.lower(LegacyApplication.organization_name).like(term),
            func.lower(LegacyApplication.applicant_name).like(term),
            func.lower(LegacyApplication.id).like(term),
        ))
    return q


_BASE_SORT_COLUMNS = {
    "submitted_at": BaseApplication.submitted_at,
    "status": _status_rank(BaseApplication.status),
    "submitted_by": BaseApplication.submitted_by,
    "id": BaseApplication.id,
}
_LEGACY_SORT_COLUMNS = {
    "submitted_at": LegacyApplication.created_at,
    "status": _status_rank(LegacyApplication.status, LEGACY_STATUS_MAP),
    "submitted_by": LegacyApplication.organization_name,
    "id": LegacyApplication.id,
}


# ═════════════════════════════════════════════════════════════════════════════
# Row mapping
# ═════════════════════════════════════════════════════════════════════════════

def _iso(dt):
    dt = as_utc(dt)
    return dt.isoformat() if dt else None


def _sla_end(status: str, reviewed_at, now: datetime):
    """Resolved records stop their SLA clock at review time."""
    if status in TERMINAL_STATUSES and reviewed_at is not None:
        return as_utc(reviewed_at)
    return now


def _row(*, id, service_type, status, legacy_status, submitted_by, submitted_by_email,
         submitted_at, updated_at, reviewed_at, extension, is_legacy, now):
    labels = service_labels(service_type)
    smeta = status_meta(status)
    summary = request_summary(service_type, extension)
    sla = sla_status(submitted_at, labels["sla_days"], _sla_end(status, reviewed_at, now))
    return {
        "id": id,
        "application_id": id[:8] + "...",
        "service_type": service_type,
        **labels,
        "status": status,
        "legacy_status": legacy_status,
        "status_label_en": smeta["en"],
        "status_label_ar": smeta["ar"],
        "status_color": smeta["color"],
        "submitted_by": submitted_by,
        "submitted_by_email": submitted_by_email,
        "submitted_at": _iso(submitted_at),
        "updated_at": _iso(updated_at),
        "sla_status": sla,
        "sla_label": sla["label"],
        "request_summary": summary["en"],
        "request_summary_ar": summary["ar"],
        "is_legacy": is_legacy,
    }


def base_row(app: BaseApplication, now: datetime | None = None) -> dict:
    ext = app.extension
    return _row(
        id=app.id,
        service_type=app.service_type,
        status=app.status,
        legacy_status=None,
        submitted_by=app.submitted_by,
        submitted_by_email=app.submitted_by_email,
        submitted_at=app.submitted_at,
        updated_at=app.updated_at,
        reviewed_at=app.reviewed_at,
        extension=ext.to_dict() if ext else None,
        is_legacy=False,
        now=now or datetime.now(UTC),
    )


def legacy_row(legacy: LegacyApplication, now: datetime | None = None) -> dict:
    return _row(
        id=legacy.id,
        service_type=LEGACY_SERVICE_TYPE,
        status=map_legacy_status(legacy.status),
        legacy_status=legacy.status,
        submitted_by=legacy.organization_name,
        submitted_by_email=legacy.email,
        submitted_at=legacy.created_at,
        updated_at=legacy.updated_at,
        reviewed_at=None,
        extension={"sub_sector": legacy.sub_sector},
        is_legacy=True,
        now=now or datetime.now(UTC),
    )


# ═════════════════════════════════════════════════════════════════════════════
# Facets
# ═════════════════════════════════════════════════════════════════════════════

def facet_counts(email: str | None = None) -> dict:
    """Counts per service kind / status / department, scoped only by *email*."""
    by_service: dict[str, int] = {}
    by_status: dict[str, int] = {}
    by_department: dict[str, int] = {}

    def _bump(service_type, status, n):
        by_service[service_type] = by_service.get(service_type, 0) + n
        by_status[status] = by_status.get(status, 0) + n
        meta = service_meta(service_type)
        if meta:
            by_department[meta.department] = by_department.get(meta.department, 0) + n

    base_q = db.session.query(BaseApplication.service_type, BaseApplication.status, func.count(BaseApplication.id))
    if email:
        base_q = base_q.filter(func.lower(BaseApplication.submitted_by_email) == email.lower())
    for service_type, status, n in base_q.group_by(BaseApplication.service_type, BaseApplication.status):
        _bump(service_type, status, n)

    legacy_q = (
        db.session.query(LegacyApplication.status, func.count(LegacyApplication.id))
        .filter(not_migrated())
    )
    if email:
        legacy_q = legacy_q.filter(func.lower(LegacyApplication.email) == email.lower())
    for status, n in legacy_q.group_by(LegacyApplication.status):
        _bump(LEGACY_SERVICE_TYPE, map_legacy_status(status), n)

    return {"by_service": by_service, "by_status": by_status, "by_department": by_department}


# ═════════════════════════════════════════════════════════════════════════════
# Public API
# ═════════════════════════════════════════════════════════════════════════════

def list_applications(flt: ApplicationFilter, page: int = 1, per_page: int = 10,
                      sort: str | None = None, order: str | None = None,
                      now: datetime | None = None) -> dict:
    """
    Merged, paginated listing.

    Returns ``{rows, total_count, page, per_page, total_pages, facet_counts}``.
    """
    kinds = flt.effective_service_types()
    statuses = flt.validated_statuses()
    sort_key, direction = resolve_sort(sort, order)
    now = now or datetime.now(UTC)
    page = max(int(page), 1)
    per_page = max(int(per_page), 1)

    base_q = None if kinds == [] else _base_query(flt, kinds, statuses)
    legacy_q = None if kinds == [] else _legacy_query(flt, kinds, statuses)

    base_count = base_q.count() if base_q is not None else 0
    legacy_count = legacy_q.count() if legacy_q is not None else 0
    total = base_count + legacy_count

    start = (page - 1) * per_page
    rows: list[dict] = []
    if base_q is not None and start < base_count:
        apps = (
            _ordered(base_q, _BASE_SORT_COLUMNS, sort_key, direction)
            .options(
                selectinload(BaseApplication.esg_application),
                selectinload(BaseApplication.knowledge_sharing_application),
            )
            .offset(start).limit(per_page).all()
        )
        rows.extend(base_row(a, now) for a in apps)
    remaining = per_page - len(rows)
    if legacy_q is not None and remaining > 0:
        legacy_start = max(start - base_count, 0)
        legacy = (
            _ordered(legacy_q, _LEGACY_SORT_COLUMNS, sort_key, direction)
            .offset(legacy_start).limit(remaining).all()
        )
        rows.extend(legacy_row(lg, now) for lg in legacy)

    return {
        "rows": rows,
        "total_count": total,
        "page": page,
        "per_page": per_page,
        "total_pages": math.ceil(total / per_page) if total else 0,
        "facet_counts": facet_counts(flt.email),
    }


def _submitter_visible(text: str | None) -> bool:
    return INTERNAL_MARKER not in (text or "").lower()


def get_application(application_id: str, audience: str = "staff", *,
                    submitter_email: str | None = None, now: datetime | None = None) -> dict:
    """
    Unified detail view of one application from either family.

    ``audience="submitter"`` drops internal notes and internal ledger
    entries; with *submitter_email* set, a record owned by someone else is
    reported as not found.
    """
    now = now or datetime.now(UTC)
    ledger_limit = current_app.config.get("LEDGER_PAGE_SIZE", 50)

    app = db.session.get(BaseApplication, application_id)
    if app is not None:
        if submitter_email and submitter_email.lower() != app.submitted_by_email.lower():
            raise NotFoundError("Application", application_id)
        detail = app.to_dict()
        detail.update(base_row(app, now))
        detail["activity"] = activity_ledger.list_for_application(app.id, audience, limit=ledger_limit)
        if audience == "submitter":
            detail.pop("internal_notes", None)
            detail.pop("assigned_to", None)
            detail.pop("assigned_to_id", None)
        else:
            detail["available_transitions"] = allowed_next_statuses(app.status, app.service_type)
        return detail

    legacy = db.session.get(LegacyApplication, application_id)
    if legacy is None:
        raise NotFoundError("Application", application_id)
    if submitter_email and submitter_email.lower() != legacy.email.lower():
        raise NotFoundError("Application", application_id)
    detail = legacy_to_dict(legacy, include_notes=False)
    detail.update(legacy_row(legacy, now))
    notes = activity_ledger.list_review_notes(legacy.id, limit=ledger_limit)
    if audience == "submitter":
        notes = [n for n in notes if _submitter_visible(n["note"])]
        detail.pop("ai_precheck_result", None)
    detail["review_notes"] = notes
    return detail
