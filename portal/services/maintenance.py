"""
Administrative maintenance operations.

    reset_all_applications()         purge every record family and its audit trail
    migrate_legacy_applications()    copy legacy ESG records into Base + ESG extension
    cleanup_orphaned_applications()  delete base records that lost their extension

Exposed as Flask CLI commands (see ``create_app``) and as scripts under
``scripts/``.  None of these is reachable over HTTP.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from portal.models import db
from portal.models.application import (
    BaseApplication,
    ChamberBoostApplication,
    EsgApplication,
    GeneralServiceRequest,
    KnowledgeSharingApplication,
)
from portal.models.audit import ActivityLog
from portal.models.certificate import Certificate
from portal.models.legacy import LegacyApplication, ReviewNote, map_legacy_status
from portal.services import activity_ledger
from portal.services.certificate_service import issue_certificate

logger = logging.getLogger(__name__)

MIGRATION_ACTOR = "System (migration)"
MIGRATED_REVIEWER = "Staff (migrated)"

# Children first
_PURGE_ORDER = (
    ("activity_logs", ActivityLog),
    ("review_notes", ReviewNote),
    ("certificates", Certificate),
    ("knowledge_sharing_applications", KnowledgeSharingApplication),
    ("esg_applications", EsgApplication),
    ("chamber_boost_applications", ChamberBoostApplication),
    ("general_service_requests", GeneralServiceRequest),
    ("base_applications", BaseApplication),
    ("legacy_applications", LegacyApplication),
)


def record_counts() -> dict:
    return {name: model.query.count() for name, model in _PURGE_ORDER}


def reset_all_applications() -> dict:
    """
    Delete all applications of both families together with certificates,
    review notes and activity logs.  Staff users are kept.

    Returns ``{"before": {...}, "after": {...}}`` row counts.
    """
    before = record_counts()
    try:
        for _name, model in _PURGE_ORDER:
            model.query.delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Application purge failed — rolled back")
        raise
    after = record_counts()
    logger.warning(
        "All application data purged (%d base, %d legacy)",
        before["base_applications"], before["legacy_applications"],
        extra={"event_type": "purge_executed"},
    )
    return {"before": before, "after": after}


def _migrate_one(legacy: LegacyApplication) -> BaseApplication:
    status = map_legacy_status(legacy.status)
    resolved = legacy.status in ("APPROVED", "REJECTED")
    base = BaseApplication(
        id=legacy.id,
        service_type="ESG_LABEL",
        status=status,
        submitted_by=legacy.organization_name or legacy.applicant_name,
        submitted_by_email=legacy.email,
        member_tier="Standard",
        submitted_at=legacy.created_at,
        updated_at=legacy.updated_at,
        reviewed_at=legacy.updated_at if resolved else None,
        reviewed_by=MIGRATED_REVIEWER if resolved else None,
        internal_notes=legacy.ai_precheck_result,
    )
    base.esg_application = EsgApplication(
        phone_number=legacy.phone_number,
        trade_license_number=legacy.trade_license_number,
        sector=legacy.sector,
        sub_sector=legacy.sub_sector,
        country=legacy.country,
        environmental_profile=legacy.environmental_profile,
        social_profile=legacy.social_profile,
        governance_profile=legacy.governance_profile,
        eoi_submitted_at=legacy.created_at,
    )
    db.session.add(base)
    db.session.flush()

    cert = legacy.certificate
    if cert is not None:
        cert.legacy_application_id = None
        cert.base_application_id = base.id
    elif status == "APPROVED":
        issue_certificate(base_application_id=base.id)
    return base


def migrate_legacy_applications() -> dict:
    """
    Copy every un-migrated legacy record into BaseApplication + EsgApplication.

    The new record reuses the legacy id.  Records are skipped when that id
    already exists in base_applications or when the submitter already has an
    ESG_LABEL base record.  Each record is migrated in its own transaction.
    """
    summary = {"total": 0, "migrated": 0, "skipped": 0, "failed": 0, "migrated_ids": []}
    legacy_ids = [row.id for row in db.session.query(LegacyApplication.id).order_by(LegacyApplication.created_at)]
    summary["total"] = len(legacy_ids)

    for legacy_id in legacy_ids:
        legacy = db.session.get(LegacyApplication, legacy_id)
        duplicate = (
            db.session.get(BaseApplication, legacy_id) is not None
            or BaseApplication.query.filter_by(
                submitted_by_email=legacy.email, service_type="ESG_LABEL",
            ).first() is not None
        )
        if duplicate:
            logger.info("Skip legacy %s (%s) — already present", legacy_id, legacy.email)
            summary["skipped"] += 1
            continue
        try:
            base = _migrate_one(legacy)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Migration of legacy application %s failed — rolled back", legacy_id)
            summary["failed"] += 1
            continue

        activity_ledger.append(
            base.id, "ESG_LABEL", f"Migrated from legacy Application {legacy_id}", MIGRATION_ACTOR,
        )
        summary["migrated"] += 1
        summary["migrated_ids"].append(base.id)
        logger.info(
            "Migrated legacy %s [%s → %s]", legacy_id, legacy.status, base.status,
            extra={"event_type": "legacy_migrated", "application_id": base.id},
        )

    return summary


def cleanup_orphaned_applications() -> dict:
    """Delete base records whose typed extension is missing."""
    orphan_ids = [app.id for app in BaseApplication.query.all() if app.extension is None]
    if orphan_ids:
        try:
            ActivityLog.query.filter(ActivityLog.application_id.in_(orphan_ids)).delete(synchronize_session=False)
            Certificate.query.filter(Certificate.base_application_id.in_(orphan_ids)).delete(synchronize_session=False)
            BaseApplication.query.filter(BaseApplication.id.in_(orphan_ids)).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Orphan cleanup failed — rolled back")
            raise
        logger.warning("Deleted %d orphaned base applications", len(orphan_ids),
                       extra={"event_type": "orphans_deleted"})
    return {"deleted": len(orphan_ids), "ids": orphan_ids}
