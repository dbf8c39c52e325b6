"""
Legacy ESG applications → BaseApplication + EsgApplication migration script.

Copies every legacy record that has no base counterpart yet.  The new base
record reuses the legacy id, so listings de-duplicate the pair by id.

Usage:
    APP_ENV=development python scripts/migrate_legacy_esg.py
    # or
    flask migrate-legacy

Idempotency:
    A record is skipped when its id already exists in base_applications, or
    when the submitter already has an ESG_LABEL base record.  Safe to re-run
    after a partial failure.

Field Mapping:
    legacy.id                          → base.id
    legacy.organization_name           → base.submitted_by  (applicant_name if empty)
    legacy.email                       → base.submitted_by_email
    legacy.status                      → base.status  (CORRECTIONS_REQUESTED → PENDING_INFO)
    legacy.ai_precheck_result          → base.internal_notes
    legacy.created_at                  → base.submitted_at, esg.eoi_submitted_at
    legacy sector / profiles / licence → esg extension
    legacy certificate                 → re-linked to the base record
"""

import logging
import sys

# Allow running directly: `python scripts/migrate_legacy_esg.py`
if __name__ == "__main__" and __package__ is None:
    import os

    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portal import create_app
from portal.services.maintenance import migrate_legacy_applications

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def migrate(app=None) -> dict:
    """Run the migration inside a Flask app context (reused if already active)."""
    from flask import has_app_context

    if has_app_context():
        return migrate_legacy_applications()
    app = app or create_app()
    with app.app_context():
        return migrate_legacy_applications()


if __name__ == "__main__":
    result = migrate()
    logger.info(
        "Legacy migration finished: total=%d migrated=%d skipped=%d failed=%d",
        result["total"], result["migrated"], result["skipped"], result["failed"],
    )
    sys.exit(0 if result["failed"] == 0 else 1)
