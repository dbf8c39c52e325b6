"""
Chamber Service Portal
Legacy ESG application model (deprecated single-purpose record family).

Models:
    - LegacyApplication: ESG-only application that predates BaseApplication.
    - ReviewNote: free-text note attached to a legacy application; plays the
      role the ActivityLog plays for BaseApplication.

New submissions go through BaseApplication.  These tables are kept so old
records stay reachable until ``migrate_legacy_applications`` has copied them.
"""

import json
import uuid
from datetime import UTC, datetime

from portal.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(UTC)


# Five-valued legacy status set
LEGACY_STATUSES = (
    "SUBMITTED",
    "UNDER_REVIEW",
    "CORRECTIONS_REQUESTED",
    "APPROVED",
    "REJECTED",
)

# Legacy status → BaseApplication status
LEGACY_STATUS_MAP = {
    "SUBMITTED": "SUBMITTED",
    "UNDER_REVIEW": "UNDER_REVIEW",
    "CORRECTIONS_REQUESTED": "PENDING_INFO",
    "APPROVED": "APPROVED",
    "REJECTED": "REJECTED",
}

NOTE_AUTHOR_TYPES = frozenset({"SYSTEM", "STAFF", "CUSTOMER"})


def map_legacy_status(status: str) -> str:
    """Translate a legacy status into the BaseApplication vocabulary."""
    return LEGACY_STATUS_MAP.get(status, "SUBMITTED")


class LegacyApplication(db.Model):
    """Deprecated ESG application record."""

    __tablename__ = "legacy_applications"
    __table_args__ = (
        db.Index("idx_legacy_app_email", "email"),
        db.Index("idx_legacy_app_status", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    applicant_name = db.Column(db.String(255), nullable=False)
    organization_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    sector = db.Column(db.String(120), nullable=True)
    sub_sector = db.Column(db.String(120), nullable=True)
    country = db.Column(db.String(80), nullable=True)
    phone_number = db.Column(db.String(40), nullable=True)
    trade_license_number = db.Column(db.String(80), nullable=True)
    description = db.Column(db.Text, nullable=True)
    ai_precheck_result = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(30), nullable=False, default="SUBMITTED",
        comment="SUBMITTED | UNDER_REVIEW | CORRECTIONS_REQUESTED | APPROVED | REJECTED",
    )
    environmental_profile = db.Column(db.Text, nullable=True, comment="JSON")
    social_profile = db.Column(db.Text, nullable=True, comment="JSON")
    governance_profile = db.Column(db.Text, nullable=True, comment="JSON")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=_utcnow, onupdate=_utcnow,
    )

    review_notes = db.relationship(
        "ReviewNote", back_populates="application", lazy="dynamic",
    )
    certificate = db.relationship(
        "Certificate", back_populates="legacy_application", uselist=False,
    )

    def profiles(self) -> dict:
        out = {}
        for key in ("environmental_profile", "social_profile", "governance_profile"):
            raw = getattr(self, key)
            try:
                out[key] = json.loads(raw) if raw else {}
            except (json.JSONDecodeError, TypeError):
                out[key] = {}
        return out

    def __repr__(self):
        return f"<LegacyApplication {self.id}: {self.organization_name} [{self.status}]>"


class ReviewNote(db.Model):
    """Append-only note on a legacy application."""

    __tablename__ = "review_notes"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(
        db.String(36),
        db.ForeignKey("legacy_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_type = db.Column(db.String(20), nullable=False, default="STAFF", comment="SYSTEM | STAFF | CUSTOMER")
    note = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    application = db.relationship("LegacyApplication", back_populates="review_notes")

    def to_dict(self) -> dict:
        created = self.created_at
        if created is not None and created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        return {
            "id": self.id,
            "application_id": self.application_id,
            "author_type": self.author_type,
            "note": self.note,
            "created_at": created.isoformat() if created else None,
        }
