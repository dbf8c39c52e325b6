"""
Chamber Service Portal
Audit domain model.

Models:
    - ActivityLog: immutable, append-only ledger entry for a BaseApplication.

Rows are only ever inserted (see ``portal.services.activity_ledger``); no
code path updates or deletes a single entry.
"""

from datetime import UTC, datetime

from portal.models import db


# ── Constants ────────────────────────────────────────────────────────────────

LEDGER_AUDIENCES = frozenset({"staff", "submitter"})

# Entries whose action or notes contain this marker are hidden from submitters
INTERNAL_MARKER = "internal"


class ActivityLog(db.Model):
    """
    One row per observable event on a BaseApplication.

    ``action`` is human-readable text ("Status changed from A to B",
    "Assigned to Jane", …).  Entries are ordered by ``performed_at`` with
    ``id`` as tie-breaker so same-timestamp entries keep insertion order.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("idx_activity_app_ts", "application_id", "performed_at"),
        db.Index("idx_activity_ts", "performed_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(
        db.String(36),
        db.ForeignKey("base_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    service_type = db.Column(db.String(40), nullable=False)
    action = db.Column(db.String(500), nullable=False)
    performed_by = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    performed_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    application = db.relationship("BaseApplication", back_populates="activity_logs")

    @property
    def is_internal(self) -> bool:
        haystack = f"{self.action or ''} {self.notes or ''}".lower()
        return INTERNAL_MARKER in haystack

    def to_dict(self) -> dict:
        ts = self.performed_at
        if ts is not None and ts.tzinfo is None:
            ts = ts.replace(tzinfo=UTC)
        return {
            "id": self.id,
            "application_id": self.application_id,
            "service_type": self.service_type,
            "action": self.action,
            "performed_by": self.performed_by,
            "notes": self.notes,
            "performed_at": ts.isoformat() if ts else None,
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.action} on {self.application_id}>"
