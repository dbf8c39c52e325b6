"""
Chamber Service Portal
Certificate model.

A certificate is minted only as a side effect of an approval transition and
belongs to exactly one application: either a BaseApplication or a legacy
application.  Both owner columns are unique, which makes the link 1:1 and
turns a second issuance for the same record into an IntegrityError.
"""

import uuid
from datetime import UTC, datetime

from portal.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(UTC)


def _iso(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()


CERTIFICATE_BEARING_SERVICE_TYPES = frozenset({"ESG_LABEL"})


class Certificate(db.Model):
    """ESG certificate, format ``ESG-<year>-<4 digits>``."""

    __tablename__ = "certificates"
    __table_args__ = (
        db.CheckConstraint(
            "(base_application_id IS NULL) <> (legacy_application_id IS NULL)",
            name="ck_certificate_single_owner",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    certificate_number = db.Column(db.String(20), nullable=False, unique=True)
    issued_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)

    # Owner: exactly one of the two is set
    base_application_id = db.Column(
        db.String(36),
        db.ForeignKey("base_applications.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    legacy_application_id = db.Column(
        db.String(36),
        db.ForeignKey("legacy_applications.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )

    base_application = db.relationship("BaseApplication", back_populates="certificate")
    legacy_application = db.relationship("LegacyApplication", back_populates="certificate")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "certificate_number": self.certificate_number,
            "issued_at": _iso(self.issued_at),
            "valid_until": _iso(self.valid_until),
        }

    def __repr__(self):
        return f"<Certificate {self.certificate_number}>"
