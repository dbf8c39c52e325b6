"""
Chamber Service Portal
Application domain models — polymorphic "base + extension" record family.

Models:
    - StaffUser: reviewer that applications can be assigned to.
    - BaseApplication: one row per service request, any service kind.
    - EsgApplication / KnowledgeSharingApplication / ChamberBoostApplication /
      GeneralServiceRequest: typed extension attached 1:1 to a BaseApplication.

Invariant: a BaseApplication owns exactly one extension, and the extension's
type matches ``service_type`` (see ``extension_model_for``).
"""

import json
import uuid
from datetime import UTC, datetime

from portal.models import db


# ── Helpers ──────────────────────────────────────────────────────────────────

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


def _loads(raw, default=None):
    try:
        return json.loads(raw) if raw else default
    except (json.JSONDecodeError, TypeError):
        return default


# ── Constants ────────────────────────────────────────────────────────────────

SERVICE_TYPES = (
    "KNOWLEDGE_SHARING",
    "CHAMBER_BOOST",
    "BUSINESS_MATCHMAKING",
    "ESG_LABEL",
    "BUSINESS_DEVELOPMENT",
    "BUSINESS_ENABLEMENT",
    "POLICY_ADVOCACY",
    "LOYALTY_PLUS",
    "AD_CONNECT_CONCIERGE",
)

# Workflow order; also used as the sort order for ``sort=status``.
APPLICATION_STATUSES = (
    "SUBMITTED",
    "UNDER_REVIEW",
    "PENDING_INFO",
    "APPROVED",
    "REJECTED",
    "CLOSED",
)

TERMINAL_STATUSES = frozenset({"APPROVED", "REJECTED", "CLOSED"})
OPEN_STATUSES = frozenset({"SUBMITTED", "UNDER_REVIEW", "PENDING_INFO"})
PENDING_REVIEW_STATUSES = frozenset({"SUBMITTED", "UNDER_REVIEW"})

KS_REQUEST_TYPES = frozenset({"CALENDAR_BOOKING", "TRAINING_QUERY"})
DEAL_TYPES = frozenset({"LIMITED", "UNLIMITED"})


# ═════════════════════════════════════════════════════════════════════════════
# StaffUser
# ═════════════════════════════════════════════════════════════════════════════

class StaffUser(db.Model):
    """Chamber staff member who can be assigned as reviewer."""

    __tablename__ = "staff_users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(150), nullable=False)
    name_ar = db.Column(db.String(150), nullable=True)
    email = db.Column(db.String(255), nullable=True, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "name_ar": self.name_ar}

    def __repr__(self):
        return f"<StaffUser {self.id}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# BaseApplication
# ═════════════════════════════════════════════════════════════════════════════

class BaseApplication(db.Model):
    """
    Service request shared by every service kind.

    Status is mutated only through ``portal.services.application_lifecycle``.
    ``internal_notes`` is staff-only and never serialised for the submitter.
    """

    __tablename__ = "base_applications"
    __table_args__ = (
        db.Index("idx_base_app_service_status", "service_type", "status"),
        db.Index("idx_base_app_email", "submitted_by_email"),
        db.Index("idx_base_app_submitted", "submitted_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    service_type = db.Column(
        db.String(40), nullable=False,
        comment="KNOWLEDGE_SHARING | CHAMBER_BOOST | ESG_LABEL | …",
    )
    status = db.Column(
        db.String(20), nullable=False, default="SUBMITTED",
        comment="SUBMITTED | UNDER_REVIEW | PENDING_INFO | APPROVED | REJECTED | CLOSED",
    )

    # Submitter
    submitted_by = db.Column(db.String(255), nullable=False)
    submitted_by_email = db.Column(db.String(255), nullable=False)
    member_tier = db.Column(db.String(30), nullable=False, default="Standard")

    # Review
    assigned_to_id = db.Column(
        db.String(36),
        db.ForeignKey("staff_users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reviewed_by = db.Column(db.String(255), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    internal_notes = db.Column(db.Text, nullable=True, comment="Staff-only, never shown to the submitter")

    # Timestamps
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=_utcnow, onupdate=_utcnow,
    )
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # ── Relationships ────────────────────────────────────────────────────
    assigned_to = db.relationship("StaffUser", foreign_keys=[assigned_to_id], uselist=False)
    esg_application = db.relationship(
        "EsgApplication", back_populates="base_application", uselist=False,
        cascade="all, delete-orphan",
    )
    knowledge_sharing_application = db.relationship(
        "KnowledgeSharingApplication", back_populates="base_application", uselist=False,
        cascade="all, delete-orphan",
    )
    chamber_boost_application = db.relationship(
        "ChamberBoostApplication", back_populates="base_application", uselist=False,
        cascade="all, delete-orphan",
    )
    general_request = db.relationship(
        "GeneralServiceRequest", back_populates="base_application", uselist=False,
        cascade="all, delete-orphan",
    )
    certificate = db.relationship(
        "Certificate", back_populates="base_application", uselist=False,
    )
    activity_logs = db.relationship(
        "ActivityLog", back_populates="application", lazy="dynamic",
    )

    @property
    def extension(self):
        """Return the extension row matching ``service_type`` (or None)."""
        return getattr(self, extension_attr_for(self.service_type), None)

    def to_dict(self) -> dict:
        ext = self.extension
        return {
            "id": self.id,
            "service_type": self.service_type,
            "status": self.status,
            "submitted_by": self.submitted_by,
            "submitted_by_email": self.submitted_by_email,
            "member_tier": self.member_tier,
            "assigned_to_id": self.assigned_to_id,
            "assigned_to": self.assigned_to.to_dict() if self.assigned_to else None,
            "reviewed_by": self.reviewed_by,
            "rejection_reason": self.rejection_reason,
            "internal_notes": self.internal_notes,
            "submitted_at": _iso(self.submitted_at),
            "updated_at": _iso(self.updated_at),
            "reviewed_at": _iso(self.reviewed_at),
            "extension": ext.to_dict() if ext else None,
            "certificate": self.certificate.to_dict() if self.certificate else None,
        }

    def __repr__(self):
        return f"<BaseApplication {self.id}: {self.service_type} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# Extensions
# ═════════════════════════════════════════════════════════════════════════════

class EsgApplication(db.Model):
    """ESG Label payload: company profile plus three JSON profile blobs."""

    __tablename__ = "esg_applications"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    base_application_id = db.Column(
        db.String(36),
        db.ForeignKey("base_applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    phone_number = db.Column(db.String(40), nullable=True)
    trade_license_number = db.Column(db.String(80), nullable=True)
    sector = db.Column(db.String(120), nullable=True)
    sub_sector = db.Column(db.String(120), nullable=True)
    country = db.Column(db.String(80), nullable=True)
    environmental_profile = db.Column(db.Text, nullable=True, comment="JSON")
    social_profile = db.Column(db.Text, nullable=True, comment="JSON")
    governance_profile = db.Column(db.Text, nullable=True, comment="JSON")
    eoi_submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    base_application = db.relationship("BaseApplication", back_populates="esg_application")

    def to_dict(self) -> dict:
        return {
            "kind": "ESG_LABEL",
            "phone_number": self.phone_number,
            "trade_license_number": self.trade_license_number,
            "sector": self.sector,
            "sub_sector": self.sub_sector,
            "country": self.country,
            "environmental_profile": _loads(self.environmental_profile, {}),
            "social_profile": _loads(self.social_profile, {}),
            "governance_profile": _loads(self.governance_profile, {}),
            "eoi_submitted_at": _iso(self.eoi_submitted_at),
        }


class KnowledgeSharingApplication(db.Model):
    """Knowledge Sharing payload: session booking or training query plus staff response."""

    __tablename__ = "knowledge_sharing_applications"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    base_application_id = db.Column(
        db.String(36),
        db.ForeignKey("base_applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    request_type = db.Column(
        db.String(30), nullable=False,
        comment="CALENDAR_BOOKING | TRAINING_QUERY",
    )
    program_type = db.Column(db.String(120), nullable=True)
    program_type_ar = db.Column(db.String(120), nullable=True)
    program_name = db.Column(db.String(255), nullable=True)
    program_name_ar = db.Column(db.String(255), nullable=True)
    session_date = db.Column(db.DateTime(timezone=True), nullable=True)
    session_dates = db.Column(db.Text, nullable=True, comment="JSON list of ISO dates")
    number_of_attendees = db.Column(db.Integer, nullable=True)
    attendee_details = db.Column(db.Text, nullable=True)
    query_text = db.Column(db.Text, nullable=True)
    attachment_name = db.Column(db.String(255), nullable=True)

    # Staff-authored response
    response_text = db.Column(db.Text, nullable=True)
    response_attachment_url = db.Column(db.String(500), nullable=True)
    response_attachment_name = db.Column(db.String(255), nullable=True)
    responded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    responded_by = db.Column(db.String(255), nullable=True)
    survey_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    base_application = db.relationship(
        "BaseApplication", back_populates="knowledge_sharing_application",
    )

    def to_dict(self) -> dict:
        return {
            "kind": "KNOWLEDGE_SHARING",
            "request_type": self.request_type,
            "program_type": self.program_type,
            "program_type_ar": self.program_type_ar,
            "program_name": self.program_name,
            "program_name_ar": self.program_name_ar,
            "session_date": _iso(self.session_date),
            "session_dates": _loads(self.session_dates, []),
            "number_of_attendees": self.number_of_attendees,
            "attendee_details": self.attendee_details,
            "query_text": self.query_text,
            "attachment_name": self.attachment_name,
            "response_text": self.response_text,
            "response_attachment_url": self.response_attachment_url,
            "response_attachment_name": self.response_attachment_name,
            "responded_at": _iso(self.responded_at),
            "responded_by": self.responded_by,
            "survey_sent_at": _iso(self.survey_sent_at),
        }


class ChamberBoostApplication(db.Model):
    """Chamber Boost payload: promotional deal claim."""

    __tablename__ = "chamber_boost_applications"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    base_application_id = db.Column(
        db.String(36),
        db.ForeignKey("base_applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    deal_id = db.Column(db.String(80), nullable=False)
    deal_title = db.Column(db.String(255), nullable=False)
    deal_title_ar = db.Column(db.String(255), nullable=True)
    deal_type = db.Column(db.String(20), nullable=False, comment="LIMITED | UNLIMITED")
    vendor_name = db.Column(db.String(255), nullable=False)
    vendor_name_ar = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(120), nullable=False)
    category_ar = db.Column(db.String(120), nullable=True)
    company_size = db.Column(db.String(40), nullable=True)
    intended_use = db.Column(db.Text, nullable=True)
    additional_notes = db.Column(db.Text, nullable=True)
    voucher_code = db.Column(db.String(40), nullable=True)
    fulfilled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    base_application = db.relationship(
        "BaseApplication", back_populates="chamber_boost_application",
    )

    def to_dict(self) -> dict:
        return {
            "kind": "CHAMBER_BOOST",
            "deal_id": self.deal_id,
            "deal_title": self.deal_title,
            "deal_title_ar": self.deal_title_ar,
            "deal_type": self.deal_type,
            "vendor_name": self.vendor_name,
            "vendor_name_ar": self.vendor_name_ar,
            "category": self.category,
            "category_ar": self.category_ar,
            "company_size": self.company_size,
            "intended_use": self.intended_use,
            "additional_notes": self.additional_notes,
            "voucher_code": self.voucher_code,
            "fulfilled_at": _iso(self.fulfilled_at),
        }


class GeneralServiceRequest(db.Model):
    """Payload for service kinds without a dedicated extension table."""

    __tablename__ = "general_service_requests"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    base_application_id = db.Column(
        db.String(36),
        db.ForeignKey("base_applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    service_type = db.Column(db.String(40), nullable=False)
    subject = db.Column(db.String(255), nullable=True)
    request_details = db.Column(db.Text, nullable=True)

    base_application = db.relationship("BaseApplication", back_populates="general_request")

    def to_dict(self) -> dict:
        return {
            "kind": self.service_type,
            "subject": self.subject,
            "request_details": self.request_details,
        }


# ── Extension lookup ─────────────────────────────────────────────────────────

_EXTENSION_ATTRS = {
    "ESG_LABEL": "esg_application",
    "KNOWLEDGE_SHARING": "knowledge_sharing_application",
    "CHAMBER_BOOST": "chamber_boost_application",
}

_EXTENSION_MODELS = {
    "ESG_LABEL": EsgApplication,
    "KNOWLEDGE_SHARING": KnowledgeSharingApplication,
    "CHAMBER_BOOST": ChamberBoostApplication,
}


def extension_attr_for(service_type: str) -> str:
    """Relationship attribute on BaseApplication holding the extension."""
    return _EXTENSION_ATTRS.get(service_type, "general_request")


def extension_model_for(service_type: str):
    """Extension model class that must be attached for ``service_type``."""
    return _EXTENSION_MODELS.get(service_type, GeneralServiceRequest)
