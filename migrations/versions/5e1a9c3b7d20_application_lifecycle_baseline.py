"""application_lifecycle_baseline

Create staff users, both application families, certificates, review notes
and the activity ledger.

Revision ID: 5e1a9c3b7d20
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5e1a9c3b7d20"
down_revision = None
branch_labels = None
depends_on = None


def _extension_fk():
    return (
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("base_application_id", sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(["base_application_id"], ["base_applications.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("base_application_id"),
    )


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "staff_users" not in existing_tables:
        op.create_table(
            "staff_users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=150), nullable=False),
            sa.Column("name_ar", sa.String(length=150), nullable=True),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if "legacy_applications" not in existing_tables:
        op.create_table(
            "legacy_applications",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("applicant_name", sa.String(length=255), nullable=False),
            sa.Column("organization_name", sa.String(length=255), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("sector", sa.String(length=120), nullable=True),
            sa.Column("sub_sector", sa.String(length=120), nullable=True),
            sa.Column("country", sa.String(length=80), nullable=True),
            sa.Column("phone_number", sa.String(length=40), nullable=True),
            sa.Column("trade_license_number", sa.String(length=80), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("ai_precheck_result", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=False),
            sa.Column("environmental_profile", sa.Text(), nullable=True),
            sa.Column("social_profile", sa.Text(), nullable=True),
            sa.Column("governance_profile", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_legacy_app_email", "legacy_applications", ["email"])
        op.create_index("idx_legacy_app_status", "legacy_applications", ["status"])

    if "review_notes" not in existing_tables:
        op.create_table(
            "review_notes",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("application_id", sa.String(length=36), nullable=False),
            sa.Column("author_type", sa.String(length=20), nullable=False),
            sa.Column("note", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["application_id"], ["legacy_applications.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_review_notes_application_id", "review_notes", ["application_id"])

    if "base_applications" not in existing_tables:
        op.create_table(
            "base_applications",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("service_type", sa.String(length=40), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("submitted_by", sa.String(length=255), nullable=False),
            sa.Column("submitted_by_email", sa.String(length=255), nullable=False),
            sa.Column("member_tier", sa.String(length=30), nullable=False),
            sa.Column("assigned_to_id", sa.String(length=36), nullable=True),
            sa.Column("reviewed_by", sa.String(length=255), nullable=True),
            sa.Column("rejection_reason", sa.Text(), nullable=True),
            sa.Column("internal_notes", sa.Text(), nullable=True),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["assigned_to_id"], ["staff_users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_base_applications_assigned_to_id", "base_applications", ["assigned_to_id"])
        op.create_index("idx_base_app_service_status", "base_applications", ["service_type", "status"])
        op.create_index("idx_base_app_email", "base_applications", ["submitted_by_email"])
        op.create_index("idx_base_app_submitted", "base_applications", ["submitted_at"])

    if "esg_applications" not in existing_tables:
        op.create_table(
            "esg_applications",
            *_extension_fk(),
            sa.Column("phone_number", sa.String(length=40), nullable=True),
            sa.Column("trade_license_number", sa.String(length=80), nullable=True),
            sa.Column("sector", sa.String(length=120), nullable=True),
            sa.Column("sub_sector", sa.String(length=120), nullable=True),
            sa.Column("country", sa.String(length=80), nullable=True),
            sa.Column("environmental_profile", sa.Text(), nullable=True),
            sa.Column("social_profile", sa.Text(), nullable=True),
            sa.Column("governance_profile", sa.Text(), nullable=True),
            sa.Column("eoi_submitted_at", sa.DateTime(timezone=True), nullable=True),
        )

    if "knowledge_sharing_applications" not in existing_tables:
        op.create_table(
            "knowledge_sharing_applications",
            *_extension_fk(),
            sa.Column("request_type", sa.String(length=30), nullable=False),
            sa.Column("program_type", sa.String(length=120), nullable=True),
            sa.Column("program_type_ar", sa.String(length=120), nullable=True),
            sa.Column("program_name", sa.String(length=255), nullable=True),
            sa.Column("program_name_ar", sa.String(length=255), nullable=True),
            sa.Column("session_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("session_dates", sa.Text(), nullable=True),
            sa.Column("number_of_attendees", sa.Integer(), nullable=True),
            sa.Column("attendee_details", sa.Text(), nullable=True),
            sa.Column("query_text", sa.Text(), nullable=True),
            sa.Column("attachment_name", sa.String(length=255), nullable=True),
            sa.Column("response_text", sa.Text(), nullable=True),
            sa.Column("response_attachment_url", sa.String(length=500), nullable=True),
            sa.Column("response_attachment_name", sa.String(length=255), nullable=True),
            sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("responded_by", sa.String(length=255), nullable=True),
            sa.Column("survey_sent_at", sa.DateTime(timezone=True), nullable=True),
        )

    if "chamber_boost_applications" not in existing_tables:
        op.create_table(
            "chamber_boost_applications",
            *_extension_fk(),
            sa.Column("deal_id", sa.String(length=80), nullable=False),
            sa.Column("deal_title", sa.String(length=255), nullable=False),
            sa.Column("deal_title_ar", sa.String(length=255), nullable=True),
            sa.Column("deal_type", sa.String(length=20), nullable=False),
            sa.Column("vendor_name", sa.String(length=255), nullable=False),
            sa.Column("vendor_name_ar", sa.String(length=255), nullable=True),
            sa.Column("category", sa.String(length=120), nullable=False),
            sa.Column("category_ar", sa.String(length=120), nullable=True),
            sa.Column("company_size", sa.String(length=40), nullable=True),
            sa.Column("intended_use", sa.Text(), nullable=True),
            sa.Column("additional_notes", sa.Text(), nullable=True),
            sa.Column("voucher_code", sa.String(length=40), nullable=True),
            sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        )

    if "general_service_requests" not in existing_tables:
        op.create_table(
            "general_service_requests",
            *_extension_fk(),
            sa.Column("service_type", sa.String(length=40), nullable=False),
            sa.Column("subject", sa.String(length=255), nullable=True),
            sa.Column("request_details", sa.Text(), nullable=True),
        )

    if "certificates" not in existing_tables:
        op.create_table(
            "certificates",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("certificate_number", sa.String(length=20), nullable=False),
            sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
            sa.Column("base_application_id", sa.String(length=36), nullable=True),
            sa.Column("legacy_application_id", sa.String(length=36), nullable=True),
            sa.CheckConstraint(
                "(base_application_id IS NULL) <> (legacy_application_id IS NULL)",
                name="ck_certificate_single_owner",
            ),
            sa.ForeignKeyConstraint(["base_application_id"], ["base_applications.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["legacy_application_id"], ["legacy_applications.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("certificate_number"),
            sa.UniqueConstraint("base_application_id"),
            sa.UniqueConstraint("legacy_application_id"),
        )

    if "activity_logs" not in existing_tables:
        op.create_table(
            "activity_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("application_id", sa.String(length=36), nullable=False),
            sa.Column("service_type", sa.String(length=40), nullable=False),
            sa.Column("action", sa.String(length=500), nullable=False),
            sa.Column("performed_by", sa.String(length=255), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("performed_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["application_id"], ["base_applications.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_activity_app_ts", "activity_logs", ["application_id", "performed_at"])
        op.create_index("idx_activity_ts", "activity_logs", ["performed_at"])


def downgrade():
    for table in (
        "activity_logs",
        "certificates",
        "general_service_requests",
        "chamber_boost_applications",
        "knowledge_sharing_applications",
        "esg_applications",
        "base_applications",
        "review_notes",
        "legacy_applications",
        "staff_users",
    ):
        op.drop_table(table)
