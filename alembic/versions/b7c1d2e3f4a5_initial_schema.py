"""initial schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-09-14 10:00:00.000000

This migration creates:
1. users and guardian_relationships
2. applications with status changes, proof reviews and notes
3. events (audit trail) and notifications
4. email_templates, rejection_reasons and feature_flags
5. vouchers, voucher_transactions and products

Enum columns store the Python enum member NAMES (e.g. AWAITING_DCF), which
is how SQLAlchemy persists Enum(SomeEnum) columns.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "b7c1d2e3f4a5"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _enum(name: str, *values: str) -> postgresql.ENUM:
    return postgresql.ENUM(*values, name=name, create_type=False)


ENUMS = {
    "user_role": ("ADMIN", "EVALUATOR", "TRAINER", "CONSTITUENT", "VENDOR"),
    "application_status": (
        "DRAFT",
        "IN_PROGRESS",
        "AWAITING_PROOF",
        "REMINDER_SENT",
        "AWAITING_DCF",
        "APPROVED",
        "REJECTED",
        "ARCHIVED",
    ),
    "application_type": ("NEW", "RENEWAL"),
    "submission_method": ("ONLINE", "PAPER", "PHONE", "EMAIL"),
    "proof_status": ("NOT_REVIEWED", "APPROVED", "REJECTED"),
    "proof_type": ("INCOME", "RESIDENCY"),
    "medical_certification_status": (
        "NOT_REQUESTED",
        "REQUESTED",
        "RECEIVED",
        "APPROVED",
        "REJECTED",
    ),
    "document_signing_status": ("NOT_SENT", "SENT", "OPENED", "SIGNED", "DECLINED"),
    "email_template_format": ("HTML", "TEXT"),
    "rejection_proof_type": ("INCOME", "RESIDENCY", "MEDICAL_CERTIFICATION"),
    "voucher_status": ("ACTIVE", "REDEEMED", "EXPIRED", "CANCELLED"),
    "voucher_transaction_type": ("REDEMPTION", "REFUND", "ADJUSTMENT"),
}


def _id_column() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # ============================================
    # Users
    # ============================================
    op.create_table(
        "users",
        _id_column(),
        *_timestamps(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("locale", sa.String(length=5), nullable=False, server_default="en"),
        sa.Column("role", _enum("user_role", *ENUMS["user_role"]), nullable=False),
        sa.Column("physical_address_1", sa.String(length=255), nullable=True),
        sa.Column("physical_address_2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("hearing_disability", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("vision_disability", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("speech_disability", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("mobility_disability", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("cognition_disability", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "needs_duplicate_review", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("last_sign_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("business_name", sa.String(length=255), nullable=True),
        sa.Column("vendor_approved", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("totp_secret", sa.String(length=64), nullable=True),
        sa.Column("totp_enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("sms_2fa_phone", sa.String(length=20), nullable=True),
        sa.Column("sms_2fa_enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "guardian_relationships",
        _id_column(),
        *_timestamps(),
        sa.Column("guardian_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dependent_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("relationship_type", sa.String(length=50), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["guardian_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["dependent_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("guardian_id", "dependent_id", name="uq_guardian_dependent"),
        sa.CheckConstraint("guardian_id <> dependent_id", name="ck_guardian_not_self"),
    )
    op.create_index(
        "ix_guardian_relationships_guardian_id", "guardian_relationships", ["guardian_id"]
    )
    op.create_index(
        "ix_guardian_relationships_dependent_id", "guardian_relationships", ["dependent_id"]
    )

    # ============================================
    # Applications
    # ============================================
    op.create_table(
        "applications",
        _id_column(),
        *_timestamps(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("managing_guardian_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "status", _enum("application_status", *ENUMS["application_status"]), nullable=False
        ),
        sa.Column(
            "application_type",
            _enum("application_type", *ENUMS["application_type"]),
            nullable=False,
        ),
        sa.Column(
            "submission_method",
            _enum("submission_method", *ENUMS["submission_method"]),
            nullable=False,
        ),
        sa.Column("application_date", sa.Date(), nullable=True),
        sa.Column("last_visited_step", sa.String(length=50), nullable=True),
        # Eligibility
        sa.Column("household_size", sa.Integer(), nullable=True),
        sa.Column("annual_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("maryland_resident", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "self_certify_disability", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("terms_accepted", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("information_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "medical_release_authorized", sa.Boolean(), nullable=False, server_default="false"
        ),
        # Alternate contact
        sa.Column("alternate_contact_name", sa.String(length=200), nullable=True),
        sa.Column("alternate_contact_phone", sa.String(length=20), nullable=True),
        sa.Column("alternate_contact_email", sa.String(length=255), nullable=True),
        # Medical provider
        sa.Column("medical_provider_name", sa.String(length=200), nullable=True),
        sa.Column("medical_provider_phone", sa.String(length=20), nullable=True),
        sa.Column("medical_provider_fax", sa.String(length=20), nullable=True),
        sa.Column("medical_provider_email", sa.String(length=255), nullable=True),
        # Proofs
        sa.Column(
            "income_proof_status", _enum("proof_status", *ENUMS["proof_status"]), nullable=False
        ),
        sa.Column(
            "residency_proof_status",
            _enum("proof_status", *ENUMS["proof_status"]),
            nullable=False,
        ),
        sa.Column("income_proof_key", sa.String(length=500), nullable=True),
        sa.Column("residency_proof_key", sa.String(length=500), nullable=True),
        sa.Column("needs_review_since", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_rejections", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_proof_submitted_at", sa.DateTime(timezone=True), nullable=True),
        # Medical certification
        sa.Column(
            "medical_certification_status",
            _enum("medical_certification_status", *ENUMS["medical_certification_status"]),
            nullable=False,
        ),
        sa.Column(
            "medical_certification_requested_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "medical_certification_request_count",
            sa.Integer(),
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "medical_certification_verified_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "medical_certification_verified_by_id", postgresql.UUID(as_uuid=True), nullable=True
        ),
        sa.Column("medical_certification_rejection_reason", sa.Text(), nullable=True),
        sa.Column(
            "medical_certification_rejection_reason_code", sa.String(length=100), nullable=True
        ),
        sa.Column("medical_certification_file_key", sa.String(length=500), nullable=True),
        # E-signature request
        sa.Column("document_signing_service", sa.String(length=50), nullable=True),
        sa.Column("document_signing_submission_id", sa.String(length=100), nullable=True),
        sa.Column("document_signing_submitter_id", sa.String(length=100), nullable=True),
        sa.Column(
            "document_signing_status",
            _enum("document_signing_status", *ENUMS["document_signing_status"]),
            nullable=False,
        ),
        sa.Column("document_signing_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("document_signing_signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("document_signing_document_url", sa.Text(), nullable=True),
        sa.Column("document_signing_audit_url", sa.Text(), nullable=True),
        sa.Column(
            "document_signing_request_count", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["managing_guardian_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["medical_certification_verified_by_id"], ["users.id"], ondelete="SET NULL"
        ),
    )
    op.create_index("ix_applications_status", "applications", ["status"])
    op.create_index("ix_applications_user_id", "applications", ["user_id"])
    op.create_index(
        "ix_applications_managing_guardian_id", "applications", ["managing_guardian_id"]
    )
    op.create_index(
        "ix_applications_medical_certification_status",
        "applications",
        ["medical_certification_status"],
    )
    op.create_index(
        "ix_applications_document_signing_submission",
        "applications",
        ["document_signing_service", "document_signing_submission_id"],
    )

    op.create_table(
        "application_status_changes",
        _id_column(),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("from_status", sa.String(length=50), nullable=True),
        sa.Column("to_status", sa.String(length=50), nullable=False),
        sa.Column("change_type", sa.String(length=50), nullable=False, server_default="status"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "changed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "ix_application_status_changes_application_id",
        "application_status_changes",
        ["application_id"],
    )

    op.create_table(
        "proof_reviews",
        _id_column(),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("proof_type", _enum("proof_type", *ENUMS["proof_type"]), nullable=False),
        sa.Column("status", _enum("proof_status", *ENUMS["proof_status"]), nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("rejection_reason_code", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "reviewed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["admin_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_proof_reviews_application_id", "proof_reviews", ["application_id"])

    op.create_table(
        "application_notes",
        _id_column(),
        *_timestamps(),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("assigned_to_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("internal_only", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["admin_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "ix_application_notes_application_id", "application_notes", ["application_id"]
    )
    op.create_index(
        "ix_application_notes_assigned_to_id", "application_notes", ["assigned_to_id"]
    )

    # ============================================
    # Audit trail and notifications
    # ============================================
    op.create_table(
        "events",
        _id_column(),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("auditable_type", sa.String(length=50), nullable=True),
        sa.Column("auditable_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_events_auditable", "events", ["auditable_type", "auditable_id"])
    op.create_index("idx_events_action", "events", ["action"])
    op.create_index("idx_events_created_at", "events", ["created_at"])

    op.create_table(
        "notifications",
        _id_column(),
        *_timestamps(),
        sa.Column("recipient_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("delivery_status", sa.String(length=30), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])
    op.create_index("ix_notifications_application_id", "notifications", ["application_id"])
    # The fax status webhook looks notifications up by the Twilio fax SID
    op.create_index(
        "ix_notifications_fax_sid",
        "notifications",
        [sa.text("(metadata ->> 'fax_sid')")],
    )

    # ============================================
    # Content managed by admins
    # ============================================
    op.create_table(
        "email_templates",
        _id_column(),
        *_timestamps(),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column(
            "format",
            _enum("email_template_format", *ENUMS["email_template_format"]),
            nullable=False,
        ),
        sa.Column("locale", sa.String(length=5), nullable=False, server_default="en"),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "variables",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("previous_subject", sa.String(length=255), nullable=True),
        sa.Column("previous_body", sa.Text(), nullable=True),
        sa.Column("needs_sync", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("updated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["updated_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint(
            "name", "format", "locale", name="uq_email_templates_name_format_locale"
        ),
        sa.CheckConstraint("version >= 1", name="ck_email_templates_version_positive"),
    )
    op.create_index("ix_email_templates_name", "email_templates", ["name"])

    op.create_table(
        "rejection_reasons",
        _id_column(),
        *_timestamps(),
        sa.Column("code", sa.String(length=100), nullable=False),
        sa.Column(
            "proof_type",
            _enum("rejection_proof_type", *ENUMS["rejection_proof_type"]),
            nullable=False,
        ),
        sa.Column("locale", sa.String(length=5), nullable=False, server_default="en"),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("previous_body", sa.Text(), nullable=True),
        sa.Column("needs_sync", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("updated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["updated_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint(
            "code", "proof_type", "locale", name="uq_rejection_reasons_code_type_locale"
        ),
    )

    op.create_table(
        "feature_flags",
        _id_column(),
        *_timestamps(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_feature_flags_name"),
    )

    # ============================================
    # Vouchers
    # ============================================
    op.create_table(
        "vouchers",
        _id_column(),
        *_timestamps(),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("initial_value", sa.Numeric(10, 2), nullable=False),
        sa.Column("remaining_value", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", _enum("voucher_status", *ENUMS["voucher_status"]), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("code", name="uq_vouchers_code"),
    )
    op.create_index("ix_vouchers_application_id", "vouchers", ["application_id"])
    op.create_index("ix_vouchers_status_expires_at", "vouchers", ["status", "expires_at"])

    op.create_table(
        "voucher_transactions",
        _id_column(),
        *_timestamps(),
        sa.Column("voucher_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "transaction_type",
            _enum("voucher_transaction_type", *ENUMS["voucher_transaction_type"]),
            nullable=False,
        ),
        sa.Column(
            "product_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("reference_number", sa.String(length=30), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "processed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["voucher_id"], ["vouchers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["vendor_id"], ["users.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("reference_number", name="uq_voucher_transactions_reference_number"),
    )
    op.create_index(
        "ix_voucher_transactions_voucher_id", "voucher_transactions", ["voucher_id"]
    )
    op.create_index("ix_voucher_transactions_vendor_id", "voucher_transactions", ["vendor_id"])

    op.create_table(
        "products",
        _id_column(),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("manufacturer", sa.String(length=200), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    for table in (
        "products",
        "voucher_transactions",
        "vouchers",
        "feature_flags",
        "rejection_reasons",
        "email_templates",
        "notifications",
        "events",
        "application_notes",
        "proof_reviews",
        "application_status_changes",
        "applications",
        "guardian_relationships",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
