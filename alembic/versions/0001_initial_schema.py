"""Registrations and audit log

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _ts(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _flag(name: str) -> sa.Column:
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.false())


def upgrade() -> None:
    op.create_table(
        "registrations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("registration_number", sa.String(32), nullable=False, unique=True),
        sa.Column("id_number", sa.String(50), nullable=False, unique=True),
        sa.Column("passport_number", sa.String(50)),
        sa.Column("staff_number", sa.String(7), unique=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("mobile_country_code", sa.String(5)),
        sa.Column("mobile_number", sa.String(15)),
        sa.Column("linkedin_profile", sa.String(500), unique=True),
        sa.Column("current_country", sa.String(100), nullable=False),
        sa.Column("current_country_code", sa.String(2), nullable=False),
        sa.Column("current_city", sa.String(100), nullable=False),
        sa.Column("city_custom", sa.String(100)),
        sa.Column("current_employer", sa.String(200)),
        sa.Column("current_job_title", sa.String(200)),
        sa.Column("industry", sa.String(100)),
        sa.Column("qualifications", sa.JSON(), nullable=False),
        sa.Column("professional_certifications", sa.Text()),
        sa.Column("engagement_preferences", sa.JSON(), nullable=False),
        _flag("consent_given"),
        _ts("consent_given_at"),
        _flag("erp_validated"),
        _ts("erp_validated_at"),
        sa.Column("erp_validation_attempts", sa.Integer(), nullable=False, server_default="0"),
        _ts("last_erp_validation_attempt"),
        sa.Column("erp_staff_name", sa.String(200)),
        sa.Column("erp_department", sa.String(200)),
        sa.Column("erp_exit_date", sa.Date()),
        sa.Column("status", sa.String(20), nullable=False, server_default="Pending"),
        _ts("approved_at"),
        _ts("rejected_at"),
        sa.Column("rejection_reason", sa.Text()),
        _flag("requires_manual_review"),
        sa.Column("manual_review_reason", sa.Text()),
        _flag("manually_reviewed"),
        sa.Column("reviewed_by", sa.String(120)),
        _ts("reviewed_at"),
        sa.Column("review_notes", sa.Text()),
        sa.Column("email_verification_token", sa.String(64), unique=True),
        _ts("email_verification_token_expiry"),
        _flag("email_verified"),
        _ts("email_verified_at"),
        _flag("confirmation_email_sent"),
        _ts("confirmation_email_sent_at"),
        _flag("approval_email_sent"),
        _ts("approval_email_sent_at"),
        _flag("rejection_email_sent"),
        _ts("rejection_email_sent_at"),
        sa.Column("created_by", sa.String(120)),
        sa.Column("updated_by", sa.String(120)),
        _ts("created_at", nullable=False),
        _ts("updated_at", nullable=False),
        sa.UniqueConstraint("mobile_country_code", "mobile_number", name="uq_registrations_mobile"),
        sa.CheckConstraint("consent_given IS TRUE", name="ck_registrations_consent"),
        sa.CheckConstraint(
            "status IN ('Pending', 'Approved', 'Active', 'Rejected')", name="ck_registrations_status"
        ),
    )
    op.create_index("ix_registrations_status", "registrations", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "registration_id",
            sa.String(36),
            sa.ForeignKey("registrations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(60), nullable=False),
        sa.Column("performed_by", sa.String(120), nullable=False),
        sa.Column("previous_status", sa.String(20)),
        sa.Column("new_status", sa.String(20)),
        sa.Column("reason", sa.Text()),
        sa.Column("notes", sa.Text()),
        _flag("is_automated"),
        _ts("timestamp", nullable=False),
    )
    op.create_index("ix_audit_logs_registration_id", "audit_logs", ["registration_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_registration_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_registrations_status", table_name="registrations")
    op.drop_table("registrations")
