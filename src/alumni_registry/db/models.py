from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from alumni_registry.db.base import Base, TimestampMixin, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class Registration(TimestampMixin, Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("mobile_country_code", "mobile_number", name="uq_registrations_mobile"),
        CheckConstraint("consent_given IS TRUE", name="ck_registrations_consent"),
        CheckConstraint(
            "status IN ('Pending', 'Approved', 'Active', 'Rejected')", name="ck_registrations_status"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    registration_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    id_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    passport_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    staff_number: Mapped[str | None] = mapped_column(String(7), unique=True, nullable=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    mobile_country_code: Mapped[str | None] = mapped_column(String(5), nullable=True)
    mobile_number: Mapped[str | None] = mapped_column(String(15), nullable=True)
    linkedin_profile: Mapped[str | None] = mapped_column(String(500), unique=True, nullable=True)

    current_country: Mapped[str] = mapped_column(String(100), nullable=False)
    current_country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    current_city: Mapped[str] = mapped_column(String(100), nullable=False)
    city_custom: Mapped[str | None] = mapped_column(String(100), nullable=True)

    current_employer: Mapped[str | None] = mapped_column(String(200), nullable=True)
    current_job_title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True)

    qualifications: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    professional_certifications: Mapped[str | None] = mapped_column(Text, nullable=True)
    engagement_preferences: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    consent_given: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    consent_given_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    erp_validated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    erp_validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    erp_validation_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_erp_validation_attempt: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    erp_staff_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    erp_department: Mapped[str | None] = mapped_column(String(200), nullable=True)
    erp_exit_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="Pending", nullable=False, index=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    requires_manual_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    manual_review_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    manually_reviewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reviewed_by: Mapped[str | None] = mapped_column(String(120), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    email_verification_token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    email_verification_token_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    confirmation_email_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    confirmation_email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approval_email_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approval_email_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_email_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rejection_email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_by: Mapped[str | None] = mapped_column(String(120), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(120), nullable=True)


class AuditLogEntry(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    registration_id: Mapped[str] = mapped_column(
        ForeignKey("registrations.id", ondelete="CASCADE"), index=True
    )
    action: Mapped[str] = mapped_column(String(60), nullable=False)
    performed_by: Mapped[str] = mapped_column(String(120), nullable=False)
    previous_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_automated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
