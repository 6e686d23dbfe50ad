from __future__ import annotations

from datetime import date, datetime

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from alumni_registry.types import CamelModel


class OrmModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RegistrationResponse(OrmModel):
    id: str
    registration_number: str
    status: str
    full_name: str
    email: str
    email_verified: bool
    requires_manual_review: bool
    erp_validated: bool
    created_at: datetime


class RegistrationDetailResponse(RegistrationResponse):
    id_number: str
    passport_number: str | None = None
    staff_number: str | None = None
    mobile_country_code: str | None = None
    mobile_number: str | None = None
    linkedin_profile: str | None = None
    current_country: str
    current_country_code: str
    current_city: str
    city_custom: str | None = None
    current_employer: str | None = None
    current_job_title: str | None = None
    industry: str | None = None
    qualifications: list[str] = Field(default_factory=list)
    engagement_preferences: list[str] = Field(default_factory=list)
    professional_certifications: str | None = None
    erp_validated_at: datetime | None = None
    erp_validation_attempts: int = 0
    erp_staff_name: str | None = None
    erp_department: str | None = None
    erp_exit_date: date | None = None
    manual_review_reason: str | None = None
    manually_reviewed: bool = False
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    email_verified_at: datetime | None = None


class RegistrationPage(CamelModel):
    items: list[RegistrationResponse]
    total: int
    page: int
    page_size: int


class DuplicateCheckResponse(CamelModel):
    field: str
    value: str
    exists: bool


class IdentityRequest(CamelModel):
    id_number: str


class ResendVerificationRequest(CamelModel):
    email: str


class ApproveRequest(CamelModel):
    reviewed_by: str = "admin"
    notes: str | None = None


class RejectRequest(CamelModel):
    reviewed_by: str = "admin"
    reason: str
    notes: str | None = None


class BulkApproveRequest(ApproveRequest):
    registration_ids: list[str] = Field(min_length=1)


class BulkRejectRequest(RejectRequest):
    registration_ids: list[str] = Field(min_length=1)


class AuditLogResponse(OrmModel):
    id: int
    registration_id: str
    action: str
    performed_by: str
    previous_status: str | None = None
    new_status: str | None = None
    reason: str | None = None
    notes: str | None = None
    is_automated: bool
    timestamp: datetime
