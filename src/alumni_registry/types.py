from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RegistrationStatus(StrEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    ACTIVE = "Active"
    REJECTED = "Rejected"


class AuditAction(StrEnum):
    MANUAL_APPROVAL = "ManualApproval"
    MANUAL_REJECTION = "ManualRejection"
    AUTOMATIC_APPROVAL = "AutomaticApproval"
    FLAGGED_FOR_REVIEW = "FlaggedForManualReview"
    EMAIL_VERIFIED = "EmailVerified"


QualificationLevel = Literal[
    "PHD",
    "MASTERS",
    "BACHELORS",
    "HND",
    "DIPLOMA",
    "CERTIFICATE",
    "ADVANCED_CERT",
    "PROFESSIONAL",
]
EngagementArea = Literal[
    "MENTORSHIP",
    "NETWORKING",
    "JOB_OPPORTUNITIES",
    "VOLUNTEERING",
    "REUNIONS",
    "THOUGHT_LEADERSHIP",
]
DuplicateField = Literal["staff-number", "email", "mobile", "linkedin", "id-number"]
SortField = Literal["fullname", "createdat", "status", "staffnumber", "email"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegistrationRequest(CamelModel):
    # Everything optional here; core.validation reports missing fields with the rest.
    staff_number: str | None = None
    id_number: str | None = None
    passport_number: str | None = None
    full_name: str | None = None
    email: str | None = None
    mobile_country_code: str | None = None
    mobile_number: str | None = None
    current_country: str | None = None
    current_country_code: str | None = None
    current_city: str | None = None
    city_custom: str | None = None
    current_employer: str | None = None
    current_job_title: str | None = None
    industry: str | None = None
    linkedin_profile: str | None = None
    qualifications: list[QualificationLevel] = Field(default_factory=list)
    professional_certifications: str | None = None
    engagement_preferences: list[EngagementArea] = Field(default_factory=list)
    consent_given: bool = False


@dataclass(frozen=True, slots=True)
class CachedEmployee:
    national_identifier: str
    staff_id: str = ""
    full_name: str = ""
    department: str = ""
    exit_date: date | None = None


class ErpValidationResult(CamelModel):
    is_valid: bool = False
    found: bool = False
    staff_number: str | None = None
    staff_name: str | None = None
    department: str | None = None
    exit_date: date | None = None
    name_similarity_score: float = 0.0
    is_mock_data: bool = False
    service_unavailable: bool = False
    error_message: str | None = None


class CacheStats(CamelModel):
    last_refresh_time: datetime | None = None
    record_count: int = 0
    healthy: bool = False
    last_error: str | None = None
    cache_age_seconds: float | None = None
    enabled: bool = True


class RefreshResult(CamelModel):
    success: bool
    skipped: bool = False
    record_count: int = 0
    error: str | None = None
    duration_ms: int = 0


class IdentityCheck(CamelModel):
    already_registered: bool
    erp: ErpValidationResult


class BulkOutcome(CamelModel):
    registration_id: str
    success: bool
    error: str | None = None


class BulkOperationSummary(CamelModel):
    success_count: int = 0
    failure_count: int = 0
    results: list[BulkOutcome] = Field(default_factory=list)


class DashboardStats(CamelModel):
    total: int = 0
    pending: int = 0
    requiring_manual_review: int = 0
    approved: int = 0
    rejected: int = 0
    active: int = 0
    email_verified: int = 0
    email_not_verified: int = 0


class ProcessingSummary(CamelModel):
    processed: int = 0
    approved: int = 0
    flagged: int = 0
    deferred: int = 0
    retried: int = 0


@dataclass(slots=True)
class RegistrationFilter:
    status: RegistrationStatus | None = None
    requires_manual_review: bool | None = None
    search: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    email_verified: bool | None = None
    department: str | None = None
    country: str | None = None
    city: str | None = None
    industry: str | None = None
    erp_validated: bool | None = None
    registration_year: int | None = None
    sort_by: SortField = "createdat"
    sort_descending: bool = True
    page: int = 1
    page_size: int = 50
