from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from alumni_registry.config import Settings, get_settings
from alumni_registry.core import runtime
from alumni_registry.core.notifications import EmailSender, TemplateKey, dispatch
from alumni_registry.core.tokens import TokenService
from alumni_registry.core.validation import validate_registration
from alumni_registry.db.base import as_utc, utcnow
from alumni_registry.db.models import Registration
from alumni_registry.db.repositories import RegistrationRepository
from alumni_registry.erp.validation import ErpValidationService
from alumni_registry.errors import (
    DuplicateError,
    InvalidStateError,
    NotFoundError,
    RegistryError,
    ValidationError,
)
from alumni_registry.types import (
    AuditAction,
    BulkOperationSummary,
    BulkOutcome,
    DuplicateField,
    ErpValidationResult,
    IdentityCheck,
    ProcessingSummary,
    RegistrationRequest,
    RegistrationStatus,
)

logger = logging.getLogger(__name__)


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def normalize_request(request: RegistrationRequest) -> RegistrationRequest:
    staff = _clean(request.staff_number)
    email = _clean(request.email)
    linkedin = _clean(request.linkedin_profile)
    country_code = _clean(request.current_country_code)
    return request.model_copy(
        update={
            "staff_number": staff.upper() if staff else None,
            "id_number": _clean(request.id_number),
            "passport_number": _clean(request.passport_number),
            "full_name": " ".join((request.full_name or "").split()) or None,
            "email": email.lower() if email else None,
            "mobile_country_code": _clean(request.mobile_country_code),
            "mobile_number": _clean(request.mobile_number),
            "current_country": _clean(request.current_country),
            "current_country_code": country_code.upper() if country_code else None,
            "current_city": _clean(request.current_city),
            "city_custom": _clean(request.city_custom),
            "current_employer": _clean(request.current_employer),
            "current_job_title": _clean(request.current_job_title),
            "industry": _clean(request.industry),
            "linkedin_profile": linkedin.lower() if linkedin else None,
            "professional_certifications": _clean(request.professional_certifications),
        }
    )


def manual_review_reason(result: ErpValidationResult) -> str:
    if result.service_unavailable:
        return f"HR system unavailable during validation: {result.error_message or 'no detail'}"
    if not result.found:
        return "ID number not found in HR records; verify identity manually."
    return (
        f"Name mismatch with HR record '{result.staff_name or ''}' "
        f"(similarity {result.name_similarity_score:.0f}%)."
    )


class RegistrationWorkflow:
    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        validator: ErpValidationService | None = None,
        sender: EmailSender | None = None,
        tokens: TokenService | None = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.repo = RegistrationRepository(session)
        self.settings = settings or get_settings()
        self.validator = validator or runtime.get_validation_service()
        self.sender = sender or runtime.get_email_sender()
        self.tokens = tokens or runtime.get_token_service()
        self._now = now

    # Public registration

    def submit(self, request: RegistrationRequest, created_by: str | None = None) -> Registration:
        req = normalize_request(request)
        validate_registration(req, self.settings)

        duplicate = self.repo.find_duplicate_field(
            id_number=req.id_number,
            staff_number=req.staff_number,
            email=req.email,
            mobile_country_code=req.mobile_country_code,
            mobile_number=req.mobile_number,
            linkedin_profile=req.linkedin_profile,
        )
        if duplicate:
            raise DuplicateError(duplicate)

        now = self._now()
        values = req.model_dump()
        values.update(
            status=RegistrationStatus.PENDING.value,
            consent_given_at=now,
            created_by=created_by,
        )

        if self.settings.erp_validate_on_submit:
            result = self.validator.validate(req.id_number, req.full_name)
            values["erp_validation_attempts"] = 1
            values["last_erp_validation_attempt"] = now
            if result.is_valid:
                values.update(self._erp_values(result, now))
            else:
                values["requires_manual_review"] = True
                values["manual_review_reason"] = manual_review_reason(result)
                logger.info("Submission for %s flagged for manual review: %s", req.email, values["manual_review_reason"])

        registration = self.repo.create_registration(values, self.settings.registration_number_prefix)
        logger.info("Registration %s created (%s)", registration.registration_number, registration.id)

        if self._notify(registration, "confirmation"):
            registration.confirmation_email_sent = True
            registration.confirmation_email_sent_at = self._now()
            self.repo.save(registration)
        return registration

    def check_duplicate(self, field: DuplicateField, value: str, country_code: str | None = None) -> bool:
        return self.repo.is_registered(field, value, country_code)

    def get_status(self, *, registration_id: str | None = None, email: str | None = None) -> Registration:
        registration = None
        if registration_id:
            registration = self.repo.get(registration_id)
        elif email:
            registration = self.repo.get_by_email(email)
        if registration is None:
            raise NotFoundError("Registration not found")
        return registration

    def verify_identity(self, id_number: str) -> IdentityCheck:
        return IdentityCheck(
            already_registered=self.repo.is_registered("id-number", id_number),
            erp=self.validator.validate(id_number),
        )

    def verify_email(self, token: str) -> Registration:
        token = (token or "").strip()
        if not TokenService.is_well_formed(token):
            raise ValidationError({"token": ["Verification token is malformed."]})

        registration = self.repo.get_by_token(token)
        if registration is None:
            raise NotFoundError("Verification token not recognised")
        if registration.email_verified:
            return registration

        expiry = as_utc(registration.email_verification_token_expiry)
        if expiry is not None and expiry < self._now():
            raise InvalidStateError("Verification link has expired; request a new one")

        previous = registration.status
        registration.email_verified = True
        registration.email_verified_at = self._now()
        if previous == RegistrationStatus.APPROVED:
            registration.status = RegistrationStatus.ACTIVE.value
            self.repo.append_audit(
                registration_id=registration.id,
                action=AuditAction.EMAIL_VERIFIED.value,
                performed_by=registration.email,
                previous_status=previous,
                new_status=registration.status,
                notes="Email verified; account activated",
            )
        logger.info("Email verified for registration %s", registration.registration_number)
        return self.repo.save(registration)

    def resend_verification(self, email: str) -> Registration:
        registration = self.repo.get_by_email(email)
        if registration is None:
            raise NotFoundError("Registration not found")
        if registration.email_verified:
            raise InvalidStateError("Email address is already verified")
        if registration.status != RegistrationStatus.APPROVED:
            raise InvalidStateError("Verification is only available once the registration is approved")

        expiry = as_utc(registration.email_verification_token_expiry)
        if not registration.email_verification_token or (expiry and expiry < self._now()):
            self._issue_token(registration)
        if self._notify(registration, "approval"):
            registration.approval_email_sent = True
            registration.approval_email_sent_at = self._now()
        return self.repo.save(registration)

    # Review transitions

    def approve(
        self,
        registration_id: str,
        reviewer: str,
        notes: str | None = None,
        *,
        automated: bool = False,
    ) -> Registration:
        registration = self._load(registration_id)
        if registration.status != RegistrationStatus.PENDING:
            raise InvalidStateError(f"Cannot approve a registration in status {registration.status}")

        now = self._now()
        registration.status = RegistrationStatus.APPROVED.value
        registration.approved_at = now
        registration.requires_manual_review = False
        registration.updated_by = reviewer
        if not automated:
            registration.manually_reviewed = True
            registration.reviewed_by = reviewer
            registration.reviewed_at = now
            registration.review_notes = notes
        if not registration.email_verification_token:
            self._issue_token(registration)

        self.repo.append_audit(
            registration_id=registration.id,
            action=(AuditAction.AUTOMATIC_APPROVAL if automated else AuditAction.MANUAL_APPROVAL).value,
            performed_by=reviewer,
            previous_status=RegistrationStatus.PENDING.value,
            new_status=registration.status,
            notes=notes,
            is_automated=automated,
        )
        self.repo.save(registration)
        logger.info("Registration %s approved by %s", registration.registration_number, reviewer)

        if not registration.approval_email_sent and self._notify(registration, "approval"):
            registration.approval_email_sent = True
            registration.approval_email_sent_at = self._now()
            self.repo.save(registration)
        return registration

    def reject(self, registration_id: str, reviewer: str, reason: str, notes: str | None = None) -> Registration:
        reason = (reason or "").strip()
        minimum = self.settings.rejection_reason_min_length
        if len(reason) < minimum:
            raise ValidationError({"reason": [f"Rejection reason must be at least {minimum} characters."]})

        registration = self._load(registration_id)
        if registration.status not in (RegistrationStatus.PENDING, RegistrationStatus.APPROVED):
            raise InvalidStateError(f"Cannot reject a registration in status {registration.status}")

        now = self._now()
        previous = registration.status
        registration.status = RegistrationStatus.REJECTED.value
        registration.rejected_at = now
        registration.rejection_reason = reason
        registration.requires_manual_review = False
        registration.manually_reviewed = True
        registration.reviewed_by = reviewer
        registration.reviewed_at = now
        registration.review_notes = notes
        registration.updated_by = reviewer
        registration.email_verification_token = None
        registration.email_verification_token_expiry = None

        self.repo.append_audit(
            registration_id=registration.id,
            action=AuditAction.MANUAL_REJECTION.value,
            performed_by=reviewer,
            previous_status=previous,
            new_status=registration.status,
            reason=reason,
            notes=notes,
        )
        self.repo.save(registration)
        logger.info("Registration %s rejected by %s", registration.registration_number, reviewer)

        if not registration.rejection_email_sent and self._notify(registration, "rejection", reason=reason):
            registration.rejection_email_sent = True
            registration.rejection_email_sent_at = self._now()
            self.repo.save(registration)
        return registration

    def bulk_approve(
        self, registration_ids: Iterable[str], reviewer: str, notes: str | None = None
    ) -> BulkOperationSummary:
        return self._bulk(registration_ids, lambda rid: self.approve(rid, reviewer, notes))

    def bulk_reject(
        self, registration_ids: Iterable[str], reviewer: str, reason: str, notes: str | None = None
    ) -> BulkOperationSummary:
        return self._bulk(registration_ids, lambda rid: self.reject(rid, reviewer, reason, notes))

    # Approval processor

    def process_pending_registrations(self) -> ProcessingSummary:
        settings = self.settings
        now = self._now()
        cutoff = now - timedelta(seconds=settings.approval_min_age_sec)
        batch = self.repo.list_pending_for_processing(cutoff, settings.approval_batch_size)
        summary = ProcessingSummary()

        for registration in batch:
            summary.processed += 1
            try:
                outcome = self._process_one(registration, now)
            except RegistryError as exc:
                self.session.rollback()
                logger.error("Approval processing failed for %s: %s", registration.id, exc.message)
                continue
            setattr(summary, outcome, getattr(summary, outcome) + 1)

        if batch:
            logger.info(
                "Approval batch: processed=%s approved=%s flagged=%s retried=%s deferred=%s",
                summary.processed,
                summary.approved,
                summary.flagged,
                summary.retried,
                summary.deferred,
            )
        return summary

    def _process_one(self, registration: Registration, now: datetime) -> str:
        settings = self.settings
        actor = settings.approval_actor
        if registration.erp_validated:
            self.approve(registration.id, actor, "HR record matched", automated=True)
            return "approved"

        attempts = registration.erp_validation_attempts
        last_attempt = as_utc(registration.last_erp_validation_attempt)
        if attempts and last_attempt:
            wait = timedelta(minutes=settings.approval_retry_delay_min * 2 ** (attempts - 1))
            if now < last_attempt + wait:
                return "deferred"

        result = self.validator.validate(registration.id_number, registration.full_name)
        registration.erp_validation_attempts = attempts + 1
        registration.last_erp_validation_attempt = now

        if result.is_valid:
            for key, value in self._erp_values(result, now).items():
                setattr(registration, key, value)
            self.repo.save(registration)
            self.approve(registration.id, actor, "HR record matched on retry", automated=True)
            return "approved"

        if registration.erp_validation_attempts >= settings.approval_max_retry_attempts:
            reason = (
                f"HR validation failed after {registration.erp_validation_attempts} attempts. "
                f"Last error: {result.error_message or 'unknown'}"
            )
            registration.requires_manual_review = True
            registration.manual_review_reason = reason
            self.repo.append_audit(
                registration_id=registration.id,
                action=AuditAction.FLAGGED_FOR_REVIEW.value,
                performed_by=actor,
                previous_status=registration.status,
                new_status=registration.status,
                reason=reason,
                is_automated=True,
            )
            self.repo.save(registration)
            logger.warning("Registration %s flagged for manual review", registration.registration_number)
            return "flagged"

        self.repo.save(registration)
        return "retried"

    # Helpers

    def _load(self, registration_id: str) -> Registration:
        registration = self.repo.get(registration_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        return registration

    def _bulk(self, registration_ids: Iterable[str], operation: Callable[[str], Registration]) -> BulkOperationSummary:
        summary = BulkOperationSummary()
        for registration_id in registration_ids:
            try:
                operation(registration_id)
            except RegistryError as exc:
                self.session.rollback()
                summary.failure_count += 1
                summary.results.append(BulkOutcome(registration_id=registration_id, success=False, error=exc.message))
                continue
            summary.success_count += 1
            summary.results.append(BulkOutcome(registration_id=registration_id, success=True))
        return summary

    def _issue_token(self, registration: Registration) -> None:
        registration.email_verification_token = self.tokens.generate(registration.id, registration.email)
        registration.email_verification_token_expiry = self.tokens.expiry_from(self._now())

    @staticmethod
    def _erp_values(result: ErpValidationResult, now: datetime) -> dict:
        return {
            "erp_validated": True,
            "erp_validated_at": now,
            "erp_staff_name": result.staff_name,
            "erp_department": result.department,
            "erp_exit_date": result.exit_date,
            "requires_manual_review": False,
            "manual_review_reason": None,
        }

    def _notify(self, registration: Registration, template: TemplateKey, **extra: str) -> bool:
        variables = {
            "full_name": registration.full_name,
            "registration_number": registration.registration_number,
            **extra,
        }
        if registration.email_verification_token:
            base = self.settings.public_base_url.rstrip("/")
            variables["verification_link"] = f"{base}/api/verify/{registration.email_verification_token}"
        return dispatch(self.sender, template, registration.email, variables)
