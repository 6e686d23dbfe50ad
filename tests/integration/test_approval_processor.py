from datetime import timedelta

from alumni_registry.config import Settings
from alumni_registry.core import runtime
from alumni_registry.core.workflow import RegistrationWorkflow
from alumni_registry.db.base import utcnow
from alumni_registry.db.repositories import RegistrationRepository
from alumni_registry.db.session import SessionLocal
from alumni_registry.erp.cache import EmployeeCache
from alumni_registry.types import RegistrationRequest


class Clock:
    def __init__(self) -> None:
        self.offset = timedelta(0)

    def __call__(self):
        return utcnow() + self.offset


def test_validated_registration_is_approved_automatically(employee_cache, email_sender, registration_payload) -> None:
    clock = Clock()
    with SessionLocal() as db:
        workflow = RegistrationWorkflow(db, now=clock)
        registration = workflow.submit(RegistrationRequest.model_validate(registration_payload))

        clock.offset = timedelta(seconds=5)
        summary = workflow.process_pending_registrations()

        assert summary.processed == 1
        assert summary.approved == 1
        db.refresh(registration)
        assert registration.status == "Approved"
        assert registration.manually_reviewed is False
        logs = RegistrationRepository(db).list_audit_logs(registration.id)
        assert logs[0].action == "AutomaticApproval"
        assert logs[0].is_automated is True


def test_fresh_registrations_wait_for_min_age(employee_cache, email_sender, registration_payload) -> None:
    with SessionLocal() as db:
        workflow = RegistrationWorkflow(db, settings=Settings(approval_min_age_sec=3600))
        workflow.submit(RegistrationRequest.model_validate(registration_payload))
        assert workflow.process_pending_registrations().processed == 0


def test_unvalidated_registration_backs_off_then_flags(email_sender, registration_payload) -> None:
    clock = Clock()
    settings = Settings(erp_validate_on_submit=False, approval_max_retry_attempts=3, approval_retry_delay_min=10)
    with SessionLocal() as db:
        workflow = RegistrationWorkflow(db, settings=settings, now=clock)
        registration = workflow.submit(RegistrationRequest.model_validate(registration_payload))
        assert registration.erp_validation_attempts == 0
        assert registration.requires_manual_review is False

        clock.offset = timedelta(seconds=5)
        assert workflow.process_pending_registrations().retried == 1

        clock.offset = timedelta(minutes=5)
        assert workflow.process_pending_registrations().deferred == 1

        clock.offset = timedelta(minutes=11)
        assert workflow.process_pending_registrations().retried == 1

        clock.offset = timedelta(minutes=25)
        assert workflow.process_pending_registrations().deferred == 1

        clock.offset = timedelta(minutes=32)
        assert workflow.process_pending_registrations().flagged == 1

        db.refresh(registration)
        assert registration.erp_validation_attempts == 3
        assert registration.requires_manual_review is True
        assert registration.manual_review_reason.startswith("HR validation failed after 3 attempts")
        logs = RegistrationRepository(db).list_audit_logs(registration.id)
        assert logs[0].action == "FlaggedForManualReview"

        clock.offset = timedelta(hours=5)
        assert workflow.process_pending_registrations().processed == 0


def test_retry_succeeds_once_roster_catches_up(email_sender, registration_payload, roster) -> None:
    available: list[dict] = []
    cache = EmployeeCache(lambda: available)
    cache.refresh()
    runtime.set_employee_cache(cache)

    clock = Clock()
    settings = Settings(erp_validate_on_submit=False)
    with SessionLocal() as db:
        workflow = RegistrationWorkflow(db, settings=settings, now=clock)
        registration = workflow.submit(RegistrationRequest.model_validate(registration_payload))

        clock.offset = timedelta(seconds=5)
        assert workflow.process_pending_registrations().retried == 1

        available.extend(roster)
        assert cache.refresh().success
        clock.offset = timedelta(minutes=11)
        summary = workflow.process_pending_registrations()

        assert summary.approved == 1
        db.refresh(registration)
        assert registration.status == "Approved"
        assert registration.erp_validated is True
        assert registration.erp_staff_name == "Jane Wanjiru Doe"
