from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from alumni_registry.api.deps import get_workflow
from alumni_registry.api.schemas import (
    DuplicateCheckResponse,
    IdentityRequest,
    RegistrationResponse,
    ResendVerificationRequest,
)
from alumni_registry.core.workflow import RegistrationWorkflow
from alumni_registry.errors import ValidationError
from alumni_registry.types import DuplicateField, IdentityCheck, RegistrationRequest

router = APIRouter(prefix="/api", tags=["registrations"])


@router.post("/registrations", response_model=RegistrationResponse, status_code=201)
def submit_registration(
    payload: RegistrationRequest, workflow: RegistrationWorkflow = Depends(get_workflow)
) -> RegistrationResponse:
    registration = workflow.submit(payload)
    return RegistrationResponse.model_validate(registration)


@router.get("/registrations/check/{field}", response_model=DuplicateCheckResponse)
def check_duplicate(
    field: DuplicateField,
    value: str = Query(..., min_length=1),
    country_code: str | None = Query(None, alias="countryCode"),
    workflow: RegistrationWorkflow = Depends(get_workflow),
) -> DuplicateCheckResponse:
    if field == "mobile" and not country_code:
        raise ValidationError({"countryCode": ["Country code is required to check a mobile number."]})
    exists = workflow.check_duplicate(field, value, country_code)
    return DuplicateCheckResponse(field=field, value=value, exists=exists)


@router.get("/registrations/status", response_model=RegistrationResponse)
def registration_status_by_email(
    email: str = Query(..., min_length=3), workflow: RegistrationWorkflow = Depends(get_workflow)
) -> RegistrationResponse:
    return RegistrationResponse.model_validate(workflow.get_status(email=email))


@router.get("/registrations/{registration_id}/status", response_model=RegistrationResponse)
def registration_status(
    registration_id: str, workflow: RegistrationWorkflow = Depends(get_workflow)
) -> RegistrationResponse:
    return RegistrationResponse.model_validate(workflow.get_status(registration_id=registration_id))


@router.post("/registrations/verify-identity", response_model=IdentityCheck)
def verify_identity(payload: IdentityRequest, workflow: RegistrationWorkflow = Depends(get_workflow)) -> IdentityCheck:
    if not payload.id_number.strip():
        raise ValidationError({"idNumber": ["ID or passport number is required."]})
    return workflow.verify_identity(payload.id_number.strip())


@router.get("/verify/{token}", response_model=RegistrationResponse)
def verify_email(token: str, workflow: RegistrationWorkflow = Depends(get_workflow)) -> RegistrationResponse:
    return RegistrationResponse.model_validate(workflow.verify_email(token))


@router.post("/verify/resend")
def resend_verification(
    payload: ResendVerificationRequest, workflow: RegistrationWorkflow = Depends(get_workflow)
) -> dict:
    registration = workflow.resend_verification(payload.email)
    return {"sent": registration.approval_email_sent, "registrationNumber": registration.registration_number}
