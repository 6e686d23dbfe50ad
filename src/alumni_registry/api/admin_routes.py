from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from alumni_registry.api.deps import get_repository, get_workflow
from alumni_registry.api.schemas import (
    ApproveRequest,
    AuditLogResponse,
    BulkApproveRequest,
    BulkRejectRequest,
    RegistrationDetailResponse,
    RegistrationPage,
    RegistrationResponse,
    RejectRequest,
)
from alumni_registry.core.runtime import get_employee_cache
from alumni_registry.core.workflow import RegistrationWorkflow
from alumni_registry.db.repositories import RegistrationRepository
from alumni_registry.errors import NotFoundError
from alumni_registry.types import (
    BulkOperationSummary,
    CacheStats,
    DashboardStats,
    ProcessingSummary,
    RefreshResult,
    RegistrationFilter,
    RegistrationStatus,
    SortField,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/registrations", response_model=RegistrationPage)
def list_registrations(
    status: RegistrationStatus | None = None,
    requires_manual_review: bool | None = Query(None, alias="requiresManualReview"),
    search: str | None = None,
    date_from: datetime | None = Query(None, alias="dateFrom"),
    date_to: datetime | None = Query(None, alias="dateTo"),
    email_verified: bool | None = Query(None, alias="emailVerified"),
    department: str | None = None,
    country: str | None = None,
    city: str | None = None,
    industry: str | None = None,
    erp_validated: bool | None = Query(None, alias="erpValidated"),
    registration_year: int | None = Query(None, alias="registrationYear", ge=2000, le=2999),
    sort_by: SortField = Query("createdat", alias="sortBy"),
    sort_descending: bool = Query(True, alias="sortDescending"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, alias="pageSize", ge=1, le=500),
    repo: RegistrationRepository = Depends(get_repository),
) -> RegistrationPage:
    criteria = RegistrationFilter(
        status=status,
        requires_manual_review=requires_manual_review,
        search=search,
        date_from=date_from,
        date_to=date_to,
        email_verified=email_verified,
        department=department,
        country=country,
        city=city,
        industry=industry,
        erp_validated=erp_validated,
        registration_year=registration_year,
        sort_by=sort_by,
        sort_descending=sort_descending,
        page=page,
        page_size=page_size,
    )
    rows, total = repo.list_registrations(criteria)
    return RegistrationPage(
        items=[RegistrationResponse.model_validate(row) for row in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/registrations/review", response_model=list[RegistrationDetailResponse])
def manual_review_queue(repo: RegistrationRepository = Depends(get_repository)) -> list[RegistrationDetailResponse]:
    return [RegistrationDetailResponse.model_validate(row) for row in repo.list_requiring_manual_review()]


@router.post("/registrations/bulk-approve", response_model=BulkOperationSummary)
def bulk_approve(
    payload: BulkApproveRequest, workflow: RegistrationWorkflow = Depends(get_workflow)
) -> BulkOperationSummary:
    return workflow.bulk_approve(payload.registration_ids, payload.reviewed_by, payload.notes)


@router.post("/registrations/bulk-reject", response_model=BulkOperationSummary)
def bulk_reject(
    payload: BulkRejectRequest, workflow: RegistrationWorkflow = Depends(get_workflow)
) -> BulkOperationSummary:
    return workflow.bulk_reject(payload.registration_ids, payload.reviewed_by, payload.reason, payload.notes)


@router.get("/registrations/{registration_id}", response_model=RegistrationDetailResponse)
def get_registration(
    registration_id: str, repo: RegistrationRepository = Depends(get_repository)
) -> RegistrationDetailResponse:
    registration = repo.get(registration_id)
    if registration is None:
        raise NotFoundError("Registration not found")
    return RegistrationDetailResponse.model_validate(registration)


@router.post("/registrations/{registration_id}/approve", response_model=RegistrationDetailResponse)
def approve_registration(
    registration_id: str,
    payload: ApproveRequest,
    workflow: RegistrationWorkflow = Depends(get_workflow),
) -> RegistrationDetailResponse:
    registration = workflow.approve(registration_id, payload.reviewed_by, payload.notes)
    return RegistrationDetailResponse.model_validate(registration)


@router.post("/registrations/{registration_id}/reject", response_model=RegistrationDetailResponse)
def reject_registration(
    registration_id: str,
    payload: RejectRequest,
    workflow: RegistrationWorkflow = Depends(get_workflow),
) -> RegistrationDetailResponse:
    registration = workflow.reject(registration_id, payload.reviewed_by, payload.reason, payload.notes)
    return RegistrationDetailResponse.model_validate(registration)


@router.get("/registrations/{registration_id}/audit-logs", response_model=list[AuditLogResponse])
def audit_logs(registration_id: str, repo: RegistrationRepository = Depends(get_repository)) -> list[AuditLogResponse]:
    if repo.get(registration_id) is None:
        raise NotFoundError("Registration not found")
    return [AuditLogResponse.model_validate(entry) for entry in repo.list_audit_logs(registration_id)]


@router.get("/dashboard", response_model=DashboardStats)
def dashboard(repo: RegistrationRepository = Depends(get_repository)) -> DashboardStats:
    return repo.dashboard_counts()


@router.get("/erp-cache/stats", response_model=CacheStats)
def erp_cache_stats() -> CacheStats:
    return get_employee_cache().stats()


@router.post("/erp-cache/refresh", response_model=RefreshResult)
def erp_cache_refresh() -> RefreshResult:
    return get_employee_cache().refresh()


@router.post("/approvals/process", response_model=ProcessingSummary)
def process_approvals(workflow: RegistrationWorkflow = Depends(get_workflow)) -> ProcessingSummary:
    return workflow.process_pending_registrations()
