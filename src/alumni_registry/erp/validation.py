from __future__ import annotations

import logging

from rapidfuzz.distance import Levenshtein

from alumni_registry.config import MockEmployee, Settings
from alumni_registry.erp.cache import EmployeeCache
from alumni_registry.erp.client import ErpClient
from alumni_registry.erp.roster import parse_exit_date
from alumni_registry.errors import ExternalServiceError
from alumni_registry.types import CachedEmployee, ErpValidationResult

logger = logging.getLogger(__name__)

MSG_ID_REQUIRED = "ID number is required for HR validation."
MSG_NOT_FOUND = "ID number not found in our former staff records."
MSG_NAME_MISMATCH = "Name does not match our records. Please enter your full name as registered with HR."
MSG_UNAVAILABLE = "HR validation is temporarily unavailable."


def normalize_name(name: str | None) -> str:
    return " ".join((name or "").lower().split())


def name_similarity(left: str | None, right: str | None) -> float:
    a, b = normalize_name(left), normalize_name(right)
    if not a or not b:
        return 0.0
    return round(Levenshtein.normalized_similarity(a, b) * 100, 2)


class ErpValidationService:
    def __init__(self, settings: Settings, cache: EmployeeCache, client: ErpClient):
        self.settings = settings
        self.cache = cache
        self.client = client

    def validate(self, national_id: str | None, full_name: str | None = None) -> ErpValidationResult:
        if not national_id or not national_id.strip():
            return ErpValidationResult(error_message=MSG_ID_REQUIRED)

        if self.settings.erp_enable_mock_mode:
            return self._validate_mock(national_id)

        if not self.settings.erp_enable_caching:
            return self._validate_live(national_id, full_name)

        employee = self.cache.find(national_id)
        if employee is not None:
            return self._match(employee, full_name)
        if self.settings.erp_live_fallback_on_cache_miss:
            logger.info("ERP cache miss; falling back to live lookup")
            return self._validate_live(national_id, full_name)
        return ErpValidationResult(found=False, error_message=MSG_NOT_FOUND)

    def _validate_mock(self, national_id: str) -> ErpValidationResult:
        wanted = national_id.strip().lower()
        for mock in self.settings.erp_mock_employees:
            if wanted in {mock.id_number.strip().lower(), mock.passport_number.strip().lower()} - {""}:
                return self._mock_result(mock)
        return ErpValidationResult(found=False, is_mock_data=True, error_message=MSG_NOT_FOUND)

    @staticmethod
    def _mock_result(mock: MockEmployee) -> ErpValidationResult:
        return ErpValidationResult(
            is_valid=True,
            found=True,
            staff_number=mock.staff_number or None,
            staff_name=mock.full_name or None,
            department=mock.department or None,
            exit_date=parse_exit_date(mock.exit_date),
            name_similarity_score=100.0,
            is_mock_data=True,
        )

    def _validate_live(self, national_id: str, full_name: str | None) -> ErpValidationResult:
        try:
            employee = self.client.lookup(national_id)
        except ExternalServiceError as exc:
            logger.warning("Live HR lookup failed: %s", exc)
            return ErpValidationResult(service_unavailable=True, error_message=f"{MSG_UNAVAILABLE} {exc.message}")
        if employee is None:
            return ErpValidationResult(found=False, error_message=MSG_NOT_FOUND)
        return self._match(employee, full_name)

    def _match(self, employee: CachedEmployee, full_name: str | None) -> ErpValidationResult:
        result = ErpValidationResult(
            is_valid=True,
            found=True,
            staff_number=employee.staff_id or None,
            staff_name=employee.full_name or None,
            department=employee.department or None,
            exit_date=employee.exit_date,
        )
        if full_name is None:
            return result

        score = name_similarity(full_name, employee.full_name)
        result.name_similarity_score = score
        if score < self.settings.erp_name_match_threshold:
            logger.info(
                "Name similarity %.1f below threshold %.1f for staff %s",
                score,
                self.settings.erp_name_match_threshold,
                employee.staff_id,
            )
            result.is_valid = False
            result.error_message = MSG_NAME_MISMATCH
        return result
