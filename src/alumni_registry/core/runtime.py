from __future__ import annotations

from alumni_registry.config import get_settings
from alumni_registry.core.notifications import EmailSender, LoggingEmailSender
from alumni_registry.core.tokens import TokenService
from alumni_registry.erp.cache import EmployeeCache
from alumni_registry.erp.client import ErpClient
from alumni_registry.erp.validation import ErpValidationService

_ERP_CLIENT: ErpClient | None = None
_EMPLOYEE_CACHE: EmployeeCache | None = None
_VALIDATION_SERVICE: ErpValidationService | None = None
_EMAIL_SENDER: EmailSender | None = None


def get_erp_client() -> ErpClient:
    global _ERP_CLIENT
    if _ERP_CLIENT is None:
        _ERP_CLIENT = ErpClient(get_settings())
    return _ERP_CLIENT


def get_employee_cache() -> EmployeeCache:
    global _EMPLOYEE_CACHE
    if _EMPLOYEE_CACHE is None:
        settings = get_settings()
        _EMPLOYEE_CACHE = EmployeeCache(
            get_erp_client().fetch_roster,
            enabled=settings.erp_enable_caching,
            mock_mode=settings.erp_enable_mock_mode,
        )
    return _EMPLOYEE_CACHE


def get_validation_service() -> ErpValidationService:
    global _VALIDATION_SERVICE
    if _VALIDATION_SERVICE is None:
        _VALIDATION_SERVICE = ErpValidationService(get_settings(), get_employee_cache(), get_erp_client())
    return _VALIDATION_SERVICE


def get_email_sender() -> EmailSender:
    global _EMAIL_SENDER
    if _EMAIL_SENDER is None:
        _EMAIL_SENDER = LoggingEmailSender()
    return _EMAIL_SENDER


def get_token_service() -> TokenService:
    return TokenService(get_settings().verification_token_ttl_days)


def set_employee_cache(cache: EmployeeCache | None) -> None:
    global _EMPLOYEE_CACHE, _VALIDATION_SERVICE
    _EMPLOYEE_CACHE = cache
    _VALIDATION_SERVICE = None


def set_email_sender(sender: EmailSender | None) -> None:
    global _EMAIL_SENDER
    _EMAIL_SENDER = sender


def reset_runtime() -> None:
    global _ERP_CLIENT, _EMPLOYEE_CACHE, _VALIDATION_SERVICE, _EMAIL_SENDER
    _ERP_CLIENT = None
    _EMPLOYEE_CACHE = None
    _VALIDATION_SERVICE = None
    _EMAIL_SENDER = None
