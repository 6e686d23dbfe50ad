import requests

from alumni_registry.config import MockEmployee, Settings
from alumni_registry.erp.cache import EmployeeCache
from alumni_registry.erp.client import ErpClient
from alumni_registry.erp.validation import ErpValidationService, name_similarity
from alumni_registry.errors import ExternalServiceError
from alumni_registry.types import CachedEmployee


def _service(cache: EmployeeCache, **overrides) -> ErpValidationService:
    settings = Settings(**overrides)
    return ErpValidationService(settings, cache, ErpClient(settings))


def test_name_similarity_ignores_case_and_whitespace() -> None:
    assert name_similarity("  JANE   wanjiru doe ", "Jane Wanjiru Doe") == 100.0
    assert name_similarity("Jane Doe", "") == 0.0
    assert 80 <= name_similarity("Jane Wanjiru Do", "Jane Wanjiru Doe") < 100


def test_cached_match_is_valid(employee_cache) -> None:
    result = _service(employee_cache).validate("12345678", "jane  WANJIRU doe")

    assert result.is_valid
    assert result.found
    assert result.name_similarity_score >= 80
    assert result.staff_number == "0012345"
    assert result.department == "Flight Operations"
    assert result.exit_date.isoformat() == "2021-06-30"
    assert result.is_mock_data is False


def test_name_mismatch_is_found_but_invalid(employee_cache) -> None:
    result = _service(employee_cache).validate("12345678", "Peter Kamau")

    assert result.found
    assert not result.is_valid
    assert result.name_similarity_score < 80
    assert result.error_message.startswith("Name does not match")


def test_cache_miss_is_not_found(employee_cache) -> None:
    result = _service(employee_cache).validate("00000000", "Jane Doe")
    assert not result.found
    assert not result.is_valid
    assert not result.service_unavailable


def test_identity_only_lookup_skips_name_check(employee_cache) -> None:
    result = _service(employee_cache).validate("A7654321")
    assert result.is_valid
    assert result.staff_name == "John Otieno"


def test_mock_mode_matches_id_or_passport() -> None:
    cache = EmployeeCache(lambda: [])
    service = _service(
        cache,
        erp_enable_mock_mode=True,
        erp_mock_employees=[
            MockEmployee(id_number="MOCK001", passport_number="P998877", staff_number="0054321", full_name="Test User")
        ],
    )

    by_id = service.validate("mock001", "Whoever")
    by_passport = service.validate("p998877")
    missing = service.validate("nobody")

    assert by_id.is_valid and by_id.is_mock_data and by_id.name_similarity_score == 100
    assert by_passport.staff_number == "0054321"
    assert not missing.is_valid and missing.is_mock_data


def test_live_mode_failure_reports_unavailable(monkeypatch) -> None:
    cache = EmployeeCache(lambda: [])
    service = _service(cache, erp_enable_caching=False, erp_base_url="http://hr.invalid")

    def boom(national_id):
        raise ExternalServiceError("employee lookup failed after 4 attempts: ConnectionError")

    monkeypatch.setattr(service.client, "lookup", boom)
    result = service.validate("12345678", "Jane Doe")

    assert not result.is_valid
    assert result.service_unavailable
    assert "temporarily unavailable" in result.error_message


def test_live_fallback_on_cache_miss(monkeypatch) -> None:
    cache = EmployeeCache(lambda: [])
    service = _service(cache, erp_live_fallback_on_cache_miss=True, erp_base_url="http://hr.invalid")
    monkeypatch.setattr(
        service.client,
        "lookup",
        lambda national_id: CachedEmployee(national_identifier=national_id, staff_id="0011111", full_name="Jane Doe"),
    )

    result = service.validate("555", "Jane Doe")
    assert result.is_valid
    assert result.staff_number == "0011111"


def test_blank_id_is_invalid(employee_cache) -> None:
    result = _service(employee_cache).validate("   ", "Jane Doe")
    assert not result.is_valid
    assert result.error_message


def test_live_mode_transport_error_returns_structured_result(monkeypatch) -> None:
    settings = Settings(erp_enable_caching=False, erp_base_url="http://hr.invalid")
    client = ErpClient(settings, sleep=lambda _: None)
    calls = {"n": 0}

    def broken_get(url, timeout=None, **kwargs):
        calls["n"] += 1
        raise requests.exceptions.ChunkedEncodingError("connection broken mid-body")

    monkeypatch.setattr(client.http, "get", broken_get)
    service = ErpValidationService(settings, EmployeeCache(lambda: []), client)

    result = service.validate("12345678", "Jane Doe")

    assert not result.is_valid
    assert result.service_unavailable
    assert "ChunkedEncodingError" in result.error_message
    assert calls["n"] == settings.erp_retry_count + 1


def test_live_mode_bad_base_url_returns_structured_result() -> None:
    settings = Settings(erp_enable_caching=False, erp_base_url="hr.invalid")
    client = ErpClient(settings, sleep=lambda _: None)
    service = ErpValidationService(settings, EmployeeCache(lambda: []), client)

    result = service.validate("12345678", "Jane Doe")

    assert result.service_unavailable
    assert not result.found
