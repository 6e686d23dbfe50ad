import threading
import time

from alumni_registry.erp.cache import EmployeeCache
from alumni_registry.errors import ExternalServiceError


def test_find_on_cold_cache_returns_none(roster) -> None:
    cache = EmployeeCache(lambda: roster)
    assert cache.find("12345678") is None
    assert cache.find("") is None
    assert cache.find(None) is None
    assert cache.stats().healthy is False


def test_refresh_indexes_case_insensitively(roster) -> None:
    cache = EmployeeCache(lambda: roster)
    result = cache.refresh()

    assert result.success
    assert result.record_count == 2
    employee = cache.find("  a7654321 ")
    assert employee is not None
    assert employee.staff_id == "00ABC12"
    assert employee.department == "Engineering"
    assert employee.exit_date is None


def test_failed_refresh_keeps_previous_snapshot(roster) -> None:
    responses = [roster]

    def fetch():
        if responses:
            return responses.pop()
        raise ExternalServiceError("roster fetch returned HTTP 502")

    cache = EmployeeCache(fetch)
    assert cache.refresh().success

    failed = cache.refresh()
    stats = cache.stats()

    assert failed.success is False
    assert stats.record_count == 2
    assert stats.last_error == "roster fetch returned HTTP 502"
    assert stats.healthy is False
    assert cache.find("12345678") is not None


def test_non_array_payload_is_a_failed_refresh() -> None:
    cache = EmployeeCache(lambda: {"unexpected": True})
    result = cache.refresh()

    assert result.success is False
    assert cache.stats().last_error


def test_success_after_failure_clears_error(roster) -> None:
    calls = {"n": 0}

    def fetch():
        calls["n"] += 1
        if calls["n"] == 1:
            raise ExternalServiceError("timeout")
        return {"ExEmployeesView": roster}

    cache = EmployeeCache(fetch)
    assert not cache.refresh().success
    assert cache.refresh().success
    assert cache.stats().healthy
    assert cache.stats().last_error is None


def test_mock_mode_skips_refresh() -> None:
    def fetch():
        raise AssertionError("must not fetch in mock mode")

    cache = EmployeeCache(fetch, mock_mode=True)
    result = cache.refresh()
    assert result.skipped
    assert cache.stats().enabled is False


def test_concurrent_refreshes_share_one_fetch(roster) -> None:
    started = threading.Event()
    release = threading.Event()
    fetches = 0

    def slow_fetch():
        nonlocal fetches
        fetches += 1
        started.set()
        release.wait(timeout=5)
        return roster

    cache = EmployeeCache(slow_fetch)
    results = []
    leader = threading.Thread(target=lambda: results.append(cache.refresh()))
    leader.start()
    assert started.wait(timeout=5)

    followers = [threading.Thread(target=lambda: results.append(cache.refresh())) for _ in range(4)]
    for thread in followers:
        thread.start()
    time.sleep(0.1)
    release.set()
    for thread in [leader, *followers]:
        thread.join(timeout=5)

    assert fetches == 1
    assert len(results) == 5
    assert all(result.success and result.record_count == 2 for result in results)
