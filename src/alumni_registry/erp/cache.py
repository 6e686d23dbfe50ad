from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any

from alumni_registry.db.base import utcnow
from alumni_registry.erp.roster import normalize_national_id, parse_roster
from alumni_registry.types import CachedEmployee, CacheStats, RefreshResult

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, CachedEmployee] = MappingProxyType({})


class _RefreshFlight:
    __slots__ = ("done", "result")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: RefreshResult | None = None


class EmployeeCache:
    """In-memory HR roster keyed by normalized national identifier.

    Readers never lock: they grab the current snapshot reference, which is an
    immutable mapping replaced wholesale by `refresh()`. At most one roster
    fetch runs at a time; callers arriving mid-refresh wait for it and share
    its result.
    """

    def __init__(
        self,
        fetch_roster: Callable[[], Any],
        *,
        enabled: bool = True,
        mock_mode: bool = False,
        now: Callable[[], datetime] = utcnow,
    ):
        self._fetch_roster = fetch_roster
        self.enabled = enabled
        self.mock_mode = mock_mode
        self._now = now
        self._snapshot: Mapping[str, CachedEmployee] = _EMPTY
        self._last_refresh_time: datetime | None = None
        self._last_error: str | None = None
        self._lock = threading.Lock()
        self._flight: _RefreshFlight | None = None

    def find(self, national_id: str | None) -> CachedEmployee | None:
        if not national_id or not national_id.strip():
            return None
        snapshot = self._snapshot
        return snapshot.get(normalize_national_id(national_id))

    def __len__(self) -> int:
        return len(self._snapshot)

    def refresh(self) -> RefreshResult:
        if self.mock_mode or not self.enabled:
            logger.debug("ERP cache refresh skipped (mock_mode=%s enabled=%s)", self.mock_mode, self.enabled)
            return RefreshResult(success=True, skipped=True, record_count=len(self._snapshot))

        with self._lock:
            flight = self._flight
            leader = flight is None
            if leader:
                flight = self._flight = _RefreshFlight()

        if not leader:
            flight.done.wait()
            return flight.result

        result = RefreshResult(success=False, error="refresh aborted")
        try:
            result = self._load()
        finally:
            with self._lock:
                flight.result = result
                self._flight = None
            flight.done.set()
        return result

    def _load(self) -> RefreshResult:
        started = time.monotonic()
        try:
            employees = parse_roster(self._fetch_roster())
        except Exception as exc:
            self._last_error = str(exc) or type(exc).__name__
            logger.error("ERP cache refresh failed; keeping %s cached records: %s", len(self._snapshot), exc)
            return RefreshResult(
                success=False,
                record_count=len(self._snapshot),
                error=self._last_error,
                duration_ms=int((time.monotonic() - started) * 1000),
            )

        index: dict[str, CachedEmployee] = {}
        for employee in employees:
            index.setdefault(normalize_national_id(employee.national_identifier), employee)
        if len(index) < len(employees):
            logger.warning("Roster contained %s duplicate national identifiers", len(employees) - len(index))

        self._snapshot = MappingProxyType(index)
        self._last_refresh_time = self._now()
        self._last_error = None
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info("ERP cache refreshed with %s records in %sms", len(index), duration_ms)
        return RefreshResult(success=True, record_count=len(index), duration_ms=duration_ms)

    def stats(self) -> CacheStats:
        last = self._last_refresh_time
        age = (self._now() - last).total_seconds() if last else None
        return CacheStats(
            last_refresh_time=last,
            record_count=len(self._snapshot),
            healthy=last is not None and self._last_error is None,
            last_error=self._last_error,
            cache_age_seconds=age,
            enabled=self.enabled and not self.mock_mode,
        )
