from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import requests

from alumni_registry.config import Settings
from alumni_registry.erp.resilience import CallPolicy, CircuitBreaker, call_with_policy
from alumni_registry.erp.roster import (
    ROSTER_ENVELOPE_KEY,
    RosterFormatError,
    extract_records,
    normalize_national_id,
    parse_record,
)
from alumni_registry.errors import ExternalServiceError
from alumni_registry.types import CachedEmployee

logger = logging.getLogger(__name__)

USER_AGENT = "alumni-registry/0.1"


class ErpClient:
    def __init__(
        self,
        settings: Settings,
        *,
        http: requests.Session | None = None,
        breaker: CircuitBreaker | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.policy = CallPolicy.from_settings(settings)
        self.breaker = breaker or CircuitBreaker.from_policy(self.policy)
        self.http = http or requests.Session()
        self.http.headers.update({"Accept": "application/json", "User-Agent": USER_AGENT})
        if settings.erp_username:
            self.http.auth = (settings.erp_username, settings.erp_password)
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return bool(self.settings.erp_base_url)

    def _url(self, path: str) -> str:
        return self.settings.erp_base_url.rstrip("/") + "/" + path.lstrip("/")

    def _get(self, path: str, operation: str) -> requests.Response:
        if not self.configured:
            raise ExternalServiceError("HR service base URL is not configured")
        url = self._url(path)
        return call_with_policy(
            lambda timeout: self.http.get(url, timeout=timeout),
            self.policy,
            self.breaker,
            operation=operation,
            sleep=self._sleep,
        )

    @staticmethod
    def _json(response: requests.Response, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalServiceError(f"{operation} returned invalid JSON: {exc}") from exc

    def fetch_roster(self) -> Any:
        response = self._get(self.settings.erp_roster_endpoint, "roster fetch")
        if not response.ok:
            raise ExternalServiceError(f"roster fetch returned HTTP {response.status_code}")
        return self._json(response, "roster fetch")

    def lookup(self, national_id: str) -> CachedEmployee | None:
        path = self.settings.erp_lookup_endpoint.format(national_id=quote(national_id.strip(), safe=""))
        response = self._get(path, "employee lookup")
        if response.status_code == 404:
            return None
        if not response.ok:
            raise ExternalServiceError(f"employee lookup returned HTTP {response.status_code}")

        payload = self._json(response, "employee lookup")
        if isinstance(payload, dict) and ROSTER_ENVELOPE_KEY not in payload:
            records = [payload]
        else:
            try:
                records = extract_records(payload)
            except RosterFormatError as exc:
                raise ExternalServiceError(f"employee lookup: {exc}") from exc
        wanted = normalize_national_id(national_id)
        for record in records:
            try:
                employee = parse_record(record)
            except ValueError as exc:
                logger.warning("Ignoring malformed lookup record: %s", exc)
                continue
            if employee and normalize_national_id(employee.national_identifier) == wanted:
                return employee
        return None
