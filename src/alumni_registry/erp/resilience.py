from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

import requests
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from alumni_registry.config import Settings
from alumni_registry.errors import ExternalServiceError

logger = logging.getLogger(__name__)

CircuitState = Literal["closed", "open", "half_open"]
RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504})
TRANSIENT_EXCEPTIONS = (requests.ConnectionError, requests.Timeout, requests.exceptions.ChunkedEncodingError)


class CircuitOpenError(ExternalServiceError):
    pass


@dataclass(slots=True)
class CallPolicy:
    timeout_sec: float = 10.0
    retry_count: int = 3
    backoff_base_sec: float = 2.0
    failure_threshold: int = 5
    sampling_window_sec: float = 60.0
    break_duration_sec: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> CallPolicy:
        return cls(
            timeout_sec=settings.erp_timeout_sec,
            retry_count=settings.erp_retry_count,
            backoff_base_sec=settings.erp_retry_backoff_sec,
            failure_threshold=settings.erp_circuit_failure_threshold,
            sampling_window_sec=settings.erp_circuit_sampling_sec,
            break_duration_sec=settings.erp_circuit_break_sec,
        )


class CircuitBreaker:
    """Opens after `failure_threshold` failures inside the sampling window.

    While open every call is refused. Once `break_duration_sec` has passed a
    single probe is let through; its outcome closes or re-opens the circuit.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        sampling_window_sec: float = 60.0,
        break_duration_sec: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.sampling_window = sampling_window_sec
        self.break_duration = break_duration_sec
        self._clock = clock
        self._failures: deque[float] = deque()
        self._opened_at: float | None = None
        self._probe_in_flight = False
        self._lock = threading.Lock()

    @classmethod
    def from_policy(cls, policy: CallPolicy, clock: Callable[[], float] = time.monotonic) -> CircuitBreaker:
        return cls(
            failure_threshold=policy.failure_threshold,
            sampling_window_sec=policy.sampling_window_sec,
            break_duration_sec=policy.break_duration_sec,
            clock=clock,
        )

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state_locked()

    def _state_locked(self) -> CircuitState:
        if self._opened_at is None:
            return "closed"
        if self._clock() - self._opened_at >= self.break_duration:
            return "half_open"
        return "open"

    def allow_request(self) -> bool:
        with self._lock:
            state = self._state_locked()
            if state == "closed":
                return True
            if state == "half_open" and not self._probe_in_flight:
                self._probe_in_flight = True
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            self._failures.clear()
            self._opened_at = None
            self._probe_in_flight = False

    def record_failure(self) -> None:
        with self._lock:
            now = self._clock()
            if self._probe_in_flight:
                self._probe_in_flight = False
                self._opened_at = now
                logger.warning("HR circuit re-opened after failed probe")
                return

            self._failures.append(now)
            while self._failures and now - self._failures[0] > self.sampling_window:
                self._failures.popleft()
            if self._opened_at is None and len(self._failures) >= self.failure_threshold:
                self._opened_at = now
                self._failures.clear()
                logger.warning(
                    "HR circuit opened for %.0fs after %s failures", self.break_duration, self.failure_threshold
                )


class TransientHttpError(ExternalServiceError):
    """A failed attempt worth retrying: transport error or retryable status."""


def call_with_policy(
    send: Callable[[float], requests.Response],
    policy: CallPolicy,
    breaker: CircuitBreaker,
    *,
    operation: str,
    sleep: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """Run `send(timeout)` with bounded retries behind the circuit breaker.

    Returns the first non-retryable response. Every failure surfaces as
    `ExternalServiceError`: open circuit, a non-transient `requests` error, or
    an exhausted retry budget.
    """

    def attempt() -> requests.Response:
        if not breaker.allow_request():
            raise CircuitOpenError(f"{operation}: HR service circuit is open")
        try:
            response = send(policy.timeout_sec)
        except TRANSIENT_EXCEPTIONS as exc:
            breaker.record_failure()
            raise TransientHttpError(f"{type(exc).__name__}: {exc}") from exc
        except requests.RequestException as exc:
            breaker.record_failure()
            raise ExternalServiceError(f"{operation} failed: {type(exc).__name__}: {exc}") from exc
        if response.status_code in RETRYABLE_STATUS:
            breaker.record_failure()
            raise TransientHttpError(f"HTTP {response.status_code}")
        breaker.record_success()
        return response

    attempts = policy.retry_count + 1
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=policy.backoff_base_sec, exp_base=2),
        retry=retry_if_exception_type(TransientHttpError),
        before_sleep=before_sleep_log(logger, logging.INFO),
        sleep=sleep,
        reraise=True,
    )
    try:
        return retrying(attempt)
    except TransientHttpError as exc:
        raise ExternalServiceError(f"{operation} failed after {attempts} attempts: {exc.message}") from exc
