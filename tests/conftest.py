from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="alumni-registry-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["DATA_DIR"] = str(_TEST_DIR)
os.environ["APP_ENV"] = "test"
os.environ["ERP_BASE_URL"] = ""
os.environ["ERP_ENABLE_MOCK_MODE"] = "false"
os.environ["ERP_ENABLE_CACHING"] = "true"
os.environ["APPROVAL_JOB_ENABLED"] = "false"
os.environ["ERP_REFRESH_ON_STARTUP"] = "false"

import pytest  # noqa: E402

from alumni_registry.core import runtime  # noqa: E402
from alumni_registry.core.notifications import LoggingEmailSender  # noqa: E402
from alumni_registry.db.base import Base  # noqa: E402
from alumni_registry.db.session import engine  # noqa: E402
from alumni_registry.erp.cache import EmployeeCache  # noqa: E402

ROSTER = [
    {
        "NATIONAL_IDENTIFIER": "12345678",
        "STAFFID": "0012345",
        "FULLNAME": "Jane Wanjiru Doe",
        "DEPARTMENT": "Flight Operations",
        "ACTUAL_TERMINATION_DATE": "2021-06-30T00:00:00",
    },
    {
        "NATIONAL_IDENTIFIER": "A7654321",
        "STAFFID": "00ABC12",
        "FULLNAME": "John Otieno",
        "ORGANISATION": "Engineering",
        "ACTUAL_TERMINATION_DATE": None,
    },
    {"NATIONAL_IDENTIFIER": {"@nil": "true"}, "STAFFID": "0099999", "FULLNAME": "Nobody"},
]


@pytest.fixture
def roster() -> list[dict]:
    return [dict(record) for record in ROSTER]


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    runtime.reset_runtime()
    yield
    runtime.reset_runtime()


@pytest.fixture
def email_sender() -> LoggingEmailSender:
    sender = LoggingEmailSender()
    runtime.set_email_sender(sender)
    return sender


@pytest.fixture
def employee_cache() -> EmployeeCache:
    cache = EmployeeCache(lambda: list(ROSTER))
    assert cache.refresh().success
    runtime.set_employee_cache(cache)
    return cache


@pytest.fixture
def registration_payload() -> dict:
    return {
        "staffNumber": "0012345",
        "idNumber": "12345678",
        "fullName": "Jane Wanjiru Doe",
        "email": "jane.doe@example.com",
        "mobileCountryCode": "+254",
        "mobileNumber": "712345678",
        "currentCountry": "Kenya",
        "currentCountryCode": "KE",
        "currentCity": "Nairobi",
        "currentEmployer": "Acme Aviation",
        "currentJobTitle": "Captain",
        "industry": "Aviation",
        "linkedinProfile": "https://www.linkedin.com/in/janedoe",
        "qualifications": ["BACHELORS"],
        "engagementPreferences": ["MENTORSHIP", "NETWORKING"],
        "consentGiven": True,
    }
