from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from alumni_registry.types import CachedEmployee

logger = logging.getLogger(__name__)

ROSTER_ENVELOPE_KEY = "ExEmployeesView"

# Each attribute accepts the HR system's upper-snake key or its camel/lower variants.
_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "national_identifier": ("NATIONAL_IDENTIFIER", "nationalIdentifier", "national_identifier"),
    "staff_id": ("STAFFID", "staffId", "staffid", "staff_id"),
    "full_name": ("FULLNAME", "fullName", "fullname", "full_name"),
    "department": ("DEPARTMENT", "department", "ORGANISATION", "organisation"),
    "exit_date": (
        "ACTUAL_TERMINATION_DATE",
        "actualTerminationDate",
        "actual_termination_date",
    ),
}


class RosterFormatError(ValueError):
    pass


def normalize_national_id(value: str) -> str:
    return value.strip().casefold()


def _first_text(record: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = record.get(key)
        # Nulls arrive either as JSON null or as a nil-marker object; both mean "absent".
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
    return None


def parse_exit_date(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        logger.debug("Unparseable termination date %r", raw)
        return None


def parse_record(record: Any) -> CachedEmployee | None:
    if not isinstance(record, dict):
        raise RosterFormatError(f"expected object, got {type(record).__name__}")

    national_id = _first_text(record, _FIELD_KEYS["national_identifier"])
    if national_id is None:
        return None

    return CachedEmployee(
        national_identifier=national_id,
        staff_id=_first_text(record, _FIELD_KEYS["staff_id"]) or "",
        full_name=_first_text(record, _FIELD_KEYS["full_name"]) or "",
        department=_first_text(record, _FIELD_KEYS["department"]) or "",
        exit_date=parse_exit_date(_first_text(record, _FIELD_KEYS["exit_date"])),
    )


def extract_records(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(ROSTER_ENVELOPE_KEY), list):
        return payload[ROSTER_ENVELOPE_KEY]
    raise RosterFormatError("roster payload is neither an array nor an ExEmployeesView envelope")


def parse_roster(payload: Any) -> list[CachedEmployee]:
    employees: list[CachedEmployee] = []
    skipped = 0
    for index, record in enumerate(extract_records(payload)):
        try:
            employee = parse_record(record)
        except (RosterFormatError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed roster record #%s: %s", index, exc)
            skipped += 1
            continue
        if employee is None:
            skipped += 1
            continue
        employees.append(employee)

    if skipped:
        logger.info("Roster parsed: %s employees, %s records skipped", len(employees), skipped)
    return employees
