from __future__ import annotations

import re
from collections.abc import Callable
from typing import NamedTuple

from alumni_registry.config import Settings
from alumni_registry.errors import ValidationError
from alumni_registry.types import RegistrationRequest

STAFF_NUMBER_RE = re.compile(r"^00[0-9A-Z]{5}$")
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
FULL_NAME_RE = re.compile(r"^(?:[^\W\d_]|[\s'.,-])+$")
CITY_RE = re.compile(r"^(?:[^\W\d_]|[\s-])+$")
DIAL_CODE_RE = re.compile(r"^\+\d{1,4}$")
COUNTRY_CODE_RE = re.compile(r"^[A-Z]{2}$")
DIGITS_RE = re.compile(r"^\d+$")

# National significant number lengths (digits after the dial code).
MOBILE_LENGTHS: dict[str, tuple[int, int]] = {
    "+1": (10, 10),
    "+27": (9, 9),
    "+44": (10, 10),
    "+61": (9, 9),
    "+91": (10, 10),
    "+250": (9, 9),
    "+251": (9, 9),
    "+254": (9, 9),
    "+255": (9, 9),
    "+256": (9, 9),
    "+971": (9, 9),
}
FALLBACK_MOBILE_LENGTH = (6, 15)

OTHER_CITY = "Other"


class Rule(NamedTuple):
    field: str
    check: Callable[[RegistrationRequest, Settings], bool]
    message: str


def _text(value: str | None) -> str:
    return (value or "").strip()


def _required(attr: str) -> Callable[[RegistrationRequest, Settings], bool]:
    return lambda req, _: bool(_text(getattr(req, attr)))


def _max_len(attr: str, limit: int) -> Callable[[RegistrationRequest, Settings], bool]:
    return lambda req, _: len(_text(getattr(req, attr))) <= limit


def _matches(attr: str, pattern: re.Pattern[str]) -> Callable[[RegistrationRequest, Settings], bool]:
    # Empty values pass; presence is a separate rule.
    return lambda req, _: not _text(getattr(req, attr)) or bool(pattern.match(_text(getattr(req, attr))))


def mobile_length_ok(country_code: str, number: str) -> bool:
    low, high = MOBILE_LENGTHS.get(country_code, FALLBACK_MOBILE_LENGTH)
    return low <= len(number) <= high


def _mobile_length(req: RegistrationRequest, _: Settings) -> bool:
    code, number = _text(req.mobile_country_code), _text(req.mobile_number)
    if not number or not DIGITS_RE.match(number) or not DIAL_CODE_RE.match(code):
        return True
    return mobile_length_ok(code, number)


def _email_domain_allowed(req: RegistrationRequest, settings: Settings) -> bool:
    email = _text(req.email).lower()
    if "@" not in email:
        return True
    return email.rsplit("@", 1)[1] not in settings.disposable_domain_set


def _city_custom_required(req: RegistrationRequest, _: Settings) -> bool:
    return _text(req.current_city) != OTHER_CITY or bool(_text(req.city_custom))


def _city_custom_length(req: RegistrationRequest, _: Settings) -> bool:
    value = _text(req.city_custom)
    return not value or 2 <= len(value) <= 100


def _linkedin_host(req: RegistrationRequest, _: Settings) -> bool:
    value = _text(req.linkedin_profile).lower()
    return not value or "linkedin.com" in value


def _count_between(attr: str, low: int, high: int) -> Callable[[RegistrationRequest, Settings], bool]:
    return lambda req, _: low <= len(getattr(req, attr) or []) <= high


RULES: tuple[Rule, ...] = (
    Rule("staffNumber", _matches("staff_number", STAFF_NUMBER_RE), "Staff number must be 7 characters starting with 00 (e.g. 0012345)."),
    Rule("idNumber", _required("id_number"), "ID or passport number is required."),
    Rule("idNumber", _max_len("id_number", 50), "ID or passport number cannot exceed 50 characters."),
    Rule("passportNumber", _max_len("passport_number", 50), "Passport number cannot exceed 50 characters."),
    Rule("fullName", _required("full_name"), "Full name is required."),
    Rule("fullName", lambda req, _: not _text(req.full_name) or 2 <= len(_text(req.full_name)) <= 200, "Full name must be between 2 and 200 characters."),
    Rule("fullName", _matches("full_name", FULL_NAME_RE), "Full name may only contain letters, spaces, hyphens, apostrophes, periods and commas."),
    Rule("email", _required("email"), "Email is required."),
    Rule("email", _max_len("email", 255), "Email cannot exceed 255 characters."),
    Rule("email", _matches("email", EMAIL_RE), "Email address is not valid."),
    Rule("email", _email_domain_allowed, "Disposable email addresses are not allowed."),
    Rule("mobileCountryCode", lambda req, _: not _text(req.mobile_number) or bool(_text(req.mobile_country_code)), "Country code is required when a mobile number is provided."),
    Rule("mobileCountryCode", _matches("mobile_country_code", DIAL_CODE_RE), "Country code must be + followed by 1 to 4 digits."),
    Rule("mobileNumber", _matches("mobile_number", DIGITS_RE), "Mobile number may only contain digits."),
    Rule("mobileNumber", _mobile_length, "Mobile number length is not valid for the selected country code."),
    Rule("currentCountry", _required("current_country"), "Current country is required."),
    Rule("currentCountry", _max_len("current_country", 100), "Country cannot exceed 100 characters."),
    Rule("currentCountryCode", _required("current_country_code"), "Country code is required."),
    Rule("currentCountryCode", _matches("current_country_code", COUNTRY_CODE_RE), "Country code must be exactly 2 uppercase letters."),
    Rule("currentCity", _required("current_city"), "Current city is required."),
    Rule("currentCity", _max_len("current_city", 100), "City cannot exceed 100 characters."),
    Rule("cityCustom", _city_custom_required, "Please specify your city."),
    Rule("cityCustom", _city_custom_length, "City must be between 2 and 100 characters."),
    Rule("cityCustom", _matches("city_custom", CITY_RE), "City may only contain letters, spaces and hyphens."),
    Rule("linkedinProfile", _linkedin_host, "LinkedIn profile must be a linkedin.com URL."),
    Rule("linkedinProfile", _max_len("linkedin_profile", 500), "LinkedIn URL cannot exceed 500 characters."),
    Rule("currentEmployer", _max_len("current_employer", 200), "Employer cannot exceed 200 characters."),
    Rule("currentJobTitle", _max_len("current_job_title", 200), "Job title cannot exceed 200 characters."),
    Rule("industry", _max_len("industry", 100), "Industry cannot exceed 100 characters."),
    Rule("professionalCertifications", _max_len("professional_certifications", 1000), "Certifications cannot exceed 1000 characters."),
    Rule("qualifications", _count_between("qualifications", 1, 8), "Select between 1 and 8 qualifications."),
    Rule("engagementPreferences", _count_between("engagement_preferences", 1, 6), "Select between 1 and 6 engagement preferences."),
    Rule("consentGiven", lambda req, _: req.consent_given is True, "You must give consent to register."),
)


def collect_errors(request: RegistrationRequest, settings: Settings) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for rule in RULES:
        if not rule.check(request, settings):
            errors.setdefault(rule.field, []).append(rule.message)
    return errors


def validate_registration(request: RegistrationRequest, settings: Settings) -> None:
    errors = collect_errors(request, settings)
    if errors:
        raise ValidationError(errors)
