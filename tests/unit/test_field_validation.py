from alumni_registry.config import get_settings
from alumni_registry.core.validation import collect_errors, mobile_length_ok
from alumni_registry.types import RegistrationRequest


def _request(payload: dict, **overrides) -> RegistrationRequest:
    return RegistrationRequest.model_validate({**payload, **overrides})


def test_valid_request_has_no_errors(registration_payload) -> None:
    assert collect_errors(_request(registration_payload), get_settings()) == {}


def test_kenyan_mobile_length_is_enforced(registration_payload) -> None:
    ok = _request(registration_payload, mobileCountryCode="+254", mobileNumber="712345678")
    short = _request(registration_payload, mobileCountryCode="+254", mobileNumber="12345")

    assert "mobileNumber" not in collect_errors(ok, get_settings())
    assert "mobileNumber" in collect_errors(short, get_settings())


def test_unknown_dial_code_uses_fallback_range() -> None:
    assert mobile_length_ok("+999", "123456")
    assert mobile_length_ok("+999", "123456789012345")
    assert not mobile_length_ok("+999", "12345")
    assert not mobile_length_ok("+999", "1234567890123456")


def test_all_violations_are_collected(registration_payload) -> None:
    request = _request(
        registration_payload,
        staffNumber="12345",
        email="not-an-email",
        currentCountryCode="kenya",
        consentGiven=False,
        qualifications=[],
    )
    errors = collect_errors(request, get_settings())

    assert {"staffNumber", "email", "currentCountryCode", "consentGiven", "qualifications"} <= set(errors)


def test_missing_required_fields_are_reported(registration_payload) -> None:
    request = _request(registration_payload, idNumber="", fullName=None, currentCity="  ")
    errors = collect_errors(request, get_settings())

    assert errors["idNumber"] == ["ID or passport number is required."]
    assert "fullName" in errors
    assert "currentCity" in errors


def test_disposable_email_domain_rejected(registration_payload) -> None:
    errors = collect_errors(_request(registration_payload, email="someone@mailinator.com"), get_settings())
    assert errors["email"] == ["Disposable email addresses are not allowed."]


def test_custom_city_required_only_for_other(registration_payload) -> None:
    missing = _request(registration_payload, currentCity="Other", cityCustom=None)
    given = _request(registration_payload, currentCity="Other", cityCustom="Port-Louis")
    bad_chars = _request(registration_payload, currentCity="Other", cityCustom="City 17")

    assert "cityCustom" in collect_errors(missing, get_settings())
    assert "cityCustom" not in collect_errors(given, get_settings())
    assert "cityCustom" in collect_errors(bad_chars, get_settings())


def test_mobile_number_needs_country_code_and_digits(registration_payload) -> None:
    no_code = _request(registration_payload, mobileCountryCode=None)
    letters = _request(registration_payload, mobileNumber="71234abcd")

    assert "mobileCountryCode" in collect_errors(no_code, get_settings())
    assert collect_errors(letters, get_settings())["mobileNumber"] == ["Mobile number may only contain digits."]


def test_linkedin_must_point_to_linkedin(registration_payload) -> None:
    errors = collect_errors(_request(registration_payload, linkedinProfile="https://example.com/me"), get_settings())
    assert "linkedinProfile" in errors


def test_engagement_preferences_bounded(registration_payload) -> None:
    errors = collect_errors(_request(registration_payload, engagementPreferences=[]), get_settings())
    assert "engagementPreferences" in errors
