import re

from fastapi.testclient import TestClient

from alumni_registry.api.app import create_app


def test_submit_registration_api(employee_cache, email_sender, registration_payload) -> None:
    client = TestClient(create_app())

    resp = client.post("/api/registrations", json=registration_payload)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "Pending"
    assert re.match(r"^ALM-\d{4}-\d{5}$", body["registrationNumber"])
    assert body["emailVerified"] is False

    status = client.get(f"/api/registrations/{body['id']}/status")
    assert status.status_code == 200
    assert status.json()["registrationNumber"] == body["registrationNumber"]

    by_email = client.get("/api/registrations/status", params={"email": "jane.doe@example.com"})
    assert by_email.json()["id"] == body["id"]


def test_duplicate_submission_returns_conflict(employee_cache, email_sender, registration_payload) -> None:
    client = TestClient(create_app())
    assert client.post("/api/registrations", json=registration_payload).status_code == 201

    resp = client.post("/api/registrations", json=registration_payload)
    assert resp.status_code == 409
    assert resp.json()["field"] == "id-number"


def test_validation_errors_are_returned_per_field(email_sender, registration_payload) -> None:
    client = TestClient(create_app())
    payload = {**registration_payload, "mobileNumber": "12345", "email": "nope"}

    resp = client.post("/api/registrations", json=payload)
    assert resp.status_code == 400
    errors = resp.json()["errors"]
    assert "mobileNumber" in errors
    assert "email" in errors


def test_duplicate_check_endpoint(employee_cache, email_sender, registration_payload) -> None:
    client = TestClient(create_app())
    client.post("/api/registrations", json=registration_payload)

    taken = client.get("/api/registrations/check/email", params={"value": "JANE.DOE@example.com"})
    free = client.get("/api/registrations/check/staff-number", params={"value": "0099999"})
    mobile = client.get("/api/registrations/check/mobile", params={"value": "712345678", "countryCode": "+254"})
    no_code = client.get("/api/registrations/check/mobile", params={"value": "712345678"})

    assert taken.json()["exists"] is True
    assert free.json()["exists"] is False
    assert mobile.json()["exists"] is True
    assert no_code.status_code == 400


def test_verify_identity_endpoint(employee_cache, email_sender) -> None:
    client = TestClient(create_app())
    resp = client.post("/api/registrations/verify-identity", json={"idNumber": "A7654321"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["alreadyRegistered"] is False
    assert body["erp"]["found"] is True
    assert body["erp"]["staffNumber"] == "00ABC12"


def test_verify_endpoint_rejects_malformed_token() -> None:
    client = TestClient(create_app())
    assert client.get("/api/verify/not-a-token").status_code == 400
    assert client.get(f"/api/verify/{'a' * 32}").status_code == 404


def test_health() -> None:
    client = TestClient(create_app())
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
