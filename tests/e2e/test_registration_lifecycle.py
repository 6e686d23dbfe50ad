from datetime import timedelta

from fastapi.testclient import TestClient

from alumni_registry.api.app import create_app
from alumni_registry.core.workflow import RegistrationWorkflow
from alumni_registry.db.base import utcnow
from alumni_registry.db.session import SessionLocal


def test_submit_auto_approve_verify_activate(employee_cache, email_sender, registration_payload) -> None:
    client = TestClient(create_app())

    submitted = client.post("/api/registrations", json=registration_payload).json()
    assert submitted["status"] == "Pending"
    assert submitted["erpValidated"] is True

    with SessionLocal() as db:
        summary = RegistrationWorkflow(db, now=lambda: utcnow() + timedelta(seconds=5)).process_pending_registrations()
    assert summary.approved == 1

    templates = [item[0] for item in email_sender.sent]
    assert templates == ["confirmation", "approval"]
    link = email_sender.sent[-1][2]["verification_link"]
    token = link.rsplit("/", 1)[1]

    verified = client.get(f"/api/verify/{token}")
    assert verified.status_code == 200
    assert verified.json()["status"] == "Active"
    assert verified.json()["emailVerified"] is True

    logs = client.get(f"/api/admin/registrations/{submitted['id']}/audit-logs").json()
    assert [entry["action"] for entry in logs] == ["EmailVerified", "AutomaticApproval"]

    dashboard = client.get("/api/admin/dashboard").json()
    assert dashboard["active"] == 1
    assert dashboard["emailVerified"] == 1


def test_flagged_registration_resolved_by_admin(employee_cache, email_sender, registration_payload) -> None:
    client = TestClient(create_app())
    payload = {**registration_payload, "fullName": "Someone Else Entirely"}

    submitted = client.post("/api/registrations", json=payload).json()
    assert submitted["requiresManualReview"] is True

    with SessionLocal() as db:
        summary = RegistrationWorkflow(db, now=lambda: utcnow() + timedelta(seconds=5)).process_pending_registrations()
    assert summary.processed == 0

    approved = client.post(
        f"/api/admin/registrations/{submitted['id']}/approve",
        json={"reviewedBy": "hr-desk", "notes": "Name changed after marriage"},
    ).json()
    assert approved["status"] == "Approved"
    assert approved["requiresManualReview"] is False
    assert approved["reviewNotes"] == "Name changed after marriage"

    resend = client.post("/api/verify/resend", json={"email": "jane.doe@example.com"})
    assert resend.status_code == 200
    assert resend.json()["sent"] is True
