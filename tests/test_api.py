import time

import jwt

from app.core.config import settings
from app.core.errors import ExtractionFailure
from conftest import ADMIN_TOKEN, make_result


def login(client, role, credential):
    resp = client.post("/v1/auth/login", json={"role": role, "credential": credential})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def png(name="bill.png"):
    return ("files", (name, b"\x89PNG fake bill", "image/png"))


def file_claim(client, headers, months=("March",)):
    assert client.post("/v1/filing/documents", files=[png()], headers=headers).status_code == 200
    for month in months:
        assert client.post(f"/v1/filing/months/{month}", headers=headers).status_code == 200
    return client.post("/v1/filing/submit", headers=headers)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_employee_files_a_claim_and_sees_it_in_history(client, evaluator):
    headers = login(client, "employee", "Jane Doe")

    resp = file_claim(client, headers)

    assert resp.status_code == 200, resp.text
    claim = resp.json()
    assert claim["status"] == "Auto-Approved"
    assert claim["eligibleAmount"] == 900
    assert claim["userId"] == "Jane Doe"
    assert claim["details"]["customerName"] == "Jane Doe"
    assert evaluator.calls[0]["files"][0].mime_type == "image/png"

    history = client.get("/v1/claims/mine", headers=headers).json()
    assert [c["id"] for c in history["claims"]] == [claim["id"]]
    assert client.get("/v1/filing/draft", headers=headers).json() == {
        "documents": [], "months": [], "type": "WiFi",
    }


def test_filing_limits_are_reported(client):
    headers = login(client, "employee", "Jane Doe")

    resp = client.post("/v1/filing/documents", files=[png("a.png"), png("b.png"), png("c.png")], headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "CAPACITY_EXCEEDED"

    client.post("/v1/filing/months/March", headers=headers)
    client.post("/v1/filing/months/April", headers=headers)
    resp = client.post("/v1/filing/months/May", headers=headers)
    assert resp.status_code == 400
    assert client.get("/v1/filing/draft", headers=headers).json()["months"] == ["March", "April"]

    resp = client.post("/v1/filing/submit", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Document evidence and billing cycles are required."


def test_set_type_and_remove_document(client):
    headers = login(client, "employee", "Jane Doe")
    client.post("/v1/filing/documents", files=[png("a.png"), png("b.png")], headers=headers)

    draft = client.put("/v1/filing/type", json={"type": "Mobile"}, headers=headers).json()
    assert draft["type"] == "Mobile"

    draft = client.delete("/v1/filing/documents/0", headers=headers).json()
    assert [d["name"] for d in draft["documents"]] == ["b.png"]


def test_extraction_failure_is_recoverable(client, evaluator):
    evaluator.error = ExtractionFailure.insufficient_clarity("invalid JSON")
    headers = login(client, "employee", "Jane Doe")

    resp = file_claim(client, headers)

    assert resp.status_code == 502
    assert resp.json()["error"] == "EXTRACTION_FAILED"
    assert client.get("/v1/claims/mine", headers=headers).json()["claims"] == []

    evaluator.error = None
    assert client.post("/v1/filing/submit", headers=headers).status_code == 200


def test_admin_reviews_identity_mismatch(client, evaluator):
    evaluator.result = make_result(
        customer_name="John Smith",
        status="Needs Review",
        reasoning="Bill is addressed to John Smith.",
    )
    employee = login(client, "employee", "Jane Doe")
    claim_id = file_claim(client, employee).json()["id"]

    admin = login(client, "admin", ADMIN_TOKEN)
    listing = client.get("/v1/admin/claims", params={"range": "15d"}, headers=admin).json()
    assert [c["id"] for c in listing["claims"]] == [claim_id]
    assert listing["stats"] == {"total": 1, "pending": 1, "approved": 0}

    resp = client.post(f"/v1/admin/claims/{claim_id}/reject", json={"reason": ""}, headers=admin)
    assert resp.status_code == 400
    assert client.get(f"/v1/admin/claims/{claim_id}", headers=admin).json()["status"] == "Needs Review"

    resp = client.post(f"/v1/admin/claims/{claim_id}/reject", json={"reason": "Identity mismatch"}, headers=admin)
    assert resp.json()["status"] == "Rejected"
    assert resp.json()["adminReason"] == "Identity mismatch"

    resp = client.post(f"/v1/admin/claims/{claim_id}/approve", headers=admin)
    assert resp.status_code == 409


def test_admin_delete_and_clear(client):
    employee = login(client, "employee", "Jane Doe")
    first = file_claim(client, employee).json()["id"]
    second = file_claim(client, employee, months=("April",)).json()["id"]

    admin = login(client, "admin", ADMIN_TOKEN)
    assert client.delete(f"/v1/admin/claims/{first}", headers=admin).status_code == 200
    assert client.delete(f"/v1/admin/claims/{first}", headers=admin).status_code == 404
    assert [c["id"] for c in client.get("/v1/admin/claims", headers=admin).json()["claims"]] == [second]

    assert client.delete("/v1/admin/claims", headers=admin).status_code == 200
    assert client.get("/v1/admin/claims", headers=admin).json()["claims"] == []


def test_unknown_range_is_a_validation_error(client):
    admin = login(client, "admin", ADMIN_TOKEN)
    assert client.get("/v1/admin/claims", params={"range": "2w"}, headers=admin).status_code == 400


def test_role_gate(client):
    assert client.post("/v1/auth/login", json={"role": "admin", "credential": "letmein"}).status_code == 401
    assert client.post("/v1/auth/login", json={"role": "employee", "credential": " "}).status_code == 401

    employee = login(client, "employee", "Jane Doe")
    assert client.get("/v1/admin/claims", headers=employee).status_code == 403
    assert client.get("/v1/admin/claims").status_code == 401

    admin = login(client, "admin", ADMIN_TOKEN)
    assert client.post("/v1/filing/submit", headers=admin).status_code == 403


def test_token_stops_working_after_logout(client):
    headers = login(client, "employee", "Jane Doe")
    assert client.post("/v1/auth/logout", headers=headers).status_code == 200
    assert client.get("/v1/filing/draft", headers=headers).status_code == 401


def test_theme_and_full_reset(client, storage):
    assert client.get("/v1/preferences/theme").json() == {"theme": "light"}
    assert client.put("/v1/preferences/theme", json={"theme": "dark"}).json() == {"theme": "dark"}
    assert client.post("/v1/preferences/theme/toggle").json() == {"theme": "light"}

    headers = login(client, "employee", "Jane Doe")
    file_claim(client, headers)

    assert client.post("/v1/system/reset").status_code == 400
    assert client.post("/v1/system/reset", params={"confirm": "true"}).status_code == 200
    assert client.get("/v1/filing/draft", headers=headers).status_code == 401
    assert storage.load("autoclaim_db") is None


def test_token_with_unknown_role_is_refused(client):
    login(client, "employee", "Jane Doe")
    now = int(time.time())
    token = jwt.encode(
        {
            "iss": settings.JWT_ISSUER,
            "aud": settings.JWT_AUDIENCE,
            "iat": now,
            "nbf": now,
            "exp": now + 60,
            "sub": "Jane Doe",
            "role": "root",
            "typ": "access",
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )

    resp = client.get("/v1/filing/draft", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token type."
