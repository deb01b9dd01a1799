from types import SimpleNamespace

import pytest

PROVIDER = SimpleNamespace(id="provider-1", email="provider@example.com", role="provider")


@pytest.fixture
def submission_id(client):
    r = client.post(
        "/api/symptoms/submissions",
        data={"symptoms": "severe chest pain", "severity": "9"},
        files=[("files", ("ecg.png", b"png", "image/png"))],
    )
    assert r.status_code == 201, r.text
    return r.json()["submission_id"]


def test_members_cannot_use_triage(client, submission_id):
    r = client.get("/api/triage/queue")
    assert r.status_code == 403
    j = r.json()
    assert j["code"] == "FORBIDDEN"
    assert j["message"] == "Provider access required"


def test_queue_and_open(client, login, submission_id):
    login(PROVIDER)
    queue = client.get("/api/triage/queue?filter=high_priority").json()
    assert [q["id"] for q in queue] == [submission_id]
    assert queue[0]["urgency_flag"] == "High"

    r = client.get(f"/api/triage/submissions/{submission_id}")
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["status"] == "Under Review"
    assert j["symptoms"] == "severe chest pain"
    assert [f["file_name"] for f in j["files"]] == ["ecg.png"]
    assert j["notes"] == []

    assert client.get("/api/triage/queue?filter=bogus").status_code == 422


def test_status_updates(client, login, submission_id):
    login(PROVIDER)
    r = client.post(f"/api/triage/submissions/{submission_id}/status", json={"status": "Reviewed"})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "Reviewed"

    r = client.post(f"/api/triage/submissions/{submission_id}/status", json={"status": "Submitted"})
    assert r.status_code == 409
    assert r.json()["code"] == "CONFLICT"
    assert r.json()["details"] == {"current": "Reviewed", "requested": "Submitted"}

    r = client.post(f"/api/triage/submissions/{submission_id}/status", json={"status": "Done"})
    assert r.status_code == 422

    assert client.post("/api/triage/submissions/missing/status", json={"status": "Reviewed"}).status_code == 404


def test_notes_and_report(client, login, submission_id):
    login(PROVIDER)
    r = client.post(f"/api/triage/submissions/{submission_id}/notes", json={"content": "Sent to urgent care"})
    assert r.status_code == 201, r.text
    assert r.json()["provider_id"] == "provider-1"

    assert client.post(f"/api/triage/submissions/{submission_id}/notes", json={"content": ""}).status_code == 422
    assert client.post(f"/api/triage/submissions/{submission_id}/notes", json={"content": "   "}).status_code == 422

    r = client.get(f"/api/triage/submissions/{submission_id}/report")
    assert r.status_code == 200
    assert r.headers["content-disposition"] == f'attachment; filename="symptom-submission-{submission_id}.txt"'
    assert "Sent to urgent care" in r.text
    assert "- ecg.png (image/png): memory://" in r.text
