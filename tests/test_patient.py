from conftest import raise_ticket, register


def test_create_request_starts_pending(client, patient):
    headers, user = patient
    r = client.post(
        "/patient/request",
        json={
            "title": "Fever",
            "issue": "High fever and headache since Monday",
            "name": "Pat",
            "age": 40,
            "email": "pat@example.com",
            "phone": "555-0101",
        },
        headers=headers,
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["status"] == "PENDING"
    assert data["volunteerId"] is None
    assert data["userId"] == user["id"]
    assert data["phone"] == "555-0101"


def test_summary_attached_after_creation(client, patient):
    headers, _ = patient
    ticket = raise_ticket(client, headers)
    r = client.get(f"/patient/request/{ticket['id']}", headers=headers)
    assert r.status_code == 200
    summary = r.json()["data"]["autoSummary"]
    assert summary is not None
    assert summary["generatedByAI"] is True
    assert "mock summary" in summary["content"].lower()


def test_create_request_requires_title_and_issue(client, patient):
    headers, _ = patient
    r = client.post("/patient/request", json={"title": "  ", "issue": "x"}, headers=headers)
    assert r.status_code == 400
    r = client.post("/patient/request", json={"title": "Cough"}, headers=headers)
    assert r.status_code == 400


def test_only_patients_create_requests(client, volunteer):
    headers, _ = volunteer
    r = client.post("/patient/request", json={"title": "t", "issue": "i"}, headers=headers)
    assert r.status_code == 403


def test_my_requests_newest_first(client, patient):
    headers, _ = patient
    raise_ticket(client, headers, title="First")
    raise_ticket(client, headers, title="Second")
    r = client.get("/patient/my_requests", headers=headers)
    assert r.status_code == 200
    titles = [req["title"] for req in r.json()["data"]]
    assert titles == ["Second", "First"]


def test_get_request_is_ownership_checked(client, patient):
    headers, _ = patient
    ticket = raise_ticket(client, headers)
    other_headers, _ = register(client, role="PATIENT")

    assert client.get(f"/patient/request/{ticket['id']}", headers=other_headers).status_code == 404
    assert client.get("/patient/request/does-not-exist", headers=headers).status_code == 404


def test_resolve_by_owner(client, patient):
    headers, _ = patient
    ticket = raise_ticket(client, headers)
    # Pending tickets may be resolved directly
    r = client.patch(f"/patient/resolve/{ticket['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "RESOLVED"


def test_resolve_by_other_patient_forbidden(client, patient):
    headers, _ = patient
    ticket = raise_ticket(client, headers)
    other_headers, _ = register(client, role="PATIENT")

    r = client.patch(f"/patient/resolve/{ticket['id']}", headers=other_headers)
    assert r.status_code == 403
    status = client.get(f"/patient/request/{ticket['id']}", headers=headers).json()["data"]["status"]
    assert status == "PENDING"


def test_resolve_cancelled_request_rejected(client, db_session, patient):
    from models.patient_request import PatientRequest

    headers, _ = patient
    ticket = raise_ticket(client, headers)
    row = db_session.query(PatientRequest).filter_by(request_id=ticket["id"]).first()
    row.status = "CANCELLED"
    db_session.commit()

    r = client.patch(f"/patient/resolve/{ticket['id']}", headers=headers)
    assert r.status_code == 400


def test_summary_failure_does_not_block_ticket(client, patient, monkeypatch):
    import controllers.requests as requests_controller

    async def _broken_summary(issue, debug=True):
        raise RuntimeError("upstream unavailable")

    monkeypatch.setattr(requests_controller, "generate_summary", _broken_summary)
    headers, _ = patient
    ticket = raise_ticket(client, headers, title="Rash")

    r = client.get(f"/patient/request/{ticket['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["autoSummary"] is None

    monkeypatch.undo()
    retry = client.post(f"/patient/request/{ticket['id']}/summary", headers=headers)
    assert retry.status_code == 200, retry.text
    assert retry.json()["data"]["generatedByAI"] is True

    again = client.post(f"/patient/request/{ticket['id']}/summary", headers=headers)
    assert again.status_code == 409


def test_ask_query_requires_assignment(client, patient):
    headers, _ = patient
    ticket = raise_ticket(client, headers)
    r = client.post(
        f"/patient/ask_query/{ticket['id']}", json={"message": "Any update?"}, headers=headers
    )
    assert r.status_code == 400


def test_ask_query_uses_message_rules(client, patient, volunteer, assigned_ticket):
    headers, _ = patient
    url = f"/patient/ask_query/{assigned_ticket['id']}"

    assert client.post(url, json={"message": "x" * 2001}, headers=headers).status_code == 400
    assert client.post(url, json={}, headers=headers).status_code == 400

    ok = client.post(url, json={"message": "Any update?"}, headers=headers)
    assert ok.status_code == 200, ok.text
    assert ok.json()["data"]["senderRole"] == "PATIENT"

    thread = client.get(f"/chat/{assigned_ticket['id']}", headers=volunteer[0]).json()["data"]
    assert [m["content"] for m in thread] == ["Any update?"]


def test_ask_query_other_patients_ticket(client, assigned_ticket):
    other_headers, _ = register(client, role="PATIENT")
    r = client.post(
        f"/patient/ask_query/{assigned_ticket['id']}",
        json={"message": "hello"},
        headers=other_headers,
    )
    assert r.status_code == 403


def test_request_delete_cascades(client, db_session, patient, volunteer, assigned_ticket):
    from models.auto_summary import AutoSummary
    from models.patient_request import PatientRequest
    from models.request_message import RequestMessage

    client.post(
        "/chat",
        json={"requestId": assigned_ticket["id"], "content": "hi", "senderRole": "PATIENT"},
        headers=patient[0],
    )
    row = db_session.query(PatientRequest).filter_by(request_id=assigned_ticket["id"]).first()
    db_session.delete(row)
    db_session.commit()

    assert db_session.query(AutoSummary).filter_by(request_id=assigned_ticket["id"]).count() == 0
    assert db_session.query(RequestMessage).filter_by(request_id=assigned_ticket["id"]).count() == 0
