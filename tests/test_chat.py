from conftest import assign, raise_ticket, register


def _send(client, headers, request_id, content="Hello", sender_role="PATIENT"):
    return client.post(
        "/chat",
        json={"requestId": request_id, "content": content, "senderRole": sender_role},
        headers=headers,
    )


def _unread(client, headers):
    r = client.get("/chat/unread/count", headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]["unreadCount"]


def test_patient_cannot_message_before_assignment(client, patient):
    ticket = raise_ticket(client, patient[0])
    r = _send(client, patient[0], ticket["id"])
    assert r.status_code == 400
    assert "No volunteer assigned" in r.json()["msg"]


def test_send_validation(client, patient, volunteer, assigned_ticket):
    rid = assigned_ticket["id"]
    assert _send(client, patient[0], rid, content="   ").status_code == 400
    assert _send(client, patient[0], rid, content="x" * 2001).status_code == 400
    assert _send(client, patient[0], rid, sender_role="VOLUNTEER").status_code == 403
    assert _send(client, volunteer[0], rid, sender_role="PATIENT").status_code == 403
    assert _send(client, patient[0], "missing", content="hi").status_code == 404


def test_send_allows_exactly_2000_chars(client, patient, assigned_ticket):
    r = _send(client, patient[0], assigned_ticket["id"], content="x" * 2000)
    assert r.status_code == 200


def test_outsiders_cannot_send(client, assigned_ticket):
    other_patient, _ = register(client, role="PATIENT")
    other_volunteer, _ = register(client, role="VOLUNTEER")
    rid = assigned_ticket["id"]
    assert _send(client, other_patient, rid).status_code == 403
    assert _send(client, other_volunteer, rid, sender_role="VOLUNTEER").status_code == 403
    assert client.get(f"/chat/{rid}", headers=other_volunteer).status_code == 403


def test_cancelled_request_blocks_messages(client, db_session, patient, assigned_ticket):
    from models.patient_request import PatientRequest

    row = db_session.query(PatientRequest).filter_by(request_id=assigned_ticket["id"]).first()
    row.status = "CANCELLED"
    db_session.commit()

    r = _send(client, patient[0], assigned_ticket["id"])
    assert r.status_code == 400
    assert "cancelled" in r.json()["msg"]


def test_round_trip_and_read_receipts(client, patient, volunteer, assigned_ticket):
    rid = assigned_ticket["id"]
    sent = _send(client, patient[0], rid, content="  I still have a fever  ").json()["data"]
    assert sent["content"] == "I still have a fever"
    assert sent["senderName"] == "Patty Patient"
    assert sent["isRead"] is False

    # The sender's own fetch does not mark their message read
    own_view = client.get(f"/chat/{rid}", headers=patient[0]).json()["data"]
    assert own_view[0]["isRead"] is False
    assert _unread(client, volunteer[0]) == 1

    first = client.get(f"/chat/{rid}", headers=volunteer[0]).json()["data"]
    assert len(first) == 1
    assert first[0]["content"] == sent["content"]
    assert first[0]["senderId"] == sent["senderId"]
    assert first[0]["createdAt"] == sent["createdAt"]
    assert first[0]["isRead"] is True
    assert _unread(client, volunteer[0]) == 0

    second = client.get(f"/chat/{rid}", headers=volunteer[0]).json()["data"]
    assert second[0]["isRead"] is True
    mark = client.patch(f"/chat/{rid}/read", headers=volunteer[0]).json()
    assert mark["data"]["markedCount"] == 0


def test_messages_listed_in_creation_order(client, patient, volunteer, assigned_ticket):
    rid = assigned_ticket["id"]
    _send(client, patient[0], rid, content="one")
    _send(client, volunteer[0], rid, content="two", sender_role="VOLUNTEER")
    _send(client, patient[0], rid, content="three")
    thread = client.get(f"/chat/{rid}", headers=patient[0]).json()["data"]
    assert [m["content"] for m in thread] == ["one", "two", "three"]
    assert [m["senderRole"] for m in thread] == ["PATIENT", "VOLUNTEER", "PATIENT"]


def test_unread_count_scoped_to_own_requests(client, patient, volunteer, assigned_ticket):
    lonely, _ = register(client, role="VOLUNTEER")
    assert _unread(client, lonely) == 0

    _send(client, volunteer[0], assigned_ticket["id"], content="How are you?", sender_role="VOLUNTEER")
    _send(client, volunteer[0], assigned_ticket["id"], content="Still there?", sender_role="VOLUNTEER")
    assert _unread(client, patient[0]) == 2
    assert _unread(client, volunteer[0]) == 0


def test_explicit_mark_read(client, patient, volunteer, assigned_ticket):
    rid = assigned_ticket["id"]
    _send(client, volunteer[0], rid, content="Hi", sender_role="VOLUNTEER")
    r = client.patch(f"/chat/{rid}/read", headers=patient[0])
    assert r.status_code == 200
    assert r.json()["data"]["markedCount"] == 1
    assert _unread(client, patient[0]) == 0


def test_delete_only_by_sender(client, patient, volunteer, assigned_ticket):
    rid = assigned_ticket["id"]
    message = _send(client, patient[0], rid, content="oops").json()["data"]

    assert client.delete(f"/chat/{message['id']}", headers=volunteer[0]).status_code == 403
    assert client.delete(f"/chat/{message['id']}", headers=patient[0]).status_code == 200
    assert client.delete(f"/chat/{message['id']}", headers=patient[0]).status_code == 404
    assert client.get(f"/chat/{rid}", headers=patient[0]).json()["data"] == []


def test_full_support_flow(client):
    patient_headers, _ = register(client, role="PATIENT", name="Pat")
    ticket = raise_ticket(client, patient_headers, title="Fever")
    mine = client.get("/patient/my_requests", headers=patient_headers).json()["data"]
    assert mine[0]["autoSummary"] is not None

    volunteer_headers, volunteer_user = register(client, role="VOLUNTEER", name="Vee")
    available = client.get("/volunteer/get_all_patient", headers=volunteer_headers).json()["data"]
    listed = [r for r in available if r["id"] == ticket["id"]]
    assert listed and listed[0]["title"] == "Fever" and listed[0]["volunteerId"] is None

    assign(client, volunteer_headers, ticket["id"])
    available = client.get("/volunteer/get_all_patient", headers=volunteer_headers).json()["data"]
    assert ticket["id"] not in {r["id"] for r in available}
    my_patients = client.get("/volunteer/my_patients", headers=volunteer_headers).json()["data"]
    assert ticket["id"] in {r["id"] for r in my_patients}

    _send(client, patient_headers, ticket["id"], content="My fever is worse")
    assert _unread(client, volunteer_headers) == 1

    client.get(f"/chat/{ticket['id']}", headers=volunteer_headers)
    assert _unread(client, volunteer_headers) == 0
    thread = client.get(f"/chat/{ticket['id']}", headers=patient_headers).json()["data"]
    assert thread[0]["isRead"] is True
