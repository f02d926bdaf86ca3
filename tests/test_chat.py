"""Tests for request chats, read receipts, and notifications."""

from __future__ import annotations

from flask.testing import FlaskClient

from models.chat import MessageReadStatus
from models.notification import Notification


def _messages(client: FlaskClient, actor, request_id: int) -> list[dict]:
    response = client.get(f"/chat/{request_id}/messages", headers=actor.headers)
    assert response.status_code == 200
    return response.get_json()["data"]["messages"]


def _notifications(client: FlaskClient, actor, unread: bool = False) -> list[dict]:
    path = "/notifications?unread=true" if unread else "/notifications"
    response = client.get(path, headers=actor.headers)
    assert response.status_code == 200
    return response.get_json()["data"]["notifications"]


def test_message_notifies_everyone_but_sender(client: FlaskClient, applicant, admin, office, visa_flow):
    request_id = visa_flow.to_verified(applicant, admin)
    visa_flow.assign(admin, request_id, office.id)
    before = {actor.id: len(_notifications(client, actor)) for actor in (applicant, admin, office)}

    response = client.post(
        f"/chat/{request_id}/messages",
        json={"content": "When will my visa be ready?"},
        headers=applicant.headers,
    )

    assert response.status_code == 201
    message = response.get_json()["data"]["message"]
    assert message["sender_id"] == applicant.id
    assert message["sender_type"] == "applicant"
    assert message["message_type"] == "text"

    after = {actor.id: _notifications(client, actor) for actor in (applicant, admin, office)}
    assert len(after[applicant.id]) == before[applicant.id]
    for actor in (admin, office):
        assert len(after[actor.id]) == before[actor.id] + 1
        latest = after[actor.id][0]
        assert latest["type"] == "message"
        assert latest["reference_id"] == request_id
        assert latest["content"] == f"New message in visa request #{request_id}"


def test_messages_are_ordered_by_time_then_insertion(client: FlaskClient, applicant, admin, visa_flow):
    request_id = visa_flow.create(applicant)
    for text in ("first", "second", "third"):
        client.post(f"/chat/{request_id}/messages", json={"content": text}, headers=applicant.headers)

    contents = [m["content"] for m in _messages(client, admin, request_id)]

    assert contents == ["first", "second", "third"]
    ids = [m["id"] for m in _messages(client, admin, request_id)]
    assert ids == sorted(ids)


def test_actor_cannot_send_system_or_payment_messages(client: FlaskClient, applicant, visa_flow):
    request_id = visa_flow.create(applicant)

    for message_type in ("system", "payment", "video"):
        response = client.post(
            f"/chat/{request_id}/messages",
            json={"content": "hi", "message_type": message_type},
            headers=applicant.headers,
        )
        assert response.status_code == 400
        assert response.get_json()["data"]["error"] == "ValidationError"


def test_empty_content_is_rejected(client: FlaskClient, applicant, visa_flow):
    request_id = visa_flow.create(applicant)

    response = client.post(
        f"/chat/{request_id}/messages", json={"content": "   "}, headers=applicant.headers
    )

    assert response.status_code == 400


def test_unassigned_office_cannot_read_or_post(client: FlaskClient, applicant, office, visa_flow):
    request_id = visa_flow.create(applicant)

    read = client.get(f"/chat/{request_id}/messages", headers=office.headers)
    post = client.post(
        f"/chat/{request_id}/messages", json={"content": "hello"}, headers=office.headers
    )

    assert read.status_code == 403
    assert post.status_code == 403


def test_terminal_request_blocks_messages(client: FlaskClient, applicant, admin, visa_flow):
    request_id = visa_flow.create(applicant)
    client.put(f"/visa/{request_id}/status", json={"status": "rejected"}, headers=admin.headers)

    text = client.post(
        f"/chat/{request_id}/messages", json={"content": "why?"}, headers=applicant.headers
    )
    system = client.post(
        f"/chat/{request_id}/system", json={"content": "closing"}, headers=admin.headers
    )

    assert text.status_code == 400
    assert text.get_json()["data"]["error"] == "InvalidState"
    assert system.status_code == 400
    assert len(_messages(client, applicant, request_id)) == 1


def test_system_message_is_attributed_to_system(client: FlaskClient, applicant, admin, visa_flow):
    request_id = visa_flow.create(applicant)

    response = client.post(
        f"/chat/{request_id}/system",
        json={"content": "Please upload a clearer passport scan."},
        headers=admin.headers,
    )

    assert response.status_code == 201
    message = response.get_json()["data"]["message"]
    assert message["sender_id"] == "system"
    assert message["sender_type"] == "system"
    assert message["message_type"] == "system"

    notes = _notifications(client, applicant)
    assert notes[0]["type"] == "system"
    assert notes[0]["title"] == "Visa Application Update"


def test_applicant_cannot_send_system_message(client: FlaskClient, applicant, visa_flow):
    request_id = visa_flow.create(applicant)

    response = client.post(
        f"/chat/{request_id}/system", json={"content": "I am the system"}, headers=applicant.headers
    )

    assert response.status_code == 403


def test_lifecycle_events_post_system_messages(client: FlaskClient, applicant, admin, office, visa_flow):
    request_id = visa_flow.to_verified(applicant, admin)
    visa_flow.assign(admin, request_id, office.id)

    messages = _messages(client, office, request_id)
    system_messages = [m for m in messages if m["message_type"] == "system"]

    assert any(m["metadata"]["event"] == "payment_verified" for m in system_messages)
    assert system_messages[-1]["metadata"] == {"event": "office_assigned", "office_id": office.id}


def test_mark_read_is_idempotent(client: FlaskClient, applicant, admin, visa_flow, app):
    request_id = visa_flow.create(applicant)
    client.post(f"/chat/{request_id}/messages", json={"content": "one"}, headers=applicant.headers)
    client.post(f"/chat/{request_id}/messages", json={"content": "two"}, headers=applicant.headers)

    first = client.put(f"/chat/{request_id}/read", headers=admin.headers)
    second = client.put(f"/chat/{request_id}/read", headers=admin.headers)

    assert first.status_code == 200
    assert first.get_json()["data"] == {"marked": 2, "receipts_created": 2}
    assert second.get_json()["data"] == {"marked": 0, "receipts_created": 0}
    assert all(m["is_read"] for m in _messages(client, admin, request_id))
    with app.app_context():
        assert MessageReadStatus.query.filter_by(user_id=admin.id).count() == 2


def test_mark_read_skips_own_messages_and_respects_ids(client: FlaskClient, applicant, admin, visa_flow, app):
    request_id = visa_flow.create(applicant)
    own = client.post(
        f"/chat/{request_id}/messages", json={"content": "mine"}, headers=applicant.headers
    ).get_json()["data"]["message"]
    theirs = client.post(
        f"/chat/{request_id}/messages", json={"content": "reply"}, headers=admin.headers
    ).get_json()["data"]["message"]

    response = client.put(
        f"/chat/{request_id}/read",
        json={"message_ids": [own["id"], theirs["id"]]},
        headers=applicant.headers,
    )

    assert response.get_json()["data"] == {"marked": 1, "receipts_created": 1}
    with app.app_context():
        receipts = MessageReadStatus.query.filter_by(user_id=applicant.id).all()
        assert [receipt.message_id for receipt in receipts] == [theirs["id"]]


def test_mark_read_leaves_notifications_untouched(client: FlaskClient, applicant, admin, visa_flow, app):
    request_id = visa_flow.create(applicant)
    client.post(f"/chat/{request_id}/messages", json={"content": "ping"}, headers=admin.headers)

    client.put(f"/chat/{request_id}/read", headers=applicant.headers)

    assert len(_notifications(client, applicant, unread=True)) == 1
    with app.app_context():
        assert Notification.query.filter_by(user_id=applicant.id, is_read=True).count() == 0


def test_bad_message_ids_payload(client: FlaskClient, applicant, visa_flow):
    request_id = visa_flow.create(applicant)

    response = client.put(
        f"/chat/{request_id}/read", json={"message_ids": "all"}, headers=applicant.headers
    )

    assert response.status_code == 400
    assert response.get_json()["data"]["error"] == "ValidationError"
