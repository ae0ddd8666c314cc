"""
Integration tests for the chat session routes, for users and guests.

The message pipeline is wired to a fake completion client (see conftest),
so sends exercise the real limit checks and storage without network calls.
"""

from fastapi import status

from vaaniai.config import settings
from vaaniai.config.constants import (
    CONFIG_ERROR_NOTICE,
    FALLBACK_ERROR_NOTICES,
    GUEST_LIMIT_NOTICE,
    IMAGE_ONLY_CAPTION,
    PLAN_LIMIT_NOTICE,
    SESSION_PLACEHOLDER_TITLE,
)

from tests.factories import create_free_user, upstream_error


class TestSessionLifecycle:
    def test_create_session(self, authenticated_client):
        response = authenticated_client.post("/sessions")
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["title"] == SESSION_PLACEHOLDER_TITLE
        assert data["messages"] == []
        assert data["is_active"] is True
        assert data["is_typing"] is False

    def test_list_sessions_newest_first(self, authenticated_client):
        first = authenticated_client.post("/sessions").json()
        second = authenticated_client.post("/sessions").json()

        response = authenticated_client.get("/sessions")
        assert response.status_code == status.HTTP_200_OK
        sessions = response.json()
        assert [s["id"] for s in sessions] == [second["id"], first["id"]]
        assert [s["is_active"] for s in sessions] == [True, False]

    def test_active_session_created_on_first_use(self, authenticated_client):
        response = authenticated_client.get("/sessions/active")
        assert response.status_code == status.HTTP_200_OK
        assert len(authenticated_client.get("/sessions").json()) == 1

    def test_activate_session(self, authenticated_client):
        first = authenticated_client.post("/sessions").json()
        authenticated_client.post("/sessions")

        response = authenticated_client.post(f"/sessions/{first['id']}/activate")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == first["id"]
        assert authenticated_client.get("/sessions/active").json()["id"] == first["id"]

    def test_activate_unknown_session_is_ignored(self, authenticated_client):
        current = authenticated_client.post("/sessions").json()

        response = authenticated_client.post("/sessions/999999/activate")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == current["id"]

    def test_rename_session(self, authenticated_client):
        session = authenticated_client.post("/sessions").json()

        response = authenticated_client.patch(f"/sessions/{session['id']}", json={"title": "यात्रा की योजना"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["title"] == "यात्रा की योजना"

    def test_rename_blank_title_rejected(self, authenticated_client):
        session = authenticated_client.post("/sessions").json()
        response = authenticated_client.patch(f"/sessions/{session['id']}", json={"title": "   "})
        assert response.status_code == 422

    def test_delete_last_session_returns_fresh_one(self, authenticated_client):
        only = authenticated_client.post("/sessions").json()

        response = authenticated_client.delete(f"/sessions/{only['id']}")
        assert response.status_code == status.HTTP_200_OK
        replacement = response.json()
        assert replacement["id"] != only["id"]
        assert replacement["title"] == SESSION_PLACEHOLDER_TITLE
        assert replacement["is_active"] is True

        sessions = authenticated_client.get("/sessions").json()
        assert [s["id"] for s in sessions] == [replacement["id"]]

    def test_stale_session_id_answers_not_found(self, authenticated_client, api_config):
        old = authenticated_client.post("/sessions").json()
        authenticated_client.post(f"/sessions/{old['id']}/messages", json={"text": "नमस्ते"})

        replacement = authenticated_client.delete(f"/sessions/{old['id']}").json()
        assert replacement["id"] != old["id"]

        assert authenticated_client.get(f"/sessions/{old['id']}").status_code == status.HTTP_404_NOT_FOUND
        assert authenticated_client.delete(f"/sessions/{old['id']}").status_code == status.HTTP_404_NOT_FOUND
        retry = authenticated_client.post(f"/sessions/{old['id']}/messages", json={"text": "फिर से"})
        assert retry.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_active_session_switches_to_most_recent(self, authenticated_client):
        first = authenticated_client.post("/sessions").json()
        second = authenticated_client.post("/sessions").json()

        response = authenticated_client.delete(f"/sessions/{second['id']}")
        assert response.json()["id"] == first["id"]

    def test_clear_session_messages(self, authenticated_client, api_config):
        session = authenticated_client.post("/sessions").json()
        authenticated_client.post(f"/sessions/{session['id']}/messages", json={"text": "नमस्ते"})

        response = authenticated_client.delete(f"/sessions/{session['id']}/messages")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["messages"] == []
        assert response.json()["title"] == SESSION_PLACEHOLDER_TITLE

    def test_delete_all_sessions(self, authenticated_client):
        for _ in range(3):
            authenticated_client.post("/sessions")

        response = authenticated_client.delete("/sessions")
        assert response.status_code == status.HTTP_200_OK
        assert len(authenticated_client.get("/sessions").json()) == 1


class TestOwnershipIsolation:
    def test_other_users_session_is_not_found(self, client, db_session, test_user, login):
        other = create_free_user(db_session, email="other@example.com")
        _, other_token, _ = login(client, other)
        theirs = client.post("/sessions", headers={"Authorization": f"Bearer {other_token}"}).json()

        _, my_token, _ = login(client, test_user)
        mine = {"Authorization": f"Bearer {my_token}"}

        assert client.get(f"/sessions/{theirs['id']}", headers=mine).status_code == status.HTTP_404_NOT_FOUND
        assert (
            client.patch(f"/sessions/{theirs['id']}", json={"title": "x"}, headers=mine).status_code
            == status.HTTP_404_NOT_FOUND
        )
        assert client.delete(f"/sessions/{theirs['id']}", headers=mine).status_code == status.HTTP_404_NOT_FOUND
        assert (
            client.post(f"/sessions/{theirs['id']}/messages", json={"text": "hi"}, headers=mine).status_code
            == status.HTTP_404_NOT_FOUND
        )

    def test_guest_cannot_see_user_sessions(self, authenticated_client, guest_headers):
        session = authenticated_client.post("/sessions").json()
        authenticated_client.headers.pop("Authorization")

        response = authenticated_client.get(f"/sessions/{session['id']}", headers=guest_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_guests_are_separate(self, client, guest_headers):
        client.post("/sessions", headers=guest_headers)
        other_guest = {"X-Guest-Id": "another-device-9999"}
        assert client.get("/sessions", headers=other_guest).json() == []


class TestSendMessage:
    def test_delivered(self, authenticated_client, api_config, client_factory, test_user, db_session):
        session = authenticated_client.post("/sessions").json()

        response = authenticated_client.post(
            f"/sessions/{session['id']}/messages", json={"text": "भारत की राजधानी क्या है और वहाँ क्या देखें?"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["state"] == "delivered"
        assert data["user_message"]["sender"] == "user"
        assert data["bot_message"]["sender"] == "bot"
        assert data["bot_message"]["text"] == client_factory.reply
        assert data["session"]["title"] == "भारत की राजधानी क्या है और वहाँ क्या देखें?"[:30] + "..."
        assert [m["sender"] for m in data["session"]["messages"]] == ["user", "bot"]

        db_session.refresh(test_user)
        assert test_user.messages_used == 1

    def test_image_only_message(self, authenticated_client, api_config, client_factory):
        session = authenticated_client.post("/sessions").json()

        response = authenticated_client.post(
            f"/sessions/{session['id']}/messages",
            json={"image_data": "data:image/png;base64,iVBORw0KGgo="},
        )

        data = response.json()
        assert data["state"] == "delivered"
        assert data["user_message"]["text"] == IMAGE_ONLY_CAPTION
        assert data["user_message"]["image_data"] == "data:image/png;base64,iVBORw0KGgo="
        assert client_factory.requests[0]["model"] == api_config.vision_model

    def test_bad_image_url_rejected(self, authenticated_client):
        session = authenticated_client.post("/sessions").json()
        response = authenticated_client.post(
            f"/sessions/{session['id']}/messages", json={"text": "देखो", "image_url": "ftp://example.com/a.png"}
        )
        assert response.status_code == 422

    def test_without_config_gets_config_notice(self, authenticated_client, client_factory):
        session = authenticated_client.post("/sessions").json()

        response = authenticated_client.post(f"/sessions/{session['id']}/messages", json={"text": "नमस्ते"})

        data = response.json()
        assert data["state"] == "failed"
        assert data["bot_message"]["text"] == CONFIG_ERROR_NOTICE
        assert client_factory.requests == []

    def test_upstream_failure_gets_fallback_notice(self, authenticated_client, api_config, client_factory):
        client_factory.error = upstream_error(500)
        session = authenticated_client.post("/sessions").json()

        response = authenticated_client.post(f"/sessions/{session['id']}/messages", json={"text": "नमस्ते"})

        data = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert data["state"] == "failed"
        assert data["bot_message"]["text"] in FALLBACK_ERROR_NOTICES

    def test_plan_limit_notice(self, client, db_session, api_config, login):
        user = create_free_user(db_session, email="limit@example.com", messages_used=3, messages_limit=3)
        login(client, user)
        session = client.post("/sessions").json()

        response = client.post(f"/sessions/{session['id']}/messages", json={"text": "नमस्ते"})

        data = response.json()
        assert data["state"] == "rejected"
        assert data["user_message"] is None
        assert data["bot_message"]["text"] == PLAN_LIMIT_NOTICE
        assert [m["sender"] for m in data["session"]["messages"]] == ["bot"]


class TestGuestFlow:
    def test_guest_session_and_message(self, client, guest_headers, api_config):
        session = client.post("/sessions", headers=guest_headers).json()

        response = client.post(f"/sessions/{session['id']}/messages", json={"text": "नमस्ते"}, headers=guest_headers)
        assert response.json()["state"] == "delivered"

        usage = client.get("/guest/usage", headers=guest_headers).json()
        assert usage["used"] == 1
        assert usage["limit"] == settings.guest_message_limit
        assert usage["remaining"] == settings.guest_message_limit - 1

    def test_guest_limit_notice(self, client, guest_headers, api_config):
        session = client.post("/sessions", headers=guest_headers).json()
        url = f"/sessions/{session['id']}/messages"

        for i in range(settings.guest_message_limit):
            assert client.post(url, json={"text": f"संदेश {i}"}, headers=guest_headers).json()["state"] == "delivered"

        response = client.post(url, json={"text": "एक और"}, headers=guest_headers)
        assert response.json()["state"] == "rejected"
        assert response.json()["bot_message"]["text"] == GUEST_LIMIT_NOTICE
        assert client.get("/guest/usage", headers=guest_headers).json()["remaining"] == 0

    def test_guest_usage_requires_device_id(self, client):
        assert client.get("/guest/usage").status_code == status.HTTP_400_BAD_REQUEST
