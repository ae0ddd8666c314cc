"""
Integration tests for the admin back-office routes.

Tests cover:
- Access control for admin and super admin roles
- Dashboard statistics
- Completion API configuration (masked reads, full replace, audit rows)
- User management and message logs
"""

import json
from unittest.mock import patch

from fastapi import status

from vaaniai.models import AdminActionLog, AdminApiConfig, User
from vaaniai.owner import Owner

from tests.factories import (
    FakeCompletionClient,
    create_chat_session,
    create_enterprise_user,
    create_free_user,
    create_premium_user,
)


class TestAdminAccess:
    def test_regular_user_forbidden(self, authenticated_client):
        assert authenticated_client.get("/admin/stats").status_code == status.HTTP_403_FORBIDDEN
        assert authenticated_client.put("/admin/config", json={"selected_model": "m"}).status_code == status.HTTP_403_FORBIDDEN

    def test_anonymous_unauthorized(self, client):
        assert client.get("/admin/stats").status_code == status.HTTP_401_UNAUTHORIZED

    def test_guest_header_is_not_admin(self, client, guest_headers):
        assert client.get("/admin/users", headers=guest_headers).status_code == status.HTTP_401_UNAUTHORIZED


class TestAdminStats:
    def test_stats(self, authenticated_client_admin, db_session):
        create_free_user(db_session)
        create_premium_user(db_session)
        create_premium_user(db_session)
        create_enterprise_user(db_session)
        user = create_free_user(db_session)
        create_chat_session(
            db_session,
            Owner.for_user(user.id),
            messages=[{"text": "नमस्ते", "sender": "user"}, {"text": "नमस्ते! 😊", "sender": "bot"}],
        )

        response = authenticated_client_admin.get("/admin/stats")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        # The admin account itself is a free-plan user
        assert data["total_users"] == 6
        assert data["free_users"] == 3
        assert data["premium_users"] == 2
        assert data["enterprise_users"] == 1
        assert data["revenue"] == 2 * 499 + 1999
        assert data["currency"] == "INR"
        assert data["total_sessions"] == 1
        assert data["total_messages"] == 2
        assert data["active_users"] == 6


class TestAdminConfig:
    def test_get_unconfigured(self, authenticated_client_admin):
        response = authenticated_client_admin.get("/admin/config")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["configured"] is False

    def test_put_then_get_masks_key(self, authenticated_client_admin, db_session):
        response = authenticated_client_admin.put(
            "/admin/config",
            json={
                "api_key": "sk-or-v1-supersecretvalue1234",
                "selected_model": "openrouter/sonoma-dusk-alpha",
                "vision_model": "openai/gpt-4o-mini",
                "rate_limit": 30,
                "max_tokens": 800,
                "temperature": 0.5,
            },
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["configured"] is True
        assert data["max_tokens"] == 800
        assert "supersecretvalue" not in json.dumps(data)

        fetched = authenticated_client_admin.get("/admin/config").json()
        assert fetched["api_key_masked"] == data["api_key_masked"]
        assert fetched["rate_limit"] == 30

        assert db_session.query(AdminApiConfig).count() == 1

    def test_put_writes_audit_row_without_key(self, authenticated_client_admin, db_session, test_user_admin):
        authenticated_client_admin.put(
            "/admin/config", json={"api_key": "sk-or-v1-supersecretvalue1234", "selected_model": "openai/gpt-4o"}
        )

        log = db_session.query(AdminActionLog).filter(AdminActionLog.action_type == "config_update").one()
        assert log.admin_user_id == test_user_admin.id
        assert "supersecretvalue" not in (log.details or "")
        assert json.loads(log.details)["api_key_set"] is True

    def test_put_rejects_out_of_range(self, authenticated_client_admin):
        response = authenticated_client_admin.put("/admin/config", json={"selected_model": "m", "temperature": 3.0})
        assert response.status_code == 422

    def test_change_applies_to_next_message(self, authenticated_client_admin, client_factory):
        authenticated_client_admin.put("/admin/config", json={"api_key": "sk-or-key-one", "selected_model": "model-one", "rate_limit": 0})
        session = authenticated_client_admin.post("/sessions").json()
        url = f"/sessions/{session['id']}/messages"

        authenticated_client_admin.post(url, json={"text": "पहला"})
        authenticated_client_admin.put("/admin/config", json={"api_key": "sk-or-key-two", "selected_model": "model-two", "rate_limit": 0})
        authenticated_client_admin.post(url, json={"text": "दूसरा"})

        assert [c["selected_model"] for c in client_factory.configs_seen] == ["model-one", "model-two"]
        assert [c["api_key"] for c in client_factory.configs_seen] == ["sk-or-key-one", "sk-or-key-two"]

    def test_connection_check_without_config(self, authenticated_client_admin):
        response = authenticated_client_admin.post("/admin/config/test")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is False

    def test_connection_check_success(self, authenticated_client_admin, api_config):
        fake = FakeCompletionClient(model=api_config.selected_model, reply="नमस्ते! 🙏")
        with patch("vaaniai.routers.admin.config.OpenRouterClient.from_config", return_value=fake):
            response = authenticated_client_admin.post("/admin/config/test")

        data = response.json()
        assert data["success"] is True
        assert data["reply_preview"] == "नमस्ते! 🙏"
        assert fake.requests[0]["text"] == "नमस्ते"


class TestAdminUsers:
    def test_list_users_with_search_and_filter(self, authenticated_client_admin, db_session):
        create_free_user(db_session, email="amit@example.com", name="Amit Kumar")
        create_premium_user(db_session, email="sunita@example.com", name="Sunita Devi")

        response = authenticated_client_admin.get("/admin/users", params={"search": "sunita"})
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 1
        assert data["users"][0]["email"] == "sunita@example.com"

        premium = authenticated_client_admin.get("/admin/users", params={"plan": "premium"}).json()
        assert [u["email"] for u in premium["users"]] == ["sunita@example.com"]

    def test_pagination(self, authenticated_client_admin, db_session):
        for _ in range(4):
            create_free_user(db_session)

        data = authenticated_client_admin.get("/admin/users", params={"page": 2, "per_page": 2}).json()
        assert data["total"] == 5
        assert data["total_pages"] == 3
        assert len(data["users"]) == 2

    def test_get_user(self, authenticated_client_admin, test_user):
        response = authenticated_client_admin.get(f"/admin/users/{test_user.id}")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["email"] == test_user.email
        assert response.json()["session_count"] == 0

    def test_get_missing_user(self, authenticated_client_admin):
        response = authenticated_client_admin.get("/admin/users/99999")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_change_plan(self, authenticated_client_admin, db_session, test_user):
        response = authenticated_client_admin.put(f"/admin/users/{test_user.id}/plan", json={"plan": "enterprise"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["plan"] == "enterprise"

        log = db_session.query(AdminActionLog).filter(AdminActionLog.action_type == "plan_update").one()
        assert log.target_user_id == test_user.id
        assert json.loads(log.details) == {"old_plan": "free", "new_plan": "enterprise"}

    def test_reset_usage(self, authenticated_client_admin, db_session):
        user = create_free_user(db_session, messages_used=100)

        response = authenticated_client_admin.post(f"/admin/users/{user.id}/reset-usage")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["messages_used"] == 0
        assert db_session.query(AdminActionLog).filter(AdminActionLog.action_type == "usage_reset").count() == 1

    def test_delete_requires_super_admin(self, authenticated_client_admin, test_user):
        response = authenticated_client_admin.delete(f"/admin/users/{test_user.id}")
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_super_admin_deletes_user(self, authenticated_client_super_admin, db_session):
        user = create_free_user(db_session, email="goodbye@example.com")
        create_chat_session(db_session, Owner.for_user(user.id), messages=[{"text": "hi", "sender": "user"}])
        user_id = user.id

        response = authenticated_client_super_admin.delete(f"/admin/users/{user_id}")
        assert response.status_code == status.HTTP_204_NO_CONTENT

        db_session.expire_all()
        assert db_session.get(User, user_id) is None
        log = db_session.query(AdminActionLog).filter(AdminActionLog.action_type == "user_delete").one()
        assert json.loads(log.details)["email"] == "goodbye@example.com"

    def test_super_admin_cannot_delete_self(self, authenticated_client_super_admin, test_user_super_admin):
        response = authenticated_client_super_admin.delete(f"/admin/users/{test_user_super_admin.id}")
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestAdminMessages:
    def test_message_log(self, authenticated_client_admin, db_session):
        user = create_free_user(db_session, email="writer@example.com")
        create_chat_session(
            db_session,
            Owner.for_user(user.id),
            title="रसोई",
            messages=[{"text": "दाल कैसे बनाएं?", "sender": "user"}, {"text": "ऐसे बनाएं...", "sender": "bot"}],
        )
        create_chat_session(db_session, Owner.for_guest("guest-log-0001"), messages=[{"text": "नमस्ते", "sender": "user"}])

        data = authenticated_client_admin.get("/admin/messages").json()
        assert data["total"] == 3

        by_user = authenticated_client_admin.get("/admin/messages", params={"user_id": user.id}).json()
        assert by_user["total"] == 2
        assert {m["user_email"] for m in by_user["messages"]} == {"writer@example.com"}
        assert {m["session_title"] for m in by_user["messages"]} == {"रसोई"}

        user_only = authenticated_client_admin.get("/admin/messages", params={"sender": "user"}).json()
        assert user_only["total"] == 2

        guests = authenticated_client_admin.get("/admin/messages", params={"guests_only": True}).json()
        assert guests["total"] == 1
        assert guests["messages"][0]["guest_id"] == "guest-log-0001"
        assert guests["messages"][0]["user_email"] is None

    def test_invalid_sender_filter(self, authenticated_client_admin):
        response = authenticated_client_admin.get("/admin/messages", params={"sender": "system"})
        assert response.status_code == 422
