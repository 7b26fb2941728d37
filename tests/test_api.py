"""
HTTP surface tests: envelopes, status codes and auth, with services mocked.

The app is built without running its lifespan, so no database or identity
provider is contacted; app.state is filled in by the fixtures instead.
"""

import pytest
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient
from pymongo.errors import AutoReconnect

from api import create_app
from common.auth import AuthProvider
from common.utils.exceptions import ConflictException, NotFoundException
from social.config import Settings


class FakeAuthProvider(AuthProvider):
    """Maps fixed tokens to claims."""

    TOKENS = {
        "alice-token": {
            "uid": "alice",
            "email": "alice@example.com",
            "email_verified": True,
            "firebase": {"sign_in_provider": "password"},
        },
        "guest-token": {
            "uid": "guest",
            "firebase": {"sign_in_provider": "anonymous"},
        },
    }

    async def verify_token(self, token: str) -> Dict[str, Any]:
        if token not in self.TOKENS:
            raise ValueError("Invalid token")
        return self.TOKENS[token]


class OneSnapshotLiveQuery:
    """Yields a single snapshot, then ends."""

    def __init__(self, snapshot):
        self.snapshot = snapshot
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def __aiter__(self):
        return self._snapshots()

    async def _snapshots(self):
        yield self.snapshot


AUTH = {"Authorization": "Bearer alice-token"}


@pytest.fixture
def services():
    return {
        "friend_service": AsyncMock(),
        "circle_service": AsyncMock(),
        "conversation_service": AsyncMock(),
        "forum_service": AsyncMock(),
        "notification_service": AsyncMock(),
    }


@pytest.fixture
def client(services):
    app = create_app()
    app.state.settings = Settings()
    app.state.auth_provider = FakeAuthProvider()
    for name, service in services.items():
        setattr(app.state, name, service)
    return TestClient(app)


class TestAuthentication:
    def test_missing_token_is_401_envelope(self, client):
        response = client.get("/api/v1/friends")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"

    def test_anonymous_identity_rejected(self, client):
        response = client.get("/api/v1/friends", headers={"Authorization": "Bearer guest-token"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "ANONYMOUS_NOT_ALLOWED"

    def test_unknown_token_rejected(self, client):
        response = client.get("/api/v1/friends", headers={"Authorization": "Bearer forged"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"


class TestEnvelopes:
    def test_list_envelope(self, client, services):
        services["friend_service"].list_friends.return_value = [
            {"uid": "bob", "username": "bob", "displayName": "Bob"}
        ]

        response = client.get("/api/v1/friends", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": [{"uid": "bob", "username": "bob", "displayName": "Bob"}],
            "count": 1,
        }
        services["friend_service"].list_friends.assert_called_once_with("alice")

    def test_send_request_returns_201(self, client, services):
        services["friend_service"].send_friend_request.return_value = "req-1"

        response = client.post("/api/v1/friends/requests", json={"toUserId": "bob"}, headers=AUTH)

        assert response.status_code == 201
        assert response.json()["data"] == {"requestId": "req-1"}

    def test_conflict_envelope(self, client, services):
        services["circle_service"].join_circle.side_effect = ConflictException(
            message="Circle is full", code="CIRCLE_FULL"
        )

        response = client.post("/api/v1/circles/c1/join", headers=AUTH)

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "error": {"message": "Circle is full", "code": "CIRCLE_FULL"},
        }

    def test_not_found_envelope(self, client, services):
        services["forum_service"].delete_post.side_effect = NotFoundException(
            message="Post not found", code="POST_NOT_FOUND"
        )

        response = client.delete("/api/v1/forums/posts/p1", headers=AUTH)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "POST_NOT_FOUND"

    def test_store_outage_is_retryable_503(self, client, services):
        services["conversation_service"].list_conversations.side_effect = AutoReconnect("no primary")

        response = client.get("/api/v1/conversations", headers=AUTH)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["error"]["code"] == "STORE_UNAVAILABLE"

    def test_validation_envelope(self, client):
        response = client.post("/api/v1/circles", json={"goal": "sleep better"}, headers=AUTH)

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["errors"]

    def test_unknown_sort_rejected_before_service(self, client, services):
        response = client.get("/api/v1/forums/f1/posts?sort=hot", headers=AUTH)

        assert response.status_code == 422
        services["forum_service"].list_posts.assert_not_called()


class TestForumRoutes:
    def test_create_forum(self, client, services):
        services["forum_service"].create_forum.return_value = {"id": "f1", "title": "Sleep", "postCount": 0}

        response = client.post("/api/v1/forums", json={"title": "Sleep", "description": "Rest"}, headers=AUTH)

        assert response.status_code == 201
        assert response.json()["data"]["forum"]["id"] == "f1"
        services["forum_service"].create_forum.assert_called_once_with(
            "Sleep", "Rest", "alice", category="general"
        )

    def test_list_forums(self, client, services):
        services["forum_service"].list_forums.return_value = [{"id": "f1"}, {"id": "f2"}]

        response = client.get("/api/v1/forums", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["count"] == 2

    def test_unknown_forum_posts_is_404(self, client, services):
        services["forum_service"].list_posts.side_effect = NotFoundException(
            message="Forum not found", code="FORUM_NOT_FOUND"
        )

        response = client.get("/api/v1/forums/f404/posts", headers=AUTH)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FORUM_NOT_FOUND"


class TestLiveSocket:
    def test_rejects_missing_token(self, client):
        with client.websocket_connect("/api/v1/ws/live?topic=conversations") as websocket:
            message = websocket.receive_json()

        assert message["success"] is False
        assert message["error"]["code"] == "EMPTY_TOKEN"

    def test_rejects_unknown_topic(self, client):
        with client.websocket_connect("/api/v1/ws/live?token=alice-token&topic=weather") as websocket:
            message = websocket.receive_json()

        assert message["error"]["code"] == "INVALID_TOPIC"

    def test_streams_conversation_snapshot(self, client, services):
        live = OneSnapshotLiveQuery([{"id": "alice_bob", "unreadCount": 1}])
        services["conversation_service"].watch_conversations = MagicMock(return_value=live)

        with client.websocket_connect("/api/v1/ws/live?token=alice-token&topic=conversations") as websocket:
            message = websocket.receive_json()

        assert message["success"] is True
        assert message["data"]["topic"] == "conversations"
        assert message["data"]["snapshot"] == [{"id": "alice_bob", "unreadCount": 1}]
        services["conversation_service"].watch_conversations.assert_called_once_with("alice", 1000)
