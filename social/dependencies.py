"""
FastAPI dependencies for the Coachie social API.

Services are built once per application in ``init_all_services`` and kept on
``app.state``; the getters below resolve them from the current request, so
each app (and each test client) carries its own instances.
"""

from fastapi import FastAPI, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from starlette.datastructures import State

from common.auth import AuthProvider, create_auth_dependency
from social.config import Settings
from social.services.circles.circle_service import CircleService
from social.services.forums.forum_service import ForumService
from social.services.friends.friend_service import FriendService
from social.services.messaging.conversation_service import ConversationService
from social.services.notifications.notification_service import NotificationService


# ─────────────────────────────────────────────────────────────────
# Initialization
# ─────────────────────────────────────────────────────────────────

def init_all_services(
    app: FastAPI,
    db: AsyncIOMotorDatabase,
    auth_provider: AuthProvider,
    settings: Settings,
) -> None:
    """Build every service with the database injected and attach it to app.state."""
    friend_service = FriendService(db)

    app.state.settings = settings
    app.state.auth_provider = auth_provider
    app.state.friend_service = friend_service
    app.state.circle_service = CircleService(
        db,
        friend_service,
        default_size=settings.DEFAULT_CIRCLE_SIZE,
        max_size=settings.MAX_CIRCLE_SIZE,
    )
    app.state.conversation_service = ConversationService(
        db,
        max_message_length=settings.MAX_MESSAGE_LENGTH,
    )
    app.state.forum_service = ForumService(
        db,
        max_post_length=settings.MAX_POST_LENGTH,
        max_comment_length=settings.MAX_COMMENT_LENGTH,
    )
    app.state.notification_service = NotificationService(db)


def service_from_state(state: State, name: str):
    """Look up an object built by init_all_services."""
    service = getattr(state, name, None)
    if service is None:
        raise RuntimeError(f"{name} not initialized. Call init_all_services() first.")
    return service


# ─────────────────────────────────────────────────────────────────
# Getters
# ─────────────────────────────────────────────────────────────────

def get_auth_provider(request: Request) -> AuthProvider:
    """Get the identity provider."""
    return service_from_state(request.app.state, "auth_provider")


def get_settings(request: Request) -> Settings:
    """Get the application settings."""
    return service_from_state(request.app.state, "settings")


def get_friend_service(request: Request) -> FriendService:
    """Get friend service instance."""
    return service_from_state(request.app.state, "friend_service")


def get_circle_service(request: Request) -> CircleService:
    """Get circle service instance."""
    return service_from_state(request.app.state, "circle_service")


def get_conversation_service(request: Request) -> ConversationService:
    """Get conversation service instance."""
    return service_from_state(request.app.state, "conversation_service")


def get_forum_service(request: Request) -> ForumService:
    """Get forum service instance."""
    return service_from_state(request.app.state, "forum_service")


def get_notification_service(request: Request) -> NotificationService:
    """Get notification service instance."""
    return service_from_state(request.app.state, "notification_service")


# ─────────────────────────────────────────────────────────────────
# Authentication
# ─────────────────────────────────────────────────────────────────

require_principal = create_auth_dependency(get_auth_provider)
