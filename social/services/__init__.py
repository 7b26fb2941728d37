"""Coachie social services."""

from social.services.friends.friend_service import FriendService
from social.services.circles.circle_service import CircleService
from social.services.messaging.conversation_service import ConversationService
from social.services.forums.forum_service import ForumService
from social.services.notifications.notification_service import NotificationService
from social.services.realtime.live_query import LiveQuery

__all__ = [
    "FriendService",
    "CircleService",
    "ConversationService",
    "ForumService",
    "NotificationService",
    "LiveQuery",
]
