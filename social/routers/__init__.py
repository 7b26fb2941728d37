"""
Coachie social API routers.

All routers are imported here for easy access.
"""

from social.routers.friends import router as friends_router
from social.routers.circles import router as circles_router
from social.routers.conversations import router as conversations_router
from social.routers.forums import router as forums_router
from social.routers.notifications import router as notifications_router
from social.routers.live import router as live_router

__all__ = [
    "friends_router",
    "circles_router",
    "conversations_router",
    "forums_router",
    "notifications_router",
    "live_router",
]
