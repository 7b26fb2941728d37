"""Forum services."""

from social.services.forums.forum_service import ForumService

__all__ = ["ForumService"]
