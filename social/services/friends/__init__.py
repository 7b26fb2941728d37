"""Friend request services."""

from social.services.friends.friend_service import FriendService, pair_key

__all__ = ["FriendService", "pair_key"]
