"""
Request schemas for the social API.
"""

from social.schemas.friends import (
    FriendPayload,
    CircleInvitePayload,
    RequestPayload,
    SendFriendRequestRequest,
    parse_payload,
)
from social.schemas.circles import CreateCircleRequest, InviteToCircleRequest
from social.schemas.messaging import StartConversationRequest, SendMessageRequest
from social.schemas.forums import CreateForumRequest, CreatePostRequest, AddCommentRequest

__all__ = [
    "FriendPayload",
    "CircleInvitePayload",
    "RequestPayload",
    "SendFriendRequestRequest",
    "parse_payload",
    "CreateCircleRequest",
    "InviteToCircleRequest",
    "StartConversationRequest",
    "SendMessageRequest",
    "CreateForumRequest",
    "CreatePostRequest",
    "AddCommentRequest",
]
