"""
Pydantic models for friend request validation.

Defines the request bodies and the typed payload a friend request carries.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


class FriendPayload(BaseModel):
    """Payload of a plain friend request."""
    type: Literal["friend"] = "friend"


class CircleInvitePayload(BaseModel):
    """Payload of a circle invitation; accepting it joins the circle."""
    type: Literal["circle_invite"] = "circle_invite"
    circleId: str
    circleName: str


RequestPayload = Annotated[
    Union[FriendPayload, CircleInvitePayload],
    Field(discriminator="type"),
]


class SendFriendRequestRequest(BaseModel):
    """Request body for sending a friend request."""
    toUserId: str = Field(..., min_length=1)
    message: Optional[str] = Field(None, max_length=500)


_payload_adapter = TypeAdapter(RequestPayload)


def parse_payload(data: Optional[Dict[str, Any]]) -> Union[FriendPayload, CircleInvitePayload]:
    """Read a stored payload; requests stored without one are plain friend requests."""
    if not data:
        return FriendPayload()
    return _payload_adapter.validate_python(data)
