"""
Pydantic models for direct messaging request validation.

Content length is checked by the service against MAX_MESSAGE_LENGTH, so
the body only requires the field to be present.
"""

from pydantic import BaseModel, Field


class StartConversationRequest(BaseModel):
    """Request body for opening (or fetching) a conversation with a peer."""
    peerId: str = Field(..., min_length=1)


class SendMessageRequest(BaseModel):
    """Request body for sending a direct message."""
    receiverId: str = Field(..., min_length=1)
    content: str
