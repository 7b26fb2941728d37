"""
Direct message conversation endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from common.auth import Principal
from common.utils import success_response, list_response
from social.dependencies import (
    require_principal,
    get_conversation_service,
    get_notification_service,
)
from social.pipelines import messaging as messaging_pipeline
from social.schemas.messaging import SendMessageRequest, StartConversationRequest
from social.services.messaging.conversation_service import ConversationService
from social.services.notifications.notification_service import NotificationService


router = APIRouter(prefix="/conversations", tags=["Conversations"])


@router.get("")
async def list_conversations(
    principal: Annotated[Principal, Depends(require_principal)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
):
    """List the caller's conversations, most recent first."""
    conversations = await conversation_service.list_conversations(principal.uid)
    return list_response(conversations)


@router.post("")
async def start_conversation(
    body: StartConversationRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
):
    """Open the conversation with a peer, creating it if needed."""
    conversation = await conversation_service.get_or_create_conversation(principal.uid, body.peerId)
    return success_response({"conversation": conversation})


@router.get("/unread")
async def get_unread_total(
    principal: Annotated[Principal, Depends(require_principal)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
):
    """Total unread messages across the caller's conversations."""
    total = await conversation_service.get_unread_total(principal.uid)
    return success_response({"unread": total})


@router.post("/messages", status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
):
    """Send a direct message to another user."""
    message = await messaging_pipeline.send_direct_message(
        conversation_service=conversation_service,
        notification_service=notification_service,
        sender_id=principal.uid,
        receiver_id=body.receiverId,
        content=body.content,
    )
    return success_response({"message": message})


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    """Get messages in a conversation, oldest first."""
    result = await messaging_pipeline.list_conversation_messages(
        conversation_service=conversation_service,
        user_id=principal.uid,
        conversation_id=conversation_id,
        limit=limit,
        offset=offset,
    )
    return success_response(result)


@router.post("/{conversation_id}/read")
async def mark_read(
    conversation_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
):
    """Reset the caller's unread counter for a conversation."""
    await conversation_service.mark_read(conversation_id, principal.uid)
    return success_response({"conversationId": conversation_id, "unreadCount": 0})
