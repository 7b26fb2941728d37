"""
Direct message pipeline functions.

Orchestrates sending and listing direct messages, including the
notification for the receiver.
"""

import logging
from typing import Dict, Any

from common.utils.exceptions import ForbiddenException
from social.services.messaging.conversation_service import ConversationService
from social.services.notifications.notification_service import NotificationService

logger = logging.getLogger(__name__)


async def send_direct_message(
    conversation_service: ConversationService,
    notification_service: NotificationService,
    sender_id: str,
    receiver_id: str,
    content: str,
) -> Dict[str, Any]:
    """
    Send a direct message.

    1. Append the message (creates the conversation on first message)
    2. Notify the receiver
    3. Return the saved message
    """
    saved_message = await conversation_service.send_message(sender_id, receiver_id, content)

    try:
        await notification_service.create_direct_message_notification(
            user_id=receiver_id,
            sender_id=sender_id,
            conversation_id=saved_message["conversationId"],
            message_id=saved_message["id"],
            preview=saved_message["content"],
        )
    except Exception as e:
        logger.warning(f"Failed to notify {receiver_id} of message {saved_message['id']}: {e}")

    return saved_message


async def list_conversation_messages(
    conversation_service: ConversationService,
    user_id: str,
    conversation_id: str,
    limit: int = 50,
    offset: int = 0,
) -> Dict[str, Any]:
    """
    List messages in a conversation the user takes part in.

    Returns:
        dict with messages, total and hasMore
    """
    conversation = await conversation_service.get_conversation(conversation_id)

    if user_id not in conversation["participants"]:
        raise ForbiddenException(
            message="You are not part of this conversation",
            code="NOT_CONVERSATION_PARTICIPANT",
        )

    messages = await conversation_service.list_messages(conversation_id, limit=limit, offset=offset)
    total = await conversation_service.get_message_count(conversation_id)

    return {
        "messages": messages,
        "total": total,
        "hasMore": (offset + len(messages)) < total,
    }
