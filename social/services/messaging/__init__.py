"""Direct messaging services."""

from social.services.messaging.conversation_service import ConversationService, conversation_id

__all__ = ["ConversationService", "conversation_id"]
