"""
Direct message conversation service.

One document per pair of users (collection: conversations), keyed by the
sorted participant pair. Messages live in an embedded array so appending a
message, updating the preview and bumping the receiver's unread counter is
a single document write.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from common.database import retry_transient
from common.utils.exceptions import NotFoundException, ValidationException
from social.database.collections import CONVERSATIONS
from social.services.realtime.live_query import LiveQuery

logger = logging.getLogger(__name__)

CONVERSATION_ID_SEPARATOR = "_"


def _escape_uid(uid: str) -> str:
    return uid.replace("%", "%25").replace(CONVERSATION_ID_SEPARATOR, "%5F")


def conversation_id(user_a: str, user_b: str) -> str:
    """
    Deterministic conversation id for a pair; argument order doesn't matter.

    Uids are percent-escaped before joining so a uid containing the separator
    can't collide with another pair. Plain alphanumeric uids come out as
    ``"amy_zed"``.
    """
    return CONVERSATION_ID_SEPARATOR.join(_escape_uid(uid) for uid in sorted([user_a, user_b]))


class ConversationService:
    """Handles 1:1 conversations, messages and unread counters."""

    def __init__(self, db: AsyncIOMotorDatabase, max_message_length: int = 2000):
        self._db = db
        self._collection = db[CONVERSATIONS]
        self._max_message_length = max_message_length

    @retry_transient
    async def get_or_create_conversation(self, user_a: str, user_b: str) -> Dict[str, Any]:
        """Return the pair's conversation, creating an empty one if needed."""
        if user_a == user_b:
            raise ValidationException(
                message="You cannot start a conversation with yourself",
                code="CANNOT_MESSAGE_SELF",
            )

        now = datetime.now(timezone.utc)
        conv_id = conversation_id(user_a, user_b)

        conversation = await self._collection.find_one_and_update(
            {"_id": conv_id},
            {
                "$setOnInsert": {
                    "participants": sorted([user_a, user_b]),
                    "unreadCounts": {user_a: 0, user_b: 0},
                    "messages": [],
                    "lastMessage": None,
                    "lastMessageAt": None,
                    "createdAt": now,
                    "updatedAt": now,
                },
            },
            projection={"messages": 0},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

        return self._format_conversation(conversation, viewer_id=user_a)

    async def send_message(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
    ) -> Dict[str, Any]:
        """
        Append a message to the pair's conversation.

        The conversation is created on first message. The push, the preview
        fields and both unread counters change in one upserting update.
        """
        content = content.strip() if content else ""

        if not content:
            raise ValidationException(
                message="Message content cannot be empty",
                code="EMPTY_MESSAGE",
            )

        if len(content) > self._max_message_length:
            raise ValidationException(
                message=f"Message cannot exceed {self._max_message_length} characters",
                code="MESSAGE_TOO_LONG",
            )

        if sender_id == receiver_id:
            raise ValidationException(
                message="You cannot send a message to yourself",
                code="CANNOT_MESSAGE_SELF",
            )

        now = datetime.now(timezone.utc)
        conv_id = conversation_id(sender_id, receiver_id)

        message_doc = {
            "messageId": f"msg_{secrets.token_hex(8)}",
            "senderId": sender_id,
            "receiverId": receiver_id,
            "content": content,
            "createdAt": now,
        }

        await self._collection.update_one(
            {"_id": conv_id},
            {
                "$push": {"messages": message_doc},
                "$set": {
                    "lastMessage": content,
                    "lastMessageAt": now,
                    "lastSenderId": sender_id,
                    "updatedAt": now,
                },
                "$inc": {
                    f"unreadCounts.{receiver_id}": 1,
                    f"unreadCounts.{sender_id}": 0,
                },
                "$setOnInsert": {
                    "participants": sorted([sender_id, receiver_id]),
                    "createdAt": now,
                },
            },
            upsert=True,
        )

        logger.info(f"Message {message_doc['messageId']} sent in conversation {conv_id}")
        return self._format_message(message_doc, conv_id)

    @retry_transient
    async def mark_read(self, conv_id: str, user_id: str) -> None:
        """
        Reset the user's unread counter for a conversation. Idempotent.

        Raises:
            NotFoundException: Conversation missing or user not a participant
        """
        result = await self._collection.update_one(
            {"_id": conv_id, "participants": user_id},
            {"$set": {f"unreadCounts.{user_id}": 0}},
        )

        if result.matched_count == 0:
            raise NotFoundException(message="Conversation not found", code="CONVERSATION_NOT_FOUND")

        logger.debug(f"Conversation {conv_id} marked read by {user_id}")

    @retry_transient
    async def get_conversation(self, conv_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Get a conversation without its messages.

        Raises:
            NotFoundException: If the conversation doesn't exist
        """
        conversation = await self._collection.find_one({"_id": conv_id}, {"messages": 0})
        if not conversation:
            raise NotFoundException(message="Conversation not found", code="CONVERSATION_NOT_FOUND")
        return self._format_conversation(conversation, viewer_id=viewer_id)

    @retry_transient
    async def list_conversations(self, user_id: str) -> List[Dict[str, Any]]:
        """List the user's conversations, most recent activity first."""
        cursor = self._collection.find(
            {"participants": user_id},
            {"messages": 0},
        ).sort("lastMessageAt", -1)

        conversations = await cursor.to_list(length=None)
        return [self._format_conversation(conv, viewer_id=user_id) for conv in conversations]

    @retry_transient
    async def list_messages(
        self,
        conv_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Get a conversation's messages in send order."""
        doc = await self._collection.find_one({"_id": conv_id}, {"messages": 1})

        if not doc:
            return []

        messages = doc.get("messages", [])
        end = None if limit is None else offset + limit

        return [self._format_message(msg, conv_id) for msg in messages[offset:end]]

    @retry_transient
    async def get_message_count(self, conv_id: str) -> int:
        """Get the number of messages in a conversation."""
        result = await self._collection.aggregate([
            {"$match": {"_id": conv_id}},
            {"$project": {"count": {"$size": {"$ifNull": ["$messages", []]}}}},
        ]).to_list(length=1)

        return result[0]["count"] if result else 0

    @retry_transient
    async def get_unread_total(self, user_id: str) -> int:
        """Sum of the user's unread counters across all conversations."""
        result = await self._collection.aggregate([
            {"$match": {"participants": user_id}},
            {"$group": {"_id": None, "total": {"$sum": f"$unreadCounts.{user_id}"}}},
        ]).to_list(length=1)

        return result[0]["total"] if result else 0

    def watch_conversations(self, user_id: str, max_await_time_ms: int = 1000) -> LiveQuery:
        """Live view of the user's conversation list."""
        return LiveQuery(
            self._collection,
            [{"$match": {"fullDocument.participants": user_id}}],
            lambda: self.list_conversations(user_id),
            max_await_time_ms=max_await_time_ms,
            name=f"conversations:{user_id}",
        )

    def watch_messages(self, conv_id: str, max_await_time_ms: int = 1000) -> LiveQuery:
        """Live view of one conversation's messages."""
        return LiveQuery(
            self._collection,
            [{"$match": {"documentKey._id": conv_id}}],
            lambda: self.list_messages(conv_id),
            max_await_time_ms=max_await_time_ms,
            name=f"messages:{conv_id}",
        )

    @staticmethod
    def get_other_participant(conversation: Dict[str, Any], user_id: str) -> Optional[str]:
        """The participant that isn't ``user_id``."""
        for participant in conversation.get("participants", []):
            if participant != user_id:
                return participant
        return None

    # ─────────────────────────────────────────────────────────────────
    # Formatting
    # ─────────────────────────────────────────────────────────────────

    def _format_conversation(
        self,
        conversation: Dict[str, Any],
        viewer_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Format a conversation document for API response."""
        last_message_at = conversation.get("lastMessageAt")
        created_at = conversation.get("createdAt")
        unread_counts = conversation.get("unreadCounts") or {}

        formatted = {
            "id": conversation["_id"],
            "participants": conversation.get("participants", []),
            "lastMessage": conversation.get("lastMessage"),
            "lastMessageAt": last_message_at.isoformat() if last_message_at else None,
            "lastSenderId": conversation.get("lastSenderId"),
            "unreadCounts": unread_counts,
            "createdAt": created_at.isoformat() if created_at else None,
        }

        if viewer_id is not None:
            formatted["otherUserId"] = self.get_other_participant(formatted, viewer_id)
            formatted["unreadCount"] = unread_counts.get(viewer_id, 0)

        return formatted

    @staticmethod
    def _format_message(msg: Dict[str, Any], conv_id: str) -> Dict[str, Any]:
        """Format an embedded message for API response."""
        created_at = msg.get("createdAt")
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()

        return {
            "id": msg.get("messageId", ""),
            "conversationId": conv_id,
            "senderId": msg.get("senderId"),
            "receiverId": msg.get("receiverId"),
            "content": msg.get("content", ""),
            "createdAt": created_at,
        }
