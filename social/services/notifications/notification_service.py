"""
In-app notifications for social events.

The notifications collection doubles as the outbox an external push
dispatcher reads from: one document per recipient and event, unread until
the recipient marks it. Recording a notification never blocks or fails the
social action that triggered it; pipelines log and continue instead.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from common.database import retry_transient
from common.utils.exceptions import NotFoundException, ValidationException
from social.database.collections import NOTIFICATIONS
from social.services.ids import to_object_id

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100

# event type -> (title, message); formatted with the event's fields
EVENT_TEMPLATES: Dict[str, Tuple[str, str]] = {
    "friend_request": ("New friend request", "Someone wants to connect with you."),
    "friend_request_accepted": ("Request accepted", "Your request was accepted."),
    "circle_invite": ("Invitation to {circle_name}", "You've been invited to join {circle_name}."),
    "direct_message": ("New message", "{preview}"),
}


class NotificationService:
    """Records social events for a recipient and tracks their read state."""

    NOTIFICATION_TYPES = list(EVENT_TEMPLATES)

    def __init__(self, db: AsyncIOMotorDatabase):
        self._collection = db[NOTIFICATIONS]

    async def create_notification(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Store an unread notification for a user.

        Args:
            user_id: Recipient uid
            notification_type: One of NOTIFICATION_TYPES
            title: Short heading
            message: Body text
            metadata: Ids the client needs to act on it (requestId, circleId, ...)

        Raises:
            ValidationException: Unknown notification type
        """
        if notification_type not in EVENT_TEMPLATES:
            raise ValidationException(
                message=f"Unknown notification type: {notification_type}",
                code="INVALID_NOTIFICATION_TYPE",
            )

        now = datetime.now(timezone.utc)
        doc = {
            "userId": user_id,
            "type": notification_type,
            "title": title,
            "message": message,
            "metadata": metadata or {},
            "read": False,
            "readAt": None,
            "createdAt": now,
            "updatedAt": now,
        }

        result = await self._collection.insert_one(doc)
        doc["_id"] = result.inserted_id

        logger.info(f"Notification {result.inserted_id} ({notification_type}) queued for {user_id}")
        return self._format_notification(doc)

    @retry_transient
    async def get_notifications(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        unread_only: bool = False,
    ) -> Dict[str, Any]:
        """
        Page through a user's notifications, newest first.

        Returns:
            dict with notifications, total and hasMore
        """
        query: Dict[str, Any] = {"userId": user_id}
        if unread_only:
            query["read"] = False

        total = await self._collection.count_documents(query)
        page = await self._collection.find(query).sort("createdAt", -1).skip(offset).limit(limit).to_list(
            length=limit
        )

        return {
            "notifications": [self._format_notification(doc) for doc in page],
            "total": total,
            "hasMore": offset + len(page) < total,
        }

    @retry_transient
    async def get_unread_count(self, user_id: str) -> int:
        return await self._collection.count_documents({"userId": user_id, "read": False})

    @retry_transient
    async def mark_as_read(self, notification_id: str, user_id: str) -> Dict[str, Any]:
        """
        Mark one notification read. Marking an already-read one returns it unchanged.

        Raises:
            NotFoundException: No such notification for this user
        """
        oid = to_object_id(notification_id, "Notification not found", "NOTIFICATION_NOT_FOUND")
        now = datetime.now(timezone.utc)

        doc = await self._collection.find_one_and_update(
            {"_id": oid, "userId": user_id, "read": False},
            {"$set": {"read": True, "readAt": now, "updatedAt": now}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            doc = await self._collection.find_one({"_id": oid, "userId": user_id})
            if doc is None:
                raise NotFoundException(message="Notification not found", code="NOTIFICATION_NOT_FOUND")
        else:
            logger.debug(f"Notification {notification_id} read by {user_id}")

        return self._format_notification(doc)

    @retry_transient
    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification of a user read; returns how many changed."""
        now = datetime.now(timezone.utc)
        result = await self._collection.update_many(
            {"userId": user_id, "read": False},
            {"$set": {"read": True, "readAt": now, "updatedAt": now}},
        )

        logger.info(f"{result.modified_count} notifications marked read for {user_id}")
        return result.modified_count

    # ─────────────────────────────────────────────────────────────────
    # Social Events
    # ─────────────────────────────────────────────────────────────────

    async def create_friend_request_notification(
        self, user_id: str, from_user_id: str, request_id: str
    ) -> Dict[str, Any]:
        return await self._emit(
            "friend_request", user_id,
            {"requestId": request_id, "fromUserId": from_user_id},
        )

    async def create_request_accepted_notification(
        self, user_id: str, accepted_by: str, request_id: str
    ) -> Dict[str, Any]:
        return await self._emit(
            "friend_request_accepted", user_id,
            {"requestId": request_id, "acceptedBy": accepted_by},
        )

    async def create_circle_invite_notification(
        self,
        user_id: str,
        from_user_id: str,
        circle_id: str,
        circle_name: str,
        request_id: str,
    ) -> Dict[str, Any]:
        return await self._emit(
            "circle_invite", user_id,
            {"requestId": request_id, "circleId": circle_id, "fromUserId": from_user_id},
            circle_name=circle_name,
        )

    async def create_direct_message_notification(
        self,
        user_id: str,
        sender_id: str,
        conversation_id: str,
        message_id: str,
        preview: str,
    ) -> Dict[str, Any]:
        return await self._emit(
            "direct_message", user_id,
            {"conversationId": conversation_id, "messageId": message_id, "senderId": sender_id},
            preview=preview[:PREVIEW_LENGTH],
        )

    async def _emit(
        self,
        event: str,
        user_id: str,
        metadata: Dict[str, Any],
        **fields: str,
    ) -> Dict[str, Any]:
        title, message = EVENT_TEMPLATES[event]
        return await self.create_notification(
            user_id=user_id,
            notification_type=event,
            title=title.format(**fields),
            message=message.format(**fields),
            metadata=metadata,
        )

    @staticmethod
    def _format_notification(doc: Dict[str, Any]) -> Dict[str, Any]:
        read_at = doc.get("readAt")
        created_at = doc.get("createdAt")
        return {
            "id": str(doc["_id"]),
            "type": doc["type"],
            "title": doc["title"],
            "message": doc["message"],
            "metadata": doc.get("metadata", {}),
            "read": doc.get("read", False),
            "readAt": read_at.isoformat() if read_at else None,
            "createdAt": created_at.isoformat() if created_at else None,
        }
