"""
Friend request service.

Owns the friend-request state machine. A request is created ``pending`` and
moves exactly once to ``accepted`` or ``rejected``; terminal requests are
never modified again. Friendship is not stored separately: two users are
friends iff an accepted request exists for their pair.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Union

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from common.database import retry_transient
from common.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from social.database.collections import FRIEND_REQUESTS, USERS
from social.schemas.friends import CircleInvitePayload, FriendPayload
from social.services.ids import to_object_id

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a pair of users."""
    return "_".join(sorted([user_a, user_b]))


class FriendService:
    """
    Manages friend requests and the friendships derived from them.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize FriendService.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._collection = db[FRIEND_REQUESTS]
        self._users_collection = db[USERS]

    async def send_friend_request(
        self,
        from_user_id: str,
        to_user_id: str,
        message: Optional[str] = None,
        payload: Optional[Union[FriendPayload, CircleInvitePayload]] = None,
    ) -> str:
        """
        Create a pending request from one user to another.

        Args:
            from_user_id: Sender uid
            to_user_id: Recipient uid
            message: Optional note shown to the recipient
            payload: What accepting the request means (defaults to friendship)

        Returns:
            The new request id

        Raises:
            ConflictException: Self request, a pending request already exists
                for the pair in either direction, or the users are already friends
        """
        if from_user_id == to_user_id:
            raise ConflictException(
                message="You cannot send a request to yourself",
                code="CANNOT_FRIEND_SELF",
            )

        payload = payload or FriendPayload()

        # Best-effort: read then insert, so two concurrent requests between
        # existing friends can both pass. The pending-pair index still holds.
        if isinstance(payload, FriendPayload) and await self.are_friends(from_user_id, to_user_id):
            raise ConflictException(
                message="You are already friends",
                code="ALREADY_FRIENDS",
            )

        now = datetime.now(timezone.utc)
        request_doc = {
            "fromUserId": from_user_id,
            "toUserId": to_user_id,
            "pairKey": pair_key(from_user_id, to_user_id),
            "status": STATUS_PENDING,
            "message": message,
            "payload": payload.model_dump(),
            "createdAt": now,
            "respondedAt": None,
        }

        # The unique partial index on pairKey rejects a second pending request
        try:
            result = await self._collection.insert_one(request_doc)
        except DuplicateKeyError:
            raise ConflictException(
                message="A request between you is already pending",
                code="REQUEST_ALREADY_SENT",
            )

        logger.info(
            f"Friend request {result.inserted_id} sent from {from_user_id} "
            f"to {to_user_id} ({payload.type})"
        )
        return str(result.inserted_id)

    async def accept_friend_request(
        self,
        request_id: str,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Accept a pending request.

        Args:
            request_id: Request to accept
            user_id: When given, must be the recipient

        Returns:
            The accepted request
        """
        return await self._respond(request_id, STATUS_ACCEPTED, user_id)

    async def reject_friend_request(
        self,
        request_id: str,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Reject a pending request. Same preconditions as accept."""
        return await self._respond(request_id, STATUS_REJECTED, user_id)

    async def cancel_friend_request(self, request_id: str, user_id: str) -> None:
        """
        Withdraw a pending request the caller sent.

        Raises:
            NotFoundException: Request does not exist
            InvalidStateException: Request was already answered
            ForbiddenException: Caller is not the sender
        """
        oid = to_object_id(request_id, "Friend request not found", "REQUEST_NOT_FOUND")

        result = await self._collection.delete_one({
            "_id": oid,
            "status": STATUS_PENDING,
            "fromUserId": user_id,
        })

        if result.deleted_count:
            logger.info(f"Friend request {request_id} cancelled by {user_id}")
            return

        request = await self._collection.find_one({"_id": oid})
        self._raise_for_unmatched(request, request_id)
        raise ForbiddenException(
            message="Only the sender can cancel this request",
            code="NOT_REQUEST_SENDER",
        )

    @retry_transient
    async def are_friends(self, user_a: str, user_b: str) -> bool:
        """Check whether an accepted request exists for the pair."""
        request = await self._collection.find_one(
            {"pairKey": pair_key(user_a, user_b), "status": STATUS_ACCEPTED},
            {"_id": 1},
        )
        return request is not None

    @retry_transient
    async def list_friends(self, user_id: str) -> List[Dict[str, Any]]:
        """
        List the user's friends.

        Returns:
            User summaries ({uid, username, displayName}), one per friend
        """
        cursor = self._collection.find(
            {
                "status": STATUS_ACCEPTED,
                "$or": [{"fromUserId": user_id}, {"toUserId": user_id}],
            },
            {"fromUserId": 1, "toUserId": 1},
        )
        accepted = await cursor.to_list(length=None)

        friend_ids = []
        for request in accepted:
            other = request["toUserId"] if request["fromUserId"] == user_id else request["fromUserId"]
            if other not in friend_ids:
                friend_ids.append(other)

        if not friend_ids:
            return []

        users_cursor = self._users_collection.find({"_id": {"$in": friend_ids}})
        users = {doc["_id"]: doc for doc in await users_cursor.to_list(length=None)}

        return [self._format_user(uid, users.get(uid)) for uid in friend_ids]

    @retry_transient
    async def list_pending_requests(self, user_id: str) -> List[Dict[str, Any]]:
        """
        List pending requests the user sent or received, newest first.

        Each request carries ``direction``: ``incoming`` when the user is the
        recipient, ``outgoing`` when the user is the sender.
        """
        cursor = self._collection.find({
            "status": STATUS_PENDING,
            "$or": [{"fromUserId": user_id}, {"toUserId": user_id}],
        }).sort("createdAt", -1)

        requests = await cursor.to_list(length=None)
        return [self._format_request(request, viewer_id=user_id) for request in requests]

    @retry_transient
    async def get_request(self, request_id: str) -> Dict[str, Any]:
        """Get a single request by id."""
        oid = to_object_id(request_id, "Friend request not found", "REQUEST_NOT_FOUND")
        request = await self._collection.find_one({"_id": oid})
        if not request:
            raise NotFoundException(message="Friend request not found", code="REQUEST_NOT_FOUND")
        return self._format_request(request)

    @retry_transient
    async def remove_friend(self, user_id: str, friend_id: str) -> int:
        """
        Remove a friendship by deleting the accepted requests of the pair.

        Idempotent: returns 0 when the users were not friends.
        """
        result = await self._collection.delete_many({
            "pairKey": pair_key(user_id, friend_id),
            "status": STATUS_ACCEPTED,
        })

        if result.deleted_count:
            logger.info(f"Friendship between {user_id} and {friend_id} removed")
        return result.deleted_count

    # ─────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────

    async def _respond(
        self,
        request_id: str,
        status: str,
        user_id: Optional[str],
    ) -> Dict[str, Any]:
        """Move a pending request to a terminal status with one guarded write."""
        oid = to_object_id(request_id, "Friend request not found", "REQUEST_NOT_FOUND")

        guard: Dict[str, Any] = {"_id": oid, "status": STATUS_PENDING}
        if user_id is not None:
            guard["toUserId"] = user_id

        updated = await self._collection.find_one_and_update(
            guard,
            {"$set": {"status": status, "respondedAt": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )

        if updated:
            logger.info(f"Friend request {request_id} {status}")
            return self._format_request(updated)

        request = await self._collection.find_one({"_id": oid})
        self._raise_for_unmatched(request, request_id)
        raise ForbiddenException(
            message="Only the recipient can respond to this request",
            code="NOT_REQUEST_RECIPIENT",
        )

    @staticmethod
    def _raise_for_unmatched(request: Optional[Dict[str, Any]], request_id: str) -> None:
        """Explain why a guarded write on a request matched nothing."""
        if not request:
            raise NotFoundException(message="Friend request not found", code="REQUEST_NOT_FOUND")

        if request["status"] != STATUS_PENDING:
            raise InvalidStateException(
                message=f"This request has already been {request['status']}",
                code="REQUEST_ALREADY_PROCESSED",
                details={"requestId": request_id, "status": request["status"]},
            )

    @staticmethod
    def _format_user(uid: str, user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        user = user or {}
        return {
            "uid": uid,
            "username": user.get("username"),
            "displayName": user.get("displayName"),
        }

    @staticmethod
    def _format_request(
        request: Dict[str, Any],
        viewer_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Format a request document for API response."""
        created_at = request.get("createdAt")
        responded_at = request.get("respondedAt")

        formatted = {
            "id": str(request["_id"]),
            "fromUserId": request["fromUserId"],
            "toUserId": request["toUserId"],
            "status": request["status"],
            "message": request.get("message"),
            "payload": request.get("payload") or {"type": "friend"},
            "createdAt": created_at.isoformat() if created_at else None,
            "respondedAt": responded_at.isoformat() if responded_at else None,
        }

        if viewer_id is not None:
            formatted["direction"] = "outgoing" if request["fromUserId"] == viewer_id else "incoming"

        return formatted
