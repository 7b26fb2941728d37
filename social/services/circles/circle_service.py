"""
Circle management service.

Circles are small goal-based groups. Membership is capacity bounded: the
member list never grows past ``maxMembers``. Joins are a single guarded
update so two concurrent joins can never both take the last seat.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from common.database import retry_transient
from common.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from social.database.collections import CIRCLES
from social.schemas.friends import CircleInvitePayload
from social.services.friends.friend_service import FriendService
from social.services.ids import to_object_id
from social.services.realtime.live_query import LiveQuery

logger = logging.getLogger(__name__)


class CircleService:
    """
    Handles circle creation, matching and membership.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        friend_service: FriendService,
        default_size: int = 5,
        max_size: int = 50,
    ):
        """
        Initialize CircleService.

        Args:
            db: MongoDB database connection
            friend_service: Used to deliver circle invitations as requests
            default_size: Capacity for circles created without one
            max_size: Largest capacity accepted on create
        """
        self._db = db
        self._collection = db[CIRCLES]
        self._friend_service = friend_service
        self._default_size = default_size
        self._max_size = max_size

    async def create_circle(
        self,
        name: str,
        goal: str,
        creator_id: str,
        max_members: Optional[int] = None,
        tendency: Optional[str] = None,
    ) -> str:
        """
        Create a circle with the creator as its first member.

        Returns:
            The new circle id
        """
        name = name.strip() if name else ""
        goal = goal.strip() if goal else ""

        if not name:
            raise ValidationException(message="Circle name is required", code="CIRCLE_NAME_REQUIRED")
        if not goal:
            raise ValidationException(message="Circle goal is required", code="CIRCLE_GOAL_REQUIRED")

        if max_members is None:
            max_members = self._default_size

        if max_members < 1 or max_members > self._max_size:
            raise ValidationException(
                message=f"Circle size must be between 1 and {self._max_size}",
                code="INVALID_CIRCLE_SIZE",
            )

        now = datetime.now(timezone.utc)
        circle_doc = {
            "name": name,
            "goal": goal,
            "tendency": tendency,
            "members": [creator_id],
            "maxMembers": max_members,
            "streak": 0,
            "createdBy": creator_id,
            "createdAt": now,
            "updatedAt": now,
        }

        result = await self._collection.insert_one(circle_doc)
        logger.info(f"Circle {result.inserted_id} '{name}' created by {creator_id}")
        return str(result.inserted_id)

    @retry_transient
    async def get_circle(self, circle_id: str) -> Dict[str, Any]:
        """
        Get a circle by id.

        Raises:
            NotFoundException: If the circle doesn't exist
        """
        oid = to_object_id(circle_id, "Circle not found", "CIRCLE_NOT_FOUND")
        circle = await self._collection.find_one({"_id": oid})
        if not circle:
            raise NotFoundException(message="Circle not found", code="CIRCLE_NOT_FOUND")
        return self._format_circle(circle)

    @retry_transient
    async def list_user_circles(self, user_id: str) -> List[Dict[str, Any]]:
        """List the circles the user belongs to, most recently active first."""
        cursor = self._collection.find({"members": user_id}).sort("updatedAt", -1)
        circles = await cursor.to_list(length=None)
        return [self._format_circle(circle) for circle in circles]

    @retry_transient
    async def find_matching_circles(
        self,
        goal: str,
        tendency: Optional[str] = None,
        exclude_user_id: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """
        Find circles with the same goal that still have room.

        Ordered by tendency match, then streak, then member count (all
        descending); circle id breaks remaining ties so the order is stable.
        """
        query: Dict[str, Any] = {
            "goal": goal,
            "$expr": {"$lt": [{"$size": "$members"}, "$maxMembers"]},
        }
        if exclude_user_id:
            query["members"] = {"$ne": exclude_user_id}

        circles = await self._collection.find(query).to_list(length=None)

        ranked = sorted(circles, key=lambda c: str(c["_id"]))
        ranked.sort(
            key=lambda c: (
                tendency is not None and c.get("tendency") == tendency,
                c.get("streak", 0),
                len(c.get("members", [])),
            ),
            reverse=True,
        )

        logger.debug(f"Matched {len(ranked)} circles for goal '{goal}'")
        return [self._format_circle(circle) for circle in ranked[:limit]]

    async def join_circle(self, circle_id: str, user_id: str) -> Dict[str, Any]:
        """
        Add a user to a circle.

        Raises:
            NotFoundException: Circle doesn't exist
            ConflictException: ALREADY_MEMBER or CIRCLE_FULL
        """
        oid = to_object_id(circle_id, "Circle not found", "CIRCLE_NOT_FOUND")

        # Membership and capacity are checked by the same write that adds the member
        updated = await self._collection.find_one_and_update(
            {
                "_id": oid,
                "members": {"$ne": user_id},
                "$expr": {"$lt": [{"$size": "$members"}, "$maxMembers"]},
            },
            {
                "$addToSet": {"members": user_id},
                "$set": {"updatedAt": datetime.now(timezone.utc)},
            },
            return_document=ReturnDocument.AFTER,
        )

        if updated:
            logger.info(f"User {user_id} joined circle {circle_id}")
            return self._format_circle(updated)

        circle = await self._collection.find_one({"_id": oid})
        if not circle:
            raise NotFoundException(message="Circle not found", code="CIRCLE_NOT_FOUND")
        if user_id in circle.get("members", []):
            raise ConflictException(message="You are already a member of this circle", code="ALREADY_MEMBER")
        raise ConflictException(message="This circle is full", code="CIRCLE_FULL")

    @retry_transient
    async def leave_circle(self, circle_id: str, user_id: str) -> None:
        """Remove a user from a circle. No-op if the user isn't a member."""
        oid = to_object_id(circle_id, "Circle not found", "CIRCLE_NOT_FOUND")

        result = await self._collection.update_one(
            {"_id": oid},
            {
                "$pull": {"members": user_id},
                "$set": {"updatedAt": datetime.now(timezone.utc)},
            },
        )

        if result.matched_count == 0:
            raise NotFoundException(message="Circle not found", code="CIRCLE_NOT_FOUND")

        if result.modified_count:
            logger.info(f"User {user_id} left circle {circle_id}")

    async def invite_to_circle(
        self,
        circle_id: str,
        from_user_id: str,
        to_user_id: str,
    ) -> Dict[str, Any]:
        """
        Invite a user to a circle.

        The invitation is delivered as a request carrying a circle invite
        payload; accepting it joins the circle.

        Returns:
            dict with requestId and the invited circle
        """
        circle = await self.get_circle(circle_id)

        if from_user_id not in circle["members"]:
            raise ForbiddenException(
                message="Only circle members can send invitations",
                code="NOT_CIRCLE_MEMBER",
            )

        if to_user_id in circle["members"]:
            raise ConflictException(
                message="This user is already a member of the circle",
                code="ALREADY_MEMBER",
            )

        if circle["memberCount"] >= circle["maxMembers"]:
            raise ConflictException(message="This circle is full", code="CIRCLE_FULL")

        request_id = await self._friend_service.send_friend_request(
            from_user_id,
            to_user_id,
            message=f"You've been invited to join {circle['name']}",
            payload=CircleInvitePayload(circleId=circle["id"], circleName=circle["name"]),
        )

        logger.info(f"User {from_user_id} invited {to_user_id} to circle {circle_id}")
        return {"requestId": request_id, "circle": circle}

    def watch_circle(self, circle_id: str, max_await_time_ms: int = 1000) -> LiveQuery:
        """Live view of one circle."""
        oid = to_object_id(circle_id, "Circle not found", "CIRCLE_NOT_FOUND")
        return LiveQuery(
            self._collection,
            [{"$match": {"documentKey._id": oid}}],
            lambda: self.get_circle(circle_id),
            max_await_time_ms=max_await_time_ms,
            name=f"circle:{circle_id}",
        )

    @staticmethod
    def _format_circle(circle: Dict[str, Any]) -> Dict[str, Any]:
        """Format a circle document for API response."""
        members = circle.get("members", [])
        created_at = circle.get("createdAt")

        return {
            "id": str(circle["_id"]),
            "name": circle.get("name", ""),
            "goal": circle.get("goal", ""),
            "tendency": circle.get("tendency"),
            "members": members,
            "memberCount": len(members),
            "maxMembers": circle.get("maxMembers", 0),
            "isFull": len(members) >= circle.get("maxMembers", 0),
            "streak": circle.get("streak", 0),
            "createdBy": circle.get("createdBy"),
            "createdAt": created_at.isoformat() if created_at else None,
        }
