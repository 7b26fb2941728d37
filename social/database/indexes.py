"""
Index definitions for the social collections.

Several service guarantees are enforced by the store rather than by a read
before the write, so these indexes must exist before the API takes traffic:

- at most one pending friend request per unordered pair
  (unique ``pairKey`` filtered to ``status == "pending"``)
"""

import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel

from social.database.collections import (
    CIRCLES,
    CONVERSATIONS,
    FORUMS,
    FORUM_COMMENTS,
    FORUM_POSTS,
    FRIEND_REQUESTS,
    NOTIFICATIONS,
)

logger = logging.getLogger(__name__)


INDEXES = {
    FRIEND_REQUESTS: [
        IndexModel(
            [("pairKey", ASCENDING)],
            name="unique_pending_pair",
            unique=True,
            partialFilterExpression={"status": "pending"},
        ),
        IndexModel([("toUserId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("fromUserId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)]),
    ],
    CIRCLES: [
        IndexModel([("goal", ASCENDING), ("streak", DESCENDING)]),
        IndexModel([("members", ASCENDING)]),
    ],
    CONVERSATIONS: [
        IndexModel([("participants", ASCENDING), ("lastMessageAt", DESCENDING)]),
    ],
    FORUMS: [
        IndexModel([("isActive", ASCENDING), ("lastPostAt", DESCENDING)]),
    ],
    FORUM_POSTS: [
        IndexModel([("forumId", ASCENDING), ("upvoteCount", DESCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("forumId", ASCENDING), ("createdAt", DESCENDING)]),
    ],
    FORUM_COMMENTS: [
        IndexModel([("postId", ASCENDING), ("createdAt", ASCENDING)]),
    ],
    NOTIFICATIONS: [
        IndexModel([("userId", ASCENDING), ("read", ASCENDING), ("createdAt", DESCENDING)]),
    ],
}


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create every index the services depend on. Safe to run repeatedly."""
    for collection_name, models in INDEXES.items():
        names = await db[collection_name].create_indexes(models)
        logger.debug(f"Ensured indexes on {collection_name}: {names}")

    logger.info(f"Indexes ensured on {len(INDEXES)} collections")
