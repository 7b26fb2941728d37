"""
Forum engagement service.

Posts carry two toggle sets (``upvotes`` and ``likes``), each with a
denormalized counter. Every change to a set and its counter happens in the
same single-document update, guarded on membership, so the counter always
equals the set size and a repeated toggle restores the original state.
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
from social.database.collections import FORUMS, FORUM_POSTS, FORUM_COMMENTS
from social.services.ids import to_object_id

logger = logging.getLogger(__name__)


class ForumService:
    """
    Handles forums, their posts, votes, likes and comments.
    """

    SORT_ORDERS = {
        "top": [("upvoteCount", -1), ("createdAt", -1), ("_id", -1)],
        "new": [("createdAt", -1), ("_id", -1)],
    }

    # A toggle retries only when a concurrent toggle by the same user flips
    # the set between the add attempt and the remove attempt
    TOGGLE_ATTEMPTS = 3

    MAX_FORUM_TITLE_LENGTH = 100
    MAX_FORUM_DESCRIPTION_LENGTH = 500

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        max_post_length: int = 5000,
        max_comment_length: int = 1000,
    ):
        """
        Initialize ForumService.

        Args:
            db: MongoDB database connection
            max_post_length: Longest post body accepted
            max_comment_length: Longest comment accepted
        """
        self._db = db
        self._forums_collection = db[FORUMS]
        self._posts_collection = db[FORUM_POSTS]
        self._comments_collection = db[FORUM_COMMENTS]
        self._max_post_length = max_post_length
        self._max_comment_length = max_comment_length

    # ─────────────────────────────────────────────────────────────────
    # Forums
    # ─────────────────────────────────────────────────────────────────

    async def create_forum(
        self,
        title: str,
        description: str,
        created_by: str,
        category: str = "general",
    ) -> Dict[str, Any]:
        """
        Open a new forum. It starts active, with no posts.

        Raises:
            ValidationException: Empty or overlong title or description
        """
        title = self._validate_text(title, self.MAX_FORUM_TITLE_LENGTH, "Forum title", "FORUM_TITLE")
        description = (description or "").strip()
        if len(description) > self.MAX_FORUM_DESCRIPTION_LENGTH:
            raise ValidationException(
                message=f"Forum description cannot exceed {self.MAX_FORUM_DESCRIPTION_LENGTH} characters",
                code="FORUM_DESCRIPTION_TOO_LONG",
            )

        now = datetime.now(timezone.utc)
        forum_doc = {
            "title": title,
            "description": description,
            "category": category,
            "createdBy": created_by,
            "postCount": 0,
            "lastPostAt": None,
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }

        result = await self._forums_collection.insert_one(forum_doc)
        forum_doc["_id"] = result.inserted_id

        logger.info(f"Forum {result.inserted_id} '{title}' created by {created_by}")
        return self._format_forum(forum_doc)

    @retry_transient
    async def list_forums(self) -> List[Dict[str, Any]]:
        """Active forums, most recently posted in first; forums without posts last."""
        cursor = self._forums_collection.find({"isActive": {"$ne": False}}).sort(
            [("lastPostAt", -1), ("createdAt", -1), ("_id", -1)]
        )
        forums = await cursor.to_list(length=None)
        return [self._format_forum(forum) for forum in forums]

    @retry_transient
    async def get_forum(self, forum_id: str) -> Dict[str, Any]:
        """
        Raises:
            NotFoundException: No such forum
        """
        oid = to_object_id(forum_id, "Forum not found", "FORUM_NOT_FOUND")
        forum = await self._forums_collection.find_one({"_id": oid})
        if not forum:
            raise NotFoundException(message="Forum not found", code="FORUM_NOT_FOUND")
        return self._format_forum(forum)

    # ─────────────────────────────────────────────────────────────────
    # Posts
    # ─────────────────────────────────────────────────────────────────

    async def create_post(
        self,
        forum_id: str,
        author_id: str,
        content: str,
        title: Optional[str] = None,
    ) -> str:
        """
        Create a post in a forum and bump the forum's post counter.

        Returns:
            The new post id
        """
        content = self._validate_text(content, self._max_post_length, "Post", "POST")
        forum_oid = to_object_id(forum_id, "Forum not found", "FORUM_NOT_FOUND")
        now = datetime.now(timezone.utc)

        forum_result = await self._forums_collection.update_one(
            {"_id": forum_oid},
            {"$inc": {"postCount": 1}, "$set": {"lastPostAt": now}},
        )
        if forum_result.matched_count == 0:
            raise NotFoundException(message="Forum not found", code="FORUM_NOT_FOUND")

        post_doc = {
            "forumId": forum_oid,
            "authorId": author_id,
            "title": title.strip() if title else None,
            "content": content,
            "likes": [],
            "likeCount": 0,
            "upvotes": [],
            "upvoteCount": 0,
            "commentCount": 0,
            "createdAt": now,
            "updatedAt": now,
        }

        try:
            result = await self._posts_collection.insert_one(post_doc)
        except Exception:
            await self._decrement_post_count(forum_oid)
            raise

        logger.info(f"Post {result.inserted_id} created in forum {forum_id} by {author_id}")
        return str(result.inserted_id)

    @retry_transient
    async def get_post(self, post_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Get a post by id.

        Raises:
            NotFoundException: If the post doesn't exist
        """
        oid = to_object_id(post_id, "Post not found", "POST_NOT_FOUND")
        post = await self._posts_collection.find_one({"_id": oid})
        if not post:
            raise NotFoundException(message="Post not found", code="POST_NOT_FOUND")
        return self._format_post(post, viewer_id)

    @retry_transient
    async def list_posts(
        self,
        forum_id: str,
        sort: str = "top",
        limit: int = 20,
        viewer_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        List a forum's posts.

        ``top`` orders by upvotes then recency; ``new`` by recency alone.
        """
        if sort not in self.SORT_ORDERS:
            raise ValidationException(
                message=f"Sort must be one of: {', '.join(self.SORT_ORDERS)}",
                code="INVALID_SORT",
            )

        forum_oid = to_object_id(forum_id, "Forum not found", "FORUM_NOT_FOUND")
        forum = await self._forums_collection.find_one({"_id": forum_oid}, {"_id": 1})
        if not forum:
            raise NotFoundException(message="Forum not found", code="FORUM_NOT_FOUND")

        cursor = self._posts_collection.find({"forumId": forum_oid}).sort(
            self.SORT_ORDERS[sort]
        ).limit(limit)

        posts = await cursor.to_list(length=limit)
        return [self._format_post(post, viewer_id) for post in posts]

    async def toggle_upvote(self, post_id: str, user_id: str) -> Dict[str, Any]:
        """Add the user's upvote, or remove it if present."""
        return await self._toggle(post_id, user_id, "upvotes", "upvoteCount")

    async def toggle_like(self, post_id: str, user_id: str) -> Dict[str, Any]:
        """Add the user's like, or remove it if present."""
        return await self._toggle(post_id, user_id, "likes", "likeCount")

    async def add_comment(self, post_id: str, author_id: str, content: str) -> str:
        """
        Comment on a post and bump its comment counter.

        Returns:
            The new comment id
        """
        content = self._validate_text(content, self._max_comment_length, "Comment", "COMMENT")
        oid = to_object_id(post_id, "Post not found", "POST_NOT_FOUND")
        now = datetime.now(timezone.utc)

        post = await self._posts_collection.find_one_and_update(
            {"_id": oid},
            {"$inc": {"commentCount": 1}, "$set": {"updatedAt": now}},
            projection={"forumId": 1},
        )
        if not post:
            raise NotFoundException(message="Post not found", code="POST_NOT_FOUND")

        comment_doc = {
            "postId": oid,
            "forumId": post.get("forumId"),
            "authorId": author_id,
            "content": content,
            "createdAt": now,
        }

        try:
            result = await self._comments_collection.insert_one(comment_doc)
        except Exception:
            await self._posts_collection.update_one(
                {"_id": oid, "commentCount": {"$gt": 0}},
                {"$inc": {"commentCount": -1}},
            )
            raise

        logger.info(f"Comment {result.inserted_id} added to post {post_id} by {author_id}")
        return str(result.inserted_id)

    @retry_transient
    async def list_comments(self, post_id: str) -> List[Dict[str, Any]]:
        """List a post's comments, oldest first."""
        oid = to_object_id(post_id, "Post not found", "POST_NOT_FOUND")
        cursor = self._comments_collection.find({"postId": oid}).sort(
            [("createdAt", 1), ("_id", 1)]
        )
        comments = await cursor.to_list(length=None)
        return [self._format_comment(comment) for comment in comments]

    async def delete_post(self, post_id: str, requester_id: str) -> None:
        """
        Delete a post the requester authored, along with its comments.

        Raises:
            NotFoundException: Post doesn't exist
            ForbiddenException: Requester isn't the author
        """
        oid = to_object_id(post_id, "Post not found", "POST_NOT_FOUND")

        deleted = await self._posts_collection.find_one_and_delete(
            {"_id": oid, "authorId": requester_id},
            projection={"forumId": 1},
        )

        if not deleted:
            post = await self._posts_collection.find_one({"_id": oid}, {"_id": 1})
            if not post:
                raise NotFoundException(message="Post not found", code="POST_NOT_FOUND")
            raise ForbiddenException(
                message="Only the author can delete this post",
                code="NOT_POST_AUTHOR",
            )

        comments = await self._comments_collection.delete_many({"postId": oid})
        if deleted.get("forumId") is not None:
            await self._decrement_post_count(deleted["forumId"])

        logger.info(
            f"Post {post_id} deleted by {requester_id} "
            f"({comments.deleted_count} comments removed)"
        )

    # ─────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────

    async def _toggle(
        self,
        post_id: str,
        user_id: str,
        set_field: str,
        count_field: str,
    ) -> Dict[str, Any]:
        """Flip the user's membership in a toggle set, keeping its counter in step."""
        oid = to_object_id(post_id, "Post not found", "POST_NOT_FOUND")

        for _ in range(self.TOGGLE_ATTEMPTS):
            now = datetime.now(timezone.utc)

            post = await self._posts_collection.find_one_and_update(
                {"_id": oid, set_field: {"$ne": user_id}},
                {
                    "$addToSet": {set_field: user_id},
                    "$inc": {count_field: 1},
                    "$set": {"updatedAt": now},
                },
                return_document=ReturnDocument.AFTER,
            )
            if post:
                logger.debug(f"{set_field} +{user_id} on post {post_id}")
                return self._format_post(post, user_id)

            post = await self._posts_collection.find_one_and_update(
                {"_id": oid, set_field: user_id},
                {
                    "$pull": {set_field: user_id},
                    "$inc": {count_field: -1},
                    "$set": {"updatedAt": now},
                },
                return_document=ReturnDocument.AFTER,
            )
            if post:
                logger.debug(f"{set_field} -{user_id} on post {post_id}")
                return self._format_post(post, user_id)

            exists = await self._posts_collection.find_one({"_id": oid}, {"_id": 1})
            if not exists:
                raise NotFoundException(message="Post not found", code="POST_NOT_FOUND")

        logger.warning(f"Toggle of {set_field} on post {post_id} kept losing to concurrent toggles")
        raise ConflictException(
            message="This post changed while you were updating it, please try again",
            code="TOGGLE_CONFLICT",
        )

    async def _decrement_post_count(self, forum_oid) -> None:
        await self._forums_collection.update_one(
            {"_id": forum_oid, "postCount": {"$gt": 0}},
            {"$inc": {"postCount": -1}},
        )

    @staticmethod
    def _validate_text(content: str, max_length: int, label: str, code_prefix: str) -> str:
        content = content.strip() if content else ""

        if not content:
            raise ValidationException(
                message=f"{label} cannot be empty",
                code=f"EMPTY_{code_prefix}",
            )

        if len(content) > max_length:
            raise ValidationException(
                message=f"{label} cannot exceed {max_length} characters",
                code=f"{code_prefix}_TOO_LONG",
            )

        return content

    @staticmethod
    def _format_post(post: Dict[str, Any], viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """Format a post document for API response."""
        created_at = post.get("createdAt")
        upvotes = post.get("upvotes", [])
        likes = post.get("likes", [])

        return {
            "id": str(post["_id"]),
            "forumId": str(post.get("forumId", "")),
            "authorId": post.get("authorId"),
            "title": post.get("title"),
            "content": post.get("content", ""),
            "upvoteCount": post.get("upvoteCount", 0),
            "likeCount": post.get("likeCount", 0),
            "commentCount": post.get("commentCount", 0),
            "upvoted": viewer_id in upvotes if viewer_id else False,
            "liked": viewer_id in likes if viewer_id else False,
            "createdAt": created_at.isoformat() if created_at else None,
        }

    @staticmethod
    def _format_comment(comment: Dict[str, Any]) -> Dict[str, Any]:
        created_at = comment.get("createdAt")
        return {
            "id": str(comment["_id"]),
            "postId": str(comment.get("postId", "")),
            "authorId": comment.get("authorId"),
            "content": comment.get("content", ""),
            "createdAt": created_at.isoformat() if created_at else None,
        }

    @staticmethod
    def _format_forum(forum: Dict[str, Any]) -> Dict[str, Any]:
        created_at = forum.get("createdAt")
        last_post_at = forum.get("lastPostAt")
        return {
            "id": str(forum["_id"]),
            "title": forum.get("title", ""),
            "description": forum.get("description", ""),
            "category": forum.get("category", "general"),
            "createdBy": forum.get("createdBy"),
            "postCount": forum.get("postCount", 0),
            "isActive": forum.get("isActive", True),
            "lastPostAt": last_post_at.isoformat() if last_post_at else None,
            "createdAt": created_at.isoformat() if created_at else None,
        }
