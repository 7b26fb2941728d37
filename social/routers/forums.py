"""
Forum API endpoints.

Forums, posts, upvotes, likes and comments.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query

from common.auth import Principal
from common.utils import success_response, list_response
from social.dependencies import require_principal, get_forum_service
from social.schemas.forums import AddCommentRequest, CreateForumRequest, CreatePostRequest
from social.services.forums.forum_service import ForumService


router = APIRouter(prefix="/forums", tags=["Forums"])


# =============================================================================
# Forums
# =============================================================================

@router.get("")
async def list_forums(
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    """List active forums, most recently active first."""
    forums = await forum_service.list_forums()
    return list_response(forums)


@router.post("", status_code=201)
async def create_forum(
    body: CreateForumRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    """Open a new forum."""
    forum = await forum_service.create_forum(
        body.title,
        body.description,
        principal.uid,
        category=body.category,
    )
    return success_response({"forum": forum})


@router.get("/{forum_id}")
async def get_forum(
    forum_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    forum = await forum_service.get_forum(forum_id)
    return success_response({"forum": forum})


# =============================================================================
# Posts
# =============================================================================

@router.get("/{forum_id}/posts")
async def list_posts(
    forum_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
    sort: Literal["top", "new"] = Query(default="top"),
    limit: int = Query(default=20, ge=1, le=100),
):
    """
    List posts in a forum.

    Args:
        sort: ``top`` (most upvoted, then newest) or ``new`` (newest first)
        limit: Maximum number of posts (1-100, default 20)
    """
    posts = await forum_service.list_posts(
        forum_id,
        sort=sort,
        limit=limit,
        viewer_id=principal.uid,
    )
    return list_response(posts)


@router.post("/{forum_id}/posts", status_code=201)
async def create_post(
    forum_id: str,
    body: CreatePostRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    """Create a post in a forum."""
    post_id = await forum_service.create_post(
        forum_id,
        principal.uid,
        body.content,
        title=body.title,
    )
    post = await forum_service.get_post(post_id, viewer_id=principal.uid)
    return success_response({"post": post})


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    """Delete a post the caller wrote."""
    await forum_service.delete_post(post_id, principal.uid)
    return success_response({"deleted": True})


# =============================================================================
# Engagement
# =============================================================================

@router.post("/posts/{post_id}/upvote")
async def toggle_upvote(
    post_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    """Upvote a post, or remove the caller's upvote."""
    post = await forum_service.toggle_upvote(post_id, principal.uid)
    return success_response({"post": post})


@router.post("/posts/{post_id}/like")
async def toggle_like(
    post_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    """Like a post, or remove the caller's like."""
    post = await forum_service.toggle_like(post_id, principal.uid)
    return success_response({"post": post})


@router.get("/posts/{post_id}/comments")
async def list_comments(
    post_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    """List a post's comments, oldest first."""
    comments = await forum_service.list_comments(post_id)
    return list_response(comments)


@router.post("/posts/{post_id}/comments", status_code=201)
async def add_comment(
    post_id: str,
    body: AddCommentRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    forum_service: Annotated[ForumService, Depends(get_forum_service)],
):
    """Comment on a post."""
    comment_id = await forum_service.add_comment(post_id, principal.uid, body.content)
    return success_response({"commentId": comment_id})
