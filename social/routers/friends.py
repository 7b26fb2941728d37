"""
Friends API endpoints.

Friend requests and the friend list.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from common.auth import Principal
from common.utils import success_response, list_response
from social.dependencies import (
    require_principal,
    get_circle_service,
    get_friend_service,
    get_notification_service,
)
from social.pipelines import friends as friends_pipeline
from social.schemas.friends import SendFriendRequestRequest
from social.services.circles.circle_service import CircleService
from social.services.friends.friend_service import FriendService
from social.services.notifications.notification_service import NotificationService


router = APIRouter(prefix="/friends", tags=["Friends"])


# =============================================================================
# Requests
# =============================================================================

@router.post("/requests", status_code=201)
async def send_friend_request(
    body: SendFriendRequestRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    friend_service: Annotated[FriendService, Depends(get_friend_service)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
):
    """Send a friend request to another user."""
    result = await friends_pipeline.send_friend_request(
        friend_service=friend_service,
        notification_service=notification_service,
        from_user_id=principal.uid,
        to_user_id=body.toUserId,
        message=body.message,
    )
    return success_response(result)


@router.get("/requests")
async def list_pending_requests(
    principal: Annotated[Principal, Depends(require_principal)],
    friend_service: Annotated[FriendService, Depends(get_friend_service)],
):
    """List pending requests, incoming and outgoing."""
    requests = await friend_service.list_pending_requests(principal.uid)
    return list_response(requests)


@router.post("/requests/{request_id}/accept")
async def accept_friend_request(
    request_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    friend_service: Annotated[FriendService, Depends(get_friend_service)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
):
    """
    Accept a request addressed to the caller.

    Accepting a circle invite also joins the circle; a failed join is
    reported under ``circleJoin`` while the acceptance stands.
    """
    result = await friends_pipeline.accept_friend_request(
        friend_service=friend_service,
        circle_service=circle_service,
        notification_service=notification_service,
        user_id=principal.uid,
        request_id=request_id,
    )
    return success_response(result)


@router.post("/requests/{request_id}/reject")
async def reject_friend_request(
    request_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    friend_service: Annotated[FriendService, Depends(get_friend_service)],
):
    """Reject a request addressed to the caller."""
    request = await friend_service.reject_friend_request(request_id, user_id=principal.uid)
    return success_response({"request": request})


@router.delete("/requests/{request_id}")
async def cancel_friend_request(
    request_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    friend_service: Annotated[FriendService, Depends(get_friend_service)],
):
    """Withdraw a pending request the caller sent."""
    await friend_service.cancel_friend_request(request_id, principal.uid)
    return success_response({"cancelled": True})


# =============================================================================
# Friend List
# =============================================================================

@router.get("")
async def list_friends(
    principal: Annotated[Principal, Depends(require_principal)],
    friend_service: Annotated[FriendService, Depends(get_friend_service)],
):
    """List the caller's friends."""
    friends = await friend_service.list_friends(principal.uid)
    return list_response(friends)


@router.delete("/{friend_id}")
async def remove_friend(
    friend_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    friend_service: Annotated[FriendService, Depends(get_friend_service)],
):
    """Remove a friend. Succeeds even if the users weren't friends."""
    await friend_service.remove_friend(principal.uid, friend_id)
    return success_response({"removed": True})
