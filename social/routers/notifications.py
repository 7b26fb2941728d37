"""
Notification endpoints: the caller's inbox and its read state.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from common.auth import Principal
from common.utils import success_response
from social.dependencies import require_principal, get_notification_service
from social.services.notifications.notification_service import NotificationService


router = APIRouter(prefix="/notifications", tags=["Notifications"])

CurrentPrincipal = Annotated[Principal, Depends(require_principal)]
Notifications = Annotated[NotificationService, Depends(get_notification_service)]


@router.get("")
async def list_notifications(
    principal: CurrentPrincipal,
    notifications: Notifications,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    unread_only: bool = False,
):
    """Newest first; ``hasMore`` tells the client whether to page on."""
    page = await notifications.get_notifications(
        user_id=principal.uid, limit=limit, offset=offset, unread_only=unread_only
    )
    return success_response(page)


@router.get("/count")
async def unread_count(principal: CurrentPrincipal, notifications: Notifications):
    return success_response({"unreadCount": await notifications.get_unread_count(principal.uid)})


@router.post("/read-all")
async def mark_all_read(principal: CurrentPrincipal, notifications: Notifications):
    marked = await notifications.mark_all_as_read(principal.uid)
    return success_response({"markedCount": marked})


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str, principal: CurrentPrincipal, notifications: Notifications):
    notification = await notifications.mark_as_read(notification_id, principal.uid)
    return success_response({"notification": notification})
