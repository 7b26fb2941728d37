"""
Circles API endpoints.

Create, find, join and leave goal-based circles, and invite others.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from common.auth import Principal
from common.utils import success_response, list_response
from social.dependencies import (
    require_principal,
    get_circle_service,
    get_notification_service,
)
from social.pipelines import circles as circles_pipeline
from social.schemas.circles import CreateCircleRequest, InviteToCircleRequest
from social.services.circles.circle_service import CircleService
from social.services.notifications.notification_service import NotificationService


router = APIRouter(prefix="/circles", tags=["Circles"])


@router.post("", status_code=201)
async def create_circle(
    body: CreateCircleRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
):
    """Create a circle with the caller as its first member."""
    circle_id = await circle_service.create_circle(
        name=body.name,
        goal=body.goal,
        creator_id=principal.uid,
        max_members=body.maxMembers,
        tendency=body.tendency,
    )
    circle = await circle_service.get_circle(circle_id)
    return success_response({"circle": circle})


@router.get("/mine")
async def list_my_circles(
    principal: Annotated[Principal, Depends(require_principal)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
):
    """List circles the caller belongs to."""
    circles = await circle_service.list_user_circles(principal.uid)
    return list_response(circles)


@router.get("/match")
async def find_matching_circles(
    principal: Annotated[Principal, Depends(require_principal)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
    goal: str = Query(..., min_length=1),
    tendency: Optional[str] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
):
    """
    Find circles with the caller's goal that still have room.

    Circles the caller already belongs to are left out.
    """
    circles = await circle_service.find_matching_circles(
        goal=goal,
        tendency=tendency,
        exclude_user_id=principal.uid,
        limit=limit,
    )
    return list_response(circles)


@router.get("/{circle_id}")
async def get_circle(
    circle_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
):
    """Get a circle."""
    circle = await circle_service.get_circle(circle_id)
    return success_response({"circle": circle})


@router.post("/{circle_id}/join")
async def join_circle(
    circle_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
):
    """Join a circle that has room."""
    circle = await circle_service.join_circle(circle_id, principal.uid)
    return success_response({"circle": circle})


@router.post("/{circle_id}/leave")
async def leave_circle(
    circle_id: str,
    principal: Annotated[Principal, Depends(require_principal)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
):
    """Leave a circle."""
    await circle_service.leave_circle(circle_id, principal.uid)
    return success_response({"left": True})


@router.post("/{circle_id}/invite", status_code=201)
async def invite_to_circle(
    circle_id: str,
    body: InviteToCircleRequest,
    principal: Annotated[Principal, Depends(require_principal)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
    notification_service: Annotated[NotificationService, Depends(get_notification_service)],
):
    """Invite another user; accepting the invite joins the circle."""
    result = await circles_pipeline.invite_to_circle(
        circle_service=circle_service,
        notification_service=notification_service,
        circle_id=circle_id,
        from_user_id=principal.uid,
        to_user_id=body.toUserId,
    )
    return success_response(result)
