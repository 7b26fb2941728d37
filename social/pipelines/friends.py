"""
Friend request pipeline functions.

Orchestrates the request state machine with its follow-up effects: joining
the circle a circle invite points at, and recording notifications for the
other party.
"""

import logging
from typing import Optional, Dict, Any

from common.database import TRANSIENT_STORE_ERRORS
from common.utils.exceptions import APIException
from social.schemas.friends import CircleInvitePayload, parse_payload
from social.services.circles.circle_service import CircleService
from social.services.friends.friend_service import FriendService
from social.services.notifications.notification_service import NotificationService

logger = logging.getLogger(__name__)


async def send_friend_request(
    friend_service: FriendService,
    notification_service: NotificationService,
    from_user_id: str,
    to_user_id: str,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Send a friend request.

    1. Create the pending request
    2. Notify the recipient
    """
    request_id = await friend_service.send_friend_request(
        from_user_id, to_user_id, message=message
    )

    try:
        await notification_service.create_friend_request_notification(
            user_id=to_user_id,
            from_user_id=from_user_id,
            request_id=request_id,
        )
    except Exception as e:
        logger.warning(f"Failed to notify {to_user_id} of friend request {request_id}: {e}")

    return {"requestId": request_id}


async def accept_friend_request(
    friend_service: FriendService,
    circle_service: CircleService,
    notification_service: NotificationService,
    user_id: str,
    request_id: str,
) -> Dict[str, Any]:
    """
    Accept a request addressed to the user.

    1. Transition the request to accepted
    2. If it is a circle invite, join the circle
    3. Notify the sender

    A failed circle join does not undo the acceptance; it is reported in
    ``circleJoin`` instead.
    """
    # 1. Accept
    request = await friend_service.accept_friend_request(request_id, user_id=user_id)
    result: Dict[str, Any] = {"request": request}

    # 2. Join the invited circle
    payload = parse_payload(request.get("payload"))
    if isinstance(payload, CircleInvitePayload):
        try:
            circle = await circle_service.join_circle(payload.circleId, user_id)
            result["circleJoin"] = {"joined": True, "circle": circle}
        except APIException as e:
            logger.info(
                f"Request {request_id} accepted but joining circle "
                f"{payload.circleId} failed: {e.code}"
            )
            result["circleJoin"] = {
                "joined": False,
                "circleId": payload.circleId,
                "code": e.code,
                "message": e.message,
            }
        except TRANSIENT_STORE_ERRORS as e:
            logger.warning(f"Request {request_id} accepted but circle {payload.circleId} was unreachable: {e}")
            result["circleJoin"] = {
                "joined": False,
                "circleId": payload.circleId,
                "code": "STORE_UNAVAILABLE",
                "message": "The circle could not be joined right now",
            }

    # 3. Tell the sender
    try:
        await notification_service.create_request_accepted_notification(
            user_id=request["fromUserId"],
            accepted_by=user_id,
            request_id=request_id,
        )
    except Exception as e:
        logger.warning(f"Failed to notify {request['fromUserId']} of accepted request {request_id}: {e}")

    return result
