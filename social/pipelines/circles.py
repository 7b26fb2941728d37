"""
Circle pipeline functions.
"""

import logging
from typing import Dict, Any

from social.services.circles.circle_service import CircleService
from social.services.notifications.notification_service import NotificationService

logger = logging.getLogger(__name__)


async def invite_to_circle(
    circle_service: CircleService,
    notification_service: NotificationService,
    circle_id: str,
    from_user_id: str,
    to_user_id: str,
) -> Dict[str, Any]:
    """
    Invite a user to a circle and notify them.

    Returns:
        dict with requestId and circleId
    """
    invite = await circle_service.invite_to_circle(circle_id, from_user_id, to_user_id)
    circle = invite["circle"]

    try:
        await notification_service.create_circle_invite_notification(
            user_id=to_user_id,
            from_user_id=from_user_id,
            circle_id=circle["id"],
            circle_name=circle["name"],
            request_id=invite["requestId"],
        )
    except Exception as e:
        logger.warning(f"Failed to notify {to_user_id} of invite to circle {circle_id}: {e}")

    return {"requestId": invite["requestId"], "circleId": circle["id"]}
